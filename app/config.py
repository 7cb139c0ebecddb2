from pathlib import Path
from typing import Any, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalise values that are commonly pasted with stray whitespace."""

        super().model_post_init(__context)

        for name in ("wc_project_id", "private_key", "billing_treasury_address", "rpc_url"):
            value = getattr(self, name)
            if isinstance(value, str) and value != value.strip():
                object.__setattr__(self, name, value.strip())

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=3000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="auto", description="json, console, or auto (console at DEBUG)")
    cors_allow_origins: List[str] = Field(
        default_factory=lambda: [
            "https://wc-backend-tpug.onrender.com",
            "https://www.3dhome4u.com",
            "https://3dhome4u.com",
        ],
        description="Origins allowed to call the API from a browser",
    )

    # Wallet protocol
    wc_project_id: str = Field(default="", description="WalletConnect cloud project id")
    relay_url: str = Field(default="wss://relay.walletconnect.com", description="WalletConnect relay")
    wallet_bridge_url: str = Field(
        default="http://127.0.0.1:3100",
        description="Base URL of the sign-client bridge process",
    )
    wc_app_name: str = Field(default="3DHome4U Login", description="Name shown in the wallet")
    wc_app_description: str = Field(default="Login via WalletConnect / MetaMask")
    wc_app_url: str = Field(default="https://wc-backend-tpug.onrender.com")
    wc_app_icon: str = Field(
        default="https://raw.githubusercontent.com/walletconnect/walletconnect-assets/master/Icon/Blue%20(Default)/Icon.png",
    )

    # Pairing lifecycle
    pairing_ttl_seconds: int = Field(default=600, ge=1, description="Lifetime of a pairing attempt")
    pairing_sweep_interval_seconds: int = Field(default=60, ge=1, description="Expired pairing sweep cadence")
    wallet_request_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Ceiling for a single wallet round trip",
    )
    connect_uri_wait_seconds: float = Field(default=8.0, gt=0, description="Max wait for a pairing URI")
    connect_retry_delay_seconds: float = Field(default=1.5, ge=0, description="Pause before the second connect")
    default_chain_ref: str = Field(default="eip155:1", description="Chain requested when the client names none")

    # Chain access
    rpc_url: str = Field(default="", description="JSON-RPC endpoint used for billing")
    private_key: str = Field(default="", description="Game server signer key")
    receipt_timeout_seconds: int = Field(default=180, ge=1, description="Wait for on-chain confirmation")
    game_currency_address: str = Field(
        default="",
        validation_alias=AliasChoices("game_currency_address", "GameCurrency_ADDRESS"),
    )
    resource_nft_address: str = Field(
        default="",
        validation_alias=AliasChoices("resource_nft_address", "ResourceNFT_CONTRACT_ADDRESS"),
    )
    land_nft_address: str = Field(
        default="",
        validation_alias=AliasChoices("land_nft_address", "LandNFT_CONTRACT_ADDRESS"),
    )
    parcel_state_address: str = Field(
        default="",
        validation_alias=AliasChoices("parcel_state_address", "ParcelState_CONTRACT_ADDRESS"),
    )
    game_currency_decimals: int = Field(default=18, ge=0, description="GameCurrency fixed-point decimals")

    # Billing
    billing_treasury_address: str = Field(
        default="",
        description="Payee for billing payments (defaults to the signer address)",
    )
    price_native_item_nft: str = Field(default="", description="Item NFT price in native units")
    price_native_resource_nft: str = Field(default="", description="Resource NFT price in native units")
    price_native_currency: str = Field(default="", description="Currency mint/burn price in native units")
    price_native_land: str = Field(default="", description="Land mint price in native units")
    price_native_parcelstate: str = Field(default="", description="Parcel state price in native units")

    # Direct game endpoints
    game_admin_token: str = Field(
        default="",
        description="When set, /game writes require a matching x-admin-token header",
    )

    @property
    def has_wc_project_id(self) -> bool:
        return bool(self.wc_project_id)

    @property
    def has_signer(self) -> bool:
        return bool(self.rpc_url and self.private_key)

    def price_source(self, name: str) -> str:
        return getattr(self, f"price_native_{name}", "") or ""


# Global settings instance
settings = Settings()
