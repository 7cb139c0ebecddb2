import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import billing, game, health, pairing, rpc
from .config import settings
from .core.billing import BillingDispatcher, PaymentVerifier, load_actions_from_settings
from .core.pairing import PairingStore, SessionLifecycleManager
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .providers.contracts import Web3GameContracts
from .providers.rpc import JsonRpcClient
from .providers.wallet_bridge import WalletBridgeClient

logger = logging.getLogger(__name__)


def build_contracts() -> Optional[Web3GameContracts]:
    if not settings.has_signer:
        logger.warning("RPC_URL or PRIVATE_KEY not set; game contract calls are disabled")
        return None
    try:
        contracts = Web3GameContracts.from_settings()
    except ValueError as exc:
        logger.error("Game server signer could not be initialised: %s", exc)
        return None
    logger.info("Game server wallet address: %s", contracts.signer_address)
    return contracts


def create_app(
    pairing_manager: Optional[SessionLifecycleManager] = None,
    billing_dispatcher: Optional[BillingDispatcher] = None,
) -> FastAPI:
    """Create the API app.

    Without arguments the wallet bridge, signer and billing services are
    built from settings inside the lifespan. Tests pass their own
    manager / dispatcher and no background tasks are started.
    """
    provided = pairing_manager is not None or billing_dispatcher is not None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if provided:
            yield
            return

        setup_logging()
        if not settings.has_wc_project_id:
            logger.warning("WC_PROJECT_ID is not set; pairing requests will fail")

        client = WalletBridgeClient()
        store = PairingStore(ttl_seconds=settings.pairing_ttl_seconds)
        manager = SessionLifecycleManager(
            client,
            store,
            default_chain_ref=settings.default_chain_ref,
            request_timeout=settings.wallet_request_timeout_seconds,
            uri_wait=settings.connect_uri_wait_seconds,
            retry_delay=settings.connect_retry_delay_seconds,
        )
        manager.start(settings.pairing_sweep_interval_seconds)

        contracts = build_contracts()
        treasury = settings.billing_treasury_address or (contracts.signer_address if contracts else "")
        reader = JsonRpcClient(settings.rpc_url)
        dispatcher = BillingDispatcher(
            load_actions_from_settings(settings),
            PaymentVerifier(reader),
            contracts,
            treasury,
            currency_decimals=settings.game_currency_decimals,
        )

        app.state.pairing_manager = manager
        app.state.billing_dispatcher = dispatcher
        logger.info("Wallet login bridge started (treasury=%s)", treasury or "unset")
        try:
            yield
        finally:
            await manager.stop()
            await reader.close()
            await client.close()
            logger.info("Wallet login bridge stopped")

    app = FastAPI(
        title="Wallet Login Bridge",
        description="Wallet pairing and paid game actions for the 3DHome4U client",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    if provided:
        app.state.pairing_manager = pairing_manager
        app.state.billing_dispatcher = billing_dispatcher

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(pairing.router)
    app.include_router(billing.router)
    app.include_router(game.router)
    app.include_router(rpc.router)

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Wallet Login Bridge",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
