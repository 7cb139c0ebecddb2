"""
Session lifecycle manager.

Owns the pairing handshake end to end:
- asks the wallet protocol for a pairing URI and registers the attempt
- waits for the wallet's out-of-band approval in a background task
- answers status polls (pending / approved / expired / not_found)
- forwards network switches and allow-listed requests to the wallet
- applies the wallet's session update/delete notifications

Sessions are immutable snapshots; every change swaps in a new one with a
higher version. A switch request only applies its optimistic chain if no
wallet notification landed while the request was in flight, so the
wallet's own report always wins.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Set

from app.core.chains import chain_name, is_supported_chain_ref, parse_chain_ref, to_hex_chain_id
from app.core.errors import (
    AddressMismatch,
    ConnectError,
    InvalidInput,
    MethodNotAllowed,
    RequestTimeout,
    SessionNotFound,
    WalletBridgeError,
    WalletRequestFailed,
)
from app.services.address import same_address

from .models import (
    ActiveAccount,
    ChainSource,
    NotificationKind,
    PairingAttempt,
    PairingStatus,
    PairingStatusResult,
    PairingTicket,
    WalletNotification,
    WalletSession,
)
from .reconciler import connected_chains, evm_namespace, parse_accounts, reconcile
from .store import PairingStore
from .uri import clean_pairing_uri

if TYPE_CHECKING:
    from app.providers.base import ConnectResult, WalletProtocolClient

logger = logging.getLogger(__name__)

# Methods requested in the pairing namespace
NAMESPACE_METHODS: List[str] = [
    "personal_sign",
    "eth_accounts",
    "eth_chainId",
    "wallet_switchEthereumChain",
    "eth_sendTransaction",
    "eth_signTypedData",
    "eth_signTypedData_v4",
    "eth_call",
    "eth_estimateGas",
]

# Methods a client may relay through /pairing/request
ALLOWED_REQUEST_METHODS = frozenset({
    "eth_sendTransaction",
    "eth_call",
    "eth_sign",
    "personal_sign",
    "eth_signTypedData",
    "eth_signTypedData_v4",
    "wallet_switchEthereumChain",
    "eth_estimateGas",
    "eth_getBalance",
})

VALUE_TRANSFER_METHODS = frozenset({"eth_sendTransaction"})

SWITCH_CHAIN_METHOD = "wallet_switchEthereumChain"


def build_session(payload: Any, preferred_chain_ref: Optional[str]) -> Optional[WalletSession]:
    """Turn an approval payload ``{topic, namespaces}`` into a session; None without a topic."""
    if not isinstance(payload, Mapping):
        return None
    topic = payload.get("topic")
    if not isinstance(topic, str) or not topic:
        return None
    namespace = evm_namespace(payload.get("namespaces"))
    accounts = parse_accounts(namespace.get("accounts"))
    return WalletSession(
        topic=topic,
        accounts=accounts,
        chains=connected_chains(namespace, accounts),
        active=reconcile(namespace, preferred_chain_ref),
    )


class SessionLifecycleManager:
    """
    Pairing creation, approval tracking, status polling and session requests.

    Args:
        client: wallet-protocol client (connect / request / notifications)
        store: pairing table; its TTL is the pairing lifetime
        default_chain_ref: chain requested when the caller names none
        request_timeout: ceiling in seconds for any single wallet round trip
        uri_wait: how long one connect call may take to yield a URI
        retry_delay: pause before the one retry of a connect without URI
    """

    def __init__(
        self,
        client: "WalletProtocolClient",
        store: PairingStore,
        *,
        default_chain_ref: str = "eip155:1",
        request_timeout: float = 120.0,
        uri_wait: float = 8.0,
        retry_delay: float = 1.5,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.client = client
        self.store = store
        self.default_chain_ref = default_chain_ref if is_supported_chain_ref(default_chain_ref) else "eip155:1"
        self.request_timeout = request_timeout
        self.uri_wait = uri_wait
        self.retry_delay = retry_delay
        self._id_factory = id_factory
        self._listener: Optional[asyncio.Task] = None
        self._approvals: Set[asyncio.Task] = set()
        store.add_eviction_listener(self._on_evicted)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, sweep_interval: float = 60) -> None:
        """Start the TTL sweeper and the single notification subscription."""
        self.store.start_sweeper(sweep_interval)
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._consume_notifications())

    async def stop(self) -> None:
        await self.store.stop_sweeper()
        tasks = list(self._approvals)
        if self._listener is not None:
            tasks.append(self._listener)
            self._listener = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._approvals.clear()

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    def select_chains(self, preferred_chains: Optional[Iterable[str]]) -> List[str]:
        """Supported chains from the caller's list, or just the default chain."""
        chains = [c.strip() for c in (preferred_chains or []) if isinstance(c, str) and is_supported_chain_ref(c.strip())]
        chains = list(dict.fromkeys(chains))
        return chains or [self.default_chain_ref]

    @staticmethod
    def namespaces_for(chains: List[str]) -> Dict[str, Any]:
        return {
            "eip155": {
                "methods": list(NAMESPACE_METHODS),
                "chains": list(chains),
                "events": [],
            }
        }

    async def create_pairing(self, preferred_chains: Optional[Iterable[str]] = None) -> PairingTicket:
        chains = self.select_chains(preferred_chains)
        result = await self._connect(self.namespaces_for(chains))

        attempt_id = self._id_factory()
        attempt = PairingAttempt(
            id=attempt_id,
            created_at=self.store.now(),
            preferred_chain_ref=chains[0],
            uri=clean_pairing_uri(result.uri),
        )
        self.store.put(attempt_id, attempt)

        task = asyncio.create_task(self._await_approval(attempt_id, result.approval))
        attempt.approval_handle = task
        self._approvals.add(task)
        task.add_done_callback(self._approvals.discard)

        logger.info("Pairing %s created for %s", attempt_id, ", ".join(chains))
        return PairingTicket(
            id=attempt_id,
            uri=attempt.uri,
            expires_at=self.store.expires_at(attempt),
            chain_ref=chains[0],
        )

    async def _connect(self, namespaces: Dict[str, Any]) -> "ConnectResult":
        for attempt in range(2):
            try:
                result = await asyncio.wait_for(self.client.connect(namespaces), timeout=self.uri_wait)
            except asyncio.TimeoutError:
                logger.warning("Wallet connect produced no URI within %.1fs (attempt %d)", self.uri_wait, attempt + 1)
                result = None
            except WalletBridgeError:
                raise
            except Exception as exc:
                logger.error("Wallet connect failed: %s", exc)
                raise ConnectError(f"Wallet connect failed: {exc}") from exc

            if result is not None and result.uri:
                return result
            if result is not None:
                _discard_awaitable(result.approval)
            if attempt == 0:
                await asyncio.sleep(self.retry_delay)

        raise ConnectError("Wallet protocol did not return a pairing URI")

    async def _await_approval(self, attempt_id: str, approval: Awaitable[Any]) -> None:
        try:
            payload = await approval
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self.store.delete(attempt_id) is not None:
                logger.warning("Pairing %s rejected: %s", attempt_id, exc)
            return

        attempt = self.store.get(attempt_id)
        if attempt is None:
            logger.info("Approval for pairing %s arrived after it was removed", attempt_id)
            return

        session = build_session(payload, attempt.preferred_chain_ref)
        if session is None:
            self.store.delete(attempt_id)
            logger.warning("Pairing %s approval payload has no session topic", attempt_id)
            return

        if self.store.assign_session(attempt_id, session):
            logger.info(
                "Pairing %s approved: topic=%s chains=%s picked=%s %s",
                attempt_id, session.topic, list(session.chains),
                session.active.chain_ref, session.active.address,
            )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, attempt_id: Optional[str]) -> PairingStatusResult:
        attempt = self.store.get(attempt_id) if attempt_id else None
        if attempt is None:
            return PairingStatusResult(PairingStatus.NOT_FOUND)

        session = attempt.session
        if session is not None:
            return PairingStatusResult(PairingStatus.APPROVED, session)

        if self.store.is_expired(attempt):
            self._remove(attempt_id)
            logger.info("Pairing %s expired without approval", attempt_id)
            return PairingStatusResult(PairingStatus.EXPIRED)

        return PairingStatusResult(PairingStatus.PENDING)

    def get_session(self, topic: str) -> WalletSession:
        return self._approved(topic).session

    def _approved(self, topic: Optional[str]) -> PairingAttempt:
        attempt = self.store.find_by_topic(topic) if topic else None
        if attempt is None:
            raise SessionNotFound("Session not found or not approved", {"topic": topic})
        return attempt

    # ------------------------------------------------------------------
    # Wallet requests
    # ------------------------------------------------------------------

    async def switch_network(self, topic: str, target_chain_ref: str) -> WalletSession:
        attempt = self._approved(topic)
        target_id = parse_chain_ref(target_chain_ref)
        if target_id is None or not is_supported_chain_ref(target_chain_ref):
            raise InvalidInput("Unsupported chainRef", {"chainRef": target_chain_ref})

        before = attempt.session
        await self._bounded(
            self.client.request(
                topic,
                before.active.chain_ref,
                SWITCH_CHAIN_METHOD,
                [{"chainId": to_hex_chain_id(target_id)}],
            ),
            SWITCH_CHAIN_METHOD,
        )

        attempt = self._approved(topic)
        attempt.preferred_chain_ref = target_chain_ref
        current = attempt.session
        if current.version != before.version:
            # the wallet reported its own state while we waited
            logger.info("Switch of %s to %s superseded by wallet update", topic, target_chain_ref)
            return current

        address = next(
            (a.address for a in current.accounts if a.chain_id == target_id),
            current.active.address,
        )
        updated = current.with_active(
            ActiveAccount(
                chain_ref=target_chain_ref,
                chain_id=target_id,
                address=address,
                all_addresses=current.active.all_addresses,
            ),
            ChainSource.OPTIMISTIC,
        )
        self.store.replace_session(attempt.id, updated)
        logger.info("Session %s switched to %s (%s)", topic, target_chain_ref, chain_name(target_id))
        return updated

    async def dispatch_request(
        self,
        topic: str,
        method: str,
        params: Any,
        chain_ref: Optional[str] = None,
    ) -> Any:
        if not isinstance(method, str) or method not in ALLOWED_REQUEST_METHODS:
            raise MethodNotAllowed("Method not allowed or invalid", {"method": method})
        if not isinstance(params, list):
            raise InvalidInput("Invalid 'params' (must be an array)", {"field": "params"})
        if chain_ref is not None and parse_chain_ref(chain_ref) is None:
            raise InvalidInput("Invalid chainRef", {"chainRef": chain_ref})

        session = self._approved(topic).session
        if method in VALUE_TRANSFER_METHODS:
            params = self._bind_sender(session, params)

        effective_chain = chain_ref or session.active.chain_ref
        return await self._bounded(self.client.request(topic, effective_chain, method, params), method)

    @staticmethod
    def _bind_sender(session: WalletSession, params: List[Any]) -> List[Any]:
        """Fill or check ``from`` so a caller can only send as the session's address."""
        if not params or not isinstance(params[0], Mapping):
            raise InvalidInput("eth_sendTransaction expects params[0] tx object", {"field": "params"})
        tx = dict(params[0])
        sender = tx.get("from")
        if sender is None or sender == "":
            if not session.address:
                raise AddressMismatch("Session has no active address to send from")
            tx["from"] = session.address
        elif not isinstance(sender, str):
            raise InvalidInput("Invalid 'from' field in tx", {"field": "from"})
        elif not same_address(sender, session.address):
            raise AddressMismatch(
                "Transaction 'from' must match session address",
                {"from": sender, "sessionAddress": session.address},
            )
        return [tx, *params[1:]]

    async def _bounded(self, call: Awaitable[Any], method: str) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Wallet request %s timed out after %.0fs", method, self.request_timeout)
            raise RequestTimeout(f"Wallet request {method} timed out", {"method": method}) from exc
        except WalletBridgeError:
            raise
        except Exception as exc:
            raise WalletRequestFailed(f"Wallet request {method} failed: {exc}", {"method": method}) from exc

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def handle_notification(self, notification: WalletNotification) -> None:
        attempt = self.store.find_by_topic(notification.topic)
        if attempt is None:
            logger.debug("Ignoring %s for unknown topic %s", notification.kind.value, notification.topic)
            return

        if notification.kind is NotificationKind.SESSION_DELETE:
            self._remove(attempt.id)
            logger.info("Session %s disconnected by wallet; pairing %s removed", notification.topic, attempt.id)
            return

        namespace = notification.namespace
        if not namespace:
            return
        current = attempt.session
        accounts = parse_accounts(namespace.get("accounts"))
        updated = replace(
            current,
            accounts=accounts,
            chains=connected_chains(namespace, accounts),
            active=reconcile(namespace, attempt.preferred_chain_ref),
            version=current.version + 1,
            source=ChainSource.WALLET,
        )
        self.store.replace_session(attempt.id, updated)
        logger.info(
            "Session %s updated by wallet: %s %s",
            notification.topic, updated.active.chain_ref, updated.active.address,
        )

    async def _consume_notifications(self) -> None:
        retry_delay = 1
        while True:
            try:
                async for notification in self.client.notifications():
                    retry_delay = 1
                    self.handle_notification(notification)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Wallet notification stream failed: %s", exc)
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * 2, 60)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def _remove(self, attempt_id: str) -> None:
        attempt = self.store.delete(attempt_id)
        if attempt is not None:
            self._on_evicted(attempt)

    @staticmethod
    def _on_evicted(attempt: PairingAttempt) -> None:
        handle = attempt.approval_handle
        if handle is not None and not handle.done():
            handle.cancel()


def _discard_awaitable(approval: Awaitable[Any]) -> None:
    if isinstance(approval, asyncio.Future):
        approval.cancel()
    elif asyncio.iscoroutine(approval):
        approval.close()
