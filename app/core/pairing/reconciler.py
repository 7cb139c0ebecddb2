"""
Pick the active account of a wallet session from its approval payload.

Wallets report accounts as ``namespace:chainId:address`` strings plus a
list of connected chain references. The order and consistency of both
lists is wallet-controlled, so selection follows a fixed tie-break:

1. an account on the preferred chain,
2. the preferred chain, if listed as connected, with the first account's address,
3. the first account (the first on a connected chain when chains are listed),
4. the first connected chain with an empty address.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from app.core.chains import parse_chain_ref
from app.core.chains.registry import EIP155, chain_ref

from .models import ActiveAccount, ParsedAccount

logger = logging.getLogger(__name__)

DEFAULT_CHAIN_REF = chain_ref(1)


def parse_account(raw: Any) -> Optional[ParsedAccount]:
    """Parse one CAIP-10 account string; ``None`` when malformed."""

    if not isinstance(raw, str):
        return None
    parts = raw.strip().split(":")
    if len(parts) != 3:
        return None
    namespace, raw_chain_id, address = parts
    if not namespace or not raw_chain_id.isdigit() or not address:
        return None
    chain_id = int(raw_chain_id)
    if chain_id <= 0:
        return None
    return ParsedAccount(namespace=namespace, chain_id=chain_id, address=address)


def parse_accounts(raw_accounts: Any) -> Tuple[ParsedAccount, ...]:
    if not isinstance(raw_accounts, (list, tuple)):
        return ()
    parsed: List[ParsedAccount] = []
    for raw in raw_accounts:
        account = parse_account(raw)
        if account is None:
            logger.debug("Skipping malformed wallet account %r", raw)
            continue
        parsed.append(account)
    return tuple(parsed)


def connected_chains(namespace: Mapping[str, Any], accounts: Iterable[ParsedAccount]) -> Tuple[str, ...]:
    """Chains the wallet says are connected, or the ones its accounts imply."""

    raw_chains = namespace.get("chains") if isinstance(namespace, Mapping) else None
    chains: List[str] = []
    if isinstance(raw_chains, (list, tuple)):
        chains = [c.strip() for c in raw_chains if isinstance(c, str) and c.strip()]
    if not chains:
        chains = [account.chain_ref for account in accounts]
    return tuple(dict.fromkeys(chains))


def _unique_addresses(accounts: Iterable[ParsedAccount]) -> Tuple[str, ...]:
    seen = {}
    for account in accounts:
        seen.setdefault(account.address.lower(), account.address)
    return tuple(seen.values())


def reconcile(
    namespace: Optional[Mapping[str, Any]],
    preferred_chain_ref: Optional[str] = None,
) -> ActiveAccount:
    """Deterministically choose the active (chain, address) of a session.

    ``namespace`` is the wallet's EVM namespace (``accounts`` and
    ``chains``); missing or malformed entries are tolerated.
    """

    namespace = namespace if isinstance(namespace, Mapping) else {}
    accounts = parse_accounts(namespace.get("accounts"))
    chains = connected_chains(namespace, accounts)
    all_addresses = _unique_addresses(accounts)
    preferred_id = parse_chain_ref(preferred_chain_ref)

    if preferred_id is not None:
        for account in accounts:
            if account.chain_id == preferred_id:
                return ActiveAccount(
                    chain_ref=chain_ref(preferred_id),
                    chain_id=preferred_id,
                    address=account.address,
                    all_addresses=all_addresses,
                )
        if accounts and chain_ref(preferred_id) in chains:
            return ActiveAccount(
                chain_ref=chain_ref(preferred_id),
                chain_id=preferred_id,
                address=accounts[0].address,
                all_addresses=all_addresses,
            )

    if accounts:
        picked = accounts[0]
        if chains and picked.chain_ref not in chains:
            picked = next((a for a in accounts if a.chain_ref in chains), picked)
        return ActiveAccount(
            chain_ref=picked.chain_ref,
            chain_id=picked.chain_id,
            address=picked.address,
            all_addresses=all_addresses,
        )

    first_chain = chains[0] if chains else DEFAULT_CHAIN_REF
    return ActiveAccount(
        chain_ref=first_chain,
        chain_id=parse_chain_ref(first_chain) or 0,
        address="",
        all_addresses=(),
    )


def evm_namespace(namespaces: Any) -> Mapping[str, Any]:
    """Extract the ``eip155`` entry of a wallet ``namespaces`` mapping."""

    if not isinstance(namespaces, Mapping):
        return {}
    ns = namespaces.get(EIP155)
    return ns if isinstance(ns, Mapping) else {}


__all__ = [
    "parse_account",
    "parse_accounts",
    "connected_chains",
    "reconcile",
    "evm_namespace",
]
