"""
Billing Module

Paid game actions: a client quotes an action, pays the treasury from its
wallet session, then completes the action with the payment hash.

Usage:
    from app.core.billing import BillingDispatcher, PaymentVerifier, load_actions

    dispatcher = BillingDispatcher(
        actions=load_actions({"land": "0.0005"}),
        verifier=PaymentVerifier(reader),
        contracts=contracts,
        treasury_address="0x...",
    )
    quote = dispatcher.quote("LAND_NFT_MINT")
    result = await dispatcher.complete("LAND_NFT_MINT", tx_hash, player, {"tokenId": 7})
"""

from .actions import (
    ACTION_DEFINITIONS,
    BillingAction,
    ContractKind,
    Operation,
    load_actions,
    load_actions_from_settings,
)
from .ledger import ConsumedPayments
from .verifier import PaymentVerifier, VerifiedPayment
from .dispatcher import (
    ActionDetails,
    BillingDispatcher,
    CompletionResult,
    Quote,
    validate_details,
)

__all__ = [
    "ACTION_DEFINITIONS",
    "BillingAction",
    "ContractKind",
    "Operation",
    "load_actions",
    "load_actions_from_settings",
    "ConsumedPayments",
    "PaymentVerifier",
    "VerifiedPayment",
    "ActionDetails",
    "BillingDispatcher",
    "CompletionResult",
    "Quote",
    "validate_details",
]
