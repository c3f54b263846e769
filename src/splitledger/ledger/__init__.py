"""Ledger arithmetic: split resolution, debt simplification and workflows."""

from .resolver import resolve, shares_by_participant, validate_split
from .service import LedgerService
from .simplifier import (
    balances_from_mapping,
    describe_transfers,
    plan_settlement,
    settlement_residual,
    simplify,
)

__all__ = [
    "resolve",
    "shares_by_participant",
    "validate_split",
    "LedgerService",
    "balances_from_mapping",
    "describe_transfers",
    "plan_settlement",
    "settlement_residual",
    "simplify",
]
