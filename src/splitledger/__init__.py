"""SplitLedger - Split shared expenses exactly and settle debts in few payments."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .models import (
    NetBalance,
    ParticipantInput,
    ResolvedShare,
    SettlementPlan,
    SplitPolicy,
    Transfer,
)
from .ledger.resolver import resolve
from .ledger.service import LedgerService
from .ledger.simplifier import plan_settlement, simplify

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "NetBalance",
    "ParticipantInput",
    "ResolvedShare",
    "SettlementPlan",
    "SplitPolicy",
    "Transfer",
    "resolve",
    "LedgerService",
    "plan_settlement",
    "simplify",
]
