"""Pydantic domain models for SplitLedger."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Member ids are ints in the ledger store; the engine accepts any hashable label
ParticipantId = int | str

# ============================================================================
# Engine Models
# ============================================================================


class SplitPolicy(str, Enum):
    """How an expense total is divided among its participants."""

    EQUAL = "EQUAL"
    EXACT = "EXACT"
    PERCENTAGE = "PERCENTAGE"


class ParticipantInput(BaseModel):
    """One participant of a split, as supplied by the caller.

    ``value`` is ignored for EQUAL, an amount for EXACT and a percentage
    (0-100) for PERCENTAGE. It is left as the caller's raw number; the
    resolver converts and validates it.
    """

    model_config = ConfigDict(frozen=True)

    participant_id: ParticipantId
    value: Decimal | int | str | float | None = None


class ResolvedShare(BaseModel):
    """A participant's exact share of an expense."""

    model_config = ConfigDict(frozen=True)

    participant_id: ParticipantId
    amount: Decimal


class NetBalance(BaseModel):
    """A participant's net position: positive = is owed, negative = owes."""

    model_config = ConfigDict(frozen=True)

    participant_id: ParticipantId
    balance: Decimal


class Transfer(BaseModel):
    """A suggested payment from a debtor to a creditor."""

    model_config = ConfigDict(frozen=True)

    from_participant_id: ParticipantId
    to_participant_id: ParticipantId
    amount: Decimal


class SettlementPlan(BaseModel):
    """Simplified transfers plus whatever the transfers could not settle.

    For a consistent ledger ``residual`` is zero and ``unsettled`` is empty.
    """

    model_config = ConfigDict(frozen=True)

    transfers: list[Transfer]
    residual: Decimal
    unsettled: list[NetBalance] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True when the transfers zero out every balance."""
        return not self.unsettled


# ============================================================================
# Ledger Models
# ============================================================================


class Group(BaseModel):
    """A group of members sharing expenses."""

    id: int
    name: str
    created_at: datetime = Field(default_factory=datetime.now)


class Member(BaseModel):
    """A group member and their running balance."""

    id: int
    group_id: int
    name: str
    balance: Decimal = Decimal("0.00")


class ExpenseShare(BaseModel):
    """A stored share of an expense."""

    member_id: int
    amount: Decimal


class Expense(BaseModel):
    """A recorded expense with its resolved shares."""

    id: int
    group_id: int
    payer_id: int
    amount: Decimal
    description: str
    split_policy: SplitPolicy
    shares: list[ExpenseShare] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class Settlement(BaseModel):
    """A recorded payment between two members."""

    id: int
    group_id: int
    from_member_id: int
    to_member_id: int
    amount: Decimal
    created_at: datetime = Field(default_factory=datetime.now)


class BalanceSummary(BaseModel):
    """Current balances of a group with settlement suggestions."""

    group_id: int
    members: list[Member]
    transfers: list[Transfer]
    residual: Decimal = Decimal("0.00")

    def member_name(self, member_id: int) -> str:
        """Look up a member's name, falling back to 'Unknown'."""
        for member in self.members:
            if member.id == member_id:
                return member.name
        return "Unknown"
