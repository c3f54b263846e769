"""Custom exceptions for SplitLedger."""

from decimal import Decimal


class SplitLedgerError(Exception):
    """Base exception for all SplitLedger errors."""

    pass


class ConfigurationError(SplitLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


# ============================================================================
# Validation errors (split input)
# ============================================================================


class ValidationError(SplitLedgerError):
    """Raised when expense or settlement input breaks a validation rule.

    The message is meant to be shown to the end user as-is. ``rule`` names
    the rule that was broken so callers can branch on it without parsing
    the message.
    """

    rule: str = "invalid_input"

    def __init__(self, message: str, rule: str | None = None):
        if rule is not None:
            self.rule = rule
        super().__init__(message)


class EmptyParticipantsError(ValidationError):
    """Raised when a split has no participants."""

    rule = "participants_required"

    def __init__(self, message: str | None = None):
        super().__init__(message or "At least one participant is required")


class InvalidAmountError(ValidationError):
    """Raised when an amount is not a positive, whole-cent decimal value."""

    rule = "amount_positive"


class DuplicateParticipantError(ValidationError):
    """Raised when the same participant appears more than once in a split."""

    rule = "participants_unique"

    def __init__(self, participant_ids: list, message: str | None = None):
        self.participant_ids = participant_ids
        duplicates = ", ".join(str(pid) for pid in participant_ids)
        super().__init__(
            message or f"Duplicate participants are not allowed: {duplicates}"
        )


class InvalidParticipantValueError(ValidationError):
    """Raised when a participant's exact amount or percentage is out of range."""

    rule = "participant_value"

    def __init__(self, participant_id, message: str):
        self.participant_id = participant_id
        super().__init__(message)


class SumMismatchError(ValidationError):
    """Raised when exact amounts or percentages don't add up to what they must."""

    def __init__(self, expected: Decimal, actual: Decimal, rule: str, message: str):
        self.expected = expected
        self.actual = actual
        super().__init__(message, rule=rule)


class SelfSettlementError(ValidationError):
    """Raised when a member tries to settle a debt with themselves."""

    rule = "settlement_parties"

    def __init__(self, message: str | None = None):
        super().__init__(message or "Cannot settle with yourself")


class RoundingError(SplitLedgerError):
    """Raised when resolved shares don't add up to the expense total."""

    pass


# ============================================================================
# Ledger errors (store / service lookups)
# ============================================================================


class LedgerError(SplitLedgerError):
    """Base class for ledger store and workflow errors."""

    pass


class GroupNotFoundError(LedgerError):
    """Raised when a group doesn't exist."""

    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"Group {group_id} not found")


class MemberNotFoundError(LedgerError):
    """Raised when a member can't be found in a group."""

    pass


class MemberAlreadyExistsError(LedgerError):
    """Raised when adding a member whose name is already taken in the group."""

    def __init__(self, group_id: int, name: str):
        self.group_id = group_id
        self.name = name
        super().__init__(f"{name} is already a member of group {group_id}")


class NotAGroupMemberError(LedgerError):
    """Raised when an expense or settlement references a non-member."""

    def __init__(self, group_id: int, member_id: int):
        self.group_id = group_id
        self.member_id = member_id
        super().__init__(f"Member {member_id} is not a member of group {group_id}")


class ExpenseNotFoundError(LedgerError):
    """Raised when an expense doesn't exist in the given group."""

    def __init__(self, group_id: int, expense_id: int):
        self.group_id = group_id
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found in group {group_id}")
