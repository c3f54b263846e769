"""Split resolution: turn an expense total and split policy into exact shares.

Every resolution is all-or-nothing. Input is validated up front, the
shares are computed in Decimal, and the result is checked to add up to
the total to the cent before it is returned.
"""

import logging
from collections import Counter
from collections.abc import Sequence
from decimal import Decimal

from ..exceptions import (
    DuplicateParticipantError,
    EmptyParticipantsError,
    InvalidAmountError,
    InvalidParticipantValueError,
    RoundingError,
    SumMismatchError,
    ValidationError,
)
from ..models import ParticipantId, ParticipantInput, ResolvedShare, SplitPolicy
from .money import (
    CENT,
    SPLIT_TOLERANCE,
    floor_cents,
    is_whole_cents,
    round_cents,
    sum_money,
    to_decimal,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def resolve(
    total_amount: Decimal | int | str | float,
    policy: SplitPolicy,
    participants: Sequence[ParticipantInput],
) -> list[ResolvedShare]:
    """
    Resolve an expense into exact per-participant shares.

    Participant order is significant: output follows input order and any
    rounding remainder lands on the first participant.

    Args:
        total_amount: Expense total (positive, whole cents)
        policy: How to divide the total
        participants: Who shares the expense, with per-policy values

    Returns:
        One ResolvedShare per participant, summing exactly to total_amount

    Raises:
        ValidationError: If the input breaks a split rule (see subclasses)
        RoundingError: If the computed shares fail the sum check
    """
    policy = _check_policy(policy)
    total, values = _validate(total_amount, policy, participants)

    match policy:
        case SplitPolicy.EQUAL:
            amounts = _resolve_equal(total, len(participants))
        case SplitPolicy.EXACT:
            amounts = _resolve_exact(total, values)
        case SplitPolicy.PERCENTAGE:
            amounts = _resolve_percentage(total, values)

    shares = [
        ResolvedShare(participant_id=p.participant_id, amount=amount)
        for p, amount in zip(participants, amounts)
    ]
    _verify_shares(total, shares)
    return shares


def validate_split(
    total_amount: Decimal | int | str | float,
    policy: SplitPolicy,
    participants: Sequence[ParticipantInput],
) -> list[str]:
    """
    Collect every rule violation without raising.

    Returns:
        Human-readable error messages (empty if the split is valid)
    """
    errors: list[str] = []

    checks = [
        lambda: _check_participants(participants),
        lambda: _check_total(total_amount),
        lambda: _check_unique(participants),
    ]
    for check in checks:
        try:
            check()
        except ValidationError as e:
            errors.append(str(e))

    if not errors:
        try:
            _validate(total_amount, _check_policy(policy), participants)
        except ValidationError as e:
            errors.append(str(e))

    return errors


def shares_by_participant(
    shares: Sequence[ResolvedShare],
) -> dict[ParticipantId, Decimal]:
    """Map participant id to share amount, in share order."""
    return {share.participant_id: share.amount for share in shares}


# ============================================================================
# Validation
# ============================================================================


def _check_policy(policy) -> SplitPolicy:
    try:
        return SplitPolicy(policy)
    except ValueError as e:
        raise ValidationError(
            f"Unknown split policy: {policy!r}", rule="split_policy"
        ) from e


def _check_participants(participants: Sequence[ParticipantInput]) -> None:
    if not participants:
        raise EmptyParticipantsError()


def _check_total(total_amount) -> Decimal:
    total = to_decimal(total_amount)
    if total <= 0:
        raise InvalidAmountError(f"Amount must be greater than 0, got {total}")
    if not is_whole_cents(total):
        raise InvalidAmountError(
            f"Amount must have at most 2 decimal places, got {total}",
            rule="amount_format",
        )
    return total.quantize(CENT)


def _check_unique(participants: Sequence[ParticipantInput]) -> None:
    counts = Counter(p.participant_id for p in participants)
    duplicates = [pid for pid, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateParticipantError(duplicates)


def _participant_value(participant: ParticipantInput, label: str) -> Decimal:
    if participant.value is None:
        raise InvalidParticipantValueError(
            participant.participant_id,
            f"Missing {label} for participant {participant.participant_id}",
        )
    try:
        return to_decimal(participant.value, field=label)
    except InvalidAmountError as e:
        raise InvalidParticipantValueError(
            participant.participant_id,
            f"Invalid {label} for participant {participant.participant_id}: "
            f"{participant.value!r}",
        ) from e


def _validate(
    total_amount, policy: SplitPolicy, participants: Sequence[ParticipantInput]
) -> tuple[Decimal, list[Decimal]]:
    """Validate a split and return the total and per-participant values."""
    _check_participants(participants)
    total = _check_total(total_amount)
    _check_unique(participants)

    values: list[Decimal] = []

    if policy is SplitPolicy.EXACT:
        for p in participants:
            value = _participant_value(p, "exact amount")
            if value < 0:
                raise InvalidParticipantValueError(
                    p.participant_id,
                    f"Invalid exact amount for participant {p.participant_id}: "
                    f"{value} (must be 0 or more)",
                )
            values.append(value)

        actual = sum_money(values)
        if abs(actual - total) > SPLIT_TOLERANCE:
            raise SumMismatchError(
                expected=total,
                actual=actual,
                rule="exact_sum",
                message=f"Exact split amounts ({actual}) don't equal total ({total})",
            )

    elif policy is SplitPolicy.PERCENTAGE:
        for p in participants:
            value = _participant_value(p, "percentage")
            if value < 0 or value > HUNDRED:
                raise InvalidParticipantValueError(
                    p.participant_id,
                    f"Invalid percentage for participant {p.participant_id}: "
                    f"{value} (must be between 0 and 100)",
                )
            values.append(value)

        actual = sum_money(values)
        if abs(actual - HUNDRED) > SPLIT_TOLERANCE:
            raise SumMismatchError(
                expected=HUNDRED,
                actual=actual,
                rule="percentage_sum",
                message=f"Percentages must sum to 100, got {actual}",
            )

    return total, values


# ============================================================================
# Policies
# ============================================================================


def _resolve_equal(total: Decimal, count: int) -> list[Decimal]:
    """Everyone gets total/count floored to cents; the first gets the rest."""
    base = floor_cents(total / count)
    remainder = total - base * count

    amounts = [base] * count
    amounts[0] = base + remainder

    if remainder:
        logger.debug(f"Equal split remainder {remainder} assigned to first participant")

    return amounts


def _resolve_exact(total: Decimal, values: list[Decimal]) -> list[Decimal]:
    """Use the supplied amounts rounded to cents; rounding noise is absorbed."""
    amounts = [round_cents(value) for value in values]
    return _absorb_remainder(amounts, total - sum_money(amounts), "Exact")


def _resolve_percentage(total: Decimal, values: list[Decimal]) -> list[Decimal]:
    """Floor each percentage share to cents; the remainder is absorbed."""
    amounts = [floor_cents(total * value / HUNDRED) for value in values]
    return _absorb_remainder(amounts, total - sum_money(amounts), "Percentage")


def _absorb_remainder(
    amounts: list[Decimal], remainder: Decimal, policy: str
) -> list[Decimal]:
    """
    Fold a rounding remainder back into the shares.

    A positive remainder goes to the first participant. A negative one
    (values overshooting the total inside the tolerance) is taken from
    shares in input order, never pushing a share below zero.
    """
    if not remainder:
        return amounts

    if remainder > 0:
        amounts[0] += remainder
        logger.debug(
            f"{policy} split remainder {remainder} assigned to first participant"
        )
        return amounts

    excess = -remainder
    for idx, amount in enumerate(amounts):
        taken = min(amount, excess)
        amounts[idx] = amount - taken
        excess -= taken
        if not excess:
            break

    logger.debug(f"{policy} split overshoot {-remainder} taken from leading shares")
    return amounts


def _verify_shares(total: Decimal, shares: list[ResolvedShare]) -> None:
    """Final check: shares are non-negative and add up to the total exactly."""
    negative = [s for s in shares if s.amount < 0]
    if negative:
        raise RoundingError(
            f"Resolved share for participant {negative[0].participant_id} "
            f"is negative ({negative[0].amount})"
        )

    actual = sum_money(s.amount for s in shares)
    if actual != total:
        raise RoundingError(
            f"Resolved shares don't add up to the total:\n"
            f"  Expected: {total}\n"
            f"  Actual:   {actual}\n"
            f"  Residual: {total - actual}"
        )
