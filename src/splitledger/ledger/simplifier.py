"""Debt simplification: collapse net balances into a short list of transfers.

Greedy matching of the largest creditor against the largest debtor:

1. Split balances into creditors (positive) and debtors (negative, kept as
   their absolute value); zero balances are dropped
2. Sort both lists by amount, largest first (stable, so ties keep input order)
3. Transfer min(credit, debt) from the current debtor to the current creditor
4. Move past whoever reached zero and repeat until one side runs out

Example:
    A: -8, B: +5, C: +3  ->  A pays B 5, A pays C 3
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal

from ..models import NetBalance, ParticipantId, SettlementPlan, Transfer
from .money import ZERO, format_money, round_cents, sum_money

logger = logging.getLogger(__name__)


def simplify(balances: Sequence[NetBalance]) -> list[Transfer]:
    """
    Produce transfers that settle the given balances.

    Never raises. If the balances don't sum to zero the surplus on one side
    is simply left unmatched; use plan_settlement() to see it.

    Args:
        balances: Net balances (positive = is owed, negative = owes)

    Returns:
        Transfers in the order they were matched
    """
    transfers, _, _ = _match(balances)
    return transfers


def plan_settlement(balances: Sequence[NetBalance]) -> SettlementPlan:
    """
    Simplify balances and report anything the transfers leave unsettled.

    Returns:
        SettlementPlan with the transfers, the net residual of the input,
        and the leftover balance of every participant not fully settled
    """
    transfers, creditors, debtors = _match(balances)

    unsettled = [
        NetBalance(participant_id=pid, balance=amount)
        for pid, amount in creditors
        if amount > 0
    ] + [
        NetBalance(participant_id=pid, balance=-amount)
        for pid, amount in debtors
        if amount > 0
    ]

    residual = settlement_residual(balances)
    if residual:
        logger.warning(
            f"Balances don't net to zero (residual {residual}); "
            f"{len(unsettled)} participant(s) left unsettled"
        )

    return SettlementPlan(transfers=transfers, residual=residual, unsettled=unsettled)


def settlement_residual(balances: Sequence[NetBalance]) -> Decimal:
    """Signed sum of all balances; zero for a consistent ledger."""
    return sum_money(b.balance for b in balances)


def balances_from_mapping(
    mapping: Mapping[ParticipantId, Decimal],
) -> list[NetBalance]:
    """Build NetBalance inputs from a {participant: balance} mapping."""
    return [
        NetBalance(participant_id=pid, balance=balance)
        for pid, balance in mapping.items()
    ]


def describe_transfers(
    transfers: Sequence[Transfer],
    names: Mapping[ParticipantId, str] | None = None,
    symbol: str = "$",
) -> list[str]:
    """Render transfers as 'Alice pays Bob $5.00' lines."""
    names = names or {}

    def name(pid: ParticipantId) -> str:
        return names.get(pid, str(pid))

    return [
        f"{name(t.from_participant_id)} pays {name(t.to_participant_id)} "
        f"{format_money(t.amount, symbol)}"
        for t in transfers
    ]


def _match(
    balances: Sequence[NetBalance],
) -> tuple[
    list[Transfer],
    list[tuple[ParticipantId, Decimal]],
    list[tuple[ParticipantId, Decimal]],
]:
    """Run the greedy matching on working copies of the balances.

    Returns the transfers plus the creditor and debtor lists with their
    remaining (unmatched) amounts.
    """
    creditors: list[tuple[ParticipantId, Decimal]] = []
    debtors: list[tuple[ParticipantId, Decimal]] = []

    # Matching works in whole cents
    for b in balances:
        balance = round_cents(b.balance)
        if balance > 0:
            creditors.append((b.participant_id, balance))
        elif balance < 0:
            debtors.append((b.participant_id, -balance))

    # sorted() is stable: equal amounts keep their input order
    creditors = sorted(creditors, key=lambda entry: entry[1], reverse=True)
    debtors = sorted(debtors, key=lambda entry: entry[1], reverse=True)

    transfers: list[Transfer] = []
    c_idx = 0
    d_idx = 0

    while c_idx < len(creditors) and d_idx < len(debtors):
        creditor_id, credit = creditors[c_idx]
        debtor_id, debt = debtors[d_idx]

        amount = min(credit, debt)

        if amount > 0:
            transfers.append(
                Transfer(
                    from_participant_id=debtor_id,
                    to_participant_id=creditor_id,
                    amount=amount,
                )
            )

        credit -= amount
        debt -= amount
        creditors[c_idx] = (creditor_id, credit)
        debtors[d_idx] = (debtor_id, debt)

        if credit <= ZERO:
            c_idx += 1
        if debt <= ZERO:
            d_idx += 1

    return transfers, creditors, debtors
