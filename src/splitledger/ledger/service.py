"""Service layer that runs ledger workflows against the database.

Each workflow validates first, then applies all balance changes in a
single transaction: an expense either lands completely (record, shares,
payer credit, participant debits) or not at all.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal

from ..db import Database
from ..exceptions import (
    InvalidAmountError,
    NotAGroupMemberError,
    SelfSettlementError,
    ValidationError,
)
from ..models import (
    BalanceSummary,
    Expense,
    Group,
    Member,
    NetBalance,
    ParticipantInput,
    Settlement,
    SplitPolicy,
)
from .money import is_whole_cents, sum_money, to_decimal
from .resolver import resolve
from .simplifier import plan_settlement

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for recording expenses and settlements in a group ledger."""

    def __init__(self, database: Database):
        """Initialize the ledger service."""
        self.db = database

    # ========================================================================
    # Groups and members
    # ========================================================================

    def create_group(self, name: str, member_names: Sequence[str] = ()) -> Group:
        """Create a group, optionally with its initial members."""
        name = name.strip()
        if not name:
            raise ValidationError("Group name is required", rule="group_name")

        group = self.db.create_group(name)
        for member_name in member_names:
            self.add_member(group.id, member_name)

        logger.info(f"Created group {group.id} ({group.name})")
        return group

    def add_member(self, group_id: int, name: str) -> Member:
        """Add a member to a group with a zero balance."""
        name = name.strip()
        if not name:
            raise ValidationError("Member name is required", rule="member_name")

        member = self.db.add_member(group_id, name)
        logger.info(f"Added member {member.id} ({name}) to group {group_id}")
        return member

    def get_group(self, group_id: int) -> Group:
        """Get a group by id."""
        return self.db.get_group(group_id)

    def list_groups(self) -> list[Group]:
        """List all groups."""
        return self.db.list_groups()

    def list_members(self, group_id: int) -> list[Member]:
        """List the members of a group with their running balances."""
        self.db.get_group(group_id)
        return self.db.list_members(group_id)

    def get_member_by_name(self, group_id: int, name: str) -> Member:
        """Look up a group member by name."""
        return self.db.get_member_by_name(group_id, name)

    # ========================================================================
    # Expenses
    # ========================================================================

    def create_expense(
        self,
        group_id: int,
        payer_id: int,
        amount: Decimal | int | str | float,
        description: str,
        policy: SplitPolicy,
        participants: Sequence[ParticipantInput],
    ) -> Expense:
        """
        Record an expense and apply it to the running balances.

        The payer is credited the full amount and each participant is
        debited their resolved share, all in one transaction.

        Args:
            group_id: Group the expense belongs to
            payer_id: Member who paid
            amount: Expense total
            description: What the expense was for
            policy: How to split the total
            participants: Members sharing the expense

        Returns:
            The stored expense with its resolved shares

        Raises:
            ValidationError: If the split is invalid (nothing is written)
            NotAGroupMemberError: If payer or a participant isn't in the group
        """
        description = description.strip()
        if not description:
            raise ValidationError("Description is required", rule="description")

        member_ids = self._member_ids(group_id)
        self._require_member(group_id, member_ids, payer_id)
        for participant in participants:
            self._require_member(group_id, member_ids, participant.participant_id)

        shares = resolve(amount, policy, participants)
        policy = SplitPolicy(policy)
        total = sum_money(share.amount for share in shares)

        with self.db.transaction() as cursor:
            expense = self.db.insert_expense(
                cursor,
                group_id=group_id,
                payer_id=payer_id,
                amount=total,
                description=description,
                split_policy=policy,
                shares=shares,
            )

            # Payer is owed the full amount; each participant owes their share
            self.db.adjust_balance(cursor, payer_id, total)
            for share in shares:
                self.db.adjust_balance(cursor, int(share.participant_id), -share.amount)

        logger.info(
            f"Recorded expense {expense.id} in group {group_id}: "
            f"{total} paid by member {payer_id}, split {policy.value} "
            f"among {len(shares)}"
        )
        return expense

    def delete_expense(self, group_id: int, expense_id: int) -> Expense:
        """
        Delete an expense and reverse its effect on the running balances.

        Returns:
            The deleted expense

        Raises:
            ExpenseNotFoundError: If the expense isn't in the group
        """
        expense = self.db.get_expense(group_id, expense_id)

        with self.db.transaction() as cursor:
            self.db.adjust_balance(cursor, expense.payer_id, -expense.amount)
            for share in expense.shares:
                self.db.adjust_balance(cursor, share.member_id, share.amount)

            self.db.delete_expense(cursor, expense.id)

        logger.info(f"Deleted expense {expense_id} from group {group_id}")
        return expense

    def list_expenses(self, group_id: int) -> list[Expense]:
        """List a group's expenses, newest first."""
        self.db.get_group(group_id)
        return self.db.list_expenses(group_id)

    # ========================================================================
    # Balances and settlements
    # ========================================================================

    def get_balances(self, group_id: int) -> BalanceSummary:
        """
        Read current balances and suggest transfers that settle them.

        Returns:
            Balance summary with members, suggested transfers and residual
        """
        members = self.list_members(group_id)
        plan = plan_settlement(
            [NetBalance(participant_id=m.id, balance=m.balance) for m in members]
        )

        return BalanceSummary(
            group_id=group_id,
            members=members,
            transfers=plan.transfers,
            residual=plan.residual,
        )

    def record_settlement(
        self,
        group_id: int,
        from_member_id: int,
        to_member_id: int,
        amount: Decimal | int | str | float,
    ) -> Settlement:
        """
        Record a payment from one member to another.

        The payer's balance goes up (less debt) and the payee's goes down
        (less credit) by the paid amount, in one transaction.

        Raises:
            SelfSettlementError: If payer and payee are the same member
            InvalidAmountError: If the amount isn't positive whole cents
            NotAGroupMemberError: If either member isn't in the group
        """
        if from_member_id == to_member_id:
            raise SelfSettlementError()

        paid = to_decimal(amount)
        if paid <= 0:
            raise InvalidAmountError(f"Amount must be greater than 0, got {paid}")
        if not is_whole_cents(paid):
            raise InvalidAmountError(
                f"Amount must have at most 2 decimal places, got {paid}",
                rule="amount_format",
            )

        member_ids = self._member_ids(group_id)
        self._require_member(group_id, member_ids, from_member_id)
        self._require_member(group_id, member_ids, to_member_id)

        with self.db.transaction() as cursor:
            settlement = self.db.insert_settlement(
                cursor,
                group_id=group_id,
                from_member_id=from_member_id,
                to_member_id=to_member_id,
                amount=paid,
            )
            self.db.adjust_balance(cursor, from_member_id, paid)
            self.db.adjust_balance(cursor, to_member_id, -paid)

        logger.info(
            f"Recorded settlement {settlement.id} in group {group_id}: "
            f"member {from_member_id} paid member {to_member_id} {paid}"
        )
        return settlement

    def list_settlements(self, group_id: int) -> list[Settlement]:
        """List a group's recorded settlements, newest first."""
        self.db.get_group(group_id)
        return self.db.list_settlements(group_id)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _member_ids(self, group_id: int) -> set[int]:
        return {member.id for member in self.list_members(group_id)}

    @staticmethod
    def _require_member(group_id: int, member_ids: set[int], member_id) -> None:
        if member_id not in member_ids:
            raise NotAGroupMemberError(group_id, member_id)
