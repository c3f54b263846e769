"""SQLite database operations for SplitLedger."""

import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .exceptions import (
    ExpenseNotFoundError,
    GroupNotFoundError,
    MemberAlreadyExistsError,
    MemberNotFoundError,
)
from .models import (
    Expense,
    ExpenseShare,
    Group,
    Member,
    ResolvedShare,
    Settlement,
    SplitPolicy,
)


class Database:
    """SQLite database manager for the running ledger.

    Money is stored as TEXT and read back as Decimal so no value ever
    passes through a float.
    """

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_groups (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Running per-member balance lives on the membership row
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                group_id INTEGER NOT NULL REFERENCES expense_groups(id),
                name TEXT NOT NULL,
                balance TEXT NOT NULL DEFAULT '0.00',
                UNIQUE (group_id, name)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                group_id INTEGER NOT NULL REFERENCES expense_groups(id),
                payer_id INTEGER NOT NULL REFERENCES members(id),
                amount TEXT NOT NULL,
                description TEXT NOT NULL,
                split_policy TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_shares (
                expense_id INTEGER NOT NULL
                    REFERENCES expenses(id) ON DELETE CASCADE,
                member_id INTEGER NOT NULL REFERENCES members(id),
                position INTEGER NOT NULL,
                amount TEXT NOT NULL,
                PRIMARY KEY (expense_id, member_id)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settlements (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                group_id INTEGER NOT NULL REFERENCES expense_groups(id),
                from_member_id INTEGER NOT NULL REFERENCES members(id),
                to_member_id INTEGER NOT NULL REFERENCES members(id),
                amount TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Run a block of writes atomically.

        Commits when the block finishes, rolls back if it raises.
        """
        cursor = self.conn.cursor()
        try:
            yield cursor
        except BaseException:
            self.conn.rollback()
            raise
        else:
            self.conn.commit()

    # ========================================================================
    # Group operations
    # ========================================================================

    def create_group(self, name: str, created_at: datetime | None = None) -> Group:
        """Insert a new group."""
        created_at = created_at or datetime.now()
        with self.transaction() as cursor:
            cursor.execute(
                "INSERT INTO expense_groups (name, created_at) VALUES (?, ?)",
                (name, created_at.isoformat()),
            )
            row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to insert group")
        return Group(id=row_id, name=name, created_at=created_at)

    def get_group(self, group_id: int) -> Group:
        """Get a group by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, created_at FROM expense_groups WHERE id = ?",
            (group_id,),
        )
        row = cursor.fetchone()
        if not row:
            raise GroupNotFoundError(group_id)

        return Group(
            id=row["id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def list_groups(self) -> list[Group]:
        """Get all groups, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, name, created_at FROM expense_groups ORDER BY id")
        return [
            Group(
                id=row["id"],
                name=row["name"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]

    # ========================================================================
    # Member operations
    # ========================================================================

    def add_member(self, group_id: int, name: str) -> Member:
        """Add a member with a zero balance."""
        self.get_group(group_id)
        try:
            with self.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO members (group_id, name, balance) VALUES (?, ?, ?)",
                    (group_id, name, "0.00"),
                )
                row_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise MemberAlreadyExistsError(group_id, name) from e
        if row_id is None:
            raise RuntimeError("Failed to insert member")
        return Member(id=row_id, group_id=group_id, name=name)

    def get_member(self, member_id: int) -> Member:
        """Get a member by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, group_id, name, balance FROM members WHERE id = ?",
            (member_id,),
        )
        row = cursor.fetchone()
        if not row:
            raise MemberNotFoundError(f"Member {member_id} not found")
        return _member_from_row(row)

    def get_member_by_name(self, group_id: int, name: str) -> Member:
        """Get a group member by name."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, name, balance FROM members
            WHERE group_id = ? AND name = ?
            """,
            (group_id, name),
        )
        row = cursor.fetchone()
        if not row:
            raise MemberNotFoundError(f"No member named {name!r} in group {group_id}")
        return _member_from_row(row)

    def list_members(self, group_id: int) -> list[Member]:
        """Get all members of a group in the order they joined."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, name, balance FROM members
            WHERE group_id = ?
            ORDER BY id
            """,
            (group_id,),
        )
        return [_member_from_row(row) for row in cursor.fetchall()]

    def adjust_balance(self, cursor: sqlite3.Cursor, member_id: int, delta: Decimal):
        """
        Add delta to a member's running balance.

        Must be called inside transaction() so it commits or rolls back
        together with the rest of the workflow.
        """
        cursor.execute("SELECT balance FROM members WHERE id = ?", (member_id,))
        row = cursor.fetchone()
        if not row:
            raise MemberNotFoundError(f"Member {member_id} not found")

        balance = Decimal(row["balance"]) + delta
        cursor.execute(
            "UPDATE members SET balance = ? WHERE id = ?",
            (str(balance), member_id),
        )

    # ========================================================================
    # Expense operations
    # ========================================================================

    def insert_expense(
        self,
        cursor: sqlite3.Cursor,
        group_id: int,
        payer_id: int,
        amount: Decimal,
        description: str,
        split_policy: SplitPolicy,
        shares: Sequence[ResolvedShare],
        created_at: datetime | None = None,
    ) -> Expense:
        """Insert an expense and its shares (inside a transaction)."""
        created_at = created_at or datetime.now()
        cursor.execute(
            """
            INSERT INTO expenses (
                group_id, payer_id, amount, description, split_policy, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                group_id,
                payer_id,
                str(amount),
                description,
                split_policy.value,
                created_at.isoformat(),
            ),
        )
        expense_id = cursor.lastrowid
        if expense_id is None:
            raise RuntimeError("Failed to insert expense")

        cursor.executemany(
            """
            INSERT INTO expense_shares (expense_id, member_id, position, amount)
            VALUES (?, ?, ?, ?)
            """,
            [
                (expense_id, share.participant_id, position, str(share.amount))
                for position, share in enumerate(shares)
            ],
        )

        return Expense(
            id=expense_id,
            group_id=group_id,
            payer_id=payer_id,
            amount=amount,
            description=description,
            split_policy=split_policy,
            shares=[
                ExpenseShare(member_id=share.participant_id, amount=share.amount)
                for share in shares
            ],
            created_at=created_at,
        )

    def get_expense(self, group_id: int, expense_id: int) -> Expense:
        """Get an expense with its shares."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, payer_id, amount, description, split_policy,
                   created_at
            FROM expenses
            WHERE id = ? AND group_id = ?
            """,
            (expense_id, group_id),
        )
        row = cursor.fetchone()
        if not row:
            raise ExpenseNotFoundError(group_id, expense_id)
        return self._expense_from_row(row)

    def list_expenses(self, group_id: int) -> list[Expense]:
        """Get all expenses of a group, newest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, payer_id, amount, description, split_policy,
                   created_at
            FROM expenses
            WHERE group_id = ?
            ORDER BY created_at DESC, id DESC
            """,
            (group_id,),
        )
        return [self._expense_from_row(row) for row in cursor.fetchall()]

    def delete_expense(self, cursor: sqlite3.Cursor, expense_id: int):
        """Delete an expense; its shares cascade (inside a transaction)."""
        cursor.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))

    def _expense_from_row(self, row: sqlite3.Row) -> Expense:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT member_id, amount FROM expense_shares
            WHERE expense_id = ?
            ORDER BY position
            """,
            (row["id"],),
        )
        shares = [
            ExpenseShare(member_id=share["member_id"], amount=Decimal(share["amount"]))
            for share in cursor.fetchall()
        ]

        return Expense(
            id=row["id"],
            group_id=row["group_id"],
            payer_id=row["payer_id"],
            amount=Decimal(row["amount"]),
            description=row["description"],
            split_policy=SplitPolicy(row["split_policy"]),
            shares=shares,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ========================================================================
    # Settlement operations
    # ========================================================================

    def insert_settlement(
        self,
        cursor: sqlite3.Cursor,
        group_id: int,
        from_member_id: int,
        to_member_id: int,
        amount: Decimal,
        created_at: datetime | None = None,
    ) -> Settlement:
        """Insert a settlement record (inside a transaction)."""
        created_at = created_at or datetime.now()
        cursor.execute(
            """
            INSERT INTO settlements (
                group_id, from_member_id, to_member_id, amount, created_at
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                group_id,
                from_member_id,
                to_member_id,
                str(amount),
                created_at.isoformat(),
            ),
        )
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to insert settlement")

        return Settlement(
            id=row_id,
            group_id=group_id,
            from_member_id=from_member_id,
            to_member_id=to_member_id,
            amount=amount,
            created_at=created_at,
        )

    def list_settlements(self, group_id: int) -> list[Settlement]:
        """Get all settlements of a group, newest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, from_member_id, to_member_id, amount, created_at
            FROM settlements
            WHERE group_id = ?
            ORDER BY created_at DESC, id DESC
            """,
            (group_id,),
        )
        return [
            Settlement(
                id=row["id"],
                group_id=row["group_id"],
                from_member_id=row["from_member_id"],
                to_member_id=row["to_member_id"],
                amount=Decimal(row["amount"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]


def _member_from_row(row: sqlite3.Row) -> Member:
    return Member(
        id=row["id"],
        group_id=row["group_id"],
        name=row["name"],
        balance=Decimal(row["balance"]),
    )
