"""CLI commands for the group ledger."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.table import Table

from ..config import load_settings
from ..db import Database
from ..exceptions import SplitLedgerError, ValidationError
from ..models import (
    BalanceSummary,
    Expense,
    ParticipantInput,
    ResolvedShare,
    SplitPolicy,
    Transfer,
)
from .money import format_money
from .service import LedgerService

app = typer.Typer(
    name="ledger",
    help="Track group expenses, balances and settlements",
)

console = Console()


def setup_logging(verbose: bool = False, level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_participant(spec: str) -> tuple[str, str | None]:
    """
    Parse a participant argument.

    'alice' -> ('alice', None)
    'alice=60' -> ('alice', '60')
    """
    name, sep, value = spec.partition("=")
    name = name.strip()
    if not name:
        raise ValidationError(f"Invalid participant: {spec!r}", rule="participant")
    if sep and not value.strip():
        raise ValidationError(
            f"Missing value for participant {name!r}", rule="participant_value"
        )
    return name, (value.strip() if sep else None)


def styled_money(amount, symbol: str = "$") -> str:
    """Money with red for negative and green for positive amounts."""
    text = format_money(amount, symbol)
    if amount < 0:
        return f"[red]{text}[/red]"
    if amount > 0:
        return f"[green]{text}[/green]"
    return text


def display_shares(
    shares: list[ResolvedShare], names: dict | None = None, symbol: str = "$"
):
    """Display resolved shares in a table."""
    names = names or {}
    table = Table(title="Shares", show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Share", justify="right")

    for share in shares:
        table.add_row(
            names.get(share.participant_id, str(share.participant_id)),
            format_money(share.amount, symbol),
        )

    console.print(table)


def display_transfers(
    transfers: list[Transfer], names: dict | None = None, symbol: str = "$"
):
    """Display suggested transfers in a table."""
    if not transfers:
        console.print("[green]✓ All settled up[/green]")
        return

    names = names or {}
    table = Table(
        title="Suggested Settlements", show_header=True, header_style="bold magenta"
    )
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")

    for transfer in transfers:
        table.add_row(
            names.get(transfer.from_participant_id, str(transfer.from_participant_id)),
            names.get(transfer.to_participant_id, str(transfer.to_participant_id)),
            format_money(transfer.amount, symbol),
        )

    console.print(table)


def display_balances(summary: BalanceSummary, symbol: str = "$"):
    """Display member balances followed by the suggested settlements."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right")
    table.add_column("Status", style="dim")

    for member in summary.members:
        if member.balance > 0:
            status = "is owed"
        elif member.balance < 0:
            status = "owes"
        else:
            status = "settled"
        table.add_row(
            str(member.id),
            member.name,
            styled_money(member.balance, symbol),
            status,
        )

    console.print(table)

    if summary.residual:
        console.print(
            f"[red]✗ Balances net to {format_money(summary.residual, symbol)} "
            f"instead of zero[/red]"
        )

    names = {member.id: member.name for member in summary.members}
    display_transfers(summary.transfers, names, symbol)


def display_expenses(expenses: list[Expense], names: dict, symbol: str = "$"):
    """Display a group's expenses."""
    table = Table(title="Expenses", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Date", style="dim")
    table.add_column("Description", style="cyan", width=30)
    table.add_column("Paid by")
    table.add_column("Amount", justify="right")
    table.add_column("Split", style="yellow")

    for expense in expenses:
        desc = expense.description
        table.add_row(
            str(expense.id),
            expense.created_at.strftime("%Y-%m-%d"),
            desc[:30] + "..." if len(desc) > 30 else desc,
            names.get(expense.payer_id, str(expense.payer_id)),
            format_money(expense.amount, symbol),
            ", ".join(
                f"{names.get(s.member_id, s.member_id)} "
                f"{format_money(s.amount, symbol)}"
                for s in expense.shares
            ),
        )

    console.print(table)


@contextmanager
def open_service(verbose: bool) -> Iterator[tuple[LedgerService, str]]:
    """
    Open the configured database and yield a service plus currency symbol.

    Ledger errors are printed and turned into exit code 1.
    """
    db = None
    try:
        settings = load_settings()
        setup_logging(verbose, settings.log_level)
        db = Database(settings.database_path)
        yield LedgerService(db), settings.currency_symbol
    except SplitLedgerError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


# ============================================================================
# Groups
# ============================================================================


@app.command("create-group")
def create_group(
    name: str = typer.Argument(..., help="Group name"),
    members: list[str] = typer.Option(
        [], "--member", "-m", help="Initial member (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a new group."""
    with open_service(verbose) as (service, _):
        group = service.create_group(name, members)
        console.print(f"[green]✓ Created group {group.id}: {group.name}[/green]")


@app.command("add-member")
def add_member(
    group_id: int = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to a group."""
    with open_service(verbose) as (service, _):
        member = service.add_member(group_id, name)
        console.print(f"[green]✓ Added {member.name} (ID {member.id})[/green]")


@app.command("groups")
def list_groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List all groups."""
    with open_service(verbose) as (service, _):
        groups = service.list_groups()
        if not groups:
            console.print("[yellow]No groups yet.[/yellow]")
            return

        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Name", style="cyan")
        table.add_column("Members")

        for group in groups:
            members = service.list_members(group.id)
            table.add_row(
                str(group.id), group.name, ", ".join(m.name for m in members)
            )

        console.print(table)


# ============================================================================
# Expenses
# ============================================================================


@app.command("add-expense")
def add_expense(
    group_id: int = typer.Argument(..., help="Group ID"),
    amount: str = typer.Argument(..., help="Expense total, e.g. 42.50"),
    participants: list[str] = typer.Argument(
        None,
        help="Participants as NAME (equal) or NAME=VALUE (exact/percentage). "
        "Defaults to every member, split equally.",
    ),
    payer: str = typer.Option(..., "--payer", help="Name of the member who paid"),
    description: str = typer.Option(
        ..., "--description", "-d", help="What the expense was for"
    ),
    policy: SplitPolicy = typer.Option(
        SplitPolicy.EQUAL, "--policy", "-p", case_sensitive=False, help="Split policy"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record an expense and update the group's balances.

    The payer is credited the full amount and each participant is debited
    their share. Any rounding remainder goes to the first participant.
    """
    with open_service(verbose) as (service, symbol):
        payer_member = service.get_member_by_name(group_id, payer)

        if participants:
            inputs = []
            for spec in participants:
                name, value = parse_participant(spec)
                member = service.get_member_by_name(group_id, name)
                inputs.append(ParticipantInput(participant_id=member.id, value=value))
        else:
            inputs = [
                ParticipantInput(participant_id=m.id)
                for m in service.list_members(group_id)
            ]

        expense = service.create_expense(
            group_id=group_id,
            payer_id=payer_member.id,
            amount=amount,
            description=description,
            policy=policy,
            participants=inputs,
        )

        names = {m.id: m.name for m in service.list_members(group_id)}
        console.print(
            f"[green]✓ Recorded expense {expense.id}: {expense.description} "
            f"({format_money(expense.amount, symbol)} paid by {payer_member.name})"
            f"[/green]"
        )
        display_shares(
            [
                ResolvedShare(participant_id=s.member_id, amount=s.amount)
                for s in expense.shares
            ],
            names,
            symbol,
        )


@app.command("expenses")
def list_expenses(
    group_id: int = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List a group's expenses, newest first."""
    with open_service(verbose) as (service, symbol):
        expenses = service.list_expenses(group_id)
        if not expenses:
            console.print("[yellow]No expenses yet.[/yellow]")
            return

        names = {m.id: m.name for m in service.list_members(group_id)}
        display_expenses(expenses, names, symbol)


@app.command("delete-expense")
def delete_expense(
    group_id: int = typer.Argument(..., help="Group ID"),
    expense_id: int = typer.Argument(..., help="Expense ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete an expense and reverse its balance changes."""
    with open_service(verbose) as (service, symbol):
        if not yes and not typer.confirm(f"Delete expense {expense_id}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        expense = service.delete_expense(group_id, expense_id)
        console.print(
            f"[green]✓ Deleted expense {expense.id}: {expense.description} "
            f"({format_money(expense.amount, symbol)})[/green]"
        )


# ============================================================================
# Balances and settlements
# ============================================================================


@app.command("balances")
def balances(
    group_id: int = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show member balances and the fewest payments that settle them."""
    with open_service(verbose) as (service, symbol):
        summary = service.get_balances(group_id)
        display_balances(summary, symbol)


@app.command("settle")
def settle(
    group_id: int = typer.Argument(..., help="Group ID"),
    from_name: str = typer.Argument(..., help="Member who paid"),
    to_name: str = typer.Argument(..., help="Member who received the payment"),
    amount: str = typer.Argument(..., help="Amount paid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a payment between two members."""
    with open_service(verbose) as (service, symbol):
        payer = service.get_member_by_name(group_id, from_name)
        payee = service.get_member_by_name(group_id, to_name)

        settlement = service.record_settlement(group_id, payer.id, payee.id, amount)
        console.print(
            f"[green]✓ Recorded settlement {settlement.id}: {payer.name} paid "
            f"{payee.name} {format_money(settlement.amount, symbol)}[/green]"
        )


@app.command("settlements")
def list_settlements(
    group_id: int = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List recorded settlements, newest first."""
    with open_service(verbose) as (service, symbol):
        settlements = service.list_settlements(group_id)
        if not settlements:
            console.print("[yellow]No settlements yet.[/yellow]")
            return

        names = {m.id: m.name for m in service.list_members(group_id)}
        table = Table(
            title="Settlements", show_header=True, header_style="bold magenta"
        )
        table.add_column("ID", style="dim", width=6)
        table.add_column("Date", style="dim")
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Amount", justify="right")

        for s in settlements:
            table.add_row(
                str(s.id),
                s.created_at.strftime("%Y-%m-%d"),
                names.get(s.from_member_id, str(s.from_member_id)),
                names.get(s.to_member_id, str(s.to_member_id)),
                format_money(s.amount, symbol),
            )

        console.print(table)
