"""CLI for SplitLedger."""

import sys

import typer

from .exceptions import SplitLedgerError
from .ledger.cli import (
    app as ledger_app,
    console,
    display_shares,
    display_transfers,
    parse_participant,
    setup_logging,
)
from .ledger.money import format_money, sum_money, to_decimal
from .ledger.resolver import resolve
from .ledger.simplifier import plan_settlement
from .models import NetBalance, ParticipantInput, SplitPolicy

app = typer.Typer(
    name="splitledger",
    help="Split shared expenses exactly and settle up in as few payments as possible",
)

app.add_typer(ledger_app, name="ledger", help="Group expense ledger")


@app.command()
def split(
    amount: str = typer.Argument(..., help="Expense total, e.g. 100.00"),
    participants: list[str] = typer.Argument(
        ..., help="Participants as NAME (equal) or NAME=VALUE (exact/percentage)"
    ),
    policy: SplitPolicy = typer.Option(
        SplitPolicy.EQUAL, "--policy", "-p", case_sensitive=False, help="Split policy"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Work out each participant's share of an expense (nothing is saved).

    Any rounding remainder goes to the first participant listed.
    """
    setup_logging(verbose)

    try:
        inputs = []
        for spec in participants:
            name, value = parse_participant(spec)
            inputs.append(ParticipantInput(participant_id=name, value=value))

        shares = resolve(amount, policy, inputs)
        display_shares(shares)
        console.print(
            f"  Total: {format_money(sum_money(s.amount for s in shares))}"
        )

    except SplitLedgerError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def simplify(
    balances: list[str] = typer.Argument(
        ..., help="Net balances as NAME=AMOUNT (positive = is owed, negative = owes)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Suggest the payments that settle a set of net balances (nothing is saved)."""
    setup_logging(verbose)

    try:
        inputs = []
        for spec in balances:
            name, value = parse_participant(spec)
            if value is None:
                raise SplitLedgerError(f"Missing balance for {name!r}")
            inputs.append(
                NetBalance(
                    participant_id=name, balance=to_decimal(value, field="balance")
                )
            )

        plan = plan_settlement(inputs)
        display_transfers(plan.transfers)

        if not plan.is_complete:
            console.print(
                f"[red]✗ Balances net to {format_money(plan.residual)} "
                f"instead of zero; left unsettled: "
                + ", ".join(
                    f"{b.participant_id} {format_money(b.balance)}"
                    for b in plan.unsettled
                )
                + "[/red]"
            )

    except SplitLedgerError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    app()
