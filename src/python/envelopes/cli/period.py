"""Cycle and trip CLI commands."""

from __future__ import annotations

import click

from envelopes.cli.common import (
    domain_errors,
    format_amount,
    format_period_line,
    get_client,
    parse_date,
    resolve_period_id,
)
from envelopes.ledger import CYCLE, TRIP
from envelopes.models import PeriodKind


def build_period_group(kind: PeriodKind) -> click.Group:
    """Build the command group for one kind of budget period."""
    label = kind.name.title()

    @click.group(name=kind.name, help=f"{label} commands.")
    def group() -> None:
        pass

    @group.command("open")
    @click.argument("name")
    @click.option("--amount", "amount_value", required=True, help="Starting allocation.")
    @click.option("--notes", default="", help="Free text notes.")
    @click.option(
        "--start-date",
        required=kind.requires_start_date,
        help="Start date in YYYY-MM-DD.",
    )
    @click.pass_context
    def open_period(
        ctx: click.Context,
        name: str,
        amount_value: str,
        notes: str,
        start_date: str | None,
    ) -> None:
        """Open a new period and make it current."""
        start = parse_date(start_date, "--start-date")
        with domain_errors(f"{label} open"), get_client(ctx) as client:
            record = client.open_period(
                kind.name, name, amount_value, notes=notes, start_date=start
            )
        click.echo(f"Opened {kind.name} {record.key}")

    @group.command("close")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.pass_context
    def close_period(ctx: click.Context, period_id: str | None) -> None:
        """Close a period."""
        with domain_errors(f"{label} close"), get_client(ctx) as client:
            key = resolve_period_id(client.ledger(kind.name), period_id)
            closed = client.close_period(kind.name, key)
        if closed:
            click.echo(f"Closed {kind.name} {key}")
        else:
            click.echo(f"{label} {key} was already closed")

    @group.command("current")
    @click.pass_context
    def current_period(ctx: click.Context) -> None:
        """Show the current open period."""
        with domain_errors(f"{label} current"), get_client(ctx) as client:
            record = client.ledger(kind.name).get_current()
        if record is None:
            click.echo(f"No open {kind.name}.")
            return
        click.echo(format_period_line(record))

    @group.command("list")
    @click.pass_context
    def list_periods(ctx: click.Context) -> None:
        """List periods, most recent first."""
        with domain_errors(f"{label} list"), get_client(ctx) as client:
            records = client.ledger(kind.name).history()
        if not records:
            click.echo(f"No {kind.name} history.")
            return
        for record in records:
            click.echo(format_period_line(record))

    @group.command("show")
    @click.argument("period_id")
    @click.pass_context
    def show_period(ctx: click.Context, period_id: str) -> None:
        """Show a period and its notes."""
        with domain_errors(f"{label} show"), get_client(ctx) as client:
            record = client.ledger(kind.name).get_period(period_id)
        click.echo(format_period_line(record))
        click.echo(f"Notes: {record.notes or 'None'}")
        click.echo(f"Expenses: {len(record.expenses)}")

    @group.command("add-expense")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.option("--amount", "amount_value", required=True, help="Expense amount.")
    @click.option("--category", required=True, help="Expense category.")
    @click.option("--date", "date_value", required=True, help="Expense date in YYYY-MM-DD.")
    @click.option("--description", default="", help="Expense description.")
    @click.pass_context
    def add_expense(
        ctx: click.Context,
        period_id: str | None,
        amount_value: str,
        category: str,
        date_value: str,
        description: str,
        recurrent: bool = False,
    ) -> None:
        """Record an expense."""
        date = parse_date(date_value, "--date")
        with domain_errors("Expense add"), get_client(ctx) as client:
            key = resolve_period_id(client.ledger(kind.name), period_id)
            record = client.record_expense(
                kind.name,
                key,
                amount_value,
                category,
                date,
                description=description,
                recurrent=recurrent,
            )
        click.echo(f"Added expense {record.key}")

    if kind.supports_recurrence:
        add_expense.params.append(
            click.Option(["--recurrent"], is_flag=True, help="Mark as a recurring expense.")
        )

    @group.command("delete-expense")
    @click.argument("expense_id")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.option("--yes", is_flag=True, help="Skip delete confirmation.")
    @click.pass_context
    def delete_expense(
        ctx: click.Context, expense_id: str, period_id: str | None, yes: bool
    ) -> None:
        """Delete an expense."""
        if not yes:
            confirm = click.confirm("Delete expense?", default=False)
            if not confirm:
                click.echo("Delete cancelled.")
                return
        with domain_errors("Expense delete"), get_client(ctx) as client:
            key = resolve_period_id(client.ledger(kind.name), period_id)
            client.remove_expense(kind.name, key, expense_id)
        click.echo(f"Deleted expense {expense_id}")

    @group.command("expenses")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.option("--category", default=None, help="Filter by category.")
    @click.option("--date", "date_value", default=None, help="Filter by date in YYYY-MM-DD.")
    @click.pass_context
    def list_expenses(
        ctx: click.Context,
        period_id: str | None,
        category: str | None,
        date_value: str | None,
    ) -> None:
        """List expenses of a period."""
        on_date = parse_date(date_value, "--date")
        with domain_errors("Expense list"), get_client(ctx) as client:
            ledger = client.ledger(kind.name)
            key = resolve_period_id(ledger, period_id)
            records = ledger.list_expenses(key, category=category, on_date=on_date)
        if not records:
            click.echo("No expenses.")
            return
        for record in records:
            line = (
                f"{record.key}\t{record.date.isoformat()}\t{format_amount(record.amount)}"
                f"\t{record.category}\t{record.description}"
            )
            if getattr(record, "is_recurrent", False):
                line += "\trecurrent"
            click.echo(line)

    @group.command("summary")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.pass_context
    def summary(ctx: click.Context, period_id: str | None) -> None:
        """Show allocation, spending and remaining balance."""
        with domain_errors(f"{label} summary"), get_client(ctx) as client:
            ledger = client.ledger(kind.name)
            result = ledger.summary(resolve_period_id(ledger, period_id))
        click.echo(f"Allocation: {format_amount(result.initial_amount)}")
        click.echo(f"Spent:      {format_amount(result.total_spent)}")
        click.echo(f"Remaining:  {format_amount(result.remaining_amount)}")
        click.echo(f"Used:       {result.percentage_spent}%")

    @group.command("by-category")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.pass_context
    def by_category(ctx: click.Context, period_id: str | None) -> None:
        """Show spending per category."""
        with domain_errors(f"{label} by-category"), get_client(ctx) as client:
            ledger = client.ledger(kind.name)
            totals = ledger.by_category(resolve_period_id(ledger, period_id))
        if not totals:
            click.echo("No expenses.")
            return
        for total in totals:
            click.echo(f"{total.category:<30} {format_amount(total.amount):>15}")

    @group.command("compare")
    @click.option("--period", "period_id", default=None, help="Period id, defaults to current.")
    @click.pass_context
    def compare(ctx: click.Context, period_id: str | None) -> None:
        """Compare spending with the previous period."""
        with domain_errors(f"{label} compare"), get_client(ctx) as client:
            ledger = client.ledger(kind.name)
            result = ledger.compare_with_previous(resolve_period_id(ledger, period_id))
        if result is None:
            click.echo(f"No previous {kind.name} to compare with.")
            return
        sign = "+" if result.amount_diff > 0 else ""
        click.echo(
            f"Difference: {sign}{format_amount(result.amount_diff)} "
            f"({sign}{result.percentage_diff}%)"
        )

    @group.command("categories")
    @click.pass_context
    def list_categories(ctx: click.Context) -> None:
        """List the category set."""
        with domain_errors(f"{label} categories"), get_client(ctx) as client:
            names = client.ledger(kind.name).categories()
        for name in names:
            click.echo(name)

    @group.command("add-category")
    @click.argument("name")
    @click.pass_context
    def add_category(ctx: click.Context, name: str) -> None:
        """Append a category to the set."""
        with domain_errors("Category add"), get_client(ctx) as client:
            added = client.add_category(kind.name, name)
        if added:
            click.echo(f"Added category {name.strip()}")
        else:
            click.echo(f"Category {name.strip()} already exists")

    return group


cycle = build_period_group(CYCLE)
trip = build_period_group(TRIP)
