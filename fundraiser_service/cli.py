"""
Admin command line tools.

    fundraiser-cli stats
    fundraiser-cli export-csv --output fundraising.csv
"""
import asyncio
from datetime import date

import click

from fundraiser_service.core.config import get_settings
from fundraiser_service.core.exceptions import LedgerError
from fundraiser_service.database.database import session_scope
from fundraiser_service.services.aggregates import format_amount
from fundraiser_service.services.fundraising import FundraisingService


@click.group()
def cli():
    """Fundraising admin tools"""


@cli.command("stats")
@click.option("--limit", default=10, show_default=True, help="Number of leaderboard entries to show.")
def stats_cmd(limit: int) -> None:
    """Print global statistics and the top fundraisers."""
    symbol = get_settings().currency_symbol
    try:
        with session_scope() as db:
            stats = asyncio.run(FundraisingService.get_global_stats(db))
            entries = asyncio.run(FundraisingService.get_leaderboard(db, limit))
    except LedgerError as e:
        raise click.ClickException(e.message)

    click.secho("Fundraising statistics", bold=True)
    click.echo(f"  Fundraisers:     {stats.total_fundraisers}")
    click.echo(f"  Total raised:    {format_amount(stats.total_raised, symbol)}")
    click.echo(f"  Average raised:  {format_amount(round(stats.average_raised, 2), symbol)}")
    click.echo(f"  Average target:  {format_amount(round(stats.average_target, 2), symbol)}")
    click.echo(f"  Completion rate: {stats.completion_rate:.2f}%")

    click.secho(f"\nTop {limit} fundraisers", bold=True)
    if not entries:
        click.echo("  No fundraisers yet")
    for entry in entries:
        click.echo(
            f"  {entry.rank:>3}. {entry.full_name or 'Anonymous':<30} "
            f"{format_amount(entry.collected_amount, symbol):>14} "
            f"({entry.progress_percentage:.1f}%)"
        )


@cli.command("export-csv")
@click.option("--output", "-o", default=None, help="Output path. Defaults to fundraising-data-YYYY-MM-DD.csv.")
def export_csv_cmd(output: str) -> None:
    """Write every fundraiser to a CSV file."""
    output = output or f"fundraising-data-{date.today().isoformat()}.csv"
    try:
        with session_scope() as db:
            content = asyncio.run(FundraisingService.export_csv(db))
    except LedgerError as e:
        raise click.ClickException(e.message)

    with open(output, "w", encoding="utf-8", newline="") as f:
        f.write(content)

    rows = content.count("\n")
    click.secho(f"Exported {rows} fundraiser(s) to {output}", fg="green")


if __name__ == "__main__":
    cli()
