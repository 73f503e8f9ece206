"""Command-line interface for comparing electricity bills across tariff plans."""

import json
import logging
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .billing import cheapest, compare_plans, summarize_readings
from .collectors import esb
from .models import MonetaryEntry
from .tariffs import load_plans, select_plans

console = Console()
err_console = Console(stderr=True)

# Readings are interval end times, so a full period spans slightly less
# than its day count.
PERIOD_TOLERANCE_DAYS = 1.0


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def format_entry(entry: MonetaryEntry) -> str:
    return f"{entry.kind.value.capitalize()} €{entry.amount:.2f}"


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    envvar="METERBILL_CONFIG",
    help="Path to plans.yaml",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging (per-reading trace)")
@click.pass_context
def cli(ctx, config, verbose):
    """Smart-meter bill comparison across tariff plans."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None
    setup_logging(verbose)


def _load_selected_plans(ctx, plan_names):
    try:
        return select_plans(load_plans(ctx.obj["config_path"]), plan_names)
    except (FileNotFoundError, ValueError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)


def _load_readings(csv_path):
    readings, skipped = esb.parse_csv(Path(csv_path))
    if skipped:
        err_console.print(f"[yellow]Skipped {skipped} unparseable row(s)[/yellow]")
    return readings


@cli.command()
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="METERBILL_CSV",
    required=True,
    help="Path to HDF smart-meter CSV export",
)
@click.option(
    "--days",
    type=click.FloatRange(min=0),
    envvar="METERBILL_DAYS",
    required=True,
    help="Length of the billing period in days",
)
@click.option("--plan", "plan_names", multiple=True, help="Plan name (repeatable, default: all)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def bill(ctx, csv_path, days, plan_names, as_json):
    """Compute the bill for each plan over a billing period."""
    plans = _load_selected_plans(ctx, plan_names)
    readings = _load_readings(csv_path)

    stats = summarize_readings(readings)
    span = stats["span_days"]
    if span is not None and abs(span - days) > PERIOD_TOLERANCE_DAYS:
        err_console.print(
            f"[yellow]Billing period is {days:g} days but readings span "
            f"{span:.1f} days[/yellow]"
        )

    bills = compare_plans(plans, readings, days)

    if as_json:
        click.echo(json.dumps([b.to_dict() for b in bills], indent=2))
        return

    best = cheapest(bills)
    table = Table(title=f"Bills for {days:g} days ({stats['count']} readings)")
    table.add_column("Plan", style="cyan")
    table.add_column("Energy", justify="right")
    table.add_column("Standing", justify="right")
    table.add_column("Total", justify="right")

    for b in bills:
        style = "bold green" if b is best else None
        table.add_row(
            b.plan_name,
            format_entry(b.energy),
            f"€{b.standing_charge.amount:.2f}",
            format_entry(b.final),
            style=style,
        )

    console.print(table)
    if best and len(bills) > 1:
        console.print(f"[green]Cheapest plan: {best.plan_name}[/green]")


@cli.command()
@click.pass_context
def plans(ctx):
    """List configured tariff plans."""
    plan_list = _load_selected_plans(ctx, ())

    if not plan_list:
        console.print("[yellow]No plans configured[/yellow]")
        return

    table = Table(title="Tariff Plans")
    table.add_column("Plan", style="cyan")
    table.add_column("Kind")
    table.add_column("Import rates (€/kWh)")
    table.add_column("Discount", justify="right")
    table.add_column("Export", justify="right")
    table.add_column("Standing/day", justify="right")

    for plan in plan_list:
        rates = "\n".join(f"{label}: {value}" for label, value in plan.describe_rates())
        table.add_row(
            plan.name,
            plan.kind,
            rates,
            f"{plan.discount:.0%}",
            f"{plan.export_rate}",
            f"€{plan.standing_charge_per_day().amount:.4f}",
        )

    console.print(table)


@cli.command()
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="METERBILL_CSV",
    required=True,
    help="Path to HDF smart-meter CSV export",
)
def readings(csv_path):
    """Summarize the readings in a CSV export."""
    stats = summarize_readings(_load_readings(csv_path))

    if not stats["count"]:
        console.print("[yellow]No readings found[/yellow]")
        return

    table = Table(title="Readings")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Readings", str(stats["count"]))
    table.add_row("Import", f"{stats['import_kwh']:.3f} kWh")
    table.add_row("Export", f"{stats['export_kwh']:.3f} kWh")
    table.add_row("First", f"{stats['first']:%Y-%m-%d %H:%M}")
    table.add_row("Last", f"{stats['last']:%Y-%m-%d %H:%M}")
    table.add_row("Span", f"{stats['span_days']:.1f} days")

    console.print(table)


def main():
    load_dotenv()
    cli(obj={})


if __name__ == "__main__":
    main()
