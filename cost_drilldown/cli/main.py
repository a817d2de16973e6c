"""
CLI interface for Cost Drill-Down.

Provides command-line access to the cost ledger and the drill-down engine.
"""

import json
import logging
import sys
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from cost_drilldown.config.loader import (
    DEFAULT_REPORT_CONFIG,
    ReportConfig,
    ReportCurrency,
    load_report_config,
)
from cost_drilldown.core.session import DrillDownSession, DrillDownView
from cost_drilldown.core.store import CostRecordStore, HierarchyIndex
from cost_drilldown.storage.db import DEFAULT_DB_PATH
from cost_drilldown.storage.models import CostRecord, Dimension, FacetKey
from cost_drilldown.storage.repository import (
    CostRecordRepository,
    initialize_schema,
    insert_cost_records,
    read_cost_records_json,
)

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Cost Drill-Down CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    if ctx.invoked_subcommand is None:
        console.print("Cost Drill-Down - Use --help to see available commands")


@app.command()
def init(db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")):
    """Initialize the cost record database."""
    try:
        initialize_schema(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def ingest(
    path: str = typer.Argument(..., help="Collector JSON export to load"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
):
    """Append a collector JSON export to the cost record database."""
    try:
        records = read_cost_records_json(path)
        initialize_schema(db)
        inserted = insert_cost_records(records, db)
        console.print(f"[green]✓[/] Ingested {inserted} cost records")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def drill(
    input_path: Optional[str] = typer.Option(
        None,
        "--input",
        "-i",
        help="Read records from a JSON export instead of the database"
    ),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
    select: Optional[List[str]] = typer.Option(
        None,
        "--select",
        "-s",
        help="Toggle a facet by its path, e.g. Sub-A/Storage (repeatable)"
    ),
    stack: Optional[str] = typer.Option(
        None,
        "--stack",
        help="Stacking dimension: subscription, category, subcategory, meter or resource"
    ),
    top: Optional[int] = typer.Option(None, "--top", "-n", help="Number of ranked series"),
    currency: Optional[str] = typer.Option(None, "--currency", help="usd or local"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Report config YAML"),
    json_out: Optional[str] = typer.Option(None, "--json-out", help="Write the chart payload here"),
):
    """
    Filter the cost dataset by facet selections and rank the stacked series.

    Each --select is one toggle, applied in order: a path selects that facet
    and everything beneath it, and repeating a path toggles it back off.
    """
    try:
        config = _build_config(config_path, stack, top, currency)
        store = CostRecordStore(_load_records(input_path, db))
        if not store.records:
            console.print("\n[bold yellow]No cost records found[/]")
            console.print("\nRun `cost-drilldown ingest <export.json>` or pass --input\n")
            sys.exit(EXIT_CODE_PASS)

        session = DrillDownSession(store, config)
        for path in select or []:
            key = FacetKey.from_path(_split_path(path))
            if key not in store.index:
                console.print(f"[yellow]Skipping unknown facet:[/] {path}")
                continue
            session.toggle_key(key)

        _display_view(session.view)

        if json_out:
            with open(json_out, 'w', encoding='utf-8') as f:
                json.dump(session.view.series.to_chart_payload(), f, indent=2)
            console.print(f"\nChart payload written to {json_out}")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def tree(
    input_path: Optional[str] = typer.Option(None, "--input", "-i", help="JSON export to read"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
    depth: int = typer.Option(2, "--depth", "-d", min=1, max=5, help="Levels to show"),
    currency: str = typer.Option("usd", "--currency", help="usd or local"),
):
    """Print the drill-down hierarchy with total cost per facet."""
    try:
        currency = _parse_currency(currency).value
        store = CostRecordStore(_load_records(input_path, db))
        totals = _totals_by_key(store, currency)
        root = Tree(f"[bold]Cost hierarchy[/bold] ({_format_currency(store.aggregate.total_cost(currency))})")
        _add_branches(root, store.index, store.index.roots, totals, depth)
        console.print(root)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _split_path(path: str) -> tuple:
    parts = tuple(part.strip() for part in path.split("/"))
    if any(not part for part in parts):
        raise ValueError(f"Invalid facet path: {path}")
    return parts


def _parse_currency(currency: str) -> ReportCurrency:
    try:
        return ReportCurrency(currency.lower())
    except ValueError:
        valid = [c.value for c in ReportCurrency]
        raise ValueError(f"Unknown currency '{currency}', must be one of: {valid}")


def _build_config(
    config_path: Optional[str],
    stack: Optional[str],
    top: Optional[int],
    currency: Optional[str],
) -> ReportConfig:
    """Config file values, overridden by command-line options."""
    config = load_report_config(config_path) if config_path else DEFAULT_REPORT_CONFIG
    return ReportConfig(
        currency=_parse_currency(currency) if currency else config.currency,
        top_n=top if top is not None else config.top_n,
        stack_dimension=Dimension.parse(stack) if stack else config.stack_dimension,
        other_label=config.other_label,
    )


def _load_records(input_path: Optional[str], db: str) -> List[CostRecord]:
    if input_path:
        return read_cost_records_json(input_path)
    initialize_schema(db)
    return CostRecordRepository(db).fetch_records()


def _totals_by_key(store: CostRecordStore, currency: str) -> Dict[FacetKey, float]:
    totals: Dict[FacetKey, float] = {}
    for _, day_root in store.aggregate.items():
        stack = list(day_root.children.values())
        while stack:
            node = stack.pop()
            totals[node.key] = totals.get(node.key, 0.0) + node.cost_in(currency)
            stack.extend(node.children.values())
    return totals


def _add_branches(parent, index: HierarchyIndex, keys, totals, depth: int) -> None:
    for key in sorted(keys, key=lambda k: (-totals.get(k, 0.0), k.value)):
        branch = parent.add(f"{key.value} [dim]{_format_currency(totals.get(key, 0.0))}[/dim]")
        if key.dimension.level + 1 < depth:
            _add_branches(branch, index, index.children_of(key), totals, depth)


def _format_currency(amount: float) -> str:
    """Format an amount with thousands separators."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{abs(amount):,.2f}"


def _display_view(view: DrillDownView):
    """Display the ranked series and filter summary."""
    series = view.series
    summary = view.summary

    console.print(f"\n[bold]Cost by {series.stack_dimension.value}[/bold] ({series.currency.upper()})")
    console.print("-" * 40)

    if not series.entries:
        console.print("\n[dim]No cost matches the current selection.[/]")
    else:
        table = Table()
        table.add_column("#", justify="right")
        table.add_column(series.stack_dimension.value.capitalize())
        table.add_column("Total", justify="right")
        table.add_column("Share", justify="right")
        for i, entry in enumerate(series.entries, start=1):
            share = (entry.total / series.total * 100) if series.total else 0.0
            table.add_row(
                "" if entry.is_other else str(i),
                entry.label,
                _format_currency(entry.total),
                f"{share:.1f}%",
            )
        console.print(table)

    filters = f"{summary.active_facet_count} facets selected" if summary.has_active_filters else "no filters"
    console.print(f"\nRecords: {summary.result_count} ({filters})")
    console.print(f"Total cost: {_format_currency(summary.total_cost)}")
    if summary.warnings:
        console.print(f"[yellow]Data quality warnings:[/] {len(summary.warnings)}")
        for warning in summary.warnings[:5]:
            console.print(f"  - {warning.message}")


if __name__ == "__main__":
    app()
