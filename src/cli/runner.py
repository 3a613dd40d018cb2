# src/cli/runner.py

"""Headless commands: batch price update, catalog listing, history, seed."""

import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.catalog import CatalogEntity
from src.models.errors import PersistenceError
from src.services.batch_orchestrator import (
    BatchOrchestrator,
    BatchSummary,
    suppliers_from_settings,
)
from src.storage.catalog_db import CatalogDB

logger = logging.getLogger("price_tracker.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_suppliers(
    supplier_csv: str | None,
) -> list[dict[str, str]]:
    """Map a comma-separated list of supplier IDs to registry entries.

    Returns every supplier when *supplier_csv* is ``None``.
    Raises ``SystemExit`` on unknown IDs.
    """
    available = {s["id"]: s for s in Settings.SUPPLIERS}
    if supplier_csv is None:
        return Settings.SUPPLIERS

    requested = [
        s.strip() for s in supplier_csv.split(",") if s.strip()
    ]
    unknown = [r for r in requested if r not in available]
    if unknown:
        valid = ", ".join(sorted(available))
        _err.print(
            f"[red]Unknown supplier(s): {', '.join(unknown)}[/red]"
        )
        _err.print(f"[dim]Available: {valid}[/dim]")
        raise SystemExit(1)

    return [available[r] for r in requested]


def _fmt_price(price: float | None) -> str:
    return f"${price:,.2f}" if price is not None else "—"


def _print_summary_table(summary: BatchSummary) -> None:
    """Render a Rich table of per-supplier outcomes to stdout."""
    table = Table(
        title="Batch Price Update",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Supplier", style="magenta")
    table.add_column("Status", justify="center")
    table.add_column("Battery", max_width=40)
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Change", justify="right")
    table.add_column("Notes", style="dim", overflow="fold")

    for o in summary.outcomes:
        if o.ok:
            change = f"{o.delta:+.2f}" if o.delta is not None else "—"
            notes = o.strategy_label
            if o.history_error:
                notes += f" | history: {o.history_error}"
            table.add_row(
                o.supplier,
                "[green]✅ OK[/green]",
                o.entity_name,
                _fmt_price(o.old_price),
                _fmt_price(o.new_price),
                change,
                notes,
            )
        else:
            table.add_row(
                o.supplier,
                "[red]❌ FAILED[/red]",
                "",
                "",
                "",
                "",
                o.reason,
            )

    Console().print(table)


async def run_price_update(
    supplier_csv: str | None,
    output_format: str,
    db_path: Path | None = None,
) -> int:
    """Run one batch and return an exit code (0 = all suppliers ok)."""
    entries = resolve_suppliers(supplier_csv)
    labels = ", ".join(s["label"] for s in entries)
    _err.print(f"[bold]Updating prices:[/bold] [dim]{labels}[/dim]")

    try:
        db = CatalogDB(db_path)
    except Exception as exc:
        logger.critical("Cannot open catalog: %s", exc, exc_info=True)
        _err.print(f"[red]Cannot open catalog: {exc}[/red]")
        return 1

    try:
        orchestrator = BatchOrchestrator(db)
        summary = await orchestrator.run_batch(
            suppliers_from_settings(entries)
        )
    finally:
        db.close()

    for line in summary.summary_lines():
        style = "green" if line.startswith("Success") else "dim"
        _err.print(f"[{style}]{line}[/{style}]")

    if output_format == "table":
        _print_summary_table(summary)
    else:
        json.dump(
            summary.to_dict(),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    return 0 if summary.failure_count == 0 else 1


def _print_catalog(entities: list[CatalogEntity]) -> None:
    table = Table(
        title="Battery Catalog",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=4)
    table.add_column("Name", max_width=50)
    table.add_column("Supplier", style="magenta")
    table.add_column("Class")
    table.add_column("kWh", justify="right")
    table.add_column("Cont. W", justify="right")
    table.add_column("Peak W", justify="right")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Updated", style="dim")

    for e in entities:
        cls = e.battery_class
        table.add_row(
            str(e.id),
            e.name,
            e.supplier,
            cls.short_name if cls else "—",
            f"{cls.capacity_kwh:g}" if cls and cls.capacity_kwh else "—",
            f"{cls.cpower_w:g}" if cls and cls.cpower_w else "—",
            f"{cls.ppower_w:g}" if cls and cls.ppower_w else "—",
            _fmt_price(e.current_price),
            e.updated_at.strftime("%Y-%m-%d %H:%M") if e.updated_at else "—",
        )
    Console().print(table)


def run_list_catalog(db_path: Path | None = None) -> int:
    """Print the catalog joined with class ratings."""
    db = CatalogDB(db_path)
    try:
        entities = db.list_entities_with_class_info()
    finally:
        db.close()
    if not entities:
        _err.print("[yellow]Catalog is empty. Seed it with --seed.[/yellow]")
        return 1
    _print_catalog(entities)
    return 0


def run_show_history(
    entity_id: int,
    db_path: Path | None = None,
    limit: int | None = None,
) -> int:
    """Print the most recent price observations for one battery."""
    db = CatalogDB(db_path)
    try:
        entity = db.get_entity(entity_id)
        if entity is None:
            _err.print(f"[red]No battery with id {entity_id}[/red]")
            return 1
        history = db.read_history(
            entity_id, limit or Settings.HISTORY_LIMIT
        )
    except PersistenceError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()

    table = Table(
        title=f"Price History: {entity.name}",
        title_style="bold cyan",
    )
    table.add_column("Observed", style="dim")
    table.add_column("Price", justify="right", style="green")
    for record in history:
        table.add_row(
            record.scraped_at.strftime("%Y-%m-%d %H:%M:%S"),
            _fmt_price(record.price),
        )
    Console().print(table)
    return 0


def run_seed(
    seed_path: Path | None = None,
    db_path: Path | None = None,
) -> int:
    """Load catalog classes and batteries from a JSON seed file."""
    path = seed_path or Settings.SEED_PATH
    db = CatalogDB(db_path)
    try:
        count = db.import_seed(path)
    except PersistenceError as exc:
        logger.error("Seed failed: %s", exc)
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        db.close()
    _err.print(f"[green]✓ Seeded {count} batteries from {path}[/green]")
    return 0
