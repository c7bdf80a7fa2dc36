"""
Command line interface for deskpilot.

Thin presentation layer over the scanner, organizer, deduper, rollback
engine and reporter. All state lives in the durable store configured by
Settings (DESKPILOT_* environment variables).
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from ..version import get_version_string
from ..analysis import Scanner
from ..config import Settings, get_settings
from ..core.types import (
    DedupeReport,
    KeepStrategy,
    OrganizeReport,
    ProgressCallback,
    RollbackReport,
    ScanReport,
    TransactionType,
)
from ..db import SQLStore, create_store
from ..organization import Deduper, Organizer, RollbackEngine, TransactionLedger
from ..reporting import ActivityReport, Reporter
from ..shared import SafeFileOperations, format_bytes, setup_logging

console = Console()


class AppContext:
    """Settings plus lazily created store and filesystem primitives."""

    def __init__(self, settings: Settings, verbose: bool = False):
        self.settings = settings
        self.verbose = verbose
        self._store: Optional[SQLStore] = None

    @property
    def store(self) -> SQLStore:
        if self._store is None:
            self._store = create_store(self.settings)
        return self._store

    def target(self, path: Optional[str]) -> Path:
        """PATH argument, or the configured downloads folder when omitted."""
        return Path(path) if path else self.settings.downloads_path

    def file_ops(self) -> SafeFileOperations:
        return SafeFileOperations(
            self.settings.trash_path,
            max_collision_attempts=self.settings.max_collision_attempts,
        )


pass_app = click.make_pass_decorator(AppContext)


@contextmanager
def progress_bar(description: str) -> Iterator[ProgressCallback]:
    """Yield a progress callback that drives a rich progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=None)

        def update(current: int, total: int, label: str) -> None:
            progress.update(task, completed=current, total=total)

        yield update


def _fail(app: AppContext, error: Exception) -> None:
    console.print(f"\n[red]✗ Error: {escape(str(error))}[/red]")
    if app.verbose:
        console.print_exception()
    sys.exit(1)


def _print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"deskpilot, version {get_version_string()}")
    ctx.exit()


@click.group()
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_print_version,
    help="Show the version and exit.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    Organize, deduplicate and roll back changes to a directory of files.

    \b
    Examples:
        deskpilot scan ~/Downloads
        deskpilot organize ~/Downloads --dry-run
        deskpilot dedupe ~/Downloads --strategy keep-oldest
        deskpilot rollback <transaction-id>
    """
    if ctx.obj is None:
        ctx.obj = AppContext(get_settings(), verbose=verbose)
    else:
        ctx.obj.verbose = verbose
    setup_logging(verbose=verbose, console=console, level=ctx.obj.settings.log_level)


@cli.command()
@click.argument("path", type=click.Path(), required=False)
@click.option(
    "--recursive/--no-recursive",
    default=True,
    help="Descend into subdirectories (default: yes)",
)
@pass_app
def scan(app: AppContext, path: Optional[str], recursive: bool) -> None:
    """Scan PATH (default: the downloads folder) for duplicates and categories."""
    target = app.target(path)
    try:
        with progress_bar("Scanning files...") as on_progress:
            scanner = Scanner(
                app.store,
                workers=app.settings.hash_workers,
                on_progress=on_progress,
                exclude=[app.settings.trash_path],
                quick_hash_threshold=app.settings.quick_hash_threshold,
            )
            report = scanner.scan(target, recursive=recursive)
    except Exception as e:
        _fail(app, e)
        return

    _display_scan(report)


@cli.command()
@click.argument("path", type=click.Path(), required=False)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Preview changes without moving anything",
)
@click.option(
    "--recursive",
    is_flag=True,
    default=False,
    help="Also organize files in subdirectories",
)
@pass_app
def organize(
    app: AppContext, path: Optional[str], dry_run: bool, recursive: bool
) -> None:
    """Move the files of PATH (default: the downloads folder) into category folders."""
    target = app.target(path)
    try:
        with progress_bar("Organizing files...") as on_progress:
            organizer = Organizer(
                app.store,
                app.file_ops(),
                on_progress=on_progress,
                flush_interval=app.settings.ledger_flush_interval,
            )
            report = organizer.organize(target, dry_run=dry_run, recursive=recursive)
    except Exception as e:
        _fail(app, e)
        return

    _display_organize(report)


@cli.command()
@click.argument("path", type=click.Path(), required=False)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Preview changes without deleting anything",
)
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in KeepStrategy]),
    default=KeepStrategy.KEEP_LATEST.value,
    help="Which copy of each duplicate to keep",
)
@click.option(
    "--permanent",
    is_flag=True,
    default=False,
    help="Delete permanently instead of moving to the trash (cannot be rolled back)",
)
@click.option("-y", "--yes", is_flag=True, default=False, help="Do not ask for confirmation")
@pass_app
def dedupe(
    app: AppContext,
    path: Optional[str],
    dry_run: bool,
    strategy: str,
    permanent: bool,
    yes: bool,
) -> None:
    """Remove duplicate files under PATH (default: the downloads folder)."""
    target = app.target(path)
    if permanent and not dry_run and not yes:
        console.print(
            "[red]⚠ WARNING: --permanent deletes duplicates without using the trash![/red]"
        )
        if not click.confirm("Continue?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

    try:
        with progress_bar("Removing duplicates...") as on_progress:
            deduper = Deduper(
                app.store,
                app.file_ops(),
                on_progress=on_progress,
                workers=app.settings.hash_workers,
                flush_interval=app.settings.ledger_flush_interval,
            )
            report = deduper.dedupe(
                target, dry_run=dry_run, strategy=strategy, move_to_trash=not permanent
            )
    except Exception as e:
        _fail(app, e)
        return

    _display_dedupe(report)


@cli.command()
@click.argument("transaction_id")
@pass_app
def rollback(app: AppContext, transaction_id: str) -> None:
    """Undo the organize or dedupe run TRANSACTION_ID."""
    console.print(f"[yellow]Rolling back transaction {transaction_id}...[/yellow]")
    try:
        engine = RollbackEngine(
            app.store,
            app.file_ops(),
            flush_interval=app.settings.ledger_flush_interval,
        )
        report = engine.rollback(transaction_id)
    except Exception as e:
        _fail(app, e)
        return

    _display_rollback(report)


@cli.command()
@click.option("--limit", type=int, default=10, help="Maximum rows")
@click.option(
    "--type",
    "txn_type",
    type=click.Choice([t.value for t in TransactionType]),
    default=None,
    help="Only show one transaction type",
)
@click.option(
    "--rollbackable",
    is_flag=True,
    default=False,
    help="Only show transactions that can be rolled back",
)
@pass_app
def transactions(
    app: AppContext, limit: int, txn_type: Optional[str], rollbackable: bool
) -> None:
    """List recent transactions."""
    try:
        ledger = TransactionLedger(app.store)
        if rollbackable:
            rows = ledger.list_rollbackable()[:limit]
        else:
            rows = ledger.list_recent(
                limit=limit, type=TransactionType(txn_type) if txn_type else None
            )
    except Exception as e:
        _fail(app, e)
        return

    if not rows:
        console.print("[yellow]No transactions found[/yellow]")
        return

    table = Table(title="Transactions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Actions", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Dry run")
    table.add_column("Created", style="dim")

    for txn in rows:
        table.add_row(
            txn.transaction_id,
            txn.type.value,
            txn.status.value,
            str(txn.summary.total_processed),
            str(txn.summary.failed_count),
            "yes" if txn.dry_run else "",
            txn.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@cli.command()
@pass_app
def report(app: AppContext) -> None:
    """Show an activity report of past scans and transactions."""
    try:
        activity = Reporter(app.store).generate()
    except Exception as e:
        _fail(app, e)
        return

    _display_report(activity)


def _display_scan(report: ScanReport) -> None:
    console.print(f"\n[green]✓ Scan complete![/green]  [dim]{report.scan_id}[/dim]\n")

    table = Table(title="Categories")
    table.add_column("Category", style="cyan")
    table.add_column("Files", justify="right", style="green")
    table.add_column("Size", justify="right")
    for name, stats in report.categories.items():
        table.add_row(name, str(stats.count), format_bytes(stats.size))
    console.print(table)

    console.print(f"Total files: {report.total_files} ({format_bytes(report.total_size)})")
    console.print(
        f"Duplicates: {report.duplicates_count} in {len(report.duplicate_groups)} groups "
        f"({format_bytes(report.duplicates_size)} wasted)"
    )
    if report.skipped_files:
        console.print(f"[yellow]Skipped {report.skipped_files} unreadable files[/yellow]")


def _display_organize(report: OrganizeReport) -> None:
    console.print("\n[green]✓ Organization complete![/green]\n")

    table = Table(title="Results")
    table.add_column("Category", style="cyan")
    table.add_column("Files", style="green", justify="right")
    for category, count in report.by_category.items():
        table.add_row(category, str(count))
    console.print(table)

    console.print(f"Planned: {report.planned_count}")
    console.print(f"Moved: {report.moved_count}")
    console.print(f"Failed: {report.failed_count}")
    _display_errors(report.errors)
    _display_transaction_hint(report.transaction_id, report.dry_run)


def _display_dedupe(report: DedupeReport) -> None:
    console.print("\n[green]✓ Deduplication complete![/green]\n")

    table = Table(title="Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Strategy", report.strategy.value)
    table.add_row("Duplicate groups", str(report.total_duplicate_groups))
    table.add_row("Duplicate files", str(report.total_duplicate_files))
    if report.dry_run:
        table.add_row("Would save", format_bytes(report.would_save))
    else:
        table.add_row("Deleted", str(report.deleted_count))
        table.add_row("Failed", str(report.failed_count))
        table.add_row("Saved", format_bytes(report.saved_bytes))
    console.print(table)

    _display_errors(report.errors)
    if not report.dry_run and not report.move_to_trash:
        console.print("[yellow]Files were deleted permanently and cannot be restored[/yellow]")
    _display_transaction_hint(report.transaction_id, report.dry_run)


def _display_rollback(report: RollbackReport) -> None:
    console.print("[green]✓ Rollback complete[/green]\n")

    table = Table(title="Rollback")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Actions", str(report.total_actions))
    table.add_row("Restored", str(report.restored_count))
    table.add_row("Skipped", str(report.skipped_count))
    table.add_row("Failed", str(report.failed_count))
    console.print(table)

    notes = [d for d in report.details if d.note]
    for detail in notes[:10]:
        console.print(f"  [dim]• {escape(str(detail.destination))}: {escape(detail.note)}[/dim]")
    if len(notes) > 10:
        console.print(f"  [dim]... and {len(notes) - 10} more[/dim]")


def _display_report(activity: ActivityReport) -> None:
    overview = Table(title="Overview", show_header=False)
    overview.add_column("Metric", style="cyan")
    overview.add_column("Value", style="green", justify="right")
    overview.add_row("Scans", str(activity.total_scans))
    overview.add_row("Files scanned", str(activity.total_files_scanned))
    overview.add_row("Duplicates found", str(activity.total_duplicates_found))
    overview.add_row("Disk space saved", format_bytes(activity.disk_space_saved))
    overview.add_row("Transactions", str(activity.total_transactions))
    console.print(overview)

    if activity.category_breakdown:
        table = Table(title="Categories (latest scan)")
        table.add_column("Category", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("%", justify="right")
        for share in activity.category_breakdown:
            table.add_row(
                share.category,
                str(share.count),
                format_bytes(share.size),
                f"{share.percentage:.1f}",
            )
        console.print(table)

    if activity.top_extensions:
        table = Table(title="Top extensions")
        table.add_column("Extension", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Size", justify="right")
        for ext in activity.top_extensions:
            table.add_row(ext.extension, str(ext.count), format_bytes(ext.size))
        console.print(table)

    if activity.duplicate_stats:
        stats = activity.duplicate_stats
        console.print(
            f"Duplicates in latest scan: {stats.duplicate_files} files in "
            f"{stats.groups} groups ({format_bytes(stats.wasted_bytes)} wasted)"
        )

    if activity.recent_activity:
        table = Table(title="Recent activity")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Type")
        table.add_column("Status")
        table.add_column("Created", style="dim")
        for entry in activity.recent_activity:
            table.add_row(
                entry.transaction_id,
                entry.type.value + (" (dry run)" if entry.dry_run else ""),
                entry.status.value,
                entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        console.print(table)


def _display_errors(errors) -> None:
    if not errors:
        return
    console.print("\n[red]Errors:[/red]")
    for error in errors[:10]:  # Show first 10
        console.print(f"  [red]• {escape(error)}[/red]")
    if len(errors) > 10:
        console.print(f"  [dim]... and {len(errors) - 10} more[/dim]")


def _display_transaction_hint(transaction_id: str, dry_run: bool) -> None:
    if dry_run:
        console.print("\n[yellow]This was a DRY RUN - no files were modified[/yellow]")
        return
    console.print(f"\n[dim]Transaction ID: {transaction_id}[/dim]")
    console.print("[dim]You can rollback this operation with:[/dim]")
    console.print(f"[dim]  deskpilot rollback {transaction_id}[/dim]")


if __name__ == "__main__":
    cli()
