"""Command-line interface for readlog.

Built with Typer for commands and Rich for output. Import commands and
reports all take the reader id as an explicit argument.
"""

from datetime import date
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.achievements import evaluate_achievements, partition_achievements, snapshot_from_stats
from .core.aggregation import aggregate_logs, count_by_type, month_overview, reading_stats
from .core.errors import PreconditionError, StoreError
from .core.models import ImportPreview, ImportSummary, LogType, ReaderProfile, ReadingTotals
from .core.streaks import gaps_between, trailing_streak
from .shell.config import AppConfig, configure_logging
from .shell.firestore_client import FirestoreConfig, ReadingLogFirestoreClient
from .shell.importer import LogImporter


app = typer.Typer(
    name="readlog",
    help="Track reading streaks and import reading logs into Firestore.",
    no_args_is_help=True,
)

console = Console()

_store: Optional[ReadingLogFirestoreClient] = None


def get_store(config: AppConfig) -> ReadingLogFirestoreClient:
    """Get or create the Firestore client."""
    global _store
    if _store is None:
        _store = ReadingLogFirestoreClient(
            FirestoreConfig(project_id=config.project_id, database=config.database)
        )
    return _store


def reset_store() -> None:
    """Drop the cached Firestore client."""
    global _store
    _store = None


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def load_config() -> AppConfig:
    """Load configuration and set up logging, exiting on bad settings."""
    try:
        config = AppConfig.from_env()
    except PreconditionError as e:
        print_error(str(e))
        raise typer.Exit(1)
    configure_logging(config)
    return config


def format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.1f}"


def totals_table(totals: ReadingTotals, title: str = "Totals") -> Table:
    """Create a rich table of per-type totals."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Type")
    table.add_column("Total", justify="right")
    for log_type in LogType:
        table.add_row(log_type.value.title(), format_number(totals.get(log_type)))
    return table


def print_summary(summary: ImportSummary) -> None:
    print_success(f"Import complete for {summary.reader_id}")
    console.print(f"  Successfully imported: {summary.imported} logs")
    console.print(f"  Errors: {summary.errors}")
    console.print(f"  Batch ID: {summary.batch_id}")
    console.print(totals_table(summary.totals, title="Imported totals"))


def print_preview(preview: ImportPreview, limit: int) -> None:
    console.print("[bold]Dry run enabled - not writing to Firestore.[/bold]")
    table = Table(title=f"First {min(limit, len(preview.records))} entries", show_header=True)
    table.add_column("#", style="dim", width=4)
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Value", justify="right")
    table.add_column("Title", max_width=40)
    table.add_column("Author", max_width=25)
    for index, record in enumerate(preview.records[:limit], start=1):
        table.add_row(
            str(index),
            record.log_date_string,
            record.log_type.value,
            format_number(record.value),
            record.book_title or "-",
            record.book_author or "-",
        )
    console.print(table)
    console.print(f"Total parsed logs: {len(preview.records)}")
    if preview.issues:
        print_warning(f"{len(preview.issues)} lines skipped")
        for issue in preview.issues:
            console.print(f"  [dim]line {issue.line_number}:[/dim] {issue.message}")


# ============================================================================
# Import Commands
# ============================================================================


@app.command("import-csv")
def import_csv(
    path: Path = typer.Argument(..., help="CSV export with Date, Log Type and Log Value columns"),
    reader_id: str = typer.Argument(..., help="Reader receiving the logs"),
    fresh: bool = typer.Option(False, "--fresh", help="Delete the reader's logs and import batches first"),
) -> None:
    """Import reading logs from a CSV file."""
    config = load_config()
    importer = LogImporter(get_store(config), config)

    try:
        summary = importer.import_csv(path, reader_id, fresh=fresh)
    except (PreconditionError, StoreError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_summary(summary)


@app.command("import-text")
def import_text(
    path: Path = typer.Argument(..., help="Reading report PDF, or text extracted from one"),
    reader_id: str = typer.Argument(..., help="Reader receiving the logs"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview parsed entries without writing"),
    preview: int = typer.Option(5, "--preview", "-n", help="Entries shown in a dry run"),
) -> None:
    """Import reading logs from a reading report PDF or its extracted text."""
    config = load_config()
    importer = LogImporter(get_store(config), config)

    try:
        result = importer.import_text(path, reader_id, dry_run=dry_run)
    except (PreconditionError, StoreError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    if isinstance(result, ImportPreview):
        if not result.records:
            print_warning("No logs found in input.")
        print_preview(result, preview)
    else:
        print_summary(result)


# ============================================================================
# Report Commands
# ============================================================================


def _load_entries(config: AppConfig, reader_id: str):
    try:
        config.check_reader_id(reader_id)
        return get_store(config).get_logs(reader_id)
    except (PreconditionError, StoreError) as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command()
def stats(reader_id: str = typer.Argument(..., help="Reader to summarise")) -> None:
    """Show the current streak and lifetime totals."""
    config = load_config()
    entries, _ = _load_entries(config, reader_id)

    result = reading_stats(reader_id, entries, date.today())
    console.print(
        Panel(
            f"[bold]Current Streak:[/bold] {result.current_streak} days\n"
            f"[bold]Last Log Date:[/bold] {result.last_log_date or '-'}\n"
            f"[bold]First Log Date:[/bold] {result.first_log_date or '-'}\n"
            f"[bold]Unique Days:[/bold] {result.unique_days}",
            title=f"Reading stats: {reader_id}",
        )
    )
    console.print(totals_table(result.totals))


@app.command()
def month(
    reader_id: str = typer.Argument(..., help="Reader to summarise"),
    year: Optional[int] = typer.Option(None, "--year", help="Calendar year (default: this year)"),
    month_number: Optional[int] = typer.Option(None, "--month", help="Month 1-12 (default: this month)"),
) -> None:
    """Show totals and day completion for one month."""
    config = load_config()
    entries, _ = _load_entries(config, reader_id)

    today = date.today()
    try:
        year = year if year is not None else today.year
        month_number = month_number if month_number is not None else today.month
        overview = month_overview(entries, year, month_number, today)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[bold]Days Logged:[/bold] {overview.days_logged} / {overview.effective_days}"
            f" ({overview.completion_ratio * 100:.0f}%)\n"
            f"[bold]Days In Month:[/bold] {overview.days_in_month}",
            title=f"{overview.year}-{overview.month:02d}: {reader_id}",
        )
    )
    console.print(totals_table(overview.totals))


@app.command()
def achievements(
    reader_id: str = typer.Argument(..., help="Reader to evaluate"),
    show: int = typer.Option(3, "--show", help="In-progress achievements to list"),
) -> None:
    """List unlocked achievements and the nearest ones in progress."""
    config = load_config()
    entries, _ = _load_entries(config, reader_id)

    snapshot = snapshot_from_stats(reading_stats(reader_id, entries, date.today()))
    report = partition_achievements(evaluate_achievements(snapshot), in_progress_limit=show)

    table = Table(title=f"Achievements: {reader_id}", show_header=True, header_style="bold cyan")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Progress", justify="right")
    for progress in report.completed + report.in_progress:
        definition = progress.definition
        marker = "[green]✓[/green]" if progress.is_completed else definition.icon
        table.add_row(
            marker,
            definition.name,
            definition.description,
            f"{format_number(progress.current)} / {format_number(definition.target)}",
        )
    console.print(table)
    console.print(f"{len(report.completed)} unlocked")


@app.command()
def gaps(
    reader_id: str = typer.Argument(..., help="Reader to inspect"),
    limit: int = typer.Option(10, "--limit", help="Gaps to show"),
) -> None:
    """Show breaks between logged days and the historical trailing streak."""
    config = load_config()
    entries, _ = _load_entries(config, reader_id)

    dates = aggregate_logs(entries).sorted_dates
    found = list(gaps_between(dates))

    console.print(f"Total unique days: {len(dates)}")
    if dates:
        console.print(f"First log: {dates[0]}  Latest log: {dates[-1]}")
    console.print(f"Trailing streak (no grace): {trailing_streak(dates)} days")

    if not found:
        print_success("No gaps! Perfect streak from start to end.")
        return

    table = Table(title=f"Gaps found: {len(found)} (showing first {min(limit, len(found))})")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Days", justify="right")
    for gap in found[:limit]:
        table.add_row(gap.from_date, gap.to_date, str(gap.days))
    console.print(table)


@app.command()
def verify(reader_id: str = typer.Argument(..., help="Reader to verify")) -> None:
    """Check stored logs for data issues and list import batches."""
    config = load_config()
    entries, issues = _load_entries(config, reader_id)

    counts = count_by_type(entries)
    aggregate = aggregate_logs(entries)

    table = Table(title=f"Summary by type: {reader_id}", show_header=True, header_style="bold cyan")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    table.add_column("Total", justify="right")
    for log_type in LogType:
        table.add_row(log_type.value.title(), str(counts[log_type]), format_number(aggregate.totals.get(log_type)))
    console.print(table)

    if issues:
        print_warning(f"{len(issues)} data issues found")
        for issue in issues:
            console.print(f"  [dim]{issue.document_id}:[/dim] {issue.message}")
    else:
        print_success("No data issues found")

    try:
        batches, batch_issues = get_store(config).list_import_batches(reader_id)
    except StoreError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(f"Import batches: {len(batches) + len(batch_issues)}")
    for batch in batches:
        console.print(f"  - {batch.batch_id}: {batch.total_rows} rows, {batch.error_rows} errors")
    for issue in batch_issues:
        print_warning(f"Import batch {issue.document_id} is malformed: {issue.message}")


@app.command("init-readers")
def init_readers(
    readers: list[str] = typer.Argument(..., help="Reader ids, optionally as id:Display Name"),
) -> None:
    """Create reader profiles that do not exist yet."""
    config = load_config()
    store = get_store(config)

    for reader in readers:
        reader_id, _, display_name = reader.partition(":")
        display_name = display_name.strip() or reader_id.title()
        try:
            config.check_reader_id(reader_id)
            profile, issues = store.get_reader(reader_id)
            if profile is not None:
                console.print(f'Reader profile for "{display_name}" already exists')
                continue
            if issues:
                print_warning(f'Reader profile "{reader_id}" exists but is malformed: {issues[0].message}')
                continue
            store.save_reader(ReaderProfile(reader_id=reader_id, display_name=display_name, full_name=display_name))
        except (PreconditionError, StoreError) as e:
            print_error(str(e))
            raise typer.Exit(1)
        print_success(f'Created reader profile for "{display_name}"')


if __name__ == "__main__":
    app()
