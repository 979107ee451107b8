#!/usr/bin/env python3
"""
Console interface for previewing CSV files and importing them into datasets.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from .core.config import settings
from .core.logging_config import configure_logging
from .domain.imports.errors import CsvImportError
from .domain.imports.models import ImportProgress, ParsedTable
from .domain.imports.orchestrator import CsvImportOrchestrator
from .domain.imports.wizard import ImportWizard, WizardStep
from .domain.preferences import DisplayPreferences, JsonFilePreferenceStore, PreferencesManager
from .integrations.datasets_api import DatasetsApiClient


class ImportConsole:
    """Renders previews and drives imports for a single invocation."""

    def __init__(self, preferences: DisplayPreferences, console: Optional[Console] = None):
        self.console = console or Console()
        self.preferences = preferences

    def _table(self, title: str) -> Table:
        comfortable = self.preferences.row_height == "comfortable"
        return Table(title=title, show_lines=comfortable, padding=(1 if comfortable else 0, 1))

    def print_preview(self, wizard: ImportWizard) -> None:
        parsed: ParsedTable = wizard.preview

        columns_table = self._table("Columns")
        columns_table.add_column("Column", style="cyan", no_wrap=True)
        columns_table.add_column("Type", style="magenta")
        columns_table.add_column("Empty", justify="right")
        columns_table.add_column("Unique", justify="right")
        columns_table.add_column("Samples", style="dim")
        for column in parsed.columns:
            columns_table.add_row(
                column.name,
                column.type.label,
                str(column.null_count),
                str(column.unique_count),
                ", ".join(column.sample_values[:3]),
            )
        self.console.print(columns_table)

        rows_table = self._table(f"First {min(self.preferences.preview_rows, parsed.row_count)} of {parsed.row_count} rows")
        for header in parsed.headers:
            rows_table.add_column(header, overflow="fold")
        for row in parsed.rows[:self.preferences.preview_rows]:
            rows_table.add_row(*row)
        self.console.print(rows_table)

        mapping = wizard.column_mapping
        self.console.print(
            Panel.fit(
                f"[cyan]input[/cyan]:    {mapping.input_column}\n"
                f"[cyan]expected[/cyan]: {mapping.expected_column or '-'}\n"
                f"[cyan]metadata[/cyan]: {', '.join(mapping.metadata_columns) or '-'}",
                title="Suggested mapping",
                border_style="blue",
            )
        )

    def print_result(self, created: int, skipped: int, errors: List[str], progress: ImportProgress) -> None:
        style = "red" if progress.failed_chunks else "green"
        summary = f"[{style}]{created} created, {skipped} skipped[/{style}]"
        if progress.failed_chunks:
            summary += f"\n[red]Failed chunks: {', '.join(str(n) for n in progress.failed_chunks)} of {progress.total_chunks}[/red]"
        if progress.cancelled:
            summary += "\n[yellow]Import cancelled before all chunks were sent[/yellow]"
        self.console.print(Panel.fit(summary, title="Import result", border_style=style))

        if errors:
            error_table = Table(title=f"Errors ({len(errors)})")
            error_table.add_column("#", justify="right", style="dim")
            error_table.add_column("Message", style="red")
            for index, message in enumerate(errors, start=1):
                error_table.add_row(str(index), message)
            self.console.print(error_table)


def _load_wizard(path: str, has_header: bool) -> ImportWizard:
    wizard = ImportWizard()
    wizard.set_has_header(has_header)
    wizard.load_content(Path(path).read_text(encoding="utf-8"))
    return wizard


def run_preview(args: argparse.Namespace, ui: ImportConsole) -> int:
    wizard = _load_wizard(args.file, not args.no_header)
    if wizard.error:
        ui.console.print(f"[red]{wizard.error}[/red]")
        return 1
    ui.print_preview(wizard)
    return 0


def run_import(args: argparse.Namespace, ui: ImportConsole, client: Optional[DatasetsApiClient] = None) -> int:
    wizard = _load_wizard(args.file, not args.no_header)
    if wizard.error:
        ui.console.print(f"[red]{wizard.error}[/red]")
        return 1
    wizard.next()

    if args.input_column:
        wizard.set_input_column(args.input_column)
    if args.expected_column:
        wizard.set_expected_column(args.expected_column)
    if args.metadata_column:
        # Explicit metadata columns replace the suggestion
        for column in list(wizard.metadata_columns):
            wizard.toggle_metadata_column(column)
        for column in args.metadata_column:
            wizard.toggle_metadata_column(column)
    if wizard.next() != WizardStep.CONFIRM:
        ui.console.print("[red]An input column is required[/red]")
        return 1
    request = wizard.build_request(deduplicate=not args.no_deduplicate)

    client = client or DatasetsApiClient()

    with Progress(
        TextColumn("[bold blue]Importing"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("{task.fields[status]}"),
        console=ui.console,
        transient=True,
    ) as bar:
        task = bar.add_task("import", total=None, status="")

        def on_progress(progress: ImportProgress) -> None:
            bar.update(
                task,
                total=progress.total_chunks,
                completed=progress.completed_chunks,
                status=f"{progress.items_created} created, {progress.items_skipped} skipped",
            )

        orchestrator = CsvImportOrchestrator(client, args.project, args.dataset, on_progress=on_progress)
        try:
            result = orchestrator.import_csv(
                content=request.content,
                column_mapping=request.column_mapping,
                has_header=request.has_header,
                deduplicate=request.deduplicate,
                max_payload_size=args.max_payload_size,
            )
        except CsvImportError as e:
            ui.console.print(f"[red]{e}[/red]")
            return 1
        finally:
            client.invalidate_items(args.dataset)

    ui.print_result(result.created, result.skipped, result.errors or [], orchestrator.progress)
    return 1 if orchestrator.progress.failed_chunks else 0


def run_prefs(args: argparse.Namespace, ui: ImportConsole, manager: PreferencesManager) -> int:
    changes = {}
    if args.row_height:
        changes["row_height"] = args.row_height
    if args.preview_rows is not None:
        changes["preview_rows"] = args.preview_rows
    if changes:
        try:
            manager.update(**changes)
        except ValueError as e:
            ui.console.print(f"[red]{e}[/red]")
            return 1
    prefs = manager.preferences
    ui.console.print(f"row_height: {prefs.row_height}\npreview_rows: {prefs.preview_rows}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dataset-importer", description="Preview and import CSV files into datasets")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    preview = subparsers.add_parser("preview", help="Show columns, inferred types and the suggested mapping")
    preview.add_argument("file", help="Path to a UTF-8 CSV file")
    preview.add_argument("--no-header", action="store_true", help="Treat the first row as data")

    importer = subparsers.add_parser("import", help="Import a CSV file into a dataset")
    importer.add_argument("file", help="Path to a UTF-8 CSV file")
    importer.add_argument("--project", required=True, help="Project ID")
    importer.add_argument("--dataset", required=True, help="Dataset ID")
    importer.add_argument("--no-header", action="store_true", help="Treat the first row as data")
    importer.add_argument("--input-column", help="Column used as item input (default: auto-detected)")
    importer.add_argument("--expected-column", help="Column used as expected output")
    importer.add_argument("--metadata-column", action="append", help="Column stored as metadata (repeatable)")
    importer.add_argument("--no-deduplicate", action="store_true", help="Import rows even if identical items exist")
    importer.add_argument("--max-payload-size", type=int, default=None, help="Maximum bytes per uploaded chunk")

    prefs = subparsers.add_parser("prefs", help="Show or change display preferences")
    prefs.add_argument("--row-height", choices=["compact", "comfortable"], help="Table row height")
    prefs.add_argument("--preview-rows", type=int, help="Rows shown by preview")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, stream="ext://sys.stderr")

    manager = PreferencesManager(JsonFilePreferenceStore(settings.preferences_path))
    ui = ImportConsole(manager.preferences)

    try:
        if args.command == "prefs":
            return run_prefs(args, ui, manager)
        if args.command == "preview":
            return run_preview(args, ui)
        return run_import(args, ui)
    except FileNotFoundError as e:
        ui.console.print(f"[red]File not found: {e.filename}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
