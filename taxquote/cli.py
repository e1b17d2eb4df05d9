"""
Command-line interface for the taxquote analyzer.

Analyze one or more tax return PDFs and print their complexity summaries,
or list the markers the analyzer looks for.
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from taxquote.models import TaxSummary
from taxquote.pdf_processor import runtime
from taxquote.pdf_processor.processor import TaxReturnProcessor
from taxquote.reporting import export_summary_pdf
from taxquote.signals.catalog import (
    SIGNAL_CATALOG,
    AppendLabel,
    SetFlag,
    SetLevel,
    SignalCategory,
    rules_for_category,
)
from taxquote.utils.errors import PDFProcessingError
from taxquote.utils.logging import setup_logging

app = typer.Typer(
    name="taxquote",
    help="Estimate tax return preparation complexity from a Form 1040 PDF",
    add_completion=False,
)
console = Console()


def _summary_table(title: str, summary: TaxSummary) -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Estimated Complexity", summary.estimated_complexity.value.capitalize())
    table.add_row("Required Schedules", ", ".join(summary.schedules) or "-")
    table.add_row("Income Types", ", ".join(summary.income_types) or "-")
    table.add_row("Business Income", "Yes" if summary.has_business_income else "No")
    table.add_row("Rental Property", "Yes" if summary.has_rental_property else "No")
    table.add_row("Investment Complexity", summary.investment_complexity.value)
    table.add_row("Deduction Categories", ", ".join(summary.deduction_categories) or "-")
    return table


def _describe_effect(effect) -> str:
    if isinstance(effect, AppendLabel):
        return f'append "{effect.label}"'
    if isinstance(effect, SetFlag):
        return f"set {effect.flag}"
    if isinstance(effect, SetLevel):
        return f"investment_complexity = {effect.level.value}"
    return repr(effect)


@app.command()
def analyze(
    files: List[Path] = typer.Argument(..., help="Tax return PDF file(s)"),
    as_json: bool = typer.Option(False, "--json", help="Print summaries as JSON"),
    export: Optional[Path] = typer.Option(
        None,
        "--export",
        "-e",
        help="Write the summary to a PDF (single input file only)",
    ),
):
    """Analyze tax return PDFs."""
    if export and len(files) > 1:
        console.print("[red]Error:[/red] --export accepts a single input file")
        raise typer.Exit(1)

    for file_path in files:
        if not file_path.exists():
            console.print(f"[red]Error:[/red] File not found: {file_path}")
            raise typer.Exit(1)

    async def _analyze():
        processor = TaxReturnProcessor()
        if len(files) == 1:
            try:
                return [await processor.process_file(files[0])]
            except PDFProcessingError as e:
                return [e]
        return await processor.process_many(files)

    results = asyncio.run(_analyze())

    failed = 0
    json_output = {}
    for file_path, result in zip(files, results):
        if isinstance(result, PDFProcessingError):
            failed += 1
            console.print(f"[red]✗[/red] {file_path.name}: {result.message}")
            continue

        if as_json:
            json_output[str(file_path)] = result.model_dump(mode="json", by_alias=True)
        else:
            console.print(_summary_table(file_path.name, result))

        if export:
            written = export_summary_pdf(result, export)
            console.print(f"[green]✓[/green] Summary exported to {written}")

    if as_json and json_output:
        typer.echo(json.dumps(json_output, indent=2))

    if failed:
        raise typer.Exit(1)


@app.command()
def catalog():
    """List the markers searched for on every page."""
    table = Table(title=f"Signal Catalog ({len(SIGNAL_CATALOG)} rules)")
    table.add_column("Marker", style="cyan")
    table.add_column("Category")
    table.add_column("Effects")

    for category in SignalCategory:
        for rule in rules_for_category(category):
            table.add_row(
                rule.marker,
                category.value,
                "; ".join(_describe_effect(effect) for effect in rule.effects),
            )

    console.print(table)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """taxquote - Tax return complexity analysis."""
    setup_logging(log_level="DEBUG" if debug else None)
    runtime.init()


if __name__ == "__main__":
    app()
