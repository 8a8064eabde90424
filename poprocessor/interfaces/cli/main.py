"""
CLI Main - Typer-based command-line interface.

Usage:
    poprocessor extract path/to/order.pdf --kind po
    poprocessor text path/to/order.pdf
    poprocessor repair response.txt
    poprocessor normalize response.json --raw order.txt --kind quotation
    poprocessor serve
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from poprocessor.config import POProcessorError, RepairFailure, get_settings
from poprocessor.domains.normalization import BusinessRecord, DocumentKind

app = typer.Typer(
    name="poprocessor",
    help="PO Processor - Structured records from business documents",
    add_completion=False,
)
console = Console()


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=True,
            )
        ],
        force=True,
    )


@app.command()
def extract(
    path: Path = typer.Argument(..., help="Path to the document (PDF or text)"),
    kind: DocumentKind = typer.Option(DocumentKind.PURCHASE_ORDER, "--kind", "-k", help="Document kind"),
    text_file: Path | None = typer.Option(None, "--text-file", "-t", help="OCR text to use instead of heuristic extraction"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON path"),
) -> None:
    """Extract a purchase order, inquiry or quotation from a document."""
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    asyncio.run(_extract_async(path, kind, text_file, output))


async def _extract_async(
    path: Path, kind: DocumentKind, text_file: Path | None, output: Path | None
) -> None:
    """Async extraction implementation."""
    from poprocessor.adapters.gemini import GeminiClient, GeminiConfig
    from poprocessor.domains.extraction import SourceDocument
    from poprocessor.domains.governor import CallGovernor, GovernorConfig
    from poprocessor.domains.normalization import FieldNormalizer, NormalizerConfig
    from poprocessor.domains.orchestration import DomainMapper, MapperConfig
    from poprocessor.domains.repair import JsonRepairEngine

    settings = get_settings()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Initializing...", total=None)

        document = SourceDocument.from_path(path)
        if text_file is not None:
            document = document.model_copy(update={"text": text_file.read_text(encoding="utf-8")})

        mapper = DomainMapper(
            GeminiClient(GeminiConfig.from_settings(settings)),
            governor=CallGovernor(GovernorConfig.from_settings(settings)),
            repair_engine=JsonRepairEngine(settings.repair_max_extra_passes),
            normalizer=FieldNormalizer(NormalizerConfig.from_settings(settings)),
            config=MapperConfig.from_settings(settings),
        )

        progress.update(task, description=f"Extracting {kind.label}...")

        try:
            record = await mapper.process(document, kind)
        except POProcessorError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            if e.details:
                console.print(f"[dim]{json.dumps(e.details, default=str)}[/dim]")
            raise typer.Exit(1)

    console.print("\n[green]Extraction Complete[/green]\n")
    _print_record(record)

    if output:
        output.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"\n[green]Saved to:[/green] {output}")


@app.command()
def text(
    path: Path = typer.Argument(..., help="Path to the document"),
    show: bool = typer.Option(True, "--show/--no-show", help="Print the recovered text"),
) -> None:
    """Recover text from a document without calling the model."""
    from poprocessor.domains.extraction import HeuristicTextExtractor, is_readable

    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    settings = get_settings()
    recovered = HeuristicTextExtractor().extract(path.read_bytes())
    readable = is_readable(recovered, settings.min_readable_length)

    if show and recovered:
        console.print(Panel(recovered, title=path.name))

    verdict = "[green]readable[/green]" if readable else "[yellow]needs reinterpretation[/yellow]"
    console.print(f"{len(recovered)} characters, {verdict}")


@app.command()
def repair(
    path: Path | None = typer.Argument(None, help="File with generated text (stdin if omitted)"),
) -> None:
    """Repair almost-JSON into a single JSON object."""
    from poprocessor.domains.repair import JsonRepairEngine

    raw = path.read_text(encoding="utf-8") if path else sys.stdin.read()
    result = JsonRepairEngine(get_settings().repair_max_extra_passes).try_repair(raw)

    if result.error is not None:
        _print_repair_failure(result.error)
        raise typer.Exit(1)

    console.print_json(result.text)
    console.print(f"[dim]Repaired in {result.passes} pass(es)[/dim]")


@app.command()
def normalize(
    path: Path = typer.Argument(..., help="File with the generated JSON"),
    kind: DocumentKind = typer.Option(DocumentKind.PURCHASE_ORDER, "--kind", "-k", help="Document kind"),
    raw: Path | None = typer.Option(None, "--raw", "-r", help="Raw document text for fallbacks"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON path"),
) -> None:
    """Normalize generated JSON into a canonical record."""
    from poprocessor.domains.normalization import FieldNormalizer, NormalizerConfig
    from poprocessor.domains.repair import JsonRepairEngine

    settings = get_settings()
    try:
        data = JsonRepairEngine(settings.repair_max_extra_passes).parse(
            path.read_text(encoding="utf-8")
        )
    except RepairFailure as e:
        _print_repair_failure(e)
        raise typer.Exit(1)

    raw_text = raw.read_text(encoding="utf-8") if raw else ""
    record = FieldNormalizer(NormalizerConfig.from_settings(settings)).normalize(data, raw_text, kind)
    _print_record(record)

    if output:
        output.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"\n[green]Saved to:[/green] {output}")


@app.command()
def check() -> None:
    """Verify the Gemini API key with a one-word request."""
    from poprocessor.adapters.gemini import GeminiClient, GeminiConfig

    settings = get_settings()
    if not settings.gemini_api_key:
        console.print("[red]Error:[/red] GEMINI_API_KEY is not set")
        raise typer.Exit(1)

    client = GeminiClient(GeminiConfig.from_settings(settings))
    if not asyncio.run(client.test_connection()):
        console.print(f"[red]Error:[/red] {settings.gemini_model} did not answer")
        raise typer.Exit(1)
    console.print(f"[green]{settings.gemini_model} is reachable[/green]")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print("\n[green]Starting PO Processor API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "poprocessor.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from poprocessor import __version__

    console.print(f"PO Processor v{__version__}")


def _print_record(record: BusinessRecord) -> None:
    """Render a record header and its line items."""
    table = Table(title=f"{record.kind.label.title()} {record.number}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Counterparty", record.counterparty_name)
    table.add_row("Date", record.date.isoformat())
    table.add_row("Expiry", f"{record.expiry_date.isoformat()} ({record.status.value})")
    table.add_row("Total", f"{record.currency} {record.total_amount:,.2f}")
    if record.email:
        table.add_row("Email", record.email)
    if record.phone:
        table.add_row("Phone", record.phone)
    valid = "[green]yes[/green]" if record.is_valid else f"[red]no[/red] ({', '.join(record.issues)})"
    table.add_row("Valid", valid)
    console.print(table)

    if record.line_items:
        items = Table(title="Line Items")
        items.add_column("Item", style="cyan")
        items.add_column("Qty", justify="right")
        items.add_column("Unit")
        items.add_column("Unit Price", justify="right")
        items.add_column("Total", justify="right", style="green")
        for item in record.line_items:
            items.add_row(
                item.name,
                f"{item.quantity:g}",
                item.unit,
                f"{item.unit_price:,.2f}",
                f"{item.total:,.2f}",
            )
        console.print(items)

    if record.summary:
        console.print(Panel(record.summary, title="Summary"))


def _print_repair_failure(error: RepairFailure) -> None:
    console.print(f"[red]Error:[/red] {error.message} (offset {error.offset})")
    if error.context:
        console.print(Panel(error.context, title="Context"))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
