import os
import time
from pathlib import Path
from typing import Optional, Union

import typer
from rich.console import Console
from rich.table import Table

from folio.cli.config_manager import get_config_manager
from folio.core.backfill import backfill_extracted_text
from folio.core.errors import FolioError, PersistenceError
from folio.core.fetch import PdfFetcher, load_pdf_bytes
from folio.core.language import LANGUAGE_ALIASES
from folio.core.loaders import Backends, build_backends
from folio.core.logging_config import configure_logging
from folio.core.pipeline import ExtractionPipeline, ExtractionResult
from folio.core.records import PostgresRecordStore
from folio.core.settings import ExtractionSettings, get_extraction_settings

app = typer.Typer(help="Folio CLI: PDF text extraction with OCR fallback")
console = Console()

_config = get_config_manager()

# Initialize structured logging
configure_logging(
    log_level=os.getenv("LOG_LEVEL", str(_config.get("log_level", "INFO"))),
    json_logs=os.getenv("JSON_LOGS", str(_config.get("json_logs", False))).lower() == "true"
)

_backends: Optional[Backends] = None


def _settings() -> ExtractionSettings:
    return get_extraction_settings(get_config_manager().settings_overrides())


def _get_backends(settings: ExtractionSettings) -> Backends:
    global _backends
    if _backends is None:
        _backends = build_backends(settings)
    return _backends


def _parse_record_id(record_id: str) -> Union[int, str]:
    return int(record_id) if record_id.isdigit() else record_id


def _print_result(result: ExtractionResult, elapsed: float, show_text: bool = False):
    source = "OCR" if result.used_ocr else "embedded text"
    if result.cached:
        source = "stored text"

    console.print(f"[bold]Source:[/] {source}")
    console.print(f"[bold]Language:[/] {result.language}")
    console.print(f"[bold]Characters:[/] {len(result.text)}")
    if result.pages:
        console.print(f"[bold]Pages:[/] {result.pages}")
    console.print(f"[bold]Time:[/] {elapsed:.2f}s")

    if show_text:
        console.print()
        console.print(result.text, markup=False, highlight=False)


def _fail(error: FolioError):
    console.print(f"[red]Error:[/] {error}")
    if error.retryable:
        console.print("[yellow]Note:[/] this failure is transient; try again later")
    raise typer.Exit(1)


@app.command()
def extract(
    record_id: str = typer.Argument(..., help="Record to extract text for"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Language hint, e.g. 'hin' or 'Hindi'"),
    force: bool = typer.Option(False, "--force", help="Re-extract even if text is already stored"),
    show_text: bool = typer.Option(False, "--show-text", help="Print the extracted text"),
):
    """Extract text for a stored record and save it."""
    settings = _settings()
    store = PostgresRecordStore(settings.database_url)
    pipeline = ExtractionPipeline(_get_backends(settings), settings=settings, store=store)

    console.print(f"[bold]Extracting text for record:[/] {record_id}")
    start = time.time()

    try:
        with console.status("[bold green]Extracting..."):
            result = pipeline.extract(_parse_record_id(record_id), language_override=language, force=force)
    except PersistenceError as e:
        if e.result is not None:
            _print_result(e.result, time.time() - start, show_text)
            console.print("[red]Text was extracted but could not be saved.[/]")
        _fail(e)
    except FolioError as e:
        _fail(e)

    if result.cached:
        console.print("[green]✅ Record already has text[/] (use --force to re-extract)")
    else:
        console.print("[green]✅ Extraction complete![/]")
    _print_result(result, time.time() - start, show_text)


@app.command("extract-file")
def extract_file(
    source: str = typer.Argument(..., help="PDF file path or URL"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Language hint"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write text to this file"),
):
    """Extract text from a PDF file or URL without touching the database."""
    settings = _settings()
    pipeline = ExtractionPipeline(_get_backends(settings), settings=settings)

    reference = source
    if not source.lower().startswith(("http://", "https://", "file://")):
        reference = Path(source)
        if not reference.exists():
            console.print(f"[red]Error:[/] Path {source} does not exist")
            raise typer.Exit(1)

    console.print(f"[bold]Extracting text from:[/] {source}")
    start = time.time()

    try:
        with console.status("[bold green]Extracting..."):
            pdf_bytes = load_pdf_bytes(reference, PdfFetcher(timeout=settings.fetch_timeout), settings.site_url)
            result = pipeline.extract_bytes(pdf_bytes, language_hint=language)
    except FolioError as e:
        _fail(e)

    console.print("[green]✅ Extraction complete![/]")
    _print_result(result, time.time() - start, show_text=output is None)

    if output is not None:
        output.write_text(result.text, encoding="utf-8")
        console.print(f"[bold]Saved to:[/] {output}")


@app.command()
def backfill(
    force: bool = typer.Option(False, "--force", help="Re-extract records that already have text"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Stop after this many records"),
):
    """Extract text for every record that is missing it."""
    settings = _settings()
    store = PostgresRecordStore(settings.database_url)
    pipeline = ExtractionPipeline(_get_backends(settings), settings=settings, store=store)

    def on_result(record_id: str, result: Optional[ExtractionResult], error: Optional[str]):
        if error:
            console.print(f"  [red]✗[/] {record_id}: {error}")
        elif result is not None:
            via = "OCR" if result.used_ocr else "text"
            console.print(f"  [green]✓[/] {record_id} ({via}, {result.language}, {len(result.text)} chars)")

    console.print("[bold]Backfilling extracted text[/]")
    if limit:
        console.print(f"[bold]Limit:[/] {limit}")

    try:
        store.ensure_schema()
        report = backfill_extracted_text(store, pipeline, force=force, limit=limit, on_result=on_result)
    except FolioError as e:
        _fail(e)

    console.print()
    console.print("[green]✅ Backfill complete![/]")
    console.print(f"[bold]Processed:[/] {report.processed}")
    console.print(f"[bold]Used OCR:[/] {report.used_ocr}")
    console.print(f"[bold]Skipped:[/] {report.skipped}")
    console.print(f"[bold]Failed:[/] {report.failed}")

    if report.failed:
        raise typer.Exit(1)


@app.command()
def status():
    """Show extraction progress for the records table."""
    settings = _settings()
    store = PostgresRecordStore(settings.database_url)

    try:
        stats = store.get_stats()
    except FolioError as e:
        _fail(e)

    console.print("[bold]📊 Records:[/]")
    console.print(f"  Total records: {stats['total_records']}")
    console.print(f"  With extracted text: {stats['with_text']}")
    console.print(f"  With language: {stats['with_language']}")
    console.print(f"  Pending: {stats['pending']}")
    console.print()
    console.print(f"[bold]🗄️  Database:[/] {settings.database_url}")


@app.command()
def languages():
    """List accepted language hints and the codes they map to."""
    by_code = {}
    for alias, code in LANGUAGE_ALIASES.items():
        by_code.setdefault(code, []).append(alias)

    table = Table(title="Language hints")
    table.add_column("Code", style="blue")
    table.add_column("Accepted hints")
    for code in sorted(by_code):
        table.add_row(code, ", ".join(sorted(a for a in by_code[code] if a != code)))

    console.print(table)
    console.print(f"Any other 3-letter Tesseract code is passed through; default is {_settings().default_language}.")


@app.command()
def doctor():
    """Load every backend and report whether it is usable."""
    settings = _settings()
    statuses = _get_backends(settings).status()

    console.print("[bold]🔍 Backend check[/]")
    for name, info in statuses.items():
        if info["available"]:
            console.print(f"  [green]✅ {name}[/]")
        else:
            console.print(f"  [red]❌ {name}:[/] {info['error']}")

    if any(not info["available"] for name, info in statuses.items() if name != "ocr_engine"):
        raise typer.Exit(1)
    if not statuses["ocr_engine"]["available"]:
        console.print("[yellow]Note:[/] scanned PDFs will fail until OCR is configured")


@app.command()
def config(
    action: str = typer.Argument(..., help="Action: show, set, reset, validate"),
    key: Optional[str] = typer.Argument(None, help="Configuration key"),
    value: Optional[str] = typer.Argument(None, help="Configuration value")
):
    """Manage Folio configuration settings."""
    console.print("[bold]🔧 Configuration Management[/]")

    if action == "show":
        _show_configuration()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Error:[/] Both key and value required for 'set' action")
            raise typer.Exit(2)
        _set_configuration(key, value)
    elif action == "reset":
        if not key:
            console.print("[red]Error:[/] Key required for 'reset' action")
            raise typer.Exit(2)
        _reset_configuration(key)
    elif action == "validate":
        _validate_configuration()
    else:
        console.print(f"[red]Error:[/] Unknown action: {action}")
        console.print("Available actions: show, set, reset, validate")
        raise typer.Exit(2)


def _show_configuration():
    manager = get_config_manager()
    console.print(f"\n[bold]Current Configuration[/] ({manager.config_file}):")
    for key, value in manager.get_all().items():
        console.print(f"  [blue]{key}:[/] {value}")


def _set_configuration(key: str, value: str):
    manager = get_config_manager()
    try:
        manager.set(key, value)
    except KeyError:
        console.print(f"[red]Error:[/] Unknown configuration key: {key}")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✅ Set {key} = {manager.get(key)}[/]")


def _reset_configuration(key: str):
    if get_config_manager().reset(key):
        console.print(f"[green]✅ Reset {key} to default[/]")
    else:
        console.print(f"[yellow]Note:[/] {key} has no default")


def _validate_configuration():
    console.print("[bold]Validating configuration...[/]")
    validation = get_config_manager().validate()

    for warning in validation["warnings"]:
        console.print(f"[yellow]⚠️  {warning}[/]")

    if not validation["valid"]:
        console.print("\n[red]❌ Configuration issues found:[/]")
        for issue in validation["issues"]:
            console.print(f"  • {issue}")
        raise typer.Exit(1)

    console.print("\n[green]✅ Configuration validation passed![/]")


if __name__ == "__main__":
    app()
