"""Command-line interface for ContentCore."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

import click
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from contentcore import __version__
from contentcore.config import Config, ExtractionOptions, find_config_file
from contentcore.exporter import EXPORT_FORMATS
from contentcore.observability import configure_logging
from contentcore.protocols import ExtractionResult
from contentcore.service import ContentExtractorService

console = Console()
logger = structlog.get_logger(__name__)

T = TypeVar("T")
ServiceFactory = Callable[[Config], ContentExtractorService]


def _run_with_service(ctx: click.Context, action: Callable[[ContentExtractorService], Awaitable[T]]) -> T:
    """Build the service for this invocation, run ``action`` on it, close it."""
    config: Config = ctx.obj["config"]
    factory: ServiceFactory = ctx.obj.get("service_factory") or ContentExtractorService

    async def runner() -> T:
        service = factory(config)
        try:
            return await action(service)
        finally:
            await service.aclose()

    return asyncio.run(runner())


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Saved to {output}[/green]")
    else:
        click.echo(text)


def _fail(result: ExtractionResult) -> None:
    raise click.ClickException(f"{type(result.error).__name__}: {result.error}")


format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(EXPORT_FORMATS),
    default="json",
    show_default=True,
    help="Output format",
)
adapter_option = click.option("--adapter", default=None, help="Force a named site adapter")
output_option = click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write output to a file")


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: str) -> None:
    """ContentCore - main-content extraction for web pages."""
    ctx.ensure_object(dict)
    config_path = Path(config) if config else find_config_file()
    loaded = Config.from_yaml(config_path) if config_path else Config()
    loaded = loaded.model_copy(update={"monitoring": loaded.monitoring.model_copy(update={"log_level": log_level})})
    ctx.obj["config"] = loaded
    configure_logging(loaded.monitoring)


@cli.command()
@click.argument("url")
@format_option
@click.option("--no-cache", is_flag=True, help="Bypass the result cache")
@adapter_option
@output_option
@click.pass_context
def extract(
    ctx: click.Context, url: str, output_format: str, no_cache: bool, adapter: Optional[str], output: Optional[str]
) -> None:
    """Fetch URL and extract its main content."""
    if no_cache:
        config: Config = ctx.obj["config"]
        ctx.obj["config"] = config.model_copy(update={"cache": config.cache.model_copy(update={"enabled": False})})
    options = ExtractionOptions(adapter=adapter) if adapter else None

    async def action(service: ContentExtractorService) -> Tuple[ExtractionResult, str]:
        result = await service.extract(url, options)
        text = service.export_content(result.data, output_format) if result.success and result.data else ""
        return result, text

    result, text = _run_with_service(ctx, action)
    if not result.success:
        _fail(result)
    _emit(text, output)


@cli.command("extract-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--url", default="", help="URL the markup was served from")
@format_option
@adapter_option
@output_option
@click.pass_context
def extract_file(
    ctx: click.Context, path: str, url: str, output_format: str, adapter: Optional[str], output: Optional[str]
) -> None:
    """Extract the main content of a local HTML file."""
    markup = Path(path).read_text(encoding="utf-8", errors="replace")
    page_url = url or Path(path).resolve().as_uri()
    options = ExtractionOptions(adapter=adapter) if adapter else None

    async def action(service: ContentExtractorService) -> Tuple[ExtractionResult, str]:
        result = await service.extract_from_html(markup, page_url, options)
        text = service.export_content(result.data, output_format) if result.success and result.data else ""
        return result, text

    result, text = _run_with_service(ctx, action)
    if not result.success:
        _fail(result)
    _emit(text, output)


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--concurrency", default=None, type=click.IntRange(min=1), help="URLs extracted in parallel")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON summary instead of a table")
@click.pass_context
def batch(ctx: click.Context, urls: Tuple[str, ...], concurrency: Optional[int], as_json: bool) -> None:
    """Extract several URLs in bounded parallel groups."""
    results: List[ExtractionResult] = _run_with_service(
        ctx, lambda service: service.extract_batch(list(urls), concurrency=concurrency)
    )

    rows: List[Dict[str, Any]] = []
    for url, result in zip(urls, results):
        rows.append(
            {
                "url": url,
                "success": result.success,
                "title": result.data.title if result.data else None,
                "word_count": result.data.word_count if result.data else 0,
                "error": str(result.error) if result.error else None,
            }
        )

    if as_json:
        click.echo(json.dumps(rows, indent=2))
    else:
        table = Table(title="Batch extraction")
        table.add_column("URL", style="cyan")
        table.add_column("Status")
        table.add_column("Words", justify="right")
        table.add_column("Title / error")
        for row in rows:
            status = "[green]ok[/green]" if row["success"] else "[red]failed[/red]"
            table.add_row(row["url"], status, str(row["word_count"]), row["title"] or row["error"] or "")
        console.print(table)

    failed = sum(not row["success"] for row in rows)
    if failed:
        raise click.ClickException(f"{failed} of {len(rows)} extractions failed")


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.pass_context
def duplicates(ctx: click.Context, urls: Tuple[str, ...]) -> None:
    """Report URLs that carry the same article."""
    groups: Dict[str, List[str]] = _run_with_service(ctx, lambda service: service.find_duplicates(list(urls)))
    click.echo(json.dumps(groups, indent=2))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def validate(path: str) -> None:
    """Check an exported JSON content record."""
    try:
        content = ContentExtractorService.import_content(Path(path).read_text(encoding="utf-8"), "json")
    except ValidationError as e:
        raise click.ClickException(f"Not a content record: {e.error_count()} validation errors")

    report = ContentExtractorService.validate_content(content)
    if report.valid:
        console.print("[green]Content is valid[/green]")
        return
    for error in report.errors:
        console.print(f"[red]- {error}[/red]")
    raise click.ClickException(f"{len(report.errors)} validation rule(s) failed")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
