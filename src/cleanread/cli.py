"""Command-line interface for CleanRead."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
from pydantic import ValidationError
from rich.console import Console

from cleanread import __version__
from cleanread.assembler import CleanDocument, ContentAssembler, DocumentCache
from cleanread.config import Config, load_config
from cleanread.extractor import (
    CleanReadError,
    ExtractionBackend,
    ProcessSupervisor,
    ReadabilityBackend,
    ShutdownTimeoutError,
)
from cleanread.navigation import NavInferenceEngine
from cleanread.observability import MetricsManager, configure_logging

console = Console(stderr=True)
logger = structlog.get_logger(__name__)


def _emit(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _nav_engine(config: Config) -> NavInferenceEngine:
    return NavInferenceEngine(config.navigation.to_weights(), parser=config.navigation.parser)


async def _open_backend(config: Config, worker: Optional[Path], work_dir: Optional[Path]) -> ExtractionBackend:
    binary = worker or config.worker.binary_path
    if binary is None:
        return ReadabilityBackend()

    supervisor = ProcessSupervisor(config.worker)
    await supervisor.start(binary, work_dir or config.worker.work_dir)
    return supervisor


async def _close_backend(backend: ExtractionBackend) -> None:
    try:
        await backend.close()
    except ShutdownTimeoutError as e:
        # The document is already extracted; a stuck worker is not fatal here.
        console.print(f"[yellow]Warning: worker did not shut down cleanly (pid {e.pid})[/yellow]")


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except CleanReadError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides configuration)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """CleanRead - readable articles with next/previous navigation."""
    ctx.ensure_object(dict)
    try:
        settings = load_config(Path(config) if config else None)
    except (ValidationError, OSError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(2)

    if log_level:
        settings.monitoring.log_level = log_level
    configure_logging(settings.monitoring)
    MetricsManager(settings.monitoring).start()
    ctx.obj["config"] = settings


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", required=True, help="URL the document was loaded from")
@click.pass_context
def nav(ctx: click.Context, html_file: Path, url: str) -> None:
    """Infer next/previous links in a saved HTML document."""
    links = _nav_engine(ctx.obj["config"]).infer(html_file.read_bytes(), url)
    _emit({"next": links.next, "previous": links.previous})


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", required=True, help="URL the document was loaded from")
@click.option("--worker", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Worker executable")
@click.option("--work-dir", type=click.Path(file_okay=False, path_type=Path), help="Directory for the worker socket")
@click.pass_context
def extract(ctx: click.Context, html_file: Path, url: str, worker: Optional[Path], work_dir: Optional[Path]) -> None:
    """Extract the article and navigation from a saved HTML document."""
    config: Config = ctx.obj["config"]
    html = html_file.read_bytes()

    async def run_extract() -> CleanDocument:
        backend = await _open_backend(config, worker, work_dir)
        try:
            return await ContentAssembler(backend, _nav_engine(config)).clean(html, url)
        finally:
            await _close_backend(backend)

    document = _run(run_extract())
    _emit(document.to_dict())


@cli.command()
@click.argument("url")
@click.option("--worker", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Worker executable")
@click.option("--work-dir", type=click.Path(file_okay=False, path_type=Path), help="Directory for the worker socket")
@click.option("--relative", is_flag=True, help="Print navigation links as paths for in-app routing")
@click.pass_context
def fetch(ctx: click.Context, url: str, worker: Optional[Path], work_dir: Optional[Path], relative: bool) -> None:
    """Fetch a page over HTTP, then clean it."""
    config: Config = ctx.obj["config"]
    cache = DocumentCache(config.cache.ttl_seconds, config.cache.max_entries) if config.cache.enabled else None

    async def run_fetch() -> CleanDocument:
        backend = await _open_backend(config, worker, work_dir)
        try:
            assembler = ContentAssembler(backend, _nav_engine(config), cache=cache, fetch_config=config.fetch)
            return await assembler.fetch_and_clean(url)
        finally:
            await _close_backend(backend)

    document = _run(run_fetch())
    data = document.to_dict()
    if relative:
        links = document.relative_nav()
        data["nav_next"], data["nav_prev"] = links.next, links.previous
    _emit(data)


@cli.command("validate-config")
@click.pass_context
def validate_config(ctx: click.Context) -> None:
    """Print the effective configuration."""
    config: Config = ctx.obj["config"]
    click.echo(config.model_dump_json(indent=2))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
