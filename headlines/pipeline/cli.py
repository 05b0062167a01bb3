"""CLI interface for the headlines digest pipeline.

Usage:
    python -m headlines.pipeline.cli window --time 2022-06-04T00:00:00Z
    python -m headlines.pipeline.cli sources
    python -m headlines.pipeline.cli preview --time 2022-06-01T00:00:00Z --lang en
    python -m headlines.pipeline.cli create --time 2022-06-01T00:00:00Z --lang ja --draft
    python -m headlines.pipeline.cli run --time 2022-06-01T00:00:00Z --final
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from headlines.config import DEFAULT_CONFIG_PATH, load_config
from headlines.connectors.factory import build_sources
from headlines.digest.renderer import render_document
from headlines.digest.window import compute_window, parse_execution_time
from headlines.pipeline.orchestrator import DigestPipeline
from headlines.storage.models import DigestRequest

console = Console(stderr=True)


def run_async(coro):
    """Run an async function to completion."""
    return asyncio.run(coro)


def _execution_time(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        return parse_execution_time(value)
    except ValueError:
        console.print(f"[red]Invalid time:[/red] {value}")
        sys.exit(1)


@click.group()
@click.option("--config", default=DEFAULT_CONFIG_PATH, help="Config file path")
@click.option("--store", "storage_type", type=click.Choice(["s3", "local"]), help="Override storage type")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config: str, storage_type: Optional[str], verbose: bool):
    """Daily headlines digest CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["storage_type"] = storage_type


def _load(ctx):
    config = load_config(ctx.obj["config_path"])
    if ctx.obj.get("storage_type"):
        config = replace(config, storage_type=ctx.obj["storage_type"])
    return config


@cli.command()
@click.option("--time", "time_", help="Execution time, ISO 8601 (default: now)")
@click.option("--lang", default=None, help="Language for the display text (default: primary)")
@click.pass_context
def window(ctx, time_: Optional[str], lang: Optional[str]):
    """Show the publication window for an execution time."""
    config = _load(ctx)
    executed = _execution_time(time_)
    w = compute_window(executed, primary=config.is_primary(lang or config.primary_language))
    console.print(f"[bold]Window:[/bold] {w.display_text}")
    console.print(f"  oldest: {w.oldest.isoformat()}")
    console.print(f"  latest: {w.latest.isoformat()}")
    console.print(f"  title:  {w.article_title}")
    console.print(f"  path:   {w.url_path}")


@cli.command()
@click.pass_context
def sources(ctx):
    """List configured feed sources."""
    config = _load(ctx)
    table = Table(title="Sources")
    table.add_column("ID", style="cyan")
    table.add_column("Kind")
    table.add_column("Lang")
    table.add_column("Feed URL")
    for source in build_sources(config.sources):
        table.add_row(source.id, source.section, source.lang or "-", source.url)
    console.print(table)


@cli.command()
@click.option("--time", "time_", help="Execution time, ISO 8601 (default: now)")
@click.option("--lang", required=True, help="Digest language")
@click.pass_context
def preview(ctx, time_: Optional[str], lang: str):
    """Assemble and print a digest without storing it."""
    config = _load(ctx)
    executed = _execution_time(time_)

    async def _run():
        pipeline = DigestPipeline.from_config(config)
        with console.status("[bold green]Fetching feeds..."):
            document = await pipeline.assembler.assemble(DigestRequest(executed, lang, True))
        click.echo(render_document(document))

    run_async(_run())


@cli.command()
@click.option("--time", "time_", help="Execution time, ISO 8601 (default: now)")
@click.option("--lang", required=True, help="Digest language")
@click.option("--draft/--final", default=True, help="Publish as a draft (default) or final article")
@click.pass_context
def create(ctx, time_: Optional[str], lang: str, draft: bool):
    """Create and store one digest article; print the thumbnail payload as JSON."""
    config = _load(ctx)
    if lang not in config.languages:
        console.print(f"[red]Unsupported language:[/red] {lang} (expected one of {', '.join(config.languages)})")
        sys.exit(1)
    executed = _execution_time(time_)

    async def _run():
        pipeline = DigestPipeline.from_config(config)
        with console.status(f"[bold green]Creating {lang} digest..."):
            return await pipeline.run(DigestRequest(executed, lang, draft))

    payload = run_async(_run())
    click.echo(json.dumps(payload.to_dict(), ensure_ascii=False))


@cli.command()
@click.option("--time", "time_", help="Execution time, ISO 8601 (default: now)")
@click.option("--draft/--final", default=True, help="Publish as drafts (default) or final articles")
@click.pass_context
def run(ctx, time_: Optional[str], draft: bool):
    """Create digests for every configured language concurrently."""
    config = _load(ctx)
    executed = _execution_time(time_)

    async def _run():
        pipeline = DigestPipeline.from_config(config)
        with console.status("[bold green]Creating digests..."):
            return await pipeline.run_languages(executed, is_draft=draft)

    summary = run_async(_run())

    table = Table(title="Digest Results")
    table.add_column("Lang", style="cyan")
    table.add_column("Title")
    table.add_column("Path")
    table.add_column("Status")
    for payload in summary.payloads:
        table.add_row(payload.lang, payload.title, payload.url_path, "[green]ok")
    for lang, error in summary.errors.items():
        table.add_row(lang, "", "", f"[red]{error[:60]}")
    console.print(table)

    for payload in summary.payloads:
        click.echo(json.dumps(payload.to_dict(), ensure_ascii=False))
    if not summary.success:
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
