"""Command-line interface for printprep."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

# Load .env file from current directory and parent directories
load_dotenv()

from loguru import logger
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from printprep.cli.logging_config import print_version, setup_logging
from printprep.config import ConfigManager, EnvVarNotFoundError, PrintprepConfig
from printprep.constants import LOG_PREVIEW_CHARS
from printprep.exceptions import InvalidDocumentError
from printprep.fetch import HttpImageTransport
from printprep.formats import FormatGate
from printprep.locators import classify
from printprep.orchestrator import DocumentPreprocessor
from printprep.pool import ConversionOutcome, OutcomeStatus
from printprep.proxy import ProxyResolver, origin_resolver
from printprep.utils.output import atomic_write_json

console = Console()
# Separate stderr console for summaries (stdout may carry the document)
stderr_console = Console(stderr=True)


# =============================================================================
# Main CLI app
# =============================================================================


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
def app() -> None:
    """printprep - prepare document images for print rendering.

    Converts every image referenced by a travel document into an inline
    payload the PDF renderer can embed.

    \b
    Examples:
        printprep process guide.json -o guide.print.json
        printprep process guide.json --workers 8 --timeout 5
        printprep classify https://cdn.example.com/a.webp /img/logo.png
        printprep config list
    """
    pass


def _load_config(config_path: Path | None) -> tuple[ConfigManager, PrintprepConfig]:
    manager = ConfigManager()
    cfg = manager.load(config_path=config_path)
    return manager, cfg


def _summary_table(outcomes: dict[str, list[ConversionOutcome]]) -> Table:
    table = Table(title="Image conversion", show_header=True)
    table.add_column("Collection", style="cyan")
    table.add_column("Converted", style="green", justify="right")
    table.add_column("Skipped", style="yellow", justify="right")
    table.add_column("Failed", style="red", justify="right")

    for name, items in outcomes.items():
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in items:
            counts[outcome.status] += 1
        table.add_row(
            name,
            str(counts[OutcomeStatus.SUCCESS]),
            str(counts[OutcomeStatus.SKIPPED]),
            str(counts[OutcomeStatus.FAILED]),
        )
    return table


async def _preprocess(
    document: Any, cfg: PrintprepConfig
) -> tuple[Any, dict[str, list[ConversionOutcome]]]:
    async with HttpImageTransport(timeout=cfg.pool.timeout) as transport:
        preprocessor = DocumentPreprocessor(cfg, transport)
        result = await preprocessor.process(document)
        return result, preprocessor.outcomes


@app.command("process")
@click.argument(
    "input_path",
    metavar="INPUT",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (prints to stdout when omitted).",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option("--relay", default=None, help="Relay base URL for external images.")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrent fetches per collection.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-image timeout in seconds.",
)
@click.option(
    "--site-origin",
    default=None,
    help="Origin used to resolve site-relative image paths.",
)
@click.option(
    "--collection",
    "collections",
    multiple=True,
    help="Collection to process (repeatable; replaces the configured list).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
def process_cmd(
    input_path: Path,
    output: Path | None,
    config_path: Path | None,
    relay: str | None,
    workers: int | None,
    timeout: float | None,
    site_origin: str | None,
    collections: tuple[str, ...],
    verbose: bool,
) -> None:
    """Inline every image of a JSON document."""
    manager, cfg = _load_config(config_path)
    manager.merge_cli_args(
        relay__base_url=relay,
        relay__site_origin=site_origin,
        pool__width=workers,
        pool__timeout=timeout,
        document__collections=list(collections) or None,
    )

    setup_logging(
        verbose=verbose,
        log_dir=cfg.log.dir,
        log_level=cfg.log.level,
        rotation=cfg.log.rotation,
        retention=cfg.log.retention,
    )

    if manager.config_path:
        logger.debug(f"Config loaded from: {manager.config_path}")

    try:
        document = json.loads(input_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: {input_path} is not valid JSON: {e}[/red]")
        raise SystemExit(1)

    try:
        result, outcomes = asyncio.run(_preprocess(document, cfg))
    except (InvalidDocumentError, EnvVarNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if outcomes:
        stderr_console.print(_summary_table(outcomes))

    if output is None:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
        return

    atomic_write_json(output, result)
    stderr_console.print(f"[green]Written:[/green] {output}")


@app.command("classify")
@click.argument("locators", nargs=-1, required=True)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
def classify_cmd(locators: tuple[str, ...], config_path: Path | None) -> None:
    """Show how each LOCATOR would be sourced."""
    _, cfg = _load_config(config_path)
    gate = FormatGate(
        unsupported=cfg.formats.unsupported,
        inline_marker=cfg.formats.inline_rejection_marker,
    )
    resolver = ProxyResolver(
        relay_base_url=cfg.relay.get_resolved_base_url(),
        gate=gate,
        base_address=origin_resolver(cfg.relay.site_origin) if cfg.relay.site_origin else None,
    )

    table = Table(show_header=True)
    table.add_column("Locator", style="cyan", overflow="fold")
    table.add_column("Kind")
    table.add_column("Format")
    table.add_column("Embeddable")
    table.add_column("Source", overflow="fold")

    for raw in locators:
        classified = classify(raw, cfg.relay.trusted_origin_marker)
        source = resolver.resolve(classified)
        embeddable = gate.is_embeddable(classified.locator)
        if source is None:
            source_text = "-"
        elif source.is_direct:
            source_text = "inline"
        else:
            source_text = source.value
        table.add_row(
            raw[:LOG_PREVIEW_CHARS],
            classified.kind.value,
            gate.format_of(classified.locator) or "-",
            "[green]yes[/green]" if embeddable else "[red]no[/red]",
            source_text,
        )

    console.print(table)


# =============================================================================
# Config subcommands
# =============================================================================


@app.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("list")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "table"], case_sensitive=False),
    default="json",
    help="Output format (json or table).",
)
def config_list(output_format: str) -> None:
    """Show current effective configuration."""
    manager = ConfigManager()
    cfg = manager.load()

    config_dict = cfg.model_dump(mode="json", exclude_none=True)

    if output_format == "json":
        config_json = json.dumps(config_dict, indent=2, ensure_ascii=False)
        console.print(Syntax(config_json, "json", theme="monokai", line_numbers=False))
        return

    table = Table(title="printprep Configuration", show_header=True)
    table.add_column("Section", style="cyan")
    table.add_column("Key", style="green")
    table.add_column("Value", style="white")

    for section, values in config_dict.items():
        if isinstance(values, dict):
            for key, value in values.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, ensure_ascii=False)
                table.add_row(section, key, str(value))
        else:
            table.add_row("", section, str(values))

    console.print(table)


@config.command("path")
def config_path_cmd() -> None:
    """Show configuration file paths."""
    manager = ConfigManager()
    manager.load()

    console.print("[bold]Configuration file search order:[/bold]")
    console.print("  1. --config CLI argument")
    console.print("  2. PRINTPREP_CONFIG environment variable")
    console.print(f"  3. ./{manager.CONFIG_FILENAME} (current directory)")
    console.print(f"  4. {manager.DEFAULT_USER_CONFIG_DIR / 'config.json'}")
    console.print()

    if manager.config_path:
        console.print(f"[green]Currently using:[/green] {manager.config_path}")
    else:
        console.print(
            "[yellow]Using default configuration (no config file found)[/yellow]"
        )


if __name__ == "__main__":
    app()
