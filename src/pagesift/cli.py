"""Command-line interface for PageSift."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pagesift import __version__
from pagesift.config.config import Config, MonitoringConfig, load_config
from pagesift.container import DependencyContainer
from pagesift.exceptions import PageSiftError
from pagesift.extractor.semantic import semantic_query
from pagesift.filters.boilerplate import BoilerplateFilter
from pagesift.filters.rules import RuleRegistry
from pagesift.filters.rulesets import SAFE
from pagesift.models import ProcessingResult
from pagesift.observability.logging import configure_logging
from pagesift.quality.gates import QualityGateValidator, generate_report
from pagesift.tree.builder import build_tree, find_body
from pagesift.utils.atomic import atomic_write_text

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger(__name__)


def _read_markup(file: click.File) -> str:
    content = file.read()
    if not content.strip():
        raise click.BadParameter("input file is empty", param_hint="FILE")
    return content


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
    """PageSift - main-content extraction from captured web pages."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None
    ctx.obj["log_level"] = log_level

    configure_logging(MonitoringConfig(log_level=log_level))


@cli.command()
@click.argument("file", type=click.File("r", encoding="utf-8"))
@click.option("--url", default="", help="Source URL of the capture")
@click.option("--title", default="", help="Title to carry into the result")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the result here instead of stdout")
@click.option("--json", "as_json", is_flag=True, help="Emit the full result as JSON")
@click.pass_context
def extract(ctx: click.Context, file: click.File, url: str, title: str, output: Optional[str], as_json: bool) -> None:
    """Extract the main content of FILE as markdown ("-" reads stdin)."""
    html = _read_markup(file)

    async def run_extraction() -> ProcessingResult:
        container = DependencyContainer(ctx.obj["config_path"])
        async with container.lifecycle():
            pipeline = await container.get_pipeline()
            return await pipeline.process(html, url=url, title=title)

    try:
        result = asyncio.run(run_extraction())
    except PageSiftError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(2)

    rendered = json.dumps(result.to_dict(), indent=2, ensure_ascii=False) if as_json else result.content
    if output:
        atomic_write_text(Path(output), rendered)
        err_console.print(f"[green]Wrote {len(rendered)} characters to {output}[/green]")
    else:
        click.echo(rendered)

    for warning in result.warnings:
        err_console.print(f"[yellow]warning:[/yellow] {escape(warning)}")
    if not result.success:
        for error in result.errors:
            err_console.print(f"[red]error:[/red] {escape(error)}")
        sys.exit(1)


def _load_config(ctx: click.Context) -> Config:
    try:
        return load_config(ctx.obj["config_path"])
    except PageSiftError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(2)


@cli.command()
@click.argument("file", type=click.File("r", encoding="utf-8"))
@click.option("--url", default="", help="Source URL, used for site-specific rules")
@click.pass_context
def inspect(ctx: click.Context, file: click.File, url: str) -> None:
    """Show the semantic candidate's Gate A report for FILE."""
    html = _read_markup(file)
    config = _load_config(ctx)

    limit = config.limits.max_content_length
    if len(html) > limit:
        err_console.print(f"[yellow]warning:[/yellow] Input truncated from {len(html)} to {limit} characters")
        html = html[:limit]

    engine = BoilerplateFilter(
        registry=RuleRegistry.default(config.filters.link_dense_list_threshold),
        config=config.filters,
        max_passes=config.limits.max_filter_passes,
    )
    body = find_body(build_tree(html))
    table = Table(title="Document")
    table.add_column("Signal", style="cyan")
    table.add_column("Value", style="magenta")
    if SAFE in config.filters.enabled_rule_sets:
        filtered = engine.apply_rules(body, SAFE, url=url or None)
        tree = filtered.tree
        table.add_row("Removed by SAFE rules", str(filtered.removed))
        table.add_row("Unwrapped by SAFE rules", str(filtered.unwrapped))
        table.add_row("Preserved", str(filtered.preserved))
    else:
        tree = body.clone()
        table.add_row("SAFE rules", "disabled")

    candidate = semantic_query(tree)
    verdict = QualityGateValidator(config.gates).gate_a(candidate)

    for name, value in engine.technical_signals(tree).items():
        table.add_row(name.replace("_", " ").capitalize(), str(value))
    table.add_row("Bypass readability", str(engine.should_bypass_readability(tree)))
    table.add_row("Semantic candidate", candidate.tag if candidate is not None else "none")
    console.print(table)

    console.print(
        Panel(
            generate_report(verdict),
            title="Gate A",
            border_style="green" if verdict.passed else "red",
        )
    )


@cli.command()
@click.pass_context
def rules(ctx: click.Context) -> None:
    """List the registered filter rule sets."""
    config = _load_config(ctx)
    registry = RuleRegistry.default(config.filters.link_dense_list_threshold)
    enabled = config.filters.enabled_rule_sets

    for name in registry.names():
        rule_set = registry.get(name)
        state = "" if name in enabled else ", disabled"
        table = Table(title=f"{name} ({len(rule_set)} rules{state})")
        table.add_column("Selector", style="cyan")
        table.add_column("Action", style="magenta")
        table.add_column("Domains")
        table.add_column("Description")
        for rule in rule_set.rules:
            table.add_row(rule.selector, rule.action.value, ", ".join(rule.domains) or "*", rule.description)
        console.print(table)


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
