"""CLI entry point for visual testing."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from PIL import UnidentifiedImageError
from playwright.async_api import async_playwright
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from visual_testing.assertion import VisualAssertion
from visual_testing.comparison.pixel_differ import PixelDiffer
from visual_testing.errors import VisualTestingError
from visual_testing.models.config import ComparisonOptions, VisualTestingConfig
from visual_testing.storage.baseline_store import BaselineStore

console = Console()

DEFAULT_CONFIG = "visual-config.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> VisualTestingConfig:
    try:
        return VisualTestingConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'visual-testing init' to create a default config.")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression testing against stored baseline screenshots"""
    setup_logging(verbose)


@cli.command()
@click.option("--base-folder", default="./visual-baselines", help="Where baseline images are stored")
@click.option("--diff-folder", default="./visual-diffs", help="Where diff images are written on failure")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(base_folder: str, diff_folder: str, config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = VisualTestingConfig(base_folder=base_folder, diff_folder=diff_folder)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nCheck a page against its baseline with:")
    console.print("  [blue]visual-testing check https://example.com home[/blue]")


@cli.command()
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False))
@click.option("--diff", "diff_output", type=click.Path(dir_okay=False), help="Write a diff image here")
@click.option("--threshold", "-t", default=0.1, show_default=True, help="Per-pixel colour threshold (0-1)")
@click.option("--allowed", "-a", default=1.0, show_default=True, help="Allowed mismatched pixels, in percent")
@click.option("--include-aa", is_flag=True, help="Count anti-aliased edge pixels as changes")
def compare(
    baseline: str, candidate: str, diff_output: str | None, threshold: float, allowed: float, include_aa: bool
) -> None:
    """Compare two image files."""
    differ = PixelDiffer(threshold=threshold, include_aa=include_aa)
    try:
        result = differ.compare(Path(baseline).read_bytes(), Path(candidate).read_bytes())
    except VisualTestingError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except UnidentifiedImageError as e:
        console.print(f"[red]Could not read {baseline} or {candidate} as an image: {e}[/red]")
        sys.exit(1)

    if diff_output:
        Path(diff_output).parent.mkdir(parents=True, exist_ok=True)
        Path(diff_output).write_bytes(result.diff_png())
        console.print(f"Diff image: [blue]{diff_output}[/blue]")

    summary = (
        f"{result.mismatched_pixels}/{result.total_pixels} pixels changed "
        f"({result.mismatch_percent:.2f}%, max {allowed:.2f}% allowed)"
    )
    if result.exceeds(allowed):
        console.print(f"[red]Images differ:[/red] {summary}")
        sys.exit(1)
    console.print(f"[green]Images match:[/green] {summary}")


@cli.command()
@click.argument("url")
@click.argument("name")
@click.option("--update", is_flag=True, envvar="UPDATE_VISUALS", help="Write the baseline instead of comparing")
@click.option("--preserve-text", "preserve_texts", multiple=True, help="Selector whose text is kept from the baseline")
@click.option("--hide", "hide_elements", multiple=True, help="Selector of elements to hide while capturing")
@click.option("--allowed", "-a", default=1.0, show_default=True, help="Allowed mismatched pixels, in percent")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def check(
    url: str,
    name: str,
    update: bool,
    preserve_texts: tuple[str, ...],
    hide_elements: tuple[str, ...],
    allowed: float,
    config: str,
) -> None:
    """Open URL in Chromium and check it against baseline NAME."""
    cfg = _load_config(config)
    options = ComparisonOptions(
        allowed_mismatched_pixels_percent=allowed,
        preserve_texts=list(preserve_texts),
        hide_elements=list(hide_elements),
    )
    try:
        asyncio.run(_check_page(cfg, url, name, options, update))
    except VisualTestingError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if update:
        console.print(f"[green]Baseline updated:[/green] {name}")
    else:
        console.print(f"[green]No visual changes:[/green] {name}")


async def _check_page(
    cfg: VisualTestingConfig, url: str, name: str, options: ComparisonOptions, update: bool
) -> None:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            context = await browser.new_context(
                viewport={"width": cfg.viewport.width, "height": cfg.viewport.height},
            )
            page = await context.new_page()
            await page.goto(url, wait_until="networkidle")
            assertion = VisualAssertion.for_page(
                page, cfg.model_copy(update={"driver": "playwright"}), update_visuals=update
            )
            await assertion.dont_see_visual_changes(name, options)
        finally:
            await browser.close()


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baselines(config: str) -> None:
    """List stored baseline images."""
    cfg = _load_config(config)
    entries = BaselineStore.from_config(cfg).list_baselines()
    if not entries:
        console.print(f"[yellow]No baselines in {cfg.image_folder}[/yellow]")
        return

    table = Table(title=f"Baselines ({cfg.image_folder})")
    table.add_column("Name", style="bold")
    table.add_column("Size")
    table.add_column("Preserved texts")
    table.add_column("Hash")
    table.add_column("Last diff")
    for entry in entries:
        table.add_row(
            entry.name,
            f"{entry.width}x{entry.height}",
            str(entry.ignored_text_count),
            entry.image_hash[:12],
            f"[red]{entry.diff_path}[/red]" if entry.diff_path else "-",
        )
    console.print(table)


@cli.command("clean-diffs")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def clean_diffs(config: str) -> None:
    """Delete diff images left by failing comparisons."""
    cfg = _load_config(config)
    removed = BaselineStore.from_config(cfg).clear_diffs()
    console.print(f"[green]Removed {removed} diff image(s)[/green]")


if __name__ == "__main__":
    cli()
