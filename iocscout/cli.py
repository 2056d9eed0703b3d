"""Click CLI with Rich output."""

from __future__ import annotations

import json as json_lib
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import DATA_DIR, MAX_RESULTS, MIN_REMAINING_REQUESTS, PER_PAGE, load_settings
from .extractor import IOC_CATEGORIES, extract_iocs

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose (DEBUG) logging.")
def cli(verbose: bool):
    """iocscout: hunt GitHub for threat-actor artifacts and IOCs."""
    _configure_logging(verbose)


@cli.command()
@click.argument("actor")
@click.option("--region", help="Extra search term for repository and code search (e.g. India).")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DATA_DIR,
    show_default=True,
    help="Directory for the JSON result files.",
)
@click.option("--per-page", type=click.IntRange(1, 100), default=PER_PAGE, show_default=True)
@click.option("--max-results", type=click.IntRange(min=1), default=MAX_RESULTS, show_default=True)
@click.option("--verify/--no-verify", default=False, help="Check extracted IOCs against AlienVault OTX.")
@click.option("--no-iocs", is_flag=True, help="Skip IOC extraction for code and issues.")
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Load credentials from this .env file.")
def scan(
    actor: str,
    region: str | None,
    output_dir: Path,
    per_page: int,
    max_results: int,
    verify: bool,
    no_iocs: bool,
    env_file: Path | None,
):
    """Search GitHub repositories, code and issues for ACTOR (e.g. APT41)."""
    from rich.progress import Progress

    from .pipeline import run

    settings = load_settings(env_file)
    if not settings.github_token:
        console.print(
            "[yellow]No GITHUB_TOKEN set; using unauthenticated (low quota) access.[/yellow]"
        )

    if verify and no_iocs:
        raise click.UsageError("--verify needs IOC extraction; drop --no-iocs.")

    with Progress(console=console) as progress:
        task = progress.add_task(f"Scanning GitHub for {actor}...", total=None)

        def on_progress(msg: str):
            progress.update(task, description=msg)

        try:
            summary = run(
                settings,
                actor,
                region=region,
                output_dir=output_dir,
                verify=verify,
                extract=not no_iocs,
                per_page=per_page,
                max_results=max_results,
                progress_callback=on_progress,
            )
        except OSError as exc:
            progress.stop()
            err_console.print(f"[red bold]Failed to write results:[/red bold] {exc}")
            raise SystemExit(1)

        progress.update(task, description="Done", completed=True)

    table = Table(title=f"Results for {actor}", show_header=True, header_style="bold")
    table.add_column("Surface")
    table.add_column("Records", justify="right")
    table.add_column("File")

    for result in summary.surfaces:
        table.add_row(result.surface, str(len(result.records)), str(result.output_path))

    console.print(table)

    if summary.extracted_iocs is not None:
        _print_ioc_counts("Extracted IOCs", summary.extracted_iocs)
    if summary.verified_iocs is not None:
        _print_ioc_counts("Verified IOCs", summary.verified_iocs)

    console.print(f"\n[green]Done![/green] Wrote {len(summary.written)} files to {output_dir}")


def _print_ioc_counts(title: str, iocs: dict[str, list[str]]) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Type", style="bold")
    table.add_column("Count", justify="right")
    for category in IOC_CATEGORIES:
        table.add_row(category, str(len(iocs.get(category, []))))
    console.print(table)


@cli.command()
@click.argument("text", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def extract(text: str | None, as_json: bool):
    """Extract IOCs from TEXT (or stdin when omitted)."""
    if text is None:
        text = click.get_text_stream("stdin").read()

    iocs = extract_iocs(text)

    if as_json:
        click.echo(json_lib.dumps(iocs, indent=2))
        return

    if not iocs:
        console.print("[green]No IOCs found.[/green]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Type")
    table.add_column("Value")

    for category, values in iocs.items():
        for value in values:
            table.add_row(category, value)

    console.print(table)


@cli.command()
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Load credentials from this .env file.")
def quota(env_file: Path | None):
    """Show the remaining GitHub API request budget."""
    from .github import check_rate_limit, make_github_session

    settings = load_settings(env_file)
    with make_github_session(settings) as session:
        remaining = check_rate_limit(session)

    style = "red" if remaining < MIN_REMAINING_REQUESTS else "green"
    auth = "authenticated" if settings.github_token else "unauthenticated"
    console.print(f"[{style}]{remaining}[/{style}] requests remaining ({auth})")
