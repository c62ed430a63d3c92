#!/usr/bin/env python3
"""
Commit Crawler CLI Tool
Part of the Commit Crawler Service

Usage:
    commit-crawler head /path/to/repo
    commit-crawler fingerprint /path/to/repo --json > known.json
    commit-crawler crawl /path/to/repo --known known.json --jsonl
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config.settings import settings
from shared.events import LoggingReporter
from shared.exceptions import CrawlerError
from shared.models import Fingerprint, ModelConverter
from services.commit_crawler.main import CommitCrawlerService

# Rich console for human-readable output; logs go to stderr
console = Console()


def configure_logging(verbose: bool = False):
    level = logging.DEBUG if verbose or settings.debug else getattr(logging, settings.monitoring.log_level)
    logging.basicConfig(level=level, format=settings.monitoring.log_format)


def build_service() -> CommitCrawlerService:
    return CommitCrawlerService(reporter=LoggingReporter())


def load_known_rehashes(path: str) -> list:
    """Read rehashes from a fingerprint JSON document."""
    return Fingerprint.model_validate_json(Path(path).read_text(encoding="utf-8")).rehashes


def fail(message: str):
    console.print(f"[red]❌ Error: {message}[/red]")
    sys.exit(1)


def display_commit_table(rows: list, title: str = "📋 Crawled Commits"):
    """Display crawled commit summaries in a table."""
    if not rows:
        console.print(Panel("No new commits found.", title=title))
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Hash", style="green", width=10)
    table.add_column("Author", style="yellow")
    table.add_column("Message", style="white", max_width=40)
    table.add_column("Files", style="cyan", justify="right")
    table.add_column("+", style="green", justify="right")
    table.add_column("-", style="red", justify="right")

    for row in rows:
        table.add_row(
            row["hash"][:8],
            row["author"],
            row["message"],
            str(len(row["changed_files"])),
            str(row["additions"]),
            str(row["deletions"]),
        )

    console.print(table)


@click.group()
@click.version_option(version=settings.version, prog_name=settings.app_name)
def cli():
    """Commit Crawler CLI - crawl Git history into line-level diffs."""
    pass


@cli.command()
@click.argument('repo_path', type=click.Path(exists=True, file_okay=False))
def head(repo_path: str):
    """Show the head revision a crawl would start from."""
    configure_logging()
    try:
        resolution = build_service().resolve_head(repo_path)
    except ValueError as e:
        fail(str(e))

    if not resolution.ok:
        fail(str(resolution.error))

    content = Text()
    content.append(f"Revision: {resolution.revision}\n")
    content.append(f"Reference: {resolution.ref}\n")
    content.append(f"Source: {resolution.source.value}")
    console.print(Panel(content, title="🎯 Crawl Head", border_style="green"))


@cli.command()
@click.argument('repo_path', type=click.Path(exists=True, file_okay=False))
@click.option('--json', 'as_json', is_flag=True, help='Print the fingerprint as JSON')
def fingerprint(repo_path: str, as_json: bool):
    """Rehash every commit on the default branch and collect author emails."""
    configure_logging()
    try:
        result = build_service().fingerprint(repo_path)
    except (CrawlerError, ValueError) as e:
        fail(str(e))

    if as_json:
        click.echo(result.model_dump_json())
        return

    console.print(Panel(
        f"Commits: {len(result.rehashes)}\nAuthors: {len(result.emails)}",
        title="🔏 Fingerprint",
        border_style="blue",
    ))
    for email in sorted(result.emails):
        console.print(f"  {email}")


@cli.command()
@click.argument('repo_path', type=click.Path(exists=True, file_okay=False))
@click.option('--known', '-k', type=click.Path(exists=True, dir_okay=False),
              help='Fingerprint JSON from an earlier run; crawl only newer commits')
@click.option('--limit', '-l', type=click.IntRange(min=1), help='Maximum number of commits')
@click.option('--jsonl', is_flag=True, help='Print one JSON document per commit')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def crawl(repo_path: str, known: Optional[str], limit: Optional[int], jsonl: bool, verbose: bool):
    """Crawl the default branch and report per-commit diff statistics."""
    configure_logging(verbose)
    service = build_service()

    rows = []
    try:
        known_rehashes = load_known_rehashes(known) if known else None
        for commit in service.crawl(repo_path, known_rehashes=known_rehashes, limit=limit):
            if jsonl:
                click.echo(commit.model_dump_json())
            else:
                rows.append(ModelConverter.commit_to_summary(commit))
    except (CrawlerError, ValueError) as e:
        fail(str(e))

    if not jsonl:
        display_commit_table(rows)
        total_added = sum(r["additions"] for r in rows)
        total_deleted = sum(r["deletions"] for r in rows)
        console.print(f"[dim]{len(rows)} commits, +{total_added} -{total_deleted}[/dim]")


if __name__ == "__main__":
    cli()
