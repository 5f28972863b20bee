"""
main.py
-------
CLI entry point for access-log-analyzer.

Usage
-----
    python main.py                                  # all queries, default log
    python main.py --log access.log --query top-ips --top 5
    python main.py --log access.log --query unique-ips --verbose

Options
-------
    --log        PATH   Access log file (default: LOG_FILE from .env)
    --query      NAME   unique-ips | top-paths | top-ips | all  (default: all)
    --top        INT    How many rank tiers to show (default: TOP_N from .env)
    --verbose           Enable DEBUG-level logging

The file is scanned (VirusTotal when VIRUSTOTAL_API_KEY is set, otherwise the
simulated scanner) before it is parsed; a file that fails the scan ends the
run with exit code 1.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# ── project imports ──────────────────────────────────────────────────────────
# Support both  python main.py  (project root) and installed package layout
sys.path.insert(0, str(Path(__file__).parent))

from config import settings
from accesslog.gate import FileIntegrityGate
from accesslog.queries import LogQueries, UnusableLogError
from accesslog.ranking import EmptyInputError, RankedGroup
from scanners.factory import create_scan_service

console = Console()

QUERIES = ("unique-ips", "top-paths", "top-ips", "all")


class ProcessLifecycle:
    """Ends the process when the log file cannot be used."""

    def exit(self) -> None:
        console.print("[bold red]✖ Unable to read log file.[/bold red] Exiting program…")
        sys.exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# CLI definition
# ─────────────────────────────────────────────────────────────────────────────

@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--log", "-l",
    default=settings.LOG_FILE,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Path to the access log file.",
)
@click.option(
    "--query", "-q",
    default="all",
    show_default=True,
    type=click.Choice(QUERIES),
    help="Which query to run.",
)
@click.option(
    "--top", "-n",
    default=settings.TOP_N,
    show_default=True,
    type=click.IntRange(1, 100),
    help="Number of rank tiers to display for top-N queries.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable DEBUG-level logging.",
)
def main(log: str, query: str, top: int, verbose: bool) -> None:
    """🔍 Access Log Analyzer — scan, parse, and rank."""

    # ── Logging setup ─────────────────────────────────────────────────────
    logging.basicConfig(
        level   = logging.DEBUG if verbose else logging.WARNING,
        format  = "%(levelname)s  %(name)s  %(message)s",
        stream  = sys.stderr,
    )

    console.rule("[bold cyan]Access Log Analyzer[/bold cyan]")

    if settings.is_virustotal_configured():
        console.print("[green]✔[/green] Files are scanned with [bold]VirusTotal[/bold]")
    else:
        console.print("[dim]ℹ VIRUSTOTAL_API_KEY not set — using the simulated scanner.[/dim]")

    scanner = create_scan_service(settings.VIRUSTOTAL_API_KEY, timeout=settings.VIRUSTOTAL_TIMEOUT)
    queries = LogQueries(FileIntegrityGate(scanner), ProcessLifecycle(), log)

    try:
        if query in ("unique-ips", "all"):
            with console.status("[cyan]Scanning and parsing log file…[/cyan]"):
                ips = queries.unique_ips()
            _render_unique_ips(ips)

        if query in ("top-paths", "all"):
            with console.status("[cyan]Ranking visited URLs…[/cyan]"):
                groups = queries.top_visited_paths(top)
            _render_rank_groups(groups, f"🗂 Top {top} Visited URLs", "Most visited URLs:")

        if query in ("top-ips", "all"):
            with console.status("[cyan]Ranking active IPs…[/cyan]"):
                groups = queries.top_active_ips(top)
            _render_rank_groups(groups, f"🌐 Top {top} Most Active IPs", "Most active IP addresses:")

    except FileNotFoundError as exc:
        console.print(f"[bold red]✖ Cannot read log file:[/bold red] {exc}")
        sys.exit(1)
    except EmptyInputError as exc:
        console.print(f"[bold red]✖ {exc}[/bold red]")
        sys.exit(1)
    except UnusableLogError:
        sys.exit(1)

    console.rule()


# ─────────────────────────────────────────────────────────────────────────────
# Rich rendering helpers
# ─────────────────────────────────────────────────────────────────────────────

def ordinal(number: int) -> str:
    """1 → '1st', 2 → '2nd', 11 → '11th', 23 → '23rd'."""
    if number % 100 in (11, 12, 13):
        return f"{number}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def _render_unique_ips(ips: list[str | None]) -> None:
    console.print(f"\nThere are [bold]{len(ips):,}[/bold] unique IP addresses in the log file")

    tbl = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold blue")
    tbl.add_column("#",          justify="right", width=4, style="dim")
    tbl.add_column("IP Address", style="bold cyan", min_width=20)

    for idx, ip in enumerate(ips, 1):
        tbl.add_row(str(idx), ip if ip is not None else "—")

    console.print(Panel(tbl, title="[bold]🌐 Unique IP Addresses[/bold]",
                         border_style="blue", expand=False))


def _render_rank_groups(groups: list[RankedGroup], title: str, heading: str) -> None:
    console.print(f"\n{heading}")

    if not groups:
        console.print("[yellow]⚠ No matching entries in the log file.[/yellow]")
        return

    tbl = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold blue")
    tbl.add_column("Rank",  justify="right", width=6, style="bold")
    tbl.add_column("Hits",  justify="right", width=8)
    tbl.add_column("Items", style="cyan", ratio=1, no_wrap=False, overflow="fold")

    for group in groups:
        items = ", ".join(item if item is not None else "—" for item in group.items)
        tbl.add_row(ordinal(group.rank), f"{group.hit_count:,}", items)

    console.print(Panel(tbl, title=f"[bold]{title}[/bold]", border_style="blue", expand=False))


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
