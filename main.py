"""Market Intel — Entry Point.

Usage:
    # Profile from a JSON file
    python main.py market-intel --input profile.json

    # Inline profile
    python main.py market-intel --audience "online course creators" \\
        --pain "can't get leads, ads are too expensive" \\
        --problem "course creators struggling to generate leads" --emotion successful

    # Limit quotes and choose where the report goes
    python main.py market-intel --input profile.json --count 15 --output report.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

import config
from pipeline.market_intel import run_market_intelligence
from schemas.market_intel import MarketIntelligenceReport, ReportStatus

console = Console()

_STATUS_STYLES = {
    ReportStatus.ALIGNED_EVIDENCE: "green",
    ReportStatus.SENTIMENT_ONLY: "yellow",
    ReportStatus.OFF_TOPIC: "yellow",
    ReportStatus.NO_DATA: "red",
}


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_profile(args: argparse.Namespace) -> dict:
    """Build the profile dict from a JSON file or CLI flags."""
    if args.input:
        path = Path(args.input)
        if not path.exists():
            console.print(f"[red]Input file not found: {path}[/red]")
            sys.exit(1)
        data = json.loads(path.read_text())
        # Accept either a bare profile or {"profile": {...}, "quote_count": N}.
        if isinstance(data, dict) and isinstance(data.get("profile"), dict):
            if args.count is None and data.get("quote_count"):
                args.count = int(data["quote_count"])
            return data["profile"]
        return data

    profile = {
        "pain_points": args.pain or "",
        "target_audience": args.audience or "",
        "problem": args.problem or "",
    }
    if args.emotion:
        profile["primary_emotion"] = args.emotion
    return profile


def _output_path(args: argparse.Namespace) -> Path:
    if args.output:
        return Path(args.output)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return config.OUTPUT_DIR / f"market_intel_{stamp}.json"


def print_report(report: MarketIntelligenceReport):
    style = _STATUS_STYLES.get(report.status, "white")
    stats = report.source_stats
    console.print(
        Panel(
            f"[bold]Status:[/bold] [{style}]{report.status.value}[/{style}]\n"
            f"[bold]Queries ({report.query_origin.value}):[/bold] {', '.join(report.queries)}\n"
            f"[bold]Quotes:[/bold] {stats.total_quotes} "
            f"(YouTube {stats.video_comment_quotes}, discussions {stats.discussion_quotes})  "
            f"[bold]Reddit posts:[/bold] {stats.reddit_posts_analyzed}\n"
            f"[bold]Pain intensity:[/bold] {report.sentiment.pain_intensity}/10 "
            f"({report.sentiment.urgency.value} urgency)  "
            f"[bold]Top emotions:[/bold] {', '.join(e.value for e in report.sentiment.top_emotions) or '-'}\n\n"
            f"{report.reasoning}",
            title="Market Intelligence",
            border_style=style,
        )
    )

    if report.quotes:
        table = Table(show_lines=False)
        table.add_column("Score", justify="right")
        table.add_column("Six S")
        table.add_column("Source")
        table.add_column("Quote", overflow="fold")
        for quote in report.quotes:
            text = quote.text if len(quote.text) <= 160 else quote.text[:157] + "..."
            table.add_row(
                str(quote.relevance_score),
                quote.emotional_tone.value,
                quote.source_subtype.value,
                text,
            )
        console.print(table)

    if report.people_also_ask:
        console.print("\n[bold]People Also Ask[/bold] [dim](generated, not quotes)[/dim]")
        for item in report.people_also_ask:
            console.print(f"  • {item.question}")


def run_market_intel_cmd(args: argparse.Namespace) -> MarketIntelligenceReport | None:
    try:
        profile = load_profile(args)
    except ValueError as exc:
        console.print(f"[red]Could not read profile: {exc}[/red]")
        sys.exit(2)
    count = args.count if args.count is not None else config.MARKET_INTEL_DEFAULT_QUOTE_COUNT

    console.print(
        Panel(
            "[bold]MARKET INTEL[/bold]\n"
            f"Collecting up to {count} quotes",
            border_style="bright_magenta",
        )
    )

    try:
        report = run_market_intelligence(profile, count)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(2)

    print_report(report)

    output_path = _output_path(args)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(report.model_dump_json(indent=2), "utf-8")
    console.print(f"\n[green]Output saved:[/green] {output_path}")
    return report


def main():
    parser = argparse.ArgumentParser(
        description="Market Intel: voice-of-customer research for a customer profile",
    )
    subparsers = parser.add_subparsers(dest="command")

    mi = subparsers.add_parser(
        "market-intel", help="Collect, score and summarize market quotes for a profile"
    )
    mi.add_argument("--input", "-i", help="Path to JSON profile file")
    mi.add_argument("--pain", help="Pain points in the customer's words")
    mi.add_argument("--audience", "-a", help="Target audience description")
    mi.add_argument("--problem", "-p", help="Core problem being validated")
    mi.add_argument("--emotion", "-e", help="Primary Six S emotion (e.g. safe, successful)")
    mi.add_argument("--count", "-c", type=int, help="Maximum quotes in the report")
    mi.add_argument("--output", "-o", help="Where to write the report JSON")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging()

    if args.command == "market-intel":
        run_market_intel_cmd(args)


if __name__ == "__main__":
    main()
