"""CLI command handlers for jobstream.

Each public function corresponds to a CLI subcommand and encapsulates
the wiring, orchestration, and output for that command.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys

from jobstream.config import Settings, load_settings
from jobstream.logging import configure_file_logging, logger


def _load(args: argparse.Namespace) -> Settings:
    settings = load_settings(getattr(args, "config", None))
    if getattr(args, "headed", False):
        settings.scraper.headless = False
    max_pages = getattr(args, "max_pages", None)
    if max_pages is not None:
        settings.scraper.max_pages = max_pages
    return settings


def handle_scrape(args: argparse.Namespace) -> None:
    """Traverse every result page and publish new listings to the stream."""
    from jobstream.pipeline.runner import PipelineRunner

    settings = _load(args)
    file_handler = configure_file_logging(args.log_dir or settings.output.log_dir)
    runner = PipelineRunner(settings)

    try:
        result = asyncio.run(runner.run())
    finally:
        logger.removeHandler(file_handler)
        file_handler.close()

    print(f"\n{'=' * 60}")
    print(" Scrape Summary")
    print(f"{'=' * 60}")
    print(f" Stream:          {settings.stream.stream_name}")
    print(f" Results (site):  {result.filtered_total} filtered / {result.unfiltered_total} total")
    print(f" Pages visited:   {result.pages_visited}")
    print(f" Listings seen:   {result.listings_seen}")
    print(f" Published:       {result.published}")
    print(f" Duplicates:      {result.duplicates}")
    print(f" Skipped:         {result.skipped}")
    print(f" Failed:          {result.failed}")
    print(f" Undated:         {result.undated}")
    print(f"{'=' * 60}\n")

    if result.error is not None:
        print(f"Run aborted: {result.error.error}")
        if result.error.suggestion:
            print(f"  {result.error.suggestion}")
        sys.exit(1)


def handle_init_group(args: argparse.Namespace) -> None:
    """Create the consumer group (and stream) if they do not exist yet."""
    from jobstream.pipeline.runner import PipelineRunner

    settings = _load(args)
    outcome = asyncio.run(PipelineRunner(settings).init_group())
    print(
        f"Consumer group '{settings.stream.group_name}' on "
        f"'{settings.stream.stream_name}': {outcome.value}"
    )


def handle_show_config(args: argparse.Namespace) -> None:
    """Print the resolved settings as JSON."""
    settings = _load(args)
    print(json.dumps(dataclasses.asdict(settings), indent=2))


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="jobstream",
        description="Scrape job listings and publish each one exactly once to a Redis stream",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def _config_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--config",
            type=str,
            default=None,
            metavar="PATH",
            help="Settings TOML (default: config/settings.toml if present, then environment)",
        )

    # -- scrape --------------------------------------------------------------
    scrape_p = sub.add_parser("scrape", help="Crawl all result pages and publish new listings")
    _config_arg(scrape_p)
    scrape_p.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    scrape_p.add_argument(
        "--max-pages",
        type=int,
        default=None,
        metavar="N",
        help="Stop after N result pages (default: all)",
    )
    scrape_p.add_argument(
        "--log-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory for the timestamped run log (default: output.log_dir)",
    )

    # -- init-group ----------------------------------------------------------
    init_p = sub.add_parser("init-group", help="Create the consumer group on the stream")
    _config_arg(init_p)

    # -- show-config ---------------------------------------------------------
    show_p = sub.add_parser("show-config", help="Print the resolved settings")
    _config_arg(show_p)

    return parser
