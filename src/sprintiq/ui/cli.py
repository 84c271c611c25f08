from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

import uvicorn
from dotenv import load_dotenv

from sprintiq.adapters.tawos import IssueFileError, load_issue_file
from sprintiq.app import build_services, count_stories, search_stories, train_stories
from sprintiq.config import ConfigurationError, IngestConfig, configure_logging, get_ingest_config
from sprintiq.config.api import DEFAULT_API_HOST, DEFAULT_API_PORT

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from sprintiq.app import Services
    from sprintiq.domain.ingest_pipeline import IngestReport
    from sprintiq.domain.model import RawIssue, StoryMatch

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train and query SprintiQ user stories")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a TAWOS JSON export as training stories")
    ingest.add_argument("file", type=Path, help="JSON file holding an array of TAWOS issues")
    ingest.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Number of embeddings requested concurrently (defaults to config)",
    )
    ingest.add_argument(
        "--batch-delay",
        type=float,
        default=None,
        help="Seconds to wait between embedding batches (defaults to config)",
    )

    search = subparsers.add_parser("search", help="Search stored stories by similarity")
    search.add_argument("query", type=str, help="Free-text query")
    search.add_argument(
        "--top-k",
        type=int,
        default=None,
        help="Maximum number of matches to return (defaults to config)",
    )

    subparsers.add_parser("stats", help="Print the number of stored training stories")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=DEFAULT_API_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_API_PORT)

    return parser.parse_args(list(argv))


def _ingest_config(args: argparse.Namespace) -> IngestConfig:
    defaults = get_ingest_config()
    batch_size = defaults.batch_size if args.batch_size is None else args.batch_size
    batch_delay = defaults.batch_delay_seconds if args.batch_delay is None else args.batch_delay
    if batch_size < 1:
        raise ValueError("Batch size must be at least 1")
    if batch_delay < 0:
        raise ValueError("Batch delay must be non-negative")
    return IngestConfig(batch_size=batch_size, batch_delay_seconds=batch_delay)


async def _run_ingest(issues: list[RawIssue], services: Services) -> IngestReport:
    try:
        return await train_stories(issues, services=services)
    finally:
        await services.aclose()


async def _run_search(query: str, services: Services, top_k: int | None) -> list[StoryMatch]:
    try:
        return await search_stories(query, services=services, top_k=top_k)
    finally:
        await services.aclose()


async def _run_stats(services: Services) -> int:
    try:
        return await count_stories(services=services)
    finally:
        await services.aclose()


def _print_matches(matches: list[StoryMatch]) -> None:
    if not matches:
        print("No similar stories found")  # noqa: T201
        return
    for match in matches:
        metadata = match.story.metadata
        print(  # noqa: T201
            f"{match.similarity:.3f}  {metadata.original_issue_key}  {metadata.title}"
            f"  [{metadata.complexity}]"
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        issues: list[RawIssue] = []
        ingest_config: IngestConfig | None = None
        if parsed_args.command == "ingest":
            ingest_config = _ingest_config(parsed_args)
            issues = load_issue_file(parsed_args.file)
            if not issues:
                raise ValueError(f"{parsed_args.file} holds no issues")  # noqa: TRY301
        elif parsed_args.command == "search" and parsed_args.top_k is not None:
            if parsed_args.top_k < 1:
                raise ValueError("--top-k must be at least 1")  # noqa: TRY301
    except (ValueError, IssueFileError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "ingest":
            report = asyncio.run(_run_ingest(issues, build_services(ingest=ingest_config)))
            log.info(
                f"Ingest finished: processed={report.total_processed}, "
                f"stored={report.total_success}, failed={report.total_failed}, "
                f"duplicate_in_file={report.duplicate_in_file}, "
                f"duplicate_in_db={report.duplicate_in_db}, new={report.new_count}"
            )
        elif parsed_args.command == "search":
            matches = asyncio.run(
                _run_search(parsed_args.query, build_services(), parsed_args.top_k)
            )
            _print_matches(matches)
        elif parsed_args.command == "stats":
            total = asyncio.run(_run_stats(build_services()))
            print(f"{total} stories stored")  # noqa: T201
        elif parsed_args.command == "serve":
            uvicorn.run(
                "sprintiq.api.app:create_app",
                factory=True,
                host=parsed_args.host,
                port=parsed_args.port,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
