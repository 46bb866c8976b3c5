"""CLI entrypoint for the ISBN scanner."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

from catalog_sink import CATALOG_OUTPUT_PATH, CatalogSink, load_catalog, processed_paths
from classify_client import ClassifyClient
from config import DEFAULT_MIME_TYPES_PATH, ConfigError, load_mime_types, load_settings
from matching import STRATEGIES
from organizer import FileOrganizer, TransferMode
from pipeline import RunContext, RunSummary, discover_files, run_pipeline
from rate_limiter import RateLimited
from tika_client import TikaClient

LOGGER = logging.getLogger("isbn_scanner")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Find ISBNs in documents and build a catalog")
    parser.add_argument("-i", "--input", default=".", help="Directory to scan (recursively)")
    parser.add_argument("-c", "--catalog", default=None, help="JSON catalog to resume from and write")
    parser.add_argument("--config", default=None, help="TOML settings file")
    parser.add_argument("--mime-types", default=DEFAULT_MIME_TYPES_PATH, help="JSON map of file extension to MIME type")
    parser.add_argument("-o", "--output", default=None, help="Directory to place organized files in")
    parser.add_argument(
        "--match",
        choices=sorted(STRATEGIES),
        default="filename",
        help="How to choose between several matching works",
    )

    transfer = parser.add_mutually_exclusive_group()
    transfer.add_argument("-m", "--move", action="store_true", help="Move files instead of copying")
    transfer.add_argument("--dry-run", action="store_true", help="Only log where files would go")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Show informational output")
    verbosity.add_argument("-d", "--debug", action="store_true", help="Show debug output")
    args = parser.parse_args(argv)
    if args.catalog is None:
        # Read here rather than at import so values from .env apply.
        args.catalog = os.getenv("CATALOG_OUTPUT_PATH", CATALOG_OUTPUT_PATH)
    return args


def _log_level(args: argparse.Namespace) -> int:
    if args.debug:
        return logging.DEBUG
    if args.verbose:
        return logging.INFO
    return logging.WARNING


def _transfer_mode(args: argparse.Namespace) -> TransferMode:
    if args.dry_run:
        return TransferMode.DRY_RUN
    if args.move:
        return TransferMode.MOVE
    return TransferMode.COPY


def _install_signal_handlers(cancel_event: threading.Event) -> None:
    def _handle(signum: int, _frame: object) -> None:
        LOGGER.warning("Received signal %s, finishing in-flight files", signum)
        cancel_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run(args: argparse.Namespace, cancel_event: threading.Event | None = None) -> RunSummary:
    """Load settings, resume the catalog and scan the input directory.

    Raises ConfigError before any file is touched if setup fails.
    """
    input_dir = Path(args.input)
    if not input_dir.is_dir():
        raise ConfigError(f"Input directory not found: {input_dir}")

    settings = load_settings(args.config, required=args.config is not None)
    mime_types = load_mime_types(args.mime_types)

    catalog_path = Path(args.catalog)
    previous = load_catalog(catalog_path)

    organizer = None
    if args.output:
        organizer = FileOrganizer(args.output, _transfer_mode(args))

    context = RunContext(
        settings=settings,
        mime_types=mime_types,
        extractor=TikaClient(settings.tika_host, settings.tika_port),
        lookup=RateLimited(
            ClassifyClient(settings.classify_host, settings.classify_port, settings.classify_path),
            settings.classify_interval,
        ),
        sink=CatalogSink(previous),
        catalog_path=catalog_path,
        processed=processed_paths(previous),
        cancel_event=cancel_event or threading.Event(),
        logger=LOGGER,
        strategy=STRATEGIES[args.match](),
        organizer=organizer,
    )

    exclude = [catalog_path]
    if args.output:
        exclude.append(Path(args.output))
    files = discover_files(input_dir, exclude=exclude)
    LOGGER.info("Gathered %s file(s) under %s (%s already cataloged)", len(files), input_dir, len(context.processed))

    return run_pipeline(files, context)


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the scanner."""
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(level=_log_level(args), format="%(asctime)s %(levelname)s %(message)s")

    cancel_event = threading.Event()
    _install_signal_handlers(cancel_event)

    try:
        summary = run(args, cancel_event)
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("Fatal I/O error: %s", exc)
        return 1

    LOGGER.warning("Cataloged %s/%s file(s)", summary.recorded, summary.total)
    return 0


if __name__ == "__main__":
    sys.exit(main())
