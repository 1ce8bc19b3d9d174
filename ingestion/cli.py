"""
Command line entry point for the GitHub Archive importer
"""

from typing import Optional, Sequence
import argparse
import asyncio
import logging
import sys

import httpx

from core.config import VERSION, ImportConfig, settings
from core.exceptions import ProvisioningError, UsageError
from core.logging import setup_logging
from core.sky_client import SkyClient
from ingestion.extractors.archive_extractor import ArchiveExtractor
from ingestion.hours import HourRange, parse_range
from ingestion.loaders.sky_loader import SkyLoader
from ingestion.runner import ImportRunner
from ingestion.provisioning import provision_table

logger = logging.getLogger(__name__)

USAGE = "gharchive-importer [OPTIONS] START_DATE [END_DATE]"


class ImporterArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors"""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    # -h is the host flag, so help is only available as --help
    parser = ImporterArgumentParser(
        prog="gharchive-importer",
        usage=USAGE,
        description="Import hourly GitHub Archive events into a Sky table.",
        add_help=False
    )
    parser.add_argument("dates", nargs="*", metavar="DATE",
                        help="START_DATE and optional END_DATE (RFC 3339)")
    parser.add_argument("-h", "--host", default=None,
                        help=f"the host the Sky server is running on (default {settings.SKY_HOST})")
    parser.add_argument("-p", "--port", type=int, default=None,
                        help=f"the port the Sky server is running on (default {settings.SKY_PORT})")
    parser.add_argument("-t", "--table", default=None,
                        help=f"the table to insert events into (default {settings.SKY_TABLE})")
    parser.add_argument("--overwrite", action="store_true",
                        help="overwrite an existing table if one exists")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="enable verbose logging")
    parser.add_argument("--archive-url", default=None,
                        help=f"archive base URL (default {settings.ARCHIVE_BASE_URL})")
    parser.add_argument("--decode-mode", choices=["lines", "stream"], default=None,
                        help=f"how records are delimited in an archive (default {settings.DECODE_MODE})")
    parser.add_argument("--sequential", action="store_true",
                        help="deliver each hour before fetching the next")
    parser.add_argument("--single-insert", dest="use_stream", action="store_false", default=None,
                        help="insert events one request at a time instead of streaming each hour")
    parser.add_argument("--queue-size", type=int, default=None,
                        help=f"hour batches held between fetch and delivery (default {settings.QUEUE_SIZE})")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--help", action="help", help="show this help message and exit")
    return parser


async def run_import(
    config: ImportConfig,
    hours: HourRange,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> int:
    """
    Provision the table and import every hour.

    One HTTP client is shared by the Sky connection and the archive
    downloads. Nothing is fetched unless provisioning succeeds.

    Returns:
        Process exit code
    """
    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as http:
        sky = SkyClient(config.host, config.port, http_client=http)
        try:
            table = await provision_table(sky, config)
        except ProvisioningError as e:
            logger.error(e.message, extra={"error_context": e.to_dict()})
            return 1

        runner = ImportRunner(
            extractor=ArchiveExtractor(http, config.archive_url),
            loader=SkyLoader(table, use_stream=config.use_stream),
            config=config
        )
        await runner.run(hours)

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    if len(args.dates) > 2:
        parser.error("expected at most two dates")

    try:
        hours = parse_range(args.dates)
        config = ImportConfig.from_settings(
            host=args.host,
            port=args.port,
            table=args.table,
            overwrite=args.overwrite,
            verbose=args.verbose,
            archive_url=args.archive_url,
            decode_mode=args.decode_mode,
            sequential=args.sequential,
            use_stream=args.use_stream,
            queue_size=args.queue_size
        )
    except UsageError as e:
        if not args.dates:
            parser.print_usage(sys.stderr)
        logger.error(e.message)
        return 1
    except ValueError as e:
        # pydantic.ValidationError for out of range flag values
        parser.print_usage(sys.stderr)
        logger.error(f"Invalid option: {e}")
        return 1

    logger.info(f"Importing {len(hours)} hour(s) starting {hours.start.isoformat()}")
    return asyncio.run(run_import(config, hours))


if __name__ == "__main__":
    sys.exit(main())
