"""Command-line entry point: ``python -m scraper_analytics`` / ``scraper-analytics``."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

import dotenv
import uvicorn

from scraper_analytics import app as app_mod
from scraper_analytics import config
from scraper_analytics import server as server_mod
from scraper_analytics.utils import logger


def build_parser(settings: config.ServerSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scraper-analytics",
        description="MCP server that loads websites in a headless browser and reports their network traffic.",
    )
    parser.add_argument(
        "--http",
        action="store_true",
        default=settings.transport == "http",
        help="Serve MCP over streamable HTTP instead of stdio",
    )
    parser.add_argument("--host", default=settings.host, help="Interface for the HTTP listener")
    parser.add_argument("--port", type=int, default=settings.port, help="Port for the HTTP listener")
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=settings.verbose,
        help="Log at DEBUG level and append log lines to the log file",
    )
    parser.add_argument("--log-file", default=None, help=f"Log file path (default when verbose: {settings.log_file})")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        type=str.upper,
        help=f"Minimum log level (default: {settings.log_level})",
    )
    return parser


def configure_logging(args: argparse.Namespace, settings: config.ServerSettings) -> None:
    """Apply the CLI's level and log-file choices to every logger."""
    level = args.log_level or ("DEBUG" if args.verbose else settings.log_level)
    log_file = args.log_file or (settings.log_file if args.verbose else None)
    logger.configure(level=level, log_file=log_file)


def main(argv: Sequence[str] | None = None) -> int:
    dotenv.load_dotenv()
    settings = config.get_server_settings()
    args = build_parser(settings).parse_args(argv)
    configure_logging(args, settings)

    server = server_mod.ScraperMCPServer()
    if args.http:
        uvicorn.run(app_mod.create_app(server), host=args.host, port=args.port, log_level="warning")
    else:
        asyncio.run(server.run_stdio())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
