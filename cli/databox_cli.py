"""FinanzOnline DataBox command line entry point.

Lists, downloads and syncs documents from the FinanzOnline DataBox. Settings
are read from CLI flags, FINANZONLINE__* environment variables, a .env file
and finanzonline.toml, in that order of priority.

Usage:
    finanzonline list [--erltyp B] [--days 30] [--all | --read]
    finanzonline download <applkey> [--output DIR]
    finanzonline sync [--output DIR] [--erltyp B] [--days 30] [--all]
"""

import argparse
import asyncio
import math
import sys
from typing import Any

import httpx

from cli.services.DataboxService import DataboxService, filter_entries, format_entry_line
from finanzonline.clients.databox.DataboxClient import DataboxClient
from finanzonline.clients.session.SessionClient import SessionClient
from finanzonline.errors import FinanzonlineError
from finanzonline.helper.HelperConfig import HelperConfig
from finanzonline.logging.logging_setup import setup_logging


def _parse_number(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number: {value}")
    if not math.isfinite(parsed):
        raise argparse.ArgumentTypeError(f"Invalid number: {value}")
    return parsed


def _parse_seconds(value: str) -> int:
    parsed = _parse_number(value)
    if not parsed.is_integer() or parsed <= 0:
        raise argparse.ArgumentTypeError(f"Invalid timeout: {value}")
    return int(parsed)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finanzonline", description="FinanzOnline DataBox CLI")
    parser.add_argument("--tid", help="Teilnehmer-ID")
    parser.add_argument("--benid", help="Benutzer-ID")
    parser.add_argument("--pin", help="PIN/Password")
    parser.add_argument("--herstellerid", help="Hersteller-ID (ATU...)")
    parser.add_argument("--output-dir", help="Default output directory")
    parser.add_argument("--session-timeout", type=_parse_seconds, help="Session timeout in seconds")
    parser.add_argument("--query-timeout", type=_parse_seconds, help="Query timeout in seconds")
    parser.add_argument("--config", help="Path to finanzonline.toml")

    commands = parser.add_subparsers(dest="command", required=True)

    list_parser = commands.add_parser("list", help="List documents in the DataBox")
    list_parser.add_argument("--erltyp", help="Filter by document type (B|M|I|P|EU)")
    list_parser.add_argument("--days", type=_parse_number, help="Only include documents delivered in last N days")
    read_group = list_parser.add_mutually_exclusive_group()
    read_group.add_argument("--all", action="store_true", help="Include both read and unread documents")
    read_group.add_argument("--read", action="store_true", help="Only include read documents")

    download_parser = commands.add_parser("download", help="Download a specific document by applkey")
    download_parser.add_argument("applkey", help="Document key")
    download_parser.add_argument("--output", help="Output directory")

    sync_parser = commands.add_parser("sync", help="Download all new documents")
    sync_parser.add_argument("--output", help="Output directory")
    sync_parser.add_argument("--erltyp", default="B", help="Filter by document type (default: B)")
    sync_parser.add_argument("--days", type=_parse_number, help="Only include documents delivered in last N days")
    sync_parser.add_argument("--all", action="store_true", help="Include both read and unread documents")

    return parser


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Collect the config values given on the command line."""
    return {
        "tid": args.tid,
        "benid": args.benid,
        "pin": args.pin,
        "herstellerid": args.herstellerid,
        "output_dir": args.output_dir,
        "session_timeout": args.session_timeout,
        "query_timeout": args.query_timeout,
    }


async def run_command(
    args: argparse.Namespace,
    helper_config: HelperConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Execute the parsed command. Returns the process exit code."""
    session_client = SessionClient(helper_config=helper_config, transport=transport)
    databox_client = DataboxClient(helper_config=helper_config, transport=transport)
    service = DataboxService(
        helper_config=helper_config,
        session_client=session_client,
        databox_client=databox_client,
    )

    try:
        await session_client.boot()
        await databox_client.boot()

        if args.command == "list":
            entries = await service.list_entries(erltyp=args.erltyp, days=args.days)
            filtered = filter_entries(entries, include_all=args.all, read_only=args.read)
            if not filtered:
                print("No entries found.")
            for entry in filtered:
                print(format_entry_line(entry))

        elif args.command == "download":
            output_path = await service.download_entry(args.applkey, output_dir=args.output)
            print(f"Saved {output_path}")

        elif args.command == "sync":
            saved = await service.do_sync(
                erltyp=args.erltyp,
                days=args.days,
                include_all=args.all,
                output_dir=args.output,
            )
            if not saved:
                print("No entries to sync.")
            for output_path in saved:
                print(f"Saved {output_path}")
    finally:
        await service.do_logout()
        await session_client.close()
        await databox_client.close()

    return 0


def main(argv: list[str] | None = None, transport: httpx.AsyncBaseTransport | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging()
    helper_config = HelperConfig(logger=logger, cli=cli_overrides(args), config_file=args.config)

    try:
        helper_config.get_config()
        return asyncio.run(run_command(args, helper_config, transport=transport))
    except FinanzonlineError as e:
        logger.debug("Command failed with %s", type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
