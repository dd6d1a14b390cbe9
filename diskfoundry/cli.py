"""Command line entrypoint for diskfoundry.

Runs single operations against a disk from a YAML config, e.g.::

    diskfoundry --config disks.yaml --disk media ls avatars
    diskfoundry --config disks.yaml put reports/q1.pdf ./q1.pdf
    diskfoundry --config disks.yaml url --expires 600 reports/q1.pdf
"""

import argparse
import logging
import os
import sys
from datetime import timedelta
from typing import List, Optional

from diskfoundry import __version__
from diskfoundry.config import load_settings
from diskfoundry.driver import Driver
from diskfoundry.errors import FilesystemError
from diskfoundry.logging_config import failure_context, setup_logging
from diskfoundry.manager import FilesystemManager
from diskfoundry.registry import list_backends

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diskfoundry",
        description="Run file operations against a configured disk",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("DISKFOUNDRY_CONFIG"),
        help="Path to the YAML disk config (default: DISKFOUNDRY_CONFIG env var)",
    )
    parser.add_argument("--env-file", help="Optional .env file loaded before the config")
    parser.add_argument("--disk", help="Disk name (default: the configured default disk)")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose (DEBUG level) logging"
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Suppress all output except errors"
    )
    parser.add_argument(
        "--log-format",
        choices=["human", "json", "simple"],
        default=None,
        help="Log format (default: human). Can also set via DISKFOUNDRY_LOG_FORMAT env var",
    )
    parser.add_argument(
        "--version", action="version", version=f"diskfoundry {__version__}"
    )
    parser.add_argument(
        "--list-backends", action="store_true", help="List available disk types and exit"
    )
    parser.add_argument(
        "--list-disks", action="store_true", help="List the disks named in the config and exit"
    )

    commands = parser.add_subparsers(dest="command")

    ls = commands.add_parser("ls", help="List files and directories")
    ls.add_argument("directory", nargs="?", default=None)
    ls.add_argument("--recursive", "-r", action="store_true")

    cat = commands.add_parser("cat", help="Write a file's contents to stdout")
    cat.add_argument("path")

    put = commands.add_parser("put", help="Upload a local file")
    put.add_argument("path", help="Destination path on the disk")
    put.add_argument("source", help="Local file to upload")
    put.add_argument("--visibility", choices=["public", "private"])

    rm = commands.add_parser("rm", help="Delete files")
    rm.add_argument("paths", nargs="+")

    url = commands.add_parser("url", help="Print the URL of a file")
    url.add_argument("path")
    url.add_argument(
        "--expires", type=int, help="Print a temporary URL valid for this many seconds"
    )

    return parser


def run_command(driver: Driver, args: argparse.Namespace) -> int:
    """Run one subcommand on ``driver``; return the process exit code."""
    if args.command == "ls":
        directories = driver.directories(args.directory, args.recursive)
        files = driver.files(args.directory, args.recursive)
        for directory in directories:
            print(f"{directory}/")
        for path in files:
            print(path)
        return 0

    if args.command == "cat":
        stream = driver.read_stream(args.path)
        if stream is None:
            logger.error("Could not read '%s' from disk '%s'", args.path, driver.name)
            return 1
        try:
            for chunk in iter(lambda: stream.read(64 * 1024), b""):
                sys.stdout.buffer.write(chunk)
        finally:
            stream.close()
        sys.stdout.buffer.flush()
        return 0

    if args.command == "put":
        with open(args.source, "rb") as handle:
            ok = driver.put(args.path, handle, args.visibility)
        if not ok:
            logger.error("Upload of '%s' to disk '%s' failed", args.path, driver.name)
            return 1
        logger.info("Uploaded %s to %s:%s", args.source, driver.name, args.path)
        return 0

    if args.command == "rm":
        return 0 if driver.delete(*args.paths) else 1

    if args.command == "url":
        if args.expires:
            print(driver.temporary_url(args.path, timedelta(seconds=args.expires)))
        else:
            print(driver.url(args.path))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_backends:
        print("Available disk types:")
        for backend in list_backends():
            print(f"  - {backend}")
        print("\nNote: sftp, gcs and azure need extras, e.g. pip install diskfoundry[sftp]")
        return 0

    log_level = (
        logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.INFO
    )
    setup_logging(level=log_level, format_type=args.log_format, use_colors=True)

    if not args.config:
        parser.error("--config is required (or set DISKFOUNDRY_CONFIG)")

    try:
        manager = FilesystemManager(load_settings(args.config, env_file=args.env_file))

        if args.list_disks:
            for name in manager.list_disks():
                print(name)
            return 0

        if not args.command:
            parser.print_help()
            return 2

        return run_command(manager.disk(args.disk), args)
    except FilesystemError as exc:
        logger.error("%s", exc, extra=failure_context(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
