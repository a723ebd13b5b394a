"""Command-line interface for imagecache."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console

from . import __version__
from .core.engine import ImageCache
from .errors import ImageCacheError
from .logging_config import setup_logging
from .models.config import ImageCacheConfig


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="imagecache",
        description="Cache remote images on disk, keyed by a hash of their URL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Download (or read from cache) and save to a file
  imagecache get https://example.com/logo.png -o logo.png

  # Show how much is cached
  imagecache report

  # Use a project-local cache and delete it
  imagecache --cache-dir ./cache purge
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Cache directory (default: platform cache directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file",
    )
    parser.add_argument(
        "--expiry",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Re-fetch cached resources older than this",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Network timeout (default: none)",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    get = commands.add_parser("get", help="Resolve a URL through the cache")
    get.add_argument("url", help="URL of the resource")
    get.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write the bytes to this file (default: stdout)",
    )

    commands.add_parser("report", help="Show item count and size of the cache")
    commands.add_parser("restore", help="Count the files in the cache directory")
    commands.add_parser("purge", help="Delete the cache directory")

    return parser


def build_config(args: argparse.Namespace) -> ImageCacheConfig:
    """Merge the config file (if any) with command-line overrides."""
    config = ImageCacheConfig.from_yaml_file(args.config) if args.config else ImageCacheConfig()

    updates: dict = {}
    if args.cache_dir is not None:
        updates["cache_dir"] = args.cache_dir
    if args.expiry is not None:
        updates["expiry_seconds"] = args.expiry
    if args.verbose:
        updates["log_level"] = "DEBUG"
    elif args.quiet:
        updates["log_level"] = "ERROR"

    data = config.model_dump()
    data.update(updates)
    if args.timeout is not None:
        data["network"]["timeout"] = args.timeout
    return ImageCacheConfig.model_validate(data)


async def _get(config: ImageCacheConfig, url: str, output: Optional[Path], console: Console) -> int:
    async with ImageCache(config) as cache:
        data = await cache.resolve(url)

    if output is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    else:
        output.write_bytes(data)
        console.print(f"Wrote {len(data)} bytes to {output}")
    return 0


def run_command(args: argparse.Namespace, console: Console) -> int:
    """Run the selected subcommand."""
    try:
        config = build_config(args)
    except (ValidationError, OSError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    setup_logging(level=config.log_level, log_file=str(config.log_file) if config.log_file else None)

    try:
        if args.command == "get":
            return asyncio.run(_get(config, args.url, args.output, console))

        cache = ImageCache(config)
        if args.command == "report":
            console.print(cache.report())
        elif args.command == "restore":
            console.print(cache.restore())
        elif args.command == "purge":
            console.print(cache.purge())
        return 0

    except (ImageCacheError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Status goes to stderr; stdout may carry resource bytes
    console = Console(stderr=True)
    return run_command(args, console)


if __name__ == "__main__":
    sys.exit(main())
