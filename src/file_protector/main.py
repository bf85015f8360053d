"""Main entry point for file-protector."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .batch import BatchProtector
from .config import ProtectorConfig
from .dpapi import default_protector
from .errors import PlatformProtectionError
from .protector import Verdict

LOGGER_NAME = "file-protector"


def _existing_path(value: str) -> Path:
    path = Path(value)
    if not path.exists():
        raise argparse.ArgumentTypeError(f"path does not exist: {value}")
    return path


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from None
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse. Uses sys.argv if None.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="file-protector",
        description="Protects files by encrypting them with a Windows user specific key.",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Target selection shared by protect and scan
    selection = argparse.ArgumentParser(add_help=False)
    selection.add_argument(
        "targets",
        nargs="+",
        type=_existing_path,
        help="The files or folders to protect",
    )
    selection.add_argument(
        "--no-encrypt",
        action="store_true",
        help="Prevent files from being encrypted",
    )
    selection.add_argument(
        "--no-decrypt",
        action="store_true",
        help="Prevent files from being decrypted",
    )
    selection.add_argument(
        "--search",
        "-s",
        default=None,
        help="Search pattern when protecting folders (supports wildcards, default: *)",
    )
    selection.add_argument(
        "--include-subdirectories",
        action="store_true",
        help="Include subdirectories when protecting folders",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.required = True

    protect_parser = subparsers.add_parser(
        "protect",
        parents=[selection],
        help="Encrypt plain files and decrypt .enc files",
    )
    protect_parser.add_argument(
        "--password",
        "-p",
        default=None,
        help="The password to protect the files with",
    )
    protect_parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        help="Seconds allowed per file",
    )
    protect_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing output files",
    )
    protect_parser.add_argument(
        "--pause",
        action="store_true",
        help="Wait for Enter before exiting when a file failed",
    )

    subparsers.add_parser(
        "scan",
        parents=[selection],
        help="Show what protect would do without changing anything",
    )

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser.parse_args(argv)


def apply_overrides(config: ProtectorConfig, args: argparse.Namespace) -> ProtectorConfig:
    """Apply command line flags on top of the loaded configuration."""
    if args.log_level:
        config.log_level = args.log_level.upper()
    if getattr(args, "search", None) is not None:
        config.search_pattern = args.search
    if getattr(args, "include_subdirectories", False):
        config.recursive = True
    if getattr(args, "no_encrypt", False):
        config.encrypt = False
    if getattr(args, "no_decrypt", False):
        config.decrypt = False
    if getattr(args, "timeout", None) is not None:
        config.file_timeout = args.timeout
    if getattr(args, "overwrite", False):
        config.overwrite = True
    if getattr(args, "pause", False):
        config.pause_on_failure = True
    return config


def setup_logging(config: ProtectorConfig) -> logging.Logger:
    """Set up logging for a run.

    Args:
        config: Protector configuration.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If the configured log level is not a logging level name.

    """
    level = getattr(logging, config.log_level.upper(), None)
    if not isinstance(level, int):
        msg = f"Invalid log_level: {config.log_level}"
        raise ValueError(msg)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates on repeated setup
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def cmd_protect(config: ProtectorConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute protect command.

    Args:
        config: Protector configuration.
        args: Parsed arguments.
        logger: Logger instance.

    Returns:
        Exit code.

    """
    console = Console()

    try:
        data_protector = default_protector()
    except PlatformProtectionError as e:
        logger.error("%s", e)
        console.print(f"[red]{e}[/red]")
        return 1

    key = args.password.encode("utf-8") if args.password else None
    batch = BatchProtector(
        config.to_options(key),
        data_protector,
        logger,
        file_timeout=config.file_timeout,
        overwrite=config.overwrite,
    )

    no_errors = asyncio.run(batch.protect_all(args.targets))

    stats = batch.stats
    style = "green" if no_errors else "red"
    console.print(
        f"[{style}]Encrypted {stats.encrypted}, decrypted {stats.decrypted}, "
        f"skipped {stats.skipped}, errors {stats.errors}[/{style}]"
    )
    return 0 if no_errors else 1


class _NoopProtector:
    def protect(self, data: bytes, key: bytes | None) -> bytes:
        raise PlatformProtectionError("scan does not protect files")

    def unprotect(self, data: bytes, key: bytes | None) -> bytes:
        raise PlatformProtectionError("scan does not unprotect files")


def cmd_scan(config: ProtectorConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute scan command.

    Args:
        config: Protector configuration.
        args: Parsed arguments.
        logger: Logger instance.

    Returns:
        Exit code.

    """
    console = Console()

    # Planning never calls the platform protector
    batch = BatchProtector(config.to_options(), _NoopProtector(), logger)
    planned = batch.plan(args.targets)

    if not planned:
        console.print("[green]No matching files found[/green]")
        return 0

    table = Table(title=f"Found {len(planned)} files")
    table.add_column("File", style="cyan")
    table.add_column("Action", no_wrap=True)
    table.add_column("Destination", style="dim")

    labels = {
        Verdict.PROTECT: "[green]encrypt[/green]",
        Verdict.UNPROTECT: "[yellow]decrypt[/yellow]",
        Verdict.SKIP: "[dim]skip[/dim]",
    }
    for item in planned:
        action = f"[red]{item.error}[/red]" if item.error else labels[item.verdict]
        table.add_row(
            str(item.path),
            action,
            str(item.destination) if item.destination else "",
        )

    console.print(table)
    return 0


def cmd_config(config: ProtectorConfig, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        config: Protector configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()

    if args.init:
        config_path = args.config or ProtectorConfig.get_config_path()
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Search pattern", config.search_pattern)
        table.add_row("Include subdirectories", str(config.recursive))
        table.add_row("Encrypt", str(config.encrypt))
        table.add_row("Decrypt", str(config.decrypt))
        table.add_row("File timeout", f"{config.file_timeout}s")
        table.add_row("Overwrite", str(config.overwrite))
        table.add_row("Pause on failure", str(config.pause_on_failure))
        table.add_row("Log file", str(config.log_file) if config.log_file else "-")
        table.add_row("Log level", config.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def _pause(console: Console) -> None:
    """Keep the window open after a failure when run interactively."""
    if sys.stdin is not None and sys.stdin.isatty():
        console.input("Press Enter to continue...")


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    config = apply_overrides(ProtectorConfig.load(args.config), args)

    if args.command == "config":
        return cmd_config(config, args)

    logger = setup_logging(config)

    if args.command == "scan":
        return cmd_scan(config, args, logger)

    exit_code = cmd_protect(config, args, logger)
    if exit_code != 0 and config.pause_on_failure:
        _pause(Console())
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
