from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

import yaml

from core.app_version import get_app_version
from core.config import AppConfig, load_app_config
from core.enums import OutputFormat
from core.logging import configure_logging, get_logger, resolve_level
from extractors.callbacks import LoggingCallbacks
from extractors.exceptions import CollectionError, RegistryError
from extractors.system.taskbar import RegipyRegistryReader, collect, discover_user_hives
from extractors.system.taskbar.export import dump_csv, dump_json, write_csv, write_json

LOGGER = get_logger("app.main")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_COLLECTION_FAILED = 2


def _parse_user_hive(spec: str) -> tuple[str, Path]:
    sid, sep, path = spec.partition("=")
    if not sep or not sid or not path:
        raise argparse.ArgumentTypeError(f"expected SID=PATH, got '{spec}'")
    return sid, Path(path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskbar-usage",
        description="Extract taskbar FeatureUsage counters from offline Windows registry hives.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_app_version()}")
    parser.add_argument("--system", type=Path, help="Path to the SYSTEM hive")
    parser.add_argument("--software", type=Path, help="Path to the SOFTWARE hive")
    parser.add_argument(
        "--user",
        dest="users",
        action="append",
        type=_parse_user_hive,
        default=[],
        metavar="SID=NTUSER.DAT",
        help="User hive to read (repeatable)",
    )
    parser.add_argument(
        "--mount-root",
        type=Path,
        help="Mounted system volume; user hives are located through ProfileList (requires --software)",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=Path.cwd(),
        help="Directory holding config/config.yml and logs/ (default: current directory)",
    )
    parser.add_argument("--format", choices=[f.value for f in OutputFormat], help="Output format")
    parser.add_argument("--output", type=Path, help="Output file (default: stdout)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _resolve_user_hives(args: argparse.Namespace) -> Dict[str, Path]:
    user_hives: Dict[str, Path] = {}
    if args.mount_root is not None:
        if args.software is None:
            raise ValueError("--mount-root requires --software")
        user_hives.update(discover_user_hives(args.software, args.mount_root))
    # Explicit --user entries override discovered ones
    user_hives.update(dict(args.users))
    return user_hives


def _setup_logging(config: AppConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else resolve_level(config.logging.level)
    configure_logging(
        config.logs_dir,
        level=level,
        max_bytes=config.logging.app_log_max_mb * 1024 * 1024,
        backup_count=config.logging.app_log_backup_count,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_app_config(args.base_dir)
    except (ValueError, yaml.YAMLError) as e:
        LOGGER.error("Invalid configuration under %s: %s", args.base_dir, e)
        return EXIT_USAGE
    _setup_logging(config, args.verbose)
    LOGGER.debug("Effective configuration: %s", config.to_json())
    output_format = OutputFormat(args.format or config.taskbar.output_format)

    try:
        user_hives = _resolve_user_hives(args)
    except (ValueError, RegistryError) as e:
        LOGGER.error("Cannot locate user hives: %s", e)
        return EXIT_USAGE
    if not user_hives:
        LOGGER.error("No user hives given; use --user SID=NTUSER.DAT or --mount-root")
        return EXIT_USAGE

    registry = RegipyRegistryReader(
        system_hive=args.system,
        software_hive=args.software,
        user_hives=user_hives,
    )
    callbacks = LoggingCallbacks(config.taskbar.soft_failure_level)

    try:
        records = collect(registry, callbacks=callbacks, config=config.taskbar)
    except CollectionError as e:
        LOGGER.error("Taskbar collection failed: %s", e)
        return EXIT_COLLECTION_FAILED

    if callbacks.soft_failures:
        LOGGER.info("%d registry key(s)/value(s) were skipped", callbacks.soft_failures)

    if args.output is not None:
        writer = write_csv if output_format == OutputFormat.CSV else write_json
        writer(records, args.output)
    elif output_format == OutputFormat.CSV:
        dump_csv(records, sys.stdout)
    else:
        dump_json(records, sys.stdout)
    return EXIT_OK

