"""
pgcdc-inspect Entrypoint
Loads a stored source offset the way a restarting reader would and reports where it resumes
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import ValidationError

from pgcdc.cdc.conversions import format_lsn
from pgcdc.cdc.source_info import SourceInfo, SourceInfoError
from pgcdc.config.loader import load_config
from pgcdc.config.settings import CDCSettings
from pgcdc.models.offset import OFFSET_KEYS
from pgcdc.observability.logging import bind_source, configure_logging
from pgcdc.observability.metrics import start_metrics_server

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_UNREADABLE = 1
EXIT_INVALID = 2


def read_stored_offset(file_path: str) -> Dict[str, Any]:
    """
    Read a stored offset map from a JSON or YAML file

    Args:
        file_path: Path to the stored offset

    Returns:
        The stored offset map

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is not valid JSON/YAML
        ValueError: If the file does not hold a mapping
    """
    path = Path(file_path)
    with open(path, "r", encoding="utf-8") as f:
        # YAML is a superset of JSON
        stored = yaml.safe_load(f)

    if stored is None:
        return {}
    if not isinstance(stored, dict):
        raise ValueError(f"Stored offset must be a mapping: {file_path}")

    unknown = sorted(set(stored) - set(OFFSET_KEYS))
    if unknown:
        logger.warning("Stored offset has unknown keys", file=file_path, keys=unknown)

    return stored


def inspect_offset(config: CDCSettings, stored: Dict[str, Any]) -> Dict[str, Any]:
    """
    Load a stored offset into a fresh tracker and describe the result

    Raises:
        SourceInfoError: If the stored offset cannot be loaded
    """
    source_info = SourceInfo.from_settings(config.source)
    source_info.load(stored)

    recovery = source_info.as_recovery_state().to_dict()
    if source_info.lsn is not None:
        recovery["lsn_text"] = format_lsn(source_info.lsn)

    return {
        "partition": source_info.partition(),
        "offset": source_info.offset(),
        "recovery": recovery,
        "source_info": str(source_info),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgcdc-inspect",
        description="Inspect a stored Postgres CDC source offset",
    )
    parser.add_argument("checkpoint", help="JSON or YAML file holding the stored offset")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--server", help="Logical server name (overrides config)")
    parser.add_argument("--db", help="Database name (overrides config)")
    parser.add_argument("--log-level", help="Log level (overrides config)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entrypoint

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    configure_logging()

    overrides: Dict[str, Any] = {}
    source_overrides = {}
    if args.server:
        source_overrides["server_name"] = args.server
    if args.db:
        source_overrides["database_name"] = args.db
    if source_overrides:
        overrides["source"] = source_overrides
    if args.log_level:
        overrides["observability"] = {"log_level": args.log_level.upper()}

    try:
        config = load_config(args.config, overrides)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        logger.error("Invalid configuration", error=str(e))
        return EXIT_INVALID
    except FileNotFoundError as e:
        logger.error("Configuration file not found", error=str(e))
        return EXIT_UNREADABLE

    configure_logging(config.observability.log_level, config.observability.log_format)
    bind_source(config.source.server_name, config.source.database_name)

    if config.observability.enable_metrics:
        start_metrics_server(port=config.observability.metrics_port)

    try:
        stored = read_stored_offset(args.checkpoint)
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.error("Failed to read stored offset", file=args.checkpoint, error=str(e))
        return EXIT_UNREADABLE

    try:
        report = inspect_offset(config, stored)
    except SourceInfoError as e:
        logger.error("Stored offset cannot be loaded", file=args.checkpoint, error=str(e))
        return EXIT_INVALID

    print(json.dumps(report, indent=2, sort_keys=True))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
