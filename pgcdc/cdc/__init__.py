"""
CDC (Change Data Capture) module for tracking the Postgres WAL source position
"""

from pgcdc.cdc.conversions import format_lsn, from_epoch_micros, parse_lsn, to_epoch_micros
from pgcdc.cdc.source_info import (
    CorruptCheckpointError,
    InvalidSourceError,
    MissingCheckpointFieldError,
    SourceInfo,
    SourceInfoError,
    SourceInfoStateError,
)

__all__ = [
    "SourceInfo",
    "SourceInfoError",
    "InvalidSourceError",
    "CorruptCheckpointError",
    "MissingCheckpointFieldError",
    "SourceInfoStateError",
    "format_lsn",
    "parse_lsn",
    "to_epoch_micros",
    "from_epoch_micros",
]
