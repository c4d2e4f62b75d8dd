"""
Source Offset Data Model - Wire keys and value types for Postgres source positions

The key names below are part of the stored offset and of the per-record source
envelope. Renaming any of them breaks previously stored checkpoints.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

SERVER_NAME_KEY = "name"
SERVER_PARTITION_KEY = "server"
DB_NAME_KEY = "db"
TIMESTAMP_KEY = "ts_usec"
TXID_KEY = "txId"
XMIN_KEY = "xmin"
LSN_KEY = "lsn"
SCHEMA_NAME_KEY = "schema"
TABLE_NAME_KEY = "table"
SNAPSHOT_KEY = "snapshot"
LAST_SNAPSHOT_RECORD_KEY = "last_snapshot_record"

# Keys that may appear in a stored offset
OFFSET_KEYS = (
    TIMESTAMP_KEY,
    TXID_KEY,
    LSN_KEY,
    XMIN_KEY,
    SNAPSHOT_KEY,
    LAST_SNAPSHOT_RECORD_KEY,
)

_INT64 = {"type": "integer", "minimum": -(2**63), "maximum": 2**63 - 1}

# JSON Schema of the source envelope attached to every change record
SOURCE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "pgcdc.postgresql.Source",
    "type": "object",
    "properties": {
        SERVER_NAME_KEY: {"type": "string", "minLength": 1},
        DB_NAME_KEY: {"type": "string", "minLength": 1},
        TIMESTAMP_KEY: _INT64,
        TXID_KEY: _INT64,
        LSN_KEY: _INT64,
        SCHEMA_NAME_KEY: {"type": "string", "minLength": 1},
        TABLE_NAME_KEY: {"type": "string", "minLength": 1},
        SNAPSHOT_KEY: {"type": "boolean"},
        LAST_SNAPSHOT_RECORD_KEY: {"type": ["boolean", "null"]},
        XMIN_KEY: _INT64,
    },
    "required": [SERVER_NAME_KEY, DB_NAME_KEY, SCHEMA_NAME_KEY, TABLE_NAME_KEY],
    "dependencies": {
        LAST_SNAPSHOT_RECORD_KEY: [SNAPSHOT_KEY],
    },
    "additionalProperties": False,
}


@dataclass(frozen=True)
class TableId:
    """
    Identifies the table a change record belongs to

    Attributes:
        schema: Postgres schema name (e.g., "public"); None if unknown
        table: Table name (e.g., "orders"); None if unknown
    """

    schema: Optional[str]
    table: Optional[str]

    @classmethod
    def parse(cls, text: str) -> "TableId":
        """
        Build a TableId from dotted "schema.table" text

        A bare name without a dot is taken as the table with no schema.
        """
        if not text:
            raise ValueError("table identifier must be non-empty")

        schema, sep, table = text.rpartition(".")
        if not sep:
            return cls(schema=None, table=table)
        return cls(schema=schema or None, table=table or None)

    def __str__(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.table}"
        return str(self.table)


@dataclass(frozen=True)
class RecoveryState:
    """
    Read-only view of the fields needed to resume streaming after a restart

    Attributes:
        lsn: Last consumed log sequence number (None if unknown)
        tx_id: Transaction id associated with lsn
        xmin: Slot xmin at the time of the snapshot
        commit_time: Commit time of the last transaction (UTC)
        snapshot_in_effect: Whether an unfinished snapshot must be resumed
        last_snapshot_record: Whether the final snapshot record was already
            reached (only set while a snapshot is in effect)
    """

    lsn: Optional[int]
    tx_id: Optional[int]
    xmin: Optional[int]
    commit_time: Optional[datetime]
    snapshot_in_effect: bool
    last_snapshot_record: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for logging and CLI output)"""
        return {
            "lsn": self.lsn,
            "tx_id": self.tx_id,
            "xmin": self.xmin,
            "commit_time": self.commit_time.isoformat() if self.commit_time else None,
            "snapshot_in_effect": self.snapshot_in_effect,
            "last_snapshot_record": self.last_snapshot_record,
        }
