"""
Source Position Tracking for the Postgres WAL reader

Tracks which server is being read, the last consumed WAL position and whether
the reader is inside the initial snapshot.

The partition identifies the source stream and is the key under which
checkpoints are stored:

    {"server": "production-server"}

The offset is the stored value. It holds the LSN, transaction id, slot xmin and
commit time of the last consumed event; while a snapshot runs it also carries
the snapshot markers:

    {"ts_usec": 1465937, "lsn": 99490, "txId": 123, "snapshot": true,
     "last_snapshot_record": false}

The source envelope attached to every change record is the offset plus the
server, database, schema and table names.

Not thread safe: a single reader owns each instance and serializes all mutations.
"""

import numbers
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import structlog

from pgcdc.cdc.conversions import format_lsn, from_epoch_micros, to_epoch_micros
from pgcdc.config.settings import SourceSettings
from pgcdc.models.offset import (
    DB_NAME_KEY,
    LAST_SNAPSHOT_RECORD_KEY,
    LSN_KEY,
    SCHEMA_NAME_KEY,
    SERVER_NAME_KEY,
    SERVER_PARTITION_KEY,
    SNAPSHOT_KEY,
    TABLE_NAME_KEY,
    TIMESTAMP_KEY,
    TXID_KEY,
    XMIN_KEY,
    RecoveryState,
    TableId,
)
from pgcdc.observability import metrics
from pgcdc.observability.logging import log_snapshot_transition

logger = structlog.get_logger(__name__)


class SourceInfoError(Exception):
    """Base exception for source position tracking"""

    pass


class InvalidSourceError(SourceInfoError, ValueError):
    """Raised when the source identity (server or database name) is missing"""

    pass


class CorruptCheckpointError(SourceInfoError):
    """Raised when a stored offset holds a value that cannot be used"""

    def __init__(self, field: str, value: Any = None, message: Optional[str] = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message or f"Stored offset field '{field}' is not an integer: {value!r}")


class MissingCheckpointFieldError(CorruptCheckpointError):
    """Raised when a stored offset lacks a field required to resume"""

    def __init__(self, field: str) -> None:
        super().__init__(field, message=f"Stored offset is missing required field '{field}'")


class SourceInfoStateError(SourceInfoError):
    """Raised when the source envelope is requested before any table context is known"""

    pass


def _coerce_int(field: str, value: Any) -> int:
    """Coerce a stored offset value to int, rejecting anything non-integral"""
    if isinstance(value, bool):
        raise CorruptCheckpointError(field, value)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real) and float(value).is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as e:
            raise CorruptCheckpointError(field, value) from e
    raise CorruptCheckpointError(field, value)


def _optional_int(stored: Mapping[str, Any], field: str) -> Optional[int]:
    value = stored.get(field)
    if value is None:
        return None
    return _coerce_int(field, value)


def _required_int(stored: Mapping[str, Any], field: str) -> int:
    if stored.get(field) is None:
        raise MissingCheckpointFieldError(field)
    return _coerce_int(field, stored[field])


class SourceInfo:
    """
    Position tracker for one Postgres source

    Attributes:
        server_name: Logical server name, the checkpoint partition key
        db_name: Database being read on that server
    """

    def __init__(self, server_name: str, db_name: str):
        """
        Initialize source position tracker

        Args:
            server_name: Logical server name
            db_name: Database name

        Raises:
            InvalidSourceError: If either name is empty
        """
        if not server_name:
            raise InvalidSourceError("server_name must be non-empty")
        if not db_name:
            raise InvalidSourceError("db_name must be non-empty")

        self._server_name = server_name
        self._db_name = db_name
        self._partition: Dict[str, str] = {SERVER_PARTITION_KEY: server_name}

        self._lsn: Optional[int] = None
        self._tx_id: Optional[int] = None
        self._xmin: Optional[int] = None
        self._commit_micros: Optional[int] = None
        self._snapshot = False
        self._last_snapshot_record: Optional[bool] = None
        self._schema_name: Optional[str] = None
        self._table_name: Optional[str] = None

        logger.debug("SourceInfo initialized", server=server_name, db=db_name)

    @classmethod
    def from_settings(cls, settings: SourceSettings) -> "SourceInfo":
        """Create a tracker from SourceSettings"""
        return cls(settings.server_name, settings.database_name)

    @property
    def server_name(self) -> str:
        return self._server_name

    @property
    def db_name(self) -> str:
        return self._db_name

    @property
    def lsn(self) -> Optional[int]:
        return self._lsn

    @property
    def tx_id(self) -> Optional[int]:
        return self._tx_id

    @property
    def xmin(self) -> Optional[int]:
        return self._xmin

    @property
    def commit_micros(self) -> Optional[int]:
        return self._commit_micros

    @property
    def schema_name(self) -> Optional[str]:
        return self._schema_name

    @property
    def table_name(self) -> Optional[str]:
        return self._table_name

    def has_last_known_position(self) -> bool:
        """Whether an LSN has been consumed or restored"""
        return self._lsn is not None

    def load(self, stored_offset: Mapping[str, Any]) -> None:
        """
        Restore position from a previously stored offset

        The snapshot flag is recovered from the presence of the "snapshot" key,
        not from its value: any stored snapshot marker means the reader must
        resume an unfinished snapshot.

        Args:
            stored_offset: Offset map as produced by offset()

        Raises:
            MissingCheckpointFieldError: If lsn or txId is absent
            CorruptCheckpointError: If a stored value is not an integer
        """
        lsn = _required_int(stored_offset, LSN_KEY)
        tx_id = _required_int(stored_offset, TXID_KEY)
        xmin = _optional_int(stored_offset, XMIN_KEY)
        commit_micros = _optional_int(stored_offset, TIMESTAMP_KEY)

        snapshot = SNAPSHOT_KEY in stored_offset
        last_snapshot_record: Optional[bool] = None
        if snapshot:
            last_snapshot_record = stored_offset.get(LAST_SNAPSHOT_RECORD_KEY)
            if last_snapshot_record is not None and not isinstance(last_snapshot_record, bool):
                raise CorruptCheckpointError(
                    LAST_SNAPSHOT_RECORD_KEY,
                    last_snapshot_record,
                    f"Stored offset field '{LAST_SNAPSHOT_RECORD_KEY}' is not a boolean: "
                    f"{last_snapshot_record!r}",
                )

        self._lsn = lsn
        self._tx_id = tx_id
        self._xmin = xmin
        self._commit_micros = commit_micros
        self._snapshot = snapshot
        self._last_snapshot_record = last_snapshot_record

        metrics.increment_checkpoints_loaded(self._server_name)
        metrics.set_snapshot_in_effect(self._server_name, self.is_snapshot_in_effect())

        logger.info(
            "Stored offset loaded",
            server=self._server_name,
            lsn=format_lsn(lsn),
            tx_id=tx_id,
            snapshot=snapshot,
            last_snapshot_record=last_snapshot_record,
        )

    def partition(self) -> Dict[str, str]:
        """
        Get the source partition, the storage key of this source's offsets

        Every database read through one logical server shares this partition.

        Returns:
            {"server": server_name}; never empty
        """
        return dict(self._partition)

    def offset(self) -> Dict[str, Any]:
        """
        Get the current offset, the value stored as checkpoint

        Only fields that are set are included. Snapshot markers are present
        only while a snapshot is running.

        Returns:
            A fresh dictionary; later updates never modify it
        """
        result: Dict[str, Any] = {}
        if self._commit_micros is not None:
            result[TIMESTAMP_KEY] = self._commit_micros
        if self._tx_id is not None:
            result[TXID_KEY] = self._tx_id
        if self._lsn is not None:
            result[LSN_KEY] = self._lsn
        if self._xmin is not None:
            result[XMIN_KEY] = self._xmin
        if self._snapshot:
            result[SNAPSHOT_KEY] = True
            result[LAST_SNAPSHOT_RECORD_KEY] = self._last_snapshot_record
        return result

    checkpoint = offset

    def as_recovery_state(self) -> RecoveryState:
        """Fields needed to pick where streaming resumes"""
        return RecoveryState(
            lsn=self._lsn,
            tx_id=self._tx_id,
            xmin=self._xmin,
            commit_time=from_epoch_micros(self._commit_micros),
            snapshot_in_effect=self.is_snapshot_in_effect(),
            last_snapshot_record=self._last_snapshot_record if self._snapshot else None,
        )

    def update(
        self,
        lsn: Optional[int],
        commit_time: Optional[datetime],
        tx_id: Optional[int],
        table_id: Optional[TableId] = None,
        xmin: Optional[int] = None,
    ) -> "SourceInfo":
        """
        Update the position with a received or read event

        Position fields are overwritten, so None clears a value. The table
        context only changes when table_id carries a schema or table name.

        Args:
            lsn: WAL position of the event; None if not available
            commit_time: Commit time of the transaction that produced the event
            tx_id: Id of that transaction; None if not available
            table_id: Table the event belongs to; may be None
            xmin: Slot xmin; may be None

        Returns:
            This instance
        """
        self._lsn = lsn
        self._commit_micros = to_epoch_micros(commit_time)
        self._tx_id = tx_id
        self._xmin = xmin
        self._update_table(table_id)

        metrics.record_position(self._server_name, lsn, self._commit_micros)
        logger.debug(
            "Source position updated",
            lsn=lsn,
            tx_id=tx_id,
            xmin=xmin,
            table=str(table_id) if table_id else None,
        )
        return self

    def update_timestamp(
        self, commit_micros: Optional[int], table_id: Optional[TableId] = None
    ) -> "SourceInfo":
        """
        Update commit time and table context only (heartbeats, metadata events)

        LSN, transaction id and xmin are left untouched.
        """
        self._commit_micros = commit_micros
        self._update_table(table_id)

        metrics.record_timestamp(self._server_name, commit_micros)
        return self

    def _update_table(self, table_id: Optional[TableId]) -> None:
        # Sticky: missing components keep the previous table context
        if table_id is None:
            return
        if table_id.schema:
            self._schema_name = table_id.schema
        if table_id.table:
            self._table_name = table_id.table

    def start_snapshot(self) -> None:
        """Denote that a snapshot is being (or has been) started"""
        self._snapshot = True
        self._last_snapshot_record = False

        metrics.set_snapshot_in_effect(self._server_name, True)
        log_snapshot_transition(logger, "started", self._server_name, self._lsn, True)

    def mark_last_snapshot_record(self) -> "SourceInfo":
        """
        Flag the current record as the last one of the snapshot

        The snapshot is still in effect for this record; it ends with
        complete_snapshot().
        """
        if not self._snapshot:
            logger.debug("Last snapshot record marked outside of a snapshot", server=self._server_name)

        self._last_snapshot_record = True

        log_snapshot_transition(
            logger, "last_record", self._server_name, self._lsn, self.is_snapshot_in_effect()
        )
        return self

    def complete_snapshot(self) -> None:
        """Denote that a snapshot has completed successfully"""
        self._snapshot = False

        metrics.set_snapshot_in_effect(self._server_name, False)
        log_snapshot_transition(logger, "completed", self._server_name, self._lsn, False)

    def is_snapshot_in_effect(self) -> bool:
        """
        Determine whether a snapshot is in effect, meaning it was started and has not completed

        The record marked as last snapshot record is still part of the
        snapshot; only events after complete_snapshot() see False.
        """
        return self._snapshot

    def source(self) -> Dict[str, Any]:
        """
        Get the source envelope attached to each emitted change record

        Must be called after update() has established a table context.

        Returns:
            Server, database, schema and table names merged with offset()

        Raises:
            SourceInfoStateError: If the schema or table name is not known yet
        """
        if self._schema_name is None or self._table_name is None:
            raise SourceInfoStateError(
                f"Source envelope requested for server '{self._server_name}' before any table "
                f"context was set; call update() with a table id first"
            )

        result: Dict[str, Any] = {
            SERVER_NAME_KEY: self._server_name,
            DB_NAME_KEY: self._db_name,
            SCHEMA_NAME_KEY: self._schema_name,
            TABLE_NAME_KEY: self._table_name,
        }
        result.update(self.offset())
        return result

    event_envelope = source

    def __str__(self) -> str:
        parts = [f"server='{self._server_name}'", f"db='{self._db_name}'"]
        if self._lsn is not None:
            parts.append(f"lsn={format_lsn(self._lsn)}")
        if self._tx_id is not None:
            parts.append(f"txId={self._tx_id}")
        if self._xmin is not None:
            parts.append(f"xmin={self._xmin}")
        if self._commit_micros is not None:
            parts.append(f"useconds={self._commit_micros}")
        snapshot_in_effect = self.is_snapshot_in_effect()
        parts.append(f"snapshot={snapshot_in_effect}")
        if snapshot_in_effect:
            parts.append(f"last_snapshot_record={self._last_snapshot_record}")
        if self._schema_name is not None:
            parts.append(f"schema={self._schema_name}")
        if self._table_name is not None:
            parts.append(f"table={self._table_name}")
        return "source_info[" + ", ".join(parts) + "]"

    __repr__ = __str__
