"""
Unit tests for timestamp and LSN conversions, and the TableId value type
"""

from datetime import datetime, timedelta, timezone

import pytest

from pgcdc.cdc.conversions import format_lsn, from_epoch_micros, parse_lsn, to_epoch_micros
from pgcdc.models.offset import TableId


class TestTimestampConversions:
    """Test microsecond epoch conversions"""

    def test_to_epoch_micros(self, commit_time, commit_micros):
        assert to_epoch_micros(commit_time) == commit_micros

    def test_epoch_is_zero(self):
        assert to_epoch_micros(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_other_timezone_normalized(self, commit_micros):
        cet = timezone(timedelta(hours=1))
        local = datetime(2024, 1, 15, 11, 30, 0, 123, tzinfo=cet)

        assert to_epoch_micros(local) == commit_micros

    def test_pre_epoch_is_negative(self):
        assert to_epoch_micros(datetime(1969, 12, 31, 23, 59, 59, tzinfo=timezone.utc)) == -1_000_000

    def test_from_epoch_micros(self, commit_time, commit_micros):
        result = from_epoch_micros(commit_micros)

        assert result == commit_time
        assert result.tzinfo is not None

    def test_none_passes_through(self):
        assert to_epoch_micros(None) is None
        assert from_epoch_micros(None) is None


class TestLsnFormat:
    """Test Postgres X/X LSN text format"""

    @pytest.mark.parametrize(
        "lsn,text",
        [
            (0, "0/0"),
            (0x16B3748, "0/16B3748"),
            ((0x16 << 32) | 0xB374D848, "16/B374D848"),
            (2**64 - 1, "FFFFFFFF/FFFFFFFF"),
        ],
    )
    def test_format_and_parse(self, lsn, text):
        assert format_lsn(lsn) == text
        assert parse_lsn(text) == lsn

    def test_parse_lowercase(self):
        assert parse_lsn("16/b374d848") == (0x16 << 32) | 0xB374D848

    @pytest.mark.parametrize("text", ["", "16", "16/", "/B3", "xyz/1", "100000000/0", "-1/0"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            parse_lsn(text)


class TestTableId:
    """Test TableId parsing and rendering"""

    def test_parse_schema_and_table(self):
        assert TableId.parse("public.orders") == TableId(schema="public", table="orders")

    def test_parse_bare_table(self):
        assert TableId.parse("orders") == TableId(schema=None, table="orders")

    def test_parse_empty_rejected(self):
        with pytest.raises(ValueError):
            TableId.parse("")

    def test_str(self):
        assert str(TableId(schema="public", table="orders")) == "public.orders"
        assert str(TableId(schema=None, table="orders")) == "orders"

    def test_frozen(self):
        table_id = TableId(schema="public", table="orders")

        with pytest.raises(AttributeError):
            table_id.table = "other"
