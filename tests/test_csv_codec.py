"""Tests for CSV encoding and decoding."""

import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest

from dbadmin import csv_codec
from dbadmin.exceptions import ArchiveFormatError


class TestEncode:
    """Tests for cell and row encoding."""

    def test_encode_value_forms(self):
        assert csv_codec.encode_value(None) == ""
        assert csv_codec.encode_value(b"raw bytes") == "raw bytes"
        assert csv_codec.encode_value(date(2024, 1, 31)) == "2024-01-31"
        assert csv_codec.encode_value(datetime(2024, 1, 31, 8, 30)) == "2024-01-31T08:30:00"
        assert csv_codec.encode_value(True) == "True"
        assert csv_codec.encode_value(1.5) == "1.5"
        assert csv_codec.encode_value(Decimal("2.50")) == "2.50"
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert csv_codec.encode_value(value) == "12345678-1234-5678-1234-567812345678"

    def test_encode_rows_quotes_commas_and_quotes(self):
        text = csv_codec.encode_rows(["a", "b"], [("x,y", 'say "hi"'), (None, 3)])
        lines = text.splitlines()
        assert lines[0] == "a,b"
        assert lines[1] == '"x,y","say ""hi"""'
        assert lines[2] == ",3"

    def test_header_written_for_empty_row_set(self):
        assert csv_codec.encode_rows(["id", "name"], []).splitlines() == ["id,name"]

    def test_iter_encoded_matches_encode_rows(self):
        rows = [(1, "pen"), (2, "a,b")]
        assert "".join(csv_codec.iter_encoded(["id", "name"], rows)) == csv_codec.encode_rows(
            ["id", "name"], rows
        )


class TestDecode:
    """Tests for decode."""

    def test_decode_header_and_rows(self):
        header, rows = csv_codec.decode(b'id,name\n1,"a,b"\n2,\n')
        assert header == ["id", "name"]
        assert rows == [["1", "a,b"], ["2", ""]]

    def test_decode_strips_utf8_bom(self):
        header, _ = csv_codec.decode(b"\xef\xbb\xbfid,name\n")
        assert header == ["id", "name"]

    def test_decode_skips_blank_lines(self):
        _, rows = csv_codec.decode("id\n1\n\n2\n")
        assert rows == [["1"], ["2"]]

    @pytest.mark.parametrize(
        "content",
        [
            b"",
            b"\n1,2\n",
            b"id,2bad\n1,2\n",
            b"id,ID\n1,2\n",
            b"id,name\n1\n",
            b"\xff\xfe\x00garbage",
        ],
    )
    def test_decode_rejects_bad_input(self, content):
        with pytest.raises(ArchiveFormatError):
            csv_codec.decode(content)


class TestRestoreStatements:
    """Tests for the SQL built from decoded rows."""

    def test_sql_literal_doubles_quotes(self):
        assert csv_codec.sql_literal("O'Brien") == "'O''Brien'"

    def test_null_token_is_sql_null(self):
        assert csv_codec.sql_literal("NULL") == "NULL"
        assert csv_codec.sql_literal("") == "''"

    def test_build_text_table(self):
        assert (
            csv_codec.build_text_table("items", ["id", "name"])
            == 'CREATE TABLE "items" ("id" TEXT, "name" TEXT)'
        )

    def test_build_insert(self):
        sql = csv_codec.build_insert("items", ["id", "name"], ["1", "it's"])
        assert sql == "INSERT INTO \"items\" (\"id\", \"name\") VALUES ('1', 'it''s')"

    def test_bind_cells(self):
        values = csv_codec.bind_cells(["", "", "NULL", "x"], [True, False, True, False])
        assert values == ["", None, None, "x"]
