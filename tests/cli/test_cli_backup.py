"""Tests for the backup command group."""

import json

import respx
from httpx import Response
from typer.testing import CliRunner

from dbadmin_cli.main import app


runner = CliRunner()
API = "http://test-api/api"


class TestFullBackup:
    """Tests for dbadmin backup full/restore."""

    @respx.mock
    def test_full_backup_uses_server_filename(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        respx.get(f"{API}/backup").mock(
            return_value=Response(
                200,
                content=b"PK\x05\x06" + b"\x00" * 18,
                headers={"content-disposition": "attachment; filename=db_backup.zip"},
            )
        )

        result = runner.invoke(app, ["backup", "full"])

        assert result.exit_code == 0
        assert (tmp_path / "db_backup.zip").read_bytes().startswith(b"PK")
        assert "Backup saved to db_backup.zip" in result.stdout

    @respx.mock
    def test_full_backup_to_output_path(self, tmp_path):
        respx.get(f"{API}/backup").mock(return_value=Response(200, content=b"zipdata"))
        target = tmp_path / "nightly.zip"

        result = runner.invoke(app, ["--json", "backup", "full", "-o", str(target)])

        assert result.exit_code == 0
        assert target.read_bytes() == b"zipdata"
        assert json.loads(result.stdout) == {"file": str(target)}

    @respx.mock
    def test_restore_uploads_backup_field(self, tmp_path):
        archive = tmp_path / "db_backup.zip"
        archive.write_bytes(b"zipdata")
        route = respx.post(f"{API}/restore").mock(
            return_value=Response(
                200,
                json={"status": "restored", "tables": ["items", "notes"], "metadata_restored": 2},
            )
        )

        result = runner.invoke(app, ["backup", "restore", str(archive)])

        assert result.exit_code == 0
        assert "Restored 2 table(s): items, notes" in result.stdout
        assert b'name="backup"' in route.calls.last.request.read()

    def test_restore_missing_file(self, tmp_path):
        result = runner.invoke(app, ["backup", "restore", str(tmp_path / "nope.zip")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    @respx.mock
    def test_restore_rejected_archive(self, tmp_path):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"not a zip")
        respx.post(f"{API}/restore").mock(
            return_value=Response(
                400,
                json={"detail": {"error": "invalid_archive",
                                 "message": "Backup is not a valid ZIP archive",
                                 "details": {}}},
            )
        )

        result = runner.invoke(app, ["backup", "restore", str(archive)])

        assert result.exit_code == 1
        assert "not a valid ZIP archive" in result.output


class TestTableBackup:
    """Tests for dbadmin backup table/restore-table."""

    @respx.mock
    def test_table_backup_writes_csv(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        respx.get(f"{API}/tables/items/backup").mock(
            return_value=Response(
                200,
                content=b"id,name\n1,pen\n",
                headers={
                    "content-disposition":
                        'attachment; filename="items_backup_20240101_120000.csv"',
                },
            )
        )

        result = runner.invoke(app, ["backup", "table", "items"])

        assert result.exit_code == 0
        assert (tmp_path / "items_backup_20240101_120000.csv").read_text() == "id,name\n1,pen\n"

    @respx.mock
    def test_table_backup_missing_table(self, tmp_path):
        respx.get(f"{API}/tables/missing/backup").mock(
            return_value=Response(
                404,
                json={"detail": {"error": "table_not_found",
                                 "message": "Table missing not found",
                                 "details": {"table_name": "missing"}}},
            )
        )

        result = runner.invoke(app, ["backup", "table", "missing", "-o", str(tmp_path / "x.csv")])

        assert result.exit_code == 1
        assert "Table missing not found" in result.output
        assert not (tmp_path / "x.csv").exists()

    @respx.mock
    def test_restore_table_uploads_file_field(self, tmp_path):
        csv_file = tmp_path / "items.csv"
        csv_file.write_text("id,name\n1,pen\n")
        route = respx.post(f"{API}/tables/items/restore").mock(
            return_value=Response(200, json={"status": "restored", "table": "items", "rows": 1})
        )

        result = runner.invoke(app, ["backup", "restore-table", "items", str(csv_file)])

        assert result.exit_code == 0
        assert "Restored 1 row(s) into 'items'" in result.stdout
        assert b'name="file"' in route.calls.last.request.read()
