"""Tests for the CLI check command and JSON log formatting."""

import json
import logging

from typer.testing import CliRunner

from modelvault.cli import app
from modelvault.common.logging import JSONFormatter

runner = CliRunner()


class TestCheckCommand:
    def test_accepts_valid_glb(self, tmp_path):
        path = tmp_path / "part.glb"
        path.write_bytes(b"glTF" + b"\x00" * 32)
        result = runner.invoke(app, ["check", str(path), "--class", "model"])
        assert result.exit_code == 0
        assert "ACCEPTED" in result.output

    def test_rejects_bad_signature(self, tmp_path):
        path = tmp_path / "part.glb"
        path.write_bytes(b"\x00" * 36)
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 1
        assert "signature_mismatch" in result.output

    def test_rejects_for_viewable(self, tmp_path):
        path = tmp_path / "part.stl"
        path.write_bytes(b"solid part")
        result = runner.invoke(app, ["check", str(path), "--class", "viewable"])
        assert result.exit_code == 1
        assert "extension_not_allowed" in result.output


class TestJSONFormatter:
    def test_includes_extra_fields(self):
        record = logging.makeLogRecord({
            "name": "modelvault.test", "levelname": "INFO", "msg": "Purchase recorded",
            "session_id": "sess_abc",
        })
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Purchase recorded"
        assert entry["session_id"] == "sess_abc"
        assert entry["level"] == "INFO"
