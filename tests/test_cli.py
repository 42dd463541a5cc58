"""Tests for the citesync command line."""

import json

import pytest
from conftest import build_payload, reference_payload
from typer.testing import CliRunner

from citesync.cli import app

runner = CliRunner()


@pytest.fixture
def payload_file(tmp_path):
    """Payload on disk with [2], [1], [3] against three references."""
    path = tmp_path / "paper.json"
    payload = build_payload(["[2]", "[1]", "[3]"], [reference_payload(n) for n in (1, 2, 3)])
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestAnalyze:
    """Tests for the analyze command."""

    def test_analyze(self, payload_file, tmp_path):
        """Test the analysis report and its JSON output."""
        output = tmp_path / "issues.json"
        result = runner.invoke(app, ["analyze", str(payload_file), "--output", str(output)])

        assert result.exit_code == 0
        assert "Sequence Analysis" in result.output
        data = json.loads(output.read_text())
        assert data["sequence"]["outOfOrder"] == [1]
        assert "seq-order" in [issue["id"] for issue in data["issues"]]

    def test_missing_file(self, tmp_path):
        """Test a payload path that does not exist."""
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_invalid_payload(self, tmp_path):
        """Test a payload without a document id."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"citations": []}))
        result = runner.invoke(app, ["analyze", str(path)])
        assert result.exit_code == 1
        assert "Could not load document" in result.output


class TestApply:
    """Tests for the apply command."""

    def test_resequence_and_save(self, payload_file, tmp_path):
        """Test applying an operation and writing the updated payload."""
        output = tmp_path / "out.json"
        result = runner.invoke(app, ["apply", str(payload_file), "--op", "resequence", "--output", str(output)])

        assert result.exit_code == 0
        assert "resequence" in result.output
        data = json.loads(output.read_text())
        assert [c["rawText"] for c in data["citations"]] == ["[1]", "[2]", "[3]"]

    def test_operations_in_order(self, payload_file, tmp_path):
        """Test several operations in one run."""
        output = tmp_path / "out.json"
        result = runner.invoke(
            app,
            ["apply", str(payload_file), "--op", "resequence", "--op", "convert:apa", "--output", str(output)],
        )

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data["detectedStyle"] == "apa"
        assert data["citations"][0]["rawText"] == "(Jones, 2017)"

    def test_preview_writes_nothing(self, payload_file, tmp_path):
        """Test that --preview does not save."""
        output = tmp_path / "out.json"
        result = runner.invoke(
            app, ["apply", str(payload_file), "--op", "resequence", "--preview", "--output", str(output)]
        )
        assert result.exit_code == 0
        assert "Preview" in result.output
        assert not output.exists()

    def test_export(self, payload_file, tmp_path):
        """Test writing a tracked-changes DOCX."""
        result = runner.invoke(
            app,
            [
                "apply",
                str(payload_file),
                "--op",
                "resequence",
                "--export",
                "track_changes",
                "--export-dir",
                str(tmp_path),
            ],
        )
        assert result.exit_code == 0
        exported = tmp_path / "paper_tracked_changes.docx"
        assert exported.read_bytes()[:2] == b"PK"

    def test_unknown_operation(self, payload_file):
        """Test an operation name the CLI does not know."""
        result = runner.invoke(app, ["apply", str(payload_file), "--op", "shuffle"])
        assert result.exit_code == 1
        assert "Unknown operation" in result.output

    def test_rejected_operation(self, payload_file):
        """Test that a refused operation stops with an error."""
        result = runner.invoke(app, ["apply", str(payload_file), "--op", "delete:ref-9"])
        assert result.exit_code == 1
        assert "rejected" in result.output


class TestInfoCommands:
    """Tests for styles and version."""

    def test_styles(self):
        """Test the style table."""
        result = runner.invoke(app, ["styles"])
        assert result.exit_code == 0
        assert "vancouver" in result.output

    def test_version(self):
        """Test the version string."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "citesync v0.1.0" in result.output

    def test_verbose_flag(self):
        """Test that the global verbose flag is accepted."""
        result = runner.invoke(app, ["--verbose", "version"])
        assert result.exit_code == 0
