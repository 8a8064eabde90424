"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from poprocessor import __version__

from .main import app

PO_TEXT = """PURCHASE ORDER
PO Number: PO-2025-171
PO Date: 28Jan26
Customer Name: Gulf Trading LLC
Grand Total: AED 900.00
"""


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


def test_version(runner: CliRunner) -> None:
    """Test the version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_repair(runner: CliRunner, tmp_path: Path) -> None:
    """Test repairing a fenced response from a file."""
    path = tmp_path / "response.txt"
    path.write_text('```json\n{"poNumber": "PO-1", "items": [1, 2,],}\n```', encoding="utf-8")

    result = runner.invoke(app, ["repair", str(path)])

    assert result.exit_code == 0
    assert '"poNumber": "PO-1"' in result.output


def test_repair_failure(runner: CliRunner) -> None:
    """Test unrecoverable stdin exits non-zero."""
    result = runner.invoke(app, ["repair"], input="nothing to see here")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_normalize(runner: CliRunner, tmp_path: Path) -> None:
    """Test normalizing a response with raw-text fallbacks."""
    response = tmp_path / "response.json"
    response.write_text('{"isValid": true, "poData": {"customerName": "Gulf Trading LLC"}}', encoding="utf-8")
    raw = tmp_path / "order.txt"
    raw.write_text(PO_TEXT, encoding="utf-8")
    output = tmp_path / "record.json"

    result = runner.invoke(
        app, ["normalize", str(response), "--raw", str(raw), "--kind", "po", "--output", str(output)]
    )

    assert result.exit_code == 0
    record = json.loads(output.read_text(encoding="utf-8"))
    assert record["number"] == "PO-2025-171"
    assert record["counterparty_name"] == "Gulf Trading LLC"
    assert record["total_amount"] == 900.0


def test_text(runner: CliRunner, tmp_path: Path) -> None:
    """Test recovering text from a plain file."""
    path = tmp_path / "order.txt"
    path.write_text(PO_TEXT, encoding="utf-8")

    result = runner.invoke(app, ["text", str(path), "--no-show"])

    assert result.exit_code == 0
    assert "characters" in result.output


def test_extract_missing_file(runner: CliRunner, tmp_path: Path) -> None:
    """Test a missing document exits before any work."""
    result = runner.invoke(app, ["extract", str(tmp_path / "missing.pdf")])

    assert result.exit_code == 1
    assert "File not found" in result.output
