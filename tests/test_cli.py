# FILE: tests/test_cli.py
"""
Integration tests for the command line entry point.
"""
import json
from pathlib import Path

import pytest

from main import main, parse_hl7_file

pytestmark = pytest.mark.integration


class TestMain:
    """Running main() against files in a temporary directory."""

    def test_writes_json_batch(self, batch_file: Path, tmp_path: Path, capsys):
        output = tmp_path / "out.json"
        assert main([str(batch_file), str(output)]) == 0

        data = json.loads(output.read_text())
        assert data["source"] == str(batch_file)
        assert len(data["messages"]) == 2

        printed = capsys.readouterr().out
        assert "Loaded 2 message(s)" in printed
        assert "Type: ORU^R01" in printed
        assert "Control ID: 61234_22333_DC" in printed

    def test_default_output_path(self, batch_file: Path):
        assert main([str(batch_file)]) == 0
        assert batch_file.with_suffix(".json").exists()

    def test_get_prints_values_per_message(self, batch_file: Path, tmp_path: Path, capsys):
        output = tmp_path / "out.json"
        assert main([str(batch_file), str(output), "--get", "PID-5.1", "--get", "ZZZ-9"]) == 0
        printed = capsys.readouterr().out
        assert "PID-5.1: Smith" in printed
        assert "PID-5.1: MORGAN" in printed
        assert "ZZZ-9: <no match>" in printed

    def test_get_lists_every_repetition(self, batch_file: Path, tmp_path: Path, capsys):
        assert main([str(batch_file), str(tmp_path / "out.json"), "--get", "PID-3.5"]) == 0
        assert "PID-3.5: EPI | SMHMRN | HHHMRN" in capsys.readouterr().out

    def test_escaped_delimiter_argument(self, tmp_path: Path, oru_hl7_string: str, adt_hl7_string: str):
        path = tmp_path / "lf.hl7"
        path.write_bytes((oru_hl7_string + "\n" + adt_hl7_string + "\n").encode("utf-8"))
        output = tmp_path / "out.json"
        assert main([str(path), str(output), "--delimiter", "\\n"]) == 0
        assert len(json.loads(output.read_text())["messages"]) == 2

    def test_missing_input(self, tmp_path: Path, capsys):
        assert main([str(tmp_path / "missing.hl7")]) == 1
        assert "Input file not found" in capsys.readouterr().out

    def test_malformed_input(self, tmp_path: Path, capsys):
        path = tmp_path / "bad.hl7"
        path.write_bytes(b"PID|1\r\r\n")
        assert parse_hl7_file(str(path), str(tmp_path / "out.json")) == 1
        assert "Error: Malformed message" in capsys.readouterr().out
        assert not (tmp_path / "out.json").exists()
