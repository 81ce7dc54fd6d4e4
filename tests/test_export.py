"""Tests for export functionality."""

import json

import pytest

from claude_stats.export import default_export_filename, rows_to_csv, rows_to_json, write_export

from conftest import NOW


@pytest.fixture
def sample_rows():
    return [
        {"project": "/home/dev/app", "display": "fix the bug", "prompt_count": 3},
        {"project": "/home/dev/other", "display": 'say "hi", then stop', "prompt_count": 1},
        {"project": "/home/dev/third", "display": None, "prompt_count": 0},
    ]


class TestCsvExport:
    def test_header_from_first_row(self, sample_rows):
        lines = rows_to_csv(sample_rows).split("\n")
        assert lines[0] == "project,display,prompt_count"
        assert lines[1] == "/home/dev/app,fix the bug,3"

    def test_quotes_commas_and_quotes(self, sample_rows):
        lines = rows_to_csv(sample_rows).split("\n")
        assert lines[2] == '/home/dev/other,"say ""hi"", then stop",1'

    def test_none_becomes_empty_field(self, sample_rows):
        assert rows_to_csv(sample_rows).split("\n")[3] == "/home/dev/third,,0"

    def test_no_trailing_newline(self, sample_rows):
        assert not rows_to_csv(sample_rows).endswith("\n")

    def test_empty(self):
        assert rows_to_csv([]) == ""


class TestJsonExport:
    def test_is_indented_array(self, sample_rows):
        result = rows_to_json(sample_rows)
        assert json.loads(result) == sample_rows
        assert '\n  {\n    "project"' in result

    def test_keeps_unicode(self):
        assert "🎉" in rows_to_json([{"icon": "🎉"}])

    def test_empty(self):
        assert json.loads(rows_to_json([])) == []


class TestWriteExport:
    def test_default_filename(self):
        assert default_export_filename("sessions", "csv", NOW) == "claude-sessions-2025-01-15.csv"

    def test_writes_file(self, tmp_path, sample_rows):
        path = write_export(sample_rows, "json", tmp_path / "out.json")
        assert json.loads(path.read_text(encoding="utf-8")) == sample_rows

    def test_unknown_format(self, tmp_path, sample_rows):
        with pytest.raises(ValueError):
            write_export(sample_rows, "xml", tmp_path / "out.xml")
        assert not (tmp_path / "out.xml").exists()
