"""Tests for outlook_exporter.exporters."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

import pytest

from outlook_exporter.exporters import (COLUMNS, ENCODING, output_path, print_table, render_table, truncate,
                                        write_csv, write_json)
from outlook_exporter.ranking import ExportRow


def row(email, name="", type="To", account="default", count="1", date="", own=False):
    return ExportRow(email, name, type, account, count, date, own)


@pytest.fixture
def rows():
    return [
        row("alice@co.com", "Alice", "Sender", count="2", date="2024-02-20 14:30:05", own=True),
        row("bob@co.com", "Bob", "Sender", date="2024-02-20 14:30:05"),
    ]


class TestCsv:
    def test_layout(self, tmp_path, rows):
        target = tmp_path / "out.csv"
        assert write_csv(rows, target) == 2
        raw = target.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        lines = raw.decode(ENCODING).split("\r\n")
        assert lines[0] == "Email,Name,Type,Account,ContactCount,LatestContactDate,IsOwnAccount"
        assert lines[1] == "alice@co.com,Alice,Sender,default,2,2024-02-20 14:30:05,Yes"
        assert lines[2] == "bob@co.com,Bob,Sender,default,1,2024-02-20 14:30:05,"

    def test_escaping_round_trips(self, tmp_path):
        awkward = row("x@co.com", 'Doe, "Jr"\nline two\rend')
        target = tmp_path / "out.csv"
        write_csv([awkward], target)
        text = target.read_text(encoding=ENCODING)
        assert '"Doe, ""Jr""' in text
        with open(target, encoding=ENCODING, newline="") as f:
            parsed = list(csv.reader(f))
        assert parsed[0] == COLUMNS
        assert parsed[1][1] == 'Doe, "Jr"\nline two\rend'

    def test_plain_fields_are_not_quoted(self, tmp_path):
        target = tmp_path / "out.csv"
        write_csv([row("plain@co.com", "Plain Name")], target)
        assert '"' not in target.read_text(encoding=ENCODING)

    def test_empty_ledger_writes_header_only(self, tmp_path):
        target = tmp_path / "out.csv"
        write_csv([], target)
        assert target.read_text(encoding=ENCODING) == ",".join(COLUMNS) + "\r\n"

    def test_missing_directory_raises(self, tmp_path, rows):
        with pytest.raises(OSError):
            write_csv(rows, tmp_path / "nope" / "out.csv")


class TestJson:
    def test_round_trip(self, tmp_path, rows):
        target = tmp_path / "out.json"
        write_json(rows + [row("odd@co.com", 'Back\\slash "q"\ttab\u0001')], target)
        data = json.loads(target.read_text(encoding=ENCODING))
        assert [list(d) for d in data] == [COLUMNS] * 3
        assert data[0]["IsOwnAccount"] == "Yes"
        assert data[1]["IsOwnAccount"] == ""
        assert data[1]["LatestContactDate"] == "2024-02-20 14:30:05"
        assert data[2]["Name"] == 'Back\\slash "q"\ttab\u0001'

    def test_all_values_are_strings(self, tmp_path, rows):
        target = tmp_path / "out.json"
        write_json(rows, target)
        for obj in json.loads(target.read_text(encoding=ENCODING)):
            assert all(isinstance(v, str) for v in obj.values())

    def test_empty(self, tmp_path):
        target = tmp_path / "out.json"
        write_json([], target)
        assert json.loads(target.read_text(encoding=ENCODING)) == []


class TestTable:
    def test_layout(self, rows):
        lines = render_table(rows).split("\n")
        assert lines[0] == ""
        assert lines[1].startswith("+-") and lines[1] == lines[3] == lines[-4]
        assert "| Email " in lines[2] and "| Times Contacted |" in lines[2]
        assert lines[4].startswith("| alice@co.com |")
        assert lines[4].rstrip().endswith("| *   |")
        assert lines[-2] == "Total: 2 unique recipients (sorted by most contacted)"
        assert lines[-1] == "* = Own account (1 account(s) used for export)"

    def test_all_grid_lines_same_width(self, rows):
        grid = [l for l in render_table(rows).split("\n") if l.startswith(("+", "|"))]
        assert len({len(l) for l in grid}) == 1

    def test_no_legend_without_own_rows(self):
        out = render_table([row("bob@co.com")])
        assert "Own account" not in out

    def test_long_values_truncated(self):
        long_name = "N" * 80
        out = render_table([row("bob@co.com", long_name)], cap=20)
        assert "N" * 17 + "..." in out
        assert long_name not in out

    def test_empty(self):
        assert render_table([]) == "No recipients to display."

    def test_print_table(self, rows):
        buf = io.StringIO()
        assert print_table(rows, buf) == 2
        assert "alice@co.com" in buf.getvalue()

    @pytest.mark.parametrize("value,width,expected", [
        ("short", 10, "short"),
        ("exactly10!", 10, "exactly10!"),
        ("much too long", 10, "much to..."),
        ("", 5, ""),
    ])
    def test_truncate(self, value, width, expected):
        assert truncate(value, width) == expected


class TestOutputPath:
    @pytest.mark.parametrize("base,ext,expected", [
        ("report.txt", ".csv", "report.csv"),
        ("report", ".json", "report.json"),
        ("out/report.csv", ".json", "out/report.json"),
        (None, ".csv", "output.csv"),
        ("", ".json", "output.json"),
    ])
    def test_paths(self, base, ext, expected):
        assert output_path(base, ext) == Path(expected)
