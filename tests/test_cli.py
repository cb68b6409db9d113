"""Tests for the kfmt command line interface."""

import io
import sys

import pytest

from kfmt.cli import build_parser, collect_files, main

UNFORMATTED = "fun f(){ }\n"
FORMATTED = "fun f() {}\n"


@pytest.fixture
def kotlin_file(tmp_path, monkeypatch):
    """Create an unformatted .kt file and run from its directory."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "Main.kt"
    path.write_text(UNFORMATTED)
    return path


class TestMain:
    def test_rewrites_file(self, kotlin_file):
        assert main([str(kotlin_file)]) == 0
        assert kotlin_file.read_text() == FORMATTED

    def test_formatted_file_is_left_alone(self, kotlin_file):
        kotlin_file.write_text(FORMATTED)
        assert main([str(kotlin_file)]) == 0
        assert kotlin_file.read_text() == FORMATTED

    def test_check_reports_without_writing(self, kotlin_file, capsys):
        assert main(["--check", str(kotlin_file)]) == 1
        assert kotlin_file.read_text() == UNFORMATTED
        assert f"Would reformat {kotlin_file}" in capsys.readouterr().err

    def test_check_passes_on_formatted_file(self, kotlin_file):
        kotlin_file.write_text(FORMATTED)
        assert main(["--check", str(kotlin_file)]) == 0

    def test_diff(self, kotlin_file, capsys):
        assert main(["--diff", str(kotlin_file)]) == 0
        out = capsys.readouterr().out
        assert f"--- a/{kotlin_file}" in out
        assert "-fun f(){ }" in out
        assert "+fun f() {}" in out
        assert kotlin_file.read_text() == UNFORMATTED

    def test_error_file(self, kotlin_file, capsys):
        kotlin_file.write_text("fun main( {\n")
        assert main([str(kotlin_file)]) == 1
        err = capsys.readouterr().err
        assert f"Error formatting {kotlin_file}:" in err
        assert "KFMT_SYNTAX" in err
        assert kotlin_file.read_text() == "fun main( {\n"

    def test_invalid_max_width(self, kotlin_file, capsys):
        assert main(["--max-width", "0", str(kotlin_file)]) == 2
        assert "--max-width must be positive" in capsys.readouterr().err
        assert kotlin_file.read_text() == UNFORMATTED

    def test_style_flag(self, kotlin_file):
        kotlin_file.write_text("fun f() {\nval x = 1\n}\n")
        assert main(["--style", "google", str(kotlin_file)]) == 0
        assert kotlin_file.read_text() == "fun f() {\n    val x = 1\n}\n"

    def test_config_file_is_used(self, kotlin_file):
        (kotlin_file.parent / "kfmt.toml").write_text('style = "dropbox"\n')
        kotlin_file.write_text("fun f() {\nval x = 1\n}\n")
        assert main([str(kotlin_file)]) == 0
        assert kotlin_file.read_text() == "fun f() {\n    val x = 1\n}\n"

    def test_crlf_is_preserved_on_disk(self, kotlin_file):
        kotlin_file.write_bytes(b"fun f(){ }\r\n")
        assert main([str(kotlin_file)]) == 0
        assert kotlin_file.read_bytes() == b"fun f() {}\r\n"

    def test_stdin(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, "stdin", io.StringIO(UNFORMATTED))
        assert main(["-"]) == 0
        assert capsys.readouterr().out == FORMATTED

    def test_directory_with_parallel_jobs(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = tmp_path / "A.kt"
        second = tmp_path / "B.kts"
        first.write_text(UNFORMATTED)
        second.write_text(UNFORMATTED)
        assert main(["--jobs", "2", str(tmp_path)]) == 0
        assert first.read_text() == FORMATTED
        assert second.read_text() == FORMATTED


class TestCollectFiles:
    def test_directories_are_searched_recursively(self, tmp_path):
        (tmp_path / "a.kt").write_text("")
        (tmp_path / "b.kts").write_text("")
        (tmp_path / "notes.txt").write_text("")
        nested = tmp_path / "sub"
        nested.mkdir()
        (nested / "d.kt").write_text("")
        assert collect_files([str(tmp_path)]) == [
            tmp_path / "a.kt",
            nested / "d.kt",
            tmp_path / "b.kts",
        ]

    def test_other_files_are_skipped(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("")
        assert collect_files([str(notes), str(tmp_path / "missing.kt")]) == []


class TestParser:
    def test_check_and_diff_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--check", "--diff", "A.kt"])

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.files == ["."]
        assert args.jobs == 1
        assert not args.check
