import io
import os
import sys

import pytest

from stonekit.tui import terminal
from stonekit.tui.terminal import TermSize, ask_yes_no, bold, dim, read_line, red, term_size


def _fixed_size(columns, lines):
    def fake(*args):
        return os.terminal_size((columns, lines))

    return fake


def _failing(*args):
    raise OSError("not a terminal")


def test_term_size_reports_terminal(monkeypatch):
    monkeypatch.setattr(terminal.os, "get_terminal_size", _fixed_size(100, 40))
    assert term_size() == TermSize(100, 40)


def test_term_size_falls_back_on_error(monkeypatch):
    monkeypatch.setattr(terminal.os, "get_terminal_size", _failing)
    assert term_size() == TermSize(80, 24)


def test_term_size_falls_back_on_zero(monkeypatch):
    monkeypatch.setattr(terminal.os, "get_terminal_size", _fixed_size(0, 10))
    assert term_size() == TermSize(80, 24)


def test_read_line_stops_at_enter(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("ab\tc\x7fd\nrest"))
    assert read_line() == "abcd"
    assert sys.stdin.read() == "rest"


def test_read_line_at_eof(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("partial"))
    assert read_line() == "partial"


@pytest.mark.parametrize(
    "answer, expected",
    [("y\n", True), ("YES\n", True), ("yes\n", True), ("No\n", False), ("yep\n", False), ("\n", False)],
)
def test_ask_yes_no(monkeypatch, capsys, answer, expected):
    monkeypatch.setattr(sys, "stdin", io.StringIO(answer))
    assert ask_yes_no("Continue?") is expected
    out = capsys.readouterr().out
    assert out.startswith("Continue? ")
    assert "yes" in out and "no" in out


@pytest.mark.parametrize("style", [dim, bold, red])
def test_styles_wrap_text(style):
    styled = style("word")
    assert styled.startswith("\x1b[")
    assert styled.endswith("\x1b[0m")
    assert "word" in styled
    assert styled != "word"