"""Terminal helpers: size detection, line input and simple styling."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

DEFAULT_TERM_SIZE = (80, 24)

_RESET = "\x1b[0m"


@dataclass(frozen=True)
class TermSize:
    width: int
    height: int


def term_size() -> TermSize:
    """Terminal size, falling back to 80x24 when unknown or empty."""
    try:
        columns, lines = os.get_terminal_size()
    except (OSError, ValueError):
        columns, lines = DEFAULT_TERM_SIZE
    if columns < 1 or lines < 1:
        columns, lines = DEFAULT_TERM_SIZE
    return TermSize(width=columns, height=lines)


def read_line() -> str:
    """Read characters from stdin up to enter, ignoring non-printable keys."""
    chars = []
    while True:
        char = sys.stdin.read(1)
        if char in ("", "\n", "\r"):
            break
        if char.isprintable():
            chars.append(char)
    return "".join(chars)


def dim(text: str) -> str:
    return f"\x1b[2m{text}{_RESET}"


def bold(text: str) -> str:
    return f"\x1b[1m{text}{_RESET}"


def red(text: str) -> str:
    return f"\x1b[91m{text}{_RESET}"


def ask_yes_no(question: str) -> bool:
    """Prompt with a yes/no question; true only for 'y' or 'yes'."""
    sys.stdout.write(f"{question} {dim('[')} {bold('yes')} / {red(bold('no'))} {dim(']')} ")
    sys.stdout.flush()
    return read_line().lower() in ("y", "yes")