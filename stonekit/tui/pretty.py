"""Pretty printing of items in alphabetically ordered columns."""

from __future__ import annotations

import math
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, TextIO

from stonekit.tui.terminal import term_size


@dataclass(frozen=True)
class Column:
    """Where a cell sits in its row: first, last, or some column in between."""

    position: Literal["first", "nth", "last"]
    index: int = 0


class ColumnDisplay(ABC):
    """Something that can be rendered as a cell by print_to_columns."""

    @abstractmethod
    def get_display_width(self) -> int:
        """Full display width of the item."""

    @abstractmethod
    def display_column(self, writer: TextIO, column: Column, width: int) -> None:
        """Render the item, followed by `width` columns of padding as it sees fit."""


def print_to_columns(items: Sequence[ColumnDisplay], out: Optional[TextIO] = None) -> None:
    """Print sorted items column by column, so each column reads in ascending order."""
    if not items:
        raise ValueError("no items to print")
    out = sys.stdout if out is None else out

    terminal_width = term_size().width
    largest_width = max(item.get_display_width() for item in items) + 6
    num_columns = max(1, terminal_width // largest_width)
    height = math.ceil(len(items) / num_columns)

    for y in range(height):
        for x in range(num_columns):
            idx = y + x * height
            if idx >= len(items):
                continue
            item = items[idx]
            if x == 0:
                column = Column("first", 0)
            elif x == num_columns - 1:
                column = Column("last", x)
            else:
                column = Column("nth", x)
            item.display_column(out, column, largest_width - item.get_display_width())
        out.write("\n")
    out.flush()