"""Differential full-screen writer.

A :class:`Frame` is the complete picture for one render: one string per
terminal row plus an optional cursor position. :class:`Screen` remembers the
previous frame and rewrites only the rows that changed, falling back to a
full redraw when the terminal size changes or :meth:`Screen.invalidate` is
called.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from skyterm.tui.terminal import Terminal
from skyterm.tui.utils import RESET, pad_to_width


@dataclass(frozen=True)
class Frame:
    """One rendered screen: rows of text and an optional ``(row, col)`` cursor.

    When ``cursor`` is ``None`` the hardware cursor is hidden.
    """

    lines: list[str] = field(default_factory=list)
    cursor: tuple[int, int] | None = None


class Screen:
    """Writes frames to a :class:`Terminal`, emitting only what changed."""

    def __init__(self, terminal: Terminal) -> None:
        self.terminal = terminal
        self._previous_lines: list[str] = []
        self._previous_size: tuple[int, int] = (0, 0)
        self._cursor_visible: bool | None = None
        self._full_redraw_count: int = 0

    @property
    def full_redraws(self) -> int:
        """Number of full (non-differential) redraws performed."""
        return self._full_redraw_count

    def invalidate(self) -> None:
        """Force the next :meth:`draw` to repaint every row."""
        self._previous_lines = []
        self._previous_size = (0, 0)

    def draw(self, frame: Frame) -> None:
        """Paint *frame*, clamped to the current terminal size."""
        width = self.terminal.columns
        height = self.terminal.rows
        if width <= 0 or height <= 0:
            return

        lines = [pad_to_width(line, width) for line in frame.lines[:height]]
        lines += [" " * width] * (height - len(lines))

        force_full = (width, height) != self._previous_size

        out: list[str] = []
        if force_full:
            self._full_redraw_count += 1
            out.append("\x1b[2J")

        for row, line in enumerate(lines):
            if not force_full and row < len(self._previous_lines):
                if self._previous_lines[row] == line:
                    continue
            out.append(f"\x1b[{row + 1};1H")
            out.append(line)
            out.append(RESET)

        self._previous_lines = lines
        self._previous_size = (width, height)

        if out:
            self.terminal.write("".join(out))

        self._place_cursor(frame.cursor, width, height)

    def _place_cursor(
        self, cursor: tuple[int, int] | None, width: int, height: int
    ) -> None:
        if cursor is None:
            if self._cursor_visible is not False:
                self.terminal.hide_cursor()
                self._cursor_visible = False
            return

        row = min(max(cursor[0], 0), height - 1)
        col = min(max(cursor[1], 0), width - 1)
        self.terminal.move_to(row, col)
        if self._cursor_visible is not True:
            self.terminal.show_cursor()
            self._cursor_visible = True
