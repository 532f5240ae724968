"""Terminal abstraction for raw-mode stdin/stdout interaction.

Provides a ``Terminal`` protocol, a concrete ``ProcessTerminal`` that
manages raw mode, the alternate screen, cursor visibility and resize
notification via ANSI escape sequences, and the :func:`interactive`
context manager that guarantees the terminal is restored.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Callable, Protocol

from skyterm.tui.stdin_buffer import StdinBuffer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_ALT_SCREEN_ENABLE = "\x1b[?1049h"
_ALT_SCREEN_DISABLE = "\x1b[?1049l"

_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_SCREEN = "\x1b[2J\x1b[H"
_MOVE_TO_FMT = "\x1b[{};{}H"

_SET_TITLE_FMT = "\x1b]0;{}\x07"


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def move_to(self, row: int, col: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...

    def set_title(self, title: str) -> None: ...


@contextmanager
def interactive(
    terminal: Terminal,
    on_input: Callable[[str], None],
    on_resize: Callable[[], None],
) -> Iterator[Terminal]:
    """Hold *terminal* in interactive mode for the duration of the block.

    ``stop()`` runs on every exit path, including exceptions and task
    cancellation. If ``start()`` itself fails, ``stop()`` is still called so
    a half-initialised terminal is put back.
    """
    try:
        terminal.start(on_input, on_resize)
    except BaseException:
        _safe_stop(terminal)
        raise
    try:
        yield terminal
    finally:
        _safe_stop(terminal)


def _safe_stop(terminal: Terminal) -> None:
    try:
        terminal.stop()
    except (OSError, termios.error):
        logger.exception("Failed to restore terminal")


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal implementation backed by ``sys.stdin``/``sys.stdout``.

    Raw mode is managed via :mod:`tty` and :mod:`termios`; stdin is read
    through ``loop.add_reader`` and SIGWINCH through
    ``loop.add_signal_handler``, so both callbacks run on the event loop.
    """

    def __init__(self) -> None:
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._stdin_buffer: StdinBuffer | None = None
        self._stdin_reader_active: bool = False
        self._sigwinch_installed: bool = False
        self._original_termios: list | None = None
        self._alt_screen: bool = False

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Enable raw mode, enter the alternate screen and begin reading stdin.

        Raises ``termios.error`` or ``OSError`` when stdin is not a terminal.
        """
        self._input_handler = on_input
        self._resize_handler = on_resize

        fd = sys.stdin.fileno()

        # Save previous terminal state, then enable raw mode
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        self._raw_write(_ALT_SCREEN_ENABLE + _CLEAR_SCREEN + _HIDE_CURSOR)
        self._alt_screen = True

        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGWINCH, self._on_sigwinch)
        self._sigwinch_installed = True

        self._stdin_buffer = StdinBuffer(timeout=0.01)
        self._stdin_buffer.on_data(self._forward_input)
        loop.add_reader(fd, self._on_stdin_readable)
        self._stdin_reader_active = True

    def stop(self) -> None:
        """Restore terminal state and clean up all handlers.

        Safe to call more than once and after a partial ``start()``.
        """
        if self._stdin_buffer is not None:
            self._stdin_buffer.destroy()
            self._stdin_buffer = None

        loop = _running_loop()
        if self._stdin_reader_active and loop is not None:
            loop.remove_reader(sys.stdin.fileno())
        self._stdin_reader_active = False

        if self._sigwinch_installed and loop is not None:
            loop.remove_signal_handler(signal.SIGWINCH)
        self._sigwinch_installed = False

        if self._alt_screen:
            self._raw_write(_SHOW_CURSOR + _ALT_SCREEN_DISABLE)
            self._alt_screen = False

        if self._original_termios is not None:
            termios.tcsetattr(
                sys.stdin.fileno(), termios.TCSADRAIN, self._original_termios
            )
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write data to stdout."""
        self._raw_write(data)

    # -- cursor / screen manipulation --------------------------------------

    def move_to(self, row: int, col: int) -> None:
        """Move the cursor to the zero-based (*row*, *col*) cell."""
        self._raw_write(_MOVE_TO_FMT.format(row + 1, col + 1))

    def hide_cursor(self) -> None:
        self._raw_write(_HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._raw_write(_SHOW_CURSOR)

    def clear_screen(self) -> None:
        self._raw_write(_CLEAR_SCREEN)

    def set_title(self, title: str) -> None:
        self._raw_write(_SET_TITLE_FMT.format(title))

    # -- private: stdin reading --------------------------------------------

    def _on_stdin_readable(self) -> None:
        """Callback invoked by the event loop when stdin has data."""
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError:
            return

        if not raw:
            return

        data = raw.decode("utf-8", errors="replace")
        if self._stdin_buffer is not None:
            self._stdin_buffer.process(data)

    def _forward_input(self, data: str) -> None:
        if self._input_handler is not None:
            self._input_handler(data)

    def _on_sigwinch(self) -> None:
        if self._resize_handler is not None:
            self._resize_handler()

    # -- private: raw write ------------------------------------------------

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError:
            pass


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
