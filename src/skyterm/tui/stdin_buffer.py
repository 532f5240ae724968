"""Splits raw stdin chunks into complete key sequences.

A single ``read()`` may carry several keystrokes (fast typing, pasted text)
or only the first half of an escape sequence. ``StdinBuffer`` emits one
callback per complete sequence and holds back an unfinished escape
sequence until the rest arrives or a short timeout expires, at which point
the partial data is flushed as-is (a lone ``ESC`` is the Escape key).
"""

from __future__ import annotations

import asyncio
from typing import Callable

import grapheme

ESC = "\x1b"


def _complete_escape_length(data: str) -> int:
    """Return the length of the escape sequence at the start of *data*.

    *data* must start with ``ESC``. Returns ``0`` when more input is
    needed to decide.
    """
    if len(data) < 2:
        return 0

    introducer = data[1]

    if introducer == "[":
        # CSI: parameter/intermediate bytes, then a final byte 0x40-0x7e
        for i in range(2, len(data)):
            if 0x40 <= ord(data[i]) <= 0x7E:
                return i + 1
        return 0

    if introducer == "O":
        # SS3: exactly one more byte
        return 3 if len(data) >= 3 else 0

    if introducer == ESC:
        # ESC ESC: emit the first as a bare Escape
        return 1

    # Alt + key
    return 2


def _extract_complete_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences and an unfinished remainder."""
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        rest = buffer[pos:]
        if rest[0] == ESC:
            length = _complete_escape_length(rest)
            if length == 0:
                return sequences, rest
            sequences.append(rest[:length])
            pos += length
            continue

        # Plain text up to the next ESC, one grapheme per sequence
        next_esc = rest.find(ESC)
        chunk = rest if next_esc == -1 else rest[:next_esc]
        sequences.extend(grapheme.graphemes(chunk))
        pos += len(chunk)

    return sequences, ""


class StdinBuffer:
    """Buffers stdin input and emits complete sequences."""

    def __init__(self, *, timeout: float = 0.01) -> None:
        self._buffer: str = ""
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._timeout: float = timeout
        self._on_data: Callable[[str], None] | None = None

    def on_data(self, callback: Callable[[str], None]) -> None:
        """Set callback for complete sequences."""
        self._on_data = callback

    def _emit_data(self, data: str) -> None:
        if self._on_data:
            self._on_data(data)

    def process(self, data: str) -> None:
        """Feed input data into the buffer."""
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        self._buffer += data
        sequences, self._buffer = _extract_complete_sequences(self._buffer)

        for sequence in sequences:
            self._emit_data(sequence)

        if self._buffer:
            try:
                loop = asyncio.get_running_loop()
                self._timeout_handle = loop.call_later(
                    self._timeout, self._flush_timeout
                )
            except RuntimeError:
                # No event loop - flush immediately
                for sequence in self.flush():
                    self._emit_data(sequence)

    def _flush_timeout(self) -> None:
        self._timeout_handle = None
        for sequence in self.flush():
            self._emit_data(sequence)

    def flush(self) -> list[str]:
        """Return any buffered partial data as a single sequence."""
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        if not self._buffer:
            return []

        sequences = [self._buffer]
        self._buffer = ""
        return sequences

    def destroy(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        self._buffer = ""
