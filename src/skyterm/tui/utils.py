"""Terminal text utilities: ANSI-aware width measurement, padding and slicing.

Widths are measured per grapheme cluster so that wide CJK characters and
emoji sequences occupy the number of cells a terminal actually gives them.
"""

from __future__ import annotations

import re

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Regex patterns for ANSI sequences
# ---------------------------------------------------------------------------

# CSI sequences: ESC[ <params> <final byte>
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")

# SGR sequences only (colours and attributes)
_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")

RESET = "\x1b[0m"

# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _grapheme_width(g: str) -> int:
    """Return the cell width of a single grapheme cluster."""
    if g == "\t":
        return 3
    w = _wcwidth.wcswidth(g)
    if w < 0:
        # Non-printable (control) characters take no cells
        return 0
    # Emoji ZWJ sequences report the sum of their parts; a terminal
    # draws them as one double-width glyph.
    return min(w, 2)


def strip_ansi(text: str) -> str:
    """Remove all CSI escape sequences from *text*."""
    return _ANSI_RE.sub("", text)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*.

    ANSI escape sequences are ignored and an ASCII fast path skips the
    grapheme segmentation for the common case.
    """
    if not text:
        return 0

    stripped = strip_ansi(text)
    if not stripped:
        return 0

    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))

    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[stripped] = total
    return total


def _tokens(text: str) -> list[tuple[str, int]]:
    """Split *text* into ``(token, width)`` pairs.

    ANSI sequences are zero-width tokens; everything else is split into
    grapheme clusters.
    """
    out: list[tuple[str, int]] = []
    pos = 0
    for m in _ANSI_RE.finditer(text):
        if m.start() > pos:
            for g in grapheme.graphemes(text[pos : m.start()]):
                out.append((g, _grapheme_width(g)))
        out.append((m.group(0), 0))
        pos = m.end()
    if pos < len(text):
        for g in grapheme.graphemes(text[pos:]):
            out.append((g, _grapheme_width(g)))
    return out


def truncate_to_width(text: str, max_width: int, ellipsis: str = "") -> str:
    """Truncate *text* so that it occupies at most *max_width* cells.

    When truncation happens and *ellipsis* is given, it replaces the tail.
    ANSI codes are preserved and a reset is appended if any were seen.
    """
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text

    budget = max_width - visible_width(ellipsis)
    if budget < 0:
        return ellipsis[:max_width]

    parts: list[str] = []
    used = 0
    saw_ansi = False
    for token, width in _tokens(text):
        if width == 0 and token.startswith("\x1b"):
            parts.append(token)
            saw_ansi = True
            continue
        if used + width > budget:
            break
        parts.append(token)
        used += width

    result = "".join(parts) + ellipsis
    if saw_ansi:
        result += RESET
    return result


def pad_to_width(text: str, width: int) -> str:
    """Truncate or right-pad *text* with spaces to exactly *width* cells."""
    text = truncate_to_width(text, width)
    return text + " " * max(0, width - visible_width(text))


def center_in_width(text: str, width: int) -> str:
    """Center *text* within *width* cells, truncating if it does not fit."""
    text = truncate_to_width(text, width)
    slack = max(0, width - visible_width(text))
    left = slack // 2
    return " " * left + text + " " * (slack - left)


def slice_by_column(line: str, start: int, length: int | None = None) -> str:
    """Return the cells ``[start, start + length)`` of *line*.

    SGR codes that appear before *start* are carried into the slice so the
    sliced text keeps its colour. A wide grapheme straddling a boundary is
    replaced by a space.
    """
    end = None if length is None else start + length
    parts: list[str] = []
    col = 0
    for token, width in _tokens(line):
        if width == 0:
            if token.startswith("\x1b"):
                if _SGR_RE.fullmatch(token) and (end is None or col < end):
                    parts.append(token)
            continue
        if end is not None and col >= end:
            break
        if col >= start and (end is None or col + width <= end):
            parts.append(token)
        elif col < start < col + width or (end is not None and col < end < col + width):
            parts.append(" ")
        col += width
    return "".join(parts)
