"""Keyboard input parsing for terminal applications.

Turns one complete raw input sequence (as emitted by
:class:`~skyterm.tui.stdin_buffer.StdinBuffer`) into a key identifier such
as ``"a"``, ``"ctrl+c"``, ``"up"`` or ``"enter"``. Both the ``CSI`` and
``SS3`` forms that terminals send for cursor keys are recognised.
"""

from __future__ import annotations

import re

KeyId = str

# ---------------------------------------------------------------------------
# Key helper object
# ---------------------------------------------------------------------------


class Key:
    """Named key constants and modifier combinators."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"

    @staticmethod
    def shift(key: str) -> str:
        return f"shift+{key}"


# ---------------------------------------------------------------------------
# Legacy sequence tables
# ---------------------------------------------------------------------------

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[Z": "shift+tab",
}

# xterm-style modified cursor keys: ESC [ 1 ; <mod> <letter>
_MODIFIED_CURSOR_RE = re.compile(r"^\x1b\[1;(\d+)([ABCDHF])$")

_CURSOR_LETTERS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

MODIFIERS: dict[str, int] = {
    "shift": 1,
    "alt": 2,
    "ctrl": 4,
}


def _modifier_prefix(modifier: int) -> str:
    mod = modifier - 1
    prefix = ""
    if mod & MODIFIERS["ctrl"]:
        prefix += "ctrl+"
    if mod & MODIFIERS["shift"]:
        prefix += "shift+"
    if mod & MODIFIERS["alt"]:
        prefix += "alt+"
    return prefix


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_key(data: str) -> KeyId | None:  # noqa: C901
    """Parse raw terminal input and return the key identifier, or ``None``.

    Printable characters are returned as-is (case preserved), so ``"A"``
    parses to ``"A"`` and a space to ``"space"``.
    """
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    m = _MODIFIED_CURSOR_RE.match(data)
    if m:
        return _modifier_prefix(int(m.group(1))) + _CURSOR_LETTERS[m.group(2)]

    # --- Simple single-byte keys ---
    if data == "\x1b":
        return "escape"
    if data in ("\r", "\n", "\r\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x00":
        return "ctrl+space"

    # --- Ctrl + letter (0x01 - 0x1a) ---
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # --- Alt + key (ESC prefix) ---
    if len(data) == 2 and data[0] == "\x1b":
        ch = data[1]
        if ch in ("\r", "\n"):
            return "alt+enter"
        if ch in ("\x7f", "\x08"):
            return "alt+backspace"
        if ch.isprintable():
            return "alt+" + ch.lower()
        return None

    # --- Plain printable character (may be a multi-codepoint grapheme) ---
    if not data.startswith("\x1b") and data.isprintable():
        return data

    return None


def printable_char(key: KeyId | None) -> str | None:
    """Return the text a key inserts when typed, or ``None``.

    ``"space"`` inserts a blank; any other single grapheme that is not a
    named key inserts itself.
    """
    if key is None:
        return None
    if key == Key.space:
        return " "
    if "+" in key and len(key) > 1:
        return None
    if key in _NAMED_KEYS:
        return None
    return key if key.isprintable() else None


_NAMED_KEYS: frozenset[str] = frozenset(
    {
        Key.escape,
        Key.enter,
        Key.tab,
        Key.backspace,
        Key.delete,
        Key.insert,
        Key.home,
        Key.end,
        Key.page_up,
        Key.page_down,
        Key.up,
        Key.down,
        Key.left,
        Key.right,
    }
)
