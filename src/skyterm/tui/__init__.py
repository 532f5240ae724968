"""skyterm.tui: raw-mode terminal driver, key parsing and a differential screen."""

# Keyboard input handling
from skyterm.tui.keys import Key, KeyId, parse_key, printable_char

# Frame and differential screen writer
from skyterm.tui.screen import Frame, Screen

# Input buffering
from skyterm.tui.stdin_buffer import StdinBuffer

# Terminal interface and implementations
from skyterm.tui.terminal import ProcessTerminal, Terminal, interactive

# Utilities
from skyterm.tui.utils import (
    center_in_width,
    pad_to_width,
    slice_by_column,
    strip_ansi,
    truncate_to_width,
    visible_width,
)

__all__ = [
    "Key",
    "KeyId",
    "parse_key",
    "printable_char",
    "Frame",
    "Screen",
    "StdinBuffer",
    "ProcessTerminal",
    "Terminal",
    "interactive",
    "center_in_width",
    "pad_to_width",
    "slice_by_column",
    "strip_ansi",
    "truncate_to_width",
    "visible_width",
]
