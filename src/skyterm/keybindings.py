"""Dashboard keybindings manager."""

from __future__ import annotations

from typing import Literal

from skyterm.tui.keys import KeyId

NormalAction = Literal[
    "quit",
    "nextCity",
    "previousCity",
    "addCity",
    "deleteCity",
    "refresh",
]

EditingAction = Literal[
    "cancel",
    "commit",
    "deleteCharBackward",
]

DEFAULT_NORMAL_KEYBINDINGS: dict[NormalAction, KeyId | list[KeyId]] = {
    "quit": ["q", "escape", "ctrl+c"],
    "nextCity": ["down", "j"],
    "previousCity": ["up", "k"],
    "addCity": "a",
    "deleteCity": "d",
    "refresh": "r",
}

DEFAULT_EDITING_KEYBINDINGS: dict[EditingAction, KeyId | list[KeyId]] = {
    "cancel": ["escape", "ctrl+c"],
    "commit": "enter",
    "deleteCharBackward": "backspace",
}


def _index(bindings: dict[str, KeyId | list[KeyId]]) -> dict[KeyId, str]:
    """Invert an action -> key(s) map. Later actions win on conflicts."""
    by_key: dict[KeyId, str] = {}
    for action, keys in bindings.items():
        for key in [keys] if isinstance(keys, str) else keys:
            by_key[key] = action
    return by_key


class KeybindingsManager:
    """Resolves key identifiers to dashboard actions, per input mode.

    User overrides replace the default keys of the actions they name and
    leave the other actions alone.
    """

    def __init__(
        self,
        normal: dict[NormalAction, KeyId | list[KeyId]] | None = None,
        editing: dict[EditingAction, KeyId | list[KeyId]] | None = None,
    ) -> None:
        self._normal = {**DEFAULT_NORMAL_KEYBINDINGS, **(normal or {})}
        self._editing = {**DEFAULT_EDITING_KEYBINDINGS, **(editing or {})}
        self._normal_by_key = _index(self._normal)
        self._editing_by_key = _index(self._editing)

    def normal_action(self, key: KeyId | None) -> NormalAction | None:
        if key is None:
            return None
        return self._normal_by_key.get(key)  # type: ignore[return-value]

    def editing_action(self, key: KeyId | None) -> EditingAction | None:
        if key is None:
            return None
        return self._editing_by_key.get(key)  # type: ignore[return-value]

    def get_keys(self, action: NormalAction | EditingAction) -> list[KeyId]:
        """Return the keys bound to *action* (used for the help line)."""
        keys = self._normal.get(action) or self._editing.get(action)  # type: ignore[call-overload]
        if keys is None:
            return []
        return [keys] if isinstance(keys, str) else list(keys)


DEFAULT_KEYBINDINGS = KeybindingsManager()
