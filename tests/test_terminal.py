"""Tests for skyterm.tui.terminal -- scoped terminal acquisition."""

from __future__ import annotations

import pytest

from skyterm.tui.terminal import ProcessTerminal, interactive

from .virtual_terminal import VirtualTerminal


def noop_input(data: str) -> None:
    pass


def noop_resize() -> None:
    pass


class TestInteractive:
    def test_start_and_stop(self) -> None:
        term = VirtualTerminal()
        with interactive(term, noop_input, noop_resize) as t:
            assert t is term
            assert term.started
        assert not term.started
        assert term.stop_count == 1

    def test_stop_on_exception(self) -> None:
        term = VirtualTerminal()
        with pytest.raises(RuntimeError):
            with interactive(term, noop_input, noop_resize):
                raise RuntimeError("boom")
        assert term.stop_count == 1

    def test_stop_when_start_fails(self) -> None:
        term = VirtualTerminal(fail_on_start=OSError("no tty"))
        with pytest.raises(OSError):
            with interactive(term, noop_input, noop_resize):
                pytest.fail("body must not run")
        assert term.stop_count == 1

    def test_callbacks_wired(self) -> None:
        term = VirtualTerminal()
        seen: list[str] = []
        resized: list[bool] = []
        with interactive(term, seen.append, lambda: resized.append(True)):
            term.simulate_input("q")
            term.simulate_resize(rows=10)
        assert seen == ["q"]
        assert resized == [True]


class TestProcessTerminal:
    def test_stop_without_start_is_safe(self) -> None:
        term = ProcessTerminal()
        term.stop()
        term.stop()

    def test_size_fallback(self, monkeypatch) -> None:
        def no_size(fd):
            raise OSError("not a terminal")

        monkeypatch.setattr("os.get_terminal_size", no_size)
        term = ProcessTerminal()
        assert term.columns == 80
        assert term.rows == 24
