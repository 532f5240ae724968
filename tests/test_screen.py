"""Tests for skyterm.tui.screen -- differential frame writes."""

from __future__ import annotations

from skyterm.tui.screen import Frame, Screen

from .virtual_terminal import VirtualTerminal


def make_screen(rows: int = 5, columns: int = 20) -> tuple[Screen, VirtualTerminal]:
    term = VirtualTerminal(rows=rows, columns=columns)
    return Screen(term), term


class TestFirstDraw:
    def test_full_redraw_on_first_frame(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["hello", "world"]))
        assert screen.full_redraws == 1
        assert "\x1b[2J" in term.output
        assert term.screen_lines()[:2] == ["hello", "world"]

    def test_short_frame_is_padded(self) -> None:
        screen, term = make_screen(rows=3)
        screen.draw(Frame(lines=["a"]))
        assert term.screen_lines() == ["a", "", ""]

    def test_lines_are_clamped_to_size(self) -> None:
        screen, term = make_screen(rows=2, columns=5)
        screen.draw(Frame(lines=["abcdefgh", "2", "3", "4"]))
        assert term.screen_lines() == ["abcde", "2"]


class TestDifferential:
    def test_unchanged_frame_writes_nothing(self) -> None:
        screen, term = make_screen()
        frame = Frame(lines=["a", "b", "c"])
        screen.draw(frame)
        term.clear_buffer()
        screen.draw(frame)
        assert term.output == ""

    def test_only_changed_rows_rewritten(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a", "b", "c"]))
        term.clear_buffer()
        screen.draw(Frame(lines=["a", "B", "c"]))
        assert "\x1b[2;1H" in term.output
        assert "\x1b[1;1H" not in term.output
        assert "\x1b[3;1H" not in term.output
        assert term.screen_lines()[:3] == ["a", "B", "c"]
        assert screen.full_redraws == 1

    def test_resize_forces_full_redraw(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a"]))
        term.simulate_resize(rows=6, columns=30)
        screen.draw(Frame(lines=["a"]))
        assert screen.full_redraws == 2

    def test_invalidate_forces_full_redraw(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a"]))
        screen.invalidate()
        term.clear_buffer()
        screen.draw(Frame(lines=["a"]))
        assert "\x1b[2J" in term.output
        assert screen.full_redraws == 2


class TestCursor:
    def test_hidden_without_cursor(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a"]))
        assert term.cursor_visible is False

    def test_shown_and_placed(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a"], cursor=(2, 4)))
        assert term.cursor_visible is True
        assert term.cursor == (2, 4)

    def test_cursor_clamped(self) -> None:
        screen, term = make_screen(rows=5, columns=20)
        screen.draw(Frame(lines=[], cursor=(50, 50)))
        assert term.cursor == (4, 19)

    def test_show_cursor_sent_once(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a"], cursor=(0, 1)))
        term.clear_buffer()
        screen.draw(Frame(lines=["ab"], cursor=(0, 2)))
        assert "\x1b[?25h" not in term.output
        assert term.cursor == (0, 2)

    def test_hiding_again(self) -> None:
        screen, term = make_screen()
        screen.draw(Frame(lines=["a"], cursor=(0, 1)))
        screen.draw(Frame(lines=["a"]))
        assert term.cursor_visible is False
