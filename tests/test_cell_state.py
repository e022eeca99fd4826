"""
Tests: status cell state machine.

Covers:
    1. Right-click cycle order and closure
    2. Left-click toggle (turn on / context-sensitive turn off)
    3. Reachability of every state through the two actions
    4. Text edits (commit / cancel) never touch the status
"""

import pytest

from tracker.core.exceptions import ValidationError
from tracker.services import cell_state as cs
from tracker.services.cell_state import CellState, TextEdit


ALL_STATUSES = list(cs.CELL_STATUSES)


class TestCycle:
    def test_cycle_order(self):
        state = CellState()
        seen = []
        for _ in range(4):
            state = cs.cycle(state)
            seen.append(state.status)
        assert seen == [cs.IN_PROGRESS, cs.DONE, cs.FINAL, cs.NONE]

    @pytest.mark.parametrize("status", ALL_STATUSES)
    def test_four_cycles_return_to_start(self, status):
        start = CellState(status=status, text="메모")
        state = start
        for _ in range(4):
            state = cs.cycle(state)
        assert state == start

    def test_cycle_keeps_text(self):
        assert cs.cycle(CellState(text="수정 요청")).text == "수정 요청"


class TestToggle:
    def test_none_turns_on_to_done(self):
        assert cs.toggle(CellState()).status == cs.DONE

    def test_done_turns_off_to_none(self):
        assert cs.toggle(CellState(status=cs.DONE)).status == cs.NONE

    @pytest.mark.parametrize("status", [cs.IN_PROGRESS, cs.FINAL])
    def test_partial_progress_turns_off_to_in_progress(self, status):
        result = cs.turn_off(CellState(status=status))
        assert result.status == cs.IN_PROGRESS
        assert cs.toggle(CellState(status=status)).status == cs.IN_PROGRESS

    def test_turn_on_always_done(self):
        for status in ALL_STATUSES:
            assert cs.turn_on(CellState(status=status)).status == cs.DONE

    @pytest.mark.parametrize("start", ALL_STATUSES)
    @pytest.mark.parametrize("target", ALL_STATUSES)
    def test_every_state_reachable(self, start, target):
        frontier = {start}
        reached = set(frontier)
        for _ in range(4):
            frontier = {
                nxt.status
                for s in frontier
                for nxt in (cs.cycle(CellState(status=s)), cs.toggle(CellState(status=s)))
            }
            reached |= frontier
        assert target in reached


class TestText:
    def test_commit_keeps_status(self):
        edit = TextEdit(CellState(status=cs.FINAL, text="old"))
        edit.type("  새 메모 ")
        committed = edit.commit()
        assert committed == CellState(status=cs.FINAL, text="새 메모")

    def test_cancel_returns_original(self):
        original = CellState(status=cs.DONE, text="keep")
        edit = TextEdit(original)
        edit.type("discard me")
        assert edit.cancel() == original
        assert edit.draft == "keep"

    def test_default_state(self):
        assert CellState().is_default
        assert not CellState(text="x").is_default
        assert CellState.from_dict(None) == CellState()
        assert CellState.from_dict({"status": "done"}).to_dict() == {"status": "done", "text": ""}


def test_unknown_status_rejected():
    with pytest.raises(ValidationError):
        cs.validate_status("finished")
    with pytest.raises(ValidationError):
        CellState.from_dict({"status": "finished"})
