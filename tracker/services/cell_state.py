"""
Webtoon Studio Tracker
Status cell state machine.

A cell is one (process, episode) slot of a project's status grid. It carries a
``status`` and a free-form ``text`` note; the two are independent.

Two user actions move the status:

    cycle   (right-click)   none → inProgress → done → final → none
    toggle  (left-click)    none → done; done → none; inProgress/final → inProgress

Everything here is pure and never raises for a valid state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from tracker.core.exceptions import ValidationError

NONE = "none"
IN_PROGRESS = "inProgress"
DONE = "done"
FINAL = "final"

CELL_STATUSES = (NONE, IN_PROGRESS, DONE, FINAL)
COMPLETE_STATUSES = frozenset({DONE, FINAL})

_CYCLE = {
    NONE: IN_PROGRESS,
    IN_PROGRESS: DONE,
    DONE: FINAL,
    FINAL: NONE,
}


@dataclass(frozen=True)
class CellState:
    status: str = NONE
    text: str = ""

    @classmethod
    def from_dict(cls, data: dict | None) -> "CellState":
        """Build from the stored ``{status, text}`` shape; missing → default."""
        if not data:
            return cls()
        status = data.get("status") or NONE
        validate_status(status)
        return cls(status=status, text=data.get("text") or "")

    def to_dict(self) -> dict:
        return {"status": self.status, "text": self.text}

    @property
    def is_default(self) -> bool:
        return self.status == NONE and not self.text


def validate_status(status: str) -> str:
    if status not in CELL_STATUSES:
        raise ValidationError(
            f"Unknown cell status: {status!r}",
            details={"status": f"must be one of {', '.join(CELL_STATUSES)}"},
        )
    return status


def is_complete(status: str) -> bool:
    return status in COMPLETE_STATUSES


def cycle(state: CellState) -> CellState:
    return replace(state, status=_CYCLE[state.status])


def turn_on(state: CellState) -> CellState:
    return replace(state, status=DONE)


def turn_off(state: CellState) -> CellState:
    """``done`` clears; partial progress (inProgress/final) falls back to inProgress."""
    if state.status == DONE:
        return replace(state, status=NONE)
    if state.status == NONE:
        return state
    return replace(state, status=IN_PROGRESS)


def toggle(state: CellState) -> CellState:
    if state.status == NONE:
        return turn_on(state)
    return turn_off(state)


def edit_text(state: CellState, text: str | None) -> CellState:
    return replace(state, text=(text or "").strip())


class TextEdit:
    """An in-progress text edit of one cell.

    Opened by a double-activate; ``commit()`` on blur/Enter keeps the draft,
    ``cancel()`` on Escape returns the original state untouched.
    """

    def __init__(self, state: CellState):
        self.original = state
        self.draft = state.text

    def type(self, text: str) -> None:
        self.draft = text

    def commit(self) -> CellState:
        return edit_text(self.original, self.draft)

    def cancel(self) -> CellState:
        self.draft = self.original.text
        return self.original
