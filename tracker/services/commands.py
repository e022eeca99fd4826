"""
Webtoon Studio Tracker
Optimistic grid commands.

Every grid edit is a command with ``apply(grid)`` and ``revert(grid)``. The
edit is applied to the in-memory grid first; if the primary write then fails,
``run_optimistic`` reverts the command and raises ``StorageError`` so the
caller never keeps a local state the store does not have.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from tracker.core.exceptions import StorageError
from tracker.models import db
from tracker.services.cell_state import CellState
from tracker.services.status_grid import StatusGrid, cell_key

logger = logging.getLogger(__name__)


class GridCommand:
    """Base command: reverts by restoring a snapshot taken in ``apply``."""

    label = "grid change"

    def __init__(self):
        self._before: dict | None = None

    def apply(self, grid: StatusGrid) -> Any:
        self._before = grid.snapshot()
        return self.execute(grid)

    def execute(self, grid: StatusGrid) -> Any:
        raise NotImplementedError

    def revert(self, grid: StatusGrid) -> None:
        if self._before is not None:
            grid.restore(self._before)


class SetCellCommand(GridCommand):
    """Replace one cell. Reverts only that key, leaving the rest of the grid alone."""

    label = "cell"

    def __init__(self, process_id: int, episode: int, state: CellState):
        super().__init__()
        self.process_id = process_id
        self.episode = episode
        self.state = state
        self._previous: dict | None = None

    def apply(self, grid: StatusGrid) -> CellState:
        self._previous = grid.statuses.get(cell_key(self.process_id, self.episode))
        return grid.set_cell(self.process_id, self.episode, self.state)

    def revert(self, grid: StatusGrid) -> None:
        key = cell_key(self.process_id, self.episode)
        if self._previous is None:
            grid.statuses.pop(key, None)
        else:
            grid.statuses[key] = dict(self._previous)


class CallCommand(GridCommand):
    """Wrap a grid method call, e.g. ``CallCommand("add episode", StatusGrid.add_episode)``."""

    def __init__(self, label: str, fn: Callable[..., Any], *args, **kwargs):
        super().__init__()
        self.label = label
        self.fn = fn
        self.args = args
        self.kwargs = kwargs

    def execute(self, grid: StatusGrid) -> Any:
        return self.fn(grid, *self.args, **self.kwargs)


def run_optimistic(command: GridCommand, grid: StatusGrid, persist: Callable[[StatusGrid], None]) -> Any:
    """Apply ``command`` then ``persist`` the grid; revert on a failed write.

    Validation errors raised by ``apply`` propagate untouched: nothing has
    been written and the grid is unchanged.
    """
    result = command.apply(grid)
    try:
        persist(grid)
    except (SQLAlchemyError, StorageError) as exc:
        db.session.rollback()
        command.revert(grid)
        logger.warning("Write failed for %s, local change reverted: %s", command.label, exc)
        if isinstance(exc, StorageError):
            raise
        raise StorageError(command.label, exc) from exc
    return result
