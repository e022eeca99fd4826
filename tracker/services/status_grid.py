"""
Webtoon Studio Tracker
Status grid: the (process x episode) table of one project.

The grid is a plain in-memory document: the process list, the episode range,
the sparse ``statuses`` map keyed ``"<processId>-<episode>"`` and the hidden
episode overlay. It knows nothing about the database; ``project_service``
loads it from a ``Project`` row, mutates it and writes it back.
"""

from __future__ import annotations

import copy

from tracker.core.exceptions import ValidationError
from tracker.services import cell_state as cs
from tracker.services.cell_state import CellState

# Canonical process-id range rendered by the bulk view
CANONICAL_PROCESS_IDS = tuple(range(1, 9))


def cell_key(process_id: int, episode: int) -> str:
    return f"{int(process_id)}-{int(episode)}"


def split_key(key: str) -> tuple[int, int] | None:
    """Return (process_id, episode) for a grid key, or None if malformed."""
    pid, sep, ep = key.partition("-")
    if not sep:
        return None
    try:
        return int(pid), int(ep)
    except ValueError:
        return None


class StatusGrid:
    """Mutable view over a project's grid document."""

    def __init__(
        self,
        processes: list[dict] | None = None,
        episode_count: int = 10,
        start_episode: int = 1,
        statuses: dict | None = None,
        hidden_episodes: list[int] | None = None,
    ):
        self.processes = [dict(p) for p in (processes or [])]
        self.episode_count = int(episode_count)
        self.start_episode = int(start_episode)
        self.statuses = {k: dict(v) for k, v in (statuses or {}).items()}
        self.hidden_episodes = sorted(set(int(e) for e in (hidden_episodes or [])))

    # ── Loading / saving ─────────────────────────────────────────────────

    @classmethod
    def from_project(cls, project) -> "StatusGrid":
        return cls(
            processes=project.processes,
            episode_count=project.episode_count,
            start_episode=project.start_episode,
            statuses=project.statuses,
            hidden_episodes=project.hidden_episodes,
        )

    def apply_to(self, project) -> None:
        """Write the grid back; JSON columns are reassigned, never mutated."""
        project.processes = copy.deepcopy(self.processes)
        project.episode_count = self.episode_count
        project.start_episode = self.start_episode
        project.statuses = copy.deepcopy(self.statuses)
        project.hidden_episodes = list(self.hidden_episodes)

    def snapshot(self) -> dict:
        return {
            "processes": copy.deepcopy(self.processes),
            "episode_count": self.episode_count,
            "start_episode": self.start_episode,
            "statuses": copy.deepcopy(self.statuses),
            "hidden_episodes": list(self.hidden_episodes),
        }

    def restore(self, snap: dict) -> None:
        self.processes = copy.deepcopy(snap["processes"])
        self.episode_count = snap["episode_count"]
        self.start_episode = snap["start_episode"]
        self.statuses = copy.deepcopy(snap["statuses"])
        self.hidden_episodes = list(snap["hidden_episodes"])

    # ── Cells ────────────────────────────────────────────────────────────

    @property
    def process_ids(self) -> list[int]:
        return [int(p["id"]) for p in self.processes]

    @property
    def end_episode(self) -> int:
        return self.start_episode + self.episode_count - 1

    def get_cell(self, process_id: int, episode: int) -> CellState:
        return CellState.from_dict(self.statuses.get(cell_key(process_id, episode)))

    def set_cell(self, process_id: int, episode: int, state: CellState) -> CellState:
        """Replace one cell. Always succeeds; the key is created lazily."""
        self.statuses[cell_key(process_id, episode)] = state.to_dict()
        return state

    def is_episode_fully_complete(self, episode: int) -> bool:
        pids = self.process_ids
        if not pids:
            return False
        return all(cs.is_complete(self.get_cell(pid, episode).status) for pid in pids)

    def set_episode_complete(self, episode: int, checked: bool) -> None:
        target = cs.DONE if checked else cs.NONE
        for pid in self.process_ids:
            current = self.get_cell(pid, episode)
            self.set_cell(pid, episode, CellState(status=target, text=current.text))

    # ── Episode range ────────────────────────────────────────────────────

    def episode_range(self) -> list[int]:
        return list(range(self.start_episode, self.end_episode + 1))

    def display_episodes(self) -> list[int]:
        hidden = set(self.hidden_episodes)
        return [ep for ep in self.episode_range() if ep not in hidden]

    def is_displayable(self, episode: int) -> bool:
        return self.start_episode <= episode <= self.end_episode and episode not in self.hidden_episodes

    def add_episode(self) -> int:
        self.episode_count += 1
        return self.end_episode

    def remove_last_episode(self) -> int:
        """Drop the highest episode and every grid key for it. Returns the episode removed."""
        if self.episode_count <= 1:
            raise ValidationError(
                "A project must keep at least one episode",
                details={"episode_count": self.episode_count},
            )
        removed = self.end_episode
        self.statuses = {
            k: v for k, v in self.statuses.items()
            if (split_key(k) or (None, None))[1] != removed
        }
        self.hidden_episodes = [ep for ep in self.hidden_episodes if ep != removed]
        self.episode_count -= 1
        return removed

    def hide_episodes(self, start: int, end: int) -> list[int]:
        if start > end:
            raise ValidationError("start must not be greater than end",
                                  details={"start": start, "end": end})
        if start < self.start_episode or end > self.end_episode:
            raise ValidationError(
                f"Episodes must be within {self.start_episode}..{self.end_episode}",
                details={"start": start, "end": end},
            )
        self.hidden_episodes = sorted(set(self.hidden_episodes) | set(range(start, end + 1)))
        return self.hidden_episodes

    def show_all(self) -> None:
        self.hidden_episodes = []

    # ── Processes ────────────────────────────────────────────────────────

    def find_process(self, process_id: int) -> dict | None:
        for proc in self.processes:
            if int(proc["id"]) == int(process_id):
                return proc
        return None

    def add_process(self, name: str, assignee: str = "") -> dict:
        next_id = max(self.process_ids, default=0) + 1
        proc = {"id": next_id, "name": name, "assignee": assignee}
        self.processes.append(proc)
        return proc

    def remove_process(self, process_id: int) -> None:
        self.processes = [p for p in self.processes if int(p["id"]) != int(process_id)]
        self.statuses = {
            k: v for k, v in self.statuses.items()
            if (split_key(k) or (None, None))[0] != int(process_id)
        }

    def replace_processes(self, processes: list[dict]) -> None:
        """Swap the process list; grid keys of dropped process ids are removed."""
        keep = {int(p["id"]) for p in processes}
        self.processes = [dict(p) for p in processes]
        self.statuses = {
            k: v for k, v in self.statuses.items()
            if (split_key(k) or (None, None))[0] in keep
        }

    # ── Aggregates ───────────────────────────────────────────────────────

    def completed_episodes(self) -> list[int]:
        return [ep for ep in self.episode_range() if self.is_episode_fully_complete(ep)]

    def completed_episode_count(self) -> int:
        return len(self.completed_episodes())

    def progress_percent(self) -> int:
        """Share of displayed cells that are done or final, 0-100."""
        episodes = self.display_episodes()
        total = len(episodes) * len(self.processes)
        if not total:
            return 0
        done = sum(
            1 for ep in episodes for pid in self.process_ids
            if cs.is_complete(self.get_cell(pid, ep).status)
        )
        return round(done * 100 / total)

    def process_completed_count(self, process_id: int) -> int:
        return sum(
            1 for ep in self.display_episodes()
            if cs.is_complete(self.get_cell(process_id, ep).status)
        )

    def bulk_row(self, episode: int) -> list[dict]:
        """One row of the bulk view: a slot per canonical process id."""
        row = []
        for pid in CANONICAL_PROCESS_IDS:
            proc = self.find_process(pid)
            if proc is None:
                row.append({"process_id": pid, "disabled": True, "name": None,
                            "status": cs.NONE, "text": ""})
                continue
            cell = self.get_cell(pid, episode)
            row.append({"process_id": pid, "disabled": False, "name": proc["name"],
                        "status": cell.status, "text": cell.text})
        return row

    def bulk_rows(self) -> list[dict]:
        return [
            {"episode": ep, "complete": self.is_episode_fully_complete(ep), "cells": self.bulk_row(ep)}
            for ep in self.display_episodes()
        ]
