"""
Client-side state holder for a single board.

Mirrors what the board page keeps in memory: the board, its columns and
their ordered tasks. Drag-and-drop reorders locally first and then confirms
with the API; a refused or failed move restores the pre-drag snapshot.
Errors are recorded on ``error`` rather than raised, the way a UI would show
them.
"""
import copy
import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

NO_RETURN_TO_TODO_FROM = ("In Progress", "Review", "Done")


class BoardView:
    def __init__(self, client: httpx.AsyncClient, board_id: int):
        self.client = client
        self.board_id = board_id
        self.board: Optional[dict] = None
        self.columns: List[dict] = []
        self.loading = False
        self.error: Optional[str] = None
        self.active_task: Optional[dict] = None
        self._drag_snapshot: Optional[List[dict]] = None

    # --- Loading --- #

    async def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            res = await self.client.get(f"/api/boards/{self.board_id}")
            res.raise_for_status()
            data = res.json()
            self.columns = data.pop("columns")
            self.board = data
        except httpx.HTTPError as e:
            self.error = f"Failed to load board: {e}"
        finally:
            self.loading = False

    # --- Lookups --- #

    @property
    def total_tasks(self) -> int:
        return sum(len(c["tasks"]) for c in self.columns)

    def find_task(self, task_id: int) -> Optional[dict]:
        for col in self.columns:
            for task in col["tasks"]:
                if task["id"] == task_id:
                    return task
        return None

    def column_of_task(self, task_id: int) -> Optional[dict]:
        for col in self.columns:
            if any(t["id"] == task_id for t in col["tasks"]):
                return col
        return None

    def _resolve_target(self, over_id) -> Optional[dict]:
        # ``over_id`` is either a column id or the id of a task in that column.
        kind, value = over_id
        if kind == "column":
            return next((c for c in self.columns if c["id"] == value), None)
        return self.column_of_task(value)

    def _replace_task(self, task: dict) -> None:
        for col in self.columns:
            col["tasks"] = [task if t["id"] == task["id"] else t for t in col["tasks"]]

    # --- Board / column edits --- #

    async def update_board(self, title: Optional[str] = None, color: Optional[str] = None):
        payload = {k: v for k, v in (("title", title), ("color", color)) if v}
        if not payload or self.board is None:
            return None
        try:
            res = await self.client.patch(f"/api/boards/{self.board_id}", json=payload)
            res.raise_for_status()
            self.board.update(res.json())
            return self.board
        except httpx.HTTPError as e:
            self.error = f"Failed to update the board: {e}"
            return None

    async def create_column(self, title: str):
        if not title.strip():
            return None
        try:
            res = await self.client.post(
                f"/api/boards/{self.board_id}/columns", json={"title": title.strip()}
            )
            res.raise_for_status()
            column = {**res.json(), "tasks": []}
            self.columns.append(column)
            return column
        except httpx.HTTPError as e:
            self.error = f"Failed to create column: {e}"
            return None

    async def update_column(self, column_id: int, title: str):
        if not title.strip():
            return None
        try:
            res = await self.client.patch(f"/api/columns/{column_id}", json={"title": title.strip()})
            res.raise_for_status()
            updated = res.json()
            for col in self.columns:
                if col["id"] == column_id:
                    col.update(updated)
                    return col
        except httpx.HTTPError as e:
            self.error = f"Failed to update column: {e}"
        return None

    # --- Tasks --- #

    async def create_task(self, fields: dict, column_id: Optional[int] = None):
        """Create a task, by default in the first column."""
        if not (fields.get("title") or "").strip():
            return None
        if column_id is None:
            if not self.columns:
                return None
            column_id = self.columns[0]["id"]

        payload = {
            k: v.isoformat() if isinstance(v, date) else v
            for k, v in fields.items()
            if v not in (None, "")
        }
        try:
            res = await self.client.post(f"/api/columns/{column_id}/tasks", json=payload)
            res.raise_for_status()
            task = res.json()
        except httpx.HTTPError as e:
            self.error = f"Failed to create the task: {e}"
            return None

        for col in self.columns:
            if col["id"] == column_id:
                col["tasks"].append(task)
        return task

    async def update_task(self, task_id: int, fields: dict):
        payload = {k: v.isoformat() if isinstance(v, date) else v for k, v in fields.items()}
        try:
            res = await self.client.patch(f"/api/tasks/{task_id}", json=payload)
            res.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.error = e.response.text or "Failed to update the task."
            return None
        except httpx.HTTPError as e:
            self.error = f"Failed to update the task: {e}"
            return None

        updated = res.json()
        self._replace_task(updated)
        return updated

    async def task_history(self, task_id: int) -> list:
        try:
            res = await self.client.get(f"/api/tasks/{task_id}/history")
            res.raise_for_status()
            return res.json()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching task history: {e}")
            return []

    # --- Drag and drop --- #

    def drag_start(self, task_id: int) -> None:
        self.active_task = self.find_task(task_id)
        self._drag_snapshot = copy.deepcopy(self.columns)

    def drag_over(self, active_id: int, over_id: Tuple[str, int]) -> None:
        """Live reorder while hovering; only within the task's own column."""
        if over_id == ("task", active_id):
            return
        source = self.column_of_task(active_id)
        target = self._resolve_target(over_id)
        if not source or not target or source["id"] != target["id"]:
            return

        tasks = source["tasks"]
        active_index = next(i for i, t in enumerate(tasks) if t["id"] == active_id)
        over_index = next(
            (i for i, t in enumerate(tasks) if over_id == ("task", t["id"])), active_index
        )
        if active_index != over_index:
            moved = tasks.pop(active_index)
            tasks.insert(over_index, moved)

    async def drag_end(self, active_id: int, over_id: Optional[Tuple[str, int]]) -> bool:
        """
        Finish a drag. Returns True when the server accepted the move.

        ``over_id`` is ``("column", id)`` or ``("task", id)``, or None when
        dropped outside any lane.
        """
        self.active_task = None
        snapshot = self._drag_snapshot or copy.deepcopy(self.columns)
        self._drag_snapshot = None
        if over_id is None:
            self.columns = snapshot
            return False

        original = {c["id"]: c for c in snapshot}
        source = next(
            (c for c in snapshot if any(t["id"] == active_id for t in c["tasks"])), None
        )
        target = self._resolve_target(over_id)
        if not source or not target:
            self.columns = snapshot
            return False

        if target["title"] == "To Do" and source["title"] in NO_RETURN_TO_TODO_FROM:
            logger.warning(f"Tasks in '{source['title']}' cannot be moved back to 'To Do'")
            self.columns = snapshot
            return False

        if over_id == ("task", active_id):
            # Dropped on itself: keep the position reached while hovering.
            new_index = next(i for i, t in enumerate(target["tasks"]) if t["id"] == active_id)
        else:
            target_tasks = [t for t in original[target["id"]]["tasks"] if t["id"] != active_id]
            new_index = next(
                (i for i, t in enumerate(target_tasks) if over_id == ("task", t["id"])),
                len(target_tasks),
            )
        old_index = next(i for i, t in enumerate(source["tasks"]) if t["id"] == active_id)
        if source["id"] == target["id"] and old_index == new_index:
            self.columns = snapshot
            return False

        # Optimistic local move from the pre-drag state, then confirm.
        self.columns = copy.deepcopy(snapshot)
        self._apply_move(active_id, target["id"], new_index)

        try:
            res = await self.client.post(
                f"/api/tasks/{active_id}/move",
                json={"column_id": target["id"], "index": new_index},
            )
            res.raise_for_status()
            result = res.json()
        except httpx.HTTPError as e:
            self.error = f"Failed to move task: {e}"
            self.columns = snapshot
            return False

        if not result["moved"]:
            self.columns = snapshot
            return False

        self._replace_task(result["task"])
        return True

    def _apply_move(self, task_id: int, column_id: int, index: int) -> None:
        task = None
        for col in self.columns:
            for i, t in enumerate(col["tasks"]):
                if t["id"] == task_id:
                    task = col["tasks"].pop(i)
                    break
            if task:
                break
        if task is None:
            return
        task["column_id"] = column_id
        for col in self.columns:
            if col["id"] == column_id:
                col["tasks"].insert(index, task)

    # --- Filters --- #

    def filtered_columns(
        self, priorities: Iterable[str] = (), due_date: Optional[date] = None
    ) -> List[dict]:
        wanted = set(priorities)
        day = due_date.isoformat() if due_date else None

        def keep(task: dict) -> bool:
            if wanted and task["priority"] not in wanted:
                return False
            if day and task.get("due_date") != day:
                return False
            return True

        return [{**col, "tasks": [t for t in col["tasks"] if keep(t)]} for col in self.columns]
