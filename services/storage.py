from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from functools import cmp_to_key
from typing import Callable, List, Optional

from services.action_log import STATUS_NOT_FOUND, ActionLogger
from services.errors import TodoNotFoundError
from services.models import Todo


DEMO_TODOS = [
    ("first todo", False),
    ("second todo", False),
    ("third todo", False),
    ("fourth todo", True),
    ("fifth todo", True),
]


def _newest_first(a: Todo, b: Todo) -> int:
    if a.completed_at is not None and b.completed_at is not None:
        first, second = a.completed_at, b.completed_at
    else:
        first, second = a.created_at, b.created_at
    if first > second:
        return -1
    if first < second:
        return 1
    return 0


class TodoRepository:
    """
    Keeps todos in memory, in insertion order. Every read and write goes
    through one lock; callers only ever get copies of the stored records.
    """

    def __init__(
        self,
        logger: Optional[ActionLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._lock = threading.Lock()
        self._todos: List[Todo] = []
        self._next_id: int = 1
        self._logger = logger
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._todos)

    @property
    def logger(self) -> Optional[ActionLogger]:
        return self._logger

    def _log_todo(self, action: str, todo: Todo, origin: Optional[str]) -> None:
        if self._logger:
            self._logger.log_todo(action, todo, origin=origin)

    def _log_not_found(self, action: str, todo_id: int, origin: Optional[str]) -> None:
        if self._logger:
            self._logger.log_failure(action, todo_id, STATUS_NOT_FOUND, origin=origin)

    def _find_index(self, todo_id: int) -> int:
        for idx, todo in enumerate(self._todos):
            if todo.id == todo_id:
                return idx
        return -1

    def add(self, title: str, done: bool = False, origin: Optional[str] = None) -> Todo:
        with self._lock:
            now = self._clock()
            todo_id = self._next_id
            self._next_id += 1
            todo = Todo(id=todo_id, title=title, created_at=now, completed_at=now if done else None)
            self._todos.append(todo)
            created = replace(todo)

        self._log_todo("add", created, origin)
        return created

    def get(self, todo_id: int) -> Optional[Todo]:
        with self._lock:
            idx = self._find_index(todo_id)
            return replace(self._todos[idx]) if idx >= 0 else None

    def toggle(self, todo_id: int, origin: Optional[str] = None) -> Todo:
        """
        Flips the stored record between open and done.
        Raises TodoNotFoundError if there is no todo with this id.
        """
        with self._lock:
            idx = self._find_index(todo_id)
            if idx < 0:
                self._log_not_found("toggle", todo_id, origin)
                raise TodoNotFoundError(todo_id)
            todo = self._todos[idx]
            todo.completed_at = None if todo.completed_at is not None else self._clock()
            toggled = replace(todo)

        self._log_todo("toggle", toggled, origin)
        return toggled

    def delete(self, todo_id: int, origin: Optional[str] = None) -> None:
        with self._lock:
            idx = self._find_index(todo_id)
            if idx < 0:
                self._log_not_found("delete", todo_id, origin)
                raise TodoNotFoundError(todo_id)
            removed = self._todos.pop(idx)

        self._log_todo("delete", removed, origin)

    def list_all(self) -> List[Todo]:
        with self._lock:
            return [replace(t) for t in self._todos]

    def list_by_status(self, done: bool) -> List[Todo]:
        """
        Todos whose state matches `done`. Two completed todos are ordered by
        completion time, anything else by creation time, newest first.
        sorted() is stable, so equal timestamps keep insertion order.
        """
        with self._lock:
            matching = [replace(t) for t in self._todos if t.is_done == done]
        return sorted(matching, key=cmp_to_key(_newest_first))


def seed_demo_todos(repo: TodoRepository) -> None:
    for title, done in DEMO_TODOS:
        repo.add(title, done, origin="seed")
