from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from services.models import Todo


STATUS_SUCCESS = "success"
STATUS_NOT_FOUND = "not_found"
STATUS_PARSE_ERROR = "parse_error"


@dataclass
class TodoAction:
    timestamp: str
    action: str  # add | toggle | delete
    todo_id: Optional[int]
    status: str  # success | not_found | parse_error
    origin: Optional[str] = None
    title: Optional[str] = None
    done: Optional[bool] = None  # state after the action; last state for delete
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class ActionLogger:
    """
    Thread-safe JSONL journal of what happened to the todos: one TodoAction
    per line. Successful actions carry the todo's title and resulting state;
    failed lookups and unparsable ids are journaled with their status.
    """

    def __init__(self, path: str = "actions.log") -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def _write(self, record: TodoAction) -> TodoAction:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with self._lock:
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        return record

    def log_todo(self, action: str, todo: Todo, origin: Optional[str] = None) -> TodoAction:
        return self._write(TodoAction(
            timestamp=_utc_stamp(),
            action=action,
            todo_id=todo.id,
            status=STATUS_SUCCESS,
            origin=origin,
            title=todo.title,
            done=todo.is_done,
        ))

    def log_failure(
        self,
        action: str,
        todo_id: Optional[int],
        status: str,
        origin: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> TodoAction:
        return self._write(TodoAction(
            timestamp=_utc_stamp(),
            action=action,
            todo_id=todo_id,
            status=status,
            origin=origin,
            details=details or {},
        ))

    def tail(self, limit: int = 100, action: Optional[str] = None, todo_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Last `limit` records, oldest first, optionally only those for one
        action or one todo. Unreadable lines are skipped.
        """
        if limit <= 0:
            return []

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            return []

        result: List[Dict[str, Any]] = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if action is not None and record.get("action") != action:
                continue
            if todo_id is not None and record.get("todo_id") != todo_id:
                continue
            result.append(record)
        return result[-limit:]
