from __future__ import annotations


class TodoError(Exception):
    pass


class TodoNotFoundError(TodoError, LookupError):
    def __init__(self, todo_id: int) -> None:
        super().__init__(f"Unable to find todo with ID: {todo_id}")
        self.todo_id = todo_id
