"""JSON-file persistence and CRUD operations for todos."""

import json
import logging
import os
import uuid
from datetime import (
    datetime,
    timezone,
)
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

logger = logging.getLogger(__name__)


class TodoNotFoundError(LookupError):
    """Raised when no todo has the requested id."""

    def __init__(self, todo_id: str):
        super().__init__("Todo not found")
        self.todo_id = todo_id


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TodoRecord(BaseModel):
    """One todo item as stored on disk."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    done: bool = False
    created_at: str = Field(default_factory=_now, alias="createdAt")
    completed_at: Optional[str] = Field(None, alias="completedAt")

    def to_json(self) -> Dict[str, Any]:
        """Camel-case dict without unset completion time."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TodoStore:
    """
    Todos kept in a single JSON file.

    Every operation reads the file and writes it back, so several processes can share one file
    as long as they take turns.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _read(self) -> List[TodoRecord]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        return [TodoRecord.model_validate(item) for item in json.loads(raw or "[]")]

    def _write(self, todos: List[TodoRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([todo.to_json() for todo in todos], indent=2), encoding="utf-8"
        )

    @staticmethod
    def _index(todos: List[TodoRecord], todo_id: str) -> int:
        for idx, todo in enumerate(todos):
            if todo.id == todo_id:
                return idx
        raise TodoNotFoundError(todo_id)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def list(self) -> List[TodoRecord]:
        """All todos in insertion order."""
        return self._read()

    def add(self, title: str) -> TodoRecord:
        """Append a new, open todo."""
        todos = self._read()
        todo = TodoRecord(title=title)
        todos.append(todo)
        self._write(todos)
        logger.info("Added todo %s", todo.id)
        return todo

    def complete(self, todo_id: str) -> TodoRecord:
        """Mark a todo done and stamp its completion time."""
        todos = self._read()
        todo = todos[self._index(todos, todo_id)]
        todo.done = True
        todo.completed_at = _now()
        self._write(todos)
        logger.info("Completed todo %s", todo_id)
        return todo

    def remove(self, todo_id: str) -> TodoRecord:
        """Delete a todo and return it."""
        todos = self._read()
        removed = todos.pop(self._index(todos, todo_id))
        self._write(todos)
        logger.info("Removed todo %s", todo_id)
        return removed

    def clear_completed(self) -> int:
        """Delete every completed todo; return how many were removed."""
        todos = self._read()
        remaining = [todo for todo in todos if not todo.done]
        self._write(remaining)
        return len(todos) - len(remaining)
