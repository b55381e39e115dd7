from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from threading import Lock
from typing import Iterator, List, Optional

from .errors import EmptyTitleError, IdNotFoundError, InternalError
from .models import TaskEntity
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """Abstract contract for task storage backends."""

    @abstractmethod
    def insert(self, title: str, details: str) -> TaskEntity:
        """Store a new task and return it. Raises EmptyTitleError."""

    @abstractmethod
    def find_all(self) -> List[TaskEntity]:
        """Return every stored task in insertion order."""

    @abstractmethod
    def find_by_id(self, task_id: int) -> TaskEntity:
        """Return the task with the given id. Raises IdNotFoundError."""

    @abstractmethod
    def update(self, task_id: int, new_title: str, details: str) -> TaskEntity:
        """
        Replace title and details of an existing task and return it.
        Raises EmptyTitleError or IdNotFoundError; nothing changes on failure.
        """

    @abstractmethod
    def delete(self, task_id: int) -> TaskEntity:
        """Remove the task with the given id and return it. Raises IdNotFoundError."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored tasks."""


def _require_title(title: str) -> None:
    if not title.strip():
        raise EmptyTitleError()


class InMemoryTaskStore(TaskRepository):
    """
    Thread-safe in-memory task store.

    Tasks live in a list kept in insertion order and are guarded by a single
    lock. The lock is taken with a bounded wait (``lock_timeout`` seconds, 0
    for a plain try-acquire); when it cannot be obtained the operation fails
    with InternalError instead of stalling the caller.

    Identifiers come from a separate counter with its own lock, starting at 0.
    An identifier is spent as soon as it is allocated, so it is never handed
    out twice even if the insert that took it fails afterwards.
    """

    def __init__(self, lock_timeout: float = 1.0) -> None:
        if lock_timeout < 0:
            raise ValueError("lock_timeout must be >= 0")
        self._lock = Lock()
        self._lock_timeout = lock_timeout
        self._items: List[TaskEntity] = []
        self._id_lock = Lock()
        self._next_id = 0

    def _allocate_id(self) -> int:
        with self._id_lock:
            i = self._next_id
            self._next_id += 1
            return i

    @contextmanager
    def _critical_section(self) -> Iterator[List[TaskEntity]]:
        if self._lock_timeout == 0:
            acquired = self._lock.acquire(blocking=False)
        else:
            acquired = self._lock.acquire(timeout=self._lock_timeout)
        if not acquired:
            logger.warning("Task store lock unavailable after %ss", self._lock_timeout)
            raise InternalError()
        try:
            yield self._items
        finally:
            self._lock.release()

    @staticmethod
    def _index_of(items: List[TaskEntity], task_id: int) -> int:
        for index, task in enumerate(items):
            if task["id"] == task_id:
                return index
        raise IdNotFoundError(task_id)

    def insert(self, title: str, details: str) -> TaskEntity:
        _require_title(title)
        task: TaskEntity = {
            "id": self._allocate_id(),
            "title": title,
            "details": details,
        }
        with self._critical_section() as items:
            items.append(task)
        logger.debug("Inserted task %d", task["id"])
        return task.copy()

    def find_all(self) -> List[TaskEntity]:
        with self._critical_section() as items:
            # Return copies to avoid external mutation
            return [t.copy() for t in items]

    def find_by_id(self, task_id: int) -> TaskEntity:
        with self._critical_section() as items:
            return items[self._index_of(items, task_id)].copy()

    def update(self, task_id: int, new_title: str, details: str) -> TaskEntity:
        _require_title(new_title)
        with self._critical_section() as items:
            task = items[self._index_of(items, task_id)]
            task["title"] = new_title
            task["details"] = details
            updated = task.copy()
        logger.debug("Updated task %d", task_id)
        return updated

    def delete(self, task_id: int) -> TaskEntity:
        with self._critical_section() as items:
            removed = items.pop(self._index_of(items, task_id))
        logger.debug("Deleted task %d", task_id)
        return removed

    def count(self) -> int:
        with self._critical_section() as items:
            return len(items)


# PUBLIC_INTERFACE
def create_store(settings: Optional[Settings] = None) -> TaskRepository:
    """
    Build the task store used by the application from settings.

    The store is created once at startup and injected into the request
    handlers; it is never kept at module level.
    """
    settings = settings or get_settings()
    return InMemoryTaskStore(lock_timeout=settings.lock_timeout)
