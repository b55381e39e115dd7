from __future__ import annotations


class TaskStoreError(Exception):
    """Base class for every failure the task store reports to its callers."""

    kind: str = "TaskStoreError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# PUBLIC_INTERFACE
class EmptyTitleError(TaskStoreError):
    """The title is empty or whitespace-only."""

    kind = "EmptyTitle"

    def __init__(self) -> None:
        super().__init__("`title` field of `Task` cannot be empty")


# PUBLIC_INTERFACE
class IdNotFoundError(TaskStoreError):
    """No stored task carries the requested id."""

    kind = "IdNotFound"

    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task id `{task_id}` not found")
        self.task_id = task_id


# PUBLIC_INTERFACE
class InternalError(TaskStoreError):
    """The store could not serve the request (e.g. its lock was unavailable)."""

    kind = "Internal"

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


# PUBLIC_INTERFACE
class PayloadTooLargeError(Exception):
    """A request body exceeded the configured size limit before it was decoded."""

    kind = "PayloadTooLarge"

    def __init__(self, limit: int) -> None:
        self.message = f"Request body exceeds {limit} bytes"
        super().__init__(self.message)
        self.limit = limit
