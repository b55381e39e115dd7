from __future__ import annotations

from typing import TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain record representing a Task held by the task store.

    Fields:
    - id: Store-assigned unsigned integer, unique and never reused
    - title: Title as submitted; never empty after trimming
    - details: Free-form details, may be empty
    """

    id: int
    title: str
    details: str
