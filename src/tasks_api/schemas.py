from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# PUBLIC_INTERFACE
class InsertTask(BaseModel):
    """
    Request body for creating a Task.

    The title is passed to the store untouched; the store rejects titles that
    are empty after trimming.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "non_empty_title": "Buy milk",
                "details": "2%",
            }
        },
    )

    non_empty_title: str = Field(..., description="Title of the new task; must not be blank")
    details: str = Field(..., description="Free-form details, may be empty")


# PUBLIC_INTERFACE
class UpdateTask(BaseModel):
    """
    Request body for replacing title and details of an existing Task.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": 0,
                "new_title": "Buy oat milk",
                "details": "2%",
            }
        },
    )

    id: int = Field(..., ge=0, description="Identifier of the task to update")
    new_title: str = Field(..., description="Replacement title; must not be blank")
    details: str = Field(..., description="Replacement details, may be empty")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 0,
                "title": "Buy milk",
                "details": "2%",
            }
        }
    )

    id: int = Field(..., ge=0, description="Store-assigned unique identifier")
    title: str = Field(..., description="Task title")
    details: str = Field(..., description="Task details")


# PUBLIC_INTERFACE
class ErrorOut(BaseModel):
    """
    Error body returned for every failed request.
    """

    error: str = Field(..., description="Machine-readable error kind, e.g. IdNotFound")
    message: str = Field(..., description="Human-readable description of the failure")
    detail: Optional[List[Any]] = Field(
        default=None, description="Validation error details, present for ValidationError only"
    )
