from __future__ import annotations

from typing import List, Type, TypeVar

from fastapi import APIRouter, Depends, Path, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from ..errors import PayloadTooLargeError
from ..repositories import TaskRepository
from ..schemas import ErrorOut, InsertTask, TaskOut, UpdateTask
from ..settings import Settings

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

_Body = TypeVar("_Body", bound=BaseModel)


def get_store(request: Request) -> TaskRepository:
    """
    Dependency returning the task store injected into the app at startup.
    """
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    """
    Dependency returning the settings the app was built with.
    """
    return request.app.state.settings


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(limit)
    # Chunked uploads carry no length; stop reading once the limit is passed.
    chunks: List[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError(limit)
        chunks.append(chunk)
    return b"".join(chunks)


def _decode(model: Type[_Body], body: bytes) -> _Body:
    try:
        return model.model_validate_json(body)
    except ValidationError as exc:
        errors = []
        for error in exc.errors(include_url=False):
            # Raw bytes input may not be valid UTF-8 and must stay JSON-serializable
            if isinstance(error.get("input"), bytes):
                error = {**error, "input": error["input"].decode("utf-8", "replace")}
            errors.append(error)
        raise RequestValidationError(errors, body=body) from exc


async def decode_insert_task(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> InsertTask:
    """
    Read the raw body, enforce the size limit, then decode it as InsertTask.
    """
    return _decode(InsertTask, await _read_body(request, settings.max_body_bytes))


async def decode_update_task(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> UpdateTask:
    """
    Read the raw body, enforce the size limit, then decode it as UpdateTask.
    """
    return _decode(UpdateTask, await _read_body(request, settings.max_body_bytes))


def _json_body(model: Type[BaseModel]) -> dict:
    # Bodies are decoded by hand, so describe them in the OpenAPI schema explicitly.
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


_TASK_ERRORS = {
    404: {"model": ErrorOut, "description": "Task id not found"},
    500: {"model": ErrorOut, "description": "Task store unavailable"},
}
_BODY_ERRORS = {
    400: {"model": ErrorOut, "description": "Empty title"},
    413: {"model": ErrorOut, "description": "Request body too large"},
    422: {"model": ErrorOut, "description": "Malformed request body"},
}


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Insert Task",
    description="Create a new Task and return it with its store-assigned id.",
    responses={201: {"description": "Task created"}, 500: _TASK_ERRORS[500], **_BODY_ERRORS},
    openapi_extra=_json_body(InsertTask),
)
def insert_task(
    response: Response,
    payload: InsertTask = Depends(decode_insert_task),
    store: TaskRepository = Depends(get_store),
) -> TaskOut:
    """
    Insert a new Task.
    """
    created = store.insert(payload.non_empty_title, payload.details)
    response.headers["Location"] = f"/tasks/{created['id']}"
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="Return every Task in insertion order.",
    responses={200: {"description": "Tasks listed"}, 500: _TASK_ERRORS[500]},
)
def find_all_tasks(store: TaskRepository = Depends(get_store)) -> List[TaskOut]:
    """
    List every Task in insertion order.
    """
    return [TaskOut(**t) for t in store.find_all()]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single Task by id.",
    responses={200: {"description": "Task found"}, **_TASK_ERRORS},
)
def find_task_by_id(
    task_id: int = Path(..., ge=0, description="Task identifier"),
    store: TaskRepository = Depends(get_store),
) -> TaskOut:
    """
    Retrieve a single Task by its id.
    """
    return TaskOut(**store.find_by_id(task_id))


# PUBLIC_INTERFACE
@router.put(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Update Task",
    description=(
        "Replace title and details of the Task named by the body's id. "
        "The id itself never changes."
    ),
    responses={201: {"description": "Task updated"}, **_TASK_ERRORS, **_BODY_ERRORS},
    openapi_extra=_json_body(UpdateTask),
)
def update_task(
    response: Response,
    payload: UpdateTask = Depends(decode_update_task),
    store: TaskRepository = Depends(get_store),
) -> TaskOut:
    """
    Update a Task in place. Returns 201 with the updated Task, 404 if the id is unknown.
    """
    updated = store.update(payload.id, payload.new_title, payload.details)
    response.headers["Location"] = f"/tasks/{updated['id']}"
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=TaskOut,
    summary="Delete Task",
    description="Delete a Task by id and return the removed Task.",
    responses={200: {"description": "Task deleted"}, **_TASK_ERRORS},
)
def delete_task(
    task_id: int = Path(..., ge=0, description="Task identifier"),
    store: TaskRepository = Depends(get_store),
) -> TaskOut:
    """
    Delete a Task. Returns 200 with the removed Task, 404 if the id is unknown.
    """
    return TaskOut(**store.delete(task_id))
