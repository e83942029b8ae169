"""
JSON-RPC module for the note daemon.

Contains the request/response envelopes, the parameter models for every
method, and the dispatcher that maps a method name onto a Domain operation.
Domain exceptions are converted to JSON-RPC error objects here and nowhere else.
"""

import json
from typing import Any

import structlog
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ErrorData,
)
from pydantic import BaseModel, ConfigDict, ValidationError

from .domain import Domain
from .models import DateRange, TaskFilter, TaskStatus
from .utils import (
    ContentValidationError,
    DateParseError,
    IndexConsistencyError,
    NoteNotFoundError,
    PathValidationError,
    TaskNotFoundError,
    VaultError,
    parse_date,
)

logger = structlog.get_logger(__name__)

JSONRPC_VERSION = "2.0"

# Implementation-defined server error codes.
SERVER_ERROR = -32000
NOT_FOUND = -32001


class RpcError(Exception):
    """An error reported to the caller as a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_error_data(self) -> ErrorData:
        return ErrorData(code=self.code, message=self.message)

    @classmethod
    def parse_error(cls, message: str) -> "RpcError":
        return cls(PARSE_ERROR, message)

    @classmethod
    def invalid_request(cls, message: str) -> "RpcError":
        return cls(INVALID_REQUEST, message)

    @classmethod
    def method_not_found(cls, method: str) -> "RpcError":
        return cls(METHOD_NOT_FOUND, f"unknown method '{method}'")

    @classmethod
    def invalid_params(cls, message: str) -> "RpcError":
        return cls(INVALID_PARAMS, message)

    @classmethod
    def not_found(cls, message: str) -> "RpcError":
        return cls(NOT_FOUND, message)

    @classmethod
    def internal(cls, message: str) -> "RpcError":
        return cls(INTERNAL_ERROR, message)


# ============== Envelopes ==============

class RpcRequest(BaseModel):
    """Inbound JSON-RPC request or notification."""

    jsonrpc: str | None = None
    id: int | str | None = None
    method: str
    params: Any = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


def result_response(request_id: int | str | None, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: int | str | None, error: RpcError) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": error.to_error_data().model_dump(exclude_none=True),
    }


# ============== Parameters ==============

class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ListTasksParams(_Params):
    status: TaskStatus | None = None
    tags: list[str] | None = None
    text_search: str | None = None
    touched_since: str | None = None


class TaskDetailParams(_Params):
    task_id: str


class TagParams(_Params):
    tag: str


class RangeParams(_Params):
    start: str
    end: str


class OpenDailyParams(_Params):
    date: str


class NoteParams(_Params):
    note_id: str


class WriteNoteParams(_Params):
    note_id: str
    content: str


def parse_params(model: type[BaseModel], params: Any) -> Any:
    """Validate params against a model, treating absent params as {}."""
    if params is not None and not isinstance(params, dict):
        raise RpcError.invalid_params("params must be an object")
    try:
        return model.model_validate(params or {})
    except ValidationError as e:
        raise RpcError.invalid_params(_describe_validation_error(e))


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"]) or "params"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_range(start: str, end: str) -> DateRange:
    return DateRange(start=parse_date(start), end=parse_date(end))


def to_json(value: Any) -> Any:
    """Convert models (or lists of models) into JSON-compatible data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [to_json(item) for item in value]
    return value


# ============== Dispatch ==============

async def call_method(domain: Domain, method: str, params: Any) -> Any:
    """Run a single method and return its JSON-compatible result.

    Raises:
        RpcError: For unknown methods, invalid params, missing ids and
            failures of the underlying operation
    """
    try:
        return await _dispatch(domain, method, params)
    except RpcError:
        raise
    except (DateParseError, ContentValidationError, PathValidationError) as e:
        raise RpcError.invalid_params(str(e))
    except (NoteNotFoundError, TaskNotFoundError) as e:
        raise RpcError.not_found(str(e))
    except VaultError as e:
        raise RpcError(SERVER_ERROR, str(e))
    except IndexConsistencyError as e:
        raise RpcError.internal(str(e))


async def _dispatch(domain: Domain, method: str, params: Any) -> Any:
    if method == "core.reindex":
        result = await domain.reindex_all()
        return {"status": "ok", **result.model_dump(mode="json")}

    elif method == "core.list_tasks":
        p = parse_params(ListTasksParams, params)
        task_filter = TaskFilter(
            status=p.status,
            tags=p.tags or [],
            text_search=p.text_search,
            touched_since=parse_date(p.touched_since) if p.touched_since else None,
        )
        return to_json(domain.list_tasks(task_filter))

    elif method == "core.task_detail":
        p = parse_params(TaskDetailParams, params)
        detail = domain.task_detail(p.task_id)
        if detail is None:
            raise TaskNotFoundError(p.task_id)
        return to_json(detail)

    elif method == "core.items_for_tag":
        p = parse_params(TagParams, params)
        return to_json(domain.items_for_tag(p.tag))

    elif method == "core.list_tags":
        return domain.list_tags()

    elif method == "core.notes_in_range":
        p = parse_params(RangeParams, params)
        return to_json(domain.notes_in_range(parse_range(p.start, p.end)))

    elif method == "core.weekly_summary":
        p = parse_params(RangeParams, params)
        return to_json(domain.weekly_summary(parse_range(p.start, p.end)))

    elif method == "core.open_daily":
        p = parse_params(OpenDailyParams, params)
        return to_json(await domain.open_daily(parse_date(p.date)))

    elif method == "core.read_note":
        p = parse_params(NoteParams, params)
        note = domain.read_note(p.note_id)
        if note is None:
            raise NoteNotFoundError(p.note_id)
        return to_json(note)

    elif method == "core.write_note":
        p = parse_params(WriteNoteParams, params)
        return to_json(await domain.write_note(p.note_id, p.content))

    raise RpcError.method_not_found(method)


async def handle_line(domain: Domain, line: str) -> dict[str, Any] | None:
    """Process one line of input and return the response to send, if any.

    Notifications (requests without an id) never produce a response; their
    failures are logged instead.
    """
    try:
        payload = json.loads(line)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning("malformed_json", error=str(e))
        return error_response(None, RpcError.parse_error(str(e)))

    if not isinstance(payload, dict):
        return error_response(None, RpcError.invalid_request("request must be a JSON object"))

    is_notification = "id" not in payload
    request_id = payload.get("id")
    if not isinstance(request_id, (int, str)) or isinstance(request_id, bool):
        request_id = None

    try:
        request = RpcRequest.model_validate(payload)
    except ValidationError as e:
        error = RpcError.invalid_request(_describe_validation_error(e))
        return _reply_or_log(is_notification, request_id, payload.get("method"), error)

    if request.jsonrpc != JSONRPC_VERSION:
        error = RpcError.invalid_request('jsonrpc field must be "2.0"')
        return _reply_or_log(request.is_notification, request_id, request.method, error)

    try:
        result = await call_method(domain, request.method, request.params)
    except RpcError as e:
        return _reply_or_log(request.is_notification, request.id, request.method, e)
    except Exception as e:
        logger.exception("request_crashed", method=request.method)
        error = RpcError.internal(str(e))
        return _reply_or_log(request.is_notification, request.id, request.method, error)

    if request.is_notification:
        logger.debug("notification_handled", method=request.method)
        return None
    return result_response(request.id, result)


def _reply_or_log(
    is_notification: bool,
    request_id: int | str | None,
    method: Any,
    error: RpcError,
) -> dict[str, Any] | None:
    if is_notification:
        logger.warning("notification_failed", method=method, code=error.code, error=error.message)
        return None
    logger.debug("request_failed", method=method, code=error.code, error=error.message)
    return error_response(request_id, error)
