"""Shared helpers for API route modules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi.responses import JSONResponse
    from starlette.requests import Request

from workstore.errors import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    WorkStoreError,
    error_code,
)
from workstore.persistence import is_valid_project_id
from workstore.store import WorkItemStore

logger = logging.getLogger(__name__)


def _error_response(
    message: str,
    code: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Return a structured error response and log the error."""
    from fastapi.responses import JSONResponse

    logger.warning("API error [%s] %s: %s", status_code, code, message)
    return JSONResponse(
        {"error": {"message": message, "code": code, "details": details or {}}},
        status_code=status_code,
    )


def _store_error_response(exc: WorkStoreError) -> JSONResponse:
    """Map a store exception onto its HTTP status."""
    if isinstance(exc, NotFoundError):
        return _error_response(str(exc), error_code(exc), 404, {"id": exc.item_id})
    if isinstance(exc, InvalidTransitionError):
        details = {"from": exc.from_status, "to": exc.to_status, "kind": exc.kind}
        return _error_response(str(exc), error_code(exc), 409, details)
    if isinstance(exc, PersistenceError):
        return _error_response(str(exc), error_code(exc), 503, {"projectId": exc.project_id})
    return _error_response(str(exc), error_code(exc), 400)


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Parse and validate a JSON object body, returning 400 on failure."""
    import json

    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError, UnicodeDecodeError):
        return _error_response("Invalid JSON body", "validation_error", 400)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", "validation_error", 400)
    return body


def _ensure_project(store: WorkItemStore, project_id: str) -> JSONResponse | None:
    """Load *project_id* on first access. Returns an error response on failure."""
    if not is_valid_project_id(project_id):
        return _error_response(f"Invalid project id: {project_id!r}", "validation_error", 400)
    if store.is_loaded(project_id):
        return None
    try:
        store.load(project_id)
    except WorkStoreError as exc:
        return _store_error_response(exc)
    return None


def _id_list(body: dict[str, Any]) -> list[str] | JSONResponse:
    ids = body.get("ids")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        return _error_response("ids must be a list of strings", "validation_error", 400)
    return ids
