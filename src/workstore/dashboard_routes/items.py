"""Work item, project view, and batch route handlers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.requests import Request

from workstore.dashboard_routes.common import (
    _ensure_project,
    _error_response,
    _id_list,
    _parse_json_body,
    _store_error_response,
)
from workstore.errors import WorkStoreError
from workstore.query import FilterCriteria, SortDirective
from workstore.store import WorkItemStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def create_router() -> APIRouter:
    """Build the APIRouter for work item endpoints.

    Handlers are async but call the synchronous store directly, so every
    mutation runs on the event loop thread one at a time.
    """
    from workstore.dashboard import _get_store

    router = APIRouter()

    # -- Project-scoped views ------------------------------------------------

    @router.get("/projects/{project_id}/items")
    async def api_list_items(
        project_id: str,
        request: Request,
        store: WorkItemStore = Depends(_get_store),
    ) -> JSONResponse:
        if (err := _ensure_project(store, project_id)) is not None:
            return err
        params = request.query_params
        criteria = FilterCriteria.from_mapping(
            {
                "statuses": params.getlist("status"),
                "priorities": params.getlist("priority"),
                "kinds": params.getlist("kind"),
                "severities": params.getlist("severity"),
                "tags": params.getlist("tag"),
                "search": params.get("q", ""),
            }
        )
        try:
            sort = SortDirective(field=params.get("sort", "updatedAt"), direction=params.get("direction", "desc"))
        except ValueError as e:
            return _error_response(str(e), "validation_error", 400)
        items = store.query(project_id, criteria, sort)
        return JSONResponse([i.to_dict() for i in items])

    @router.post("/projects/{project_id}/items")
    async def api_create_item(
        project_id: str,
        request: Request,
        store: WorkItemStore = Depends(_get_store),
    ) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        if (err := _ensure_project(store, project_id)) is not None:
            return err
        body["projectId"] = project_id
        try:
            item = store.create(body)
        except WorkStoreError as e:
            return _store_error_response(e)
        return JSONResponse(item.to_dict(), status_code=201)

    @router.get("/projects/{project_id}/stats")
    async def api_stats(project_id: str, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        if (err := _ensure_project(store, project_id)) is not None:
            return err
        return JSONResponse(store.stats(project_id))

    @router.get("/projects/{project_id}/tags")
    async def api_tags(project_id: str, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        if (err := _ensure_project(store, project_id)) is not None:
            return err
        return JSONResponse(store.tags(project_id))

    @router.post("/projects/{project_id}/reload")
    async def api_reload(project_id: str, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        if (err := _ensure_project(store, project_id)) is not None:
            return err
        try:
            loaded = store.load(project_id)
        except WorkStoreError as e:
            return _store_error_response(e)
        return JSONResponse({"status": "ok", "projectId": project_id, "loaded": len(loaded)})

    # -- Batch ---------------------------------------------------------------

    @router.post("/items/bulk-update")
    async def api_bulk_update(request: Request, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        ids = _id_list(body)
        if isinstance(ids, JSONResponse):
            return ids
        patch = body.get("patch")
        if not isinstance(patch, dict):
            return _error_response("patch must be a JSON object", "validation_error", 400)
        updated, errors = store.bulk_update(ids, patch)
        return JSONResponse({"updated": [i.to_dict() for i in updated], "errors": errors})

    @router.post("/items/bulk-delete")
    async def api_bulk_delete(request: Request, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        ids = _id_list(body)
        if isinstance(ids, JSONResponse):
            return ids
        deleted, errors = store.bulk_delete(ids)
        return JSONResponse({"deleted": deleted, "errors": errors})

    # -- Single item ---------------------------------------------------------

    @router.get("/items/{item_id}")
    async def api_get_item(item_id: str, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        try:
            item = store.get(item_id)
        except WorkStoreError as e:
            return _store_error_response(e)
        return JSONResponse(item.to_dict())

    @router.patch("/items/{item_id}")
    async def api_update_item(
        item_id: str,
        request: Request,
        store: WorkItemStore = Depends(_get_store),
    ) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            item = store.update(item_id, body)
        except WorkStoreError as e:
            return _store_error_response(e)
        return JSONResponse(item.to_dict())

    @router.delete("/items/{item_id}")
    async def api_delete_item(item_id: str, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        try:
            store.delete(item_id)
        except WorkStoreError as e:
            return _store_error_response(e)
        return JSONResponse({"deleted": item_id})

    @router.post("/items/{item_id}/duplicate")
    async def api_duplicate_item(item_id: str, store: WorkItemStore = Depends(_get_store)) -> JSONResponse:
        try:
            item = store.duplicate(item_id)
        except WorkStoreError as e:
            return _store_error_response(e)
        return JSONResponse(item.to_dict(), status_code=201)

    return router
