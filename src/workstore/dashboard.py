"""Local JSON API for workstore.

A module-level ``_store`` is set at startup (or by test fixtures) and
injected into handlers via ``Depends(_get_store)``.  Projects are loaded
into the store on first access.

Usage:
    workstore serve                    # http://localhost:8377/api
    workstore serve --port 9000        # Custom port
"""

from __future__ import annotations

import logging
from typing import Any

from workstore.config import find_workstore_root, read_config
from workstore.lifecycle import BugLifecycle
from workstore.logging import setup_logging
from workstore.notifications import LoggingSink
from workstore.persistence import JsonFileAdapter
from workstore.store import WorkItemStore

DEFAULT_PORT = 8377

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_store: WorkItemStore | None = None


def _get_store() -> WorkItemStore:
    """Return the active store, or 503 when the server has none configured."""
    from fastapi import HTTPException

    if _store is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    return _store


def create_app() -> Any:
    """Create the FastAPI application with all API endpoints."""
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    # Expose JSONResponse in module globals so PEP 563 deferred annotations resolve
    globals()["JSONResponse"] = JSONResponse

    from workstore import __version__
    from workstore.dashboard_routes import items

    app = FastAPI(title="Workstore", version=__version__, docs_url=None, redoc_url=None)
    app.include_router(items.create_router(), prefix="/api")

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        loaded = 0 if _store is None else len(_store)
        return JSONResponse({"status": "ok", "version": __version__, "items": loaded})

    return app


def main(port: int = DEFAULT_PORT) -> None:
    """Start the API server for the workspace discovered from cwd."""
    import uvicorn

    global _store

    workstore_dir = find_workstore_root()
    setup_logging(workstore_dir)
    config = read_config(workstore_dir)
    _store = WorkItemStore(
        JsonFileAdapter(workstore_dir),
        sink=LoggingSink(),
        lifecycle=BugLifecycle(enforcement=config.get("enforcement", "soft")),  # type: ignore[arg-type]
        default_resolver=config.get("default_resolver", ""),
    )
    _store.load(config.get("default_project", "default"))

    app = create_app()
    print(f"Workstore API: http://localhost:{port}/api")
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
