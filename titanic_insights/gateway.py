from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from titanic_insights.config import AppConfig
from titanic_insights.sql_policy import QueryRejected, validate_read_only
from titanic_insights.store import StoreQueryError, TitanicStore


logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    # Non-string values are rejected by the read-only policy with a 400
    sql: Any = None


class QueryResponse(BaseModel):
    data: list[dict[str, Any]]


def get_store(request: Request) -> TitanicStore:
    return request.app.state.store


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


store_dep = Annotated[TitanicStore, Depends(get_store)]
config_dep = Annotated[AppConfig, Depends(get_config)]

router = APIRouter(prefix="/api", tags=["Query"])


@router.get("/health")
def health(store: store_dep, config: config_dep):
    """Record count plus static-asset diagnostics."""
    try:
        records = store.count()
    except Exception as exc:
        logger.exception("Health check failed: %s", exc)
        return JSONResponse(
            status_code=500, content={"status": "error", "message": str(exc)}
        )

    return {
        "status": "ok",
        "records": records,
        "env": config.app_env,
        "distExists": config.static_dir.exists(),
        "indexExists": (config.static_dir / "index.html").exists(),
    }


@router.post("/query", response_model=QueryResponse)
def run_query(store: store_dep, payload: Optional[QueryRequest] = None):
    """
    Execute a single read-only query against the passenger table.
    400 for a missing query, 403 for anything that is not a SELECT,
    500 with the store's message when execution fails.
    """
    raw_sql = payload.sql if payload is not None else None
    logger.info("Executing SQL: %s", raw_sql)

    try:
        sql = validate_read_only(raw_sql)
    except QueryRejected as exc:
        logger.warning("Rejected SQL (%s): %s", exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    try:
        rows = store.query(sql)
    except StoreQueryError as exc:
        logger.error("SQL Execution Error: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return {"data": jsonable_encoder(rows)}


async def invalid_request_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies answer 400 ``{error}`` like every other rejected query."""
    logger.warning("Invalid request body for %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def _load_store(config: AppConfig) -> TitanicStore:
    try:
        return TitanicStore.from_csv(config.data_path)
    except Exception as exc:
        # Serve an empty table rather than refusing to start.
        logger.exception("Failed to load Titanic data: %s", exc)
        return TitanicStore()


def create_app(
    store: TitanicStore | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    config = config or AppConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Build the table on startup unless a store was injected
        if getattr(app.state, "store", None) is None:
            app.state.store = _load_store(config)
        yield

    app = FastAPI(title="Titanic Insights Query Gateway", lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.add_exception_handler(RequestValidationError, invalid_request_handler)
    app.include_router(router)
    return app
