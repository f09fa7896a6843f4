"""HTTP transport for the gateway.

Routes (all but /health need the API key when one is configured):
    POST /sql/run       propose a submission (runs reads, parks writes)
    POST /sql/execute   redeem a confirmation token
    GET  /schema        schema text for prompting an agent
    GET  /health
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from sqlgate import __version__
from sqlgate.adapters._base import AdapterError, ConnectionConfig, schema_text
from sqlgate.adapters._registry import get_adapter
from sqlgate.config import Config
from sqlgate.gateway import ExecuteStatus, Gateway, ProposeStatus
from sqlgate.querylog import audit_confirm, audit_propose
from sqlgate.tokens import TokenStore

logger = logging.getLogger(__name__)

_PROPOSE_HTTP_STATUS = {
    ProposeStatus.SUCCESS: 200,
    ProposeStatus.NEEDS_CONFIRMATION: 200,
    ProposeStatus.FORBIDDEN: 400,
    ProposeStatus.ERROR: 500,
}

_EXECUTE_HTTP_STATUS = {
    ExecuteStatus.SUCCESS: 200,
    ExecuteStatus.INVALID_REQUEST: 400,
    ExecuteStatus.UNAUTHORIZED: 401,
    ExecuteStatus.EXECUTION_ERROR: 500,
}


class RunRequest(BaseModel):
    sql: str = Field(..., description="SQL to run, or to propose when it modifies data")


class ExecuteRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Confirmation token from /sql/run")


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "malformed body"


UNAUTHORIZED_MESSAGE = "Unauthorized: invalid or missing API key"


def _supplied_key(request: Request) -> str | None:
    # A Bearer header decides on its own; the query parameter is the fallback.
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):]
    return request.query_params.get("api_key")


def api_key_guard(api_key: str | None):
    """Build a dependency that checks the caller's key. No key, no check."""

    async def require_api_key(request: Request) -> None:
        if not api_key:
            return
        supplied = _supplied_key(request)
        if not supplied or not secrets.compare_digest(supplied.encode(), api_key.encode()):
            raise HTTPException(
                status.HTTP_401_UNAUTHORIZED,
                detail=UNAUTHORIZED_MESSAGE,
                headers={"WWW-Authenticate": "Bearer"},
            )

    return require_api_key


def create_app(connection: ConnectionConfig, config: Config | None = None) -> FastAPI:
    """Build the app. The adapter, token store and gateway live for its lifespan."""
    config = config or Config()
    guarded = [Depends(api_key_guard(config.api_key))]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        adapter = get_adapter(connection.db_type)()
        await adapter.connect(connection)
        store = TokenStore(
            expiration_ms=config.token.expiration_ms,
            cleanup_interval_ms=config.token.cleanup_interval_ms,
        )
        store.start()
        app.state.gateway = Gateway(
            adapter,
            store,
            dialect=adapter.dialect(),
            execute_endpoint=config.execute_endpoint,
        )
        logger.info("sqlgate serving %s (%s)", connection.name, connection.db_type.value)
        try:
            yield
        finally:
            await store.close()
            await adapter.close()

    app = FastAPI(
        title="sqlgate",
        version=__version__,
        description="SQL safety gate with confirmation tokens for agent-issued writes",
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Invalid request: {_validation_message(exc)}"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Request processing failed: {exc}"},
        )

    @app.post("/sql/run", tags=["sql"], dependencies=guarded)
    async def run_sql(body: RunRequest, request: Request) -> JSONResponse:
        gateway: Gateway = request.app.state.gateway
        result = await gateway.propose(body.sql)
        audit_propose(result, db=connection.name)
        return JSONResponse(
            status_code=_PROPOSE_HTTP_STATUS[result.status],
            content=jsonable_encoder(result.to_dict()),
        )

    @app.post(config.execute_endpoint, tags=["sql"], dependencies=guarded)
    async def execute_sql(body: ExecuteRequest, request: Request) -> JSONResponse:
        gateway: Gateway = request.app.state.gateway
        result = await gateway.confirm_and_execute(body.token)
        audit_confirm(result, db=connection.name)
        return JSONResponse(
            status_code=_EXECUTE_HTTP_STATUS[result.status],
            content=jsonable_encoder(result.to_dict()),
        )

    @app.get("/schema", tags=["sql"], dependencies=guarded)
    async def schema(request: Request) -> JSONResponse:
        gateway: Gateway = request.app.state.gateway
        try:
            metadata = await gateway.database.introspect()
        except AdapterError as e:
            return JSONResponse(status_code=500, content={"error": str(e)})
        return JSONResponse(content={"schema": schema_text(metadata)})

    @app.get("/health", tags=["ops"])
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app
