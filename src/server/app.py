"""FastAPI application the workflow host calls to execute the attachment node."""

from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.attachment.errors import ConfigurationError, ItemProcessingError, ValidationError
from src.attachment.relay import AttachmentRelay
from src.attachment.transport import HttpxTransport
from src.audit.logger import AuditLogger
from src.credentials import CredentialStore
from src.nodes.attachment import NODE_DESCRIPTION, execute_node
from src.server.auth_middleware import AuthMiddleware

logger = logging.getLogger(__name__)


class ExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[dict[str, Any]]
    continue_on_fail: bool = Field(default=False, alias="continueOnFail")


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    token = os.environ["NODE_API_TOKEN"]
    timeout = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))
    audit_log = os.environ.get("AUDIT_LOG_PATH")
    audit_logger = AuditLogger.from_env(audit_log) if audit_log else None
    store = CredentialStore.from_env()
    relay = AttachmentRelay(
        transport=HttpxTransport(timeout=timeout),
        resolve_credentials=store.resolve,
        audit_logger=audit_logger,
    )
    return create_app(relay, token, audit_logger)


def create_app(
    relay: AttachmentRelay,
    token: str,
    audit_logger: AuditLogger | None = None,
) -> FastAPI:
    """Create the node execution app with Bearer auth."""
    app = FastAPI(docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/node")
    async def describe() -> dict[str, Any]:
        return NODE_DESCRIPTION

    @app.post("/execute")
    async def execute(body: ExecuteRequest) -> Any:
        try:
            items = await execute_node(relay, body.items, body.continue_on_fail)
        except ConfigurationError as exc:
            logger.error("Node configuration error: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=500)
        except ItemProcessingError as exc:
            status = 422 if isinstance(exc.cause, ValidationError) else 502
            return JSONResponse(
                {"error": str(exc.cause), "item": exc.index},
                status_code=status,
            )
        return {"items": items}

    app.add_middleware(AuthMiddleware, token=token, audit_logger=audit_logger)

    return app
