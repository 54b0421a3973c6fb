"""Webhook receiver that hands accepted events to the upload coordinator."""

from __future__ import annotations

import logging
import re
import secrets
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sftp_relay import __version__
from sftp_relay.config import RelaySettings, get_settings
from sftp_relay.http.errors import error_payload, internal_error, not_found, service_unavailable, unauthorized
from sftp_relay.network.connection_state import NotReadyError
from sftp_relay.queue import QueueClosedError
from sftp_relay.runtime import RelayRuntime, build_runtime
from sftp_relay.upload.coordinator import UploadError, WebhookEvent

LOGGER = logging.getLogger(__name__)
_NAME_RE = re.compile(r"\w+")

WebhookBody = Union[List[Any], Dict[str, Any]]


def create_app(
    settings: Optional[RelaySettings] = None,
    *,
    runtime: Optional[RelayRuntime] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if not settings.secret:
        raise ValueError("Required: secret")
    runtime = runtime or build_runtime(settings)

    def _require_secret(authorization: Optional[str] = Header(default=None)) -> None:
        if authorization is None or not secrets.compare_digest(
            authorization.encode(), settings.secret.encode()
        ):
            raise unauthorized()

    @asynccontextmanager
    async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await runtime.start()
        try:
            yield
        finally:
            await runtime.stop()

    app = FastAPI(
        title="sftp-relay",
        version=__version__,
        dependencies=[Depends(_require_secret)],
        lifespan=_lifespan,
    )
    app.state.runtime = runtime

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": error_payload("body must be an array or object", status_code=400)},
        )

    async def _publish(body: WebhookBody, spec: str, params: Dict[str, Any]) -> Dict[str, str]:
        event = WebhookEvent(id=uuid.uuid4().hex, body=body, params=params)
        try:
            result = await runtime.coordinator.handle(event, spec)
        except (NotReadyError, QueueClosedError) as exc:
            LOGGER.warning("Webhook %s rejected: %s", event.id, exc)
            raise service_unavailable(str(exc), request_id=event.id) from exc
        except UploadError as exc:
            LOGGER.error("Webhook %s failed: %s", event.id, exc)
            raise internal_error(str(exc), request_id=event.id) from exc
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Webhook %s failed unexpectedly", event.id)
            raise internal_error(f"Internal error: {exc}", request_id=event.id) from exc
        return result.model_dump()

    @app.post("/")
    async def publish_root(body: WebhookBody = Body(...)) -> Dict[str, str]:
        return await _publish(body, settings.root_spec, {})

    @app.post("/{name}")
    async def publish_named(name: str, body: WebhookBody = Body(...)) -> Dict[str, str]:
        if not _NAME_RE.fullmatch(name):
            raise not_found(f"Route /{name} not found")
        return await _publish(body, settings.name_spec, {"name": name})

    return app
