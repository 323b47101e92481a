"""FastAPI application factory."""

import logging
import secrets
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import pydantic
from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from expiry_tracker.api.admin import router as admin_router
from expiry_tracker.api.line_models import LineEvent, LineWebhookPayload
from expiry_tracker.api.schemas import (
    DiagnosticRequest,
    EndpointRequest,
    LineSyncRequest,
    SubscribeRequest,
    SyncItemsRequest,
)
from expiry_tracker.app_logging import configure_logging
from expiry_tracker.config import parse_bearer_token
from expiry_tracker.containers import AppContainer
from expiry_tracker.domain.models import Channel
from expiry_tracker.errors import (
    AuthorizationError,
    EndpointNotFound,
    StoreUnavailable,
    ValidationError,
)
from expiry_tracker.services.line_webhook import LineWebhookHandler, verify_signature

_ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthorizationError: status.HTTP_401_UNAUTHORIZED,
    EndpointNotFound: status.HTTP_404_NOT_FOUND,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def require_cron_secret(
    request: Request, authorization: str | None = Header(default=None)
) -> None:
    """Reject trigger calls lacking the configured bearer secret."""
    container: AppContainer = request.app.state.container
    secret = container.settings.cron_secret
    if not secret:
        return
    token = parse_bearer_token(authorization)
    if token is None or not secrets.compare_digest(token, secret):
        raise AuthorizationError("Unauthorized")


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    for error_type, status_code in _ERROR_STATUS.items():
        app.add_exception_handler(error_type, _error_handler(status_code))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request", "details": _error_details(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.api_route(
        "/api/check-expiry",
        methods=["GET", "POST"],
        dependencies=[Depends(require_cron_secret)],
    )
    async def check_expiry(request: Request) -> JSONResponse:
        """Run one dispatch pass; called by the external scheduler."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.dispatch_service.run()
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if result.aborted
            else status.HTTP_200_OK
        )
        return JSONResponse(status_code=status_code, content=result.to_summary())

    @app.post("/api/subscribe")
    async def subscribe(body: SubscribeRequest, request: Request) -> dict[str, object]:
        """Store a notification endpoint and optionally its items."""
        state_container: AppContainer = request.app.state.container
        registration = state_container.registration_service
        key = registration.subscribe(
            body.credentials(registration.channel), body.domain_items()
        )
        return {"success": True, "key": key}

    @app.delete("/api/subscribe")
    async def unsubscribe(body: EndpointRequest, request: Request) -> dict[str, bool]:
        """Forget a notification endpoint."""
        state_container: AppContainer = request.app.state.container
        state_container.registration_service.unsubscribe(body.endpoint)
        return {"success": True}

    @app.post("/api/sync-items")
    async def sync_items(body: SyncItemsRequest, request: Request) -> dict[str, object]:
        """Replace the item list of a known endpoint."""
        state_container: AppContainer = request.app.state.container
        record = state_container.registration_service.sync_items(
            body.endpoint, [item.to_domain() for item in body.items]
        )
        return {"success": True, "itemCount": len(record.items)}

    @app.post("/api/line-sync")
    async def line_sync(body: LineSyncRequest, request: Request) -> dict[str, object]:
        """Upsert the item list of a LINE user."""
        state_container: AppContainer = request.app.state.container
        _require_line(state_container)
        record = state_container.registration_service.sync_items(
            body.user_id,
            [item.to_domain() for item in body.food_items],
            create_missing=True,
        )
        return {"success": True, "itemCount": len(record.items)}

    @app.post("/api/line-webhook")
    async def line_webhook(
        request: Request,
        x_line_signature: str | None = Header(default=None),
    ) -> dict[str, str]:
        """Handle LINE follow and message events."""
        state_container: AppContainer = request.app.state.container
        handler = _require_line(state_container)
        if not x_line_signature:
            raise ValidationError("No signature")
        raw_body = await request.body()
        channel_secret = state_container.settings.line_channel_secret or ""
        if not verify_signature(channel_secret, raw_body, x_line_signature):
            raise AuthorizationError("Invalid signature")
        try:
            payload = LineWebhookPayload.model_validate_json(raw_body)
        except pydantic.ValidationError as exc:
            raise ValidationError("Malformed webhook payload") from exc
        for event in payload.events:
            await _dispatch_line_event(handler, event)
        return {"status": "ok"}

    @app.post("/api/test-notification")
    async def send_test_notification(
        request: Request, body: DiagnosticRequest | None = None
    ) -> dict[str, object]:
        """Send a diagnostic notification to one endpoint or to all."""
        state_container: AppContainer = request.app.state.container
        identity = body.endpoint if body else None
        logger.info("Test notification requested; endpoint given: %s", bool(identity))
        report = await state_container.registration_service.send_test(identity)
        return {"success": True, "sent": report.sent, "total": report.total}

    return app


def _error_handler(
    status_code: int,
) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    return handler


def _error_details(exc: RequestValidationError) -> list[dict[str, object]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def _require_line(container: AppContainer) -> LineWebhookHandler:
    handler = container.line_webhook_handler
    if container.settings.push_channel is not Channel.LINE or handler is None:
        raise EndpointNotFound("LINE channel is not configured")
    return handler


async def _dispatch_line_event(handler: LineWebhookHandler, event: LineEvent) -> None:
    user_id = event.source.user_id if event.source else None
    if not user_id:
        return
    if event.type == "follow":
        await handler.handle_follow(user_id, event.reply_token)
    elif event.type == "message" and event.message and event.message.type == "text":
        await handler.handle_text(user_id, event.reply_token, event.message.text or "")
