"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from supabase import create_client

from expiry_tracker.adapters.line_client import HttpxLineClient
from expiry_tracker.adapters.line_transport import LineTransport
from expiry_tracker.adapters.onesignal_transport import OneSignalTransport
from expiry_tracker.adapters.supabase_endpoint_store import SupabaseEndpointStore
from expiry_tracker.adapters.webpush_transport import WebPushTransport
from expiry_tracker.config import Settings
from expiry_tracker.domain.models import Channel
from expiry_tracker.services.admin import AdminService
from expiry_tracker.services.composer import MessageComposer
from expiry_tracker.services.dispatch import DispatchService
from expiry_tracker.services.endpoints import EndpointStore
from expiry_tracker.services.line_webhook import LineWebhookHandler
from expiry_tracker.services.registration import RegistrationService
from expiry_tracker.services.transport import PushTransport


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: EndpointStore
    transport: PushTransport
    composer: MessageComposer
    dispatch_service: DispatchService
    registration_service: RegistrationService
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]
    line_webhook_handler: LineWebhookHandler | None = None


@dataclass
class _ChannelWiring:
    transport: PushTransport
    line_client: HttpxLineClient | None = None
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)


def _build_channel(settings: Settings) -> _ChannelWiring:
    """Create the single transport selected for this deployment."""
    timeout = settings.delivery_timeout_seconds
    if settings.push_channel is Channel.LINE:
        line_client = HttpxLineClient.create(
            settings.line_channel_access_token or "", timeout_seconds=timeout
        )
        return _ChannelWiring(
            transport=LineTransport(line_client),
            line_client=line_client,
            closers=[line_client.close],
        )
    if settings.push_channel is Channel.ONESIGNAL:
        onesignal = OneSignalTransport.create(
            app_id=settings.onesignal_app_id or "",
            api_key=settings.onesignal_api_key or "",
            base_url=settings.onesignal_base_url,
            timeout_seconds=timeout,
        )
        return _ChannelWiring(transport=onesignal, closers=[onesignal.close])
    return _ChannelWiring(
        transport=WebPushTransport(
            vapid_private_key=settings.vapid_private_key or "",
            vapid_subject=settings.vapid_subject,
            ttl_seconds=settings.webpush_ttl_seconds,
            timeout_seconds=timeout,
        )
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container.

    Raises ConfigurationError when the selected channel lacks credentials.
    """
    resolved_settings = settings or Settings()
    resolved_settings.validate_channel()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    store = SupabaseEndpointStore(
        client=supabase_client,
        table=resolved_settings.endpoints_table,
        default_channel=resolved_settings.push_channel,
    )
    wiring = _build_channel(resolved_settings)
    composer = MessageComposer(
        lookahead_days=resolved_settings.lookahead_days,
        max_listed_items=resolved_settings.max_listed_items,
        policy=resolved_settings.notification_policy,
        url=resolved_settings.notification_url,
    )
    dispatch_service = DispatchService(
        store=store,
        composer=composer,
        transport=wiring.transport,
        timezone_name=resolved_settings.reference_timezone,
        delivery_timeout_seconds=resolved_settings.delivery_timeout_seconds,
        concurrency=resolved_settings.dispatch_concurrency,
        suppress_repeat_notifications=resolved_settings.suppress_repeat_notifications,
    )
    registration_service = RegistrationService(
        store=store,
        transport=wiring.transport,
        channel=resolved_settings.push_channel,
        delivery_timeout_seconds=resolved_settings.delivery_timeout_seconds,
    )
    line_webhook_handler = (
        LineWebhookHandler(registration_service, wiring.line_client)
        if wiring.line_client is not None
        else None
    )

    async def close_resources() -> None:
        for close in wiring.closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        transport=wiring.transport,
        composer=composer,
        dispatch_service=dispatch_service,
        registration_service=registration_service,
        admin_service=AdminService(
            store, timezone_name=resolved_settings.reference_timezone
        ),
        close_resources=close_resources,
        line_webhook_handler=line_webhook_handler,
    )
