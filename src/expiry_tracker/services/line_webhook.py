"""LINE webhook event handling."""

import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass

from expiry_tracker.adapters.line_client import LineClient
from expiry_tracker.services.registration import RegistrationService

_logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "🍎 Welcome to Expiry Tracker!\n\n"
    "To receive daily reminders:\n"
    "1. Open the Expiry Tracker app\n"
    '2. Click "Connect LINE Account"\n'
    "3. Add food items to track\n\n"
    "I'll send you notifications when food is expiring soon!"
)
REGISTERED_TEXT = (
    "✅ Registered! Open the Expiry Tracker app to connect your LINE account "
    "and add food items."
)
HELP_TEXT = (
    "Commands:\n"
    '• "status" - Check tracked items\n'
    '• "check" - Same as status\n\n'
    "Or open the app to manage your food items!"
)
STATUS_COMMANDS = {"status", "check"}


def verify_signature(channel_secret: str, body: bytes, signature: str) -> bool:
    """Check a webhook body against its X-Line-Signature header."""
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, signature)


def status_text(item_count: int) -> str:
    """Reply describing how many items a user tracks."""
    if item_count == 0:
        return "📦 No food items tracked yet.\n\nOpen the app to add items!"
    plural = "s" if item_count > 1 else ""
    return (
        f"📊 You're tracking {item_count} food item{plural}.\n\n"
        "Open the app to see details!"
    )


@dataclass
class LineWebhookHandler:
    """Registers LINE users from follow and message events and replies."""

    registration_service: RegistrationService
    line_client: LineClient

    async def handle_follow(self, user_id: str, reply_token: str | None) -> None:
        """Register a new follower and send the welcome message."""
        self.registration_service.register(user_id)
        _logger.info("LINE user followed")
        await self._reply(reply_token, WELCOME_TEXT)

    async def handle_text(
        self, user_id: str, reply_token: str | None, text: str
    ) -> None:
        """Register unknown senders, otherwise answer status or help."""
        record, created = self.registration_service.register(user_id)
        if created:
            await self._reply(reply_token, REGISTERED_TEXT)
            return
        if text.strip().lower() in STATUS_COMMANDS:
            await self._reply(reply_token, status_text(len(record.items)))
            return
        await self._reply(reply_token, HELP_TEXT)

    async def _reply(self, reply_token: str | None, text: str) -> None:
        if not reply_token:
            return
        try:
            await self.line_client.reply_message(reply_token, text)
        except Exception:
            _logger.exception("Failed to reply to LINE event")
