"""LINE Messaging API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx

LINE_API_BASE_URL = "https://api.line.me/v2/bot"


class LineClient(Protocol):
    """Interface for LINE Messaging API interactions."""

    async def push_message(self, to: str, text: str) -> None:
        """Push a text message to a LINE user."""

    async def reply_message(self, reply_token: str, text: str) -> None:
        """Reply to a webhook event with a text message."""


@dataclass
class HttpxLineClient:
    """LINE client implemented with httpx."""

    channel_access_token: str
    http_client: httpx.AsyncClient
    base_url: str = LINE_API_BASE_URL
    timeout_seconds: float = 10.0

    @classmethod
    def create(
        cls, channel_access_token: str, timeout_seconds: float = 10.0
    ) -> "HttpxLineClient":
        """Create a LINE client with a managed httpx session."""
        return cls(
            channel_access_token=channel_access_token,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def push_message(self, to: str, text: str) -> None:
        """Send a message using LINE's push API."""
        await self._post(
            "/message/push",
            {"to": to, "messages": [{"type": "text", "text": text}]},
        )

    async def reply_message(self, reply_token: str, text: str) -> None:
        """Answer a webhook event using LINE's reply API."""
        await self._post(
            "/message/reply",
            {"replyToken": reply_token, "messages": [{"type": "text", "text": text}]},
        )

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _post(self, path: str, payload: dict[str, object]) -> None:
        response = await self.http_client.post(
            f"{self.base_url}{path}",
            json=payload,
            headers={"Authorization": f"Bearer {self.channel_access_token}"},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
