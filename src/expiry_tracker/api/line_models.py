"""Pydantic models for LINE webhook payloads."""

from pydantic import BaseModel, Field


class LineSource(BaseModel):
    """LINE event source payload."""

    type: str
    user_id: str | None = Field(default=None, alias="userId")


class LineEventMessage(BaseModel):
    """LINE message payload."""

    id: str | None = None
    type: str
    text: str | None = None


class LineEvent(BaseModel):
    """LINE webhook event payload."""

    type: str
    timestamp: int | None = None
    reply_token: str | None = Field(default=None, alias="replyToken")
    source: LineSource | None = None
    message: LineEventMessage | None = None


class LineWebhookPayload(BaseModel):
    """LINE webhook request body."""

    destination: str | None = None
    events: list[LineEvent] = Field(default_factory=list)
