"""Pydantic models for client request payloads."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from expiry_tracker.domain.models import Channel, FoodItem


class FoodItemPayload(BaseModel):
    """Food item as sent by the client app."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    expiry_date: date = Field(alias="expiryDate")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    def to_domain(self) -> FoodItem:
        """Convert to the domain model."""
        return FoodItem(
            id=self.id,
            name=self.name,
            expiry_date=self.expiry_date,
            created_at=self.created_at,
        )


class PushKeys(BaseModel):
    """Key material of a browser push subscription."""

    p256dh: str
    auth: str


class SubscribeRequest(BaseModel):
    """Subscription credentials plus the optional current item list.

    ``endpoint`` carries the primary identity for every channel: the push
    service URL, the LINE user id or the OneSignal subscription id.
    """

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(min_length=1)
    keys: PushKeys | None = None
    expiration_time: float | None = Field(default=None, alias="expirationTime")
    items: list[FoodItemPayload] | None = None

    def credentials(self, channel: Channel) -> dict[str, object]:
        """Build the credential bundle stored for the channel."""
        bundle: dict[str, object] = {channel.identity_field: self.endpoint}
        if self.keys is not None:
            bundle["keys"] = self.keys.model_dump()
        if self.expiration_time is not None:
            bundle["expirationTime"] = self.expiration_time
        return bundle

    def domain_items(self) -> list[FoodItem] | None:
        """Items converted to domain models, or None when omitted."""
        if self.items is None:
            return None
        return [item.to_domain() for item in self.items]


class EndpointRequest(BaseModel):
    """Request identifying one endpoint."""

    endpoint: str = Field(min_length=1)


class SyncItemsRequest(BaseModel):
    """Replacement item list for an endpoint."""

    endpoint: str = Field(min_length=1)
    items: list[FoodItemPayload] = Field(default_factory=list)


class LineSyncRequest(BaseModel):
    """Item list pushed by the app for a LINE user."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    food_items: list[FoodItemPayload] = Field(alias="foodItems")


class DiagnosticRequest(BaseModel):
    """Optional target of a diagnostic notification."""

    endpoint: str | None = None
