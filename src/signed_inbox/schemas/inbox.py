"""Inbox request Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InboxRequest(BaseModel):
    """Common configuration for signed inbox requests.

    Unknown fields are ignored so that clients may sign extra metadata.
    """

    model_config = ConfigDict(extra="ignore")


class SendRequest(InboxRequest):
    """Schema for depositing a message into one or more inboxes."""

    sender: str = Field(..., min_length=1, description="Identity that signed the request")
    receivers: list[str] = Field(default_factory=list, description="Identities to deliver to")
    content: dict[str, Any] = Field(default_factory=dict, description="Opaque message payload")

    @field_validator("receivers")
    @classmethod
    def _dedupe_receivers(cls, value: list[str]) -> list[str]:
        """Collapse duplicate receivers, keeping first occurrence order."""
        return list(dict.fromkeys(value))


class ReadRequest(InboxRequest):
    """Schema for retrieving the caller's pending messages."""

    receiver: str = Field(..., min_length=1)
    request_id: int | str | None = Field(default=None)
    only_unread: bool = Field(default=False)


class SetReadRequest(InboxRequest):
    """Schema for flagging one message as read."""

    receiver: str = Field(..., min_length=1)
    message_id: int
    read: bool = Field(default=True)


class CountUnreadRequest(InboxRequest):
    """Schema for counting the caller's unread messages."""

    receiver: str = Field(..., min_length=1)


class DeleteRequest(InboxRequest):
    """Schema for removing one message from the caller's inbox."""

    receiver: str = Field(..., min_length=1)
    message_id: int
