"""Outbound mail models."""

from pydantic import BaseModel, Field


class OutboundMessage(BaseModel):
    """Message handed to the relay. Not persisted."""

    from_address: str = Field(..., description="From header and envelope sender")
    to_address: str = Field(..., description="Recipient")
    subject: str
    text: str | None = None
    html: str | None = None


class DeliveryReceipt(BaseModel):
    """Relay answer for one send call."""

    message_id: str = Field(..., description="Message-ID header of the sent message")
    accepted: list[str] = Field(default_factory=list, description="Recipients the relay accepted")
    rejected: dict[str, str] = Field(default_factory=dict, description="Rejected recipients with the relay reply")
    response: str = Field("", description="Final relay response line")
