"""
Message model.

A single chat message exchanged between a customer and the company.
Mapped to Cosmos DB 'messages' container with partition key /customer_id.
Owned by the chat store; the engine only reads messages.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MessageDirection(str, Enum):
    """Direction of a message relative to the company."""

    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class SenderType(str, Enum):
    """Who authored an outbound message."""

    HUMAN = "HUMAN"
    AI = "AI"


class MessageFeedback(str, Enum):
    """Quality rating given by an attendant to an AI reply."""

    GOOD = "GOOD"
    BAD = "BAD"


class Message(BaseModel):
    """
    Message entity model.

    Attributes:
        id: Unique message identifier
        customer_id: Customer the conversation belongs to (partition key)
        company_id: Company owning the customer (denormalized for company-wide queries)
        content: Free-text message body
        direction: INBOUND (from customer) or OUTBOUND (to customer)
        sender_type: HUMAN or AI for outbound messages, None when unknown
        feedback: Attendant rating of an AI reply (optional)
        feedback_note: Attendant explanation of the rating (optional)
        timestamp: When the message was sent
    """

    id: str = Field(
        ...,
        description="Unique message identifier",
    )
    customer_id: str = Field(
        ...,
        description="Customer the conversation belongs to (partition key)",
    )
    company_id: Optional[str] = Field(
        None,
        description="Company owning the customer",
    )
    content: str = Field(
        "",
        description="Free-text message body",
    )
    direction: MessageDirection = Field(
        ...,
        description="Message direction",
    )
    sender_type: Optional[SenderType] = Field(
        None,
        description="Author kind for outbound messages",
    )
    feedback: Optional[MessageFeedback] = Field(
        None,
        description="Attendant rating of an AI reply",
    )
    feedback_note: Optional[str] = Field(
        None,
        description="Attendant explanation of the rating",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the message was sent",
    )

    @field_validator("content", mode="before")
    @classmethod
    def content_not_none(cls, v: Optional[str]) -> str:
        """Media-only messages are stored without text; treat them as empty."""
        return v if v is not None else ""

    @property
    def has_feedback_note(self) -> bool:
        """Whether the feedback note carries any non-whitespace text."""
        return bool(self.feedback_note and self.feedback_note.strip())

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "id": "msg_01HZX3",
                "customer_id": "cus_7781",
                "company_id": "cmp_12",
                "content": "Quanto custa a instalação de Split 9000 BTUs?",
                "direction": "INBOUND",
                "sender_type": None,
                "feedback": None,
                "feedback_note": None,
                "timestamp": "2026-10-12T14:05:00Z",
            }
        }
