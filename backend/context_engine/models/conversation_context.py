"""
Conversation context models.

Derived, ephemeral results of the conversation context detector. Never persisted.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DetectedFrom(str, Enum):
    """Heuristic that produced the winning signal for a service."""

    EXPLICIT_MENTION = "explicit_mention"
    PRICE_QUESTION = "price_question"
    DETAILS_QUESTION = "details_question"
    COMPARISON = "comparison"


class CustomerIntent(str, Enum):
    """Intent classified from the customer's current message."""

    SCHEDULING = "scheduling"
    INFORMATION = "information"
    PRICING = "pricing"
    COMPARISON = "comparison"
    UNKNOWN = "unknown"


class ServiceContext(BaseModel):
    """
    Service the customer is most likely interested in.

    Attributes:
        service_id: Detected service identifier
        service_name: Detected service display name
        service_price: Formatted price (e.g. "R$ 150,00")
        service_duration: Duration in minutes (optional)
        confidence: Detection confidence (0.0 to 1.0)
        detected_from: Heuristic that produced the signal
    """

    service_id: str
    service_name: str
    service_price: str
    service_duration: Optional[int] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    detected_from: DetectedFrom = DetectedFrom.EXPLICIT_MENTION

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        """Clamp confidence into [0, 1]."""
        return max(0.0, min(1.0, float(v)))


class ConversationContextResult(BaseModel):
    """
    Full output of the conversation context detector.

    Attributes:
        detected_service: Service of interest, None when no service reached the minimum score
        recent_topics: Service names and categories mentioned by the customer, first-seen order
        customer_intent: Intent of the current message
    """

    detected_service: Optional[ServiceContext] = None
    recent_topics: list[str] = Field(default_factory=list)
    customer_intent: CustomerIntent = CustomerIntent.UNKNOWN
