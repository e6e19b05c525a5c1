"""
Feedback learning models.

Derived views over attendant ratings of AI replies. Recomputed on every call.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .message import MessageFeedback


class FeedbackExample(BaseModel):
    """
    A rated AI reply paired with the customer message that provoked it.

    Attributes:
        customer_message: Nearest earlier inbound message from the same customer
        ai_response: The rated AI reply
        feedback: GOOD or BAD
        feedback_note: Attendant explanation (optional)
        timestamp: When the AI reply was sent
    """

    customer_message: str
    ai_response: str
    feedback: MessageFeedback
    feedback_note: Optional[str] = None
    timestamp: datetime

    @property
    def has_note(self) -> bool:
        return bool(self.feedback_note and self.feedback_note.strip())


class FeedbackContext(BaseModel):
    """
    Feedback samples and statistics for a company.

    Attributes:
        good_examples: Sample of positively rated replies (bounded)
        bad_examples: Sample of negatively rated replies (bounded, notes first)
        total_good: Exact count of GOOD ratings
        total_bad: Exact count of BAD ratings
        learning_insights: Canned alerts derived from recurring complaint patterns
    """

    good_examples: list[FeedbackExample] = Field(default_factory=list)
    bad_examples: list[FeedbackExample] = Field(default_factory=list)
    total_good: int = Field(0, ge=0)
    total_bad: int = Field(0, ge=0)
    learning_insights: list[str] = Field(default_factory=list)


class CustomerFeedbackHistory(BaseModel):
    """Recent negative feedback for a single customer."""

    recent_bad_feedbacks: int = Field(0, ge=0)
    last_feedback_note: Optional[str] = None


class FeedbackStats(BaseModel):
    """Company-wide rating statistics for AI replies."""

    total_ai_messages: int = Field(0, ge=0)
    good: int = Field(0, ge=0)
    bad: int = Field(0, ge=0)
    no_feedback: int = Field(0, ge=0)
    good_percentage: float = Field(0.0, ge=0.0, le=100.0)
