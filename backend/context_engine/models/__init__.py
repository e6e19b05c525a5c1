"""
Data models for the Conversation Context Engine.

This package contains Pydantic models for the entities the engine reads
(messages, services, tracked links) and the results it derives from them.
"""

from .message import Message, MessageDirection, SenderType, MessageFeedback
from .service import Service
from .conversation_context import (
    ConversationContextResult,
    CustomerIntent,
    DetectedFrom,
    ServiceContext,
)
from .feedback import (
    CustomerFeedbackHistory,
    FeedbackContext,
    FeedbackExample,
    FeedbackStats,
)
from .whatsapp_link import (
    ConversionResult,
    LinkClick,
    LinkConversionStats,
    LinkWithClicks,
    WhatsAppLink,
)

__all__ = [
    "Message",
    "MessageDirection",
    "SenderType",
    "MessageFeedback",
    "Service",
    "ConversationContextResult",
    "CustomerIntent",
    "DetectedFrom",
    "ServiceContext",
    "CustomerFeedbackHistory",
    "FeedbackContext",
    "FeedbackExample",
    "FeedbackStats",
    "ConversionResult",
    "LinkClick",
    "LinkConversionStats",
    "LinkWithClicks",
    "WhatsAppLink",
]
