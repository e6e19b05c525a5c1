"""
Services package for the engine's business logic and data access.

- conversation_context: service-of-interest detection, intent and topics
- feedback_learning: rated-reply sampling, approval statistics and insights
- prompt_formatter: prompt text blocks for both analyzers
- prompt_context: runs both analyzers together for one reply
- text_similarity: normalized Levenshtein matching
- link_conversion: attribution of inbound messages to tracked links
- repositories / memory_store / cosmos_store: data-access contracts and stores
"""

from .conversation_context import ConversationContextService
from .feedback_learning import FeedbackLearningService
from .link_conversion import LinkConversionService
from .memory_store import InMemoryStore
from .prompt_context import PromptContext, PromptContextBuilder
from .repositories import FeedbackOrdering

__all__ = [
    "ConversationContextService",
    "FeedbackLearningService",
    "LinkConversionService",
    "InMemoryStore",
    "PromptContext",
    "PromptContextBuilder",
    "FeedbackOrdering",
]
