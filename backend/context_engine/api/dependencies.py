"""
FastAPI dependency providers.

The store is created once per process according to STORE_BACKEND; services
are cheap, stateless wrappers created per request.
"""

import logging
from functools import lru_cache

from fastapi import Depends

from ..core.config import get_settings
from ..services.conversation_context import ConversationContextService
from ..services.feedback_learning import FeedbackLearningService
from ..services.link_conversion import LinkConversionService
from ..services.memory_store import InMemoryStore
from ..services.prompt_context import PromptContextBuilder

logger = logging.getLogger(__name__)


@lru_cache
def get_store():
    """Create the configured data store (memory or cosmos)."""
    settings = get_settings()
    if settings.store_backend == "cosmos":
        from ..services.cosmos_store import CosmosStore

        return CosmosStore(settings)
    if settings.store_backend != "memory":
        raise ValueError(f"Unknown STORE_BACKEND '{settings.store_backend}'")
    logger.info("Using in-memory store")
    return InMemoryStore()


async def close_store() -> None:
    """Release the store's connections if one was created."""
    if get_store.cache_info().currsize == 0:
        return
    close = getattr(get_store(), "close", None)
    if close is not None:
        await close()
    get_store.cache_clear()


def get_context_service(store=Depends(get_store)) -> ConversationContextService:
    """Create ConversationContextService instance."""
    return ConversationContextService(
        store, store, history_limit=get_settings().context_history_limit
    )


def get_feedback_service(store=Depends(get_store)) -> FeedbackLearningService:
    """Create FeedbackLearningService instance."""
    return FeedbackLearningService(store)


def get_link_conversion_service(store=Depends(get_store)) -> LinkConversionService:
    """Create LinkConversionService instance."""
    return LinkConversionService(
        store, window_minutes=get_settings().link_conversion_window_minutes
    )


def get_prompt_context_builder(
    context_service: ConversationContextService = Depends(get_context_service),
    feedback_service: FeedbackLearningService = Depends(get_feedback_service),
) -> PromptContextBuilder:
    """Create PromptContextBuilder instance."""
    return PromptContextBuilder(
        context_service, feedback_service, get_settings().feedback_sample_limit
    )
