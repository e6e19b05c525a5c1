"""
Prompt Context Builder - runs both analyzers and renders their prompt blocks.

Phase 1 (parallel): conversation context detection || feedback aggregation
Phase 2: render both results as text for the external prompt assembler
"""

import asyncio
import logging

from pydantic import BaseModel

from ..core.observability import get_tracer
from ..models.conversation_context import ConversationContextResult
from ..models.feedback import FeedbackContext
from .conversation_context import ConversationContextService
from .feedback_learning import DEFAULT_SAMPLE_LIMIT, FeedbackLearningService
from .prompt_formatter import format_context_for_prompt, format_feedback_for_prompt

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class PromptContext(BaseModel):
    """Raw analyzer results plus their rendered prompt blocks."""

    conversation: ConversationContextResult
    feedback: FeedbackContext
    context_block: str
    feedback_block: str


class PromptContextBuilder:
    """Coordinates the context detector and the feedback learner for one reply."""

    def __init__(
        self,
        context_service: ConversationContextService,
        feedback_service: FeedbackLearningService,
        feedback_limit: int = DEFAULT_SAMPLE_LIMIT,
    ):
        self.context_service = context_service
        self.feedback_service = feedback_service
        self.feedback_limit = feedback_limit

    async def build(
        self, customer_id: str, company_id: str, current_message: str
    ) -> PromptContext:
        """
        Compute both prompt blocks for the reply to `current_message`.

        Raises:
            Exception: Any data-access failure from either analyzer, unchanged
        """
        with tracer.start_as_current_span("prompt_context.build") as span:
            span.set_attribute("customer_id", customer_id)
            span.set_attribute("company_id", company_id)

            conversation, feedback = await asyncio.gather(
                self.context_service.detect_context(customer_id, company_id, current_message),
                self.feedback_service.get_feedback_context(company_id, self.feedback_limit),
            )

            context_block = format_context_for_prompt(conversation)
            feedback_block = format_feedback_for_prompt(feedback)

            span.set_attribute("context_block_length", len(context_block))
            span.set_attribute("feedback_block_length", len(feedback_block))
            logger.info(
                f"Prompt context built for customer {customer_id}: "
                f"context={'yes' if context_block else 'no'}, "
                f"feedback={'yes' if feedback_block else 'no'}"
            )

            return PromptContext(
                conversation=conversation,
                feedback=feedback,
                context_block=context_block,
                feedback_block=feedback_block,
            )
