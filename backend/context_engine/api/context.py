"""
Conversation context API endpoints.

Lets the reply pipeline (and support staff debugging it) inspect what the
engine infers from a customer's conversation.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from ..core.observability import get_tracer
from ..models.conversation_context import ConversationContextResult
from ..models.feedback import CustomerFeedbackHistory
from ..services.conversation_context import ConversationContextService
from ..services.feedback_learning import FeedbackLearningService
from ..services.prompt_formatter import format_context_for_prompt
from .dependencies import get_context_service, get_feedback_service

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

router = APIRouter(prefix="/customers", tags=["Conversation Context"])


class ConversationContextResponse(BaseModel):
    """Detected context plus the prompt block rendered from it."""

    context: ConversationContextResult
    prompt_block: str


@router.get(
    "/{customer_id}/context",
    response_model=ConversationContextResponse,
    status_code=status.HTTP_200_OK,
    summary="Detect the conversation context of a customer",
)
async def get_conversation_context(
    customer_id: str,
    company_id: str = Query(..., min_length=1, description="Company whose services are scored"),
    message: str = Query("", description="Message being answered"),
    context_service: ConversationContextService = Depends(get_context_service),
) -> ConversationContextResponse:
    """
    Detect the service of interest, intent and recent topics for a customer.

    Args:
        customer_id: Customer whose history is analyzed
        company_id: Company owning the service catalog
        message: Current message text (optional)
        context_service: ConversationContextService instance (injected)

    Raises:
        HTTPException 500: Data access failure
    """
    with tracer.start_as_current_span("api.get_conversation_context") as span:
        span.set_attribute("customer_id", customer_id)
        logger.info(f"GET /customers/{customer_id}/context (company={company_id})")

        try:
            context = await context_service.detect_context(customer_id, company_id, message)
            return ConversationContextResponse(
                context=context,
                prompt_block=format_context_for_prompt(context),
            )
        except Exception as e:
            logger.error(f"Failed to detect conversation context: {e}", exc_info=True)
            span.set_attribute("error", str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to detect conversation context",
            )


@router.get(
    "/{customer_id}/feedback-history",
    response_model=CustomerFeedbackHistory,
    status_code=status.HTTP_200_OK,
    summary="Recent negative feedback for a customer",
)
async def get_customer_feedback_history(
    customer_id: str,
    feedback_service: FeedbackLearningService = Depends(get_feedback_service),
) -> CustomerFeedbackHistory:
    """
    Count BAD ratings of the last 7 days and return the newest BAD note.

    Raises:
        HTTPException 500: Data access failure
    """
    with tracer.start_as_current_span("api.get_customer_feedback_history") as span:
        span.set_attribute("customer_id", customer_id)

        try:
            return await feedback_service.get_customer_feedback_history(customer_id)
        except Exception as e:
            logger.error(f"Failed to retrieve customer feedback history: {e}", exc_info=True)
            span.set_attribute("error", str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve customer feedback history",
            )
