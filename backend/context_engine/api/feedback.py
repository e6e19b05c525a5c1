"""
Feedback learning API endpoints.

Company-wide views over attendant ratings of AI replies, and the combined
prompt context used when the assistant answers a customer.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from ..core.observability import get_tracer
from ..models.feedback import FeedbackContext, FeedbackStats
from ..services.feedback_learning import FeedbackLearningService
from ..services.prompt_context import PromptContext, PromptContextBuilder
from ..services.prompt_formatter import format_feedback_for_prompt
from .dependencies import get_feedback_service, get_prompt_context_builder

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

router = APIRouter(prefix="/companies", tags=["Feedback Learning"])


class FeedbackContextResponse(BaseModel):
    """Feedback context plus the prompt block rendered from it."""

    feedback: FeedbackContext
    prompt_block: str


@router.get(
    "/{company_id}/feedback-context",
    response_model=FeedbackContextResponse,
    status_code=status.HTTP_200_OK,
    summary="Rated AI replies, approval totals and learning insights",
)
async def get_feedback_context(
    company_id: str,
    limit: int = Query(default=10, ge=1, le=50, description="Examples fetched per rating"),
    feedback_service: FeedbackLearningService = Depends(get_feedback_service),
) -> FeedbackContextResponse:
    """
    Build the feedback learning context of a company.

    Raises:
        HTTPException 500: Data access failure
    """
    with tracer.start_as_current_span("api.get_feedback_context") as span:
        span.set_attribute("company_id", company_id)
        span.set_attribute("limit", limit)
        logger.info(f"GET /companies/{company_id}/feedback-context (limit={limit})")

        try:
            feedback = await feedback_service.get_feedback_context(company_id, limit)
            return FeedbackContextResponse(
                feedback=feedback,
                prompt_block=format_feedback_for_prompt(feedback),
            )
        except Exception as e:
            logger.error(f"Failed to build feedback context: {e}", exc_info=True)
            span.set_attribute("error", str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to build feedback context",
            )


@router.get(
    "/{company_id}/feedback-stats",
    response_model=FeedbackStats,
    status_code=status.HTTP_200_OK,
    summary="Rating totals for all AI replies of a company",
)
async def get_feedback_stats(
    company_id: str,
    feedback_service: FeedbackLearningService = Depends(get_feedback_service),
) -> FeedbackStats:
    with tracer.start_as_current_span("api.get_feedback_stats") as span:
        span.set_attribute("company_id", company_id)

        try:
            return await feedback_service.get_feedback_stats(company_id)
        except Exception as e:
            logger.error(f"Failed to compute feedback stats: {e}", exc_info=True)
            span.set_attribute("error", str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to compute feedback stats",
            )


@router.get(
    "/{company_id}/prompt-context",
    response_model=PromptContext,
    status_code=status.HTTP_200_OK,
    summary="Both prompt blocks for the reply to a customer message",
)
async def get_prompt_context(
    company_id: str,
    customer_id: str = Query(..., min_length=1, description="Customer being answered"),
    message: str = Query("", description="Message being answered"),
    builder: PromptContextBuilder = Depends(get_prompt_context_builder),
) -> PromptContext:
    """
    Run the context detector and the feedback learner together.

    Raises:
        HTTPException 500: Data access failure
    """
    with tracer.start_as_current_span("api.get_prompt_context") as span:
        span.set_attribute("company_id", company_id)
        span.set_attribute("customer_id", customer_id)

        try:
            return await builder.build(customer_id, company_id, message)
        except Exception as e:
            logger.error(f"Failed to build prompt context: {e}", exc_info=True)
            span.set_attribute("error", str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to build prompt context",
            )
