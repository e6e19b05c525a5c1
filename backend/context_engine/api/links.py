"""
Tracked link API endpoints.

Conversion attribution for inbound messages and per-link conversion stats.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..core.observability import get_tracer
from ..models.whatsapp_link import ConversionResult, LinkConversionStats
from ..services.link_conversion import LinkConversionService
from .dependencies import get_link_conversion_service

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

router = APIRouter(tags=["Link Conversion"])


class ConversionRequest(BaseModel):
    """Inbound message to attribute."""

    phone_number: str = Field(..., min_length=1)
    message_content: str
    customer_id: str = Field(..., min_length=1)


@router.post(
    "/companies/{company_id}/link-conversions",
    response_model=ConversionResult,
    status_code=status.HTTP_200_OK,
    summary="Attribute an inbound message to a recently clicked link",
)
async def process_link_conversion(
    company_id: str,
    request: ConversionRequest,
    service: LinkConversionService = Depends(get_link_conversion_service),
) -> ConversionResult:
    """Attribution never fails the request; errors yield converted=false."""
    with tracer.start_as_current_span("api.process_link_conversion") as span:
        span.set_attribute("company_id", company_id)
        span.set_attribute("customer_id", request.customer_id)

        return await service.process_message_conversion(
            request.phone_number,
            request.message_content,
            request.customer_id,
            company_id,
        )


@router.get(
    "/links/{link_id}/conversion-stats",
    response_model=LinkConversionStats,
    status_code=status.HTTP_200_OK,
    summary="Clicks, conversions and conversion rate of a link",
)
async def get_link_conversion_stats(
    link_id: str,
    service: LinkConversionService = Depends(get_link_conversion_service),
) -> LinkConversionStats:
    with tracer.start_as_current_span("api.get_link_conversion_stats") as span:
        span.set_attribute("link_id", link_id)

        try:
            return await service.get_link_conversion_stats(link_id)
        except Exception as e:
            logger.error(f"Failed to compute link conversion stats: {e}", exc_info=True)
            span.set_attribute("error", str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to compute link conversion stats",
            )
