"""
Link Conversion Service - attributes inbound messages to tracked WhatsApp links.

A tracked link opens a chat with a prefilled message. When a customer sends a
message matching that text within the conversion window after a click, the
most recent pending click is marked converted and the link's automatic tag
is applied to the customer.

Attribution is best effort: failures are logged and never interrupt the
processing of the inbound message.
"""

import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone

from ..core.observability import get_tracer
from ..models.whatsapp_link import ConversionResult, LinkConversionStats
from .repositories import LinkRepository
from .text_similarity import is_message_match

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

CONVERSION_WINDOW_MINUTES = 60
MAX_CLICKS_PER_LINK = 100
CONVERSION_TAG_COLOR = "#10B981"

_JID_SUFFIX = re.compile(r"@s\.whatsapp\.net|@c\.us", re.IGNORECASE)
_NON_DIGIT = re.compile(r"\D")


def clean_phone_number(phone: str) -> str:
    """Strip WhatsApp JID suffixes and every non-digit character."""
    return _NON_DIGIT.sub("", _JID_SUFFIX.sub("", phone))


class LinkConversionService:
    """Matches inbound messages to recent link clicks."""

    def __init__(
        self,
        links: LinkRepository,
        window_minutes: int = CONVERSION_WINDOW_MINUTES,
    ):
        self.links = links
        self.window = timedelta(minutes=window_minutes)

    async def process_message_conversion(
        self,
        phone_number: str,
        message_content: str,
        customer_id: str,
        company_id: str,
        now: datetime | None = None,
    ) -> ConversionResult:
        """
        Check whether an inbound message comes from a recently clicked link.

        Args:
            phone_number: Sender phone number or WhatsApp JID
            message_content: Text of the inbound message
            customer_id: Customer who sent the message
            company_id: Company that owns the links
            now: Reference time (defaults to the current UTC time)

        Returns:
            ConversionResult; converted=False when nothing matched or attribution failed
        """
        with tracer.start_as_current_span("link_conversion.process") as span:
            span.set_attribute("customer_id", customer_id)
            span.set_attribute("company_id", company_id)

            now = now or datetime.now(timezone.utc)
            try:
                candidates = await self.links.get_active_links_with_pending_clicks(
                    company_id, now - self.window, MAX_CLICKS_PER_LINK
                )

                for candidate in candidates:
                    link = candidate.link
                    if not candidate.clicks or not is_message_match(message_content, link.message):
                        continue

                    recent_click = candidate.clicks[0]
                    await self.links.mark_click_converted(recent_click, customer_id, now)

                    if link.auto_tag:
                        await self.apply_tag_to_customer(customer_id, link.auto_tag, company_id)

                    logger.info(
                        f"✅ Link conversion tracked: {link.name} -> customer {customer_id} "
                        f"(phone {clean_phone_number(phone_number)})"
                    )
                    span.set_attribute("converted", True)
                    span.set_attribute("link_id", link.id)

                    return ConversionResult(
                        converted=True,
                        link_name=link.name,
                        tag_applied=link.auto_tag or None,
                    )

                span.set_attribute("converted", False)
                return ConversionResult(converted=False)

            except Exception as e:
                logger.error(f"Error processing link conversion: {e}", exc_info=True)
                span.set_attribute("error", str(e))
                return ConversionResult(converted=False)

    async def apply_tag_to_customer(self, customer_id: str, tag_name: str, company_id: str) -> None:
        """Add a tag to the customer unless already present; failures are logged."""
        try:
            tags = await self.links.get_customer_tags(customer_id)
            if tags is None:
                logger.warning(f"Customer {customer_id} not found; tag '{tag_name}' not applied")
                return

            if tag_name in tags:
                return

            await self.links.upsert_tag(company_id, tag_name, CONVERSION_TAG_COLOR)
            await self.links.add_customer_tag(customer_id, tag_name)

            logger.info(f"🏷️ Tag '{tag_name}' applied to customer {customer_id}")
        except Exception as e:
            logger.error(f"Error applying tag '{tag_name}': {e}", exc_info=True)

    async def get_link_conversion_stats(self, link_id: str) -> LinkConversionStats:
        """Total clicks, conversions and conversion rate (percent) of a link."""
        with tracer.start_as_current_span("link_conversion.stats") as span:
            span.set_attribute("link_id", link_id)

            total_clicks, conversions = await asyncio.gather(
                self.links.count_link_clicks(link_id),
                self.links.count_link_clicks(link_id, converted=True),
            )

            return LinkConversionStats(
                total_clicks=total_clicks,
                conversions=conversions,
                conversion_rate=(conversions / total_clicks) * 100 if total_clicks > 0 else 0.0,
            )
