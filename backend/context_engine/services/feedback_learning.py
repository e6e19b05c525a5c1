"""
Feedback Learning Service - learns from attendant ratings of AI replies.

Samples GOOD and BAD rated AI replies for a company, pairs each with the
customer message that provoked it, computes approval statistics and derives
alerts from recurring complaint patterns in the attendants' notes.

- BAD feedback shows the assistant what to avoid
- GOOD feedback gives it reference answers
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from ..core.keywords import DEFAULT_FEEDBACK_KEYWORDS, FeedbackKeywords
from ..core.observability import get_tracer
from ..models.feedback import (
    CustomerFeedbackHistory,
    FeedbackContext,
    FeedbackExample,
    FeedbackStats,
)
from ..models.message import Message, MessageFeedback
from .repositories import FeedbackOrdering, FeedbackReader

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

DEFAULT_SAMPLE_LIMIT = 10
RECENT_FEEDBACK_WINDOW = timedelta(days=7)
MIN_NOTES_FOR_INSIGHT = 2


class FeedbackLearningService:
    """Builds feedback context for a company or a single customer."""

    def __init__(
        self,
        feedback: FeedbackReader,
        keywords: FeedbackKeywords = DEFAULT_FEEDBACK_KEYWORDS,
    ):
        self.feedback = feedback
        self.keywords = keywords

    async def get_feedback_context(
        self, company_id: str, limit: int = DEFAULT_SAMPLE_LIMIT
    ) -> FeedbackContext:
        """
        Collect rated AI replies and statistics for a company.

        BAD samples are ordered with annotated replies first, then newest
        first; GOOD samples newest first. Totals are exact counts, independent
        of the sample limit.

        Args:
            company_id: Company whose AI replies are analyzed
            limit: Maximum number of examples fetched per rating

        Returns:
            FeedbackContext with examples, totals and learning insights
        """
        with tracer.start_as_current_span("feedback_learning.get_context") as span:
            span.set_attribute("company_id", company_id)
            span.set_attribute("limit", limit)

            try:
                bad_messages, good_messages, total_good, total_bad = await asyncio.gather(
                    self.feedback.get_ai_messages_by_feedback(
                        company_id, MessageFeedback.BAD, limit, FeedbackOrdering.NOTES_FIRST
                    ),
                    self.feedback.get_ai_messages_by_feedback(
                        company_id, MessageFeedback.GOOD, limit, FeedbackOrdering.RECENT_FIRST
                    ),
                    self.feedback.count_messages_by_feedback(company_id, MessageFeedback.GOOD),
                    self.feedback.count_messages_by_feedback(company_id, MessageFeedback.BAD),
                )

                bad_examples = await self._pair_with_customer_messages(bad_messages)
                good_examples = await self._pair_with_customer_messages(good_messages)
            except Exception as e:
                logger.error(f"Failed to load feedback for company {company_id}: {e}", exc_info=True)
                span.set_attribute("error", str(e))
                raise

            learning_insights = self.generate_insights(bad_examples)

            span.set_attribute("total_good", total_good)
            span.set_attribute("total_bad", total_bad)
            span.set_attribute("insight_count", len(learning_insights))

            logger.info(
                f"Feedback context for company {company_id}: "
                f"good={len(good_examples)}/{total_good}, bad={len(bad_examples)}/{total_bad}, "
                f"insights={len(learning_insights)}"
            )

            return FeedbackContext(
                good_examples=good_examples,
                bad_examples=bad_examples,
                total_good=total_good,
                total_bad=total_bad,
                learning_insights=learning_insights,
            )

    async def _pair_with_customer_messages(
        self, ai_messages: list[Message]
    ) -> list[FeedbackExample]:
        """Pair each AI reply with the customer message right before it; unpaired replies are dropped."""
        previous_messages = await asyncio.gather(
            *(
                self.feedback.get_preceding_inbound_message(m.customer_id, m.timestamp)
                for m in ai_messages
            )
        )

        examples = []
        for ai_message, customer_message in zip(ai_messages, previous_messages):
            if customer_message is None:
                logger.debug(f"No customer message precedes AI message {ai_message.id}")
                continue
            examples.append(
                FeedbackExample(
                    customer_message=customer_message.content,
                    ai_response=ai_message.content,
                    feedback=ai_message.feedback,
                    feedback_note=ai_message.feedback_note,
                    timestamp=ai_message.timestamp,
                )
            )
        return examples

    def generate_insights(self, bad_examples: list[FeedbackExample]) -> list[str]:
        """One alert per complaint bucket whose keywords appear in at least two notes."""
        bad_notes = [e.feedback_note.lower() for e in bad_examples if e.has_note]

        insights = []
        for bucket in self.keywords.buckets():
            count = sum(
                1 for note in bad_notes if any(kw in note for kw in bucket.keywords)
            )
            if count >= MIN_NOTES_FOR_INSIGHT:
                insights.append(bucket.insight)
        return insights

    async def get_customer_feedback_history(
        self, customer_id: str, now: datetime | None = None
    ) -> CustomerFeedbackHistory:
        """
        Recent negative feedback for one customer.

        Args:
            customer_id: Customer to inspect
            now: Reference time (defaults to the current UTC time)

        Returns:
            BAD ratings in the trailing 7 days and the newest BAD note
        """
        with tracer.start_as_current_span("feedback_learning.customer_history") as span:
            span.set_attribute("customer_id", customer_id)

            since = (now or datetime.now(timezone.utc)) - RECENT_FEEDBACK_WINDOW
            try:
                recent_bad, last_note = await asyncio.gather(
                    self.feedback.count_customer_bad_feedback_since(customer_id, since),
                    self.feedback.get_last_bad_feedback_note(customer_id),
                )
            except Exception as e:
                logger.error(
                    f"Failed to load feedback history for customer {customer_id}: {e}",
                    exc_info=True,
                )
                span.set_attribute("error", str(e))
                raise

            span.set_attribute("recent_bad_feedbacks", recent_bad)

            return CustomerFeedbackHistory(
                recent_bad_feedbacks=recent_bad,
                last_feedback_note=last_note or None,
            )

    async def get_feedback_stats(self, company_id: str) -> FeedbackStats:
        """Rating totals for all AI replies of a company."""
        with tracer.start_as_current_span("feedback_learning.stats") as span:
            span.set_attribute("company_id", company_id)

            try:
                total_ai, good, bad = await asyncio.gather(
                    self.feedback.count_ai_messages(company_id),
                    self.feedback.count_messages_by_feedback(company_id, MessageFeedback.GOOD),
                    self.feedback.count_messages_by_feedback(company_id, MessageFeedback.BAD),
                )
            except Exception as e:
                logger.error(f"Failed to load feedback stats for company {company_id}: {e}", exc_info=True)
                span.set_attribute("error", str(e))
                raise

            rated = good + bad
            return FeedbackStats(
                total_ai_messages=total_ai,
                good=good,
                bad=bad,
                no_feedback=max(total_ai - rated, 0),
                good_percentage=(good / rated) * 100 if rated > 0 else 0.0,
            )
