"""
Conversation Context Service - infers what the customer is talking about.

Reads the recent chat history and the company's service catalog, scores each
service against the conversation, and classifies the intent of the message
being answered. Lets the assistant know which service a customer wants to
book without asking again.

All matching is deterministic keyword/substring matching over lowercased text.
The service is stateless: every call recomputes from a fresh snapshot.
"""

import asyncio
import logging
from dataclasses import dataclass

from ..core.keywords import DEFAULT_CONTEXT_KEYWORDS, ContextKeywords
from ..core.observability import get_tracer
from ..models.conversation_context import (
    ConversationContextResult,
    CustomerIntent,
    DetectedFrom,
    ServiceContext,
)
from ..models.message import Message, MessageDirection
from ..models.service import Service
from .repositories import MessageReader, ServiceCatalogReader

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

HISTORY_LIMIT = 10

FULL_NAME_POINTS = 10
NAME_WORD_POINTS = 3
CATEGORY_POINTS = 2
INTEREST_MULTIPLIER = 2
MIN_NAME_WORD_LENGTH = 3  # words must be longer than this to count
CURRENT_MESSAGE_POINTS = 20
MIN_DETECTION_SCORE = 5
CONFIDENCE_SCALE = 30


@dataclass
class _ServiceScore:
    score: float = 0.0
    detected_from: DetectedFrom = DetectedFrom.EXPLICIT_MENTION


class ConversationContextService:
    """
    Detects the service of interest, the customer intent and recent topics.

    Dependencies are injected so concurrent requests never share state.
    """

    def __init__(
        self,
        messages: MessageReader,
        catalog: ServiceCatalogReader,
        keywords: ContextKeywords = DEFAULT_CONTEXT_KEYWORDS,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.messages = messages
        self.catalog = catalog
        self.keywords = keywords
        self.history_limit = history_limit

    async def detect_context(
        self, customer_id: str, company_id: str, current_message: str
    ) -> ConversationContextResult:
        """
        Analyze the recent conversation of a customer.

        Args:
            customer_id: Customer whose history is analyzed
            company_id: Company whose active services are scored
            current_message: Raw text of the message being answered

        Returns:
            ConversationContextResult with detected service (or None),
            recent topics and customer intent
        """
        with tracer.start_as_current_span("conversation_context.detect") as span:
            span.set_attribute("customer_id", customer_id)
            span.set_attribute("company_id", company_id)

            try:
                recent_messages, services = await asyncio.gather(
                    self.messages.get_recent_messages(customer_id, self.history_limit),
                    self.catalog.get_active_services(company_id),
                )
            except Exception as e:
                logger.error(f"Failed to load conversation snapshot: {e}", exc_info=True)
                span.set_attribute("error", str(e))
                raise

            # Store returns newest first
            chronological = list(reversed(recent_messages))

            detected_service = self.detect_service(chronological, services, current_message)
            customer_intent = self.detect_intent(current_message)
            recent_topics = self.extract_recent_topics(chronological, services)

            span.set_attribute("message_count", len(chronological))
            span.set_attribute("service_count", len(services))
            span.set_attribute("customer_intent", customer_intent.value)
            if detected_service:
                span.set_attribute("detected_service_id", detected_service.service_id)
                span.set_attribute("confidence", detected_service.confidence)

            logger.info(
                f"Conversation context for customer {customer_id}: "
                f"service={detected_service.service_name if detected_service else None}, "
                f"intent={customer_intent.value}, topics={len(recent_topics)}"
            )

            return ConversationContextResult(
                detected_service=detected_service,
                recent_topics=recent_topics,
                customer_intent=customer_intent,
            )

    def detect_service(
        self,
        messages: list[Message],
        services: list[Service],
        current_message: str,
    ) -> ServiceContext | None:
        """
        Pick the service the conversation is most likely about.

        Args:
            messages: History window in chronological order
            services: Active services in catalog order
            current_message: Message being answered (not part of the history)

        Returns:
            ServiceContext for the best-scoring service, or None when no
            service reaches the minimum score
        """
        if not services:
            return None

        scores: dict[str, _ServiceScore] = {}

        for index, message in enumerate(messages):
            content = message.content.lower()
            is_from_customer = message.direction == MessageDirection.INBOUND
            recency_weight = (index + 1) / len(messages)

            for service in services:
                match_score, detected_from = self._score_message(
                    content, is_from_customer, service
                )
                match_score *= recency_weight

                if match_score > 0:
                    current = scores.setdefault(service.id, _ServiceScore())
                    # Compared against the aggregate before this message is added
                    if match_score > current.score:
                        current.detected_from = detected_from
                    current.score += match_score

        current_lower = current_message.lower()
        for service in services:
            if service.name.lower() in current_lower:
                current = scores.setdefault(service.id, _ServiceScore())
                current.score += CURRENT_MESSAGE_POINTS
                current.detected_from = DetectedFrom.EXPLICIT_MENTION

        # Ties keep the service listed first in the catalog
        best_service = None
        best = None
        for service in services:
            candidate = scores.get(service.id)
            if candidate and (best is None or candidate.score > best.score):
                best_service, best = service, candidate

        if best is None or best.score < MIN_DETECTION_SCORE:
            return None

        return ServiceContext(
            service_id=best_service.id,
            service_name=best_service.name,
            service_price=best_service.formatted_price,
            service_duration=best_service.duration or None,
            confidence=min(best.score / CONFIDENCE_SCALE, 1.0),
            detected_from=best.detected_from,
        )

    def _score_message(
        self, content: str, is_from_customer: bool, service: Service
    ) -> tuple[float, DetectedFrom]:
        """Raw (unweighted) score of one lowercased message for one service."""
        service_lower = service.name.lower()
        category_lower = service.category.lower() if service.category else ""
        service_words = [w for w in service_lower.split() if len(w) > MIN_NAME_WORD_LENGTH]

        match_score = 0
        detected_from = DetectedFrom.EXPLICIT_MENTION

        if service_lower in content:
            match_score += FULL_NAME_POINTS

        for word in service_words:
            if word in content:
                match_score += NAME_WORD_POINTS

        if category_lower and category_lower in content:
            match_score += CATEGORY_POINTS

        if is_from_customer and match_score > 0 and _contains_any(content, self.keywords.interest):
            match_score *= INTEREST_MULTIPLIER
            if _contains_any(content, self.keywords.price_question):
                detected_from = DetectedFrom.PRICE_QUESTION
            elif _contains_any(content, self.keywords.details_question):
                detected_from = DetectedFrom.DETAILS_QUESTION

        return match_score, detected_from

    def detect_intent(self, message: str) -> CustomerIntent:
        """Classify the current message; the first matching intent wins."""
        lower = message.lower()

        if _contains_any(lower, self.keywords.scheduling):
            return CustomerIntent.SCHEDULING
        if _contains_any(lower, self.keywords.pricing):
            return CustomerIntent.PRICING
        if _contains_any(lower, self.keywords.information):
            return CustomerIntent.INFORMATION
        if _contains_any(lower, self.keywords.comparison):
            return CustomerIntent.COMPARISON
        return CustomerIntent.UNKNOWN

    def extract_recent_topics(
        self, messages: list[Message], services: list[Service]
    ) -> list[str]:
        """Service names and categories mentioned by the customer, first-seen order."""
        topics: dict[str, None] = {}

        for message in messages:
            if message.direction != MessageDirection.INBOUND:
                continue
            content = message.content.lower()
            for service in services:
                if service.name.lower() in content:
                    topics.setdefault(service.name)
                if service.category and service.category.lower() in content:
                    topics.setdefault(service.category)

        return list(topics)


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)
