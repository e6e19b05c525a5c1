"""
In-memory implementation of the engine's data-access contracts.

Used when the application runs with STORE_BACKEND=memory (local development)
and by the test suite. Holds plain lists; every query returns fresh copies so
callers never mutate the store by accident.
"""

import logging
from datetime import datetime
from typing import Optional

from ..models.message import Message, MessageDirection, MessageFeedback, SenderType
from ..models.service import Service
from ..models.whatsapp_link import LinkClick, LinkWithClicks, WhatsAppLink
from .repositories import FeedbackOrdering

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Message, catalog, feedback and link store backed by Python lists.

    Satisfies MessageReader, ServiceCatalogReader, FeedbackReader and LinkRepository.
    """

    def __init__(self):
        self.messages: list[Message] = []
        self.services: list[Service] = []
        self.links: list[WhatsAppLink] = []
        self.clicks: list[LinkClick] = []
        self.customer_tags: dict[str, list[str]] = {}
        self.company_tags: dict[str, dict[str, str]] = {}
        logger.info("InMemoryStore initialized")

    # Seeding helpers

    def add_message(self, message: Message) -> Message:
        self.messages.append(message)
        return message

    def add_service(self, service: Service) -> Service:
        self.services.append(service)
        return service

    def add_link(self, link: WhatsAppLink) -> WhatsAppLink:
        self.links.append(link)
        return link

    def add_click(self, click: LinkClick) -> LinkClick:
        self.clicks.append(click)
        return click

    def add_customer(self, customer_id: str, tags: Optional[list[str]] = None):
        self.customer_tags[customer_id] = list(tags or [])

    # MessageReader

    async def get_recent_messages(self, customer_id: str, limit: int) -> list[Message]:
        history = [m for m in self.messages if m.customer_id == customer_id]
        history.sort(key=lambda m: m.timestamp, reverse=True)
        return [m.model_copy() for m in history[:limit]]

    async def get_preceding_inbound_message(
        self, customer_id: str, before: datetime
    ) -> Optional[Message]:
        candidates = [
            m
            for m in self.messages
            if m.customer_id == customer_id
            and m.direction == MessageDirection.INBOUND
            and m.timestamp < before
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda m: m.timestamp).model_copy()

    # ServiceCatalogReader

    async def get_active_services(self, company_id: str) -> list[Service]:
        return [
            s.model_copy()
            for s in self.services
            if s.company_id == company_id and s.is_active
        ]

    # FeedbackReader

    def _rated_ai_messages(
        self, company_id: str, feedback: MessageFeedback
    ) -> list[Message]:
        return [
            m
            for m in self.messages
            if m.company_id == company_id
            and m.sender_type == SenderType.AI
            and m.feedback == feedback
        ]

    async def get_ai_messages_by_feedback(
        self,
        company_id: str,
        feedback: MessageFeedback,
        limit: int,
        order_by: FeedbackOrdering,
    ) -> list[Message]:
        messages = self._rated_ai_messages(company_id, feedback)
        messages.sort(key=lambda m: m.timestamp, reverse=True)
        if order_by == FeedbackOrdering.NOTES_FIRST:
            # Stable sort keeps recency order inside each group
            messages.sort(key=lambda m: not m.has_feedback_note)
        return [m.model_copy() for m in messages[:limit]]

    async def count_messages_by_feedback(
        self, company_id: str, feedback: MessageFeedback
    ) -> int:
        return len(self._rated_ai_messages(company_id, feedback))

    async def count_ai_messages(self, company_id: str) -> int:
        return sum(
            1
            for m in self.messages
            if m.company_id == company_id and m.sender_type == SenderType.AI
        )

    async def count_customer_bad_feedback_since(
        self, customer_id: str, since: datetime
    ) -> int:
        return sum(
            1
            for m in self.messages
            if m.customer_id == customer_id
            and m.sender_type == SenderType.AI
            and m.feedback == MessageFeedback.BAD
            and m.timestamp >= since
        )

    async def get_last_bad_feedback_note(self, customer_id: str) -> Optional[str]:
        noted = [
            m
            for m in self.messages
            if m.customer_id == customer_id
            and m.sender_type == SenderType.AI
            and m.feedback == MessageFeedback.BAD
            and m.feedback_note is not None
        ]
        if not noted:
            return None
        return max(noted, key=lambda m: m.timestamp).feedback_note

    # LinkRepository

    async def get_active_links_with_pending_clicks(
        self, company_id: str, since: datetime, clicks_per_link: int
    ) -> list[LinkWithClicks]:
        result = []
        for link in self.links:
            if link.company_id != company_id or not link.is_active:
                continue
            pending = [
                c
                for c in self.clicks
                if c.link_id == link.id and not c.converted and c.clicked_at >= since
            ]
            pending.sort(key=lambda c: c.clicked_at, reverse=True)
            result.append(
                LinkWithClicks(
                    link=link.model_copy(),
                    clicks=[c.model_copy() for c in pending[:clicks_per_link]],
                )
            )
        return result

    async def mark_click_converted(
        self, click: LinkClick, customer_id: str, converted_at: datetime
    ) -> None:
        for stored in self.clicks:
            if stored.id == click.id:
                stored.converted = True
                stored.converted_at = converted_at
                stored.customer_id = customer_id
                return
        raise KeyError(f"Link click {click.id} not found")

    async def get_customer_tags(self, customer_id: str) -> Optional[list[str]]:
        tags = self.customer_tags.get(customer_id)
        return list(tags) if tags is not None else None

    async def upsert_tag(self, company_id: str, name: str, color: str) -> None:
        self.company_tags.setdefault(company_id, {}).setdefault(name, color)

    async def add_customer_tag(self, customer_id: str, name: str) -> None:
        self.customer_tags.setdefault(customer_id, []).append(name)

    async def count_link_clicks(self, link_id: str, converted: Optional[bool] = None) -> int:
        return sum(
            1
            for c in self.clicks
            if c.link_id == link_id and (converted is None or c.converted == converted)
        )
