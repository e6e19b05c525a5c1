"""
Read/write contracts the engine consumes from the data-access layer.

The engine never talks to a database directly. Any object satisfying these
protocols can be injected into the services: the in-memory store for local
development and tests, or the Cosmos DB store in production. Failures raised
by an implementation propagate to the caller unchanged.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

from ..models.message import Message, MessageFeedback
from ..models.service import Service
from ..models.whatsapp_link import LinkClick, LinkWithClicks


class FeedbackOrdering(str, Enum):
    """Sort order for feedback samples."""

    # Messages with a non-empty feedback note first, then newest first
    NOTES_FIRST = "notes_first"
    # Newest first
    RECENT_FIRST = "recent_first"


class MessageReader(Protocol):
    """Chat history access."""

    async def get_recent_messages(self, customer_id: str, limit: int) -> list[Message]:
        """Most recent messages of a customer, newest first."""
        ...

    async def get_preceding_inbound_message(
        self, customer_id: str, before: datetime
    ) -> Optional[Message]:
        """Newest inbound message of a customer strictly earlier than `before`."""
        ...


class ServiceCatalogReader(Protocol):
    """Service catalog access."""

    async def get_active_services(self, company_id: str) -> list[Service]:
        """Active services of a company in catalog order."""
        ...


class FeedbackReader(Protocol):
    """Rated AI reply access."""

    async def get_ai_messages_by_feedback(
        self,
        company_id: str,
        feedback: MessageFeedback,
        limit: int,
        order_by: FeedbackOrdering,
    ) -> list[Message]:
        ...

    async def count_messages_by_feedback(
        self, company_id: str, feedback: MessageFeedback
    ) -> int:
        ...

    async def count_ai_messages(self, company_id: str) -> int:
        ...

    async def count_customer_bad_feedback_since(
        self, customer_id: str, since: datetime
    ) -> int:
        ...

    async def get_last_bad_feedback_note(self, customer_id: str) -> Optional[str]:
        """Note of the newest BAD-rated AI reply of a customer that has a note."""
        ...

    async def get_preceding_inbound_message(
        self, customer_id: str, before: datetime
    ) -> Optional[Message]:
        ...


class LinkRepository(Protocol):
    """Tracked link, click and tag access used by conversion attribution."""

    async def get_active_links_with_pending_clicks(
        self, company_id: str, since: datetime, clicks_per_link: int
    ) -> list[LinkWithClicks]:
        """Active links with unconverted clicks at or after `since`, newest click first."""
        ...

    async def mark_click_converted(
        self, click: LinkClick, customer_id: str, converted_at: datetime
    ) -> None:
        ...

    async def get_customer_tags(self, customer_id: str) -> Optional[list[str]]:
        """Tags of a customer, None when the customer does not exist."""
        ...

    async def upsert_tag(self, company_id: str, name: str, color: str) -> None:
        ...

    async def add_customer_tag(self, customer_id: str, name: str) -> None:
        ...

    async def count_link_clicks(self, link_id: str, converted: Optional[bool] = None) -> int:
        ...
