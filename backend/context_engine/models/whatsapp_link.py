"""
WhatsApp tracking link models.

Tracked links open a chat with a prefilled message. A click converts when the
customer actually sends that message within the conversion window.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WhatsAppLink(BaseModel):
    """
    Tracked link entity model.

    Attributes:
        id: Unique link identifier
        company_id: Owning company (partition key)
        name: Campaign-facing link name
        message: Prefilled message the link opens the chat with (optional)
        auto_tag: Tag applied to customers who convert (optional)
        is_active: Whether the link is currently tracked
    """

    id: str
    company_id: str
    name: str
    message: Optional[str] = None
    auto_tag: Optional[str] = None
    is_active: bool = True


class LinkClick(BaseModel):
    """
    A single click on a tracked link.

    Attributes:
        id: Unique click identifier
        link_id: Clicked link (partition key)
        clicked_at: When the click happened
        converted: Whether the click has been attributed to a message
        converted_at: When the conversion was recorded (optional)
        customer_id: Customer the click converted into (optional)
    """

    id: str
    link_id: str
    clicked_at: datetime
    converted: bool = False
    converted_at: Optional[datetime] = None
    customer_id: Optional[str] = None


class LinkWithClicks(BaseModel):
    """A link together with its pending clicks, most recent first."""

    link: WhatsAppLink
    clicks: list[LinkClick] = Field(default_factory=list)


class ConversionResult(BaseModel):
    """Outcome of matching an inbound message against tracked links."""

    converted: bool = False
    link_name: Optional[str] = None
    tag_applied: Optional[str] = None


class LinkConversionStats(BaseModel):
    """Click and conversion totals for a single link."""

    total_clicks: int = Field(0, ge=0)
    conversions: int = Field(0, ge=0)
    conversion_rate: float = Field(0.0, ge=0.0, le=100.0)
