"""
Cosmos DB implementation of the engine's data-access contracts.

Containers and partition keys:
- messages:        /customer_id (each document carries company_id)
- services:        /company_id
- whatsapp-links:  /company_id
- link-clicks:     /link_id
- customers:       /id
- tags:            /company_id

Timestamps are stored as ISO 8601 UTC strings so string ordering matches
chronological ordering. Query failures are logged and re-raised unchanged.

Uses the async client so concurrent reads issued with asyncio.gather overlap
instead of blocking the event loop.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from azure.core.credentials_async import AsyncTokenCredential
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential

from ..core.config import Settings, get_settings
from ..core.observability import get_tracer
from ..models.message import Message, MessageFeedback
from ..models.service import Service
from ..models.whatsapp_link import LinkClick, LinkWithClicks, WhatsAppLink
from .repositories import FeedbackOrdering

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

_HAS_NOTE = "IS_STRING(c.feedback_note) AND LENGTH(TRIM(c.feedback_note)) > 0"


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class CosmosStore:
    """
    Message, catalog, feedback and link store backed by Azure Cosmos DB.

    Satisfies MessageReader, ServiceCatalogReader, FeedbackReader and LinkRepository.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        credential: AsyncTokenCredential | None = None,
    ):
        """
        Initialize Cosmos DB containers.

        Args:
            settings: Application settings (optional, uses global settings if None)
            credential: Azure credential (optional, uses DefaultAzureCredential if None)

        Raises:
            ValueError: If the Cosmos DB endpoint is not configured
        """
        self.settings = settings or get_settings()
        if not self.settings.cosmos_db_endpoint:
            raise ValueError("COSMOS_DB_ENDPOINT environment variable not set")

        self.credential = credential or DefaultAzureCredential()
        self.cosmos_client = CosmosClient(
            url=self.settings.cosmos_db_endpoint, credential=self.credential
        )
        database = self.cosmos_client.get_database_client(self.settings.cosmos_database_name)
        self.messages_container: ContainerProxy = database.get_container_client(
            self.settings.cosmos_messages_container
        )
        self.services_container: ContainerProxy = database.get_container_client(
            self.settings.cosmos_services_container
        )
        self.links_container: ContainerProxy = database.get_container_client(
            self.settings.cosmos_links_container
        )
        self.clicks_container: ContainerProxy = database.get_container_client(
            self.settings.cosmos_clicks_container
        )
        self.customers_container: ContainerProxy = database.get_container_client(
            self.settings.cosmos_customers_container
        )
        self.tags_container: ContainerProxy = database.get_container_client(
            self.settings.cosmos_tags_container
        )

        logger.info(
            f"CosmosStore initialized: database={self.settings.cosmos_database_name}"
        )

    async def close(self) -> None:
        """Close the Cosmos client and the credential's transport."""
        await self.cosmos_client.close()
        await self.credential.close()
        logger.info("CosmosStore closed")

    async def _query(
        self,
        container: ContainerProxy,
        query: str,
        parameters: list[dict[str, Any]],
        partition_key: Optional[str] = None,
    ) -> list[Any]:
        with tracer.start_as_current_span("cosmos_store.query") as span:
            span.set_attribute("container", container.id)
            try:
                if partition_key is not None:
                    items = container.query_items(
                        query=query, parameters=parameters, partition_key=partition_key
                    )
                else:
                    # The async client queries across partitions when no key is given
                    items = container.query_items(query=query, parameters=parameters)
                results = [item async for item in items]
                span.set_attribute("result_count", len(results))
                return results
            except Exception as e:
                logger.error(f"Cosmos DB query failed on {container.id}: {e}", exc_info=True)
                span.set_attribute("error", str(e))
                raise

    # MessageReader

    async def get_recent_messages(self, customer_id: str, limit: int) -> list[Message]:
        items = await self._query(
            self.messages_container,
            "SELECT TOP @limit * FROM c WHERE c.customer_id = @customer_id "
            "ORDER BY c.timestamp DESC",
            [
                {"name": "@limit", "value": limit},
                {"name": "@customer_id", "value": customer_id},
            ],
            partition_key=customer_id,
        )
        return [Message.model_validate(item) for item in items]

    async def get_preceding_inbound_message(
        self, customer_id: str, before: datetime
    ) -> Optional[Message]:
        items = await self._query(
            self.messages_container,
            "SELECT TOP 1 * FROM c WHERE c.customer_id = @customer_id "
            "AND c.direction = 'INBOUND' AND c.timestamp < @before "
            "ORDER BY c.timestamp DESC",
            [
                {"name": "@customer_id", "value": customer_id},
                {"name": "@before", "value": _iso(before)},
            ],
            partition_key=customer_id,
        )
        return Message.model_validate(items[0]) if items else None

    # ServiceCatalogReader

    async def get_active_services(self, company_id: str) -> list[Service]:
        items = await self._query(
            self.services_container,
            "SELECT * FROM c WHERE c.company_id = @company_id AND c.is_active = true "
            "ORDER BY c.name ASC",
            [{"name": "@company_id", "value": company_id}],
            partition_key=company_id,
        )
        return [Service.model_validate(item) for item in items]

    # FeedbackReader

    async def _rated_messages(
        self, company_id: str, feedback: MessageFeedback, limit: int, note_filter: str
    ) -> list[Message]:
        items = await self._query(
            self.messages_container,
            "SELECT TOP @limit * FROM c WHERE c.company_id = @company_id "
            "AND c.sender_type = 'AI' AND c.feedback = @feedback"
            f"{note_filter} ORDER BY c.timestamp DESC",
            [
                {"name": "@limit", "value": limit},
                {"name": "@company_id", "value": company_id},
                {"name": "@feedback", "value": feedback.value},
            ],
        )
        return [Message.model_validate(item) for item in items]

    async def get_ai_messages_by_feedback(
        self,
        company_id: str,
        feedback: MessageFeedback,
        limit: int,
        order_by: FeedbackOrdering,
    ) -> list[Message]:
        if order_by == FeedbackOrdering.RECENT_FIRST:
            return await self._rated_messages(company_id, feedback, limit, "")

        noted = await self._rated_messages(company_id, feedback, limit, f" AND {_HAS_NOTE}")
        if len(noted) >= limit:
            return noted
        unnoted = await self._rated_messages(
            company_id, feedback, limit - len(noted), f" AND NOT ({_HAS_NOTE})"
        )
        return noted + unnoted

    async def count_messages_by_feedback(
        self, company_id: str, feedback: MessageFeedback
    ) -> int:
        items = await self._query(
            self.messages_container,
            "SELECT VALUE COUNT(1) FROM c WHERE c.company_id = @company_id "
            "AND c.sender_type = 'AI' AND c.feedback = @feedback",
            [
                {"name": "@company_id", "value": company_id},
                {"name": "@feedback", "value": feedback.value},
            ],
        )
        return int(items[0]) if items else 0

    async def count_ai_messages(self, company_id: str) -> int:
        items = await self._query(
            self.messages_container,
            "SELECT VALUE COUNT(1) FROM c WHERE c.company_id = @company_id "
            "AND c.sender_type = 'AI'",
            [{"name": "@company_id", "value": company_id}],
        )
        return int(items[0]) if items else 0

    async def count_customer_bad_feedback_since(
        self, customer_id: str, since: datetime
    ) -> int:
        items = await self._query(
            self.messages_container,
            "SELECT VALUE COUNT(1) FROM c WHERE c.customer_id = @customer_id "
            "AND c.sender_type = 'AI' AND c.feedback = 'BAD' AND c.timestamp >= @since",
            [
                {"name": "@customer_id", "value": customer_id},
                {"name": "@since", "value": _iso(since)},
            ],
            partition_key=customer_id,
        )
        return int(items[0]) if items else 0

    async def get_last_bad_feedback_note(self, customer_id: str) -> Optional[str]:
        items = await self._query(
            self.messages_container,
            "SELECT TOP 1 VALUE c.feedback_note FROM c WHERE c.customer_id = @customer_id "
            "AND c.sender_type = 'AI' AND c.feedback = 'BAD' AND IS_STRING(c.feedback_note) "
            "ORDER BY c.timestamp DESC",
            [{"name": "@customer_id", "value": customer_id}],
            partition_key=customer_id,
        )
        return items[0] if items else None

    # LinkRepository

    async def get_active_links_with_pending_clicks(
        self, company_id: str, since: datetime, clicks_per_link: int
    ) -> list[LinkWithClicks]:
        links = await self._query(
            self.links_container,
            "SELECT * FROM c WHERE c.company_id = @company_id AND c.is_active = true",
            [{"name": "@company_id", "value": company_id}],
            partition_key=company_id,
        )

        result = []
        for item in links:
            link = WhatsAppLink.model_validate(item)
            clicks = await self._query(
                self.clicks_container,
                "SELECT TOP @limit * FROM c WHERE c.link_id = @link_id "
                "AND c.converted = false AND c.clicked_at >= @since "
                "ORDER BY c.clicked_at DESC",
                [
                    {"name": "@limit", "value": clicks_per_link},
                    {"name": "@link_id", "value": link.id},
                    {"name": "@since", "value": _iso(since)},
                ],
                partition_key=link.id,
            )
            result.append(
                LinkWithClicks(
                    link=link, clicks=[LinkClick.model_validate(c) for c in clicks]
                )
            )
        return result

    async def mark_click_converted(
        self, click: LinkClick, customer_id: str, converted_at: datetime
    ) -> None:
        await self.clicks_container.patch_item(
            item=click.id,
            partition_key=click.link_id,
            patch_operations=[
                {"op": "set", "path": "/converted", "value": True},
                {"op": "set", "path": "/converted_at", "value": _iso(converted_at)},
                {"op": "set", "path": "/customer_id", "value": customer_id},
            ],
        )

    async def get_customer_tags(self, customer_id: str) -> Optional[list[str]]:
        try:
            customer = await self.customers_container.read_item(
                item=customer_id, partition_key=customer_id
            )
        except CosmosResourceNotFoundError:
            return None
        return list(customer.get("tags") or [])

    async def upsert_tag(self, company_id: str, name: str, color: str) -> None:
        try:
            await self.tags_container.create_item(
                body={
                    "id": f"{company_id}:{name}",
                    "company_id": company_id,
                    "name": name,
                    "color": color,
                }
            )
        except CosmosResourceExistsError:
            logger.debug(f"Tag '{name}' already exists for company {company_id}")

    async def add_customer_tag(self, customer_id: str, name: str) -> None:
        await self.customers_container.patch_item(
            item=customer_id,
            partition_key=customer_id,
            patch_operations=[{"op": "add", "path": "/tags/-", "value": name}],
        )

    async def count_link_clicks(self, link_id: str, converted: Optional[bool] = None) -> int:
        query = "SELECT VALUE COUNT(1) FROM c WHERE c.link_id = @link_id"
        parameters: list[dict[str, Any]] = [{"name": "@link_id", "value": link_id}]
        if converted is not None:
            query += " AND c.converted = @converted"
            parameters.append({"name": "@converted", "value": converted})
        items = await self._query(self.clicks_container, query, parameters, partition_key=link_id)
        return int(items[0]) if items else 0
