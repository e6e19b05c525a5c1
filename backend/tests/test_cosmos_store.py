"""
Cosmos Store Tests
==================
Query shapes and result mapping of the async Cosmos DB store, with the
containers replaced by mocks (no account needed).

Run:
  pytest backend/tests/test_cosmos_store.py -v
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from context_engine.models.message import MessageDirection
from context_engine.models.whatsapp_link import LinkClick
from context_engine.services.cosmos_store import CosmosStore

from factories import CUSTOMER_ID, NOW


class _AsyncItems:
    """Stands in for the AsyncItemPaged returned by query_items."""

    def __init__(self, items):
        self._items = items

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item


def _container(name, items=()):
    container = MagicMock()
    container.id = name
    container.query_items.return_value = _AsyncItems(list(items))
    return container


def _store(**containers):
    store = CosmosStore.__new__(CosmosStore)
    for attribute, container in containers.items():
        setattr(store, attribute, container)
    return store


# ═══════════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════════


class TestQueries:

    @pytest.mark.asyncio
    async def test_recent_messages_are_read_from_the_customer_partition(self):
        messages = _container(
            "messages",
            [
                {
                    "id": "msg_1",
                    "customer_id": CUSTOMER_ID,
                    "content": "oi",
                    "direction": "INBOUND",
                    "timestamp": NOW.isoformat(),
                }
            ],
        )
        store = _store(messages_container=messages)

        result = await store.get_recent_messages(CUSTOMER_ID, 10)

        assert [m.id for m in result] == ["msg_1"]
        assert result[0].direction == MessageDirection.INBOUND
        kwargs = messages.query_items.call_args.kwargs
        assert kwargs["partition_key"] == CUSTOMER_ID
        assert {"name": "@limit", "value": 10} in kwargs["parameters"]

    @pytest.mark.asyncio
    async def test_company_counts_query_across_partitions(self):
        messages = _container("messages", [7])
        store = _store(messages_container=messages)

        assert await store.count_ai_messages("cmp_1") == 7
        assert "partition_key" not in messages.query_items.call_args.kwargs

    @pytest.mark.asyncio
    async def test_query_failure_is_reraised(self):
        messages = _container("messages")
        messages.query_items.side_effect = RuntimeError("throttled")
        store = _store(messages_container=messages)

        with pytest.raises(RuntimeError, match="throttled"):
            await store.get_recent_messages(CUSTOMER_ID, 10)


# ═══════════════════════════════════════════════════════════════════════
# Writes and lifecycle
# ═══════════════════════════════════════════════════════════════════════


class TestWrites:

    @pytest.mark.asyncio
    async def test_unknown_customer_has_no_tags(self):
        customers = MagicMock()
        customers.read_item = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="not found")
        )
        store = _store(customers_container=customers)

        assert await store.get_customer_tags("cus_missing") is None

    @pytest.mark.asyncio
    async def test_click_conversion_patches_the_click(self):
        clicks = MagicMock()
        clicks.patch_item = AsyncMock()
        store = _store(clicks_container=clicks)
        click = LinkClick(id="clk_1", link_id="lnk_1", clicked_at=NOW)

        await store.mark_click_converted(click, CUSTOMER_ID, NOW)

        kwargs = clicks.patch_item.await_args.kwargs
        assert kwargs["item"] == "clk_1"
        assert kwargs["partition_key"] == "lnk_1"
        assert {"op": "set", "path": "/customer_id", "value": CUSTOMER_ID} in kwargs["patch_operations"]

    @pytest.mark.asyncio
    async def test_close_releases_client_and_credential(self):
        store = _store(cosmos_client=AsyncMock(), credential=AsyncMock())

        await store.close()

        store.cosmos_client.close.assert_awaited_once()
        store.credential.close.assert_awaited_once()
