"""
API Tests
=========
HTTP surface of the engine against a seeded in-memory store.

Run:
  pytest backend/tests/test_api.py -v
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from context_engine.api.dependencies import get_store
from context_engine.core.observability import CorrelationIdFilter, correlation_id_var
from context_engine.main import app
from context_engine.models.message import MessageFeedback
from context_engine.models.whatsapp_link import LinkClick, WhatsAppLink

from factories import COMPANY_ID, CUSTOMER_ID, ai_reply, inbound, minutes_ago


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ═══════════════════════════════════════════════════════════════════════
# Conversation context
# ═══════════════════════════════════════════════════════════════════════


class TestConversationContextEndpoint:

    def test_detects_service_and_renders_block(self, client, store, split_installation):
        store.add_message(inbound("Quanto custa a instalação de Split 9000 BTUs?", minutes_ago(10)))

        response = client.get(
            f"/api/v1/customers/{CUSTOMER_ID}/context",
            params={"company_id": COMPANY_ID, "message": "quero agendar"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["context"]["detected_service"]["service_id"] == split_installation.id
        assert body["context"]["customer_intent"] == "scheduling"
        assert "**Serviço de interesse detectado:** Instalação Split 9000 BTUs" in body["prompt_block"]
        assert "AÇÃO RECOMENDADA" in body["prompt_block"]

    def test_company_id_is_required(self, client):
        response = client.get(f"/api/v1/customers/{CUSTOMER_ID}/context")

        assert response.status_code == 422

    def test_store_failure_returns_500(self, client, store):
        store.get_recent_messages = AsyncMock(side_effect=RuntimeError("database unavailable"))

        response = client.get(
            f"/api/v1/customers/{CUSTOMER_ID}/context", params={"company_id": COMPANY_ID}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to detect conversation context"

    def test_customer_feedback_history(self, client, store):
        yesterday = datetime.now(timezone.utc) - timedelta(days=1)
        store.add_message(ai_reply("x", yesterday, feedback=MessageFeedback.BAD, note="muito longa"))

        response = client.get(f"/api/v1/customers/{CUSTOMER_ID}/feedback-history")

        assert response.status_code == 200
        assert response.json() == {"recent_bad_feedbacks": 1, "last_feedback_note": "muito longa"}


# ═══════════════════════════════════════════════════════════════════════
# Feedback learning
# ═══════════════════════════════════════════════════════════════════════


class TestFeedbackEndpoints:

    def test_feedback_context(self, client, store):
        store.add_message(inbound("qual o valor?", minutes_ago(5)))
        store.add_message(ai_reply("R$ 150,00", minutes_ago(4), feedback=MessageFeedback.GOOD))

        response = client.get(f"/api/v1/companies/{COMPANY_ID}/feedback-context")

        assert response.status_code == 200
        body = response.json()
        assert body["feedback"]["total_good"] == 1
        assert body["feedback"]["good_examples"][0]["customer_message"] == "qual o valor?"
        assert "Taxa de aprovação atual: 100%" in body["prompt_block"]

    def test_feedback_context_limit_is_validated(self, client):
        response = client.get(
            f"/api/v1/companies/{COMPANY_ID}/feedback-context", params={"limit": 0}
        )

        assert response.status_code == 422

    def test_feedback_stats(self, client, store):
        store.add_message(ai_reply("a", minutes_ago(2), feedback=MessageFeedback.GOOD))
        store.add_message(ai_reply("b", minutes_ago(1)))

        response = client.get(f"/api/v1/companies/{COMPANY_ID}/feedback-stats")

        assert response.status_code == 200
        body = response.json()
        assert body["total_ai_messages"] == 2
        assert body["good_percentage"] == 100.0

    def test_prompt_context_without_data_renders_empty_blocks(self, client):
        response = client.get(
            f"/api/v1/companies/{COMPANY_ID}/prompt-context",
            params={"customer_id": CUSTOMER_ID, "message": "oi"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["context_block"] == ""
        assert body["feedback_block"] == ""
        assert body["conversation"]["customer_intent"] == "unknown"


# ═══════════════════════════════════════════════════════════════════════
# Link conversion
# ═══════════════════════════════════════════════════════════════════════


class TestLinkEndpoints:

    @pytest.fixture
    def clicked_link(self, store):
        store.add_customer(CUSTOMER_ID)
        store.add_link(
            WhatsAppLink(
                id="lnk_1",
                company_id=COMPANY_ID,
                name="Campanha Verão",
                message="Quero um orçamento de instalação",
                auto_tag="verao",
            )
        )
        store.add_click(
            LinkClick(
                id="clk_1",
                link_id="lnk_1",
                clicked_at=datetime.now(timezone.utc) - timedelta(minutes=2),
            )
        )

    def test_conversion_then_stats(self, client, store, clicked_link):
        response = client.post(
            f"/api/v1/companies/{COMPANY_ID}/link-conversions",
            json={
                "phone_number": "5511999998888@s.whatsapp.net",
                "message_content": "Quero um orçamento de instalação!",
                "customer_id": CUSTOMER_ID,
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "converted": True,
            "link_name": "Campanha Verão",
            "tag_applied": "verao",
        }

        stats = client.get("/api/v1/links/lnk_1/conversion-stats")

        assert stats.status_code == 200
        assert stats.json() == {"total_clicks": 1, "conversions": 1, "conversion_rate": 100.0}

    def test_conversion_request_is_validated(self, client):
        response = client.post(
            f"/api/v1/companies/{COMPANY_ID}/link-conversions",
            json={"phone_number": "", "message_content": "oi", "customer_id": CUSTOMER_ID},
        )

        assert response.status_code == 422


# ═══════════════════════════════════════════════════════════════════════
# Correlation ids and lifecycle
# ═══════════════════════════════════════════════════════════════════════


class TestCorrelationId:

    def test_incoming_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "req-123"})

        assert response.headers["X-Correlation-ID"] == "req-123"

    def test_id_is_generated_when_missing(self, client):
        response = client.get("/health")

        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_log_records_carry_the_bound_id(self):
        record = logging.LogRecord("context_engine", logging.INFO, __file__, 1, "msg", None, None)
        token = correlation_id_var.set("req-456")
        try:
            CorrelationIdFilter().filter(record)
        finally:
            correlation_id_var.reset(token)

        assert record.correlation_id == "req-456"

    def test_log_records_outside_a_request(self):
        record = logging.LogRecord("context_engine", logging.INFO, __file__, 1, "msg", None, None)

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "N/A"


class TestLifespan:

    def test_startup_opens_and_shutdown_releases_the_store(self):
        get_store.cache_clear()

        with TestClient(app) as lifespan_client:
            assert get_store.cache_info().currsize == 1
            body = lifespan_client.get("/health").json()

        assert body["store_backend"] == "memory"
        assert get_store.cache_info().currsize == 0
