"""
Conversation Context Tests
==========================
Service-of-interest scoring, intent classification and topic extraction.

Run:
  pytest backend/tests/test_conversation_context.py -v
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from context_engine.models.conversation_context import CustomerIntent, DetectedFrom
from context_engine.services.conversation_context import ConversationContextService

from factories import COMPANY_ID, CUSTOMER_ID, ai_reply, inbound, make_service, minutes_ago


def _service(store):
    return ConversationContextService(store, store)


# ═══════════════════════════════════════════════════════════════════════
# Service detection
# ═══════════════════════════════════════════════════════════════════════


class TestServiceDetection:

    @pytest.mark.asyncio
    async def test_current_message_mention_without_history(self, store):
        store.add_service(make_service("Limpeza de Split", category="Manutenção"))

        result = await _service(store).detect_context(
            CUSTOMER_ID, COMPANY_ID, "Oi, queria a Limpeza de Split"
        )

        assert result.detected_service is not None
        assert result.detected_service.service_name == "Limpeza de Split"
        assert result.detected_service.detected_from == DetectedFrom.EXPLICIT_MENTION
        assert result.detected_service.confidence == pytest.approx(20 / 30)

    @pytest.mark.asyncio
    async def test_price_question_in_history_then_scheduling(self, store, split_installation):
        store.add_message(inbound("Quanto custa a instalação de Split 9000 BTUs?", minutes_ago(10)))
        store.add_message(ai_reply("O valor é R$ 350,00.", minutes_ago(9)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "quero agendar")

        detected = result.detected_service
        assert detected is not None
        assert detected.service_id == split_installation.id
        assert detected.detected_from == DetectedFrom.PRICE_QUESTION
        assert detected.service_price == "R$ 350,00"
        assert detected.service_duration == 120
        # 4 name words * 3 + category 2 = 14, doubled by interest, halved by recency
        assert detected.confidence == pytest.approx(14 / 30)
        assert result.customer_intent == CustomerIntent.SCHEDULING

    @pytest.mark.asyncio
    async def test_score_below_minimum_is_not_detected(self, store):
        store.add_service(make_service("Higienização Split"))
        store.add_message(ai_reply("Fazemos higienização também", minutes_ago(5)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.detected_service is None

    @pytest.mark.asyncio
    async def test_no_services_yields_no_detection(self, store):
        store.add_message(inbound("quanto custa a limpeza?", minutes_ago(3)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "quanto custa?")

        assert result.detected_service is None
        assert result.recent_topics == []
        assert result.customer_intent == CustomerIntent.PRICING

    @pytest.mark.asyncio
    async def test_tag_compares_message_score_with_previous_total(self, store):
        store.add_service(make_service("Limpeza Split"))
        # 32 * 1/3 -> price_question
        store.add_message(inbound("quero saber o preço da limpeza split", minutes_ago(30)))
        # outbound, 3 * 2/3 -> total 12.67
        store.add_message(ai_reply("temos split", minutes_ago(20)))
        # 12 * 1: beats every single earlier message but not the running total
        store.add_message(inbound("detalhes da split e limpeza", minutes_ago(10)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.detected_service.detected_from == DetectedFrom.PRICE_QUESTION
        assert result.detected_service.confidence == pytest.approx((32 / 3 + 2 + 12) / 30)

    @pytest.mark.asyncio
    async def test_message_equal_to_previous_total_keeps_tag(self, store):
        store.add_service(make_service("Limpeza Split"))
        # 16 * 1/4 + 16 * 2/4 -> total 12, explicit mention
        store.add_message(ai_reply("limpeza split", minutes_ago(40)))
        store.add_message(ai_reply("limpeza split", minutes_ago(30)))
        store.add_message(inbound("bom dia", minutes_ago(20)))
        # (3 + 3) * 2 * 1 = 12: ties the running total, so the tag stays
        store.add_message(inbound("qual o preço de limpeza e split", minutes_ago(10)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.detected_service.detected_from == DetectedFrom.EXPLICIT_MENTION
        assert result.detected_service.confidence == pytest.approx(24 / 30)

    @pytest.mark.asyncio
    async def test_score_of_exactly_five_is_detected(self, store):
        service = store.add_service(make_service("Limpeza Completa", category="Split"))
        # name word 3 + category 2
        store.add_message(inbound("limpeza do split", minutes_ago(1)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.detected_service is not None
        assert result.detected_service.service_id == service.id
        assert result.detected_service.confidence == pytest.approx(5 / 30)

    @pytest.mark.asyncio
    async def test_details_question_tag(self, store):
        store.add_service(make_service("Limpeza Split"))
        store.add_message(inbound("como funciona a limpeza split?", minutes_ago(1)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "hmm")

        assert result.detected_service.detected_from == DetectedFrom.DETAILS_QUESTION
        assert result.detected_service.confidence == 1.0

    @pytest.mark.asyncio
    async def test_current_message_forces_explicit_mention(self, store):
        store.add_service(make_service("Limpeza Split"))
        store.add_message(inbound("qual o valor da limpeza split?", minutes_ago(2)))

        result = await _service(store).detect_context(
            CUSTOMER_ID, COMPANY_ID, "pode ser a limpeza split"
        )

        assert result.detected_service.detected_from == DetectedFrom.EXPLICIT_MENTION

    @pytest.mark.asyncio
    async def test_outbound_messages_are_not_doubled(self, store):
        store.add_service(make_service("Limpeza Split"))
        store.add_message(ai_reply("quer saber o preço da limpeza split?", minutes_ago(2)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.detected_service.detected_from == DetectedFrom.EXPLICIT_MENTION
        assert result.detected_service.confidence == pytest.approx(16 / 30)

    @pytest.mark.asyncio
    async def test_ties_resolved_by_catalog_order(self, store):
        first = store.add_service(make_service("Limpeza"))
        store.add_service(make_service("Recarga"))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "limpeza ou recarga?")

        assert result.detected_service.service_id == first.id

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self, store):
        store.add_service(make_service("Limpeza Split"))
        for minutes in (5, 4, 3, 2, 1):
            store.add_message(inbound("quero a limpeza split", minutes_ago(minutes)))

        result = await _service(store).detect_context(
            CUSTOMER_ID, COMPANY_ID, "limpeza split por favor"
        )

        assert 0.0 <= result.detected_service.confidence <= 1.0
        assert result.detected_service.confidence == 1.0

    @pytest.mark.asyncio
    async def test_history_window_is_last_ten_messages(self, store):
        store.add_service(make_service("Limpeza Split"))
        store.add_message(inbound("quero a limpeza split", minutes_ago(60)))
        for minutes in range(10, 0, -1):
            store.add_message(inbound("bom dia", minutes_ago(minutes)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.detected_service is None

    @pytest.mark.asyncio
    async def test_reader_failure_propagates(self, store):
        failing = AsyncMock()
        failing.get_recent_messages.side_effect = RuntimeError("database unavailable")

        service = ConversationContextService(failing, store)

        with pytest.raises(RuntimeError, match="database unavailable"):
            await service.detect_context(CUSTOMER_ID, COMPANY_ID, "oi")


# ═══════════════════════════════════════════════════════════════════════
# Intent classification
# ═══════════════════════════════════════════════════════════════════════


class TestIntentDetection:

    @pytest.mark.parametrize(
        "message, intent",
        [
            ("Quanto custa para agendar amanhã?", CustomerIntent.SCHEDULING),
            ("Tem disponibilidade sábado?", CustomerIntent.SCHEDULING),
            ("Qual o preço?", CustomerIntent.PRICING),
            ("Me passa um orçamento", CustomerIntent.PRICING),
            ("Como funciona a higienização?", CustomerIntent.INFORMATION),
            ("Qual a diferença entre eles?", CustomerIntent.COMPARISON),
            ("Bom dia!", CustomerIntent.UNKNOWN),
        ],
    )
    def test_priority_order(self, store, message, intent):
        assert _service(store).detect_intent(message) == intent


# ═══════════════════════════════════════════════════════════════════════
# Topic extraction
# ═══════════════════════════════════════════════════════════════════════


class TestRecentTopics:

    @pytest.mark.asyncio
    async def test_repeated_mentions_are_not_duplicated(self, store):
        store.add_service(make_service("Limpeza de Split", category="Manutenção"))
        store.add_message(inbound("quero limpeza de split, é manutenção?", minutes_ago(3)))
        store.add_message(inbound("a limpeza de split demora?", minutes_ago(2)))
        store.add_message(inbound("manutenção anual", minutes_ago(1)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.recent_topics == ["Limpeza de Split", "Manutenção"]

    @pytest.mark.asyncio
    async def test_only_customer_messages_produce_topics(self, store):
        store.add_service(make_service("Limpeza de Split", category="Manutenção"))
        store.add_message(ai_reply("Temos Limpeza de Split e outras manutenção", minutes_ago(1)))

        result = await _service(store).detect_context(CUSTOMER_ID, COMPANY_ID, "ok")

        assert result.recent_topics == []
