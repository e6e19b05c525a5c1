"""
Renders engine results as text blocks for the assistant's system prompt.

The block layout is recognized by the downstream prompt, so headings and
labels must stay exactly as written here. A block with nothing to say is
rendered as an empty string.
"""

import math

from ..models.conversation_context import (
    ConversationContextResult,
    CustomerIntent,
    DetectedFrom,
)
from ..models.feedback import FeedbackContext

CUSTOMER_MESSAGE_MAX = 150
AI_RESPONSE_MAX = 200
MAX_BAD_EXAMPLES = 5
MAX_GOOD_EXAMPLES = 3
APPROVAL_WARNING_THRESHOLD = 70

DETECTED_FROM_LABELS = {
    DetectedFrom.EXPLICIT_MENTION: "Menção direta ao serviço",
    DetectedFrom.PRICE_QUESTION: "Pergunta sobre preço",
    DetectedFrom.DETAILS_QUESTION: "Pergunta sobre detalhes/funcionamento",
    DetectedFrom.COMPARISON: "Comparação entre serviços",
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def truncate(text: str | None, max_length: int) -> str:
    """Shorten text to max_length characters, ending with '...' when cut."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def translate_detected_from(detected_from: DetectedFrom) -> str:
    return DETECTED_FROM_LABELS[detected_from]


def format_context_for_prompt(context: ConversationContextResult) -> str:
    """Render the detected service block, or "" when no service was detected."""
    service = context.detected_service
    if not service:
        return ""

    formatted = "\n### 🎯 CONTEXTO DA CONVERSA ATUAL\n\n"
    formatted += "**IMPORTANTE:** O cliente já demonstrou interesse em um serviço específico!\n\n"
    formatted += f"**Serviço de interesse detectado:** {service.service_name}\n"
    formatted += f"**Preço:** {service.service_price}\n"
    formatted += f"**Confiança:** {round_half_up(service.confidence * 100)}%\n"
    formatted += f"**Detectado via:** {translate_detected_from(service.detected_from)}\n\n"

    if context.customer_intent == CustomerIntent.SCHEDULING:
        formatted += (
            f"⚡ **AÇÃO RECOMENDADA:** O cliente quer AGENDAR! "
            f"Já sabemos que é o serviço \"{service.service_name}\". "
        )
        formatted += "NÃO pergunte qual serviço - vá direto para coletar data/horário.\n"

    if context.recent_topics:
        formatted += f"\n**Tópicos recentes na conversa:** {', '.join(context.recent_topics)}\n"

    return formatted


def format_feedback_for_prompt(context: FeedbackContext) -> str:
    """Render the feedback learning block, or "" when there are no examples."""
    if not context.bad_examples and not context.good_examples:
        return ""

    formatted = "\n### 📊 APRENDIZADO COM FEEDBACKS DOS ATENDENTES\n\n"

    if context.learning_insights:
        formatted += "**⚠️ ALERTAS BASEADOS EM FEEDBACKS:**\n"
        for insight in context.learning_insights:
            formatted += f"- {insight}\n"
        formatted += "\n"

    bad_with_notes = [e for e in context.bad_examples if e.has_note]
    if bad_with_notes:
        formatted += "**❌ RESPOSTAS QUE RECEBERAM FEEDBACK NEGATIVO (EVITE REPETIR):**\n\n"
        for index, example in enumerate(bad_with_notes[:MAX_BAD_EXAMPLES], start=1):
            formatted += f"**Exemplo {index}:**\n"
            formatted += f"- Cliente perguntou: \"{truncate(example.customer_message, CUSTOMER_MESSAGE_MAX)}\"\n"
            formatted += f"- Resposta problemática: \"{truncate(example.ai_response, AI_RESPONSE_MAX)}\"\n"
            formatted += f"- Motivo da reclamação: \"{example.feedback_note}\"\n\n"

    if context.good_examples:
        formatted += "**✅ RESPOSTAS QUE RECEBERAM FEEDBACK POSITIVO (USE COMO REFERÊNCIA):**\n\n"
        for index, example in enumerate(context.good_examples[:MAX_GOOD_EXAMPLES], start=1):
            formatted += f"**Exemplo {index}:**\n"
            formatted += f"- Cliente perguntou: \"{truncate(example.customer_message, CUSTOMER_MESSAGE_MAX)}\"\n"
            formatted += f"- Boa resposta: \"{truncate(example.ai_response, AI_RESPONSE_MAX)}\"\n\n"

    total = context.total_good + context.total_bad
    if total > 0:
        approval_rate = round_half_up(context.total_good / total * 100)
        formatted += (
            f"**📈 Taxa de aprovação atual: {approval_rate}%** "
            f"({context.total_good} positivos, {context.total_bad} negativos)\n"
        )
        if approval_rate < APPROVAL_WARNING_THRESHOLD:
            formatted += (
                "⚠️ A taxa de aprovação está abaixo do ideal. "
                "Preste atenção extra na qualidade das respostas.\n"
            )

    return formatted
