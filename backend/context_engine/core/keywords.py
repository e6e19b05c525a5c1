"""
Portuguese keyword lists used by the context detector and the feedback learner.

Kept apart from the scoring code so a company (or a test) can swap in a
localized set by passing a different instance to the services.
"""

from pydantic import BaseModel


class ContextKeywords(BaseModel):
    """Keyword sets for service interest scoring and intent classification."""

    # A customer message mentioning a service plus one of these doubles its score
    interest: tuple[str, ...] = (
        "quanto custa",
        "qual o preço",
        "qual o valor",
        "preço",
        "valor",
        "como funciona",
        "o que inclui",
        "detalhes",
        "mais informações",
        "me fala mais",
        "quero saber",
        "interessado",
        "gostaria",
        "preciso",
        "quero",
        "vou querer",
        "pode ser",
        "esse mesmo",
        "é esse",
        "quero esse",
        "vou fazer",
        "vou agendar",
        "marca",
        "agenda",
    )
    price_question: tuple[str, ...] = ("preço", "valor", "custa")
    details_question: tuple[str, ...] = ("funciona", "detalhes", "inclui")

    # Intent sets, checked in this priority order
    scheduling: tuple[str, ...] = (
        "agendar",
        "marcar",
        "reservar",
        "quero fazer",
        "vou querer",
        "pode marcar",
        "marca pra mim",
        "agenda pra mim",
        "qual horário",
        "horários disponíveis",
        "tem vaga",
        "tem disponibilidade",
    )
    pricing: tuple[str, ...] = ("preço", "valor", "custa", "quanto", "orçamento", "tabela")
    information: tuple[str, ...] = (
        "como funciona",
        "o que é",
        "detalhes",
        "mais informações",
        "me explica",
        "o que inclui",
    )
    comparison: tuple[str, ...] = ("diferença", "melhor", "qual", "comparar", "entre")

    class Config:
        frozen = True


class InsightBucket(BaseModel):
    """A complaint pattern: keywords to look for in notes and the alert it raises."""

    keywords: tuple[str, ...]
    insight: str

    class Config:
        frozen = True


class FeedbackKeywords(BaseModel):
    """Complaint-pattern buckets applied to negative feedback notes."""

    price: InsightBucket = InsightBucket(
        keywords=("preço", "valor", "caro", "barato", "custo"),
        insight="Atenção redobrada ao informar preços - houve reclamações sobre valores incorretos",
    )
    information: InsightBucket = InsightBucket(
        keywords=("errado", "incorreto", "informação", "dado errado"),
        insight="Verifique as informações antes de responder - feedbacks indicam dados incorretos",
    )
    tone: InsightBucket = InsightBucket(
        keywords=("grosso", "rude", "educado", "gentil", "tom"),
        insight="Ajuste o tom das respostas - clientes mencionaram problemas com a forma de comunicação",
    )
    response_length: InsightBucket = InsightBucket(
        keywords=("longa", "curta", "resumo", "detalhe"),
        insight="Ajuste o tamanho das respostas - feedbacks indicam insatisfação com o nível de detalhe",
    )
    understanding: InsightBucket = InsightBucket(
        keywords=("não entendeu", "entendeu errado", "confundiu"),
        insight="Preste mais atenção ao que o cliente está pedindo - houve casos de má interpretação",
    )

    def buckets(self) -> list[InsightBucket]:
        """Buckets in the order their insights are emitted."""
        return [self.price, self.information, self.tone, self.response_length, self.understanding]

    class Config:
        frozen = True


DEFAULT_CONTEXT_KEYWORDS = ContextKeywords()
DEFAULT_FEEDBACK_KEYWORDS = FeedbackKeywords()
