# src/laila/adapters/llm_offline.py
"""
Offline stand-in for the completion provider (LLM_PROVIDER=offline).

Keyword heuristics pick one of a few canned reply templates. The reply is
returned in the same shape as the responses API so it flows through the
normal extractor.
"""
import re
import unicodedata
from typing import Any, Dict

from laila.core.models import ComposedPrompt, CompletionOptions


def _fold(s: str) -> str:
    # lowercase + strip accents so "decisão" and "decisao" match the same rule
    s = unicodedata.normalize("NFKD", (s or "").lower())
    return "".join(ch for ch in s if not unicodedata.combining(ch))


GREETING = re.compile(r"^\s*(oi|ola|bom dia|boa tarde|boa noite|hey|hello|hi)\b")
DECISION = re.compile(r"\b(devo|decid\w*|decisao|escolh\w*|aceitar|proposta|vale a pena)\b")
EMOTION = re.compile(r"\b(ansios\w*|ansiedade|medo|triste\w*|cansad\w*|sozinh\w*|estresse|estressad\w*)\b")
PLANNING = re.compile(r"\b(plano|planej\w*|meta|metas|objetivo\w*|organizar|rotina|prazo)\b")

REPLIES = {
    "greeting": "Olá! Como posso ajudar?",
    "decision": (
        "Antes de decidir, vale separar três coisas: o que você ganha, o que arrisca "
        "e o que não pode perder de jeito nenhum. Qual desses pontos pesa mais para você agora?"
    ),
    "emotion": (
        "Parece que isso está pesando. Nomear o que você sente já é um primeiro passo. "
        "O que aconteceu hoje que trouxe esse sentimento mais forte?"
    ),
    "planning": (
        "Vamos por partes: defina o resultado que você quer, o primeiro passo que cabe "
        "nesta semana e como vai saber que avançou. Por qual parte quer começar?"
    ),
    "reflective": (
        "Estou em modo offline agora, mas posso refletir com você. "
        "O que é mais importante para você nessa situação?"
    ),
}


def classify_intent(message: str) -> str:
    text = _fold(message)
    if GREETING.search(text) and len(text.split()) <= 4:
        return "greeting"
    if DECISION.search(text):
        return "decision"
    if EMOTION.search(text):
        return "emotion"
    if PLANNING.search(text):
        return "planning"
    return "reflective"


class OfflineCompletion:
    def complete(self, prompt: ComposedPrompt, options: CompletionOptions) -> Dict[str, Any]:
        intent = classify_intent(prompt.user_text)
        return {"model": "offline", "intent": intent, "output_text": REPLIES[intent]}
