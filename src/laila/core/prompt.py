# src/laila/core/prompt.py
from datetime import datetime
from typing import Iterable, Optional, Sequence

from laila.core.models import ComposedPrompt, Memory, PromptBlock

PERSONA_TEMPLATE = """
Você é Laila, uma assistente pessoal em português do Brasil.
Modo de conversa atual: {mode}.
Hoje é {date} e agora são {time}.

Como responder:
- Seja clara, calorosa e objetiva; prefira parágrafos curtos.
- No modo reflexivo, ajude a pessoa a pensar: faça no máximo uma pergunta de volta.
- No modo estratégico, organize opções, riscos e próximos passos.
- Use as memórias fornecidas apenas quando forem relevantes; nunca invente lembranças.
- Se não souber algo, diga isso com honestidade.
""".strip()

MODE_LABELS = {
    "reflective": "reflexivo",
    "strategic": "estratégico",
    "supportive": "acolhedor",
    "direct": "direto",
}

_WEEKDAYS = ("segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
             "sexta-feira", "sábado", "domingo")
_MONTHS = ("janeiro", "fevereiro", "março", "abril", "maio", "junho", "julho",
           "agosto", "setembro", "outubro", "novembro", "dezembro")


def format_date_pt(now: datetime) -> str:
    """e.g. 'sexta-feira, 17 de outubro de 2026'"""
    return f"{_WEEKDAYS[now.weekday()]}, {now.day} de {_MONTHS[now.month - 1]} de {now.year}"


def format_time_pt(now: datetime) -> str:
    return f"{now.hour:02d}:{now.minute:02d}"


def render_persona(template: str, mode: str, now: datetime) -> str:
    # plain replace: operator templates may contain literal braces (JSON examples etc.)
    label = MODE_LABELS.get((mode or "").lower(), mode or "")
    out = template.replace("{mode}", label)
    out = out.replace("{date}", format_date_pt(now))
    return out.replace("{time}", format_time_pt(now))


def _clip(text: str, max_chars: Optional[int]) -> str:
    if max_chars and len(text) > max_chars:
        return text[:max_chars].rstrip() + "…"
    return text


def memory_block(memories: Sequence[Memory], snippet_chars: Optional[int] = None) -> str:
    lines = ["Memórias relevantes de conversas anteriores:"]
    for i, m in enumerate(memories, 1):
        content = _clip((getattr(m, "content", None) or "").replace("\n", " ").strip(), snippet_chars)
        source = getattr(m, "source", None)
        lines.append(f"{i}. {content} (fonte: {source})" if source else f"{i}. {content}")
    return "\n".join(lines)


def compose(persona_template: str, mode: str, memories: Iterable[Memory], user_message: str, now: datetime,
            snippet_chars: Optional[int] = None) -> ComposedPrompt:
    mems = tuple(memories or ())
    blocks = [PromptBlock("system", render_persona(persona_template or PERSONA_TEMPLATE, mode, now))]
    if mems:
        blocks.append(PromptBlock("system", memory_block(mems, snippet_chars)))
    blocks.append(PromptBlock("user", user_message))
    return ComposedPrompt(tuple(blocks))
