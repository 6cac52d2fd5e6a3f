# src/laila/core/extractor.py
"""
Best-effort reply extraction from provider payloads.

Three shapes are known, tried in this order (first non-blank wins):
  1. {"output_text": "..."}                               responses API convenience field
  2. {"output": [{"content": [{"type": "output_text", "text": "..."}]}]}
  3. {"choices": [{"message": {"content": "..."}}]}       legacy chat completions
Anything else is absent (None); the caller keeps the raw payload for debugging.
"""
from enum import Enum
from typing import Any, Optional

OUTPUT_TEXT_TAGS = ("output_text", "text")


class PayloadShape(str, Enum):
    OUTPUT_TEXT = "output_text"
    OUTPUT_BLOCKS = "output_blocks"
    CHOICES = "choices"
    UNRECOGNIZED = "unrecognized"


def _clean(v: Any) -> Optional[str]:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return None


def _first(seq: Any) -> Any:
    if isinstance(seq, list) and seq:
        return seq[0]
    return None


def _from_output_text(payload: dict) -> Optional[str]:
    return _clean(payload.get("output_text"))


def _from_output_blocks(payload: dict) -> Optional[str]:
    item = _first(payload.get("output"))
    if not isinstance(item, dict):
        return None
    blocks = item.get("content")
    if not isinstance(blocks, list):
        return None
    blocks = [b for b in blocks if isinstance(b, dict)]
    for b in blocks:
        if b.get("type") in OUTPUT_TEXT_TAGS:
            txt = _clean(b.get("text"))
            if txt:
                return txt
    # untagged fallback: first block carrying any text
    for b in blocks:
        txt = _clean(b.get("text"))
        if txt:
            return txt
    return None


def _from_choices(payload: dict) -> Optional[str]:
    choice = _first(payload.get("choices"))
    if not isinstance(choice, dict):
        return None
    message = choice.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return _clean(content)
    if isinstance(content, dict):
        return _clean(content.get("text"))
    if isinstance(content, list):
        parts = [p.get("text") for p in content if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return _clean("".join(parts))
    return None


_PROBES = (
    (PayloadShape.OUTPUT_TEXT, _from_output_text),
    (PayloadShape.OUTPUT_BLOCKS, _from_output_blocks),
    (PayloadShape.CHOICES, _from_choices),
)


def classify(payload: Any) -> PayloadShape:
    """Which known shape produced the reply (UNRECOGNIZED when none did)."""
    if not isinstance(payload, dict):
        return PayloadShape.UNRECOGNIZED
    for shape, probe in _PROBES:
        if probe(payload):
            return shape
    return PayloadShape.UNRECOGNIZED


def extract(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for _, probe in _PROBES:
        txt = probe(payload)
        if txt:
            return txt
    return None
