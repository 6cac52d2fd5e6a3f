# src/laila/core/models.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

MEMORY_CONTENT_MAX = 800

MetaValue = Union[str, int, float, bool]


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"true", "1", "yes", "on"}
    return default


@dataclass(frozen=True)
class ChatRequest:
    message: str
    mode: str = "reflective"
    persist: bool = True

    @classmethod
    def from_payload(cls, payload: Dict[str, Any] | None, default_mode: str = "reflective") -> "ChatRequest":
        """Lenient parse of the inbound JSON body; validation happens in the pipeline."""
        payload = payload if isinstance(payload, dict) else {}
        msg = payload.get("message")
        mode = payload.get("mode")
        return cls(
            message=msg if isinstance(msg, str) else "",
            mode=mode.strip() if isinstance(mode, str) and mode.strip() else default_mode,
            persist=_as_bool(payload.get("persist"), True),
        )


@dataclass(frozen=True)
class Memory:
    content: str
    embedding: List[float] = field(default_factory=list)
    metadata: Dict[str, MetaValue] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=_utcnow_iso)
    score: Optional[float] = None
    source: Optional[str] = None

    @classmethod
    def new(cls, content: str, embedding: List[float], **metadata: MetaValue) -> "Memory":
        text = (content or "")[:MEMORY_CONTENT_MAX]
        return cls(content=text, embedding=[float(x) for x in embedding], metadata=dict(metadata))

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "embedding": list(self.embedding),
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Memory":
        meta = row.get("metadata") if isinstance(row.get("metadata"), dict) else {}
        score = row.get("similarity", row.get("score"))
        try:
            score = float(score) if score is not None else None
        except (TypeError, ValueError):
            score = None
        return cls(
            id=str(row.get("id") or uuid.uuid4()),
            content=row.get("content") or "",
            embedding=[],
            metadata=meta,
            created_at=str(row.get("created_at") or ""),
            score=score,
            source=row.get("source") or meta.get("source"),
        )


@dataclass(frozen=True)
class PromptBlock:
    role: str   # system | user
    text: str


@dataclass(frozen=True)
class ComposedPrompt:
    blocks: Tuple[PromptBlock, ...]

    def as_messages(self) -> List[Dict[str, str]]:
        return [{"role": b.role, "content": b.text} for b in self.blocks]

    @property
    def user_text(self) -> str:
        return self.blocks[-1].text if self.blocks else ""


@dataclass(frozen=True)
class CompletionOptions:
    model: str
    max_tokens: int = 700
    temperature: float = 0.6


@dataclass(frozen=True)
class StepResult:
    ok: bool
    value: Any = None
    reason: str = ""

    @classmethod
    def success(cls, value: Any = None) -> "StepResult":
        return cls(True, value, "")

    @classmethod
    def failure(cls, reason: str, value: Any = None) -> "StepResult":
        return cls(False, value, reason)

    @classmethod
    def skipped(cls, reason: str, value: Any = None) -> "StepResult":
        return cls(False, value, f"skipped:{reason}")


@dataclass
class ChatResult:
    reply: Optional[str]
    retrieved_count: int = 0
    memory_saved: bool = False
    debug: Any = None
    shape: str = "unrecognized"
    steps: Dict[str, StepResult] = field(default_factory=dict)
    phase_ms: Dict[str, float] = field(default_factory=dict)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "reply": self.reply,
            "retrieved_count": self.retrieved_count,
            "memory_saved": self.memory_saved,
        }
        if self.reply is None:
            body["debug"] = self.debug
        return body
