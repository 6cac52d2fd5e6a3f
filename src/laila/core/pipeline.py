# src/laila/core/pipeline.py
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from laila.core.errors import CompletionError, UpstreamUnavailable, ValidationError
from laila.core.extractor import classify, extract
from laila.core.models import ChatRequest, ChatResult, CompletionOptions, Memory, StepResult
from laila.core.ports import IEmbedder, ILLM, IMemoryStore
from laila.core.prompt import PERSONA_TEMPLATE, compose

logger = logging.getLogger("laila.pipeline")


def _ms(t0: float) -> float:
    return round((time.perf_counter() - t0) * 1000.0, 1)


def _zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[chat] unknown timezone %r, using UTC", name)
        return timezone.utc


class ChatPipeline:
    """
    embed -> retrieve -> compose -> complete -> extract -> persist, per request.
    Only the completion step is fatal; the memory steps degrade to "no memory".
    """

    def __init__(
        self,
        llm: ILLM,
        options: CompletionOptions,
        embedder: Optional[IEmbedder] = None,
        store: Optional[IMemoryStore] = None,
        persona_template: str = PERSONA_TEMPLATE,
        top_k: int = 4,
        snippet_chars: Optional[int] = None,
        tz: str = "America/Sao_Paulo",
        audit_enabled: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.llm = llm
        self.options = options
        self.embedder = embedder
        self.store = store
        self.persona_template = persona_template or PERSONA_TEMPLATE
        self.top_k = top_k
        self.snippet_chars = snippet_chars
        self.audit_enabled = audit_enabled
        self._tz = _zone(tz)
        self._clock = clock or (lambda: datetime.now(self._tz))

    @property
    def memory_enabled(self) -> bool:
        return self.store is not None and self.embedder is not None

    # ---- best-effort steps ----
    def _embed(self, text: str) -> StepResult:
        try:
            vec = self.embedder.embed(text)
        except UpstreamUnavailable as e:
            logger.warning("[embed] degraded: %s", e.detail or e.operation)
            return StepResult.failure(f"embed:{e.detail or 'error'}")
        except Exception as e:
            logger.exception("[embed] unexpected failure")
            return StepResult.failure(f"embed:{type(e).__name__}")
        if not vec:
            return StepResult.failure("embed:empty_vector")
        return StepResult.success(vec)

    def _retrieve(self, embedding: List[float]) -> StepResult:
        try:
            hits = self.store.query_similar(embedding, self.top_k)
        except UpstreamUnavailable as e:
            logger.warning("[store] query_similar degraded: %s", e.detail or e.operation)
            return StepResult.failure(f"{e.operation}:{e.detail or 'error'}", [])
        except Exception as e:
            logger.exception("[store] query_similar unexpected failure")
            return StepResult.failure(f"query_similar:{type(e).__name__}", [])
        return StepResult.success(list(hits or [])[: self.top_k])

    def _persist(self, message: str, reply: str, embedding: List[float], mode: str) -> StepResult:
        memory = Memory.new(f"Usuário: {message}\nLaila: {reply}", embedding, mode=mode, source="chat")
        try:
            saved = bool(self.store.insert(memory))
        except Exception as e:
            # insert() must not raise; treat a misbehaving store as a failed insert
            logger.exception("[store] insert raised")
            return StepResult.failure(f"insert:{type(e).__name__}")
        return StepResult.success(memory.id) if saved else StepResult.failure("insert:rejected")

    def _audit(self, message: str, reply: Optional[str], mode: str) -> StepResult:
        try:
            ok = bool(self.store.log_exchange(message, reply or "", mode))
        except Exception as e:
            logger.exception("[store] log_exchange raised")
            return StepResult.failure(f"audit:{type(e).__name__}")
        return StepResult.success() if ok else StepResult.failure("audit:rejected")

    # ---- main entry ----
    def run(self, req: ChatRequest) -> ChatResult:
        msg = (req.message or "").strip() if isinstance(req.message, str) else ""
        if not msg:
            raise ValidationError("message is required")

        t_all = time.perf_counter()
        steps = {}
        pm = {}
        embedding = None
        memories: List[Memory] = []

        if self.memory_enabled:
            t0 = time.perf_counter()
            steps["embed"] = self._embed(msg)
            pm["embed_ms"] = _ms(t0)
            if steps["embed"].ok:
                embedding = steps["embed"].value
                t1 = time.perf_counter()
                steps["retrieve"] = self._retrieve(embedding)
                pm["search_ms"] = _ms(t1)
                memories = steps["retrieve"].value or []
            else:
                steps["retrieve"] = StepResult.skipped("no_embedding", [])
        else:
            steps["embed"] = StepResult.skipped("memory_disabled")
            steps["retrieve"] = StepResult.skipped("memory_disabled", [])

        prompt = compose(self.persona_template, req.mode, memories, msg, self._clock(), self.snippet_chars)

        t2 = time.perf_counter()
        try:
            payload = self.llm.complete(prompt, self.options)
        except CompletionError:
            logger.error("[llm] completion failed after %.1fms", _ms(t2))
            raise
        except Exception as e:
            logger.exception("[llm] completion raised unexpectedly")
            raise CompletionError(f"{type(e).__name__}: {e}"[:300]) from e
        pm["llm_ms"] = _ms(t2)

        reply = extract(payload)
        shape = classify(payload).value
        if reply is None:
            logger.warning("[chat] provider responded but no reply text was found (shape=%s)", shape)

        if not req.persist:
            steps["persist"] = StepResult.skipped("not_requested")
        elif not self.memory_enabled:
            steps["persist"] = StepResult.skipped("memory_disabled")
        elif embedding is None:
            steps["persist"] = StepResult.skipped("no_embedding")
        elif reply is None:
            steps["persist"] = StepResult.skipped("no_reply")
        else:
            steps["persist"] = self._persist(msg, reply, embedding, req.mode)

        if self.store is not None and self.audit_enabled:
            steps["audit"] = self._audit(msg, reply, req.mode)

        pm["total"] = _ms(t_all)
        return ChatResult(
            reply=reply,
            retrieved_count=len(memories),
            memory_saved=steps["persist"].ok,
            debug=payload if reply is None else None,
            shape=shape,
            steps=steps,
            phase_ms=pm,
        )
