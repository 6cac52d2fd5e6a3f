from datetime import datetime
from typing import Any, Dict, List

from laila.core.errors import EmbeddingError, StoreError
from laila.core.models import CompletionOptions, Memory
from laila.core.pipeline import ChatPipeline

FIXED_NOW = datetime(2026, 10, 17, 14, 30)


class FakeLLM:
    def __init__(self, payload: Any = None, error: Exception | None = None):
        self.payload = payload if payload is not None else {"output_text": "ok"}
        self.error = error
        self.calls: List[Any] = []

    def complete(self, prompt, options):
        self.calls.append((prompt, options))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeEmbedder:
    def __init__(self, fail: bool = False, dim: int = 3):
        self.fail = fail
        self.dim = dim
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("status 503")
        return [float(len(text))] + [1.0] * (self.dim - 1)


class FakeStore:
    def __init__(self, hits: List[Memory] | None = None, query_fails: bool = False,
                 insert_ok: bool = True, insert_raises: bool = False):
        self.hits = hits or []
        self.query_fails = query_fails
        self.insert_ok = insert_ok
        self.insert_raises = insert_raises
        self.queries: List[Any] = []
        self.inserted: List[Memory] = []
        self.audit: List[Dict[str, Any]] = []

    def query_similar(self, embedding, top_k=4):
        self.queries.append((list(embedding), top_k))
        if self.query_fails:
            raise StoreError("query_similar", "status 500")
        return list(self.hits)

    def insert(self, memory):
        if self.insert_raises:
            raise RuntimeError("boom")
        if self.insert_ok:
            self.inserted.append(memory)
        return self.insert_ok

    def log_exchange(self, user_message, reply, mode):
        self.audit.append({"user_message": user_message, "reply": reply, "mode": mode})
        return True


def make_pipeline(llm=None, embedder=None, store=None, **kw) -> ChatPipeline:
    return ChatPipeline(
        llm=llm or FakeLLM(),
        options=CompletionOptions(model="test-model", max_tokens=700, temperature=0.6),
        embedder=embedder,
        store=store,
        clock=lambda: FIXED_NOW,
        **kw,
    )
