from typing import Any, Dict, List, Protocol

from laila.core.models import ComposedPrompt, CompletionOptions, Memory


class IEmbedder(Protocol):
    def embed(self, text: str) -> List[float]: ...


class IMemoryStore(Protocol):
    def query_similar(self, embedding: List[float], top_k: int = 4) -> List[Memory]: ...
    def insert(self, memory: Memory) -> bool: ...
    def log_exchange(self, user_message: str, reply: str, mode: str) -> bool: ...


class ILLM(Protocol):
    def complete(self, prompt: ComposedPrompt, options: CompletionOptions) -> Dict[str, Any]: ...
