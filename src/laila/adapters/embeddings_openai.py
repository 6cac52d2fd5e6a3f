# src/laila/adapters/embeddings_openai.py
import logging

import requests

from laila.core.errors import ConfigurationError, EmbeddingError

logger = logging.getLogger("laila.adapters.embed")


class OpenAIEmbedder:
    """
    One text per call against {base_url}/embeddings.
    Input is capped at `max_chars` to bound cost/latency.
    """
    def __init__(self, api_key: str, model: str = "text-embedding-3-small",
                 base_url: str = "https://api.openai.com/v1", max_chars: int = 8000,
                 timeout: float = 8.0, session: requests.Session | None = None):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        self.model = model
        self.url = f"{base_url.rstrip('/')}/embeddings"
        self.max_chars = max_chars
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_key}"})
        self.dim: int | None = None

    def embed(self, text: str) -> list[float]:
        text = (text or "")[: self.max_chars]
        if not text.strip():
            raise EmbeddingError("empty input")
        try:
            resp = self.session.post(self.url, json={"model": self.model, "input": text}, timeout=self.timeout)
        except requests.RequestException as e:
            raise EmbeddingError(f"request failed: {type(e).__name__}") from e
        if resp.status_code >= 400:
            raise EmbeddingError(f"status {resp.status_code}")
        try:
            vec = resp.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingError("malformed payload") from e
        if not isinstance(vec, list) or not vec:
            raise EmbeddingError("malformed payload")
        try:
            vec = [float(x) for x in vec]
        except (TypeError, ValueError) as e:
            raise EmbeddingError("non-numeric embedding") from e
        self.dim = len(vec)
        return vec
