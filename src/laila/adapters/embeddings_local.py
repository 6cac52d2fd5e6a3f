from typing import List

from laila.core.errors import EmbeddingError


class LocalEmbedder:
    """sentence-transformers model for offline/dev deployments (pairs with MEMORY_BACKEND=local)."""

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2", max_chars: int = 8000):
        from sentence_transformers import SentenceTransformer
        self.model = SentenceTransformer(model_name)
        self.max_chars = max_chars
        self.dim = int(self.model.get_sentence_embedding_dimension())

    def embed(self, text: str) -> List[float]:
        text = (text or "")[: self.max_chars]
        if not text.strip():
            raise EmbeddingError("empty input")
        try:
            vec = self.model.encode([text], normalize_embeddings=True, convert_to_numpy=True)[0]
        except Exception as e:
            raise EmbeddingError(f"local model failed: {type(e).__name__}") from e
        return [float(x) for x in vec]
