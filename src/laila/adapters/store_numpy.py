# src/laila/adapters/store_numpy.py
import os, json, logging, threading
from datetime import datetime, timezone
from typing import List

import numpy as np

from laila.core.errors import StoreError
from laila.core.models import Memory

logger = logging.getLogger("laila.adapters.store")


class NumpyStore:
    """
    File-backed memory store for local/offline deployments.
    Layout under `root`:
      - vectors.npy : float32 [N, D], L2-normalized rows
      - meta.jsonl  : N lines, one Memory row (without embedding) per vector
      - audit.jsonl : one exchange per line
    """

    def __init__(self, root: str):
        self.root = root
        self.index_path = os.path.join(root, "vectors.npy")
        self.meta_path  = os.path.join(root, "meta.jsonl")
        self.audit_path = os.path.join(root, "audit.jsonl")
        self.vecs: np.ndarray | None = None   # [N, D]
        self.meta: list[dict] = []
        self.dim:  int | None = None
        self._lock = threading.Lock()
        self._loaded = False

    @staticmethod
    def _normalize(vecs: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(vecs, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return vecs / norms

    def _load_local(self):
        if self._loaded:
            return
        if not os.path.isfile(self.index_path) or not os.path.isfile(self.meta_path):
            # empty store is valid; the first insert creates both files
            self.vecs, self.meta, self.dim = None, [], None
            self._loaded = True
            return

        vecs = np.load(self.index_path)
        if vecs.dtype != np.float32:
            vecs = vecs.astype(np.float32, copy=False)
        if vecs.ndim != 2:
            raise ValueError(f"vectors.npy must be 2-D, got shape={vecs.shape}")

        meta = []
        with open(self.meta_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    meta.append({})
                    continue
                try:
                    meta.append(json.loads(line))
                except ValueError:
                    meta.append({})

        if vecs.shape[0] != len(meta):
            raise ValueError(f"count mismatch: vectors={vecs.shape[0]} meta_lines={len(meta)}")

        self.vecs = self._normalize(vecs)
        self.meta = meta
        self.dim  = int(vecs.shape[1])
        self._loaded = True
        logger.info("[store] loaded local memories: N=%d D=%d", vecs.shape[0], self.dim)

    def size(self) -> int:
        return 0 if self.vecs is None else int(self.vecs.shape[0])

    def query_similar(self, embedding: List[float], top_k: int = 4) -> List[Memory]:
        """Cosine similarity over the stored rows, best first."""
        try:
            self._load_local()
        except (OSError, ValueError) as e:
            raise StoreError("query_similar", f"load failed: {e}") from e
        if self.vecs is None or self.size() == 0 or top_k <= 0:
            return []

        q = np.asarray(embedding, dtype=np.float32)
        n = np.linalg.norm(q)
        if n == 0:
            return []
        q = q / n
        if self.vecs.shape[1] != q.shape[0]:
            raise StoreError("query_similar", f"dim mismatch: index_dim={self.vecs.shape[1]} query_dim={q.shape[0]}")

        sims = self.vecs @ q
        k = min(top_k, self.vecs.shape[0])
        # partial sort for top-k
        idx = np.argpartition(-sims, k - 1)[:k]
        idx = idx[np.argsort(-sims[idx])]

        out = []
        for i in idx:
            row = dict(self.meta[i])
            row["score"] = float(sims[i])
            out.append(Memory.from_row(row))
        return out

    def _write_both(self, V: np.ndarray, meta_line: str):
        """
        Stage vectors.npy and meta.jsonl side by side, then swap them in.
        A failure before the swap leaves the previous pair untouched.
        """
        idx_tmp = self.index_path + ".tmp"
        meta_tmp = self.meta_path + ".tmp"
        try:
            with open(idx_tmp, "wb") as f:
                np.save(f, V)
            with open(meta_tmp, "w", encoding="utf-8") as f:
                if os.path.isfile(self.meta_path):
                    with open(self.meta_path, "r", encoding="utf-8") as src:
                        prev = src.read()
                    if prev and not prev.endswith("\n"):
                        prev += "\n"
                    f.write(prev)
                f.write(meta_line)
            os.replace(idx_tmp, self.index_path)
            os.replace(meta_tmp, self.meta_path)
        finally:
            for p in (idx_tmp, meta_tmp):
                if os.path.exists(p):
                    os.remove(p)

    def insert(self, memory: Memory) -> bool:
        try:
            with self._lock:
                self._load_local()
                if any(m.get("id") == memory.id for m in self.meta):
                    return True
                vec = np.asarray([memory.embedding], dtype=np.float32)
                if vec.ndim != 2 or vec.shape[1] == 0:
                    logger.warning("[store] insert skipped: empty embedding")
                    return False
                if self.dim is not None and vec.shape[1] != self.dim:
                    logger.warning("[store] insert skipped: dim mismatch %d != %d", vec.shape[1], self.dim)
                    return False
                vec = self._normalize(vec)
                V = vec if self.vecs is None else np.vstack([self.vecs, vec])

                os.makedirs(self.root, exist_ok=True)
                row = memory.to_row()
                row.pop("embedding", None)
                self._write_both(V, json.dumps(row, ensure_ascii=False) + "\n")

                self.vecs = V
                self.meta.append(row)
                self.dim = int(V.shape[1])
            return True
        except (OSError, ValueError) as e:
            logger.warning("[store] insert failed: %s", type(e).__name__)
            return False

    def log_exchange(self, user_message: str, reply: str, mode: str) -> bool:
        row = {
            "user_message": user_message,
            "reply": reply,
            "mode": mode,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            os.makedirs(self.root, exist_ok=True)
            with open(self.audit_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(row, ensure_ascii=False) + "\n")
            return True
        except OSError as e:
            logger.warning("[store] log_exchange failed: %s", type(e).__name__)
            return False
