# src/laila/adapters/store_supabase.py
import logging
from datetime import datetime, timezone
from typing import List

import requests

from laila.core.errors import StoreError
from laila.core.models import Memory

logger = logging.getLogger("laila.adapters.store")


class SupabaseStore:
    """
    pgvector-backed memory table behind Supabase's PostgREST API.
    Expects an RPC like:
      create function match_memories(query_embedding vector, match_count int)
      returns table (id uuid, content text, metadata jsonb, created_at timestamptz, similarity float)
    """

    def __init__(self, url: str, service_key: str, table: str = "memories",
                 match_function: str = "match_memories", audit_table: str = "conversations",
                 timeout: float = 8.0, session: requests.Session | None = None):
        self.base = f"{url.rstrip('/')}/rest/v1"
        self.table = table
        self.match_function = match_function
        self.audit_table = audit_table
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        })

    def query_similar(self, embedding: List[float], top_k: int = 4) -> List[Memory]:
        url = f"{self.base}/rpc/{self.match_function}"
        try:
            resp = self.session.post(
                url, json={"query_embedding": list(embedding), "match_count": int(top_k)}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise StoreError("query_similar", f"request failed: {type(e).__name__}") from e
        if resp.status_code >= 400:
            raise StoreError("query_similar", f"status {resp.status_code}")
        try:
            rows = resp.json()
        except ValueError as e:
            raise StoreError("query_similar", "non-JSON body") from e
        if not isinstance(rows, list):
            raise StoreError("query_similar", "unexpected payload")
        hits = [Memory.from_row(r) for r in rows if isinstance(r, dict)]
        # the RPC already orders by similarity; keep that unless scores say otherwise
        if all(h.score is not None for h in hits):
            hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:top_k]

    def _insert_row(self, table: str, row: dict, op: str) -> bool:
        try:
            resp = self.session.post(
                f"{self.base}/{table}",
                json=row,
                headers={"Prefer": "return=minimal,resolution=ignore-duplicates"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("[store] %s failed: %s", op, type(e).__name__)
            return False
        if resp.status_code >= 400:
            logger.warning("[store] %s rejected: status=%s", op, resp.status_code)
            return False
        return True

    def insert(self, memory: Memory) -> bool:
        return self._insert_row(self.table, memory.to_row(), "insert")

    def log_exchange(self, user_message: str, reply: str, mode: str) -> bool:
        if not self.audit_table:
            return False
        row = {
            "user_message": user_message,
            "reply": reply,
            "mode": mode,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        return self._insert_row(self.audit_table, row, "log_exchange")
