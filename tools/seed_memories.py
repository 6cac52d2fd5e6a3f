#!/usr/bin/env python3
"""Seed a local memory store (vectors.npy + meta.jsonl) for MEMORY_BACKEND=local testing.

Usage:
    python tools/seed_memories.py --out-dir /tmp/laila_memory --dim 384

Each sample memory gets a random unit vector unless --embed is passed, in which
case the configured embedder (EMBED_PROVIDER/EMBED_MODEL) is used.
"""
import argparse
import os
import numpy as np

from laila.adapters.store_numpy import NumpyStore
from laila.core.models import Memory

SAMPLES = [
    "Usuário prefere respostas curtas e diretas pela manhã.",
    "Usuário está avaliando uma proposta de emprego em outra cidade.",
    "Usuário quer retomar a rotina de corrida três vezes por semana.",
]


def seed(out_dir: str, dim: int, embed=None, samples=SAMPLES) -> NumpyStore:
    store = NumpyStore(out_dir)
    rng = np.random.default_rng(42)
    for text in samples:
        vec = embed(text) if embed else rng.normal(size=dim).astype("float32").tolist()
        store.insert(Memory.new(text, vec, source="seed"))
    return store


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--out-dir", default=os.getenv("MEMORY_DIR", "/tmp/laila_memory"), help="Output directory")
    ap.add_argument("--dim", type=int, default=384, help="Embedding dimension for random vectors")
    ap.add_argument("--embed", action="store_true", help="Use the configured embedder instead of random vectors")
    args = ap.parse_args(argv)

    embed = None
    if args.embed:
        from laila.api.app import _make_embedder, _resolve_api_key, config
        embed = _make_embedder(config, _resolve_api_key(config)).embed

    store = seed(args.out_dir, args.dim, embed=embed)
    print(f"Wrote {store.index_path} and {store.meta_path} ({store.size()} rows)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
