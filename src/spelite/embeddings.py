# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Embedding cache: exact text -> unit vector.

Two tiers, owned by one worker instance:
- memory dict (per EmbeddingCache instance, never module-global)
- ChromaDB collection (persistent across sessions, append-only)

New vectors are written to ChromaDB on a background executor so a search
never waits on persistence.
"""
import hashlib
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Optional

import chromadb
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "spell_embeddings"
BATCH_SIZE = 5000


def _text_id(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()[:32]


class EmbeddingStore:
    """Persistent text -> vector table backed by a ChromaDB collection."""

    def __init__(self, path: str, collection_name: str = DEFAULT_COLLECTION,
                 model_name: str = ""):
        self.path = path
        self.model_name = model_name
        self._collection_name = collection_name
        self.chroma = chromadb.PersistentClient(path=path)
        self._heal_model_mismatch()
        self.collection = self._open_collection()

    def _open_collection(self):
        return self.chroma.get_or_create_collection(
            self._collection_name,
            embedding_function=None,
            metadata={"hnsw:space": "cosine", "embedding_model": self.model_name or "unknown"},
        )

    def _heal_model_mismatch(self):
        """Drop vectors computed by a different embedding model.

        The collection is a derived cache: every entry can be recomputed
        from its text, so recreating it is always safe."""
        try:
            existing = self.chroma.get_collection(self._collection_name, embedding_function=None)
        except Exception:
            return  # not created yet
        stored_model = (existing.metadata or {}).get("embedding_model")
        if not self.model_name or stored_model in (None, self.model_name):
            return
        logger.warning(
            "Embedding model changed (%s -> %s), recreating collection '%s'",
            stored_model, self.model_name, self._collection_name,
        )
        self.chroma.delete_collection(self._collection_name)

    def get_embedding(self, text: str) -> Optional[list[float]]:
        return self.get_embeddings([text]).get(text)

    def get_embeddings(self, texts: Iterable[str]) -> dict[str, list[float]]:
        wanted = {_text_id(t): t for t in texts}
        if not wanted:
            return {}
        found: dict[str, list[float]] = {}
        ids = list(wanted)
        for i in range(0, len(ids), BATCH_SIZE):
            result = self.collection.get(ids=ids[i:i + BATCH_SIZE], include=["embeddings"])
            embs = result.get("embeddings")
            if embs is None:
                continue
            for cid, emb in zip(result["ids"], embs):
                if emb is not None and len(emb) > 0:
                    found[wanted[cid]] = [float(x) for x in emb]
        return found

    def put_embeddings(self, entries: dict[str, list[float]]) -> int:
        """Add entries whose text is not stored yet. Existing entries are never rewritten."""
        if not entries:
            return 0
        by_id = {_text_id(text): text for text in entries}
        existing = set(self.collection.get(ids=list(by_id), include=[])["ids"])
        new_ids = [cid for cid in by_id if cid not in existing]
        for i in range(0, len(new_ids), BATCH_SIZE):
            batch = new_ids[i:i + BATCH_SIZE]
            self.collection.add(
                ids=batch,
                documents=[by_id[cid] for cid in batch],
                embeddings=[[float(x) for x in entries[by_id[cid]]] for cid in batch],
            )
        return len(new_ids)

    def count_embeddings(self) -> int:
        return self.collection.count()

    def clear_embeddings(self):
        try:
            self.chroma.delete_collection(self._collection_name)
        except Exception:
            pass
        self.collection = self._open_collection()


class EmbeddingCache:
    """Memory-first cache with optional persistent second tier."""

    def __init__(self, store: Optional[EmbeddingStore] = None):
        self.store = store
        self._memory: dict[str, np.ndarray] = {}
        self._lock = threading.Lock()
        self._pending: list[Future] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embedding-persist")

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)

    def __contains__(self, text: str) -> bool:
        with self._lock:
            return text in self._memory

    def lookup(self, texts: Iterable[str]) -> tuple[dict[str, np.ndarray], list[str]]:
        """Return (hits, misses). Misses are unique and keep first-seen order."""
        hits: dict[str, np.ndarray] = {}
        remaining: list[str] = []
        with self._lock:
            for text in texts:
                if text in hits or text in remaining:
                    continue
                vec = self._memory.get(text)
                if vec is not None:
                    hits[text] = vec
                else:
                    remaining.append(text)

        if remaining and self.store is not None:
            try:
                stored = self.store.get_embeddings(remaining)
            except Exception as e:
                logger.warning("Persistent embedding lookup failed: %s", e)
                stored = {}
            if stored:
                with self._lock:
                    for text, vec in stored.items():
                        arr = np.asarray(vec, dtype=np.float32)
                        self._memory[text] = arr
                        hits[text] = arr
                remaining = [t for t in remaining if t not in stored]

        return hits, remaining

    def add(self, entries: dict[str, np.ndarray]):
        """Keep new vectors in memory and persist them in the background."""
        fresh: dict[str, np.ndarray] = {}
        with self._lock:
            for text, vec in entries.items():
                if text not in self._memory:
                    arr = np.asarray(vec, dtype=np.float32)
                    self._memory[text] = arr
                    fresh[text] = arr
        if fresh and self.store is not None:
            payload = {text: arr.tolist() for text, arr in fresh.items()}
            future = self._executor.submit(self.store.put_embeddings, payload)
            future.add_done_callback(self._on_persisted)
            with self._lock:
                self._pending = [f for f in self._pending if not f.done()]
                self._pending.append(future)

    @staticmethod
    def _on_persisted(future: Future):
        exc = future.exception()
        if exc is not None:
            logger.warning("Failed to persist embeddings: %s", exc)

    def flush(self, timeout: Optional[float] = None):
        """Block until queued persistence writes have finished."""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            try:
                future.result(timeout=timeout)
            except Exception:
                pass  # already logged by _on_persisted
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]

    def clear(self):
        self.flush()
        with self._lock:
            self._memory.clear()
        if self.store is not None:
            self.store.clear_embeddings()

    def close(self):
        self.flush()
        self._executor.shutdown(wait=True)
