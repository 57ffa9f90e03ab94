# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Semantic worker – sentence embeddings off the caller's thread.

Runs as a background daemon thread with its own inbox queue. The only way
out is the `post_message` callable: every request gets exactly one
terminal SUCCESS or ERROR message, plus any number of PROGRESS messages.

Requests:
  INIT     load the embedding model once            -> {"ready": True}
  SEARCH   rank documents against a query           -> {"results": [{index, score, text}]}
  INDEX    pre-compute document embeddings          -> {"indexed": n, "computed": k}
  SHUTDOWN stop the thread (no reply)

Vectors are L2-normalized here regardless of what the encoder returns, so
cosine similarity is a dot product for cached and fresh vectors alike.
"""
import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from .embeddings import EmbeddingCache

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    INIT = "INIT"
    SEARCH = "SEARCH"
    INDEX = "INDEX"
    SHUTDOWN = "SHUTDOWN"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    PROGRESS = "PROGRESS"


@dataclass
class WorkerRequest:
    id: str
    type: MessageType
    payload: dict = field(default_factory=dict)


@dataclass
class WorkerMessage:
    id: Optional[str]
    type: MessageType
    payload: dict = field(default_factory=dict)


def load_sentence_transformer(model_name: str):
    """Default encoder factory (mean-pooling multilingual sentence model)."""
    from sentence_transformers import SentenceTransformer
    return SentenceTransformer(model_name)


def l2_normalize(vectors: Any) -> np.ndarray:
    arr = np.atleast_2d(np.asarray(vectors, dtype=np.float32))
    norms = np.linalg.norm(arr, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return arr / norms


class SemanticWorker:
    def __init__(
        self,
        model_name: str,
        cache: EmbeddingCache,
        post_message: Callable[[WorkerMessage], None],
        encoder_factory: Optional[Callable[[str], Any]] = None,
        batch_size: int = 32,
    ):
        self.model_name = model_name
        self.cache = cache
        self._post = post_message
        self._encoder_factory = encoder_factory or load_sentence_transformer
        self.batch_size = max(1, batch_size)
        self._model = None
        self._inbox: "queue.Queue[WorkerRequest]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def ready(self) -> bool:
        return self._model is not None

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.alive:
            return
        self._thread = threading.Thread(target=self._run, daemon=True, name="semantic-worker")
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        if not self.alive:
            return
        self._inbox.put(WorkerRequest(id="", type=MessageType.SHUTDOWN))
        self._thread.join(timeout=timeout)

    def post(self, request: WorkerRequest):
        self._inbox.put(request)

    # ── Loop ─────────────────────────────────────────────

    def _run(self):
        handlers = {
            MessageType.INIT: self._handle_init,
            MessageType.SEARCH: self._handle_search,
            MessageType.INDEX: self._handle_index,
        }
        while True:
            request = self._inbox.get()
            if request.type == MessageType.SHUTDOWN:
                break
            handler = handlers.get(request.type)
            try:
                if handler is None:
                    raise ValueError(f"Unsupported request type: {request.type}")
                result = handler(request)
                self._post(WorkerMessage(request.id, MessageType.SUCCESS, result))
            except Exception as e:
                logger.warning("Semantic worker request %s failed: %s", request.id, e)
                self._post(WorkerMessage(request.id, MessageType.ERROR, {"message": str(e)}))

    def _progress(self, request_id: str, **payload):
        self._post(WorkerMessage(request_id, MessageType.PROGRESS, payload))

    # ── Model ────────────────────────────────────────────

    def _ensure_model(self, request_id: str):
        if self._model is not None:
            return
        self._progress(request_id, status="downloading", model=self.model_name, progress=0)
        self._model = self._encoder_factory(self.model_name)
        self._progress(request_id, status="downloading", model=self.model_name, progress=100)
        self._progress(request_id, status="ready", model=self.model_name)
        logger.info("Embedding model '%s' loaded", self.model_name)

    def _encode(self, texts: list[str]) -> np.ndarray:
        raw = self._model.encode(texts, normalize_embeddings=True, convert_to_numpy=True)
        return l2_normalize(raw)

    def _embed_documents(self, request_id: str, documents: list[str]) -> tuple[dict[str, np.ndarray], int]:
        """Vectors for every document: cache hits first, then fresh encodes in batches."""
        hits, misses = self.cache.lookup(documents)
        vectors = dict(hits)
        total = len(misses)
        if total:
            fresh: dict[str, np.ndarray] = {}
            for start in range(0, total, self.batch_size):
                batch = misses[start:start + self.batch_size]
                for text, vec in zip(batch, self._encode(batch)):
                    fresh[text] = vec
                done = min(start + len(batch), total)
                self._progress(
                    request_id, status="indexing",
                    progress=round(done / total * 100), done=done, total=total,
                )
            self.cache.add(fresh)
            vectors.update(fresh)
        return vectors, total

    # ── Handlers ─────────────────────────────────────────

    def _handle_init(self, request: WorkerRequest) -> dict:
        self._ensure_model(request.id)
        return {"ready": True, "model": self.model_name}

    def _handle_search(self, request: WorkerRequest) -> dict:
        query = request.payload.get("query")
        documents = request.payload.get("documents")
        if not isinstance(query, str) or not isinstance(documents, list):
            raise ValueError("SEARCH expects a query string and a documents list")
        self._ensure_model(request.id)
        if not documents:
            return {"results": []}

        query_vec = self._encode([query])[0]
        vectors, _ = self._embed_documents(request.id, documents)
        matrix = np.stack([vectors[d] for d in documents])
        scores = np.clip(matrix @ query_vec, -1.0, 1.0)

        order = np.argsort(-scores, kind="stable")
        results = [
            {"index": int(i), "score": float(scores[i]), "text": documents[i]}
            for i in order
        ]
        return {"results": results}

    def _handle_index(self, request: WorkerRequest) -> dict:
        documents = request.payload.get("documents")
        if not isinstance(documents, list):
            raise ValueError("INDEX expects a documents list")
        self._ensure_model(request.id)
        _, computed = self._embed_documents(request.id, documents)
        if not computed:
            self._progress(request.id, status="indexing", progress=100, done=0, total=0)
        return {"indexed": len(set(documents)), "computed": computed}
