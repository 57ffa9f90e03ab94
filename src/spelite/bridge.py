# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Async request/response bridge to the semantic worker thread.

Each call gets a unique request id and a future in the pending map. Worker
messages are demultiplexed by id and resolved on the event loop that
issued the request, so concurrent calls never cross-resolve. PROGRESS
messages go to the registered progress callback instead.
"""
import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .config import Config
from .embeddings import EmbeddingCache
from .worker import MessageType, SemanticWorker, WorkerMessage, WorkerRequest

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict], None]


class SemanticWorkerError(RuntimeError):
    """The worker answered a request with ERROR."""


@dataclass
class SearchResult:
    index: int
    score: float
    text: str


class SemanticBridge:
    def __init__(
        self,
        config: Config,
        cache: Optional[EmbeddingCache] = None,
        encoder_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.config = config
        self.cache = cache if cache is not None else EmbeddingCache()
        self._encoder_factory = encoder_factory
        self._worker: Optional[SemanticWorker] = None
        self._worker_lock = threading.Lock()
        self._pending: dict[str, asyncio.Future] = {}
        self._pending_lock = threading.Lock()
        self._progress_callback: Optional[ProgressCallback] = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def set_progress_callback(self, callback: Optional[ProgressCallback]):
        self._progress_callback = callback

    # ── Worker plumbing ──────────────────────────────────

    def _ensure_worker(self) -> SemanticWorker:
        with self._worker_lock:
            if self._worker is None or not self._worker.alive:
                self._worker = SemanticWorker(
                    self.config.embedding_model,
                    self.cache,
                    self._post_from_worker,
                    encoder_factory=self._encoder_factory,
                    batch_size=self.config.embedding_batch_size,
                )
                self._worker.start()
            return self._worker

    def _post_from_worker(self, message: WorkerMessage):
        """Called on the worker thread."""
        with self._pending_lock:
            future = self._pending.get(message.id) if message.id else None
        if future is None:
            self._dispatch(None, message)
            return
        loop = future.get_loop()
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(self._dispatch, future, message)

    def _dispatch(self, future: Optional[asyncio.Future], message: WorkerMessage):
        if message.type == MessageType.PROGRESS:
            self._emit_progress(message.payload)
            return

        if future is None:
            logger.warning("Discarding %s message for unknown request id %r", message.type, message.id)
            return

        with self._pending_lock:
            self._pending.pop(message.id, None)
        if future.done():
            return

        if message.type == MessageType.SUCCESS:
            future.set_result(message.payload)
        elif message.type == MessageType.ERROR:
            future.set_exception(SemanticWorkerError(message.payload.get("message", "unknown worker error")))
        else:
            future.set_exception(SemanticWorkerError(f"Malformed worker message type: {message.type}"))

    def _emit_progress(self, payload: dict):
        callback = self._progress_callback
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as e:
            logger.warning("Progress callback failed: %s", e)

    async def _request(self, request_type: MessageType, payload: Optional[dict] = None,
                       timeout: Optional[float] = None) -> dict:
        worker = self._ensure_worker()
        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        with self._pending_lock:
            self._pending[request_id] = future
        worker.post(WorkerRequest(request_id, request_type, payload or {}))
        if timeout is None:
            timeout = self.config.semantic_timeout
        try:
            return await asyncio.wait_for(future, timeout=timeout or None)
        finally:
            with self._pending_lock:
                self._pending.pop(request_id, None)

    # ── Public API ───────────────────────────────────────

    async def init_model(self, timeout: Optional[float] = None) -> bool:
        """Load the embedding model once; later calls return immediately.

        timeout overrides config.semantic_timeout (0 waits forever).
        """
        if self._ready:
            return True
        result = await self._request(MessageType.INIT, timeout=timeout)
        self._ready = bool(result.get("ready"))
        return self._ready

    async def search(self, query: str, documents: list[str]) -> list[SearchResult]:
        """Cosine similarity of `query` against every document, best first."""
        result = await self._request(MessageType.SEARCH, {"query": query, "documents": list(documents)})
        self._ready = True
        return [
            SearchResult(index=int(r["index"]), score=float(r["score"]), text=r["text"])
            for r in result.get("results", [])
        ]

    async def index_documents(self, documents: list[str], timeout: Optional[float] = None) -> int:
        """Pre-compute embeddings so later searches only hit the cache."""
        result = await self._request(MessageType.INDEX, {"documents": list(documents)}, timeout=timeout)
        self._ready = True
        return int(result.get("indexed", 0))

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def close(self):
        with self._worker_lock:
            worker, self._worker = self._worker, None
        if worker is not None:
            worker.stop()
        self.cache.close()
        self._ready = False
