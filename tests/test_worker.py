"""Tests for the semantic worker thread and its message protocol."""
import queue

import numpy as np
import pytest

from spelite.embeddings import EmbeddingCache
from spelite.worker import MessageType, SemanticWorker, WorkerRequest, l2_normalize


@pytest.fixture
def worker_env(encoder):
    outbox: "queue.Queue" = queue.Queue()
    cache = EmbeddingCache()
    worker = SemanticWorker("fake-model", cache, outbox.put, encoder_factory=lambda name: encoder, batch_size=2)
    worker.start()
    yield worker, outbox, cache
    worker.stop()
    cache.close()


def _collect(outbox, request_id, timeout=5.0):
    """Messages for one request up to and including its terminal reply."""
    messages = []
    while True:
        msg = outbox.get(timeout=timeout)
        assert msg.id == request_id
        messages.append(msg)
        if msg.type in (MessageType.SUCCESS, MessageType.ERROR):
            return messages


class TestNormalize:
    def test_unit_length(self):
        out = l2_normalize([[3.0, 4.0], [0.0, 0.0]])
        np.testing.assert_allclose(out[0], [0.6, 0.8], rtol=1e-6)
        np.testing.assert_allclose(out[1], [0.0, 0.0])


class TestWorker:
    def test_init_reports_progress_then_success(self, worker_env):
        worker, outbox, _ = worker_env
        worker.post(WorkerRequest("r1", MessageType.INIT))
        messages = _collect(outbox, "r1")
        statuses = [m.payload.get("status") for m in messages if m.type == MessageType.PROGRESS]
        assert statuses == ["downloading", "downloading", "ready"]
        assert messages[-1].type == MessageType.SUCCESS
        assert messages[-1].payload["ready"] is True
        assert worker.ready

    def test_model_loaded_once(self, encoder):
        loads = []

        def factory(name):
            loads.append(name)
            return encoder

        outbox = queue.Queue()
        worker = SemanticWorker("fake-model", EmbeddingCache(), outbox.put, encoder_factory=factory)
        worker.start()
        for rid in ("a", "b"):
            worker.post(WorkerRequest(rid, MessageType.INIT))
            _collect(outbox, rid)
        worker.stop()
        assert loads == ["fake-model"]

    def test_search_sorted_descending_and_bounded(self, worker_env):
        worker, outbox, _ = worker_env
        docs = ["Fireball: boom", "Counterspell: no", "Cure Wounds: heal"]
        worker.post(WorkerRequest("s1", MessageType.SEARCH, {"query": "fire", "documents": docs}))
        reply = _collect(outbox, "s1")[-1]
        assert reply.type == MessageType.SUCCESS
        results = reply.payload["results"]
        scores = [r["score"] for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(-1.0 <= s <= 1.0 for s in scores)
        assert sorted(r["index"] for r in results) == [0, 1, 2]
        assert all(docs[r["index"]] == r["text"] for r in results)

    def test_search_empty_documents(self, worker_env):
        worker, outbox, _ = worker_env
        worker.post(WorkerRequest("s2", MessageType.SEARCH, {"query": "fire", "documents": []}))
        assert _collect(outbox, "s2")[-1].payload == {"results": []}

    def test_index_batches_report_progress(self, worker_env):
        worker, outbox, cache = worker_env
        docs = ["a", "b", "c"]
        worker.post(WorkerRequest("i1", MessageType.INDEX, {"documents": docs}))
        messages = _collect(outbox, "i1")
        indexing = [m.payload for m in messages if m.payload.get("status") == "indexing"]
        assert [p["done"] for p in indexing] == [2, 3]
        assert indexing[-1]["progress"] == 100
        assert messages[-1].payload == {"indexed": 3, "computed": 3}
        assert len(cache) == 3

    def test_index_skips_cached_documents(self, worker_env, encoder):
        worker, outbox, _ = worker_env
        worker.post(WorkerRequest("i1", MessageType.INDEX, {"documents": ["a", "b"]}))
        _collect(outbox, "i1")
        worker.post(WorkerRequest("i2", MessageType.INDEX, {"documents": ["a", "b"]}))
        assert _collect(outbox, "i2")[-1].payload["computed"] == 0
        assert encoder.encoded_texts.count("a") == 1

    def test_invalid_payload_is_error(self, worker_env):
        worker, outbox, _ = worker_env
        worker.post(WorkerRequest("bad", MessageType.SEARCH, {"query": 42}))
        reply = _collect(outbox, "bad")[-1]
        assert reply.type == MessageType.ERROR
        assert "SEARCH" in reply.payload["message"]

    def test_worker_survives_errors(self, worker_env):
        worker, outbox, _ = worker_env
        worker.post(WorkerRequest("bad", MessageType.INDEX, {}))
        _collect(outbox, "bad")
        worker.post(WorkerRequest("ok", MessageType.INIT))
        assert _collect(outbox, "ok")[-1].type == MessageType.SUCCESS
        assert worker.alive

    def test_model_load_failure_is_error(self):
        def broken(name):
            raise OSError("no network")

        outbox = queue.Queue()
        worker = SemanticWorker("fake-model", EmbeddingCache(), outbox.put, encoder_factory=broken)
        worker.start()
        worker.post(WorkerRequest("x", MessageType.INIT))
        reply = _collect(outbox, "x")[-1]
        worker.stop()
        assert reply.type == MessageType.ERROR
        assert "no network" in reply.payload["message"]
        assert not worker.ready

    def test_stop(self, encoder):
        worker = SemanticWorker("fake-model", EmbeddingCache(), lambda m: None, encoder_factory=lambda n: encoder)
        worker.start()
        assert worker.alive
        worker.stop()
        assert not worker.alive
