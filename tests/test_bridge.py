"""Tests for the async bridge to the semantic worker."""
import asyncio
import threading
import time

import pytest

from spelite.bridge import SearchResult, SemanticBridge, SemanticWorkerError
from spelite.embeddings import EmbeddingCache, EmbeddingStore
from spelite.worker import MessageType, WorkerMessage

from conftest import FakeEncoder

DOCS = [
    "Fireball: A bright streak flashes from your pointing finger.",
    "Counterspell: You attempt to interrupt a creature.",
    "Cure Wounds: A creature you touch regains hit points.",
]


@pytest.fixture
def make_bridge(config):
    bridges = []

    def _make(encoder=None, cache=None, factory=None):
        encoder = encoder or FakeEncoder()
        bridge = SemanticBridge(config, cache, encoder_factory=factory or (lambda name: encoder))
        bridges.append(bridge)
        return bridge

    yield _make
    for b in bridges:
        b.close()


class TestInitModel:
    def test_ready(self, make_bridge):
        bridge = make_bridge()
        assert asyncio.run(bridge.init_model()) is True
        assert bridge.ready

    def test_idempotent(self, make_bridge):
        loads = []
        encoder = FakeEncoder()

        def factory(name):
            loads.append(name)
            return encoder

        bridge = make_bridge(factory=factory)

        async def run():
            await bridge.init_model()
            await bridge.init_model()

        asyncio.run(run())
        assert len(loads) == 1

    def test_progress_callback(self, make_bridge):
        bridge = make_bridge()
        events = []
        bridge.set_progress_callback(events.append)
        asyncio.run(bridge.init_model())
        statuses = [e["status"] for e in events]
        assert statuses[0] == "downloading"
        assert statuses[-1] == "ready"
        downloading = [e for e in events if e["status"] == "downloading"]
        assert [e["progress"] for e in downloading] == [0, 100]

    def test_failing_callback_does_not_break_request(self, make_bridge):
        bridge = make_bridge()

        def boom(payload):
            raise RuntimeError("ui gone")

        bridge.set_progress_callback(boom)
        assert asyncio.run(bridge.init_model()) is True

    def test_load_failure_raises(self, make_bridge):
        def broken(name):
            raise OSError("model not found")

        bridge = make_bridge(factory=broken)
        with pytest.raises(SemanticWorkerError, match="model not found"):
            asyncio.run(bridge.init_model())
        assert not bridge.ready


class TestSearch:
    def test_results(self, make_bridge):
        bridge = make_bridge()
        results = asyncio.run(bridge.search("fire", DOCS))
        assert all(isinstance(r, SearchResult) for r in results)
        assert sorted(r.index for r in results) == [0, 1, 2]
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_exact_match_scores_one(self, make_bridge):
        encoder = FakeEncoder(aliases={"fireball please": DOCS[0]})
        bridge = make_bridge(encoder=encoder)
        results = asyncio.run(bridge.search("fireball please", DOCS))
        assert results[0].index == 0
        assert results[0].score == pytest.approx(1.0, abs=1e-5)

    def test_cache_idempotence(self, make_bridge, tmp_path):
        store = EmbeddingStore(str(tmp_path / "vectors"), "bridge_test", "fake-model")
        cache = EmbeddingCache(store)
        encoder = FakeEncoder()
        bridge = make_bridge(encoder=encoder, cache=cache)

        async def run():
            first = await bridge.search("fire", DOCS)
            second = await bridge.search("fire", DOCS)
            return first, second

        first, second = asyncio.run(run())
        assert [(r.index, r.score) for r in first] == [(r.index, r.score) for r in second]
        for doc in DOCS:
            assert encoder.encoded_texts.count(doc) == 1

        cache.flush()
        assert store.count_embeddings() == len(DOCS)

    def test_reuses_persisted_vectors_across_instances(self, make_bridge, tmp_path):
        path = str(tmp_path / "vectors")
        first_cache = EmbeddingCache(EmbeddingStore(path, "bridge_test", "fake-model"))
        asyncio.run(make_bridge(cache=first_cache).index_documents(DOCS))
        first_cache.flush()

        encoder = FakeEncoder()
        second = make_bridge(encoder=encoder, cache=EmbeddingCache(EmbeddingStore(path, "bridge_test", "fake-model")))
        asyncio.run(second.search("fire", DOCS))
        assert encoder.encoded_texts == ["fire"]

    def test_concurrent_searches_do_not_cross_resolve(self, make_bridge):
        bridge = make_bridge()

        async def run():
            return await asyncio.gather(
                bridge.search("fire", DOCS),
                bridge.search("heal", DOCS[:2]),
                bridge.search("stop", DOCS[:1]),
            )

        a, b, c = asyncio.run(run())
        assert len(a) == 3
        assert len(b) == 2
        assert len(c) == 1
        assert bridge.pending_count == 0

    def test_worker_error_raises(self, make_bridge):
        class Broken(FakeEncoder):
            def encode(self, texts, **kwargs):
                raise RuntimeError("encoder crashed")

        bridge = make_bridge(encoder=Broken())
        with pytest.raises(SemanticWorkerError, match="encoder crashed"):
            asyncio.run(bridge.search("fire", DOCS))
        assert bridge.pending_count == 0


class TestIndexDocuments:
    def test_indexing_progress(self, make_bridge):
        bridge = make_bridge()
        events = []
        bridge.set_progress_callback(events.append)
        indexed = asyncio.run(bridge.index_documents(DOCS + DOCS))
        assert indexed == len(DOCS)
        indexing = [e for e in events if e["status"] == "indexing"]
        assert indexing[-1]["progress"] == 100
        assert bridge.ready


class TestRouting:
    def test_unknown_id_is_discarded(self, make_bridge, caplog):
        bridge = make_bridge()
        bridge._post_from_worker(WorkerMessage("does-not-exist", MessageType.SUCCESS, {"results": []}))
        assert "unknown request id" in caplog.text
        assert bridge.pending_count == 0

    def test_timeout(self, config, make_bridge):
        release = threading.Event()
        encoder = FakeEncoder()

        def slow_factory(name):
            release.wait(5)
            return encoder

        config.semantic_timeout = 0.2
        bridge = make_bridge(factory=slow_factory)
        start = time.monotonic()
        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(bridge.init_model())
        assert time.monotonic() - start < 3
        assert bridge.pending_count == 0
        release.set()
