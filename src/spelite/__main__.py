# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Unified entry point: python -m spelite

Loads the ontology into the triplet store, warms up the embedding model in
a background thread and serves the MCP tools in the main thread.
"""
import asyncio
import logging
import sys
import threading

import uvicorn

from .bridge import SemanticBridge
from .config import Config
from .embeddings import EmbeddingCache, EmbeddingStore
from .engine import SearchEngine, spell_document
from .health import HealthTracker
from .initializer import InitializationError, initialize_database
from .repository import OntologyRepository
from .server import create_mcp_server
from .store import TripletStore

logger = logging.getLogger("spelite")

INDEXED_LANGUAGES = ("en", "fr")


def _run_mcp_sse(mcp_server, host: str, port: int):
    """Run MCP server via SSE, compatible with both old and new mcp SDK versions."""
    try:
        sse_app = mcp_server.sse_app()
    except AttributeError:
        mcp_server.settings.host = host
        mcp_server.settings.port = port
        mcp_server.run(transport="sse")
        return
    uvicorn.run(sse_app, host=host, port=port, log_level="warning")


async def warm_up(bridge: SemanticBridge, repository: OntologyRepository,
                  config: Config, health: HealthTracker) -> int:
    """Load the model, then embed every spell document in each language."""
    await bridge.init_model(timeout=config.warmup_timeout)
    health.record_model("ready", config.embedding_model)

    documents: list[str] = []
    for lang in INDEXED_LANGUAGES:
        spells = await asyncio.to_thread(repository.get_all, lang)
        documents.extend(spell_document(s, config.desc_snippet_paragraphs) for s in spells)

    indexed = await bridge.index_documents(documents, timeout=config.warmup_timeout)
    health.record_indexing(100, complete=True, documents=indexed)
    logger.info("Semantic index ready (%d documents)", indexed)
    return indexed


def _warm_up_in_background(bridge, repository, config, health) -> threading.Thread:
    def run():
        try:
            asyncio.run(warm_up(bridge, repository, config, health))
        except Exception as e:
            logger.warning("Semantic warm-up failed, structured search only: %s", e)
            health.record_model("error", config.embedding_model, error=str(e))

    thread = threading.Thread(target=run, daemon=True, name="semantic-warmup")
    thread.start()
    return thread


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = Config.load()
    health = HealthTracker()

    store = TripletStore(config.store_path)
    logger.info("Initializing triplet store %s ...", config.store_path)
    try:
        result = initialize_database(store, config)
        health.record_init(True, loaded=result.loaded, triplets=result.triplets, version=result.version)
    except InitializationError as e:
        logger.error("Ontology initialization failed: %s", e)
        health.record_init(False, error=str(e))
        store.close()
        sys.exit(1)

    embeddings = EmbeddingStore(
        config.vectorstore_path, config.embeddings_collection, config.embedding_model,
    )
    bridge = SemanticBridge(config, EmbeddingCache(embeddings))
    bridge.set_progress_callback(health.record_progress)

    repository = OntologyRepository(store)
    engine = SearchEngine(repository, bridge, config, health)

    if config.warmup_on_start:
        _warm_up_in_background(bridge, repository, config, health)

    mcp_server = create_mcp_server(config, store, engine, health, embeddings)

    logger.info("MCP server starting (%s transport)...", config.transport)
    try:
        if config.transport == "sse":
            _run_mcp_sse(mcp_server, "0.0.0.0", config.sse_port)
        else:
            mcp_server.run(transport="stdio")
    finally:
        bridge.close()
        store.close()


if __name__ == "__main__":
    main()
