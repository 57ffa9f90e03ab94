# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""Maintenance helpers: statistics, clearing embeddings, resetting the store."""
import logging
import os
from pathlib import Path
from typing import Optional

from .embeddings import EmbeddingCache, EmbeddingStore
from .initializer import VERSION_KEY
from .store import TripletStore

logger = logging.getLogger(__name__)


def _disk_usage(path: str) -> int:
    p = Path(path)
    if not p.exists():
        return 0
    if p.is_file():
        return p.stat().st_size
    total = 0
    for dirpath, _, filenames in os.walk(p):
        for name in filenames:
            try:
                total += (Path(dirpath) / name).stat().st_size
            except OSError:
                continue
    return total


def get_stats(store: TripletStore, embeddings: Optional[EmbeddingStore] = None) -> dict:
    """Triplet/embedding counts, data version and approximate on-disk size.

    Never raises: counts are -1 and data_version is "error" when a backend
    cannot be read.
    """
    try:
        stats = {
            "triplets_count": store.count_triplets(),
            "embeddings_count": embeddings.count_embeddings() if embeddings else 0,
            "data_version": store.get_meta(VERSION_KEY) or "unknown",
            "storage_usage": 0,
        }
        if store.path != ":memory:":
            stats["storage_usage"] += _disk_usage(store.path)
        if embeddings is not None:
            stats["storage_usage"] += _disk_usage(embeddings.path)
        return stats
    except Exception as e:
        logger.error("Failed to get stats: %s", e)
        return {
            "triplets_count": -1,
            "embeddings_count": -1,
            "data_version": "error",
            "storage_usage": 0,
        }


def clear_embeddings(cache: EmbeddingCache):
    """Drop every cached vector (memory and persistent). Triplets are untouched."""
    logger.info("Clearing embeddings")
    cache.clear()


def reset_store(store: TripletStore):
    """Remove all triplets and the version marker; the next start reloads."""
    logger.warning("Resetting triplet store %s", store.path)
    store.delete_meta(VERSION_KEY)
    store.clear()
