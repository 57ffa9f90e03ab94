# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Versioned bulk load of the source ontology into the triplet store.

The store is (re)loaded only when its version marker differs from
config.ontology_version, or when it is empty. The marker is removed before
the store is cleared and written only after the load succeeded, so an
interrupted load is retried on the next start.
"""
import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .flattener import flatten_document
from .store import Triplet, TripletStore

logger = logging.getLogger(__name__)

VERSION_KEY = "ontology_version"

REQUIRED_SOURCES = ("spells.json",)
OPTIONAL_SOURCES = ("classes.json", "races.json")


class InitializationError(RuntimeError):
    """The source ontology could not be read or loaded."""


@dataclass
class InitResult:
    loaded: bool
    triplets: int
    version: str


def _read_source(path: Path) -> list[Triplet]:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
        return flatten_document(document)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        raise InitializationError(f"Failed to read {path.name}: {e}") from e


def load_source_graphs(data_path: str) -> list[Triplet]:
    """Flatten spells.json (required) plus classes.json and races.json (optional)."""
    root = Path(data_path)
    triplets: list[Triplet] = []

    for name in REQUIRED_SOURCES:
        path = root / name
        if not path.is_file():
            raise InitializationError(f"Missing required source file: {path}")
        triplets.extend(_read_source(path))

    for name in OPTIONAL_SOURCES:
        path = root / name
        if not path.is_file():
            logger.warning("Optional source file not found, skipping: %s", path)
            continue
        triplets.extend(_read_source(path))

    return triplets


def is_initialized(store: TripletStore, version: str) -> bool:
    return store.get_meta(VERSION_KEY) == version and store.count_triplets() > 0


def initialize_database(store: TripletStore, config: Config, force: bool = False) -> InitResult:
    version = config.ontology_version

    if not force and is_initialized(store, version):
        logger.info("Triplet store already initialized with version %s", version)
        return InitResult(loaded=False, triplets=store.count_triplets(), version=version)

    logger.info("Loading ontology %s from %s", version, config.data_path)
    triplets = load_source_graphs(config.data_path)

    try:
        store.delete_meta(VERSION_KEY)
        store.clear()
        count = store.bulk_load(triplets)
        store.set_meta(VERSION_KEY, version)
    except (sqlite3.Error, TypeError) as e:
        raise InitializationError(f"Bulk load failed: {e}") from e

    logger.info("Ingested %d triplets (version %s)", count, version)
    return InitResult(loaded=True, triplets=count, version=version)
