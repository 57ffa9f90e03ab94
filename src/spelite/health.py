# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Centralized health/status tracker – shared across initializer, semantic
warm-up and the MCP tools. Thread-safe, no external dependencies.
"""
import threading
from datetime import datetime, timezone
from typing import Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthTracker:
    def __init__(self):
        self._lock = threading.Lock()
        self._data = {
            "last_init_at": None,
            "last_init_ok": False,
            "last_init_loaded": False,
            "last_init_triplets": 0,
            "last_init_error": None,
            "ontology_version": None,

            "model_status": "idle",
            "model_name": None,
            "model_error": None,

            "indexing_complete": False,
            "indexing_progress": 0,
            "indexed_documents": 0,
            "last_index_at": None,

            "started_at": _now(),

            "searches_total": 0,
            "searches_hits": 0,
            "searches_misses": 0,
            "searches_by_mode": {
                "structured": 0,
                "semantic": 0,
            },
            "semantic_failures": 0,
            "last_semantic_error": None,
            "last_search_at": None,
        }

    def record_init(self, ok: bool, loaded: bool = False, triplets: int = 0,
                    version: Optional[str] = None, error: Optional[str] = None):
        with self._lock:
            self._data["last_init_at"] = _now()
            self._data["last_init_ok"] = ok
            self._data["last_init_loaded"] = loaded
            self._data["last_init_triplets"] = triplets
            self._data["last_init_error"] = error
            if version is not None:
                self._data["ontology_version"] = version

    def record_model(self, status: str, model: Optional[str] = None, error: Optional[str] = None):
        """status: idle | downloading | ready | error"""
        with self._lock:
            self._data["model_status"] = status
            if model:
                self._data["model_name"] = model
            self._data["model_error"] = error

    def record_indexing(self, progress: int, complete: bool = False, documents: int = 0):
        with self._lock:
            self._data["indexing_progress"] = progress
            if complete:
                self._data["indexing_complete"] = True
                self._data["indexed_documents"] = documents
                self._data["last_index_at"] = _now()

    def record_progress(self, payload: dict):
        """Progress callback for the semantic bridge."""
        status = payload.get("status")
        if status == "downloading":
            self.record_model("downloading", payload.get("model"))
        elif status == "ready":
            self.record_model("ready", payload.get("model"))
        elif status == "indexing":
            with self._lock:
                self._data["indexing_progress"] = payload.get("progress", 0)

    def record_search(self, mode: str, hit: bool):
        with self._lock:
            self._data["searches_total"] += 1
            if hit:
                self._data["searches_hits"] += 1
            else:
                self._data["searches_misses"] += 1
            by_mode = self._data["searches_by_mode"]
            if mode in by_mode:
                by_mode[mode] += 1
            self._data["last_search_at"] = _now()

    def record_semantic_failure(self, error: str):
        with self._lock:
            self._data["semantic_failures"] += 1
            self._data["last_semantic_error"] = error

    @property
    def model_ready(self) -> bool:
        with self._lock:
            return self._data["model_status"] == "ready"

    @property
    def indexing_complete(self) -> bool:
        with self._lock:
            return self._data["indexing_complete"]

    @property
    def status(self) -> dict:
        with self._lock:
            data = dict(self._data)
            data["searches_by_mode"] = dict(self._data["searches_by_mode"])
            return data

    @property
    def is_healthy(self) -> bool:
        with self._lock:
            return self._data["last_init_ok"]
