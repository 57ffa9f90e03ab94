# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Central configuration – configurable via:
1. Environment variables (SPELITE_ prefix)
2. .env file
3. JSON overrides in /data/config.json
"""
import json
import logging
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Literal

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("/data/config.json")


class Config(BaseSettings):
    # ── Source data ──────────────────────────────
    data_path: str = "/data/ontology"
    ontology_version: str = "20260207-v4"
    default_language: Literal["en", "fr"] = "en"

    # ── Storage ──────────────────────────────────
    store_path: str = "/data/triplets.db"
    vectorstore_path: str = "/data/vectorstore"
    embeddings_collection: str = "spell_embeddings"

    # ── Embeddings ───────────────────────────────
    embedding_model: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
    embedding_batch_size: int = 32
    semantic_timeout: float = 30.0
    warmup_timeout: float = 0.0
    warmup_on_start: bool = True

    # ── Hybrid ranking ───────────────────────────
    hybrid_mode: Literal["blend", "threshold"] = "blend"
    lexical_weight: float = 0.7
    semantic_weight: float = 0.3
    semantic_min_score: float = 0.25
    semantic_relative_score: float = 0.6
    desc_snippet_paragraphs: int = 10
    search_debounce_ms: int = 300

    # ── Server / Transport ───────────────────────
    transport: Literal["stdio", "sse"] = "stdio"
    sse_port: int = 8081

    class Config:
        env_prefix = "SPELITE_"
        env_file = ".env"

    @classmethod
    def load(cls) -> "Config":
        """Load config: ENV -> .env -> config.json overrides."""
        config = cls()

        if CONFIG_FILE.exists():
            try:
                overrides = json.loads(CONFIG_FILE.read_text())
                for key, value in overrides.items():
                    if hasattr(config, key) and value != "":
                        setattr(config, key, value)
            except Exception as e:
                logger.warning("Config file error: %s", e)

        return config

    @property
    def search_debounce(self) -> float:
        return self.search_debounce_ms / 1000.0

