# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Search orchestration: parse -> merge UI filters -> structured search ->
optional semantic re-rank.

Hybrid ranking ("blend", default):
    score = lexical_weight * lexical + semantic_weight * semantic
where lexical is 1.0 when every query token is a substring of the
normalized name, else 0.0, and semantic is the cosine similarity returned
by the bridge. With 0.7 / 0.3 an exact name match always beats a
semantic-only match.

"threshold" keeps candidates scoring >= max(min_score, best * relative)
or matching lexically, in semantic order.

Semantic ranking is optional: any failure falls back to the structured
result.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from .bridge import SearchResult, SemanticBridge
from .config import Config
from .health import HealthTracker
from .query_parser import SearchFilters, SearchQuery, parse_query
from .repository import OntologyRepository, Spell
from .text import name_matches

logger = logging.getLogger(__name__)

ALL = "all"

# UI filter key -> SearchFilters attribute
UI_FILTER_FIELDS = {
    "level": "level",
    "class": "class_",
    "school": "school",
    "damage_type": "damage_type",
    "save_ability": "save_ability",
    "action_type": "action_type",
    "area_of_effect_type": "area_of_effect_type",
}


@dataclass
class SearchParams:
    search_term: str = ""
    filters: dict[str, str] = field(default_factory=dict)
    ai_search_enabled: bool = False
    model_ready: bool = False
    indexing_complete: bool = False
    language: str = "en"


def merge_ui_filters(filters: SearchFilters, ui_filters: dict) -> SearchFilters:
    """Union explicit UI selections into parsed filters; "all" or empty means inactive."""
    for key, value in (ui_filters or {}).items():
        attr = UI_FILTER_FIELDS.get(key)
        if attr is None or value is None or value == "" or value == ALL:
            continue
        if attr == "level":
            value = int(value)
        target = getattr(filters, attr)
        if value not in target:
            target.append(value)
    return filters


def lexical_score(text: str, name: str) -> float:
    return 1.0 if name_matches(text, name) else 0.0


def spell_document(spell: Spell, paragraphs: int = 10) -> str:
    """Text embedded for a candidate: "Name: first paragraphs of the description"."""
    return f"{spell.name}: {' '.join(spell.desc[:paragraphs])}"


def hybrid_rank(
    candidates: list[Spell],
    semantic_results: list[SearchResult],
    text: str,
    lexical_weight: float = 0.7,
    semantic_weight: float = 0.3,
) -> list[tuple[Spell, float]]:
    semantic = {r.index: r.score for r in semantic_results}
    scored = [
        (
            spell,
            lexical_weight * lexical_score(text, spell.name)
            + semantic_weight * semantic.get(i, 0.0),
        )
        for i, spell in enumerate(candidates)
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


def threshold_rank(
    candidates: list[Spell],
    semantic_results: list[SearchResult],
    text: str,
    min_score: float = 0.25,
    relative_score: float = 0.6,
) -> list[Spell]:
    if not semantic_results:
        return []
    best = max(r.score for r in semantic_results)
    threshold = max(min_score, best * relative_score)
    ordered = sorted(semantic_results, key=lambda r: r.score, reverse=True)
    return [
        candidates[r.index]
        for r in ordered
        if 0 <= r.index < len(candidates)
        and (r.score >= threshold or name_matches(text, candidates[r.index].name))
    ]


class SearchEngine:
    def __init__(
        self,
        repository: OntologyRepository,
        bridge: Optional[SemanticBridge] = None,
        config: Optional[Config] = None,
        health: Optional[HealthTracker] = None,
    ):
        self.repository = repository
        self.bridge = bridge
        self.config = config or Config()
        self.health = health

    async def _structured(self, query: SearchQuery, lang: str) -> list[Spell]:
        return await asyncio.to_thread(self.repository.search, query, lang)

    async def _semantic(self, query: SearchQuery, text: str, lang: str) -> list[Spell]:
        metadata_query = replace(query, text="")
        candidates = await self._structured(metadata_query, lang)
        if not candidates:
            return []

        documents = [spell_document(s, self.config.desc_snippet_paragraphs) for s in candidates]
        results = await self.bridge.search(text, documents)

        if self.config.hybrid_mode == "threshold":
            return threshold_rank(
                candidates, results, text,
                self.config.semantic_min_score, self.config.semantic_relative_score,
            )
        ranked = hybrid_rank(
            candidates, results, text,
            self.config.lexical_weight, self.config.semantic_weight,
        )
        return [spell for spell, _ in ranked]

    async def search(self, params: SearchParams) -> list[Spell]:
        query = parse_query(params.search_term)
        merge_ui_filters(query.filters, params.filters)
        text = query.text.strip()

        use_semantic = (
            params.ai_search_enabled
            and bool(text)
            and params.model_ready
            and params.indexing_complete
            and self.bridge is not None
        )

        if use_semantic:
            try:
                results = await self._semantic(query, text, params.language)
                if self.health:
                    self.health.record_search("semantic", bool(results))
                return results
            except Exception as e:
                logger.warning("Semantic search failed, falling back to structured search: %s", e)
                if self.health:
                    self.health.record_semantic_failure(str(e))

        results = await self._structured(query, params.language)
        if self.health:
            self.health.record_search("structured", bool(results))
        return results


class SearchSession:
    """Debounced, latest-wins search for interactive callers (search-as-you-type).

    Every submit() takes a sequence number. A submission superseded during
    its debounce delay never runs, and a result that arrives after a newer
    submission was issued is dropped, so `results` always reflects the most
    recent request.
    """

    def __init__(self, engine: SearchEngine, debounce: Optional[float] = None):
        self.engine = engine
        self.debounce = engine.config.search_debounce if debounce is None else debounce
        self.results: list[Spell] = []
        self._seq = 0

    @property
    def latest_sequence(self) -> int:
        return self._seq

    async def submit(self, params: SearchParams) -> Optional[list[Spell]]:
        self._seq += 1
        seq = self._seq
        if self.debounce > 0:
            await asyncio.sleep(self.debounce)
            if seq != self._seq:
                return None

        results = await self.engine.search(params)
        if seq != self._seq:
            logger.debug("Discarding stale search #%d (latest is #%d)", seq, self._seq)
            return None
        self.results = results
        return results
