# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
MCP Server factory – creates a FastMCP instance with tools
that share the store/engine from the main process.

Tools:
  - search_spells: Structured + hybrid semantic spell search (EN/FR)
  - get_spell: Full spell card by index
  - list_classes: Character classes
  - list_races: Playable races
  - get_status: Store, embedding and search statistics
  - export_ontology: Dump the knowledge base as JSON-LD or RDF/XML
  - clear_embeddings: Drop cached embeddings (re-indexed on demand)
  - reload_ontology: Reset the store and reload the source data
"""
import asyncio
from typing import Optional

from mcp.server.fastmcp import FastMCP

from . import __version__
from .admin import clear_embeddings as clear_embedding_cache
from .admin import get_stats
from .config import Config
from .embeddings import EmbeddingStore
from .engine import SearchEngine, SearchParams
from .exporter import OntologyExporter
from .health import HealthTracker
from .initializer import InitializationError, initialize_database
from .repository import Spell, class_repository, race_repository
from .sorting import sort_spells
from .store import TripletStore

MAX_LIMIT = 100


def format_spell_line(spell: Spell) -> str:
    level = "cantrip" if spell.level == 0 else f"level {spell.level}"
    tags = [t for t in (spell.school, level) if t]
    if spell.ritual:
        tags.append("ritual")
    if spell.concentration:
        tags.append("concentration")
    return f"- **{spell.name}** (`{spell.index}`) – {', '.join(tags)}"


def format_spell_card(spell: Spell) -> str:
    lines = [f"## {spell.name}", ""]
    level = "Cantrip" if spell.level == 0 else f"Level {spell.level}"
    lines.append(f"*{level} {spell.school or ''}*".rstrip())
    lines.append("")
    for label, value in (
        ("Casting time", spell.casting_time),
        ("Range", spell.range),
        ("Duration", spell.duration),
        ("Components", ", ".join(spell.components)),
        ("Material", spell.material),
        ("Classes", ", ".join(spell.classes)),
    ):
        if value:
            lines.append(f"- **{label}:** {value}")
    if spell.ritual:
        lines.append("- **Ritual:** yes")
    if spell.concentration:
        lines.append("- **Concentration:** yes")

    m = spell.mechanics
    if m is not None:
        if m.has_attack_roll:
            lines.append(f"- **Attack:** {m.attack_type or 'yes'}")
        if m.has_save:
            lines.append(f"- **Save:** {m.save_ability or 'yes'}")
        if m.damage_dice or m.damage_type:
            lines.append(f"- **Damage:** {' '.join(p for p in (m.damage_dice, m.damage_type) if p)}")
        if m.area_of_effect:
            a = m.area_of_effect
            size = f"{a.value:g} {a.unit or ''}".strip() if a.value is not None else ""
            lines.append(f"- **Area:** {a.type} {size}".rstrip())

    if spell.desc:
        lines.append("")
        lines.extend(spell.desc)
    return "\n".join(lines)


def create_mcp_server(
    config: Config,
    store: TripletStore,
    engine: SearchEngine,
    health: Optional[HealthTracker] = None,
    embeddings: Optional[EmbeddingStore] = None,
) -> FastMCP:
    """Factory: returns a configured FastMCP server sharing the store and engine."""

    mcp = FastMCP(
        "spelite",
        instructions=(
            "Bilingual (English/French) spell knowledge base.\n\n"
            "WORKFLOW for the agent:\n"
            "1. search_spells() with free text; filters such as level, class,\n"
            "   school or damage type may be written inline ('wizard level 3 feu')\n"
            "2. get_spell() with the index from the results for the full card\n"
            "3. list_classes() / list_races() for valid class and race names\n"
            "4. Set language='fr' for French names and descriptions"
        ),
    )

    classes = class_repository(store)
    races = race_repository(store)

    def _semantic_state() -> tuple[bool, bool]:
        bridge = engine.bridge
        if bridge is None:
            return False, False
        if health is not None:
            return health.model_ready or bridge.ready, health.indexing_complete
        return bridge.ready, bridge.ready

    @mcp.tool()
    async def search_spells(
        query: str = "",
        level: str = "all",
        spell_class: str = "all",
        school: str = "all",
        damage_type: str = "all",
        save_ability: str = "all",
        action_type: str = "all",
        area_of_effect: str = "all",
        language: str = "",
        semantic: bool = True,
        sort_by: str = "",
        limit: int = 20,
    ) -> str:
        """Search spells by free text and/or filters.

        Free text is parsed for filters in English and French
        ("niveau 3 magicien", "fire save dex", "not concentration").
        Remaining words match spell names and, once the embedding model is
        ready, rank spells by meaning.

        Args:
            query: Free text (may contain inline filters)
            level: Spell level 0-9 or "all"
            spell_class: Class index (e.g. "wizard") or "all"
            school: School index (e.g. "evocation") or "all"
            damage_type: Damage type (e.g. "fire") or "all"
            save_ability: Saving throw ability (str|dex|con|int|wis|cha) or "all"
            action_type: "action", "bonus_action", "reaction" or "all"
            area_of_effect: Area shape (e.g. "sphere", "cone") or "all"
            language: "en" or "fr" (default: configured language)
            semantic: Use embedding ranking when available (default: True)
            sort_by: "" (relevance), "name", "level", "range" or "duration"
            limit: Maximum number of results (default: 20)
        """
        model_ready, indexing_complete = _semantic_state()
        params = SearchParams(
            search_term=query,
            filters={
                "level": level,
                "class": spell_class,
                "school": school,
                "damage_type": damage_type,
                "save_ability": save_ability,
                "action_type": action_type,
                "area_of_effect_type": area_of_effect,
            },
            ai_search_enabled=semantic,
            model_ready=model_ready,
            indexing_complete=indexing_complete,
            language=language or config.default_language,
        )
        try:
            results = await engine.search(params)
        except ValueError as e:
            return f"Invalid search: {e}"

        if sort_by:
            try:
                results = sort_spells(results, sort_by)
            except ValueError as e:
                return f"Error: {e}"

        if not results:
            return "No spells found. Try fewer filters or a different wording."

        limit = max(1, min(limit, MAX_LIMIT))
        shown = results[:limit]
        header = f"Found {len(results)} spells"
        if len(results) > limit:
            header += f" (showing {limit})"
        return header + "\n\n" + "\n".join(format_spell_line(s) for s in shown)

    @mcp.tool()
    async def get_spell(index: str, language: str = "") -> str:
        """Full spell card by index (e.g. "fireball").

        Args:
            index: Spell index as returned by search_spells
            language: "en" or "fr" (default: configured language)
        """
        spell = await asyncio.to_thread(
            engine.repository.get_by_id, index, language or config.default_language,
        )
        if spell is None:
            return f"Spell '{index}' not found."
        return format_spell_card(spell)

    @mcp.tool()
    def list_classes(language: str = "") -> str:
        """List character classes with hit die and spellcasting ability."""
        items = classes.get_all(language or config.default_language)
        if not items:
            return "No classes loaded."
        lines = []
        for c in items:
            extra = [f"d{c.hit_die}" if c.hit_die else None, c.spellcasting_ability]
            detail = ", ".join(e for e in extra if e)
            lines.append(f"- **{c.name}** (`{c.index}`)" + (f" – {detail}" if detail else ""))
        return "\n".join(lines)

    @mcp.tool()
    def list_races(language: str = "") -> str:
        """List playable races."""
        items = races.get_all(language or config.default_language)
        if not items:
            return "No races loaded."
        return "\n".join(f"- **{r.name}** (`{r.index}`)" for r in items)

    @mcp.tool()
    def get_status() -> str:
        """Show knowledge base, embedding model and search statistics."""
        stats = get_stats(store, embeddings)
        lines = [
            f"**Spelite {__version__} Status**",
            "",
            f"- **Data version:** {stats['data_version']}",
            f"- **Triplets:** {stats['triplets_count']}",
            f"- **Embeddings (persisted):** {stats['embeddings_count']}",
            f"- **Storage:** {stats['storage_usage']} bytes",
            f"- **Embedding model:** {config.embedding_model}",
            f"- **Hybrid mode:** {config.hybrid_mode}",
        ]
        if health is not None:
            s = health.status
            lines += [
                f"- **Model status:** {s['model_status']}",
                f"- **Indexing:** {'complete' if s['indexing_complete'] else str(s['indexing_progress']) + '%'}",
                f"- **Searches:** {s['searches_total']} "
                f"({s['searches_by_mode']['semantic']} semantic, "
                f"{s['searches_by_mode']['structured']} structured, "
                f"{s['searches_misses']} empty)",
                f"- **Semantic fallbacks:** {s['semantic_failures']}",
            ]
            if s["last_semantic_error"]:
                lines.append(f"- **Last semantic error:** {s['last_semantic_error']}")
        return "\n".join(lines)

    @mcp.tool()
    def export_ontology(format: str = "jsonld") -> str:
        """Export every triplet of the knowledge base.

        Args:
            format: "jsonld" (default) or "rdfxml"
        """
        try:
            return OntologyExporter(store).export(format)
        except ValueError as e:
            return f"Error: {e}"

    @mcp.tool()
    def clear_embeddings() -> str:
        """Drop all cached embeddings. They are recomputed on the next semantic search."""
        if engine.bridge is None:
            return "Semantic search is disabled; nothing to clear."
        clear_embedding_cache(engine.bridge.cache)
        return "Embeddings cleared."

    @mcp.tool()
    def reload_ontology() -> str:
        """Reload the source ontology files, keeping the current data if they fail to load."""
        try:
            result = initialize_database(store, config, force=True)
        except InitializationError as e:
            if health:
                health.record_init(False, error=str(e))
            return f"Error: {e}"
        if health:
            health.record_init(True, loaded=result.loaded, triplets=result.triplets, version=result.version)
        return f"Reloaded {result.triplets} triplets (version {result.version})."

    return mcp
