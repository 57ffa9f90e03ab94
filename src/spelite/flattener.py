# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Nested domain records (JSON-LD @graph entries) -> flat triplets.

Each known property is tagged with a PropertyKind:
- SCALAR:     one triplet, booleans stored as 0/1
- ARRAY:      one triplet per element, same predicate
- LOCALIZED:  {"en": ..., "fr": ...} -> one language-tagged triplet per non-null value
- PARAGRAPHS: {"en": [...], "fr": [...]} -> paragraphs joined with "\\n" per language
- NESTED:     mechanics object, area_of_effect recursed one level deeper
"""
from enum import Enum
from typing import Any, Iterable

from .store import Triplet, to_storage

PREDICATE_PREFIX = "dnd:"
PARAGRAPH_SEPARATOR = "\n"


class PropertyKind(Enum):
    SCALAR = "scalar"
    ARRAY = "array"
    LOCALIZED = "localized"
    PARAGRAPHS = "paragraphs"
    NESTED = "nested"


RECORD_SCHEMA: dict[str, PropertyKind] = {
    "index": PropertyKind.SCALAR,
    "level": PropertyKind.SCALAR,
    "school": PropertyKind.SCALAR,
    "ritual": PropertyKind.SCALAR,
    "concentration": PropertyKind.SCALAR,
    "hit_die": PropertyKind.SCALAR,
    "spellcasting_ability": PropertyKind.SCALAR,
    "components": PropertyKind.ARRAY,
    "classes": PropertyKind.ARRAY,
    "name": PropertyKind.LOCALIZED,
    "range": PropertyKind.LOCALIZED,
    "duration": PropertyKind.LOCALIZED,
    "casting_time": PropertyKind.LOCALIZED,
    "material": PropertyKind.LOCALIZED,
    "desc": PropertyKind.PARAGRAPHS,
    "mechanics": PropertyKind.NESTED,
}

# Mechanics properties that are themselves objects; everything else is scalar.
NESTED_MECHANICS = frozenset({"area_of_effect"})

LOCALIZED_PREDICATES = frozenset(
    PREDICATE_PREFIX + prop
    for prop, kind in RECORD_SCHEMA.items()
    if kind in (PropertyKind.LOCALIZED, PropertyKind.PARAGRAPHS)
)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _flatten_scalar(subject: str, prop: str, value: Any) -> list[Triplet]:
    if not _is_scalar(value):
        return []
    return [Triplet(subject, PREDICATE_PREFIX + prop, to_storage(value))]


def _flatten_array(subject: str, prop: str, value: Any) -> list[Triplet]:
    if not isinstance(value, list):
        return []
    return [
        Triplet(subject, PREDICATE_PREFIX + prop, to_storage(item))
        for item in value
        if _is_scalar(item)
    ]


def _flatten_localized(subject: str, prop: str, value: Any) -> list[Triplet]:
    if not isinstance(value, dict):
        return []
    return [
        Triplet(subject, PREDICATE_PREFIX + prop, to_storage(text), lang)
        for lang, text in value.items()
        if text is not None and _is_scalar(text)
    ]


def _flatten_paragraphs(subject: str, prop: str, value: Any) -> list[Triplet]:
    if not isinstance(value, dict):
        return []
    return [
        Triplet(subject, PREDICATE_PREFIX + prop, PARAGRAPH_SEPARATOR.join(paragraphs), lang)
        for lang, paragraphs in value.items()
        if isinstance(paragraphs, list)
    ]


def _flatten_mechanics(subject: str, prop: str, value: Any) -> list[Triplet]:
    if not isinstance(value, dict):
        return []
    triplets = []
    for key, item in value.items():
        if item is None:
            continue
        if key in NESTED_MECHANICS:
            if isinstance(item, dict):
                triplets.extend(
                    Triplet(subject, f"{PREDICATE_PREFIX}{key}_{sub}", to_storage(sub_value))
                    for sub, sub_value in item.items()
                    if sub_value is not None and _is_scalar(sub_value)
                )
        elif _is_scalar(item):
            triplets.append(Triplet(subject, PREDICATE_PREFIX + key, to_storage(item)))
    return triplets


_FLATTENERS = {
    PropertyKind.SCALAR: _flatten_scalar,
    PropertyKind.ARRAY: _flatten_array,
    PropertyKind.LOCALIZED: _flatten_localized,
    PropertyKind.PARAGRAPHS: _flatten_paragraphs,
    PropertyKind.NESTED: _flatten_mechanics,
}


def flatten_record(record: dict) -> list[Triplet]:
    """Flatten one @graph entry. Records without an @id produce no triplets."""
    subject = record.get("@id")
    if not subject:
        return []

    triplets: list[Triplet] = []
    for prop, kind in RECORD_SCHEMA.items():
        value = record.get(prop)
        if value is None:
            continue
        triplets.extend(_FLATTENERS[kind](subject, prop, value))
    return triplets


def flatten_graph(graph: Iterable[dict]) -> list[Triplet]:
    triplets: list[Triplet] = []
    for record in graph:
        if isinstance(record, dict):
            triplets.extend(flatten_record(record))
    return triplets


def flatten_document(document: dict) -> list[Triplet]:
    """Flatten a JSON-LD document holding an @graph array."""
    graph = document.get("@graph") if isinstance(document, dict) else None
    if not isinstance(graph, list):
        raise ValueError("Source document has no @graph array")
    return flatten_graph(graph)
