# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Ontology repository: triplets -> localized entities, plus structured search.

Structured search is a set intersection over cheap (predicate, object)
index lookups. Free text only filters the reduced candidate set by
accent/case-insensitive substring match on the localized name.
"""
from dataclasses import asdict, dataclass, field
from typing import Optional, Union

from .flattener import PARAGRAPH_SEPARATOR
from .query_parser import SearchFilters, SearchQuery
from .store import ObjectValue, Triplet, TripletStore, from_storage
from .text import name_matches, normalize_text, sort_key

DEFAULT_LANGUAGE = "en"
INDEX_PREDICATE = "dnd:index"

# filter dimension -> predicate holding the value
FILTER_PREDICATES = {
    "level": "dnd:level",
    "class_": "dnd:classes",
    "school": "dnd:school",
    "damage_type": "dnd:damage_type",
    "save_ability": "dnd:save_ability",
    "ritual": "dnd:ritual",
    "concentration": "dnd:concentration",
    "has_save": "dnd:has_save",
    "has_attack": "dnd:has_attack_roll",
    "area_of_effect_type": "dnd:area_of_effect_type",
}

# action_type filter value -> English casting time prefix
ACTION_TYPE_CASTING_TIMES = {
    "action": "1 action",
    "bonus_action": "1 bonus action",
    "reaction": "1 reaction",
}


@dataclass
class AreaOfEffect:
    type: str
    value: Optional[float] = None
    unit: Optional[str] = None


@dataclass
class Mechanics:
    has_attack_roll: bool = False
    has_save: bool = False
    attack_type: Optional[str] = None
    save_ability: Optional[str] = None
    damage_type: Optional[str] = None
    damage_dice: Optional[str] = None
    area_of_effect: Optional[AreaOfEffect] = None
    higher_levels: Optional[bool] = None


@dataclass
class Spell:
    index: str
    name: str
    level: Optional[int] = None
    school: Optional[str] = None
    desc: list[str] = field(default_factory=list)
    range: Optional[str] = None
    duration: Optional[str] = None
    casting_time: Optional[str] = None
    material: Optional[str] = None
    components: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    ritual: bool = False
    concentration: bool = False
    mechanics: Optional[Mechanics] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CharacterClass:
    index: str
    name: str
    hit_die: Optional[int] = None
    spellcasting_ability: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Race:
    index: str
    name: str

    def to_dict(self) -> dict:
        return asdict(self)


Entity = Union[Spell, CharacterClass, Race]


class _SubjectView:
    """Read helpers over the triplets of one subject."""

    def __init__(self, triplets: list[Triplet], lang: str):
        self.triplets = triplets
        self.lang = lang

    def single(self, predicate: str) -> Optional[ObjectValue]:
        for t in self.triplets:
            if t.predicate == predicate:
                return from_storage(predicate, t.object)
        return None

    def many(self, predicate: str) -> list[ObjectValue]:
        return [from_storage(predicate, t.object) for t in self.triplets if t.predicate == predicate]

    def flag(self, predicate: str) -> bool:
        return bool(self.single(predicate))

    def localized(self, predicate: str) -> Optional[str]:
        """Requested language, then English/untagged, then any variant."""
        variants = [t for t in self.triplets if t.predicate == predicate]
        for t in variants:
            if t.language == self.lang:
                return t.object
        for t in variants:
            if t.language in (DEFAULT_LANGUAGE, None):
                return t.object
        return variants[0].object if variants else None

    def has(self, predicate: str) -> bool:
        return any(t.predicate == predicate for t in self.triplets)


def _build_mechanics(view: _SubjectView) -> Optional[Mechanics]:
    mechanics_predicates = (
        "dnd:has_attack_roll", "dnd:has_save", "dnd:attack_type", "dnd:save_ability",
        "dnd:damage_type", "dnd:damage_dice", "dnd:area_of_effect_type", "dnd:higher_levels",
    )
    if not any(view.has(p) for p in mechanics_predicates):
        return None

    area = None
    if view.has("dnd:area_of_effect_type"):
        area = AreaOfEffect(
            type=view.single("dnd:area_of_effect_type"),
            value=view.single("dnd:area_of_effect_value"),
            unit=view.single("dnd:area_of_effect_unit"),
        )
    return Mechanics(
        has_attack_roll=view.flag("dnd:has_attack_roll"),
        has_save=view.flag("dnd:has_save"),
        attack_type=view.single("dnd:attack_type"),
        save_ability=view.single("dnd:save_ability"),
        damage_type=view.single("dnd:damage_type"),
        damage_dice=view.single("dnd:damage_dice"),
        area_of_effect=area,
        higher_levels=view.single("dnd:higher_levels"),
    )


def _build_spell(view: _SubjectView) -> Spell:
    desc = view.localized("dnd:desc")
    return Spell(
        index=view.single(INDEX_PREDICATE),
        name=view.localized("dnd:name") or "",
        level=view.single("dnd:level"),
        school=view.single("dnd:school"),
        desc=desc.split(PARAGRAPH_SEPARATOR) if desc else [],
        range=view.localized("dnd:range"),
        duration=view.localized("dnd:duration"),
        casting_time=view.localized("dnd:casting_time"),
        material=view.localized("dnd:material"),
        components=view.many("dnd:components"),
        classes=view.many("dnd:classes"),
        ritual=view.flag("dnd:ritual"),
        concentration=view.flag("dnd:concentration"),
        mechanics=_build_mechanics(view),
    )


def _build_class(view: _SubjectView) -> CharacterClass:
    return CharacterClass(
        index=view.single(INDEX_PREDICATE),
        name=view.localized("dnd:name") or "",
        hit_die=view.single("dnd:hit_die"),
        spellcasting_ability=view.single("dnd:spellcasting_ability"),
    )


def _build_race(view: _SubjectView) -> Race:
    return Race(index=view.single(INDEX_PREDICATE), name=view.localized("dnd:name") or "")


_BUILDERS = {
    "spells": _build_spell,
    "classes": _build_class,
    "races": _build_race,
}


def _namespace_of(subject: str) -> str:
    return subject.split(":", 1)[0] if ":" in subject else ""


class OntologyRepository:
    """Localized entity access for one namespace of the triplet store.

    namespace=None spans every indexed subject regardless of its prefix.
    """

    def __init__(self, store: TripletStore, namespace: Optional[str] = "spells"):
        self.store = store
        self.namespace = namespace

    def _in_namespace(self, subject: str) -> bool:
        return self.namespace is None or _namespace_of(subject) == self.namespace

    def _indexed_subjects(self) -> list[str]:
        seen: dict[str, None] = {}
        for t in self.store.find_by_predicate(INDEX_PREDICATE):
            if self._in_namespace(t.subject):
                seen.setdefault(t.subject, None)
        return list(seen)

    # ── Reconstruction ───────────────────────────────────

    def reconstruct(self, subject: str, lang: str = DEFAULT_LANGUAGE) -> Entity:
        view = _SubjectView(self.store.find_by_subject(subject), lang)
        builder = _BUILDERS.get(_namespace_of(subject))
        if builder is None:
            builder = _build_class if view.has("dnd:hit_die") else _build_spell
        return builder(view)

    def get_all(self, lang: str = DEFAULT_LANGUAGE) -> list[Entity]:
        entities = [self.reconstruct(s, lang) for s in self._indexed_subjects()]
        entities.sort(key=lambda e: sort_key(e.name))
        return entities

    def get_by_id(self, index: str, lang: str = DEFAULT_LANGUAGE) -> Optional[Entity]:
        for t in self.store.find_by_predicate_object(INDEX_PREDICATE, index):
            if self._in_namespace(t.subject):
                return self.reconstruct(t.subject, lang)
        return None

    # ── Structured search ────────────────────────────────

    def _subjects_for(self, predicate: str, values) -> set[str]:
        subjects: set[str] = set()
        for value in values:
            subjects.update(t.subject for t in self.store.find_by_predicate_object(predicate, value))
        return subjects

    def _subjects_for_action_types(self, action_types: list[str]) -> set[str]:
        prefixes = [
            ACTION_TYPE_CASTING_TIMES.get(a, a.replace("_", " "))
            for a in action_types
        ]
        return {
            t.subject
            for t in self.store.find_by_predicate("dnd:casting_time")
            if t.language in (DEFAULT_LANGUAGE, None)
            and isinstance(t.object, str)
            and any(normalize_text(t.object).startswith(p) for p in prefixes)
        }

    def _filter_dimensions(self, filters: SearchFilters) -> list[set[str]]:
        dimensions: list[set[str]] = []
        for attr, predicate in FILTER_PREDICATES.items():
            value = getattr(filters, attr)
            if value is None:
                continue
            if isinstance(value, list):
                if not value:
                    continue
                dimensions.append(self._subjects_for(predicate, value))
            else:
                dimensions.append(self._subjects_for(predicate, [value]))
        if filters.action_type:
            dimensions.append(self._subjects_for_action_types(filters.action_type))
        return dimensions

    def search(self, query: SearchQuery, lang: str = DEFAULT_LANGUAGE) -> list[Entity]:
        indexed = self._indexed_subjects()
        dimensions = self._filter_dimensions(query.filters)
        if dimensions:
            matching = set.intersection(*dimensions)
            candidates = [s for s in indexed if s in matching]
        else:
            candidates = indexed

        entities = [self.reconstruct(s, lang) for s in candidates]

        text = (query.text or "").strip()
        if text:
            entities = [e for e in entities if name_matches(text, e.name)]

        entities.sort(key=lambda e: sort_key(e.name))
        return entities


def class_repository(store: TripletStore) -> OntologyRepository:
    return OntologyRepository(store, namespace="classes")


def race_repository(store: TripletStore) -> OntologyRepository:
    return OntologyRepository(store, namespace="races")
