# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Free text -> structured filters + residual text.

    parse_query("wizard level 3 boule")
    -> SearchQuery(text="boule", filters=SearchFilters(level=[3], class_=["wizard"]))

Tokens are looked up in the bilingual LEXICON; anything unknown is kept,
in order, as free text for the name/semantic match.
"""
import re
from dataclasses import dataclass, field
from typing import Optional

from .lexicon import LEVEL_PLACEHOLDER, LEXICON, TokenType
from .text import normalize_text, split_query_tokens


@dataclass
class SearchFilters:
    level: list[int] = field(default_factory=list)
    school: list[str] = field(default_factory=list)
    class_: list[str] = field(default_factory=list)
    damage_type: list[str] = field(default_factory=list)
    save_ability: list[str] = field(default_factory=list)
    action_type: list[str] = field(default_factory=list)
    area_of_effect_type: list[str] = field(default_factory=list)
    ritual: Optional[bool] = None
    concentration: Optional[bool] = None
    has_save: Optional[bool] = None
    has_attack: Optional[bool] = None

    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> dict:
        """Active dimensions only; `class_` is exposed as "class"."""
        out = {}
        for name, value in self.__dict__.items():
            if value is None or value == []:
                continue
            out["class" if name == "class_" else name] = list(value) if isinstance(value, list) else value
        return out


@dataclass
class SearchQuery:
    text: str = ""
    filters: SearchFilters = field(default_factory=SearchFilters)


_LEVEL_DIGIT = re.compile(r"[0-9]")

_LIST_FILTERS = {
    TokenType.SCHOOL: "school",
    TokenType.CLASS: "class_",
    TokenType.DAMAGE: "damage_type",
    TokenType.ACTION_TYPE: "action_type",
}


def parse_query(text: str) -> SearchQuery:
    tokens = split_query_tokens(normalize_text(text or ""))
    query = SearchQuery()
    filters = query.filters
    unused: list[str] = []
    negated = False
    skip_next = False

    for i, token in enumerate(tokens):
        if skip_next:
            skip_next = False
            continue

        entry = LEXICON.get(token)
        if entry is None:
            unused.append(token)
            negated = False
            continue

        kind = entry.type
        if kind is TokenType.NEGATION:
            negated = True
        elif kind is TokenType.NOISE:
            pass
        elif kind is TokenType.LEVEL:
            if entry.value == LEVEL_PLACEHOLDER:
                nxt = tokens[i + 1] if i + 1 < len(tokens) else ""
                if _LEVEL_DIGIT.fullmatch(nxt):
                    filters.level.append(int(nxt))
                    skip_next = True
            else:
                filters.level.append(entry.value)
            negated = False
        elif kind in _LIST_FILTERS:
            getattr(filters, _LIST_FILTERS[kind]).append(entry.value)
            negated = False
        elif kind is TokenType.SAVE:
            filters.save_ability.append(entry.value)
            filters.has_save = True
            negated = False
        elif kind is TokenType.RITUAL:
            filters.ritual = not negated
            negated = False
        elif kind is TokenType.CONCENTRATION:
            filters.concentration = not negated
            negated = False
        elif kind is TokenType.SAVE_PROMPT:
            # "jet ... sauvegarde" is one concept; negation carries across both words
            if filters.has_save is None or negated:
                filters.has_save = not negated
        elif kind is TokenType.ATTACK_PROMPT:
            if filters.has_attack is None or negated:
                filters.has_attack = not negated

    query.text = " ".join(unused).strip()
    return query
