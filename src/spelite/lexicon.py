# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Bilingual (EN/FR) token lexicon for the query parser.

Keys are already normalized (lowercase, no accents): "nécromancie" is
looked up as "necromancie".
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union

LEVEL_PLACEHOLDER = -1


class TokenType(Enum):
    LEVEL = "LEVEL"
    SCHOOL = "SCHOOL"
    CLASS = "CLASS"
    DAMAGE = "DAMAGE"
    SAVE = "SAVE"
    RITUAL = "RITUAL"
    CONCENTRATION = "CONCENTRATION"
    ACTION_TYPE = "ACTION_TYPE"
    NEGATION = "NEGATION"
    SAVE_PROMPT = "SAVE_PROMPT"
    ATTACK_PROMPT = "ATTACK_PROMPT"
    NOISE = "NOISE"


@dataclass(frozen=True)
class LexiconEntry:
    type: TokenType
    value: Union[str, int, bool]


def _entries(token_type: TokenType, mapping: dict) -> dict[str, LexiconEntry]:
    return {token: LexiconEntry(token_type, value) for token, value in mapping.items()}


LEXICON: dict[str, LexiconEntry] = {
    # Noise words (consumed, keep negation state)
    **_entries(TokenType.NOISE, {t: "" for t in ("de", "d", "le", "la", "les", "des", "du")}),

    # Levels
    **_entries(TokenType.LEVEL, {str(n): n for n in range(10)}),
    **_entries(TokenType.LEVEL, {
        "cantrip": 0,
        "tour": 0,
        "niveau": LEVEL_PLACEHOLDER,
        "level": LEVEL_PLACEHOLDER,
        "lvl": LEVEL_PLACEHOLDER,
    }),

    # Schools
    **_entries(TokenType.SCHOOL, {
        "abjuration": "abjuration",
        "conjuration": "conjuration",
        "divination": "divination",
        "enchantment": "enchantment",
        "enchantement": "enchantment",
        "evocation": "evocation",
        "illusion": "illusion",
        "necromancy": "necromancy",
        "necromancie": "necromancy",
        "transmutation": "transmutation",
    }),

    # Classes
    **_entries(TokenType.CLASS, {
        "barbarian": "barbarian",
        "barbare": "barbarian",
        "bard": "bard",
        "barde": "bard",
        "cleric": "cleric",
        "clerc": "cleric",
        "druid": "druid",
        "druide": "druid",
        "fighter": "fighter",
        "guerrier": "fighter",
        "monk": "monk",
        "moine": "monk",
        "paladin": "paladin",
        "ranger": "ranger",
        "rodeur": "ranger",
        "rogue": "rogue",
        "roublard": "rogue",
        "sorcerer": "sorcerer",
        "ensorceleur": "sorcerer",
        "sorcier": "sorcerer",
        "warlock": "warlock",
        "occultiste": "warlock",
        "wizard": "wizard",
        "magicien": "wizard",
        "mage": "wizard",
    }),

    # Damage types
    **_entries(TokenType.DAMAGE, {
        "acid": "acid",
        "acide": "acid",
        "bludgeoning": "bludgeoning",
        "contondant": "bludgeoning",
        "cold": "cold",
        "froid": "cold",
        "fire": "fire",
        "feu": "fire",
        "force": "force",
        "lightning": "lightning",
        "foudre": "lightning",
        "necrotic": "necrotic",
        "necrotique": "necrotic",
        "piercing": "piercing",
        "perforant": "piercing",
        "poison": "poison",
        "psychic": "psychic",
        "psychique": "psychic",
        "radiant": "radiant",
        "slashing": "slashing",
        "tranchant": "slashing",
        "thunder": "thunder",
        "tonnerre": "thunder",
    }),

    # Saving throw abilities
    **_entries(TokenType.SAVE, {
        "str": "str",
        "dex": "dex",
        "dexterite": "dex",
        "con": "con",
        "constitution": "con",
        "int": "int",
        "intelligence": "int",
        "wis": "wis",
        "sagesse": "wis",
        "cha": "cha",
        "charisme": "cha",
    }),

    # Traits
    **_entries(TokenType.RITUAL, {"ritual": True, "rituel": True}),
    **_entries(TokenType.CONCENTRATION, {"concentration": True, "conc": True}),

    # Casting action
    **_entries(TokenType.ACTION_TYPE, {"reaction": "reaction", "bonus": "bonus_action"}),

    # Negation
    **_entries(TokenType.NEGATION, {"sans": True, "no": True}),

    # Prompts
    **_entries(TokenType.SAVE_PROMPT, {"sauvegarde": True, "save": True, "jet": True}),
    **_entries(TokenType.ATTACK_PROMPT, {"attaque": True, "attack": True}),
}
