# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Numeric sort keys for spell durations (rounds) and ranges (feet), EN + FR.
"""
import re
from typing import Literal

from .repository import Spell
from .text import sort_key

SortOption = Literal["name", "level", "range", "duration"]

UNTIL_DISPELLED = 999999
UNLIMITED = 999999
SIGHT = 999998
SPECIAL = 888888

FEET_PER_METER = 3.28

_DURATION_RE = re.compile(r"(\d+)\s+(round|minute|hour|day|an|year|jour|heure)")
_FEET_RE = re.compile(r"(\d+)\s+(foot|feet)")
_METER_RE = re.compile(r"(\d+(\.\d+)?)\s+mètre")
_MILE_RE = re.compile(r"(\d+)\s+mile")

# unit -> rounds
_ROUNDS = {
    "round": 1,
    "minute": 10,
    "hour": 600,
    "heure": 600,
    "day": 14400,
    "jour": 14400,
    "year": 5256000,
    "an": 5256000,
}


def duration_value(duration: str) -> int:
    """Duration in rounds. Unparseable durations count as one round."""
    text = (duration or "").lower()

    if "instantaneous" in text or "instantanée" in text:
        return 0
    if "until dispelled" in text or "jusqu'à ce qu'il soit dissipé" in text:
        return UNTIL_DISPELLED
    if "special" in text or "spécial" in text:
        return SPECIAL

    match = _DURATION_RE.search(text)
    if not match:
        return 1
    return int(match.group(1)) * _ROUNDS[match.group(2)]


def range_value(range_: str) -> int:
    """Range in feet. Metric ranges are converted at 3.28 ft/m."""
    text = (range_ or "").lower()

    if "self" in text or "personnelle" in text:
        return 0
    if "touch" in text or "contact" in text:
        return 1
    if "sight" in text or "vue" in text:
        return SIGHT
    if "unlimited" in text or "illimitée" in text:
        return UNLIMITED
    if "special" in text or "spécial" in text:
        return SPECIAL

    match = _FEET_RE.search(text)
    if match:
        return int(match.group(1))
    match = _METER_RE.search(text)
    if match:
        return round(float(match.group(1)) * FEET_PER_METER)
    match = _MILE_RE.search(text)
    if match:
        return int(match.group(1)) * 5280
    return 0


def sort_spells(spells: list[Spell], by: SortOption = "name", order: str = "asc") -> list[Spell]:
    """Stable sort; ties (and every secondary key) fall back to the name."""
    if by == "level":
        key = lambda s: (s.level if s.level is not None else -1, sort_key(s.name))
    elif by == "range":
        key = lambda s: (range_value(s.range or ""), sort_key(s.name))
    elif by == "duration":
        key = lambda s: (duration_value(s.duration or ""), sort_key(s.name))
    elif by == "name":
        key = lambda s: sort_key(s.name)
    else:
        raise ValueError(f"Unknown sort option: {by}")
    return sorted(spells, key=key, reverse=(order == "desc"))
