# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""Accent/case folding shared by the parser, the repository and the engine."""
import re
import unicodedata

_TOKEN_SPLIT = re.compile(r"[\s,'’]+")


def normalize_text(text: str) -> str:
    """Lowercase, NFD-decompose and drop combining marks ("Évocation" -> "evocation")."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def split_query_tokens(text: str) -> list[str]:
    """Split on whitespace, commas and apostrophes, dropping empty tokens."""
    return [t for t in _TOKEN_SPLIT.split(text) if t]


def name_matches(text: str, name: str) -> bool:
    """True when every whitespace token of `text` occurs in `name` (accent/case-insensitive)."""
    haystack = normalize_text(name or "")
    return all(token in haystack for token in normalize_text(text).split())


def sort_key(name: str) -> tuple[str, str]:
    return (normalize_text(name or ""), name or "")
