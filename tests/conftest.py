import hashlib
import json

import numpy as np
import pytest

from spelite.config import Config
from spelite.flattener import flatten_graph
from spelite.health import HealthTracker
from spelite.store import TripletStore


SPELLS_GRAPH = [
    {
        "@id": "spells:fireball",
        "index": "fireball",
        "name": {"en": "Fireball", "fr": "Boule de feu"},
        "level": 3,
        "school": "evocation",
        "classes": ["wizard", "sorcerer"],
        "components": ["V", "S", "M"],
        "range": {"en": "150 feet", "fr": "45 mètres"},
        "duration": {"en": "Instantaneous", "fr": "Instantanée"},
        "casting_time": {"en": "1 action", "fr": "1 action"},
        "material": {"en": "A tiny ball of bat guano and sulfur.", "fr": None},
        "ritual": False,
        "concentration": False,
        "desc": {
            "en": [
                "A bright streak flashes from your pointing finger.",
                "Each creature in a 20-foot-radius sphere must make a Dexterity saving throw.",
            ],
            "fr": ["Un éclair lumineux jaillit de votre index."],
        },
        "mechanics": {
            "has_attack_roll": False,
            "has_save": True,
            "save_ability": "dex",
            "damage_type": "fire",
            "damage_dice": "8d6",
            "area_of_effect": {"type": "sphere", "value": 20, "unit": "feet"},
            "higher_levels": True,
        },
    },
    {
        "@id": "spells:counterspell",
        "index": "counterspell",
        "name": {"en": "Counterspell", "fr": "Contresort"},
        "level": 3,
        "school": "abjuration",
        "classes": ["wizard"],
        "components": ["S"],
        "range": {"en": "60 feet", "fr": "18 mètres"},
        "duration": {"en": "Instantaneous", "fr": "Instantanée"},
        "casting_time": {"en": "1 reaction", "fr": "1 réaction"},
        "ritual": False,
        "concentration": False,
        "desc": {"en": ["You attempt to interrupt a creature in the process of casting a spell."]},
    },
    {
        "@id": "spells:cure-wounds",
        "index": "cure-wounds",
        "name": {"en": "Cure Wounds"},
        "level": 1,
        "school": "evocation",
        "classes": ["cleric"],
        "components": ["V", "S"],
        "range": {"en": "Touch"},
        "duration": {"en": "Instantaneous"},
        "casting_time": {"en": "1 action"},
        "ritual": False,
        "concentration": False,
        "desc": {"en": ["A creature you touch regains a number of hit points."]},
    },
    {
        "@id": "spells:shield-of-faith",
        "index": "shield-of-faith",
        "name": {"en": "Shield of Faith", "fr": "Bouclier de la foi"},
        "level": 1,
        "school": "abjuration",
        "classes": ["cleric"],
        "components": ["V", "S", "M"],
        "range": {"en": "60 feet", "fr": "18 mètres"},
        "duration": {"en": "Concentration, up to 10 minutes", "fr": "Concentration, jusqu'à 10 minutes"},
        "casting_time": {"en": "1 bonus action", "fr": "1 action bonus"},
        "ritual": False,
        "concentration": True,
        "desc": {"en": ["A shimmering field appears and surrounds a creature of your choice."]},
    },
    {
        "@id": "spells:fire-bolt",
        "index": "fire-bolt",
        "name": {"en": "Fire Bolt", "fr": "Trait de feu"},
        "level": 0,
        "school": "evocation",
        "classes": ["wizard", "sorcerer"],
        "components": ["V", "S"],
        "range": {"en": "120 feet", "fr": "36 mètres"},
        "duration": {"en": "Instantaneous", "fr": "Instantanée"},
        "casting_time": {"en": "1 action", "fr": "1 action"},
        "ritual": False,
        "concentration": False,
        "desc": {"en": ["You hurl a mote of fire at a creature or object within range."]},
        "mechanics": {
            "has_attack_roll": True,
            "attack_type": "ranged",
            "has_save": False,
            "damage_type": "fire",
            "damage_dice": "1d10",
        },
    },
    {
        "@id": "spells:detect-magic",
        "index": "detect-magic",
        "name": {"en": "Detect Magic", "fr": "Détection de la magie"},
        "level": 1,
        "school": "divination",
        "classes": ["wizard", "cleric"],
        "components": ["V", "S"],
        "range": {"en": "Self", "fr": "Personnelle"},
        "duration": {"en": "Concentration, up to 10 minutes", "fr": "Concentration, jusqu'à 10 minutes"},
        "casting_time": {"en": "1 action", "fr": "1 action"},
        "ritual": True,
        "concentration": True,
        "desc": {"en": ["For the duration, you sense the presence of magic within 30 feet of you."]},
    },
]

CLASSES_GRAPH = [
    {
        "@id": "classes:wizard",
        "index": "wizard",
        "name": {"en": "Wizard", "fr": "Magicien"},
        "hit_die": 6,
        "spellcasting_ability": "int",
    },
    {
        "@id": "classes:fighter",
        "index": "fighter",
        "name": {"en": "Fighter", "fr": "Guerrier"},
        "hit_die": 10,
    },
]

RACES_GRAPH = [
    {"@id": "races:human", "index": "human", "name": {"en": "Human", "fr": "Humain"}},
    {"@id": "races:elf", "index": "elf", "name": {"en": "Elf", "fr": "Elfe"}},
]


class FakeEncoder:
    """Deterministic stand-in for a sentence-transformers model.

    Vectors come from a hash of the text, so equal texts give equal vectors
    and the same query always ranks documents the same way. Texts listed in
    `aliases` share a vector, which gives tests an exact-match similarity.
    """

    dim = 16

    def __init__(self, aliases=None):
        self.calls: list[list[str]] = []
        self.aliases = aliases or {}

    def _vector(self, text: str) -> np.ndarray:
        key = self.aliases.get(text, text)
        seed = int(hashlib.sha256(key.encode()).hexdigest()[:8], 16)
        return np.random.default_rng(seed).normal(size=self.dim).astype(np.float32)

    def encode(self, texts, normalize_embeddings=True, convert_to_numpy=True):
        self.calls.append(list(texts))
        vectors = np.stack([self._vector(t) for t in texts])
        if normalize_embeddings:
            vectors /= np.linalg.norm(vectors, axis=1, keepdims=True)
        return vectors

    @property
    def encoded_texts(self) -> list[str]:
        return [t for call in self.calls for t in call]


@pytest.fixture
def sample_graphs():
    return {
        "spells.json": SPELLS_GRAPH,
        "classes.json": CLASSES_GRAPH,
        "races.json": RACES_GRAPH,
    }


@pytest.fixture
def source_dir(tmp_path, sample_graphs):
    """Directory holding spells.json, classes.json and races.json."""
    data = tmp_path / "ontology"
    data.mkdir()
    for name, graph in sample_graphs.items():
        (data / name).write_text(
            json.dumps({"@context": {}, "@graph": graph}, ensure_ascii=False),
            encoding="utf-8",
        )
    return data


@pytest.fixture
def config(tmp_path, source_dir):
    return Config(
        data_path=str(source_dir),
        store_path=str(tmp_path / "triplets.db"),
        vectorstore_path=str(tmp_path / "vectorstore"),
        semantic_timeout=5.0,
        search_debounce_ms=0,
    )


@pytest.fixture
def store():
    """In-memory store populated with the sample spells, classes and races."""
    s = TripletStore()
    s.bulk_load(flatten_graph(SPELLS_GRAPH + CLASSES_GRAPH + RACES_GRAPH))
    yield s
    s.close()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def health():
    return HealthTracker()
