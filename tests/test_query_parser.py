"""Tests for the bilingual query parser."""
from spelite.query_parser import SearchFilters, parse_query
from spelite.text import normalize_text, split_query_tokens


class TestText:
    def test_normalize(self):
        assert normalize_text("Évocation NÉCROMANCIE") == "evocation necromancie"

    def test_split_on_apostrophes_and_commas(self):
        assert split_query_tokens("jet d'attaque, sans  sauvegarde") == [
            "jet", "d", "attaque", "sans", "sauvegarde",
        ]
        assert split_query_tokens("jet d’attaque") == ["jet", "d", "attaque"]


class TestLevels:
    def test_cantrip_and_level_placeholder(self):
        q = parse_query("cantrip level 3")
        assert sorted(q.filters.level) == [0, 3]
        assert q.text == ""

    def test_french_level(self):
        q = parse_query("niveau 2 tour")
        assert sorted(q.filters.level) == [0, 2]

    def test_bare_digit(self):
        assert parse_query("5").filters.level == [5]

    def test_placeholder_without_digit_is_dropped(self):
        q = parse_query("level boule")
        assert q.filters.level == []
        assert q.text == "boule"

    def test_placeholder_ignores_non_ascii_digit(self):
        q = parse_query("level ² boule")
        assert q.filters.level == []
        assert "boule" in q.text

    def test_placeholder_at_end(self):
        q = parse_query("lvl")
        assert q.filters.level == []
        assert q.text == ""


class TestNegation:
    def test_ritual_and_concentration(self):
        q = parse_query("sans rituel no concentration")
        assert q.filters.ritual is False
        assert q.filters.concentration is False

    def test_positive_traits(self):
        q = parse_query("ritual conc")
        assert q.filters.ritual is True
        assert q.filters.concentration is True

    def test_prompts(self):
        q = parse_query("jet d'attaque sans sauvegarde")
        assert q.filters.has_attack is True
        assert q.filters.has_save is False

    def test_noise_keeps_negation(self):
        q = parse_query("sans le rituel")
        assert q.filters.ritual is False

    def test_unknown_token_resets_negation(self):
        q = parse_query("sans boule rituel")
        assert q.filters.ritual is True
        assert q.text == "boule"

    def test_recognized_token_resets_negation(self):
        q = parse_query("no wizard concentration")
        assert q.filters.class_ == ["wizard"]
        assert q.filters.concentration is True

    def test_prompt_set_once_unless_negated(self):
        q = parse_query("no attack attack")
        assert q.filters.has_attack is False


class TestFilters:
    def test_classes_accumulate(self):
        q = parse_query("wizard clerc")
        assert q.filters.class_ == ["wizard", "cleric"]

    def test_school_and_damage(self):
        q = parse_query("évocation feu")
        assert q.filters.school == ["evocation"]
        assert q.filters.damage_type == ["fire"]
        assert q.text == ""

    def test_save_implies_has_save(self):
        q = parse_query("dexterité")
        assert q.filters.save_ability == ["dex"]
        assert q.filters.has_save is True

    def test_action_type(self):
        q = parse_query("reaction bonus")
        assert q.filters.action_type == ["reaction", "bonus_action"]

    def test_residual_text_keeps_order(self):
        q = parse_query("magicien boule de lumiere niveau 3")
        assert q.text == "boule lumiere"
        assert q.filters.class_ == ["wizard"]
        assert q.filters.level == [3]

    def test_empty_query(self):
        q = parse_query("")
        assert q.text == ""
        assert q.filters.is_empty()

    def test_to_dict_omits_inactive(self):
        q = parse_query("wizard sans rituel")
        assert q.filters.to_dict() == {"class": ["wizard"], "ritual": False}

    def test_filters_default_inactive(self):
        assert SearchFilters().to_dict() == {}
