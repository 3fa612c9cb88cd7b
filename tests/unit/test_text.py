import pytest

from civicscore.common.text import name_similarity, normalise_name, normalise_ward, override_key


def test_normalise_name_decodes_entities_and_strips_punctuation():
    assert normalise_name("Joe&#39;s  Corner   Diner!") == "joe s corner diner"
    assert normalise_name("Ben &amp; Jerry's") == "ben jerry s"
    assert normalise_name(None) == ""


def test_override_key_is_case_insensitive_and_trimmed():
    assert override_key("  Smith, Jones &amp; Co ") == "smith, jones & co"


def test_name_similarity_identical_names_score_one():
    assert name_similarity("Joe's Corner Diner", "JOE'S CORNER DINER") == 1.0


def test_name_similarity_is_jaccard_over_long_words():
    # {rideau, lunch, box} vs {rideau, lunch, box, market}
    assert name_similarity("Rideau Lunch Box", "Rideau Lunch Box Market") == pytest.approx(0.75)


def test_name_similarity_discards_short_words():
    assert name_similarity("A B", "A C") == 0.0
    assert name_similarity("Le Bistro", "La Bistro") == 1.0


def test_name_similarity_empty_names_score_zero():
    assert name_similarity("", "Tim Hortons") == 0.0
    assert name_similarity(None, None) == 0.0


def test_normalise_ward_variants():
    assert normalise_ward("Ward 14") == "14"
    assert normalise_ward("ward14") == "14"
    assert normalise_ward(" 07 ") == "7"
    assert normalise_ward("") is None
    assert normalise_ward(None) is None
    assert normalise_ward("Rideau-Vanier") == "Rideau-Vanier"
