import pytest

from recipebox.normalize import normalize_ingredient, split_quantity


@pytest.mark.parametrize(
    "text, expected",
    [
        ("180g plain flour", "flour"),
        ("2 eggs", "egg"),
        ("3 large tomatoes, diced", "tomato"),
        ("1 onion, diced", "onion"),
        ("2 carrots, sliced", "carrot"),
        ("salt to taste", "salt"),
        ("2 tbsp extra virgin olive oil", "olive oil"),
        ("1 1/2 cups milk", "milk"),
        ("½ tsp ground cinnamon", "cinnamon"),
        ("aubergine", "eggplant"),
        ("2 courgettes", "zucchini"),
        ("cherries", "cherry"),
    ],
)
def test_primary_name(text, expected):
    assert normalize_ingredient(text).primary == expected


def test_blank_input():
    result = normalize_ingredient("   ")
    assert result.primary == ""
    assert result.candidates == frozenset()


def test_falls_back_to_words_when_everything_is_vocabulary():
    # never empty for non-blank input
    assert normalize_ingredient("2 large").primary == "large"
    assert normalize_ingredient("3").primary == "3"


def test_candidates_hold_primary_and_long_words():
    result = normalize_ingredient("1 red onion")
    assert result.primary == "red onion"
    assert result.candidates == {"red onion", "red", "onion"}


def test_short_words_are_not_candidates():
    result = normalize_ingredient("soy sauce")
    assert "soy sauce" in result.candidates
    assert "sauce" in result.candidates
    assert "soy" in result.candidates
    assert "ox" not in normalize_ingredient("ox tongue").candidates


@pytest.mark.parametrize(
    "text",
    [
        "180g plain flour",
        "2 eggs",
        "tomatoes",
        "capsicum",
        "glass noodles",
        "asparagus",
        "baker's yeast",
        "1 tsp baker’s yeast",
        "2 hundreds-and-thousands",
    ],
)
def test_normalizing_twice_changes_nothing(text):
    primary = normalize_ingredient(text).primary
    assert normalize_ingredient(primary).primary == primary


def test_possessive_is_dropped():
    assert normalize_ingredient("baker's yeast").primary == "baker yeast"
    assert normalize_ingredient("2 tbsp baker’s yeast").primary == "baker yeast"


def test_synonym_maps_to_multiword_canonical():
    assert normalize_ingredient("1 capsicum, seeded").primary == "bell pepper"
    assert normalize_ingredient("scallions").primary == "green onion"


def test_never_raises_on_odd_input():
    for text in ["!!!", "--", "1/2", "½", "a the of"]:
        assert normalize_ingredient(text).primary


@pytest.mark.parametrize(
    "line, expected",
    [
        ("200g plain flour", ("200g", "plain flour")),
        ("2 eggs", ("2", "eggs")),
        ("1 1/2 cups milk", ("1 1/2 cups", "milk")),
        ("2 tbsp Olive Oil", ("2 tbsp", "olive oil")),
        ("1-2 cloves garlic", ("1-2 cloves", "garlic")),
        ("Salt", ("", "salt")),
        ("2", ("", "2")),
    ],
)
def test_split_quantity(line, expected):
    assert split_quantity(line) == expected


def test_split_quantity_blank():
    assert split_quantity("   ") == ("", "")
