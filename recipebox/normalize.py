"""Ingredient text normalization.

Two separate strategies live here:

* ``normalize_ingredient`` turns a free-text ingredient line into its
  canonical name plus a set of single-word candidates used for tag matching.
* ``split_quantity`` is the narrow splitter used when saving a recipe: it only
  peels a leading quantity (and an optional unit) off the line so the rest can
  be stored as the ingredient's display name.

Both are plain callables so they can be swapped independently.
"""
import re
from typing import Callable, FrozenSet, NamedTuple, Tuple

# No fuzzy matching: exact normalized matches only

# Small synonyms map: variant -> canonical (keys are already singular)
SYNONYMS = {
    "aubergine": "eggplant",
    "courgette": "zucchini",
    "capsicum": "bell pepper",
    "scallion": "green onion",
    "cilantro": "coriander",
}

UNITS = frozenset({
    "g", "gr", "gram", "grams", "kg", "kilogram", "kilograms", "mg",
    "oz", "ounce", "ounces", "lb", "lbs", "pound", "pounds",
    "ml", "millilitre", "millilitres", "milliliter", "milliliters",
    "l", "litre", "litres", "liter", "liters", "cl", "dl",
    "tsp", "teaspoon", "teaspoons", "tbsp", "tablespoon", "tablespoons",
    "fl oz", "cup", "cups", "pt", "pint", "pints", "qt", "quart", "quarts",
    "gal", "gallon", "gallons",
    "pinch", "pinches", "dash", "dashes", "clove", "cloves", "head", "heads",
    "slice", "slices", "piece", "pieces", "can", "cans", "tin", "tins",
    "bunch", "bunches", "handful", "handfuls", "sprig", "sprigs",
    "stick", "sticks",
    # fractional words
    "half", "halves", "quarter", "quarters", "third", "thirds",
})

DESCRIPTORS = frozenset({
    "fresh", "freshly", "dried", "frozen", "canned", "cooked", "uncooked", "raw",
    "chopped", "diced", "sliced", "minced", "grated", "crushed", "peeled",
    "seeded", "melted", "softened", "beaten", "toasted", "shredded",
    "large", "medium", "small",
    "ripe", "unripe",
    "optional", "to taste", "for garnish", "for serving",
    "plain", "all-purpose", "self-raising", "whole", "ground", "granulated",
    "powdered", "boneless", "skinless",
    "finely", "coarsely", "roughly", "thinly",
    "hot", "cold", "warm", "chilled",
    "sweet", "unsweetened", "salted", "unsalted",
    "extra", "virgin", "extra-virgin",
})

STOP_WORDS = frozenset({
    "a", "an", "the", "of", "and", "or", "with", "without", "in", "on", "at",
    "for", "to", "from", "some", "any", "about", "into", "over", "under",
})

_FRACTIONS = "½⅓⅔¼¾⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞"
_NUMBER = rf"(?:\d+\s+\d+/\d+|\d+/\d+|\d*[{_FRACTIONS}]|\d+(?:\.\d+)?)"
_QUANTITY_RE = re.compile(rf"{_NUMBER}(?:\s*(?:-|–|to)\s*{_NUMBER})?")
_QUANTITY_TOKEN_RE = re.compile(
    rf"^({_NUMBER}(?:[-–]{_NUMBER})?)([^\W\d_]*)[.,]?$"
)
_WORD_RE = re.compile(r"[^\W\d_]+(?:['’-][^\W\d_]+)*")
_POSSESSIVE_RE = re.compile(r"['’]s$")

# Longest multi-word vocabulary entry, in tokens
_MAX_PHRASE = 2


class NormalizedIngredient(NamedTuple):
    primary: str
    candidates: FrozenSet[str]


Normalizer = Callable[[str], NormalizedIngredient]
Splitter = Callable[[str], Tuple[str, str]]


def _singularize(word: str) -> str:
    # Every branch yields a word no branch matches again, so this is stable
    # under repeated application.
    w = word
    if len(w) <= 3 or w.endswith(("ss", "us", "is")):
        return w
    if w.endswith("ies") and len(w) > 4:
        return w[:-3] + "y"
    if w.endswith(("oes", "ches", "shes", "xes", "sses")):
        return w[:-2]
    if w.endswith("s"):
        return w[:-1]
    return w


def _strip_vocabulary(tokens, vocabulary):
    kept = []
    i = 0
    while i < len(tokens):
        for size in range(_MAX_PHRASE, 0, -1):
            if " ".join(tokens[i:i + size]) in vocabulary:
                i += size
                break
        else:
            kept.append(tokens[i])
            i += 1
    return kept


def _canonical_tokens(tokens):
    out = []
    for token in tokens:
        # "baker's" -> "baker", never "baker'"
        token = _POSSESSIVE_RE.sub("", token)
        mapped = SYNONYMS.get(_singularize(token), _singularize(token))
        for part in mapped.split():
            if part in UNITS or part in DESCRIPTORS or part in STOP_WORDS:
                continue
            out.append(part)
    return out


def normalize_ingredient(text: str) -> NormalizedIngredient:
    """Reduce a free-text ingredient line to its canonical name.

    ``"180g plain flour, finely chopped"`` -> primary ``"flour"``.

    ``primary`` is the cleaned phrase; ``candidates`` holds ``primary`` plus
    every remaining word longer than two characters. The function never
    raises, and ``primary`` is only empty when ``text`` is blank.
    """
    if not text or not text.strip():
        return NormalizedIngredient("", frozenset())

    lowered = text.lower()
    without_quantities = _QUANTITY_RE.sub(" ", lowered)
    tokens = _WORD_RE.findall(without_quantities)

    remaining = _strip_vocabulary(tokens, UNITS)
    remaining = _strip_vocabulary(remaining, DESCRIPTORS)
    remaining = _strip_vocabulary(remaining, STOP_WORDS)
    remaining = _canonical_tokens(remaining)

    if not remaining:
        # Nothing survived the vocabularies ("2 large", "to taste"): keep the
        # words as written, minus the quantities.
        primary = " ".join(tokens) or " ".join(lowered.split())
        return NormalizedIngredient(primary, frozenset({primary}))

    primary = " ".join(remaining)
    candidates = {primary}
    candidates.update(t for t in remaining if len(t) > 2)
    return NormalizedIngredient(primary, frozenset(candidates))


def split_quantity(line: str) -> Tuple[str, str]:
    """Split ``line`` into ``(quantity_text, name_part)``.

    Only a leading quantity token is recognised (``2``, ``1/2``, ``1 1/2``,
    ``1-2``, ``180g``), optionally followed by one unit word. Everything after
    that is the name, lower-cased. Lines without a leading quantity, or with
    nothing after it, come back with an empty quantity.
    """
    tokens = line.split()
    if not tokens:
        return "", ""

    i = 0
    match = _QUANTITY_TOKEN_RE.match(tokens[0])
    if match and (not match.group(2) or match.group(2).lower() in UNITS):
        i = 1
        attached_unit = bool(match.group(2))
        if i < len(tokens) and re.fullmatch(r"\d+/\d+", tokens[i]):
            i += 1
        if not attached_unit and i < len(tokens):
            pair = " ".join(tokens[i:i + 2]).lower()
            word = tokens[i].lower().rstrip(".,")
            if pair in UNITS:
                i += 2
            elif word in UNITS:
                i += 1

    name = " ".join(tokens[i:]).lower()
    if not name:
        return "", " ".join(tokens).lower()
    return " ".join(tokens[:i]), name
