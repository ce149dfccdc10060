"""Reader for the legacy embedded recipe store.

The legacy store kept whole recipes as JSON documents under ``recipe:<id>``
keys, with ingredient lines embedded as free text and a ``ingredient:<name>``
marker key per line. A dump of it is either that key/value map or a plain
list of recipe records.
"""
import json
import logging
from pathlib import Path

import pydantic

from . import schemas
from .errors import ValidationError
from .models import new_id
from .normalize import normalize_ingredient, split_quantity

logger = logging.getLogger(__name__)

RECIPE_KEY_PREFIX = "recipe:"


def load_legacy_records(path):
    """Load recipe records from a legacy store dump.

    Args:
        path (str or Path): Path to the JSON dump.

    Returns:
        list: recipe dictionaries; empty when the file does not exist.
    """
    p = Path(path)
    if not p.exists():
        logger.warning("Legacy store %s not found", p)
        return []
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        records = []
        for key, value in data.items():
            if not key.startswith(RECIPE_KEY_PREFIX):
                continue
            if isinstance(value, str):
                value = json.loads(value)
            records.append(value)
        return records
    return list(data)


def _method_text(record) -> str:
    method = record.get("method")
    if method:
        return method
    return "\n".join(s for s in record.get("steps") or [] if s)


def serialize_legacy(
    records, splitter=split_quantity, normalizer=normalize_ingredient
) -> schemas.Bundle:
    """Flatten legacy recipe records into a bundle.

    Each distinct canonical ingredient becomes one bundle ingredient, and every
    recipe line a link to it in line order. A second line resolving to an
    ingredient the recipe already links is dropped with a warning.
    """
    ingredients = {}
    recipes = []
    links = []
    seen_recipes = set()

    for record in records:
        recipe_id = str(record.get("id") or "").strip()
        name = (record.get("name") or "").strip()
        if not recipe_id or not name:
            logger.warning("Skipping legacy record without id or name: %r", record)
            continue
        if recipe_id in seen_recipes:
            logger.warning("Skipping duplicate legacy recipe id %s", recipe_id)
            continue
        seen_recipes.add(recipe_id)

        linked = set()
        display = []
        for line in record.get("ingredients") or []:
            if not line or not line.strip():
                continue
            line = line.strip()
            quantity_text, name_part = splitter(line)
            canonical = normalizer(name_part).primary
            ingredient = ingredients.get(canonical)
            if ingredient is None:
                ingredient = schemas.BundleIngredient(
                    id=new_id(),
                    name=" ".join(name_part.split()),
                    canonical_name=canonical,
                )
                ingredients[canonical] = ingredient
            if ingredient.id in linked:
                logger.warning(
                    "Recipe %s: dropping %r, %r is already linked",
                    recipe_id, line, canonical,
                )
                continue
            linked.add(ingredient.id)
            links.append(
                schemas.BundleLink(
                    id=new_id(),
                    recipe_id=recipe_id,
                    ingredient_id=ingredient.id,
                    quantity_text=quantity_text or None,
                    sort_order=len(display),
                )
            )
            display.append(line)

        try:
            recipes.append(
                schemas.BundleRecipe(
                    id=recipe_id,
                    name=name,
                    method=_method_text(record),
                    photo_reference=record.get("photo_filename")
                    or record.get("photo_reference")
                    or None,
                    ingredients=display,
                    created_at=record.get("created_at") or None,
                    updated_at=record.get("updated_at") or None,
                )
            )
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Legacy recipe {recipe_id} is malformed: {exc}") from exc

    logger.info(
        "Serialized %d legacy recipes into %d ingredients and %d links",
        len(recipes), len(ingredients), len(links),
    )
    return schemas.Bundle(
        recipes=recipes,
        ingredients=list(ingredients.values()),
        recipe_ingredients=links,
    )
