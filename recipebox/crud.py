import logging
import re

from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .config import get_settings
from .db import transaction
from .errors import ConflictError, NotFound, ValidationError
from .normalize import normalize_ingredient, split_quantity

logger = logging.getLogger(__name__)

SEARCH_WORD_RE = re.compile(r"\w+")


def build_search_text(name: str, method: str) -> str:
    return " ".join(SEARCH_WORD_RE.findall(f"{name} {method or ''}".lower()))


def display_line(quantity_text, name: str) -> str:
    if quantity_text:
        return f"{quantity_text} {name}"
    return name


def _require(value, field: str):
    if value is None or not str(value).strip():
        raise ValidationError(f"Recipe {field} cannot be empty")


def _get_recipe_row(db: Session, recipe_id: str):
    return db.query(models.Recipe).filter(models.Recipe.id == recipe_id).first()


def get_recipe_by_name(db: Session, name: str):
    return db.query(models.Recipe).filter(models.Recipe.name == name).first()


def ingredient_lines(db: Session, recipe_ids):
    """Map each recipe id to its ``(quantity_text, ingredient_name)`` pairs in
    sort order."""
    lines = {rid: [] for rid in recipe_ids}
    if not lines:
        return lines
    rows = (
        db.query(
            models.RecipeIngredient.recipe_id,
            models.RecipeIngredient.quantity_text,
            models.Ingredient.name,
        )
        .join(
            models.Ingredient,
            models.Ingredient.id == models.RecipeIngredient.ingredient_id,
        )
        .filter(models.RecipeIngredient.recipe_id.in_(list(lines)))
        .order_by(
            models.RecipeIngredient.recipe_id,
            models.RecipeIngredient.sort_order,
        )
        .all()
    )
    for recipe_id, quantity_text, name in rows:
        lines[recipe_id].append((quantity_text, name))
    return lines


def to_schema(db_recipe, lines, normalizer=normalize_ingredient) -> schemas.Recipe:
    filterable = []
    for _, name in lines:
        result = normalizer(name)
        ordered = [result.primary] + sorted(result.candidates - {result.primary})
        filterable.extend(c for c in ordered if c and c not in filterable)
    return schemas.Recipe(
        id=db_recipe.id,
        name=db_recipe.name,
        method=db_recipe.method,
        photo_reference=db_recipe.photo_reference,
        ingredients=[display_line(q, name) for q, name in lines],
        filterable_ingredient_names=filterable,
        created_at=db_recipe.created_at,
        updated_at=db_recipe.updated_at,
    )


def get_recipe(db: Session, recipe_id: str, normalizer=normalize_ingredient):
    db_recipe = _get_recipe_row(db, recipe_id)
    if db_recipe is None:
        raise NotFound(f"Recipe {recipe_id} not found")
    lines = ingredient_lines(db, [db_recipe.id])[db_recipe.id]
    return to_schema(db_recipe, lines, normalizer)


def _refresh_canonical(ingredient, normalizer):
    canonical = normalizer(ingredient.name).primary
    if ingredient.canonical_name != canonical:
        logger.info(
            "Recomputed canonical name for ingredient %s: %r -> %r",
            ingredient.id, ingredient.canonical_name, canonical,
        )
        ingredient.canonical_name = canonical
        ingredient.updated_at = models.utcnow()


def get_or_create_ingredient(db: Session, name: str, normalizer=normalize_ingredient):
    """Resolve ``name`` to an ingredient row, creating it when needed.

    Lookup is by exact display name first, then by canonical name. A new row
    is inserted inside a SAVEPOINT; if a concurrent writer (or a row stored
    under an outdated canonical form) already holds the name, the insert's
    unique violation is caught and the existing row re-selected.

    Returns ``(ingredient, created)``.
    """
    name = " ".join(name.split())
    canonical = normalizer(name).primary

    ingredient = (
        db.query(models.Ingredient).filter(models.Ingredient.name == name).first()
    )
    if ingredient is None:
        ingredient = (
            db.query(models.Ingredient)
            .filter(models.Ingredient.canonical_name == canonical)
            .order_by(models.Ingredient.created_at, models.Ingredient.id)
            .first()
        )
    if ingredient is not None:
        logger.debug("Found ingredient %r (%s)", ingredient.name, ingredient.id)
        _refresh_canonical(ingredient, normalizer)
        return ingredient, False

    try:
        with db.begin_nested():
            ingredient = models.Ingredient(name=name, canonical_name=canonical)
            db.add(ingredient)
    except SAIntegrityError:
        ingredient = (
            db.query(models.Ingredient)
            .filter(models.Ingredient.name == name)
            .first()
        )
        if ingredient is None:
            raise
        logger.info("Ingredient %r was created concurrently, re-selected", name)
        _refresh_canonical(ingredient, normalizer)
        return ingredient, False

    logger.debug("Created ingredient %r -> %r", name, canonical)
    return ingredient, True


def _write_links(db: Session, recipe_id: str, lines, normalizer, splitter):
    seen = {}
    position = 0
    for line in lines:
        if not line or not line.strip():
            continue
        quantity_text, name_part = splitter(line.strip())
        ingredient, _ = get_or_create_ingredient(db, name_part, normalizer)
        if ingredient.id in seen:
            raise ConflictError(
                f"Ingredient lines {seen[ingredient.id]!r} and {line!r} both "
                f"resolve to {ingredient.canonical_name!r}"
            )
        seen[ingredient.id] = line
        db.add(
            models.RecipeIngredient(
                recipe_id=recipe_id,
                ingredient_id=ingredient.id,
                quantity_text=quantity_text or None,
                sort_order=position,
            )
        )
        position += 1
    db.flush()


def create_recipe(
    db: Session,
    recipe: schemas.RecipeCreate,
    normalizer=normalize_ingredient,
    splitter=split_quantity,
    timeout: float | None = None,
):
    _require(recipe.name, "name")
    _require(recipe.method, "method")

    now = models.utcnow()
    with transaction(db, timeout=timeout):
        db_recipe = models.Recipe(
            id=recipe.id or models.new_id(),
            name=recipe.name.strip(),
            method=recipe.method,
            photo_reference=recipe.photo_reference,
            search_text=build_search_text(recipe.name, recipe.method),
            created_at=now,
            updated_at=now,
        )
        db.add(db_recipe)
        db.flush()
        _write_links(db, db_recipe.id, recipe.ingredients, normalizer, splitter)

    logger.info("Recipe created: id=%s name=%r", db_recipe.id, db_recipe.name)
    return get_recipe(db, db_recipe.id, normalizer)


def update_recipe(
    db: Session,
    recipe_id: str,
    recipe: schemas.RecipeCreate,
    normalizer=normalize_ingredient,
    splitter=split_quantity,
    timeout: float | None = None,
):
    with transaction(db, timeout=timeout):
        db_recipe = _get_recipe_row(db, recipe_id)
        if db_recipe is None:
            raise NotFound(f"Recipe {recipe_id} not found")
        _require(recipe.name, "name")
        _require(recipe.method, "method")
        db_recipe.name = recipe.name.strip()
        db_recipe.method = recipe.method
        db_recipe.photo_reference = recipe.photo_reference
        db_recipe.search_text = build_search_text(recipe.name, recipe.method)
        db_recipe.updated_at = models.utcnow()
        db.flush()

        # Full replace keeps sort_order identical to the submitted order
        db.query(models.RecipeIngredient).filter(
            models.RecipeIngredient.recipe_id == recipe_id
        ).delete(synchronize_session=False)
        _write_links(db, recipe_id, recipe.ingredients, normalizer, splitter)

    logger.info("Recipe updated: id=%s", recipe_id)
    return get_recipe(db, recipe_id, normalizer)


def delete_recipe(db: Session, recipe_id: str, timeout: float | None = None):
    """Delete a recipe and its links. Ingredients are left in place.

    Deleting an id that does not exist is a successful no-op; the return
    value only reports whether a row was removed.
    """
    with transaction(db, timeout=timeout):
        db.query(models.RecipeIngredient).filter(
            models.RecipeIngredient.recipe_id == recipe_id
        ).delete(synchronize_session=False)
        deleted = (
            db.query(models.Recipe)
            .filter(models.Recipe.id == recipe_id)
            .delete(synchronize_session=False)
        )
    if deleted:
        logger.info("Recipe deleted: id=%s", recipe_id)
    else:
        logger.info("Recipe %s not found for deletion, or already deleted", recipe_id)
    return bool(deleted)


def suggest_ingredients(db: Session, prefix: str, limit: int | None = None):
    prefix = (prefix or "").strip().lower()
    if not prefix:
        return []
    limit = limit or get_settings().autocomplete_limit
    rows = (
        db.query(models.Ingredient.name)
        .filter(
            or_(
                func.lower(models.Ingredient.name).startswith(prefix, autoescape=True),
                models.Ingredient.canonical_name.startswith(prefix, autoescape=True),
            )
        )
        .order_by(models.Ingredient.name)
        .limit(limit)
        .all()
    )
    return [name for (name,) in rows]
