"""Export and import of whole-store snapshots (bundles).

An import is merged into whatever the store already holds: ingredients are
resolved by canonical name, recipes by name, and links are re-pointed
through the resulting id maps. The three phases share one transaction, so a
bundle either lands completely or not at all.
"""
import logging
from pathlib import Path

import pydantic
from sqlalchemy.orm import Session

from . import models, schemas
from .crud import (
    build_search_text,
    get_or_create_ingredient,
    get_recipe_by_name,
    ingredient_lines,
    display_line,
)
from .db import transaction
from .errors import IntegrityError, ValidationError
from .normalize import normalize_ingredient

logger = logging.getLogger(__name__)


def load_bundle(path) -> schemas.Bundle:
    try:
        return schemas.Bundle.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid bundle file {path}: {exc}") from exc


def dump_bundle(bundle: schemas.Bundle, path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")
    return p


def export_bundle(db: Session) -> schemas.Bundle:
    recipes = db.query(models.Recipe).order_by(models.Recipe.created_at).all()
    ingredients = db.query(models.Ingredient).order_by(models.Ingredient.name).all()
    links = (
        db.query(models.RecipeIngredient)
        .order_by(
            models.RecipeIngredient.recipe_id, models.RecipeIngredient.sort_order
        )
        .all()
    )
    lines = ingredient_lines(db, [r.id for r in recipes])

    bundle = schemas.Bundle(
        recipes=[
            schemas.BundleRecipe(
                id=r.id,
                name=r.name,
                method=r.method,
                photo_reference=r.photo_reference,
                ingredients=[display_line(q, name) for q, name in lines[r.id]],
                created_at=r.created_at,
                updated_at=r.updated_at,
            )
            for r in recipes
        ],
        ingredients=[
            schemas.BundleIngredient(
                id=i.id,
                name=i.name,
                canonical_name=i.canonical_name,
                created_at=i.created_at,
                updated_at=i.updated_at,
            )
            for i in ingredients
        ],
        recipe_ingredients=[
            schemas.BundleLink(
                id=link.id,
                recipe_id=link.recipe_id,
                ingredient_id=link.ingredient_id,
                quantity_text=link.quantity_text,
                sort_order=link.sort_order,
            )
            for link in links
        ],
    )
    logger.info(
        "Exported %d recipes, %d ingredients, %d links",
        len(bundle.recipes), len(bundle.ingredients), len(bundle.recipe_ingredients),
    )
    return bundle


def _parse(bundle) -> schemas.Bundle:
    if isinstance(bundle, schemas.Bundle):
        parsed = bundle
    else:
        try:
            parsed = schemas.Bundle.model_validate(bundle)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid bundle: {exc}") from exc
    for ing in parsed.ingredients:
        if not ing.name.strip():
            raise ValidationError(f"Bundle ingredient {ing.id} has an empty name")
    for rec in parsed.recipes:
        if not rec.name.strip():
            raise ValidationError(f"Bundle recipe {rec.id} has an empty name")
    return parsed


def _resolve_recipe(db: Session, rec: schemas.BundleRecipe):
    name = rec.name.strip()
    existing = get_recipe_by_name(db, name)
    if existing is not None:
        logger.debug("Found existing recipe %r (%s)", name, existing.id)
        return existing, False

    now = models.utcnow()
    # keep the bundle's id when it is free so photo references stay meaningful
    recipe_id = rec.id if db.get(models.Recipe, rec.id) is None else models.new_id()
    db_recipe = models.Recipe(
        id=recipe_id,
        name=name,
        method=rec.method,
        photo_reference=rec.photo_reference or None,
        search_text=build_search_text(name, rec.method),
        created_at=rec.created_at or now,
        updated_at=rec.updated_at or rec.created_at or now,
    )
    db.add(db_recipe)
    db.flush()
    logger.debug("Created recipe %r (%s)", name, recipe_id)
    return db_recipe, True


def import_bundle(
    db: Session,
    bundle,
    normalizer=normalize_ingredient,
    dry_run: bool = False,
    timeout: float | None = None,
) -> schemas.ImportResult:
    """Merge ``bundle`` into the store.

    Re-importing the same bundle creates nothing new. A link whose recipe or
    ingredient id is not defined by the bundle itself raises
    :class:`~recipebox.errors.IntegrityError` and nothing is committed.
    With ``dry_run`` the merge runs and is counted, then rolled back.
    """
    bundle = _parse(bundle)
    result = schemas.ImportResult()

    with transaction(db, commit=not dry_run, timeout=timeout):
        ingredient_ids = {}
        for ing in bundle.ingredients:
            db_ingredient, created = get_or_create_ingredient(db, ing.name, normalizer)
            ingredient_ids[ing.id] = db_ingredient.id
            result.imported_ingredients += 1
            result.created_ingredients += int(created)
        logger.info(
            "Processed %d ingredients (%d new)",
            result.imported_ingredients, result.created_ingredients,
        )

        recipe_ids = {}
        for rec in bundle.recipes:
            db_recipe, created = _resolve_recipe(db, rec)
            recipe_ids[rec.id] = db_recipe.id
            result.imported_recipes += 1
            result.created_recipes += int(created)
        logger.info(
            "Processed %d recipes (%d new)",
            result.imported_recipes, result.created_recipes,
        )

        for link in bundle.recipe_ingredients:
            if link.recipe_id not in recipe_ids:
                raise IntegrityError(
                    f"Link {link.id} references unknown recipe {link.recipe_id}"
                )
            if link.ingredient_id not in ingredient_ids:
                raise IntegrityError(
                    f"Link {link.id} references unknown ingredient {link.ingredient_id}"
                )
            recipe_id = recipe_ids[link.recipe_id]
            ingredient_id = ingredient_ids[link.ingredient_id]
            exists = (
                db.query(models.RecipeIngredient.id)
                .filter(
                    models.RecipeIngredient.recipe_id == recipe_id,
                    models.RecipeIngredient.ingredient_id == ingredient_id,
                )
                .first()
            )
            result.imported_links += 1
            if exists is not None:
                result.skipped_links += 1
                continue
            db.add(
                models.RecipeIngredient(
                    recipe_id=recipe_id,
                    ingredient_id=ingredient_id,
                    quantity_text=link.quantity_text or None,
                    sort_order=link.sort_order,
                )
            )
            db.flush()
            result.created_links += 1
        logger.info(
            "Processed %d links (%d new, %d already present)",
            result.imported_links, result.created_links, result.skipped_links,
        )

    return result
