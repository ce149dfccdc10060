"""One-time migration off the legacy store, and the store verification pass."""
import logging
from pathlib import Path

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from . import models, schemas
from .bundle import dump_bundle, import_bundle
from .db import transaction
from .legacy import load_legacy_records, serialize_legacy
from .normalize import normalize_ingredient, split_quantity

logger = logging.getLogger(__name__)

BUNDLE_FILENAME = "bundle.json"


def verify_store(db: Session) -> schemas.VerificationReport:
    """Recount rows and look for links whose recipe or ingredient is gone."""
    with transaction(db):
        recipes = db.query(func.count(models.Recipe.id)).scalar()
        ingredients = db.query(func.count(models.Ingredient.id)).scalar()
        links = db.query(func.count(models.RecipeIngredient.id)).scalar()
        orphaned = (
            db.query(func.count(models.RecipeIngredient.id))
            .select_from(models.RecipeIngredient)
            .outerjoin(
                models.Recipe, models.Recipe.id == models.RecipeIngredient.recipe_id
            )
            .outerjoin(
                models.Ingredient,
                models.Ingredient.id == models.RecipeIngredient.ingredient_id,
            )
            .filter(or_(models.Recipe.id.is_(None), models.Ingredient.id.is_(None)))
            .scalar()
        )

    report = schemas.VerificationReport(
        recipes=recipes,
        ingredients=ingredients,
        recipe_ingredients=links,
        orphaned_links=orphaned,
    )
    if report.ok:
        logger.info("Store verified: %s", report.model_dump())
    else:
        logger.error("Store has %d orphaned recipe-ingredient links", orphaned)
    return report


def export_legacy(path, export_dir, splitter=split_quantity, normalizer=normalize_ingredient):
    """Serialize the legacy store to ``<export_dir>/bundle.json`` without
    touching the database."""
    records = load_legacy_records(path)
    bundle = serialize_legacy(records, splitter, normalizer)
    return dump_bundle(bundle, Path(export_dir) / BUNDLE_FILENAME)


def migrate_legacy(
    db: Session,
    path,
    dry_run: bool = False,
    export_dir=None,
    splitter=split_quantity,
    normalizer=normalize_ingredient,
    timeout: float | None = None,
) -> schemas.MigrationReport:
    records = load_legacy_records(path)
    logger.info("Loaded %d legacy records from %s", len(records), path)
    bundle = serialize_legacy(records, splitter, normalizer)

    bundle_path = None
    if export_dir:
        bundle_path = str(dump_bundle(bundle, Path(export_dir) / BUNDLE_FILENAME))
        logger.info("Wrote intermediate bundle to %s", bundle_path)

    result = import_bundle(db, bundle, normalizer, dry_run=dry_run, timeout=timeout)
    if dry_run:
        logger.info("Dry run: import rolled back")
    verification = verify_store(db)

    return schemas.MigrationReport(
        legacy_records=len(records),
        dry_run=dry_run,
        bundle_path=bundle_path,
        result=result,
        verification=verification,
    )
