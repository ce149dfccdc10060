"""Recipe listing: free-text search, ingredient filters and pagination.

Ingredient terms combine with AND: each term gets its own join pair against
``recipe_ingredients``/``ingredients``, so a recipe is only kept when every
term matches one of its ingredients. Free text, when given, is ANDed with
the ingredient terms as well.
"""
import logging
import math

from sqlalchemy import and_, distinct, func, or_
from sqlalchemy.orm import Session, aliased

from . import models, schemas
from .config import get_settings
from .crud import SEARCH_WORD_RE, ingredient_lines, to_schema
from .db import transaction
from .normalize import normalize_ingredient

logger = logging.getLogger(__name__)


def normalize_terms(terms, normalizer=normalize_ingredient):
    out = []
    for term in terms or []:
        primary = normalizer(term).primary
        if primary and primary not in out:
            out.append(primary)
    return out


def _canonical_matches(column, term: str):
    # whole-word match: "onion" matches "onion" and "red onion", not "onions"
    return or_(
        column == term,
        column.startswith(term + " ", autoescape=True),
        column.endswith(" " + term, autoescape=True),
        column.contains(" " + term + " ", autoescape=True),
    )


def _apply_filters(q, words, terms):
    for word in words:
        q = q.filter(
            or_(
                models.Recipe.search_text.startswith(word, autoescape=True),
                models.Recipe.search_text.contains(" " + word, autoescape=True),
            )
        )
    for i, term in enumerate(terms):
        link = aliased(models.RecipeIngredient, name=f"ri_f{i}")
        ingredient = aliased(models.Ingredient, name=f"i_f{i}")
        q = q.join(link, link.recipe_id == models.Recipe.id).join(
            ingredient,
            and_(
                ingredient.id == link.ingredient_id,
                _canonical_matches(ingredient.canonical_name, term),
            ),
        )
    return q


def search_recipes(
    db: Session,
    query: str | None = None,
    ingredient_terms=None,
    page: int = 1,
    page_size: int | None = None,
    normalizer=normalize_ingredient,
    timeout: float | None = None,
) -> schemas.RecipePage:
    settings = get_settings()
    page = max(page or 1, 1)
    if not page_size or page_size < 1:
        page_size = settings.default_page_size
    page_size = min(page_size, settings.max_page_size)

    words = SEARCH_WORD_RE.findall((query or "").lower())
    terms = normalize_terms(ingredient_terms, normalizer)
    logger.debug("Searching recipes: words=%s terms=%s page=%d", words, terms, page)

    items = []
    with transaction(db, timeout=timeout):
        count_q = _apply_filters(
            db.query(func.count(distinct(models.Recipe.id))).select_from(
                models.Recipe
            ),
            words,
            terms,
        )
        total = count_q.scalar() or 0

        if total:
            rows = (
                _apply_filters(db.query(models.Recipe), words, terms)
                .distinct()
                .order_by(models.Recipe.updated_at.desc(), models.Recipe.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
                .all()
            )
            lines = ingredient_lines(db, [r.id for r in rows])
            items = [to_schema(r, lines[r.id], normalizer) for r in rows]

    return schemas.RecipePage(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )
