import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Naive values are taken to be UTC already; aware ones are converted."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timestamps stored as UTC and read back timezone-aware.

    SQLite keeps no offset, so values are converted to UTC before they are
    written.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), index=True, nullable=False)
    method = Column(Text, nullable=False)
    photo_reference = Column(String(255), nullable=True)
    # lower-cased word tokens of name + method, rewritten on every write
    search_text = Column(Text, nullable=False, default="")
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(
        UTCDateTime, index=True, nullable=False, default=utcnow
    )

    links = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        order_by="RecipeIngredient.sort_order",
    )


class Ingredient(Base):
    __tablename__ = "ingredients"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)
    # always computed by the store from `name`, never taken from callers
    canonical_name = Column(String(255), index=True, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (UniqueConstraint("recipe_id", "ingredient_id"),)

    id = Column(String(36), primary_key=True, default=new_id)
    recipe_id = Column(
        String(36), ForeignKey("recipes.id"), index=True, nullable=False
    )
    ingredient_id = Column(
        String(36), ForeignKey("ingredients.id"), index=True, nullable=False
    )
    quantity_text = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="links")
    ingredient = relationship("Ingredient")
