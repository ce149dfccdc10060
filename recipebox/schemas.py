from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecipeBase(BaseModel):
    name: str = Field(
        ..., json_schema_extra={"example": "Simple Pancakes"}
    )
    method: str = Field(
        ...,
        json_schema_extra={
            "example": "Mix dry ingredients, add wet ingredients, "
            "cook on skillet until golden."
        },
    )
    photo_reference: Optional[str] = None
    ingredients: List[str] = Field(
        default_factory=list,
        json_schema_extra={"example": ["200g plain flour", "2 eggs", "milk"]},
    )


class RecipeCreate(RecipeBase):
    id: Optional[str] = None


class Recipe(RecipeBase):
    id: str
    filterable_ingredient_names: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RecipePage(BaseModel):
    items: List[Recipe]
    total: int
    page: int
    page_size: int
    total_pages: int


# Bundle wire format: flat entity sets tagged with the ids they held in the
# store they were exported from.

class BundleRecipe(BaseModel):
    id: str
    name: str
    method: str = ""
    photo_reference: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BundleIngredient(BaseModel):
    id: str
    name: str
    # informational only; recomputed from `name` on import
    canonical_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BundleLink(BaseModel):
    id: Optional[str] = None
    recipe_id: str
    ingredient_id: str
    quantity_text: Optional[str] = None
    sort_order: int = 0


class Bundle(BaseModel):
    recipes: List[BundleRecipe] = Field(default_factory=list)
    ingredients: List[BundleIngredient] = Field(default_factory=list)
    recipe_ingredients: List[BundleLink] = Field(default_factory=list)


class ImportResult(BaseModel):
    imported_recipes: int = 0
    imported_ingredients: int = 0
    imported_links: int = 0
    created_recipes: int = 0
    created_ingredients: int = 0
    created_links: int = 0
    skipped_links: int = 0


class VerificationReport(BaseModel):
    recipes: int
    ingredients: int
    recipe_ingredients: int
    orphaned_links: int

    @property
    def ok(self) -> bool:
        return self.orphaned_links == 0


class MigrationReport(BaseModel):
    legacy_records: int
    dry_run: bool
    bundle_path: Optional[str] = None
    result: ImportResult
    verification: VerificationReport
