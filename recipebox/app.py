from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import bundle, crud, schemas, search
from .config import configure_logging, get_settings
from .db import SessionLocal, init_db
from .errors import (
    ConflictError,
    IntegrityError,
    NotFound,
    RecipeBoxError,
    StoreUnavailable,
    ValidationError,
)
from .photos import resolve_photo_reference


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize logging and DB once at startup
    configure_logging()
    init_db()
    yield


app = FastAPI(lifespan=lifespan)
# Stock-photo collaborator: a callable `query -> image reference`, or None
app.state.photo_lookup = None

# Allow CORS for API clients (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 400,
    NotFound: 404,
    ConflictError: 409,
    IntegrityError: 422,
    StoreUnavailable: 503,
}


@app.exception_handler(RecipeBoxError)
async def recipebox_error_handler(request: Request, exc: RecipeBoxError):
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.get("/api/recipes", response_model=schemas.RecipePage)
def list_recipes(
    q: str | None = None,
    tags: str | None = None,
    page: int = 1,
    page_size: int | None = None,
    db: Session = Depends(get_db),
):
    terms = [t for t in (tags or "").split(",") if t.strip()]
    return search.search_recipes(
        db, query=q, ingredient_terms=terms, page=page, page_size=page_size
    )


@app.post("/api/recipes", response_model=schemas.Recipe, status_code=201)
def create_recipe(
    request: Request, recipe: schemas.RecipeCreate, db: Session = Depends(get_db)
):
    lookup = request.app.state.photo_lookup
    if not recipe.photo_reference and lookup is not None:
        recipe.photo_reference = resolve_photo_reference(
            lookup, recipe.name, get_settings().placeholder_image
        )
    return crud.create_recipe(db, recipe)


@app.get("/api/recipes/{recipe_id}", response_model=schemas.Recipe)
def get_recipe(recipe_id: str, db: Session = Depends(get_db)):
    return crud.get_recipe(db, recipe_id)


@app.put("/api/recipes/{recipe_id}", response_model=schemas.Recipe)
def update_recipe(
    recipe_id: str, recipe: schemas.RecipeCreate, db: Session = Depends(get_db)
):
    return crud.update_recipe(db, recipe_id, recipe)


@app.delete("/api/recipes/{recipe_id}", status_code=204)
def delete_recipe(recipe_id: str, db: Session = Depends(get_db)):
    crud.delete_recipe(db, recipe_id)
    return Response(status_code=204)


@app.get("/api/ingredients", response_model=List[str])
def autocomplete_ingredients(q: str = "", db: Session = Depends(get_db)):
    return crud.suggest_ingredients(db, q)


@app.get("/api/admin/export", response_model=schemas.Bundle)
def export_data(db: Session = Depends(get_db)):
    return bundle.export_bundle(db)


@app.post("/api/admin/import", response_model=schemas.ImportResult)
def import_data(data: schemas.Bundle, db: Session = Depends(get_db)):
    return bundle.import_bundle(db, data)
