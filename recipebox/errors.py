class RecipeBoxError(Exception):
    """Base class for errors raised by the recipe store."""


class ValidationError(RecipeBoxError):
    pass


class NotFound(RecipeBoxError):
    pass


class ConflictError(RecipeBoxError):
    pass


class IntegrityError(RecipeBoxError):
    """A bundle link points at a recipe or ingredient the bundle never defined."""


class StoreUnavailable(RecipeBoxError):
    pass
