from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Protocol

from .models import Recipe, UploadedImage

# Firestore auto-generated document ids: 20 characters drawn from [A-Za-z0-9].
RECIPE_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{20}$")


def is_valid_recipe_id(recipe_id: str) -> bool:
    return bool(recipe_id) and RECIPE_ID_PATTERN.fullmatch(recipe_id) is not None


class RecipeRepository(Protocol):
    """Protocol describing the behaviour required by the web layer."""

    def list_recipes(self) -> Iterable[Recipe]:
        """Return every stored recipe in store order."""

    def list_user_recipes(self, user_id: str) -> Iterable[Recipe]:
        """Return the recipes whose ``userId`` equals ``user_id``."""

    def get_recipe(self, recipe_id: str) -> Recipe:
        """Return a single recipe or raise :class:`KeyError` if missing."""

    def add_recipe(self, recipe: Recipe) -> str:
        """Persist a new recipe and return its store-assigned id.

        The ``id`` attribute of ``recipe`` is ignored.
        """

    def update_recipe(self, recipe_id: str, fields: Mapping[str, Any]) -> None:
        """Overwrite ``fields`` on an existing recipe.

        Raises :class:`KeyError` when no recipe matched at write time.
        """

    def delete_recipe(self, recipe_id: str) -> None:
        """Remove a recipe or raise :class:`KeyError` if nothing was deleted."""


class ImageHost(Protocol):
    """Protocol for the external media host receiving recipe images."""

    def upload_image(self, data: bytes, *, content_type: str, filename: str) -> UploadedImage:
        """Store the image and return its retrieval URL and object id."""


__all__ = ["ImageHost", "RecipeRepository", "RECIPE_ID_PATTERN", "is_valid_recipe_id"]
