from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .errors import (
    InvalidIdentifier,
    NotFound,
    RecipeServiceError,
    Unauthorized,
    UpstreamError,
    ValidationError,
)
from .gcp_storage import CloudStorageImageHost, FirestoreRecipeStorage
from .models import MANAGED_FIELDS, REQUIRED_FIELDS, Recipe
from .storage import ImageHost, RecipeRepository, is_valid_recipe_id

LIVENESS_MESSAGE = "Recipe App Backend is Running"


def create_app(
    storage: Optional[RecipeRepository] = None,
    image_host: Optional[ImageHost] = None,
) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    storage:
        Optional recipe repository. When ``None`` the application will use
        :class:`FirestoreRecipeStorage` configured through environment variables.
    image_host:
        Optional media host for uploads. Defaults to
        :class:`CloudStorageImageHost` configured through environment variables.
    """

    app = Flask(__name__)
    CORS(app, send_wildcard=True)

    if storage is None:
        storage = FirestoreRecipeStorage.from_env()
    if image_host is None:
        image_host = CloudStorageImageHost.from_env()
    app.config["RECIPE_STORAGE"] = storage
    app.config["IMAGE_HOST"] = image_host

    @app.errorhandler(RecipeServiceError)
    def handle_service_error(exc: RecipeServiceError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"message": exc.description}), exc.code

    @app.get("/")
    def index():
        return LIVENESS_MESSAGE, 200, {"Content-Type": "text/plain; charset=utf-8"}

    @app.post("/api/recipes")
    @_upstream_failure("Failed to add recipe")
    def create_recipe():
        storage_backend: RecipeRepository = app.config["RECIPE_STORAGE"]
        body = _json_body()

        if any(_is_blank(body.get(name)) for name in REQUIRED_FIELDS):
            raise ValidationError(f"Missing required fields: {', '.join(REQUIRED_FIELDS)}")

        now = _utcnow()
        recipe = Recipe(
            id="",
            user_id=body["userId"],
            name=body["name"],
            ingredients=body["ingredients"],
            instructions=body["instructions"],
            prep_time=body.get("prepTime") or "",
            cook_time=body.get("cookTime") or "",
            servings=body.get("servings") or "",
            cuisine_type=body.get("cuisineType") or "",
            difficulty=body.get("difficulty") or "",
            image_url=body.get("imageUrl") or "",
            created_at=now,
            updated_at=now,
        )
        recipe_id = storage_backend.add_recipe(recipe)
        current_app.logger.info("Recipe %s added for user %s", recipe_id, recipe.user_id)

        return jsonify({"message": "Recipe added successfully!", "recipeId": recipe_id}), 201

    @app.get("/api/recipes/public")
    @_upstream_failure("Failed to fetch public recipes")
    def list_public_recipes():
        storage_backend: RecipeRepository = app.config["RECIPE_STORAGE"]
        recipes = [recipe.to_json() for recipe in storage_backend.list_recipes()]
        return jsonify(recipes), 200

    # An empty segment never reaches the route below; this one answers it.
    @app.get("/api/recipes/user/")
    @app.get("/api/recipes/user/<user_id>")
    @_upstream_failure("Failed to fetch user recipes")
    def list_user_recipes(user_id: str = ""):
        storage_backend: RecipeRepository = app.config["RECIPE_STORAGE"]

        if not user_id:
            raise ValidationError("User ID is required")

        recipes = [recipe.to_json() for recipe in storage_backend.list_user_recipes(user_id)]
        return jsonify(recipes), 200

    @app.put("/api/recipes/<recipe_id>")
    @_upstream_failure("Failed to update recipe")
    def update_recipe(recipe_id: str):
        storage_backend: RecipeRepository = app.config["RECIPE_STORAGE"]
        body = _json_body()
        user_id = body.get("userId")

        _load_owned_recipe(storage_backend, recipe_id, user_id, action="update")

        fields = {
            key: value
            for key, value in body.items()
            if key != "userId" and key not in MANAGED_FIELDS
        }
        fields["updatedAt"] = _utcnow()

        try:
            storage_backend.update_recipe(recipe_id, fields)
        except KeyError:
            raise NotFound("Recipe not found or no changes made") from None

        current_app.logger.info("Recipe %s updated by user %s", recipe_id, user_id)
        return jsonify({"message": "Recipe updated successfully!"}), 200

    @app.delete("/api/recipes/<recipe_id>")
    @_upstream_failure("Failed to delete recipe")
    def delete_recipe(recipe_id: str):
        storage_backend: RecipeRepository = app.config["RECIPE_STORAGE"]
        user_id = _json_body().get("userId")

        _load_owned_recipe(storage_backend, recipe_id, user_id, action="delete")

        try:
            storage_backend.delete_recipe(recipe_id)
        except KeyError:
            raise NotFound("Recipe not found") from None

        current_app.logger.info("Recipe %s deleted by user %s", recipe_id, user_id)
        return jsonify({"message": "Recipe deleted successfully!"}), 200

    @app.post("/api/upload-image")
    @_upstream_failure("Image upload failed")
    def upload_image():
        host: ImageHost = app.config["IMAGE_HOST"]
        image = request.files.get("image")

        if not image or not image.filename:
            raise ValidationError("No image file provided")

        uploaded = host.upload_image(
            image.read(),
            content_type=image.mimetype or "application/octet-stream",
            filename=image.filename,
        )
        return jsonify({"imageUrl": uploaded.url, "publicId": uploaded.public_id}), 200

    return app


def _upstream_failure(message: str) -> Callable:
    """Report anything the view did not anticipate as an :class:`UpstreamError`."""

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any):
            try:
                return view(*args, **kwargs)
            except (RecipeServiceError, HTTPException):
                raise
            except Exception as exc:
                current_app.logger.exception(message)
                raise UpstreamError(message, str(exc)) from exc

        return wrapper

    return decorator


def _load_owned_recipe(
    storage_backend: RecipeRepository, recipe_id: str, user_id: Any, *, action: str
) -> Recipe:
    if not is_valid_recipe_id(recipe_id):
        raise InvalidIdentifier("Invalid Recipe ID format")

    try:
        recipe = storage_backend.get_recipe(recipe_id)
    except KeyError:
        raise NotFound("Recipe not found") from None

    if recipe.user_id != user_id:
        raise Unauthorized(f"Unauthorized: You can only {action} your own recipes.")

    return recipe


def _is_blank(value: Any) -> bool:
    # Empty lists and objects still count as given.
    if value is None or value == "":
        return True
    return isinstance(value, (bool, int, float)) and not value


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["create_app", "Recipe"]
