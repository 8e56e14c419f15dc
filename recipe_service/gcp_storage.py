from __future__ import annotations

import logging
import os
import uuid
from datetime import timedelta
from typing import Any, Iterable, Mapping, Optional

from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore, storage
from google.cloud.firestore_v1.base_query import FieldFilter
from werkzeug.utils import secure_filename

from .models import Recipe, UploadedImage
from .storage import ImageHost, RecipeRepository

logger = logging.getLogger(__name__)

SIGNED_URL_EXPIRATION = timedelta(days=7)
DEFAULT_IMAGE_FOLDER = "recipe_images"


class FirestoreRecipeStorage(RecipeRepository):
    """Recipe documents kept in a Firestore collection.

    One client is created per storage instance and shared by every request;
    the client pools its own channels.
    """

    def __init__(
        self,
        *,
        project: Optional[str] = None,
        database: Optional[str] = None,
        collection_name: str = "recipes",
        client: Optional[firestore.Client] = None,
    ) -> None:
        self._collection_name = collection_name

        if client is None:
            client = firestore.Client(project=project, database=database)
        self._firestore_client = client
        self._collection = self._firestore_client.collection(collection_name)

    @classmethod
    def from_env(cls) -> "FirestoreRecipeStorage":
        """Build a storage instance from environment variables."""

        project = os.environ.get("GCP_PROJECT")
        database = os.environ.get("FIRESTORE_DATABASE")
        collection_name = os.environ.get("RECIPES_COLLECTION", "recipes")
        return cls(project=project, database=database, collection_name=collection_name)

    def list_recipes(self) -> Iterable[Recipe]:
        for doc in self._collection.stream():
            yield Recipe.from_document(doc.id, doc.to_dict() or {})

    def list_user_recipes(self, user_id: str) -> Iterable[Recipe]:
        query = self._collection.where(filter=FieldFilter("userId", "==", user_id))
        for doc in query.stream():
            yield Recipe.from_document(doc.id, doc.to_dict() or {})

    def get_recipe(self, recipe_id: str) -> Recipe:
        snapshot = self._collection.document(recipe_id).get()

        if not snapshot.exists:
            raise KeyError(f"Recipe '{recipe_id}' does not exist.")

        return Recipe.from_document(snapshot.id, snapshot.to_dict() or {})

    def add_recipe(self, recipe: Recipe) -> str:
        doc_ref = self._collection.document()
        doc_ref.set(recipe.to_document())
        logger.debug("Stored recipe %s in %s", doc_ref.id, self._collection_name)
        return doc_ref.id

    def update_recipe(self, recipe_id: str, fields: Mapping[str, Any]) -> None:
        # Quote each key so names containing dots overwrite a top-level field
        # instead of addressing a nested one.
        update_doc = {firestore.Client.field_path(key): value for key, value in fields.items()}

        try:
            self._collection.document(recipe_id).update(update_doc)
        except gcloud_exceptions.NotFound as exc:
            raise KeyError(f"Recipe '{recipe_id}' does not exist.") from exc

    def delete_recipe(self, recipe_id: str) -> None:
        option = self._firestore_client.write_option(exists=True)

        try:
            self._collection.document(recipe_id).delete(option=option)
        except gcloud_exceptions.NotFound as exc:
            raise KeyError(f"Recipe '{recipe_id}' does not exist.") from exc


class CloudStorageImageHost(ImageHost):
    """Media host backed by a Cloud Storage bucket."""

    def __init__(
        self,
        *,
        project: Optional[str] = None,
        bucket_name: Optional[str] = None,
        folder: str = DEFAULT_IMAGE_FOLDER,
        client: Optional[storage.Client] = None,
    ) -> None:
        self._bucket_name = bucket_name
        self._folder = folder.strip("/")

        if bucket_name:
            self._storage_client = client if client is not None else storage.Client(project=project)
            self._bucket = self._storage_client.bucket(bucket_name)
        else:
            self._storage_client = None
            self._bucket = None

    @classmethod
    def from_env(cls) -> "CloudStorageImageHost":
        project = os.environ.get("GCP_PROJECT")
        bucket_name = os.environ.get("GCS_BUCKET")
        folder = os.environ.get("IMAGE_FOLDER", DEFAULT_IMAGE_FOLDER)
        return cls(project=project, bucket_name=bucket_name, folder=folder)

    def upload_image(self, data: bytes, *, content_type: str, filename: str) -> UploadedImage:
        if not self._bucket:
            raise RuntimeError("A Cloud Storage bucket must be configured to upload images.")

        blob_name = self._build_blob_name(filename)
        blob = self._bucket.blob(blob_name)
        blob.upload_from_string(data, content_type=content_type)
        logger.info("Uploaded %d bytes to gs://%s/%s", len(data), self._bucket_name, blob_name)

        return UploadedImage(url=self._get_image_url(blob), public_id=blob_name)

    def _build_blob_name(self, filename: str) -> str:
        safe = secure_filename(filename or "")
        unique = uuid.uuid4().hex
        name = f"{unique}_{safe}" if safe else unique
        return f"{self._folder}/{name}" if self._folder else name

    def _get_image_url(self, blob: storage.Blob) -> str:
        try:
            return blob.generate_signed_url(
                version="v4", method="GET", expiration=SIGNED_URL_EXPIRATION
            )
        except (ValueError, TypeError, AttributeError, auth_exceptions.GoogleAuthError):
            # Signing needs credentials with a private key or IAM signBlob;
            # without them the object's public URL is returned unchanged.
            return blob.public_url


__all__ = ["CloudStorageImageHost", "FirestoreRecipeStorage"]
