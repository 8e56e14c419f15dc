from __future__ import annotations

from typing import Any, Dict, Optional


class RecipeServiceError(Exception):
    """Base class for failures reported to API clients."""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class ValidationError(RecipeServiceError):
    status_code = 400


class InvalidIdentifier(RecipeServiceError):
    status_code = 400


class NotFound(RecipeServiceError):
    status_code = 404


class Unauthorized(RecipeServiceError):
    status_code = 403


class UpstreamError(RecipeServiceError):
    """The document store or media host call failed."""

    status_code = 500


__all__ = [
    "RecipeServiceError",
    "ValidationError",
    "InvalidIdentifier",
    "NotFound",
    "Unauthorized",
    "UpstreamError",
]
