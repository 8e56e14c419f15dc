from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

REQUIRED_FIELDS = ("userId", "name", "ingredients", "instructions")
OPTIONAL_FIELDS = ("prepTime", "cookTime", "servings", "cuisineType", "difficulty", "imageUrl")

# Maintained by the service itself; never taken from an update payload.
MANAGED_FIELDS = ("id", "createdAt", "updatedAt")


@dataclass
class Recipe:
    """Domain object representing a stored recipe."""

    id: str
    user_id: str
    name: str
    ingredients: Any
    instructions: Any
    prep_time: str = ""
    cook_time: str = ""
    servings: str = ""
    cuisine_type: str = ""
    difficulty: str = ""
    image_url: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Recipe":
        known = set(REQUIRED_FIELDS) | set(OPTIONAL_FIELDS) | set(MANAGED_FIELDS)
        return cls(
            id=doc_id,
            user_id=data.get("userId", ""),
            name=data.get("name", ""),
            ingredients=data.get("ingredients"),
            instructions=data.get("instructions"),
            prep_time=data.get("prepTime", ""),
            cook_time=data.get("cookTime", ""),
            servings=data.get("servings", ""),
            cuisine_type=data.get("cuisineType", ""),
            difficulty=data.get("difficulty", ""),
            image_url=data.get("imageUrl", ""),
            created_at=_as_datetime(data.get("createdAt")),
            updated_at=_as_datetime(data.get("updatedAt")),
            extra={key: value for key, value in data.items() if key not in known},
        )

    def to_document(self) -> Dict[str, Any]:
        """Return the stored field layout, without the document id."""

        doc = dict(self.extra)
        doc.update(
            {
                "userId": self.user_id,
                "name": self.name,
                "ingredients": self.ingredients,
                "instructions": self.instructions,
                "prepTime": self.prep_time,
                "cookTime": self.cook_time,
                "servings": self.servings,
                "cuisineType": self.cuisine_type,
                "difficulty": self.difficulty,
                "imageUrl": self.image_url,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return doc

    def to_json(self) -> Dict[str, Any]:
        doc = self.to_document()
        doc["id"] = self.id
        for key in ("createdAt", "updatedAt"):
            if isinstance(doc[key], datetime):
                doc[key] = doc[key].isoformat()
        return doc


@dataclass
class UploadedImage:
    """Result of handing an image to the media host."""

    url: str
    public_id: str


def _as_datetime(value: Any) -> Optional[datetime]:
    return value if isinstance(value, datetime) else None


__all__ = ["Recipe", "UploadedImage", "REQUIRED_FIELDS", "OPTIONAL_FIELDS", "MANAGED_FIELDS"]
