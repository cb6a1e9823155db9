"""Typed records for the documents the core reads and writes.

Stored documents use camelCase field names; records expose snake_case
attributes with camelCase aliases. Conversion from a :class:`StoredDocument`
validates the payload, so malformed documents are rejected at the store
boundary instead of leaking optional-by-convention keys into the services.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .store import StoredDocument, StoreError
from .timestamps import to_datetime

RECIPES = "recipes"
RATINGS = "ratings"
COMMENTS = "comments"
FOLLOWS = "follows"
USERS = "users"
CATEGORIES = "categories"
TAGS = "tags"

PUBLISHED = "published"
DRAFT = "draft"

RecipeStatus = Literal["published", "draft"]


def rating_id(recipe_id: str, user_id: str) -> str:
    """Document id of the single rating a user may hold on a recipe."""
    return f"{recipe_id}_{user_id}"


def follow_id(follower_id: str, following_id: str) -> str:
    return f"{follower_id}_{following_id}"


class Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str

    @classmethod
    def from_document(cls, doc: StoredDocument):
        try:
            return cls.model_validate({**doc.data, "id": doc.id})
        except ValidationError as exc:
            raise StoreError(f"Malformed {cls.__name__} document {doc.id!r}") from exc

    def to_store(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


class _Timestamped(Record):
    created_at: datetime | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value):
        return to_datetime(value)


class Recipe(_Timestamped):
    author_id: str
    title: str = ""
    title_lower: str | None = None
    description: str = ""
    ingredients: str | None = None
    preparation_steps: str | None = None
    media_urls: list[str] = Field(default_factory=list)
    video_url: str | None = None
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_variation: bool = False
    parent_recipe_id: str | None = None
    rating_avg: float = 0.0
    ratings_count: int = Field(0, ge=0)
    popularity_score: float = 0.0
    status: RecipeStatus = PUBLISHED

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value):
        return value or PUBLISHED

    @property
    def searchable_title(self) -> str:
        return self.title_lower or self.title.lower()

    def matches_title(self, needle: str) -> bool:
        """Case-insensitive substring test; ``needle`` is already lowercased."""
        return needle in self.searchable_title

    def has_any_category(self, ids) -> bool:
        wanted = set(ids)
        return any(c in wanted for c in self.categories)

    def has_any_tag(self, ids) -> bool:
        wanted = set(ids)
        return any(t in wanted for t in self.tags)

    def visible_to(self, user_id: str | None) -> bool:
        return self.status != DRAFT or self.author_id == user_id


class Rating(Record):
    recipe_id: str
    user_id: str
    stars: int = Field(..., ge=1, le=5)


class Comment(_Timestamped):
    recipe_id: str
    author_id: str
    text: str = ""
    parent_id: str | None = None


class Follow(_Timestamped):
    follower_id: str
    following_id: str


class UserProfile(_Timestamped):
    name: str = ""
    email: str = ""
    photo_url: str | None = None
    followers_count: int = 0
    following_count: int = 0
    popularity_score: float = 0.0
    is_ads_free: bool = False
    deleted_at: datetime | None = None

    @field_validator("deleted_at", mode="before")
    @classmethod
    def _coerce_deleted_at(cls, value):
        return to_datetime(value)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class CatalogItem(BaseModel):
    """A category or tag: a stable id plus a ``localeCode -> label`` map."""

    id: str
    labels: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, doc: StoredDocument) -> "CatalogItem":
        data = dict(doc.data)
        labels = data.pop("labels", None)
        if not isinstance(labels, dict):
            # Flat documents keep one key per locale next to the id.
            labels = {k: v for k, v in data.items() if k != "id" and isinstance(v, str)}
        try:
            return cls(id=str(doc.data.get("id") or doc.id), labels=labels)
        except ValidationError as exc:
            raise StoreError(f"Malformed catalog document {doc.id!r}") from exc
