from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .lib.records import CatalogItem, Comment, Recipe, RecipeStatus, UserProfile
from .lib.timestamps import to_iso


class CamelModel(BaseModel):
    """Base for API payloads: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class AuthorProfile(CamelModel):
    """Public projection of a user."""

    id: str
    name: str = ""
    email: str = ""
    photo_url: str | None = None
    followers_count: int = 0
    following_count: int = 0
    popularity_score: float = 0.0
    created_at: str
    is_ads_free: bool = False

    @classmethod
    def from_record(cls, user: UserProfile) -> "AuthorProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            photo_url=user.photo_url,
            followers_count=user.followers_count,
            following_count=user.following_count,
            popularity_score=user.popularity_score,
            created_at=to_iso(user.created_at),
            is_ads_free=user.is_ads_free,
        )


class FollowResponse(CamelModel):
    follower_id: str
    following_id: str
    success: bool = True


class CookListItem(CamelModel):
    profile: AuthorProfile
    recipes_count: int
    is_following: bool | None = Field(
        None, description="Whether the caller follows this cook; null when anonymous"
    )


class CookListResponse(CamelModel):
    items: list[CookListItem]


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------

class RecipeOut(CamelModel):
    id: str
    author_id: str
    title: str
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
    ratings_count: int = 0
    my_rating: int | None = None
    status: RecipeStatus = "published"
    created_at: str
    author: AuthorProfile | None = None

    @classmethod
    def from_record(
        cls,
        recipe: Recipe,
        author: AuthorProfile | None = None,
        my_rating: int | None = None,
    ) -> "RecipeOut":
        return cls(
            id=recipe.id,
            author_id=recipe.author_id,
            title=recipe.title,
            description=recipe.description,
            ingredients=recipe.ingredients,
            preparation_steps=recipe.preparation_steps,
            media_urls=recipe.media_urls,
            video_url=recipe.video_url,
            categories=recipe.categories,
            tags=recipe.tags,
            is_variation=recipe.is_variation,
            parent_recipe_id=recipe.parent_recipe_id,
            rating_avg=recipe.rating_avg,
            ratings_count=recipe.ratings_count,
            my_rating=my_rating,
            status=recipe.status,
            created_at=to_iso(recipe.created_at),
            author=author,
        )


class RecipePage(CamelModel):
    items: list[RecipeOut]
    next_cursor: str | None = None
    has_more: bool = False


class SearchResponse(RecipePage):
    """A recipe page plus the users whose name matched the query."""

    users: list[AuthorProfile] = Field(default_factory=list)


class RecipeCreateRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    ingredients: str | None = None
    preparation_steps: str | None = None
    media_urls: list[str] = Field(default_factory=list)
    video_url: str | None = None
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    status: RecipeStatus = "published"

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value


class RecipeUpdateRequest(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    ingredients: str | None = None
    preparation_steps: str | None = None
    media_urls: list[str] | None = None
    video_url: str | None = None
    categories: list[str] | None = None
    tags: list[str] | None = None
    status: RecipeStatus | None = None


class FavoritesRequest(CamelModel):
    ids: list[str] = Field(..., description="Recipe ids, in display order")
    query: str | None = None
    category_ids: list[str] | None = None
    tag_ids: list[str] | None = None
    limit: int | None = Field(None, ge=1)


class RecipeList(CamelModel):
    items: list[RecipeOut]


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

class RateRequest(CamelModel):
    stars: int = Field(..., ge=1, le=5, description="Stars from 1 to 5")


class RateResponse(CamelModel):
    recipe_id: str
    user_id: str
    stars: int
    rating_avg: float
    ratings_count: int


class MyRatingResponse(CamelModel):
    rated: bool
    stars: int | None = None


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentRequest(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)
    parent_id: str | None = None

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value


class CommentOut(CamelModel):
    """A comment with its nested replies.

    ``replies_count`` is the number of immediate replies, not the size of
    the whole subtree.
    """

    id: str
    recipe_id: str
    author_id: str
    text: str
    created_at: str
    parent_id: str | None = None
    author: AuthorProfile | None = None
    replies: list["CommentOut"] = Field(default_factory=list)
    replies_count: int = 0

    @classmethod
    def from_record(cls, comment: Comment) -> "CommentOut":
        return cls(
            id=comment.id,
            recipe_id=comment.recipe_id,
            author_id=comment.author_id,
            text=comment.text,
            created_at=to_iso(comment.created_at),
            parent_id=comment.parent_id,
        )


class CommentPage(CamelModel):
    items: list[CommentOut]
    next_cursor: str | None = None
    has_more: bool = False


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class CatalogListResponse(BaseModel):
    items: list[CatalogItem]
