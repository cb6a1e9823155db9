"""FastAPI dependencies handing the application's store to the services."""

from fastapi import Request

from .lib.comments import CommentService
from .lib.cooks import RecommendedCooksAggregator
from .lib.ratings import RatingAggregator
from .lib.recipes import RecipeService
from .lib.social import SocialService
from .lib.store import DocumentStore


def get_store(request: Request) -> DocumentStore:
    # Attached in the lifespan in production; tests set `app.state.store`.
    return request.app.state.store


def get_recipe_service(request: Request) -> RecipeService:
    return RecipeService(get_store(request))


def get_rating_aggregator(request: Request) -> RatingAggregator:
    return RatingAggregator(get_store(request))


def get_comment_service(request: Request) -> CommentService:
    return CommentService(get_store(request))


def get_social_service(request: Request) -> SocialService:
    return SocialService(get_store(request))


def get_cooks_aggregator(request: Request) -> RecommendedCooksAggregator:
    return RecommendedCooksAggregator(get_store(request))
