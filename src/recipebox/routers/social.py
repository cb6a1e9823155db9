"""Social router – profiles, follows and recommended cooks."""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response, status

from ..dependencies import get_cooks_aggregator, get_recipe_service, get_social_service
from ..lib.cooks import RecommendedCooksAggregator
from ..lib.pagination import PageRequest
from ..lib.recipes import RecipeService
from ..lib.social import SocialService
from ..models import AuthorProfile, CookListResponse, FollowResponse, RecipePage
from ..security import CurrentUserId, OptionalUserId, verify_api_key

router = APIRouter(tags=["social"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)

Social = Annotated[SocialService, Depends(get_social_service)]


@router.get("/users/{user_id}/profile", response_model=AuthorProfile)
async def users_profile(user_id: str, social: Social) -> AuthorProfile:
    return await social.get_profile(user_id)


@router.get("/users/{user_id}/recipes", response_model=RecipePage)
async def users_recipes(
    user_id: str,
    caller_id: OptionalUserId,
    service: RecipeService = Depends(get_recipe_service),
    limit: str | None = Query(None),
    cursor: str | None = Query(None),
    recipe_status: Literal["published", "draft"] | None = Query(
        None, alias="status", description="Only the author may list drafts"
    ),
) -> RecipePage:
    page = PageRequest.from_params(limit, cursor)
    return await service.by_author(user_id, caller_id, page, recipe_status)


@router.post("/follow/{user_id}", response_model=FollowResponse)
async def follow_user(user_id: str, social: Social, caller_id: CurrentUserId) -> FollowResponse:
    return await social.follow(caller_id, user_id)


@router.delete("/follow/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(user_id: str, social: Social, caller_id: CurrentUserId) -> Response:
    await social.unfollow(caller_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/cooks/recommended", response_model=CookListResponse)
async def recommended_cooks(
    caller_id: OptionalUserId,
    cooks: RecommendedCooksAggregator = Depends(get_cooks_aggregator),
    query: str | None = Query(None, description="Cook name or recipe title"),
    limit: str | None = Query(None, description="Max cooks (default 20, max 50)"),
) -> CookListResponse:
    return await cooks.recommend(caller_id, query=query, limit=limit)
