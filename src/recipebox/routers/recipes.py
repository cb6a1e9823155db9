"""Recipes router – feed, recipe pages, ratings and comments.

GET /recipes/feed
    Published recipes ranked by popularity, then recency.

GET /recipes/{id}/comments
    A page of root comments with their full reply trees.

POST /recipes/{id}/rate
    Rate (or re-rate) a recipe; returns the refreshed aggregate.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from ..dependencies import (
    get_comment_service,
    get_rating_aggregator,
    get_recipe_service,
)
from ..lib.comments import CommentService
from ..lib.pagination import PageRequest
from ..lib.planner import FilterSet
from ..lib.ratings import RatingAggregator
from ..lib.recipes import RecipeService
from ..models import (
    CommentOut,
    CommentPage,
    CommentRequest,
    FavoritesRequest,
    MyRatingResponse,
    RateRequest,
    RateResponse,
    RecipeCreateRequest,
    RecipeList,
    RecipeOut,
    RecipePage,
    RecipeUpdateRequest,
)
from ..security import CurrentUserId, OptionalUserId, verify_api_key

router = APIRouter(prefix="/recipes", tags=["recipes"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)

Recipes = Annotated[RecipeService, Depends(get_recipe_service)]
Ratings = Annotated[RatingAggregator, Depends(get_rating_aggregator)]
Comments = Annotated[CommentService, Depends(get_comment_service)]


@router.get("/feed", response_model=RecipePage)
async def recipes_feed(
    service: Recipes,
    user_id: OptionalUserId,
    limit: str | None = Query(None, description="Page size (default 20, max 50)"),
    cursor: str | None = Query(None, description="Id of the last recipe of the previous page"),
) -> RecipePage:
    return await service.feed(PageRequest.from_params(limit, cursor), user_id)


@router.post("", response_model=RecipeOut, status_code=status.HTTP_201_CREATED)
async def recipes_create(
    payload: RecipeCreateRequest,
    service: Recipes,
    user_id: CurrentUserId,
) -> RecipeOut:
    return await service.create(user_id, payload)


@router.post("/favorites", response_model=RecipeList)
async def recipes_favorites(
    payload: FavoritesRequest,
    service: Recipes,
    user_id: OptionalUserId,
) -> RecipeList:
    """Several recipes by id, in request order, optionally filtered."""
    filters = None
    if payload.query or payload.category_ids or payload.tag_ids:
        filters = FilterSet.from_params(payload.query, payload.category_ids, payload.tag_ids)
    items = await service.get_by_ids(payload.ids, user_id, filters=filters, limit=payload.limit)
    return RecipeList(items=items)


@router.get("/{recipe_id}", response_model=RecipeOut)
async def recipes_get(recipe_id: str, service: Recipes, user_id: OptionalUserId) -> RecipeOut:
    """A single recipe. Drafts are only visible to their author."""
    return await service.get_by_id(recipe_id, user_id)


@router.patch("/{recipe_id}", response_model=RecipeOut)
async def recipes_update(
    recipe_id: str,
    payload: RecipeUpdateRequest,
    service: Recipes,
    user_id: CurrentUserId,
) -> RecipeOut:
    return await service.update(recipe_id, user_id, payload)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def recipes_delete(recipe_id: str, service: Recipes, user_id: CurrentUserId) -> Response:
    await service.delete(recipe_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{recipe_id}", response_model=RecipeOut, status_code=status.HTTP_201_CREATED)
async def recipes_create_variation(
    recipe_id: str,
    payload: RecipeCreateRequest,
    service: Recipes,
    user_id: CurrentUserId,
) -> RecipeOut:
    return await service.create_variation(recipe_id, user_id, payload)


@router.get("/{recipe_id}/rate", response_model=MyRatingResponse)
async def recipes_my_rating(recipe_id: str, ratings: Ratings, user_id: CurrentUserId) -> MyRatingResponse:
    rating = await ratings.get_my_rating(recipe_id, user_id)
    if rating is None:
        return MyRatingResponse(rated=False)
    return MyRatingResponse(rated=True, stars=rating.stars)


@router.post("/{recipe_id}/rate", response_model=RateResponse)
async def recipes_rate(
    recipe_id: str,
    payload: RateRequest,
    ratings: Ratings,
    user_id: CurrentUserId,
) -> RateResponse:
    return await ratings.rate(recipe_id, user_id, payload.stars)


@router.get("/{recipe_id}/comments", response_model=CommentPage)
async def recipes_comments(
    recipe_id: str,
    comments: Comments,
    user_id: OptionalUserId,
    limit: str | None = Query(None, description="Root comments per page (default 20, max 50)"),
    cursor: str | None = Query(None, description="Id of the last root comment of the previous page"),
) -> CommentPage:
    return await comments.list_comments(recipe_id, PageRequest.from_params(limit, cursor), user_id)


@router.post("/{recipe_id}/comment", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def recipes_comment(
    recipe_id: str,
    payload: CommentRequest,
    comments: Comments,
    user_id: CurrentUserId,
) -> CommentOut:
    """Comment on a recipe, or reply to one of its comments via ``parentId``."""
    return await comments.create_comment(recipe_id, user_id, payload.text, payload.parent_id)
