"""Search router – filtered recipe listings.

GET /search
    Title substring and/or category/tag filters. Without any filter the
    result is empty. A query also matches user names; those are listed on
    the first page only.

GET /search/strategies
    List the registered listing strategies.
"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..dependencies import get_recipe_service, get_social_service
from ..lib.pagination import PageRequest
from ..lib.planner import FilterSet, list_strategies
from ..lib.recipes import RecipeService
from ..lib.social import SocialService
from ..models import SearchResponse
from ..security import OptionalUserId, verify_api_key

router = APIRouter(tags=["search"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)


class StrategyListResponse(BaseModel):
    """Lists available listing strategy names."""

    strategies: list[str]


@router.get("/search/strategies", response_model=StrategyListResponse)
async def search_list_strategies() -> StrategyListResponse:
    return StrategyListResponse(strategies=list_strategies())


@router.get("/search", response_model=SearchResponse)
async def search_recipes(
    user_id: OptionalUserId,
    service: RecipeService = Depends(get_recipe_service),
    social: SocialService = Depends(get_social_service),
    query: str | None = Query(None, description="Part of a recipe title or user name"),
    category_ids: str | None = Query(
        None, alias="categoryIds", description="Comma-separated category ids (max 30)"
    ),
    tag_ids: str | None = Query(
        None, alias="tagIds", description="Comma-separated tag ids (max 30)"
    ),
    limit: str | None = Query(None, description="Page size (default 20, max 50)"),
    cursor: str | None = Query(None, description="Id of the last recipe of the previous page"),
) -> SearchResponse:
    filters = FilterSet.from_params(query, category_ids, tag_ids)
    page = PageRequest.from_params(limit, cursor)
    recipes = await service.list_filtered(filters, page, user_id)
    users = []
    if filters.has_query and page.cursor is None:
        users = await social.search_users(filters.query, page.limit)
    return SearchResponse(
        items=recipes.items,
        next_cursor=recipes.next_cursor,
        has_more=recipes.has_more,
        users=users,
    )
