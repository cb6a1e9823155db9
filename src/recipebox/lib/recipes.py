"""Recipe reads and the thin write path around them.

Drafts are visible to their author only; to everybody else a draft is
indistinguishable from a missing recipe. Listings (feed, author pages,
filtered search) only ever return published recipes, except an author
looking at their own drafts.

Aggregate fields (``ratingAvg``, ``ratingsCount``) are initialised here and
afterwards written only by :class:`~recipebox.lib.ratings.RatingAggregator`.
"""

import logging
import uuid

from ..errors import Forbidden, InvalidArgument, NotFound
from ..models import RecipeCreateRequest, RecipeOut, RecipePage, RecipeUpdateRequest
from .assembler import ResultAssembler
from .catalog import Catalog
from .pagination import FEED_ORDER, RECENT_FIRST, PageRequest, RawPage, paginate
from .planner import FilterSet, Planner
from .records import DRAFT, PUBLISHED, RECIPES, Recipe, RecipeStatus
from .store import DocumentStore, WriteOp
from .timestamps import utcnow

logger = logging.getLogger(__name__)


def _default_description(payload: RecipeCreateRequest) -> str:
    if payload.description is not None:
        return payload.description
    parts = [p for p in (payload.ingredients, payload.preparation_steps) if p]
    return "\n\n".join(parts)


class RecipeService:
    def __init__(self, store: DocumentStore, planner: Planner | None = None):
        self._store = store
        self.planner = planner or Planner()
        self.assembler = ResultAssembler(store)
        self.catalog = Catalog(store)

    # -- reads --------------------------------------------------------------

    async def _load(self, recipe_id: str) -> Recipe | None:
        doc = await self._store.get(RECIPES, recipe_id)
        return Recipe.from_document(doc) if doc is not None else None

    async def _load_visible(self, recipe_id: str, caller_id: str | None) -> Recipe:
        recipe = await self._load(recipe_id)
        if recipe is None or not recipe.visible_to(caller_id):
            raise NotFound("Recipe not found")
        return recipe

    async def _to_page(self, raw: RawPage[Recipe], caller_id: str | None) -> RecipePage:
        items = await self.assembler.recipes(raw.items, caller_id)
        return RecipePage(items=items, next_cursor=raw.next_cursor, has_more=raw.has_more)

    async def get_by_id(self, recipe_id: str, caller_id: str | None = None) -> RecipeOut:
        recipe = await self._load_visible(recipe_id, caller_id)
        return await self.assembler.recipe(recipe, caller_id)

    async def get_by_ids(
        self,
        ids: list[str],
        caller_id: str | None = None,
        filters: FilterSet | None = None,
        limit: int | None = None,
    ) -> list[RecipeOut]:
        """Several recipes in request order, e.g. a favourites screen.

        Missing and inaccessible ids are silently omitted.
        """
        unique = list(dict.fromkeys(i for i in ids if i))
        if not unique:
            return []
        docs = await self._store.get_all(RECIPES, unique)
        recipes = [r for r in map(Recipe.from_document, docs) if r.visible_to(caller_id)]
        if filters is not None:
            recipes = [r for r in recipes if filters.matches(r)]
        if limit is not None:
            recipes = recipes[:limit]
        return await self.assembler.recipes(recipes, caller_id)

    async def feed(self, page: PageRequest, caller_id: str | None = None) -> RecipePage:
        """Published recipes ranked by popularity, then recency."""
        raw = await paginate(
            self._store, RECIPES, page, FEED_ORDER, equals={"status": PUBLISHED}
        )
        recipes = RawPage(
            items=[Recipe.from_document(d) for d in raw.items],
            next_cursor=raw.next_cursor,
            has_more=raw.has_more,
        )
        return await self._to_page(recipes, caller_id)

    async def by_author(
        self,
        author_id: str,
        caller_id: str | None,
        page: PageRequest,
        status: RecipeStatus | None = None,
    ) -> RecipePage:
        effective = status or PUBLISHED
        if effective == DRAFT and caller_id != author_id:
            return RecipePage(items=[], next_cursor=None, has_more=False)
        raw = await paginate(
            self._store,
            RECIPES,
            page,
            RECENT_FIRST,
            equals={"authorId": author_id, "status": effective},
        )
        recipes = RawPage(
            items=[Recipe.from_document(d) for d in raw.items],
            next_cursor=raw.next_cursor,
            has_more=raw.has_more,
        )
        return await self._to_page(recipes, caller_id)

    async def list_filtered(
        self,
        filters: FilterSet,
        page: PageRequest,
        caller_id: str | None = None,
    ) -> RecipePage:
        strategy = self.planner.plan(filters)
        logger.debug("Listing recipes with strategy %s", strategy.name)
        raw = await strategy.fetch(self._store, filters, page)
        return await self._to_page(raw, caller_id)

    # -- writes -------------------------------------------------------------

    async def _insert(
        self,
        author_id: str,
        payload: RecipeCreateRequest,
        parent_recipe_id: str | None = None,
    ) -> RecipeOut:
        await self.catalog.validate(payload.categories, payload.tags)
        recipe = Recipe(
            id=uuid.uuid4().hex,
            author_id=author_id,
            title=payload.title,
            title_lower=payload.title.strip().lower(),
            description=_default_description(payload),
            ingredients=payload.ingredients,
            preparation_steps=payload.preparation_steps,
            media_urls=payload.media_urls,
            video_url=payload.video_url,
            categories=payload.categories,
            tags=payload.tags,
            is_variation=parent_recipe_id is not None,
            parent_recipe_id=parent_recipe_id,
            rating_avg=0.0,
            ratings_count=0,
            popularity_score=0.0,
            status=PUBLISHED if parent_recipe_id is not None else payload.status,
            created_at=utcnow(),
        )
        await self._store.batch_write([WriteOp.set(RECIPES, recipe.id, recipe.to_store())])
        logger.info("Recipe %s created by %s", recipe.id, author_id)
        return await self.get_by_id(recipe.id, author_id)

    async def create(self, author_id: str, payload: RecipeCreateRequest) -> RecipeOut:
        return await self._insert(author_id, payload)

    async def create_variation(
        self,
        parent_id: str,
        author_id: str,
        payload: RecipeCreateRequest,
    ) -> RecipeOut:
        parent = await self._load(parent_id)
        if parent is None or not parent.visible_to(author_id):
            raise NotFound("Original recipe not found")
        if parent.status == DRAFT:
            raise InvalidArgument("Cannot create a variation of a draft")
        return await self._insert(author_id, payload, parent_recipe_id=parent_id)

    async def _load_owned(self, recipe_id: str, caller_id: str) -> Recipe:
        recipe = await self._load_visible(recipe_id, caller_id)
        if recipe.author_id != caller_id:
            raise Forbidden("Only the author can modify this recipe")
        return recipe

    async def update(
        self,
        recipe_id: str,
        caller_id: str,
        payload: RecipeUpdateRequest,
    ) -> RecipeOut:
        await self._load_owned(recipe_id, caller_id)
        await self.catalog.validate(payload.categories, payload.tags)

        updates = payload.model_dump(exclude_unset=True, by_alias=True)
        if "title" in updates:
            if not (updates["title"] or "").strip():
                raise InvalidArgument("title must not be blank")
            updates["title"] = updates["title"].strip()
            updates["titleLower"] = updates["title"].lower()
        for field in ("mediaUrls", "categories", "tags"):
            if field in updates and updates[field] is None:
                updates[field] = []
        if updates.get("status", "") is None:
            del updates["status"]
        if updates:
            await self._store.batch_write([WriteOp.update(RECIPES, recipe_id, updates)])
        return await self.get_by_id(recipe_id, caller_id)

    async def delete(self, recipe_id: str, caller_id: str) -> None:
        await self._load_owned(recipe_id, caller_id)
        await self._store.batch_write([WriteOp.delete(RECIPES, recipe_id)])
        logger.info("Recipe %s deleted by %s", recipe_id, caller_id)
