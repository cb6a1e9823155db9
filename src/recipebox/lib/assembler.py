"""Joins author profiles and the caller's own ratings onto result sets.

Author profiles are resolved with one batched lookup per result set, keyed by
unique author id. Recipes whose author cannot be resolved (missing or
soft-deleted) are dropped from list results; the rest of the page is still
returned. Comments keep their place in the tree with ``author`` left empty so
that their replies stay reachable.

``myRating`` is attached with a single batched lookup over all result ids.
"""

import logging

from ..models import AuthorProfile, CommentOut, RecipeOut
from .records import RATINGS, USERS, Rating, Recipe, UserProfile, rating_id
from .store import DocumentStore

logger = logging.getLogger(__name__)


class ResultAssembler:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def resolve_authors(self, author_ids) -> dict[str, AuthorProfile]:
        """Public profiles for ``author_ids``; missing and deleted users are absent."""
        unique = list(dict.fromkeys(a for a in author_ids if a))
        if not unique:
            return {}
        docs = await self._store.get_all(USERS, unique)
        profiles: dict[str, AuthorProfile] = {}
        for doc in docs:
            user = UserProfile.from_document(doc)
            if user.is_deleted:
                continue
            profiles[user.id] = AuthorProfile.from_record(user)
        return profiles

    async def my_ratings(self, recipe_ids, user_id: str | None) -> dict[str, int]:
        """The caller's stars per recipe id, from one batched lookup."""
        if not user_id:
            return {}
        unique = list(dict.fromkeys(recipe_ids))
        if not unique:
            return {}
        docs = await self._store.get_all(RATINGS, [rating_id(r, user_id) for r in unique])
        ratings = [Rating.from_document(d) for d in docs]
        return {r.recipe_id: r.stars for r in ratings if r.user_id == user_id}

    async def recipes(self, recipes: list[Recipe], caller_id: str | None = None) -> list[RecipeOut]:
        authors = await self.resolve_authors(r.author_id for r in recipes)
        mine = await self.my_ratings([r.id for r in recipes], caller_id)
        items: list[RecipeOut] = []
        for recipe in recipes:
            author = authors.get(recipe.author_id)
            if author is None:
                logger.info(
                    "Dropping recipe %s: author %s unavailable", recipe.id, recipe.author_id
                )
                continue
            items.append(RecipeOut.from_record(recipe, author, mine.get(recipe.id)))
        return items

    async def recipe(self, recipe: Recipe, caller_id: str | None = None) -> RecipeOut:
        """Single recipe view; a missing author leaves ``author`` empty."""
        authors = await self.resolve_authors([recipe.author_id])
        mine = await self.my_ratings([recipe.id], caller_id)
        return RecipeOut.from_record(recipe, authors.get(recipe.author_id), mine.get(recipe.id))

    async def comment_authors(self, trees: list[CommentOut]) -> list[CommentOut]:
        """Attach author profiles at every depth of the comment trees."""
        nodes: list[CommentOut] = []
        stack = list(trees)
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(node.replies)
        authors = await self.resolve_authors(n.author_id for n in nodes)
        for node in nodes:
            node.author = authors.get(node.author_id)
        return trees
