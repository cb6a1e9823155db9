"""Comment threads: creation and reply-tree reconstruction.

Comments are stored flat with a nullable ``parentId``. Reading a thread
takes one cursor page of root comments (newest first), then expands the
replies level by level: every query asks for comments whose ``parentId`` is
in the current frontier, chunked to the store's membership capacity, and the
returned ids become the next frontier. Expansion stops at the first empty
level.

Replies are ordered oldest first. ``repliesCount`` counts immediate replies
only.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from ..errors import InvalidArgument, NotFound
from ..models import CommentOut, CommentPage
from .assembler import ResultAssembler
from .pagination import RECENT_FIRST, PageRequest, RawPage, paginate
from .records import COMMENTS, RECIPES, Comment, Recipe
from .store import MAX_MEMBERSHIP_VALUES, DocumentStore, MembershipFilter, WriteOp
from .timestamps import utcnow

logger = logging.getLogger(__name__)

# Parent ids per reply query; bounded by the membership filter capacity.
REPLY_CHUNK_SIZE = MAX_MEMBERSHIP_VALUES

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def chunked(items: list, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _oldest_first(comment: Comment):
    return (comment.created_at or _EPOCH, comment.id)


class CommentThreadBuilder:
    def __init__(self, store: DocumentStore):
        self._store = store
        self.level_queries = 0

    async def fetch_roots(self, recipe_id: str, page: PageRequest) -> RawPage[Comment]:
        raw = await paginate(
            self._store,
            COMMENTS,
            page,
            RECENT_FIRST,
            equals={"recipeId": recipe_id, "parentId": None},
        )
        return RawPage(
            items=[Comment.from_document(d) for d in raw.items],
            next_cursor=raw.next_cursor,
            has_more=raw.has_more,
        )

    async def fetch_descendants(self, recipe_id: str, root_ids: list[str]) -> list[Comment]:
        """All replies below ``root_ids``, at any depth."""
        seen = set(root_ids)
        frontier = list(root_ids)
        collected: list[Comment] = []
        while frontier:
            level: list[Comment] = []
            for chunk in chunked(frontier, REPLY_CHUNK_SIZE):
                self.level_queries += 1
                docs = await self._store.query(
                    COMMENTS,
                    equals={"recipeId": recipe_id},
                    membership=MembershipFilter("parentId", tuple(chunk)),
                )
                for doc in docs:
                    if doc.id in seen:
                        continue
                    seen.add(doc.id)
                    level.append(Comment.from_document(doc))
            collected.extend(level)
            frontier = [c.id for c in level]
        return collected

    @staticmethod
    def build_trees(roots: list[Comment], descendants: list[Comment]) -> list[CommentOut]:
        """Nest ``descendants`` under ``roots`` by ``parentId``."""
        nodes = {c.id: CommentOut.from_record(c) for c in [*roots, *descendants]}
        children: dict[str, list[Comment]] = defaultdict(list)
        for comment in descendants:
            if comment.parent_id in nodes:
                children[comment.parent_id].append(comment)
        for parent_id, kids in children.items():
            kids.sort(key=_oldest_first)
            parent = nodes[parent_id]
            parent.replies = [nodes[k.id] for k in kids]
            parent.replies_count = len(kids)
        return [nodes[r.id] for r in roots]

    async def threads(self, recipe_id: str, page: PageRequest) -> tuple[list[CommentOut], RawPage[Comment]]:
        roots = await self.fetch_roots(recipe_id, page)
        descendants = await self.fetch_descendants(recipe_id, [r.id for r in roots.items])
        return self.build_trees(roots.items, descendants), roots


class CommentService:
    def __init__(self, store: DocumentStore):
        self._store = store
        self.builder = CommentThreadBuilder(store)
        self.assembler = ResultAssembler(store)

    async def _visible_recipe(self, recipe_id: str, user_id: str | None) -> Recipe:
        doc = await self._store.get(RECIPES, recipe_id)
        recipe = Recipe.from_document(doc) if doc is not None else None
        if recipe is None or not recipe.visible_to(user_id):
            raise NotFound("Recipe not found")
        return recipe

    async def list_comments(
        self,
        recipe_id: str,
        page: PageRequest,
        caller_id: str | None = None,
    ) -> CommentPage:
        await self._visible_recipe(recipe_id, caller_id)
        trees, roots = await self.builder.threads(recipe_id, page)
        await self.assembler.comment_authors(trees)
        return CommentPage(items=trees, next_cursor=roots.next_cursor, has_more=roots.has_more)

    async def create_comment(
        self,
        recipe_id: str,
        author_id: str,
        text: str,
        parent_id: str | None = None,
    ) -> CommentOut:
        await self._visible_recipe(recipe_id, author_id)
        text = (text or "").strip()
        if not text:
            raise InvalidArgument("Comment text must not be empty")

        if parent_id:
            parent_doc = await self._store.get(COMMENTS, parent_id)
            if parent_doc is None:
                raise InvalidArgument("Parent comment not found")
            if Comment.from_document(parent_doc).recipe_id != recipe_id:
                raise InvalidArgument("Parent comment belongs to a different recipe")

        comment = Comment(
            id=uuid.uuid4().hex,
            recipe_id=recipe_id,
            author_id=author_id,
            text=text,
            parent_id=parent_id or None,
            created_at=utcnow(),
        )
        await self._store.batch_write([WriteOp.set(COMMENTS, comment.id, comment.to_store())])
        logger.info("Comment %s added to recipe %s", comment.id, recipe_id)

        node = CommentOut.from_record(comment)
        await self.assembler.comment_authors([node])
        return node
