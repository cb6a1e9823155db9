"""Rating aggregation under the one-rating-per-user invariant.

Each user holds at most one rating per recipe, stored under the
deterministic id ``"{recipeId}_{userId}"``; re-rating updates that row in
place. The recipe's ``ratingAvg`` / ``ratingsCount`` are re-derived from the
full rating set on every write and committed together with the rating row in
one atomic batch.

Concurrent raters of the same recipe are serialised optimistically: the
batch is guarded by the recipe version read at the start of the cycle, and a
version conflict restarts the whole read-compute-write cycle. Store failures
other than version conflicts are not retried.
"""

import logging

from ..errors import Conflict, InvalidArgument, NotFound
from ..models import RateResponse
from .records import RATINGS, RECIPES, Rating, Recipe, rating_id
from .store import DocumentStore, VersionConflictError, WriteOp

logger = logging.getLogger(__name__)

MIN_STARS = 1
MAX_STARS = 5

# Read-compute-write cycles attempted before giving up on a contended recipe.
MAX_RATE_ATTEMPTS = 5


def average(stars: list[int]) -> float:
    return sum(stars) / len(stars) if stars else 0.0


class RatingAggregator:
    def __init__(self, store: DocumentStore, max_attempts: int = MAX_RATE_ATTEMPTS):
        self._store = store
        self._max_attempts = max_attempts
        self.attempts = 0

    async def get_my_rating(self, recipe_id: str, user_id: str) -> Rating | None:
        doc = await self._store.get(RATINGS, rating_id(recipe_id, user_id))
        return Rating.from_document(doc) if doc is not None else None

    async def rate(self, recipe_id: str, user_id: str, stars: int) -> RateResponse:
        if isinstance(stars, bool) or not isinstance(stars, int) or not MIN_STARS <= stars <= MAX_STARS:
            raise InvalidArgument(f"stars must be an integer between {MIN_STARS} and {MAX_STARS}")

        for attempt in range(1, self._max_attempts + 1):
            self.attempts = attempt
            try:
                return await self._rate_once(recipe_id, user_id, stars)
            except VersionConflictError:
                logger.info(
                    "Rating of recipe %s by %s lost a race (attempt %d/%d)",
                    recipe_id,
                    user_id,
                    attempt,
                    self._max_attempts,
                )
        raise Conflict(f"Recipe {recipe_id} is being rated concurrently, please retry")

    async def _rate_once(self, recipe_id: str, user_id: str, stars: int) -> RateResponse:
        recipe_doc = await self._store.get(RECIPES, recipe_id)
        if recipe_doc is None:
            raise NotFound("Recipe not found")
        if not Recipe.from_document(recipe_doc).visible_to(user_id):
            raise NotFound("Recipe not found")

        rid = rating_id(recipe_id, user_id)
        existing = await self._store.get(RATINGS, rid)
        if existing is None:
            rating = Rating(id=rid, recipe_id=recipe_id, user_id=user_id, stars=stars)
            rating_op = WriteOp.set(RATINGS, rid, rating.to_store())
        else:
            rating_op = WriteOp.update(RATINGS, rid, {"stars": stars})

        rows = await self._store.query(RATINGS, equals={"recipeId": recipe_id})
        stars_by_user = {r.user_id: r.stars for r in map(Rating.from_document, rows)}
        stars_by_user[user_id] = stars

        rating_avg = average(list(stars_by_user.values()))
        ratings_count = len(stars_by_user)

        await self._store.batch_write([
            rating_op,
            WriteOp.update(
                RECIPES,
                recipe_id,
                {"ratingAvg": rating_avg, "ratingsCount": ratings_count},
                expected_version=recipe_doc.version,
            ),
        ])
        return RateResponse(
            recipe_id=recipe_id,
            user_id=user_id,
            stars=stars,
            rating_avg=rating_avg,
            ratings_count=ratings_count,
        )
