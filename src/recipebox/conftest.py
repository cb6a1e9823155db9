"""Shared fixtures: an in-memory store and helpers to seed it."""

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from .lib.records import CATEGORIES, COMMENTS, RECIPES, TAGS, USERS
from .lib.store import MemoryStore
from .main import app

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

API_KEY = "testkey"


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


class Seeder:
    """Writes fixture documents straight into a :class:`MemoryStore`."""

    def __init__(self, store: MemoryStore):
        self.store = store
        self._clock = 0

    def _tick(self) -> datetime:
        self._clock += 1
        return at(self._clock)

    def user(self, id: str, name: str = "", deleted: bool = False, **extra):
        data = {"name": name or id.title(), "email": f"{id}@example.com", "createdAt": T0, **extra}
        if deleted:
            data["deletedAt"] = T0
        return self.store.put(USERS, id, data)

    def recipe(
        self,
        id: str,
        author_id: str,
        title: str = "",
        status: str = "published",
        categories: list[str] | None = None,
        tags: list[str] | None = None,
        created_at: datetime | None = None,
        **extra,
    ):
        title = title or f"Recipe {id}"
        return self.store.put(RECIPES, id, {
            "authorId": author_id,
            "title": title,
            "titleLower": title.lower(),
            "categories": categories or [],
            "tags": tags or [],
            "status": status,
            "ratingAvg": 0.0,
            "ratingsCount": 0,
            "popularityScore": 0.0,
            "createdAt": created_at or self._tick(),
            **extra,
        })

    def comment(self, id: str, recipe_id: str, author_id: str, parent_id: str | None = None, created_at=None):
        return self.store.put(COMMENTS, id, {
            "recipeId": recipe_id,
            "authorId": author_id,
            "text": f"comment {id}",
            "parentId": parent_id,
            "createdAt": created_at or self._tick(),
        })

    def category(self, id: str, **labels):
        return self.store.put(CATEGORIES, id, {"id": id, "labels": labels or {"en": id}})

    def tag(self, id: str, **labels):
        return self.store.put(TAGS, id, {"id": id, "labels": labels or {"en": id}})


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def seed(store):
    return Seeder(store)


@pytest.fixture
def api_client(store):
    """Test client bound to a fresh in-memory store with a known API key."""
    prev = os.environ.get("API_KEY")
    os.environ["API_KEY"] = API_KEY
    app.state.store = store
    yield TestClient(app, headers={"X-API-Key": API_KEY})
    del app.state.store
    if prev is None:
        del os.environ["API_KEY"]
    else:
        os.environ["API_KEY"] = prev
