import logging
from contextlib import asynccontextmanager

from elasticsearch import AsyncElasticsearch
from fastapi import Depends, FastAPI

from .errors import register_exception_handlers
from .lib.store import MemoryStore
from .lib.store.elasticsearch import ElasticsearchStore
from .routers import catalog, health, recipes, search, social
from .security import verify_api_key
from .settings import (
    get_elasticsearch_api_key,
    get_elasticsearch_url,
    get_index_prefix,
    get_log_level,
    get_store_backend,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=get_log_level())

    # Tests and embedding applications may attach their own store.
    es = None
    if getattr(app.state, "store", None) is None:
        backend = get_store_backend()
        if backend == "memory":
            logger.warning("Using the in-memory document store; data is not persisted")
            app.state.store = MemoryStore()
        else:
            es = AsyncElasticsearch(
                get_elasticsearch_url(),
                api_key=get_elasticsearch_api_key(),
            )
            store = ElasticsearchStore(es, index_prefix=get_index_prefix())
            await store.ensure_indices()
            app.state.store = store
    try:
        yield
    finally:
        if es is not None:
            await es.close()


app = FastAPI(
    title="RecipeBox API",
    description="Content discovery and aggregation backend for a recipe-sharing app",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(recipes.router)
app.include_router(search.router)
app.include_router(social.router)
app.include_router(catalog.router)


@app.get("/", dependencies=[Depends(verify_api_key)])
async def root():
    return {"message": "RecipeBox API"}
