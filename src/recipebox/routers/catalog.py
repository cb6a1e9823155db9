from fastapi import APIRouter, Depends

from ..dependencies import get_store
from ..lib.catalog import Catalog
from ..lib.store import DocumentStore
from ..models import CatalogListResponse
from ..security import verify_api_key

router = APIRouter(tags=["catalog"], dependencies=[Depends(verify_api_key)])


@router.get("/categories", response_model=CatalogListResponse)
async def list_categories(store: DocumentStore = Depends(get_store)) -> CatalogListResponse:
    return CatalogListResponse(items=await Catalog(store).categories())


@router.get("/tags", response_model=CatalogListResponse)
async def list_tags(store: DocumentStore = Depends(get_store)) -> CatalogListResponse:
    return CatalogListResponse(items=await Catalog(store).tags())
