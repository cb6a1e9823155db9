from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    store: str | None = None


@router.get("/health", response_model=HealthResponse, status_code=200)
async def healthcheck(request: Request) -> HealthResponse:
    # The store is attached during startup; report which backend serves requests.
    store = getattr(request.app.state, "store", None)
    return HealthResponse(status="ok", store=store.backend if store is not None else None)
