"""Domain errors raised by the core services.

Routers never build error responses themselves: the handlers registered by
:func:`register_exception_handlers` translate these exceptions (and store
failures) into JSON responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .lib.store import StoreError, VersionConflictError

logger = logging.getLogger(__name__)


class RecipeBoxError(Exception):
    """Base class for errors surfaced directly to the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(RecipeBoxError):
    """Referenced entity is absent, or a draft was accessed by a non-author."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidArgument(RecipeBoxError):
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(RecipeBoxError):
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(RecipeBoxError):
    """Optimistic update kept losing against concurrent writers."""

    status_code = status.HTTP_409_CONFLICT


async def _domain_error_handler(request: Request, exc: RecipeBoxError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.exception(
        "Document store request failed",
        exc_info=exc,
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Document store request failed"},
    )


async def _version_conflict_handler(request: Request, exc: VersionConflictError) -> JSONResponse:
    logger.warning("Unresolved version conflict on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Concurrent update, please retry"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RecipeBoxError, _domain_error_handler)
    app.add_exception_handler(VersionConflictError, _version_conflict_handler)
    app.add_exception_handler(StoreError, _store_error_handler)
