"""Request authentication seams.

Service-to-service calls carry a shared ``X-API-Key``. End-user tokens are
verified upstream by the gateway, which forwards the authenticated user id in
``X-User-Id``; this service trusts that header and never sees tokens.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from .settings import get_api_key

API_KEY_HEADER_NAME = "X-API-Key"
USER_ID_HEADER_NAME = "X-User-Id"

api_key_header = APIKeyHeader(name=API_KEY_HEADER_NAME, auto_error=False)
user_id_header = APIKeyHeader(name=USER_ID_HEADER_NAME, auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> str | None:
    expected_key = get_api_key()
    if not expected_key or api_key != expected_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return api_key


async def get_optional_user_id(
    user_id: Annotated[str | None, Depends(user_id_header)],
) -> str | None:
    user_id = (user_id or "").strip()
    return user_id or None


async def get_current_user_id(
    user_id: Annotated[str | None, Depends(get_optional_user_id)],
) -> str:
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


RequireApiKey = Annotated[str, Depends(verify_api_key)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
OptionalUserId = Annotated[str | None, Depends(get_optional_user_id)]
