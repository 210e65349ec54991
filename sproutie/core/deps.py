from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sproutie.core.exceptions import UnauthorizedError
from sproutie.core.security import InvalidTokenError, Principal, verify_id_token
from sproutie.db.session import get_db
from sproutie.services.trefle import TrefleClient

bearer_scheme = HTTPBearer(auto_error=False)


def get_trefle_client(request: Request) -> TrefleClient:
    return request.app.state.trefle


async def get_optional_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Optional[Principal]:
    if credentials is None:
        return None
    try:
        return await run_in_threadpool(verify_id_token, credentials.credentials)
    except InvalidTokenError:
        raise UnauthorizedError("Could not validate credentials")


async def get_current_principal(
    principal: Annotated[Optional[Principal], Depends(get_optional_principal)],
) -> Principal:
    if principal is None:
        raise UnauthorizedError("Authentication required")
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Optional[Principal], Depends(get_optional_principal)]
Trefle = Annotated[TrefleClient, Depends(get_trefle_client)]
