"""
Sanctuary Backend — Authentication Gate
=========================================

What:  FastAPI dependency that admits only requests carrying a valid
       bearer token.
How:   HTTPBearer(auto_error=False) extracts the credentials; TokenService
       verifies them. Every failure becomes UnauthorizedError, which the
       global handler turns into 401 with `WWW-Authenticate: Bearer`.
Who:   Declared on every mutating events/sermons route and on
       PUT /api/users/change-password.

Usage:
    @router.post("/events", dependencies=[Depends(get_current_identity)])
    async def create_event(...): ...

    @router.put("/change-password")
    async def change_password(identity: Identity = Depends(get_current_identity)): ...
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sanctuary.exceptions import InvalidTokenError, UnauthorizedError
from sanctuary.services.token_service import Identity, token_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Token returned by POST /api/users/login")


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Resolve the caller's identity or reject the request.

    Raises:
        UnauthorizedError: header missing, not a bearer token, or the token
            fails verification (bad signature, malformed, expired)
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    try:
        identity = token_service.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.info("Rejected bearer token on %s: %s", request.url.path, e.message)
        raise UnauthorizedError()

    request.state.identity = identity
    return identity
