"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Session resolution goes through SessionTransport.inspect():
  1. authToken cookie -- set by the login route (httpOnly, samesite=lax).
  2. Authorization: Bearer <token> header -- for non-browser clients.

get_auth_context() returns an AuthContext for a valid session and raises
HTTP 401 for every other state. The context is passed into the route as a
parameter; nothing is attached to the request object.

optional_auth_context() is the soft variant used by logout.

require_client_api_key() is the optional shared-key gate for /users routes.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import HTTPException, Request

from auth.models import AuthContext
from auth.transport import SessionState, SessionTransport
from auth.tokens import TokenService
from core.logging_config import security_event

logger = logging.getLogger("app.auth")

MSG_AUTH_REQUIRED = "Authentication required."
MSG_INVALID_TOKEN = "Invalid or expired token."
MSG_INVALID_API_KEY = "Invalid API key."


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_auth_context(request: Request) -> AuthContext:
    """Require a valid session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    transport: SessionTransport = request.app.state.transport
    tokens: TokenService = request.app.state.tokens

    check = transport.inspect(request, tokens)
    if check.state is SessionState.no_token:
        raise HTTPException(status_code=401, detail=MSG_AUTH_REQUIRED)
    if not check.valid or check.claims is None:
        security_event(
            logger,
            "Rejected session token",
            state=check.state.value,
            ip=_client_ip(request),
            path=request.url.path,
        )
        raise HTTPException(status_code=401, detail=MSG_INVALID_TOKEN)
    return AuthContext.from_claims(check.claims)


def optional_auth_context(request: Request) -> AuthContext | None:
    """Return the AuthContext for a valid session, None for anything else. Never raises."""
    transport: SessionTransport = request.app.state.transport
    check = transport.inspect(request, request.app.state.tokens)
    if check.valid and check.claims is not None:
        return AuthContext.from_claims(check.claims)
    return None


def require_client_api_key(request: Request) -> None:
    """Check X-API-Key against CLIENT_API_KEY when one is configured.

    No-op when the setting is empty. Comparison is constant-time.
    """
    expected: str = request.app.state.settings.client_api_key
    if not expected:
        return
    supplied = request.headers.get("X-API-Key", "")
    if not supplied or not hmac.compare_digest(supplied.encode(), expected.encode()):
        security_event(logger, "Rejected client API key", ip=_client_ip(request), path=request.url.path)
        raise HTTPException(status_code=403, detail=MSG_INVALID_API_KEY)
