"""
api/routes/v1/users.py -- Register, login, profile and logout endpoints.

Routes:
  POST /api/v1/users/register   -- create account; 201 {id, name, email}
  POST /api/v1/users/login      -- password login; sets authToken cookie
  GET  /api/v1/users/profile    -- current user's profile (requires session)
  POST /api/v1/users/logout     -- clears authToken cookie; always 200

Security:
  [A07] POST /register and POST /login are rate-limited per IP (AUTH_RATE_LIMIT).
        GET /profile and POST /logout share one per-IP counter (GLOBAL_RATE_LIMIT).
  [A07] AuthFlow.login() provides timing equalization -- use it, never inline.
  [A04] The token only ever travels in the Set-Cookie header, never the body.
  [A01] /profile takes no id: the identity comes from the verified session.
  Cache-Control: no-store on login responses.

Every non-2xx body is {"message": "..."}.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.limiter import GLOBAL_SCOPE, auth_limit, global_limit, limiter
from api.models import MessageResponse, ProfileResponse, UserPublic
from auth.dependencies import get_auth_context, optional_auth_context, require_client_api_key
from auth.flow import AuthFlow
from auth.models import AuthContext, AuthOutcome
from auth.transport import SessionTransport

# Auth policy:
# - POST /users/register: public
# - POST /users/login:    public
# - GET  /users/profile:  requires a valid session (get_auth_context, called in the handler)
# - POST /users/logout:   public -- clearing a cookie needs no prior auth
# All of them sit behind the optional X-API-Key gate.
router = APIRouter(prefix="/users", dependencies=[Depends(require_client_api_key)])


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _respond(outcome: AuthOutcome, model: type[BaseModel]) -> JSONResponse:
    """Render outcome.body() through the success model, or as {"message": ...}."""
    schema = model if outcome.ok else MessageResponse
    return JSONResponse(
        status_code=outcome.status_code,
        content=schema(**outcome.body()).model_dump(by_alias=True),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserPublic, status_code=201)
@limiter.limit(auth_limit)
def register(request: Request, body: Optional[dict[str, Any]] = Body(default=None)) -> JSONResponse:
    """Create an account. The response never contains the password or its hash."""
    flow: AuthFlow = request.app.state.flow
    body = body or {}
    outcome = flow.register(
        body.get("name"),
        body.get("email"),
        body.get("password"),
        client_ip=_client_ip(request),
    )
    return _respond(outcome, UserPublic)


@router.post("/login", response_model=UserPublic)
@limiter.limit(auth_limit)
def login(request: Request, body: Optional[dict[str, Any]] = Body(default=None)) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Unknown email and wrong password produce byte-identical 401 responses.
    """
    flow: AuthFlow = request.app.state.flow
    transport: SessionTransport = request.app.state.transport
    body = body or {}
    outcome = flow.login(body.get("email"), body.get("password"), client_ip=_client_ip(request))
    resp = _respond(outcome, UserPublic)
    if outcome.ok:
        transport.attach(resp, outcome.session_token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
@limiter.shared_limit(global_limit, scope=GLOBAL_SCOPE)
async def logout(
    request: Request,
    context: Optional[AuthContext] = Depends(optional_auth_context),
) -> JSONResponse:
    """Clear the session cookie. Idempotent: 200 with or without a session.

    The token itself is not revoked server-side; it stays valid until exp
    if it was copied out of the browser.
    """
    flow: AuthFlow = request.app.state.flow
    transport: SessionTransport = request.app.state.transport
    outcome = flow.logout(context, client_ip=_client_ip(request))
    resp = _respond(outcome, MessageResponse)
    transport.clear(resp)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=ProfileResponse)
@limiter.shared_limit(global_limit, scope=GLOBAL_SCOPE)
def profile(request: Request) -> JSONResponse:
    """Return the profile of the session's user. The route takes no user id.

    The session is resolved inside the handler rather than through Depends(),
    so requests without a valid session still count against the rate limit.
    """
    context = get_auth_context(request)
    flow: AuthFlow = request.app.state.flow
    return _respond(flow.get_profile(context), ProfileResponse)
