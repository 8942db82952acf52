"""
auth/transport.py -- How the session token travels between server and browser.

Cookie attributes [A04]:
  httponly=True: JS cannot read the cookie (XSS mitigation). The token is
      never placed in a response body, so it never lands in localStorage.
  samesite="lax": cookie sent on same-site requests and top-level GET
      navigations, not on cross-site POST -- CSRF mitigation for most cases.
  secure: only sent over HTTPS, on in production, off for http://localhost.
  max_age: equals the JWT lifetime so cookie and token expire together.
  path="/": explicit, because clear() must repeat it exactly.

Clearing: browsers only overwrite a cookie whose name, path and domain match,
and some refuse to replace a Secure cookie from a non-Secure Set-Cookie.
clear() therefore reuses the attribute set from attach() verbatim.

Per-request state machine:

    no_token -> extracted -> {valid, invalid, expired, malformed}

Only `valid` yields claims. Everything else is turned into a 401 by
auth/dependencies.py before any route logic runs.

Layer rule: no imports from api/. Starlette types only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from starlette.requests import Request
from starlette.responses import Response

from auth.errors import TokenFailure, TokenVerificationError
from auth.models import SessionClaims
from auth.tokens import TokenService

COOKIE_NAME = "authToken"

_BEARER_PREFIX = "Bearer "


class SessionState(str, Enum):
    no_token = "no_token"
    valid = "valid"
    invalid = "invalid"
    expired = "expired"
    malformed = "malformed"


_FAILURE_STATE = {
    TokenFailure.malformed: SessionState.malformed,
    TokenFailure.expired: SessionState.expired,
    TokenFailure.bad_signature: SessionState.invalid,
    TokenFailure.invalid_claims: SessionState.invalid,
    TokenFailure.missing_secret: SessionState.invalid,
}


@dataclass(frozen=True)
class SessionCheck:
    state: SessionState
    claims: SessionClaims | None = None

    @property
    def valid(self) -> bool:
        return self.state is SessionState.valid


class SessionTransport:
    """Attach, extract and clear the session cookie with one attribute set."""

    def __init__(self, secure: bool, max_age: int, cookie_name: str = COOKIE_NAME) -> None:
        self.secure = secure
        self.max_age = max_age
        self.cookie_name = cookie_name

    def _cookie_attrs(self) -> dict:
        return {"path": "/", "httponly": True, "samesite": "lax", "secure": self.secure}

    def attach(self, response: Response, token: str) -> None:
        """Write the token as the session cookie on the response."""
        response.set_cookie(self.cookie_name, value=token, max_age=self.max_age, **self._cookie_attrs())

    def clear(self, response: Response) -> None:
        """Overwrite the session cookie with an empty, already-expired value."""
        response.set_cookie(self.cookie_name, value="", max_age=0, expires=0, **self._cookie_attrs())

    def extract(self, request: Request) -> str | None:
        """Return the raw token from the cookie, else from a Bearer header, else None."""
        token = request.cookies.get(self.cookie_name)
        if token:
            return token
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith(_BEARER_PREFIX):
            return auth_header[len(_BEARER_PREFIX) :].strip() or None
        return None

    def inspect(self, request: Request, tokens: TokenService) -> SessionCheck:
        """Run the per-request session state machine."""
        token = self.extract(request)
        if token is None:
            return SessionCheck(SessionState.no_token)
        try:
            claims = tokens.verify(token)
        except TokenVerificationError as exc:
            return SessionCheck(_FAILURE_STATE[exc.reason])
        return SessionCheck(SessionState.valid, claims)
