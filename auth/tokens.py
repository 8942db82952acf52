"""
auth/tokens.py -- Session token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id (sub), the email
       (informational only), iat and exp. The algorithm list passed to
       decode() is pinned to HS256, so "alg: none" and algorithm-confusion
       tokens fail signature verification.

  Secret: injected explicitly (TokenService(secret=...)), read from
       core.config at application startup. An empty secret is a configuration
       fault: issue_token() raises TokenConfigError, and verify_token() rejects
       every token. There is no fallback value anywhere [A07].

  Verification: structure, then signature, then expiry, then claim shape.
       Each failure raises TokenVerificationError with a reason for the
       server log, but the public message is the same for all of them so a
       client cannot tell a forged token from an expired one.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from auth.errors import TokenConfigError, TokenFailure, TokenVerificationError
from auth.models import SessionClaims

ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
    "verify_aud": False,
}


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(
    subject_id: int,
    subject_email: str,
    expires_in: timedelta,
    secret: str,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT for the given user.

    Args:
        subject_id:    Numeric user ID; stored as the string "sub" claim.
        subject_email: Stored as "email". Never trusted for access decisions.
        expires_in:    Validity window measured from now.
        secret:        HMAC signing key. Must be non-empty.
        now:           Issue time override (tests issue already-expired tokens).

    Raises:
        TokenConfigError: secret is empty.
    """
    if not secret:
        raise TokenConfigError("JWT signing secret is not configured")
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(subject_id),
        "email": subject_email,
        "iat": int(issued.timestamp()),
        "exp": int((issued + expires_in).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> SessionClaims:
    """Decode and verify a JWT. Returns SessionClaims or raises TokenVerificationError."""
    if not secret:
        raise TokenVerificationError(TokenFailure.missing_secret)
    if not token or not isinstance(token, str):
        raise TokenVerificationError(TokenFailure.malformed)

    try:
        jwt.get_unverified_header(token)
    except JWTError as exc:
        raise TokenVerificationError(TokenFailure.malformed) from exc

    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
    except ExpiredSignatureError as exc:
        raise TokenVerificationError(TokenFailure.expired) from exc
    except JWTClaimsError as exc:
        raise TokenVerificationError(TokenFailure.invalid_claims) from exc
    except JWTError as exc:
        raise TokenVerificationError(TokenFailure.bad_signature) from exc

    return _claims_from_payload(payload)


def _claims_from_payload(payload: dict) -> SessionClaims:
    """Validate claim types explicitly instead of trusting the decoded dict."""
    sub = payload.get("sub")
    email = payload.get("email")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if not isinstance(sub, str) or not sub.isdigit():
        raise TokenVerificationError(TokenFailure.invalid_claims)
    if not isinstance(email, str):
        raise TokenVerificationError(TokenFailure.invalid_claims)
    if isinstance(iat, bool) or not isinstance(iat, int) or isinstance(exp, bool) or not isinstance(exp, int):
        raise TokenVerificationError(TokenFailure.invalid_claims)
    return SessionClaims(
        subject_id=int(sub),
        subject_email=email,
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )


# ---------------------------------------------------------------------------
# Service wrapper
# ---------------------------------------------------------------------------


class TokenService:
    """Binds the configured secret and session lifetime for the application.

    Usage:
        tokens = TokenService(secret=settings.jwt_secret, expire_seconds=86400)
        token = tokens.issue(user.id, user.email)
        claims = tokens.verify(token)
    """

    def __init__(self, secret: str, expire_seconds: int = 86400) -> None:
        self._secret = secret
        self.expire_seconds = expire_seconds

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def issue(self, subject_id: int, subject_email: str, now: datetime | None = None) -> str:
        return issue_token(subject_id, subject_email, timedelta(seconds=self.expire_seconds), self._secret, now=now)

    def verify(self, token: str) -> SessionClaims:
        return verify_token(token, self._secret)

    def __repr__(self) -> str:
        return f"TokenService(configured={self.configured}, expire_seconds={self.expire_seconds})"
