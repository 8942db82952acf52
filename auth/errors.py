"""
auth/errors.py -- Internal exception types for the auth layer.

These never reach a client directly. The flow controller and the request
dependencies translate them into AuthOutcome / HTTP 401 responses with fixed
messages.
"""

from __future__ import annotations

from enum import Enum


class AuthError(Exception):
    """Base class for auth-layer failures."""


class TokenConfigError(AuthError):
    """The signing secret is missing. A configuration fault, never a 4xx."""


class TokenFailure(str, Enum):
    malformed = "malformed"
    bad_signature = "bad_signature"
    expired = "expired"
    invalid_claims = "invalid_claims"
    missing_secret = "missing_secret"


class TokenVerificationError(AuthError):
    """A session token could not be verified.

    reason records which check failed, for server-side logs only. The string
    form is the same for every reason so the cause cannot leak to a client.
    """

    public_message = "invalid or expired token"

    def __init__(self, reason: TokenFailure) -> None:
        super().__init__(self.public_message)
        self.reason = reason


class DuplicateEmailError(AuthError):
    """The store's unique constraint rejected an insert for an existing email."""
