"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store, the token service and the flow controller do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass
class User:
    """A registered identity as read for credential checks.

    email is the login key: lower-cased and trimmed before it is stored, and
    unique at the database level.

    password_hash is only populated by UserStore.get_credentials(). It is
    excluded from repr so a stray log of the object cannot leak it, and it is
    never copied into any response payload.
    """

    name: str
    email: str
    id: int | None = None
    password_hash: str | None = field(default=None, repr=False)
    created_at: str | None = None  # ISO 8601, set by store on insert

    def public(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class UserProfile:
    """Non-sensitive projection returned by GET /users/profile.

    Built from a query that never selects the password hash column.
    """

    id: int
    name: str
    email: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email, "createdAt": self.created_at}


@dataclass(frozen=True)
class SessionClaims:
    """Verified JWT claims.

    subject_email is informational only; access decisions use subject_id.
    """

    subject_id: int
    subject_email: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AuthContext:
    """The authenticated identity of the current request.

    Produced only from a verified session token and passed explicitly into
    handlers as a dependency. Resource identity comes from here, never from
    request parameters.
    """

    user_id: int
    email: str

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> AuthContext:
        return cls(user_id=claims.subject_id, email=claims.subject_email)


# ---------------------------------------------------------------------------
# AuthOutcome -- tagged result of a flow operation
# ---------------------------------------------------------------------------


class OutcomeKind(str, Enum):
    success = "success"
    rejected = "rejected"
    server_fault = "server_fault"


class RejectReason(str, Enum):
    validation = "validation"
    duplicate = "duplicate"
    invalid_credentials = "invalid_credentials"
    not_found = "not_found"


_REJECT_STATUS = {
    RejectReason.validation: 400,
    RejectReason.duplicate: 400,
    RejectReason.invalid_credentials: 401,
    RejectReason.not_found: 404,
}

SERVER_FAULT_MESSAGE = "Internal server error."


@dataclass(frozen=True)
class AuthOutcome:
    """Result of register/login/profile/logout.

    The HTTP layer turns this into a response without inspecting anything
    else: payload for success, message for everything else.

    session_token is set only by a successful login and is handed to the
    session transport by the route. It is never part of payload.
    """

    kind: OutcomeKind
    status_code: int
    payload: dict[str, Any] | None = None
    reason: RejectReason | None = None
    message: str | None = None
    session_token: str | None = field(default=None, repr=False)

    @classmethod
    def success(
        cls, payload: dict[str, Any], status_code: int = 200, session_token: str | None = None
    ) -> AuthOutcome:
        return cls(kind=OutcomeKind.success, status_code=status_code, payload=payload, session_token=session_token)

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> AuthOutcome:
        return cls(kind=OutcomeKind.rejected, status_code=_REJECT_STATUS[reason], reason=reason, message=message)

    @classmethod
    def server_fault(cls) -> AuthOutcome:
        return cls(kind=OutcomeKind.server_fault, status_code=500, message=SERVER_FAULT_MESSAGE)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.success

    def body(self) -> dict[str, Any]:
        """JSON body for the client: the payload, or a single message field."""
        if self.ok:
            return dict(self.payload or {})
        return {"message": self.message}
