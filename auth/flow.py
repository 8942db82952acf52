"""
auth/flow.py -- Register / login / profile / logout orchestration.

AuthFlow is the only place that combines the store, the password hasher and
the token service. Each operation returns an AuthOutcome; nothing here knows
about HTTP beyond the status code carried in the outcome.

Disclosure policy:
  [A05] Inputs must be present and be strings before anything else runs, so
        objects or arrays never reach a query.
  [A07] Login answers "Invalid email or password." for both an unknown
        email and a wrong password. The two cases are logged differently
        (SECURITY level) but look identical to the caller, including timing:
        a lookup miss still runs bcrypt against a dummy hash.
  [A07] Register may give rule-specific password messages. The email does
        not exist yet, so there is nothing to enumerate.
  [A10] Store and configuration failures become ServerFault. The exception is
        logged with request context; the caller only sees a generic message.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from auth.errors import DuplicateEmailError, TokenConfigError
from auth.models import AuthContext, AuthOutcome, RejectReason
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.logging_config import security_event

logger = logging.getLogger("app.auth")

NAME_RE = re.compile(r"^[A-Za-z ]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_LETTER_RE = re.compile(r"[A-Za-z]")
_DIGIT_RE = re.compile(r"[0-9]")

NAME_MIN, NAME_MAX = 2, 100
PASSWORD_MIN = 8
# bcrypt reads at most 72 bytes of input; bcrypt 5 rejects anything longer.
PASSWORD_MAX_BYTES = 72

MSG_REGISTER_REQUIRED = "Name, email, and password are required."
MSG_LOGIN_REQUIRED = "Email and password are required."
MSG_NAME_INVALID = "Name must be 2-100 characters and contain only letters and spaces."
MSG_EMAIL_INVALID = "Invalid email format."
MSG_PASSWORD_LENGTH = "Password must be at least 8 characters."
MSG_PASSWORD_TOO_LONG = "Password must be at most 72 bytes."
MSG_PASSWORD_LETTER = "Password must contain at least one letter."
MSG_PASSWORD_DIGIT = "Password must contain at least one number."
MSG_DUPLICATE = "Email is already registered."
MSG_BAD_CREDENTIALS = "Invalid email or password."
MSG_NOT_FOUND = "User not found."


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _all_strings(*values: Any) -> bool:
    """True if every value is a non-empty str."""
    return all(isinstance(v, str) and v for v in values)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_name(name: str) -> str | None:
    """Return an error message for an invalid (already trimmed) name, else None."""
    if not NAME_RE.match(name) or not NAME_MIN <= len(name) <= NAME_MAX:
        return MSG_NAME_INVALID
    return None


def validate_email(email: str) -> str | None:
    if not EMAIL_RE.match(email):
        return MSG_EMAIL_INVALID
    return None


def validate_password(password: str) -> str | None:
    """Return the message for the first failed password rule, else None.

    Rules in order: minimum length, maximum UTF-8 byte length, at least one
    letter, at least one digit.
    """
    if len(password) < PASSWORD_MIN:
        return MSG_PASSWORD_LENGTH
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return MSG_PASSWORD_TOO_LONG
    if not _LETTER_RE.search(password):
        return MSG_PASSWORD_LETTER
    if not _DIGIT_RE.search(password):
        return MSG_PASSWORD_DIGIT
    return None


# ---------------------------------------------------------------------------
# Flow controller
# ---------------------------------------------------------------------------


class AuthFlow:
    """Auth flow controller.

    Usage:
        flow = AuthFlow(store, PasswordHasher(12), TokenService(secret, 86400))
        outcome = flow.login("jane@test.com", "secret123", client_ip="10.0.0.5")
        if outcome.ok:
            transport.attach(response, outcome.session_token)
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    def register(self, name: Any, email: Any, password: Any, *, client_ip: str | None = None) -> AuthOutcome:
        """Validate, hash and persist a new user. Success payload is {id, name, email}."""
        if not _all_strings(name, email, password):
            return AuthOutcome.rejected(RejectReason.validation, MSG_REGISTER_REQUIRED)

        clean_name = name.strip()
        clean_email = normalize_email(email)

        for error in (validate_name(clean_name), validate_email(clean_email), validate_password(password)):
            if error:
                return AuthOutcome.rejected(RejectReason.validation, error)

        try:
            if self.store.email_exists(clean_email):
                return AuthOutcome.rejected(RejectReason.duplicate, MSG_DUPLICATE)
            user = self.store.create_user(clean_name, clean_email, self.hasher.hash(password))
        except DuplicateEmailError:
            # Lost the race to a concurrent registration; the unique index decided.
            logger.info("Duplicate registration rejected by constraint", extra={"meta": {"ip": client_ip}})
            return AuthOutcome.rejected(RejectReason.duplicate, MSG_DUPLICATE)
        except Exception:
            logger.exception("Registration failed", extra={"meta": {"ip": client_ip}})
            return AuthOutcome.server_fault()

        logger.info("User registered", extra={"meta": {"user_id": user.id, "email": user.email, "ip": client_ip}})
        return AuthOutcome.success(user.public(), status_code=201)

    def login(self, email: Any, password: Any, *, client_ip: str | None = None) -> AuthOutcome:
        """Verify credentials and issue a session token.

        Success payload is {id, name, email}; the token rides on
        outcome.session_token for the transport, never in the payload.
        """
        if not _all_strings(email, password):
            return AuthOutcome.rejected(RejectReason.validation, MSG_LOGIN_REQUIRED)

        clean_email = normalize_email(email)
        if validate_email(clean_email):
            return AuthOutcome.rejected(RejectReason.validation, MSG_EMAIL_INVALID)

        try:
            user = self.store.get_credentials(clean_email)
        except Exception:
            logger.exception("Credential lookup failed", extra={"meta": {"ip": client_ip}})
            return AuthOutcome.server_fault()

        if user is None or not user.password_hash:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify(password, self.hasher.dummy_hash)
            security_event(logger, "Login failed - unknown email", email=clean_email, ip=client_ip)
            return AuthOutcome.rejected(RejectReason.invalid_credentials, MSG_BAD_CREDENTIALS)

        if not self.hasher.verify(password, user.password_hash):
            security_event(logger, "Login failed - wrong password", user_id=user.id, ip=client_ip)
            return AuthOutcome.rejected(RejectReason.invalid_credentials, MSG_BAD_CREDENTIALS)

        try:
            token = self.tokens.issue(user.id, user.email)
        except TokenConfigError:
            logger.error("JWT secret is not configured; refusing to issue a session token")
            return AuthOutcome.server_fault()

        logger.info("Login succeeded", extra={"meta": {"user_id": user.id, "ip": client_ip}})
        return AuthOutcome.success(user.public(), session_token=token)

    def get_profile(self, context: AuthContext) -> AuthOutcome:
        """Return {id, name, email, createdAt} for the authenticated user.

        The id comes from the verified session only. There is no parameter a
        client could use to ask for someone else's profile.
        """
        try:
            profile = self.store.get_profile(context.user_id)
        except Exception:
            logger.exception("Profile lookup failed", extra={"meta": {"user_id": context.user_id}})
            return AuthOutcome.server_fault()
        if profile is None:
            # Valid token for a user that no longer exists.
            security_event(logger, "Profile requested for missing user", user_id=context.user_id)
            return AuthOutcome.rejected(RejectReason.not_found, MSG_NOT_FOUND)
        return AuthOutcome.success(profile.to_dict())

    def logout(self, context: AuthContext | None = None, *, client_ip: str | None = None) -> AuthOutcome:
        """Always succeeds. The route clears the cookie.

        No server-side revocation: a copied token stays valid until exp.
        """
        logger.info(
            "Logout",
            extra={"meta": {"user_id": context.user_id if context else None, "ip": client_ip}},
        )
        return AuthOutcome.success({"message": "Logged out."})
