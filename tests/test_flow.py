"""Unit tests for auth/flow.py -- register, login, profile and logout without HTTP.

Covers:
- Input presence/type checks and the register validation rules
- Email normalization and the duplicate rule (including the insert race)
- Login anti-enumeration: identical outcomes, dummy hash on lookup miss
- Fail-closed behavior on a missing signing secret and on store errors
- Profile identity comes only from the AuthContext
"""

from unittest.mock import MagicMock

import pytest

from auth import flow as flow_module
from auth.errors import DuplicateEmailError
from auth.flow import AuthFlow
from auth.models import AuthContext, AuthOutcome, OutcomeKind, RejectReason
from auth.tokens import TokenService


def _register(flow, jane):
    return flow.register(jane["name"], jane["email"], jane["password"])


class TestRegister:
    def test_success_normalizes_and_hides_password(self, flow, store, jane):
        outcome = _register(flow, jane)
        assert outcome.ok
        assert outcome.status_code == 201
        assert outcome.payload == {"id": outcome.payload["id"], "name": "Jane Doe", "email": "jane@test.com"}
        stored = store.get_credentials("jane@test.com")
        assert stored.password_hash != "secret123"
        assert outcome.session_token is None

    def test_name_is_trimmed(self, flow):
        outcome = flow.register("  Jane Doe  ", "jane@test.com", "secret123")
        assert outcome.payload["name"] == "Jane Doe"

    @pytest.mark.parametrize(
        "name, email, password",
        [
            (None, "jane@test.com", "secret123"),
            ("Jane Doe", None, "secret123"),
            ("Jane Doe", "jane@test.com", None),
            ("Jane Doe", ["jane@test.com"], "secret123"),
            ("Jane Doe", {"$ne": ""}, "secret123"),
            ("Jane Doe", "jane@test.com", 12345678),
            ("", "jane@test.com", "secret123"),
        ],
    )
    def test_missing_or_non_string_fields(self, flow, name, email, password):
        outcome = flow.register(name, email, password)
        assert outcome.reason is RejectReason.validation
        assert outcome.message == flow_module.MSG_REGISTER_REQUIRED
        assert outcome.status_code == 400

    @pytest.mark.parametrize("name", ["J", "Jane1", "Jane_Doe", "<script>", "A" * 101, "   "])
    def test_invalid_name(self, flow, name):
        outcome = flow.register(name, "jane@test.com", "secret123")
        assert outcome.reason is RejectReason.validation
        assert outcome.message == flow_module.MSG_NAME_INVALID

    @pytest.mark.parametrize("email", ["jane", "jane@test", "jane@@test.com", "ja ne@test.com", "@test.com"])
    def test_invalid_email(self, flow, email):
        outcome = flow.register("Jane Doe", email, "secret123")
        assert outcome.message == flow_module.MSG_EMAIL_INVALID

    def test_short_password_gets_length_message(self, flow):
        outcome = flow.register("Jane Doe", "jane@test.com", "short1")
        assert outcome.message == flow_module.MSG_PASSWORD_LENGTH

    def test_password_without_digit_gets_digit_message(self, flow):
        outcome = flow.register("Jane Doe", "jane@test.com", "longenough")
        assert outcome.message == flow_module.MSG_PASSWORD_DIGIT

    def test_password_without_letter_gets_letter_message(self, flow):
        outcome = flow.register("Jane Doe", "jane@test.com", "12345678")
        assert outcome.message == flow_module.MSG_PASSWORD_LETTER

    @pytest.mark.parametrize("password", ["a1" * 40, "pässwörd1" * 8])
    def test_password_over_72_bytes_is_a_validation_error(self, flow, store, password):
        outcome = flow.register("Jane Doe", "jane@test.com", password)
        assert outcome.reason is RejectReason.validation
        assert outcome.status_code == 400
        assert outcome.message == flow_module.MSG_PASSWORD_TOO_LONG
        assert store.count_users() == 0

    def test_password_of_exactly_72_bytes_is_accepted(self, flow):
        assert flow.register("Jane Doe", "jane@test.com", "a1" * 36).ok

    def test_duplicate_is_case_and_whitespace_insensitive(self, flow, store, jane):
        assert _register(flow, jane).ok
        outcome = flow.register("Someone Else", "  jane@TEST.com", "another123")
        assert outcome.reason is RejectReason.duplicate
        assert outcome.status_code == 400
        assert store.count_users() == 1
        assert store.get_credentials("jane@test.com").name == "Jane Doe"

    def test_duplicate_from_insert_race(self, hasher, tokens):
        """The existence check passes but the unique constraint rejects the insert."""
        store = MagicMock()
        store.email_exists.return_value = False
        store.create_user.side_effect = DuplicateEmailError("jane@test.com")
        outcome = AuthFlow(store, hasher, tokens).register("Jane Doe", "jane@test.com", "secret123")
        assert outcome.reason is RejectReason.duplicate

    def test_store_failure_is_server_fault(self, hasher, tokens):
        store = MagicMock()
        store.email_exists.side_effect = RuntimeError("database is locked: SELECT users.id FROM users")
        outcome = AuthFlow(store, hasher, tokens).register("Jane Doe", "jane@test.com", "secret123")
        assert outcome.kind is OutcomeKind.server_fault
        assert outcome.status_code == 500
        assert outcome.body() == {"message": "Internal server error."}


class TestLogin:
    def test_register_then_login_returns_same_id(self, flow, jane):
        registered = _register(flow, jane)
        outcome = flow.login("jane@test.com", "secret123")
        assert outcome.ok
        assert outcome.payload["id"] == registered.payload["id"]
        assert outcome.session_token
        assert "token" not in outcome.body()

    def test_login_normalizes_email(self, flow, jane):
        _register(flow, jane)
        assert flow.login(" JANE@test.COM ", "secret123").ok

    def test_token_is_bound_to_user(self, flow, tokens, jane):
        registered = _register(flow, jane)
        claims = tokens.verify(flow.login("jane@test.com", "secret123").session_token)
        assert claims.subject_id == registered.payload["id"]
        assert claims.subject_email == "jane@test.com"
        assert (claims.expires_at - claims.issued_at).total_seconds() == 86400

    def test_unknown_email_and_wrong_password_are_indistinguishable(self, flow, jane):
        _register(flow, jane)
        unknown = flow.login("nobody@test.com", "secret123")
        wrong = flow.login("jane@test.com", "wrongpass1")
        assert unknown.reason is wrong.reason is RejectReason.invalid_credentials
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.body() == wrong.body() == {"message": flow_module.MSG_BAD_CREDENTIALS}

    def test_overlong_login_password_is_invalid_credentials(self, flow, jane):
        _register(flow, jane)
        outcome = flow.login("jane@test.com", "a1" * 40)
        assert outcome.reason is RejectReason.invalid_credentials
        assert outcome.status_code == 401

    def test_lookup_miss_still_runs_bcrypt(self, store, tokens):
        hasher = MagicMock()
        hasher.dummy_hash = "dummy"
        AuthFlow(store, hasher, tokens).login("nobody@test.com", "secret123")
        hasher.verify.assert_called_once_with("secret123", "dummy")

    @pytest.mark.parametrize("email, password", [(None, "x"), ("a@b.co", None), ({"a": 1}, "x"), ("a@b.co", ["x"])])
    def test_missing_or_non_string_fields(self, flow, email, password):
        outcome = flow.login(email, password)
        assert outcome.reason is RejectReason.validation
        assert outcome.message == flow_module.MSG_LOGIN_REQUIRED

    def test_bad_email_format(self, flow):
        outcome = flow.login("not-an-email", "secret123")
        assert outcome.reason is RejectReason.validation
        assert outcome.message == flow_module.MSG_EMAIL_INVALID

    def test_missing_secret_is_server_fault(self, store, hasher, jane):
        unsigned_flow = AuthFlow(store, hasher, TokenService(secret=""))
        _register(unsigned_flow, jane)
        outcome = unsigned_flow.login("jane@test.com", "secret123")
        assert outcome.kind is OutcomeKind.server_fault
        assert outcome.session_token is None

    def test_store_failure_is_server_fault(self, hasher, tokens):
        store = MagicMock()
        store.get_credentials.side_effect = RuntimeError("connection refused")
        outcome = AuthFlow(store, hasher, tokens).login("jane@test.com", "secret123")
        assert outcome.kind is OutcomeKind.server_fault
        assert "connection" not in outcome.message


class TestProfile:
    def test_profile_uses_context_id(self, flow, jane):
        registered = _register(flow, jane)
        ctx = AuthContext(user_id=registered.payload["id"], email="ignored@test.com")
        outcome = flow.get_profile(ctx)
        assert outcome.ok
        assert outcome.payload["email"] == "jane@test.com"
        assert set(outcome.payload) == {"id", "name", "email", "createdAt"}

    def test_profile_never_contains_password_field(self, flow):
        for i, name in enumerate(["Ann Lee", "Bob Ray", "Cy Twombly"]):
            reg = flow.register(name, f"user{i}@test.com", f"password{i}")
            payload = flow.get_profile(AuthContext(user_id=reg.payload["id"], email="")).payload
            assert not any("password" in key.lower() for key in payload)

    def test_profile_for_deleted_user(self, flow):
        outcome = flow.get_profile(AuthContext(user_id=424242, email="gone@test.com"))
        assert outcome.reason is RejectReason.not_found
        assert outcome.status_code == 404


class TestLogout:
    def test_logout_without_session_succeeds(self, flow):
        assert flow.logout(None).ok

    def test_logout_with_session_succeeds(self, flow):
        assert flow.logout(AuthContext(user_id=1, email="a@b.co")).ok


class TestOutcomeBody:
    def test_success_body_is_a_copy_of_the_payload(self, flow, jane):
        outcome = _register(flow, jane)
        body = outcome.body()
        assert body == outcome.payload
        body["id"] = -1
        assert outcome.payload["id"] != -1

    def test_every_reject_reason_maps_to_a_client_status(self):
        for reason in RejectReason:
            assert AuthOutcome.rejected(reason, "x").status_code in (400, 401, 404)
