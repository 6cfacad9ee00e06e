"""
tests/test_models.py -- Envelope, PaginatedCollection, User, Session and Settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from auth.models import Session, SessionState, User
from core.config import Settings, get_settings
from core.models import REQUEST_FAILED_MESSAGE, Envelope, PaginatedCollection


class TestEnvelope:
    def test_success_cannot_carry_error(self) -> None:
        with pytest.raises(ValueError):
            Envelope(success=True, error="boom")

    def test_failure_cannot_carry_data(self) -> None:
        with pytest.raises(ValueError):
            Envelope(success=False, data={"id": 1})

    def test_user_message_prefers_backend_text(self) -> None:
        assert Envelope.fail("not_found", "User u9 not found.", 404).user_message == "User u9 not found."

    def test_user_message_falls_back_for_failures_only(self) -> None:
        assert Envelope.fail("Bad Gateway", None, 502).user_message == REQUEST_FAILED_MESSAGE
        assert Envelope.ok({"id": 1}).user_message == ""

    def test_to_dict_omits_absent_fields(self) -> None:
        assert Envelope.ok({"id": 1}).to_dict() == {"success": True, "data": {"id": 1}}
        assert Envelope.fail("x", "y", 400).to_dict() == {
            "success": False,
            "error": "x",
            "message": "y",
            "statusCode": 400,
        }


class TestPaginatedCollection:
    def test_total_pages_is_derived(self) -> None:
        assert PaginatedCollection(total=21, page_size=10).total_pages == 3
        assert PaginatedCollection(total=20, page_size=10).total_pages == 2
        assert PaginatedCollection(total=0, page_size=10).total_pages == 0

    def test_stale_total_pages_is_ignored(self) -> None:
        page = PaginatedCollection.from_payload({"items": [], "total": 30, "page": 1, "pageSize": 10, "totalPages": 7})
        assert page.total_pages == 3

    def test_bare_list_is_one_page(self) -> None:
        page = PaginatedCollection.from_payload(["a", "b", "c"])
        assert (page.total, page.page, page.page_size, page.total_pages) == (3, 1, 3, 1)
        assert page.has_next is False

    def test_item_factory_is_applied(self) -> None:
        page = PaginatedCollection.from_payload({"items": [{"id": "u1", "email": "a@b.c"}]}, User.from_payload)
        assert isinstance(page.items[0], User)

    def test_has_next(self) -> None:
        assert PaginatedCollection(total=25, page=2, page_size=10).has_next is True
        assert PaginatedCollection(total=25, page=3, page_size=10).has_next is False

    def test_rejects_non_collection(self) -> None:
        with pytest.raises(ValueError):
            PaginatedCollection.from_payload("nope")


class TestUser:
    def test_from_camel_case_payload(self) -> None:
        user = User.from_payload(
            {"id": 7, "name": "Jane", "email": "jane@example.com", "role": "manager", "createdAt": "2026-01-01"}
        )
        assert user.id == "7"
        assert user.created_at == "2026-01-01"

    def test_missing_role_defaults_to_user(self) -> None:
        assert User.from_payload({"id": "u1", "email": "a@b.c"}).role == "user"

    @pytest.mark.parametrize("payload", [None, [], {"id": "u1"}, {"email": "a@b.c"}])
    def test_incomplete_payload_raises(self, payload) -> None:
        with pytest.raises(ValueError):
            User.from_payload(payload)


class TestSession:
    def test_lifecycle(self) -> None:
        session = Session()
        assert session.state is SessionState.UNKNOWN
        session.create("tok", User(id="u1", name="A", email="a@b.c", role="admin"))
        assert session.state is SessionState.AUTHENTICATED
        session.destroy()
        assert session.state is SessionState.ANONYMOUS
        assert session.token is None
        assert session.current_user is None

    def test_authenticated_requires_token(self) -> None:
        with pytest.raises(ValueError):
            Session().create("", User(id="u1", name="A", email="a@b.c", role="admin"))

    def test_snapshot_is_a_copy(self) -> None:
        session = Session()
        snapshot = session.snapshot()
        session.destroy()
        assert snapshot.loading is True


class TestSettings:
    def test_defaults(self, reset_settings, monkeypatch) -> None:
        monkeypatch.delenv("API_URL", raising=False)
        settings = get_settings()
        assert settings.request_timeout > 0
        assert settings.token_key == "auth-token"
        assert len(settings.secret_key) >= 32

    def test_api_url_trailing_slash_is_stripped(self, reset_settings, monkeypatch) -> None:
        monkeypatch.setenv("API_URL", "http://localhost:8000/v1/")
        assert get_settings().api_url == "http://localhost:8000/v1"

    def test_log_level_is_normalized(self, reset_settings, monkeypatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert get_settings().log_level == "DEBUG"

    def test_unknown_log_level_is_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            Settings()

    def test_short_secret_key_is_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", "too-short")
        with pytest.raises(ValidationError):
            Settings()

    def test_non_positive_timeout_is_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("REQUEST_TIMEOUT", "0")
        with pytest.raises(ValidationError):
            Settings()
