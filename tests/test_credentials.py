"""Tests for passwords, reset tokens, magic links and developer sessions."""

from __future__ import annotations

import hashlib
import json
from urllib.parse import parse_qs, urlparse

import pytest

from portal.config import Settings, settings
from portal.constants import NotificationEvent
from portal.models.project import Project
from portal.services.credentials import CredentialService
from portal.utils.exceptions import (
    AlreadyUsedError,
    AuthenticationError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestPasswords:
    async def test_verify_is_deterministic(self, credentials: CredentialService, project: Project) -> None:
        await credentials.set_password("WS-TEST1", "geheim123")
        results = [await credentials.verify_password("ws-test1", "geheim123") for _ in range(3)]
        assert results == [True, True, True]
        assert await credentials.verify_password("WS-TEST1", "fout") is False

    async def test_digest_is_salted_bcrypt(self, credentials: CredentialService, project: Project, kv) -> None:
        await credentials.set_password("WS-TEST1", "geheim123")
        stored = await kv.get("project:WS-TEST1:password")
        assert stored.startswith("$2")
        assert "geheim123" not in stored
        assert credentials.hash_password("geheim123") != credentials.hash_password("geheim123")

    async def test_unknown_project_is_never_granted(self, credentials: CredentialService) -> None:
        assert await credentials.verify_password("WS-NOPE", "anything") is False

    async def test_passwordless_project(self, credentials: CredentialService, project: Project) -> None:
        assert await credentials.verify_password("WS-TEST1", "whatever") is True

    async def test_passwordless_access_can_be_disabled(self, kv, projects, dispatcher, clock, project: Project) -> None:
        strict = settings.model_copy(update={"allow_passwordless_access": False})
        service = CredentialService(kv, projects, dispatcher, now=clock, settings=strict)
        assert await service.verify_password("WS-TEST1", "whatever") is False

    async def test_legacy_digest_is_upgraded(self, credentials: CredentialService, project: Project, kv) -> None:
        await kv.set("project:WS-TEST1:password", hashlib.sha256(b"oudwachtwoord").hexdigest())

        assert await credentials.verify_password("WS-TEST1", "fout") is False
        assert await credentials.verify_password("WS-TEST1", "oudwachtwoord") is True

        upgraded = await kv.get("project:WS-TEST1:password")
        assert upgraded.startswith("$2")
        assert await credentials.verify_password("WS-TEST1", "oudwachtwoord") is True

    @pytest.mark.parametrize("migrate_first", [False, True])
    async def test_legacy_cased_project_keeps_its_password(
        self, credentials: CredentialService, projects, kv, clock, migrate_first: bool
    ) -> None:
        record = {"id": "ws-legacy", "customer": {"name": "L", "email": "l@l.nl"},
                  "createdAt": clock().isoformat(), "updatedAt": clock().isoformat()}
        await kv.set("project:ws-legacy", json.dumps(record))
        await kv.set("project:ws-legacy:password", hashlib.sha256(b"secret").hexdigest())
        if migrate_first:
            await projects.get("ws-legacy")

        assert await credentials.verify_password("ws-legacy", "totally-wrong") is False
        assert await credentials.verify_password("ws-legacy", "secret") is True
        assert await credentials.verify_password("WS-LEGACY", "secret") is True

    async def test_legacy_cased_project_magic_link(self, credentials: CredentialService, kv, clock) -> None:
        record = {"id": "ws-magic", "customer": {"name": "M", "email": "m@m.nl"},
                  "createdAt": clock().isoformat(), "updatedAt": clock().isoformat()}
        await kv.set("project:ws-magic", json.dumps(record))

        token = _query(await credentials.issue_magic_link("ws-magic"))["token"]
        session = await credentials.verify_magic_link("ws-magic", token)
        assert await credentials.verify_magic_session("ws-magic", session) is True

    async def test_short_password_rejected(self, credentials: CredentialService, project: Project) -> None:
        with pytest.raises(ValidationError):
            await credentials.set_password("WS-TEST1", "abc")

    async def test_set_password_unknown_project(self, credentials: CredentialService) -> None:
        with pytest.raises(NotFoundError):
            await credentials.set_password("WS-NOPE", "geheim123")

    async def test_login_by_email(self, credentials: CredentialService, projects, project: Project) -> None:
        await projects.create({"id": "WS-SECOND", "customer": {"name": "Anna", "email": "A@B.nl"}})
        await credentials.set_password("WS-TEST1", "geheim123")
        await credentials.set_password("WS-SECOND", "anders456")

        assert await credentials.login_by_email("a@b.nl", "geheim123") == ["WS-TEST1"]
        assert await credentials.login_by_email("a@b.nl", "niets") == []
        assert await credentials.login_by_email("nobody@b.nl", "geheim123") == []


class TestPasswordReset:
    async def test_issue_dispatches_link(self, credentials: CredentialService, project: Project, dispatcher) -> None:
        token = await credentials.issue_reset_token("ws-test1", "A@B.NL")

        assert token
        event, recipient, context = dispatcher.sent[-1]
        assert event == NotificationEvent.PASSWORD_RESET
        assert recipient == "a@b.nl"
        assert _query(context["url"]) == {"token": token, "project": "WS-TEST1"}

    async def test_only_digest_is_stored(self, credentials: CredentialService, project: Project, kv) -> None:
        token = await credentials.issue_reset_token("WS-TEST1", "a@b.nl")
        keys = await kv.scan_prefix("reset:")
        assert len(keys) == 1
        assert token not in keys[0]

    async def test_no_token_for_wrong_email(self, credentials: CredentialService, project: Project, dispatcher) -> None:
        assert await credentials.issue_reset_token("WS-TEST1", "someone@else.nl") is None
        assert await credentials.issue_reset_token("WS-NOPE", "a@b.nl") is None
        assert dispatcher.sent == []

    async def test_confirm_is_single_use(self, credentials: CredentialService, project: Project, dispatcher) -> None:
        token = await credentials.issue_reset_token("WS-TEST1", "a@b.nl")

        assert await credentials.confirm_reset(token, "nieuw123") == "WS-TEST1"
        assert await credentials.verify_password("WS-TEST1", "nieuw123") is True
        assert dispatcher.events()[-1] == NotificationEvent.PASSWORD_CHANGED

        with pytest.raises(NotFoundError):
            await credentials.confirm_reset(token, "nogeen123")
        assert await credentials.verify_password("WS-TEST1", "nieuw123") is True

    async def test_expired_token(self, credentials: CredentialService, project: Project, clock) -> None:
        token = await credentials.issue_reset_token("WS-TEST1", "a@b.nl")
        clock.advance(hours=1, seconds=1)

        with pytest.raises(ExpiredError):
            await credentials.confirm_reset(token, "nieuw123")
        with pytest.raises(NotFoundError):
            await credentials.confirm_reset(token, "nieuw123")

    async def test_short_password_keeps_token(self, credentials: CredentialService, project: Project) -> None:
        token = await credentials.issue_reset_token("WS-TEST1", "a@b.nl")
        with pytest.raises(ValidationError):
            await credentials.confirm_reset(token, "abc")
        assert await credentials.confirm_reset(token, "lang-genoeg") == "WS-TEST1"

    async def test_unknown_token(self, credentials: CredentialService) -> None:
        with pytest.raises(NotFoundError):
            await credentials.confirm_reset("deadbeef", "nieuw123")


class TestMagicLinks:
    async def test_link_points_at_verify_endpoint(self, credentials: CredentialService, project: Project) -> None:
        url = await credentials.issue_magic_link("ws-test1")
        assert url.startswith(f"{settings.site_url}/api/auth/magic-link/verify?")
        assert _query(url)["projectId"] == "WS-TEST1"

    async def test_unknown_project(self, credentials: CredentialService) -> None:
        with pytest.raises(NotFoundError):
            await credentials.issue_magic_link("WS-NOPE")

    async def test_session_granted_exactly_once(self, credentials: CredentialService, project: Project) -> None:
        token = _query(await credentials.issue_magic_link("WS-TEST1"))["token"]
        session = await credentials.verify_magic_link("WS-TEST1", token)

        assert await credentials.verify_magic_session("ws-test1", session) is True
        with pytest.raises(AlreadyUsedError):
            await credentials.verify_magic_session("WS-TEST1", session)

    async def test_magic_token_is_reusable(self, credentials: CredentialService, project: Project) -> None:
        token = _query(await credentials.issue_magic_link("WS-TEST1"))["token"]
        first = await credentials.verify_magic_link("WS-TEST1", token)
        second = await credentials.verify_magic_link("WS-TEST1", token)
        assert first != second

    async def test_reissue_replaces_token(self, credentials: CredentialService, project: Project) -> None:
        old = _query(await credentials.issue_magic_link("WS-TEST1"))["token"]
        await credentials.issue_magic_link("WS-TEST1")
        with pytest.raises(AuthenticationError):
            await credentials.verify_magic_link("WS-TEST1", old)

    async def test_no_active_link(self, credentials: CredentialService, project: Project) -> None:
        with pytest.raises(ExpiredError):
            await credentials.verify_magic_link("WS-TEST1", "anything")

    async def test_unknown_project_link_is_invalid(self, credentials: CredentialService) -> None:
        with pytest.raises(AuthenticationError):
            await credentials.verify_magic_link("WS-NOPE", "anything")
        with pytest.raises(AuthenticationError):
            await credentials.verify_magic_session("WS-NOPE", "anything")

    async def test_unknown_session(self, credentials: CredentialService, project: Project) -> None:
        with pytest.raises(AuthenticationError):
            await credentials.verify_magic_session("WS-TEST1", "never-issued")

    async def test_session_bound_to_project(self, credentials: CredentialService, projects, project: Project) -> None:
        await projects.create({"id": "WS-OTHER", "customer": {"name": "B", "email": "b@b.nl"}})
        token = _query(await credentials.issue_magic_link("WS-TEST1"))["token"]
        session = await credentials.verify_magic_link("WS-TEST1", token)

        with pytest.raises(AuthenticationError):
            await credentials.verify_magic_session("WS-OTHER", session)


class TestDeveloperSessions:
    async def test_login_and_logout(self, credentials: CredentialService) -> None:
        token = await credentials.developer_login("dev-pass-2")
        assert await credentials.verify_developer_session(token) is True

        await credentials.developer_logout(token)
        assert await credentials.verify_developer_session(token) is False

    async def test_session_ttl(self, credentials: CredentialService, redis_client) -> None:
        token = await credentials.developer_login("dev-pass-1")
        keys = [k async for k in redis_client.scan_iter(match="developer_session:*")]
        assert len(keys) == 1
        assert token not in keys[0]
        assert 0 < await redis_client.ttl(keys[0]) <= 24 * 60 * 60

    async def test_wrong_password(self, credentials: CredentialService) -> None:
        with pytest.raises(AuthenticationError):
            await credentials.developer_login("guess")

    async def test_not_configured(self, kv, projects, dispatcher) -> None:
        unconfigured = Settings(magic_link_secret="m", internal_api_secret="i", developer_passwords="")
        service = CredentialService(kv, projects, dispatcher, settings=unconfigured)
        with pytest.raises(AuthenticationError):
            await service.developer_login("")
