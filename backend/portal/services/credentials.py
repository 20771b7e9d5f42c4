"""Credential service: project passwords and token-based access.

Three token families share the key-value store:

* password reset tokens: single use, 1 hour
* magic link tokens: one active per project, 7 days, reusable until
  expiry or reissue
* magic sessions: minted from a verified magic link, single use, 5 minutes

Only digests of tokens are stored. Raw tokens leave the service exactly once,
inside a link or a redirect.
"""
import json
from datetime import datetime, timedelta
from typing import List, Optional
from urllib.parse import urlencode

from portal.config import Settings, settings as default_settings
from portal.constants import MAGIC_SESSION_TTL, MAGIC_TOKEN_TTL, RESET_TOKEN_TTL, NotificationEvent
from portal.models.project import Project
from portal.services.notifications import NotificationDispatcher
from portal.services.project_store import ProjectStore, normalize_project_id
from portal.storage.kv import KeyValueStore
from portal.storage.keys import (
    developer_session_key,
    magic_session_key,
    magic_session_used_key,
    magic_token_key,
    password_key,
    reset_key,
)
from portal.utils import hashing
from portal.utils.clock import Clock, utc_now
from portal.utils.exceptions import (
    AlreadyUsedError,
    AuthenticationError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from portal.utils.logger import logger, mask_email


class CredentialService:
    """Hashes and verifies project passwords; issues and verifies access tokens."""

    def __init__(
        self,
        kv: KeyValueStore,
        projects: ProjectStore,
        dispatcher: NotificationDispatcher,
        now: Clock = utc_now,
        settings: Settings = default_settings,
    ):
        self.kv = kv
        self.projects = projects
        self.dispatcher = dispatcher
        self.now = now
        self.settings = settings

    async def _find(self, project_id: str) -> Optional[Project]:
        """Load a project by its raw id (migrating legacy-cased records), or None."""
        try:
            return await self.projects.get(project_id)
        except NotFoundError:
            return None

    # Passwords

    @staticmethod
    def hash_password(plaintext: str) -> str:
        return hashing.hash_password(plaintext)

    async def set_password(self, project_id: str, new_password: str) -> None:
        """
        Store a new password digest for an existing project.

        Raises:
            ValidationError: If the password is too short
            NotFoundError: If the project does not exist
        """
        self.check_password_strength(new_password)
        project = await self.projects.get(project_id)
        await self.kv.set(password_key(project.id), self.hash_password(new_password))
        logger.info(f"Password updated for project {project.id}")

    async def verify_password(self, project_id: str, plaintext: str) -> bool:
        """
        Check a project password.

        A project without a stored digest is open (legacy behaviour) unless
        ``allow_passwordless_access`` is switched off. An unknown project is
        never granted. Legacy unsalted SHA-256 digests are accepted once and
        upgraded to bcrypt.
        """
        project = await self._find(project_id)
        if project is None:
            logger.info(f"Password check for unknown project {normalize_project_id(project_id)}")
            return False
        canonical = project.id

        stored = await self.kv.get(password_key(canonical))
        if stored is None:
            if not self.settings.allow_passwordless_access:
                return False
            logger.warning(f"Granting passwordless access to project {canonical}: no password set")
            return True

        if hashing.is_bcrypt_hash(stored):
            return hashing.verify_password(plaintext, stored)

        if hashing.digests_match(hashing.hash_password_legacy(plaintext), stored):
            await self.kv.set(password_key(canonical), self.hash_password(plaintext))
            logger.info(f"Upgraded legacy password digest for project {canonical}")
            return True
        return False

    async def login_by_email(self, email: str, plaintext: str) -> List[str]:
        """Return the ids of every project for ``email`` that accepts ``plaintext``."""
        granted = []
        for project in await self.projects.find_by_email(email):
            if await self.verify_password(project.id, plaintext):
                granted.append(project.id)
        return granted

    def check_password_strength(self, password: str) -> None:
        if not password or len(password) < self.settings.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.settings.min_password_length} characters"
            )

    # Password reset

    async def issue_reset_token(self, project_id: str, email: str) -> Optional[str]:
        """
        Start a password reset.

        The token is only created (and e-mailed) when the project exists and
        ``email`` matches its customer e-mail. Callers must answer with the
        same generic response either way.

        Returns:
            The raw token if one was issued, None otherwise
        """
        project = await self._find(project_id)
        if project is None:
            logger.info(f"Reset requested for unknown project {normalize_project_id(project_id)}")
            return None

        if project.customer.email.strip().lower() != email.strip().lower():
            logger.info(f"Reset requested for {project.id} with non-matching e-mail {mask_email(email)}")
            return None

        token = hashing.generate_token()
        expires_at = self.now() + timedelta(seconds=RESET_TOKEN_TTL)
        record = {"projectId": project.id, "email": project.customer.email, "expiresAt": expires_at.isoformat()}
        await self.kv.set_json(reset_key(hashing.hash_token(token)), record, ttl=RESET_TOKEN_TTL)

        query = urlencode({"token": token, "project": project.id})
        await self.dispatcher.dispatch(
            NotificationEvent.PASSWORD_RESET,
            project.customer.email,
            {
                "projectId": project.id,
                "name": project.customer.companyName or project.customer.name,
                "url": f"{self.settings.site_url}/wachtwoord-resetten?{query}",
            },
        )
        logger.info(f"Reset token issued for project {project.id}")
        return token

    async def confirm_reset(self, token: str, new_password: str) -> str:
        """
        Complete a password reset. The token is consumed on first read,
        whatever the outcome.

        Returns:
            The project id whose password changed

        Raises:
            ValidationError: If the new password is too short (token kept)
            NotFoundError: If the token is unknown or already used
            ExpiredError: If the token is past its expiry
        """
        self.check_password_strength(new_password)

        raw = await self.kv.pop(reset_key(hashing.hash_token(token)))
        if raw is None:
            raise NotFoundError("Invalid or already used reset link")

        record = json.loads(raw)
        if self.now() >= datetime.fromisoformat(record["expiresAt"]):
            logger.info(f"Expired reset token presented for project {record['projectId']}")
            raise ExpiredError("This reset link has expired, request a new one")

        await self.set_password(record["projectId"], new_password)
        await self.dispatcher.dispatch(
            NotificationEvent.PASSWORD_CHANGED,
            record["email"],
            {"projectId": record["projectId"]},
        )
        return record["projectId"]

    # Magic links

    def _magic_digest(self, token: str) -> str:
        return hashing.hash_token(token, self.settings.magic_link_secret)

    async def issue_magic_link(self, project_id: str) -> str:
        """
        Issue a magic link for a project, replacing any earlier one.

        Returns:
            The magic link URL

        Raises:
            NotFoundError: If the project does not exist
        """
        project = await self.projects.get(project_id)
        token = hashing.generate_token()
        await self.kv.set(magic_token_key(project.id), self._magic_digest(token), ttl=MAGIC_TOKEN_TTL)
        logger.info(f"Magic link created for project {project.id}")

        query = urlencode({"token": token, "projectId": project.id})
        return f"{self.settings.site_url}/api/auth/magic-link/verify?{query}"

    async def verify_magic_link(self, project_id: str, token: str) -> str:
        """
        Exchange a magic link token for a single-use session token.

        The magic token itself stays valid until it expires or is reissued.

        Raises:
            ExpiredError: If no magic token is active for the project
            AuthenticationError: If the project is unknown or the token does not match
        """
        project = await self._find(project_id)
        if project is None:
            logger.info(f"Magic link presented for unknown project {normalize_project_id(project_id)}")
            raise AuthenticationError("Invalid magic link")
        canonical = project.id
        stored = await self.kv.get(magic_token_key(canonical))
        if stored is None:
            logger.info(f"Magic link expired or not found for project {canonical}")
            raise ExpiredError("Magic link has expired")
        if not hashing.digests_match(self._magic_digest(token), stored):
            logger.info(f"Invalid magic link token for project {canonical}")
            raise AuthenticationError("Invalid magic link")

        session_token = hashing.generate_token(16)
        await self.kv.set(
            magic_session_key(canonical, hashing.hash_token(session_token)),
            "1",
            ttl=MAGIC_SESSION_TTL,
        )
        logger.info(f"Magic link verified for project {canonical}")
        return session_token

    async def verify_magic_session(self, project_id: str, session_token: str) -> bool:
        """
        Consume a magic session token. Succeeds at most once per token.

        Raises:
            AlreadyUsedError: If the token was consumed before
            AuthenticationError: If the project or token is unknown, or the token expired
        """
        project = await self._find(project_id)
        if project is None:
            raise AuthenticationError("Link has expired, log in with your password")
        canonical = project.id
        session_hash = hashing.hash_token(session_token)

        marker = await self.kv.pop(magic_session_key(canonical, session_hash))
        if marker is None:
            if await self.kv.get(magic_session_used_key(canonical, session_hash)) is not None:
                logger.warning(f"Replayed magic session for project {canonical}")
                raise AlreadyUsedError("This login link was already used")
            raise AuthenticationError("Link has expired, log in with your password")

        await self.kv.set(magic_session_used_key(canonical, session_hash), "1", ttl=MAGIC_SESSION_TTL)
        logger.info(f"Magic session verified for project {canonical}")
        return True

    # Developer sessions

    async def developer_login(self, password: str) -> str:
        """
        Log a developer in with one of the configured passwords.

        Returns:
            A bearer token valid for ``developer_session_hours``
        """
        candidates = self.settings.developer_password_list
        if not candidates:
            logger.warning("Developer login attempted but no developer passwords are configured")
            raise AuthenticationError("Developer login is not configured")

        presented = hashing.hash_token(password)
        if not any(hashing.digests_match(presented, hashing.hash_token(c)) for c in candidates):
            logger.warning("Developer login failed - wrong password")
            raise AuthenticationError("Incorrect password")

        token = hashing.generate_token()
        ttl = self.settings.developer_session_hours * 60 * 60
        await self.kv.set(developer_session_key(hashing.hash_token(token)), "1", ttl=ttl)
        logger.info("Developer logged in")
        return token

    async def verify_developer_session(self, token: str) -> bool:
        return await self.kv.get(developer_session_key(hashing.hash_token(token))) is not None

    async def developer_logout(self, token: str) -> None:
        await self.kv.delete(developer_session_key(hashing.hash_token(token)))
