"""Project store: the owner of ``Project`` records in the key-value store.

Identifiers are case-insensitive and stored upper-cased. Records written
under a differently-cased key by older code are found through a one-time
fallback read and moved to the canonical key on first access.

Writes are optimistic: every record carries a ``version`` and ``update``
only succeeds when the record is unchanged since it was read. A lost race
surfaces as :class:`ConflictError` and the caller may retry.
"""
import asyncio
import json
import secrets
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from portal.constants import PROJECTS_SET_KEY, Phase, PaymentStatus
from portal.models.project import ActivityEntry, ChatMessage, Project
from portal.storage.kv import KeyValueStore
from portal.storage.keys import activity_key, magic_token_key, password_key, project_key
from portal.utils.clock import Clock, utc_now
from portal.utils.exceptions import ConflictError, NotFoundError, ValidationError
from portal.utils.logger import logger

_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Never taken from a partial update
IMMUTABLE_FIELDS = frozenset({"id", "createdAt", "updatedAt", "version"})
# Only written by the phase engine and payment reconciler
LIFECYCLE_FIELDS = frozenset({"phase", "paymentStatus", "paymentCompletedAt", "readyForDesign", "readyForDesignAt"})
# Merged key-by-key instead of replaced
MERGED_FIELDS = ("customer", "onboardingData")


def normalize_project_id(project_id: str) -> str:
    """Canonical form of a project identifier."""
    return project_id.strip().upper()


def generate_project_id() -> str:
    """Generate a new identifier such as ``WS-7K2MQ9XD``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(8))
    return f"WS-{suffix}"


def _validate(record: Dict[str, Any]) -> Project:
    try:
        return Project.model_validate(record)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid project data: {e.errors()[0]['msg']}") from e


def _parse(raw: str) -> Project:
    try:
        return Project.model_validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Stored project is unreadable: {e.errors()[0]['msg']}") from e


class ProjectStore:
    """Create, load, update and enumerate projects."""

    def __init__(self, kv: KeyValueStore, now: Clock = utc_now):
        self.kv = kv
        self.now = now

    async def create(self, draft: Dict[str, Any]) -> Project:
        """
        Create a project from intake data.

        Args:
            draft: Project fields; ``id`` is generated when absent

        Returns:
            The stored project

        Raises:
            ConflictError: If a project with this id already exists
            ValidationError: If the draft is not a valid project
        """
        project_id = normalize_project_id(draft.get("id") or "") or generate_project_id()
        if await self.kv.get(project_key(project_id)) is not None:
            raise ConflictError(f"Project already exists: {project_id}")

        now = self.now()
        record = {k: v for k, v in draft.items() if v is not None}
        record.update({"id": project_id, "createdAt": now, "updatedAt": now, "version": 1})
        record.setdefault("phase", Phase.ONBOARDING)
        record.setdefault("paymentStatus", PaymentStatus.PENDING)
        project = _validate(record)

        written = await self.kv.compare_and_set(project_key(project_id), None, json.dumps(project.to_record()))
        if not written:
            raise ConflictError(f"Project already exists: {project_id}")
        await self.kv.add_member(PROJECTS_SET_KEY, project_id)

        logger.info(f"Created project {project_id} ({project.type})")
        return project

    async def get(self, project_id: str) -> Project:
        """
        Load a project by identifier (case-insensitive).

        Raises:
            NotFoundError: If no such project exists
        """
        project, _ = await self._load(project_id)
        return project

    async def update(
        self,
        project_id: str,
        partial: Dict[str, Any],
        expected_version: Optional[int] = None,
        lifecycle: bool = False,
    ) -> Project:
        """
        Merge ``partial`` over the stored project.

        ``id``, ``createdAt`` and ``version`` in the partial are ignored.
        ``customer`` and ``onboardingData`` are merged key by key. Phase and
        payment fields are dropped unless ``lifecycle`` is set, which only the
        phase engine and payment reconciler do.

        Args:
            project_id: Project to update
            partial: Fields to change
            expected_version: Fail with ConflictError unless the stored
                version still equals this value
            lifecycle: Allow phase and payment fields through

        Returns:
            The updated project

        Raises:
            NotFoundError: If no such project exists
            ConflictError: On a stale version or a concurrent write
        """
        project, raw = await self._load(project_id)
        if expected_version is not None and expected_version != project.version:
            raise ConflictError(
                "Project was modified since it was read",
                currentVersion=project.version,
            )

        changes = {k: v for k, v in partial.items() if k not in IMMUTABLE_FIELDS}
        if not lifecycle:
            dropped = LIFECYCLE_FIELDS.intersection(changes)
            if dropped:
                logger.warning(f"Ignoring lifecycle fields {sorted(dropped)} in update of {project.id}")
            changes = {k: v for k, v in changes.items() if k not in LIFECYCLE_FIELDS}

        record = project.to_record()
        for field in MERGED_FIELDS:
            if isinstance(changes.get(field), dict):
                changes[field] = {**(record.get(field) or {}), **changes[field]}
        record.update(changes)
        record["updatedAt"] = self.now()
        record["version"] = project.version + 1
        updated = _validate(record)

        written = await self.kv.compare_and_set(project_key(project.id), raw, json.dumps(updated.to_record()))
        if not written:
            logger.warning(f"Concurrent update of project {project.id} rejected")
            raise ConflictError("Project was modified concurrently, retry the update")
        return updated

    async def list_all(self) -> List[Project]:
        """
        Load every registered project, newest first.

        Records that are missing or unreadable are skipped.
        """
        ids = await self.kv.members(PROJECTS_SET_KEY)
        loaded = await asyncio.gather(*(self._load_or_none(pid) for pid in sorted(ids)))
        projects = [p for p in loaded if p is not None]
        return sorted(projects, key=lambda p: p.createdAt, reverse=True)

    async def find_by_email(self, email: str) -> List[Project]:
        """All projects whose customer e-mail matches (case-insensitive)."""
        wanted = email.strip().lower()
        return [p for p in await self.list_all() if p.customer.email.strip().lower() == wanted]

    # Messages

    async def add_message(self, project_id: str, sender: str, text: str) -> ChatMessage:
        """
        Append a message to the project conversation.

        Client messages start unread (for the developer); developer
        messages start read.
        """
        if not text or not text.strip():
            raise ValidationError("Message is required")
        project = await self.get(project_id)
        message = ChatMessage(
            id=f"msg-{uuid.uuid4().hex[:12]}",
            sender=sender,
            message=text.strip(),
            timestamp=self.now(),
            read=sender == "developer",
        )
        messages = [m.model_dump(mode="json", by_alias=True) for m in project.messages]
        messages.append(message.model_dump(mode="json", by_alias=True))
        await self.update(project.id, {"messages": messages}, expected_version=project.version)
        return message

    async def mark_messages_read(self, project_id: str, sender: str = "developer") -> int:
        """Flip unread messages from ``sender`` to read. Returns how many changed."""
        project = await self.get(project_id)
        unread = [m for m in project.messages if m.sender == sender and not m.read]
        if not unread:
            return 0
        messages = [
            {**m.model_dump(mode="json", by_alias=True), "read": m.read or m.sender == sender}
            for m in project.messages
        ]
        await self.update(project.id, {"messages": messages}, expected_version=project.version)
        return len(unread)

    # Activity log

    async def log_activity(self, project_id: str, activity_type: str, message: str, sender: str = "system") -> ActivityEntry:
        entry = ActivityEntry(
            projectId=normalize_project_id(project_id),
            type=activity_type,
            message=message,
            sender=sender,
            timestamp=self.now(),
        )
        await self.kv.push_json(activity_key(entry.projectId), entry.model_dump(mode="json", by_alias=True))
        return entry

    async def activity(self, project_id: str, limit: int = 50) -> List[ActivityEntry]:
        project = await self.get(project_id)
        items = await self.kv.range_json(activity_key(project.id), 0, limit - 1)
        return [ActivityEntry.model_validate(item) for item in items]

    # Loading

    async def _load(self, project_id: str) -> Tuple[Project, str]:
        canonical = normalize_project_id(project_id)
        raw = await self.kv.get(project_key(canonical))
        if raw is not None:
            return _parse(raw), raw

        legacy_id = project_id.strip()
        if legacy_id and legacy_id != canonical:
            legacy_raw = await self.kv.get(project_key(legacy_id))
            if legacy_raw is not None:
                return await self._migrate(legacy_id, canonical, legacy_raw)

        raise NotFoundError(f"Project not found: {canonical}")

    async def _migrate(self, legacy_id: str, canonical: str, legacy_raw: str) -> Tuple[Project, str]:
        """
        Move a record stored under a non-canonical key to its canonical key.

        The password digest, magic link token and activity log stored next to
        the record move first, so the canonical record never appears without
        its credentials.
        """
        try:
            record = json.loads(legacy_raw)
        except ValueError as e:
            raise ValidationError(f"Stored project is unreadable: {e}") from e
        record["id"] = canonical
        project = _validate(record)
        raw = json.dumps(project.to_record())

        for key_for in (password_key, magic_token_key, activity_key):
            if not await self.kv.move(key_for(legacy_id), key_for(canonical)):
                # Canonical copy already present; the legacy one is stale
                await self.kv.delete(key_for(legacy_id))

        if await self.kv.compare_and_set(project_key(canonical), None, raw):
            await self.kv.add_member(PROJECTS_SET_KEY, canonical)
            await self.kv.remove_member(PROJECTS_SET_KEY, legacy_id)
            await self.kv.delete(project_key(legacy_id))
            logger.info(f"Migrated project record {legacy_id} to canonical key {canonical}")
            return project, raw

        # Another request migrated it first
        return await self._load(canonical)

    async def _load_or_none(self, project_id: str) -> Optional[Project]:
        try:
            project, _ = await self._load(project_id)
            return project
        except (NotFoundError, ValidationError) as e:
            logger.warning(f"Skipping unreadable project {project_id}: {e}")
            return None
