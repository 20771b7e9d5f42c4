"""Key layout of the key-value store."""
from portal.constants import PROJECTS_SET_KEY


def project_key(project_id: str) -> str:
    """Key holding the project record."""
    return f"project:{project_id}"


def password_key(project_id: str) -> str:
    """Key holding the project password digest."""
    return f"project:{project_id}:password"


def activity_key(project_id: str) -> str:
    """List of activity entries for a project, newest first."""
    return f"project:{project_id}:activity"


def reset_key(token_hash: str) -> str:
    """Key holding a pending password reset."""
    return f"reset:{token_hash}"


def magic_token_key(project_id: str) -> str:
    """Key holding the active magic-link token digest for a project."""
    return f"magic_token:{project_id}"


def magic_session_key(project_id: str, session_hash: str) -> str:
    """Marker for a short-lived session minted from a magic link."""
    return f"magic_session:{project_id}:{session_hash}"


def magic_session_used_key(project_id: str, session_hash: str) -> str:
    """Tombstone left behind once a magic session is consumed."""
    return f"magic_session_used:{project_id}:{session_hash}"


def developer_session_key(token_hash: str) -> str:
    """Marker for a logged-in developer."""
    return f"developer_session:{token_hash}"


__all__ = [
    "PROJECTS_SET_KEY",
    "project_key",
    "password_key",
    "activity_key",
    "reset_key",
    "magic_token_key",
    "magic_session_key",
    "magic_session_used_key",
    "developer_session_key",
]
