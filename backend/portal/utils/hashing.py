"""Hashing utilities for project passwords and access tokens."""
import hashlib
import hmac
import secrets
import bcrypt

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt with a per-record random salt.

    Args:
        password: The password to hash

    Returns:
        Bcrypt hash string (salt embedded)
    """
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Args:
        password: The password to verify
        password_hash: The stored bcrypt hash

    Returns:
        True if the password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def is_bcrypt_hash(digest: str) -> bool:
    """Tell bcrypt hashes apart from legacy SHA-256 hex digests."""
    return digest.startswith(("$2b$", "$2a$", "$2y$"))


def hash_password_legacy(password: str) -> str:
    """
    Legacy unsalted SHA-256 password hashing (for migration purposes).

    Args:
        password: The password to hash

    Returns:
        SHA-256 hex digest
    """
    return hashlib.sha256(password.encode()).hexdigest()


def generate_token(nbytes: int = 32) -> str:
    """Generate a random hex token (reset links, magic links, sessions)."""
    return secrets.token_hex(nbytes)


def hash_token(token: str, secret: str = "") -> str:
    """
    Hash a token using SHA-256, optionally keyed with a server-side secret.

    Only this digest is ever stored; the raw token travels to the user once.
    """
    return hashlib.sha256(f"{token}{secret}".encode()).hexdigest()


def digests_match(presented: str, stored: str) -> bool:
    """Constant-time comparison of two digests."""
    return hmac.compare_digest(presented.encode(), stored.encode())
