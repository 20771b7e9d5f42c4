"""Application configuration using Pydantic settings."""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: str = "development"

    # Public site (used to build magic links and reset links)
    site_url: str = "https://webstability.nl"

    # Security
    magic_link_secret: str
    internal_api_secret: str
    developer_passwords: str = ""  # Comma-separated
    developer_session_hours: int = 24
    min_password_length: int = 4
    allow_passwordless_access: bool = True  # Projects without a stored password are open

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Redis (key-value store and ARQ worker)
    redis_url: str = "redis://127.0.0.1:6379"
    store_timeout_seconds: float = 3.0

    # Email provider
    email_api_url: str = "https://api.resend.com/emails"
    email_api_key: Optional[str] = None
    email_from: str = "Webstability <noreply@webstability.nl>"
    developer_email: Optional[str] = None

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def developer_password_list(self) -> List[str]:
        """Parse developer passwords from comma-separated string."""
        return [p.strip() for p in self.developer_passwords.split(",") if p.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
