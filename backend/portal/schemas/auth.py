"""Schemas for the authentication endpoints."""
from pydantic import BaseModel, Field
from typing import List


class VerifyPasswordRequest(BaseModel):
    """Request schema for /api/auth/verify."""
    projectId: str = Field(..., min_length=1, description="Project ID")
    password: str = Field(..., min_length=1, description="Project password")


class GrantResponse(BaseModel):
    """Whether access to the project status view is granted."""
    granted: bool
    projectId: str


class EmailLoginRequest(BaseModel):
    """Request schema for /api/auth/login."""
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class EmailLoginResponse(BaseModel):
    granted: bool
    projectIds: List[str]


class ResetRequest(BaseModel):
    """Request schema for /api/auth/reset."""
    projectId: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)


class ResetConfirmRequest(BaseModel):
    """Request schema for /api/auth/reset/confirm."""
    token: str = Field(..., min_length=1)
    newPassword: str


class MagicLinkRequest(BaseModel):
    """Request schema for /api/auth/magic-link."""
    projectId: str = Field(..., min_length=1)


class MagicLinkResponse(BaseModel):
    url: str


class MagicSessionRequest(BaseModel):
    """Request schema for /api/auth/magic-session/verify."""
    projectId: str = Field(..., min_length=1)
    sessionToken: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    success: bool
    message: str


class DeveloperLoginRequest(BaseModel):
    password: str = Field(..., min_length=1)


class DeveloperLoginResponse(BaseModel):
    token: str
    expiresInSeconds: int
