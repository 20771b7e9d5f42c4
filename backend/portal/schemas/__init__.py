"""Pydantic schemas for request/response validation."""
from portal.schemas.auth import GrantResponse, VerifyPasswordRequest
from portal.schemas.project import PaymentUpdateRequest, ProjectResponse

__all__ = ["GrantResponse", "VerifyPasswordRequest", "PaymentUpdateRequest", "ProjectResponse"]
