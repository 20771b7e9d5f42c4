"""Schemas for project, phase and payment endpoints."""
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional

from portal.models.project import ChatMessage, Customer, PaymentState, Phase, Project


class ProjectCreate(BaseModel):
    """Intake submission creating a new project."""
    id: Optional[str] = None
    type: str = "website"
    packageType: Optional[str] = None
    customer: Customer
    onboardingData: Dict[str, Any] = Field(default_factory=dict)
    password: Optional[str] = Field(None, description="Optional project password")


class ProjectUpdate(BaseModel):
    """Partial update of non-lifecycle project fields."""
    type: Optional[str] = None
    packageType: Optional[str] = None
    customer: Optional[Dict[str, Any]] = None
    onboardingData: Optional[Dict[str, Any]] = None
    expectedVersion: Optional[int] = None


class ProjectResponse(BaseModel):
    """Client-facing project status view. Never contains credentials."""
    id: str
    phase: Phase
    paymentStatus: PaymentState
    paymentCompletedAt: Optional[datetime] = None
    type: str
    packageType: Optional[str] = None
    customer: Customer
    onboardingData: Dict[str, Any]
    messages: List[ChatMessage]
    readyForDesign: bool
    readyForDesignAt: Optional[datetime] = None
    createdAt: datetime
    updatedAt: datetime
    version: int

    class Config:
        populate_by_name = True

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        """Convert the stored project to the response model."""
        return cls.model_validate(project.model_dump(include=set(cls.model_fields)))


class PhaseResponse(BaseModel):
    """Result of a phase operation."""
    projectId: str
    phase: Phase
    changed: bool
    readyForDesignAt: Optional[datetime] = None


class PhaseOverrideRequest(BaseModel):
    phase: Phase


class MessageCreate(BaseModel):
    message: str = Field(..., description="Message text")
    sender: Literal["client", "developer"] = Field("client", alias="from")

    class Config:
        populate_by_name = True


class MessagesReadResponse(BaseModel):
    success: bool
    marked: int


class PaymentUpdateRequest(BaseModel):
    """Payment status event relayed from the payment provider webhook."""
    projectId: str = Field(..., min_length=1)
    paymentStatus: PaymentState
    paymentCompletedAt: Optional[datetime] = None


class PaymentOverrideRequest(BaseModel):
    paymentStatus: PaymentState


class PaymentUpdateResponse(BaseModel):
    success: bool
    projectId: str
    paymentStatus: PaymentState
    phase: Phase
    paymentCompletedAt: Optional[datetime] = None


class PasswordSetRequest(BaseModel):
    password: str
