"""Project aggregate as stored under ``project:{ID}``."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

Phase = Literal["onboarding", "intake", "design", "design_approved", "development", "review", "live"]
PaymentState = Literal["pending", "awaiting_payment", "paid", "failed"]


class Customer(BaseModel):
    """Contact details of the customer who owns the project."""
    name: str
    email: str
    phone: Optional[str] = None
    companyName: Optional[str] = None


class ChatMessage(BaseModel):
    """A message in the project conversation."""
    id: str
    sender: Literal["client", "developer"] = Field(..., alias="from")
    message: str
    timestamp: datetime
    read: bool = False

    class Config:
        populate_by_name = True


class Project(BaseModel):
    """
    A client project moving through the delivery lifecycle.

    ``id`` and ``createdAt`` never change after creation. ``phase`` is only
    written by the phase engine and ``paymentStatus`` only by the payment
    reconciler or a developer override. ``version`` increases on every write
    and guards against lost concurrent updates.
    """
    id: str
    phase: Phase = "onboarding"
    paymentStatus: PaymentState = "pending"
    paymentCompletedAt: Optional[datetime] = None
    type: str = "website"
    packageType: Optional[str] = None
    customer: Customer
    onboardingData: Dict[str, Any] = Field(default_factory=dict)
    messages: List[ChatMessage] = Field(default_factory=list)
    readyForDesign: bool = False
    readyForDesignAt: Optional[datetime] = None
    createdAt: datetime
    updatedAt: datetime
    version: int = 0

    class Config:
        extra = "allow"  # Legacy records carry fields this service does not own
        populate_by_name = True

    def to_record(self) -> Dict[str, Any]:
        """Serialize for storage (JSON-compatible, ``from`` alias on messages)."""
        return self.model_dump(mode="json", by_alias=True)


class ActivityEntry(BaseModel):
    """An entry in a project's activity log."""
    projectId: str
    type: str
    message: str
    sender: Literal["client", "developer", "system"] = Field("system", alias="from")
    timestamp: datetime

    class Config:
        populate_by_name = True
