# dentconnect/modules/notifications/events.py
from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationEvent(BaseModel):
    """Base for everything the dispatcher can send. `recipient` is the To: address."""

    event_type: ClassVar[str] = "event"

    recipient: str


class BookingCreated(NotificationEvent):
    """A patient booked a slot; goes to the practice."""

    event_type: ClassVar[str] = "booking_created"

    booking_id: UUID
    patient_name: str
    patient_email: str
    patient_phone: Optional[str] = None
    practice_name: str
    practice_address: str
    practice_phone: Optional[str] = None
    dentist_name: str
    treatment_name: str
    treatment_category: str
    appointment_date: datetime
    accessibility_needs: List[str] = Field(default_factory=list)
    medications: bool = False
    allergies: bool = False
    anxiety_level: str = "comfortable"
    special_requests: Optional[str] = None


class ApprovalStatusChanged(NotificationEvent):
    """The practice approved or rejected a booking; goes to the patient."""

    event_type: ClassVar[str] = "approval_status_changed"

    booking_id: UUID
    patient_first_name: str
    practice_name: str
    practice_phone: Optional[str] = None
    treatment_name: str
    appointment_date: datetime
    approval_status: str


class WelcomeEvent(NotificationEvent):
    event_type: ClassVar[str] = "welcome"

    first_name: str
    user_type: str
    practice_name: Optional[str] = None
    practice_tag: Optional[str] = None
