# dentconnect/modules/bookings/schemas.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from dentconnect.modules.appointments.schemas import AppointmentPublic, UTCDateTime
from dentconnect.modules.practices.schemas import PracticePublic, TreatmentPublic


class AnxietyLevelIn(str, Enum):
    comfortable = "comfortable"
    nervous = "nervous"
    anxious = "anxious"


class ApprovalDecision(str, Enum):
    approved = "approved"
    rejected = "rejected"


class GuestContact(BaseModel):
    """Details used to create an account when booking without logging in."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=32)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class BookingCreate(BaseModel):
    """
    Insert schema for a booking.
    - user_id comes from the current user (or the guest account), never from the client.
    - practice/dentist/treatment/date are copied from the appointment server-side.
    """
    appointment_id: UUID
    treatment_category: str
    accessibility_needs: List[str] = Field(default_factory=list)
    medications: bool = False
    allergies: bool = False
    last_dental_visit: Optional[str] = Field(default=None, max_length=50)
    anxiety_level: AnxietyLevelIn = AnxietyLevelIn.comfortable
    special_requests: Optional[str] = Field(default=None, max_length=2000)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(default=None, max_length=32)
    guest: Optional[GuestContact] = None


class ApprovalUpdate(BaseModel):
    approval_status: ApprovalDecision


class BookingPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    appointment_id: UUID
    practice_id: UUID
    dentist_id: UUID
    treatment_id: UUID
    appointment_date: UTCDateTime
    status: str
    payment_status: str
    approval_status: str
    approved_by: Optional[UUID] = None
    approved_at: Optional[UTCDateTime] = None
    cancelled_by: Optional[UUID] = None
    cancelled_at: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    treatment_category: str
    accessibility_needs: List[str]
    medications: bool
    allergies: bool
    last_dental_visit: Optional[str] = None
    anxiety_level: str
    special_requests: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class BookingDetail(BookingPublic):
    """Booking with the practice, appointment and treatment it points at."""

    practice: PracticePublic
    appointment: AppointmentPublic
    treatment: TreatmentPublic
