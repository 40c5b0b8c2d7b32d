# dentconnect/modules/appointments/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from dentconnect.core.security import as_utc
from dentconnect.modules.practices.schemas import DentistPublic, PracticePublic, TreatmentPublic

# Timestamps always leave the API as UTC (SQLite returns them naive)
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class AppointmentCreate(BaseModel):
    """
    Payload for a practice publishing a slot.
    - practice_id comes from the path, status always starts as 'available'.
    """
    dentist_id: UUID
    treatment_id: UUID
    appointment_date: datetime
    duration: int = Field(default=30, ge=5, le=480)


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    practice_id: UUID
    dentist_id: UUID
    treatment_id: UUID
    user_id: Optional[UUID] = None
    appointment_date: UTCDateTime
    duration: int
    status: str
    created_at: UTCDateTime


class AppointmentDetail(AppointmentPublic):
    """Slot with its practice, dentist and treatment (search results)."""

    practice: PracticePublic
    dentist: DentistPublic
    treatment: TreatmentPublic
    distance_km: Optional[float] = None


class PracticeWithSlots(PracticePublic):
    available_appointments: List[AppointmentPublic] = Field(default_factory=list)
