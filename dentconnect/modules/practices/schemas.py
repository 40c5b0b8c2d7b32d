# dentconnect/modules/practices/schemas.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from dentconnect.modules.practices.models import TreatmentCategory


class PracticeCreate(BaseModel):
    """Insert schema; id and timestamps are server-side."""

    name: str = Field(..., min_length=1, max_length=255)
    address: str
    postcode: str = Field(..., max_length=10)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    phone: Optional[str] = None
    email: EmailStr
    practice_tag: str = Field(..., min_length=4, max_length=50)
    rating: float = 0.0
    review_count: int = 0
    wheelchair_access: bool = False
    sign_language: bool = False
    visual_support: bool = False
    cognitive_support: bool = False
    disabled_parking: bool = False
    opening_hours: Optional[str] = None


class PracticePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: str
    postcode: str
    latitude: float
    longitude: float
    phone: Optional[str] = None
    rating: float
    review_count: int
    wheelchair_access: bool
    sign_language: bool
    visual_support: bool
    cognitive_support: bool
    disabled_parking: bool
    opening_hours: Optional[str] = None


class PracticeSummary(BaseModel):
    """Returned by the practice-tag check."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: str
    practice_tag: str


class PracticeTagRequest(BaseModel):
    practice_tag: str = Field(..., min_length=1, max_length=50)


class PracticeTagResponse(BaseModel):
    valid: bool = True
    practice: PracticeSummary


class TreatmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: TreatmentCategory
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=5)
    price: Optional[float] = Field(default=None, ge=0)


class TreatmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    category: str
    description: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[float] = None


class DentistCreate(BaseModel):
    practice_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    title: str = Field(default="Dr.", max_length=100)
    specialization: Optional[str] = None
    experience: Optional[int] = Field(default=None, ge=0)
    qualifications: Optional[str] = None
    bio: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
    available_days: List[str] = Field(default_factory=list)


class DentistPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    practice_id: UUID
    name: str
    title: str
    specialization: Optional[str] = None
    experience: Optional[int] = None
    qualifications: Optional[str] = None
    bio: Optional[str] = None
    languages: List[str]
    available_days: List[str]
