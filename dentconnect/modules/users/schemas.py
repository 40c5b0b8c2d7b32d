# dentconnect/modules/users/schemas.py
from __future__ import annotations

import re
from enum import Enum
from typing import Optional
from uuid import UUID
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SecretStr, field_validator, StringConstraints

class UserTypeIn(str, Enum):
    patient = "patient"
    dentist = "dentist"

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
PhoneStr = Annotated[str, StringConstraints(pattern=r"^\+?[0-9 ]{7,20}$")]

PASSWORD_RE = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d\S]{8,64}$")

class RegisterRequest(BaseModel):
    email: EmailStr = Field(...)
    password: SecretStr = Field(..., description="8–64 chars, at least one letter and one digit")
    first_name: NameStr
    last_name: NameStr
    user_type: UserTypeIn = UserTypeIn.patient
    phone: Optional[PhoneStr] = None
    # Required for dentists: links the account to a practice
    practice_tag: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: SecretStr) -> SecretStr:
        if not PASSWORD_RE.match(v.get_secret_value()):
            raise ValueError(
                "Password must be 8–64 chars and include at least one letter and one digit"
            )
        return v


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    user_type: UserTypeIn
    first_name: str
    last_name: str
    phone: Optional[str] = None
    practice_id: Optional[UUID] = None
    verified: bool
    created_at: datetime


class ErrorResponse(BaseModel):
    error: str
    message: str
    status: int


# --- Login / Me ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: SecretStr
    # When given, the account must be of this type (patient vs dentist login pages)
    user_type: Optional[UserTypeIn] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginResponse(BaseModel):
    user: UserPublic
    access_token: str
    token_type: str = "bearer"
    expires_in: int


MeResponse = UserPublic
