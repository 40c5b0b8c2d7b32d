# dentconnect/client/flow.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dentconnect.client.api import ApiError, DentConnectAPI

logger = logging.getLogger(__name__)

TREATMENT = 1
ACCESSIBILITY = 2
PRACTICE = 3
CONFIRM = 4

STEP_NAMES = {
    TREATMENT: "treatment",
    ACCESSIBILITY: "accessibility",
    PRACTICE: "practice",
    CONFIRM: "confirm",
}


class BookingDraft(BaseModel):
    """Answers collected across the booking steps."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    treatment_category: str = ""
    accessibility_needs: List[str] = Field(default_factory=list)
    medications: bool = False
    allergies: bool = False
    last_dental_visit: str = ""
    anxiety_level: str = "comfortable"


class BookingSubmissionError(Exception):
    """
    Submitting the draft failed. When `retryable` is true the flow has moved
    back to practice selection and the draft is intact.
    """

    def __init__(self, code: str, *, retryable: bool, message: str = ""):
        self.code = code
        self.retryable = retryable
        super().__init__(message or code)


class BookingFlow:
    """
    Four-step booking wizard: treatment -> accessibility -> practice -> confirm.

    Holds no server state; `submit` is the only network call.
    """

    first_step = TREATMENT
    last_step = CONFIRM

    def __init__(self) -> None:
        self.step = self.first_step
        self.draft = BookingDraft()

    @property
    def step_name(self) -> str:
        return STEP_NAMES[self.step]

    def advance(self) -> int:
        if self.step < self.last_step:
            self.step += 1
        return self.step

    def back(self) -> int:
        if self.step > self.first_step:
            self.step -= 1
        return self.step

    def update(self, **partial: Any) -> BookingDraft:
        # later keys win; validation rejects unknown fields
        self.draft = BookingDraft.model_validate({**self.draft.model_dump(), **partial})
        return self.draft

    def reset(self) -> None:
        self.step = self.first_step
        self.draft = BookingDraft()

    def to_payload(
        self,
        appointment_id: str,
        *,
        contact_email: Optional[str] = None,
        contact_phone: Optional[str] = None,
        special_requests: Optional[str] = None,
        guest: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"appointment_id": str(appointment_id), **self.draft.model_dump()}
        if not payload["last_dental_visit"]:
            payload["last_dental_visit"] = None
        extras = {
            "contact_email": contact_email,
            "contact_phone": contact_phone,
            "special_requests": special_requests,
            "guest": guest,
        }
        payload.update({k: v for k, v in extras.items() if v is not None})
        return payload

    async def submit(self, api: DentConnectAPI, appointment_id: str, **extras: Any) -> Dict[str, Any]:
        if not self.draft.treatment_category:
            raise BookingSubmissionError("treatment_category_required", retryable=False)

        try:
            return await api.create_booking(self.to_payload(appointment_id, **extras))
        except ApiError as exc:
            if exc.retryable:
                logger.info("Slot %s was taken; back to practice selection", appointment_id)
                self.step = PRACTICE
            raise BookingSubmissionError(
                exc.code, retryable=exc.retryable, message=exc.message
            ) from exc
