import json

import pytest
from pydantic import ValidationError

from conftest import PASSWORD
from dentconnect.client import (
    ApiError,
    BookingFlow,
    BookingSubmissionError,
    DentConnectAPI,
    MemoryStore,
    SessionContext,
)
from dentconnect.client.flow import ACCESSIBILITY, CONFIRM, PRACTICE, TREATMENT
from dentconnect.client.session import CURRENT_USER_ID_KEY, CURRENT_USER_KEY


@pytest.fixture
def api(client):
    return DentConnectAPI(client=client)


def test_steps_are_clamped():
    flow = BookingFlow()
    assert flow.back() == TREATMENT

    for _ in range(6):
        flow.advance()
    assert flow.step == CONFIRM
    assert flow.step_name == "confirm"

    flow.back()
    assert flow.step_name == "practice"


def test_update_merges_and_rejects_unknown_fields():
    flow = BookingFlow()
    flow.update(treatment_category="emergency", accessibility_needs=["wheelchair"])
    flow.update(allergies=True)

    assert flow.draft.treatment_category == "emergency"
    assert flow.draft.accessibility_needs == ["wheelchair"]
    assert flow.draft.allergies is True

    with pytest.raises(ValidationError):
        flow.update(favourite_colour="blue")
    assert flow.draft.allergies is True


def test_reset_restores_defaults():
    flow = BookingFlow()
    flow.update(treatment_category="cosmetic", anxiety_level="nervous")
    flow.advance()
    flow.advance()

    flow.reset()

    assert flow.step == TREATMENT
    assert flow.draft.model_dump() == {
        "treatment_category": "",
        "accessibility_needs": [],
        "medications": False,
        "allergies": False,
        "last_dental_visit": "",
        "anxiety_level": "comfortable",
    }


def test_payload_drops_empty_extras():
    flow = BookingFlow()
    flow.update(treatment_category="routine")

    payload = flow.to_payload("abc", contact_phone="07700 900123")

    assert payload["appointment_id"] == "abc"
    assert payload["last_dental_visit"] is None
    assert payload["contact_phone"] == "07700 900123"
    assert "guest" not in payload
    assert "contact_email" not in payload


async def test_submit_without_category_is_not_retryable(api):
    flow = BookingFlow()

    with pytest.raises(BookingSubmissionError) as info:
        await flow.submit(api, "any-id")

    assert info.value.code == "treatment_category_required"
    assert not info.value.retryable


async def test_submit_books_the_slot(api, catalog, make_slot):
    appt_id = await make_slot(days=2)
    await api.login("pat.jones@example.com", PASSWORD)

    flow = BookingFlow()
    flow.update(treatment_category="routine")
    flow.advance()
    flow.update(accessibility_needs=["hearing_loop"], anxiety_level="nervous")
    flow.advance()
    flow.advance()

    booking = await flow.submit(api, appt_id, special_requests="Quiet room")

    assert booking["appointment_id"] == str(appt_id)
    assert booking["accessibility_needs"] == ["hearing_loop"]
    assert booking["anxiety_level"] == "nervous"
    assert booking["status"] == "confirmed"


async def test_taken_slot_returns_to_practice_step(api, catalog, make_slot):
    appt_id = await make_slot(days=2, status="booked", user_id=catalog.other_patient_id)
    await api.login("pat.jones@example.com", PASSWORD)

    flow = BookingFlow()
    flow.update(treatment_category="routine", medications=True)
    flow.step = CONFIRM

    with pytest.raises(BookingSubmissionError) as info:
        await flow.submit(api, appt_id)

    assert info.value.retryable
    assert info.value.code == "conflict"
    assert flow.step == PRACTICE
    assert flow.draft.medications is True


async def test_other_failures_keep_the_step(api, catalog, make_slot):
    appt_id = await make_slot(days=-1)
    await api.login("pat.jones@example.com", PASSWORD)

    flow = BookingFlow()
    flow.update(treatment_category="routine")
    flow.step = ACCESSIBILITY

    with pytest.raises(BookingSubmissionError) as info:
        await flow.submit(api, appt_id)

    assert not info.value.retryable
    assert info.value.code == "validation_error"
    assert flow.step == ACCESSIBILITY


async def test_api_error_from_default_fastapi_body(api):
    with pytest.raises(ApiError) as info:
        await api.me()

    assert info.value.status == 401
    assert info.value.code == "not_authenticated"
    assert not info.value.retryable


async def test_session_login_restore_logout(api, catalog):
    store = MemoryStore()
    session = SessionContext(api, store)

    user = await session.login("pat.jones@example.com", PASSWORD, "patient")

    assert session.is_authenticated
    assert store[CURRENT_USER_ID_KEY] == str(catalog.patient_id)
    assert json.loads(store[CURRENT_USER_KEY])["email"] == user["email"]

    # a fresh view in the same browser session
    fresh_api = DentConnectAPI(client=api._client)
    restored = SessionContext(fresh_api, store)
    assert restored.restore()
    assert restored.user_id == str(catalog.patient_id)
    assert "access_token" not in restored.user
    assert (await fresh_api.me())["email"] == "pat.jones@example.com"

    await restored.logout()

    assert not restored.is_authenticated
    assert CURRENT_USER_KEY not in store
    assert CURRENT_USER_ID_KEY not in store
    with pytest.raises(ApiError):
        await api.me()


def test_restore_discards_unreadable_record(api):
    store = MemoryStore({CURRENT_USER_KEY: "{not json", CURRENT_USER_ID_KEY: "x"})
    session = SessionContext(api, store)

    assert not session.restore()
    assert store == {}
