import asyncio
import logging

from conftest import PASSWORD, login
from dentconnect.client import DentConnectAPI, StatusPoller


class FakeBookings:
    """Scripted fetch: each call returns the current list, or raises `error`."""

    def __init__(self, *bookings):
        self.bookings = list(bookings)
        self.error = None
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [dict(b) for b in self.bookings]

    def set_status(self, booking_id, approval_status):
        for b in self.bookings:
            if b["id"] == booking_id:
                b["approval_status"] = approval_status


def booking(booking_id, approval_status="pending"):
    return {"id": booking_id, "approval_status": approval_status}


async def test_first_observation_is_only_a_baseline():
    changes = []
    poller = StatusPoller(FakeBookings(booking("b1", "approved")), lambda *a: changes.append(a))

    assert await poller.poll_once() is False
    assert changes == []


async def test_change_fires_once():
    fetch = FakeBookings(booking("b1"))
    changes = []
    poller = StatusPoller(fetch, lambda b, prev, cur: changes.append((b["id"], prev, cur)))

    await poller.poll_once()
    fetch.set_status("b1", "approved")

    assert await poller.poll_once() is True
    assert await poller.poll_once() is False
    assert changes == [("b1", "pending", "approved")]


async def test_newer_booking_becomes_the_baseline():
    fetch = FakeBookings(booking("b1", "approved"))
    changes = []
    poller = StatusPoller(fetch, lambda *a: changes.append(a))
    await poller.poll_once()

    fetch.bookings.append(booking("b2"))
    assert await poller.poll_once() is False

    # changes to the older booking are no longer watched
    fetch.set_status("b1", "rejected")
    assert await poller.poll_once() is False

    fetch.set_status("b2", "rejected")
    assert await poller.poll_once() is True
    assert [a[2] for a in changes] == ["rejected"]


async def test_no_bookings_is_quiet():
    poller = StatusPoller(FakeBookings(), lambda *a: None)
    assert await poller.poll_once() is False


async def test_async_handler_is_awaited():
    fetch = FakeBookings(booking("b1"))
    seen = []

    async def on_change(b, prev, cur):
        await asyncio.sleep(0)
        seen.append(cur)

    poller = StatusPoller(fetch, on_change)
    await poller.poll_once()
    fetch.set_status("b1", "rejected")
    await poller.poll_once()

    assert seen == ["rejected"]


async def test_loop_survives_fetch_errors(caplog):
    fetch = FakeBookings(booking("b1"))
    fetch.error = ConnectionError("api unreachable")
    changes = []
    caplog.set_level(logging.ERROR, logger="dentconnect")

    async with StatusPoller(fetch, lambda *a: changes.append(a), interval=0.01) as poller:
        await asyncio.sleep(0.05)
        assert poller.running
        fetch.error = None
        await asyncio.sleep(0.05)
        fetch.set_status("b1", "approved")
        await asyncio.sleep(0.05)

    assert not poller.running
    assert "api unreachable" in caplog.text
    assert len(changes) == 1


async def test_stop_cancels_the_task():
    fetch = FakeBookings(booking("b1"))
    poller = StatusPoller(fetch, lambda *a: None, interval=0.01)

    poller.start()
    poller.start()  # already running
    await asyncio.sleep(0.03)
    await poller.stop()
    calls = fetch.calls
    await asyncio.sleep(0.03)

    assert not poller.running
    assert fetch.calls == calls
    await poller.stop()


async def test_poller_sees_practice_approval(client, catalog, make_slot):
    appt_id = await make_slot(days=1)
    api = DentConnectAPI(client=client)
    await api.login("pat.jones@example.com", PASSWORD)
    booked = await api.create_booking({"appointment_id": str(appt_id), "treatment_category": "routine"})

    changes = []
    poller = StatusPoller.for_user(api, str(catalog.patient_id), lambda b, prev, cur: changes.append(cur))
    await poller.poll_once()

    dentist = await login(client, "dr.patel@riversidedental.co.uk")
    res = await client.put(
        f"/api/bookings/{booked['id']}/approval", json={"approval_status": "approved"}, headers=dentist
    )
    assert res.status_code == 200

    assert await poller.poll_once() is True
    assert changes == ["approved"]
