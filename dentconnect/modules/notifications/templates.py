# dentconnect/modules/notifications/templates.py
"""
HTML email bodies, one renderer per event type.

Renderers are pure: same event in, same (subject, html) out. Every value
taken from an event goes through `escape` before it lands in markup.
"""
from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Callable, Dict, Tuple, Type

from dentconnect.modules.notifications.events import (
    ApprovalStatusChanged,
    BookingCreated,
    NotificationEvent,
    WelcomeEvent,
)

Rendered = Tuple[str, str]  # (subject, html)

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

BRAND = "#2d5a5a"


def format_date(value: datetime) -> str:
    """`Wednesday 4 March 2026`; locale independent."""
    return f"{_WEEKDAYS[value.weekday()]} {value.day} {_MONTHS[value.month - 1]} {value.year}"


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def _row(label: str, value: object) -> str:
    return f"<p><strong>{escape(label)}:</strong> {escape(str(value))}</p>"


def _panel(title: str, body: str, background: str = "#f8f9fa") -> str:
    return (
        f'<div style="background: {background}; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f'<h3 style="color: {BRAND}; margin-top: 0;">{escape(title)}</h3>'
        f"{body}</div>"
    )


def _layout(heading: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {BRAND}; border-bottom: 2px solid {BRAND}; padding-bottom: 10px;">'
        f"{escape(heading)}</h2>"
        f"{body}"
        "</div>"
    )


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def render_booking_created(event: BookingCreated) -> Rendered:
    date_s = format_date(event.appointment_date)
    time_s = format_time(event.appointment_date)

    patient = "".join(
        [
            _row("Name", event.patient_name),
            _row("Email", event.patient_email),
            _row("Phone", event.patient_phone or "Not provided"),
        ]
    )
    appointment = "".join(
        [
            _row("Date", date_s),
            _row("Time", time_s),
            _row("Dentist", event.dentist_name),
            _row("Treatment", event.treatment_name),
            _row("Category", event.treatment_category),
        ]
    )
    needs = ", ".join(event.accessibility_needs) if event.accessibility_needs else "None"
    medical = "".join(
        [
            _row("Accessibility needs", needs),
            _row("Takes medication", _yes_no(event.medications)),
            _row("Allergies", _yes_no(event.allergies)),
            _row("Anxiety level", event.anxiety_level),
        ]
    )
    if event.special_requests:
        medical += _row("Special requests", event.special_requests)
    practice = "".join(
        [
            _row("Practice", event.practice_name),
            _row("Address", event.practice_address),
            _row("Phone", event.practice_phone or "Not provided"),
        ]
    )

    body = (
        _panel("Patient Information", patient)
        + _panel("Appointment Details", appointment, background="#e8f4f4")
        + _panel("Patient Needs", medical)
        + _panel("Practice Information", practice, background="#fff")
        + _panel(
            "Action Required",
            "<p>Please approve or decline this booking from your DentConnect dashboard.</p>",
            background="#fff3cd",
        )
    )
    subject = f"New Appointment Booking - {date_s} at {time_s}"
    return subject, _layout("New Dental Appointment Booking", body)


def render_approval_status_changed(event: ApprovalStatusChanged) -> Rendered:
    date_s = format_date(event.appointment_date)
    time_s = format_time(event.appointment_date)
    approved = event.approval_status == "approved"

    details = "".join(
        [
            _row("Practice", event.practice_name),
            _row("Treatment", event.treatment_name),
            _row("Date", date_s),
            _row("Time", time_s),
        ]
    )
    if approved:
        message = "<p>Your appointment has been approved. We look forward to seeing you.</p>"
        subject = f"Appointment approved - {date_s} at {time_s}"
    else:
        contact = escape(event.practice_phone) if event.practice_phone else "the practice"
        message = (
            "<p>Unfortunately the practice could not accept this booking. "
            f"Please choose another slot or contact {contact}.</p>"
        )
        subject = f"Appointment not approved - {date_s}"

    body = (
        f"<p>Dear {escape(event.patient_first_name)},</p>"
        + message
        + _panel("Appointment Details", details, background="#e8f4f4")
        + "<p>Best regards,<br>The DentConnect Team</p>"
    )
    return subject, _layout("Your Booking Update", body)


def render_welcome(event: WelcomeEvent) -> Rendered:
    is_dentist = event.user_type == "dentist"
    audience = (
        "dental practices with patients"
        if is_dentist
        else "patients with available dental appointments"
    )
    if is_dentist:
        panel = _panel(
            "Your Practice",
            _row("Practice", event.practice_name or "")
            + _row("Practice Tag", event.practice_tag or "")
            + "<p>You can now manage your appointment slots and receive booking notifications.</p>",
            background="#e8f4f4",
        )
    else:
        panel = _panel(
            "Getting Started",
            "<p>You can now search for available dental appointments in your area and book instantly.</p>",
        )

    body = (
        f"<p>Dear {escape(event.first_name)},</p>"
        f"<p>Welcome to DentConnect, the platform that connects {audience}.</p>"
        + panel
        + "<p>If you have any questions, please don't hesitate to contact our support team.</p>"
        + "<p>Best regards,<br>The DentConnect Team</p>"
    )
    return "Welcome to DentConnect!", _layout("Welcome to DentConnect!", body)


TEMPLATES: Dict[Type[NotificationEvent], Callable[..., Rendered]] = {
    BookingCreated: render_booking_created,
    ApprovalStatusChanged: render_approval_status_changed,
    WelcomeEvent: render_welcome,
}


def render(event: NotificationEvent) -> Rendered:
    try:
        renderer = TEMPLATES[type(event)]
    except KeyError:
        raise LookupError(f"no template for {event.event_type}") from None
    return renderer(event)
