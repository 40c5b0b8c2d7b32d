from dentconnect.client.api import ApiError, DentConnectAPI
from dentconnect.client.flow import BookingDraft, BookingFlow, BookingSubmissionError
from dentconnect.client.poller import StatusPoller
from dentconnect.client.session import MemoryStore, SessionContext

__all__ = [
    "ApiError",
    "DentConnectAPI",
    "BookingDraft",
    "BookingFlow",
    "BookingSubmissionError",
    "StatusPoller",
    "MemoryStore",
    "SessionContext",
]
