from dentconnect.modules.notifications.dispatcher import (
    NotificationDispatcher,
    NotifyResult,
    get_dispatcher,
)
from dentconnect.modules.notifications.events import (
    ApprovalStatusChanged,
    BookingCreated,
    NotificationEvent,
    WelcomeEvent,
)

__all__ = [
    "NotificationDispatcher",
    "NotifyResult",
    "get_dispatcher",
    "NotificationEvent",
    "BookingCreated",
    "ApprovalStatusChanged",
    "WelcomeEvent",
]
