# dentconnect/models.py
# Import every model module so Base.metadata knows all tables
# (used by init_db, alembic and the test fixtures).
from dentconnect.db.base import Base
from dentconnect.modules.users.models import AuditLog, Session, User, UserType
from dentconnect.modules.practices.models import Dentist, Practice, Treatment, TreatmentCategory
from dentconnect.modules.appointments.models import Appointment, AppointmentStatus
from dentconnect.modules.bookings.models import (
    AnxietyLevel,
    ApprovalStatus,
    Booking,
    BookingStatus,
    PaymentStatus,
)

__all__ = [
    "Base",
    "AuditLog",
    "Session",
    "User",
    "UserType",
    "Practice",
    "Dentist",
    "Treatment",
    "TreatmentCategory",
    "Appointment",
    "AppointmentStatus",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "ApprovalStatus",
    "AnxietyLevel",
]
