"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "practices",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("postcode", sa.String(length=10), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("practice_tag", sa.String(length=50), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("review_count", sa.Integer(), nullable=False),
        sa.Column("wheelchair_access", sa.Boolean(), nullable=False),
        sa.Column("sign_language", sa.Boolean(), nullable=False),
        sa.Column("visual_support", sa.Boolean(), nullable=False),
        sa.Column("cognitive_support", sa.Boolean(), nullable=False),
        sa.Column("disabled_parking", sa.Boolean(), nullable=False),
        sa.Column("opening_hours", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_practices_email"),
        sa.UniqueConstraint("practice_tag", name="uq_practices_practice_tag"),
    )
    op.create_index("ix_practices_postcode", "practices", ["postcode"])

    op.create_table(
        "treatments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.CheckConstraint(
            "category IN ('emergency', 'urgent', 'routine', 'cosmetic')",
            name="ck_treatments_category_valid",
        ),
    )
    op.create_index("ix_treatments_category", "treatments", ["category"])

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("user_type", sa.String(length=20), nullable=False, server_default="patient"),
        sa.Column(
            "practice_id",
            sa.Uuid(),
            sa.ForeignKey("practices.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verification_token", sa.String(length=128), nullable=True),
        sa.Column("reset_token", sa.String(length=128), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("email = lower(email)", name="ck_users_email_lowercase"),
        sa.CheckConstraint("user_type IN ('patient', 'dentist')", name="ck_users_user_type_valid"),
        sa.CheckConstraint(
            "(user_type = 'dentist' AND practice_id IS NOT NULL)"
            " OR (user_type = 'patient' AND practice_id IS NULL)",
            name="ck_users_dentist_practice",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_practice", "users", ["practice_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=True),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("details", sa.String(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    op.create_table(
        "dentists",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "practice_id",
            sa.Uuid(),
            sa.ForeignKey("practices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("specialization", sa.String(length=255), nullable=True),
        sa.Column("experience", sa.Integer(), nullable=True),
        sa.Column("qualifications", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("languages", sa.JSON(), nullable=False),
        sa.Column("available_days", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_dentists_practice_id", "dentists", ["practice_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("practice_id", sa.Uuid(), sa.ForeignKey("practices.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("dentist_id", sa.Uuid(), sa.ForeignKey("dentists.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("treatment_id", sa.Uuid(), sa.ForeignKey("treatments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("appointment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('available', 'booked', 'cancelled', 'completed')",
            name="ck_appt_status_valid",
        ),
        sa.CheckConstraint("status <> 'booked' OR user_id IS NOT NULL", name="ck_appt_booked_has_user"),
    )
    op.create_index(
        "ix_appt_practice_status_date", "appointments", ["practice_id", "status", "appointment_date"]
    )
    op.create_index("ix_appt_dentist_date", "appointments", ["dentist_id", "appointment_date"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "appointment_id",
            sa.Uuid(),
            sa.ForeignKey("appointments.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("practice_id", sa.Uuid(), sa.ForeignKey("practices.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("dentist_id", sa.Uuid(), sa.ForeignKey("dentists.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("treatment_id", sa.Uuid(), sa.ForeignKey("treatments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("appointment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("approval_status", sa.String(length=20), nullable=False),
        sa.Column("approved_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("treatment_category", sa.String(length=20), nullable=False),
        sa.Column("accessibility_needs", sa.JSON(), nullable=False),
        sa.Column("medications", sa.Boolean(), nullable=False),
        sa.Column("allergies", sa.Boolean(), nullable=False),
        sa.Column("last_dental_visit", sa.String(length=50), nullable=True),
        sa.Column("anxiety_level", sa.String(length=20), nullable=False),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("contact_email", sa.String(length=320), nullable=True),
        sa.Column("contact_phone", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'completed')", name="ck_bookings_status_valid"
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="ck_bookings_payment_status_valid",
        ),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_bookings_approval_status_valid",
        ),
        sa.CheckConstraint(
            "anxiety_level IN ('comfortable', 'nervous', 'anxious')",
            name="ck_bookings_anxiety_level_valid",
        ),
    )
    # At most one live booking per appointment
    op.create_index(
        "uq_bookings_active_appointment",
        "bookings",
        ["appointment_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )
    op.create_index("ix_bookings_user_created", "bookings", ["user_id", "created_at"])
    op.create_index("ix_bookings_practice_approval", "bookings", ["practice_id", "approval_status"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("appointments")
    op.drop_table("dentists")
    op.drop_table("sessions")
    op.drop_table("audit_logs")
    op.drop_table("users")
    op.drop_table("treatments")
    op.drop_table("practices")
