# dentconnect/modules/practices/models.py
from __future__ import annotations

import uuid
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dentconnect.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class TreatmentCategory(PyEnum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"
    COSMETIC = "cosmetic"


class Practice(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "practices"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    postcode: Mapped[str] = mapped_column(String(10), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    # Booking notifications go here
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    # PIN-gate credential shared with patients
    practice_tag: Mapped[str] = mapped_column(String(50), nullable=False)

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    wheelchair_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sign_language: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    visual_support: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cognitive_support: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    disabled_parking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    opening_hours: Mapped[Optional[str]] = mapped_column(Text)

    dentists: Mapped[List["Dentist"]] = relationship(
        back_populates="practice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_practices_email"),
        UniqueConstraint("practice_tag", name="uq_practices_practice_tag"),
        Index("ix_practices_postcode", "postcode"),
    )


class Treatment(UUIDPKMixin, ReprMixin, Base):
    """Static catalog row."""

    __tablename__ = "treatments"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    duration: Mapped[Optional[int]] = mapped_column(Integer)  # minutes
    price: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        CheckConstraint(
            "category IN ('emergency', 'urgent', 'routine', 'cosmetic')",
            name="ck_treatments_category_valid",
        ),
        Index("ix_treatments_category", "category"),
    )


class Dentist(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "dentists"

    practice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("practices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)  # Dr., Prof., ...
    specialization: Mapped[Optional[str]] = mapped_column(String(255))
    experience: Mapped[Optional[int]] = mapped_column(Integer)  # years
    qualifications: Mapped[Optional[str]] = mapped_column(Text)
    bio: Mapped[Optional[str]] = mapped_column(Text)
    languages: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    available_days: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    practice: Mapped["Practice"] = relationship(back_populates="dentists", lazy="raise")
