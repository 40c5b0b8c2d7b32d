# dentconnect/modules/practices/service.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.core.errors import NotFoundError, ValidationError
from dentconnect.modules.practices.models import Dentist, Practice, Treatment, TreatmentCategory


def normalize_postcode(postcode: str) -> str:
    """'sw1a 1aa' -> 'SW1A1AA'"""
    return "".join(postcode.split()).upper()


async def list_practices_svc(session: AsyncSession, postcode: Optional[str] = None) -> List[Practice]:
    """
    All practices, or those whose postcode starts with the given prefix
    (spaces and case ignored).
    """
    stmt = select(Practice)
    if postcode:
        prefix = normalize_postcode(postcode)
        stmt = stmt.where(
            func.upper(func.replace(Practice.postcode, " ", "")).like(f"{prefix}%")
        )
    stmt = stmt.order_by(Practice.name.asc())
    return list((await session.execute(stmt)).scalars().all())


async def get_practice_svc(session: AsyncSession, practice_id: UUID) -> Practice:
    practice = await session.get(Practice, practice_id)
    if not practice:
        raise NotFoundError("practice_not_found")
    return practice


async def verify_practice_tag_svc(session: AsyncSession, practice_tag: str) -> Practice:
    """The PIN gate: resolve a practice from its shared tag."""
    stmt = select(Practice).where(Practice.practice_tag == practice_tag.strip())
    practice = (await session.execute(stmt)).scalar_one_or_none()
    if not practice:
        raise NotFoundError("invalid_practice_tag")
    return practice


async def list_treatments_svc(session: AsyncSession, category: Optional[str] = None) -> List[Treatment]:
    stmt = select(Treatment)
    if category is not None:
        if category not in {c.value for c in TreatmentCategory}:
            raise ValidationError("unknown_treatment_category")
        stmt = stmt.where(Treatment.category == category)
    stmt = stmt.order_by(Treatment.category, Treatment.name)
    return list((await session.execute(stmt)).scalars().all())


async def list_dentists_svc(session: AsyncSession, practice_id: Optional[UUID] = None) -> List[Dentist]:
    stmt = select(Dentist)
    if practice_id is not None:
        await get_practice_svc(session, practice_id)
        stmt = stmt.where(Dentist.practice_id == practice_id)
    stmt = stmt.order_by(Dentist.name)
    return list((await session.execute(stmt)).scalars().all())


async def get_dentist_svc(session: AsyncSession, dentist_id: UUID) -> Dentist:
    dentist = await session.get(Dentist, dentist_id)
    if not dentist:
        raise NotFoundError("dentist_not_found")
    return dentist
