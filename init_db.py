# init_db.py
"""
Recreate the schema and load a small demo catalog:
two practices, their dentists, the treatment list and a week of open slots.
"""
import asyncio
from datetime import datetime, time, timedelta, timezone

from dentconnect.core.logger import logger
from dentconnect.db.sql import AsyncSessionLocal, engine, init_db
from dentconnect.modules.appointments.models import Appointment
from dentconnect.modules.practices.models import Dentist, Practice, Treatment
from dentconnect.modules.practices.schemas import DentistCreate, PracticeCreate, TreatmentCreate

TREATMENTS = [
    ("Emergency Examination", "emergency", "Same-day assessment and pain relief", 30, 45.0),
    ("Toothache Relief", "urgent", "Diagnosis and temporary filling", 30, 60.0),
    ("Check-up & Clean", "routine", "Examination, scale and polish", 30, 55.0),
    ("Filling", "routine", "White composite filling", 45, 120.0),
    ("Teeth Whitening", "cosmetic", "In-surgery whitening session", 60, 350.0),
]

PRACTICES = [
    {
        "name": "Riverside Dental Care",
        "address": "12 Riverside Walk, London",
        "postcode": "SE1 9PX",
        "latitude": 51.5055,
        "longitude": -0.0909,
        "phone": "020 7946 0001",
        "email": "bookings@riversidedental.co.uk",
        "practice_tag": "RIVER2024",
        "rating": 4.8,
        "review_count": 212,
        "wheelchair_access": True,
        "sign_language": True,
        "disabled_parking": True,
        "opening_hours": "Mon-Fri 08:00-18:00",
        "dentists": [
            ("Sarah Patel", "Dr.", "General Dentistry", 12, ["English", "Gujarati"]),
            ("James Wong", "Dr.", "Cosmetic Dentistry", 8, ["English", "Cantonese"]),
        ],
    },
    {
        "name": "Camden Smile Studio",
        "address": "88 Parkway, London",
        "postcode": "NW1 7AN",
        "latitude": 51.5390,
        "longitude": -0.1440,
        "phone": "020 7946 0002",
        "email": "hello@camdensmile.co.uk",
        "practice_tag": "CAMDEN01",
        "rating": 4.6,
        "review_count": 98,
        "visual_support": True,
        "cognitive_support": True,
        "opening_hours": "Mon-Sat 09:00-17:30",
        "dentists": [
            ("Amelia Hughes", "Dr.", "Emergency Dentistry", 15, ["English", "Welsh"]),
        ],
    },
]

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


async def seed(sessionmaker=AsyncSessionLocal) -> None:
    async with sessionmaker() as session:
        treatments = [
            Treatment(**TreatmentCreate(
                name=n, category=c, description=d, duration=m, price=p
            ).model_dump(mode="json"))
            for n, c, d, m, p in TREATMENTS
        ]
        session.add_all(treatments)

        tomorrow = datetime.now(timezone.utc).date() + timedelta(days=1)
        for data in PRACTICES:
            data = dict(data)
            dentist_rows = data.pop("dentists")
            practice = Practice(**PracticeCreate(**data).model_dump())
            session.add(practice)
            await session.flush()

            for name, title, specialization, years, languages in dentist_rows:
                dentist = Dentist(**DentistCreate(
                    practice_id=practice.id,
                    name=name,
                    title=title,
                    specialization=specialization,
                    experience=years,
                    languages=languages,
                    available_days=WEEKDAYS,
                ).model_dump())
                session.add(dentist)
                await session.flush()

                for day in range(7):
                    for hour, treatment in zip((9, 11, 14), treatments):
                        when = datetime.combine(
                            tomorrow + timedelta(days=day), time(hour), tzinfo=timezone.utc
                        )
                        session.add(
                            Appointment(
                                practice_id=practice.id,
                                dentist_id=dentist.id,
                                treatment_id=treatment.id,
                                appointment_date=when,
                                duration=treatment.duration or 30,
                            )
                        )

        await session.commit()


async def main() -> None:
    await init_db(drop=True)
    logger.info("Database schema recreated")
    await seed()
    logger.info("Demo catalog loaded")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
