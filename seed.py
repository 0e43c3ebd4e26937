"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample users (password ``password123``), two sharing a community tag
  - 5 sample pools (open, women-only and community; upcoming and completed)
  - participant rows so the dashboards have something to show
"""

import asyncio
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import text

from carpool.domain.enums import Gender, ParticipantStatus, PoolStatus, PoolType
from carpool.infrastructure.database import async_session_factory, dispose_engine
from carpool.infrastructure.models import ParticipantModel, PoolModel, UserModel
from carpool.infrastructure.security import hash_password

SAMPLE_PASSWORD = "password123"

USERS = [
    {"name": "Aarav Sharma", "email": "aarav@example.com", "gender": Gender.MALE, "community": ["IIT Bombay"]},
    {"name": "Priya Patel", "email": "priya@example.com", "gender": Gender.FEMALE, "community": ["IIT Bombay"]},
    {"name": "Rohan Mehta", "email": "rohan@example.com", "gender": Gender.MALE, "community": []},
    {"name": "Sneha Gupta", "email": "sneha@example.com", "gender": Gender.FEMALE, "community": ["Powai Residents"]},
    {"name": "Meera Nair", "email": "meera@example.com", "gender": Gender.FEMALE, "community": []},
    {"name": "Arjun Kumar", "email": "arjun@example.com", "gender": Gender.OTHER, "community": ["Powai Residents"]},
]

# (creator index, source, (lat, lng), destination, (lat, lng), days ahead, time, seats, fare, type, status, rider indexes)
POOLS = [
    (0, "Powai", (19.1176, 72.9060), "Mumbai Airport T2", (19.0896, 72.8656), 1, "08:30", 4, 180.0, PoolType.OPEN, PoolStatus.UPCOMING, [2]),
    (1, "Andheri East", (19.1136, 72.8697), "BKC", (19.0660, 72.8650), 1, "09:15", 3, 120.0, PoolType.WOMEN_ONLY, PoolStatus.UPCOMING, [4]),
    (0, "IIT Bombay", (19.1334, 72.9133), "Dadar", (19.0178, 72.8478), 2, "18:00", 4, 150.0, PoolType.COMMUNITY, PoolStatus.UPCOMING, [1]),
    (3, "Hiranandani", (19.1190, 72.9090), "Bandra", (19.0540, 72.8400), 3, "07:45", 5, 200.0, PoolType.OPEN, PoolStatus.UPCOMING, []),
    (5, "Santacruz", (19.0600, 72.8500), "Powai", (19.1176, 72.9060), -2, "19:30", 4, 160.0, PoolType.OPEN, PoolStatus.COMPLETED, [2, 4]),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        now = datetime.now(timezone.utc)
        password_hash = hash_password(SAMPLE_PASSWORD)

        # ── Users ─────────────────────────────────────────────────────
        user_models = []
        for i, u in enumerate(USERS):
            m = UserModel(
                name=u["name"],
                email=u["email"],
                password_hash=password_hash,
                phone=f"98765432{i:02d}",
                gender=u["gender"],
                community=u["community"],
                trust_score=50,
                is_verified=False,
                created_at=now,
                updated_at=now,
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        # ── Pools ─────────────────────────────────────────────────────
        today = date.today()
        for (
            creator_idx, source, src, destination, dst,
            days_ahead, time, seats, fare, pool_type, status, riders,
        ) in POOLS:
            creator = user_models[creator_idx]
            pool = PoolModel(
                source=source,
                destination=destination,
                source_lat=src[0],
                source_lng=src[1],
                dest_lat=dst[0],
                dest_lng=dst[1],
                date=today + timedelta(days=days_ahead),
                time=time,
                max_seats=seats,
                fare=fare,
                type=pool_type,
                status=status,
                created_by=creator.id,
                creator=creator,
                created_at=now,
                updated_at=now,
                participants=[
                    ParticipantModel(
                        user_id=user_models[idx].id,
                        user=user_models[idx],
                        joined_at=now,
                        status=ParticipantStatus.JOINED,
                    )
                    for idx in [creator_idx, *riders]
                ],
            )
            session.add(pool)
        await session.flush()
        print(f"  Created {len(POOLS)} pools")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
