"""
Database seeding script to populate tables with sample portal data.

Usage:
    python scripts/seed_database.py
"""

import asyncio
import random
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.expense import Expense
from app.models.feedback import Feedback
from app.models.participant import Participant
from app.models.password_reset_token import PasswordResetToken
from app.models.program import Program, ProgramStatus
from app.models.registration import (
    ProgramMembership,
    Registration,
    RegistrationStatus,
)
from app.models.user import Role, User
from app.utils.security import hash_password
from core.db import async_session_factory
from core.logging import get_logger

logger = get_logger(__name__)

EXPENSE_CATEGORIES = ["Food", "Supplies", "Transportation", "Venue", "Prizes"]


class DatabaseSeeder:
    """Database seeding utility."""

    def __init__(self):
        self.users = []
        self.programs = []
        self.participants = []

    async def clear_database(self, session: AsyncSession):
        """Delete all rows, dependents first."""
        logger.info("Clearing existing data...")
        for model in (
            Feedback,
            PasswordResetToken,
            Expense,
            Registration,
            ProgramMembership,
            Participant,
            Program,
            User,
        ):
            await session.execute(delete(model))
        await session.commit()
        logger.info("Database cleared successfully")

    async def seed_all(self):
        """Seed all tables with sample data."""
        async with async_session_factory() as session:
            logger.info("Starting database seeding...")
            await self.clear_database(session)

            await self.seed_users(session)
            await self.seed_programs(session)
            await self.seed_participants(session)
            await self.seed_registrations(session)
            await self.seed_expenses(session)

            await session.commit()
            logger.info("Database seeding completed successfully!")

    async def seed_users(self, session: AsyncSession):
        """Seed one account per role."""
        logger.info("Seeding users...")
        for username, role in (
            ("admin", Role.ADMIN),
            ("skofficial", Role.SKOFFICIAL),
            ("juan", Role.USER),
        ):
            user = User(
                id=str(uuid4()),
                username=username,
                email=f"{username}@example.org",
                hashed_password=hash_password(f"{username.capitalize()}123"),
                role=role,
            )
            session.add(user)
            self.users.append(user)
        await session.flush()
        logger.info(f"Created {len(self.users)} users")

    async def seed_programs(self, session: AsyncSession):
        logger.info("Seeding programs...")
        today = date.today()
        samples = [
            ("Basketball League", "Covered Court", Decimal("25000.00"), ProgramStatus.ACTIVE),
            ("Coastal Clean-up Drive", "Barangay Shoreline", Decimal("8000.00"), ProgramStatus.PLANNING),
            ("Leadership Summit", "Municipal Hall", Decimal("40000.00"), ProgramStatus.COMPLETED),
        ]
        for index, (name, location, budget, status) in enumerate(samples):
            program = Program(
                id=str(uuid4()),
                name=name,
                description=f"{name} for the youth of the barangay",
                date=today + timedelta(days=30 * (index - 1)),
                time="8:00 AM - 5:00 PM",
                location=location,
                budget=budget,
                status=status,
            )
            session.add(program)
            self.programs.append(program)
        await session.flush()
        logger.info(f"Created {len(self.programs)} programs")

    async def seed_participants(self, session: AsyncSession):
        logger.info("Seeding participants...")
        names = [("Maria", "Santos"), ("Jose", "Reyes"), ("Ana", "Cruz"), ("Mark", "Garcia")]
        for index, (first, last) in enumerate(names):
            participant = Participant(
                id=str(uuid4()),
                first_name=first,
                last_name=last,
                age=random.randint(15, 30),
                contact=f"0917{index:07d}",
                address="San Francisco",
            )
            session.add(participant)
            self.participants.append(participant)

        # Profile for the regular user account
        user = next(u for u in self.users if u.role == Role.USER)
        participant = Participant(
            id=str(uuid4()),
            user_id=user.id,
            first_name="Juan",
            last_name="Dela Cruz",
            age=19,
            contact="09181234567",
            email=user.email,
        )
        session.add(participant)
        self.participants.append(participant)

        await session.flush()
        logger.info(f"Created {len(self.participants)} participants")

    async def seed_registrations(self, session: AsyncSession):
        logger.info("Seeding registrations...")
        statuses = list(RegistrationStatus)
        count = 0
        for program in self.programs:
            for participant in random.sample(self.participants, k=3):
                session.add(
                    ProgramMembership(program_id=program.id, participant_id=participant.id)
                )
                session.add(
                    Registration(
                        program_id=program.id,
                        participant_id=participant.id,
                        registration_status=random.choice(statuses),
                    )
                )
                count += 1
        await session.flush()
        logger.info(f"Created {count} registrations")

    async def seed_expenses(self, session: AsyncSession):
        logger.info("Seeding expenses...")
        count = 0
        for program in self.programs:
            for _ in range(random.randint(2, 5)):
                session.add(
                    Expense(
                        id=str(uuid4()),
                        program_id=program.id,
                        description=f"{random.choice(EXPENSE_CATEGORIES)} for {program.name}",
                        amount=Decimal(random.randint(500, 6000)).quantize(Decimal("0.01")),
                        date=program.date - timedelta(days=random.randint(0, 20)),
                        category=random.choice(EXPENSE_CATEGORIES),
                    )
                )
                count += 1
        await session.flush()
        logger.info(f"Created {count} expenses")


async def main():
    """Main entry point for seeding."""
    seeder = DatabaseSeeder()
    await seeder.seed_all()


if __name__ == "__main__":
    asyncio.run(main())
