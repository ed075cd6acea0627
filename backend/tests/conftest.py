"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own database: a SQLite file under tmp_path by default, or
TEST_DATABASE_URL (e.g. a PostgreSQL test database) when set. Tables are
created before and dropped after every test.
"""

import os
from datetime import datetime, time, timedelta, timezone
from typing import AsyncGenerator

# Settings are read once at import time.
os.environ["REDIS_ENABLED"] = "false"
os.environ["SYNC_INTERVAL_SECONDS"] = "0"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.main import app
from yoga_booking.core.security import create_access_token
from yoga_booking.db.base import Base
from yoga_booking.db.session import create_engine, create_session_factory, get_db
from yoga_booking.models.booking import Booking
from yoga_booking.models.enums import BookingStatus, PaymentStatus
from yoga_booking.models.participant_audit import ParticipantCountAudit
from yoga_booking.models.yoga_class import YogaClass

STUDENT_ID = "student-1"
OTHER_STUDENT_ID = "student-2"
TEACHER_ID = "teacher-1"
ADMIN_ID = "admin-1"


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a fresh session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _headers(sub: str, role: str) -> dict:
    token = create_access_token(data={"sub": sub, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def student_headers() -> dict:
    return _headers(STUDENT_ID, "student")


@pytest_asyncio.fixture
async def other_student_headers() -> dict:
    return _headers(OTHER_STUDENT_ID, "student")


@pytest_asyncio.fixture
async def teacher_headers() -> dict:
    return _headers(TEACHER_ID, "teacher")


@pytest_asyncio.fixture
async def admin_headers() -> dict:
    return _headers(ADMIN_ID, "admin")


@pytest_asyncio.fixture
async def class_factory(session_factory):
    """
    Insert a class directly, bypassing the catalog's future-date check.

    `paid_students` adds one confirmed, paid booking per student id; the stored
    count is set to match unless `current_participants` is given.
    """

    async def make(
        days_ahead: int = 7,
        max_participants: int = 10,
        current_participants=None,
        paid_students=(),
        teacher_id: str = TEACHER_ID,
        title: str = "Morning Vinyasa",
    ) -> YogaClass:
        start = datetime.now(timezone.utc) + timedelta(days=days_ahead)
        yoga_class = YogaClass(
            teacher_id=teacher_id,
            title=title,
            date=start.date(),
            time=time(9, 0),
            max_participants=max_participants,
            current_participants=(
                len(paid_students) if current_participants is None else current_participants
            ),
        )
        async with session_factory() as session:
            session.add(yoga_class)
            await session.flush()
            for student_id in paid_students:
                session.add(
                    Booking(
                        student_id=student_id,
                        class_id=yoga_class.id,
                        status=BookingStatus.CONFIRMED.value,
                        payment_status=PaymentStatus.COMPLETED.value,
                    )
                )
            await session.commit()
        return yoga_class

    return make


@pytest_asyncio.fixture
async def future_class(class_factory) -> YogaClass:
    """A class next week with 10 free seats."""
    return await class_factory()


@pytest_asyncio.fixture
async def full_class(class_factory) -> YogaClass:
    """A class with 2 seats, both taken by paid bookings."""
    return await class_factory(max_participants=2, paid_students=("student-a", "student-b"))


@pytest_asyncio.fixture
async def past_class(class_factory) -> YogaClass:
    """A class that took place yesterday."""
    return await class_factory(days_ahead=-1)


@pytest_asyncio.fixture
async def class_state(session_factory):
    """Read (current_participants, audit records oldest first) in a fresh session."""

    async def read(class_id: int):
        async with session_factory() as session:
            yoga_class = await session.get(YogaClass, class_id)
            audit = await session.execute(
                select(ParticipantCountAudit)
                .where(ParticipantCountAudit.class_id == class_id)
                .order_by(ParticipantCountAudit.id)
            )
            return yoga_class.current_participants, list(audit.scalars().all())

    return read
