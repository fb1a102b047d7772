import os

# Point the application at SQLite before its engine is built
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_hotel_approvals.db")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from typing import AsyncGenerator, Dict
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from main import app
from hotel_approvals.core.database import get_async_session
from hotel_approvals.core.security import create_access_token
from hotel_approvals.models import Profile, UserRole
from hotel_approvals.models.base import Base
from tests.integration.helpers import RecordingNotifier

PROPERTY_ID = 1
OTHER_PROPERTY_ID = 2


@pytest.fixture
async def engine(tmp_path):
    """File backed SQLite database per test (several sessions can share it)"""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()

@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as db:
        yield db

@pytest.fixture
async def directory(session_factory) -> Dict[str, int]:
    """
    Staff directory used by the workflow tests.

    staff -> supervisor -> dept_head -> manager, all at PROPERTY_ID;
    hr and hr_backup hold property_hr there, regional_hr and
    regional_admin are regional. loner works at OTHER_PROPERTY_ID with
    no supervisor and nobody to approve for them.
    """
    async with session_factory() as db:
        def add_profile(name, supervisor_id=None, property_id=PROPERTY_ID):
            profile = Profile(
                full_name=name.replace("_", " ").title(),
                email=f"{name}@hotel.test",
                supervisor_id=supervisor_id,
                property_id=property_id,
                is_active=True,
            )
            db.add(profile)
            return profile

        ids = {}
        for name, property_id in (
            ("regional_hr", None),
            ("regional_admin", None),
            ("manager", PROPERTY_ID),
            ("hr", PROPERTY_ID),
            ("hr_backup", PROPERTY_ID),
            ("outsider", PROPERTY_ID),
        ):
            profile = add_profile(name, property_id=property_id)
            await db.flush()
            ids[name] = profile.id

        dept_head = add_profile("dept_head", supervisor_id=ids["manager"])
        await db.flush()
        ids["dept_head"] = dept_head.id

        supervisor = add_profile("supervisor", supervisor_id=ids["dept_head"])
        await db.flush()
        ids["supervisor"] = supervisor.id

        staff = add_profile("staff", supervisor_id=ids["supervisor"])
        loner = add_profile("loner", property_id=OTHER_PROPERTY_ID)
        await db.flush()
        ids["staff"] = staff.id
        ids["loner"] = loner.id

        for name, role, property_id in (
            ("supervisor", "supervisor", PROPERTY_ID),
            ("dept_head", "department_head", PROPERTY_ID),
            ("manager", "property_manager", PROPERTY_ID),
            ("hr", "property_hr", PROPERTY_ID),
            ("hr_backup", "property_hr", PROPERTY_ID),
            ("regional_hr", "regional_hr", None),
            ("regional_admin", "regional_admin", None),
        ):
            db.add(UserRole(user_id=ids[name], role=role, property_id=property_id, is_active=True))

        await db.commit()
        return ids

@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()

@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        """Override database dependency for testing"""
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_async_session] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    """Build bearer headers for a profile id"""

    def _headers(actor_id: int) -> dict:
        return {"Authorization": f"Bearer {create_access_token(actor_id)}"}

    return _headers
