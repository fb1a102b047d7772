"""
Staff Directory Seed Data (async, idempotent)
- Profiles with their supervisors
- UserRole rows used to resolve approvers
Run:  python scripts/seed/directory_data.py
"""

import os, sys
import asyncio
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from hotel_approvals.core.database import async_session_maker, engine
from hotel_approvals.core.security import create_access_token
from hotel_approvals.models.base import Base
from hotel_approvals.models.auth.profile import Profile
from hotel_approvals.models.auth.user_role import UserRole

# ----------------------------------------------------------------------
# SEED DATA
# ----------------------------------------------------------------------

PROPERTY_ID = 1

PROFILES_SEED = [
    # email, full name, supervisor email, property
    {"email": "regional.hr@hotel.local",    "full_name": "Regional HR",        "supervisor": None,                        "property_id": None},
    {"email": "regional.admin@hotel.local", "full_name": "Regional Admin",     "supervisor": None,                        "property_id": None},
    {"email": "gm@hotel.local",             "full_name": "General Manager",    "supervisor": "regional.admin@hotel.local", "property_id": PROPERTY_ID},
    {"email": "hr@hotel.local",             "full_name": "Property HR",        "supervisor": "gm@hotel.local",            "property_id": PROPERTY_ID},
    {"email": "fo.head@hotel.local",        "full_name": "Front Office Head",  "supervisor": "gm@hotel.local",            "property_id": PROPERTY_ID},
    {"email": "fo.supervisor@hotel.local",  "full_name": "Front Office Sup.",  "supervisor": "fo.head@hotel.local",       "property_id": PROPERTY_ID},
    {"email": "agent@hotel.local",          "full_name": "Front Desk Agent",   "supervisor": "fo.supervisor@hotel.local", "property_id": PROPERTY_ID},
]

ROLES_SEED = [
    # email, role, property (None = regional)
    ("regional.hr@hotel.local",    "regional_hr",      None),
    ("regional.admin@hotel.local", "regional_admin",   None),
    ("gm@hotel.local",             "property_manager", PROPERTY_ID),
    ("hr@hotel.local",             "property_hr",      PROPERTY_ID),
    ("fo.head@hotel.local",        "department_head",  PROPERTY_ID),
    ("fo.supervisor@hotel.local",  "supervisor",       PROPERTY_ID),
]

# ----------------------------------------------------------------------
# HELPERS
# ----------------------------------------------------------------------

async def get_or_create_profile(db: AsyncSession, data: dict, supervisor_id) -> Profile:
    obj = await db.scalar(select(Profile).where(Profile.email == data["email"]))
    if obj:
        return obj
    obj = Profile(
        email=data["email"],
        full_name=data["full_name"],
        property_id=data["property_id"],
        supervisor_id=supervisor_id,
        is_active=True,
    )
    db.add(obj)
    await db.flush()
    return obj

async def ensure_role(db: AsyncSession, user_id: int, role: str, property_id) -> None:
    exists = await db.scalar(
        select(UserRole.id).where(
            UserRole.user_id == user_id,
            UserRole.role == role,
            UserRole.property_id.is_(None) if property_id is None else UserRole.property_id == property_id,
        )
    )
    if not exists:
        db.add(UserRole(user_id=user_id, role=role, property_id=property_id, is_active=True))

# ----------------------------------------------------------------------
# MAIN ASYNC SEED LOGIC
# ----------------------------------------------------------------------

async def seed(db: AsyncSession):
    # 1) Profiles, supervisors first
    profiles = {}
    for p in PROFILES_SEED:
        supervisor = profiles.get(p["supervisor"])
        profiles[p["email"]] = await get_or_create_profile(db, p, supervisor.id if supervisor else None)
    await db.commit()
    print(f"✓ Profiles ready: {len(profiles)}")

    # 2) Roles
    for email, role, property_id in ROLES_SEED:
        await ensure_role(db, profiles[email].id, role, property_id)
    await db.commit()
    print(f"✓ Roles ready: {len(ROLES_SEED)}")

    # 3) Development tokens
    for email, profile in profiles.items():
        print(f"  {email}: {create_access_token(profile.id)}")

# ----------------------------------------------------------------------
# ASYNC ENTRY POINT
# ----------------------------------------------------------------------

async def main():
    # Create tables (safe if already created)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        try:
            await seed(db)
            print("✅ Directory seed completed successfully!")
        except Exception as ex:
            await db.rollback()
            print(f"❌ Seed failed: {ex}")
            raise

if __name__ == "__main__":
    asyncio.run(main())
