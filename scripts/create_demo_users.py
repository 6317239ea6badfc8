#!/usr/bin/env python3
"""
Create demo users (admin, team manager, regular user) for local development.
Existing accounts are left untouched.
"""
import asyncio
import os
import sys

# Ensure backend modules are importable
THIS_DIR = os.path.dirname(__file__)
BACKEND_DIR = os.path.abspath(os.path.join(THIS_DIR, '..'))
sys.path.insert(0, BACKEND_DIR)

from app.core.security import get_password_hash  # noqa: E402
from app.db.database import AsyncSessionLocal, engine, init_db  # noqa: E402
from app.models.user import User, UserRole, UserStatus  # noqa: E402
from app.services.auth_service import get_user_by_email  # noqa: E402
from app.services.catalog_service import assign_general_tasks_to_user  # noqa: E402

DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "password123")

DEMO_USERS = [
    {"email": "admin@times10.local", "name": "Admin User", "role": UserRole.ADMIN.value, "pay_rate": 75},
    {"email": "manager@times10.local", "name": "Team Manager", "role": UserRole.TEAM_MANAGER.value, "pay_rate": 55},
    {"email": "user@times10.local", "name": "Regular User", "role": UserRole.USER.value, "pay_rate": 35},
]


async def create_demo_users():
    print("Creating demo users...")
    await init_db()
    async with AsyncSessionLocal() as session:
        for data in DEMO_USERS:
            if await get_user_by_email(session, data["email"]) is not None:
                print(f"  exists:  {data['email']}")
                continue
            user = User(
                email=data["email"],
                name=data["name"],
                role=data["role"],
                status=UserStatus.ACTIVE.value,
                pay_rate=data["pay_rate"],
                hashed_password=get_password_hash(DEMO_PASSWORD),
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            await assign_general_tasks_to_user(session, user.id)
            print(f"  created: {data['email']} ({data['role']})")
    await engine.dispose()
    print(f"Done. Demo password: {DEMO_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(create_demo_users())
