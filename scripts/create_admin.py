"""
Admin Bootstrap Script

Creates an admin account, or promotes an existing account to admin.
Signup over the API only ever creates customers.

Run from project root: python scripts/create_admin.py --email ... --password ... --name ...
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from oldrao.core.security import hash_password
from oldrao.database import async_session_maker, engine, init_db
from oldrao.models import User, UserRole


async def create_admin(email: str, password: str, name: str) -> None:
    await init_db()
    email = email.strip().lower()

    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            user.role = UserRole.ADMIN
            user.password_hash = hash_password(password)
            print(f"✅ Promoted {email} to admin")
        else:
            session.add(User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=UserRole.ADMIN,
            ))
            print(f"✅ Created admin {email}")

        await session.commit()

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Admin")
    args = parser.parse_args()

    if len(args.password) < 6:
        print("❌ Password must be at least 6 characters")
        sys.exit(1)

    asyncio.run(create_admin(args.email, args.password, args.name))
