#!/usr/bin/env python3
"""
Create the first SuperAdmin operator account.

Usage:
    python scripts/create_admin.py --email admin@example.com --name "Admin" --password secret
"""

import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.auth.models import UserRole
from src.core.auth.service import AuthService
from src.core.config import settings
from src.core.database.session import async_session
from src.core.exceptions import DuplicateError


async def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Create a SuperAdmin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True, help="Full name")
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    if len(args.password) < settings.min_password_length:
        print(f"❌ Password must be at least {settings.min_password_length} characters")
        sys.exit(1)

    print(f"\n🌍 Environment: {settings.app_env}")
    print(f"🗄️  DB: {settings.database_host}")

    async with async_session() as session:
        service = AuthService(session)
        try:
            user = await service.create_user(
                email=args.email,
                password=args.password,
                full_name=args.name,
                role=UserRole.SUPER_ADMIN,
            )
        except DuplicateError as exc:
            print(f"❌ {exc.message}")
            sys.exit(1)
        await session.commit()
        print(f"✅ Created SuperAdmin {user.email} (id={user.id})")


if __name__ == "__main__":
    asyncio.run(main())
