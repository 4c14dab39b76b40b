"""
Seed permissions, system roles, default settings and the first administrator.

Safe to run repeatedly: existing rows are kept, system role grants are reset.

Usage:
    python scripts/seed_initial_data.py --email admin@example.com --password 'Admin123!'
"""

import argparse
import asyncio
import sys

sys.path.insert(0, ".")

from sqlalchemy import select

from kanban.database import async_session_maker
from kanban.models import User
from kanban.services.role_service import seed_permissions_and_roles
from kanban.services.settings_service import SettingsCache
from kanban.utils.security import get_password_hash


async def seed(email: str, password: str, display_name: str) -> None:
    async with async_session_maker() as db:
        roles = await seed_permissions_and_roles(db)
        print(f'Seeded {len(roles)} system roles')

        await SettingsCache().seed_defaults(db)
        print('Seeded default settings')

        email = email.strip().lower()
        result = await db.execute(select(User).where(User.email == email))
        admin = result.scalar_one_or_none()

        if admin is None:
            admin = User(
                email=email,
                password_hash=get_password_hash(password),
                display_name=display_name,
                is_super_admin=True,
                roles=[roles['super-admin']],
            )
            db.add(admin)
            print(f'Created administrator: {email}')
        else:
            print(f'User {email} already exists')

        await db.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument('--email', required=True)
    parser.add_argument('--password', required=True)
    parser.add_argument('--name', default='Administrator')
    args = parser.parse_args()
    asyncio.run(seed(args.email, args.password, args.name))


if __name__ == '__main__':
    main()
