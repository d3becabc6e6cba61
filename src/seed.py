"""Database seeder for OrderDesk — provisions the owner, staff and categories.

Run via: python -m src.seed
"""

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.engine import async_session, engine
from src.seed_data.categories import CATEGORIES
from src.seed_data.users import USERS


async def seed_users(session: AsyncSession) -> None:
    """Upsert the owner and staff accounts."""
    for user in USERS:
        user_id = (
            await session.execute(
                text("""
                    INSERT INTO users (email, name, role)
                    VALUES (:email, :name, CAST(:role AS userrole))
                    ON CONFLICT (email) DO UPDATE SET
                        name = EXCLUDED.name,
                        role = EXCLUDED.role,
                        updated_at = now()
                    RETURNING id
                """),
                user,
            )
        ).scalar_one()

        if user["role"] == "staff":
            await session.execute(
                text("""
                    INSERT INTO staff_members (user_id, status, is_active)
                    VALUES (:user_id, 'offline', true)
                    ON CONFLICT (user_id) DO NOTHING
                """),
                {"user_id": user_id},
            )

    print(f"  Users: {len(USERS)} upserted")


async def seed_categories(session: AsyncSession) -> None:
    """Upsert order categories."""
    for category in CATEGORIES:
        await session.execute(
            text("""
                INSERT INTO categories (name, slug, is_active)
                VALUES (:name, :slug, true)
                ON CONFLICT (slug) DO UPDATE SET
                    name = EXCLUDED.name,
                    updated_at = now()
            """),
            category,
        )

    print(f"  Categories: {len(CATEGORIES)} upserted")


async def _seed() -> None:
    async with async_session() as session:
        async with session.begin():
            # 1. Users (owner + staff)
            await seed_users(session)

            # 2. Categories
            await seed_categories(session)

    await engine.dispose()


def main() -> None:
    """Run all seed functions inside a single transaction."""
    print("Seeding OrderDesk database...")
    asyncio.run(_seed())
    print("Seeding complete.")


if __name__ == "__main__":
    main()
