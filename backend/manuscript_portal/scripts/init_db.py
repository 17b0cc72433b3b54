#!/usr/bin/env python3
"""
Database Initialization Script for the Jain Manuscripts Portal

This script:
1. Tests database connectivity
2. Creates any missing tables
3. Creates or promotes the first admin account
4. Seeds the default manuscript categories

Usage:
    manuscripts-init-db --check
    manuscripts-init-db --admin-email admin@example.org --admin-name "Portal Admin"
    manuscripts-init-db --seed-categories
"""
import argparse
import asyncio
import getpass
import os
import sys
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.config import settings
from manuscript_portal.core.database import close_db, get_engine, get_session_local, init_db
from manuscript_portal.core.logging_config import logger
from manuscript_portal.core.security import get_password_hash
from manuscript_portal.models import Category, User, UserRole

DEFAULT_CATEGORIES = [
    "Agama",
    "Ayurveda",
    "Grammar",
    "Jyotisha",
    "Kavya",
    "Philosophy",
    "Stotra",
]


async def test_connection() -> bool:
    """Test database connectivity"""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"[InitDB] Database connection failed: {e}")
        return False
    logger.info("[InitDB] Database connection successful")
    return True


async def ensure_admin(db: AsyncSession, email: str, name: str, password: Optional[str]) -> Tuple[User, bool]:
    """
    Create the admin account, or promote an existing user with that email.

    Returns (user, created). The password is only required when creating.
    """
    email = email.strip().lower()
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()

    if user is None:
        if not password or len(password) < 6:
            raise ValueError("An admin password of at least 6 characters is required")
        user = User(
            name=name,
            email=email,
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN,
            is_approved=True,
            is_active=True,
        )
        db.add(user)
        created = True
    else:
        user.role = UserRole.ADMIN
        user.is_approved = True
        user.is_active = True
        if password:
            user.hashed_password = get_password_hash(password)
        created = False

    await db.commit()
    await db.refresh(user)
    logger.info(f"[InitDB] {'Created' if created else 'Promoted'} admin {email}")
    return user, created


async def seed_categories(db: AsyncSession, names: Iterable[str] = DEFAULT_CATEGORIES) -> List[str]:
    """Add missing categories (case-insensitive). Returns the names added."""
    result = await db.execute(select(func.lower(Category.name)))
    existing = set(result.scalars().all())

    added = []
    for name in names:
        name = " ".join(name.split())
        if name and name.lower() not in existing:
            db.add(Category(name=name))
            existing.add(name.lower())
            added.append(name)

    await db.commit()
    if added:
        logger.info(f"[InitDB] Added categories: {', '.join(added)}")
    return added


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{settings.APP_NAME} database initialization")
    parser.add_argument("--check", action="store_true", help="Only check connectivity")
    parser.add_argument("--admin-email", help="Create or promote this admin account")
    parser.add_argument("--admin-name", default="Portal Admin", help="Name for a newly created admin")
    parser.add_argument("--seed-categories", action="store_true", help="Add the default categories")
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)

    try:
        if not await test_connection():
            return 1
        if args.check:
            return 0

        await init_db()

        session_local = get_session_local()
        async with session_local() as db:
            if args.admin_email:
                # Prompting keeps the password out of shell history
                password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
                try:
                    await ensure_admin(db, args.admin_email, args.admin_name, password)
                except ValueError as e:
                    logger.error(f"[InitDB] {e}")
                    return 1
            if args.seed_categories:
                await seed_categories(db)
    finally:
        await close_db()

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
