"""
Tests for the database initialization script
"""
import pytest
from sqlalchemy import select

from conftest import TEST_PASSWORD, make_user
from manuscript_portal.core.security import verify_password
from manuscript_portal.models import Category, UserRole
from manuscript_portal.scripts.init_db import DEFAULT_CATEGORIES, create_parser, ensure_admin, seed_categories


class TestEnsureAdmin:

    async def test_creates_admin(self, db_session):
        user, created = await ensure_admin(db_session, " Admin@Example.org ", "Portal Admin", "s3cret-pass")

        assert created is True
        assert user.email == "admin@example.org"
        assert user.role == UserRole.ADMIN
        assert user.is_approved is True
        assert verify_password("s3cret-pass", user.hashed_password)

    async def test_promotes_existing_user(self, db_session):
        existing = await make_user(db_session, is_approved=False)

        user, created = await ensure_admin(db_session, existing.email, "ignored", None)

        assert created is False
        assert user.id == existing.id
        assert user.role == UserRole.ADMIN
        assert user.is_approved is True
        assert verify_password(TEST_PASSWORD, user.hashed_password)

    async def test_new_admin_needs_password(self, db_session):
        with pytest.raises(ValueError):
            await ensure_admin(db_session, "admin@example.org", "Portal Admin", "123")


class TestSeedCategories:

    async def test_seed_is_idempotent(self, db_session):
        db_session.add(Category(name="agama"))
        await db_session.commit()

        first = await seed_categories(db_session)
        second = await seed_categories(db_session)

        assert "Agama" not in first
        assert len(first) == len(DEFAULT_CATEGORIES) - 1
        assert second == []
        names = (await db_session.execute(select(Category.name))).scalars().all()
        assert len(names) == len(DEFAULT_CATEGORIES)

    async def test_normalizes_whitespace(self, db_session):
        added = await seed_categories(db_session, ["  Jain   Logic ", "", "jain logic"])

        assert added == ["Jain Logic"]


def test_parser_defaults():
    args = create_parser().parse_args(["--admin-email", "a@b.org"])

    assert args.admin_email == "a@b.org"
    assert args.admin_name == "Portal Admin"
    assert args.seed_categories is False
    assert args.check is False
