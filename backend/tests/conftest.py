"""
Jain Manuscripts Portal - Test Configuration and Fixtures
"""
import os
import shutil
import tempfile
from typing import AsyncGenerator

import pytest
from faker import Faker

# Settings are read at import time, so the environment comes first
_TMP_DIR = tempfile.mkdtemp(prefix="manuscripts-test-")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"

os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''
os.environ['LOG_LEVEL'] = 'WARNING'
os.environ['UPLOAD_DIR'] = os.path.join(_TMP_DIR, 'uploads')
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from manuscript_portal.main import app
from manuscript_portal.core.database import Base, get_db
from manuscript_portal.core.security import build_token_claims, create_access_token, get_password_hash
from manuscript_portal.models import (
    ApplicationStatus,
    Manuscript,
    ManuscriptStatus,
    ResearcherApplication,
    UploadType,
    User,
    UserRole,
)

fake = Faker()

TEST_PASSWORD = 'testpassword123'

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

# PNG signature is enough; the portal does not decode images
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db_session: AsyncSession, role: UserRole = UserRole.USER, is_approved: bool = True,
                    is_active: bool = True, password: str = TEST_PASSWORD) -> User:
    user = User(
        name=fake.name()[:100],
        email=fake.unique.email().lower(),
        hashed_password=get_password_hash(password),
        role=role,
        is_approved=is_approved,
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def make_manuscript(db_session: AsyncSession, upload_type: UploadType = UploadType.NORMAL,
                          status: ManuscriptStatus = ManuscriptStatus.PUBLISHED, submitted_by=None,
                          pages: int = 0, **fields) -> Manuscript:
    manuscript = Manuscript(
        title=fields.pop('title', fake.sentence(nb_words=4)[:200]),
        author=fields.pop('author', fake.name()[:100]),
        category=fields.pop('category', 'Agama'),
        language=fields.pop('language', 'Prakrit'),
        description=fields.pop('description', fake.paragraph()),
        images=[f'/uploads/pages/page-{i}.png' for i in range(1, pages + 1)],
        upload_type=upload_type,
        is_public=upload_type == UploadType.NORMAL,
        status=status,
        submitted_by=submitted_by,
        **fields,
    )
    db_session.add(manuscript)
    await db_session.commit()
    await db_session.refresh(manuscript)
    return manuscript


def headers_for(user: User) -> dict:
    token = create_access_token(build_token_claims(user))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Approved normal user"""
    return await make_user(db_session)


@pytest.fixture
async def pending_applicant(db_session: AsyncSession) -> User:
    """Signed up as researcher, application not reviewed yet"""
    user = await make_user(db_session, is_approved=False)
    db_session.add(ResearcherApplication(
        user_id=user.id,
        phone_number='+91 98765 43210',
        research_description='Studying palm-leaf Agama manuscripts from Patan bhandars.',
        status=ApplicationStatus.PENDING,
        via_signup=True,
    ))
    await db_session.commit()
    return user


@pytest.fixture
async def researcher_user(db_session: AsyncSession) -> User:
    """Approved researcher"""
    return await make_user(db_session, role=UserRole.RESEARCHER, is_approved=True)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, role=UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest.fixture
def researcher_headers(researcher_user: User) -> dict:
    return headers_for(researcher_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
async def public_manuscript(db_session: AsyncSession, admin_user: User) -> Manuscript:
    return await make_manuscript(db_session, submitted_by=admin_user.id)


@pytest.fixture
async def detailed_manuscript(db_session: AsyncSession, admin_user: User) -> Manuscript:
    return await make_manuscript(db_session, UploadType.DETAILED, submitted_by=admin_user.id, pages=3)
