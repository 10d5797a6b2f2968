"""
Test configuration and fixtures for the loan ledger tests.
"""
import os

# Must be set before the app modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("INTEREST_RATE", "5.00")

import pytest
from typing import AsyncGenerator
from decimal import Decimal

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from app.core.database import Base, get_db
from main import app


# ============================================================
# Database Fixtures
# ============================================================

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "secret-password"


@pytest.fixture
async def test_engine():
    """Create a fresh test database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for each test"""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# User Fixtures
# ============================================================

async def create_user(db_session, name: str, email: str, password: str = TEST_PASSWORD):
    from app.modules.users.models import User
    from app.core.security import get_password_hash

    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash(password)
    )

    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    return user


@pytest.fixture
async def test_user(db_session):
    """Create a test user"""
    return await create_user(db_session, "Test User", "test@loanledger.com")


@pytest.fixture
async def other_user(db_session):
    """Create a second user who owns nothing"""
    return await create_user(db_session, "Other User", "other@loanledger.com")


@pytest.fixture
async def auth_headers(test_user):
    """Generate auth headers for test user"""
    from app.core.security import issue_token

    token = issue_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}


# ============================================================
# Loan Fixtures
# ============================================================

async def create_loan(db_session, user_id: int, amount="1000.00", duration=20, interest_rate="5.00"):
    from app.modules.loans.models import Loan
    from app.modules.loans.services import LoanService

    schedule = LoanService.calculate_schedule(Decimal(amount), duration, Decimal(interest_rate))
    loan = Loan(
        user_id=user_id,
        duration=duration,
        total_amount_paid=Decimal("0.00"),
        status=True,
        version=1,
        **schedule
    )

    db_session.add(loan)
    await db_session.commit()
    await db_session.refresh(loan)

    return loan


@pytest.fixture
async def test_loan(db_session, test_user):
    """Outstanding loan of 1000 over 20 weeks at 5%: total payable 2250"""
    return await create_loan(db_session, test_user.id)
