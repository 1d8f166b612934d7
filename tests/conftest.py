from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import school_ledger.core.models  # noqa: F401  (registers tables on Base.metadata)
from school_ledger.api.v1.audit import service as audit_service
from school_ledger.api.v1.audit.schemas import EditingSessionResponse
from school_ledger.api.v1.ledger import service as ledger_service
from school_ledger.api.v1.ledger.schemas import BaseFeesResponse, BaseFeesSetupRequest
from school_ledger.db.session import Base, get_db
from school_ledger.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"

STUDENT_ID = "STU-0001"
YEAR_KEY = "2025-2026"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; also overrides the FastAPI dependency."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def editing_session(db_session: AsyncSession) -> EditingSessionResponse:
    return await audit_service.open_session(db_session, STUDENT_ID, "registrar")


@pytest.fixture()
async def base_fees(db_session: AsyncSession) -> BaseFeesResponse:
    """12,000 total, 2,000 advance, four installments of 2,500 from September."""
    return await ledger_service.setup_base_fees(
        db_session,
        STUDENT_ID,
        YEAR_KEY,
        BaseFeesSetupRequest(
            total_amount=Decimal("12000"),
            advance_payment=Decimal("2000"),
            installment_count=4,
            first_due_date=date(2025, 9, 1),
            created_by="accountant",
        ),
    )
