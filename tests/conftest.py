import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./field_readings_test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DEBUG", "true")

import pytest
from datetime import date
from typing import AsyncGenerator, Callable, List
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from field_readings.main import app
from field_readings.database import Base, get_session
from field_readings.models import Community, CommunityUnit, CurrentReading, FieldUser, Meter


@pytest.fixture
async def engine(tmp_path):
	"""Fresh SQLite database per test"""
	engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)

	yield engine

	await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
	return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
	"""Session for seeding and assertions, separate from request sessions"""
	async with session_factory() as session:
		yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
	"""Test client; every request gets its own session like in production"""

	async def override_get_session():
		async with session_factory() as session:
			try:
				yield session
			except Exception:
				await session.rollback()
				raise

	app.dependency_overrides[get_session] = override_get_session

	async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
		yield client

	app.dependency_overrides.clear()


@pytest.fixture
async def community(db_session: AsyncSession) -> Community:
	"""Community C1 with meters M1 (no reading) and M2 (reading 100 on 2024-01-01)"""
	community = Community(id="C1", name="Cedar Court")
	db_session.add(community)
	db_session.add(CommunityUnit(
		community_id="C1",
		unit_number="101",
		meters=[
			{"meter_id": "M1", "amr_id": "AMR-1", "meter_type": "water"},
			{"meter_id": "M2", "amr_id": None, "meter_type": "electric"},
		],
	))
	db_session.add_all([
		Meter(meter_id="M1", amr_id="AMR-1", meter_type="water", community_id="C1", field_sort_order=0),
		Meter(meter_id="M2", meter_type="electric", community_id="C1", field_sort_order=1),
	])
	db_session.add(CurrentReading(
		meter_id="M2",
		reading_value="100",
		reading_date=date(2024, 1, 1),
		input_type="Field",
	))
	await db_session.commit()
	return community


@pytest.fixture
async def field_user(db_session: AsyncSession) -> FieldUser:
	user = FieldUser(login="reader1", pwd="meter-pass")
	db_session.add(user)
	await db_session.commit()
	await db_session.refresh(user)
	return user


@pytest.fixture
def fetch_readings(session_factory) -> Callable:
	"""Read the current readings table through a fresh session"""

	async def _fetch() -> List[CurrentReading]:
		async with session_factory() as session:
			result = await session.execute(select(CurrentReading).order_by(CurrentReading.meter_id))
			return list(result.scalars().all())

	return _fetch
