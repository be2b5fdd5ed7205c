import pytest
from datetime import date
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from field_readings.core.exceptions import StorageError
from field_readings.models.community import Community, CommunityUnit
from field_readings.models.meter import Meter
from field_readings.schemas.meter import SortOrderItem
from field_readings.services.meter_service import (
	MeterService,
	expand_unit_meters,
	order_by_sort,
	pick_latest_per_meter,
)

METERS_URL = "/api/field/meters"


@pytest.mark.asyncio
async def test_list_meters_with_latest_readings(client: AsyncClient, community: Community):
	response = await client.get(METERS_URL, params={"communityId": "C1"})
	assert response.status_code == 200
	data = response.json()
	assert data["count"] == 2
	assert data["data"] == [
		{
			"unitId": "101", "meterId": "M1", "amrId": "AMR-1", "meterType": "water",
			"sortOrder": 0, "currentReading": None, "lastReadingDate": None,
		},
		{
			"unitId": "101", "meterId": "M2", "amrId": "", "meterType": "electric",
			"sortOrder": 1, "currentReading": "100", "lastReadingDate": "2024-01-01",
		},
	]


@pytest.mark.asyncio
async def test_field_visit_end_to_end(client: AsyncClient, community: Community):
	"""Save a reading for M1, then the refreshed list shows it and M2 unchanged"""
	response = await client.post("/api/field/readings", json={
		"communityId": "C1",
		"readingDate": "2024-02-01",
		"readings": [{"meterId": "M1", "reading": "50"}],
	})
	assert response.status_code == 200
	assert response.json()["data"]["saved"] == 1
	assert response.json()["data"]["total"] == 1

	response = await client.get(METERS_URL, params={"communityId": "C1"})
	meters = {m["meterId"]: m for m in response.json()["data"]}
	assert meters["M1"]["currentReading"] == "50"
	assert meters["M1"]["lastReadingDate"] == "2024-02-01"
	assert meters["M2"]["currentReading"] == "100"
	assert meters["M2"]["lastReadingDate"] == "2024-01-01"


@pytest.mark.asyncio
async def test_list_meters_requires_community(client: AsyncClient):
	response = await client.get(METERS_URL)
	assert response.status_code == 400
	assert response.json()["message"] == "Missing communityId parameter"


@pytest.mark.asyncio
async def test_list_meters_orders_unset_sort_last(client: AsyncClient, db_session):
	"""Sort orders [2, unset, 0] come back as [0, 2, unset]"""
	db_session.add(CommunityUnit(
		community_id="C2",
		unit_number="A",
		meters=[
			{"meter_id": "W-2", "meter_type": "water"},
			{"meter_id": "W-unset", "meter_type": "water"},
			{"meter_id": "W-0", "meter_type": "water"},
		],
	))
	db_session.add_all([
		Meter(meter_id="W-2", meter_type="water", community_id="C2", field_sort_order=2),
		Meter(meter_id="W-0", meter_type="water", community_id="C2", field_sort_order=0),
	])
	await db_session.commit()

	response = await client.get(METERS_URL, params={"communityId": "C2"})
	data = response.json()["data"]
	assert [m["meterId"] for m in data] == ["W-0", "W-2", "W-unset"]
	assert data[-1]["sortOrder"] == 999


@pytest.mark.asyncio
async def test_list_meters_skips_deleted_units_and_inactive_meters(client: AsyncClient, db_session):
	db_session.add_all([
		CommunityUnit(community_id="C3", unit_number="1", meters=[{"meter_id": "E-1", "meter_type": "electric"}]),
		CommunityUnit(community_id="C3", unit_number="2", meters=[{"meter_id": "E-2"}], is_deleted=True),
		CommunityUnit(community_id="C3", unit_number="3", meters=[{"meter_id": "E-3"}]),
		CommunityUnit(community_id="C3", unit_number="4", meters={"meter_id": "E-4"}),
		CommunityUnit(community_id="OTHER", unit_number="9", meters=[{"meter_id": "E-9"}]),
		Meter(meter_id="E-3", meter_type="electric", community_id="C3", is_active=False),
	])
	await db_session.commit()

	response = await client.get(METERS_URL, params={"communityId": "C3"})
	assert [m["meterId"] for m in response.json()["data"]] == ["E-1"]


@pytest.mark.asyncio
async def test_meter_listed_in_two_units_appears_once(client: AsyncClient, db_session):
	db_session.add_all([
		CommunityUnit(community_id="C4", unit_number="1", meters=[{"meter_id": "G-1", "meter_type": "gas"}]),
		CommunityUnit(community_id="C4", unit_number="2", meters=[{"meter_id": "G-1", "meter_type": "gas"}]),
	])
	await db_session.commit()

	response = await client.get(METERS_URL, params={"communityId": "C4"})
	data = response.json()["data"]
	assert response.json()["count"] == 1
	assert data[0]["unitId"] == "1"
	assert data[0]["meterType"] == "gas"


def test_pick_latest_prefers_most_recent_reading():
	rows = [
		{"meter_id": "M1", "unit_id": "1", "last_reading_date": date(2024, 1, 1), "current_reading": "10"},
		{"meter_id": "M2", "unit_id": "1", "last_reading_date": None, "current_reading": None},
		{"meter_id": "M1", "unit_id": "1", "last_reading_date": date(2024, 3, 1), "current_reading": "30"},
		{"meter_id": "M1", "unit_id": "1", "last_reading_date": None, "current_reading": None},
	]
	picked = pick_latest_per_meter(rows)
	assert [(r["meter_id"], r["current_reading"]) for r in picked] == [("M1", "30"), ("M2", None)]


def test_pick_latest_keeps_first_row_on_equal_dates():
	rows = [
		{"meter_id": "M1", "unit_id": "1", "last_reading_date": date(2024, 1, 1)},
		{"meter_id": "M1", "unit_id": "2", "last_reading_date": date(2024, 1, 1)},
	]
	assert pick_latest_per_meter(rows)[0]["unit_id"] == "1"


def test_order_by_sort_is_stable():
	rows = [
		{"meter_id": "a", "sort_order": 1},
		{"meter_id": "b", "sort_order": None},
		{"meter_id": "c", "sort_order": 1},
		{"meter_id": "d", "sort_order": 0},
	]
	assert [r["meter_id"] for r in order_by_sort(rows, default=999)] == ["d", "a", "c", "b"]


def test_expand_unit_meters_ignores_malformed_entries():
	units = [
		CommunityUnit(unit_number="1", meters=[{"meter_id": " X-1 ", "amr_id": ""}, {"amr_id": "A"}, "junk"]),
		CommunityUnit(unit_number="2", meters=None),
	]
	assert expand_unit_meters(units) == [
		{"unit_id": "1", "meter_id": "X-1", "amr_id": None, "meter_type": None},
	]


@pytest.mark.asyncio
async def test_save_sort_order(client: AsyncClient, community: Community, db_session):
	response = await client.post(f"{METERS_URL}/sort", json={
		"communityId": "C1",
		"sortOrder": [
			{"meterId": "M2", "fieldSortOrder": 0},
			{"meterId": "M1", "fieldSortOrder": 1},
		],
	})
	assert response.status_code == 200
	assert response.json() == {"message": "Sort order saved", "updated": 2}

	response = await client.get(METERS_URL, params={"communityId": "C1"})
	assert [m["meterId"] for m in response.json()["data"]] == ["M2", "M1"]


@pytest.mark.asyncio
async def test_sort_order_is_scoped_to_community(client: AsyncClient, community: Community, db_session, session_factory):
	db_session.add(Meter(meter_id="X-9", meter_type="water", community_id="C9", field_sort_order=4))
	await db_session.commit()

	response = await client.post(f"{METERS_URL}/sort", json={
		"communityId": "C1",
		"sortOrder": [{"meterId": "X-9", "fieldSortOrder": 0}, {"meterId": "M1", "fieldSortOrder": 7}],
	})
	assert response.status_code == 200
	assert response.json()["updated"] == 1

	async with session_factory() as session:
		result = await session.execute(select(Meter.meter_id, Meter.field_sort_order).order_by(Meter.meter_id))
		assert dict(result.all()) == {"M1": 7, "M2": 1, "X-9": 4}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
	{"sortOrder": [{"meterId": "M1", "fieldSortOrder": 0}]},
	{"communityId": "C1"},
	{"communityId": "", "sortOrder": []},
])
async def test_sort_order_requires_community_and_list(client: AsyncClient, payload):
	response = await client.post(f"{METERS_URL}/sort", json=payload)
	assert response.status_code == 400
	assert response.json()["message"] == "Missing or invalid communityId or sortOrder"


@pytest.mark.asyncio
async def test_sort_order_rejects_non_list(client: AsyncClient):
	response = await client.post(f"{METERS_URL}/sort", json={"communityId": "C1", "sortOrder": "M1,M2"})
	assert response.status_code == 400


@pytest.mark.asyncio
async def test_sort_order_failure_keeps_other_updates(community: Community, db_session, session_factory, monkeypatch):
	"""One failed update is reported after the pass; the others stay applied"""
	db_session.add(Meter(meter_id="M3", meter_type="gas", community_id="C1", field_sort_order=2))
	await db_session.commit()

	async with session_factory() as session:
		original_execute = session.execute
		calls = {"n": 0}

		async def flaky_execute(statement, *args, **kwargs):
			calls["n"] += 1
			if calls["n"] == 2:
				raise OperationalError("UPDATE meters", {}, Exception("database is locked"))
			return await original_execute(statement, *args, **kwargs)

		monkeypatch.setattr(session, "execute", flaky_execute)

		with pytest.raises(StorageError) as exc_info:
			await MeterService(session).save_sort_order("C1", [
				SortOrderItem(meter_id="M1", field_sort_order=10),
				SortOrderItem(meter_id="M2", field_sort_order=11),
				SortOrderItem(meter_id="M3", field_sort_order=12),
			])

	assert exc_info.value.message == "Failed to save sort order: 1 of 3 update(s) failed"
	assert exc_info.value.extra["failed"] == ["M2"]

	async with session_factory() as session:
		result = await session.execute(select(Meter.meter_id, Meter.field_sort_order).order_by(Meter.meter_id))
		assert dict(result.all()) == {"M1": 10, "M2": 1, "M3": 12}


@pytest.mark.asyncio
async def test_sort_order_accepts_numeric_meter_ids(client: AsyncClient, db_session, session_factory):
	db_session.add(Meter(meter_id="1001", meter_type="water", community_id="C5", field_sort_order=3))
	await db_session.commit()

	response = await client.post(f"{METERS_URL}/sort", json={
		"communityId": "C5",
		"sortOrder": [{"meterId": 1001, "fieldSortOrder": 0}],
	})
	assert response.status_code == 200
	assert response.json()["updated"] == 1

	async with session_factory() as session:
		result = await session.execute(select(Meter.field_sort_order).where(Meter.meter_id == "1001"))
		assert result.scalar_one() == 0
