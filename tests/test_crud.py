"""Tests for CRUD operations against a temporary sqlite database."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ewaste.app.db.async_session import init_async_db
from ewaste.app.db.crud import (
    add_marketplace_item,
    convert_to_marketplace_item,
    create_meeting_request,
    delete_marketplace_item,
    get_last_30_days_data,
    get_marketplace_item,
    get_marketplace_items,
    get_user_waste_data,
    group_by_category,
    list_meeting_requests,
    save_waste_data,
    update_marketplace_item_status,
)


@asynccontextmanager
async def open_session(url: str):
    engine = create_async_engine(url)
    await init_async_db(engine)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    try:
        async with session_maker() as session:
            yield session
    finally:
        await engine.dispose()


CONTACT = {"email": "owner@example.com", "phone": None}


async def make_listing(session, **overrides):
    fields = dict(
        user_id="owner-1",
        title="Old laptop",
        category="electronic",
        condition="good",
        type="give",
        price=None,
        contact=CONTACT,
    )
    fields.update(overrides)
    return await add_marketplace_item(session, **fields)


class TestWasteData:
    def test_group_by_category_drops_other(self):
        grouped = group_by_category([
            {"type": "bottle", "confidence": 0.9},
            {"type": "laptop", "confidence": 0.8},
            {"type": "xyz123", "confidence": 0.7},
        ])

        assert grouped == {
            "recyclable": [{"type": "bottle", "confidence": 0.9}],
            "electronic": [{"type": "laptop", "confidence": 0.8}],
            "hazardous": [],
            "organic": [],
        }

    @pytest.mark.asyncio
    async def test_save_and_list_newest_first(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            first = await save_waste_data(session, [{"type": "bottle", "confidence": 0.9}], "user-1")
            second = await save_waste_data(session, [{"type": "laptop", "confidence": 0.8}], "user-1")
            await save_waste_data(session, [{"type": "cup", "confidence": 0.8}], "user-2")

            records = await get_user_waste_data(session, "user-1")

        assert [r.id for r in records] == [second.id, first.id]
        assert records[0].detected_items["electronic"] == [{"type": "laptop", "confidence": 0.8}]

    @pytest.mark.asyncio
    async def test_history_limit(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            for _ in range(35):
                await save_waste_data(session, [{"type": "bottle", "confidence": 0.9}], "user-1")

            assert len(await get_user_waste_data(session, "user-1")) == 30

    @pytest.mark.asyncio
    async def test_requires_user(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            with pytest.raises(ValueError, match="User must be authenticated"):
                await save_waste_data(session, [], "")
            with pytest.raises(ValueError):
                await get_user_waste_data(session, "")

    @pytest.mark.asyncio
    async def test_last_30_days(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            old = await save_waste_data(session, [{"type": "bottle", "confidence": 0.9}], "user-1")
            old.timestamp = datetime.now(timezone.utc) - timedelta(days=45)
            await session.commit()
            recent = await save_waste_data(session, [{"type": "cup", "confidence": 0.9}], "user-1")

            records = await get_last_30_days_data(session, "user-1")

        assert [r.id for r in records] == [recent.id]


class TestMarketplace:
    @pytest.mark.asyncio
    async def test_add_forces_available_and_default_location(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            item = await make_listing(session)

        assert item.id is not None
        assert item.status == "available"
        assert item.location == {"lat": 0, "lng": 0, "address": ""}
        assert item.price is None
        assert item.images == []

    @pytest.mark.asyncio
    async def test_invalid_condition_rejected(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            with pytest.raises(ValueError):
                await make_listing(session, condition="broken")

    @pytest.mark.asyncio
    async def test_filters(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            free = await make_listing(session, title="Free laptop")
            cheap = await make_listing(session, title="Bottles", category="recyclable", price=5)
            await make_listing(session, title="Wanted TV", type="take", price=50)

            by_category = await get_marketplace_items(session, category="recyclable")
            gives = await get_marketplace_items(session, type="give")
            under_ten = await get_marketplace_items(session, max_price=10)
            from_one = await get_marketplace_items(session, min_price=1, max_price=10)

        assert [i.id for i in by_category] == [cheap.id]
        assert [i.id for i in gives] == [cheap.id, free.id]
        assert {i.id for i in under_ten} == {free.id, cheap.id}
        assert [i.id for i in from_one] == [cheap.id]

    @pytest.mark.asyncio
    async def test_convert_uses_classifier(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            item = await convert_to_marketplace_item(
                session,
                detected_type="cell phone",
                user_id="owner-1",
                title="Phone",
                condition="fair",
                type="give",
                location={"lat": 1.5, "lng": 2.5, "address": "Main St"},
                contact=CONTACT,
            )

        assert item.category == "electronic"
        assert item.recycling_guide == "Recycling guide for cell phone"
        assert item.disposal_instructions == "Disposal instructions for cell phone"
        assert item.location == {"lat": 1.5, "lng": 2.5, "address": "Main St"}

    @pytest.mark.asyncio
    async def test_update_status_and_delete(self, sqlite_url):
        async with open_session(sqlite_url) as session:
            item = await make_listing(session)

            assert await update_marketplace_item_status(session, item.id, "pending") is True
            assert (await get_marketplace_item(session, item.id)).status == "pending"
            assert await update_marketplace_item_status(session, 999, "pending") is False

            assert await delete_marketplace_item(session, item.id) is True
            assert await get_marketplace_item(session, item.id) is None
            assert await delete_marketplace_item(session, item.id) is False


class TestMeetingRequests:
    @pytest.mark.asyncio
    async def test_create_and_list(self, sqlite_url):
        point = {"name": "Library", "type": "public", "lat": 1.0, "lng": 2.0, "distance": 0.4}
        async with open_session(sqlite_url) as session:
            created = await create_meeting_request(
                session,
                item_id=1,
                item_title="Old laptop",
                owner_id="owner-1",
                requester_id="buyer-1",
                requester_email="buyer@example.com",
                meeting_point=point,
            )
            await create_meeting_request(
                session,
                item_id=2,
                item_title="Other",
                owner_id="owner-2",
                requester_id="buyer-1",
                requester_email="buyer@example.com",
                meeting_point=point,
            )

            requests = await list_meeting_requests(session, "owner-1")

        assert [r.id for r in requests] == [created.id]
        assert requests[0].status == "pending"
        assert requests[0].meeting_point == point
