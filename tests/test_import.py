"""
Google Places import tests
"""

import os

import pytest
from sqlalchemy import select, func

from app.core.cache import api_cache_key, search_cache_key
from app.models.venue import Venue
from app.services.import_service import ImportService
from tests.conftest import FAKE_JPEG, create_venue, google_place


IMPORT_URL = "/api/v1/search/import"


async def venue_count(context, place_id=None) -> int:
    stmt = select(func.count(Venue.id))
    if place_id is not None:
        stmt = stmt.where(Venue.google_place_id == place_id)
    async with context.session_factory() as session:
        return await session.scalar(stmt)


class TestImport:
    """Importing a Google place as a local venue"""

    @pytest.mark.asyncio
    async def test_import_new_place(self, client, context, places_stub):
        places_stub.add_place(google_place(
            "g-dishoom", "Dishoom Covent Garden", "12 Upper St Martin's Lane, London",
            types=["restaurant", "food", "point_of_interest"]
        ))

        response = await client.post(IMPORT_URL, json={"place_id": "g-dishoom"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["imported"] is True
        assert data["message"] == "Place imported successfully"
        assert data["place_id"] == "g-dishoom"

        place = data["place"]
        assert place["name"] == "Dishoom Covent Garden"
        assert place["google_place_id"] == "g-dishoom"
        assert place["primary_category"] == "restaurant"
        assert place["latitude"] == 51.51 and place["longitude"] == -0.13
        assert place["tags"]["kind"] == "google_places"
        assert place["tags"]["source"] == "google_places"
        assert place["tags"]["place_id"] == "g-dishoom"
        assert place["tags"]["dining_type"] == "restaurant"
        assert place["tags"]["opening_hours"] == ["Monday: 12:00 - 22:00"]

    @pytest.mark.asyncio
    async def test_photo_stored_locally(self, client, context, places_stub):
        places_stub.add_place(google_place("g-photo", "Padella"))

        response = await client.post(IMPORT_URL, json={"place_id": "g-photo"})

        image_ref = response.json()["place"]["primary_image_ref"]
        assert image_ref.startswith("/images/establishments/")
        stored = os.path.join(context.settings.IMAGE_STORAGE_DIR, image_ref.rsplit("/", 1)[-1])
        with open(stored, "rb") as f:
            assert f.read() == FAKE_JPEG
        assert places_stub.calls["photo"] == 1

    @pytest.mark.asyncio
    async def test_photo_failure_does_not_block_import(self, client, places_stub):
        places_stub.add_place(google_place("g-nophoto", "Bao Soho"))
        places_stub.fail_photo = True

        response = await client.post(IMPORT_URL, json={"place_id": "g-nophoto"})

        assert response.status_code == 200
        assert response.json()["imported"] is True
        assert response.json()["place"]["primary_image_ref"] is None

    @pytest.mark.asyncio
    async def test_double_import_creates_one_row(self, client, context, places_stub):
        """The second import reports the existing venue"""
        places_stub.add_place(google_place("g-twice", "Flat Iron"))

        first = await client.post(IMPORT_URL, json={"place_id": "g-twice"})
        second = await client.post(IMPORT_URL, json={"place_id": "g-twice"})

        assert first.json()["imported"] is True
        assert second.status_code == 200
        assert second.json()["imported"] is False
        assert second.json()["message"] == "Place already in database"
        assert second.json()["place"]["uuid"] == first.json()["place"]["uuid"]
        assert await venue_count(context, "g-twice") == 1
        assert places_stub.calls["details"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_import_loses_race(self, context, db_session, places_stub, monkeypatch):
        """A racer that misses the pre-check still gets the existing row back"""
        places_stub.add_place(google_place("g-race", "Honest Burgers"))
        winner = await create_venue(db_session, "Honest Burgers", google_place_id="g-race")

        service = ImportService(db_session, context.cache, context.places, context.images, context.settings)
        original_find = service.find_by_place_id
        lookups = []

        async def stale_find(place_id):
            lookups.append(place_id)
            if len(lookups) == 1:
                return None
            return await original_find(place_id)

        monkeypatch.setattr(service, "find_by_place_id", stale_find)

        venue, imported = await service.import_place("g-race")

        assert imported is False
        assert venue.id == winner.id
        assert await venue_count(context, "g-race") == 1
        # The photo downloaded by the losing request is removed
        assert places_stub.calls["photo"] == 1
        assert os.listdir(context.settings.IMAGE_STORAGE_DIR) == []

    @pytest.mark.asyncio
    async def test_failed_insert_removes_downloaded_photo(self, context, db_session, places_stub, monkeypatch):
        places_stub.add_place(google_place("g-broken", "Flat Iron"))
        service = ImportService(db_session, context.cache, context.places, context.images, context.settings)

        async def failing_insert(values):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(service, "_insert_if_absent", failing_insert)

        with pytest.raises(RuntimeError, match="database unavailable"):
            await service.import_place("g-broken")

        assert places_stub.calls["photo"] == 1
        assert os.listdir(context.settings.IMAGE_STORAGE_DIR) == []
        assert await venue_count(context, "g-broken") == 0


class TestImportValidation:
    """Rejected imports"""

    @pytest.mark.asyncio
    async def test_hardware_store_rejected(self, client, context, places_stub):
        places_stub.add_place(google_place("g-tools", "Bob's Tools", types=["hardware_store"]))

        response = await client.post(IMPORT_URL, json={"place_id": "g-tools"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "NON_DINING_VENUE"
        assert error["details"]["excluded_reasons"] == ["No recognized dining venue type found"]
        assert error["details"]["place_types"] == ["hardware_store"]
        assert await venue_count(context) == 0
        assert places_stub.calls["photo"] == 0

    @pytest.mark.asyncio
    async def test_excluded_type_rejected(self, client, context, places_stub):
        places_stub.add_place(google_place("g-market", "Corner Market", types=["supermarket", "food"]))

        response = await client.post(IMPORT_URL, json={"place_id": "g-market"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["excluded_reasons"] == ["supermarket"]
        assert await venue_count(context) == 0

    @pytest.mark.asyncio
    async def test_shop_name_rejected(self, client, context, places_stub):
        places_stub.add_place(google_place("g-boots", "Boots Cafe", types=["cafe"]))

        response = await client.post(IMPORT_URL, json={"place_id": "g-boots"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["excluded_reasons"] == ["Invalid venue name pattern"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"place_id": ""}, {"place_id": "   "}])
    async def test_place_id_required(self, client, places_stub, body):
        response = await client.post(IMPORT_URL, json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PLACE_ID_REQUIRED"
        assert places_stub.calls["details"] == 0

    @pytest.mark.asyncio
    async def test_unknown_place(self, client, context, places_stub):
        response = await client.post(IMPORT_URL, json={"place_id": "g-missing"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PLACE_DETAILS_FAILED"
        assert await venue_count(context) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outage", ["unreachable", "html"])
    async def test_provider_outage_is_not_a_bad_place_id(self, client, context, places_stub, outage):
        places_stub.add_place(google_place("g-down", "Dishoom"))
        places_stub.details_outage = outage

        response = await client.post(IMPORT_URL, json={"place_id": "g-down"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "EXTERNAL_SERVICE_ERROR"
        assert places_stub.calls["details"] == 1
        assert await venue_count(context) == 0

    @pytest.mark.asyncio
    async def test_provider_not_configured(self, client, context, places_stub):
        context.settings.GOOGLE_PLACES_API_KEY = None

        response = await client.post(IMPORT_URL, json={"place_id": "g-any"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "PROVIDER_NOT_CONFIGURED"
        assert places_stub.calls["details"] == 0

    @pytest.mark.asyncio
    async def test_existing_place_needs_no_provider(self, client, context, db_session, places_stub):
        """Already-imported places are returned even without an API key"""
        await create_venue(db_session, "Rosa's Thai", google_place_id="g-rosa")
        context.settings.GOOGLE_PLACES_API_KEY = None

        response = await client.post(IMPORT_URL, json={"place_id": "g-rosa"})

        assert response.status_code == 200
        assert response.json()["imported"] is False


class TestImportCacheInvalidation:
    """Caches holding the imported venue's absence are dropped"""

    @pytest.mark.asyncio
    async def test_import_deletes_related_keys(self, client, context, places_stub):
        name, address = "Hawksmoor Seven Dials", "11 Langley St, London"
        places_stub.add_place(google_place("g-hawks", name, address))

        stale_keys = [
            search_cache_key(name),
            search_cache_key(address),
            search_cache_key(f"{name} {address}"),
            api_cache_key("/api/v1/venues"),
        ]
        for key in stale_keys:
            await context.cache.set_json(key, {"results": []}, 300)

        response = await client.post(IMPORT_URL, json={"place_id": "g-hawks"})

        assert response.status_code == 200
        for key in stale_keys:
            assert await context.cache.get_json(key) is None

    @pytest.mark.asyncio
    async def test_search_after_import_shows_local_venue(self, client, places_stub):
        name = "Dishoom Kings Cross"
        places_stub.add_place(google_place("g-dk", name))

        before = await client.get("/api/v1/search", params={"q": name})
        assert before.json()["results"][0]["source"] == "google"

        await client.post(IMPORT_URL, json={"place_id": "g-dk"})
        after = await client.get("/api/v1/search", params={"q": name})

        data = after.json()
        assert data["cached"] is False
        assert data["results"][0]["source"] == "database"
        assert data["results"][0]["google_place_id"] == "g-dk"
        assert data["breakdown"]["google_existing"] == 1
        assert data["breakdown"]["google_new"] == 0

    @pytest.mark.asyncio
    async def test_invalidation_failure_does_not_fail_import(self, client, context, places_stub, monkeypatch):
        async def broken_delete(keys):
            raise ConnectionError("cache down")

        monkeypatch.setattr(context.cache, "delete", broken_delete)
        places_stub.add_place(google_place("g-ok", "Mildreds"))

        response = await client.post(IMPORT_URL, json={"place_id": "g-ok"})

        assert response.status_code == 200
        assert response.json()["imported"] is True
