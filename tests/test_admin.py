"""
Admin moderation tests: venues, chains, users and Google usage reporting
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, func

from app.core.cache import api_cache_key, search_cache_key
from app.models.base import utcnow
from app.models.review import Review
from app.models.user import RefreshToken, User, UserRole
from app.models.venue import Venue
from tests.conftest import TEST_PASSWORD, create_review, create_user, create_venue, google_place


async def scalar(context, stmt):
    async with context.session_factory() as session:
        return await session.scalar(stmt)


class TestAdminAccess:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [
        ("delete", "/api/v1/admin/venues/1"),
        ("get", "/api/v1/admin/users/deleted"),
        ("get", "/api/v1/admin/google-usage"),
        ("post", "/api/v1/admin/users/purge"),
    ])
    async def test_regular_user_forbidden(self, client, auth_headers, method, path):
        response = await getattr(client, method)(path, headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_FORBIDDEN"

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, client):
        response = await client.get("/api/v1/admin/google-usage")
        assert response.status_code == 401


class TestVenueModeration:

    @pytest.mark.asyncio
    async def test_delete_venue_with_reviews_conflicts(self, client, context, db_session,
                                                      test_venue, test_user, admin_headers):
        await create_review(db_session, test_venue, test_user)

        response = await client.delete(f"/api/v1/admin/venues/{test_venue.id}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Cannot delete establishment with existing reviews"
        assert await scalar(context, select(func.count(Venue.id)).where(Venue.id == test_venue.id)) == 1
        assert await scalar(context, select(func.count(Review.id))) == 1

    @pytest.mark.asyncio
    async def test_delete_venue(self, client, context, test_venue, admin_headers):
        search_key = search_cache_key(test_venue.name)
        await context.cache.set_json(search_key, {"results": []}, 300)

        response = await client.delete(f"/api/v1/admin/venues/{test_venue.id}", headers=admin_headers)

        assert response.status_code == 200
        assert await scalar(context, select(func.count(Venue.id))) == 0
        assert await context.cache.get_json(search_key) is None

    @pytest.mark.asyncio
    async def test_delete_missing_venue(self, client, admin_headers):
        response = await client.delete("/api/v1/admin/venues/9999", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_venue(self, client, test_venue, admin_headers):
        response = await client.patch(
            f"/api/v1/admin/venues/{test_venue.id}",
            json={"name": "Allergy Aware Kitchen & Bar", "price_level": 2},
            headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Allergy Aware Kitchen & Bar"
        assert data["price_level"] == 2
        assert data["address"] == test_venue.address

    @pytest.mark.asyncio
    async def test_update_requires_paired_coordinates(self, client, test_venue, admin_headers):
        response = await client.patch(
            f"/api/v1/admin/venues/{test_venue.id}",
            json={"latitude": 51.0},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_assign_and_remove_chain(self, client, test_venue, test_chain, admin_headers):
        assigned = await client.put(
            f"/api/v1/admin/venues/{test_venue.id}/chain",
            json={"chain_id": test_chain.id},
            headers=admin_headers
        )
        assert assigned.status_code == 200
        assert assigned.json()["chain_id"] == test_chain.id

        removed = await client.put(
            f"/api/v1/admin/venues/{test_venue.id}/chain",
            json={"chain_id": None},
            headers=admin_headers
        )
        assert removed.json()["chain_id"] is None

    @pytest.mark.asyncio
    async def test_assign_unknown_chain(self, client, test_venue, admin_headers):
        response = await client.put(
            f"/api/v1/admin/venues/{test_venue.id}/chain",
            json={"chain_id": 4242},
            headers=admin_headers
        )
        assert response.status_code == 404


class TestChains:

    @pytest.mark.asyncio
    async def test_create_chain(self, client, admin_headers):
        response = await client.post(
            "/api/v1/chains",
            json={"name": "Wagamama", "slug": "wagamama", "category": "asian"},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["slug"] == "wagamama"

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, client, test_chain, admin_headers):
        response = await client.post(
            "/api/v1/chains",
            json={"name": "Another Palace", "slug": test_chain.slug},
            headers=admin_headers
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_slug(self, client, admin_headers):
        response = await client.post(
            "/api/v1/chains",
            json={"name": "Bad Slug", "slug": "Bad Slug!"},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client, auth_headers):
        response = await client.post(
            "/api/v1/chains",
            json={"name": "Nandos", "slug": "nandos"},
            headers=auth_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_chains_with_counts(self, client, db_session, test_chain):
        await create_venue(db_session, "Pizza Palace Camden", chain_id=test_chain.id)
        await create_venue(db_session, "Pizza Palace Brixton", chain_id=test_chain.id)

        response = await client.get("/api/v1/chains")

        assert response.status_code == 200
        chains = response.json()
        assert len(chains) == 1
        assert chains[0]["id"] == test_chain.id
        assert chains[0]["venue_count"] == 2

    @pytest.mark.asyncio
    async def test_update_chain(self, client, test_chain, admin_headers):
        response = await client.put(
            f"/api/v1/chains/{test_chain.id}",
            json={"description": "Stone-baked pizza"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Stone-baked pizza"
        assert response.json()["name"] == "Pizza Palace"

    @pytest.mark.asyncio
    async def test_delete_chain_unassigns_venues(self, client, context, db_session, test_chain, admin_headers):
        """Member venues survive with no chain"""
        venue_ids = []
        for name in ("Pizza Palace One", "Pizza Palace Two", "Pizza Palace Three"):
            venue = await create_venue(db_session, name, chain_id=test_chain.id)
            venue_ids.append(venue.id)

        response = await client.delete(f"/api/v1/chains/{test_chain.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "unassignedCount": 3}
        assert await scalar(context, select(func.count(Venue.id)).where(Venue.id.in_(venue_ids))) == 3
        assert await scalar(context, select(func.count(Venue.id)).where(Venue.chain_id.is_not(None))) == 0

        missing = await client.get(f"/api/v1/chains/{test_chain.id}")
        assert missing.status_code == 404


class TestUserLifecycle:

    @pytest.mark.asyncio
    async def test_soft_delete_user(self, client, context, test_user, admin_headers):
        login = await client.post(
            "/api/v1/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD}
        )
        refresh_token = login.json()["refresh_token"]

        response = await client.delete(f"/api/v1/admin/users/{test_user.id}", headers=admin_headers)

        assert response.status_code == 200
        assert await scalar(context, select(User.deleted_at).where(User.id == test_user.id)) is not None
        assert await scalar(
            context,
            select(func.count(RefreshToken.id)).where(
                RefreshToken.user_id == test_user.id, RefreshToken.revoked_at.is_(None)
            )
        ) == 0

        refreshed = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert refreshed.status_code == 401

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client, test_admin, admin_headers):
        response = await client.delete(f"/api/v1/admin/users/{test_admin.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SELF_DELETE"

    @pytest.mark.asyncio
    async def test_cannot_delete_admin(self, client, db_session, admin_headers):
        other_admin = await create_user(db_session, role=UserRole.ADMIN)

        response = await client.delete(f"/api/v1/admin/users/{other_admin.id}", headers=admin_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cannot_delete_twice(self, client, test_user, admin_headers):
        await client.delete(f"/api/v1/admin/users/{test_user.id}", headers=admin_headers)
        response = await client.delete(f"/api/v1/admin/users/{test_user.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ALREADY_DELETED"

    @pytest.mark.asyncio
    async def test_restore_user(self, client, test_user, admin_headers):
        await client.delete(f"/api/v1/admin/users/{test_user.id}", headers=admin_headers)

        response = await client.post(f"/api/v1/admin/users/{test_user.id}/restore", headers=admin_headers)

        assert response.status_code == 200
        login = await client.post(
            "/api/v1/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_restore_window_expired(self, client, db_session, admin_headers):
        user = await create_user(db_session, deleted_at=utcnow() - timedelta(days=31))

        response = await client.post(f"/api/v1/admin/users/{user.id}/restore", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "RESTORE_WINDOW_EXPIRED"

    @pytest.mark.asyncio
    async def test_restore_active_user(self, client, test_user, admin_headers):
        response = await client.post(f"/api/v1/admin/users/{test_user.id}/restore", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "NOT_DELETED"

    @pytest.mark.asyncio
    async def test_list_deleted_users(self, client, db_session, admin_headers):
        recent = await create_user(db_session, deleted_at=utcnow() - timedelta(days=2))
        await create_user(db_session, deleted_at=utcnow() - timedelta(days=45))

        response = await client.get("/api/v1/admin/users/deleted", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["data"][0]["id"] == recent.id
        assert data["data"][0]["days_remaining"] == 28

    @pytest.mark.asyncio
    async def test_purge_expired_users(self, client, context, db_session, admin_headers):
        expired = await create_user(db_session, deleted_at=utcnow() - timedelta(days=45))
        recent = await create_user(db_session, deleted_at=utcnow() - timedelta(days=1))

        response = await client.post("/api/v1/admin/users/purge", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 1
        assert await scalar(context, select(func.count(User.id)).where(User.id == expired.id)) == 0
        assert await scalar(context, select(func.count(User.id)).where(User.id == recent.id)) == 1


class TestGoogleUsage:

    @pytest.mark.asyncio
    async def test_usage_after_hybrid_search(self, client, places_stub, admin_headers):
        places_stub.add_place(google_place("g-usage", "Gymkhana"))
        await client.get("/api/v1/search", params={"q": "gymkhana"})

        response = await client.get("/api/v1/admin/google-usage", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        daily = {row["api_service"]: row for row in data["daily"]}
        assert daily["places_text_search"]["total_requests"] == 1
        assert daily["places_text_search"]["successful_requests"] == 1
        assert data["stats"]["daily_usage"] == 1
        assert data["stats"]["usage_breakdown"] == {"text_search": 1}
        assert data["stats"]["daily_cost"] == pytest.approx(0.032)

    @pytest.mark.asyncio
    async def test_failed_calls_not_billed(self, client, places_stub, admin_headers):
        places_stub.fail_text_search = True
        await client.get("/api/v1/search", params={"q": "kebab"})

        response = await client.get("/api/v1/admin/google-usage/billing-cycle", headers=admin_headers)

        data = response.json()
        assert data["billing_cycle_usage"] == 0
        assert data["billing_cycle_cost"] == 0
        assert data["days_in_cycle"] >= 28


class TestVenueListingCache:

    @pytest.mark.asyncio
    async def test_listing_cached_until_invalidated(self, client, context, db_session, test_venue, admin_headers):
        first = await client.get("/api/v1/venues")
        assert first.json()["pagination"]["total"] == 1
        assert await context.cache.get_json(api_cache_key("/api/v1/venues")) is not None

        await create_venue(db_session, "Late Arrival")
        stale = await client.get("/api/v1/venues")
        assert stale.json()["pagination"]["total"] == 1

        await client.delete(f"/api/v1/admin/venues/{test_venue.id}", headers=admin_headers)
        fresh = await client.get("/api/v1/venues")
        assert [v["name"] for v in fresh.json()["data"]] == ["Late Arrival"]
