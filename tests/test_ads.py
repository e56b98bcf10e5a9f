"""
Listing endpoint tests — the HTTP surface over the listing service:
multipart creation, Basic-auth callers, status-code mapping of the
service errors and image serving.
"""
import json

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adboard.models import Comment

PASSWORD = "password123"
ALICE = ("alice@example.com", PASSWORD)
BOB = ("bob@example.com", PASSWORD)
ADMIN = ("admin@example.com", PASSWORD)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _post_ad(
    client: AsyncClient,
    auth,
    title: str = "Bike",
    description: str = "Red city bike",
    price: int = 1500,
    image: bytes = b"jpeg-bytes",
):
    return await client.post(
        "/api/v1/ads",
        data={"properties": json.dumps({"title": title, "description": description, "price": price})},
        files={"image": ("bike.jpg", image, "image/jpeg")},
        auth=auth,
    )


async def _create_ad(client: AsyncClient, auth, **kwargs) -> dict:
    resp = await _post_ad(client, auth, **kwargs)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_timing_headers_present(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/ads")
    assert "x-response-time-ms" in resp.headers
    assert int(resp.headers["x-query-count"]) >= 1


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_ads_empty(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/ads")
    assert resp.status_code == 200
    assert resp.json() == {"count": 0, "results": []}


@pytest.mark.asyncio
async def test_list_my_ads(async_client: AsyncClient, seeded_users):
    mine = await _create_ad(async_client, ALICE)
    await _create_ad(async_client, BOB, title="Sofa")

    resp = await async_client.get("/api/v1/ads/me", auth=ALICE)
    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 1
    assert data["results"][0]["id"] == mine["id"]

    resp = await async_client.get("/api/v1/ads")
    assert resp.json()["count"] == 2


@pytest.mark.asyncio
async def test_list_my_ads_requires_credentials(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/ads/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Basic"


@pytest.mark.asyncio
async def test_wrong_password_is_unauthorized(async_client: AsyncClient, seeded_users):
    resp = await async_client.get("/api/v1/ads/me", auth=("alice@example.com", "not-the-password"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user_is_unauthorized(async_client: AsyncClient, seeded_users):
    resp = await async_client.delete("/api/v1/ads/99999", auth=("ghost@example.com", PASSWORD))
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Create + get
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_ad(async_client: AsyncClient, seeded_users):
    alice = seeded_users["alice"]
    created = await _create_ad(async_client, ALICE, title="Bike", price=1500)
    assert created["author_id"] == alice.id
    assert created["title"] == "Bike"
    assert created["price"] == 1500
    assert created["image"].startswith(f"/api/v1/ads/image/Ads_1_auth_{alice.id}_lg_")

    resp = await async_client.get(f"/api/v1/ads/{created['id']}")
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["title"] == "Bike"
    assert detail["description"] == "Red city bike"
    assert detail["price"] == 1500
    assert detail["author_first_name"] == "Alice"
    assert detail["author_last_name"] == "Smith"
    assert detail["email"] == "alice@example.com"
    assert detail["image"] == created["image"]

    image = await async_client.get(detail["image"])
    assert image.status_code == 200
    assert image.content == b"jpeg-bytes"


@pytest.mark.asyncio
async def test_create_requires_credentials(async_client: AsyncClient):
    resp = await _post_ad(async_client, auth=None)
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "abc"},
        {"description": "short"},
        {"price": -1},
        {"price": 10_000_001},
    ],
)
async def test_create_rejects_invalid_properties(async_client: AsyncClient, seeded_users, overrides):
    resp = await _post_ad(async_client, ALICE, **overrides)
    assert resp.status_code == 422
    assert (await async_client.get("/api/v1/ads")).json()["count"] == 0


@pytest.mark.asyncio
async def test_create_rejects_malformed_properties_json(async_client: AsyncClient, seeded_users):
    resp = await async_client.post(
        "/api/v1/ads",
        data={"properties": "{not json"},
        files={"image": ("bike.jpg", b"x", "image/jpeg")},
        auth=ALICE,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_ad_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/ads/99999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_unknown_image(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/ads/image/Ads_1_auth_1_lg_1")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_ad_by_owner(async_client: AsyncClient, seeded_users):
    created = await _create_ad(async_client, ALICE)

    resp = await async_client.patch(
        f"/api/v1/ads/{created['id']}",
        json={"title": "Bike", "description": "Blue city bike", "price": 900},
        auth=ALICE,
    )
    assert resp.status_code == 200
    assert resp.json()["price"] == 900

    detail = (await async_client.get(f"/api/v1/ads/{created['id']}")).json()
    assert detail["description"] == "Blue city bike"
    assert detail["price"] == 900


@pytest.mark.asyncio
async def test_update_ad_by_other_user_is_forbidden(async_client: AsyncClient, seeded_users):
    created = await _create_ad(async_client, ALICE)

    resp = await async_client.patch(
        f"/api/v1/ads/{created['id']}",
        json={"title": "Mine now", "description": "Taken over by Bob", "price": 1},
        auth=BOB,
    )
    assert resp.status_code == 403

    detail = (await async_client.get(f"/api/v1/ads/{created['id']}")).json()
    assert detail["description"] == "Red city bike"
    assert detail["price"] == 1500


@pytest.mark.asyncio
async def test_update_ad_not_found(async_client: AsyncClient, seeded_users):
    resp = await async_client.patch(
        "/api/v1/ads/99999",
        json={"title": "Ghost", "description": "Nothing to see", "price": 1},
        auth=ADMIN,
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Update image
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_image_by_owner(async_client: AsyncClient, seeded_users):
    created = await _create_ad(async_client, ALICE)

    resp = await async_client.patch(
        f"/api/v1/ads/{created['id']}/image",
        files={"image": ("new.jpg", b"new-bytes", "image/jpeg")},
        auth=ALICE,
    )
    assert resp.status_code == 200
    assert resp.json()["image"] == created["image"]

    image = await async_client.get(created["image"])
    assert image.content == b"new-bytes"


@pytest.mark.asyncio
async def test_update_image_by_other_user_is_forbidden(async_client: AsyncClient, seeded_users):
    created = await _create_ad(async_client, ALICE)

    resp = await async_client.patch(
        f"/api/v1/ads/{created['id']}/image",
        files={"image": ("evil.jpg", b"evil", "image/jpeg")},
        auth=BOB,
    )
    assert resp.status_code == 403
    assert (await async_client.get(created["image"])).content == b"jpeg-bytes"


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_ad_removes_comments(
    async_client: AsyncClient, db_session: AsyncSession, seeded_users
):
    created = await _create_ad(async_client, ALICE)
    for i in range(3):
        db_session.add(Comment(text=f"Still for sale? {i}", listing_id=created["id"], author_id=seeded_users["bob"].id))
    await db_session.commit()

    resp = await async_client.delete(f"/api/v1/ads/{created['id']}", auth=ALICE)
    assert resp.status_code == 204

    remaining = await db_session.execute(
        select(func.count()).select_from(Comment).where(Comment.listing_id == created["id"])
    )
    assert remaining.scalar_one() == 0
    assert (await async_client.get(f"/api/v1/ads/{created['id']}")).status_code == 404
    assert (await async_client.get("/api/v1/ads")).json()["count"] == 0


@pytest.mark.asyncio
async def test_admin_can_delete_any_ad(async_client: AsyncClient, seeded_users):
    created = await _create_ad(async_client, ALICE)

    resp = await async_client.delete(f"/api/v1/ads/{created['id']}", auth=ADMIN)
    assert resp.status_code == 204


@pytest.mark.asyncio
async def test_delete_by_other_user_is_forbidden(async_client: AsyncClient, seeded_users):
    created = await _create_ad(async_client, ALICE)

    resp = await async_client.delete(f"/api/v1/ads/{created['id']}", auth=BOB)
    assert resp.status_code == 403
    assert (await async_client.get(f"/api/v1/ads/{created['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_delete_ad_not_found(async_client: AsyncClient, seeded_users):
    resp = await async_client.delete("/api/v1/ads/99999", auth=ALICE)
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_metrics(async_client: AsyncClient, db_session: AsyncSession, seeded_users):
    created = await _create_ad(async_client, ALICE)
    await _create_ad(async_client, BOB, title="Sofa")
    db_session.add(Comment(text="Nice", listing_id=created["id"], author_id=seeded_users["bob"].id))
    await db_session.commit()

    resp = await async_client.get("/api/v1/metrics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_listings"] == 2
    assert data["total_comments"] == 1
    assert data["total_users"] == 3
    assert data["avg_comments_per_listing"] == 0.5
    assert set(data["cache_info"]) == {"hits", "misses", "hit_rate"}
