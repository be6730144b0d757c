"""Artist endpoints: list, create (JSON and multipart), review."""

from httpx import AsyncClient

from stagebook.core.exceptions import StoreError

BASE = "/api/v1/artists"
SUPABASE = "https://project.supabase.co"


def payload(**overrides) -> dict:
    data = {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9876543210",
        "category": "Singer",
        "city": "Mumbai",
        "bio": "Playback and live stage singer.",
        "experience": "5-10 years",
        "languages": "English, Hindi",
        "fee": "25,000",
    }
    data.update(overrides)
    return data


async def create(client: AsyncClient, **overrides) -> dict:
    r = await client.post(BASE, json=payload(**overrides))
    assert r.status_code == 201, r.text
    return r.json()


# ============== GET ==============

async def test_list_empty(client: AsyncClient):
    r = await client.get(BASE)
    assert r.status_code == 200
    assert r.json() == []


async def test_list_returns_camel_case_records(client: AsyncClient):
    created = await create(client)
    r = await client.get(BASE)
    assert r.status_code == 200
    data = r.json()
    assert data == [created]
    assert {"id", "imageUrl", "createdAt", "rejectionReason", "reviewedAt", "reviewedBy"} <= set(data[0])


async def test_list_filters_by_status(client: AsyncClient):
    first = await create(client)
    await create(client, email="second@example.com", name="Second")
    await client.patch(BASE, json={"id": first["id"], "status": "approved"})

    r = await client.get(BASE, params={"status": "approved"})
    assert [a["id"] for a in r.json()] == [first["id"]]


async def test_list_invalid_status_filter(client: AsyncClient):
    r = await client.get(BASE, params={"status": "archived"})
    assert r.status_code == 400
    assert r.json()["missingFields"] == ["status"]


async def test_get_by_id(client: AsyncClient):
    created = await create(client)
    r = await client.get(f"{BASE}/{created['id']}")
    assert r.status_code == 200
    assert r.json() == created

    r = await client.get(f"{BASE}/missing-id")
    assert r.status_code == 404
    assert r.json() == {"error": "Artist not found"}


# ============== POST ==============

async def test_create_from_json(client: AsyncClient):
    r = await client.post(BASE, json=payload(fee="1,200.50"))
    assert r.status_code == 201
    artist = r.json()
    assert artist["status"] == "pending"
    assert artist["id"]
    assert artist["fee"] == 1200
    assert artist["languages"] == ["English", "Hindi"]
    assert artist["rejectionReason"] is None


async def test_create_scenario_minimal_fields(client: AsyncClient):
    r = await client.post(BASE, json={"name": "A", "email": "a@x.com", "fee": "1,200.50"})
    assert r.status_code == 201
    assert r.json()["fee"] == 1200
    assert r.json()["category"] == "Other"


async def test_create_with_huge_numeric_fee(client: AsyncClient):
    r = await client.post(BASE, json={"name": "A", "email": "a@x.com", "fee": 10**400})
    assert r.status_code == 201, r.text
    assert r.json()["fee"] == 10**400
    assert (await client.get(BASE)).status_code == 200


async def test_create_accepts_language_list(client: AsyncClient):
    artist = await create(client, languages=["Tamil", "", "Telugu"])
    assert artist["languages"] == ["Tamil", "Telugu"]


async def test_create_from_form(client: AsyncClient):
    r = await client.post(BASE, data=payload(fee="₹5,000"))
    assert r.status_code == 201
    artist = r.json()
    assert artist["fee"] == 5000
    assert artist["languages"] == ["English", "Hindi"]
    assert artist["imageUrl"] is None


async def test_create_from_multipart_with_image(client: AsyncClient, uploads):
    r = await client.post(
        BASE,
        data=payload(),
        files={"image": ("my photo.png", b"\x89PNG fake", "image/png")},
    )
    assert r.status_code == 201, r.text
    artist = r.json()
    assert artist["imageUrl"].startswith(f"{SUPABASE}/storage/v1/object/public/artists/")
    assert artist["imageUrl"].endswith("-myphoto.png")

    assert len(uploads) == 1
    assert uploads[0].method == "POST"
    assert uploads[0].headers["apikey"] == "anon-key"
    assert uploads[0].content == b"\x89PNG fake"


async def test_create_rejects_non_image_upload(client: AsyncClient, uploads):
    r = await client.post(
        BASE,
        data=payload(),
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid file type")
    assert uploads == []
    assert (await client.get(BASE)).json() == []


async def test_create_missing_fields(client: AsyncClient):
    r = await client.post(BASE, json={"phone": "123"})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields", "missingFields": ["name", "email"]}


async def test_create_invalid_json(client: AsyncClient):
    r = await client.post(BASE, content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid JSON body"}


async def test_create_duplicate_email(client: AsyncClient):
    await create(client)
    r = await client.post(BASE, json=payload(name="Other"))
    assert r.status_code == 409
    assert r.json() == {"error": "An artist with this email already exists"}


async def test_create_store_failure(client: AsyncClient, store, monkeypatch):
    async def broken_set(key, value):
        raise StoreError("disk full")

    monkeypatch.setattr(store, "set", broken_set)
    r = await client.post(BASE, json=payload())
    assert r.status_code == 500
    assert "disk full" in r.json()["error"]


# ============== PATCH ==============

async def test_approve(client: AsyncClient):
    created = await create(client)
    r = await client.patch(BASE, json={"id": created["id"], "status": "approved"})
    assert r.status_code == 200
    artist = r.json()
    assert artist["status"] == "approved"
    assert artist["reviewedBy"] == "reviewer@stagebook.test"
    assert artist["reviewedAt"] is not None
    assert artist["createdAt"] == created["createdAt"]


async def test_reject_with_reason(client: AsyncClient):
    created = await create(client)
    r = await client.patch(
        BASE,
        json={"id": created["id"], "status": "rejected", "rejectionReason": "Bio too short", "reviewedBy": "ops@x.com"},
    )
    assert r.status_code == 200
    assert r.json()["rejectionReason"] == "Bio too short"
    assert r.json()["reviewedBy"] == "ops@x.com"


async def test_reject_without_reason_never_reaches_repository(client: AsyncClient, store, monkeypatch):
    created = await create(client)
    before = await store.get("artists")

    async def fail_get(key):
        raise AssertionError("repository should not be called")

    monkeypatch.setattr(store, "get", fail_get)
    r = await client.patch(BASE, json={"id": created["id"], "status": "rejected"})
    assert r.status_code == 400
    assert r.json()["missingFields"] == ["rejectionReason"]

    monkeypatch.undo()
    assert await store.get("artists") == before


async def test_patch_missing_fields(client: AsyncClient):
    r = await client.patch(BASE, json={})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields", "missingFields": ["id", "status"]}


async def test_patch_invalid_status(client: AsyncClient):
    created = await create(client)
    r = await client.patch(BASE, json={"id": created["id"], "status": "archived"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid status: archived"}


async def test_patch_unknown_id(client: AsyncClient):
    r = await client.patch(BASE, json={"id": "missing-id", "status": "approved"})
    assert r.status_code == 404
    assert r.json() == {"error": "Artist not found"}


async def test_patch_unknown_id_does_not_write(client: AsyncClient, store):
    await create(client)
    before = await store.get("artists")
    await client.patch(BASE, json={"id": "missing-id", "status": "approved"})
    assert await store.get("artists") == before
