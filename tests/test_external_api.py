async def test_abn_lookup_known_entity(client, admin):
    resp = await client.get("/api/external/abn/51 824 753 556")
    assert resp.status_code == 200
    body = resp.json()["data"]
    assert body["abn"] == "51824753556"
    assert body["entityName"] == "AUSTRALIAN BROADCASTING CORPORATION"
    assert body["status"] == "Active"


async def test_abn_lookup_unknown_entity(client, admin):
    body = (await client.get("/api/external/abn/53004085616")).json()["data"]
    assert body["valid"] is True
    assert body["entityName"] is None
    assert body["message"].startswith("ABN format is valid but entity not found")


async def test_abn_lookup_rejects_bad_numbers(client, admin):
    short = await client.get("/api/external/abn/1234")
    assert short.status_code == 400
    assert short.json()["error"]["message"] == "ABN must be exactly 11 digits"

    typo = await client.get("/api/external/abn/51824753557")
    assert typo.status_code == 400
    assert typo.json()["error"]["message"].startswith("Invalid ABN checksum")


async def test_abn_lookup_requires_login(client):
    assert (await client.get("/api/external/abn/51824753556")).status_code == 401
