from riskshield.services.preferences import DEFAULT_PREFERENCES, merged, wants_in_app
from tests.helpers import upload


def test_merged_overlays_saved_values():
    assert merged(None) == DEFAULT_PREFERENCES
    prefs = merged({"email_digest": "weekly", "in_app_notifications": {"coc_failed": False}, "legacy": 1})
    assert prefs["email_digest"] == "weekly"
    assert prefs["in_app_notifications"]["coc_failed"] is False
    assert prefs["in_app_notifications"]["coc_verified"] is True
    assert "legacy" not in prefs


def test_exception_notifications_share_a_toggle():
    stored = {"in_app_notifications": {"exception_updates": False}}
    assert wants_in_app(stored, "exception_created") is False
    assert wants_in_app(stored, "exception_expired") is False
    assert wants_in_app(stored, "system") is True


async def test_preferences_round_trip(client, admin):
    defaults = (await client.get("/api/user/preferences")).json()["data"]
    assert defaults["emailDigest"] == "immediate"
    assert defaults["expirationWarningDays"] == 30
    assert all(defaults["inAppNotifications"].values())

    resp = await client.put(
        "/api/user/preferences",
        json={"emailDigest": "daily", "emailNotifications": {"communicationSent": False}},
    )
    assert resp.status_code == 200, resp.text
    saved = resp.json()["data"]
    assert saved["emailDigest"] == "daily"
    assert saved["emailNotifications"]["communicationSent"] is False
    assert saved["emailNotifications"]["cocFailed"] is True

    # Later updates keep earlier choices
    await client.put("/api/user/preferences", json={"expirationWarningDays": 14})
    current = (await client.get("/api/user/preferences")).json()["data"]
    assert (current["emailDigest"], current["expirationWarningDays"]) == ("daily", 14)
    assert current["emailNotifications"]["communicationSent"] is False

    bad = await client.put("/api/user/preferences", json={"emailDigest": "hourly"})
    assert bad.status_code == 400


async def test_muted_in_app_notifications_are_not_created(client, site):
    project, sub = site
    await client.put("/api/user/preferences", json={"inAppNotifications": {"cocReceived": False}})
    await upload(client, project, sub)
    feed = (await client.get("/api/notifications")).json()
    assert feed["totalCount"] == 0
