from datetime import datetime, timedelta, timezone

import pytest


def expires_in(**delta):
    return (datetime.now(timezone.utc) + timedelta(**delta)).isoformat()


def share_body(credential, **overrides):
    body = {
        "credId": str(credential.id),
        "policy": {"preset": "lite"},
        "expiresAt": expires_in(minutes=15),
        "maxViews": 1,
    }
    body.update(overrides)
    return body


class TestIssuanceEndpoint:
    @pytest.mark.asyncio
    async def test_create_share(self, client, credential, auth_headers):
        resp = await client.post("/shares", json=share_body(credential), headers=auth_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["url"].endswith(f"/v/{data['id']}")
        assert data["qr_payload"] == data["url"]

    @pytest.mark.asyncio
    async def test_requires_auth(self, client, credential):
        resp = await client.post("/shares", json=share_body(credential))
        assert resp.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_invalid_token(self, client, credential):
        resp = await client.post(
            "/shares", json=share_body(credential), headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, status, code",
        [
            ({"expiresAt": expires_in(days=8)}, 422, "invalid_expiry"),
            ({"maxViews": 0}, 422, "invalid_view_limit"),
            ({"accessCode": "abc"}, 422, "weak_access_code"),
            ({"policy": {"preset": "custom", "fieldVisibility": {}}}, 422, "empty_disclosure"),
            ({"policy": {"preset": "custom", "selectedFields": ["<img onerror=x>"]}}, 422, "invalid_field_name"),
            ({"policy": {"preset": "secret"}}, 422, "invalid_policy"),
            ({"maxViews": 2.5}, 422, "invalid_view_limit"),
            ({"maxViews": "10"}, 422, "invalid_view_limit"),
            ({"expiresAt": "tomorrow"}, 422, "invalid_expiry"),
            ({"accessCode": 1234}, 422, "weak_access_code"),
        ],
    )
    async def test_validation_errors(self, client, credential, auth_headers, overrides, status, code):
        resp = await client.post("/shares", json=share_body(credential, **overrides), headers=auth_headers)
        assert resp.status_code == status
        assert resp.json()["detail"]["code"] == code

    @pytest.mark.asyncio
    async def test_unknown_credential(self, client, auth_headers):
        body = {
            "credId": "00000000-0000-0000-0000-000000000000",
            "policy": {"preset": "full"},
            "expiresAt": expires_in(minutes=15),
            "maxViews": 1,
        }
        resp = await client.post("/shares", json=body, headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_rate_limited(self, client, credential, auth_headers, monkeypatch):
        from wallet.config import settings

        monkeypatch.setattr(settings, "share_rate_limit", 1)
        assert (await client.post("/shares", json=share_body(credential), headers=auth_headers)).status_code == 201
        resp = await client.post("/shares", json=share_body(credential), headers=auth_headers)
        assert resp.status_code == 429
        assert resp.json()["detail"]["code"] == "rate_limited"

    @pytest.mark.asyncio
    async def test_list_and_revoke(self, client, credential, auth_headers):
        created = (await client.post("/shares", json=share_body(credential), headers=auth_headers)).json()

        listing = await client.get("/shares", params={"credId": str(credential.id)}, headers=auth_headers)
        assert listing.status_code == 200
        (share,) = listing.json()
        assert share["id"] == created["id"]
        assert share["views"] == 0
        assert share["requires_access_code"] is False

        assert (await client.delete(f"/shares/{created['id']}", headers=auth_headers)).status_code == 204
        assert (await client.get(f"/shares/{created['id']}", headers=auth_headers)).json()["revoked"] is True

        verify = await client.post(f"/v/{created['id']}", json={})
        assert verify.status_code == 200
        assert verify.json()["status"] == "revoked"


class TestVerificationEndpoint:
    @pytest.mark.asyncio
    async def test_lite_share_round_trip(self, client, credential, auth_headers):
        created = (await client.post("/shares", json=share_body(credential), headers=auth_headers)).json()

        resp = await client.post(f"/v/{created['id']}", json={})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "valid"
        assert data["issuerTrusted"] is True
        assert data["checkedAt"].endswith("Z")
        assert data["credential"]["payload"] == {
            "student_name": "Asha Verma",
            "degree": "BSc",
            "university": "University of Delhi",
            "year": "2024",
        }
        assert data["share"]["views"] == 1
        assert data["share"]["max_views"] == 1
        assert data["share"]["policy"] == {"preset": "lite"}
        assert "requiresAccessCode" not in data

        again = await client.post(f"/v/{created['id']}", json={})
        assert again.status_code == 200
        assert again.json()["status"] == "expired"
        assert "credential" not in again.json()

    @pytest.mark.asyncio
    async def test_access_code_flow(self, client, credential, auth_headers):
        body = share_body(credential, accessCode="se7c", maxViews=3)
        created = (await client.post("/shares", json=body, headers=auth_headers)).json()

        missing = await client.post(f"/v/{created['id']}")
        assert missing.status_code == 401
        assert missing.json()["status"] == "invalid_code"
        assert missing.json()["requiresAccessCode"] is True
        assert "credential" not in missing.json()

        ok = await client.post(f"/v/{created['id']}", json={"access_code": "se7c"})
        assert ok.status_code == 200
        assert ok.json()["status"] == "valid"
        assert ok.json()["share"]["views"] == 1

    @pytest.mark.asyncio
    async def test_get_dereference(self, client, credential, auth_headers):
        created = (await client.post("/shares", json=share_body(credential), headers=auth_headers)).json()
        resp = await client.get(f"/v/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["status"] == "valid"

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        resp = await client.post("/v/missing-share", json={})
        assert resp.status_code == 404
        assert resp.json()["status"] == "not_found"


class TestAnalyticsEndpoint:
    @pytest.mark.asyncio
    async def test_dashboard(self, client, credential, auth_headers):
        body = share_body(credential, accessCode="se7c", maxViews=5)
        created = (await client.post("/shares", json=body, headers=auth_headers)).json()
        url = f"/v/{created['id']}"

        await client.post(url, json={"access_code": "nope"}, headers={"cf-ipcountry": "DE"})
        await client.post(
            url,
            json={"access_code": "se7c"},
            headers={"cf-ipcountry": "IN", "user-agent": "Mozilla/5.0 (Windows NT 10.0)", "x-forwarded-for": "1.2.3.4"},
        )
        await client.post(
            url,
            json={"access_code": "se7c"},
            headers={"cf-ipcountry": "IN", "user-agent": "Mozilla/5.0 (iPad; CPU OS 17_0)", "x-forwarded-for": "5.6.7.8"},
        )

        resp = await client.get(f"/shares/{created['id']}/analytics", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["views"] == 2
        assert data["total_views"] == 2
        assert data["failed_attempts"] == 1
        assert data["unique_viewers"] == 2
        assert data["access_code_attempts"] == 3
        assert data["countries"] == {"IN": 2}
        assert data["devices"] == {"desktop": 1, "tablet": 1}
        assert len(data["recent_views"]) == 3

    @pytest.mark.asyncio
    async def test_other_users_share(self, client, db, other_user, credential, auth_headers):
        from wallet.auth.service import create_access_token

        created = (await client.post("/shares", json=share_body(credential), headers=auth_headers)).json()
        other_headers = {"Authorization": f"Bearer {create_access_token(str(other_user.id))}"}
        resp = await client.get(f"/shares/{created['id']}/analytics", headers=other_headers)
        assert resp.status_code == 404


class TestPreviewEndpoint:
    @pytest.mark.asyncio
    async def test_preview(self, client, credential, auth_headers):
        body = {"credId": str(credential.id), "preset": "custom", "fieldVisibility": {"email": "masked", "degree": "visible"}}
        resp = await client.post("/disclosure/preview", json=body, headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        fields = {f["field"]: f for f in data["fields"]}

        assert fields["email"]["category"] == "personal"
        assert fields["email"]["sensitive"] is True
        assert fields["email"]["visibility"] == "masked"
        assert fields["email"]["preview"] == "as" + "*" * 18 + "om"
        assert fields["degree"]["preview"] == "BSc"
        assert fields["university"]["category"] == "institutional"
        assert fields["university"]["preview"] is None
        assert (data["visible_count"], data["masked_count"], data["hidden_count"]) == (1, 1, 4)

    @pytest.mark.asyncio
    async def test_preview_unknown_credential(self, client, auth_headers):
        body = {"credId": "00000000-0000-0000-0000-000000000000", "preset": "full"}
        resp = await client.post("/disclosure/preview", json=body, headers=auth_headers)
        assert resp.status_code == 404


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.json() == {"status": "ok"}
