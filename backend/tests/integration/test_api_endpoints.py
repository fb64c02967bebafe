"""
Integration tests for the entitlement API endpoints.

Tests the full request/response cycle against an in-memory database,
with authentication and Stripe replaced through dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from gylde.infrastructure.db.models import UserPrivateData


OWNER = "owner-0001"
REQUESTER = "requester-0001"
PHOTO_URL = "https://cdn.gylde.test/owner/1.jpg"


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        """Root endpoint should return welcome message."""
        response = client.get("/")
        assert response.status_code == 200
        assert "message" in response.json()

    def test_health_endpoint(self, client: TestClient):
        """Health endpoint should return healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthentication:

    @pytest.mark.parametrize("method,path", [
        ("post", "/api/private-access/request"),
        ("get", "/api/private-access/requests"),
        ("post", "/api/photos/privacy"),
        ("get", "/api/subscriptions/status"),
        ("get", "/api/entitlements/me"),
        ("get", "/api/reputation/me"),
        ("get", "/api/live"),
    ])
    def test_requires_bearer_token(self, client: TestClient, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401


class TestPrivateAccessEndpoints:

    def test_request_grant_and_check(self, client: TestClient, api):
        api(REQUESTER)
        sent = client.post("/api/private-access/request", json={"targetUserId": OWNER})
        assert sent.status_code == 200
        assert sent.json() == {"success": True, "message": "Access request sent"}

        api(OWNER)
        pending = client.get("/api/private-access/requests")
        assert [r["requesterId"] for r in pending.json()] == [REQUESTER]
        granted = client.post(
            "/api/private-access/respond",
            json={"requesterId": REQUESTER, "response": "grant"},
        )
        assert granted.json()["message"] == "Access granted"

        api(REQUESTER)
        check = client.post("/api/private-access/check", json={"targetUserId": OWNER})
        assert check.json() == {"hasAccess": True, "requestStatus": "granted"}
        received = client.get("/api/private-access/received")
        assert received.json()[0]["ownerId"] == OWNER

    def test_self_check_omits_empty_fields(self, client: TestClient, api):
        api(OWNER)
        response = client.post("/api/private-access/check", json={"targetUserId": OWNER})
        assert response.json() == {"hasAccess": True, "isSelf": True}

    def test_self_request_is_bad_request(self, client: TestClient, api):
        api(OWNER)
        response = client.post("/api/private-access/request", json={"targetUserId": OWNER})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["retryable"] is False

    def test_cancel_without_request_is_not_found(self, client: TestClient, api):
        api(REQUESTER)
        response = client.post("/api/private-access/cancel", json={"targetUserId": OWNER})
        assert response.status_code == 404

    def test_revoke_missing_grant_is_not_found(self, client: TestClient, api):
        api(OWNER)
        response = client.post("/api/private-access/revoke", json={"userId": REQUESTER})
        assert response.status_code == 404
        assert response.json()["message"] == "Access grant not found"

    def test_empty_target_is_rejected(self, client: TestClient, api):
        api(REQUESTER)
        response = client.post("/api/private-access/request", json={"targetUserId": ""})
        assert response.status_code == 422

    def test_backfill(self, client: TestClient, api):
        api(OWNER)
        response = client.post("/api/private-access/backfill")
        assert response.json() == {"success": True, "message": "Backfilled 0 access records", "count": 0}


class TestPhotoEndpoints:

    def test_profile_photo_privacy_is_rejected(self, client: TestClient, api):
        api(OWNER)
        client.post("/api/photos", json={"photoUrl": PHOTO_URL})
        client.post("/api/photos/profile", json={"photoUrl": PHOTO_URL})

        response = client.post("/api/photos/privacy", json={"photoUrl": PHOTO_URL, "isPrivate": True})

        assert response.status_code == 400
        assert "Profile photo cannot be made private" in response.json()["message"]

    def test_stranger_gets_locked_photo(self, client: TestClient, api):
        api(OWNER)
        client.post("/api/photos", json={"photoUrl": PHOTO_URL, "isPrivate": True})

        api(REQUESTER)
        response = client.get(f"/api/photos/{OWNER}")

        [photo] = response.json()
        assert photo["url"] is None
        assert photo["locked"] is True
        assert photo["isPrivate"] is True

    def test_photo_limit_is_forbidden(self, client: TestClient, api):
        api(OWNER)
        for n in range(3):
            client.post("/api/photos", json={"photoUrl": f"https://cdn.gylde.test/{n}.jpg"})

        response = client.post("/api/photos", json={"photoUrl": "https://cdn.gylde.test/extra.jpg"})

        assert response.status_code == 403
        assert response.json()["details"] == {"feature": "max_photos"}


class TestEntitlementEndpoints:

    def test_free_member_entitlements(self, client: TestClient, api):
        api(OWNER)
        response = client.get("/api/entitlements/me")

        assert response.status_code == 200
        body = response.json()
        assert body["subscriptionTier"] == "free"
        assert body["maxPhotos"] == 3
        assert body["higherTierBudget"]["remaining"] == 1

    @pytest.mark.asyncio
    async def test_premium_member_entitlements(self, client: TestClient, api, session):
        session.add(UserPrivateData(user_id=OWNER, subscription_tier="elite", subscription_status="trialing"))
        await session.commit()
        api(OWNER)

        body = client.get("/api/entitlements/me").json()

        assert body["isPremium"] is True
        assert body["features"]["has_ai_assistant"] is True
        assert body["higherTierBudget"]["isUnlimited"] is True


    def test_feature_check_denied_for_free_member(self, client: TestClient, api):
        api(OWNER)
        response = client.get("/api/entitlements/me/features/has_virtual_phone")

        assert response.status_code == 403
        assert response.json()["error"] == "PermissionDeniedError"
        assert response.json()["details"] == {"feature": "has_virtual_phone"}

    @pytest.mark.asyncio
    async def test_feature_check_allowed_for_elite_member(self, client: TestClient, api, session):
        session.add(UserPrivateData(user_id=OWNER, subscription_tier="elite", subscription_status="active"))
        await session.commit()
        api(OWNER)

        response = client.get("/api/entitlements/me/features/has_virtual_phone")

        assert response.status_code == 200
        assert response.json()["features"]["has_virtual_phone"] is True

    def test_unknown_feature_is_unprocessable(self, client: TestClient, api):
        api(OWNER)
        response = client.get("/api/entitlements/me/features/teleport")
        assert response.status_code == 422


class TestReputationEndpoints:

    @pytest.mark.asyncio
    async def test_rate_limit_is_429(self, client: TestClient, api, session):
        session.add(UserPrivateData(user_id=OWNER, reputation_tier="trusted"))
        await session.commit()
        api(REQUESTER)

        first = client.post("/api/reputation/higher-tier-conversations", json={"recipientId": OWNER})
        second = client.post("/api/reputation/higher-tier-conversations", json={"recipientId": OWNER})

        assert first.status_code == 200
        assert first.json()["remaining"] == 0
        assert second.status_code == 429
        assert second.json()["error"] == "RateLimitError"

    def test_refresh_and_read(self, client: TestClient, api):
        api(OWNER)
        refreshed = client.post("/api/reputation/refresh")
        status = client.get("/api/reputation/me")

        assert refreshed.json()["tier"] == status.json()["tier"]
        assert "dailyLimit" in status.json()["budget"]


class TestSubscriptionEndpoints:

    def test_status_for_new_member(self, client: TestClient, api):
        api(OWNER)
        response = client.get("/api/subscriptions/status")

        assert response.json()["tier"] == "free"
        assert response.json()["isPremium"] is False

    def test_checkout_for_new_member(self, client: TestClient, api, mock_stripe_service):
        mock_stripe_service.get_or_create_customer.return_value = MagicMock(id="cus_1")
        mock_stripe_service.has_active_subscription.return_value = False
        mock_stripe_service.create_checkout_session.return_value = MagicMock(
            id="cs_1", url="https://checkout.stripe.test/cs_1",
        )
        api(OWNER, email="owner@gylde.test")

        response = client.post("/api/subscriptions/checkout", json={"tier": "plus"})

        assert response.status_code == 200
        assert response.json() == {"sessionId": "cs_1", "url": "https://checkout.stripe.test/cs_1"}
        assert mock_stripe_service.get_or_create_customer.await_args.kwargs["email"] == "owner@gylde.test"

    def test_free_to_free_is_conflict(self, client: TestClient, api):
        api(OWNER)
        response = client.post("/api/subscriptions/checkout", json={"tier": "free"})
        assert response.status_code == 409

    def test_portal_without_customer_is_precondition_failed(self, client: TestClient, api):
        api(OWNER)
        response = client.post("/api/subscriptions/portal")
        assert response.status_code == 412

    def test_change_preview(self, client: TestClient, api):
        api(OWNER)
        response = client.get("/api/subscriptions/change-preview", params={"tier": "elite"})

        assert response.json() == {
            "action": "new",
            "viaPortal": False,
            "takesEffectImmediately": True,
            "effectiveAt": None,
        }
