"""
Integration Tests for Fundraiser Service
Exercises the HTTP API against an in-memory SQLite database
"""
import pytest
from unittest.mock import patch, AsyncMock

from fundraiser_service.models import DonationStatus


USER = {"x-user-id": "user-1"}
OTHER_USER = {"x-user-id": "user-2"}
ADMIN = {"x-user-id": "admin-1", "x-user-role": "admin"}


# ============================================================================
# HEALTH
# ============================================================================

class TestHealth:
    """Health and metrics endpoints"""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready_reports_breaker(self, client):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "connected"
        assert data["cache"] == "not_initialized"
        assert data["circuit_breaker"]["state"] == "closed"

    @pytest.mark.asyncio
    async def test_metrics(self, client):
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text


# ============================================================================
# FUNDRAISING PROGRESS
# ============================================================================

class TestFundraisingApi:
    """Caller progress and leaderboard"""

    @pytest.mark.asyncio
    async def test_requires_caller(self, client):
        response = await client.get("/fundraising/me")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_no_progress_yet(self, client, db_session):
        response = await client.get("/fundraising/me", headers=USER)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_and_update_progress(self, client, seed_progress):
        seed_progress("user-1", target_amount=1000, collected_amount=250, full_name="A B")

        response = await client.post("/fundraising/me/progress", json={"amount": 100}, headers=USER)

        assert response.status_code == 200
        data = response.json()
        assert data["collected_amount"] == 350
        assert data["progress_percentage"] == 35.0

        response = await client.get("/fundraising/me", headers=USER)
        assert response.json()["collected_amount"] == 350
        assert response.json()["full_name"] == "A B"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -50])
    async def test_non_positive_delta_is_rejected(self, client, seed_progress, amount):
        seed_progress("user-1", collected_amount=250)

        response = await client.post("/fundraising/me/progress", json={"amount": amount}, headers=USER)

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_amount"

    @pytest.mark.asyncio
    async def test_non_numeric_delta_is_rejected(self, client, seed_progress):
        seed_progress("user-1")

        response = await client.post("/fundraising/me/progress", json={"amount": "lots"}, headers=USER)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delta_without_progress(self, client, db_session):
        response = await client.post("/fundraising/me/progress", json={"amount": 10}, headers=USER)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_leaderboard_is_public(self, client, seed_progress):
        seed_progress("a", collected_amount=100)
        seed_progress("b", collected_amount=300)

        response = await client.get("/fundraising/leaderboard?limit=5")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [entry["user_id"] for entry in data["entries"]] == ["b", "a"]
        assert data["entries"][0]["rank"] == 1


# ============================================================================
# ADMIN
# ============================================================================

class TestAdminApi:
    """Admin listing, seeding, statistics and export"""

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, client, db_session):
        response = await client.get("/admin/fundraising", headers=USER)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_seed_and_list(self, client, db_session):
        response = await client.post(
            "/admin/fundraising",
            json={"user_id": "user-9", "target_amount": 5000, "full_name": "Asha Verma"},
            headers=ADMIN,
        )
        assert response.status_code == 201

        response = await client.post(
            "/admin/fundraising", json={"user_id": "user-9", "target_amount": 10}, headers=ADMIN
        )
        assert response.status_code == 409

        response = await client.get("/admin/fundraising", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["fundraisers"][0]["full_name"] == "Asha Verma"

    @pytest.mark.asyncio
    async def test_stats_empty(self, client, db_session):
        response = await client.get("/admin/fundraising/stats", headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {
            "total_raised": 0,
            "total_fundraisers": 0,
            "average_raised": 0,
            "average_target": 0,
            "completion_rate": 0,
        }

    @pytest.mark.asyncio
    async def test_export_csv(self, client, seed_progress):
        seed_progress("u1", target_amount=1000, collected_amount=250, full_name="A B", email="a@x.com")

        response = await client.get("/admin/fundraising/export", headers=ADMIN)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "fundraising-data-" in response.headers["content-disposition"]
        lines = response.text.split("\n")
        assert lines[0] == "User ID,Full Name,Email,Target Amount,Collected Amount,Progress %,Created At,Updated At"
        assert lines[1].startswith('u1,"A B","a@x.com",1000,250,25.00,')


# ============================================================================
# AFFILIATE LINKS AND DONATIONS
# ============================================================================

class TestAffiliateAndDonationApi:
    """Link lifecycle, public donate page and payment confirmation"""

    @pytest.mark.asyncio
    async def test_create_link_and_dashboard(self, client, db_session):
        response = await client.post(
            "/affiliate-links", json={"title": "Marathon", "target_amount": 2000}, headers=USER
        )
        assert response.status_code == 201
        link = response.json()

        response = await client.get("/affiliate-links/me", headers=USER)
        assert response.status_code == 200
        data = response.json()
        assert data["link"]["link_code"] == link["link_code"]
        assert data["donation_stats"]["total_donations"] == 0

    @pytest.mark.asyncio
    async def test_dashboard_without_link(self, client, db_session):
        response = await client.get("/affiliate-links/me", headers=USER)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_inactive_and_unknown_codes_look_the_same(self, client, seed_link):
        seed_link("user-1", link_code="paused", is_active=False)

        inactive = await client.get("/donate/paused")
        unknown = await client.get("/donate/never-issued")

        assert inactive.status_code == unknown.status_code == 404
        assert inactive.json() == unknown.json()

    @pytest.mark.asyncio
    async def test_public_page_hides_owner_email(self, client, seed_link):
        seed_link("user-1", link_code="abc123", full_name="Asha Verma")

        response = await client.get("/donate/abc123")

        assert response.status_code == 200
        data = response.json()
        assert data["owner_name"] == "Asha Verma"
        assert "email" not in data

    @pytest.mark.asyncio
    async def test_patch_rejects_link_code(self, client, seed_link):
        link = seed_link("user-1")

        response = await client.patch(f"/affiliate-links/{link.id}", json={"link_code": "x"}, headers=USER)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_patch_by_other_user(self, client, seed_link):
        link = seed_link("user-1")

        response = await client.patch(f"/affiliate-links/{link.id}", json={"title": "x"}, headers=OTHER_USER)

        assert response.status_code == 403
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_donation_flow(self, client, seed_link, seed_progress):
        seed_link("user-1", link_code="abc123")
        seed_progress("user-1", target_amount=1000, collected_amount=0)

        with patch('fundraiser_service.kafka.producer.kafka_producer.publish_donation_event',
                   new_callable=AsyncMock) as mock_publish:
            response = await client.post(
                "/donate/abc123",
                json={"donor_name": "X", "donor_email": "x@y.com", "amount": 100},
            )
            assert response.status_code == 201
            donation = response.json()
            assert donation["payment_status"] == "pending"
            mock_publish.assert_awaited_once()
            assert mock_publish.await_args.args[0] == "donation.created"

            response = await client.patch(
                f"/donations/{donation['id']}/status",
                json={"status": "completed", "transaction_id": "pay_1"},
                headers=ADMIN,
            )
            assert response.status_code == 200
            assert response.json()["reconciled"] is True

        response = await client.get("/fundraising/me", headers=USER)
        assert response.json()["collected_amount"] == 100

        response = await client.patch(
            f"/donations/{donation['id']}/status", json={"status": "failed"}, headers=ADMIN
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_donation_on_inactive_link(self, client, seed_link):
        seed_link("user-1", link_code="paused", is_active=False)

        response = await client.post("/donate/paused", json={"donor_name": "X", "amount": 100})

        assert response.status_code == 404
        assert response.json()["error"] == "link_inactive"

    @pytest.mark.asyncio
    async def test_donation_with_invalid_amount(self, client, seed_link):
        seed_link("user-1", link_code="abc123")

        response = await client.post("/donate/abc123", json={"donor_name": "X", "amount": -5})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_link_donations_require_ownership(self, client, seed_link, seed_donation):
        link = seed_link("user-1")
        seed_donation(link, amount=100, status=DonationStatus.COMPLETED)

        response = await client.get(f"/affiliate-links/{link.id}/donations", headers=USER)
        assert response.status_code == 200
        assert response.json()["total"] == 1

        response = await client.get(f"/affiliate-links/{link.id}/donations/stats", headers=OTHER_USER)
        assert response.status_code == 403

        response = await client.get(f"/affiliate-links/{link.id}/donations/stats", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["total_amount"] == 100

    @pytest.mark.asyncio
    async def test_get_donation_requires_admin(self, client, seed_link, seed_donation):
        donation = seed_donation(seed_link("user-1"))

        assert (await client.get(f"/donations/{donation.id}", headers=USER)).status_code == 403
        response = await client.get(f"/donations/{donation.id}", headers=ADMIN)
        assert response.status_code == 200
        assert (await client.get("/donations/9999", headers=ADMIN)).status_code == 404
