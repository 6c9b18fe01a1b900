"""
Integration tests for the match endpoints.
"""

from __future__ import annotations

import pytest_asyncio

from tests.factories import RecordingSession


@pytest_asyncio.fixture
async def match_id(async_client, job_seeker, seeker_profile, job, seeker_headers, recruiter_headers) -> str:
    """A matched pair between the seeded job seeker and recruiter."""
    await async_client.post(
        "/api/v1/swipes",
        json={"target_id": str(job.id), "direction": "interested"},
        headers=seeker_headers,
    )
    response = await async_client.post(
        "/api/v1/swipes",
        json={"target_id": str(seeker_profile.id), "direction": "interested", "job_id": str(job.id)},
        headers=recruiter_headers,
    )
    return response.json()["match"]["id"]


class TestListMatches:
    async def test_both_sides_see_the_match(self, async_client, match_id, seeker_headers, recruiter_headers):
        seeker_view = (await async_client.get("/api/v1/matches", headers=seeker_headers)).json()
        recruiter_view = (await async_client.get("/api/v1/matches", headers=recruiter_headers)).json()

        assert seeker_view["total"] == recruiter_view["total"] == 1
        assert seeker_view["items"][0]["id"] == match_id
        assert seeker_view["items"][0]["counterpart_name"] == "Riley Recruiter"
        assert recruiter_view["items"][0]["counterpart_name"] == "Sam Seeker"
        assert seeker_view["has_more"] is False
        assert seeker_view["page"] == 1

    async def test_pending_pairs_are_not_listed(self, async_client, job, seeker_headers):
        await async_client.post(
            "/api/v1/swipes",
            json={"target_id": str(job.id), "direction": "interested"},
            headers=seeker_headers,
        )

        response = await async_client.get("/api/v1/matches", headers=seeker_headers)

        assert response.status_code == 200
        assert response.json()["items"] == []

    async def test_pagination_bounds(self, async_client, seeker_headers):
        response = await async_client.get("/api/v1/matches?page=0", headers=seeker_headers)
        assert response.status_code == 422


class TestGetMatch:
    async def test_participant_can_read(self, async_client, match_id, seeker_headers):
        response = await async_client.get(f"/api/v1/matches/{match_id}", headers=seeker_headers)

        assert response.status_code == 200
        assert response.json()["job_title"] == "Backend Engineer"
        assert response.json()["application_status"] == "active"

    async def test_outsider_gets_not_found(self, async_client, db_session, match_id):
        from swipematch.core.security import create_access_token
        from tests.factories import UserFactory

        outsider = await UserFactory.create_async(db_session)
        headers = {"Authorization": f"Bearer {create_access_token(data={'sub': str(outsider.id)})}"}

        response = await async_client.get(f"/api/v1/matches/{match_id}", headers=headers)
        assert response.status_code == 404


class TestApplicationStatus:
    async def test_recruiter_updates_status_and_seeker_is_notified(
        self, async_client, hub, job_seeker, match_id, recruiter_headers, seeker_headers
    ):
        seeker_inbox = RecordingSession(job_seeker.id)
        hub.register(job_seeker.id, seeker_inbox)

        response = await async_client.put(
            f"/api/v1/matches/{match_id}/status",
            json={"application_status": "interview"},
            headers=recruiter_headers,
        )

        assert response.status_code == 200
        assert response.json()["application_status"] == "interview"

        updates = seeker_inbox.of_type("status_update")
        assert len(updates) == 1
        assert updates[0]["payload"] == {
            "match_id": match_id,
            "status": "matched",
            "application_status": "interview",
        }

        chat = (await async_client.get(f"/api/v1/chat/{match_id}/messages", headers=seeker_headers)).json()
        assert [m["type"] for m in chat["items"]] == ["status"]

    async def test_job_seeker_cannot_update_status(self, async_client, match_id, seeker_headers):
        response = await async_client.put(
            f"/api/v1/matches/{match_id}/status",
            json={"application_status": "hired"},
            headers=seeker_headers,
        )
        assert response.status_code == 403

    async def test_unknown_status_is_unprocessable(self, async_client, match_id, recruiter_headers):
        response = await async_client.put(
            f"/api/v1/matches/{match_id}/status",
            json={"application_status": "promoted"},
            headers=recruiter_headers,
        )
        assert response.status_code == 422


class TestUnmatch:
    async def test_unmatch_closes_the_pair_for_good(
        self, async_client, hub, recruiter, job, match_id, seeker_headers, recruiter_headers
    ):
        recruiter_inbox = RecordingSession(recruiter.id)
        hub.register(recruiter.id, recruiter_inbox)

        response = await async_client.delete(f"/api/v1/matches/{match_id}", headers=seeker_headers)
        assert response.status_code == 200
        assert response.json()["match_id"] == match_id

        assert recruiter_inbox.of_type("status_update")[0]["payload"]["status"] == "unmatched"

        again = await async_client.delete(f"/api/v1/matches/{match_id}", headers=recruiter_headers)
        assert again.status_code == 404

        reswipe = await async_client.post(
            "/api/v1/swipes",
            json={"target_id": str(job.id), "direction": "interested"},
            headers=seeker_headers,
        )
        assert reswipe.status_code == 409

        listing = (await async_client.get("/api/v1/matches", headers=seeker_headers)).json()
        assert listing["total"] == 0
