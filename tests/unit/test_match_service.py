"""
Unit tests for MatchService: swipe evaluation, the matched transition and the
match lifecycle.

Notifications go to a private NotificationHub with RecordingSession listeners
so each test sees exactly the events it produced.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from swipematch.core.hub import NotificationHub
from swipematch.models.message import Message
from swipematch.models.user import UserRole
from swipematch.repositories.match_repository import MatchRepository
from swipematch.services.match_service import MatchService
from swipematch.services.notification_service import NotificationService
from tests.factories import JobFactory, RecordingSession, UserFactory


@pytest.fixture
def local_hub():
    return NotificationHub()


@pytest.fixture
def service(local_hub):
    return MatchService(notification_service=NotificationService(hub=local_hub, use_relay=False))


def listen(hub, user) -> RecordingSession:
    session = RecordingSession(user.id)
    hub.register(user.id, session)
    return session


async def _form_match(service, db, job_seeker, seeker_profile, recruiter, job):
    await service.swipe(db, job_seeker, job.id, "job", "interested")
    return await service.swipe(db, recruiter, seeker_profile.id, "profile", "interested", job_id=job.id)


class TestPendingSide:
    async def test_first_interested_swipe_creates_pending_row(
        self, service, db_session, job_seeker, seeker_profile, job
    ):
        result = await service.swipe(db_session, job_seeker, job.id, "job", "interested")

        assert result.is_match is False
        assert result.match is None
        match = await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id)
        assert match.status == "pending"
        assert match.job_seeker_swiped_at is not None
        assert match.recruiter_swiped_at is None

    async def test_category_is_inferred_from_role(self, service, db_session, job_seeker, seeker_profile, job):
        result = await service.swipe(db_session, job_seeker, job.id, None, "super_interested")

        assert result.is_match is False
        assert await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id) is not None

    async def test_reject_records_swipe_without_a_match_row(
        self, service, db_session, job_seeker, seeker_profile, job
    ):
        result = await service.swipe(db_session, job_seeker, job.id, "job", "reject")

        assert result.is_match is False
        assert await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id) is None
        await db_session.refresh(job_seeker)
        assert job_seeker.total_swipes == 1

    async def test_recruiter_without_job_and_no_reciprocal_creates_nothing(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        result = await service.swipe(db_session, recruiter, seeker_profile.id, "profile", "interested")

        assert result.is_match is False
        assert await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id) is None


class TestMatching:
    async def test_mutual_interest_forms_one_match(
        self, service, local_hub, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        seeker_inbox = listen(local_hub, job_seeker)
        recruiter_inbox = listen(local_hub, recruiter)

        result = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)

        assert result.is_match is True
        assert result.match.status == "matched"
        assert result.match.job_title == "Backend Engineer"
        assert result.match.counterpart_id == job_seeker.id
        assert result.match.counterpart_name == "Sam Seeker"
        assert result.match.matched_at is not None

        # Only the side that did not perform the transition hears about it
        events = seeker_inbox.of_type("match")
        assert len(events) == 1
        assert events[0]["payload"]["job_title"] == "Backend Engineer"
        assert events[0]["payload"]["counterpart_name"] == "Riley Recruiter"
        assert events[0]["payload"]["match_id"] == str(result.match.id)
        assert recruiter_inbox.events == []

        for obj in (job_seeker, recruiter, job):
            await db_session.refresh(obj)
        assert job_seeker.total_matches == 1
        assert recruiter.total_matches == 1
        assert job.match_count == 1
        assert job_seeker.total_swipes == 1
        assert recruiter.total_swipes == 1

    async def test_repeated_swipes_after_match_are_idempotent(
        self, service, local_hub, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        seeker_inbox = listen(local_hub, job_seeker)
        recruiter_inbox = listen(local_hub, recruiter)
        first = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)

        again = await service.swipe(
            db_session, recruiter, seeker_profile.id, "profile", "super_interested", job_id=job.id
        )
        seeker_again = await service.swipe(db_session, job_seeker, job.id, "job", "interested")

        assert again.is_match is True
        assert seeker_again.is_match is True
        assert again.match.id == first.match.id == seeker_again.match.id

        assert len(seeker_inbox.of_type("match")) == 1
        assert recruiter_inbox.of_type("match") == []

        for obj in (job_seeker, recruiter, job):
            await db_session.refresh(obj)
        assert job_seeker.total_matches == 1
        assert recruiter.total_matches == 1
        assert job.match_count == 1

    async def test_recruiter_first_without_job_then_seeker_matches(
        self, service, local_hub, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        recruiter_inbox = listen(local_hub, recruiter)

        await service.swipe(db_session, recruiter, seeker_profile.id, "profile", "interested")
        result = await service.swipe(db_session, job_seeker, job.id, "job", "interested")

        assert result.is_match is True
        assert result.match.counterpart_id == recruiter.id
        assert len(recruiter_inbox.of_type("match")) == 1

    async def test_recruiter_without_job_matches_on_swiped_job(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        await service.swipe(db_session, job_seeker, job.id, "job", "interested")
        result = await service.swipe(db_session, recruiter, seeker_profile.id, "profile", "interested")

        assert result.is_match is True
        assert result.match.job_id == job.id

    async def test_reject_never_completes_a_match(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        await service.swipe(db_session, job_seeker, job.id, "job", "interested")
        result = await service.swipe(db_session, recruiter, seeker_profile.id, "profile", "reject", job_id=job.id)

        assert result.is_match is False
        match = await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id)
        assert match.status == "pending"

    async def test_changing_mind_to_interested_completes_the_match(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        await service.swipe(db_session, recruiter, seeker_profile.id, "profile", "interested", job_id=job.id)
        await service.swipe(db_session, job_seeker, job.id, "job", "reject")
        result = await service.swipe(db_session, job_seeker, job.id, "job", "interested")

        assert result.is_match is True

    async def test_notification_is_sent_after_commit(
        self, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        calls = []
        notifications = MagicMock(spec=NotificationService)
        notifications.notify_match = AsyncMock(side_effect=lambda *a, **kw: calls.append("notify"))
        service = MatchService(notification_service=notifications)

        original_commit = db_session.commit

        async def recording_commit():
            calls.append("commit")
            await original_commit()

        db_session.commit = recording_commit

        await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)

        assert calls[-1] == "notify"
        assert calls[-2] == "commit"
        notifications.notify_match.assert_awaited_once()
        assert notifications.notify_match.await_args.args[1] == job_seeker.id


class TestTransition:
    async def test_transition_happens_exactly_once(self, db_session, job_seeker, recruiter, job):
        repo = MatchRepository()
        now = datetime.now(timezone.utc)
        await repo.upsert_pending(db_session, job.id, job_seeker.id, recruiter.id, job_seeker_swiped_at=now)

        first = await repo.transition_to_matched(
            db_session, job.id, job_seeker.id, recruiter.id,
            job_seeker_swiped_at=now, recruiter_swiped_at=now,
        )
        second = await repo.transition_to_matched(
            db_session, job.id, job_seeker.id, recruiter.id,
            job_seeker_swiped_at=now, recruiter_swiped_at=now,
        )

        assert first is not None
        assert first.status == "matched"
        assert second is None

    async def test_pending_upsert_never_regresses_a_match(self, db_session, job_seeker, recruiter, job):
        repo = MatchRepository()
        now = datetime.now(timezone.utc)
        await repo.transition_to_matched(
            db_session, job.id, job_seeker.id, recruiter.id,
            job_seeker_swiped_at=now, recruiter_swiped_at=now,
        )
        await repo.upsert_pending(db_session, job.id, job_seeker.id, recruiter.id, job_seeker_swiped_at=now)

        match = await repo.get_by_pair(db_session, job.id, job_seeker.id)
        assert match.status == "matched"


class TestLifecycle:
    async def test_unmatched_pair_cannot_be_swiped_again(
        self, service, local_hub, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        recruiter_inbox = listen(local_hub, recruiter)
        result = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)

        unmatched = await service.unmatch(db_session, result.match.id, job_seeker.id)
        assert unmatched.status == "unmatched"

        updates = recruiter_inbox.of_type("status_update")
        assert len(updates) == 1
        assert updates[0]["payload"]["status"] == "unmatched"

        await db_session.refresh(job_seeker)
        swipes_before = job_seeker.total_swipes

        with pytest.raises(HTTPException) as exc_info:
            await service.swipe(db_session, job_seeker, job.id, "job", "interested")
        assert exc_info.value.status_code == 409

        with pytest.raises(HTTPException) as exc_info:
            await service.swipe(db_session, recruiter, seeker_profile.id, "profile", "interested", job_id=job.id)
        assert exc_info.value.status_code == 409

        # Rejected before the ledger write
        await db_session.refresh(job_seeker)
        assert job_seeker.total_swipes == swipes_before

    async def test_unmatch_twice_is_not_found(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        result = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)
        await service.unmatch(db_session, result.match.id, recruiter.id)

        with pytest.raises(HTTPException) as exc_info:
            await service.unmatch(db_session, result.match.id, recruiter.id)
        assert exc_info.value.status_code == 404

    async def test_outsider_cannot_unmatch(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        result = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)
        outsider = await UserFactory.create_async(db_session)

        with pytest.raises(HTTPException) as exc_info:
            await service.unmatch(db_session, result.match.id, outsider.id)
        assert exc_info.value.status_code == 404

    async def test_pending_match_can_be_unmatched(self, service, db_session, job_seeker, seeker_profile, job):
        await service.swipe(db_session, job_seeker, job.id, "job", "interested")
        pending = await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id)

        unmatched = await service.unmatch(db_session, pending.id, job_seeker.id)
        assert unmatched.status == "unmatched"

    async def test_application_status_update(
        self, service, local_hub, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        seeker_inbox = listen(local_hub, job_seeker)
        result = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)

        summary = await service.update_application_status(db_session, result.match.id, recruiter, "interview")

        assert summary.application_status == "interview"
        assert summary.counterpart_name == "Sam Seeker"
        updates = seeker_inbox.of_type("status_update")
        assert updates[-1]["payload"]["application_status"] == "interview"

        messages = (await db_session.execute(
            select(Message).where(Message.match_id == result.match.id)
        )).scalars().all()
        assert [m.type for m in messages] == ["status"]

    async def test_application_status_rejects_unknown_values(
        self, service, db_session, job_seeker, seeker_profile, recruiter, job
    ):
        result = await _form_match(service, db_session, job_seeker, seeker_profile, recruiter, job)

        with pytest.raises(HTTPException) as exc_info:
            await service.update_application_status(db_session, result.match.id, recruiter, "promoted")
        assert exc_info.value.status_code == 400

    async def test_application_status_needs_a_matched_pair(self, service, db_session, job_seeker, seeker_profile, recruiter, job):
        await service.swipe(db_session, job_seeker, job.id, "job", "interested")
        pending = await MatchRepository().get_by_pair(db_session, job.id, job_seeker.id)

        with pytest.raises(HTTPException) as exc_info:
            await service.update_application_status(db_session, pending.id, recruiter, "reviewing")
        assert exc_info.value.status_code == 404


class TestValidation:
    async def _status_of(self, coro) -> int:
        with pytest.raises(HTTPException) as exc_info:
            await coro
        return exc_info.value.status_code

    async def test_wrong_category_for_role(self, service, db_session, job_seeker, recruiter, job, seeker_profile):
        assert await self._status_of(service.swipe(db_session, job_seeker, job.id, "profile", "interested")) == 400
        assert await self._status_of(
            service.swipe(db_session, recruiter, seeker_profile.id, "job", "interested")
        ) == 400

    async def test_unknown_category_and_direction(self, service, db_session, job_seeker, job):
        assert await self._status_of(service.swipe(db_session, job_seeker, job.id, "card", "interested")) == 400
        assert await self._status_of(service.swipe(db_session, job_seeker, job.id, "job", "maybe")) == 400

    async def test_unknown_targets(self, service, db_session, job_seeker, recruiter, unknown_id):
        assert await self._status_of(service.swipe(db_session, job_seeker, unknown_id, "job", "interested")) == 404
        assert await self._status_of(
            service.swipe(db_session, recruiter, unknown_id, "profile", "interested")
        ) == 404

    async def test_closed_job_is_not_found(self, service, db_session, job_seeker, recruiter):
        closed = await JobFactory.create_async(db_session, recruiter_id=recruiter.id, is_active=False)
        assert await self._status_of(service.swipe(db_session, job_seeker, closed.id, "job", "interested")) == 404

    async def test_recruiter_cannot_swipe_for_foreign_job(self, service, db_session, recruiter, seeker_profile):
        other = await UserFactory.create_async(db_session, role=UserRole.RECRUITER)
        foreign_job = await JobFactory.create_async(db_session, recruiter_id=other.id)

        assert await self._status_of(
            service.swipe(db_session, recruiter, seeker_profile.id, "profile", "interested", job_id=foreign_job.id)
        ) == 403

    async def test_invalid_swipes_leave_no_trace(self, service, db_session, job_seeker, unknown_id):
        await self._status_of(service.swipe(db_session, job_seeker, unknown_id, "job", "interested"))
        await db_session.refresh(job_seeker)
        assert job_seeker.total_swipes == 0


class TestStorageFaults:
    async def test_storage_error_maps_to_retryable_503(self):
        swiper = UserFactory.build(role=UserRole.JOB_SEEKER)
        job = JobFactory.build(recruiter_id=uuid.uuid4())

        directory = MagicMock()
        directory.get_active_job = AsyncMock(return_value=job)
        directory.get_profile_for_user = AsyncMock(return_value=None)
        matches = MagicMock()
        matches.get_by_pair = AsyncMock(return_value=None)
        swipes = MagicMock()
        swipes.record_swipe = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("connection lost")))
        db = AsyncMock()

        service = MatchService(
            swipe_repo=swipes,
            match_repo=matches,
            directory_repo=directory,
            notification_service=MagicMock(spec=NotificationService),
        )

        with pytest.raises(HTTPException) as exc_info:
            await service.swipe(db, swiper, job.id, "job", "interested")

        assert exc_info.value.status_code == 503
        assert exc_info.value.headers == {"Retry-After": "1"}
        db.rollback.assert_awaited()
        db.commit.assert_not_awaited()
