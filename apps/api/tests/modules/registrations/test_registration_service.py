"""
Tests for the registration workflow service.

These tests verify:
- Registering (role, open checks, duplicate conflict)
- Submitting (idempotency, evidence, lost races)
- Reviewing (super admin only, conditional transition, notification)
- Withdrawing
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from school_erp.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from school_erp.modules.registrations.models import Registration, RegistrationStatus
from school_erp.modules.registrations.schemas import (
    EvidenceItem,
    RegistrationCreate,
    ReviewDecision,
    SubmissionCreate,
)
from school_erp.modules.registrations.service import (
    force_delete,
    list_registrations,
    register,
    review,
    submit,
    unregister,
)
from school_erp.modules.resources.kinds import CLUBS, DOCUMENTS, ISO_CLAUSES, TRAININGS
from school_erp.modules.resources.models import ClubStatus, TrainingStatus

SERVICE = "school_erp.modules.registrations.service"

# ============================================
# Fixtures
# ============================================


@pytest.fixture
def resource_id():
    return uuid4()


@pytest.fixture
def open_club(resource_id):
    club = MagicMock()
    club.id = resource_id
    club.status = ClubStatus.OPEN
    club.display_name = "Chess Club"
    return club


@pytest.fixture
def evidence():
    return EvidenceItem(
        name="policy.pdf",
        file_url="/api/v1/resources/iso-clauses/evidence/abc/abc.pdf",
        file_type="application/pdf",
        size=1024,
    )


def _registration(status, tenant_id, resource_id, registered_by=None, kind=CLUBS):
    registration = MagicMock(spec=Registration)
    registration.id = uuid4()
    registration.tenant_id = tenant_id
    registration.resource_kind = kind.slug
    registration.resource_id = resource_id
    registration.status = status
    registration.evidence = []
    registration.registered_by = registered_by or uuid4()
    registration.submitted_by = None
    return registration


@pytest.fixture
def side_channels():
    """Patch gamification, notifications and e-mail."""
    with (
        patch(f"{SERVICE}.gamification") as gamification,
        patch(f"{SERVICE}.notifications") as notifications,
        patch(f"{SERVICE}.send_registration_decision", AsyncMock(return_value=True)) as email,
        patch(f"{SERVICE}.UserRepository") as users,
    ):
        gamification.record_action = AsyncMock(return_value=30)
        notifications.emit_to_school_admins = AsyncMock(return_value=1)
        users.list_school_admins = AsyncMock(return_value=[])
        users.get_by_id = AsyncMock(return_value=None)
        yield MagicMock(
            gamification=gamification,
            notifications=notifications,
            email=email,
            users=users,
        )


# ============================================
# Test register
# ============================================


@pytest.mark.asyncio
async def test_register_creates_pending_registration(
    mock_db, school_admin, resource_id, open_club, side_channels
):
    created = _registration(RegistrationStatus.PENDING, school_admin.tenant_id, resource_id)

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.count_active_for_resource = AsyncMock(return_value=0)
        mock_repo.create = AsyncMock(return_value=created)
        mock_repo.get_by_id = AsyncMock(return_value=created)

        result = await register(mock_db, school_admin, CLUBS, resource_id, RegistrationCreate())

    assert result is created
    fields = mock_repo.create.call_args.kwargs
    assert fields["tenant_id"] == school_admin.tenant_id
    assert fields["status"] == RegistrationStatus.PENDING
    assert fields["registered_by"] == school_admin.id
    assert "submitted_at" not in fields
    side_channels.gamification.record_action.assert_awaited_once()


@pytest.mark.asyncio
async def test_register_with_evidence_is_submitted(
    mock_db, coordinator, resource_id, evidence, side_channels
):
    clause = MagicMock()
    clause.status = "active"
    clause.display_name = "7.1 Resources"
    created = _registration(
        RegistrationStatus.SUBMITTED, coordinator.tenant_id, resource_id, kind=ISO_CLAUSES
    )

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=clause)
        mock_repo.count_active_for_resource = AsyncMock(return_value=0)
        mock_repo.create = AsyncMock(return_value=created)
        mock_repo.get_by_id = AsyncMock(return_value=created)

        await register(
            mock_db,
            coordinator,
            ISO_CLAUSES,
            resource_id,
            RegistrationCreate(evidence=[evidence]),
        )

    fields = mock_repo.create.call_args.kwargs
    assert fields["status"] == RegistrationStatus.SUBMITTED
    assert fields["submitted_by"] == coordinator.id
    assert fields["evidence"][0]["name"] == "policy.pdf"


@pytest.mark.asyncio
async def test_register_duplicate_is_conflict(
    mock_db, school_admin, resource_id, open_club, side_channels
):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.count_active_for_resource = AsyncMock(return_value=1)
        mock_repo.create = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("unique violation"))
        )

        with pytest.raises(ConflictError) as exc_info:
            await register(mock_db, school_admin, CLUBS, resource_id, RegistrationCreate())

    assert exc_info.value.message == "School already registered for this club."
    assert exc_info.value.status_code == 400
    mock_db.rollback.assert_awaited_once()
    side_channels.gamification.record_action.assert_not_called()


@pytest.mark.asyncio
async def test_register_closed_club_is_rejected(mock_db, school_admin, resource_id, open_club):
    open_club.status = ClubStatus.CLOSED

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.count_active_for_resource = AsyncMock(return_value=0)
        mock_repo.create = AsyncMock()

        with pytest.raises(ValidationError):
            await register(mock_db, school_admin, CLUBS, resource_id, RegistrationCreate())

        mock_repo.create.assert_not_called()


@pytest.mark.asyncio
async def test_register_full_training_is_rejected(mock_db, school_admin, resource_id):
    training = MagicMock()
    training.status = TrainingStatus.UPCOMING
    training.starts_at = datetime.now(UTC) + timedelta(days=3)
    training.max_participants = 2

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=training)
        mock_repo.count_active_for_resource = AsyncMock(return_value=2)

        with pytest.raises(ValidationError, match="full"):
            await register(mock_db, school_admin, TRAININGS, resource_id, RegistrationCreate())


@pytest.mark.asyncio
async def test_register_other_tenant_resource_is_not_found(mock_db, school_admin, resource_id):
    with patch(f"{SERVICE}.resources") as mock_resources:
        mock_resources.get_resource = AsyncMock(side_effect=NotFoundError("Club", resource_id))

        with pytest.raises(NotFoundError):
            await register(mock_db, school_admin, CLUBS, resource_id, RegistrationCreate())


@pytest.mark.asyncio
async def test_super_admin_cannot_register(mock_db, super_admin, resource_id):
    with pytest.raises(ForbiddenError):
        await register(mock_db, super_admin, CLUBS, resource_id, RegistrationCreate())


@pytest.mark.asyncio
async def test_documents_are_not_registrable(mock_db, school_admin, resource_id):
    with pytest.raises(NotFoundError):
        await register(mock_db, school_admin, DOCUMENTS, resource_id, RegistrationCreate())


# ============================================
# Test submit
# ============================================


@pytest.mark.asyncio
async def test_submit_pending_registration(mock_db, school_admin, resource_id):
    pending = _registration(RegistrationStatus.PENDING, school_admin.tenant_id, resource_id)
    submitted = _registration(RegistrationStatus.SUBMITTED, school_admin.tenant_id, resource_id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(return_value=pending)
        mock_repo.submit = AsyncMock(return_value=1)
        mock_repo.get_by_id = AsyncMock(return_value=submitted)

        result = await submit(
            mock_db, school_admin, CLUBS, resource_id, pending.id, SubmissionCreate()
        )

    assert result.status == RegistrationStatus.SUBMITTED
    assert mock_repo.submit.call_args.kwargs["submitted_by"] == school_admin.id
    # Lookup is restricted to the principal's school
    assert mock_repo.get_for_resource.call_args.args[-1] == school_admin.tenant_id


@pytest.mark.asyncio
async def test_submit_already_submitted_is_noop(mock_db, school_admin, resource_id):
    submitted = _registration(RegistrationStatus.SUBMITTED, school_admin.tenant_id, resource_id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(return_value=submitted)
        mock_repo.submit = AsyncMock()

        result = await submit(
            mock_db, school_admin, CLUBS, resource_id, submitted.id, SubmissionCreate()
        )

    assert result is submitted
    mock_repo.submit.assert_not_called()


@pytest.mark.asyncio
async def test_submit_lost_race_returns_submitted_row(mock_db, school_admin, resource_id):
    """Two concurrent submits: the loser sees the winner's row, not an error."""
    pending = _registration(RegistrationStatus.PENDING, school_admin.tenant_id, resource_id)
    winner = _registration(RegistrationStatus.SUBMITTED, school_admin.tenant_id, resource_id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(return_value=pending)
        mock_repo.submit = AsyncMock(return_value=0)
        mock_repo.get_by_id = AsyncMock(return_value=winner)

        result = await submit(
            mock_db, school_admin, CLUBS, resource_id, pending.id, SubmissionCreate()
        )

    assert result is winner


@pytest.mark.asyncio
async def test_submit_approved_is_invalid_transition(mock_db, school_admin, resource_id):
    approved = _registration(RegistrationStatus.APPROVED, school_admin.tenant_id, resource_id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(return_value=approved)
        mock_repo.submit = AsyncMock(return_value=0)
        mock_repo.get_by_id = AsyncMock(return_value=approved)

        with pytest.raises(InvalidTransitionError):
            await submit(
                mock_db, school_admin, CLUBS, resource_id, approved.id, SubmissionCreate()
            )


@pytest.mark.asyncio
async def test_iso_submission_requires_evidence(mock_db, school_admin, resource_id):
    pending = _registration(
        RegistrationStatus.PENDING, school_admin.tenant_id, resource_id, kind=ISO_CLAUSES
    )

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(return_value=pending)
        mock_repo.submit = AsyncMock()

        with pytest.raises(ValidationError, match="Evidence is required"):
            await submit(
                mock_db, school_admin, ISO_CLAUSES, resource_id, pending.id, SubmissionCreate()
            )

        mock_repo.submit.assert_not_called()


@pytest.mark.asyncio
async def test_submit_other_school_registration_is_not_found(mock_db, school_admin, resource_id):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await submit(mock_db, school_admin, CLUBS, resource_id, uuid4(), SubmissionCreate())


# ============================================
# Test review
# ============================================


@pytest.mark.asyncio
@pytest.mark.parametrize("status", list(RegistrationStatus))
async def test_review_by_school_admin_is_forbidden_in_any_state(
    mock_db, school_admin, resource_id, status
):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_for_resource = AsyncMock(
            return_value=_registration(status, school_admin.tenant_id, resource_id)
        )
        mock_repo.review = AsyncMock()

        with pytest.raises(ForbiddenError):
            await review(
                mock_db,
                school_admin,
                CLUBS,
                resource_id,
                uuid4(),
                ReviewDecision(status=RegistrationStatus.APPROVED),
            )

        mock_repo.get_for_resource.assert_not_called()
        mock_repo.review.assert_not_called()


@pytest.mark.asyncio
async def test_review_approves_and_notifies(
    mock_db, super_admin, school_a_id, resource_id, open_club, side_channels
):
    submitter_id = uuid4()
    submitted = _registration(RegistrationStatus.SUBMITTED, school_a_id, resource_id)
    submitted.submitted_by = submitter_id
    approved = _registration(RegistrationStatus.APPROVED, school_a_id, resource_id)

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_repo.get_for_resource = AsyncMock(return_value=submitted)
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.review = AsyncMock(return_value=1)
        mock_repo.get_by_id = AsyncMock(return_value=approved)

        result = await review(
            mock_db,
            super_admin,
            CLUBS,
            resource_id,
            submitted.id,
            ReviewDecision(status=RegistrationStatus.APPROVED, comments="Welcome"),
        )

    assert result is approved
    review_kwargs = mock_repo.review.call_args.kwargs
    assert review_kwargs["reviewed_by"] == super_admin.id
    assert review_kwargs["comments"] == "Welcome"

    emit = side_channels.notifications.emit_to_school_admins
    emit.assert_awaited_once()
    assert emit.call_args.args[1] == school_a_id
    assert emit.call_args.kwargs["extra_user_ids"] == [submitter_id]


@pytest.mark.asyncio
async def test_review_not_submitted_is_invalid_transition(
    mock_db, super_admin, school_a_id, resource_id, open_club, side_channels
):
    pending = _registration(RegistrationStatus.PENDING, school_a_id, resource_id)

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_repo.get_for_resource = AsyncMock(return_value=pending)
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.review = AsyncMock(return_value=0)
        mock_repo.get_by_id = AsyncMock(return_value=pending)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await review(
                mock_db,
                super_admin,
                CLUBS,
                resource_id,
                pending.id,
                ReviewDecision(status=RegistrationStatus.REJECTED),
            )

    assert "pending -> rejected" in exc_info.value.message
    side_channels.notifications.emit_to_school_admins.assert_not_called()


def test_review_decision_rejects_non_decisions():
    with pytest.raises(ValueError):
        ReviewDecision(status=RegistrationStatus.PENDING)


# ============================================
# Test unregister / force delete / list
# ============================================


@pytest.mark.asyncio
async def test_unregister_deletes_own_registration(mock_db, school_admin, resource_id):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.delete_for_tenant = AsyncMock(return_value=1)

        await unregister(mock_db, school_admin, CLUBS, resource_id)

    mock_repo.delete_for_tenant.assert_awaited_once_with(
        mock_db, school_admin.tenant_id, CLUBS.slug, resource_id
    )


@pytest.mark.asyncio
async def test_unregister_approved_is_invalid_transition(mock_db, school_admin, resource_id):
    approved = _registration(RegistrationStatus.APPROVED, school_admin.tenant_id, resource_id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.delete_for_tenant = AsyncMock(return_value=0)
        mock_repo.find_for_tenant = AsyncMock(return_value=approved)

        with pytest.raises(InvalidTransitionError):
            await unregister(mock_db, school_admin, CLUBS, resource_id)


@pytest.mark.asyncio
async def test_unregister_without_registration_is_not_found(mock_db, school_admin, resource_id):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.delete_for_tenant = AsyncMock(return_value=0)
        mock_repo.find_for_tenant = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await unregister(mock_db, school_admin, CLUBS, resource_id)


@pytest.mark.asyncio
async def test_force_delete_requires_super_admin(mock_db, school_admin, resource_id):
    with pytest.raises(ForbiddenError):
        await force_delete(mock_db, school_admin, CLUBS, resource_id, uuid4())


@pytest.mark.asyncio
async def test_force_delete_missing_is_not_found(mock_db, super_admin, resource_id):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.delete_by_id = AsyncMock(return_value=0)

        with pytest.raises(NotFoundError):
            await force_delete(mock_db, super_admin, CLUBS, resource_id, uuid4())


@pytest.mark.asyncio
async def test_list_registrations_scoped_to_tenant(mock_db, school_admin, resource_id, open_club):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.list_for_resource = AsyncMock(return_value=[])

        await list_registrations(mock_db, school_admin, CLUBS, resource_id)

    mock_repo.list_for_resource.assert_awaited_once_with(
        mock_db, CLUBS.slug, resource_id, school_admin.tenant_id
    )


@pytest.mark.asyncio
async def test_list_registrations_super_admin_sees_all(mock_db, super_admin, resource_id, open_club):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.resources") as mock_resources,
    ):
        mock_resources.get_resource = AsyncMock(return_value=open_club)
        mock_repo.list_for_resource = AsyncMock(return_value=[])

        await list_registrations(mock_db, super_admin, CLUBS, resource_id)

    mock_repo.list_for_resource.assert_awaited_once_with(mock_db, CLUBS.slug, resource_id, None)
