"""
Tests for the resource kind table and registration open checks.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from school_erp.modules.resources.kinds import (
    CLUBS,
    DOCUMENTS,
    EVENTS,
    ISO_CLAUSES,
    RESOURCE_KINDS,
    STUDENTS,
    TRAININGS,
    club_open,
    event_open,
    get_kind,
    iso_clause_open,
    training_open,
)
from school_erp.modules.resources.models import (
    ClubStatus,
    EventStatus,
    IsoClauseStatus,
    TrainingStatus,
)
from school_erp.modules.users.models import UserRole

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _event(status=EventStatus.PUBLISHED, starts_in=timedelta(days=5), deadline_in=None):
    event = MagicMock()
    event.status = status
    event.starts_at = NOW + starts_in
    event.registration_deadline = NOW + deadline_in if deadline_in is not None else None
    return event


def _training(status=TrainingStatus.UPCOMING, starts_in=timedelta(days=5), capacity=None):
    training = MagicMock()
    training.status = status
    training.starts_at = NOW + starts_in
    training.max_participants = capacity
    return training


class TestKindTable:
    def test_slugs(self):
        assert set(RESOURCE_KINDS) == {
            "clubs",
            "events",
            "trainings",
            "iso-clauses",
            "documents",
            "students",
        }
        assert get_kind("iso-clauses") is ISO_CLAUSES
        assert get_kind("unknown") is None

    def test_registrable_kinds(self):
        assert all(kind.registrable for kind in (CLUBS, EVENTS, TRAININGS, ISO_CLAUSES))
        assert not DOCUMENTS.registrable
        assert not STUDENTS.registrable

    def test_write_roles(self):
        assert CLUBS.write_roles == {UserRole.SUPER_ADMIN}
        assert ISO_CLAUSES.write_roles == {UserRole.SUPER_ADMIN}
        assert DOCUMENTS.write_roles == {UserRole.SUPER_ADMIN, UserRole.SCHOOL_ADMIN}
        assert UserRole.ECA_COORDINATOR not in STUDENTS.write_roles

    def test_only_iso_requires_evidence(self):
        assert [k.slug for k in RESOURCE_KINDS.values() if k.evidence_required] == ["iso-clauses"]


class TestOpenChecks:
    def test_club(self):
        assert club_open(MagicMock(status=ClubStatus.OPEN), NOW, 0) is None
        assert club_open(MagicMock(status=ClubStatus.COMING_SOON), NOW, 0) is not None

    def test_event_open(self):
        assert event_open(_event(), NOW, 0) is None

    def test_event_draft(self):
        assert event_open(_event(status=EventStatus.DRAFT), NOW, 0) is not None

    def test_event_started(self):
        assert "started" in event_open(_event(starts_in=timedelta(0)), NOW, 0)

    def test_event_deadline_passed(self):
        reason = event_open(_event(deadline_in=-timedelta(minutes=1)), NOW, 0)
        assert "deadline" in reason

    def test_event_naive_datetimes_are_utc(self):
        event = _event()
        event.starts_at = (NOW + timedelta(days=1)).replace(tzinfo=None)
        assert event_open(event, NOW, 0) is None

    def test_training_capacity(self):
        assert training_open(_training(capacity=3), NOW, 2) is None
        assert "full" in training_open(_training(capacity=3), NOW, 3)

    def test_training_without_capacity(self):
        assert training_open(_training(), NOW, 500) is None

    def test_training_not_upcoming(self):
        assert training_open(_training(status=TrainingStatus.ONGOING), NOW, 0) is not None

    def test_iso_clause(self):
        assert iso_clause_open(MagicMock(status=IsoClauseStatus.ACTIVE), NOW, 0) is None
        assert iso_clause_open(MagicMock(status=IsoClauseStatus.ARCHIVED), NOW, 0) is not None
