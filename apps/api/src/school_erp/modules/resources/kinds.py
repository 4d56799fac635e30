"""
Resource Kinds

The closed table of resource kinds: model, schemas, write permissions and
registration rules per kind. Routers, services and the registration
workflow are all driven from this table.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from school_erp.modules.gamification.models import ActionType
from school_erp.modules.notifications.models import NotificationCategory
from school_erp.modules.resources import schemas
from school_erp.modules.resources.models import (
    Club,
    ClubStatus,
    Document,
    Event,
    EventStatus,
    IsoClause,
    IsoClauseStatus,
    Student,
    Training,
    TrainingStatus,
)
from school_erp.modules.shared import as_utc
from school_erp.modules.users.models import UserRole

# Returns the reason a resource is closed for registration, or None if open
OpenCheck = Callable[[Any, datetime, int], str | None]


@dataclass(frozen=True)
class ResourceKind:
    """
    Static description of a resource kind.

    Attributes:
        slug: URL segment under /resources
        label: Singular name used in messages
        model: SQLAlchemy model
        create_schema: Request body for POST (None = created elsewhere, e.g. upload)
        update_schema: Request body for PUT
        response_schema: Response payload
        write_roles: Roles allowed to create, update and delete
        search_columns: Columns matched by the `search` list filter
        tenant_required: Rows must belong to a school
        open_check: Registration rule (None = not registrable)
        register_action: Gamification action for a new registration
        evidence_required: Submissions must carry evidence
        category: Notification category for workflow notifications
    """

    slug: str
    label: str
    model: type[Any]
    create_schema: type[BaseModel] | None
    update_schema: type[BaseModel]
    response_schema: type[BaseModel]
    write_roles: frozenset[UserRole]
    search_columns: tuple[str, ...]
    category: NotificationCategory
    tenant_required: bool = False
    open_check: OpenCheck | None = None
    register_action: ActionType | None = None
    evidence_required: bool = False

    @property
    def registrable(self) -> bool:
        return self.open_check is not None


def club_open(club: Club, now: datetime, registrations: int) -> str | None:
    if club.status != ClubStatus.OPEN:
        return "This club is not open for registration."
    return None


def event_open(event: Event, now: datetime, registrations: int) -> str | None:
    if event.status != EventStatus.PUBLISHED:
        return "This event is not open for registration."
    if as_utc(event.starts_at) <= now:
        return "This event has already started."
    if event.registration_deadline and as_utc(event.registration_deadline) < now:
        return "The registration deadline for this event has passed."
    return None


def training_open(training: Training, now: datetime, registrations: int) -> str | None:
    if training.status != TrainingStatus.UPCOMING:
        return "This training is not open for registration."
    if as_utc(training.starts_at) <= now:
        return "This training has already started."
    if training.max_participants is not None and registrations >= training.max_participants:
        return "This training is full."
    return None


def iso_clause_open(clause: IsoClause, now: datetime, registrations: int) -> str | None:
    if clause.status != IsoClauseStatus.ACTIVE:
        return "This ISO clause is not accepting submissions."
    return None


_SUPER_ADMIN_ONLY = frozenset({UserRole.SUPER_ADMIN})
_ADMINS = frozenset({UserRole.SUPER_ADMIN, UserRole.SCHOOL_ADMIN})

CLUBS = ResourceKind(
    slug="clubs",
    label="club",
    model=Club,
    create_schema=schemas.ClubCreate,
    update_schema=schemas.ClubUpdate,
    response_schema=schemas.ClubResponse,
    write_roles=_SUPER_ADMIN_ONLY,
    search_columns=("name", "description", "category"),
    category=NotificationCategory.CLUB,
    open_check=club_open,
    register_action=ActionType.CLUB_REGISTER,
)

EVENTS = ResourceKind(
    slug="events",
    label="event",
    model=Event,
    create_schema=schemas.EventCreate,
    update_schema=schemas.EventUpdate,
    response_schema=schemas.EventResponse,
    write_roles=_SUPER_ADMIN_ONLY,
    search_columns=("title", "description", "location"),
    category=NotificationCategory.EVENT,
    open_check=event_open,
    register_action=ActionType.EVENT_REGISTER,
)

TRAININGS = ResourceKind(
    slug="trainings",
    label="training",
    model=Training,
    create_schema=schemas.TrainingCreate,
    update_schema=schemas.TrainingUpdate,
    response_schema=schemas.TrainingResponse,
    write_roles=_SUPER_ADMIN_ONLY,
    search_columns=("title", "description", "trainer"),
    category=NotificationCategory.TRAINING,
    open_check=training_open,
    register_action=ActionType.TRAINING_REGISTER,
)

ISO_CLAUSES = ResourceKind(
    slug="iso-clauses",
    label="ISO clause",
    model=IsoClause,
    create_schema=schemas.IsoClauseCreate,
    update_schema=schemas.IsoClauseUpdate,
    response_schema=schemas.IsoClauseResponse,
    write_roles=_SUPER_ADMIN_ONLY,
    search_columns=("number", "title", "description"),
    category=NotificationCategory.ISO,
    open_check=iso_clause_open,
    register_action=ActionType.ISO_SUBMISSION,
    evidence_required=True,
)

DOCUMENTS = ResourceKind(
    slug="documents",
    label="document",
    model=Document,
    create_schema=None,
    update_schema=schemas.DocumentUpdate,
    response_schema=schemas.DocumentResponse,
    write_roles=_ADMINS,
    search_columns=("name", "description", "category", "original_name"),
    category=NotificationCategory.DOCUMENT,
)

STUDENTS = ResourceKind(
    slug="students",
    label="student",
    model=Student,
    create_schema=schemas.StudentCreate,
    update_schema=schemas.StudentUpdate,
    response_schema=schemas.StudentResponse,
    write_roles=_ADMINS,
    search_columns=("first_name", "last_name", "roll_number", "class_name", "guardian_name"),
    category=NotificationCategory.STUDENT,
    tenant_required=True,
)

RESOURCE_KINDS: dict[str, ResourceKind] = {
    kind.slug: kind for kind in (CLUBS, EVENTS, TRAININGS, ISO_CLAUSES, DOCUMENTS, STUDENTS)
}


def get_kind(slug: str) -> ResourceKind | None:
    return RESOURCE_KINDS.get(slug)
