"""
Registration Service Layer

Business logic for the registration/submission workflow:

    register -> (submit) -> review (approve / reject) -> resubmit ...

Rules:
- Only school principals (school admin, ECA coordinator) register, submit
  and withdraw, always on behalf of their own school.
- Only super admins review. The role check comes before any state check,
  so a non-reviewer is refused whatever state the registration is in.
- Duplicate registrations are decided by the database unique constraint.
- Notifications, e-mails and points are sent after the transition has
  committed; their failures never undo or fail the transition.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, ensure_role
from school_erp.core.email import send_registration_decision
from school_erp.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from school_erp.modules.gamification import service as gamification
from school_erp.modules.notifications import service as notifications
from school_erp.modules.notifications.models import NotificationPriority
from school_erp.modules.registrations import repository
from school_erp.modules.registrations.models import Registration, RegistrationStatus
from school_erp.modules.registrations.schemas import (
    RegistrationCreate,
    ReviewDecision,
    SubmissionCreate,
)
from school_erp.modules.resources import service as resources
from school_erp.modules.resources.kinds import ResourceKind
from school_erp.modules.shared import utcnow
from school_erp.modules.users.models import TENANT_ROLES, UserRole
from school_erp.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

_REVIEWERS = frozenset({UserRole.SUPER_ADMIN})


def _require_registrable(kind: ResourceKind) -> None:
    if not kind.registrable:
        raise NotFoundError(kind.label.capitalize())


def _action_url(kind: ResourceKind, resource_id: UUID) -> str:
    return f"/dashboard/{kind.slug}/{resource_id}"


async def _get_registration(
    db: AsyncSession,
    kind: ResourceKind,
    resource_id: UUID,
    registration_id: UUID,
    tenant_id: UUID | None = None,
) -> Registration:
    registration = await repository.get_for_resource(
        db, kind.slug, resource_id, registration_id, tenant_id
    )
    if registration is None:
        raise NotFoundError("Registration", registration_id)
    return registration


async def _reload(db: AsyncSession, registration_id: UUID) -> Registration:
    registration = await repository.get_by_id(db, registration_id)
    if registration is None:
        raise NotFoundError("Registration", registration_id)
    return registration


async def register(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
    data: RegistrationCreate,
) -> Registration:
    """
    Register the principal's school for a resource.

    The registration starts as `pending`, or directly as `submitted` when
    evidence is attached.

    Raises:
        ForbiddenError: Not a school principal
        NotFoundError: Kind not registrable, or resource not visible
        ValidationError: Resource closed for registration
        ConflictError: The school is already registered
    """
    ensure_role(principal, TENANT_ROLES)
    _require_registrable(kind)

    resource = await resources.get_resource(db, principal, kind, resource_id)
    taken = await repository.count_active_for_resource(db, kind.slug, resource_id)
    reason = kind.open_check(resource, utcnow(), taken)
    if reason:
        raise ValidationError(reason)
    resource_title = resource.display_name

    now = utcnow()
    evidence = [item.model_dump() for item in data.evidence]
    fields = {
        "tenant_id": principal.tenant_id,
        "resource_kind": kind.slug,
        "resource_id": resource_id,
        "status": RegistrationStatus.SUBMITTED if evidence else RegistrationStatus.PENDING,
        "evidence": evidence,
        "participant_count": data.participant_count,
        "notes": data.notes,
        "registered_by": principal.id,
    }
    if evidence:
        fields.update(submitted_by=principal.id, submitted_at=now)

    try:
        registration = await repository.create(db, **fields)
    except IntegrityError as e:
        await db.rollback()
        logger.info(
            f"Duplicate registration refused: tenant {principal.tenant_id} -> "
            f"{kind.slug}:{resource_id}"
        )
        raise ConflictError(f"School already registered for this {kind.label}.") from e

    registration_id = registration.id
    status = registration.status

    if kind.register_action is not None:
        await gamification.record_action(
            db,
            principal.id,
            kind.register_action,
            {"resource_kind": kind.slug, "resource_id": str(resource_id)},
        )
    await notifications.emit_to_school_admins(
        db,
        principal.tenant_id,
        f"New {kind.label} registration",
        f"Your school registered for {resource_title} ({status.value}).",
        kind.category,
        data={"registration_id": str(registration_id)},
        action_url=_action_url(kind, resource_id),
    )

    return await _reload(db, registration_id)


async def submit(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
    registration_id: UUID,
    data: SubmissionCreate,
) -> Registration:
    """
    Submit (or resubmit after rejection) a registration for review.

    Submitting an already submitted registration returns it unchanged.

    Raises:
        ForbiddenError: Not a school principal
        NotFoundError: Registration missing or of another school
        ValidationError: Evidence missing where required
        InvalidTransitionError: Registration already approved
    """
    ensure_role(principal, TENANT_ROLES)
    _require_registrable(kind)

    registration = await _get_registration(
        db, kind, resource_id, registration_id, principal.tenant_id
    )
    if registration.status == RegistrationStatus.SUBMITTED:
        return registration

    evidence = [item.model_dump() for item in data.evidence]
    if kind.evidence_required and not (evidence or registration.evidence):
        raise ValidationError(f"Evidence is required for an {kind.label} submission.")

    updated = await repository.submit(
        db,
        registration_id,
        principal.tenant_id,
        submitted_by=principal.id,
        at=utcnow(),
        evidence=evidence or None,
    )
    if updated == 0:
        # Lost a race, or the registration left a submittable state
        current = await _reload(db, registration_id)
        if current.status == RegistrationStatus.SUBMITTED:
            return current
        raise InvalidTransitionError(current.status.value, RegistrationStatus.SUBMITTED.value)

    logger.info(f"Registration {registration_id} submitted by {principal.id}")
    return await _reload(db, registration_id)


async def review(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
    registration_id: UUID,
    decision: ReviewDecision,
) -> Registration:
    """
    Approve or reject a submitted registration.

    The school's admins and the submitter are notified; a decision e-mail
    is sent best-effort.

    Raises:
        ForbiddenError: Not a super admin (regardless of state)
        NotFoundError: Registration missing
        InvalidTransitionError: Registration not in `submitted`
    """
    ensure_role(principal, _REVIEWERS)
    _require_registrable(kind)

    registration = await _get_registration(db, kind, resource_id, registration_id)
    resource = await resources.get_resource(db, principal, kind, resource_id)

    resource_title = resource.display_name
    tenant_id = registration.tenant_id
    submitter_id = registration.submitted_by or registration.registered_by
    previous_status = registration.status

    updated = await repository.review(
        db,
        registration_id,
        decision.status,
        reviewed_by=principal.id,
        at=utcnow(),
        comments=decision.comments,
    )
    if updated == 0:
        current = await repository.get_by_id(db, registration_id)
        current_status = current.status if current else previous_status
        raise InvalidTransitionError(current_status.value, decision.status.value)

    approved = decision.status == RegistrationStatus.APPROVED
    logger.info(
        f"Registration {registration_id} {decision.status.value} by {principal.id} "
        f"({kind.slug}:{resource_id})"
    )

    await notifications.emit_to_school_admins(
        db,
        tenant_id,
        f"Registration {decision.status.value}",
        f"Your {kind.label} registration for {resource_title} was {decision.status.value}.",
        kind.category,
        priority=NotificationPriority.MEDIUM if approved else NotificationPriority.HIGH,
        data={"registration_id": str(registration_id), "comments": decision.comments},
        action_url=_action_url(kind, resource_id),
        extra_user_ids=[submitter_id],
    )
    await _send_decision_emails(
        db, tenant_id, submitter_id, kind, resource_title, approved, decision.comments
    )

    return await _reload(db, registration_id)


async def _send_decision_emails(
    db: AsyncSession,
    tenant_id: UUID,
    submitter_id: UUID,
    kind: ResourceKind,
    resource_title: str,
    approved: bool,
    comments: str | None,
) -> None:
    """Best-effort decision e-mails to the school admins and the submitter."""
    try:
        admins = await UserRepository.list_school_admins(db, tenant_id)
        recipients = {admin.email: admin.full_name for admin in admins}
        submitter = await UserRepository.get_by_id(db, submitter_id)
        if submitter is not None and submitter.is_active:
            recipients.setdefault(submitter.email, submitter.full_name)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to load decision e-mail recipients for tenant {tenant_id}: {e}")
        return

    for email, name in recipients.items():
        await send_registration_decision(
            to_email=email,
            recipient_name=name,
            resource_kind=kind.label,
            resource_title=resource_title,
            approved=approved,
            comments=comments,
        )


async def unregister(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
) -> None:
    """
    Withdraw the principal's school registration for a resource.

    Raises:
        ForbiddenError: Not a school principal
        NotFoundError: No registration for this school
        InvalidTransitionError: Registration already approved
    """
    ensure_role(principal, TENANT_ROLES)
    _require_registrable(kind)

    deleted = await repository.delete_for_tenant(db, principal.tenant_id, kind.slug, resource_id)
    if deleted:
        logger.info(f"Tenant {principal.tenant_id} withdrew from {kind.slug}:{resource_id}")
        return

    existing = await repository.find_for_tenant(db, principal.tenant_id, kind.slug, resource_id)
    if existing is None:
        raise NotFoundError("Registration")
    raise InvalidTransitionError(existing.status.value, "withdrawn")


async def force_delete(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
    registration_id: UUID,
) -> None:
    """
    Delete any registration of a resource (super admin).

    Raises:
        ForbiddenError: Not a super admin
        NotFoundError: Registration missing
    """
    ensure_role(principal, _REVIEWERS)
    _require_registrable(kind)

    if await repository.delete_by_id(db, registration_id, kind.slug, resource_id) == 0:
        raise NotFoundError("Registration", registration_id)
    logger.warning(f"Registration {registration_id} force-deleted by {principal.id}")


async def list_registrations(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
) -> list[Registration]:
    """
    List registrations of a resource.

    Super admins see every school's registration; school principals only
    their own school's.

    Raises:
        NotFoundError: Kind not registrable, or resource not visible
    """
    _require_registrable(kind)
    await resources.get_resource(db, principal, kind, resource_id)

    tenant_id = None if principal.is_global else principal.tenant_id
    return await repository.list_for_resource(db, kind.slug, resource_id, tenant_id)
