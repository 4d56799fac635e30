"""
Resource Service Layer

Generic operations over every resource kind: list, get, create, update and
delete, plus document upload/download and ISO evidence upload and download, document statistics
and training feedback.

Tenant rules:
- Reads are open to any authenticated principal, within the visibility
  scope (own school + global rows; super admins see all).
- Writes require one of the kind's write roles. Tenant principals always
  write into their own school. A row of another school, or a global row,
  behaves as if it did not exist.
"""

import logging
from pathlib import Path
from uuid import UUID

from fastapi import UploadFile
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core import storage
from school_erp.core.auth import Principal, ensure_role
from school_erp.core.config import settings
from school_erp.core.errors import ConflictError, NotFoundError, ValidationError
from school_erp.modules.gamification import service as gamification
from school_erp.modules.gamification.models import ActionType
from school_erp.modules.registrations.schemas import EvidenceItem
from school_erp.modules.resources import repository as resource_repository
from school_erp.modules.resources.kinds import DOCUMENTS, STUDENTS, TRAININGS, ResourceKind
from school_erp.modules.resources.models import Document, TrainingFeedback
from school_erp.modules.resources.repository import DocumentRepository, repository_for
from school_erp.modules.resources.schemas import TrainingFeedbackCreate
from school_erp.modules.schools.repository import SchoolRepository
from school_erp.modules.users.models import TENANT_ROLES

logger = logging.getLogger(__name__)

# Evidence is only served through the scoped download route
EVIDENCE_URL_PREFIX = "/api/v1/resources/iso-clauses/evidence"
EVIDENCE_DIR = "evidence"


def _repo(kind: ResourceKind):
    return repository_for(kind.slug, kind.model)


def _not_found(kind: ResourceKind, resource_id: UUID | None = None) -> NotFoundError:
    return NotFoundError(kind.label.capitalize(), resource_id)


def _parse_status(kind: ResourceKind, value: str):
    enum_cls = kind.model.status.type.enum_class
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {kind.label} status: {value}.") from None


async def _resolve_tenant(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    requested: UUID | None,
) -> UUID | None:
    """
    Decide the owning school of a new row.

    Tenant principals always create in their own school; super admins may
    pick a school or leave the row global.
    """
    tenant_id = requested if principal.is_global else principal.tenant_id

    if tenant_id is None and kind.tenant_required:
        raise ValidationError(f"A school is required for a {kind.label}.")
    if principal.is_global and tenant_id is not None:
        if await SchoolRepository.get_by_id(db, tenant_id) is None:
            raise ValidationError("The selected school does not exist.")
    return tenant_id


async def list_resources(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    *,
    status: str | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
):
    """List visible resources of a kind. Returns (rows, total)."""
    return await _repo(kind).list_visible(
        db,
        principal,
        status=_parse_status(kind, status) if status else None,
        search=search,
        search_columns=kind.search_columns,
        skip=skip,
        limit=limit,
    )


async def get_resource(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
):
    """
    Get a visible resource.

    Raises:
        NotFoundError: Missing, or owned by another school
    """
    row = await _repo(kind).get(db, principal, resource_id)
    if row is None:
        raise _not_found(kind, resource_id)
    return row


async def create_resource(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    data: BaseModel,
):
    """
    Create a resource.

    Raises:
        ForbiddenError: Role may not write this kind
        ValidationError: Missing or unknown school
        ConflictError: Unique constraint violated
    """
    ensure_role(principal, kind.write_roles)

    fields = data.model_dump(exclude={"tenant_id"})
    tenant_id = await _resolve_tenant(db, principal, kind, getattr(data, "tenant_id", None))

    try:
        row = await _repo(kind).create(db, **fields, tenant_id=tenant_id, created_by=principal.id)
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Duplicate {kind.slug} rejected for tenant {tenant_id}: {e.orig}")
        raise ConflictError(f"A {kind.label} with these details already exists.") from e

    row_id = row.id
    if kind is STUDENTS:
        await gamification.record_action(
            db, principal.id, ActionType.STUDENT_ADD, {"student_id": str(row_id)}
        )
        return await get_resource(db, principal, kind, row_id)
    return row


async def update_resource(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
    data: BaseModel,
):
    """
    Update an owned resource.

    Raises:
        ForbiddenError: Role may not write this kind
        NotFoundError: Missing, global (for tenant principals) or another school's
        ConflictError: Unique constraint violated
    """
    ensure_role(principal, kind.write_roles)

    values = data.model_dump(exclude_unset=True)
    if not values:
        return await get_resource(db, principal, kind, resource_id)

    try:
        updated = await _repo(kind).update(db, principal, resource_id, values)
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(f"A {kind.label} with these details already exists.") from e

    if updated == 0:
        raise _not_found(kind, resource_id)
    return await get_resource(db, principal, kind, resource_id)


async def delete_resource(
    db: AsyncSession,
    principal: Principal,
    kind: ResourceKind,
    resource_id: UUID,
) -> None:
    """
    Delete an owned resource and its registrations.

    Raises:
        ForbiddenError: Role may not write this kind
        NotFoundError: Missing, global (for tenant principals) or another school's
    """
    ensure_role(principal, kind.write_roles)

    file_path = None
    if kind is DOCUMENTS:
        document = await _repo(kind).get(db, principal, resource_id)
        file_path = document.file_path if document else None

    if await _repo(kind).delete(db, principal, resource_id) == 0:
        raise _not_found(kind, resource_id)

    if file_path:
        await storage.delete_file(file_path)


# ============================================
# Documents
# ============================================


async def upload_document(
    db: AsyncSession,
    principal: Principal,
    file: UploadFile,
    *,
    name: str | None = None,
    description: str | None = None,
    category: str | None = None,
    version: str = "1.0",
    tags: list[str] | None = None,
    tenant_id: UUID | None = None,
) -> Document:
    """
    Store an uploaded file and create its document row.

    The size ceiling and MIME allow-list are checked before anything is
    written to disk.

    Raises:
        ForbiddenError: Role may not write documents
        ValidationError: Disallowed type, too large, or unknown school
    """
    ensure_role(principal, DOCUMENTS.write_roles)
    tenant = await _resolve_tenant(db, principal, DOCUMENTS, tenant_id)

    stored = await storage.save_upload(
        file,
        subdir="documents",
        allowed_types=storage.DOCUMENT_MIME_TYPES,
        max_mb=settings.max_document_upload_mb,
    )

    try:
        return await _repo(DOCUMENTS).create(
            db,
            name=name or stored.original_name,
            description=description,
            category=category,
            version=version,
            tags=tags or [],
            original_name=stored.original_name,
            stored_name=stored.stored_name,
            file_path=stored.file_path,
            mime_type=stored.mime_type,
            file_size=stored.size,
            tenant_id=tenant,
            created_by=principal.id,
        )
    except Exception:
        await db.rollback()
        await storage.delete_file(stored.file_path)
        raise


async def prepare_download(
    db: AsyncSession,
    principal: Principal,
    document_id: UUID,
) -> tuple[Path, str, str]:
    """
    Resolve a visible document for download and count the download.

    Returns:
        Tuple of (absolute path, client file name, MIME type)

    Raises:
        NotFoundError: Document not visible or file missing
    """
    document = await get_resource(db, principal, DOCUMENTS, document_id)
    path = storage.resolve_path(document.file_path)
    download = (path, document.original_name, document.mime_type)

    repo: DocumentRepository = _repo(DOCUMENTS)
    await repo.increment_downloads(db, document_id)
    await gamification.record_action(
        db, principal.id, ActionType.DOCUMENT_DOWNLOAD, {"document_id": str(document_id)}
    )
    return download


# ============================================
# Document statistics
# ============================================


async def document_stats(
    db: AsyncSession,
    principal: Principal,
    school_id: UUID | None = None,
) -> dict:
    """
    Aggregate figures over the documents in the principal's scope.

    School principals always get their own school (plus global documents);
    super admins get everything, or one school when `school_id` is given.
    """
    repo: DocumentRepository = _repo(DOCUMENTS)
    if principal.is_global and school_id is not None:
        condition = Document.tenant_id == school_id
    else:
        condition = repo.visibility_filter(principal)
    return await repo.stats(db, condition)


# ============================================
# Training feedback
# ============================================


async def add_training_feedback(
    db: AsyncSession,
    principal: Principal,
    training_id: UUID,
    data: TrainingFeedbackCreate,
) -> TrainingFeedback:
    """
    Rate a visible training on behalf of the principal's school.

    Raises:
        ForbiddenError: Not a school principal
        NotFoundError: Training not visible
        ConflictError: The principal already rated this training
    """
    ensure_role(principal, TENANT_ROLES)
    await get_resource(db, principal, TRAININGS, training_id)

    try:
        feedback = await resource_repository.add_feedback(
            db,
            training_id=training_id,
            tenant_id=principal.tenant_id,
            user_id=principal.id,
            feedback=data.feedback,
            rating=data.rating,
        )
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("You have already left feedback for this training.") from e

    logger.info(f"Feedback ({data.rating}/5) on training {training_id} by {principal.id}")
    return feedback


async def list_training_feedback(
    db: AsyncSession,
    principal: Principal,
    training_id: UUID,
) -> list[TrainingFeedback]:
    """Feedback on a visible training; school principals only see their own school's."""
    await get_resource(db, principal, TRAININGS, training_id)
    tenant_id = None if principal.is_global else principal.tenant_id
    return await resource_repository.list_feedback(db, training_id, tenant_id)


# ============================================
# ISO evidence
# ============================================


async def upload_evidence(principal: Principal, file: UploadFile) -> EvidenceItem:
    """
    Store an evidence file for an ISO submission.

    Files are kept per school; the returned URL points at the scoped
    download route.

    Returns:
        Evidence metadata to attach to register/submit

    Raises:
        ForbiddenError: Only school principals submit evidence
        ValidationError: Disallowed type or too large
    """
    ensure_role(principal, TENANT_ROLES)

    stored = await storage.save_upload(
        file,
        subdir=f"{EVIDENCE_DIR}/{principal.tenant_id}",
        allowed_types=storage.EVIDENCE_MIME_TYPES,
        max_mb=settings.max_evidence_upload_mb,
    )
    return EvidenceItem(
        name=stored.original_name,
        file_url=f"{EVIDENCE_URL_PREFIX}/{principal.tenant_id}/{stored.stored_name}",
        file_type=stored.mime_type,
        size=stored.size,
    )


def resolve_evidence(principal: Principal, tenant_id: UUID, stored_name: str) -> Path:
    """
    Resolve an evidence file for download.

    Super admins may read every school's evidence; school principals only
    their own school's.

    Raises:
        NotFoundError: Another school's file, or no such file
    """
    if Path(stored_name).name != stored_name:
        raise NotFoundError("Evidence file")
    if not principal.is_global and principal.tenant_id != tenant_id:
        raise NotFoundError("Evidence file")
    return storage.resolve_path(f"{EVIDENCE_DIR}/{tenant_id}/{stored_name}")
