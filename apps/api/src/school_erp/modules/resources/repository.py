"""
Tenant-Scoped Repository

One repository per resource kind, all sharing the tenant rules:

- Reads see the principal's own rows plus global rows (`tenant_id IS NULL`);
  super admins see everything.
- Updates and deletes carry the ownership predicate inside the mutating
  statement: tenant principals may only change rows of their own school
  (never global rows). A zero-row result is indistinguishable from a
  missing row.
"""

import logging
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from school_erp.core.auth import Principal
from school_erp.modules.registrations import repository as registration_repository
from school_erp.modules.resources.models import Document, TrainingFeedback

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class TenantScopedRepository(Generic[ModelT]):
    """Repository bound to one tenant-scoped model."""

    def __init__(self, model: type[ModelT], kind_slug: str):
        self.model = model
        self.kind_slug = kind_slug

    def visibility_filter(self, principal: Principal) -> ColumnElement[bool]:
        """Rows the principal may read."""
        if principal.is_global:
            return true()
        return or_(
            self.model.tenant_id == principal.tenant_id,
            self.model.tenant_id.is_(None),
        )

    def ownership_filter(self, principal: Principal) -> ColumnElement[bool]:
        """Rows the principal may mutate."""
        if principal.is_global:
            return true()
        return self.model.tenant_id == principal.tenant_id

    async def list_visible(
        self,
        db: AsyncSession,
        principal: Principal,
        *,
        status: Any | None = None,
        search: str | None = None,
        search_columns: tuple[str, ...] = (),
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[ModelT], int]:
        """
        List visible rows, newest first.

        Returns:
            Tuple of (rows, total count)
        """
        stmt = select(self.model).where(self.visibility_filter(principal))
        if status is not None:
            stmt = stmt.where(self.model.status == status)
        if search and search_columns:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(*(getattr(self.model, column).ilike(pattern) for column in search_columns))
            )

        total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await db.execute(
            stmt.order_by(self.model.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get(self, db: AsyncSession, principal: Principal, resource_id: UUID) -> ModelT | None:
        """Get a visible row by ID."""
        result = await db.execute(
            select(self.model)
            .where(self.model.id == resource_id, self.visibility_filter(principal))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, **fields) -> ModelT:
        """
        Insert a row. Tenant assignment is decided by the caller.

        Raises:
            IntegrityError: Unique constraint violated
        """
        row = self.model(**fields)
        db.add(row)
        await db.commit()
        await db.refresh(row)

        logger.info(f"Created {self.kind_slug} {row.id} (tenant {row.tenant_id})")
        return row

    async def update(
        self,
        db: AsyncSession,
        principal: Principal,
        resource_id: UUID,
        values: dict[str, Any],
    ) -> int:
        """
        Update an owned row.

        Returns:
            Rows updated (0 = missing or not owned)
        """
        result = await db.execute(
            update(self.model)
            .where(self.model.id == resource_id, self.ownership_filter(principal))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    async def delete(self, db: AsyncSession, principal: Principal, resource_id: UUID) -> int:
        """
        Delete an owned row and its registrations in one transaction.

        Returns:
            Rows deleted (0 = missing or not owned)
        """
        result = await db.execute(
            delete(self.model)
            .where(self.model.id == resource_id, self.ownership_filter(principal))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            return 0

        removed = await registration_repository.delete_for_resource(
            db, self.kind_slug, resource_id
        )
        await db.commit()

        logger.info(f"Deleted {self.kind_slug} {resource_id} and {removed} registration(s)")
        return result.rowcount

    async def count(
        self,
        db: AsyncSession,
        *,
        tenant_id: UUID | None = None,
        include_global: bool = False,
        status: Any | None = None,
    ) -> int:
        """Count rows, optionally for one tenant (plus global rows)."""
        stmt = select(func.count()).select_from(self.model)
        if tenant_id is not None:
            condition = self.model.tenant_id == tenant_id
            if include_global:
                condition = or_(condition, self.model.tenant_id.is_(None))
            stmt = stmt.where(condition)
        if status is not None:
            stmt = stmt.where(self.model.status == status)
        return await db.scalar(stmt) or 0

    async def count_by_tenant(
        self, db: AsyncSession, *, status: Any | None = None
    ) -> dict[UUID | None, int]:
        """Count rows per owning school; global rows are keyed by None."""
        stmt = select(self.model.tenant_id, func.count()).group_by(self.model.tenant_id)
        if status is not None:
            stmt = stmt.where(self.model.status == status)
        result = await db.execute(stmt)
        return {tenant_id: count for tenant_id, count in result.all()}


class DocumentRepository(TenantScopedRepository[Document]):
    """Documents add the download counter."""

    def __init__(self):
        super().__init__(Document, "documents")

    async def increment_downloads(self, db: AsyncSession, document_id: UUID) -> None:
        await db.execute(
            update(Document)
            .where(Document.id == document_id)
            .values(download_count=Document.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    async def stats(
        self,
        db: AsyncSession,
        condition: ColumnElement[bool],
        *,
        recent_limit: int = 5,
    ) -> dict[str, Any]:
        """
        Aggregate the documents matching `condition`.

        Returns:
            Dict with total, total_downloads, total_size, categories and recent
        """
        totals = (
            await db.execute(
                select(
                    func.count(),
                    func.coalesce(func.sum(Document.download_count), 0),
                    func.coalesce(func.sum(Document.file_size), 0),
                ).where(condition)
            )
        ).one()

        by_category = await db.execute(
            select(Document.category, func.count(), func.coalesce(func.sum(Document.file_size), 0))
            .where(condition)
            .group_by(Document.category)
            .order_by(func.count().desc())
        )
        recent = await db.execute(
            select(Document)
            .where(condition)
            .order_by(Document.created_at.desc())
            .limit(recent_limit)
        )

        return {
            "total": totals[0],
            "total_downloads": totals[1],
            "total_size": totals[2],
            "categories": [
                {"category": category, "count": count, "total_size": size}
                for category, count, size in by_category.all()
            ],
            "recent": list(recent.scalars().all()),
        }


_repositories: dict[str, TenantScopedRepository] = {}


def repository_for(kind_slug: str, model: type[ModelT]) -> TenantScopedRepository[ModelT]:
    """Get the (cached) repository of a resource kind."""
    repo = _repositories.get(kind_slug)
    if repo is None:
        repo = DocumentRepository() if model is Document else TenantScopedRepository(model, kind_slug)
        _repositories[kind_slug] = repo
    return repo


# ============================================
# Training feedback
# ============================================


async def add_feedback(db: AsyncSession, **fields) -> TrainingFeedback:
    """
    Insert a feedback row.

    Raises:
        IntegrityError: The user already rated this training
    """
    feedback = TrainingFeedback(**fields)
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback)
    return feedback


async def list_feedback(
    db: AsyncSession,
    training_id: UUID,
    tenant_id: UUID | None = None,
) -> list[TrainingFeedback]:
    """List a training's feedback, newest first, optionally for one school."""
    stmt = select(TrainingFeedback).where(TrainingFeedback.training_id == training_id)
    if tenant_id is not None:
        stmt = stmt.where(TrainingFeedback.tenant_id == tenant_id)
    result = await db.execute(stmt.order_by(TrainingFeedback.created_at.desc()))
    return list(result.scalars().all())
