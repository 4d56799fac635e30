"""
Resources Router

One router per resource kind, mounted at /resources/{kind}:

- GET    /resources/{kind}          - List visible resources
- POST   /resources/{kind}          - Create (kind's write roles)
- GET    /resources/{kind}/{id}     - Get a visible resource
- PUT    /resources/{kind}/{id}     - Update an owned resource
- DELETE /resources/{kind}/{id}     - Delete an owned resource

Documents:
- POST   /resources/documents/upload         - Multipart upload
- GET    /resources/documents/stats          - Totals, categories, recent uploads
- GET    /resources/documents/{id}/download  - Download the file

ISO clauses:
- POST   /resources/iso-clauses/evidence     - Upload an evidence file
- GET    /resources/iso-clauses/evidence/{school}/{file} - Download (own school or super admin)

Trainings:
- POST   /resources/trainings/{id}/feedback - Rate a training (school principals)
- GET    /resources/trainings/{id}/feedback - List feedback

Students: class structure, class lists, promotions (see students.router).

Registrable kinds also get the registration workflow routes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, Page, ok
from school_erp.modules.registrations.router import attach_registration_routes
from school_erp.modules.registrations.schemas import EvidenceItem
from school_erp.modules.resources import service
from school_erp.modules.resources.kinds import (
    DOCUMENTS,
    ISO_CLAUSES,
    RESOURCE_KINDS,
    STUDENTS,
    TRAININGS,
    ResourceKind,
)
from school_erp.modules.resources.schemas import (
    DocumentResponse,
    DocumentStats,
    TrainingFeedbackCreate,
    TrainingFeedbackResponse,
)
from school_erp.modules.students.router import attach_student_routes

logger = logging.getLogger(__name__)


def _attach_document_routes(router: APIRouter) -> None:
    @router.get(
        "/stats",
        response_model=ApiResponse[DocumentStats],
        summary="Document statistics",
        description="Own-school figures for school principals; super admins may pick a school.",
    )
    async def document_stats(
        school_id: UUID | None = Query(None),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        stats = await service.document_stats(db, principal, school_id)
        stats["recent"] = [DocumentResponse.model_validate(d) for d in stats["recent"]]
        return ok(DocumentStats(**stats))

    @router.post(
        "/upload",
        response_model=ApiResponse[DocumentResponse],
        status_code=status.HTTP_201_CREATED,
        summary="Upload a document",
        responses={400: {"description": "File type not allowed or file too large"}},
    )
    async def upload_document(
        file: UploadFile = File(...),
        name: str | None = Form(None, max_length=255),
        description: str | None = Form(None),
        category: str | None = Form(None, max_length=100),
        version: str = Form("1.0", max_length=20),
        tags: str | None = Form(None, description="Comma-separated tags"),
        tenant_id: UUID | None = Form(None),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        document = await service.upload_document(
            db,
            principal,
            file,
            name=name,
            description=description,
            category=category,
            version=version,
            tags=[t.strip() for t in tags.split(",") if t.strip()] if tags else [],
            tenant_id=tenant_id,
        )
        return ok(DocumentResponse.model_validate(document), "Document uploaded successfully.")

    @router.get(
        "/{resource_id}/download",
        response_class=FileResponse,
        summary="Download a document",
    )
    async def download_document(
        resource_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        path, filename, media_type = await service.prepare_download(db, principal, resource_id)
        return FileResponse(path, media_type=media_type, filename=filename)


def _attach_evidence_route(router: APIRouter) -> None:
    @router.post(
        "/evidence",
        response_model=ApiResponse[EvidenceItem],
        status_code=status.HTTP_201_CREATED,
        summary="Upload ISO evidence",
        description="Stores the file and returns the metadata to attach to a register or submit call.",
    )
    async def upload_evidence(
        file: UploadFile = File(...),
        principal: Principal = Depends(get_current_principal),
    ):
        evidence = await service.upload_evidence(principal, file)
        return ok(evidence, "Evidence uploaded successfully.")

    @router.get(
        "/evidence/{tenant_id}/{stored_name}",
        response_class=FileResponse,
        summary="Download ISO evidence",
        responses={404: {"description": "Evidence file not found"}},
    )
    async def download_evidence(
        tenant_id: UUID,
        stored_name: str,
        principal: Principal = Depends(get_current_principal),
    ):
        path = service.resolve_evidence(principal, tenant_id, stored_name)
        return FileResponse(path)


def _attach_feedback_routes(router: APIRouter) -> None:
    @router.post(
        "/{resource_id}/feedback",
        response_model=ApiResponse[TrainingFeedbackResponse],
        status_code=status.HTTP_201_CREATED,
        summary="Rate a training",
    )
    async def add_feedback(
        resource_id: UUID,
        data: TrainingFeedbackCreate,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        feedback = await service.add_training_feedback(db, principal, resource_id, data)
        return ok(TrainingFeedbackResponse.model_validate(feedback), "Feedback submitted.")

    @router.get(
        "/{resource_id}/feedback",
        response_model=ApiResponse[list[TrainingFeedbackResponse]],
        summary="List training feedback",
    )
    async def list_feedback(
        resource_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        rows = await service.list_training_feedback(db, principal, resource_id)
        return ok([TrainingFeedbackResponse.model_validate(row) for row in rows])


def build_resource_router(kind: ResourceKind) -> APIRouter:
    """Build the CRUD (and workflow) router of one resource kind."""
    router = APIRouter()
    create_schema = kind.create_schema
    update_schema = kind.update_schema
    response_schema = kind.response_schema

    # Fixed paths first so they are not captured by /{resource_id}
    if kind is DOCUMENTS:
        _attach_document_routes(router)
    if kind is ISO_CLAUSES:
        _attach_evidence_route(router)
    if kind is STUDENTS:
        attach_student_routes(router)

    @router.get(
        "",
        response_model=ApiResponse[Page[response_schema]],
        summary=f"List {kind.slug}",
    )
    async def list_resources(
        status_filter: str | None = Query(None, alias="status"),
        search: str | None = Query(None, max_length=100),
        skip: int = Query(0, ge=0),
        limit: int = Query(20, ge=1, le=100),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        rows, total = await service.list_resources(
            db,
            principal,
            kind,
            status=status_filter,
            search=search,
            skip=skip,
            limit=limit,
        )
        items = [response_schema.model_validate(row) for row in rows]
        return ok(Page(items=items, total=total, skip=skip, limit=limit))

    if create_schema is not None:

        @router.post(
            "",
            response_model=ApiResponse[response_schema],
            status_code=status.HTTP_201_CREATED,
            summary=f"Create a {kind.label}",
            responses={403: {"description": "Role may not create this resource"}},
        )
        async def create_resource(
            data: create_schema,
            db: AsyncSession = Depends(get_db),
            principal: Principal = Depends(get_current_principal),
        ):
            row = await service.create_resource(db, principal, kind, data)
            return ok(
                response_schema.model_validate(row),
                f"{kind.label.capitalize()} created successfully.",
            )

    @router.get(
        "/{resource_id}",
        response_model=ApiResponse[response_schema],
        summary=f"Get a {kind.label}",
    )
    async def get_resource(
        resource_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = await service.get_resource(db, principal, kind, resource_id)
        return ok(response_schema.model_validate(row))

    @router.put(
        "/{resource_id}",
        response_model=ApiResponse[response_schema],
        summary=f"Update a {kind.label}",
    )
    async def update_resource(
        resource_id: UUID,
        data: update_schema,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = await service.update_resource(db, principal, kind, resource_id, data)
        return ok(
            response_schema.model_validate(row),
            f"{kind.label.capitalize()} updated successfully.",
        )

    @router.delete(
        "/{resource_id}",
        response_model=ApiResponse[None],
        summary=f"Delete a {kind.label}",
    )
    async def delete_resource(
        resource_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        await service.delete_resource(db, principal, kind, resource_id)
        logger.info(f"{kind.label.capitalize()} {resource_id} deleted by {principal.id}")
        return ok(message=f"{kind.label.capitalize()} deleted successfully.")

    if kind is TRAININGS:
        _attach_feedback_routes(router)
    if kind.registrable:
        attach_registration_routes(router, kind)

    return router


router = APIRouter()
for _kind in RESOURCE_KINDS.values():
    router.include_router(build_resource_router(_kind), prefix=f"/{_kind.slug}", tags=[_kind.slug])
