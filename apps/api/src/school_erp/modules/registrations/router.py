"""
Registration Routes

Attached under each registrable resource kind:

- POST   /resources/{kind}/{id}/register                       - Register own school
- DELETE /resources/{kind}/{id}/unregister                     - Withdraw own school
- GET    /resources/{kind}/{id}/registrations                  - List registrations
- PUT    /resources/{kind}/{id}/registrations/{reg_id}         - Approve/reject (super admin)
- DELETE /resources/{kind}/{id}/registrations/{reg_id}         - Force delete (super admin)
- POST   /resources/{kind}/{id}/registrations/{reg_id}/submit  - Submit/resubmit for review
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, ok
from school_erp.modules.registrations import service
from school_erp.modules.registrations.schemas import (
    RegistrationCreate,
    RegistrationResponse,
    ReviewDecision,
    SubmissionCreate,
)
from school_erp.modules.resources.kinds import ResourceKind


def attach_registration_routes(router: APIRouter, kind: ResourceKind) -> None:
    """Add the registration workflow endpoints of `kind` to its router."""

    @router.post(
        "/{resource_id}/register",
        response_model=ApiResponse[RegistrationResponse],
        status_code=status.HTTP_201_CREATED,
        summary=f"Register for a {kind.label}",
        responses={
            400: {"description": "Already registered, or closed for registration"},
            403: {"description": "Only school principals can register"},
            404: {"description": f"{kind.label.capitalize()} not found"},
        },
    )
    async def register(
        resource_id: UUID,
        data: RegistrationCreate | None = None,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        registration = await service.register(
            db, principal, kind, resource_id, data or RegistrationCreate()
        )
        return ok(
            RegistrationResponse.model_validate(registration),
            f"Registered for {kind.label} successfully.",
        )

    @router.delete(
        "/{resource_id}/unregister",
        response_model=ApiResponse[None],
        summary=f"Withdraw from a {kind.label}",
        responses={400: {"description": "Approved registrations cannot be withdrawn"}},
    )
    async def unregister(
        resource_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        await service.unregister(db, principal, kind, resource_id)
        return ok(message="Registration withdrawn.")

    @router.get(
        "/{resource_id}/registrations",
        response_model=ApiResponse[list[RegistrationResponse]],
        summary=f"List registrations of a {kind.label}",
        description="Super admins see all schools; school principals see their own school only.",
    )
    async def list_registrations(
        resource_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        registrations = await service.list_registrations(db, principal, kind, resource_id)
        return ok([RegistrationResponse.model_validate(r) for r in registrations])

    @router.put(
        "/{resource_id}/registrations/{registration_id}",
        response_model=ApiResponse[RegistrationResponse],
        summary="Review a registration",
        responses={
            400: {"description": "Registration is not awaiting review"},
            403: {"description": "Only super admins can review"},
        },
    )
    async def review_registration(
        resource_id: UUID,
        registration_id: UUID,
        data: ReviewDecision,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        registration = await service.review(
            db, principal, kind, resource_id, registration_id, data
        )
        return ok(
            RegistrationResponse.model_validate(registration),
            f"Registration {registration.status.value}.",
        )

    @router.delete(
        "/{resource_id}/registrations/{registration_id}",
        response_model=ApiResponse[None],
        summary="Delete a registration",
    )
    async def delete_registration(
        resource_id: UUID,
        registration_id: UUID,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        await service.force_delete(db, principal, kind, resource_id, registration_id)
        return ok(message="Registration deleted.")

    @router.post(
        "/{resource_id}/registrations/{registration_id}/submit",
        response_model=ApiResponse[RegistrationResponse],
        summary="Submit a registration for review",
        responses={400: {"description": "Evidence missing, or registration already approved"}},
    )
    async def submit_registration(
        resource_id: UUID,
        registration_id: UUID,
        data: SubmissionCreate | None = None,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        registration = await service.submit(
            db, principal, kind, resource_id, registration_id, data or SubmissionCreate()
        )
        return ok(RegistrationResponse.model_validate(registration), "Submitted for review.")
