"""Dashboard schemas."""

from uuid import UUID

from pydantic import BaseModel


class RegistrationCounts(BaseModel):
    pending: int = 0
    submitted: int = 0
    approved: int = 0
    rejected: int = 0


class AdminDashboardStats(BaseModel):
    """Platform-wide counts for super admins."""

    scope: str = "platform"
    schools: int
    active_schools: int
    active_users: int
    resources: dict[str, int]
    registrations: RegistrationCounts
    iso_approval_rate: float


class IsoProgress(BaseModel):
    approved_clauses: int
    active_clauses: int
    percent: float


class SchoolDashboardStats(BaseModel):
    """Counts of the principal's own school."""

    scope: str = "school"
    students: int
    registrations: RegistrationCounts
    unread_notifications: int
    iso_progress: IsoProgress


class SchoolIsoProgress(BaseModel):
    """ISO certification progress of one school."""

    school_id: UUID
    name: str
    status: str
    total_clauses: int
    approved_clauses: int
    submitted_clauses: int
    pending_clauses: int
    rejected_clauses: int
    progress: int
    is_certified: bool


class IsoAnalytics(BaseModel):
    """Platform-wide ISO certification figures."""

    total_schools: int
    active_schools: int
    certified_schools: int
    certification_rate: int
    average_progress: int
    total_clauses: int
    registrations: RegistrationCounts
    schools: list[SchoolIsoProgress]
