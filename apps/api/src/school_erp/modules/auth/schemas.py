"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from school_erp.modules.schools.schemas import SchoolResponse
from school_erp.modules.users.schemas import UserResponse


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class SessionData(BaseModel):
    """Current session: the principal and their school (if any)."""

    user: UserResponse
    school: SchoolResponse | None = None


class LoginData(SessionData):
    """
    Login result.

    The token is also set as the HTTP-only `auth-token` cookie; it is returned
    in the body for API clients that use the Bearer header instead.
    """

    access_token: str
    token_type: str = "bearer"
