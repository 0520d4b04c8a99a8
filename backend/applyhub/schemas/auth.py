from pydantic import BaseModel

from applyhub.constants import UserRole


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole = UserRole.APPLICANT


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    role: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    expires_in_seconds: int


class ThrottleResponse(BaseModel):
    error: str
    retry_after_seconds: float
