"""Auth API schemas."""

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthUserResponse(BaseModel):
    id: int
    email: str
    full_name: str | None
    role: str

    model_config = ConfigDict(from_attributes=True)
