"""
Sanctuary Backend — User Account Schemas
==========================================

Passwords are limited to 72 UTF-8 bytes, the most bcrypt will hash.
"""

import uuid

from pydantic import EmailStr, Field, field_validator

from sanctuary.schemas.common import CamelModel, EmailOutcome, UpdateResult

MAX_PASSWORD_BYTES = 72


def _check_password(value: str) -> str:
    if not value:
        raise ValueError("Password must not be empty")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class Credentials(CamelModel):
    """Body of /signup and /login."""
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ChangePasswordRequest(CamelModel):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class UserResponse(CamelModel):
    """Public view of a user; the password hash is never exposed."""
    id: uuid.UUID
    email: str
    is_approved: bool


class SignupResponse(CamelModel):
    new_user: UserResponse
    email_response: EmailOutcome


class LoginResponse(CamelModel):
    token: str
    expires_in: int = Field(description="Token lifetime in seconds")
    user_id: uuid.UUID


class ForgotPasswordResponse(CamelModel):
    user: UpdateResult
    email_response: EmailOutcome


class ChangePasswordResponse(CamelModel):
    user: UpdateResult
