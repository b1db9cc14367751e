"""
Sanctuary Backend — User Account Route Handlers
=================================================

What:  Signup, login, forgot-password and change-password.
Who:   The admin frontend. Login, signup and forgot-password are public
       (and rate limited); change-password requires a bearer token.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sanctuary.auth import get_current_identity
from sanctuary.database import get_db_session
from sanctuary.schemas.common import ErrorResponse
from sanctuary.schemas.user import (
    ChangePasswordRequest,
    ChangePasswordResponse,
    Credentials,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginResponse,
    SignupResponse,
)
from sanctuary.services.token_service import Identity
from sanctuary.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "/signup",
    status_code=201,
    response_model=SignupResponse,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Register an account (requires approval before login)",
)
async def signup(body: Credentials, db: AsyncSession = Depends(get_db_session)) -> SignupResponse:
    return await user_service.signup(db, body.email, body.password)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Account not approved, or wrong password", "model": ErrorResponse},
        404: {"description": "No account with this email", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(body: Credentials, db: AsyncSession = Depends(get_db_session)) -> LoginResponse:
    return await user_service.login(db, body.email, body.password)


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    responses={404: {"description": "No account with this email", "model": ErrorResponse}},
    summary="Email a newly generated password",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ForgotPasswordResponse:
    return await user_service.forgot_password(db, body.email)


@router.put(
    "/change-password",
    response_model=ChangePasswordResponse,
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Account no longer exists", "model": ErrorResponse},
    },
    summary="Change the caller's password",
)
async def change_password(
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> ChangePasswordResponse:
    return await user_service.change_password(db, identity, body.password)
