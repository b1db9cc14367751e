"""
Sanctuary Backend — User Account Service
==========================================

What:  Signup, login, forgot-password and change-password flows.
How:   Composes PasswordService (bcrypt), TokenService (JWT) and Mailer
       (aiosmtplib) over the `users` table.
Who:   Called by routes/users.py.

Flow summary:
    signup          hash → insert unapproved user → commit → notify admin
    login           find by email → approved? → password matches? → token
    forgot_password find by email → generate password → persist → commit → email it
    change_password find caller → persist new hash

Status mapping:
    unknown email (login, forgot-password)  → NotFoundError (404)
    unapproved account / wrong password     → UnauthorizedError (401)
    update touching zero rows               → UnauthorizedError (401)
    duplicate email at signup               → ConflictError (409)

Email outcomes are reported inline and never fail the account operation.
Mail goes out only after the change it reports has been committed.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sanctuary.exceptions import ConflictError, DatabaseError, NotFoundError, UnauthorizedError
from sanctuary.models.user import User
from sanctuary.schemas.common import UpdateResult
from sanctuary.schemas.user import (
    ChangePasswordResponse,
    ForgotPasswordResponse,
    LoginResponse,
    SignupResponse,
    UserResponse,
)
from sanctuary.services.mail_service import Mailer, mailer
from sanctuary.services.password_service import PasswordService, password_service
from sanctuary.services.token_service import Identity, TokenService, token_service

logger = logging.getLogger(__name__)

NOT_AUTHORIZED_TO_CHANGE = "User is not authorized to make this change."


class UserService:

    def __init__(
        self,
        passwords: Optional[PasswordService] = None,
        tokens: Optional[TokenService] = None,
        mail: Optional[Mailer] = None,
    ):
        self.passwords = passwords or password_service
        self.tokens = tokens or token_service
        self.mail = mail or mailer

    async def signup(self, db: AsyncSession, email: str, password: str) -> SignupResponse:
        """
        Register a new, unapproved account and notify the administrator.

        Raises:
            ConflictError: the email is already registered (409)
        """
        if await self._find_by_email(db, email) is not None:
            raise ConflictError(
                message="An account with this email already exists.",
                context={"email": email},
            )

        user = User(
            email=email,
            password_hash=await self.passwords.hash(password),
            is_approved=False,
        )
        try:
            db.add(user)
            await db.flush()
            # Committed before the admin is told about the account
            await db.commit()
        except IntegrityError:
            # Concurrent signup with the same email won the unique index
            raise ConflictError(
                message="An account with this email already exists.",
                context={"email": email},
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", e, exc_info=True)
            raise DatabaseError(message="Could not create user.")

        logger.info("User signed up: %s (%s), awaiting approval", user.id, user.email)
        outcome = await self.mail.send_signup_notice(user.email)
        return SignupResponse(new_user=UserResponse.model_validate(user), email_response=outcome)

    async def login(self, db: AsyncSession, email: str, password: str) -> LoginResponse:
        """
        Exchange credentials for a bearer token.

        Raises:
            NotFoundError: no account with this email (404)
            UnauthorizedError: account not approved, or wrong password (401)
        """
        user = await self._find_by_email(db, email)
        if user is None:
            logger.info("Login for unknown email")
            raise NotFoundError(resource="user account")

        if not user.is_approved:
            logger.info("Login refused for unapproved user %s", user.id)
            raise UnauthorizedError("User account has not yet been approved.")

        if not await self.passwords.verify(password, user.password_hash):
            logger.info("Login refused for user %s: bad password", user.id)
            raise UnauthorizedError("Could not login. Please enter a valid password.")

        token = self.tokens.issue(Identity(email=user.email, user_id=str(user.id)))
        logger.info("User logged in: %s", user.id)
        return LoginResponse(token=token, expires_in=self.tokens.expires_in, user_id=user.id)

    async def forgot_password(self, db: AsyncSession, email: str) -> ForgotPasswordResponse:
        """
        Replace the password with a generated one and email it to the user.

        The new password is sent in plaintext; see Mailer.send_password_reset.

        Raises:
            NotFoundError: no account with this email (404)
            UnauthorizedError: the update affected no records (401)
        """
        user = await self._find_by_email(db, email)
        if user is None:
            raise NotFoundError(resource="user account")

        new_password = self.passwords.generate()
        rowcount = await self._set_password_hash(db, user.id, await self.passwords.hash(new_password))
        if rowcount == 0:
            raise UnauthorizedError(NOT_AUTHORIZED_TO_CHANGE)

        # The emailed password must already be the stored one
        await self._commit(db, user.id)

        logger.info("Password reset for user %s", user.id)
        outcome = await self.mail.send_password_reset(user.email, new_password)
        return ForgotPasswordResponse(
            user=UpdateResult(matched_count=rowcount, modified_count=rowcount),
            email_response=outcome,
        )

    async def change_password(
        self,
        db: AsyncSession,
        identity: Identity,
        new_password: str,
    ) -> ChangePasswordResponse:
        """
        Set a new password for the authenticated caller.

        Raises:
            NotFoundError: the caller's account no longer exists (404)
            UnauthorizedError: the update affected no records (401)
        """
        try:
            user_id = uuid.UUID(identity.user_id)
        except ValueError:
            raise UnauthorizedError(NOT_AUTHORIZED_TO_CHANGE)

        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, e)
            raise DatabaseError(message="Could not update this user.")
        if user is None:
            raise NotFoundError(resource="user account")

        rowcount = await self._set_password_hash(db, user.id, await self.passwords.hash(new_password))
        if rowcount == 0:
            raise UnauthorizedError(NOT_AUTHORIZED_TO_CHANGE)

        logger.info("Password changed for user %s", user.id)
        return ChangePasswordResponse(
            user=UpdateResult(matched_count=rowcount, modified_count=rowcount),
        )

    async def _find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", e)
            raise DatabaseError(message="Could not look up the user account.")

    async def _set_password_hash(self, db: AsyncSession, user_id: uuid.UUID, password_hash: str) -> int:
        try:
            result = await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Database error updating user %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not update this user.")
        return result.rowcount

    async def _commit(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error committing user %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not update this user.")


user_service = UserService()
