from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from pydantic import ValidationError
from typing import Any, Dict, Optional
import logging

from app.core.exceptions import NotFound, ValidationFailed, format_validation_errors
from app.core.security import get_password_hash, verify_password, issue_token
from app.modules.users.models import User
from app.modules.users import schemas

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for signup and login"""

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def validate_signup(db: AsyncSession, payload: Dict[str, Any]) -> schemas.UserSignupRequest:
        """
        Run the field rules and the email uniqueness rule in one pass.

        All failures are reported together, one per field, in field order.
        """
        try:
            user_data = schemas.UserSignupRequest.model_validate(payload)
            errors = []
        except ValidationError as exc:
            user_data = None
            errors = format_validation_errors(exc.errors())

        email = payload.get("email")
        email_failed = any(error["key"] == "email" for error in errors)
        if not email_failed and isinstance(email, str) and await UserService.get_user_by_email(db, email):
            errors.append({"key": "email", "message": "The email has already been taken."})

        if errors:
            order = list(schemas.UserSignupRequest.model_fields)
            errors.sort(key=lambda error: order.index(error["key"]))
            raise ValidationFailed((error["key"], error["message"]) for error in errors)

        return user_data

    @staticmethod
    async def register_user(db: AsyncSession, user_data: schemas.UserSignupRequest) -> User:
        """Create a user; the email must not be registered yet"""
        if await UserService.get_user_by_email(db, user_data.email):
            raise ValidationFailed.single("email", "The email has already been taken.")

        user = User(
            name=user_data.name,
            email=user_data.email,
            hashed_password=get_password_hash(user_data.password)
        )

        try:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            await db.rollback()
            raise ValidationFailed.single("email", "The email has already been taken.")

        logger.info("Registered user %s", user.id)
        return user

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
        """
        Check credentials.

        Unknown emails fail field validation (403); a known email with the
        wrong password is reported as not found (404).
        """
        user = await UserService.get_user_by_email(db, email)
        if user is None:
            raise ValidationFailed.single("email", "The selected email is invalid.")

        if not verify_password(password, user.hashed_password):
            logger.info("Failed login attempt for user %s", user.id)
            raise NotFound.single("message", "These credentials do not match our records.")

        return user

    @staticmethod
    def create_token(user: User) -> str:
        return issue_token(user.id)
