"""Registration and login."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, ValidationError
from ..core.security import create_access_token, hash_password, verify_password
from ..models.user import User, UserRole
from ..schemas.user import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """Service for account creation and token issue."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(str(user.id), user.role)

    async def register(self, request: RegisterRequest) -> User:
        """
        Create an account.

        Raises:
            ConflictError: If the email is already registered
        """
        email = request.email.strip().lower()
        if await self.get_user_by_email(email):
            raise ConflictError("User already exists", code="DUPLICATE_EMAIL")

        user = User(
            email=email,
            password_hash=hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            phone=request.phone,
            role=UserRole(request.role).value,
            preferences={},
            payment_methods=[],
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists", code="DUPLICATE_EMAIL")

        logger.info("User registered", extra={"user_id": str(user.id), "role": user.role})
        return user

    async def login(self, request: LoginRequest) -> User:
        """
        Check credentials.

        Unknown email, wrong password and deactivated accounts all fail with
        the same message.

        Raises:
            ValidationError: If the credentials are not accepted
        """
        user = await self.get_user_by_email(request.email)
        if user is None or not user.is_active or not verify_password(request.password, user.password_hash):
            logger.info("Login rejected", extra={"known_user": user is not None})
            raise ValidationError(INVALID_CREDENTIALS)

        logger.info("User logged in", extra={"user_id": str(user.id)})
        return user
