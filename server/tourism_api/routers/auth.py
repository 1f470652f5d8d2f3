"""Authentication router: registration, login and current user."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..models.user import User as UserModel
from ..schemas.user import AuthResponse, LoginRequest, RegisterRequest, User
from ..services.auth_service import AuthService
from .converters import user_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(request: RegisterRequest, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """Create an account and return a bearer token for it."""
    auth_service = AuthService(db)

    try:
        user = await auth_service.register(request)
        response_data = AuthResponse(token=auth_service.issue_token(user), user=user_to_schema(user))
        return JSONResponse(status_code=201, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in registration", extra={"error": str(e)}, exc_info=True)
        raise InternalServerError()


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Exchange credentials for a bearer token.

    Unknown email and wrong password produce the same 400 response.
    """
    auth_service = AuthService(db)

    try:
        user = await auth_service.login(request)
        response_data = AuthResponse(token=auth_service.issue_token(user), user=user_to_schema(user))
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in login", extra={"error": str(e)}, exc_info=True)
        raise InternalServerError()


@router.get("/me", response_model=User)
async def me(current_user: UserModel = RequiredAuth) -> JSONResponse:
    return JSONResponse(status_code=200, content=user_to_schema(current_user).to_json())
