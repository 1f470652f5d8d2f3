"""
RFC 9457 problem documents for every error the API reports.

Each problem type declares its status, title and type slug as class
attributes; the body always carries ``type``, ``title``, ``status`` and a
stable ``message`` (``detail`` repeated, or the title when there is none),
plus type-specific members such as ``code`` or ``available_quantity``.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://api.vanuatu-stays.example/problems"


class ProblemDetailsException(HTTPException):
    """Base problem; raise a subclass, or this class directly for one-off statuses."""

    status: ClassVar[int] = 500
    default_title: ClassVar[str] = "Error"
    slug: ClassVar[Optional[str]] = None

    def __init__(
        self,
        status_code: Optional[int] = None,
        title: Optional[str] = None,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code or self.status
        self.title = title or self.default_title
        self.detail = detail
        self.type_uri = type_uri or (
            f"{PROBLEM_BASE_URI}/{self.slug}" if self.slug else f"about:blank#{self.status_code}"
        )
        self.instance = instance
        self.extensions = {key: value for key, value in (extensions or {}).items() if value is not None}

        body: Dict[str, Any] = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
            "message": detail or self.title,
        }
        if detail:
            body["detail"] = detail
        if instance:
            body["instance"] = instance
        body.update(self.extensions)
        self.problem_details = body

        super().__init__(status_code=self.status_code, detail=body, headers=headers)

    @property
    def message(self) -> str:
        return self.problem_details["message"]


class ValidationError(ProblemDetailsException):
    """Malformed input, failed business validation, or bad login credentials."""

    status = 400
    default_title = "Validation Error"
    slug = "validation-error"

    def __init__(
        self,
        detail: str = "The request data failed validation",
        violations: Optional[List[Dict[str, Any]]] = None,
        instance: Optional[str] = None,
    ):
        super().__init__(detail=detail, instance=instance, extensions={"violations": violations or None})


class AuthenticationError(ProblemDetailsException):
    status = 401
    default_title = "Authentication Required"
    slug = "authentication-required"

    def __init__(self, detail: str = "Authentication credentials are required", instance: Optional[str] = None):
        super().__init__(detail=detail, instance=instance, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ProblemDetailsException):
    """Authenticated, but neither the owner of the resource nor in the required role."""

    status = 403
    default_title = "Access Forbidden"
    slug = "access-forbidden"

    def __init__(
        self,
        detail: str = "Not authorized to perform this action",
        required_role: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        super().__init__(detail=detail, instance=instance, extensions={"required_role": required_role})


class NotFoundError(ProblemDetailsException):
    status = 404
    default_title = "Resource Not Found"
    slug = "resource-not-found"

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        super().__init__(
            detail=detail or f"{resource_type.capitalize()} not found",
            instance=instance,
            extensions={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(ProblemDetailsException):
    """
    The request is valid but clashes with stored state.

    ``code`` is the machine-readable reason clients branch on, for example
    ``DUPLICATE_REVIEW`` or ``INVALID_STATUS_TRANSITION``.
    """

    status = 409
    default_title = "Resource Conflict"
    slug = "resource-conflict"

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        super().__init__(
            detail=detail,
            instance=instance,
            extensions={"conflicting_resource": conflicting_resource, "code": code},
        )


class AvailabilityError(ProblemDetailsException):
    """Not enough rooms, seats or places left; reported as a 400 with code ``UNAVAILABLE``."""

    status = 400
    default_title = "Not Available"
    slug = "not-available"

    def __init__(
        self,
        requested_quantity: int,
        available_quantity: int,
        unit: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        available = max(available_quantity, 0)
        if not detail:
            detail = f"Requested quantity ({requested_quantity}) exceeds available quantity ({available})"
            if unit:
                detail += f" for {unit}"

        super().__init__(
            detail=detail,
            instance=instance,
            extensions={
                "code": "UNAVAILABLE",
                "requested_quantity": requested_quantity,
                "available_quantity": available,
                "unit": unit,
            },
        )


class InternalServerError(ProblemDetailsException):
    """Opaque failure; ``error_id`` ties the response to the server log entry."""

    status = 500
    default_title = "Internal Server Error"
    slug = "internal-server-error"

    def __init__(
        self,
        detail: str = "An unexpected error occurred while processing the request",
        error_id: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        super().__init__(
            detail=detail,
            instance=instance,
            extensions={
                "error_id": error_id or str(uuid.uuid4()),
                "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            },
        )


def _problem_response(problem: ProblemDetailsException) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status_code,
        content=problem.problem_details,
        headers=problem.headers,
        media_type="application/problem+json",
    )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    return _problem_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body, query and path validation failures as one 400 problem with per-field violations."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return _problem_response(ValidationError(violations=violations, instance=request.url.path))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback under a fresh error id and answer an opaque 500."""
    problem = InternalServerError(instance=request.url.path)
    logger.error(
        "Unhandled exception",
        extra={"error_id": problem.extensions["error_id"], "path": request.url.path},
        exc_info=exc,
    )
    return _problem_response(problem)
