"""Identifier parsing shared by services and routers."""

from typing import Optional
from uuid import UUID

from sqlalchemy import inspect as sa_inspect

from .exceptions import NotFoundError


def parse_uuid(value: str | UUID, resource_type: str = "resource") -> UUID:
    """
    Parse a resource identifier.

    A malformed identifier cannot name an existing record, so it is
    reported as NotFound rather than as a validation failure.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(resource_type=resource_type, resource_id=str(value))


def identity_of(instance) -> Optional[str]:
    """
    Primary key of a persistent ORM instance, read from its identity key.

    Safe inside error handlers: it never loads attributes, so it works after
    a failed flush has left the session needing a rollback.
    """
    identity = sa_inspect(instance).identity
    return str(identity[0]) if identity else None
