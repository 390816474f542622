# app/api/deps.py
"""Shared route dependencies."""

from fastapi import HTTPException

from ..container import Container, get_container
from ..errors import ReschedulerError


def container_dependency() -> Container:
    """FastAPI dependency returning the wired component graph."""
    return get_container()


def http_error(error: ReschedulerError) -> HTTPException:
    """Map a core error to its HTTP status."""
    return HTTPException(status_code=error.status_code, detail=str(error))
