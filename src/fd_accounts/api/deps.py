"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..auth.tokens import Principal
from ..core.errors import AuthenticationError

_bearer = HTTPBearer(auto_error=False)


def get_container(request: Request):
    return request.app.state.container


def require_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Principal:
    """Resolve the caller from the ``Authorization: Bearer`` header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return request.app.state.container.verifier.verify(credentials.credentials)
