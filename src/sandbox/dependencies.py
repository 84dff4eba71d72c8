"""
Sandbox dependencies - Dependency injection factories.

This module provides Depends() factories for the shared sandbox store
and for the user behind the bearer token.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.sandbox.store import SandboxStore, SandboxUser

# auto_error=False: missing credentials are reported as 401 below
http_bearer = HTTPBearer(auto_error=False)


def get_store(request: Request) -> SandboxStore:
    """
    Get sandbox store from app state.

    The store is created by create_app() and stored in app.state.
    """
    return request.app.state.store


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    store: SandboxStore = Depends(get_store),
) -> SandboxUser:
    """Resolve the bearer token to a user, or answer 401."""
    user = store.user_for_token(credentials.credentials) if credentials else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided or are invalid.",
        )
    return user
