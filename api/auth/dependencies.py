"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, Request

from core import errors

from . import security
from .service import CredentialManager


@dataclass(frozen=True)
class Identity:
    email: str
    client_id: str


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise errors.Unauthorized("Missing Authorization header.")

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise errors.Unauthorized("Invalid Authorization header format.")

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise errors.Unauthorized("Authorization must be: Bearer <client_id>:<client_secret>.")
    return token


def get_credential_manager(request: Request) -> CredentialManager:
    return request.app.state.credentials


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_identity(
    token: str = Depends(get_bearer_token),
    credentials: CredentialManager = Depends(get_credential_manager),
) -> Identity:
    try:
        client_id, client_secret = security.parse_bearer_credential(token)
    except security.AuthSecurityError as exc:
        raise errors.Unauthorized(str(exc)) from exc

    email = await credentials.validate(client_id, client_secret)
    return Identity(email=email, client_id=client_id)
