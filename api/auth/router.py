"""
Account API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from . import dependencies, schemas
from .service import CredentialManager

router = APIRouter(prefix="/accounts")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: schemas.RegisterRequest,
    credentials: CredentialManager = Depends(dependencies.get_credential_manager),
) -> schemas.AccountResponse:
    account = await credentials.register(payload.email, payload.password)
    return schemas.AccountResponse(id=account.id, email=account.email, created_at=account.created_at)


@router.post("/login")
async def login(
    payload: schemas.LoginRequest,
    credentials: CredentialManager = Depends(dependencies.get_credential_manager),
) -> schemas.SessionResponse:
    issued = await credentials.authenticate(payload.email, payload.password)
    return schemas.SessionResponse(
        client_id=issued.client_id,
        client_secret=issued.client_secret,
        expires_at=issued.expires_at,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    identity: dependencies.Identity = Depends(dependencies.get_current_identity),
    credentials: CredentialManager = Depends(dependencies.get_credential_manager),
) -> Response:
    await credentials.revoke(identity.client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me")
async def me(
    identity: dependencies.Identity = Depends(dependencies.get_current_identity),
    credentials: CredentialManager = Depends(dependencies.get_credential_manager),
) -> schemas.AccountResponse:
    account = await credentials.get_account(identity.email)
    return schemas.AccountResponse(id=account.id, email=account.email, created_at=account.created_at)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    identity: dependencies.Identity = Depends(dependencies.get_current_identity),
    credentials: CredentialManager = Depends(dependencies.get_credential_manager),
) -> Response:
    await credentials.delete_account(identity.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
