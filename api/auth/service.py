"""
Auth business logic: registration, login, session validation and logout.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from core import errors
from core.storage import Account, AccountStore

from . import repository, security

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedSession:
    client_id: str
    client_secret: str = field(repr=False)
    owner_email: str
    expires_at: datetime


class CredentialManager:
    def __init__(
        self,
        store: AccountStore,
        *,
        session_ttl: timedelta = timedelta(hours=24),
        bcrypt_rounds: int = 12,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._session_ttl = session_ttl
        self._bcrypt_rounds = bcrypt_rounds
        self._clock = clock

    async def register(self, email: str, plaintext_password: str) -> Account:
        email = repository.normalize_email(email)
        if not email or "@" not in email:
            raise errors.ValidationError("A valid email is required.")
        if not plaintext_password:
            raise errors.ValidationError("Password is required.")

        try:
            await self._store.find_account(email)
        except errors.NotFound:
            pass
        else:
            raise errors.AlreadyExists("Email is already registered.")

        try:
            # bcrypt is CPU-bound; keep it off the event loop.
            password_hash = await asyncio.to_thread(
                security.hash_password,
                plaintext_password,
                rounds=self._bcrypt_rounds,
            )
        except security.AuthSecurityError as exc:
            raise errors.ValidationError(str(exc)) from exc

        # A concurrent registration can still win the race; the store raises AlreadyExists.
        account = await self._store.create_account(email=email, password_hash=password_hash)
        logger.info("account_registered account_id=%s", account.id)
        return account

    async def authenticate(self, email: str, plaintext_password: str) -> IssuedSession:
        email = repository.normalize_email(email)
        try:
            account = await self._store.find_account(email)
        except errors.NotFound:
            account = None

        if account is None:
            await asyncio.to_thread(
                security.burn_password_check,
                plaintext_password,
                rounds=self._bcrypt_rounds,
            )
            raise errors.InvalidCredentials()

        is_valid = await asyncio.to_thread(
            security.verify_password,
            plaintext_password,
            account.password_hash,
        )
        if not is_valid:
            raise errors.InvalidCredentials()

        client_id = security.build_client_id()
        client_secret = security.build_client_secret()
        expires_at = self._clock() + self._session_ttl
        await self._store.store_session(
            client_id=client_id,
            client_secret_hash=security.hash_client_secret(client_secret),
            owner_email=account.email,
            expires_at=expires_at,
        )
        logger.info("session_issued account_id=%s client_id=%s", account.id, client_id)
        return IssuedSession(
            client_id=client_id,
            client_secret=client_secret,
            owner_email=account.email,
            expires_at=expires_at,
        )

    async def validate(self, client_id: str, presented_secret: str) -> str:
        """
        Return the email owning the session, or raise Unauthorized.
        """
        if not client_id or not presented_secret:
            raise errors.Unauthorized()

        try:
            session = await self._store.find_session(client_id)
        except errors.NotFound as exc:
            raise errors.Unauthorized() from exc

        if not security.secret_matches(presented_secret, session.client_secret_hash):
            raise errors.Unauthorized()

        if session.revoked_at is not None:
            raise errors.Unauthorized("Session has been revoked.")

        expires_at = session.expires_at
        if expires_at is None or expires_at <= self._clock():
            raise errors.Unauthorized("Session has expired.")

        return session.owner_email

    async def revoke(self, client_id: str) -> None:
        if not client_id:
            return None
        await self._store.revoke_session(client_id)
        logger.info("session_revoked client_id=%s", client_id)

    async def get_account(self, email: str) -> Account:
        return await self._store.find_account(repository.normalize_email(email))

    async def delete_account(self, email: str) -> None:
        """
        Remove the account. Its sessions go with it, so every credential it
        was issued stops validating.
        """
        account = await self.get_account(email)
        await self._store.delete_account(account.email)
        logger.info("account_deleted account_id=%s", account.id)
