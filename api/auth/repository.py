"""
Auth persistence helpers (accounts + session credentials).
"""

from __future__ import annotations

from datetime import datetime, timezone

import asyncpg

from core import errors
from core.db import Database, affected_rows
from core.storage import Account, Session


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _to_account(row: dict) -> Account:
    return Account(
        id=int(row["id"]),
        email=str(row["email"]),
        password_hash=str(row["password_hash"]),
        created_at=row.get("created_at"),
    )


def _to_session(row: dict) -> Session:
    return Session(
        client_id=str(row["client_id"]),
        client_secret_hash=str(row["client_secret_hash"]),
        owner_email=str(row["owner_email"]),
        expires_at=row.get("expires_at"),
        revoked_at=row.get("revoked_at"),
        created_at=row.get("created_at"),
    )


class AccountRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_account(self, *, email: str, password_hash: str) -> Account:
        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO accounts (email, password_hash)
                VALUES ($1, $2)
                RETURNING id, email, password_hash, created_at
                """,
                normalize_email(email),
                password_hash,
            )
        except asyncpg.UniqueViolationError as exc:
            raise errors.AlreadyExists("Email is already registered.") from exc
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to create account.") from exc
        if row is None:
            raise errors.StorageError("Failed to create account.")
        return _to_account(row)

    async def find_account(self, email: str) -> Account:
        try:
            row = await self._db.fetch_one(
                """
                SELECT id, email, password_hash, created_at
                FROM accounts
                WHERE email = $1
                """,
                normalize_email(email),
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to load account.") from exc
        if row is None:
            raise errors.NotFound("Account not found.")
        return _to_account(row)

    async def delete_account(self, email: str) -> None:
        # sessions.owner_email cascades.
        try:
            status_tag = await self._db.execute(
                """
                DELETE FROM accounts
                WHERE email = $1
                """,
                normalize_email(email),
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to delete account.") from exc
        if affected_rows(status_tag) == 0:
            raise errors.NotFound("Account not found.")

    async def store_session(
        self,
        *,
        client_id: str,
        client_secret_hash: str,
        owner_email: str,
        expires_at: datetime,
    ) -> Session:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO sessions (client_id, client_secret_hash, owner_email, expires_at)
                VALUES ($1, $2, $3, $4)
                RETURNING client_id, client_secret_hash, owner_email, expires_at, revoked_at, created_at
                """,
                client_id,
                client_secret_hash,
                normalize_email(owner_email),
                expires_at,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to store session.") from exc
        if row is None:
            raise errors.StorageError("Failed to store session.")
        return _to_session(row)

    async def find_session(self, client_id: str) -> Session:
        try:
            row = await self._db.fetch_one(
                """
                SELECT client_id, client_secret_hash, owner_email, expires_at, revoked_at, created_at
                FROM sessions
                WHERE client_id = $1
                """,
                client_id,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to load session.") from exc
        if row is None:
            raise errors.NotFound("Session not found.")
        return _to_session(row)

    async def revoke_session(self, client_id: str) -> None:
        try:
            await self._db.execute(
                """
                UPDATE sessions
                SET revoked_at = now()
                WHERE client_id = $1
                  AND revoked_at IS NULL
                """,
                client_id,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to revoke session.") from exc
