"""
Storage contracts used by the service layer.

Services depend on these protocols only. The asyncpg implementations live in
`questions/repository.py` and `auth/repository.py`; tests plug in in-memory
versions.

Error contract for every implementation:
- reads of an absent id raise `errors.NotFound`
- an answer pointing at a missing question raises `errors.ConstraintViolation`
- a duplicate account email raises `errors.AlreadyExists`
- anything else unexpected raises `errors.StorageError`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class Question:
    id: int
    title: str
    content: str
    tags: list[str]
    created_on: datetime


@dataclass(frozen=True)
class Answer:
    id: int
    question_id: int
    content: str
    created_on: datetime


@dataclass(frozen=True)
class Account:
    id: int
    email: str
    password_hash: str = field(repr=False)
    created_at: datetime | None = None


@dataclass(frozen=True)
class Session:
    client_id: str
    client_secret_hash: str = field(repr=False)
    owner_email: str = ""
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Page:
    offset: int = 0
    limit: int = 20


class QuestionStore(Protocol):
    async def create_question(self, *, title: str, content: str, tags: list[str]) -> Question: ...

    async def get_question(self, question_id: int) -> Question: ...

    async def list_questions(self, page: Page, *, tags: list[str] | None = None) -> list[Question]: ...

    async def update_question(self, question_id: int, patch: dict[str, Any]) -> Question: ...

    async def delete_question(self, question_id: int) -> None: ...

    async def create_answer(self, *, question_id: int, content: str) -> Answer: ...

    async def get_answer(self, answer_id: int) -> Answer: ...

    async def list_answers(self, question_id: int) -> list[Answer]: ...

    async def update_answer(self, answer_id: int, *, content: str) -> Answer: ...

    async def delete_answer(self, answer_id: int) -> None: ...


class AccountStore(Protocol):
    async def create_account(self, *, email: str, password_hash: str) -> Account: ...

    async def find_account(self, email: str) -> Account: ...

    async def delete_account(self, email: str) -> None: ...

    async def store_session(
        self,
        *,
        client_id: str,
        client_secret_hash: str,
        owner_email: str,
        expires_at: datetime,
    ) -> Session: ...

    async def find_session(self, client_id: str) -> Session: ...

    async def revoke_session(self, client_id: str) -> None: ...
