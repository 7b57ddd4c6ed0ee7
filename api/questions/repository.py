"""
Question/answer persistence (raw SQL).
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import errors
from core.db import Database, affected_rows
from core.storage import Answer, Page, Question

QUESTION_COLUMNS = "id, title, content, tags, created_on"
ANSWER_COLUMNS = "id, question_id, content, created_on"

# Columns a patch may touch. Keys come from the service, never from raw input.
UPDATABLE_QUESTION_FIELDS = ("title", "content", "tags")


def _to_question(row: dict[str, Any]) -> Question:
    return Question(
        id=int(row["id"]),
        title=str(row["title"]),
        content=str(row["content"]),
        tags=sorted(row.get("tags") or []),
        created_on=row["created_on"],
    )


def _to_answer(row: dict[str, Any]) -> Answer:
    return Answer(
        id=int(row["id"]),
        question_id=int(row["question_id"]),
        content=str(row["content"]),
        created_on=row["created_on"],
    )


class QuestionRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_question(self, *, title: str, content: str, tags: list[str]) -> Question:
        try:
            row = await self._db.fetch_one(
                f"""
                INSERT INTO questions (title, content, tags)
                VALUES ($1, $2, $3::text[])
                RETURNING {QUESTION_COLUMNS}
                """,
                title,
                content,
                list(tags),
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to insert question.") from exc
        if row is None:
            raise errors.StorageError("Failed to insert question.")
        return _to_question(row)

    async def get_question(self, question_id: int) -> Question:
        try:
            row = await self._db.fetch_one(
                f"SELECT {QUESTION_COLUMNS} FROM questions WHERE id = $1",
                question_id,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to load question.") from exc
        if row is None:
            raise errors.NotFound(f"Question {question_id} not found.")
        return _to_question(row)

    async def list_questions(self, page: Page, *, tags: list[str] | None = None) -> list[Question]:
        """
        Page through questions oldest first; `tags` keeps rows sharing at least one tag.
        """
        tag_filter = list(tags) if tags else None
        try:
            rows = await self._db.fetch_all(
                f"""
                SELECT {QUESTION_COLUMNS}
                FROM questions
                WHERE ($1::text[] IS NULL OR tags && $1::text[])
                ORDER BY created_on ASC, id ASC
                LIMIT $2
                OFFSET $3
                """,
                tag_filter,
                page.limit,
                page.offset,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to list questions.") from exc
        return [_to_question(r) for r in rows]

    async def update_question(self, question_id: int, patch: dict[str, Any]) -> Question:
        fields = [name for name in UPDATABLE_QUESTION_FIELDS if name in patch]
        if not fields:
            return await self.get_question(question_id)

        assignments = []
        args: list[Any] = [question_id]
        for name in fields:
            args.append(list(patch[name]) if name == "tags" else patch[name])
            cast = "::text[]" if name == "tags" else ""
            assignments.append(f"{name} = ${len(args)}{cast}")

        try:
            row = await self._db.fetch_one(
                f"""
                UPDATE questions
                SET {", ".join(assignments)}
                WHERE id = $1
                RETURNING {QUESTION_COLUMNS}
                """,
                *args,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to update question.") from exc
        if row is None:
            raise errors.NotFound(f"Question {question_id} not found.")
        return _to_question(row)

    async def delete_question(self, question_id: int) -> None:
        """
        Delete a question and its answers in one transaction.
        """
        try:
            async with self._db.transaction() as conn:
                await conn.execute("DELETE FROM answers WHERE question_id = $1", question_id)
                status_tag = await conn.execute("DELETE FROM questions WHERE id = $1", question_id)
                if affected_rows(status_tag) == 0:
                    # Rolls back the answers delete too (there were none to begin with).
                    raise errors.NotFound(f"Question {question_id} not found.")
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to delete question.") from exc

    async def create_answer(self, *, question_id: int, content: str) -> Answer:
        try:
            row = await self._db.fetch_one(
                f"""
                INSERT INTO answers (question_id, content)
                VALUES ($1, $2)
                RETURNING {ANSWER_COLUMNS}
                """,
                question_id,
                content,
            )
        except asyncpg.ForeignKeyViolationError as exc:
            raise errors.ConstraintViolation(f"Question {question_id} does not exist.") from exc
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to insert answer.") from exc
        if row is None:
            raise errors.StorageError("Failed to insert answer.")
        return _to_answer(row)

    async def get_answer(self, answer_id: int) -> Answer:
        try:
            row = await self._db.fetch_one(
                f"SELECT {ANSWER_COLUMNS} FROM answers WHERE id = $1",
                answer_id,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to load answer.") from exc
        if row is None:
            raise errors.NotFound(f"Answer {answer_id} not found.")
        return _to_answer(row)

    async def list_answers(self, question_id: int) -> list[Answer]:
        try:
            rows = await self._db.fetch_all(
                f"""
                SELECT {ANSWER_COLUMNS}
                FROM answers
                WHERE question_id = $1
                ORDER BY created_on ASC, id ASC
                """,
                question_id,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to list answers.") from exc
        return [_to_answer(r) for r in rows]

    async def update_answer(self, answer_id: int, *, content: str) -> Answer:
        try:
            row = await self._db.fetch_one(
                f"""
                UPDATE answers
                SET content = $2
                WHERE id = $1
                RETURNING {ANSWER_COLUMNS}
                """,
                answer_id,
                content,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to update answer.") from exc
        if row is None:
            raise errors.NotFound(f"Answer {answer_id} not found.")
        return _to_answer(row)

    async def delete_answer(self, answer_id: int) -> None:
        try:
            status_tag = await self._db.execute("DELETE FROM answers WHERE id = $1", answer_id)
        except (asyncpg.PostgresError, OSError) as exc:
            raise errors.StorageError("Failed to delete answer.") from exc
        if affected_rows(status_tag) == 0:
            raise errors.NotFound(f"Answer {answer_id} not found.")
