"""
Question/answer orchestration.

Flow for every write:
1) Check the requester and validate input (no external calls yet)
2) Check referenced records exist
3) Screen each free-text field through the moderator (fail-closed)
4) Persist with a single statement or transaction

Screening always finishes before the write starts, so a rejected or
unscreened value is never stored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from core import errors
from core.moderation import Moderator, ScreenResult
from core.storage import Answer, Page, Question, QuestionStore

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 255
MAX_CONTENT_CHARS = 10_000
MAX_TAGS = 10
MAX_TAG_CHARS = 32


def normalize_tags(tags: list[str] | None) -> list[str]:
    """
    Lower-case, trim and de-duplicate tags. Returned sorted for stable output.
    """
    if not tags:
        return []

    normalized: set[str] = set()
    for raw in tags:
        tag = str(raw or "").strip().lower()
        if not tag:
            raise errors.ValidationError("Tags must not be empty.")
        if len(tag) > MAX_TAG_CHARS:
            raise errors.ValidationError(f"Tags must be at most {MAX_TAG_CHARS} characters.")
        normalized.add(tag)

    if len(normalized) > MAX_TAGS:
        raise errors.ValidationError(f"At most {MAX_TAGS} tags are allowed.")
    return sorted(normalized)


def _require_text(field: str, value: str | None, *, max_chars: int) -> str:
    text = (value or "").strip()
    if not text:
        raise errors.ValidationError(f"'{field}' must not be empty.")
    if len(text) > max_chars:
        raise errors.ValidationError(f"'{field}' must be at most {max_chars} characters.")
    return text


def _require_writer(requester: str | None) -> str:
    # Shared-ownership tier: any authenticated account may write any record.
    if not requester:
        raise errors.Forbidden()
    return requester


class QuestionService:
    def __init__(
        self,
        store: QuestionStore,
        moderator: Moderator,
        *,
        default_limit: int = 20,
        max_limit: int = 100,
    ) -> None:
        self._store = store
        self._moderator = moderator
        self._default_limit = default_limit
        self._max_limit = max_limit

    async def _screen(self, fields: dict[str, str]) -> None:
        """
        Screen every field concurrently; raise unless all come back clean.
        """
        if not fields:
            return None

        names = list(fields)
        results = await asyncio.gather(*(self._moderator.screen(fields[name]) for name in names))
        outcome = dict(zip(names, results))

        for name in names:
            if outcome[name] is ScreenResult.FLAGGED:
                logger.info("content_rejected field=%s", name)
                raise errors.ContentRejected(name)

        unavailable = [name for name in names if outcome[name] is not ScreenResult.CLEAN]
        if unavailable:
            raise errors.ModerationUnavailable(
                f"Moderation unavailable for field(s): {', '.join(unavailable)}."
            )

    def page(self, offset: int | None = None, limit: int | None = None) -> Page:
        offset = 0 if offset is None else offset
        limit = self._default_limit if limit is None else limit
        if offset < 0:
            raise errors.ValidationError("'offset' must be >= 0.")
        if limit < 1 or limit > self._max_limit:
            raise errors.ValidationError(f"'limit' must be between 1 and {self._max_limit}.")
        return Page(offset=offset, limit=limit)

    async def list_questions(
        self,
        page: Page,
        tag_filter: list[str] | None = None,
    ) -> list[Question]:
        return await self._store.list_questions(page, tags=normalize_tags(tag_filter) or None)

    async def get_question(self, question_id: int) -> Question:
        return await self._store.get_question(question_id)

    async def create_question(
        self,
        title: str,
        content: str,
        tags: list[str] | None,
        requester: str | None,
    ) -> Question:
        _require_writer(requester)
        title = _require_text("title", title, max_chars=MAX_TITLE_CHARS)
        content = _require_text("content", content, max_chars=MAX_CONTENT_CHARS)
        normalized_tags = normalize_tags(tags)

        await self._screen({"title": title, "content": content})

        question = await self._store.create_question(title=title, content=content, tags=normalized_tags)
        logger.info("question_created id=%s", question.id)
        return question

    async def update_question(
        self,
        question_id: int,
        patch: dict[str, Any],
        requester: str | None,
    ) -> Question:
        _require_writer(requester)

        clean: dict[str, Any] = {}
        if patch.get("title") is not None:
            clean["title"] = _require_text("title", patch["title"], max_chars=MAX_TITLE_CHARS)
        if patch.get("content") is not None:
            clean["content"] = _require_text("content", patch["content"], max_chars=MAX_CONTENT_CHARS)
        if patch.get("tags") is not None:
            clean["tags"] = normalize_tags(patch["tags"])
        if not clean:
            raise errors.ValidationError("Provide at least one of: title, content, tags.")

        await self._store.get_question(question_id)
        await self._screen({name: clean[name] for name in ("title", "content") if name in clean})

        question = await self._store.update_question(question_id, clean)
        logger.info("question_updated id=%s fields=%s", question.id, ",".join(sorted(clean)))
        return question

    async def delete_question(self, question_id: int, requester: str | None) -> None:
        _require_writer(requester)
        await self._store.delete_question(question_id)
        logger.info("question_deleted id=%s", question_id)

    async def list_answers(self, question_id: int) -> list[Answer]:
        await self._store.get_question(question_id)
        return await self._store.list_answers(question_id)

    async def create_answer(self, question_id: int, content: str, requester: str | None) -> Answer:
        _require_writer(requester)
        content = _require_text("content", content, max_chars=MAX_CONTENT_CHARS)

        await self._store.get_question(question_id)
        await self._screen({"content": content})

        try:
            answer = await self._store.create_answer(question_id=question_id, content=content)
        except errors.ConstraintViolation as exc:
            # Parent vanished between the existence check and the insert.
            raise errors.NotFound(f"Question {question_id} not found.") from exc
        logger.info("answer_created id=%s question_id=%s", answer.id, question_id)
        return answer

    async def update_answer(self, answer_id: int, content: str, requester: str | None) -> Answer:
        _require_writer(requester)
        content = _require_text("content", content, max_chars=MAX_CONTENT_CHARS)

        await self._store.get_answer(answer_id)
        await self._screen({"content": content})

        answer = await self._store.update_answer(answer_id, content=content)
        logger.info("answer_updated id=%s", answer.id)
        return answer

    async def delete_answer(self, answer_id: int, requester: str | None) -> None:
        _require_writer(requester)
        await self._store.delete_answer(answer_id)
        logger.info("answer_deleted id=%s", answer_id)
