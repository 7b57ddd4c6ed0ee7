"""
Question/answer API endpoints.

Reads are public; every write needs a valid session credential.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status

from auth import dependencies as auth_dependencies
from core.storage import Answer, Question

from . import schemas
from .service import QuestionService

router = APIRouter()


def get_question_service(request: Request) -> QuestionService:
    return request.app.state.questions


def _split_tags(raw_tags: list[str]) -> list[str]:
    # Accept both ?tag=a&tag=b and ?tag=a,b
    tags: list[str] = []
    for raw in raw_tags:
        tags.extend(part for part in raw.split(",") if part.strip())
    return tags


def _question_out(question: Question) -> schemas.QuestionResponse:
    return schemas.QuestionResponse(
        id=question.id,
        title=question.title,
        content=question.content,
        tags=list(question.tags),
        created_on=question.created_on,
    )


def _answer_out(answer: Answer) -> schemas.AnswerResponse:
    return schemas.AnswerResponse(
        id=answer.id,
        question_id=answer.question_id,
        content=answer.content,
        created_on=answer.created_on,
    )


@router.get("/questions")
async def list_questions(
    offset: int = Query(0),
    limit: int | None = Query(default=None),
    tag: list[str] = Query(default=[]),
    service: QuestionService = Depends(get_question_service),
) -> schemas.QuestionListResponse:
    page = service.page(offset, limit)
    questions = await service.list_questions(page, _split_tags(tag))
    return schemas.QuestionListResponse(
        questions=[_question_out(q) for q in questions],
        offset=page.offset,
        limit=page.limit,
        count=len(questions),
    )


@router.get("/questions/{question_id}")
async def get_question(
    question_id: int,
    service: QuestionService = Depends(get_question_service),
) -> schemas.QuestionResponse:
    return _question_out(await service.get_question(question_id))


@router.post("/questions", status_code=status.HTTP_201_CREATED)
async def create_question(
    payload: schemas.QuestionCreateRequest,
    identity: auth_dependencies.Identity = Depends(auth_dependencies.get_current_identity),
    service: QuestionService = Depends(get_question_service),
) -> schemas.QuestionResponse:
    question = await service.create_question(
        payload.title,
        payload.content,
        payload.tags,
        requester=identity.email,
    )
    return _question_out(question)


@router.put("/questions/{question_id}")
async def update_question(
    question_id: int,
    payload: schemas.QuestionUpdateRequest,
    identity: auth_dependencies.Identity = Depends(auth_dependencies.get_current_identity),
    service: QuestionService = Depends(get_question_service),
) -> schemas.QuestionResponse:
    question = await service.update_question(
        question_id,
        payload.model_dump(exclude_none=True),
        requester=identity.email,
    )
    return _question_out(question)


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    question_id: int,
    identity: auth_dependencies.Identity = Depends(auth_dependencies.get_current_identity),
    service: QuestionService = Depends(get_question_service),
) -> Response:
    await service.delete_question(question_id, requester=identity.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/questions/{question_id}/answers")
async def list_answers(
    question_id: int,
    service: QuestionService = Depends(get_question_service),
) -> schemas.AnswerListResponse:
    answers = await service.list_answers(question_id)
    return schemas.AnswerListResponse(
        question_id=question_id,
        answers=[_answer_out(a) for a in answers],
        count=len(answers),
    )


@router.post("/questions/{question_id}/answers", status_code=status.HTTP_201_CREATED)
async def create_answer(
    question_id: int,
    payload: schemas.AnswerRequest,
    identity: auth_dependencies.Identity = Depends(auth_dependencies.get_current_identity),
    service: QuestionService = Depends(get_question_service),
) -> schemas.AnswerResponse:
    answer = await service.create_answer(question_id, payload.content, requester=identity.email)
    return _answer_out(answer)


@router.put("/answers/{answer_id}")
async def update_answer(
    answer_id: int,
    payload: schemas.AnswerRequest,
    identity: auth_dependencies.Identity = Depends(auth_dependencies.get_current_identity),
    service: QuestionService = Depends(get_question_service),
) -> schemas.AnswerResponse:
    answer = await service.update_answer(answer_id, payload.content, requester=identity.email)
    return _answer_out(answer)


@router.delete("/answers/{answer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_answer(
    answer_id: int,
    identity: auth_dependencies.Identity = Depends(auth_dependencies.get_current_identity),
    service: QuestionService = Depends(get_question_service),
) -> Response:
    await service.delete_answer(answer_id, requester=identity.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
