"""
Pydantic schemas for question/answer endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class QuestionCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)


class QuestionUpdateRequest(BaseModel):
    """
    Partial update; omitted fields are left unchanged.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None


class AnswerRequest(BaseModel):
    content: str = Field(..., min_length=1)


class QuestionResponse(BaseModel):
    id: int
    title: str
    content: str
    tags: list[str]
    created_on: datetime


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    content: str
    created_on: datetime


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]
    offset: int
    limit: int
    count: int


class AnswerListResponse(BaseModel):
    question_id: int
    answers: list[AnswerResponse]
    count: int
