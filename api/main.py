from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from auth.repository import AccountRepository
from auth.service import CredentialManager
from core import errors
from core.config import Settings
from core.db import Database
from core.middleware import RequestIDMiddleware
from core.moderation import ModerationGateway, Moderator, PassThroughModerator
from core.storage import AccountStore, QuestionStore
from questions import router as questions_router
from questions.repository import QuestionRepository
from questions.service import QuestionService

logger = logging.getLogger(__name__)


def _build_moderator(settings: Settings) -> Moderator:
    if not settings.moderation_enabled:
        logger.warning("moderation_disabled all submitted text will be accepted unscreened")
        return PassThroughModerator()
    return ModerationGateway.from_settings(settings)


def create_app(
    settings: Settings | None = None,
    *,
    question_store: QuestionStore | None = None,
    account_store: AccountStore | None = None,
    moderator: Moderator | None = None,
) -> FastAPI:
    """
    Wire settings, storage, moderation and services into a FastAPI app.

    Stores and the moderator can be injected; anything not injected is built
    from `settings` and owned (opened/closed) by the app lifespan.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    db: Database | None = None
    if question_store is None or account_store is None:
        db = Database.from_settings(settings)
        question_store = question_store or QuestionRepository(db)
        account_store = account_store or AccountRepository(db)

    owned_moderator = moderator is None
    moderator = moderator or _build_moderator(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # Initialize the DB pool once per process.
        if db is not None:
            await db.connect()
        try:
            yield
        finally:
            if owned_moderator:
                await moderator.aclose()
            if db is not None:
                await db.close()

    app = FastAPI(title="qa-store", lifespan=lifespan)
    app.state.settings = settings
    app.state.credentials = CredentialManager(
        account_store,
        session_ttl=timedelta(minutes=settings.session_ttl_minutes),
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    app.state.questions = QuestionService(
        question_store,
        moderator,
        default_limit=min(settings.page_default_limit, settings.page_max_limit),
        max_limit=settings.page_max_limit,
    )

    # Allow local frontend dev server to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    errors.install_error_handlers(app)

    app.include_router(questions_router.router, tags=["questions"])
    app.include_router(auth_router.router, tags=["accounts"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "qa-store api"}

    return app
