# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.api import routes_advisor
from app.core.config import settings
from app.core.db import engine, init_db
from app.core.session import SessionStore
from app.services.advisor_service import AdvisorService
from app.services.llm_service import build_language_model
from app.services.persistence_service import SqlPersistence

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_advisor() -> AdvisorService:
    return AdvisorService(
        store=SessionStore(),
        llm=build_language_model(),
        persistence=SqlPersistence(engine),
    )


def create_app(advisor: AdvisorService = None):
    app = FastAPI(title=settings.APP_NAME)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_advisor.router, prefix="/api")

    if advisor is None:
        advisor = build_advisor()

        @app.on_event("startup")
        def on_startup():
            init_db()
            logger.info("database ready; llm provider=%s", settings.LLM_PROVIDER)

    app.state.advisor = advisor
    return app


app = create_app()
