import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dsa_practice.auth.router import router as auth_router
from dsa_practice.comments.router import router as comments_router
from dsa_practice.core.config import Settings, get_settings
from dsa_practice.core.database import MongoManager, create_indexes
from dsa_practice.core.errors import register_error_handlers
from dsa_practice.judge.client import JudgeClient, OpenRouterJudgeClient
from dsa_practice.problems.router import router as problems_router
from dsa_practice.progress.router import router as progress_router
from dsa_practice.submissions.router import router as submissions_router
from dsa_practice.system.health_router import router as health_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, judge: Optional[JudgeClient] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.uses_default_secret:
            logger.warning("JWT_SECRET is not set, tokens are signed with the default secret")
        if not settings.openrouter_api_key:
            logger.warning("OPENROUTER_API_KEY is not set, trial submissions will be rejected by the judge")
        await app.state.mongo.connect()
        try:
            try:
                await create_indexes(app.state.mongo.db)
            except Exception as e:
                logger.warning("Index creation warning: %s", e)
            yield
        finally:
            await app.state.mongo.disconnect()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.mongo = MongoManager(settings)
    app.state.judge = judge or OpenRouterJudgeClient.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
    )

    register_error_handlers(app)

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(auth_router, prefix="/api")
    app.include_router(problems_router, prefix="/api")
    app.include_router(progress_router, prefix="/api")
    app.include_router(submissions_router, prefix="/api")
    app.include_router(comments_router, prefix="/api")
    app.include_router(health_router, prefix="/api")
    # =============================================================

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
