from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from onboarding_resume.infrastructure.db.pool import create_pool
from onboarding_resume.infrastructure.email.http_smtp_adapter import HttpSmtpCodeSender
from onboarding_resume.infrastructure.redis_cache.pool import close_redis, create_redis
from onboarding_resume.logging import setup_logging
from onboarding_resume.presentation.api import api
from onboarding_resume.presentation.error_handlers import register_error_handlers
from onboarding_resume.settings import get_settings

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup: every store handle is built here and shared via app.state
    pool = create_pool(settings.database_url)
    await pool.open()
    redis = create_redis(settings.redis_url)
    http_client = httpx.AsyncClient(timeout=settings.smtp_timeout_seconds)

    app.state.pool = pool
    app.state.redis = redis
    app.state.code_sender = HttpSmtpCodeSender(
        base_url=settings.smtp_base_url,
        client=http_client,
    )

    try:
        yield
    finally:
        # shutdown
        await http_client.aclose()
        await close_redis(redis)
        await pool.close()


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Onboarding Resume API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.include_router(api)
    register_error_handlers(app)
    return app


app = create_app()
