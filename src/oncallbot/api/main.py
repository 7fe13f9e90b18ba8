from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI

from oncallbot.api.routes import health, slack
from oncallbot.config import get_settings
from oncallbot.logging import configure_logging
from oncallbot.runtime import build_runtime

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    runtime = build_runtime(settings)
    app.state.runtime = runtime
    logger.info(
        "oncallbot_started",
        teams=len(runtime.directory),
        slack_replies=bool(runtime.settings.slack_bot_token),
        signature_check=bool(runtime.settings.slack_signing_secret),
    )
    try:
        yield
    finally:
        await runtime.aclose()
        logger.info("oncallbot_stopped")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="On-call Bot",
        version="0.1.0",
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    app.include_router(slack.router, prefix=settings.api_prefix, tags=["slack"])
    app.include_router(health.router, tags=["health"])
    return app


app = create_app()
