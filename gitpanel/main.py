"""FastAPI application entrypoint for the gitpanel server."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from gitpanel.api import api_router
from gitpanel.api import state as api_state
from gitpanel.config import load_config
from gitpanel.db import init_db
from gitpanel.errors import GitpanelError
from gitpanel.log_config import configure_logging
from gitpanel.middleware import (
    gitpanel_error_handler,
    http_exception_handler,
    request_logging_middleware,
    validation_exception_handler,
)
from gitpanel.settings import settings

load_config()
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("gitpanel server ready", data_dir=settings.data_dir())
    try:
        yield
    finally:
        api_state.shutdown()


app = FastAPI(lifespan=lifespan)

app.middleware("http")(request_logging_middleware)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(GitpanelError, gitpanel_error_handler)

app.include_router(api_router)


def run() -> None:
    """Entry point for the gitpanel-server console script."""
    uvicorn.run(
        "gitpanel.main:app",
        host=settings.host(),
        port=settings.port(),
        reload=False,
    )


if __name__ == "__main__":
    run()
