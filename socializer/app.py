"""
FastAPI application entry point for the society backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from socializer.config import get_settings
from socializer.errors import SocializerError
from socializer.routes import router

logger = logging.getLogger(__name__)


async def handle_socializer_error(request: Request, exc: SocializerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Socializer Backend (FastAPI)", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SocializerError, handle_socializer_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
