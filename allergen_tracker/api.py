# -*- coding: utf-8 -*-
"""
Allergen tracker API

Food/symptom records stored on a key/value ledger, with asynchronous analysis.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .records.api import get_services, operations_router, record_error_handler, router as records_router
from .records.errors import RecordStoreError
from .records.services import RecordServices

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def create_app(services: Optional[RecordServices] = None) -> FastAPI:
    """Build the app. Without ``services`` they are built from settings on first use."""
    app = FastAPI(
        title="Allergen Tracker",
        description="Encrypted food/symptom records with allergen analysis",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RecordStoreError, record_error_handler)
    app.state.services = services

    @app.get("/api/health")
    async def health(current: RecordServices = Depends(get_services)) -> dict:
        available = await current.store.is_available()
        return {"ok": True, "backend": settings.backend, "available": available}

    app.include_router(records_router)
    app.include_router(operations_router)
    return app


app = create_app()


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    configure_logging()
    uvicorn.run("allergen_tracker.api:app", host=settings.host, port=settings.port, reload=False)
