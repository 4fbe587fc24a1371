"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from paydesk.api.routes import health, reports
from paydesk.core.config import AppSettings
from paydesk.persistence import create_persistence
from paydesk.services.report_service import ReportService


def create_app(report_service: Optional[ReportService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit ``report_service`` the lifespan wires one up from
    ``AppSettings`` against DynamoDB, Redis and S3.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = report_service.settings if report_service is not None else AppSettings()
        logging.basicConfig(level=settings.log_level)
        app.state.settings = settings
        if report_service is not None:
            app.state.report_service = report_service
        else:
            store, _, archive = create_persistence(settings)
            app.state.report_service = ReportService(settings, store, archive=archive)
        yield

    app = FastAPI(
        title="Paydesk Payroll Reporting",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(reports.router, prefix="/reports")
    return app
