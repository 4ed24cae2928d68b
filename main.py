"""
UAE TaxDesk - FastAPI Application

Mounts the tax, notification and invoice routers and runs the deadline
scheduler for the lifetime of the process.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taxdesk import __version__
from taxdesk.config import settings
from taxdesk.dependencies import notification_scheduler
from taxdesk.routers import invoices, notifications, tax
from taxdesk.utils.error_handling import setup_exception_handlers

logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} starting ({settings.app_env})")
    notification_scheduler.start()

    yield

    logger.info("Stopping notification scheduler")
    await notification_scheduler.stop()


app = FastAPI(
    title=settings.app_name,
    description="UAE VAT and Corporate Tax classification and compliance document engine",
    version=__version__,
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": __version__,
        "notification_scheduler": "running" if notification_scheduler.is_running else "stopped",
    }


# API v1 routers
API_PREFIX = f"/api/{settings.api_version}"
app.include_router(tax.router, prefix=API_PREFIX)
app.include_router(notifications.router, prefix=API_PREFIX)
app.include_router(invoices.router, prefix=API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
