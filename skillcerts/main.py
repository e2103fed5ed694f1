"""
SkillCerts API
File: skillcerts/main.py

Run with:
    uvicorn skillcerts.main:create_app --factory
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from skillcerts import __version__
from skillcerts.config import Settings
from skillcerts.courses.app import create_course_indexes, setup_course_routes
from skillcerts.errors import register_exception_handlers
from skillcerts.notifications.mailer import Mailer
from skillcerts.payments.database import create_payment_indexes
from skillcerts.payments.gateway import RazorpayGateway
from skillcerts.payments.payment_router import router as payment_router

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[AsyncIOMotorDatabase] = None,
    gateway=None,
    mailer=None
) -> FastAPI:
    """
    Build the application. Collaborators default to the real MongoDB,
    Razorpay and Resend clients built from settings.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="SkillCerts API", version=__version__)
    app.state.settings = settings
    app.state.db = db
    app.state.mongo_client = None
    app.state.gateway = gateway or RazorpayGateway.from_settings(settings)
    app.state.mailer = mailer or Mailer.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"]
    )
    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        if app.state.db is None:
            app.state.mongo_client = AsyncIOMotorClient(settings.mongo_url)
            app.state.db = app.state.mongo_client[settings.mongo_db_name]
        await create_course_indexes(app.state.db)
        await create_payment_indexes(app.state.db)
        logger.info("SkillCerts started (db=%s)", settings.mongo_db_name)

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.mongo_client is not None:
            app.state.mongo_client.close()

    # ==================== ROUTER REGISTRATION ====================
    setup_course_routes(app)
    app.include_router(payment_router, prefix="/api/payments")

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }

    return app
