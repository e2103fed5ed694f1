from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.config import Settings

# ==================== DEPENDENCY FUNCTIONS ====================


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return request.app.state.db


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_gateway(request: Request):
    """Razorpay gateway built from settings at startup"""
    return request.app.state.gateway


async def get_mailer(request: Request):
    return request.app.state.mailer
