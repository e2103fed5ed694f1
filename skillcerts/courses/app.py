"""
SkillCerts Course System - wiring
Indexes and router registration for catalog, enrollment, progress and certificates
"""

import logging

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.user_router import router as user_router
from skillcerts.courses.certificate_router import router as certificate_router
from skillcerts.courses.course_router import router as course_router
from skillcerts.courses.enrollment_router import router as enrollment_router
from skillcerts.courses.progress_router import router as progress_router

logger = logging.getLogger(__name__)

# ==================== DATABASE INDEXES ====================

async def create_course_indexes(db: AsyncIOMotorDatabase):
    """Unique indexes are the final word on duplicates; create them before serving"""

    # Users
    await db.users.create_index("email", unique=True)

    # Courses
    await db.courses.create_index("slug", unique=True)
    await db.courses.create_index([("published", 1), ("created_at", -1)])
    await db.courses.create_index("instructor")

    # Curriculum
    await db.sections.create_index([("course", 1), ("order", 1)])
    await db.lectures.create_index([("course", 1), ("order", 1)])

    # Enrollments
    await db.enrollments.create_index([("user", 1), ("course", 1)], unique=True)
    await db.enrollments.create_index("course")

    # Progress
    await db.progress.create_index([("user", 1), ("course", 1)], unique=True)

    # Certificates
    await db.certificates.create_index([("user", 1), ("course", 1)], unique=True)
    await db.certificates.create_index("certificate_id", unique=True)

    logger.info("Course system indexes created")

# ==================== ROUTER SETUP ====================

def setup_course_routes(app: FastAPI):
    """Register all course-related routers"""

    app.include_router(user_router, prefix="/api/user")
    app.include_router(course_router, prefix="/api/courses")
    app.include_router(enrollment_router, prefix="/api/enrollments")
    app.include_router(progress_router, prefix="/api/progress")
    app.include_router(certificate_router, prefix="/api/certificates")

    logger.info("Course routes registered")
