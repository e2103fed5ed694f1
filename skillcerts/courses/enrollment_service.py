"""
Enrollment lifecycle
File: skillcerts/courses/enrollment_service.py

Catalog lookup, the enrollment gate, enrollment + progress materialization,
unenroll and mark-complete. Enrollment is the source of truth for Progress:
it is inserted first, and Progress is (re)created by an idempotent upsert.
"""

import logging
from typing import Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.courses import database as store
from skillcerts.courses.certificate_service import ensure_certificate
from skillcerts.errors import (
    ConflictError, ErrorCode, ForbiddenError, InvalidStateError,
    NotFoundError, PaymentRequiredError
)

logger = logging.getLogger(__name__)


# ==================== CATALOG LOOKUP ====================

def can_manage_course(course: dict, user: Optional[dict]) -> bool:
    """Owning instructor or admin"""
    if not user:
        return False
    return user.get("role") == "admin" or course.get("instructor") == user.get("_id")


async def resolve_course(db: AsyncIOMotorDatabase, identifier: str, user: Optional[dict] = None) -> dict:
    """
    Resolve a course by ObjectId or slug.
    Drafts are only visible to their instructor or an admin.
    """
    course = await store.find_course(db, identifier)
    if not course:
        raise NotFoundError("Course not found", code=ErrorCode.COURSE_NOT_FOUND)

    if not course.get("published") and not can_manage_course(course, user):
        raise ForbiddenError("Course is not available", code=ErrorCode.FORBIDDEN)
    return course


async def get_managed_course(db: AsyncIOMotorDatabase, identifier: str, user: dict) -> dict:
    """Course the caller may administer; 404 before 403"""
    course = await store.find_course(db, identifier)
    if not course:
        raise NotFoundError("Course not found", code=ErrorCode.COURSE_NOT_FOUND)
    if not can_manage_course(course, user):
        raise ForbiddenError("You are not authorized to manage this course", code=ErrorCode.OWNERSHIP_VIOLATION)
    return course


# ==================== ENROLLMENT GATE ====================

async def has_successful_payment(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> bool:
    payment = await db.payments.find_one({"user": user_id, "course": course_id, "status": "success"})
    return payment is not None


async def ensure_not_enrolled(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId):
    """Early exit only; the unique index decides under concurrency"""
    if await store.get_enrollment(db, user_id, course_id):
        raise ConflictError("Already enrolled in this course", code=ErrorCode.ALREADY_ENROLLED)


async def check_enrollment_eligibility(db: AsyncIOMotorDatabase, user_id: ObjectId, course: Optional[dict]):
    """
    Raises the specific rejection when the user may not enroll:

    - NotFound: course does not exist
    - InvalidState: course is not published
    - Conflict: already enrolled
    - PaymentRequired: paid course without a successful payment
    """
    if not course:
        raise NotFoundError("Course not found", code=ErrorCode.COURSE_NOT_FOUND)

    if not course.get("published"):
        raise InvalidStateError("Course is not published yet", code=ErrorCode.COURSE_NOT_PUBLISHED)

    await ensure_not_enrolled(db, user_id, course["_id"])

    if not course.get("is_free"):
        if not await has_successful_payment(db, user_id, course["_id"]):
            raise PaymentRequiredError(
                "Payment required. Please complete the payment first to enroll in this course"
            )


# ==================== MATERIALIZATION ====================

async def materialize_enrollment(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    course_id: ObjectId,
    tolerate_existing: bool = False
) -> Tuple[dict, dict]:
    """
    Create Enrollment then zero-state Progress.

    With tolerate_existing, an existing enrollment is returned (its progress
    repaired if missing) instead of raising Conflict.
    """
    try:
        enrollment = await store.insert_enrollment(db, user_id, course_id)
    except ConflictError:
        if not tolerate_existing:
            raise
        enrollment = await store.get_enrollment(db, user_id, course_id)
    else:
        logger.info("Enrollment created user=%s course=%s", user_id, course_id)

    progress = await store.ensure_progress(db, user_id, course_id)
    return enrollment, progress


async def enroll(db: AsyncIOMotorDatabase, user_id: ObjectId, course_identifier: str) -> Tuple[dict, dict, dict]:
    course = await store.find_course(db, course_identifier)
    await check_enrollment_eligibility(db, user_id, course)
    enrollment, progress = await materialize_enrollment(db, user_id, course["_id"])
    return course, enrollment, progress


async def require_enrollment(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> dict:
    enrollment = await store.get_enrollment(db, user_id, course_id)
    if not enrollment:
        raise NotFoundError("Enrollment not found", code=ErrorCode.ENROLLMENT_NOT_FOUND)
    return enrollment


# ==================== UNENROLL ====================

async def unenroll(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId):
    """Delete Enrollment and Progress together; completed enrollments stay"""
    enrollment = await require_enrollment(db, user_id, course_id)

    if enrollment.get("completed"):
        raise InvalidStateError("Cannot unenroll from completed course", code=ErrorCode.ALREADY_COMPLETED)

    deleted = await store.delete_incomplete_enrollment(db, enrollment["_id"])
    if not deleted:
        # Completed (or removed) between the read and the delete
        raise InvalidStateError("Cannot unenroll from completed course", code=ErrorCode.ALREADY_COMPLETED)

    await store.delete_progress(db, user_id, course_id)
    logger.info("Enrollment removed user=%s course=%s", user_id, course_id)


# ==================== COMPLETION ====================

async def mark_course_completed(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Tuple[dict, dict, bool]:
    """
    Flip the enrollment to completed, then make sure exactly one certificate exists.
    Returns (enrollment, certificate, certificate_created).
    """
    enrollment = await require_enrollment(db, user_id, course_id)
    if enrollment.get("completed"):
        raise InvalidStateError("Course already marked as completed", code=ErrorCode.ALREADY_COMPLETED)

    updated = await store.complete_enrollment(db, user_id, course_id)
    if updated is None:
        # Lost the race with a concurrent mark-complete
        raise InvalidStateError("Course already marked as completed", code=ErrorCode.ALREADY_COMPLETED)

    logger.info("Course completed user=%s course=%s", user_id, course_id)
    certificate, created = await ensure_certificate(db, user_id, course_id)
    return updated, certificate, created
