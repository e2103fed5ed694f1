"""
Certificate issuance

Both "mark complete" and the on-demand generate endpoint go through
ensure_certificate, so a (user, course) pair never ends up with two records.
"""

import logging
import uuid
from typing import Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from skillcerts.courses import database as store
from skillcerts.errors import ErrorCode, InternalError, InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = "SC-"
MAX_CODE_ATTEMPTS = 5


def generate_certificate_code() -> str:
    """SC- followed by 12 uppercase hex chars from a random UUID"""
    return f"{CERTIFICATE_PREFIX}{uuid.uuid4().hex[:12].upper()}"


async def ensure_certificate(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Tuple[dict, bool]:
    """
    Check-then-create guarded by the unique indexes.
    Returns (certificate, created).
    """
    existing = await store.get_certificate(db, user_id, course_id)
    if existing:
        return existing, False

    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_certificate_code()
        try:
            certificate = await store.insert_certificate(db, user_id, course_id, code)
        except DuplicateKeyError:
            # Either someone issued the pair concurrently, or the code collided
            existing = await store.get_certificate(db, user_id, course_id)
            if existing:
                return existing, False
            logger.warning("Certificate code collision on %s, retrying", code)
            continue

        logger.info("Certificate %s issued user=%s course=%s", code, user_id, course_id)
        return certificate, True

    raise InternalError("Could not allocate a certificate code")


async def generate_for_completed_course(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Tuple[dict, bool]:
    enrollment = await store.get_enrollment(db, user_id, course_id)
    if not enrollment:
        raise NotFoundError("Enrollment not found", code=ErrorCode.ENROLLMENT_NOT_FOUND)

    if not enrollment.get("completed"):
        raise InvalidStateError(
            "Course must be completed to generate certificate",
            code=ErrorCode.COURSE_NOT_COMPLETED
        )

    return await ensure_certificate(db, user_id, course_id)


async def require_certificate(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> dict:
    certificate = await store.get_certificate(db, user_id, course_id)
    if not certificate:
        raise NotFoundError("Certificate not found", code=ErrorCode.CERTIFICATE_NOT_FOUND)
    return certificate


async def load_certificate_details(db: AsyncIOMotorDatabase, certificate: dict) -> Optional[dict]:
    """Everything needed to render a certificate: holder, course, instructor, date, code"""
    user = await db.users.find_one({"_id": certificate["user"]}, {"name": 1})
    course = await store.get_course(db, certificate["course"])
    if not user or not course:
        return None

    instructor = await db.users.find_one({"_id": course.get("instructor")}, {"name": 1})

    return {
        "user_name": user.get("name", ""),
        "course_title": course.get("title", ""),
        "instructor_name": instructor.get("name", "") if instructor else "",
        "completion_date": certificate["issued_at"].strftime("%B %d, %Y"),
        "certificate_id": certificate["certificate_id"],
    }
