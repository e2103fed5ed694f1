"""
Lecture progress tracking
"""

import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.courses import database as store
from skillcerts.errors import ErrorCode, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


def compute_percentage(completed_count: int, total_lectures: int) -> float:
    """completed / total * 100, clamped to [0, 100] and rounded to 2 decimals"""
    if total_lectures <= 0:
        return 0.0
    percentage = completed_count / total_lectures * 100
    return round(min(max(percentage, 0.0), 100.0), 2)


async def get_or_repair_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> dict:
    """
    Progress for an enrolled user. A missing record for an existing
    enrollment is recreated here (read-repair).
    """
    enrollment = await store.get_enrollment(db, user_id, course_id)
    if not enrollment:
        raise ForbiddenError("You are not enrolled in this course", code=ErrorCode.NOT_ENROLLED)

    progress = await store.get_progress(db, user_id, course_id)
    if progress is None:
        logger.warning("Progress missing for enrollment %s, repairing", enrollment["_id"])
        progress = await store.ensure_progress(db, user_id, course_id)
    return progress


async def toggle_lecture(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId, lecture_id: ObjectId) -> dict:
    """Add the lecture to the completed set if absent, remove it if present"""
    progress = await get_or_repair_progress(db, user_id, course_id)

    lecture = await store.get_lecture(db, course_id, lecture_id)
    if not lecture:
        raise NotFoundError("Lecture not found in this course", code=ErrorCode.LECTURE_NOT_FOUND)

    already_done = lecture_id in progress.get("completed_lectures", [])
    progress = await store.update_progress_lectures(db, progress["_id"], lecture_id, add=not already_done)
    if progress is None:
        # Unenrolled between the read and the update
        raise ForbiddenError("You are not enrolled in this course", code=ErrorCode.NOT_ENROLLED)

    total = await store.count_course_lectures(db, course_id)
    percentage = compute_percentage(len(progress.get("completed_lectures", [])), total)
    return await store.set_progress_percentage(db, progress["_id"], percentage)
