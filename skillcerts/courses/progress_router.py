from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.guard import get_current_user
from skillcerts.courses import database as store
from skillcerts.courses import progress_service
from skillcerts.courses.enrollment_router import course_object_id
from skillcerts.dependencies import get_db
from skillcerts.errors import ErrorCode, NotFoundError
from skillcerts.responses import ApiResponse
from skillcerts.utils import to_object_id

router = APIRouter(tags=["Progress"])


@router.get("/{course_id}")
async def get_progress_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    course_oid = course_object_id(course_id)
    progress = await progress_service.get_or_repair_progress(db, user["_id"], course_oid)
    progress["total_lectures"] = await store.count_course_lectures(db, course_oid)
    return ApiResponse.success("Progress fetched successfully", progress)


@router.post("/{course_id}/lectures/{lecture_id}/toggle")
async def toggle_lecture_endpoint(
    course_id: str,
    lecture_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Mark a lecture complete, or un-mark it if already complete"""
    course_oid = course_object_id(course_id)
    lecture_oid = to_object_id(lecture_id)
    if lecture_oid is None:
        raise NotFoundError("Lecture not found in this course", code=ErrorCode.LECTURE_NOT_FOUND)

    progress = await progress_service.toggle_lecture(db, user["_id"], course_oid, lecture_oid)
    return ApiResponse.success("Progress updated successfully", progress)
