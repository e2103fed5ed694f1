"""
ENROLLMENT ROUTER
File: skillcerts/courses/enrollment_router.py

Free courses enroll directly; paid courses enroll only after a verified
payment (the payment verify endpoint enrolls on success by itself).
"""

from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, BackgroundTasks, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.guard import get_current_user
from skillcerts.config import Settings
from skillcerts.courses import database as store
from skillcerts.courses import enrollment_service
from skillcerts.courses.enrollment_service import get_managed_course
from skillcerts.courses.models import EnrollmentCreate, EnrollmentFilter
from skillcerts.dependencies import get_db, get_mailer, get_settings
from skillcerts.errors import ErrorCode, NotFoundError
from skillcerts.notifications.events import notify_certificate_issued
from skillcerts.notifications.mailer import Mailer
from skillcerts.responses import ApiResponse
from skillcerts.utils import to_object_id

router = APIRouter(tags=["Enrollments"])


# ==================== HELPERS ====================

def course_object_id(course_id: str) -> ObjectId:
    oid = to_object_id(course_id)
    if oid is None:
        raise NotFoundError("Course not found", code=ErrorCode.COURSE_NOT_FOUND)
    return oid


def progress_summary(progress: Optional[dict]) -> Optional[dict]:
    if not progress:
        return None
    return {
        "progress_percentage": progress.get("progress_percentage", 0.0),
        "completed_lectures": len(progress.get("completed_lectures", [])),
    }


COURSE_CARD_FIELDS = {"title": 1, "slug": 1, "thumbnail": 1, "price": 1, "level": 1, "instructor": 1}


# ==================== ENROLLMENT ENDPOINTS ====================

@router.post("")
async def enroll_endpoint(
    data: EnrollmentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """
    Enroll in a course.
    Rejects unpublished courses, duplicates, and paid courses without a successful payment.
    """
    course, enrollment, progress = await enrollment_service.enroll(db, user["_id"], data.course_id)

    enrollment["course"] = {k: course.get(k) for k in ("_id", "title", "slug", "thumbnail", "price", "level")}
    enrollment["progress"] = progress
    return ApiResponse.created("Enrolled successfully", enrollment)


@router.get("/my")
async def my_enrollments_endpoint(
    status: Optional[EnrollmentFilter] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    completed = None
    if status is not None:
        completed = status == EnrollmentFilter.COMPLETED

    enrollments = await store.list_user_enrollments(db, user["_id"], completed)

    result = []
    for enr in enrollments:
        course = await db.courses.find_one({"_id": enr["course"]}, COURSE_CARD_FIELDS)
        progress = await store.get_progress(db, user["_id"], enr["course"])
        result.append({**enr, "course": course, "progress": progress_summary(progress)})

    return ApiResponse.success("Enrollments fetched successfully", result)


@router.get("/check/{course_id}")
async def check_enrollment_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    enrollment = await store.get_enrollment(db, user["_id"], course_object_id(course_id))
    return ApiResponse.success("Enrollment status checked", {
        "is_enrolled": enrollment is not None,
        "enrollment": enrollment,
    })


@router.get("/course/{course_id}")
async def course_enrollments_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Instructor (owner) or admin view of a course's students"""
    course = await get_managed_course(db, course_id, user)
    enrollments = await store.list_course_enrollments(db, course["_id"])

    result = []
    for enr in enrollments:
        student = await db.users.find_one({"_id": enr["user"]}, {"name": 1, "email": 1, "avatar": 1})
        progress = await store.get_progress(db, enr["user"], course["_id"])
        result.append({**enr, "user": student, "progress": progress_summary(progress)})

    return ApiResponse.success("Course enrollments fetched successfully", {
        "total_enrollments": len(result),
        "enrollments": result,
    })


@router.get("/{course_id}")
async def get_enrollment_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    course_oid = course_object_id(course_id)
    enrollment = await enrollment_service.require_enrollment(db, user["_id"], course_oid)

    # Enrollment exists, so a missing progress record is repaired here
    progress = await store.ensure_progress(db, user["_id"], course_oid)
    enrollment["course"] = await store.get_course(db, course_oid)
    enrollment["progress"] = progress
    return ApiResponse.success("Enrollment fetched successfully", enrollment)


@router.delete("/{course_id}")
async def unenroll_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    await enrollment_service.unenroll(db, user["_id"], course_object_id(course_id))
    return ApiResponse.success("Unenrolled successfully")


@router.patch("/{course_id}/complete")
async def mark_complete_endpoint(
    course_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer)
):
    course_oid = course_object_id(course_id)
    enrollment, certificate, created = await enrollment_service.mark_course_completed(db, user["_id"], course_oid)

    if created:
        course = await store.get_course(db, course_oid)
        if course:
            background_tasks.add_task(
                notify_certificate_issued, mailer, settings.frontend_url, user, course, certificate
            )

    return ApiResponse.success("Course marked as completed", {
        "enrollment": enrollment,
        "certificate": certificate,
    })
