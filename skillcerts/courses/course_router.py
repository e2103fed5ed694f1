from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.guard import get_optional_user, require_roles
from skillcerts.courses import database as store
from skillcerts.courses.enrollment_service import get_managed_course, resolve_course
from skillcerts.courses.models import (
    CourseCreate, CoursePublish, CourseUpdate, LectureCreate, SectionCreate, UserRole
)
from skillcerts.dependencies import get_db
from skillcerts.errors import BadRequestError, ErrorCode, NotFoundError
from skillcerts.responses import ApiResponse
from skillcerts.utils import generate_slug, to_object_id

router = APIRouter(tags=["Courses"])

instructor_only = require_roles(UserRole.INSTRUCTOR.value, UserRole.ADMIN.value)


# ==================== CATALOG ====================

@router.get("")
async def list_courses_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Published courses, newest first"""
    courses, total = await store.list_published_courses(db, page, limit)
    return ApiResponse.success("Courses fetched successfully", {
        "courses": courses,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        }
    })


@router.get("/instructor/my-courses")
async def my_courses_endpoint(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    courses = await store.list_instructor_courses(db, user["_id"])
    return ApiResponse.success("Instructor courses fetched successfully", courses)


@router.get("/{id_or_slug}")
async def get_course_endpoint(
    id_or_slug: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Optional[dict] = Depends(get_optional_user)
):
    course = await resolve_course(db, id_or_slug, user)
    course["total_lectures"] = await store.count_course_lectures(db, course["_id"])
    return ApiResponse.success("Course fetched successfully", course)


# ==================== COURSE MANAGEMENT ====================

@router.post("")
async def create_course_endpoint(
    data: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    course_data = data.model_dump(mode="json")
    course_data["slug"] = generate_slug(data.title)
    if not course_data["slug"]:
        raise BadRequestError("Title must contain at least one letter or digit")

    if data.category:
        category_id = to_object_id(data.category)
        if category_id is None:
            raise BadRequestError("Invalid category id")
        course_data["category"] = category_id

    course = await store.create_course(db, course_data, user["_id"])
    return ApiResponse.created("Course created successfully", course)


@router.patch("/{course_id}/publish")
async def publish_course_endpoint(
    course_id: str,
    data: Optional[CoursePublish] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    course = await get_managed_course(db, course_id, user)
    requested = data.published if data else None
    published = (not course.get("published")) if requested is None else requested

    updated = await store.set_course_published(db, course["_id"], published)
    message = "Course published successfully" if published else "Course unpublished successfully"
    return ApiResponse.success(message, updated)


@router.put("/{course_id}")
async def update_course_endpoint(
    course_id: str,
    data: CourseUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    """Partial update; a new title regenerates the slug"""
    course = await get_managed_course(db, course_id, user)
    changes = data.model_dump(mode="json", exclude_none=True)

    if data.title:
        changes["slug"] = generate_slug(data.title)
        if not changes["slug"]:
            raise BadRequestError("Title must contain at least one letter or digit")

    if data.category:
        category_id = to_object_id(data.category)
        if category_id is None:
            raise BadRequestError("Invalid category id")
        changes["category"] = category_id

    if changes.get("is_free", course.get("is_free")):
        changes["price"] = 0

    updated = await store.update_course(db, course["_id"], changes)
    return ApiResponse.success("Course updated successfully", updated)


@router.delete("/{course_id}")
async def delete_course_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    course = await get_managed_course(db, course_id, user)
    await store.delete_course(db, course["_id"])
    return ApiResponse.success("Course deleted successfully")


# ==================== CURRICULUM ====================

@router.get("/{course_id}/curriculum")
async def get_curriculum_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Optional[dict] = Depends(get_optional_user)
):
    course = await resolve_course(db, course_id, user)
    sections = await store.get_curriculum(db, course["_id"])
    return ApiResponse.success("Curriculum fetched successfully", {
        "course": course["_id"],
        "sections": sections,
        "total_lectures": sum(len(section["lectures"]) for section in sections),
    })


@router.post("/{course_id}/sections")
async def add_section_endpoint(
    course_id: str,
    data: SectionCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    course = await get_managed_course(db, course_id, user)
    section = await store.create_section(db, course["_id"], data.model_dump())
    return ApiResponse.created("Section added successfully", section)


@router.post("/{course_id}/sections/{section_id}/lectures")
async def add_lecture_endpoint(
    course_id: str,
    section_id: str,
    data: LectureCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(instructor_only)
):
    course = await get_managed_course(db, course_id, user)

    section_oid = to_object_id(section_id)
    section = await store.get_section(db, course["_id"], section_oid) if section_oid else None
    if not section:
        raise NotFoundError("Section not found", code=ErrorCode.NOT_FOUND)

    lecture = await store.create_lecture(db, course["_id"], section["_id"], data.model_dump(mode="json"))
    return ApiResponse.created("Lecture added successfully", lecture)
