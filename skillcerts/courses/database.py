"""
Course, Curriculum, Enrollment, Progress and Certificate data access
File: skillcerts/courses/database.py

Uniqueness is enforced by the indexes created in courses/app.py; duplicate-key
errors from the driver are the authoritative conflict signal.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from skillcerts.errors import ConflictError, ErrorCode
from skillcerts.utils import is_object_id

# ==================== COURSE CRUD ====================

async def create_course(db: AsyncIOMotorDatabase, course_data: dict, instructor_id: ObjectId) -> dict:
    """Create a draft (unpublished) course"""
    now = datetime.utcnow()
    course = {
        "title": course_data["title"],
        "slug": course_data["slug"],
        "description": course_data.get("description"),
        "thumbnail": course_data.get("thumbnail"),
        "preview_video": course_data.get("preview_video"),
        "price": 0 if course_data.get("is_free") else course_data.get("price", 0),
        "is_free": course_data.get("is_free", False),
        "level": course_data.get("level"),
        "language": course_data.get("language"),
        "category": course_data.get("category"),
        "instructor": instructor_id,
        "published": False,
        "created_at": now,
        "updated_at": now,
    }

    try:
        result = await db.courses.insert_one(course)
    except DuplicateKeyError:
        raise ConflictError("Course with this title already exists", code=ErrorCode.DUPLICATE_SLUG)

    course["_id"] = result.inserted_id
    return course


async def get_course(db: AsyncIOMotorDatabase, course_id: ObjectId) -> Optional[dict]:
    """Get course by primary id"""
    return await db.courses.find_one({"_id": course_id})


async def find_course(db: AsyncIOMotorDatabase, identifier: str) -> Optional[dict]:
    """Get course by primary id (24 hex chars) or by slug"""
    if is_object_id(identifier):
        return await db.courses.find_one({"_id": ObjectId(identifier)})
    return await db.courses.find_one({"slug": identifier})


async def list_published_courses(db: AsyncIOMotorDatabase, page: int = 1, limit: int = 10) -> Tuple[List[dict], int]:
    query = {"published": True}
    skip = (page - 1) * limit

    cursor = db.courses.find(query).sort("created_at", -1).skip(skip).limit(limit)
    courses = await cursor.to_list(length=limit)
    total = await db.courses.count_documents(query)
    return courses, total


async def list_instructor_courses(db: AsyncIOMotorDatabase, instructor_id: ObjectId) -> List[dict]:
    cursor = db.courses.find({"instructor": instructor_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def set_course_published(db: AsyncIOMotorDatabase, course_id: ObjectId, published: bool) -> Optional[dict]:
    return await db.courses.find_one_and_update(
        {"_id": course_id},
        {"$set": {"published": published, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER
    )

async def update_course(db: AsyncIOMotorDatabase, course_id: ObjectId, changes: dict) -> Optional[dict]:
    """Apply a partial update; a changed slug may collide with another course"""
    changes["updated_at"] = datetime.utcnow()
    try:
        return await db.courses.find_one_and_update(
            {"_id": course_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Course with this title already exists", code=ErrorCode.DUPLICATE_SLUG)


async def delete_course(db: AsyncIOMotorDatabase, course_id: ObjectId) -> bool:
    """Remove the course together with its sections and lectures"""
    result = await db.courses.delete_one({"_id": course_id})
    await db.sections.delete_many({"course": course_id})
    await db.lectures.delete_many({"course": course_id})
    return result.deleted_count > 0

# ==================== CURRICULUM CRUD ====================

async def create_section(db: AsyncIOMotorDatabase, course_id: ObjectId, data: dict) -> dict:
    section = {
        "course": course_id,
        "title": data["title"],
        "order": data.get("order", 0),
        "created_at": datetime.utcnow(),
    }
    result = await db.sections.insert_one(section)
    section["_id"] = result.inserted_id
    return section


async def get_section(db: AsyncIOMotorDatabase, course_id: ObjectId, section_id: ObjectId) -> Optional[dict]:
    return await db.sections.find_one({"_id": section_id, "course": course_id})


async def create_lecture(db: AsyncIOMotorDatabase, course_id: ObjectId, section_id: ObjectId, data: dict) -> dict:
    lecture = {
        "course": course_id,
        "section": section_id,
        "title": data["title"],
        "order": data.get("order", 0),
        "video_url": data.get("video_url"),
        "duration": data.get("duration"),
        "created_at": datetime.utcnow(),
    }
    result = await db.lectures.insert_one(lecture)
    lecture["_id"] = result.inserted_id
    return lecture


async def get_lecture(db: AsyncIOMotorDatabase, course_id: ObjectId, lecture_id: ObjectId) -> Optional[dict]:
    """Lecture lookup scoped to the course it belongs to"""
    return await db.lectures.find_one({"_id": lecture_id, "course": course_id})


async def count_course_lectures(db: AsyncIOMotorDatabase, course_id: ObjectId) -> int:
    """Total lectures across all sections of a course"""
    return await db.lectures.count_documents({"course": course_id})


async def get_curriculum(db: AsyncIOMotorDatabase, course_id: ObjectId) -> List[dict]:
    """Sections in order, each carrying its ordered lectures"""
    sections = await db.sections.find({"course": course_id}).sort("order", 1).to_list(length=None)
    lectures = await db.lectures.find({"course": course_id}).sort("order", 1).to_list(length=None)

    by_section = {}
    for lecture in lectures:
        by_section.setdefault(lecture["section"], []).append(lecture)

    for section in sections:
        section["lectures"] = by_section.get(section["_id"], [])
    return sections

# ==================== ENROLLMENT CRUD ====================

async def insert_enrollment(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> dict:
    """Insert a fresh enrollment; the (user, course) unique index rejects duplicates"""
    enrollment = {
        "user": user_id,
        "course": course_id,
        "completed": False,
        "enrolled_at": datetime.utcnow(),
        "completed_at": None,
    }
    try:
        result = await db.enrollments.insert_one(enrollment)
    except DuplicateKeyError:
        raise ConflictError("Already enrolled in this course", code=ErrorCode.ALREADY_ENROLLED)

    enrollment["_id"] = result.inserted_id
    return enrollment


async def get_enrollment(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Optional[dict]:
    """Get user enrollment"""
    return await db.enrollments.find_one({"user": user_id, "course": course_id})


async def list_user_enrollments(db: AsyncIOMotorDatabase, user_id: ObjectId, completed: Optional[bool] = None) -> List[dict]:
    query = {"user": user_id}
    if completed is not None:
        query["completed"] = completed
    cursor = db.enrollments.find(query).sort("enrolled_at", -1)
    return await cursor.to_list(length=None)


async def list_course_enrollments(db: AsyncIOMotorDatabase, course_id: ObjectId) -> List[dict]:
    cursor = db.enrollments.find({"course": course_id}).sort("enrolled_at", -1)
    return await cursor.to_list(length=None)


async def complete_enrollment(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Optional[dict]:
    """Flip completed false -> true; None when there was nothing to flip"""
    return await db.enrollments.find_one_and_update(
        {"user": user_id, "course": course_id, "completed": False},
        {"$set": {"completed": True, "completed_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER
    )


async def delete_incomplete_enrollment(db: AsyncIOMotorDatabase, enrollment_id: ObjectId) -> bool:
    """Completed enrollments are never deleted"""
    result = await db.enrollments.delete_one({"_id": enrollment_id, "completed": False})
    return result.deleted_count > 0

# ==================== PROGRESS CRUD ====================

async def ensure_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> dict:
    """
    Idempotently create the zero-state progress record for (user, course).
    Safe to call repeatedly; returns the existing record when present.
    """
    now = datetime.utcnow()
    try:
        progress = await db.progress.find_one_and_update(
            {"user": user_id, "course": course_id},
            {"$setOnInsert": {
                "completed_lectures": [],
                "progress_percentage": 0.0,
                "created_at": now,
                "updated_at": now,
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        # Lost a concurrent upsert race; the winner's record is the one we want
        progress = await get_progress(db, user_id, course_id)
    return progress


async def get_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Optional[dict]:
    return await db.progress.find_one({"user": user_id, "course": course_id})


async def update_progress_lectures(db: AsyncIOMotorDatabase, progress_id: ObjectId, lecture_id: ObjectId, add: bool) -> dict:
    operator = "$addToSet" if add else "$pull"
    return await db.progress.find_one_and_update(
        {"_id": progress_id},
        {operator: {"completed_lectures": lecture_id}},
        return_document=ReturnDocument.AFTER
    )


async def set_progress_percentage(db: AsyncIOMotorDatabase, progress_id: ObjectId, percentage: float) -> dict:
    return await db.progress.find_one_and_update(
        {"_id": progress_id},
        {"$set": {"progress_percentage": percentage, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER
    )


async def delete_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> bool:
    result = await db.progress.delete_one({"user": user_id, "course": course_id})
    return result.deleted_count > 0

# ==================== CERTIFICATE CRUD ====================

async def get_certificate(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId) -> Optional[dict]:
    return await db.certificates.find_one({"user": user_id, "course": course_id})


async def get_certificate_by_code(db: AsyncIOMotorDatabase, certificate_id: str) -> Optional[dict]:
    return await db.certificates.find_one({"certificate_id": certificate_id.upper()})


async def insert_certificate(db: AsyncIOMotorDatabase, user_id: ObjectId, course_id: ObjectId, certificate_id: str) -> dict:
    """Raises DuplicateKeyError on either the (user, course) or the code index"""
    certificate = {
        "user": user_id,
        "course": course_id,
        "certificate_id": certificate_id,
        "issued_at": datetime.utcnow(),
    }
    result = await db.certificates.insert_one(certificate)
    certificate["_id"] = result.inserted_id
    return certificate


async def list_user_certificates(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[dict]:
    cursor = db.certificates.find({"user": user_id}).sort("issued_at", -1)
    return await cursor.to_list(length=None)
