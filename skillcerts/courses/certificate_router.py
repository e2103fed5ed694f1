from fastapi import APIRouter, Depends, Response
from fastapi.responses import HTMLResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.guard import get_current_user
from skillcerts.courses import certificate_service
from skillcerts.courses import database as store
from skillcerts.courses.certificate_render import generate_certificate_image
from skillcerts.courses.enrollment_router import course_object_id
from skillcerts.dependencies import get_db
from skillcerts.errors import ErrorCode, NotFoundError
from skillcerts.notifications.templates import render_certificate_html, render_certificate_not_found
from skillcerts.responses import ApiResponse

router = APIRouter(tags=["Certificates"])


async def with_course(db: AsyncIOMotorDatabase, certificate: dict) -> dict:
    course = await db.courses.find_one(
        {"_id": certificate["course"]},
        {"title": 1, "slug": 1, "thumbnail": 1, "instructor": 1}
    )
    return {**certificate, "course": course}


async def certificate_details(db: AsyncIOMotorDatabase, certificate: dict) -> dict:
    details = await certificate_service.load_certificate_details(db, certificate)
    if details is None:
        raise NotFoundError("Certificate not found", code=ErrorCode.CERTIFICATE_NOT_FOUND)
    return details


# ==================== PUBLIC ====================

@router.get("/verify/{certificate_id}", response_class=HTMLResponse)
async def verify_certificate(certificate_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Public, read-only verification page"""
    certificate = await store.get_certificate_by_code(db, certificate_id)
    details = await certificate_service.load_certificate_details(db, certificate) if certificate else None
    if details is None:
        return HTMLResponse(render_certificate_not_found(certificate_id), status_code=404)
    return HTMLResponse(render_certificate_html(**details))


# ==================== ENDPOINTS ====================

@router.get("/my")
async def get_my_certificates(db: AsyncIOMotorDatabase = Depends(get_db), user: dict = Depends(get_current_user)):
    certificates = await store.list_user_certificates(db, user["_id"])
    result = [await with_course(db, cert) for cert in certificates]
    return ApiResponse.success("Certificates fetched successfully", result)


@router.get("/course/{course_id}")
async def get_course_certificate(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db), user: dict = Depends(get_current_user)):
    certificate = await certificate_service.require_certificate(db, user["_id"], course_object_id(course_id))
    return ApiResponse.success("Certificate fetched successfully", await with_course(db, certificate))


@router.post("/generate/{course_id}")
async def generate_certificate(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db), user: dict = Depends(get_current_user)):
    """Issue the certificate for a completed course; returns the existing one if already issued"""
    certificate, created = await certificate_service.generate_for_completed_course(
        db, user["_id"], course_object_id(course_id)
    )
    certificate = await with_course(db, certificate)
    if created:
        return ApiResponse.created("Certificate generated successfully", certificate)
    return ApiResponse.success("Certificate already exists", certificate)


@router.get("/view/{course_id}", response_class=HTMLResponse)
async def view_certificate(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db), user: dict = Depends(get_current_user)):
    certificate = await certificate_service.require_certificate(db, user["_id"], course_object_id(course_id))
    details = await certificate_details(db, certificate)
    return HTMLResponse(render_certificate_html(**details))


@router.get("/download/{course_id}")
async def download_certificate(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db), user: dict = Depends(get_current_user)):
    certificate = await certificate_service.require_certificate(db, user["_id"], course_object_id(course_id))
    details = await certificate_details(db, certificate)
    certificate_bytes = generate_certificate_image(**details)
    return Response(
        content=certificate_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"attachment; filename=certificate_{details['certificate_id']}.png"}
    )
