"""
Razorpay Course Payments
File: skillcerts/payments/payment_router.py

Flow:
1. POST /create-order  -> Razorpay order + pending payment
2. Client completes Razorpay checkout
3. POST /verify        -> signature check, payment settled, user enrolled
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.guard import get_current_user
from skillcerts.config import Settings
from skillcerts.courses import database as course_store
from skillcerts.courses.enrollment_service import get_managed_course
from skillcerts.dependencies import get_db, get_gateway, get_mailer, get_settings
from skillcerts.errors import ErrorCode, ForbiddenError, NotFoundError
from skillcerts.notifications.events import notify_payment_done
from skillcerts.notifications.mailer import Mailer
from skillcerts.payments import database as payment_store
from skillcerts.payments import payment_service
from skillcerts.payments.gateway import RazorpayGateway
from skillcerts.payments.models import CreateOrderRequest, PaymentStatus, PaymentVerifyRequest
from skillcerts.responses import ApiResponse
from skillcerts.utils import to_object_id

router = APIRouter(tags=["Payment"])


@router.post("/create-order")
async def create_order_endpoint(
    data: CreateOrderRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings)
):
    order = await payment_service.create_order(
        db, gateway, user, data.course_id, currency=settings.payment_currency
    )
    return ApiResponse.created("Order created successfully", order)


@router.post("/verify")
async def verify_payment_endpoint(
    data: PaymentVerifyRequest,
    background_tasks: BackgroundTasks,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_gateway),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings)
):
    """Verify checkout signature; on success the user is enrolled"""
    payment, enrollment, progress = await payment_service.verify_payment(db, gateway, user, data)

    course = await course_store.get_course(db, payment["course"])
    if course:
        background_tasks.add_task(notify_payment_done, mailer, settings.frontend_url, user, course, payment)

    return ApiResponse.success("Payment verified successfully", {
        "payment": payment,
        "enrollment": enrollment,
        "progress": progress,
    })


@router.get("/my")
async def my_payments_endpoint(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    payments = await payment_store.list_user_payments(db, user["_id"])
    for payment in payments:
        payment["course"] = await db.courses.find_one(
            {"_id": payment["course"]}, {"title": 1, "slug": 1, "thumbnail": 1}
        )
    return ApiResponse.success("Payment history fetched successfully", payments)


@router.get("/course/{course_id}")
async def course_payments_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Instructor (owner) or admin: payments for a course and revenue from successful ones"""
    course = await get_managed_course(db, course_id, user)
    payments = await payment_store.list_course_payments(db, course["_id"])

    successful = [p for p in payments if p.get("status") == PaymentStatus.SUCCESS.value]
    total_revenue = round(sum(float(p.get("amount") or 0) for p in successful), 2)

    for payment in payments:
        payment["user"] = await db.users.find_one({"_id": payment["user"]}, {"name": 1, "email": 1})

    return ApiResponse.success("Course payments fetched successfully", {
        "total_payments": len(payments),
        "successful_payments": len(successful),
        "total_revenue": total_revenue,
        "payments": payments,
    })


@router.get("/{payment_id}")
async def get_payment_endpoint(
    payment_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    payment_oid = to_object_id(payment_id)
    payment = await payment_store.get_payment(db, payment_oid) if payment_oid else None
    if not payment:
        raise NotFoundError("Payment not found", code=ErrorCode.PAYMENT_NOT_FOUND)

    if payment["user"] != user["_id"]:
        raise ForbiddenError("You are not authorized to view this payment", code=ErrorCode.OWNERSHIP_VIOLATION)

    payment["course"] = await db.courses.find_one({"_id": payment["course"]}, {"title": 1, "slug": 1})
    return ApiResponse.success("Payment fetched successfully", payment)
