"""
Order issuance and payment verification
File: skillcerts/payments/payment_service.py

Signature verification is the only way a payment becomes "success", and a
successful payment enrolls the user in the same request.
"""

import logging
import time
from typing import Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.courses import database as course_store
from skillcerts.courses.enrollment_service import (
    ensure_not_enrolled, has_successful_payment, materialize_enrollment
)
from skillcerts.errors import (
    BadRequestError, ConflictError, ErrorCode, ForbiddenError,
    InvalidStateError, NotFoundError
)
from skillcerts.payments import database as payment_store
from skillcerts.payments.gateway import RazorpayGateway
from skillcerts.payments.models import PaymentStatus, PaymentVerifyRequest

logger = logging.getLogger(__name__)

SIGNATURE_FAILURE_REASON = "Signature verification failed"


def to_minor_units(price) -> int:
    """Major currency units -> paise"""
    return int(round(float(price) * 100))


def generate_receipt(user_id) -> str:
    return f"receipt_{int(time.time() * 1000)}_{user_id}"


# ==================== ORDER ISSUANCE ====================

async def create_order(
    db: AsyncIOMotorDatabase,
    gateway: RazorpayGateway,
    user: dict,
    course_identifier: str,
    currency: str = "INR"
) -> dict:
    """
    Create a gateway order for a paid course and persist a pending payment.
    The amount is always recomputed from the stored course price.
    """
    course = await course_store.find_course(db, course_identifier)
    if not course:
        raise NotFoundError("Course not found", code=ErrorCode.COURSE_NOT_FOUND)

    if not course.get("published"):
        raise InvalidStateError("Course is not published yet", code=ErrorCode.COURSE_NOT_PUBLISHED)

    if course.get("is_free"):
        raise InvalidStateError("This course is free. Enroll directly.", code=ErrorCode.COURSE_IS_FREE)

    await ensure_not_enrolled(db, user["_id"], course["_id"])

    if await has_successful_payment(db, user["_id"], course["_id"]):
        raise ConflictError("You have already paid for this course", code=ErrorCode.ALREADY_PAID)

    amount = to_minor_units(course.get("price", 0))
    if amount <= 0:
        raise InvalidStateError("Course price is not set", code=ErrorCode.INVALID_STATE)

    receipt = generate_receipt(user["_id"])
    order = await gateway.create_order(
        amount=amount,
        currency=currency,
        receipt=receipt,
        notes={
            "course_id": str(course["_id"]),
            "user_id": str(user["_id"]),
            "course_title": course.get("title", ""),
        }
    )

    payment = await payment_store.insert_payment(db, {
        "user": user["_id"],
        "course": course["_id"],
        "amount": course.get("price"),
        "currency": order.get("currency", currency),
        "order_id": order["id"],
        "receipt": receipt,
        "metadata": {"notes": order.get("notes", {})},
    })
    logger.info("Order %s created for user=%s course=%s amount=%s", order["id"], user["_id"], course["_id"], amount)

    return {
        "order_id": order["id"],
        "amount": order.get("amount", amount),
        "currency": payment["currency"],
        "payment_id": payment["_id"],
        "course_title": course.get("title"),
        "key": gateway.key_id,
    }


# ==================== VERIFICATION ====================

async def verify_payment(
    db: AsyncIOMotorDatabase,
    gateway: RazorpayGateway,
    user: dict,
    data: PaymentVerifyRequest
) -> Tuple[dict, dict, dict]:
    """
    Verify the checkout signature and settle the payment.
    Returns (payment, enrollment, progress) on success.
    """
    payment = await payment_store.get_payment_by_order_id(db, data.razorpay_order_id)
    if not payment:
        raise NotFoundError("Payment record not found", code=ErrorCode.PAYMENT_NOT_FOUND)

    if payment["user"] != user["_id"]:
        raise ForbiddenError("This payment does not belong to you", code=ErrorCode.OWNERSHIP_VIOLATION)

    _ensure_pending(payment)

    is_valid = gateway.verify_payment_signature(
        data.razorpay_order_id,
        data.razorpay_payment_id,
        data.razorpay_signature
    )

    if not is_valid:
        await payment_store.mark_payment_failed(
            db, data.razorpay_order_id, SIGNATURE_FAILURE_REASON, data.razorpay_payment_id
        )
        logger.warning("Signature mismatch for order %s (user=%s)", data.razorpay_order_id, user["_id"])
        raise BadRequestError("Payment verification failed", code=ErrorCode.INVALID_SIGNATURE)

    settled = await payment_store.mark_payment_success(
        db, data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
    )
    if not settled:
        # A concurrent verify settled it first
        _ensure_pending(await payment_store.get_payment_by_order_id(db, data.razorpay_order_id))

    logger.info("Payment %s succeeded for order %s", data.razorpay_payment_id, data.razorpay_order_id)

    enrollment, progress = await materialize_enrollment(
        db, user["_id"], payment["course"], tolerate_existing=True
    )
    payment = await payment_store.get_payment_by_order_id(db, data.razorpay_order_id)
    return payment, enrollment, progress


def _ensure_pending(payment: dict):
    status = payment.get("status")
    if status == PaymentStatus.SUCCESS.value:
        raise ConflictError("Payment already verified", code=ErrorCode.ALREADY_VERIFIED)
    if status == PaymentStatus.FAILED.value:
        raise InvalidStateError("Payment has already failed. Create a new order.", code=ErrorCode.PAYMENT_FAILED)
