"""
Payment data access

Status only ever moves pending -> success or pending -> failed. Both
transitions are conditional updates on status "pending", so a payment is
mutated at most once no matter how many verify calls race.
"""

from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from skillcerts.errors import ConflictError, ErrorCode
from skillcerts.payments.models import PaymentStatus


async def create_payment_indexes(db: AsyncIOMotorDatabase):
    await db.payments.create_index("order_id", unique=True)
    await db.payments.create_index([("user", 1), ("course", 1), ("status", 1)])
    await db.payments.create_index("course")


async def insert_payment(db: AsyncIOMotorDatabase, payment: dict) -> dict:
    now = datetime.utcnow()
    payment = {
        **payment,
        "status": PaymentStatus.PENDING.value,
        "transaction_id": None,
        "failure_reason": None,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await db.payments.insert_one(payment)
    except DuplicateKeyError:
        raise ConflictError("Order already exists. Refresh and try again.", code=ErrorCode.CONFLICT)

    payment["_id"] = result.inserted_id
    return payment


async def get_payment(db: AsyncIOMotorDatabase, payment_id: ObjectId) -> Optional[dict]:
    return await db.payments.find_one({"_id": payment_id})


async def get_payment_by_order_id(db: AsyncIOMotorDatabase, order_id: str) -> Optional[dict]:
    return await db.payments.find_one({"order_id": order_id})


async def mark_payment_success(db: AsyncIOMotorDatabase, order_id: str, transaction_id: str, signature: str) -> bool:
    result = await db.payments.update_one(
        {"order_id": order_id, "status": PaymentStatus.PENDING.value},
        {"$set": {
            "status": PaymentStatus.SUCCESS.value,
            "transaction_id": transaction_id,
            "metadata.razorpay_payment_id": transaction_id,
            "metadata.razorpay_signature": signature,
            "updated_at": datetime.utcnow(),
        }}
    )
    return result.modified_count == 1


async def mark_payment_failed(db: AsyncIOMotorDatabase, order_id: str, reason: str, attempted_payment_id: str) -> bool:
    result = await db.payments.update_one(
        {"order_id": order_id, "status": PaymentStatus.PENDING.value},
        {"$set": {
            "status": PaymentStatus.FAILED.value,
            "failure_reason": reason,
            "metadata.razorpay_payment_id": attempted_payment_id,
            "updated_at": datetime.utcnow(),
        }}
    )
    return result.modified_count == 1


async def list_user_payments(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[dict]:
    cursor = db.payments.find({"user": user_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def list_course_payments(db: AsyncIOMotorDatabase, course_id: ObjectId) -> List[dict]:
    cursor = db.payments.find({"course": course_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)
