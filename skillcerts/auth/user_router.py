from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field, HttpUrl
from pymongo import ReturnDocument

from skillcerts.auth.guard import PRIVATE_USER_FIELDS, get_current_user
from skillcerts.dependencies import get_db
from skillcerts.errors import NotFoundError
from skillcerts.responses import ApiResponse

router = APIRouter(tags=["Users"])


# ==================== PYDANTIC MODELS ====================

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[HttpUrl] = None


# ==================== ENDPOINTS ====================

@router.get("/me")
async def get_profile(user: dict = Depends(get_current_user)):
    return ApiResponse.success("Profile fetched successfully", user)


@router.patch("/me")
async def update_profile(
    data: ProfileUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    updates = data.model_dump(exclude_none=True)
    if "avatar" in updates:
        updates["avatar"] = str(updates["avatar"])
    updates["updated_at"] = datetime.utcnow()

    updated = await db.users.find_one_and_update(
        {"_id": user["_id"]},
        {"$set": updates},
        projection=PRIVATE_USER_FIELDS,
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFoundError("User not found")

    return ApiResponse.success("Profile updated successfully", updated)
