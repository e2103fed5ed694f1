from pydantic import BaseModel, Field, HttpUrl
from typing import Optional
from enum import Enum

# ==================== ENUMS ====================

class UserRole(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"

class CourseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class EnrollmentFilter(str, Enum):
    COMPLETED = "completed"
    ONGOING = "ongoing"

# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=3)
    description: Optional[str] = None
    thumbnail: Optional[HttpUrl] = None
    preview_video: Optional[HttpUrl] = None
    price: float = Field(0, ge=0)  # major currency units
    is_free: bool = False
    level: CourseLevel = CourseLevel.BEGINNER
    language: str = "English"
    category: Optional[str] = None

class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3)
    description: Optional[str] = None
    thumbnail: Optional[HttpUrl] = None
    preview_video: Optional[HttpUrl] = None
    price: Optional[float] = Field(None, ge=0)
    is_free: Optional[bool] = None
    level: Optional[CourseLevel] = None
    language: Optional[str] = None
    category: Optional[str] = None

class CoursePublish(BaseModel):
    published: Optional[bool] = None  # None flips the current state

# ==================== CURRICULUM MODELS ====================

class SectionCreate(BaseModel):
    title: str = Field(..., min_length=1)
    order: int = Field(0, ge=0)

class LectureCreate(BaseModel):
    title: str = Field(..., min_length=1)
    order: int = Field(0, ge=0)
    video_url: Optional[HttpUrl] = None
    duration: Optional[float] = Field(None, ge=0)  # seconds

# ==================== ENROLLMENT MODELS ====================

class EnrollmentCreate(BaseModel):
    course_id: str = Field(..., min_length=1)
