import re
from typing import Optional

from bson import ObjectId

OBJECT_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")


def is_object_id(value: str) -> bool:
    return bool(value) and bool(OBJECT_ID_PATTERN.fullmatch(value))


def to_object_id(value) -> Optional[ObjectId]:
    """Return an ObjectId for a 24-hex string (or ObjectId), else None"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and is_object_id(value):
        return ObjectId(value)
    return None


def generate_slug(title: str) -> str:
    """URL-friendly slug: lowercase, word chars only, single dashes"""
    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")
