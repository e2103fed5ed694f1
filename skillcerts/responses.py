"""
Uniform response envelope: success, message, optional data, statusCode, timestamp
"""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def serialize_mongo(doc: Any) -> Any:
    """Recursively convert ObjectIds and datetimes into JSON-friendly values"""
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    if isinstance(doc, dict):
        return {key: serialize_mongo(value) for key, value in doc.items()}
    if isinstance(doc, (list, tuple, set)):
        return [serialize_mongo(value) for value in doc]
    return doc


class ApiResponse:

    @staticmethod
    def build(status_code: int, success: bool, message: str, data: Any = None, **extra) -> JSONResponse:
        body = {
            "success": success,
            "message": message,
            "statusCode": status_code,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
        if data is not None:
            body["data"] = serialize_mongo(data)
        for key, value in extra.items():
            if value is not None:
                body[key] = value
        return JSONResponse(status_code=status_code, content=jsonable_encoder(body))

    @classmethod
    def success(cls, message: str, data: Any = None) -> JSONResponse:
        return cls.build(200, True, message, data)

    @classmethod
    def created(cls, message: str, data: Any = None) -> JSONResponse:
        return cls.build(201, True, message, data)

    @classmethod
    def error(
        cls,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        errors: Optional[list] = None
    ) -> JSONResponse:
        return cls.build(status_code, False, message, code=code, errors=errors)
