# skillcerts/auth/auth_utils.py
from jose import jwt, JWTError, ExpiredSignatureError

from skillcerts.errors import UnauthorizedError, ErrorCode


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> dict:
    """Decode a bearer token; signature and expiry are both checked"""
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise UnauthorizedError("Token expired", code=ErrorCode.AUTH_EXPIRED)
    except JWTError:
        raise UnauthorizedError("Invalid token", code=ErrorCode.AUTH_INVALID)


def extract_bearer_token(authorization: str) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Access token required")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError("Access token required")
    return token
