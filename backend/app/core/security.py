"""HS256 bearer tokens for peserta didik and guru sessions."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, HTTPException
from jose import JWTError, jwt

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

ROLE_STUDENT = "peserta_didik"
ROLE_TEACHER = "guru"


def create_access_token(subject: int, role: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.jwt_expire_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> dict:
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.info("[security.decode_access_token] Rejected token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def _subject_for_role(authorization: Optional[str], role: str) -> int:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    payload = decode_access_token(authorization.replace("Bearer ", "", 1))
    if payload.get("role") != role:
        raise HTTPException(status_code=403, detail="Token not valid for this resource")
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject")


def require_student(authorization: str = Header(None)) -> int:
    """FastAPI dependency: the logged-in peserta didik id."""
    return _subject_for_role(authorization, ROLE_STUDENT)


def require_teacher(authorization: str = Header(None)) -> int:
    """FastAPI dependency: the logged-in guru id."""
    return _subject_for_role(authorization, ROLE_TEACHER)
