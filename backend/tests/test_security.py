import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("SUPABASE_URL", "https://fake.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "fake-service-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi import HTTPException
from jose import jwt

from app.core.config import get_settings
from app.core.security import (
    ROLE_STUDENT,
    ROLE_TEACHER,
    create_access_token,
    decode_access_token,
    require_student,
    require_teacher,
)


def test_token_round_trip_claims():
    payload = decode_access_token(create_access_token(7, ROLE_STUDENT))
    assert payload["sub"] == "7"
    assert payload["role"] == ROLE_STUDENT
    assert payload["exp"] > payload["iat"]

def test_require_student_returns_id():
    token = create_access_token(7, ROLE_STUDENT)
    assert require_student(f"Bearer {token}") == 7

def test_require_teacher_returns_id():
    token = create_access_token(3, ROLE_TEACHER)
    assert require_teacher(f"Bearer {token}") == 3

def test_missing_header_is_401():
    with pytest.raises(HTTPException) as exc:
        require_student(None)
    assert exc.value.status_code == 401

def test_non_bearer_header_is_401():
    with pytest.raises(HTTPException) as exc:
        require_student("Token abc")
    assert exc.value.status_code == 401

def test_wrong_role_is_403():
    token = create_access_token(7, ROLE_STUDENT)
    with pytest.raises(HTTPException) as exc:
        require_teacher(f"Bearer {token}")
    assert exc.value.status_code == 403

def test_foreign_secret_is_401():
    settings = get_settings()
    token = jwt.encode({"sub": "7", "role": ROLE_STUDENT}, "other-secret", algorithm=settings.jwt_algorithm)
    with pytest.raises(HTTPException) as exc:
        require_student(f"Bearer {token}")
    assert exc.value.status_code == 401

def test_expired_token_is_401():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "7", "role": ROLE_STUDENT, "exp": 1},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401

def test_non_numeric_subject_is_401():
    settings = get_settings()
    token = jwt.encode({"sub": "abc", "role": ROLE_STUDENT}, settings.jwt_secret_key,
                       algorithm=settings.jwt_algorithm)
    with pytest.raises(HTTPException) as exc:
        require_student(f"Bearer {token}")
    assert exc.value.status_code == 401

def test_settings_require_jwt_secret(monkeypatch):
    from pydantic import ValidationError
    from app.core.config import Settings

    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
    with pytest.raises(ValidationError) as exc:
        Settings(_env_file=None)
    assert "jwt_secret_key" in str(exc.value)

def test_settings_read_jwt_secret_from_env(monkeypatch):
    from app.core.config import Settings

    monkeypatch.setenv("JWT_SECRET_KEY", "from-env")
    assert Settings(_env_file=None).jwt_secret_key == "from-env"

def test_token_signed_with_guessed_secret_is_401():
    token = jwt.encode({"sub": "1", "role": ROLE_TEACHER}, "change-me", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        require_teacher(f"Bearer {token}")
    assert exc.value.status_code == 401
