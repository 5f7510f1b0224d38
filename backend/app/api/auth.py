"""Registration and login.

POST /peserta-didik/register
    Body: {nama, nisn, kelas_id}. Returns the created peserta_didik.
    404 – unknown kelas.  409 – NISN already registered.

POST /peserta-didik/login
    Body: {nisn}. Returns {token, peserta_didik}.  401 – unknown NISN.

POST /guru/login
    Body: {nip, password, sekolah_id}. Returns {token, guru}.
    401 – unknown NIP, wrong password or wrong school.
"""
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.core.deps import get_progress_service
from app.core.security import ROLE_STUDENT, ROLE_TEACHER, create_access_token
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class RegisterBody(BaseModel):
    nama: str = Field(min_length=1)
    nisn: str = Field(min_length=1)
    kelas_id: int = Field(gt=0)


class StudentLoginBody(BaseModel):
    nisn: str = Field(min_length=1)


class TeacherLoginBody(BaseModel):
    nip: str = Field(min_length=1)
    password: str = Field(min_length=1)
    sekolah_id: int = Field(gt=0)


# ---------------------------------------------------------------------------
# Peserta didik
# ---------------------------------------------------------------------------

@router.post("/peserta-didik/register")
async def register_peserta_didik(
    body: RegisterBody,
    service: ProgressService = Depends(get_progress_service),
):
    store = service.store
    if store.get_class(body.kelas_id) is None:
        raise HTTPException(status_code=404, detail="Kelas not found")
    if store.get_student_by_nisn(body.nisn) is not None:
        raise HTTPException(status_code=409, detail="NISN already registered")

    try:
        student = store.create_student(body.nama, body.nisn, body.kelas_id)
    except RuntimeError as exc:
        logger.error("[auth.register_peserta_didik] Failed for nisn %s: %s", body.nisn, exc)
        raise HTTPException(status_code=500, detail=str(exc))

    logger.info("[auth.register_peserta_didik] Registered peserta_didik %s", student.id)
    return student


@router.post("/peserta-didik/login")
async def login_peserta_didik(
    body: StudentLoginBody,
    service: ProgressService = Depends(get_progress_service),
):
    student = service.store.get_student_by_nisn(body.nisn)
    if student is None:
        raise HTTPException(status_code=401, detail="Invalid NISN")

    token = create_access_token(student.id, ROLE_STUDENT)
    return {"token": token, "peserta_didik": student}


# ---------------------------------------------------------------------------
# Guru
# ---------------------------------------------------------------------------

@router.post("/guru/login")
async def login_guru(
    body: TeacherLoginBody,
    service: ProgressService = Depends(get_progress_service),
):
    guru = service.store.get_teacher_by_nip(body.nip)
    password_ok = (
        guru is not None
        and guru.password is not None
        and secrets.compare_digest(guru.password.encode(), body.password.encode())
    )
    if not password_ok or guru.sekolah_id != body.sekolah_id:
        logger.info("[auth.login_guru] Rejected login for nip %s", body.nip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(guru.id, ROLE_TEACHER)
    return {"token": token, "guru": guru}
