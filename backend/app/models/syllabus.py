"""Row models for the school / syllabus / quiz tables.

Rows are frozen: computed state (unlock flags, scores) lives on the view
models in ``app.models.report``.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")


class Sekolah(_Row):
    id: int
    nama: str | None = None
    alamat: str | None = None
    semester: str | None = None  # "ganjil" | "genap"
    tahun_ajaran: str | None = None


class Kelas(_Row):
    id: int
    nama: str | None = None
    sekolah_id: int | None = None


class PesertaDidik(_Row):
    id: int
    nama_lengkap: str | None = None
    nisn: str | None = None
    kelas_id: int | None = None


class Guru(_Row):
    id: int
    nama_lengkap: str | None = None
    nip: str | None = None
    password: str | None = Field(default=None, exclude=True)
    sekolah_id: int | None = None


class Bab(_Row):
    id: int
    kelas_id: int | None = None
    nomor: str | None = None
    judul: str | None = None


class Topik(_Row):
    id: int
    bab_id: int | None = None
    kode: str | None = None
    judul: str | None = None


class Quiz(_Row):
    id: int
    topik_id: int | None = None
    jawaban: str | None = None


class JawabanQuiz(BaseModel):
    quiz_id: int
    jawaban: str


class NilaiQuiz(_Row):
    id: int | None = None
    peserta_didik_id: int
    topik_id: int
    hasil_quiz: Any = None  # JSON text of [{quiz_id, jawaban}, ...]
    tanggal_selesai: datetime | None = None
