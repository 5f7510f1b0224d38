"""View models built from the syllabus rows.

Each view is a new object; the rows it was built from are never mutated.
"""
from datetime import date

from pydantic import BaseModel, Field

from app.models.syllabus import Bab, Guru, Kelas, NilaiQuiz, PesertaDidik, Sekolah, Topik


# ---------------------------------------------------------------------------
# Student syllabus (GET /bab/topik)
# ---------------------------------------------------------------------------

class TopikTerbuka(Topik):
    unlocked: bool = False


class BabTerbuka(Bab):
    unlocked: bool = False
    topik: list[TopikTerbuka] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Teacher score listing (GET /guru/peserta-didik/{id}/nilai)
# ---------------------------------------------------------------------------

class NilaiTerbaik(NilaiQuiz):
    nilai: int | None = None


class TopikDenganNilai(Topik):
    nilai_quiz: NilaiTerbaik | None = None


class BabDenganNilai(Bab):
    topik: list[TopikDenganNilai] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Laporan (report card)
# ---------------------------------------------------------------------------

class LaporanTopik(BaseModel):
    id: int
    kode: str | None = None
    judul: str | None = None
    nilai: int | None = None
    predikat: str = "-"


class LaporanBab(BaseModel):
    id: int
    nomor: str | None = None
    judul: str | None = None
    nilai: int | None = None
    status: str = "-"
    predikat: str = "-"
    topik: list[LaporanTopik] = Field(default_factory=list)


class RingkasanLaporan(BaseModel):
    progress_peta: int = 0
    bintang_terkumpul: int = 0
    total_bintang: int = 0
    predikat_petualang: str = "BELUM DINILAI"


class LaporanReport(BaseModel):
    peserta_didik: PesertaDidik | None = None
    kelas: Kelas | None = None
    sekolah: Sekolah | None = None
    guru: Guru | None = None
    bab: list[LaporanBab] = Field(default_factory=list)
    ringkasan: RingkasanLaporan = Field(default_factory=RingkasanLaporan)
    tanggal_cetak: date | None = None
