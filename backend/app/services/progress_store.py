from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from app.models.syllabus import Bab, Guru, Kelas, NilaiQuiz, PesertaDidik, Quiz, Sekolah, Topik

logger = logging.getLogger(__name__)


class ProgressStore:
    """Read/write access to the school, syllabus and quiz tables."""

    # -- schools / classes / people ------------------------------------------
    def list_schools(self) -> list[Sekolah]:
        raise NotImplementedError

    def get_school(self, sekolah_id: int) -> Optional[Sekolah]:
        raise NotImplementedError

    def list_classes(self, sekolah_id: int) -> list[Kelas]:
        raise NotImplementedError

    def get_class(self, kelas_id: int) -> Optional[Kelas]:
        raise NotImplementedError

    def get_student(self, peserta_didik_id: int) -> Optional[PesertaDidik]:
        raise NotImplementedError

    def get_student_by_nisn(self, nisn: str) -> Optional[PesertaDidik]:
        raise NotImplementedError

    def list_students(self, kelas_id: int, limit: int = 20, offset: int = 0) -> list[PesertaDidik]:
        raise NotImplementedError

    def create_student(self, nama_lengkap: str, nisn: str, kelas_id: int) -> PesertaDidik:
        raise NotImplementedError

    def get_teacher(self, guru_id: int) -> Optional[Guru]:
        raise NotImplementedError

    def get_teacher_by_nip(self, nip: str) -> Optional[Guru]:
        raise NotImplementedError

    # -- syllabus ---------------------------------------------------------------
    def list_chapters(self, kelas_id: int) -> list[Bab]:
        raise NotImplementedError

    def get_chapter(self, bab_id: int) -> Optional[Bab]:
        raise NotImplementedError

    def get_topic(self, topik_id: int) -> Optional[Topik]:
        raise NotImplementedError

    def list_topics(self, bab_ids: Iterable[int]) -> list[Topik]:
        raise NotImplementedError

    def list_questions(self, topik_ids: Iterable[int]) -> list[Quiz]:
        raise NotImplementedError

    # -- attempts ---------------------------------------------------------------
    def list_attempts(self, peserta_didik_id: int, topik_ids: Iterable[int]) -> list[NilaiQuiz]:
        """Attempts of one student on the given topics, newest first."""
        raise NotImplementedError

    def insert_attempt(self, attempt: NilaiQuiz) -> NilaiQuiz:
        raise NotImplementedError

    def delete_attempts(self, peserta_didik_id: int) -> int:
        raise NotImplementedError


def _newest_first_key(attempt: NilaiQuiz):
    ts = attempt.tanggal_selesai or datetime.min.replace(tzinfo=timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class InMemoryProgressStore(ProgressStore):
    def __init__(
        self,
        sekolah: Iterable[Sekolah] = (),
        kelas: Iterable[Kelas] = (),
        peserta_didik: Iterable[PesertaDidik] = (),
        guru: Iterable[Guru] = (),
        bab: Iterable[Bab] = (),
        topik: Iterable[Topik] = (),
        quiz: Iterable[Quiz] = (),
        nilai_quiz: Iterable[NilaiQuiz] = (),
    ):
        self._sekolah = {row.id: row for row in sekolah}
        self._kelas = {row.id: row for row in kelas}
        self._peserta_didik = {row.id: row for row in peserta_didik}
        self._guru = {row.id: row for row in guru}
        self._bab = {row.id: row for row in bab}
        self._topik = {row.id: row for row in topik}
        self._quiz = {row.id: row for row in quiz}
        self._nilai_quiz: list[NilaiQuiz] = list(nilai_quiz)

    def list_schools(self):
        return sorted(self._sekolah.values(), key=lambda r: r.id)

    def get_school(self, sekolah_id):
        return self._sekolah.get(sekolah_id)

    def list_classes(self, sekolah_id):
        return sorted(
            (k for k in self._kelas.values() if k.sekolah_id == sekolah_id),
            key=lambda r: r.id,
        )

    def get_class(self, kelas_id):
        return self._kelas.get(kelas_id)

    def get_student(self, peserta_didik_id):
        return self._peserta_didik.get(peserta_didik_id)

    def get_student_by_nisn(self, nisn):
        for row in self._peserta_didik.values():
            if row.nisn == nisn:
                return row
        return None

    def list_students(self, kelas_id, limit=20, offset=0):
        rows = sorted(
            (p for p in self._peserta_didik.values() if p.kelas_id == kelas_id),
            key=lambda r: r.id,
        )
        return rows[offset:offset + limit]

    def create_student(self, nama_lengkap, nisn, kelas_id):
        if self.get_student_by_nisn(nisn) is not None:
            raise RuntimeError(f"NISN {nisn} already registered")
        new_id = max(self._peserta_didik, default=0) + 1
        row = PesertaDidik(id=new_id, nama_lengkap=nama_lengkap, nisn=nisn, kelas_id=kelas_id)
        self._peserta_didik[new_id] = row
        return row

    def get_teacher(self, guru_id):
        return self._guru.get(guru_id)

    def get_teacher_by_nip(self, nip):
        for row in self._guru.values():
            if row.nip == nip:
                return row
        return None

    def list_chapters(self, kelas_id):
        return sorted(
            (b for b in self._bab.values() if b.kelas_id == kelas_id),
            key=lambda r: r.id,
        )

    def get_chapter(self, bab_id):
        return self._bab.get(bab_id)

    def get_topic(self, topik_id):
        return self._topik.get(topik_id)

    def list_topics(self, bab_ids):
        wanted = set(bab_ids)
        return [t for t in self._topik.values() if t.bab_id in wanted]

    def list_questions(self, topik_ids):
        wanted = set(topik_ids)
        return [q for q in self._quiz.values() if q.topik_id in wanted]

    def list_attempts(self, peserta_didik_id, topik_ids):
        wanted = set(topik_ids)
        rows = [
            a for a in self._nilai_quiz
            if a.peserta_didik_id == peserta_didik_id and a.topik_id in wanted
        ]
        return sorted(rows, key=_newest_first_key, reverse=True)

    def insert_attempt(self, attempt):
        new_id = max((a.id or 0 for a in self._nilai_quiz), default=0) + 1
        stored = attempt.model_copy(update={"id": new_id})
        self._nilai_quiz.append(stored)
        return stored

    def delete_attempts(self, peserta_didik_id):
        before = len(self._nilai_quiz)
        self._nilai_quiz = [a for a in self._nilai_quiz if a.peserta_didik_id != peserta_didik_id]
        return before - len(self._nilai_quiz)


class SupabaseProgressStore(ProgressStore):
    def __init__(self, supabase_client):
        self.sb = supabase_client

    # -----------------------------------------------------------------------
    # Private query helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _rows(r) -> list[dict]:
        return getattr(r, "data", None) or []

    def _one(self, table: str, column: str, value) -> Optional[dict]:
        r = (
            self.sb.table(table)
            .select("*")
            .eq(column, value)
            .maybe_single()
            .execute()
        )
        return getattr(r, "data", None)

    # -----------------------------------------------------------------------
    # Schools / classes / people
    # -----------------------------------------------------------------------

    def list_schools(self):
        r = self.sb.table("sekolah").select("*").order("id").execute()
        return [Sekolah.model_validate(d) for d in self._rows(r)]

    def get_school(self, sekolah_id):
        data = self._one("sekolah", "id", sekolah_id)
        return Sekolah.model_validate(data) if data else None

    def list_classes(self, sekolah_id):
        r = self.sb.table("kelas").select("*").eq("sekolah_id", sekolah_id).order("id").execute()
        return [Kelas.model_validate(d) for d in self._rows(r)]

    def get_class(self, kelas_id):
        data = self._one("kelas", "id", kelas_id)
        return Kelas.model_validate(data) if data else None

    def get_student(self, peserta_didik_id):
        data = self._one("peserta_didik", "id", peserta_didik_id)
        return PesertaDidik.model_validate(data) if data else None

    def get_student_by_nisn(self, nisn):
        data = self._one("peserta_didik", "nisn", nisn)
        return PesertaDidik.model_validate(data) if data else None

    def list_students(self, kelas_id, limit=20, offset=0):
        r = (
            self.sb.table("peserta_didik")
            .select("*")
            .eq("kelas_id", kelas_id)
            .order("id")
            .range(offset, offset + limit - 1)
            .execute()
        )
        return [PesertaDidik.model_validate(d) for d in self._rows(r)]

    def create_student(self, nama_lengkap, nisn, kelas_id):
        payload = {"nama_lengkap": nama_lengkap, "nisn": nisn, "kelas_id": kelas_id}
        try:
            r = self.sb.table("peserta_didik").insert(payload).execute()
        except Exception as exc:
            logger.error("[SupabaseProgressStore.create_student] Insert failed: %s", exc)
            raise RuntimeError(f"Could not register peserta didik: {exc}")
        rows = self._rows(r)
        if not rows:
            raise RuntimeError("Could not register peserta didik: empty insert result")
        return PesertaDidik.model_validate(rows[0])

    def get_teacher(self, guru_id):
        data = self._one("guru", "id", guru_id)
        return Guru.model_validate(data) if data else None

    def get_teacher_by_nip(self, nip):
        data = self._one("guru", "nip", nip)
        return Guru.model_validate(data) if data else None

    # -----------------------------------------------------------------------
    # Syllabus
    # -----------------------------------------------------------------------

    def list_chapters(self, kelas_id):
        r = self.sb.table("bab").select("*").eq("kelas_id", kelas_id).order("id").execute()
        return [Bab.model_validate(d) for d in self._rows(r)]

    def get_chapter(self, bab_id):
        data = self._one("bab", "id", bab_id)
        return Bab.model_validate(data) if data else None

    def get_topic(self, topik_id):
        data = self._one("topik", "id", topik_id)
        return Topik.model_validate(data) if data else None

    def list_topics(self, bab_ids):
        ids = list(bab_ids)
        if not ids:
            return []
        r = self.sb.table("topik").select("*").in_("bab_id", ids).execute()
        return [Topik.model_validate(d) for d in self._rows(r)]

    def list_questions(self, topik_ids):
        ids = list(topik_ids)
        if not ids:
            return []
        r = self.sb.table("quiz").select("*").in_("topik_id", ids).execute()
        return [Quiz.model_validate(d) for d in self._rows(r)]

    # -----------------------------------------------------------------------
    # Attempts
    # -----------------------------------------------------------------------

    def list_attempts(self, peserta_didik_id, topik_ids):
        ids = list(topik_ids)
        if not ids:
            return []
        r = (
            self.sb.table("nilai_quiz")
            .select("*")
            .eq("peserta_didik_id", peserta_didik_id)
            .in_("topik_id", ids)
            .order("tanggal_selesai", desc=True)
            .execute()
        )
        return [NilaiQuiz.model_validate(d) for d in self._rows(r)]

    def insert_attempt(self, attempt):
        payload = attempt.model_dump(mode="json", exclude={"id"})
        try:
            r = self.sb.table("nilai_quiz").insert(payload).execute()
        except Exception as exc:
            logger.error("[SupabaseProgressStore.insert_attempt] Insert failed: %s", exc)
            raise RuntimeError(f"Could not store nilai_quiz: {exc}")
        rows = self._rows(r)
        return NilaiQuiz.model_validate(rows[0]) if rows else attempt

    def delete_attempts(self, peserta_didik_id):
        try:
            r = self.sb.table("nilai_quiz").delete().eq("peserta_didik_id", peserta_didik_id).execute()
        except Exception as exc:
            logger.error("[SupabaseProgressStore.delete_attempts] Delete failed: %s", exc)
            raise RuntimeError(f"Could not reset nilai_quiz: {exc}")
        return len(self._rows(r))
