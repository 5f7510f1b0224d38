"""ProgressService: unlock checks, quiz submission and laporan assembly.

Each public method fetches its rows (chapters, topics, attempts, questions)
once at the start and computes every derived value from that snapshot using
the pure functions in ``progression`` / ``report_builder``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from app.models.report import BabDenganNilai, BabTerbuka, LaporanReport
from app.models.syllabus import Bab, JawabanQuiz, NilaiQuiz, Quiz, Topik
from app.services.errors import ForbiddenError, NotFoundError, ValidationMismatchError
from app.services.progress_store import ProgressStore
from app.services.progression import (
    best_attempts_by_topic,
    completed_topic_ids,
    group_topics,
    is_topic_unlocked,
)
from app.services.report_builder import (
    build_report,
    build_score_listing,
    build_unlocked_syllabus,
)
from app.services.scoring import DEFAULT_GRADING, GradingPolicy, score_attempt

logger = logging.getLogger(__name__)


@dataclass
class _ClassSnapshot:
    chapters: list[Bab] = field(default_factory=list)
    topics_by_chapter: dict[int, list[Topik]] = field(default_factory=dict)
    attempts: list[NilaiQuiz] = field(default_factory=list)
    questions: list[Quiz] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressService:
    def __init__(
        self,
        store: ProgressStore,
        grading: GradingPolicy = DEFAULT_GRADING,
        enforce_unlock_on_submit: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._grading = grading
        self._enforce_unlock_on_submit = enforce_unlock_on_submit
        self._clock = clock or _utcnow

    @property
    def store(self) -> ProgressStore:
        return self._store

    # -----------------------------------------------------------------------
    # Snapshot loading
    # -----------------------------------------------------------------------

    def _load_class(
        self,
        kelas_id: Optional[int],
        peserta_didik_id: int,
        with_questions: bool = False,
    ) -> _ClassSnapshot:
        if kelas_id is None:
            return _ClassSnapshot()

        chapters = self._store.list_chapters(kelas_id)
        topics = self._store.list_topics([bab.id for bab in chapters])
        topik_ids = [topik.id for topik in topics]
        attempts = self._store.list_attempts(peserta_didik_id, topik_ids)
        questions = self._store.list_questions(topik_ids) if with_questions else []

        return _ClassSnapshot(
            chapters=chapters,
            topics_by_chapter=group_topics(chapters, topics),
            attempts=attempts,
            questions=questions,
        )

    def _require_student(self, peserta_didik_id: int):
        student = self._store.get_student(peserta_didik_id)
        if student is None:
            raise NotFoundError("Peserta didik not found")
        return student

    def _require_topic(self, topik_id: int) -> Topik:
        topik = self._store.get_topic(topik_id)
        if topik is None:
            raise NotFoundError("Topik not found")
        return topik

    def _topic_unlocked(self, peserta_didik_id: int, topik: Topik) -> bool:
        bab = self._store.get_chapter(topik.bab_id) if topik.bab_id is not None else None
        if bab is None:
            raise NotFoundError("Bab not found")

        snapshot = self._load_class(bab.kelas_id, peserta_didik_id)
        unlocked = is_topic_unlocked(
            snapshot.chapters,
            snapshot.topics_by_chapter,
            completed_topic_ids(snapshot.attempts),
            topik.id,
        )
        if unlocked is None:
            raise NotFoundError("Topik not found in kelas")
        return unlocked

    # -----------------------------------------------------------------------
    # Student operations
    # -----------------------------------------------------------------------

    def get_unlocked_syllabus(self, peserta_didik_id: int) -> list[BabTerbuka]:
        """All chapters of the student's class with per-topic unlock flags."""
        student = self._require_student(peserta_didik_id)
        snapshot = self._load_class(student.kelas_id, peserta_didik_id)
        return build_unlocked_syllabus(
            snapshot.chapters,
            snapshot.topics_by_chapter,
            completed_topic_ids(snapshot.attempts),
        )

    def check_topic_access(self, peserta_didik_id: int, topik_id: int) -> bool:
        return self._topic_unlocked(peserta_didik_id, self._require_topic(topik_id))

    def get_quiz_for_student(self, peserta_didik_id: int, topik_id: int) -> list[Quiz]:
        """Quiz questions of a topic, only once the topic is unlocked."""
        if not self.check_topic_access(peserta_didik_id, topik_id):
            raise ForbiddenError("Topik belum terbuka/unlocked")
        return self._store.list_questions([topik_id])

    def submit_attempt(
        self,
        peserta_didik_id: int,
        topik_id: int,
        answers: Sequence[JawabanQuiz],
    ) -> NilaiQuiz:
        """Validate and append one nilai_quiz row.

        Raises:
            NotFoundError – topic does not exist
            ValidationMismatchError – a quiz id is unknown, duplicated or
                belongs to another topic
            ForbiddenError – topic still locked for this student
            RuntimeError – the insert failed (nothing was written)
        """
        topik = self._require_topic(topik_id)

        submitted_ids = {answer.quiz_id for answer in answers}
        matched = [q for q in self._store.list_questions([topik_id]) if q.id in submitted_ids]
        if len(matched) != len(answers):
            raise ValidationMismatchError("Some quiz not found or do not belong to the topik")

        if self._enforce_unlock_on_submit and not self._topic_unlocked(peserta_didik_id, topik):
            raise ForbiddenError("Topik belum terbuka/unlocked")

        attempt = NilaiQuiz(
            peserta_didik_id=peserta_didik_id,
            topik_id=topik_id,
            hasil_quiz=json.dumps(
                [answer.model_dump() for answer in answers],
                separators=(",", ":"),
                ensure_ascii=False,
            ),
            tanggal_selesai=self._clock(),
        )
        stored = self._store.insert_attempt(attempt)
        logger.info(
            "[ProgressService.submit_attempt] peserta_didik=%s topik=%s answers=%d",
            peserta_didik_id, topik_id, len(answers),
        )
        return stored

    def attempt_score(self, attempt: NilaiQuiz) -> Optional[int]:
        """Score one stored attempt against its topic's questions."""
        bank = {q.id: q for q in self._store.list_questions([attempt.topik_id])}
        return score_attempt(attempt.hasil_quiz, bank)

    # -----------------------------------------------------------------------
    # Teacher operations
    # -----------------------------------------------------------------------

    def get_student_scores(self, peserta_didik_id: int) -> list[BabDenganNilai]:
        """Every chapter and topic with the student's best attempt, locked or not."""
        student = self._require_student(peserta_didik_id)
        snapshot = self._load_class(student.kelas_id, peserta_didik_id, with_questions=True)
        return build_score_listing(
            snapshot.chapters,
            snapshot.topics_by_chapter,
            best_attempts_by_topic(snapshot.attempts, snapshot.questions),
        )

    def build_report(self, peserta_didik_id: int, guru_id: Optional[int] = None) -> LaporanReport:
        """Build the laporan model. An unknown student gives an empty report."""
        printed_on: date = self._clock().date()
        student = self._store.get_student(peserta_didik_id)
        if student is None:
            logger.info("[ProgressService.build_report] peserta_didik %s not found", peserta_didik_id)
            return build_report(peserta_didik=None, printed_on=printed_on)

        kelas = self._store.get_class(student.kelas_id) if student.kelas_id is not None else None
        sekolah = (
            self._store.get_school(kelas.sekolah_id)
            if kelas is not None and kelas.sekolah_id is not None
            else None
        )
        guru = self._store.get_teacher(guru_id) if guru_id is not None else None

        snapshot = self._load_class(student.kelas_id, peserta_didik_id, with_questions=True)
        return build_report(
            peserta_didik=student,
            kelas=kelas,
            sekolah=sekolah,
            guru=guru,
            chapters=snapshot.chapters,
            topics_by_chapter=snapshot.topics_by_chapter,
            attempts=snapshot.attempts,
            questions=snapshot.questions,
            grading=self._grading,
            printed_on=printed_on,
        )

    def reset_attempts(self, peserta_didik_id: int) -> int:
        """Delete every nilai_quiz row of a student; returns the row count."""
        self._require_student(peserta_didik_id)
        deleted = self._store.delete_attempts(peserta_didik_id)
        logger.info(
            "[ProgressService.reset_attempts] peserta_didik=%s deleted=%d",
            peserta_didik_id, deleted,
        )
        return deleted
