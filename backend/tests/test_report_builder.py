"""Tests for the laporan views assembled in report_builder.py.

All tests run FULLY OFFLINE — pure functions over in-memory rows.

Coverage:
  1. chapter status / average rules (LULUS, PROSES, "-")
  2. summary boxes (progress %, stars, overall predicate)
  3. build_report end-to-end and idempotence
  4. student syllabus and teacher score listing views
"""
import sys
import os
import json
from datetime import date, datetime, timezone

# ── Ensure backend/ is importable when pytest runs from project root ──────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from app.models.report import LaporanBab, LaporanTopik
from app.models.syllabus import Bab, Kelas, NilaiQuiz, PesertaDidik, Quiz, Sekolah, Topik
from app.services.progression import best_attempts_by_topic, group_topics
from app.services.report_builder import (
    STATUS_IN_PROGRESS,
    STATUS_NONE,
    STATUS_PASSED,
    build_report,
    build_score_listing,
    build_unlocked_syllabus,
    chapter_average,
    chapter_status,
    summarize,
)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

_STUDENT = PesertaDidik(id=1, nama_lengkap="Budi Santoso", nisn="0012345678", kelas_id=1)
_CHAPTERS = [Bab(id=1, kelas_id=1, nomor="1", judul="Tumbuhan"), Bab(id=2, kelas_id=1, nomor="2", judul="Air")]
_TOPICS = [
    Topik(id=10, bab_id=1, kode="A", judul="Bagian Tumbuhan"),
    Topik(id=11, bab_id=1, kode="B", judul="Fotosintesis"),
    Topik(id=20, bab_id=2, kode="A", judul="Daur Air"),
]
# ten questions per topic, every answer "a"
_QUESTIONS = [Quiz(id=t * 100 + i, topik_id=t, jawaban="a") for t in (10, 11, 20) for i in range(10)]


def _attempt(topik_id, n_correct, minute, attempt_id):
    answers = [
        {"quiz_id": topik_id * 100 + i, "jawaban": "a" if i < n_correct else "x"}
        for i in range(10)
    ]
    return NilaiQuiz(
        id=attempt_id,
        peserta_didik_id=1,
        topik_id=topik_id,
        hasil_quiz=json.dumps(answers),
        tanggal_selesai=datetime(2025, 3, 1, 8, minute, tzinfo=timezone.utc),
    )


def _report(attempts, printed_on=date(2025, 3, 2)):
    return build_report(
        peserta_didik=_STUDENT,
        kelas=Kelas(id=1, nama="IV A", sekolah_id=1),
        sekolah=Sekolah(id=1, nama="SDN 1 Palangka Raya", semester="genap", tahun_ajaran="2024/2025"),
        chapters=_CHAPTERS,
        topics_by_chapter=group_topics(_CHAPTERS, _TOPICS),
        attempts=attempts,
        questions=_QUESTIONS,
        printed_on=printed_on,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Chapter rules
# ─────────────────────────────────────────────────────────────────────────────

class TestChapterRules:

    def test_all_scored_is_lulus(self):
        assert chapter_status([80, 90]) == STATUS_PASSED

    def test_some_scored_is_proses(self):
        assert chapter_status([90, None]) == STATUS_IN_PROGRESS

    def test_none_scored_is_dash(self):
        assert chapter_status([None, None]) == STATUS_NONE

    def test_empty_chapter_counts_as_lulus(self):
        assert chapter_status([]) == STATUS_PASSED
        assert chapter_average([]) is None

    def test_average_ignores_nulls(self):
        assert chapter_average([90, None]) == 90

    def test_average_rounds_half_up(self):
        assert chapter_average([75, 76]) == 76


# ─────────────────────────────────────────────────────────────────────────────
# Summary boxes
# ─────────────────────────────────────────────────────────────────────────────

class TestSummarize:

    def _bab(self, *scores):
        return LaporanBab(
            id=1,
            topik=[LaporanTopik(id=i, nilai=s) for i, s in enumerate(scores)],
        )

    def test_progress_and_stars(self):
        summary = summarize([self._bab(90, None), self._bab(80)])
        assert summary.bintang_terkumpul == 2
        assert summary.total_bintang == 3
        assert summary.progress_peta == 67
        assert summary.predikat_petualang == "BAIK"  # mean of 90 and 80

    def test_mean_on_threshold_is_sangat_baik(self):
        summary = summarize([self._bab(88, None), self._bab(88)])
        assert summary.predikat_petualang == "SANGAT BAIK"

    def test_mean_just_below_threshold_is_baik(self):
        summary = summarize([self._bab(87, 88)])
        assert summary.predikat_petualang == "BAIK"

    def test_no_topics(self):
        summary = summarize([])
        assert summary.progress_peta == 0
        assert summary.total_bintang == 0
        assert summary.predikat_petualang == "BELUM DINILAI"


# ─────────────────────────────────────────────────────────────────────────────
# build_report
# ─────────────────────────────────────────────────────────────────────────────

class TestBuildReport:

    def test_best_attempt_used_for_topic(self):
        report = _report([_attempt(10, 6, 0, 1), _attempt(10, 9, 1, 2)])
        topik_a = report.bab[0].topik[0]
        assert topik_a.nilai == 90
        assert topik_a.predikat == "A"

    def test_partial_chapter_is_proses(self):
        report = _report([_attempt(10, 9, 0, 1)])
        bab1 = report.bab[0]
        assert bab1.nilai == 90
        assert bab1.status == "PROSES"
        assert bab1.predikat == "A"
        assert report.bab[1].status == "-"
        assert report.bab[1].nilai is None

    def test_complete_chapter_is_lulus(self):
        report = _report([_attempt(10, 8, 0, 1), _attempt(11, 7, 1, 2)])
        bab1 = report.bab[0]
        assert bab1.status == "LULUS"
        assert bab1.nilai == 75
        assert bab1.predikat == "B"

    def test_summary_counts(self):
        report = _report([_attempt(10, 9, 0, 1), _attempt(20, 5, 1, 2)])
        assert report.ringkasan.bintang_terkumpul == 2
        assert report.ringkasan.total_bintang == 3
        assert report.ringkasan.progress_peta == 67
        assert report.ringkasan.predikat_petualang == "CUKUP"  # mean of 90 and 50

    def test_zero_score_still_counts_as_star(self):
        report = _report([_attempt(10, 0, 0, 1)])
        assert report.bab[0].topik[0].nilai == 0
        assert report.ringkasan.bintang_terkumpul == 1

    def test_chapters_and_topics_ordered(self):
        report = _report([])
        assert [b.id for b in report.bab] == [1, 2]
        assert [t.kode for t in report.bab[0].topik] == ["A", "B"]

    def test_idempotent(self):
        attempts = [_attempt(10, 6, 0, 1), _attempt(10, 9, 1, 2), _attempt(20, 5, 2, 3)]
        assert _report(attempts).model_dump() == _report(attempts).model_dump()

    def test_missing_student_gives_empty_report(self):
        report = build_report(peserta_didik=None, printed_on=date(2025, 3, 2))
        assert report.peserta_didik is None
        assert report.bab == []
        assert report.ringkasan.predikat_petualang == "BELUM DINILAI"


# ─────────────────────────────────────────────────────────────────────────────
# Syllabus and score listings
# ─────────────────────────────────────────────────────────────────────────────

class TestListings:

    def test_unlocked_syllabus_flags(self):
        grouped = group_topics(_CHAPTERS, _TOPICS)
        syllabus = build_unlocked_syllabus(_CHAPTERS, grouped, frozenset({10}))
        assert [b.unlocked for b in syllabus] == [True, False]
        assert [t.unlocked for t in syllabus[0].topik] == [True, True]
        assert [t.unlocked for t in syllabus[1].topik] == [False]

    def test_score_listing_includes_locked_topics(self):
        grouped = group_topics(_CHAPTERS, _TOPICS)
        best = best_attempts_by_topic([_attempt(10, 6, 0, 1), _attempt(10, 9, 1, 2)], _QUESTIONS)
        listing = build_score_listing(_CHAPTERS, grouped, best)
        topik_a = listing[0].topik[0]
        assert topik_a.nilai_quiz.id == 2
        assert topik_a.nilai_quiz.nilai == 90
        assert listing[1].topik[0].nilai_quiz is None

    def test_rows_not_mutated(self):
        grouped = group_topics(_CHAPTERS, _TOPICS)
        build_unlocked_syllabus(_CHAPTERS, grouped, frozenset({10, 11}))
        assert not hasattr(_TOPICS[0], "unlocked")
