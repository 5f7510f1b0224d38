"""Report builder: deterministic views over one snapshot of quiz history.

Rules:
  - NO DB calls. Callers fetch chapters, topics, attempts and questions
    once and hand them in, so every view in a response agrees.
  - Rows are never mutated; every function returns new view objects.
  - One GradingPolicy grades topics, chapter averages and the course mean.
"""
from __future__ import annotations

from datetime import date
from typing import AbstractSet, Iterable, Mapping, Optional, Sequence

from app.models.report import (
    BabDenganNilai,
    BabTerbuka,
    LaporanBab,
    LaporanReport,
    LaporanTopik,
    NilaiTerbaik,
    RingkasanLaporan,
    TopikDenganNilai,
    TopikTerbuka,
)
from app.models.syllabus import Bab, Guru, Kelas, NilaiQuiz, PesertaDidik, Quiz, Sekolah, Topik
from app.services.progression import (
    BestAttempt,
    best_attempts_by_topic,
    chapter_unlock_map,
    iter_unlock_states,
    sort_chapters,
    topic_sort_key,
)
from app.services.scoring import (
    DEFAULT_GRADING,
    GradingPolicy,
    overall_predicate,
    predicate,
    round_half_up,
)

STATUS_PASSED = "LULUS"
STATUS_IN_PROGRESS = "PROSES"
STATUS_NONE = "-"


# ---------------------------------------------------------------------------
# Chapter / course aggregates
# ---------------------------------------------------------------------------

def chapter_status(scores: Sequence[Optional[int]]) -> str:
    """LULUS when every topic is scored, PROSES when some are, "-" otherwise."""
    scored = [s for s in scores if s is not None]
    if len(scored) == len(scores):
        return STATUS_PASSED
    if scored:
        return STATUS_IN_PROGRESS
    return STATUS_NONE


def chapter_average(scores: Iterable[Optional[int]]) -> Optional[int]:
    """Rounded mean of the scored topics; None when nothing is scored."""
    scored = [s for s in scores if s is not None]
    if not scored:
        return None
    return round_half_up(sum(scored), len(scored))


def summarize(
    chapters: Sequence[LaporanBab],
    grading: GradingPolicy = DEFAULT_GRADING,
) -> RingkasanLaporan:
    scores = [topik.nilai for bab in chapters for topik in bab.topik]
    total = len(scores)
    scored = sum(1 for s in scores if s is not None)
    return RingkasanLaporan(
        progress_peta=round_half_up(100 * scored, total) if total else 0,
        bintang_terkumpul=scored,
        total_bintang=total,
        predikat_petualang=overall_predicate(scores, grading),
    )


def build_chapter_reports(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    best_by_topic: Mapping[int, BestAttempt],
    grading: GradingPolicy = DEFAULT_GRADING,
) -> list[LaporanBab]:
    reports: list[LaporanBab] = []
    for bab in sort_chapters(chapters):
        topik_rows: list[LaporanTopik] = []
        for topik in sorted(topics_by_chapter.get(bab.id, ()), key=topic_sort_key):
            best = best_by_topic.get(topik.id)
            score = best.score if best else None
            topik_rows.append(
                LaporanTopik(
                    id=topik.id,
                    kode=topik.kode,
                    judul=topik.judul,
                    nilai=score,
                    predikat=predicate(score, grading),
                )
            )

        scores = [row.nilai for row in topik_rows]
        average = chapter_average(scores)
        reports.append(
            LaporanBab(
                id=bab.id,
                nomor=bab.nomor,
                judul=bab.judul,
                nilai=average,
                status=chapter_status(scores),
                predikat=predicate(average, grading),
                topik=topik_rows,
            )
        )
    return reports


def build_report(
    *,
    peserta_didik: Optional[PesertaDidik],
    kelas: Optional[Kelas] = None,
    sekolah: Optional[Sekolah] = None,
    guru: Optional[Guru] = None,
    chapters: Iterable[Bab] = (),
    topics_by_chapter: Optional[Mapping[int, Sequence[Topik]]] = None,
    attempts: Iterable[NilaiQuiz] = (),
    questions: Iterable[Quiz] = (),
    grading: GradingPolicy = DEFAULT_GRADING,
    printed_on: Optional[date] = None,
) -> LaporanReport:
    """Assemble the full laporan. An absent student yields an empty report."""
    if peserta_didik is None:
        return LaporanReport(tanggal_cetak=printed_on)

    best_by_topic = best_attempts_by_topic(attempts, questions)
    chapter_reports = build_chapter_reports(
        chapters, topics_by_chapter or {}, best_by_topic, grading
    )
    return LaporanReport(
        peserta_didik=peserta_didik,
        kelas=kelas,
        sekolah=sekolah,
        guru=guru,
        bab=chapter_reports,
        ringkasan=summarize(chapter_reports, grading),
        tanggal_cetak=printed_on,
    )


# ---------------------------------------------------------------------------
# Syllabus and score listings
# ---------------------------------------------------------------------------

def build_unlocked_syllabus(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    completed: AbstractSet[int],
) -> list[BabTerbuka]:
    """Chapters in id order, each with its topics and their unlock flags."""
    chapters = sort_chapters(chapters)
    flags = {
        state.topik.id: state.unlocked
        for state in iter_unlock_states(chapters, topics_by_chapter, completed)
    }
    bab_flags = chapter_unlock_map(chapters, topics_by_chapter, completed)

    return [
        BabTerbuka(
            **bab.model_dump(),
            unlocked=bab_flags[bab.id],
            topik=[
                TopikTerbuka(**topik.model_dump(), unlocked=flags[topik.id])
                for topik in sorted(topics_by_chapter.get(bab.id, ()), key=topic_sort_key)
            ],
        )
        for bab in chapters
    ]


def build_score_listing(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    best_by_topic: Mapping[int, BestAttempt],
) -> list[BabDenganNilai]:
    """Every chapter and topic (locked or not) with the best attempt, if any."""
    listing: list[BabDenganNilai] = []
    for bab in sort_chapters(chapters):
        topik_rows: list[TopikDenganNilai] = []
        for topik in sorted(topics_by_chapter.get(bab.id, ()), key=topic_sort_key):
            best = best_by_topic.get(topik.id)
            nilai_quiz = (
                NilaiTerbaik(**best.attempt.model_dump(), nilai=best.score)
                if best
                else None
            )
            topik_rows.append(TopikDenganNilai(**topik.model_dump(), nilai_quiz=nilai_quiz))
        listing.append(BabDenganNilai(**bab.model_dump(), topik=topik_rows))
    return listing
