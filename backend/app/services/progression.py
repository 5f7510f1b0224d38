from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Iterator, Mapping, Optional, Sequence

from app.models.syllabus import Bab, NilaiQuiz, Quiz, Topik
from app.services.scoring import score_attempt


# ---------------------------------------------------------------------------
# Ordering helpers
# ---------------------------------------------------------------------------

def topic_sort_key(topik: Topik) -> tuple[str, str, int]:
    """Topics are ordered by kode ("A", "b", "C", ...) ignoring case; id breaks ties."""
    kode = topik.kode or ""
    return (kode.casefold(), kode, topik.id)


def sort_chapters(chapters: Iterable[Bab]) -> list[Bab]:
    return sorted(chapters, key=lambda bab: bab.id)


def group_topics(chapters: Iterable[Bab], topics: Iterable[Topik]) -> dict[int, list[Topik]]:
    """Map every bab id to its topics in kode order (empty list for none)."""
    grouped: dict[int, list[Topik]] = {bab.id: [] for bab in chapters}
    for topik in topics:
        if topik.bab_id in grouped:
            grouped[topik.bab_id].append(topik)
    for bab_id in grouped:
        grouped[bab_id].sort(key=topic_sort_key)
    return grouped


# ---------------------------------------------------------------------------
# Attempt aggregation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BestAttempt:
    attempt: NilaiQuiz
    score: Optional[int]


def best_attempt(
    attempts: Iterable[NilaiQuiz],
    question_bank: Mapping[int, Quiz],
) -> Optional[BestAttempt]:
    """Reduce one topic's attempts to the highest-scoring one.

    Ties keep the first attempt seen. An unscored attempt only ever
    becomes the initial placeholder; any scored attempt replaces it.
    """
    best: Optional[BestAttempt] = None
    for attempt in attempts:
        score = score_attempt(attempt.hasil_quiz, question_bank)
        if best is None:
            best = BestAttempt(attempt, score)
        elif score is not None and (best.score is None or score > best.score):
            best = BestAttempt(attempt, score)
    return best


def best_attempts_by_topic(
    attempts: Iterable[NilaiQuiz],
    questions: Iterable[Quiz],
) -> dict[int, BestAttempt]:
    """Best attempt per topic, for topics with at least one attempt."""
    attempts_by_topic: dict[int, list[NilaiQuiz]] = defaultdict(list)
    for attempt in attempts:
        attempts_by_topic[attempt.topik_id].append(attempt)

    banks: dict[int, dict[int, Quiz]] = defaultdict(dict)
    for quiz in questions:
        banks[quiz.topik_id][quiz.id] = quiz

    result: dict[int, BestAttempt] = {}
    for topik_id, topic_attempts in attempts_by_topic.items():
        best = best_attempt(topic_attempts, banks.get(topik_id, {}))
        if best is not None:
            result[topik_id] = best
    return result


def completed_topic_ids(attempts: Iterable[NilaiQuiz]) -> frozenset[int]:
    """Topics with at least one attempt, whatever it scored."""
    return frozenset(attempt.topik_id for attempt in attempts)


# ---------------------------------------------------------------------------
# Unlock evaluation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnlockState:
    bab: Bab
    topik: Topik
    bab_unlocked: bool
    unlocked: bool


def _walk_chapters(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    completed: AbstractSet[int],
) -> Iterator[tuple[Bab, list[Topik], bool]]:
    previous: Optional[list[Topik]] = None
    for bab in sort_chapters(chapters):
        topics = sorted(topics_by_chapter.get(bab.id, ()), key=topic_sort_key)
        if previous is None:
            bab_unlocked = True
        else:
            # an empty previous chapter counts as complete
            bab_unlocked = all(t.id in completed for t in previous)
        yield bab, topics, bab_unlocked
        previous = topics


def iter_unlock_states(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    completed: AbstractSet[int],
) -> Iterator[UnlockState]:
    """Lazily evaluate unlock flags chapter by chapter, topic by topic."""
    for bab, topics, bab_unlocked in _walk_chapters(chapters, topics_by_chapter, completed):
        for idx, topik in enumerate(topics):
            if not bab_unlocked:
                unlocked = False
            elif idx == 0:
                unlocked = True
            else:
                unlocked = topics[idx - 1].id in completed
            yield UnlockState(bab=bab, topik=topik, bab_unlocked=bab_unlocked, unlocked=unlocked)


def unlock_map(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    completed: AbstractSet[int],
) -> dict[int, bool]:
    """{topik_id: unlocked} for every topic of the given chapters."""
    return {
        state.topik.id: state.unlocked
        for state in iter_unlock_states(chapters, topics_by_chapter, completed)
    }


def chapter_unlock_map(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    completed: AbstractSet[int],
) -> dict[int, bool]:
    """{bab_id: unlocked}, including chapters without topics."""
    return {
        bab.id: bab_unlocked
        for bab, _topics, bab_unlocked in _walk_chapters(chapters, topics_by_chapter, completed)
    }


def is_topic_unlocked(
    chapters: Iterable[Bab],
    topics_by_chapter: Mapping[int, Sequence[Topik]],
    completed: AbstractSet[int],
    topik_id: int,
) -> Optional[bool]:
    """Unlock flag for a single topic; None if no chapter owns it.

    Stops evaluating as soon as the topic is reached.
    """
    for state in iter_unlock_states(chapters, topics_by_chapter, completed):
        if state.topik.id == topik_id:
            return state.unlocked
    return None
