"""Quiz scoring and predicate (predikat) rules.

Pure functions only, no DB access.

Rounding contract: every score, average and percentage in this service is
rounded half up with exact integer arithmetic (37.5 → 38, 62.5 → 63).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from app.models.syllabus import Quiz
from app.services.errors import MalformedStoredDataError

logger = logging.getLogger(__name__)

NO_PREDICATE = "-"


# ---------------------------------------------------------------------------
# Grading policy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GradingPolicy:
    """Minimum scores for each predicate.

    The same table grades a topic score, a chapter average and the
    overall course mean.
    """

    a_min: int = 88
    b_min: int = 75
    c_min: int = 60

    letter_labels: tuple[str, str, str, str] = ("A", "B", "C", "D")
    overall_labels: tuple[str, str, str, str] = ("SANGAT BAIK", "BAIK", "CUKUP", "PERLU BIMBINGAN")
    ungraded_label: str = "BELUM DINILAI"

    def band(self, value: float) -> int:
        """Index (0..3) of the band *value* falls in."""
        if value >= self.a_min:
            return 0
        if value >= self.b_min:
            return 1
        if value >= self.c_min:
            return 2
        return 3


DEFAULT_GRADING = GradingPolicy()


def round_half_up(numerator: int, denominator: int = 1) -> int:
    """Round the non-negative fraction numerator/denominator half up."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * numerator + denominator) // (2 * denominator)


def predicate(score: Optional[int], grading: GradingPolicy = DEFAULT_GRADING) -> str:
    """Letter predicate for a topic score or chapter average."""
    if score is None:
        return NO_PREDICATE
    return grading.letter_labels[grading.band(score)]


def overall_predicate(
    scores: Iterable[Optional[int]],
    grading: GradingPolicy = DEFAULT_GRADING,
) -> str:
    """Course-level predicate from the (unrounded) mean of non-null scores."""
    graded = [s for s in scores if s is not None]
    if not graded:
        return grading.ungraded_label
    mean = sum(graded) / len(graded)
    return grading.overall_labels[grading.band(mean)]


# ---------------------------------------------------------------------------
# Attempt scoring
# ---------------------------------------------------------------------------

def parse_answers(payload: Any) -> list[dict]:
    """Decode a stored hasil_quiz payload into a list of answer dicts.

    Accepts JSON text (the stored form), bytes, or an already decoded list.
    Raises MalformedStoredDataError for anything else.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise MalformedStoredDataError(f"hasil_quiz is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise MalformedStoredDataError(f"hasil_quiz must be a list, got {type(payload).__name__}")
    for item in payload:
        if not isinstance(item, dict):
            raise MalformedStoredDataError(f"hasil_quiz entry must be an object, got {item!r}")
    return payload


def score_attempt(answers: Any, question_bank: Mapping[int, Quiz]) -> Optional[int]:
    """Score one attempt against its topic's answer key.

    Returns 0..100, or None when nothing was answered or the stored
    payload cannot be decoded.
    """
    try:
        items = parse_answers(answers)
    except MalformedStoredDataError as exc:
        logger.warning("[scoring.score_attempt] Unscored attempt: %s", exc)
        return None

    if not items:
        return None

    correct = 0
    for item in items:
        quiz_id = item.get("quiz_id")
        # JSON true is not quiz 1
        quiz = question_bank.get(quiz_id) if type(quiz_id) is int else None
        if quiz is None or quiz.jawaban is None:
            continue
        if quiz.jawaban == item.get("jawaban"):
            correct += 1

    return round_half_up(100 * correct, len(items))
