"""Student learning map and quizzes (peserta didik token required).

GET  /bab/topik
    Chapters of the student's kelas with per-topic ``unlocked`` flags.

GET  /quiz/{topik_id}
    Quiz rows of an unlocked topic.  404 – unknown topic.  403 – locked.

POST /quiz/{topik_id}/submit
    Body: {hasil_quiz: [{quiz_id, jawaban}]}. Stores one nilai_quiz row.
    404 – unknown topic or quiz ids that do not belong to it.  403 – locked.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel

from app.core.deps import get_progress_service
from app.core.security import require_student
from app.models.syllabus import JawabanQuiz
from app.services.errors import ForbiddenError, NotFoundError
from app.services.progress_service import ProgressService
from app.services.telemetry import emit_event, instrument

logger = logging.getLogger(__name__)

router = APIRouter(tags=["belajar"])


class SubmitQuizBody(BaseModel):
    hasil_quiz: list[JawabanQuiz]


@router.get("/bab/topik")
async def get_bab_topik(
    peserta_didik_id: int = Depends(require_student),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return service.get_unlocked_syllabus(peserta_didik_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception as exc:
        logger.error("[belajar.get_bab_topik] Failed for peserta_didik %s: %s", peserta_didik_id, exc)
        raise HTTPException(status_code=500, detail="Failed to load bab")


@router.get("/quiz/{topik_id}")
@instrument(route="/quiz/{topik_id}", version="v1")
async def get_quiz(
    topik_id: int = Path(gt=0),
    peserta_didik_id: int = Depends(require_student),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return service.get_quiz_for_student(peserta_didik_id, topik_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ForbiddenError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except Exception as exc:
        logger.error("[belajar.get_quiz] Failed for topik %s: %s", topik_id, exc)
        raise HTTPException(status_code=500, detail="Failed to load quiz")


@router.post("/quiz/{topik_id}/submit")
@instrument(route="/quiz/{topik_id}/submit", version="v1")
async def submit_quiz(
    body: SubmitQuizBody,
    topik_id: int = Path(gt=0),
    peserta_didik_id: int = Depends(require_student),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        stored = service.submit_attempt(peserta_didik_id, topik_id, body.hasil_quiz)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ForbiddenError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except RuntimeError as exc:
        logger.error("[belajar.submit_quiz] Insert failed for topik %s: %s", topik_id, exc)
        raise HTTPException(status_code=500, detail=str(exc))

    emit_event(
        "quiz_submitted",
        route="/quiz/{topik_id}/submit",
        version="v1",
        peserta_didik_id=peserta_didik_id,
        topik_id=topik_id,
        nilai=service.attempt_score(stored),
    )

    return {"message": "Quiz submitted successfully", "nilai_quiz_id": stored.id}
