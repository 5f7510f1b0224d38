"""Teacher views of a class and its students (guru token required).

GET    /guru/peserta-didik/kelas/{kelas_id}?limit=20&offset=0
GET    /guru/peserta-didik/{peserta_didik_id}/nilai
GET    /guru/peserta-didik/{peserta_didik_id}/laporan
GET    /guru/peserta-didik/{peserta_didik_id}/laporan/pdf
DELETE /guru/peserta-didik/{peserta_didik_id}/nilai
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import Response

from app.core.deps import get_pdf_service, get_progress_service
from app.core.security import require_teacher
from app.models.report import LaporanReport
from app.services.errors import NotFoundError
from app.services.pdf import ReportPDFService
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/guru/peserta-didik", tags=["guru"])


def _load_report(service: ProgressService, peserta_didik_id: int, guru_id: int) -> LaporanReport:
    try:
        report = service.build_report(peserta_didik_id, guru_id=guru_id)
    except Exception as exc:
        logger.error("[guru._load_report] Failed for peserta_didik %s: %s", peserta_didik_id, exc)
        raise HTTPException(status_code=500, detail="Failed to build laporan")
    if report.peserta_didik is None:
        raise HTTPException(status_code=404, detail="Peserta didik not found")
    return report


@router.get("/kelas/{kelas_id}")
async def list_peserta_didik(
    kelas_id: int = Path(gt=0),
    limit: int = Query(20, gt=0),
    offset: int = Query(0, ge=0),
    guru_id: int = Depends(require_teacher),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return service.store.list_students(kelas_id, limit=limit, offset=offset)
    except Exception as exc:
        logger.error("[guru.list_peserta_didik] Failed for kelas %s: %s", kelas_id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch peserta didik")


@router.get("/{peserta_didik_id}/nilai")
async def get_nilai(
    peserta_didik_id: int = Path(gt=0),
    guru_id: int = Depends(require_teacher),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return service.get_student_scores(peserta_didik_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception as exc:
        logger.error("[guru.get_nilai] Failed for peserta_didik %s: %s", peserta_didik_id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch nilai")


@router.get("/{peserta_didik_id}/laporan")
async def get_laporan(
    peserta_didik_id: int = Path(gt=0),
    guru_id: int = Depends(require_teacher),
    service: ProgressService = Depends(get_progress_service),
):
    return _load_report(service, peserta_didik_id, guru_id)


@router.get("/{peserta_didik_id}/laporan/pdf")
async def get_laporan_pdf(
    peserta_didik_id: int = Path(gt=0),
    guru_id: int = Depends(require_teacher),
    service: ProgressService = Depends(get_progress_service),
    pdf_service: ReportPDFService = Depends(get_pdf_service),
):
    report = _load_report(service, peserta_didik_id, guru_id)
    try:
        pdf_bytes = pdf_service.generate_report_pdf(report)
    except Exception as exc:
        logger.error("[guru.get_laporan_pdf] Render failed for peserta_didik %s: %s", peserta_didik_id, exc)
        raise HTTPException(status_code=500, detail="Failed to render laporan")

    nisn = report.peserta_didik.nisn or str(peserta_didik_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="laporan-{nisn}.pdf"'},
    )


@router.delete("/{peserta_didik_id}/nilai")
async def reset_nilai(
    peserta_didik_id: int = Path(gt=0),
    guru_id: int = Depends(require_teacher),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        deleted = service.reset_attempts(peserta_didik_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RuntimeError as exc:
        logger.error("[guru.reset_nilai] Failed for peserta_didik %s: %s", peserta_didik_id, exc)
        raise HTTPException(status_code=500, detail=str(exc))

    logger.info("[guru.reset_nilai] guru %s reset peserta_didik %s", guru_id, peserta_didik_id)
    return {"deleted": deleted}
