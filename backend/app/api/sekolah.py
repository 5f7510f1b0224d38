"""School directory API (public).

GET /sekolah
    Returns every sekolah row.

GET /{sekolah_id}/kelas
    Returns the kelas rows of one school. Registered last in main.py
    because the path is a bare parameter.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Path

from app.core.deps import get_progress_service
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sekolah"])


@router.get("/sekolah")
async def list_sekolah(service: ProgressService = Depends(get_progress_service)):
    try:
        return service.store.list_schools()
    except Exception as exc:
        logger.error("[sekolah.list_sekolah] Failed: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch sekolah")


@router.get("/{sekolah_id}/kelas")
async def list_kelas(
    sekolah_id: int = Path(gt=0),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return service.store.list_classes(sekolah_id)
    except Exception as exc:
        logger.error("[sekolah.list_kelas] Failed for sekolah %s: %s", sekolah_id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch kelas")
