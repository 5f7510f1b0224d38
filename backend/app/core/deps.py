import logging
from functools import lru_cache

from fastapi import Depends
from supabase import create_client, Client

from app.core.config import get_settings
from app.services.pdf import ReportPDFService
from app.services.progress_service import ProgressService
from app.services.progress_store import ProgressStore, SupabaseProgressStore

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)


def get_progress_store() -> ProgressStore:
    """Returns a ProgressStore backed by Supabase."""
    try:
        return SupabaseProgressStore(get_supabase_client())
    except Exception as exc:
        logger.error("[deps.get_progress_store] Failed to get Supabase client: %s", exc)
        raise


def get_progress_service(store: ProgressStore = Depends(get_progress_store)) -> ProgressService:
    return ProgressService(store)


def get_pdf_service() -> ReportPDFService:
    settings = get_settings()
    return ReportPDFService(
        city=settings.report_city,
        government=settings.report_government,
        subject=settings.report_subject,
    )
