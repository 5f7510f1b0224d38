import time
import json
import logging
import inspect
from typing import Optional
from functools import wraps

logger = logging.getLogger("petualang.telemetry")


def emit_event(event: str, *, route: str, version: str, peserta_didik_id: Optional[int] = None,
               topik_id: Optional[int] = None, nilai: Optional[int] = None,
               error_type: Optional[str] = None, latency_ms: Optional[int] = None,
               ok: Optional[bool] = None):
    payload = {
        "event": event,
        "route": route,
        "version": version,
        "peserta_didik_id": peserta_didik_id,
        "topik_id": topik_id,
        "nilai": nilai,
        "error_type": error_type,
        "latency_ms": latency_ms,
        "ok": ok,
        "ts": time.time(),
    }
    # log as single-line JSON for easy parsing in prod
    logger.info("telemetry=%s", json.dumps(payload, separators=(",", ":")))

    # persist to Supabase (best-effort, never block the request)
    import os
    if os.getenv("ENABLE_TELEMETRY_DB", "0") != "1":
        return

    try:
        from app.core.deps import get_supabase_client
        sb = get_supabase_client()
        sb.table("telemetry_events").insert({k: v for k, v in payload.items() if k != "ts"}).execute()
    except Exception as e:
        logger.error(f"[telemetry.emit_event] {e}", exc_info=True)


def _error_label(exc: Exception) -> str:
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return f"HTTP {status_code}"
    return exc.__class__.__name__


def instrument(route: str, version: str):
    """Emit one api_call event per request, with latency and outcome.

    HTTP errors raised by the handler (403 locked topic, 404 unknown
    topic) are reported as ``"HTTP <status>"``.
    """
    def deco(fn):
        def _finish(t0: float, err: Optional[str]):
            dt = int((time.time() - t0) * 1000)
            emit_event("api_call", route=route, version=version, latency_ms=dt,
                       ok=err is None, error_type=err)

        if inspect.iscoroutinefunction(fn):
            @wraps(fn)
            async def wrapped_async(*args, **kwargs):
                t0 = time.time()
                err = None
                try:
                    return await fn(*args, **kwargs)
                except Exception as e:
                    err = _error_label(e)
                    raise
                finally:
                    _finish(t0, err)
            return wrapped_async

        @wraps(fn)
        def wrapped(*args, **kwargs):
            t0 = time.time()
            err = None
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                err = _error_label(e)
                raise
            finally:
                _finish(t0, err)
        return wrapped
    return deco
