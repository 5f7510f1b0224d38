import os
import sys
import json
import asyncio
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi import HTTPException

from app.services.telemetry import emit_event, instrument


def _events(caplog):
    return [
        json.loads(r.getMessage().split("telemetry=", 1)[1])
        for r in caplog.records
        if r.name == "petualang.telemetry"
    ]

def test_emit_event_logs_single_line_json(caplog, monkeypatch):
    monkeypatch.delenv("ENABLE_TELEMETRY_DB", raising=False)
    caplog.set_level(logging.INFO, logger="petualang.telemetry")
    emit_event("quiz_submitted", route="/quiz/{topik_id}/submit", version="v1", topik_id=10, nilai=75)
    (event,) = _events(caplog)
    assert event["event"] == "quiz_submitted"
    assert event["topik_id"] == 10
    assert event["nilai"] == 75

def test_instrument_sync_success(caplog):
    caplog.set_level(logging.INFO, logger="petualang.telemetry")

    @instrument(route="/x", version="v1")
    def handler():
        return 1

    assert handler() == 1
    (event,) = _events(caplog)
    assert event["ok"] is True
    assert event["error_type"] is None

def test_instrument_async_http_error(caplog):
    caplog.set_level(logging.INFO, logger="petualang.telemetry")

    @instrument(route="/quiz/{topik_id}", version="v1")
    async def handler():
        raise HTTPException(status_code=403, detail="locked")

    with pytest.raises(HTTPException):
        asyncio.run(handler())
    (event,) = _events(caplog)
    assert event["ok"] is False
    assert event["error_type"] == "HTTP 403"

def test_instrument_keeps_signature():
    @instrument(route="/x", version="v1")
    async def handler(topik_id: int):
        return topik_id

    assert handler.__wrapped__.__name__ == "handler"
    assert asyncio.run(handler(5)) == 5
