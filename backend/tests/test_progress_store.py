"""Tests for SupabaseProgressStore.

All tests run FULLY OFFLINE — a chainable fake stands in for the
Supabase client and records every call made on it.
"""

import sys
import os

# ── Ensure backend/ is importable when pytest runs from project root ──────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from app.models.syllabus import NilaiQuiz
from app.services.progress_store import SupabaseProgressStore


# ─────────────────────────────────────────────────────────────────────────────
# Offline Supabase mock
# ─────────────────────────────────────────────────────────────────────────────

class _FakeResult:
    """Mimics the result object returned by the Supabase Python client."""

    def __init__(self, data):
        self.data = data


class _FakeQuery:
    """Chainable query builder — filters are recorded, not applied.

    The full dataset configured for that table is always returned.
    """

    def __init__(self, name: str, data: list, calls: list, fail: bool = False):
        self._name = name
        self._data = data
        self._calls = calls
        self._fail = fail
        self._single = False

    def _record(self, op, *a, **kw) -> "_FakeQuery":
        self._calls.append((self._name, op, a, kw))
        return self

    def select(self, *a, **kw):  return self._record("select", *a, **kw)
    def eq(self, *a, **kw):      return self._record("eq", *a, **kw)
    def in_(self, *a, **kw):     return self._record("in_", *a, **kw)
    def order(self, *a, **kw):   return self._record("order", *a, **kw)
    def range(self, *a, **kw):   return self._record("range", *a, **kw)
    def insert(self, *a, **kw):  return self._record("insert", *a, **kw)
    def delete(self, *a, **kw):  return self._record("delete", *a, **kw)

    def maybe_single(self) -> "_FakeQuery":
        self._single = True
        return self

    def execute(self) -> _FakeResult:
        if self._fail:
            raise ConnectionError("supabase unavailable")
        if self._single:
            return _FakeResult(self._data[0] if self._data else None)
        return _FakeResult(self._data)


class _FakeSupabase:
    """Supabase client stub backed by an in-memory dict of table → rows."""

    def __init__(self, table_data: dict[str, list], failing: tuple = ()):
        self._tables = table_data
        self._failing = failing
        self.calls: list = []

    def table(self, name: str) -> _FakeQuery:
        return _FakeQuery(name, list(self._tables.get(name, [])), self.calls, name in self._failing)


def _ops(sb, table, op):
    return [(a, kw) for (t, o, a, kw) in sb.calls if t == table and o == op]


# ─────────────────────────────────────────────────────────────────────────────
# Reads
# ─────────────────────────────────────────────────────────────────────────────

class TestReads:

    def test_get_student_maps_row(self):
        sb = _FakeSupabase({"peserta_didik": [{"id": 1, "nama_lengkap": "Budi", "nisn": "001", "kelas_id": 2}]})
        student = SupabaseProgressStore(sb).get_student(1)
        assert student.nama_lengkap == "Budi"
        assert _ops(sb, "peserta_didik", "eq") == [(("id", 1), {})]

    def test_get_student_missing(self):
        assert SupabaseProgressStore(_FakeSupabase({})).get_student(1) is None

    def test_list_students_pages_with_range(self):
        sb = _FakeSupabase({"peserta_didik": []})
        SupabaseProgressStore(sb).list_students(3, limit=20, offset=40)
        assert _ops(sb, "peserta_didik", "range") == [((40, 59), {})]

    def test_list_topics_skips_query_for_no_chapters(self):
        sb = _FakeSupabase({})
        assert SupabaseProgressStore(sb).list_topics([]) == []
        assert sb.calls == []

    def test_list_attempts_newest_first(self):
        sb = _FakeSupabase({"nilai_quiz": [
            {"id": 5, "peserta_didik_id": 1, "topik_id": 10, "hasil_quiz": "[]",
             "tanggal_selesai": "2025-03-01T08:00:00+00:00"},
        ]})
        attempts = SupabaseProgressStore(sb).list_attempts(1, [10, 11])
        assert attempts[0].id == 5
        assert attempts[0].tanggal_selesai.year == 2025
        assert _ops(sb, "nilai_quiz", "order") == [(("tanggal_selesai",), {"desc": True})]
        assert _ops(sb, "nilai_quiz", "in_") == [(("topik_id", [10, 11]), {})]

    def test_guru_password_loaded_but_hidden(self):
        sb = _FakeSupabase({"guru": [{"id": 1, "nip": "1987", "password": "rahasia", "sekolah_id": 1}]})
        guru = SupabaseProgressStore(sb).get_teacher_by_nip("1987")
        assert guru.password == "rahasia"
        assert "password" not in guru.model_dump()


# ─────────────────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────────────────

class TestWrites:

    def test_insert_attempt_sends_payload_without_id(self):
        row = {"id": 9, "peserta_didik_id": 1, "topik_id": 10, "hasil_quiz": "[]", "tanggal_selesai": None}
        sb = _FakeSupabase({"nilai_quiz": [row]})
        stored = SupabaseProgressStore(sb).insert_attempt(
            NilaiQuiz(peserta_didik_id=1, topik_id=10, hasil_quiz="[]")
        )
        assert stored.id == 9
        (payload,), _ = _ops(sb, "nilai_quiz", "insert")[0]
        assert "id" not in payload
        assert payload["topik_id"] == 10

    def test_insert_failure_raises_runtime_error(self):
        sb = _FakeSupabase({}, failing=("nilai_quiz",))
        with pytest.raises(RuntimeError):
            SupabaseProgressStore(sb).insert_attempt(NilaiQuiz(peserta_didik_id=1, topik_id=10))

    def test_create_student_empty_result_raises(self):
        sb = _FakeSupabase({"peserta_didik": []})
        with pytest.raises(RuntimeError):
            SupabaseProgressStore(sb).create_student("Dewi", "004", 1)

    def test_delete_attempts_counts_rows(self):
        sb = _FakeSupabase({"nilai_quiz": [{"id": 1}, {"id": 2}]})
        assert SupabaseProgressStore(sb).delete_attempts(1) == 2
        assert _ops(sb, "nilai_quiz", "eq") == [(("peserta_didik_id", 1), {})]
