from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .average_service import recompute_average
from .config import COUNTER_PATH, RECORD_FILE_PREFIX, RECORD_FILE_SUFFIX, STUDENTS_DIR
from .counter_store import issue_student_id
from .field_update_service import update_field
from .paths import student_id_from_path, student_record_path
from .record_codec import SUBJECT_GRADE_KEYS, FieldKey, InvalidFieldValueError, UnknownFieldError, coerce_key
from .record_lock_service import RecordLocks
from .record_store import create_record, read_record
from .student_models import StudentDraft

_log = logging.getLogger(__name__)

READ_ONLY_FIELDS = frozenset({FieldKey.STUDENT_ID, FieldKey.AVERAGE_GRADE})


class StudentRecordError(Exception):
    def __init__(self, code: str, detail: Any):
        super().__init__(str(detail))
        self.code = code
        self.detail = detail


@dataclass(frozen=True)
class StudentRecordDeps:
    students_dir: Path = STUDENTS_DIR
    counter_path: Path = COUNTER_PATH
    locks: RecordLocks = field(default_factory=RecordLocks)


def _existing_record_path(student_id: Any, deps: StudentRecordDeps) -> Path:
    try:
        path = student_record_path(student_id, deps.students_dir)
    except ValueError as exc:
        raise StudentRecordError("invalid_student_id", str(exc)) from exc
    if not path.exists():
        raise StudentRecordError("student_not_found", f"no record for student {student_id}")
    return path


def add_student(draft: StudentDraft, *, deps: StudentRecordDeps) -> Dict[str, Any]:
    with deps.locks.hold(deps.counter_path) as counter_guard:
        student_id = issue_student_id(deps.counter_path, guard=counter_guard)
        path = student_record_path(student_id, deps.students_dir)
        # A reset counter must not clobber records issued earlier.
        while path.exists():
            _log.warning("record for id %s already exists, skipping it", student_id)
            student_id = issue_student_id(deps.counter_path, guard=counter_guard)
            path = student_record_path(student_id, deps.students_dir)
        with deps.locks.hold(path):
            create_record(path, draft.to_fields(str(student_id)))
    _log.info("added student %s", student_id)
    return {
        "ok": True,
        "student_id": str(student_id),
        "path": str(path),
        "average_grade": round(draft.average_grade, 2),
    }


def edit_student(student_id: Any, key: Any, value: Any, *, deps: StudentRecordDeps) -> Dict[str, Any]:
    """Change one field of a student record, refreshing the average after a grade edit."""
    path = _existing_record_path(student_id, deps)
    try:
        field_key = coerce_key(key)
    except UnknownFieldError:
        return {"ok": False, "error": "unknown_field", "field": str(key)}
    if field_key in READ_ONLY_FIELDS:
        return {"ok": False, "error": "read_only_field", "field": field_key.value}

    with deps.locks.hold(path) as guard:
        try:
            result = update_field(path, field_key, value, guard=guard)
        except InvalidFieldValueError as exc:
            return {"ok": False, "error": "invalid_value", "field": field_key.value, "detail": exc.reason}
        if not result.found:
            return {"ok": False, "error": "field_not_found", "field": field_key.value}

        out: Dict[str, Any] = {"ok": True, "student_id": str(student_id), "field": field_key.value}
        if field_key in SUBJECT_GRADE_KEYS:
            recompute = recompute_average(path, guard=guard)
            if not recompute.ok:
                return {
                    "ok": False,
                    "error": "missing_fields",
                    "field": field_key.value,
                    "updated": True,
                    "missing": [k.value for k in recompute.missing],
                }
            out["average_grade"] = round(recompute.average or 0.0, 2)
    return out


def recompute_student_average(student_id: Any, *, deps: StudentRecordDeps) -> Dict[str, Any]:
    path = _existing_record_path(student_id, deps)
    with deps.locks.hold(path) as guard:
        result = recompute_average(path, guard=guard)
    if not result.ok:
        return {"ok": False, "error": "missing_fields", "missing": [k.value for k in result.missing]}
    return {
        "ok": True,
        "student_id": str(student_id),
        "average_grade": round(result.average or 0.0, 2),
        "defaulted": [k.value for k in result.defaulted],
    }


def get_student(student_id: Any, *, deps: StudentRecordDeps) -> Dict[str, Any]:
    path = _existing_record_path(student_id, deps)
    with deps.locks.hold(path):
        fields = read_record(path)
    return {"ok": True, "student_id": str(student_id), "path": str(path), "fields": fields}


def list_students(*, deps: StudentRecordDeps) -> List[str]:
    if not deps.students_dir.exists():
        return []
    pattern = f"{RECORD_FILE_PREFIX}*{RECORD_FILE_SUFFIX}"
    ids = [sid for sid in (student_id_from_path(p) for p in deps.students_dir.glob(pattern)) if sid]
    ids.sort(key=lambda sid: (0, int(sid)) if sid.isdecimal() else (1, sid))
    return ids
