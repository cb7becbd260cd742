from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .field_update_service import substitute_first
from .fs_atomic import replace_file
from .record_codec import SUBJECT_GRADE_KEYS, FieldKey, encode_line, parse_grade
from .record_lock_service import RecordGuard, check_guard
from .record_store import find_value, read_lines

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecomputeResult:
    path: Path
    average: Optional[float] = None
    missing: Tuple[FieldKey, ...] = ()
    defaulted: Tuple[FieldKey, ...] = ()
    appended: bool = False

    @property
    def ok(self) -> bool:
        return not self.missing


def calculate_average(grades: Iterable[float]) -> float:
    values = [float(g) for g in grades]
    if not values:
        raise ValueError("no grades to average")
    return sum(values) / len(values)


def recompute_average(path: Path, *, guard: Optional[RecordGuard] = None) -> RecomputeResult:
    """Derive AVERAGE_GRADE from the four subject grades stored in ``path``.

    Any absent subject grade aborts without writing. A grade that is present
    but unreadable counts as 0.00. An absent AVERAGE_GRADE line is appended.
    """
    path = Path(path)
    check_guard(path, guard)
    lines = read_lines(path)

    grades: List[float] = []
    missing: List[FieldKey] = []
    defaulted: List[FieldKey] = []
    for key in SUBJECT_GRADE_KEYS:
        raw = find_value(lines, key)
        if raw is None:
            missing.append(key)
            continue
        value = parse_grade(raw)
        if value is None:
            _log.warning("unreadable %s %r in %s, counting it as 0.00", key.value, raw, path)
            defaulted.append(key)
            value = 0.0
        grades.append(value)

    if missing:
        _log.warning(
            "cannot recompute average for %s: missing %s",
            path,
            ", ".join(k.value for k in missing),
        )
        return RecomputeResult(path=path, missing=tuple(missing), defaulted=tuple(defaulted))

    average = calculate_average(grades)
    new_line = encode_line(FieldKey.AVERAGE_GRADE, average)
    replaced: List[bool] = []

    def _writer(out) -> None:
        replaced.append(
            substitute_first(lines, FieldKey.AVERAGE_GRADE, new_line, out, append_if_missing=True)
        )

    replace_file(path, _writer)
    appended = not replaced[0]
    _log.info("recomputed average %s for %s", new_line.strip(), path)
    return RecomputeResult(
        path=path,
        average=average,
        defaulted=tuple(defaulted),
        appended=appended,
    )
