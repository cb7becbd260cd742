from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, TextIO

from .fs_atomic import RecordIOError, replace_file
from .record_codec import FieldKey, KeyLike, coerce_key, encode_line, line_matches
from .record_lock_service import RecordGuard, check_guard

_log = logging.getLogger(__name__)


class FieldUpdateOutcome(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class FieldUpdateResult:
    path: Path
    key: FieldKey
    line: str
    outcome: FieldUpdateOutcome

    @property
    def found(self) -> bool:
        return self.outcome is FieldUpdateOutcome.FOUND


def substitute_first(
    lines: Iterable[str],
    key: FieldKey,
    new_line: str,
    out: TextIO,
    *,
    append_if_missing: bool = False,
) -> bool:
    """Copy ``lines`` to ``out`` replacing the first line of ``key`` with ``new_line``.

    Returns whether a line was replaced. With ``append_if_missing`` an absent
    key is written once at the end instead.
    """
    replaced = False
    last = ""
    for line in lines:
        if not replaced and line_matches(line, key):
            out.write(new_line)
            replaced = True
            last = new_line
            continue
        out.write(line)
        last = line
    if not replaced and append_if_missing:
        if last and not last.endswith("\n"):
            out.write("\n")
        out.write(new_line)
    return replaced


def update_field(
    path: Path,
    key: KeyLike,
    new_value: Any,
    *,
    guard: Optional[RecordGuard] = None,
) -> FieldUpdateResult:
    """Rewrite the first ``key`` line of the record at ``path``.

    The value is validated and formatted before the file is touched. A missing
    key leaves the content unchanged and is reported as ``NOT_FOUND``.
    """
    path = Path(path)
    field = coerce_key(key)
    new_line = encode_line(field, new_value)
    check_guard(path, guard)

    try:
        source = open(path, "r", encoding="utf-8", newline="")
    except OSError as exc:
        raise RecordIOError(path, "read", exc.strerror or str(exc)) from exc

    found: List[bool] = []
    with source:
        def _writer(out: TextIO) -> None:
            try:
                found.append(substitute_first(source, field, new_line, out))
            except UnicodeDecodeError as exc:
                raise RecordIOError(path, "read", str(exc)) from exc

        replace_file(path, _writer)

    outcome = FieldUpdateOutcome.FOUND if found and found[0] else FieldUpdateOutcome.NOT_FOUND
    if outcome is FieldUpdateOutcome.FOUND:
        _log.info("updated %s in %s", field.value, path)
    else:
        _log.info("field %s not present in %s; record left unchanged", field.value, path)
    return FieldUpdateResult(path=path, key=field, line=new_line, outcome=outcome)
