from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from .config import COUNTER_PATH, DATA_DIR, RECORD_FILE_PREFIX, RECORD_FILE_SUFFIX, STUDENTS_DIR

_log = logging.getLogger(__name__)

_SAFE_ID_RE = re.compile(r"^[\w-]+$")


def normalize_student_id(student_id: object) -> str:
    raw = str(student_id if student_id is not None else "").strip()
    if not raw or not _SAFE_ID_RE.fullmatch(raw):
        raise ValueError(f"invalid student id: {student_id!r}")
    return raw


def student_record_path(student_id: object, students_dir: Optional[Path] = None) -> Path:
    base = Path(students_dir) if students_dir is not None else STUDENTS_DIR
    return base / f"{RECORD_FILE_PREFIX}{normalize_student_id(student_id)}{RECORD_FILE_SUFFIX}"


def student_id_from_path(path: Path) -> Optional[str]:
    name = Path(path).name
    if not (name.startswith(RECORD_FILE_PREFIX) and name.endswith(RECORD_FILE_SUFFIX)):
        return None
    sid = name[len(RECORD_FILE_PREFIX):-len(RECORD_FILE_SUFFIX)]
    return sid if sid and _SAFE_ID_RE.fullmatch(sid) else None


def ensure_storage_dirs(dirs: Optional[Iterable[Path]] = None) -> List[Path]:
    targets = [Path(d) for d in dirs] if dirs is not None else [DATA_DIR, STUDENTS_DIR, COUNTER_PATH.parent]
    for target in targets:
        target.mkdir(parents=True, exist_ok=True)
    _log.debug("storage directories ready: %s", ", ".join(str(t) for t in targets))
    return targets
