from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .fs_atomic import RecordIOError, replace_file
from .record_codec import KeyLike, decode_line, encode_line, line_matches

_log = logging.getLogger(__name__)

FieldPairs = Iterable[Tuple[KeyLike, Any]]


def read_lines(path: Path) -> List[str]:
    """Return the raw lines of ``path`` with their line endings intact."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as file_obj:
            return file_obj.readlines()
    except OSError as exc:
        raise RecordIOError(path, "read", exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise RecordIOError(path, "read", str(exc)) from exc


def find_value(lines: Sequence[str], key: KeyLike) -> Optional[str]:
    """Value of the first line carrying ``key``, or ``None``."""
    for line in lines:
        if line_matches(line, key):
            decoded = decode_line(line)
            return decoded[1] if decoded else ""
    return None


def read_record(path: Path) -> Dict[str, str]:
    """Load ``path`` as an ordered mapping; the first occurrence of a key wins."""
    record: Dict[str, str] = {}
    for line in read_lines(path):
        decoded = decode_line(line)
        if decoded is None:
            continue
        key, value = decoded
        record.setdefault(key, value)
    return record


def render_record(fields: FieldPairs) -> str:
    return "".join(encode_line(key, value) for key, value in fields)


def create_record(path: Path, fields: FieldPairs) -> None:
    """Write a new record file; an existing file at ``path`` is never overwritten."""
    path = Path(path)
    content = render_record(fields)
    if path.exists():
        raise RecordIOError(path, "create", "record already exists")
    replace_file(path, lambda out: out.write(content))
    _log.info("created record %s", path)
