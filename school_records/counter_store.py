from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .fs_atomic import RecordIOError, atomic_write_text
from .record_lock_service import RecordGuard, check_guard

_log = logging.getLogger(__name__)

_INT_TOKEN_RE = re.compile(r"^[+-]?[0-9]+$")
FIRST_ID = 1


def _parse_counter(text: str) -> Optional[int]:
    tokens = text.split()
    if not tokens or not _INT_TOKEN_RE.match(tokens[0]):
        return None
    return int(tokens[0])


def load_counter(path: Path) -> int:
    """Return the next student id stored in ``path`` (always >= 1).

    A missing file is created holding ``1``. Unreadable content or a value
    below 1 yields ``1`` and the file is left as it is.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        atomic_write_text(path, f"{FIRST_ID}\n")
        _log.info("seeded counter %s with %s", path, FIRST_ID)
        return FIRST_ID
    except OSError as exc:
        raise RecordIOError(path, "read", exc.strerror or str(exc)) from exc

    value = _parse_counter(raw.decode("ascii", errors="replace"))
    if value is None:
        _log.warning("counter %s is not a number, using %s", path, FIRST_ID)
        return FIRST_ID
    if value < FIRST_ID:
        _log.warning("counter %s holds %s, using %s", path, value, FIRST_ID)
        return FIRST_ID
    return value


def store_counter(path: Path, value: int, *, guard: Optional[RecordGuard] = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"counter value must be an integer, got {value!r}")
    if value < FIRST_ID:
        raise ValueError(f"counter value must be >= {FIRST_ID}, got {value}")
    check_guard(Path(path), guard)
    atomic_write_text(Path(path), f"{value}\n")
    _log.debug("stored counter %s = %s", path, value)


def issue_student_id(path: Path, *, guard: Optional[RecordGuard] = None) -> int:
    """Hand out the current counter value and persist its successor."""
    check_guard(Path(path), guard)
    current = load_counter(path)
    store_counter(path, current + 1, guard=guard)
    return current
