from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Callable, Optional, TextIO

_log = logging.getLogger(__name__)


class RecordIOError(OSError):
    """A record or counter file could not be read, written or moved into place.

    ``tmp_path`` is set when the failure happened while a temporary sibling
    existed; ``tmp_left_behind`` tells the caller that cleanup did not succeed
    and the file is still on disk.
    """

    def __init__(
        self,
        path: Path,
        operation: str,
        detail: str = "",
        *,
        tmp_path: Optional[Path] = None,
        tmp_left_behind: bool = False,
    ):
        message = f"{operation} failed for {path}"
        if detail:
            message = f"{message}: {detail}"
        if tmp_left_behind and tmp_path is not None:
            message = f"{message} (temporary file left at {tmp_path})"
        super().__init__(message)
        self.path = Path(path)
        self.operation = operation
        self.detail = detail
        self.tmp_path = tmp_path
        self.tmp_left_behind = bool(tmp_left_behind)


def _atomic_tmp_path(path: Path) -> Path:
    return path.with_name(path.name + f".{uuid.uuid4().hex}.tmp")


def _discard_tmp(tmp: Path) -> bool:
    """Remove ``tmp``; return True when it is gone afterwards."""
    try:
        tmp.unlink(missing_ok=True)
    except OSError:
        _log.debug("failed to clean up temp file %s", tmp, exc_info=True)
    return not tmp.exists()


def replace_file(path: Path, writer: Callable[[TextIO], None]) -> None:
    """Rewrite ``path`` so readers only ever see the old or the new content.

    ``writer`` receives a fresh text stream for a sibling temp file and must
    write the complete final content. Newlines are written untranslated.
    """
    path = Path(path)
    tmp = _atomic_tmp_path(path)
    try:
        with open(tmp, "w", encoding="utf-8", newline="") as file_obj:
            writer(file_obj)
            file_obj.flush()
            os.fsync(file_obj.fileno())
    except BaseException as exc:
        _discard_tmp(tmp)
        if isinstance(exc, RecordIOError):
            raise
        if isinstance(exc, OSError):
            raise RecordIOError(path, "write", exc.strerror or str(exc)) from exc
        raise

    try:
        tmp.replace(path)
    except OSError as exc:
        left_behind = not _discard_tmp(tmp)
        _log.error(
            "could not move %s into place",
            tmp,
            extra={"record_path": str(path), "operation": "rename"},
        )
        raise RecordIOError(
            path,
            "rename",
            exc.strerror or str(exc),
            tmp_path=tmp,
            tmp_left_behind=left_behind,
        ) from exc
    _log.debug("replaced %s", path)


def atomic_write_text(path: Path, text: str) -> None:
    replace_file(path, lambda file_obj: file_obj.write(text))
