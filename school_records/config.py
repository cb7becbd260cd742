from __future__ import annotations

from pathlib import Path

from . import settings as _settings

APP_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = Path(_settings.data_dir() or (APP_ROOT / "data"))
STUDENTS_DIR = Path(_settings.students_dir() or (DATA_DIR / "students"))
COUNTER_PATH = Path(_settings.counter_path() or (DATA_DIR / "next_id.txt"))

RECORD_FILE_PREFIX = "output_"
RECORD_FILE_SUFFIX = ".txt"
