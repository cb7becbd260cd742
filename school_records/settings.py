from __future__ import annotations

import os


def env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or default)


def data_dir() -> str:
    return env_str("RECORDS_DATA_DIR", "").strip()


def students_dir() -> str:
    return env_str("RECORDS_STUDENTS_DIR", "").strip()


def counter_path() -> str:
    return env_str("RECORDS_COUNTER_PATH", "").strip()


def log_format() -> str:
    return env_str("LOG_FORMAT", "text").strip().lower()


def log_level() -> str:
    return env_str("LOG_LEVEL", "INFO").strip().upper()
