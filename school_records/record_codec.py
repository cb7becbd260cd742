"""Line codec for student record files.

Each record line is ``KEY = VALUE`` followed by a newline. Keys come from the
closed ``FieldKey`` set; grade-valued keys are rendered with two decimals.
"""
from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Optional, Tuple, Union

SEPARATOR = " = "
_INT_RE = re.compile(r"^[+-]?[0-9]+$")


class FieldKey(str, Enum):
    NAME = "NAME"
    FAMILY_NAME = "FAMILY_NAME"
    DOB = "DOB"
    STUDENT_ID = "STUDENT_ID"
    FATHER_NAME = "FATHER_NAME"
    MOTHER_NAME = "MOTHER_NAME"
    PHONE_NUMBER = "PHONE_NUMBER"
    GRADE = "GRADE"
    SUBJECT1_NAME = "SUBJECT1_NAME"
    SUBJECT1_GRADE = "SUBJECT1_GRADE"
    SUBJECT2_NAME = "SUBJECT2_NAME"
    SUBJECT2_GRADE = "SUBJECT2_GRADE"
    SUBJECT3_NAME = "SUBJECT3_NAME"
    SUBJECT3_GRADE = "SUBJECT3_GRADE"
    SUBJECT4_NAME = "SUBJECT4_NAME"
    SUBJECT4_GRADE = "SUBJECT4_GRADE"
    AVERAGE_GRADE = "AVERAGE_GRADE"

    def __str__(self) -> str:
        return self.value


SUBJECT_NAME_KEYS = (
    FieldKey.SUBJECT1_NAME,
    FieldKey.SUBJECT2_NAME,
    FieldKey.SUBJECT3_NAME,
    FieldKey.SUBJECT4_NAME,
)
SUBJECT_GRADE_KEYS = (
    FieldKey.SUBJECT1_GRADE,
    FieldKey.SUBJECT2_GRADE,
    FieldKey.SUBJECT3_GRADE,
    FieldKey.SUBJECT4_GRADE,
)
GRADE_KEYS = frozenset(SUBJECT_GRADE_KEYS + (FieldKey.AVERAGE_GRADE,))
INTEGER_KEYS = frozenset({FieldKey.GRADE})

KeyLike = Union[FieldKey, str]


class UnknownFieldError(ValueError):
    def __init__(self, key: Any):
        super().__init__(f"unknown record field: {key!r}")
        self.key = key


class InvalidFieldValueError(ValueError):
    def __init__(self, key: FieldKey, value: Any, reason: str):
        super().__init__(f"invalid value for {key.value}: {reason}")
        self.key = key
        self.value = value
        self.reason = reason


def coerce_key(key: KeyLike) -> FieldKey:
    if isinstance(key, FieldKey):
        return key
    try:
        return FieldKey(str(key or "").strip().upper())
    except ValueError:
        raise UnknownFieldError(key) from None


def line_prefix(key: KeyLike) -> str:
    return coerce_key(key).value + SEPARATOR


def line_matches(line: str, key: KeyLike) -> bool:
    return line.startswith(line_prefix(key))


def format_grade(value: float) -> str:
    return f"{float(value):.2f}"


def _check_text(key: FieldKey, text: str) -> str:
    if "\n" in text or "\r" in text:
        raise InvalidFieldValueError(key, text, "line breaks are not allowed")
    if SEPARATOR in text:
        raise InvalidFieldValueError(key, text, f"value must not contain {SEPARATOR.strip()!r} between spaces")
    return text


def format_value(key: KeyLike, value: Any) -> str:
    """Render ``value`` the way ``key`` is stored on disk."""
    field = coerce_key(key)
    if field in GRADE_KEYS:
        number = parse_grade(value) if isinstance(value, str) else _as_float(value)
        if number is None:
            raise InvalidFieldValueError(field, value, "expected a number")
        return format_grade(number)
    if field in INTEGER_KEYS:
        number_int = _as_int(value)
        if number_int is None:
            raise InvalidFieldValueError(field, value, "expected an integer")
        return str(number_int)
    return _check_text(field, str(value))


def encode_line(key: KeyLike, value: Any) -> str:
    field = coerce_key(key)
    return f"{field.value}{SEPARATOR}{format_value(field, value)}\n"


def decode_line(line: str) -> Optional[Tuple[str, str]]:
    """Split a record line into ``(key, value)``; ``None`` for non-record lines."""
    text = line.rstrip("\r\n")
    if SEPARATOR not in text:
        return None
    key, value = text.split(SEPARATOR, 1)
    if not key:
        return None
    return key, value


def parse_grade(text: Any) -> Optional[float]:
    try:
        value = float(str(text).strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if _INT_RE.match(text):
        return int(text)
    return None
