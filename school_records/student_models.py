from __future__ import annotations

from typing import Any, List, Tuple

from pydantic import BaseModel, Field, field_validator

from .average_service import calculate_average
from .record_codec import SEPARATOR, SUBJECT_GRADE_KEYS, SUBJECT_NAME_KEYS, FieldKey, format_grade

SUBJECT_COUNT = 4
MAX_TEXT_LEN = 50


def _clean_text(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError("must not be empty")
    if "\n" in text or "\r" in text:
        raise ValueError("must be a single line")
    if SEPARATOR in text:
        raise ValueError(f"must not contain {SEPARATOR!r}")
    return text


class SubjectGrade(BaseModel):
    name: str = Field(max_length=MAX_TEXT_LEN)
    grade: float = Field(allow_inf_nan=False)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return _clean_text(value)


class StudentDraft(BaseModel):
    """Fields collected for a new student before an id is issued."""

    name: str = Field(max_length=MAX_TEXT_LEN)
    family_name: str = Field(max_length=MAX_TEXT_LEN)
    dob: str = Field(max_length=10)
    father_name: str = Field(max_length=MAX_TEXT_LEN)
    mother_name: str = Field(max_length=MAX_TEXT_LEN)
    phone_number: str = Field(max_length=14)
    grade: int
    subjects: List[SubjectGrade] = Field(min_length=SUBJECT_COUNT, max_length=SUBJECT_COUNT)

    @field_validator("name", "family_name", "dob", "father_name", "mother_name", "phone_number", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _clean_text(value)

    @property
    def average_grade(self) -> float:
        # Same value a later recompute derives from the stored two-decimal grades.
        return calculate_average(float(format_grade(s.grade)) for s in self.subjects)

    def to_fields(self, student_id: str) -> List[Tuple[FieldKey, Any]]:
        fields: List[Tuple[FieldKey, Any]] = [
            (FieldKey.NAME, self.name),
            (FieldKey.FAMILY_NAME, self.family_name),
            (FieldKey.DOB, self.dob),
            (FieldKey.STUDENT_ID, student_id),
            (FieldKey.FATHER_NAME, self.father_name),
            (FieldKey.MOTHER_NAME, self.mother_name),
            (FieldKey.PHONE_NUMBER, self.phone_number),
            (FieldKey.GRADE, self.grade),
        ]
        for subject, name_key, grade_key in zip(self.subjects, SUBJECT_NAME_KEYS, SUBJECT_GRADE_KEYS):
            fields.append((name_key, subject.name))
            fields.append((grade_key, format_grade(subject.grade)))
        fields.append((FieldKey.AVERAGE_GRADE, format_grade(self.average_grade)))
        return fields
