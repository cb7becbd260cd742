#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from school_records.config import COUNTER_PATH, STUDENTS_DIR
from school_records.fs_atomic import RecordIOError
from school_records.logging_config import configure_logging
from school_records.paths import ensure_storage_dirs
from school_records.record_codec import FieldKey
from school_records.record_lock_service import RecordLocks
from school_records.student_models import SUBJECT_COUNT, StudentDraft
from school_records.student_service import (
    StudentRecordDeps,
    StudentRecordError,
    add_student,
    edit_student,
    get_student,
    list_students,
    recompute_student_average,
)

_log = logging.getLogger("student_records_cli")

InputFn = Callable[[str], str]


def _read_non_empty(prompt: str, input_fn: InputFn = input) -> str:
    while True:
        value = input_fn(prompt).strip()
        if value:
            return value
        print("Input cannot be empty.")


def _read_number(prompt: str, cast: Callable[[str], Any], input_fn: InputFn = input) -> Any:
    while True:
        raw = _read_non_empty(prompt, input_fn)
        try:
            return cast(raw)
        except ValueError:
            print(f"Not a valid number: {raw}")


def _read_choice(prompt: str, choices: List[str], input_fn: InputFn = input) -> str:
    while True:
        value = input_fn(prompt).strip().lower()
        if value in choices:
            return value


def collect_student_draft(input_fn: InputFn = input) -> StudentDraft:
    """Prompt for every field of a new student until the draft validates."""
    while True:
        payload: Dict[str, Any] = {
            "name": _read_non_empty("Name: ", input_fn),
            "family_name": _read_non_empty("Family name: ", input_fn),
            "dob": _read_non_empty("Date of birth (YYYY-MM-DD): ", input_fn),
            "father_name": _read_non_empty("Father's name: ", input_fn),
            "mother_name": _read_non_empty("Mother's name: ", input_fn),
            "phone_number": _read_non_empty("Phone number: ", input_fn),
            "grade": _read_number("Class grade: ", int, input_fn),
            "subjects": [],
        }
        for idx in range(1, SUBJECT_COUNT + 1):
            payload["subjects"].append(
                {
                    "name": _read_non_empty(f"Subject {idx} name: ", input_fn),
                    "grade": _read_number(f"Subject {idx} grade: ", float, input_fn),
                }
            )
        try:
            return StudentDraft.model_validate(payload)
        except ValidationError as exc:
            for err in exc.errors():
                loc = ".".join(str(part) for part in err.get("loc", ()))
                print(f"{loc}: {err.get('msg')}")
            print("Please enter the student again.")


def _print_result(result: Any) -> None:
    print(json.dumps(result, ensure_ascii=False, indent=2))


def _draft_from_args(args: argparse.Namespace) -> StudentDraft:
    subjects = []
    for raw in args.subject or []:
        name, sep, grade = str(raw).partition(":")
        if not sep:
            raise ValueError(f"subject must look like NAME:GRADE, got {raw!r}")
        subjects.append({"name": name, "grade": grade})
    return StudentDraft.model_validate(
        {
            "name": args.name,
            "family_name": args.family_name,
            "dob": args.dob,
            "father_name": args.father_name,
            "mother_name": args.mother_name,
            "phone_number": args.phone_number,
            "grade": args.grade,
            "subjects": subjects,
        }
    )


def run_menu(deps: StudentRecordDeps, input_fn: InputFn = input) -> int:
    status = _read_choice(
        "Do you want to create a new student or edit an existing one? (c/e): ",
        ["c", "e"],
        input_fn,
    )
    if status == "c":
        draft = collect_student_draft(input_fn)
        result = add_student(draft, deps=deps)
        print(f"Student {result['student_id']} saved to {result['path']}")
        return 0

    student_id = _read_non_empty("Student ID: ", input_fn)
    record = get_student(student_id, deps=deps)
    for key, value in record["fields"].items():
        print(f"{key} = {value}")
    key = _read_non_empty("Field to change: ", input_fn)
    value = _read_non_empty("New value: ", input_fn)
    result = edit_student(student_id, key, value, deps=deps)
    if not result.get("ok"):
        print(f"Edit failed: {result.get('error')}")
        return 1
    if "average_grade" in result:
        print(f"Average grade is now {result['average_grade']:.2f}")
    print("Student updated.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage student record files")
    parser.add_argument("--students-dir", default=str(STUDENTS_DIR), help="directory holding output_<id>.txt records")
    parser.add_argument("--counter-path", default=str(COUNTER_PATH), help="file holding the next student id")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("menu", help="interactive create/edit prompt (default)")

    add = sub.add_parser("add", help="create a student record")
    add.add_argument("--name", required=True)
    add.add_argument("--family-name", required=True)
    add.add_argument("--dob", required=True)
    add.add_argument("--father-name", required=True)
    add.add_argument("--mother-name", required=True)
    add.add_argument("--phone-number", required=True)
    add.add_argument("--grade", required=True, type=int)
    add.add_argument("--subject", action="append", help="NAME:GRADE, repeat once per subject")

    edit = sub.add_parser("edit", help="change one field of a record")
    edit.add_argument("student_id")
    edit.add_argument("field", choices=[k.value for k in FieldKey])
    edit.add_argument("value")

    show = sub.add_parser("show", help="print a record")
    show.add_argument("student_id")

    recompute = sub.add_parser("recompute", help="recompute AVERAGE_GRADE of a record")
    recompute.add_argument("student_id")

    sub.add_parser("list", help="list student ids")
    return parser


def main(argv: Optional[List[str]] = None, input_fn: InputFn = input) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    students_dir = Path(args.students_dir)
    counter_path = Path(args.counter_path)
    ensure_storage_dirs([students_dir, counter_path.parent])
    deps = StudentRecordDeps(students_dir=students_dir, counter_path=counter_path, locks=RecordLocks())

    try:
        if args.command in (None, "menu"):
            return run_menu(deps, input_fn)
        if args.command == "add":
            result: Any = add_student(_draft_from_args(args), deps=deps)
        elif args.command == "edit":
            result = edit_student(args.student_id, args.field, args.value, deps=deps)
        elif args.command == "show":
            result = get_student(args.student_id, deps=deps)
        elif args.command == "recompute":
            result = recompute_student_average(args.student_id, deps=deps)
        else:
            result = {"ok": True, "students": list_students(deps=deps)}
    except (ValidationError, ValueError) as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2
    except StudentRecordError as exc:
        print(f"{exc.code}: {exc.detail}", file=sys.stderr)
        return 1
    except RecordIOError as exc:
        _log.error("record I/O failed: %s", exc)
        print(str(exc), file=sys.stderr)
        return 1

    _print_result(result)
    return 0 if result.get("ok", True) else 1


if __name__ == "__main__":
    raise SystemExit(main())
