import random

from alumni_insights.models import Student
from alumni_insights.sanitizer import sanitize_record, to_text


COLUMNS = ["student_key", "first_name", "gender", "graduation_year"]


def test_sanitize_record_projects_onto_columns():
    record = {"student_key": 7, "first_name": "  Ada ", "extra": "dropped"}

    sanitized = sanitize_record(COLUMNS, record)

    assert sanitized == {"student_key": "7", "first_name": "Ada", "gender": "", "graduation_year": ""}
    assert list(sanitized) == COLUMNS


def test_sanitize_record_none_becomes_empty():
    sanitized = sanitize_record(COLUMNS, {"gender": None, "graduation_year": 2021.0})

    assert sanitized["gender"] == ""
    assert sanitized["graduation_year"] == "2021.0"


def test_sanitize_record_tolerates_missing_or_odd_input():
    assert sanitize_record(COLUMNS, None) == {c: "" for c in COLUMNS}
    assert sanitize_record(COLUMNS, "not a mapping") == {c: "" for c in COLUMNS}
    assert sanitize_record([], {"a": 1}) == {}


def test_to_text_uses_textual_representation():
    assert to_text(True) == "True"
    assert to_text(0) == "0"
    assert to_text("  spaced\t") == "spaced"


def test_sanitize_is_idempotent():
    rng = random.Random(7)
    values = [None, "", " x ", 3, 4.5, "a,b", '"quoted"', "\tpad\n", True, ["list"]]

    for _ in range(200):
        record = {c: rng.choice(values) for c in COLUMNS if rng.random() < 0.8}
        record["unknown"] = rng.choice(values)
        once = sanitize_record(COLUMNS, record)

        assert sanitize_record(COLUMNS, once) == once


def test_sanitize_record_reads_typed_rows():
    student = Student.from_record({"student_key": 3, "gender": " F ", "cohort": "2019"})

    sanitized = sanitize_record(COLUMNS + ["cohort"], student)

    assert sanitized == {"student_key": "3", "first_name": "", "gender": "F", "graduation_year": "", "cohort": "2019"}
