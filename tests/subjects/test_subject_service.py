from __future__ import annotations

import pytest

from cohort_attendance.core.enums import SubjectType
from cohort_attendance.core.exceptions import ConflictError, SubjectNotFound, ValidationError
from cohort_attendance.partitions import router as router_module
from cohort_attendance.subjects.service import default_subject_code

from fakes import NOW


def test_add_core_subject_generates_code(world):
    subject = world.subjects.add_subject("BCA", 1, name="Mathematics", now=NOW)

    assert subject.name == "MATHEMATICS"
    assert subject.code == "BCA1MAT"
    assert subject.subject_type == SubjectType.CORE
    assert subject.credits == 4
    assert subject.language_tag is None


def test_default_subject_code_handles_symbols():
    assert default_subject_code("BCom-BDA", 3, "Big Data") == "BCO3BIG"
    assert default_subject_code("123", 2, "42") == "GEN2SUB"


def test_language_subject_needs_tag(world):
    with pytest.raises(ValidationError):
        world.subjects.add_subject("BCA", 1, name="Kannada", subject_type=SubjectType.LANGUAGE)

    subject = world.subjects.add_subject(
        "BCA", 1, name="Kannada", subject_type="language", language_tag="kannada", now=NOW
    )
    assert subject.language_tag == "KANNADA"
    assert subject.is_language_restricted


def test_core_subject_cannot_carry_tag(world):
    with pytest.raises(ValidationError):
        world.subjects.add_subject("BCA", 1, name="Math", language_tag="HINDI")


def test_invalid_type_and_credits(world):
    with pytest.raises(ValidationError):
        world.subjects.add_subject("BCA", 1, name="Math", subject_type="ELECTIVE")
    with pytest.raises(ValidationError):
        world.subjects.add_subject("BCA", 1, name="Math", credits=0)


def test_duplicate_subject_is_a_conflict(world):
    world.subjects.add_subject("BCA", 1, name="Math", now=NOW)

    with pytest.raises(ConflictError) as exc:
        world.subjects.add_subject("BCA", 1, name="math", now=NOW)
    assert exc.value.existing.name == "MATH"


def test_setup_subjects_reports_duplicates_without_raising(world):
    results = world.subjects.setup_subjects(
        "BCA",
        1,
        [
            "Math",
            {"name": "Kannada", "subject_type": "LANGUAGE", "language_tag": "Kannada"},
            "MATH",
            {"name": "Hindi", "subject_type": "LANGUAGE"},
        ],
    )

    assert [(r.name, r.success) for r in results] == [
        ("MATH", True),
        ("KANNADA", True),
        ("MATH", False),
        ("HINDI", False),
    ]
    assert [s.name for s in world.subjects.list_subjects("BCA", 1)] == ["KANNADA", "MATH"]


def test_subjects_are_per_semester(world):
    world.subjects.add_subject("BCA", 1, name="Math", now=NOW)

    assert world.subjects.list_subjects("BCA", 2) == []
    with pytest.raises(SubjectNotFound):
        world.subjects.get_subject("BCA", 2, "Math")


def test_deactivated_subject_is_not_found(world):
    world.subjects.add_subject("BCA", 1, name="Math", now=NOW)
    world.subjects.deactivate_subject("BCA", 1, "math")

    with pytest.raises(SubjectNotFound):
        world.subjects.get_subject("BCA", 1, "Math")
    assert len(world.subjects.list_subjects("BCA", 1, include_inactive=True)) == 1


def test_subject_sharing_an_attendance_register_is_refused(world, monkeypatch):
    world.subjects.add_subject("BCA", 1, name="C#", now=NOW)
    monkeypatch.setattr(router_module, "subject_slug", lambda label: "c")

    with pytest.raises(ConflictError) as exc:
        world.subjects.add_subject("BCA", 1, name="C++", now=NOW)

    assert exc.value.existing.name == "C#"
    assert [s.name for s in world.subjects.list_subjects("BCA", 1)] == ["C#"]


def test_symbol_named_subjects_coexist(world):
    world.subjects.setup_subjects("BCA", 1, ["C#", "C++", "CC"])

    assert [s.name for s in world.subjects.list_subjects("BCA", 1)] == ["C#", "C++", "CC"]
