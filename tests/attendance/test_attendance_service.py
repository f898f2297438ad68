from __future__ import annotations

from datetime import date, datetime

import pytest

from cohort_attendance.core.enums import SubjectType
from cohort_attendance.core.exceptions import (
    DuplicateRecord,
    IneligibleStudent,
    NoEligibleStudents,
    SubjectNotFound,
    ValidationError,
)

from fakes import NOW

DAY = date(2025, 1, 15)


@pytest.fixture
def bca1(world):
    for sid, name, language, phone in [
        ("S1", "Asha", "Kannada", "9876543210"),
        ("S2", "Ravi", "Hindi", "9876543211"),
        ("S3", "Meera", "Kannada", None),
    ]:
        world.students.add_student(
            "BCA", 1, external_id=sid, full_name=name, language=language, guardian_contact=phone, now=NOW
        )
    world.subjects.add_subject("BCA", 1, name="Math", now=NOW)
    world.subjects.add_subject("BCA", 1, name="Kannada", subject_type=SubjectType.LANGUAGE, language_tag="Kannada")
    world.subjects.add_subject("BCA", 1, name="French", subject_type=SubjectType.LANGUAGE, language_tag="French")
    return world


def test_record_attendance_for_core_subject(bca1):
    record = bca1.attendance.record_attendance("BCA", 1, "math", DAY, ["s1", "S1", "S3"], now=NOW)

    assert record.subject == "MATH"
    assert record.present_ids == frozenset({"S1", "S3"})
    assert record.total_eligible == 3
    assert record.absent_count == 1
    assert record.language_tag is None
    stored = bca1.attendance_repo.tables["bca_sem1_math_attendance"][DAY]
    assert stored == record


def test_language_subject_counts_only_matching_students(bca1):
    record = bca1.attendance.record_attendance("BCA", 1, "Kannada", "2025-01-15", ["S1"], now=NOW)

    assert record.total_eligible == 2
    assert record.language_tag == "KANNADA"


def test_unknown_subject(bca1):
    with pytest.raises(SubjectNotFound):
        bca1.attendance.record_attendance("BCA", 1, "Physics", DAY, ["S1"])


def test_subject_without_eligible_students(bca1):
    with pytest.raises(NoEligibleStudents):
        bca1.attendance.record_attendance("BCA", 1, "French", DAY, [])


def test_ineligible_students_reject_the_whole_write(bca1):
    with pytest.raises(IneligibleStudent) as exc:
        bca1.attendance.record_attendance("BCA", 1, "Kannada", DAY, ["S1", "S2", "GHOST"])

    assert exc.value.student_ids == ("GHOST", "S2")
    assert DAY not in bca1.attendance_repo.tables.get("bca_sem1_kannada_attendance", {})


def test_second_write_for_same_date_is_a_conflict(bca1):
    first = bca1.attendance.record_attendance("BCA", 1, "Math", DAY, ["S1"], now=NOW)

    with pytest.raises(DuplicateRecord) as exc:
        bca1.attendance.record_attendance("BCA", 1, "Math", DAY, ["S2"], now=NOW)
    assert exc.value.existing == first

    # the conflict is reported before the presence list is checked
    with pytest.raises(DuplicateRecord):
        bca1.attendance.record_attendance("BCA", 1, "Math", DAY, ["GHOST"], now=NOW)


def test_overwrite_replaces_presence_and_keeps_first_recorded_at(bca1):
    later = datetime(2025, 1, 15, 15, 0, 0)
    first = bca1.attendance.record_attendance("BCA", 1, "Math", DAY, ["S1"], now=NOW)

    second = bca1.attendance.record_attendance("BCA", 1, "Math", DAY, ["S2", "S3"], overwrite=True, now=later)

    assert second.present_ids == frozenset({"S2", "S3"})
    assert second.recorded_at == first.recorded_at
    assert second.updated_at == later
    assert bca1.attendance.check_attendance("BCA", 1, "Math", DAY) == second


def test_present_ids_must_be_a_list(bca1):
    with pytest.raises(ValidationError):
        bca1.attendance.record_attendance("BCA", 1, "Math", DAY, "S1")


def test_update_register_validates_every_date_first(bca1):
    with pytest.raises(IneligibleStudent):
        bca1.attendance.update_register(
            "BCA",
            1,
            "Kannada",
            {"2025-01-15": ["S1"], "2025-01-16": ["S2"]},
            now=NOW,
        )
    assert bca1.attendance_repo.tables.get("bca_sem1_kannada_attendance", {}) == {}


def test_update_register_upserts_each_date(bca1):
    original = bca1.attendance.record_attendance("BCA", 1, "Math", DAY, ["S1"], now=NOW)
    later = datetime(2025, 1, 20, 10, 0, 0)

    records = bca1.attendance.update_register(
        "BCA",
        1,
        "Math",
        {DAY: ["S2"], date(2025, 1, 16): ["S1", "S2", "S3"]},
        now=later,
    )

    assert len(records) == 2
    updated = bca1.attendance.check_attendance("BCA", 1, "Math", DAY)
    assert updated.present_ids == frozenset({"S2"})
    assert updated.recorded_at == original.recorded_at
    assert bca1.attendance.check_attendance("BCA", 1, "Math", "2025-01-16").absent_count == 0


def test_update_register_needs_data(bca1):
    with pytest.raises(ValidationError):
        bca1.attendance.update_register("BCA", 1, "Math", {})


def test_get_register_lists_dates_and_eligible_roster(bca1):
    bca1.attendance.record_attendance("BCA", 1, "Kannada", date(2025, 1, 16), ["S3"], now=NOW)
    bca1.attendance.record_attendance("BCA", 1, "Kannada", DAY, ["S1"], now=NOW)

    register = bca1.attendance.get_register("BCA", 1, "kannada")

    assert [s.external_id for s in register.roster] == ["S1", "S3"]
    assert register.present_map() == {"2025-01-15": ["S1"], "2025-01-16": ["S3"]}


def test_check_attendance_when_nothing_recorded(bca1):
    assert bca1.attendance.check_attendance("BCA", 1, "Math", DAY) is None
