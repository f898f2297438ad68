from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from cohort_attendance.core.enums import RecordKind
from cohort_attendance.core.exceptions import (
    InvalidPeriod,
    ReprovisionNotAllowed,
    UnknownOrganizationUnit,
    ValidationError,
)
from cohort_attendance.partitions.model import PartitionKey, StreamConfig
from cohort_attendance.partitions.router import PartitionCache, PartitionRouter, subject_slug, table_name_for
from cohort_attendance.partitions.units import OrganizationUnits

from fakes import TEST_STREAMS, InMemoryProvisioner


def _router(provisioner=None, cache=None) -> PartitionRouter:
    return PartitionRouter(
        OrganizationUnits.from_settings(TEST_STREAMS),
        provisioner or InMemoryProvisioner(),
        cache=cache or PartitionCache(),
    )


def test_partition_ids_follow_stream_code_and_semester():
    router = _router()

    assert router.partition_id(PartitionKey("BCA", 1, RecordKind.STUDENTS)) == "bca_sem1_students"
    assert router.partition_id(PartitionKey("BCA", 1, RecordKind.SUBJECTS)) == "bca_sem1_subjects"
    assert (
        router.partition_id(PartitionKey("BCA", 3, RecordKind.ATTENDANCE, "Data  Structures  and Algo"))
        == "bca_sem3_data_structures_and_algo_attendance"
    )


def test_subject_slug_is_case_insensitive():
    assert subject_slug("Math") == subject_slug("MATH") == "math"
    with pytest.raises(ValidationError):
        subject_slug("&&")


def test_labels_that_lose_characters_keep_distinct_slugs():
    slugs = [subject_slug(s) for s in ("C#", "C++", "C", "DBMS Lab", "DBMS-Lab", "DBMS_Lab", "DBMSLab")]

    assert len(set(slugs)) == len(slugs)
    assert subject_slug("C") == "c"
    assert subject_slug("DBMS  Lab") == "dbms_lab"
    assert subject_slug("c#") == subject_slug(" C# ")
    assert subject_slug("C++").startswith("c_")


def test_symbol_subjects_get_their_own_attendance_partition():
    router = _router()

    sharp = router.attendance("BCA", 1, "C#")
    plus = router.attendance("BCA", 1, "C++")

    assert sharp is not plus
    assert sharp.partition_id != plus.partition_id
    assert (sharp.key.subject, plus.key.subject) == ("C#", "C++")


def test_resolve_is_idempotent_and_provisions_once():
    provisioner = InMemoryProvisioner()
    router = _router(provisioner)

    first = router.students("BCA", 2)
    second = router.resolve(PartitionKey("BCA", 2, RecordKind.STUDENTS))

    assert first is second
    assert provisioner.ensure_calls == ["bca_sem2_students"]


def test_concurrent_resolution_yields_one_handle():
    provisioner = InMemoryProvisioner()
    router = _router(provisioner)

    with ThreadPoolExecutor(max_workers=16) as pool:
        handles = list(pool.map(lambda _: router.attendance("BCA", 1, "Math"), range(64)))

    assert all(h is handles[0] for h in handles)
    assert provisioner.ensure_calls == ["bca_sem1_math_attendance"]


def test_subject_spelling_maps_to_same_attendance_partition():
    router = _router()
    assert router.attendance("BCA", 1, "math") is router.attendance("BCA", 1, "MATH")


def test_unknown_stream_and_period_are_rejected():
    router = _router()

    with pytest.raises(UnknownOrganizationUnit):
        router.students("MBA", 1)
    with pytest.raises(InvalidPeriod):
        router.students("BCA", 7)
    with pytest.raises(InvalidPeriod):
        router.students("BCA", 0)
    with pytest.raises(InvalidPeriod):
        router.students("BCA", True)


def test_restricted_stream_only_accepts_its_semesters():
    router = _router()

    assert router.students("BCom Section B", 5).partition_id == "bcomsectionb_sem5_students"
    with pytest.raises(InvalidPeriod) as exc:
        router.students("BCom Section B", 4)
    assert exc.value.valid == (5, 6)


def test_period_given_as_text_is_normalised():
    router = _router()
    handle = router.students("BCA", "2")
    assert handle.period == 2
    assert handle is router.students("BCA", 2)


def test_kind_and_subject_must_agree():
    router = _router()

    with pytest.raises(ValidationError):
        router.resolve(PartitionKey("BCA", 1, RecordKind.ATTENDANCE))
    with pytest.raises(ValidationError):
        router.resolve(PartitionKey("BCA", 1, RecordKind.STUDENTS, "Math"))


def test_table_names_are_safe_identifiers():
    router = _router()
    assert router.students("BCom-BDA", 1).table_name == "bcom_bda_sem1_students"

    long_a = "Advanced Topics In Distributed Systems And Cloud Computing Part A"
    long_b = "Advanced Topics In Distributed Systems And Cloud Computing Part B"
    a = router.attendance("BCA", 5, long_a)
    b = router.attendance("BCA", 5, long_b)

    assert len(a.table_name) == 64
    assert a.table_name != b.table_name
    assert a.table_name == table_name_for(a.partition_id)


def test_isolated_caches_do_not_share_handles():
    one = _router()
    two = _router()

    h1 = one.students("BCA", 1)
    h2 = two.students("BCA", 1)

    assert h1 is not h2
    assert h1 == h2


def test_reprovision_requires_capability():
    provisioner = InMemoryProvisioner()
    router = _router(provisioner)
    key = PartitionKey("BCA", 1, RecordKind.STUDENTS)
    handle = router.resolve(key)

    with pytest.raises(ReprovisionNotAllowed):
        router.reprovision(key, allowed=False)
    assert provisioner.dropped == []

    assert router.reprovision(key, allowed=True) is handle
    assert provisioner.dropped == ["bca_sem1_students"]
    assert "bca_sem1_students" in provisioner.tables


def test_units_from_settings():
    units = OrganizationUnits.from_settings(TEST_STREAMS)

    assert units.names() == ["BCA", "BCom-BDA", "BCom Section B"]
    assert units.promotion_range("BCA") == (1, 2, 3, 4, 5, 6)
    assert units.promotion_range("BCom Section B") == (5, 6)
    assert units.get("BCom Section B").is_restricted


def test_stream_periods_must_be_contiguous():
    with pytest.raises(ValueError):
        StreamConfig(name="X", partition_code="x", periods=(1, 3))
    with pytest.raises(ValueError):
        OrganizationUnits([StreamConfig("BCA", "bca"), StreamConfig("BCA", "bca2")])
