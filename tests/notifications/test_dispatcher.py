from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta

import pytest

from cohort_attendance.core.enums import Initiator, MessageType, NotificationState, SubjectType
from cohort_attendance.core.exceptions import (
    DispatchInProgress,
    InvalidPeriod,
    NoAttendanceRecorded,
    UnknownOrganizationUnit,
)
from cohort_attendance.notifications.model import NotificationKey

from fakes import NOW, build_world

DAY = date(2025, 1, 15)
PHONE_S1 = "9876543210"
PHONE_S2 = "9876543211"


def _setup(world, *, day=DAY, kannada_present=()):
    world.students.add_student(
        "BCA", 1, external_id="S1", full_name="Asha", language="Kannada", guardian_contact=PHONE_S1, now=NOW
    )
    world.students.add_student(
        "BCA", 1, external_id="S2", full_name="Ravi", language="Hindi", guardian_contact=PHONE_S2, now=NOW
    )
    world.students.add_student("BCA", 1, external_id="S3", full_name="Meera", now=NOW)
    world.subjects.add_subject("BCA", 1, name="Math", now=NOW)
    world.subjects.add_subject("BCA", 1, name="Kannada", subject_type=SubjectType.LANGUAGE, language_tag="Kannada")
    world.attendance.record_attendance("BCA", 1, "Math", day, ["S1"], now=NOW)
    world.attendance.record_attendance("BCA", 1, "Kannada", day, list(kannada_present), now=NOW)
    return world


@pytest.fixture
def bca1(world):
    return _setup(world)


def test_dispatch_sends_one_message_per_reachable_absent_student(bca1):
    report = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, now=NOW)

    assert not report.already_dispatched
    assert report.initiator == Initiator.MANUAL
    assert report.students_notified == 2
    assert report.sent_count == 2
    assert report.failed_count == 0
    assert report.full_day_count == 1
    assert report.partial_day_count == 1
    assert report.subjects_included == ("KANNADA", "MATH")
    assert {o.external_id: o.message_type for o in report.outcomes} == {
        "S1": MessageType.PARTIAL_DAY,
        "S2": MessageType.FULL_DAY,
    }

    messages = dict(bca1.gateway.sent)
    assert "following subject(s) on 15/01/2025:\n\n1. KANNADA" in messages[PHONE_S1]
    assert "ABSENT for the WHOLE DAY on 15/01/2025" in messages[PHONE_S2]
    assert "Stream: BCA\nSemester: 1" in messages[PHONE_S2]

    entry = bca1.dispatcher.dispatch_status("BCA", 1, DAY)
    assert entry.state == NotificationState.COMPLETED
    assert entry.sent_count == 2
    assert entry.claimed_at == NOW


def test_second_dispatch_is_deduplicated(bca1):
    first = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)
    second = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, "2025-01-15")

    assert second.already_dispatched
    assert second.sent_count == first.sent_count
    assert len(bca1.gateway.sent) == 2


def test_force_resends_and_overwrites_counts(bca1):
    bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)
    bca1.gateway.fail_contacts[PHONE_S2] = "number blocked"

    report = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, force=True)

    assert not report.already_dispatched
    assert report.initiator == Initiator.FORCED
    assert (report.sent_count, report.failed_count) == (1, 1)
    assert len(bca1.gateway.sent) == 3
    entry = bca1.log.get(NotificationKey(DAY, "BCA", 1))
    assert (entry.sent_count, entry.failed_count, entry.initiator) == (1, 1, Initiator.FORCED)


def test_no_attendance_releases_the_claim(world):
    _setup(world, day=date(2025, 1, 14))

    with pytest.raises(NoAttendanceRecorded):
        world.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)

    assert world.log.entries == {}
    assert world.log.released == [NotificationKey(DAY, "BCA", 1)]
    assert world.gateway.sent == []


def test_all_present_day_is_logged_and_blocks(world):
    _setup(world, kannada_present=["S1"])
    world.attendance.record_attendance("BCA", 1, "Math", DAY, ["S1", "S2", "S3"], overwrite=True, now=NOW)

    report = world.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)

    assert report.students_notified == 0
    assert report.sent_count == 0
    assert world.dispatcher.dispatch_absence_notifications("BCA", 1, DAY).already_dispatched


def test_all_failed_dispatch_can_be_retried(bca1):
    bca1.gateway.fail_contacts.update({PHONE_S1: "timeout", PHONE_S2: "timeout"})
    failed = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)
    assert (failed.sent_count, failed.failed_count) == (0, 2)
    assert failed.full_day_count == failed.partial_day_count == 0

    bca1.gateway.fail_contacts.clear()
    retry = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)

    assert not retry.already_dispatched
    assert retry.sent_count == 2


def test_gateway_exceptions_become_failed_outcomes(bca1):
    bca1.gateway.raise_contacts.add(PHONE_S1)

    report = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)

    outcome = {o.external_id: o for o in report.outcomes}["S1"]
    assert not outcome.success
    assert outcome.error == "gateway unreachable"
    assert report.sent_count == 1


def test_sends_go_out_in_batches_with_a_pause():
    world = build_world(batch_size=2, batch_delay=0.5)
    for i in range(5):
        world.students.add_student(
            "BCA", 2, external_id=f"S{i}", full_name=f"Student {i}", guardian_contact=f"98765432{i:02d}", now=NOW
        )
    world.subjects.add_subject("BCA", 2, name="Math", now=NOW)
    world.attendance.record_attendance("BCA", 2, "Math", DAY, [], now=NOW)

    report = world.dispatcher.dispatch_absence_notifications("BCA", 2, DAY)

    assert report.sent_count == 5
    assert world.sleeps == [0.5, 0.5]
    assert [o.external_id for o in report.outcomes] == [f"S{i}" for i in range(5)]


def test_pending_claim_blocks_unless_forced(bca1):
    key = NotificationKey(DAY, "BCA", 1)
    bca1.log.claim(key, initiator=Initiator.MANUAL, force=False, now=NOW)

    with pytest.raises(DispatchInProgress):
        bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, now=NOW)
    assert bca1.gateway.sent == []

    assert bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, force=True).sent_count == 2


def test_abandoned_claim_expires_for_a_plain_retry(bca1):
    key = NotificationKey(DAY, "BCA", 1)
    bca1.log.claim(key, initiator=Initiator.MANUAL, force=False, now=NOW)

    with pytest.raises(DispatchInProgress):
        bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, now=NOW + timedelta(minutes=14))

    report = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, now=NOW + timedelta(minutes=15))

    assert not report.already_dispatched
    assert report.initiator == Initiator.MANUAL
    assert report.sent_count == 2
    assert bca1.log.get(key).state == NotificationState.COMPLETED


def test_claims_never_expire_when_timeout_is_disabled():
    world = _setup(build_world(claim_timeout=0))
    world.log.claim(NotificationKey(DAY, "BCA", 1), initiator=Initiator.MANUAL, force=False, now=NOW)

    with pytest.raises(DispatchInProgress):
        world.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, now=NOW + timedelta(days=30))


def test_concurrent_dispatches_send_once(bca1):
    def attempt(_):
        try:
            return bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)
        except DispatchInProgress:
            return None

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(4)))

    fresh = [r for r in results if r is not None and not r.already_dispatched]
    assert len(fresh) == 1
    assert len(bca1.gateway.sent) == 2


def test_message_history_newest_first(bca1):
    bca1.attendance.record_attendance("BCA", 1, "Math", date(2025, 1, 16), [], now=NOW)
    bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY)
    bca1.dispatcher.dispatch_absence_notifications("BCA", 1, date(2025, 1, 16))

    history = bca1.dispatcher.message_history("BCA", 1)
    assert [e.key.notice_date for e in history] == [date(2025, 1, 16), DAY]
    assert [e.key.notice_date for e in bca1.dispatcher.message_history("BCA", 1, limit=1, offset=1)] == [DAY]
    assert bca1.dispatcher.message_history("BCA", 2) == []


def test_dispatch_validates_stream_and_semester(bca1):
    with pytest.raises(UnknownOrganizationUnit):
        bca1.dispatcher.dispatch_absence_notifications("MBA", 1, DAY)
    with pytest.raises(InvalidPeriod):
        bca1.dispatcher.dispatch_absence_notifications("BCA", 9, DAY)
    assert bca1.log.entries == {}


def test_dispatched_at_uses_given_clock(bca1):
    at = datetime(2025, 1, 15, 18, 30)
    report = bca1.dispatcher.dispatch_absence_notifications("BCA", 1, DAY, now=at)
    assert report.dispatched_at == at
