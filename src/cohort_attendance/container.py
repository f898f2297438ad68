from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .attendance.consolidation import AbsenceConsolidator
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import (
    DEFAULT_DISPATCH_CLAIM_TIMEOUT_SECONDS,
    DEFAULT_NOTIFICATION_BATCH_DELAY_SECONDS,
    DEFAULT_NOTIFICATION_BATCH_SIZE,
)
from .database.connection import DBConfig, DatabaseConnection
from .notifications.factory import MessageTemplateFactory
from .notifications.gateway import LoggingGateway, NotificationGateway
from .notifications.mysql_notification_log_repository import MySQLNotificationLogRepository
from .notifications.service import NotificationDispatcher
from .partitions.model import PartitionHandle, PartitionKey
from .partitions.mysql_provisioner import MySQLPartitionProvisioner
from .partitions.router import PartitionCache, PartitionRouter
from .partitions.units import OrganizationUnits
from .promotion.mysql_transaction import MySQLPromotionTransactionProvider
from .promotion.service import PromotionEngine
from .students.mysql_migration_event_repository import MySQLMigrationEventRepository
from .students.mysql_student_repository import MySQLStudentRepository
from .students.service import StudentService
from .subjects.mysql_subject_repository import MySQLSubjectRepository
from .subjects.service import SubjectService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    units: OrganizationUnits
    router: PartitionRouter

    students_repo: MySQLStudentRepository
    events_repo: MySQLMigrationEventRepository
    subjects_repo: MySQLSubjectRepository
    attendance_repo: MySQLAttendanceRepository
    notification_log_repo: MySQLNotificationLogRepository

    student_service: StudentService
    subject_service: SubjectService
    attendance_service: AttendanceService
    consolidator: AbsenceConsolidator
    promotion_engine: PromotionEngine
    dispatcher: NotificationDispatcher

    allow_reprovision: bool = False

    def reprovision(self, key: PartitionKey) -> PartitionHandle:
        """Drop and recreate one partition table, if the settings allow it."""
        return self.router.reprovision(key, allowed=self.allow_reprovision)


def build_container(
    *,
    db_config: dict,
    streams: Sequence[Mapping],
    gateway: Optional[NotificationGateway] = None,
    batch_size: int = DEFAULT_NOTIFICATION_BATCH_SIZE,
    batch_delay: float = DEFAULT_NOTIFICATION_BATCH_DELAY_SECONDS,
    claim_timeout: float = DEFAULT_DISPATCH_CLAIM_TIMEOUT_SECONDS,
    allow_reprovision: bool = False,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    units = OrganizationUnits.from_settings(streams)
    router = PartitionRouter(units, MySQLPartitionProvisioner(conn), cache=PartitionCache())

    students_repo = MySQLStudentRepository(conn)
    events_repo = MySQLMigrationEventRepository(conn)
    subjects_repo = MySQLSubjectRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    notification_log_repo = MySQLNotificationLogRepository(conn)

    student_service = StudentService(router, students_repo, events_repo)
    subject_service = SubjectService(router, subjects_repo)
    attendance_service = AttendanceService(router, students_repo, subject_service, attendance_repo)
    consolidator = AbsenceConsolidator(router, students_repo, subjects_repo, attendance_repo)
    promotion_engine = PromotionEngine(router, MySQLPromotionTransactionProvider(conn), students_repo)
    dispatcher = NotificationDispatcher(
        units,
        consolidator,
        notification_log_repo,
        gateway or LoggingGateway(),
        template_factory=MessageTemplateFactory(),
        batch_size=batch_size,
        batch_delay=batch_delay,
        claim_timeout=claim_timeout,
    )

    return Container(
        conn=conn,
        units=units,
        router=router,
        students_repo=students_repo,
        events_repo=events_repo,
        subjects_repo=subjects_repo,
        attendance_repo=attendance_repo,
        notification_log_repo=notification_log_repo,
        student_service=student_service,
        subject_service=subject_service,
        attendance_service=attendance_service,
        consolidator=consolidator,
        promotion_engine=promotion_engine,
        dispatcher=dispatcher,
        allow_reprovision=allow_reprovision,
    )
