from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .aggregation.service import AggregationService
from .attendance.factory import AttendanceStrategyFactory
from .attendance.repository import InMemoryAttendanceRepository
from .attendance.service import AttendanceService
from .broker.manager import BrokerConnectionManager, TransportFactory
from .core.exceptions import BrokerConnectionError, StoreUnavailableError
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory, InMemoryEmployeeDirectory
from .payroll.adjustments import AdjustmentBook
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.history import PayslipHistory
from .payroll.mysql_status_repository import MySQLPayrollStatusRepository
from .payroll.service import PayrollService
from .payroll.status_repository import PayrollStatusRepository
from .payroll.status_store import LocalStatusCache, PayrollStatusStore
from .presence.pipeline import PresencePipeline
from .settings import PipelineSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    settings: PipelineSettings

    employees: EmployeeDirectory
    attendance_repo: InMemoryAttendanceRepository
    status_store: PayrollStatusStore

    broker: BrokerConnectionManager
    attendance_service: AttendanceService
    aggregation_service: AggregationService
    payroll_service: PayrollService
    pipeline: PresencePipeline

    status_repo: Optional[PayrollStatusRepository] = None

    def start(self) -> None:
        """Subscribe the pipeline and, if configured, connect in the background.

        Connection failures are logged; the manager keeps retrying on its own.
        """
        if isinstance(self.status_repo, MySQLPayrollStatusRepository):
            try:
                self.status_repo.ensure_table()
            except StoreUnavailableError as exc:
                logger.warning("Payroll status store degraded at startup: %s", exc)

        self.pipeline.start()
        if self.settings.connect_on_startup:
            threading.Thread(target=self._connect_quietly, name="broker-connect", daemon=True).start()

    def _connect_quietly(self) -> None:
        try:
            self.broker.connect()
        except BrokerConnectionError as exc:
            logger.warning("Broker connection not established: %s", exc)

    def shutdown(self) -> None:
        self.pipeline.stop()
        self.broker.disconnect()


def build_container(
    settings: PipelineSettings,
    *,
    transport_factory: Optional[TransportFactory] = None,
    employees: Optional[EmployeeDirectory] = None,
    status_repository: Optional[PayrollStatusRepository] = None,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if settings.use_remote_status_store or (employees is None and settings.employee_directory == "mysql"):
        conn = DatabaseConnection.get_instance(DBConfig.from_mapping(settings.db_config))

    if employees is None:
        employees = MySQLEmployeeDirectory(conn) if settings.employee_directory == "mysql" else InMemoryEmployeeDirectory()
    if status_repository is None and settings.use_remote_status_store:
        status_repository = MySQLPayrollStatusRepository(conn)

    attendance_repo = InMemoryAttendanceRepository()
    status_store = PayrollStatusStore(LocalStatusCache(settings.local_cache_path), remote=status_repository)
    broker = BrokerConnectionManager(settings.broker, transport_factory=transport_factory)

    attendance_service = AttendanceService(
        attendance_repo,
        employees,
        window=settings.workday.window(),
        strategy_factory=AttendanceStrategyFactory(),
    )
    aggregation_service = AggregationService(
        attendance_service,
        workdays_per_month=settings.payroll.workdays_per_month,
        hours_per_day=settings.payroll.hours_per_day,
    )
    payroll_service = PayrollService(
        aggregation_service,
        employees,
        calculator=StandardPayrollCalculator(settings.payroll.overtime_multiplier),
        adjustments=AdjustmentBook(),
        history=PayslipHistory(settings.payslip_history_path),
        status_store=status_store,
    )
    pipeline = PresencePipeline(
        broker,
        attendance_service,
        topic=settings.presence_topic,
        ack_topic=settings.presence_ack_topic,
    )

    return Container(
        settings=settings,
        employees=employees,
        attendance_repo=attendance_repo,
        status_store=status_store,
        broker=broker,
        attendance_service=attendance_service,
        aggregation_service=aggregation_service,
        payroll_service=payroll_service,
        pipeline=pipeline,
        status_repo=status_repository,
    )
