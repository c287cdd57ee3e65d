import logging
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.jobstores.base import JobLookupError
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.exceptions import MigrationAlreadyRunningError
from migration.base import RawDataSource
from migration.extractors.mongo_extractor import MongoRawDataSource
from migration.runner import MigrationRunner
from migration.sync_state import SyncStateStore
from schemas.migration import (
    MigrationConfig,
    MigrationRunStats,
    RunStatus,
    SchedulerConfig,
    SchedulerStatus,
    SyncStatus,
)

logger = logging.getLogger(__name__)

JOB_ID = "sensor_migration"


class MigrationScheduler:
    """
    Periodic and manual trigger for the migration runner.

    Owns the single-flight flag: at most one migration (scheduled or manual)
    runs at a time per scheduler instance. Each run gets its own database
    session and raw source connection.
    """

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker] = None,
        source_factory: Optional[Callable[[], RawDataSource]] = None,
        config: Optional[SchedulerConfig] = None,
        migration_config: Optional[MigrationConfig] = None
    ):
        if session_maker is None:
            from core.database import async_session_maker as session_maker

        self.scheduler = AsyncIOScheduler()
        self.SessionLocal = session_maker
        self.source_factory = source_factory or MongoRawDataSource
        self.config = config or SchedulerConfig.from_settings()
        self.migration_config = migration_config or MigrationConfig.from_settings()

        self._job = None
        self._is_running = False
        self.last_run_status = RunStatus.IDLE
        self.last_stats: Optional[MigrationRunStats] = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def _run_migration(self) -> MigrationRunStats:
        async with self.SessionLocal() as session:
            runner = MigrationRunner(session, self.source_factory(), self.migration_config)
            stats = await runner.migrate()
        self.last_stats = stats
        return stats

    async def execute_migration(self) -> Optional[MigrationRunStats]:
        """Scheduled tick: skip when a run is in progress, log failures"""
        if self._is_running:
            logger.info("Migration is already running, skipping this execution")
            return None

        self._is_running = True
        self.last_run_status = RunStatus.RUNNING
        try:
            logger.info("Scheduler: Starting scheduled migration")
            stats = await self._run_migration()
            self.last_run_status = RunStatus.SUCCEEDED
            logger.info(
                f"Scheduled migration completed: processed={stats.total_processed}, "
                f"successful={stats.successful_migrations}, failed={stats.failed_migrations}, "
                f"duration={stats.duration}ms"
            )
            return stats
        except Exception as e:
            self.last_run_status = RunStatus.FAILED
            logger.error(f"Scheduler: Scheduled migration failed - {e}")
            return None
        finally:
            self._is_running = False

    async def trigger_manual_migration(self) -> MigrationRunStats:
        """
        Run a migration now and return its statistics.

        Raises:
            MigrationAlreadyRunningError: If another run is in progress
        """
        if self._is_running:
            raise MigrationAlreadyRunningError()

        self._is_running = True
        self.last_run_status = RunStatus.RUNNING
        try:
            logger.info("Starting manual migration...")
            stats = await self._run_migration()
            self.last_run_status = RunStatus.SUCCEEDED
            logger.info("Manual migration completed")
            return stats
        except Exception as e:
            self.last_run_status = RunStatus.FAILED
            logger.error(f"Manual migration failed: {e}")
            raise
        finally:
            self._is_running = False

    def start(self):
        """Schedule the periodic migration job"""
        if not self.config.enabled:
            logger.info("Migration scheduler is disabled")
            return

        if self._job is not None:
            logger.info("Migration scheduler is already running")
            return

        self._job = self.scheduler.add_job(
            self.execute_migration,
            trigger=IntervalTrigger(minutes=self.config.interval_minutes),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(
            f"Migration scheduler started - running every {self.config.interval_minutes} minutes"
        )

    def stop(self):
        """Remove the periodic job; in-flight runs are not interrupted"""
        if self._job is None:
            return
        try:
            self.scheduler.remove_job(JOB_ID)
        except JobLookupError:
            logger.warning("Migration job was already removed")
        self._job = None
        logger.info("Migration scheduler stopped")

    def shutdown(self):
        self.stop()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def update_config(
        self,
        enabled: Optional[bool] = None,
        interval_minutes: Optional[int] = None
    ):
        """Apply new scheduler settings, rescheduling the job when they change"""
        updates = {}
        if enabled is not None:
            updates["enabled"] = enabled
        if interval_minutes is not None:
            updates["interval_minutes"] = interval_minutes

        old_config = self.config
        self.config = SchedulerConfig(**{**old_config.model_dump(), **updates})

        if self.config != old_config:
            self.stop()
            self.start()

        logger.info(f"Migration scheduler config updated: {self.config.model_dump()}")

    def get_status(self) -> SchedulerStatus:
        next_execution = None
        if self._job is not None:
            next_run_time = getattr(self._job, "next_run_time", None)
            next_execution = next_run_time.isoformat() if next_run_time else "scheduled"

        return SchedulerStatus(
            enabled=self.config.enabled,
            running=self._is_running,
            interval_minutes=self.config.interval_minutes,
            next_execution=next_execution,
            last_run_status=self.last_run_status,
        )

    async def reset_sync_state(self, name: Optional[str] = None) -> None:
        async with self.SessionLocal() as session:
            await SyncStateStore(session).reset(name or self.migration_config.sync_name)

    async def get_sync_status(self, name: Optional[str] = None) -> Optional[SyncStatus]:
        async with self.SessionLocal() as session:
            return await SyncStateStore(session).get_status(
                name or self.migration_config.sync_name
            )
