"""Background maintenance jobs using APScheduler.

Two interval jobs:
- purge expired recommendations from the cache
- retrain models for every known user
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import Settings, get_settings
from .model_training import ModelTrainer, TrainingReport
from .recommendation import RecommendationEngine

logger = logging.getLogger(__name__)

CACHE_CLEANUP_JOB_ID = "recommendation_cache_cleanup"
RETRAINING_JOB_ID = "model_retraining"

UserIdsProvider = Callable[[], Awaitable[List[str]]]


class MaintenanceScheduler:
    """Manages scheduled cache cleanup and model retraining.

    Usage:
        scheduler = MaintenanceScheduler(engine, trainer, store.user_ids)
        scheduler.start()
        # ... app runs ...
        scheduler.stop()
    """

    def __init__(
        self,
        engine: RecommendationEngine,
        trainer: ModelTrainer,
        user_ids_provider: UserIdsProvider,
        settings: Optional[Settings] = None,
    ) -> None:
        self.engine = engine
        self.trainer = trainer
        self.user_ids_provider = user_ids_provider
        self.settings = settings or get_settings()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._last_cleanup: Optional[datetime] = None
        self._last_retraining: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._is_running and self.scheduler is not None

    def start(self) -> None:
        """Start the scheduler with both maintenance jobs. Needs a running event loop."""
        if self._is_running:
            logger.warning("Maintenance scheduler is already running")
            return

        if not self.settings.maintenance_enabled:
            logger.info("Maintenance jobs are disabled in configuration")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._run_cache_cleanup,
            IntervalTrigger(minutes=self.settings.cache_cleanup_interval_minutes),
            id=CACHE_CLEANUP_JOB_ID,
            name="Recommendation Cache Cleanup",
            replace_existing=True,
            max_instances=1,
        )
        self.scheduler.add_job(
            self._run_retraining,
            IntervalTrigger(hours=self.settings.retrain_interval_hours),
            id=RETRAINING_JOB_ID,
            name="Model Retraining",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._is_running = True
        logger.info(
            f"Maintenance scheduler started (cache cleanup every "
            f"{self.settings.cache_cleanup_interval_minutes} min, retraining every "
            f"{self.settings.retrain_interval_hours} h)"
        )

    def stop(self) -> None:
        """Gracefully shutdown the scheduler."""
        if not self._is_running or self.scheduler is None:
            return

        logger.info("Shutting down maintenance scheduler...")
        self.scheduler.shutdown(wait=False)
        self._is_running = False
        self.scheduler = None
        logger.info("Maintenance scheduler stopped")

    async def _run_cache_cleanup(self) -> None:
        try:
            await self.trigger_cache_cleanup()
        except Exception as e:
            logger.error(f"Unexpected error during scheduled cache cleanup: {e}")

    async def _run_retraining(self) -> None:
        try:
            await self.trigger_retraining()
        except Exception as e:
            logger.error(f"Unexpected error during scheduled retraining: {e}")

    async def trigger_cache_cleanup(self) -> int:
        """Purge expired recommendations now. Returns the number purged."""
        purged = await self.engine.cleanup_cache()
        self._last_cleanup = datetime.now()
        return purged

    async def trigger_retraining(self) -> Dict[str, TrainingReport]:
        """Retrain every known user now; failures are logged per user."""
        user_ids = await self.user_ids_provider()
        logger.info(f"Retraining models for {len(user_ids)} user(s)")
        reports = await self.trainer.batch_train(user_ids)
        for user_id in reports:
            await self.engine.invalidate_user(user_id)
        self._last_retraining = datetime.now()
        logger.info(f"Retraining finished: {len(reports)}/{len(user_ids)} succeeded")
        return reports

    def get_scheduler_status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {
            "is_running": self.is_running,
            "maintenance_enabled": self.settings.maintenance_enabled,
            "next_cache_cleanup": None,
            "next_retraining": None,
            "last_cache_cleanup": self._last_cleanup.isoformat() if self._last_cleanup else None,
            "last_retraining": self._last_retraining.isoformat() if self._last_retraining else None,
        }
        if self.is_running and self.scheduler is not None:
            for job_id, key in ((CACHE_CLEANUP_JOB_ID, "next_cache_cleanup"), (RETRAINING_JOB_ID, "next_retraining")):
                job = self.scheduler.get_job(job_id)
                if job and job.next_run_time:
                    status[key] = job.next_run_time.isoformat()
        return status
