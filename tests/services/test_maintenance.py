"""Tests for the maintenance scheduler."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from training_recommender.config import Settings
from training_recommender.services.maintenance import (
    CACHE_CLEANUP_JOB_ID,
    RETRAINING_JOB_ID,
    MaintenanceScheduler,
)


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.cleanup_cache = AsyncMock(return_value=3)
    engine.invalidate_user = AsyncMock(return_value=1)
    return engine


@pytest.fixture
def trainer():
    trainer = MagicMock()
    trainer.batch_train = AsyncMock(return_value={"a": MagicMock()})
    return trainer


@pytest.fixture
def enabled_settings(tmp_path):
    return Settings(
        database_path=tmp_path / "training.db",
        model_dir=tmp_path / "models",
        maintenance_enabled=True,
    )


class TestMaintenanceScheduler:
    """Tests for MaintenanceScheduler."""

    def test_disabled(self, engine, trainer, settings):
        scheduler = MaintenanceScheduler(engine, trainer, AsyncMock(return_value=[]), settings=settings)

        scheduler.start()

        assert not scheduler.is_running
        assert scheduler.get_scheduler_status()["maintenance_enabled"] is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine, trainer, enabled_settings):
        scheduler = MaintenanceScheduler(
            engine, trainer, AsyncMock(return_value=[]), settings=enabled_settings
        )

        scheduler.start()
        try:
            assert scheduler.is_running
            assert scheduler.scheduler.get_job(CACHE_CLEANUP_JOB_ID) is not None
            assert scheduler.scheduler.get_job(RETRAINING_JOB_ID) is not None
            status = scheduler.get_scheduler_status()
            assert status["next_cache_cleanup"] is not None
            assert status["next_retraining"] is not None
        finally:
            scheduler.stop()

        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_trigger_cache_cleanup(self, engine, trainer, settings):
        scheduler = MaintenanceScheduler(engine, trainer, AsyncMock(return_value=[]), settings=settings)

        assert await scheduler.trigger_cache_cleanup() == 3
        assert scheduler.get_scheduler_status()["last_cache_cleanup"] is not None

    @pytest.mark.asyncio
    async def test_trigger_retraining(self, engine, trainer, settings):
        """Only users whose training succeeded have their cache dropped."""
        provider = AsyncMock(return_value=["a", "b"])
        scheduler = MaintenanceScheduler(engine, trainer, provider, settings=settings)

        reports = await scheduler.trigger_retraining()

        assert list(reports) == ["a"]
        trainer.batch_train.assert_awaited_once_with(["a", "b"])
        engine.invalidate_user.assert_awaited_once_with("a")

    @pytest.mark.asyncio
    async def test_scheduled_job_swallows_errors(self, engine, trainer, settings):
        trainer.batch_train.side_effect = RuntimeError("boom")
        scheduler = MaintenanceScheduler(engine, trainer, AsyncMock(return_value=["a"]), settings=settings)

        await scheduler._run_retraining()

        engine.invalidate_user.assert_not_awaited()
