"""Tests for the recommendation analytics sinks."""

import pytest

from training_recommender.db.analytics import (
    AnalyticsRecord,
    AnalyticsSink,
    InMemoryAnalyticsSink,
    SQLiteAnalyticsRepository,
)
from training_recommender.models.recommendation import EdgeCase, Recommendation, WorkoutType


def make_recommendation(**overrides) -> Recommendation:
    values = dict(
        user_id="athlete",
        recommended_stress=75.0,
        confidence=0.6,
        lower_bound=60.0,
        upper_bound=90.0,
        workout_type=WorkoutType.ENDURANCE,
        model_version="edge_case_handler_v1",
        warnings=["Edge case detected: new_user"],
        edge_case=EdgeCase.NEW_USER,
    )
    values.update(overrides)
    return Recommendation(**values)


class TestAnalyticsRecord:
    """Tests for AnalyticsRecord."""

    def test_from_recommendation(self):
        entry = AnalyticsRecord.from_recommendation(make_recommendation(cached=True))

        assert entry.user_id == "athlete"
        assert entry.workout_type == "endurance"
        assert entry.edge_case == "new_user"
        assert entry.warnings_count == 1
        assert entry.alternatives_count == 0
        assert entry.cached is True

    def test_without_edge_case(self):
        entry = AnalyticsRecord.from_recommendation(
            make_recommendation(edge_case=None, warnings=[])
        )
        assert entry.edge_case is None
        assert entry.to_dict()["edge_case"] is None


class TestInMemoryAnalyticsSink:
    """Tests for InMemoryAnalyticsSink."""

    @pytest.mark.asyncio
    async def test_record(self):
        sink = InMemoryAnalyticsSink()
        await sink.record(AnalyticsRecord.from_recommendation(make_recommendation()))

        assert len(sink.records) == 1
        assert isinstance(sink, AnalyticsSink)


class TestSQLiteAnalyticsRepository:
    """Tests for SQLiteAnalyticsRepository."""

    @pytest.fixture
    def repository(self, tmp_path):
        repository = SQLiteAnalyticsRepository(tmp_path / "analytics.db")
        yield repository
        repository.close()

    @pytest.mark.asyncio
    async def test_record_and_read(self, repository):
        await repository.record(AnalyticsRecord.from_recommendation(make_recommendation()))
        await repository.record(
            AnalyticsRecord.from_recommendation(make_recommendation(recommended_stress=80.0, cached=True))
        )

        recent = await repository.get_recent("athlete")

        assert [entry.recommended_stress for entry in recent] == [80.0, 75.0]
        assert recent[0].cached is True
        assert recent[1].edge_case == "new_user"

    @pytest.mark.asyncio
    async def test_limit_and_user_filter(self, repository):
        for _ in range(3):
            await repository.record(AnalyticsRecord.from_recommendation(make_recommendation()))
        await repository.record(
            AnalyticsRecord.from_recommendation(make_recommendation(user_id="other"))
        )

        assert len(await repository.get_recent("athlete", limit=2)) == 2
        assert len(await repository.get_recent("other")) == 1
