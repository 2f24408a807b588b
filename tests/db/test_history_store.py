"""Tests for the load history stores."""

from datetime import date, timedelta

import pytest

from training_recommender.db.history import (
    InMemoryLoadHistoryStore,
    InMemoryTargetEventSource,
    LoadHistoryStore,
    SQLiteLoadHistoryStore,
)
from training_recommender.exceptions import CollaboratorUnavailableError, ValidationError
from training_recommender.models.records import StressRecord


D0 = date(2024, 4, 1)


def records():
    return [
        StressRecord(date=D0 + timedelta(days=2), stress_score=90.0, workout_type="threshold"),
        StressRecord(date=D0, stress_score=60.0, duration_minutes=45.0, performance_rating=7.0),
        StressRecord(date=D0 + timedelta(days=5), stress_score=120.0, recovery_rating=4.0),
    ]


class TestStressRecord:
    """Tests for StressRecord validation."""

    def test_negative_stress(self):
        with pytest.raises(ValidationError) as exc_info:
            StressRecord(date=D0, stress_score=-1.0)
        assert exc_info.value.details["field"] == "stress_score"

    def test_negative_duration(self):
        with pytest.raises(ValidationError):
            StressRecord(date=D0, stress_score=10.0, duration_minutes=-5.0)

    def test_rating_range(self):
        with pytest.raises(ValidationError):
            StressRecord(date=D0, stress_score=10.0, performance_rating=11.0)

    def test_to_dict(self):
        data = StressRecord(date=D0, stress_score=10.0).to_dict()
        assert data["date"] == "2024-04-01"
        assert data["workout_type"] == "endurance"


class TestInMemoryLoadHistoryStore:
    """Tests for InMemoryLoadHistoryStore."""

    @pytest.mark.asyncio
    async def test_range_is_inclusive_and_ordered(self):
        store = InMemoryLoadHistoryStore({"athlete": records()})

        result = await store.get_records("athlete", D0, D0 + timedelta(days=2))

        assert [r.date for r in result] == [D0, D0 + timedelta(days=2)]

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        store = InMemoryLoadHistoryStore()
        assert await store.get_records("nobody", D0, D0) == []

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryLoadHistoryStore(), LoadHistoryStore)

    def test_user_ids(self):
        store = InMemoryLoadHistoryStore({"b": records(), "a": records()})
        assert store.user_ids() == ["a", "b"]


class TestInMemoryTargetEventSource:
    """Tests for InMemoryTargetEventSource."""

    @pytest.mark.asyncio
    async def test_next_event(self):
        source = InMemoryTargetEventSource({
            "athlete": [D0 + timedelta(days=40), D0 - timedelta(days=3), D0 + timedelta(days=10)],
        })

        assert await source.get_next_event_date("athlete", D0) == D0 + timedelta(days=10)
        assert await source.get_next_event_date("athlete", D0 + timedelta(days=50)) is None
        assert await source.get_next_event_date("nobody", D0) is None


class TestSQLiteLoadHistoryStore:
    """Tests for SQLiteLoadHistoryStore."""

    @pytest.fixture
    def store(self, tmp_path):
        store = SQLiteLoadHistoryStore(tmp_path / "history.db")
        yield store
        store.close()

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        assert await store.add_records("athlete", records()) == 3

        result = await store.get_records("athlete", D0, D0 + timedelta(days=30))

        assert [r.stress_score for r in result] == [60.0, 90.0, 120.0]
        assert result[0].duration_minutes == 45.0
        assert result[0].performance_rating == 7.0
        assert result[1].workout_type == "threshold"
        assert result[2].recovery_rating == 4.0

    @pytest.mark.asyncio
    async def test_range_filter(self, store):
        await store.add_records("athlete", records())

        result = await store.get_records("athlete", D0 + timedelta(days=1), D0 + timedelta(days=5))

        assert [r.date for r in result] == [D0 + timedelta(days=2), D0 + timedelta(days=5)]

    @pytest.mark.asyncio
    async def test_users_isolated(self, store):
        await store.add_records("a", records())
        await store.add_records("b", records()[:1])

        assert len(await store.get_records("b", D0, D0 + timedelta(days=30))) == 1
        assert await store.user_ids() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.get_records("athlete", D0, D0) == []

    def test_unreachable_database(self, tmp_path):
        """A path that cannot be opened is a collaborator failure."""
        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            SQLiteLoadHistoryStore(tmp_path / "missing" / "history.db")

        assert exc_info.value.status_code == 503
