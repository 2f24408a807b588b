"""Storage adapters for workout history and recommendation analytics."""

from .analytics import (
    AnalyticsRecord,
    AnalyticsSink,
    InMemoryAnalyticsSink,
    SQLiteAnalyticsRepository,
)
from .history import (
    InMemoryLoadHistoryStore,
    InMemoryTargetEventSource,
    LoadHistoryStore,
    SQLiteLoadHistoryStore,
    TargetEventSource,
)

__all__ = [
    "AnalyticsRecord",
    "AnalyticsSink",
    "InMemoryAnalyticsSink",
    "SQLiteAnalyticsRepository",
    "InMemoryLoadHistoryStore",
    "InMemoryTargetEventSource",
    "LoadHistoryStore",
    "SQLiteLoadHistoryStore",
    "TargetEventSource",
]
