"""Recommendation analytics sink.

Each served recommendation emits one record. Writes are best-effort from
the engine's point of view; the sink itself raises on failure.
"""

import asyncio
import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..exceptions import CollaboratorUnavailableError
from ..models.recommendation import Recommendation

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsRecord:
    """One served recommendation, flattened for storage."""

    user_id: str
    recommended_stress: float
    confidence: float
    workout_type: str
    alternatives_count: int
    warnings_count: int
    cached: bool
    model_version: str
    edge_case: Optional[str] = None
    recorded_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_recommendation(cls, recommendation: Recommendation) -> "AnalyticsRecord":
        return cls(
            user_id=recommendation.user_id,
            recommended_stress=recommendation.recommended_stress,
            confidence=recommendation.confidence,
            workout_type=recommendation.workout_type.value,
            alternatives_count=len(recommendation.alternatives),
            warnings_count=len(recommendation.warnings),
            cached=recommendation.cached,
            model_version=recommendation.model_version,
            edge_case=recommendation.edge_case.value if recommendation.edge_case else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "recommended_stress": self.recommended_stress,
            "confidence": self.confidence,
            "workout_type": self.workout_type,
            "alternatives_count": self.alternatives_count,
            "warnings_count": self.warnings_count,
            "cached": self.cached,
            "model_version": self.model_version,
            "edge_case": self.edge_case,
            "recorded_at": self.recorded_at.isoformat(),
        }


@runtime_checkable
class AnalyticsSink(Protocol):
    """Destination for recommendation analytics."""

    async def record(self, entry: AnalyticsRecord) -> None:
        ...


class InMemoryAnalyticsSink:
    """Keeps records in a list."""

    def __init__(self) -> None:
        self.records: List[AnalyticsRecord] = []

    async def record(self, entry: AnalyticsRecord) -> None:
        self.records.append(entry)


class SQLiteAnalyticsRepository:
    """SQLite-backed analytics sink (table ``recommendation_analytics``)."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analytics")
        self._ensure_table_exists()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise CollaboratorUnavailableError("analytics_sink", details={"reason": str(e)}) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise CollaboratorUnavailableError("analytics_sink", details={"reason": str(e)}) from e
        finally:
            conn.close()

    def _ensure_table_exists(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS recommendation_analytics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    recommended_stress REAL NOT NULL,
                    confidence REAL NOT NULL,
                    workout_type TEXT NOT NULL,
                    alternatives_count INTEGER NOT NULL,
                    warnings_count INTEGER NOT NULL,
                    cached INTEGER NOT NULL,
                    model_version TEXT NOT NULL,
                    edge_case TEXT,
                    recorded_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_recommendation_analytics_user
                ON recommendation_analytics(user_id, recorded_at)
            """)

    def _insert(self, entry: AnalyticsRecord) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO recommendation_analytics
                    (user_id, recommended_stress, confidence, workout_type,
                     alternatives_count, warnings_count, cached, model_version,
                     edge_case, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.user_id,
                    entry.recommended_stress,
                    entry.confidence,
                    entry.workout_type,
                    entry.alternatives_count,
                    entry.warnings_count,
                    int(entry.cached),
                    entry.model_version,
                    entry.edge_case,
                    entry.recorded_at.isoformat(),
                ),
            )

    def _select_for_user(self, user_id: str, limit: int) -> List[AnalyticsRecord]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM recommendation_analytics
                WHERE user_id = ?
                ORDER BY recorded_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [
            AnalyticsRecord(
                user_id=row["user_id"],
                recommended_stress=row["recommended_stress"],
                confidence=row["confidence"],
                workout_type=row["workout_type"],
                alternatives_count=row["alternatives_count"],
                warnings_count=row["warnings_count"],
                cached=bool(row["cached"]),
                model_version=row["model_version"],
                edge_case=row["edge_case"],
                recorded_at=datetime.fromisoformat(row["recorded_at"]),
            )
            for row in rows
        ]

    async def record(self, entry: AnalyticsRecord) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._insert, entry)

    async def get_recent(self, user_id: str, limit: int = 50) -> List[AnalyticsRecord]:
        """Most recent analytics records for a user, newest first."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._select_for_user, user_id, limit)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
