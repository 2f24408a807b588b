"""Load history store: the source of truth for completed workouts.

The engine only reads history. Writes exist for ingestion tooling (CLI,
tests) and are not used on the recommendation path.
"""

import asyncio
import logging
import sqlite3
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol, TypeVar, runtime_checkable

from ..exceptions import CollaboratorUnavailableError
from ..models.records import StressRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class LoadHistoryStore(Protocol):
    """Read access to a user's workout history."""

    async def get_records(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> List[StressRecord]:
        """Records with start <= date <= end, ordered by date. Empty is valid."""
        ...


@runtime_checkable
class TargetEventSource(Protocol):
    """Lookup of the athlete's next goal event (race, test day)."""

    async def get_next_event_date(self, user_id: str, as_of: date) -> Optional[date]:
        ...


class InMemoryLoadHistoryStore:
    """Dictionary-backed history store for tests and demos."""

    def __init__(self, records: Optional[Dict[str, Iterable[StressRecord]]] = None) -> None:
        self._records: Dict[str, List[StressRecord]] = defaultdict(list)
        for user_id, user_records in (records or {}).items():
            self.add_records(user_id, user_records)

    def add_records(self, user_id: str, records: Iterable[StressRecord]) -> None:
        self._records[user_id].extend(records)
        self._records[user_id].sort(key=lambda r: r.date)

    def user_ids(self) -> List[str]:
        return sorted(self._records)

    async def get_records(self, user_id: str, start: date, end: date) -> List[StressRecord]:
        return [r for r in self._records.get(user_id, []) if start <= r.date <= end]


class InMemoryTargetEventSource:
    """Static mapping of users to their goal event dates."""

    def __init__(self, events: Optional[Dict[str, List[date]]] = None) -> None:
        self._events = {user: sorted(days) for user, days in (events or {}).items()}

    async def get_next_event_date(self, user_id: str, as_of: date) -> Optional[date]:
        for event_date in self._events.get(user_id, []):
            if event_date >= as_of:
                return event_date
        return None


class SQLiteLoadHistoryStore:
    """
    SQLite-backed history store.

    Queries run on a dedicated single-thread executor so blocking sqlite
    calls never occupy the event loop's default pool.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="history-store")
        self._ensure_table_exists()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise CollaboratorUnavailableError("history_store", details={"reason": str(e)}) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise CollaboratorUnavailableError("history_store", details={"reason": str(e)}) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_table_exists(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS stress_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    stress_score REAL NOT NULL,
                    duration_minutes REAL NOT NULL DEFAULT 0,
                    workout_type TEXT NOT NULL,
                    performance_rating REAL,
                    recovery_rating REAL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_stress_records_user_date
                ON stress_records(user_id, date)
            """)

    async def _run(self, func: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def _select(self, user_id: str, start: date, end: date) -> List[StressRecord]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT date, stress_score, duration_minutes, workout_type,
                       performance_rating, recovery_rating
                FROM stress_records
                WHERE user_id = ? AND date >= ? AND date <= ?
                ORDER BY date, id
                """,
                (user_id, start.isoformat(), end.isoformat()),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def _insert(self, user_id: str, records: List[StressRecord]) -> int:
        with self._get_connection() as conn:
            conn.executemany(
                """
                INSERT INTO stress_records
                    (user_id, date, stress_score, duration_minutes, workout_type,
                     performance_rating, recovery_rating)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        user_id,
                        r.date.isoformat(),
                        r.stress_score,
                        r.duration_minutes,
                        r.workout_type,
                        r.performance_rating,
                        r.recovery_rating,
                    )
                    for r in records
                ],
            )
        return len(records)

    def _distinct_users(self) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT DISTINCT user_id FROM stress_records ORDER BY user_id"
            ).fetchall()
        return [row["user_id"] for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> StressRecord:
        return StressRecord(
            date=date.fromisoformat(row["date"]),
            stress_score=row["stress_score"],
            duration_minutes=row["duration_minutes"],
            workout_type=row["workout_type"],
            performance_rating=row["performance_rating"],
            recovery_rating=row["recovery_rating"],
        )

    async def get_records(self, user_id: str, start: date, end: date) -> List[StressRecord]:
        return await self._run(self._select, user_id, start, end)

    async def add_records(self, user_id: str, records: Iterable[StressRecord]) -> int:
        """Insert records for a user. Returns the number inserted."""
        inserted = await self._run(self._insert, user_id, list(records))
        logger.debug(f"Inserted {inserted} stress records for {user_id}")
        return inserted

    async def user_ids(self) -> List[str]:
        return await self._run(self._distinct_users)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
