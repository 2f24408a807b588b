"""
Feature extraction from workout history.

Turns a user's recent StressRecords into the fixed-order FeatureVector the
models consume, and joins historical features with next-day outcomes to
produce training samples.
"""

import logging
import statistics
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import Settings, get_settings
from ..db.history import LoadHistoryStore, TargetEventSource
from ..exceptions import TrainingRecommenderError
from ..metrics.fitness import calculate_load_states
from ..models.features import (
    NO_PREVIOUS_SESSION,
    NO_TARGET_EVENT,
    WORKOUT_TYPE_VOCABULARY,
    FeatureVector,
)
from ..models.records import StressRecord, TrainingLoadStats, TrainingSample
from .base import BaseService


TOP_WORKOUT_TYPES = 3


def seasonal_factor(day: date) -> float:
    """Training-volume multiplier by meteorological season."""
    month = day.month
    if month in (12, 1, 2):
        return 0.7
    elif month in (3, 4, 5):
        return 0.9
    elif month in (6, 7, 8):
        return 1.0
    return 0.8


def performance_trend(stress_values: Sequence[float]) -> float:
    """
    Relative change between the older and the recent half of sessions.

    Values must be in chronological order. Returns a value in [-1, 1];
    0 with fewer than two sessions.
    """
    if len(stress_values) < 2:
        return 0.0

    mid = len(stress_values) // 2
    older_mean = statistics.fmean(stress_values[:mid])
    recent_mean = statistics.fmean(stress_values[mid:])
    trend = (recent_mean - older_mean) / (recent_mean + older_mean + 1.0)
    return max(-1.0, min(1.0, trend))


def top_workout_types(records: Sequence[StressRecord], limit: int = TOP_WORKOUT_TYPES) -> List[str]:
    """Most frequent workout tags; ties go to the most recent, then by name."""
    counts: Dict[str, int] = defaultdict(int)
    last_seen: Dict[str, date] = {}
    for record in records:
        counts[record.workout_type] += 1
        if record.workout_type not in last_seen or record.date > last_seen[record.workout_type]:
            last_seen[record.workout_type] = record.date

    ranked = sorted(
        counts,
        key=lambda tag: (-counts[tag], -last_seen[tag].toordinal(), tag),
    )
    return ranked[:limit]


def build_feature_vector(
    records: Iterable[StressRecord],
    as_of: date,
    chronic_time_constant: int = 42,
    acute_time_constant: int = 7,
    lookback_days: int = 30,
    target_event: Optional[date] = None,
) -> FeatureVector:
    """
    Build the feature vector for ``as_of`` from history records.

    Only records in the lookback window ``[as_of - lookback_days, as_of]``
    contribute; anything outside it is ignored.
    """
    window_start = as_of - timedelta(days=lookback_days)
    window = sorted(
        (r for r in records if window_start <= r.date <= as_of),
        key=lambda r: r.date,
    )

    if window:
        states = calculate_load_states(
            [(r.date, r.stress_score) for r in window],
            chronic_time_constant=chronic_time_constant,
            acute_time_constant=acute_time_constant,
            end=as_of,
        )
        current = states[-1]
        chronic, acute = current.chronic_load, current.acute_load
    else:
        chronic, acute = 0.0, 0.0

    earlier = [(as_of - r.date).days for r in window if r.date < as_of]
    days_since_last = float(min(earlier)) if earlier else NO_PREVIOUS_SESSION

    avg_weekly = sum(r.stress_score for r in window) / 4.0
    trend = performance_trend([r.stress_score for r in window])

    if target_event is not None and target_event >= as_of:
        days_until_event = float((target_event - as_of).days)
    else:
        days_until_event = NO_TARGET_EVENT

    preferred = set(top_workout_types(window))
    one_hot = {
        f"prefers_{workout_type}": 1.0 if workout_type in preferred else 0.0
        for workout_type in WORKOUT_TYPE_VOCABULARY
    }

    return FeatureVector(
        chronic_load=chronic,
        acute_load=acute,
        balance=chronic - acute,
        days_since_last_session=days_since_last,
        avg_weekly_stress_4weeks=avg_weekly,
        performance_trend=trend,
        days_until_target_event=days_until_event,
        seasonal_factor=seasonal_factor(as_of),
        **one_hot,
    )


def _daily_outcomes(records: Iterable[StressRecord]) -> Dict[date, Tuple[float, StressRecord]]:
    """Per-day total stress and the day's highest-stress session."""
    outcomes: Dict[date, Tuple[float, StressRecord]] = {}
    for record in records:
        if record.date in outcomes:
            total, top = outcomes[record.date]
            if record.stress_score > top.stress_score:
                top = record
            outcomes[record.date] = (total + record.stress_score, top)
        else:
            outcomes[record.date] = (record.stress_score, record)
    return outcomes


class FeatureExtractionService(BaseService):
    """Extracts model features and training samples for users."""

    def __init__(
        self,
        history_store: LoadHistoryStore,
        event_source: Optional[TargetEventSource] = None,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger=logger)
        self.history_store = history_store
        self.event_source = event_source
        self.settings = settings or get_settings()

    @property
    def lookback_days(self) -> int:
        return self.settings.feature_lookback_days

    async def _next_event(self, user_id: str, as_of: date) -> Optional[date]:
        if self.event_source is None:
            return None
        return await self.event_source.get_next_event_date(user_id, as_of)

    def _build(
        self,
        records: Iterable[StressRecord],
        as_of: date,
        target_event: Optional[date],
    ) -> FeatureVector:
        return build_feature_vector(
            records,
            as_of,
            chronic_time_constant=self.settings.chronic_time_constant,
            acute_time_constant=self.settings.acute_time_constant,
            lookback_days=self.lookback_days,
            target_event=target_event,
        )

    async def get_window_records(self, user_id: str, as_of: date) -> List[StressRecord]:
        """Records in the lookback window ending at ``as_of``."""
        start = as_of - timedelta(days=self.lookback_days)
        return await self.history_store.get_records(user_id, start, as_of)

    async def extract_with_window(
        self,
        user_id: str,
        as_of: date,
    ) -> Tuple[FeatureVector, List[StressRecord]]:
        """Feature vector plus the window records it was built from."""
        records = await self.get_window_records(user_id, as_of)
        target_event = await self._next_event(user_id, as_of)
        return self._build(records, as_of, target_event), records

    async def extract(self, user_id: str, as_of: date) -> FeatureVector:
        """
        Extract the current feature vector for a user.

        Sparse or empty history yields a valid vector; an unreachable
        history store raises CollaboratorUnavailableError.
        """
        features, _ = await self.extract_with_window(user_id, as_of)
        return features

    async def batch_extract(
        self,
        requests: Iterable[Tuple[str, date]],
    ) -> List[Tuple[str, date, FeatureVector]]:
        """Extract features for many (user_id, as_of) pairs, skipping failures."""
        results: List[Tuple[str, date, FeatureVector]] = []
        for user_id, as_of in requests:
            try:
                features = await self.extract(user_id, as_of)
            except TrainingRecommenderError as e:
                self.logger.warning(f"Feature extraction failed for {user_id} on {as_of}: {e.message}")
                continue
            results.append((user_id, as_of, features))
        return results

    async def extract_training_samples(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> List[TrainingSample]:
        """
        Build one training sample per active day in ``[start, end]``.

        Features describe the day before the workout; the label is that
        day's total stress and the type is its highest-stress session.
        """
        history_start = start - timedelta(days=self.lookback_days + 1)
        records = await self.history_store.get_records(user_id, history_start, end)

        outcomes = _daily_outcomes(r for r in records if start <= r.date <= end)
        samples: List[TrainingSample] = []
        for day in sorted(outcomes):
            total, top = outcomes[day]
            feature_day = day - timedelta(days=1)
            target_event = await self._next_event(user_id, feature_day)
            samples.append(
                TrainingSample(
                    features=self._build(records, feature_day, target_event),
                    realized_stress=total,
                    workout_type=top.workout_type,
                    date=day,
                    performance_rating=top.performance_rating,
                    recovery_rating=top.recovery_rating,
                )
            )

        self.logger.debug(f"Extracted {len(samples)} training samples for {user_id}")
        return samples

    async def get_training_load_stats(
        self,
        user_id: str,
        as_of: date,
        days: int = 30,
    ) -> TrainingLoadStats:
        """Session stress statistics over the last ``days`` days."""
        records = await self.history_store.get_records(
            user_id, as_of - timedelta(days=days), as_of
        )
        values = [r.stress_score for r in records]
        if not values:
            return TrainingLoadStats(0.0, 0.0, 0.0, 0.0, 0)

        return TrainingLoadStats(
            mean_stress=statistics.fmean(values),
            std_stress=statistics.stdev(values) if len(values) > 1 else 0.0,
            min_stress=min(values),
            max_stress=max(values),
            session_count=len(values),
        )
