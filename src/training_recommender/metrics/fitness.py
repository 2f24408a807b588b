"""Performance-Management calculations (chronic load, acute load, balance)."""

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple


# Below this chronic load the acute:chronic ratio is not meaningful
MIN_CHRONIC_FOR_RATIO = 10.0


@dataclass(frozen=True)
class LoadState:
    """Daily load state from the Performance-Management model."""

    date: date
    daily_stress: float  # Summed stress score for the day
    chronic_load: float  # Long time-constant EWMA ("fitness")
    acute_load: float  # Short time-constant EWMA ("fatigue")

    @property
    def balance(self) -> float:
        """Chronic minus acute load ("form")."""
        return self.chronic_load - self.acute_load

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "daily_stress": round(self.daily_stress, 1),
            "chronic_load": round(self.chronic_load, 1),
            "acute_load": round(self.acute_load, 1),
            "balance": round(self.balance, 1),
            "acute_chronic_ratio": round(acute_chronic_ratio(self), 2),
        }


def calculate_ewma(
    current_value: float,
    previous_ewma: float,
    time_constant: int,
) -> float:
    """
    Exponentially Weighted Moving Average.

    Uses the formula: EWMA_n = EWMA_{n-1} * decay + value * (1 - decay)
    where decay = e^(-1/time_constant)

    Args:
        current_value: Today's stress score
        previous_ewma: Yesterday's EWMA value
        time_constant: Time constant in days (42 for chronic, 7 for acute)

    Returns:
        New EWMA value
    """
    decay = math.exp(-1 / time_constant)
    return previous_ewma * decay + current_value * (1 - decay)


def acute_chronic_ratio(state: LoadState) -> float:
    """Acute:Chronic workload ratio, 1.0 while chronic load is too low."""
    if state.chronic_load > MIN_CHRONIC_FOR_RATIO:
        return state.acute_load / state.chronic_load
    return 1.0


def _sum_by_day(daily_stress: Iterable[Tuple[date, float]]) -> Dict[date, float]:
    totals: Dict[date, float] = defaultdict(float)
    for day, stress in daily_stress:
        totals[day] += stress
    return totals


def calculate_load_states(
    daily_stress: Iterable[Tuple[date, float]],
    chronic_time_constant: int = 42,
    acute_time_constant: int = 7,
    start: Optional[date] = None,
    end: Optional[date] = None,
    initial_chronic: float = 0.0,
    initial_acute: float = 0.0,
) -> List[LoadState]:
    """
    Calculate a dense per-day load series from sparse stress scores.

    Input pairs need not be sorted or unique; stress on the same day is
    summed and days without records count as zero stress. Records before
    ``start`` still warm up the averages but are not emitted, records after
    ``end`` are ignored.

    Args:
        daily_stress: (date, stress) pairs
        chronic_time_constant: Days for the chronic EWMA (default 42)
        acute_time_constant: Days for the acute EWMA (default 7)
        start: First day to emit (default: first record date)
        end: Last day to emit (default: last record date)
        initial_chronic: Chronic load before the first day
        initial_acute: Acute load before the first day

    Returns:
        List of LoadState, one per consecutive day
    """
    totals = _sum_by_day(daily_stress)
    if not totals and (start is None or end is None):
        return []

    first_day = min(totals) if totals else start
    last_day = max(totals) if totals else end
    emit_from = start if start is not None else first_day
    emit_to = end if end is not None else last_day
    if emit_from > emit_to:
        return []

    chronic = initial_chronic
    acute = initial_acute
    results: List[LoadState] = []

    day = min(first_day, emit_from)
    while day <= emit_to:
        stress = totals.get(day, 0.0)
        chronic = calculate_ewma(stress, chronic, chronic_time_constant)
        acute = calculate_ewma(stress, acute, acute_time_constant)
        if day >= emit_from:
            results.append(
                LoadState(
                    date=day,
                    daily_stress=stress,
                    chronic_load=max(chronic, 0.0),
                    acute_load=max(acute, 0.0),
                )
            )
        day += timedelta(days=1)

    return results
