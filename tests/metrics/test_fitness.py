"""Tests for the Performance-Management calculations."""

import math
from datetime import date, timedelta

import pytest

from training_recommender.metrics.fitness import (
    LoadState,
    acute_chronic_ratio,
    calculate_ewma,
    calculate_load_states,
)


D0 = date(2024, 3, 1)


class TestCalculateEwma:
    """Tests for the EWMA update."""

    def test_single_step(self):
        """One step moves the average by 1 - exp(-1/tau)."""
        result = calculate_ewma(100.0, 0.0, 42)
        assert result == pytest.approx(100.0 * (1 - math.exp(-1 / 42)))

    def test_steady_state(self):
        """A constant input at its own average stays put."""
        assert calculate_ewma(50.0, 50.0, 7) == pytest.approx(50.0)

    def test_shorter_constant_reacts_faster(self):
        """Acute load responds more than chronic load to the same stress."""
        chronic = calculate_ewma(100.0, 0.0, 42)
        acute = calculate_ewma(100.0, 0.0, 7)
        assert acute > chronic


class TestCalculateLoadStates:
    """Tests for calculate_load_states."""

    def test_empty_series(self):
        """Empty input returns an empty result, not an error."""
        assert calculate_load_states([]) == []

    def test_empty_series_with_explicit_range(self):
        """An explicit range over no records yields zero states."""
        states = calculate_load_states([], start=D0, end=D0 + timedelta(days=2))

        assert len(states) == 3
        assert all(s.chronic_load == 0 and s.acute_load == 0 for s in states)

    def test_first_day_values(self):
        """The first day applies one EWMA step from zero."""
        states = calculate_load_states([(D0, 100.0)])

        assert len(states) == 1
        state = states[0]
        assert state.chronic_load == pytest.approx(100.0 * (1 - math.exp(-1 / 42)))
        assert state.acute_load == pytest.approx(100.0 * (1 - math.exp(-1 / 7)))
        assert state.balance == pytest.approx(state.chronic_load - state.acute_load)

    def test_dense_output_fills_gaps(self):
        """Missing days appear as zero-stress days."""
        states = calculate_load_states([(D0, 100.0), (D0 + timedelta(days=4), 50.0)])

        assert [s.date for s in states] == [D0 + timedelta(days=i) for i in range(5)]
        assert [s.daily_stress for s in states] == [100.0, 0.0, 0.0, 0.0, 50.0]

    def test_loads_decay_on_rest_days(self):
        """Without stress both loads decrease monotonically."""
        states = calculate_load_states([(D0, 100.0)], end=D0 + timedelta(days=10))

        chronic = [s.chronic_load for s in states]
        acute = [s.acute_load for s in states]
        assert chronic == sorted(chronic, reverse=True)
        assert acute == sorted(acute, reverse=True)

    def test_rest_after_training_turns_balance_positive(self):
        """Fatigue fades faster than fitness."""
        series = [(D0 + timedelta(days=i), 100.0) for i in range(14)]
        states = calculate_load_states(series, end=D0 + timedelta(days=40))

        assert states[13].balance < 0
        assert states[-1].balance > 0

    def test_same_day_records_are_summed(self):
        """Two sessions on one day count as their total."""
        split = calculate_load_states([(D0, 60.0), (D0, 40.0)])
        single = calculate_load_states([(D0, 100.0)])

        assert split[0].daily_stress == 100.0
        assert split[0].chronic_load == pytest.approx(single[0].chronic_load)

    def test_unsorted_input(self):
        """Input order does not matter."""
        forward = [(D0 + timedelta(days=i), float(10 * i)) for i in range(10)]
        assert calculate_load_states(list(reversed(forward))) == calculate_load_states(forward)

    def test_deterministic(self):
        """Same input gives identical output."""
        series = [(D0 + timedelta(days=i), float(i % 3) * 40) for i in range(30)]
        assert calculate_load_states(series) == calculate_load_states(series)

    def test_loads_never_negative(self):
        """Chronic and acute load stay non-negative."""
        series = [(D0 + timedelta(days=i), 0.0 if i % 2 else 150.0) for i in range(60)]
        for state in calculate_load_states(series):
            assert state.chronic_load >= 0
            assert state.acute_load >= 0

    def test_start_warms_up_without_emitting(self):
        """Records before start shape the loads but are not returned."""
        series = [(D0 + timedelta(days=i), 80.0) for i in range(20)]
        start = D0 + timedelta(days=10)

        full = calculate_load_states(series)
        windowed = calculate_load_states(series, start=start)

        assert windowed[0].date == start
        assert windowed == full[10:]

    def test_end_truncates(self):
        """Records after end are ignored."""
        series = [(D0 + timedelta(days=i), 80.0) for i in range(20)]
        states = calculate_load_states(series, end=D0 + timedelta(days=4))

        assert len(states) == 5
        assert states[-1].date == D0 + timedelta(days=4)

    def test_start_after_end(self):
        """An inverted range is empty."""
        states = calculate_load_states([(D0, 50.0)], start=D0 + timedelta(days=5), end=D0)
        assert states == []

    def test_custom_time_constants(self):
        """Time constants are honored."""
        states = calculate_load_states([(D0, 100.0)], chronic_time_constant=28, acute_time_constant=5)
        assert states[0].chronic_load == pytest.approx(100.0 * (1 - math.exp(-1 / 28)))
        assert states[0].acute_load == pytest.approx(100.0 * (1 - math.exp(-1 / 5)))


class TestLoadState:
    """Tests for LoadState helpers."""

    def test_to_dict(self):
        """Serialization rounds values and includes the ratio."""
        state = LoadState(date=D0, daily_stress=80.0, chronic_load=50.0, acute_load=60.0)
        data = state.to_dict()

        assert data["date"] == "2024-03-01"
        assert data["chronic_load"] == 50.0
        assert data["acute_load"] == 60.0
        assert data["balance"] == -10.0
        assert data["acute_chronic_ratio"] == 1.2

    def test_ratio_with_low_chronic_load(self):
        """The ratio defaults to 1.0 while chronic load is tiny."""
        state = LoadState(date=D0, daily_stress=0.0, chronic_load=5.0, acute_load=20.0)
        assert acute_chronic_ratio(state) == 1.0

    def test_ratio(self):
        state = LoadState(date=D0, daily_stress=0.0, chronic_load=40.0, acute_load=60.0)
        assert acute_chronic_ratio(state) == pytest.approx(1.5)
