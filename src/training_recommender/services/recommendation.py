"""
Recommendation engine.

Turns a raw model prediction into a safe, explainable and cached
recommendation:

    cache hit  -> return cached copy
    cache miss -> extract features -> edge-case check
               -> rule-based fallback | model prediction
               -> preference adjustment -> alternatives -> cache -> respond

Edge cases are checked in a fixed order and the first match wins, so a
cold-start or clearly fatigued athlete never gets an aggressive workout,
even before any model has been trained for them.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from ..config import EdgeCaseConfig, Settings, get_settings
from ..db.analytics import AnalyticsRecord, AnalyticsSink
from ..exceptions import NoModelAvailableError
from ..metrics.fitness import LoadState, calculate_load_states
from ..models.features import FeatureVector
from ..models.recommendation import (
    EdgeCase,
    PreferredIntensity,
    Recommendation,
    RecommendationRequest,
    WorkoutType,
)
from .base import BaseService
from .cache import CacheStats, RecommendationCache, build_cache_key
from .feature_extraction import FeatureExtractionService
from .prediction import Predictor


FALLBACK_MODEL_VERSION = "edge_case_handler_v1"
FALLBACK_CONFIDENCE = 0.6
FALLBACK_INTERVAL = (0.8, 1.2)
MODEL_INTERVAL = (0.9, 1.1)

FEEDBACK_ADJUSTMENT = 0.3
STRESS_PER_HOUR = 100.0

EASY_ALTERNATIVE_FACTOR = 0.75
HARD_ALTERNATIVE_FACTOR = 1.25

INTENSITY_WORKOUT_TYPES = {
    PreferredIntensity.EASY: WorkoutType.RECOVERY,
    PreferredIntensity.MODERATE: WorkoutType.ENDURANCE,
    PreferredIntensity.HARD: WorkoutType.THRESHOLD,
}


@dataclass
class _Draft:
    """Mutable recommendation core while the pipeline runs."""

    stress: float
    confidence: float
    workout_type: WorkoutType
    model_version: str
    reasoning: str
    edge_case: Optional[EdgeCase] = None
    stress_cap: Optional[float] = None

    @property
    def is_fallback(self) -> bool:
        return self.edge_case is not None


def detect_edge_case(
    features: FeatureVector,
    recent_sessions: int,
    config: EdgeCaseConfig,
) -> Optional[EdgeCase]:
    """First matching edge case in fixed precedence order, or None."""
    if (
        features.avg_weekly_stress_4weeks == 0
        or features.days_since_last_session > config.new_user_threshold_days
    ):
        return EdgeCase.NEW_USER
    if features.balance < config.min_balance_for_recovery:
        return EdgeCase.OVERTRAINED
    if recent_sessions < config.min_data_points:
        return EdgeCase.INSUFFICIENT_DATA
    if features.balance > config.detraining_balance_ceiling:
        return EdgeCase.DETRAINING
    return None


def fallback_target(
    edge_case: EdgeCase,
    features: FeatureVector,
    config: EdgeCaseConfig,
) -> Tuple[float, WorkoutType, str]:
    """Conservative stress, workout type and reasoning for an edge case."""
    if edge_case is EdgeCase.NEW_USER:
        return (
            config.fallback_stress_easy,
            WorkoutType.ENDURANCE,
            "New user detected - starting with conservative endurance workout",
        )
    elif edge_case is EdgeCase.OVERTRAINED:
        return (
            config.fallback_stress_easy * 0.5,
            WorkoutType.RECOVERY,
            f"High fatigue detected (balance < {config.min_balance_for_recovery:g}) "
            f"- recommending recovery workout",
        )
    elif edge_case is EdgeCase.INSUFFICIENT_DATA:
        stress = max(features.avg_weekly_stress_4weeks, config.fallback_stress_easy)
        return (
            min(stress, config.fallback_stress_moderate),
            WorkoutType.ENDURANCE,
            "Limited recent data - using conservative recommendation",
        )
    elif edge_case is EdgeCase.DETRAINING:
        return (
            config.fallback_stress_moderate,
            WorkoutType.ENDURANCE,
            "Extended break detected - gradual return to training recommended",
        )
    elif edge_case is EdgeCase.NO_MODEL:
        return (
            config.fallback_stress_moderate,
            WorkoutType.ENDURANCE,
            "No trained model yet - using a moderate default recommendation",
        )
    raise ValueError(f"Unhandled edge case: {edge_case}")


def build_reasoning(features: FeatureVector) -> str:
    reasons = []
    if features.balance < -15:
        reasons.append("High fatigue levels suggest a recovery or easy workout")
    elif features.balance > 10:
        reasons.append("Low fatigue levels allow for more intensive training")
    else:
        reasons.append("Balanced training stress suggests moderate intensity training")

    if features.days_since_last_session >= 3:
        reasons.append(
            f"It's been {int(features.days_since_last_session)} days since your last workout"
        )

    if features.chronic_load > features.avg_weekly_stress_4weeks * 7.0 / 4.0:
        reasons.append("Fitness levels are trending upward")

    return ". ".join(reasons)


def build_warnings(features: FeatureVector, stress: float, confidence: float) -> List[str]:
    warnings = []
    if features.balance < -20:
        warnings.append("Consider taking a rest day - high fatigue detected")
    if features.days_since_last_session >= 7:
        warnings.append("Long break from training - start gradually")
    if stress > features.avg_weekly_stress_4weeks * 1.5:
        warnings.append("Recommended stress is significantly higher than recent average")
    if confidence < 0.6:
        warnings.append("Low confidence prediction - consider user feedback")
    return warnings


def duration_cap(request: RecommendationRequest) -> Optional[float]:
    """Highest stress the athlete's available time allows, if constrained."""
    limits = [request.max_duration_minutes]
    if request.feedback is not None:
        limits.append(request.feedback.available_time_minutes)
    minutes = [m for m in limits if m is not None]
    if not minutes:
        return None
    return min(minutes) / 60.0 * STRESS_PER_HOUR


def feedback_factor(energy_level: int, motivation: int) -> float:
    """Average of energy and motivation normalized to [-0.5, 0.5]."""
    return ((energy_level - 5) / 10.0 + (motivation - 5) / 10.0) / 2.0


class RecommendationEngine(BaseService):
    """Serves next-workout recommendations for users."""

    def __init__(
        self,
        feature_service: FeatureExtractionService,
        predictor: Predictor,
        cache: Optional[RecommendationCache] = None,
        analytics: Optional[AnalyticsSink] = None,
        settings: Optional[Settings] = None,
        edge_config: Optional[EdgeCaseConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(cache=cache, logger=logger)
        self.feature_service = feature_service
        self.predictor = predictor
        self.analytics = analytics
        self.settings = settings or get_settings()
        self.edge_config = edge_config or EdgeCaseConfig.from_settings(self.settings)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_recommendation(self, request: RecommendationRequest) -> Recommendation:
        """
        Recommendation for ``request.user_id`` on the target day (default today).

        Raises:
            CollaboratorUnavailableError: History store unreachable
            FeatureShapeMismatchError: Feature layout differs from the model's
        """
        target_date = request.target_date or date.today()
        cache_key = build_cache_key(request.user_id, target_date, request.options_payload())

        cached = await self._get_from_cache(cache_key)
        if cached is not None:
            self.logger.info(f"Returning cached recommendation for user {request.user_id}")
            recommendation = cached.model_copy(update={"cached": True})
            await self._record_analytics(recommendation)
            return recommendation

        features, window = await self.feature_service.extract_with_window(
            request.user_id, target_date
        )

        edge_case = detect_edge_case(features, len(window), self.edge_config)
        if edge_case is not None:
            self.logger.info(f"Detected edge case '{edge_case.value}' for user {request.user_id}")
            draft = self._fallback_draft(edge_case, features)
        else:
            draft = await self._model_draft(request.user_id, features)

        self._apply_preferences(draft, request)
        recommendation = self._finalize(request.user_id, draft, features)

        await self._set_in_cache(cache_key, recommendation, self.settings.cache_ttl_seconds)
        await self._record_analytics(recommendation)
        return recommendation

    async def get_load_series(self, user_id: str, start: date, end: date) -> List[LoadState]:
        """Daily load states for a date range, warmed up on earlier history."""
        warmup_start = start - timedelta(days=3 * self.settings.chronic_time_constant)
        records = await self.feature_service.history_store.get_records(user_id, warmup_start, end)
        return calculate_load_states(
            [(r.date, r.stress_score) for r in records],
            chronic_time_constant=self.settings.chronic_time_constant,
            acute_time_constant=self.settings.acute_time_constant,
            start=start,
            end=end,
        )

    async def cleanup_cache(self) -> int:
        """Purge expired cache entries. Returns the number purged."""
        if self.cache is None:
            return 0
        purged = await self.cache.purge_expired()
        if purged:
            self.logger.info(f"Purged {purged} expired recommendation(s)")
        return purged

    async def cache_stats(self) -> CacheStats:
        if self.cache is None:
            return CacheStats(total_entries=0, expired_entries=0)
        return await self.cache.stats()

    async def invalidate_user(self, user_id: str) -> int:
        """Drop a user's cached recommendations, e.g. after a retrain."""
        if self.cache is None:
            return 0
        return await self.cache.delete_user(user_id)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _fallback_draft(self, edge_case: EdgeCase, features: FeatureVector) -> _Draft:
        stress, workout_type, reasoning = fallback_target(edge_case, features, self.edge_config)
        return _Draft(
            stress=stress,
            confidence=FALLBACK_CONFIDENCE,
            workout_type=workout_type,
            model_version=FALLBACK_MODEL_VERSION,
            reasoning=reasoning,
            edge_case=edge_case,
        )

    async def _model_draft(self, user_id: str, features: FeatureVector) -> _Draft:
        try:
            prediction = await self.predictor.predict(user_id, features)
        except NoModelAvailableError:
            self.logger.info(f"No model for user {user_id}; using fallback")
            return self._fallback_draft(EdgeCase.NO_MODEL, features)

        return _Draft(
            stress=prediction.recommended_stress,
            confidence=prediction.confidence,
            workout_type=prediction.workout_type,
            model_version=prediction.model_version,
            reasoning=build_reasoning(features),
        )

    def _apply_preferences(self, draft: _Draft, request: RecommendationRequest) -> None:
        # Fallback targets are never raised or re-typed, only capped
        if not draft.is_fallback:
            if request.preferred_workout_type is not None:
                draft.workout_type = request.preferred_workout_type

            feedback = request.feedback
            if feedback is not None:
                factor = feedback_factor(feedback.energy_level, feedback.motivation)
                draft.stress *= 1.0 + factor * FEEDBACK_ADJUSTMENT
                if feedback.preferred_intensity is not None:
                    draft.workout_type = INTENSITY_WORKOUT_TYPES[feedback.preferred_intensity]

        cap = duration_cap(request)
        draft.stress_cap = cap
        if cap is not None and draft.stress > cap:
            draft.stress = cap
            if not draft.is_fallback:
                draft.workout_type = WorkoutType.ENDURANCE

    def _clamp(self, stress: float) -> float:
        return min(
            max(stress, self.edge_config.min_recommended_stress),
            self.edge_config.max_recommended_stress,
        )

    def _alternatives(
        self,
        user_id: str,
        draft: _Draft,
        stress: float,
        features: FeatureVector,
        generated_at: datetime,
    ) -> List[Recommendation]:
        easy = self._clamp(stress * EASY_ALTERNATIVE_FACTOR)
        alternatives = [
            Recommendation(
                user_id=user_id,
                recommended_stress=easy,
                confidence=draft.confidence * 0.9,
                lower_bound=easy * 0.9,
                upper_bound=easy * 1.1,
                workout_type=WorkoutType.ENDURANCE,
                model_version=draft.model_version,
                reasoning="Easier option at reduced training stress",
                edge_case=draft.edge_case,
                generated_at=generated_at,
            )
        ]

        if features.balance > self.edge_config.max_balance_for_hard_workout:
            hard = stress * HARD_ALTERNATIVE_FACTOR
            if draft.is_fallback:
                hard = min(hard, self.edge_config.fallback_stress_hard)
            if draft.stress_cap is not None:
                hard = min(hard, draft.stress_cap)
            hard = self._clamp(hard)
            alternatives.append(
                Recommendation(
                    user_id=user_id,
                    recommended_stress=hard,
                    confidence=draft.confidence * 0.8,
                    lower_bound=hard * 0.85,
                    upper_bound=hard * 1.15,
                    workout_type=WorkoutType.THRESHOLD,
                    model_version=draft.model_version,
                    reasoning="Harder option for a well-recovered athlete",
                    edge_case=draft.edge_case,
                    generated_at=generated_at,
                )
            )
        return alternatives

    def _finalize(self, user_id: str, draft: _Draft, features: FeatureVector) -> Recommendation:
        stress = self._clamp(draft.stress)
        low, high = FALLBACK_INTERVAL if draft.is_fallback else MODEL_INTERVAL
        if draft.is_fallback:
            warnings = [f"Edge case detected: {draft.edge_case.value}"]
        else:
            warnings = build_warnings(features, stress, draft.confidence)

        generated_at = datetime.now()
        return Recommendation(
            user_id=user_id,
            recommended_stress=stress,
            confidence=draft.confidence,
            lower_bound=stress * low,
            upper_bound=stress * high,
            workout_type=draft.workout_type,
            model_version=draft.model_version,
            alternatives=self._alternatives(user_id, draft, stress, features, generated_at),
            reasoning=draft.reasoning,
            warnings=warnings,
            edge_case=draft.edge_case,
            generated_at=generated_at,
        )

    async def _record_analytics(self, recommendation: Recommendation) -> None:
        if self.analytics is None:
            return
        try:
            await self.analytics.record(AnalyticsRecord.from_recommendation(recommendation))
        except Exception as e:
            self.logger.warning(f"Failed to store recommendation analytics: {e}")
