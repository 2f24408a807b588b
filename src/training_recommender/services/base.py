"""
Base service class.

Services share a logger and an optional recommendation cache whose
failures are logged and never propagated.
"""

import logging
from abc import ABC
from typing import Optional

from ..models.recommendation import Recommendation
from .cache import RecommendationCache


class BaseService(ABC):
    """
    Abstract base class for engine services.

    Provides common functionality:
    - Logging setup
    - Best-effort cache access
    """

    def __init__(
        self,
        cache: Optional[RecommendationCache] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def logger(self) -> logging.Logger:
        """Get the logger instance."""
        return self._logger

    @property
    def cache(self) -> Optional[RecommendationCache]:
        """Get the cache instance."""
        return self._cache

    async def _get_from_cache(self, key: str) -> Optional[Recommendation]:
        """Get value from cache, treating failures as a miss."""
        if self._cache is None:
            return None
        try:
            return await self._cache.get(key)
        except Exception as e:
            self._logger.warning(f"Cache get failed for key '{key}': {e}")
            return None

    async def _set_in_cache(
        self,
        key: str,
        value: Recommendation,
        expire_seconds: Optional[int] = None,
    ) -> None:
        """Set value in cache, handling errors gracefully."""
        if self._cache is None:
            return
        try:
            await self._cache.set(key, value, expire_seconds)
        except Exception as e:
            self._logger.warning(f"Cache set failed for key '{key}': {e}")
