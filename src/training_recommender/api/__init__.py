"""HTTP adapter for the recommendation engine."""
