"""Training-load modeling and workout stress recommendation engine."""

__version__ = "0.1.0"
