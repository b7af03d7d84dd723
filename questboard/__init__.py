"""Questboard: progression and combat economy for a gamified dashboard."""

__version__ = "1.0.0"
