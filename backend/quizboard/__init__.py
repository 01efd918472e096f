"""Quizboard: live ranked leaderboard for quiz and course performance."""

__version__ = "0.1.0"
__author__ = "Quizboard Team"

__all__ = ["__version__", "__author__"]
