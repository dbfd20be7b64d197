"""Quest: a habit tracker with daily progress and streaks."""

__version__ = "0.1.0"
