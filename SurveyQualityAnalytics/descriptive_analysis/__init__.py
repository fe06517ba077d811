"""Descriptive statistics module for survey metrics."""

from .statistics_engine import StatisticsEngine

__all__ = [
    'StatisticsEngine'
]
