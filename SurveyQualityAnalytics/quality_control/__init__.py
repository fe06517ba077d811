"""Response quality classification module."""

from .quality_classifier import QualityClassifier

__all__ = [
    'QualityClassifier'
]
