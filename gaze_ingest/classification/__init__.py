"""File type classification."""

from .classifier import EyeClassifier

__all__ = ["EyeClassifier"]
