"""
Shared Data Models
==================

This package contains dataclasses used across the project.
"""

from .alert import Alert, Direction
from .quote import PriceSample, TriggeredCrossing

__all__ = [
    "Alert",
    "Direction",
    "PriceSample",
    "TriggeredCrossing",
]
