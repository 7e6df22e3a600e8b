"""
Test Fixtures

Deterministic clock, recording media engine and test data factories.
"""

from .clock import ManualClock, ManualTimerHandle
from .engine import RecordingEngine
from .factories import ConfigFactory, TargetFactory

__all__ = [
    "ConfigFactory",
    "ManualClock",
    "ManualTimerHandle",
    "RecordingEngine",
    "TargetFactory",
]
