"""
Calculators Package

Provides all calculation components for statement processing.
"""

from .aggregator import PeriodAggregator
from .recoupment import RecoupmentLedger
from .splitter import OwnershipSplitter
from .tiers import TierResolver

__all__ = [
    "TierResolver",
    "PeriodAggregator",
    "RecoupmentLedger",
    "OwnershipSplitter",
]
