"""
ROYALTY STATEMENT ENGINE
Version 1.0
"""

from .batch import BatchStatementRunner
from .errors import CalculationError, ConfigurationError, InputError, SequenceError
from .models import StatementRequest, StatementResult
from .output import ENGINE_VERSION
from .processor import StatementProcessor, calculate_statement

__all__ = [
    "StatementProcessor",
    "StatementRequest",
    "StatementResult",
    "BatchStatementRunner",
    "calculate_statement",
    "CalculationError",
    "ConfigurationError",
    "SequenceError",
    "InputError",
    "ENGINE_VERSION",
]
