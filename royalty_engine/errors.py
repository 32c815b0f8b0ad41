"""
Typed errors for the Royalty Statement Engine.

All errors subclass ValueError so entry points can treat them as
validation failures. Each carries enough context (contract, format,
offending value) to be logged and shown to an operator.
"""


class CalculationError(ValueError):
    """Base class for every error the engine raises."""

    error_type = "calculation_error"

    def __init__(self, message: str, *, contract_id=None, format=None, field=None, value=None):
        super().__init__(message)
        self.message = message
        self.contract_id = contract_id
        self.format = format
        self.field = field
        self.value = value

    @property
    def context(self) -> dict:
        ctx = {
            "contract_id": self.contract_id,
            "format": self.format,
            "field": self.field,
            "value": None if self.value is None else str(self.value),
        }
        return {k: v for k, v in ctx.items() if v is not None}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "error_type": self.error_type,
            "context": self.context,
        }


class ConfigurationError(CalculationError):
    """Contract terms the engine cannot price: tier gaps, bad splits, negative balances."""

    error_type = "configuration_error"


class SequenceError(CalculationError):
    """A period requested out of chronological order for its contract."""

    error_type = "sequence_error"


class InputError(CalculationError):
    """Malformed sales/returns records or request fields."""

    error_type = "input_error"
