"""
Input Validation for the Royalty Statement Engine

Validates all input data before processing begins.
Raises InputError / ConfigurationError with clear messages for any
constraint violation. Nothing is corrected or defaulted.
"""

from .calculators.aggregator import PeriodAggregator
from .calculators.tiers import TierResolver
from .errors import ConfigurationError, InputError
from .models import (
    CONTRACT_ACTIVE,
    CONTRACT_STATUSES,
    RETURN_STATUSES,
    TIER_MODE_CUMULATIVE,
    TIER_MODES,
    Contract,
    StatementRequest,
)


class InputValidator:
    """Validates statement requests according to business rules."""

    def __init__(self, tier_resolver: TierResolver | None = None):
        self.tier_resolver = tier_resolver or TierResolver()

    def validate(self, request: StatementRequest) -> None:
        """
        Run all validations. Raises a CalculationError subclass if any check fails.
        """
        self._validate_period(request)
        self._validate_contract(request.contract)
        self._validate_tiers(request)
        self._validate_sales(request)
        self._validate_returns(request)
        self._validate_prior_units(request)

    def _validate_period(self, request: StatementRequest) -> None:
        if request.period_end <= request.period_start:
            raise InputError(
                f"period_end ({request.period_end.isoformat()}) must be after "
                f"period_start ({request.period_start.isoformat()})",
                contract_id=request.contract.contract_id,
                field="period_end",
                value=request.period_end.isoformat(),
            )

    def _validate_contract(self, contract: Contract) -> None:
        """Validate contract-level constraints."""
        cid = contract.contract_id

        if contract.status not in CONTRACT_STATUSES:
            raise InputError(
                f"Invalid contract status: {contract.status}. Must be one of {', '.join(CONTRACT_STATUSES)}",
                contract_id=cid,
                field="status",
                value=contract.status,
            )
        if contract.status != CONTRACT_ACTIVE:
            raise ConfigurationError(
                f"Contract is {contract.status}; statements are only calculated for active contracts",
                contract_id=cid,
                field="status",
                value=contract.status,
            )

        if contract.tier_calculation_mode not in TIER_MODES:
            raise ConfigurationError(
                f"Invalid tier_calculation_mode: {contract.tier_calculation_mode}. Must be 'period' or 'cumulative'",
                contract_id=cid,
                field="tier_calculation_mode",
                value=contract.tier_calculation_mode,
            )

        for name in ("advance_amount", "advance_paid", "advance_recouped"):
            value = getattr(contract, name)
            if value < 0:
                raise ConfigurationError(f"{name} cannot be negative, got: {value}", contract_id=cid, field=name, value=value)

        if contract.advance_recouped > contract.advance_paid:
            raise ConfigurationError(
                f"advance_recouped ({contract.advance_recouped}) cannot exceed advance_paid ({contract.advance_paid})",
                contract_id=cid,
                field="advance_recouped",
                value=contract.advance_recouped,
            )

    def _validate_tiers(self, request: StatementRequest) -> None:
        """Every format's table must be well-formed, even with no activity this period."""
        grouped = PeriodAggregator.group_tiers_by_format(request.tiers)
        for tiers in grouped.values():
            self.tier_resolver.validate_tiers(tiers, request.contract.contract_id)

    def _validate_sales(self, request: StatementRequest) -> None:
        cid = request.contract.contract_id
        for sale in request.sales_records:
            self._validate_record(
                cid, "sale", sale.title_id, sale.format, sale.quantity, sale.unit_price, sale.sale_date, request
            )

    def _validate_returns(self, request: StatementRequest) -> None:
        cid = request.contract.contract_id
        for ret in request.return_records:
            if ret.status not in RETURN_STATUSES:
                raise InputError(
                    f"Invalid return status: {ret.status}. Must be one of {', '.join(RETURN_STATUSES)}",
                    contract_id=cid,
                    format=ret.format,
                    field="status",
                    value=ret.status,
                )
            self._validate_record(
                cid, "return", ret.title_id, ret.format, ret.quantity, ret.unit_price, ret.return_date, request
            )

    def _validate_record(self, cid, kind, title_id, fmt, quantity, unit_price, record_date, request) -> None:
        if quantity <= 0:
            raise InputError(
                f"{kind} quantity must be positive, got: {quantity}",
                contract_id=cid,
                format=fmt,
                field="quantity",
                value=quantity,
            )
        if unit_price <= 0:
            raise InputError(
                f"{kind} unit_price must be positive, got: {unit_price}",
                contract_id=cid,
                format=fmt,
                field="unit_price",
                value=unit_price,
            )
        if title_id != request.contract.title_id:
            raise InputError(
                f"{kind} for title {title_id} does not belong to contract title {request.contract.title_id}",
                contract_id=cid,
                format=fmt,
                field="title_id",
                value=title_id,
            )
        if not (request.period_start <= record_date < request.period_end):
            raise InputError(
                f"{kind} dated {record_date.isoformat()} falls outside the period "
                f"[{request.period_start.isoformat()}, {request.period_end.isoformat()})",
                contract_id=cid,
                format=fmt,
                field="date",
                value=record_date.isoformat(),
            )

    def _validate_prior_units(self, request: StatementRequest) -> None:
        """Cumulative tiering needs the all-time units sold before this period."""
        cid = request.contract.contract_id
        prior = request.prior_cumulative_units_by_format

        if request.contract.tier_calculation_mode == TIER_MODE_CUMULATIVE and prior is None:
            raise InputError(
                "prior_cumulative_units_by_format is required when tier_calculation_mode='cumulative'",
                contract_id=cid,
                field="prior_cumulative_units_by_format",
            )

        for fmt, units in (prior or {}).items():
            if units < 0:
                raise InputError(
                    f"Prior cumulative units cannot be negative, got: {units}",
                    contract_id=cid,
                    format=fmt,
                    field="prior_cumulative_units_by_format",
                    value=units,
                )
