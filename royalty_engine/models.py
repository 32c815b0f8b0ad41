"""
Domain Models for the Royalty Statement Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from .errors import InputError
from .money import ZERO, to_decimal

TIER_MODE_PERIOD = "period"
TIER_MODE_CUMULATIVE = "cumulative"
TIER_MODES = (TIER_MODE_PERIOD, TIER_MODE_CUMULATIVE)
# Contracts drafted with "lifetime" tiering are cumulative
TIER_MODE_ALIASES = {"lifetime": TIER_MODE_CUMULATIVE}

CONTRACT_ACTIVE = "active"
CONTRACT_STATUSES = (CONTRACT_ACTIVE, "terminated", "suspended")

RETURN_PENDING = "pending"
RETURN_APPROVED = "approved"
RETURN_REJECTED = "rejected"
RETURN_STATUSES = (RETURN_PENDING, RETURN_APPROVED, RETURN_REJECTED)


# =============================================================================
# PARSING HELPERS
# =============================================================================


def _object(data, where: str) -> dict:
    if not isinstance(data, dict):
        raise InputError(f"{where} must be an object, got: {type(data).__name__}", field=where)
    return data


def _require(data: dict, key: str, where: str):
    if key not in data or data[key] is None:
        raise InputError(f"{where}.{key} is required", field=f"{where}.{key}")
    return data[key]


def _list(data: dict, key: str) -> list:
    """Optional list field; absent or null means empty."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InputError(f"{key} must be a list, got: {type(value).__name__}", field=key)
    return value


def parse_date(value, field_name: str) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        raise InputError(f"{field_name} must be a YYYY-MM-DD date, got: {value!r}", field=field_name, value=value)


def parse_quantity(value, field_name: str) -> int:
    """Unit counts are whole numbers; '12' and 12.0 are accepted, 12.5 is not."""
    number = to_decimal(value, field_name)
    if number != number.to_integral_value():
        raise InputError(f"{field_name} must be a whole number, got: {value!r}", field=field_name, value=value)
    return int(number)


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class ContractTier:
    """One royalty rate band for a format: [min_quantity, max_quantity)."""

    format: str
    min_quantity: int
    max_quantity: int | None  # None = unbounded
    rate: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "ContractTier":
        data = _object(data, "tier")
        max_qty = data.get("max_quantity")
        return cls(
            format=str(_require(data, "format", "tier")),
            min_quantity=parse_quantity(_require(data, "min_quantity", "tier"), "tier.min_quantity"),
            max_quantity=parse_quantity(max_qty, "tier.max_quantity") if max_qty is not None else None,
            rate=to_decimal(_require(data, "rate", "tier"), "tier.rate"),
        )


@dataclass
class Contract:
    """Contract terms and the advance snapshot the statement starts from."""

    contract_id: str
    title_id: str
    advance_paid: Decimal = ZERO
    advance_recouped: Decimal = ZERO
    advance_amount: Decimal = ZERO
    status: str = CONTRACT_ACTIVE
    tier_calculation_mode: str = TIER_MODE_PERIOD
    last_finalized_period_end: date | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Contract":
        data = _object(data, "contract")
        mode = str(data.get("tier_calculation_mode", TIER_MODE_PERIOD))
        last_end = data.get("last_finalized_period_end")
        advance_paid = to_decimal(data.get("advance_paid", 0), "contract.advance_paid")
        return cls(
            contract_id=str(_require(data, "contract_id", "contract")),
            title_id=str(_require(data, "title_id", "contract")),
            advance_paid=advance_paid,
            advance_recouped=to_decimal(data.get("advance_recouped", 0), "contract.advance_recouped"),
            # advance_amount is the negotiated figure; recoupment runs against what was paid
            advance_amount=to_decimal(data.get("advance_amount", advance_paid), "contract.advance_amount"),
            status=str(data.get("status", CONTRACT_ACTIVE)),
            tier_calculation_mode=TIER_MODE_ALIASES.get(mode, mode),
            last_finalized_period_end=(
                parse_date(last_end, "contract.last_finalized_period_end") if last_end is not None else None
            ),
        )


@dataclass
class SalesRecord:
    """A single reported sale."""

    title_id: str
    format: str
    quantity: int
    unit_price: Decimal
    sale_date: date
    channel: str = ""
    record_id: str | None = None

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_dict(cls, data: dict) -> "SalesRecord":
        data = _object(data, "sale")
        record_id = data.get("record_id")
        return cls(
            title_id=str(_require(data, "title_id", "sale")),
            format=str(_require(data, "format", "sale")),
            quantity=parse_quantity(_require(data, "quantity", "sale"), "sale.quantity"),
            unit_price=to_decimal(_require(data, "unit_price", "sale"), "sale.unit_price"),
            sale_date=parse_date(_require(data, "sale_date", "sale"), "sale.sale_date"),
            channel=str(data.get("channel", "")),
            record_id=str(record_id) if record_id is not None else None,
        )


@dataclass
class ReturnRecord:
    """Units returned. Only approved returns reduce royalties."""

    title_id: str
    format: str
    quantity: int
    unit_price: Decimal
    return_date: date
    status: str = RETURN_APPROVED
    channel: str = ""
    record_id: str | None = None

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def is_approved(self) -> bool:
        return self.status == RETURN_APPROVED

    @classmethod
    def from_dict(cls, data: dict) -> "ReturnRecord":
        data = _object(data, "return")
        record_id = data.get("record_id")
        return cls(
            title_id=str(_require(data, "title_id", "return")),
            format=str(_require(data, "format", "return")),
            quantity=parse_quantity(_require(data, "quantity", "return"), "return.quantity"),
            unit_price=to_decimal(_require(data, "unit_price", "return"), "return.unit_price"),
            return_date=parse_date(_require(data, "return_date", "return"), "return.return_date"),
            status=str(data.get("status", RETURN_APPROVED)),
            channel=str(data.get("channel", "")),
            record_id=str(record_id) if record_id is not None else None,
        )


@dataclass
class OwnershipShare:
    """A payee's percentage of a title."""

    payee_id: str
    percentage: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "OwnershipShare":
        data = _object(data, "ownership_split")
        return cls(
            payee_id=str(_require(data, "payee_id", "ownership_split")),
            percentage=to_decimal(_require(data, "percentage", "ownership_split"), "ownership_split.percentage"),
        )


@dataclass
class StatementRequest:
    """Complete input for calculating one contract's statement for one period."""

    contract: Contract
    tiers: list[ContractTier]
    sales_records: list[SalesRecord]
    return_records: list[ReturnRecord]
    period_start: date
    period_end: date  # exclusive
    prior_cumulative_units_by_format: dict[str, int] | None = None
    ownership_split: list[OwnershipShare] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "StatementRequest":
        data = _object(data, "request")
        prior = data.get("prior_cumulative_units_by_format")
        split = _list(data, "ownership_split")
        if prior is not None and not isinstance(prior, dict):
            raise InputError(
                "prior_cumulative_units_by_format must be an object of format -> units",
                field="prior_cumulative_units_by_format",
            )
        return cls(
            contract=Contract.from_dict(_require(data, "contract", "request")),
            tiers=[ContractTier.from_dict(t) for t in _list(data, "tiers")],
            sales_records=[SalesRecord.from_dict(s) for s in _list(data, "sales")],
            return_records=[ReturnRecord.from_dict(r) for r in _list(data, "returns")],
            period_start=parse_date(_require(data, "period_start", "request"), "period_start"),
            period_end=parse_date(_require(data, "period_end", "request"), "period_end"),
            prior_cumulative_units_by_format=(
                {str(fmt): parse_quantity(units, f"prior_cumulative_units_by_format.{fmt}") for fmt, units in prior.items()}
                if prior is not None
                else None
            ),
            ownership_split=[OwnershipShare.from_dict(s) for s in split] if split else None,
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class TierBreakdown:
    """Units and royalty attributed to one tier."""

    min_quantity: int
    max_quantity: int | None
    rate: Decimal
    units: int  # negative when pricing returns on the way down
    subtotal: Decimal


@dataclass
class TierResolution:
    """Result of pricing a quantity delta against a tier table."""

    total: Decimal = ZERO
    breakdown: list[TierBreakdown] = field(default_factory=list)


@dataclass
class FormatAggregate:
    """Net activity and royalty for a single format in the period."""

    format: str
    units_sold: int = 0
    units_returned: int = 0
    sales_amount: Decimal = ZERO
    returns_amount: Decimal = ZERO
    base_quantity: int = 0
    returns_excluded: int = 0
    royalty: Decimal = ZERO
    breakdown: list[TierBreakdown] = field(default_factory=list)

    @property
    def net_units(self) -> int:
        return self.units_sold - self.units_returned

    @property
    def net_amount(self) -> Decimal:
        return self.sales_amount - self.returns_amount


@dataclass
class PeriodAggregate:
    """Per-format aggregates plus the period's gross royalty."""

    formats: list[FormatAggregate] = field(default_factory=list)
    total_royalty: Decimal = ZERO

    @property
    def has_activity(self) -> bool:
        return any(f.units_sold or f.units_returned for f in self.formats)

    def royalty_by_format(self) -> dict[str, Decimal]:
        return {f.format: f.royalty for f in self.formats}


@dataclass
class RecoupmentResult:
    """Proposed advance state after applying a period's gross royalty."""

    advance_paid: Decimal = ZERO
    previously_recouped: Decimal = ZERO
    outstanding_before: Decimal = ZERO
    recoupment_applied: Decimal = ZERO
    net_payable: Decimal = ZERO
    new_advance_recouped: Decimal = ZERO

    @property
    def remaining_advance(self) -> Decimal:
        return self.advance_paid - self.new_advance_recouped


@dataclass
class PayeeShare:
    """One payee's apportioned slice of the title-level statement."""

    payee_id: str
    percentage: Decimal
    gross_royalty: Decimal = ZERO
    recoupment_applied: Decimal = ZERO
    net_payable: Decimal = ZERO
    format_royalties: dict[str, Decimal] = field(default_factory=dict)


@dataclass
class StatementWarning:
    type: str
    message: str


@dataclass
class CalculationContext:
    """
    Holds all intermediate state during statement calculation.
    This is the "bag" that flows through the pipeline.
    """

    # Input (immutable during processing)
    request: StatementRequest

    # Step results (populated as we go)
    aggregate: PeriodAggregate = field(default_factory=PeriodAggregate)
    recoupment: RecoupmentResult = field(default_factory=RecoupmentResult)
    payee_shares: list[PayeeShare] = field(default_factory=list)
    warnings: list[StatementWarning] = field(default_factory=list)

    @property
    def contract(self) -> Contract:
        return self.request.contract


@dataclass
class StatementResult:
    """Final output of a statement calculation."""

    contract_id: str
    period_start: date
    period_end: date
    gross_royalty: Decimal
    recoupment_applied: Decimal
    net_payable: Decimal
    new_advance_recouped: Decimal
    statement_summary: dict
    format_breakdowns: list
    calculations: dict
    advance_recoupment: dict
    payee_shares: list
    updated_contract_state: dict
    warnings: list
    trace: dict

    def to_dict(self) -> dict:
        return {
            "statement_summary": self.statement_summary,
            "format_breakdowns": self.format_breakdowns,
            "calculations": self.calculations,
            "advance_recoupment": self.advance_recoupment,
            "payee_shares": self.payee_shares,
            "updated_contract_state": self.updated_contract_state,
            "warnings": self.warnings,
            "trace": self.trace,
        }
