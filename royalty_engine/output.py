"""
Output Builder

Constructs the serializable statement, including the calculation trace,
from the processing context. Money is emitted as fixed two-place strings.
"""

from decimal import Decimal

from .models import CalculationContext, FormatAggregate, StatementResult, TierBreakdown
from .money import format_money, format_rate

ENGINE_VERSION = "1.0"


def _fmt(value: Decimal) -> str:
    """Format a number as currency string for descriptions."""
    if value < 0:
        return f"-${-value:,.2f}"
    return f"${value:,.2f}"


class OutputBuilder:
    """Builds the final statement from a completed calculation context."""

    def build(self, ctx: CalculationContext) -> StatementResult:
        """Construct the complete statement result from processing context."""
        request = ctx.request
        recoupment = ctx.recoupment
        return StatementResult(
            contract_id=ctx.contract.contract_id,
            period_start=request.period_start,
            period_end=request.period_end,
            gross_royalty=ctx.aggregate.total_royalty,
            recoupment_applied=recoupment.recoupment_applied,
            net_payable=recoupment.net_payable,
            new_advance_recouped=recoupment.new_advance_recouped,
            statement_summary=self._build_summary(ctx),
            format_breakdowns=[self._build_format(agg) for agg in ctx.aggregate.formats],
            calculations=self._build_calculations(ctx),
            advance_recoupment=self._build_advance_recoupment(ctx),
            payee_shares=self._build_payee_shares(ctx),
            updated_contract_state=self._build_updated_state(ctx),
            warnings=[{"type": w.type, "message": w.message} for w in ctx.warnings],
            trace=self._build_trace(ctx),
        )

    def _build_summary(self, ctx: CalculationContext) -> dict:
        request = ctx.request
        contract = ctx.contract
        return {
            "contract_id": contract.contract_id,
            "title_id": contract.title_id,
            "period_start": request.period_start.isoformat(),
            "period_end": request.period_end.isoformat(),
            "tier_calculation_mode": contract.tier_calculation_mode,
            "is_split_calculation": len(ctx.payee_shares) > 1,
            "payee_count": len(ctx.payee_shares),
        }

    def _build_format(self, agg: FormatAggregate) -> dict:
        return {
            "format": agg.format,
            "units_sold": agg.units_sold,
            "units_returned": agg.units_returned,
            "returns_excluded": agg.returns_excluded,
            "net_units": agg.net_units,
            "sales_amount": format_money(agg.sales_amount),
            "returns_amount": format_money(agg.returns_amount),
            "net_amount": format_money(agg.net_amount),
            "base_quantity": agg.base_quantity,
            "tier_breakdowns": [self._build_tier_line(line) for line in agg.breakdown],
            "format_royalty": format_money(agg.royalty),
        }

    @staticmethod
    def _build_tier_line(line: TierBreakdown) -> dict:
        return {
            "min_quantity": line.min_quantity,
            "max_quantity": line.max_quantity,
            "rate": format_rate(line.rate),
            "units": line.units,
            "subtotal": format_money(line.subtotal),
        }

    def _build_calculations(self, ctx: CalculationContext) -> dict:
        """Build calculations section with value and dynamic description for each field."""
        aggregate = ctx.aggregate
        recoupment = ctx.recoupment

        returns_deduction = sum((agg.returns_amount for agg in aggregate.formats), Decimal("0"))
        format_terms = " + ".join(f"{agg.format} ({_fmt(agg.royalty)})" for agg in aggregate.formats)

        if recoupment.recoupment_applied > 0:
            recoup_desc = (
                f"min(gross ({_fmt(aggregate.total_royalty)}), outstanding advance "
                f"({_fmt(recoupment.outstanding_before)})) = {_fmt(recoupment.recoupment_applied)}"
            )
        elif aggregate.total_royalty <= 0:
            recoup_desc = "No recoupment: period gross is zero or negative; prior recoupment is never reversed"
        else:
            recoup_desc = "No recoupment: advance already fully recouped"

        return {
            "gross_royalty": {
                "value": format_money(aggregate.total_royalty),
                "description": f"{format_terms} = {_fmt(aggregate.total_royalty)}" if format_terms else "No formats in period",
            },
            "returns_deduction": {
                "value": format_money(returns_deduction),
                "description": "Value of approved returns netted against sales before tier pricing",
            },
            "advance_outstanding_before": {
                "value": format_money(recoupment.outstanding_before),
                "description": (
                    f"advance_paid ({_fmt(recoupment.advance_paid)}) - advance_recouped "
                    f"({_fmt(recoupment.previously_recouped)}) = {_fmt(recoupment.outstanding_before)}"
                ),
            },
            "recoupment_applied": {
                "value": format_money(recoupment.recoupment_applied),
                "description": recoup_desc,
            },
            "net_payable": {
                "value": format_money(recoupment.net_payable),
                "description": (
                    f"gross ({_fmt(aggregate.total_royalty)}) - recoupment "
                    f"({_fmt(recoupment.recoupment_applied)}) = {_fmt(recoupment.net_payable)}"
                ),
            },
        }

    def _build_advance_recoupment(self, ctx: CalculationContext) -> dict:
        recoupment = ctx.recoupment
        return {
            "original_advance": format_money(ctx.contract.advance_amount),
            "advance_paid": format_money(recoupment.advance_paid),
            "previously_recouped": format_money(recoupment.previously_recouped),
            "this_periods_recoupment": format_money(recoupment.recoupment_applied),
            "remaining_advance": format_money(recoupment.remaining_advance),
        }

    def _build_payee_shares(self, ctx: CalculationContext) -> list:
        return [
            {
                "payee_id": share.payee_id,
                "percentage": str(share.percentage),
                "gross_royalty": format_money(share.gross_royalty),
                "recoupment_applied": format_money(share.recoupment_applied),
                "net_payable": format_money(share.net_payable),
                "format_royalties": {fmt: format_money(v) for fmt, v in share.format_royalties.items()},
            }
            for share in ctx.payee_shares
        ]

    def _build_updated_state(self, ctx: CalculationContext) -> dict:
        """Proposed contract state; the caller persists it once the statement is finalized."""
        return {
            "contract_id": ctx.contract.contract_id,
            "advance_recouped": format_money(ctx.recoupment.new_advance_recouped),
            "last_finalized_period_end": ctx.request.period_end.isoformat(),
        }

    def _build_trace(self, ctx: CalculationContext) -> dict:
        """Everything needed to re-derive the statement numbers by hand."""
        request = ctx.request
        contract = ctx.contract
        recoupment = ctx.recoupment

        steps = []
        for agg in ctx.aggregate.formats:
            low, high = sorted((agg.base_quantity, agg.base_quantity + agg.net_units))
            steps.append(
                {
                    "step": "price_format",
                    "format": agg.format,
                    "base_quantity": agg.base_quantity,
                    "delta_quantity": agg.net_units,
                    "unit_interval": [low, high],
                    "pricing_basis": format_money(agg.net_amount),
                    "lines": [self._build_tier_line(line) for line in agg.breakdown],
                    "format_royalty": format_money(agg.royalty),
                }
            )

        steps.append(
            {
                "step": "sum_formats",
                "operands": [format_money(agg.royalty) for agg in ctx.aggregate.formats],
                "gross_royalty": format_money(ctx.aggregate.total_royalty),
            }
        )

        if ctx.aggregate.total_royalty <= 0:
            branch = "non_positive_gross"
        elif recoupment.outstanding_before > 0:
            branch = "recouping"
        else:
            branch = "fully_recouped"

        steps.append(
            {
                "step": "recoupment",
                "branch": branch,
                "outstanding_before": format_money(recoupment.outstanding_before),
                "recoupment_applied": format_money(recoupment.recoupment_applied),
                "net_payable": format_money(recoupment.net_payable),
                "new_advance_recouped": format_money(recoupment.new_advance_recouped),
            }
        )

        if ctx.payee_shares:
            steps.append(
                {
                    "step": "ownership_split",
                    "method": "largest_remainder",
                    "shares": self._build_payee_shares(ctx),
                }
            )

        prior = request.prior_cumulative_units_by_format
        return {
            "engine_version": ENGINE_VERSION,
            "inputs": {
                "contract": {
                    "contract_id": contract.contract_id,
                    "title_id": contract.title_id,
                    "advance_amount": format_money(contract.advance_amount),
                    "advance_paid": format_money(contract.advance_paid),
                    "advance_recouped": format_money(contract.advance_recouped),
                    "tier_calculation_mode": contract.tier_calculation_mode,
                    "last_finalized_period_end": (
                        contract.last_finalized_period_end.isoformat()
                        if contract.last_finalized_period_end
                        else None
                    ),
                },
                "period": [request.period_start.isoformat(), request.period_end.isoformat()],
                "tiers": [
                    {
                        "format": tier.format,
                        "min_quantity": tier.min_quantity,
                        "max_quantity": tier.max_quantity,
                        "rate": format_rate(tier.rate),
                    }
                    for tier in sorted(request.tiers, key=lambda t: (t.format, t.min_quantity))
                ],
                "sales_record_count": len(request.sales_records),
                "return_record_count": len(request.return_records),
                "prior_cumulative_units_by_format": dict(prior) if prior is not None else None,
                "ownership_split": [
                    {"payee_id": s.payee_id, "percentage": str(s.percentage)}
                    for s in (request.ownership_split or [])
                ],
            },
            "steps": steps,
        }
