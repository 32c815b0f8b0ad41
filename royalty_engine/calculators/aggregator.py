"""
Period Aggregator

Reduces a period's sales and approved returns into net units and a
tier-priced royalty per format.
"""

from collections import defaultdict

from ..errors import ConfigurationError
from ..models import (
    TIER_MODE_CUMULATIVE,
    CalculationContext,
    ContractTier,
    FormatAggregate,
    PeriodAggregate,
)
from ..money import add_money
from .tiers import TierResolver


class PeriodAggregator:
    """Groups period activity by format and prices it through the tier table."""

    def __init__(self, tier_resolver: TierResolver | None = None):
        self.tier_resolver = tier_resolver or TierResolver()

    def aggregate(self, ctx: CalculationContext) -> PeriodAggregate:
        """
        Build per-format aggregates for the period.

        Royalty is rate-based: net units are fed to the Tier Resolver as the
        delta, with the period's net sales value as the pricing basis. The
        starting position depends on the contract's tier mode:
        - period: every period starts at 0
        - cumulative: starts at the format's all-time units before the period
        """
        request = ctx.request
        contract = ctx.contract

        formats: dict[str, FormatAggregate] = {}

        def bucket(fmt: str) -> FormatAggregate:
            if fmt not in formats:
                formats[fmt] = FormatAggregate(format=fmt)
            return formats[fmt]

        for sale in request.sales_records:
            agg = bucket(sale.format)
            agg.units_sold += sale.quantity
            agg.sales_amount += sale.amount

        for ret in request.return_records:
            agg = bucket(ret.format)
            if not ret.is_approved:
                # Pending/rejected returns never reach the statement
                agg.returns_excluded += ret.quantity
                continue
            agg.units_returned += ret.quantity
            agg.returns_amount += ret.amount

        tiers_by_format = self.group_tiers_by_format(request.tiers)
        for fmt in tiers_by_format:
            bucket(fmt)

        results = []
        for fmt in sorted(formats):
            agg = formats[fmt]
            agg.base_quantity = self._base_quantity(ctx, fmt)

            if agg.net_units != 0 and fmt not in tiers_by_format:
                raise ConfigurationError(
                    f"No royalty tiers configured for format '{fmt}'",
                    contract_id=contract.contract_id,
                    format=fmt,
                    field="tiers",
                )

            resolution = self.tier_resolver.resolve(
                tiers_by_format.get(fmt, []),
                base_qty=agg.base_quantity,
                delta_qty=agg.net_units,
                net_amount=agg.net_amount,
                contract_id=contract.contract_id,
            )
            agg.royalty = resolution.total
            agg.breakdown = resolution.breakdown
            results.append(agg)

        return PeriodAggregate(
            formats=results,
            total_royalty=add_money(*(agg.royalty for agg in results)),
        )

    @staticmethod
    def group_tiers_by_format(tiers: list[ContractTier]) -> dict[str, list[ContractTier]]:
        grouped = defaultdict(list)
        for tier in tiers:
            grouped[tier.format].append(tier)
        return dict(grouped)

    def _base_quantity(self, ctx: CalculationContext, fmt: str) -> int:
        if ctx.contract.tier_calculation_mode != TIER_MODE_CUMULATIVE:
            return 0
        prior = ctx.request.prior_cumulative_units_by_format or {}
        # A format with no history yet starts at the bottom of the table
        return prior.get(fmt, 0)
