"""
Tier Resolver

Prices a quantity delta against a contract's tier table by exact
interval overlap. Each unit is priced at the rate of the tier it
actually falls in; a delta crossing a boundary is split.
"""

from decimal import Decimal

from ..errors import ConfigurationError, InputError
from ..models import ContractTier, TierBreakdown, TierResolution
from ..money import ZERO, add_money, apply_rate, prorate, quantize_rate


class TierResolver:
    """Resolves blended royalty for units moving through a tier table."""

    MIN_RATE = Decimal("0")
    MAX_RATE = Decimal("1")

    def resolve(
        self,
        tiers: list[ContractTier],
        base_qty: int,
        delta_qty: int,
        net_amount: Decimal | None = None,
        contract_id: str | None = None,
    ) -> TierResolution:
        """
        Price delta_qty units starting at base_qty.

        Units cover the half-open interval [base, base + delta) when delta
        is positive, or [base + delta, base) on the way down when delta is
        negative (returns), in which case units and subtotals are negative.

        Pricing basis:
        - net_amount given: the size of the period's net sales value is
          attributed to each tier in proportion to its units, then multiplied
          by the rate. The subtotal takes the sign of the units, so returns
          outnumbering sales always give a negative royalty.
        - net_amount omitted: each unit is worth one currency unit.

        Each tier subtotal is rounded to cents and the total is the sum of
        the rounded subtotals.
        """
        if delta_qty == 0:
            return TierResolution(total=ZERO, breakdown=[])

        ordered = self.validate_tiers(tiers, contract_id)
        fmt = ordered[0].format

        if base_qty < 0:
            raise InputError(
                f"Base quantity cannot be negative, got: {base_qty}",
                contract_id=contract_id,
                format=fmt,
                field="base_qty",
                value=base_qty,
            )

        sign = 1 if delta_qty > 0 else -1
        low, high = sorted((base_qty, base_qty + delta_qty))
        span = high - low

        last = ordered[-1]
        if last.max_quantity is not None and high > last.max_quantity:
            raise ConfigurationError(
                f"Tier table for '{fmt}' ends at {last.max_quantity} units but pricing reaches {high}",
                contract_id=contract_id,
                format=fmt,
                field="max_quantity",
                value=high,
            )

        breakdown = []
        for index, tier in enumerate(ordered):
            # Returns that run below zero are priced at the first tier's rate
            tier_low = min(low, tier.min_quantity) if index == 0 else tier.min_quantity
            tier_high = high if tier.max_quantity is None else tier.max_quantity

            units = min(high, tier_high) - max(low, tier_low)
            if units <= 0:
                continue

            breakdown.append(
                TierBreakdown(
                    min_quantity=tier.min_quantity,
                    max_quantity=tier.max_quantity,
                    rate=tier.rate,
                    units=sign * units,
                    subtotal=self._price(sign * units, span, tier.rate, net_amount),
                )
            )

        return TierResolution(
            total=add_money(*(line.subtotal for line in breakdown)),
            breakdown=breakdown,
        )

    def validate_tiers(self, tiers: list[ContractTier], contract_id: str | None = None) -> list[ContractTier]:
        """
        Check a single format's tier table and return it sorted by min_quantity.

        The table must start at 0, be contiguous and non-overlapping, and only
        its last tier may be unbounded. Raises ConfigurationError otherwise.
        """
        if not tiers:
            raise ConfigurationError("No tiers configured", contract_id=contract_id)

        formats = {tier.format for tier in tiers}
        if len(formats) > 1:
            raise ConfigurationError(
                f"Tier table mixes formats: {sorted(formats)}",
                contract_id=contract_id,
                field="format",
                value=",".join(sorted(formats)),
            )
        fmt = tiers[0].format

        for tier in tiers:
            self._validate_tier(tier, contract_id)

        ordered = sorted(tiers, key=lambda t: t.min_quantity)

        if ordered[0].min_quantity != 0:
            raise ConfigurationError(
                f"Tiers for '{fmt}' must start at 0, first tier starts at {ordered[0].min_quantity}",
                contract_id=contract_id,
                format=fmt,
                field="min_quantity",
                value=ordered[0].min_quantity,
            )

        for current, following in zip(ordered, ordered[1:]):
            if current.max_quantity is None:
                raise ConfigurationError(
                    f"Unbounded tier starting at {current.min_quantity} for '{fmt}' must be the last tier",
                    contract_id=contract_id,
                    format=fmt,
                    field="max_quantity",
                    value=current.min_quantity,
                )
            if current.max_quantity < following.min_quantity:
                raise ConfigurationError(
                    f"Gap in tiers for '{fmt}' between {current.max_quantity} and {following.min_quantity}",
                    contract_id=contract_id,
                    format=fmt,
                    field="min_quantity",
                    value=following.min_quantity,
                )
            if current.max_quantity > following.min_quantity:
                raise ConfigurationError(
                    f"Overlapping tiers for '{fmt}': tier ending at {current.max_quantity} "
                    f"overlaps tier starting at {following.min_quantity}",
                    contract_id=contract_id,
                    format=fmt,
                    field="min_quantity",
                    value=following.min_quantity,
                )

        return ordered

    def _validate_tier(self, tier: ContractTier, contract_id: str | None) -> None:
        if tier.min_quantity < 0:
            raise ConfigurationError(
                f"Tier min_quantity cannot be negative, got: {tier.min_quantity}",
                contract_id=contract_id,
                format=tier.format,
                field="min_quantity",
                value=tier.min_quantity,
            )
        if tier.max_quantity is not None and tier.max_quantity <= tier.min_quantity:
            raise ConfigurationError(
                f"Tier max_quantity must exceed min_quantity, got: [{tier.min_quantity}, {tier.max_quantity})",
                contract_id=contract_id,
                format=tier.format,
                field="max_quantity",
                value=tier.max_quantity,
            )
        if not (self.MIN_RATE <= tier.rate <= self.MAX_RATE):
            raise ConfigurationError(
                f"Tier rate must be between 0 and 1, got: {tier.rate}",
                contract_id=contract_id,
                format=tier.format,
                field="rate",
                value=tier.rate,
            )
        if quantize_rate(tier.rate) != tier.rate:
            raise ConfigurationError(
                f"Tier rate carries more than 4 decimal places: {tier.rate}",
                contract_id=contract_id,
                format=tier.format,
                field="rate",
                value=tier.rate,
            )

    def _price(self, signed_units: int, span: int, rate: Decimal, net_amount: Decimal | None) -> Decimal:
        if net_amount is None:
            return apply_rate(Decimal(signed_units), rate)
        # Units set the direction; the net value only sets the size
        sign = 1 if signed_units > 0 else -1
        return sign * apply_rate(prorate(abs(net_amount), abs(signed_units), span), rate)
