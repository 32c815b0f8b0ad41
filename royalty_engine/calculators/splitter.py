"""
Ownership Splitter

Distributes a title-level statement across payees by ownership
percentage, using largest-remainder apportionment so the payee
shares always add back up to the rounded title total.
"""

from decimal import Decimal

from ..errors import ConfigurationError
from ..models import OwnershipShare, PayeeShare
from ..money import HUNDRED, ZERO, floor_integer, from_cents, prorate, to_cents


class OwnershipSplitter:
    """Splits statement amounts among a title's payees."""

    TOLERANCE = Decimal("0.01")

    def split(
        self,
        shares: list[OwnershipShare],
        gross_royalty: Decimal,
        recoupment_applied: Decimal,
        net_payable: Decimal,
        format_royalties: dict[str, Decimal] | None = None,
        contract_id: str | None = None,
    ) -> list[PayeeShare]:
        """
        Apportion every monetary field independently across payees.

        Each field's payee amounts sum exactly to that field's rounded total.
        """
        self.validate_shares(shares, contract_id)
        percentages = [share.percentage for share in shares]

        gross_parts = self.apportion(gross_royalty, percentages)
        recoup_parts = self.apportion(recoupment_applied, percentages)
        net_parts = self.apportion(net_payable, percentages)
        format_parts = {
            fmt: self.apportion(amount, percentages)
            for fmt, amount in (format_royalties or {}).items()
        }

        return [
            PayeeShare(
                payee_id=share.payee_id,
                percentage=share.percentage,
                gross_royalty=gross_parts[i],
                recoupment_applied=recoup_parts[i],
                net_payable=net_parts[i],
                format_royalties={fmt: parts[i] for fmt, parts in format_parts.items()},
            )
            for i, share in enumerate(shares)
        ]

    def validate_shares(self, shares: list[OwnershipShare], contract_id: str | None = None) -> None:
        if not shares:
            raise ConfigurationError("Ownership split has no payees", contract_id=contract_id, field="ownership_split")

        seen = set()
        for share in shares:
            if share.payee_id in seen:
                raise ConfigurationError(
                    f"Payee {share.payee_id} appears more than once in the ownership split",
                    contract_id=contract_id,
                    field="payee_id",
                    value=share.payee_id,
                )
            seen.add(share.payee_id)
            if not (ZERO < share.percentage <= HUNDRED):
                raise ConfigurationError(
                    f"Ownership percentage for {share.payee_id} must be in (0, 100], got: {share.percentage}",
                    contract_id=contract_id,
                    field="percentage",
                    value=share.percentage,
                )

        total = sum((share.percentage for share in shares), ZERO)
        if abs(total - HUNDRED) > self.TOLERANCE:
            raise ConfigurationError(
                f"Ownership percentages must sum to 100, got: {total}",
                contract_id=contract_id,
                field="ownership_split",
                value=total,
            )

    @staticmethod
    def apportion(total: Decimal, percentages: list[Decimal]) -> list[Decimal]:
        """
        Largest-remainder (Hamilton) apportionment in whole cents.

        Every share is floored to the cent; the leftover cents go one each to
        the shares with the largest fractional remainder, earlier payees first
        on ties. Percentages are normalized so a set within tolerance of 100
        still apportions the exact total. Works for negative totals.
        """
        cents = to_cents(total)
        weight = sum(percentages, ZERO)

        raw = [prorate(Decimal(cents), pct, weight) for pct in percentages]
        floors = [floor_integer(value) for value in raw]

        residual = cents - sum(floors)
        by_remainder = sorted(range(len(raw)), key=lambda i: (-(raw[i] - floors[i]), i))
        for i in by_remainder[:residual]:
            floors[i] += 1

        return [from_cents(c) for c in floors]
