"""
Unit Tests for the Ownership Splitter

Payee shares are apportioned in whole cents with largest-remainder
rounding: they always add back to the title total.
"""

from decimal import Decimal

import pytest

from royalty_engine.calculators.splitter import OwnershipSplitter
from royalty_engine.errors import ConfigurationError
from royalty_engine.models import OwnershipShare


def _shares(*percentages):
    return [OwnershipShare(payee_id=f"p-{i + 1}", percentage=Decimal(str(p))) for i, p in enumerate(percentages)]


class TestApportion:
    def test_residual_cent_goes_to_largest_remainder(self):
        """
        $100.01 at 60/40:
        raw 6000.6 / 4000.4 cents, floors 6000 / 4000, 1 cent left
        → payee with .6 remainder gets it: 60.01 / 40.00
        """
        parts = OwnershipSplitter.apportion(Decimal("100.01"), [Decimal("60"), Decimal("40")])
        assert parts == [Decimal("60.01"), Decimal("40.00")]

    def test_thirds(self):
        parts = OwnershipSplitter.apportion(Decimal("1.00"), [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")])
        assert parts == [Decimal("0.33"), Decimal("0.33"), Decimal("0.34")]

    def test_tie_goes_to_earlier_payee(self):
        parts = OwnershipSplitter.apportion(Decimal("0.01"), [Decimal("50"), Decimal("50")])
        assert parts == [Decimal("0.01"), Decimal("0.00")]

    def test_negative_total(self):
        parts = OwnershipSplitter.apportion(Decimal("-100.01"), [Decimal("60"), Decimal("40")])
        assert parts == [Decimal("-60.01"), Decimal("-40.00")]

    @pytest.mark.parametrize("total", ["100.01", "0.01", "-100.01", "99.99", "1234567.89", "0.00", "-0.03"])
    @pytest.mark.parametrize(
        "percentages",
        [[60, 40], ["33.33", "33.33", "33.34"], [50, 25, 25], [10, 20, 30, 40], [100]],
    )
    def test_parts_always_sum_to_total(self, total, percentages):
        pcts = [Decimal(str(p)) for p in percentages]
        parts = OwnershipSplitter.apportion(Decimal(total), pcts)

        assert sum(parts) == Decimal(total)
        for part, pct in zip(parts, pcts):
            exact = Decimal(total) * pct / 100
            assert abs(part - exact) < Decimal("0.01")

    def test_percentages_within_tolerance_are_normalized(self):
        """100.005% total is accepted and still apportions the exact amount."""
        parts = OwnershipSplitter.apportion(Decimal("10.00"), [Decimal("50.005"), Decimal("50")])
        assert sum(parts) == Decimal("10.00")


class TestSplit:
    @pytest.fixture
    def splitter(self):
        return OwnershipSplitter()

    def test_every_field_apportioned_independently(self, splitter):
        result = splitter.split(
            _shares(60, 40),
            gross_royalty=Decimal("100.01"),
            recoupment_applied=Decimal("50.00"),
            net_payable=Decimal("50.01"),
            format_royalties={"paperback": Decimal("80.01"), "ebook": Decimal("20.00")},
        )

        first, second = result
        assert (first.gross_royalty, second.gross_royalty) == (Decimal("60.01"), Decimal("40.00"))
        assert (first.recoupment_applied, second.recoupment_applied) == (Decimal("30.00"), Decimal("20.00"))
        assert (first.net_payable, second.net_payable) == (Decimal("30.01"), Decimal("20.00"))
        assert first.format_royalties == {"paperback": Decimal("48.01"), "ebook": Decimal("12.00")}
        assert second.format_royalties == {"paperback": Decimal("32.00"), "ebook": Decimal("8.00")}

    def test_payee_order_preserved(self, splitter):
        result = splitter.split(_shares(25, 75), Decimal("10"), Decimal("0"), Decimal("10"))
        assert [share.payee_id for share in result] == ["p-1", "p-2"]

    def test_single_payee_gets_everything(self, splitter):
        result = splitter.split(_shares(100), Decimal("12.34"), Decimal("2.00"), Decimal("10.34"))
        assert result[0].net_payable == Decimal("10.34")


class TestShareValidation:
    @pytest.fixture
    def splitter(self):
        return OwnershipSplitter()

    def test_percentages_must_sum_to_100(self, splitter):
        with pytest.raises(ConfigurationError):
            splitter.validate_shares(_shares(60, 39))

    def test_sum_within_tolerance_is_accepted(self, splitter):
        splitter.validate_shares(_shares("33.33", "33.33", "33.33"))

    def test_empty_split(self, splitter):
        with pytest.raises(ConfigurationError):
            splitter.validate_shares([])

    def test_duplicate_payee(self, splitter):
        shares = [OwnershipShare("p-1", Decimal("50")), OwnershipShare("p-1", Decimal("50"))]
        with pytest.raises(ConfigurationError):
            splitter.validate_shares(shares)

    @pytest.mark.parametrize("percentages", [(0, 100), (-10, 110), (150, -50)])
    def test_each_percentage_in_range(self, splitter, percentages):
        with pytest.raises(ConfigurationError):
            splitter.validate_shares(_shares(*percentages))

    def test_contract_id_carried_in_error(self, splitter):
        with pytest.raises(ConfigurationError) as exc:
            splitter.validate_shares(_shares(50, 40), contract_id="c-9")
        assert exc.value.contract_id == "c-9"
