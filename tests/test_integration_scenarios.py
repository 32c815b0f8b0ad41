"""
Integration Test Scenarios for the Royalty Statement Engine

These tests follow royalty statements end to end through the processor,
the way a royalties analyst would check them by hand.

Run with: python -m pytest tests/test_integration_scenarios.py -v

IMPORTANT: This file has a companion business summary document:
    docs/test_scenarios_business_summary.md

When adding or modifying tests, please update the business summary document
to keep them in sync. The summary provides plain-English explanations of
each test scenario for business stakeholders.
"""

from decimal import Decimal

import pytest

from royalty_engine import SequenceError, StatementProcessor

TWO_TIER_PAPERBACK = [
    {"format": "paperback", "min_quantity": 0, "max_quantity": 5000, "rate": "0.10"},
    {"format": "paperback", "min_quantity": 5000, "max_quantity": None, "rate": "0.12"},
]

FLAT_PAPERBACK = [
    {"format": "paperback", "min_quantity": 0, "max_quantity": None, "rate": "0.10"},
]


def _sale(quantity, unit_price="10.00", sale_date="2025-02-01"):
    return {
        "title_id": "title-1",
        "format": "paperback",
        "quantity": quantity,
        "unit_price": unit_price,
        "sale_date": sale_date,
        "channel": "retail",
    }


def _return(quantity, unit_price="10.00", return_date="2025-02-15", status="approved"):
    return {
        "title_id": "title-1",
        "format": "paperback",
        "quantity": quantity,
        "unit_price": unit_price,
        "return_date": return_date,
        "status": status,
    }


def _statement_input(sales=(), returns=(), tiers=TWO_TIER_PAPERBACK, contract=None, **extra):
    data = {
        "contract": {
            "contract_id": "contract-1",
            "title_id": "title-1",
            "advance_paid": "0.00",
            "advance_recouped": "0.00",
            "tier_calculation_mode": "period",
            **(contract or {}),
        },
        "tiers": list(tiers),
        "sales": list(sales),
        "returns": list(returns),
        "period_start": "2025-01-01",
        "period_end": "2025-04-01",
    }
    data.update(extra)
    return data


class TestTierBoundaryPricing:
    """Units on each side of a tier boundary are priced at their own tier's rate."""

    @pytest.fixture
    def processor(self):
        return StatementProcessor()

    def test_4999_units_stay_in_first_tier(self, processor):
        result = processor.calculate_from_dict(_statement_input(sales=[_sale(4999)]))

        # 4,999 × $10 = $49,990 × 10% = $4,999.00
        assert result["calculations"]["gross_royalty"]["value"] == "4999.00"
        assert len(result["format_breakdowns"][0]["tier_breakdowns"]) == 1

    def test_5000_units_fill_first_tier(self, processor):
        result = processor.calculate_from_dict(_statement_input(sales=[_sale(5000)]))

        lines = result["format_breakdowns"][0]["tier_breakdowns"]
        assert [(line["units"], line["rate"]) for line in lines] == [(5000, "0.1000")]
        assert result["calculations"]["gross_royalty"]["value"] == "5000.00"

    def test_5001_units_cross_into_second_tier(self, processor):
        result = processor.calculate_from_dict(_statement_input(sales=[_sale(5001)]))

        # $50,000 × 10% + $10 × 12% = $5,000.00 + $1.20
        lines = result["format_breakdowns"][0]["tier_breakdowns"]
        assert [(line["units"], line["subtotal"]) for line in lines] == [(5000, "5000.00"), (1, "1.20")]
        assert result["calculations"]["gross_royalty"]["value"] == "5001.20"

    def test_6000_units_split_across_tiers(self, processor):
        result = processor.calculate_from_dict(_statement_input(sales=[_sale(6000)]))

        # $50,000 × 10% = $5,000.00 and $10,000 × 12% = $1,200.00
        lines = result["format_breakdowns"][0]["tier_breakdowns"]
        assert [line["subtotal"] for line in lines] == ["5000.00", "1200.00"]
        assert result["calculations"]["gross_royalty"]["value"] == "6200.00"
        assert result["calculations"]["net_payable"]["value"] == "6200.00"

    def test_mixed_prices_priced_from_actual_amounts(self, processor):
        result = processor.calculate_from_dict(
            _statement_input(sales=[_sale(3000, "10.00"), _sale(3000, "20.00")])
        )

        # $90,000 over 6,000 units: $75,000 × 10% + $15,000 × 12%
        assert result["format_breakdowns"][0]["net_amount"] == "90000.00"
        assert result["calculations"]["gross_royalty"]["value"] == "9300.00"


class TestAdvanceRecoupmentAcrossPeriods:
    """A $1,000 advance recovered over consecutive quarterly statements."""

    @pytest.fixture
    def processor(self):
        return StatementProcessor()

    @staticmethod
    def _next_contract(contract, result):
        state = result["updated_contract_state"]
        return {
            **contract,
            "advance_recouped": state["advance_recouped"],
            "last_finalized_period_end": state["last_finalized_period_end"],
        }

    def test_advance_recovered_over_three_periods(self, processor):
        contract = {"advance_paid": "1000.00", "advance_amount": "1000.00"}

        # Q1: 600 units × $10 × 10% = $600, all recouped
        q1 = processor.calculate_from_dict(
            _statement_input(sales=[_sale(600)], tiers=FLAT_PAPERBACK, contract=contract)
        )
        assert q1["calculations"]["recoupment_applied"]["value"] == "600.00"
        assert q1["calculations"]["net_payable"]["value"] == "0.00"
        assert q1["updated_contract_state"]["advance_recouped"] == "600.00"
        assert [w["type"] for w in q1["warnings"]] == ["zero_net"]

        # Q2: only returns, -$200; nothing recouped and nothing reversed
        contract = self._next_contract(contract, q1)
        q2 = processor.calculate_from_dict(
            _statement_input(
                returns=[_return(200, return_date="2025-05-10")],
                tiers=FLAT_PAPERBACK,
                contract=contract,
                period_start="2025-04-01",
                period_end="2025-07-01",
            )
        )
        assert q2["calculations"]["gross_royalty"]["value"] == "-200.00"
        assert q2["calculations"]["recoupment_applied"]["value"] == "0.00"
        assert q2["calculations"]["net_payable"]["value"] == "-200.00"
        assert q2["updated_contract_state"]["advance_recouped"] == "600.00"
        assert [w["type"] for w in q2["warnings"]] == ["negative_net"]

        # Q3: $500 gross; the last $400 of the advance is recouped, $100 paid
        contract = self._next_contract(contract, q2)
        q3 = processor.calculate_from_dict(
            _statement_input(
                sales=[_sale(500, sale_date="2025-08-20")],
                tiers=FLAT_PAPERBACK,
                contract=contract,
                period_start="2025-07-01",
                period_end="2025-10-01",
            )
        )
        assert q3["calculations"]["recoupment_applied"]["value"] == "400.00"
        assert q3["calculations"]["net_payable"]["value"] == "100.00"
        assert q3["updated_contract_state"]["advance_recouped"] == "1000.00"
        assert q3["advance_recoupment"]["remaining_advance"] == "0.00"

    def test_replaying_a_finalized_period_is_rejected(self, processor):
        contract = {"advance_paid": "1000.00"}
        q1 = processor.calculate_from_dict(
            _statement_input(sales=[_sale(600)], tiers=FLAT_PAPERBACK, contract=contract)
        )

        with pytest.raises(SequenceError):
            processor.calculate_from_dict(
                _statement_input(sales=[_sale(600)], tiers=FLAT_PAPERBACK, contract=self._next_contract(contract, q1))
            )

    def test_fully_recouped_contract_pays_all_royalty(self, processor):
        contract = {"advance_paid": "1000.00", "advance_recouped": "1000.00"}
        result = processor.calculate_from_dict(
            _statement_input(sales=[_sale(250)], tiers=FLAT_PAPERBACK, contract=contract)
        )

        assert result["calculations"]["recoupment_applied"]["value"] == "0.00"
        assert result["calculations"]["net_payable"]["value"] == "250.00"
        assert result["trace"]["steps"][-1]["branch"] == "fully_recouped"


class TestOwnershipSplitResidualCent:
    """Co-owned titles: payee shares always add back to the statement total."""

    @pytest.fixture
    def processor(self):
        return StatementProcessor()

    def test_residual_cent_goes_to_largest_remainder(self, processor):
        # 1 unit × $1,000.10 × 10% = $100.01, split 60/40
        result = processor.calculate_from_dict(
            _statement_input(
                sales=[_sale(1, "1000.10")],
                ownership_split=[
                    {"payee_id": "author-a", "percentage": 60},
                    {"payee_id": "author-b", "percentage": 40},
                ],
            )
        )

        assert result["calculations"]["net_payable"]["value"] == "100.01"
        assert [p["net_payable"] for p in result["payee_shares"]] == ["60.01", "40.00"]
        assert result["statement_summary"]["is_split_calculation"] is True

    def test_split_applies_after_recoupment(self, processor):
        # $100.01 gross against a $50 advance: $50.00 recouped, $50.01 payable
        result = processor.calculate_from_dict(
            _statement_input(
                sales=[_sale(1, "1000.10")],
                contract={"advance_paid": "50.00"},
                ownership_split=[
                    {"payee_id": "author-a", "percentage": 60},
                    {"payee_id": "author-b", "percentage": 40},
                ],
            )
        )

        shares = result["payee_shares"]
        assert [p["recoupment_applied"] for p in shares] == ["30.00", "20.00"]
        assert [p["net_payable"] for p in shares] == ["30.01", "20.00"]
        assert [p["gross_royalty"] for p in shares] == ["60.01", "40.00"]

    def test_three_way_split_sums_to_title_totals(self, processor):
        result = processor.calculate_from_dict(
            _statement_input(
                sales=[_sale(7, "14.29")],
                ownership_split=[
                    {"payee_id": "author-a", "percentage": "33.33"},
                    {"payee_id": "author-b", "percentage": "33.33"},
                    {"payee_id": "illustrator", "percentage": "33.34"},
                ],
            )
        )

        net_payable = Decimal(result["calculations"]["net_payable"]["value"])
        assert sum(Decimal(p["net_payable"]) for p in result["payee_shares"]) == net_payable


class TestCumulativeTierCrossing:
    """Lifetime tiering: the period starts where all-time sales left off."""

    @pytest.fixture
    def processor(self):
        return StatementProcessor()

    def test_period_crossing_lifetime_boundary(self, processor):
        result = processor.calculate_from_dict(
            _statement_input(
                sales=[_sale(400)],
                contract={"tier_calculation_mode": "cumulative"},
                prior_cumulative_units_by_format={"paperback": 4800},
            )
        )

        # Units 4,801-5,000 at 10%, 5,001-5,200 at 12%; $2,000 of sales each
        breakdown = result["format_breakdowns"][0]
        assert breakdown["base_quantity"] == 4800
        assert [(line["units"], line["subtotal"]) for line in breakdown["tier_breakdowns"]] == [
            (200, "200.00"),
            (200, "240.00"),
        ]
        assert result["calculations"]["gross_royalty"]["value"] == "440.00"

    def test_same_sales_in_period_mode_stay_in_first_tier(self, processor):
        result = processor.calculate_from_dict(
            _statement_input(sales=[_sale(400)], prior_cumulative_units_by_format={"paperback": 4800})
        )

        assert result["format_breakdowns"][0]["base_quantity"] == 0
        assert result["calculations"]["gross_royalty"]["value"] == "400.00"

    def test_lifetime_alias_is_cumulative(self, processor):
        result = processor.calculate_from_dict(
            _statement_input(
                sales=[_sale(400)],
                contract={"tier_calculation_mode": "lifetime"},
                prior_cumulative_units_by_format={"paperback": 4800},
            )
        )

        assert result["statement_summary"]["tier_calculation_mode"] == "cumulative"
        assert result["calculations"]["gross_royalty"]["value"] == "440.00"


class TestReturnsHandling:
    """Only approved returns reduce a statement."""

    @pytest.fixture
    def processor(self):
        return StatementProcessor()

    def test_pending_returns_do_not_reduce_royalty(self, processor):
        result = processor.calculate_from_dict(
            _statement_input(sales=[_sale(100)], returns=[_return(20, status="pending")])
        )

        assert result["calculations"]["gross_royalty"]["value"] == "100.00"
        assert result["format_breakdowns"][0]["returns_excluded"] == 20

    def test_approved_returns_net_against_sales(self, processor):
        result = processor.calculate_from_dict(_statement_input(sales=[_sale(100)], returns=[_return(20)]))

        # (100 - 20) × $10 × 10% = $80.00
        assert result["format_breakdowns"][0]["net_units"] == 80
        assert result["calculations"]["returns_deduction"]["value"] == "200.00"
        assert result["calculations"]["gross_royalty"]["value"] == "80.00"

    def test_returns_only_period_gives_negative_statement(self, processor):
        result = processor.calculate_from_dict(_statement_input(returns=[_return(50)]))

        assert result["calculations"]["net_payable"]["value"] == "-50.00"
        assert [w["type"] for w in result["warnings"]] == ["negative_net"]


class TestQuietPeriod:
    """A period with no activity still produces a statement."""

    def test_no_activity_produces_zero_statement_with_warning(self):
        processor = StatementProcessor()
        result = processor.calculate_from_dict(
            _statement_input(contract={"advance_paid": "1000.00", "advance_recouped": "250.00"})
        )

        assert result["calculations"]["gross_royalty"]["value"] == "0.00"
        assert result["calculations"]["net_payable"]["value"] == "0.00"
        assert result["updated_contract_state"]["advance_recouped"] == "250.00"
        assert [w["type"] for w in result["warnings"]] == ["no_sales"]
