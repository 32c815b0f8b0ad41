"""
Statement Processor - Main Orchestrator

Coordinates the statement calculation pipeline through discrete, testable steps.
No I/O happens here: the caller supplies all data and persists the result.
"""

import json
from datetime import date
from typing import Any, Dict

from .calculators import OwnershipSplitter, PeriodAggregator, RecoupmentLedger, TierResolver
from .errors import CalculationError
from .models import (
    CalculationContext,
    Contract,
    ContractTier,
    OwnershipShare,
    ReturnRecord,
    SalesRecord,
    StatementRequest,
    StatementResult,
    StatementWarning,
)
from .output import OutputBuilder
from .validators import InputValidator


class StatementProcessor:
    """
    Main orchestrator for statement calculation.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Check Period Sequence
    3. Build Context
    4. Aggregate Period (tier pricing per format)
    5. Apply Recoupment
    6. Split by Ownership (multi-payee titles only)
    7. Derive Warnings
    8. Build Output
    """

    def __init__(self):
        # Initialize all calculators
        self.tier_resolver = TierResolver()
        self.validator = InputValidator(self.tier_resolver)
        self.aggregator = PeriodAggregator(self.tier_resolver)
        self.ledger = RecoupmentLedger()
        self.splitter = OwnershipSplitter()
        self.output_builder = OutputBuilder()

    def calculate(self, request: StatementRequest) -> StatementResult:
        """
        Calculate a statement through the complete pipeline.

        Args:
            request: StatementRequest for one contract and one period

        Returns:
            StatementResult with all calculations, the proposed advance state
            and the calculation trace
        """
        # Step 1: Validate
        self.validator.validate(request)

        # Step 2: Refuse periods out of chronological order
        self.ledger.check_sequence(request.contract, request.period_start, request.period_end)

        # Step 3: Build initial context
        ctx = CalculationContext(request=request)

        # Step 4: Net units per format, priced through the tier table
        ctx.aggregate = self.aggregator.aggregate(ctx)

        # Step 5: Apply gross royalty against the advance
        ctx.recoupment = self.ledger.apply(request.contract, ctx.aggregate.total_royalty)

        # Step 6: Split among payees
        if request.ownership_split:
            ctx.payee_shares = self.splitter.split(
                request.ownership_split,
                gross_royalty=ctx.aggregate.total_royalty,
                recoupment_applied=ctx.recoupment.recoupment_applied,
                net_payable=ctx.recoupment.net_payable,
                format_royalties=ctx.aggregate.royalty_by_format(),
                contract_id=request.contract.contract_id,
            )

        # Step 7: Warnings for the statement reviewer
        ctx.warnings = self._build_warnings(ctx)

        # Step 8: Build output
        return self.output_builder.build(ctx)

    def calculate_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculate a statement from raw dictionary input.

        Convenience method for API usage.
        """
        request = StatementRequest.from_dict(data)
        return self.calculate(request).to_dict()

    def _build_warnings(self, ctx: CalculationContext) -> list[StatementWarning]:
        warnings = []
        recoupment = ctx.recoupment

        if not ctx.aggregate.has_activity:
            warnings.append(StatementWarning("no_sales", "No sales or approved returns in this period"))

        if recoupment.net_payable < 0:
            warnings.append(
                StatementWarning(
                    "negative_net",
                    f"Returns exceed royalties: net payable is {recoupment.net_payable}",
                )
            )
        elif recoupment.net_payable == 0 and recoupment.recoupment_applied > 0:
            warnings.append(
                StatementWarning(
                    "zero_net",
                    f"Royalty fully absorbed by advance recoupment of {recoupment.recoupment_applied}",
                )
            )

        return warnings


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def calculate_statement(
    contract: Contract,
    tiers: list[ContractTier],
    sales_records: list[SalesRecord],
    approved_return_records: list[ReturnRecord],
    period_start: date,
    period_end: date,
    prior_cumulative_units_by_format: dict[str, int] | None = None,
    ownership_split: list[OwnershipShare] | None = None,
) -> StatementResult:
    """Calculate one contract's statement for one period."""
    request = StatementRequest(
        contract=contract,
        tiers=list(tiers),
        sales_records=list(sales_records),
        return_records=list(approved_return_records),
        period_start=period_start,
        period_end=period_end,
        prior_cumulative_units_by_format=prior_cumulative_units_by_format,
        ownership_split=ownership_split,
    )
    return StatementProcessor().calculate(request)


def calculate_statement_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Calculate a statement from Python dict and return Python dict.
    """
    processor = StatementProcessor()
    return processor.calculate_from_dict(input_data)


def calculate_statement_from_json(json_input: str) -> str:
    """
    Calculate a statement from JSON string input and return JSON string output.
    Errors are returned as JSON documents rather than raised.
    """
    try:
        input_data = json.loads(json_input)
        processor = StatementProcessor()
        result = processor.calculate_from_dict(input_data)
        return json.dumps(result, indent=2)

    except CalculationError as e:
        error_response = {**e.to_dict(), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except ValueError as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)
