"""
Recoupment Ledger

Applies a period's gross royalty against the unrecouped advance.
Takes an advance snapshot and returns the proposed next snapshot;
persisting it, in period order, is the caller's job.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from ..errors import SequenceError
from ..models import Contract, RecoupmentResult
from ..money import ZERO, quantize_money, require_non_negative, subtract_money


class RecoupmentLedger:
    """State machine over a contract's sequential statement periods."""

    def apply(self, contract: Contract, gross_total: Decimal) -> RecoupmentResult:
        """
        Apply gross royalty to the outstanding advance.

        - gross <= 0: nothing recouped and advance_recouped is left alone.
          A negative period never reverses a recoupment already applied.
          Net payable is reported as-is, negative included.
        - gross > 0 with an outstanding advance: recoup min(gross, outstanding).
        - gross > 0 with the advance fully recouped: everything is payable.
        """
        gross_total = quantize_money(gross_total)
        advance_paid = quantize_money(contract.advance_paid)
        previously_recouped = quantize_money(contract.advance_recouped)
        outstanding = advance_paid - previously_recouped

        require_non_negative(outstanding, "outstanding_advance", contract_id=contract.contract_id)

        if gross_total <= 0 or outstanding == 0:
            recoupment = ZERO
        else:
            recoupment = min(gross_total, outstanding)

        return RecoupmentResult(
            advance_paid=advance_paid,
            previously_recouped=previously_recouped,
            outstanding_before=outstanding,
            recoupment_applied=quantize_money(recoupment),
            net_payable=subtract_money(gross_total, recoupment),
            new_advance_recouped=quantize_money(previously_recouped + recoupment),
        )

    def check_sequence(self, contract: Contract, period_start: date, period_end: date) -> None:
        """Reject a period that starts before the contract's last finalized period ended."""
        last_end = contract.last_finalized_period_end
        if last_end is not None and period_start < last_end:
            raise SequenceError(
                f"Period {period_start.isoformat()} to {period_end.isoformat()} starts before "
                f"the last finalized period ended ({last_end.isoformat()})",
                contract_id=contract.contract_id,
                field="period_start",
                value=period_start.isoformat(),
            )

    @staticmethod
    def advance_state_after(contract: Contract, new_advance_recouped: Decimal, period_end: date) -> Contract:
        """The contract snapshot to use for the next period once this one is finalized."""
        return replace(
            contract,
            advance_recouped=new_advance_recouped,
            last_finalized_period_end=period_end,
        )
