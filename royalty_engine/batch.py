"""
Batch Statement Runner

Calculates statements for many contracts at once. Contracts are
independent and run in parallel; periods of the same contract run
strictly in order, each starting from the advance state the previous
period proposed.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Dict

from .calculators import RecoupmentLedger
from .errors import CalculationError
from .models import StatementRequest
from .processor import StatementProcessor

logger = logging.getLogger(__name__)

SKIPPED_ERROR_TYPE = "blocked_by_previous_failure"
UNEXPECTED_ERROR_TYPE = "unexpected_error"


@dataclass
class BatchItemResult:
    """Outcome of one (contract, period) request in a batch."""

    index: int
    contract_id: str
    period_start: str
    period_end: str
    success: bool
    statement: dict | None = None
    error: dict | None = None

    @property
    def skipped(self) -> bool:
        return self.error is not None and self.error.get("error_type") == SKIPPED_ERROR_TYPE

    def to_dict(self) -> dict:
        output = {
            "index": self.index,
            "contract_id": self.contract_id,
            "period_start": self.period_start,
            "period_end": self.period_end,
            "success": self.success,
        }
        if self.statement is not None:
            output["statement"] = self.statement
        if self.error is not None:
            output["error"] = self.error
        return output


@dataclass
class BatchResult:
    items: list[BatchItemResult] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        skipped = sum(1 for item in self.items if item.skipped)
        succeeded = sum(1 for item in self.items if item.success)
        return {
            "processed": len(self.items),
            "succeeded": succeeded,
            "failed": len(self.items) - succeeded - skipped,
            "skipped": skipped,
        }

    def to_dict(self) -> dict:
        return {"summary": self.summary, "results": [item.to_dict() for item in self.items]}


class BatchStatementRunner:
    """Runs many statement calculations, serialized per contract, parallel across contracts."""

    def __init__(self, processor: StatementProcessor | None = None, max_workers: int | None = None):
        self.processor = processor or StatementProcessor()
        self.max_workers = max_workers

    def run(self, requests: list[StatementRequest]) -> BatchResult:
        """
        Calculate every request and return results in input order.

        Periods of one contract are chained: each later period starts from the
        advance_recouped and last_finalized_period_end proposed by the one
        before it. After a failure, that contract's later periods are skipped.
        """
        by_contract: dict[str, list[tuple[int, StatementRequest]]] = {}
        for index, request in enumerate(requests):
            by_contract.setdefault(request.contract.contract_id, []).append((index, request))

        results: dict[int, BatchItemResult] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self._run_contract, contract_id, sorted(items, key=lambda item: item[1].period_start))
                for contract_id, items in by_contract.items()
            ]
            for future in futures:
                for item in future.result():
                    results[item.index] = item

        batch = BatchResult(items=[results[i] for i in range(len(requests))])
        logger.info(f"Batch complete: {batch.summary}")
        return batch

    def run_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Convenience method for API usage: {"requests": [...]} in, results out."""
        raw_requests = data.get("requests") if isinstance(data, dict) else None
        if not isinstance(raw_requests, list):
            raise ValueError("requests must be a list of statement requests")
        requests = [StatementRequest.from_dict(item) for item in raw_requests]
        return self.run(requests).to_dict()

    def _run_contract(self, contract_id: str, items: list[tuple[int, StatementRequest]]) -> list[BatchItemResult]:
        results = []
        contract = None
        failed = False

        for index, request in items:
            base = dict(
                index=index,
                contract_id=contract_id,
                period_start=request.period_start.isoformat(),
                period_end=request.period_end.isoformat(),
            )

            if failed:
                results.append(
                    BatchItemResult(
                        **base,
                        success=False,
                        error={
                            "error": "Skipped: an earlier period for this contract failed",
                            "error_type": SKIPPED_ERROR_TYPE,
                            "context": {"contract_id": contract_id},
                        },
                    )
                )
                continue

            if contract is not None:
                # Carry the advance forward from the period before
                request = replace(
                    request,
                    contract=RecoupmentLedger.advance_state_after(
                        request.contract, contract.advance_recouped, contract.last_finalized_period_end
                    ),
                )

            try:
                statement = self.processor.calculate(request)
            except CalculationError as e:
                logger.error(f"Statement failed for contract {contract_id} period {base['period_start']}: {e}")
                results.append(BatchItemResult(**base, success=False, error=e.to_dict()))
                failed = True
                continue
            except Exception as e:
                logger.error(
                    f"Unexpected error for contract {contract_id} period {base['period_start']}: {e}", exc_info=True
                )
                results.append(
                    BatchItemResult(
                        **base,
                        success=False,
                        error={
                            "error": "An unexpected error occurred during processing",
                            "error_type": UNEXPECTED_ERROR_TYPE,
                            "context": {"contract_id": contract_id},
                        },
                    )
                )
                failed = True
                continue

            contract = RecoupmentLedger.advance_state_after(
                request.contract, statement.new_advance_recouped, request.period_end
            )
            results.append(BatchItemResult(**base, success=True, statement=statement.to_dict()))

        return results
