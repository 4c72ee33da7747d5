"""Pre-commit conflict check."""

import logging
from typing import Callable, List, Sequence

from ..api.schemas import InvoiceBatchRequest, InvoicePayload
from ..models.conflict_report import ConflictReport
from ..models.session import Session

logger = logging.getLogger(__name__)


def candidates_for(session: Session, indices: Sequence[int]) -> List[int]:
    """Indices that still need a conflict check (records without a server id)."""
    return [i for i in indices if not session.is_persisted(i)]


class ConflictGate:
    """Asks the service whether a set of payloads would conflict.

    The gate only reports; deciding whether to write is up to the caller.
    """

    def __init__(self, check_conflicts: Callable[[InvoiceBatchRequest], ConflictReport]):
        """Initialize gate.

        Args:
            check_conflicts: Conflict-check collaborator (e.g. ServiceClient.check_conflicts)
        """
        self.check_conflicts = check_conflicts

    def check(self, customer_id: int, candidates: Sequence[InvoicePayload]) -> ConflictReport:
        """Check candidates in one round-trip.

        Args:
            customer_id: Customer the invoices would be written for
            candidates: Payloads to check

        Returns:
            ConflictReport; a clear report without a request when there are no candidates
        """
        if not candidates:
            return ConflictReport.clear()

        report = self.check_conflicts(
            InvoiceBatchRequest(customer_id=customer_id, invoices=list(candidates))
        )
        if report.has_conflicts:
            logger.warning(
                f"Conflict check found {len(report.conflicts)} conflict(s): "
                f"{', '.join(report.invoice_numbers) or 'unspecified'}"
            )
        else:
            logger.info(f"Conflict check clear for {len(candidates)} invoice(s)")
        return report
