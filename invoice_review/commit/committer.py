"""Batch committer: conflict gate, batch write and session bookkeeping."""

import logging
from typing import Callable, List, Optional, Set

from ..api.schemas import InvoiceBatchRequest, InvoiceBatchResponse
from ..models.commit_result import CommitRowResult, CommitSummary
from ..models.session import Session
from ..profiles import ReviewProfile
from .conflict_gate import ConflictGate, candidates_for
from .payload import build_invoice_payload

logger = logging.getLogger(__name__)


class MissingCustomerError(ValueError):
    """Raised when a commit is attempted without a customer selected."""
    pass


class RowCommitError(Exception):
    """Raised when the service rejects a single-record commit."""

    def __init__(self, message: str, index: int, invoice_number: str = ""):
        super().__init__(message)
        self.index = index
        self.invoice_number = invoice_number


class BatchCommitter:
    """Commits session records through the conflict gate.

    Nothing is written while the gate reports conflicts. No call is retried.
    """

    def __init__(
        self,
        session: Session,
        gate: ConflictGate,
        save_batch: Callable[[InvoiceBatchRequest], InvoiceBatchResponse],
        default_currency: Optional[str] = None,
        profile: Optional[ReviewProfile] = None
    ):
        """Initialize committer.

        Args:
            session: Session holding the records
            gate: Conflict gate run before every write
            save_batch: Batch-write collaborator (e.g. ServiceClient.save_invoices_batch)
            default_currency: Currency for records without one (default from config)
            profile: Review profile deciding which records need review
        """
        self.session = session
        self.gate = gate
        self.save_batch = save_batch
        self.default_currency = default_currency
        self.profile = profile

    def _customer(self, customer_id: Optional[int]) -> int:
        customer = customer_id if customer_id is not None else self.session.customer_id
        if customer is None:
            raise MissingCustomerError("Select a customer before saving invoices")
        return customer

    def _merge(self, index: int, row: CommitRowResult) -> None:
        """Record server ids for a successful row (record re-read after the write)."""
        self.session.mark_persisted(index, row.inserted_id)
        if row.supplier_id is not None:
            self.session.record(index).supplier_id = row.supplier_id

    def commit_one(self, index: int, customer_id: Optional[int] = None) -> CommitSummary:
        """Commit a single record.

        Args:
            index: Session index of the record
            customer_id: Customer to write for (default: the session's)

        Returns:
            CommitSummary; `blocked` is True if the gate found conflicts

        Raises:
            MissingCustomerError: If no customer is selected
            IndexError: If no record exists at index
            RowCommitError: If the service rejects the row
        """
        customer = self._customer(customer_id)
        record = self.session.record(index)
        payload = build_invoice_payload(record, self.default_currency, self.profile)

        report = None
        if not self.session.is_persisted(index):
            report = self.gate.check(customer, [payload])
            if report.has_conflicts:
                logger.warning(f"Not saving {record.display_name}: conflicts found")
                return CommitSummary(conflict_report=report)

        response = self.save_batch(InvoiceBatchRequest(customer_id=customer, invoices=[payload]))
        if not response.results:
            raise RowCommitError(
                f"No result returned for {payload.invoice_number}", index, payload.invoice_number
            )

        row = response.results[0]
        if row.error:
            raise RowCommitError(
                f"Failed to save {payload.invoice_number}: {row.error}", index, payload.invoice_number
            )

        if row.succeeded:
            self._merge(index, row)
            logger.info(
                f"Saved {payload.invoice_number} as invoice {row.inserted_id}"
                f"{' (updated)' if row.is_update else ''}"
            )
        else:
            logger.warning(f"{payload.invoice_number} was not saved")

        # Report the row under its session index
        row.index = index
        return CommitSummary.from_rows([row], report)

    def commit_all(self, customer_id: Optional[int] = None) -> CommitSummary:
        """Commit every record in the session.

        Only records without a server id go through the conflict check; the
        write carries all records and the service updates those it holds.
        With every row saved the session is cleared, otherwise it keeps
        exactly the rows that were not saved.

        Args:
            customer_id: Customer to write for (default: the session's)

        Returns:
            CommitSummary with inserted / updated / errored / conflicted counts

        Raises:
            MissingCustomerError: If no customer is selected
        """
        customer = self._customer(customer_id)
        if self.session.is_empty:
            logger.info("Nothing to save")
            return CommitSummary()

        indices = list(range(len(self.session)))
        payloads = [
            build_invoice_payload(self.session.record(i), self.default_currency, self.profile)
            for i in indices
        ]

        candidates = candidates_for(self.session, indices)
        report = self.gate.check(customer, [payloads[i] for i in candidates])
        if report.has_conflicts:
            logger.warning(f"Not saving {len(payloads)} invoice(s): conflicts found")
            return CommitSummary(conflict_report=report)

        response = self.save_batch(InvoiceBatchRequest(customer_id=customer, invoices=payloads))

        saved: Set[int] = set()
        for row in response.results:
            if row.index < 0 or row.index >= len(indices):
                logger.warning(f"Ignoring result for unknown row {row.index}")
                continue
            if row.succeeded:
                self._merge(row.index, row)
                saved.add(row.index)
            elif row.error:
                logger.warning(f"Failed to save {row.invoice_number or row.index}: {row.error}")

        summary = CommitSummary.from_rows(response.results, report)
        not_saved: List[int] = [i for i in indices if i not in saved]

        if not not_saved:
            self.session.clear()
            summary.cleared = True
            logger.info(f"Saved {summary.saved} invoice(s), batch complete")
        else:
            self.session.retain_indices(not_saved)
            logger.warning(
                f"Saved {summary.saved} invoice(s), {len(not_saved)} kept for another attempt "
                f"({summary.errored} error(s), {summary.conflicted} conflict(s))"
            )
        return summary
