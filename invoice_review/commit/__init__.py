"""Conflict-aware commit of session records."""

from .committer import BatchCommitter, MissingCustomerError, RowCommitError
from .conflict_gate import ConflictGate, candidates_for
from .payload import build_batch_request, build_invoice_payload

__all__ = [
    'BatchCommitter',
    'MissingCustomerError',
    'RowCommitError',
    'ConflictGate',
    'candidates_for',
    'build_batch_request',
    'build_invoice_payload',
]
