"""Data models for records, sessions, conflicts and commit results."""

from .document_record import DocumentRecord, LineItem, BoundingBox
from .session import Session
from .conflict_report import Conflict, ConflictReport
from .commit_result import CommitRowResult, CommitSummary

__all__ = [
    "DocumentRecord",
    "LineItem",
    "BoundingBox",
    "Session",
    "Conflict",
    "ConflictReport",
    "CommitRowResult",
    "CommitSummary",
]
