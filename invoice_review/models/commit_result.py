"""Commit result models: per-row write results and the aggregated summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .conflict_report import ConflictReport


@dataclass
class CommitRowResult:
    """Result for one row of a batch write.

    Attributes:
        index: Position of the row in the submitted payload
        invoice_number: Invoice number as submitted
        inserted_id: Server id of the inserted/updated invoice
        supplier_id: Server id of the matched or created supplier
        supplier_created: True if the supplier was created by this write
        is_update: True if an existing invoice was updated
        conflict: True if the row was rejected as a conflict
        error: Row-level error message
    """
    index: int
    invoice_number: str = ""
    inserted_id: Optional[int] = None
    supplier_id: Optional[int] = None
    supplier_created: bool = False
    is_update: bool = False
    conflict: bool = False
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.conflict and self.inserted_id is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CommitRowResult:
        return cls(
            index=int(data['index']),
            invoice_number=str(data.get('invoice_number') or ""),
            inserted_id=data.get('inserted_id'),
            supplier_id=data.get('supplier_id'),
            supplier_created=bool(data.get('supplier_created', False)),
            is_update=bool(data.get('is_update', False)),
            conflict=bool(data.get('conflict', False)),
            error=data.get('error'),
        )


@dataclass
class CommitSummary:
    """Aggregated outcome of a commit attempt.

    Attributes:
        inserted: Rows newly inserted
        updated: Rows that updated an existing invoice
        errored: Rows with a row-level error
        conflicted: Rows rejected as conflicts by the write call
        rows: Row results as returned by the service
        conflict_report: Pre-commit check result (None if the check was skipped)
        cleared: True if the session was cleared (batch finished)
    """
    inserted: int = 0
    updated: int = 0
    errored: int = 0
    conflicted: int = 0
    rows: List[CommitRowResult] = field(default_factory=list)
    conflict_report: Optional[ConflictReport] = None
    cleared: bool = False

    @property
    def blocked(self) -> bool:
        """True if the conflict gate stopped the write."""
        return self.conflict_report is not None and self.conflict_report.has_conflicts and not self.rows

    @property
    def saved(self) -> int:
        return self.inserted + self.updated

    @classmethod
    def from_rows(
        cls,
        rows: List[CommitRowResult],
        conflict_report: Optional[ConflictReport] = None
    ) -> CommitSummary:
        summary = cls(rows=list(rows), conflict_report=conflict_report)
        for row in rows:
            if row.error:
                summary.errored += 1
            elif row.conflict:
                summary.conflicted += 1
            elif row.inserted_id is not None:
                if row.is_update:
                    summary.updated += 1
                else:
                    summary.inserted += 1
        return summary
