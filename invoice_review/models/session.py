"""Session: the records currently under review, client-side."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .document_record import DocumentRecord

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Ordered records plus persistence bookkeeping.

    The session is owned by a single caller. Components receive it for the
    duration of one operation and re-read records by index after every
    service round-trip instead of holding on to record objects.

    Attributes:
        records: Records in extraction arrival order
        persisted_ids: Record index -> server-assigned invoice id. Entries are
            only added, except when the batch ends (clear) or failing rows
            are kept after a partial commit (retain_indices re-indexes them).
        tax_rate: Active tax ratio (e.g. 0.18)
        customer_id: Selected customer/owner context or None
    """

    records: List[DocumentRecord] = field(default_factory=list)
    persisted_ids: Dict[int, int] = field(default_factory=dict)
    tax_rate: float = 0.18
    customer_id: Optional[int] = None

    def __post_init__(self):
        if self.tax_rate < 0:
            raise ValueError(f"tax_rate must be >= 0, got {self.tax_rate}")

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[DocumentRecord]:
        return iter(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def append_records(self, records: Iterable[DocumentRecord]) -> int:
        """Append records in the given order. Returns the number appended."""
        before = len(self.records)
        self.records.extend(records)
        return len(self.records) - before

    def record(self, index: int) -> DocumentRecord:
        """Get record at index.

        Raises:
            IndexError: If no record exists at index
        """
        if index < 0 or index >= len(self.records):
            raise IndexError(f"No record at index {index} (session has {len(self.records)})")
        return self.records[index]

    def mark_persisted(self, index: int, invoice_id: int) -> None:
        """Remember the server id for a record. An existing id is never replaced."""
        self.record(index)
        existing = self.persisted_ids.get(index)
        if existing is not None and existing != invoice_id:
            logger.warning(
                f"Record {index} already persisted as {existing}, ignoring new id {invoice_id}"
            )
            return
        self.persisted_ids[index] = invoice_id

    def is_persisted(self, index: int) -> bool:
        return index in self.persisted_ids

    def unpersisted_indices(self) -> List[int]:
        """Indices of records with no server id, in order."""
        return [i for i in range(len(self.records)) if i not in self.persisted_ids]

    def clear(self) -> None:
        """End the batch: drop all records and persisted ids."""
        self.records.clear()
        self.persisted_ids.clear()

    def retain_indices(self, indices: Iterable[int]) -> None:
        """Keep only the records at the given indices, in session order.

        Persisted ids follow their records to the new indices.
        """
        keep = sorted(set(indices))
        for index in keep:
            self.record(index)

        new_ids = {}
        for new_index, old_index in enumerate(keep):
            if old_index in self.persisted_ids:
                new_ids[new_index] = self.persisted_ids[old_index]

        self.records = [self.records[i] for i in keep]
        self.persisted_ids = new_ids

    def to_dict(self) -> dict:
        return {
            'records': [r.to_dict() for r in self.records],
            'persisted_ids': {str(k): v for k, v in self.persisted_ids.items()},
            'tax_rate': self.tax_rate,
            'customer_id': self.customer_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Session:
        return cls(
            records=[DocumentRecord.from_dict(r) for r in data.get('records') or []],
            persisted_ids={int(k): int(v) for k, v in (data.get('persisted_ids') or {}).items()},
            tax_rate=float(data.get('tax_rate', 0.18)),
            customer_id=data.get('customer_id'),
        )

    def save(self, path: Path) -> None:
        """Save session to JSON file (atomic write to avoid a truncated file on interrupt)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)

    @classmethod
    def load(cls, path: Path, tax_rate: float = 0.18) -> Session:
        """Load session from JSON file; a missing file gives an empty session."""
        path = Path(path)
        if not path.exists():
            return cls(tax_rate=tax_rate)
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
