"""ConflictReport data model returned by the pre-commit conflict check."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Conflict:
    """One business-rule conflict (e.g. duplicate invoice number for a supplier)."""
    invoice_number: str
    type: str
    message: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Conflict:
        return cls(
            invoice_number=str(data.get('invoice_number') or ""),
            type=str(data.get('type') or "unknown"),
            message=str(data.get('message') or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'invoice_number': self.invoice_number, 'type': self.type, 'message': self.message}


@dataclass
class ConflictReport:
    """Verdict of a conflict check.

    Attributes:
        has_conflicts: True if the write must be blocked
        conflicts: Conflicts in the order reported by the service
    """
    has_conflicts: bool = False
    conflicts: List[Conflict] = field(default_factory=list)

    def __post_init__(self):
        # A server listing conflicts but reporting has_conflicts=False still blocks
        if self.conflicts and not self.has_conflicts:
            self.has_conflicts = True

    @classmethod
    def clear(cls) -> ConflictReport:
        """Report for a candidate set with no conflicts."""
        return cls(has_conflicts=False, conflicts=[])

    @property
    def invoice_numbers(self) -> List[str]:
        return [c.invoice_number for c in self.conflicts]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConflictReport:
        return cls(
            has_conflicts=bool(data.get('has_conflicts', False)),
            conflicts=[Conflict.from_dict(c) for c in data.get('conflicts') or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'has_conflicts': self.has_conflicts,
            'conflicts': [c.to_dict() for c in self.conflicts],
        }
