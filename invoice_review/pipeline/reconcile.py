"""Field edits with subtotal/tax/total reconciliation."""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..models.document_record import DOCUMENT_TYPES, LANGUAGES, STATUSES, DocumentRecord
from .money import is_finite_number, round2, to_money

logger = logging.getLogger(__name__)

INVARIANT_TOLERANCE = 0.005

TAX_PRESERVING = "tax_preserving"
RATE_RECONSTRUCT = "rate_reconstruct"
TOTAL_EDIT_RULES = (TAX_PRESERVING, RATE_RECONSTRUCT)


class UnknownFieldError(ValueError):
    """Raised when an edit names a field outside the editable set."""
    pass


class EditableField(str, Enum):
    """Fields a reviewer may edit."""
    SUPPLIER_NAME = "supplier_name"
    INVOICE_NUMBER = "invoice_number"
    INVOICE_DATE = "invoice_date"
    DUE_DATE = "due_date"
    PAYMENT_TERMS = "payment_terms"
    CURRENCY = "currency"
    DOCUMENT_TYPE = "document_type"
    STATUS = "status"
    LANGUAGE = "language"
    SUBTOTAL = "subtotal"
    TAX_AMOUNT = "tax_amount"
    TOTAL = "total"

    @classmethod
    def parse(cls, name: Any) -> 'EditableField':
        """Resolve a field tag or name.

        Raises:
            UnknownFieldError: If name is not an editable field
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownFieldError(f"Field is not editable: {name!r}") from None

    @property
    def is_money(self) -> bool:
        return self in (EditableField.SUBTOTAL, EditableField.TAX_AMOUNT, EditableField.TOTAL)


_CHOICES = {
    EditableField.DOCUMENT_TYPE: DOCUMENT_TYPES,
    EditableField.STATUS: STATUSES,
    EditableField.LANGUAGE: LANGUAGES,
}


def check_invariant(record: DocumentRecord) -> bool:
    """Return True when subtotal + tax == total (within half a cent).

    Records missing any of the three fields satisfy it trivially.
    """
    values = (record.subtotal, record.tax_amount, record.total)
    if any(v is None for v in values):
        return True
    return abs(record.total - (record.subtotal + record.tax_amount)) < INVARIANT_TOLERANCE


class FieldReconciler:
    """Applies one edit to one record and recomputes the dependent money fields.

    Rules:
        subtotal edited  -> tax = subtotal * rate, total = subtotal + tax
        tax edited       -> subtotal = tax / rate (unchanged if rate is 0),
                            total = subtotal + tax
        total edited     -> no tax set: subtotal = total / (1 + rate),
                            tax = total - subtotal
                            tax set: subtotal = total - tax ("tax_preserving")
                            or rebuilt from the rate ("rate_reconstruct")

    Every derived value is rounded with round2; a non-finite result is
    stored as None.
    """

    def __init__(self, tax_rate: float, total_edit_rule: str = TAX_PRESERVING):
        if not is_finite_number(tax_rate) or tax_rate < 0:
            raise ValueError(f"tax_rate must be a finite number >= 0, got {tax_rate!r}")
        if total_edit_rule not in TOTAL_EDIT_RULES:
            raise ValueError(
                f"total_edit_rule must be one of {TOTAL_EDIT_RULES}, got '{total_edit_rule}'"
            )
        self.tax_rate = float(tax_rate)
        self.total_edit_rule = total_edit_rule
        self._handlers: Dict[EditableField, Callable[[DocumentRecord, Optional[float]], None]] = {
            EditableField.SUBTOTAL: self._edit_subtotal,
            EditableField.TAX_AMOUNT: self._edit_tax_amount,
            EditableField.TOTAL: self._edit_total,
        }

    def reconcile(self, record: DocumentRecord, field: Any, value: Any) -> DocumentRecord:
        """Apply an edit in place and return the record.

        Args:
            record: Record to edit (no other record is touched)
            field: EditableField or its name
            value: New value; money fields accept numbers or text, blank clears

        Raises:
            UnknownFieldError: If field is not editable
            ValueError: If value is invalid for the field
        """
        tag = EditableField.parse(field)

        if not tag.is_money:
            self._assign_text(record, tag, value)
            return record

        amount = to_money(value)
        if amount is None:
            # Cleared field: nothing to derive from
            setattr(record, tag.value, None)
            return record

        self._handlers[tag](record, amount)

        if not check_invariant(record):
            logger.warning(
                f"{record.display_name}: subtotal {record.subtotal} + tax {record.tax_amount} "
                f"!= total {record.total} after editing {tag.value}"
            )
        return record

    def _assign_text(self, record: DocumentRecord, tag: EditableField, value: Any) -> None:
        if value is not None and not isinstance(value, str):
            value = str(value)
        if isinstance(value, str):
            value = value.strip() or None

        choices = _CHOICES.get(tag)
        if choices is not None:
            if value is None or value not in choices:
                raise ValueError(f"{tag.value} must be one of {choices}, got {value!r}")
        elif tag is EditableField.CURRENCY and value is not None:
            value = value.upper()

        setattr(record, tag.value, value)

    def _edit_subtotal(self, record: DocumentRecord, subtotal: float) -> None:
        record.subtotal = round2(subtotal)
        record.tax_amount = round2(record.subtotal * self.tax_rate)
        record.total = round2(record.subtotal + record.tax_amount)

    def _edit_tax_amount(self, record: DocumentRecord, tax_amount: float) -> None:
        record.tax_amount = round2(tax_amount)
        if self.tax_rate != 0:
            record.subtotal = round2(record.tax_amount / self.tax_rate)
        # With a zero rate the subtotal cannot be derived and stays as it is
        if record.subtotal is not None:
            record.total = round2(record.subtotal + record.tax_amount)

    def _edit_total(self, record: DocumentRecord, total: float) -> None:
        record.total = round2(total)
        if record.tax_amount is None or self.total_edit_rule == RATE_RECONSTRUCT:
            record.subtotal = round2(record.total / (1 + self.tax_rate))
            record.tax_amount = round2(record.total - record.subtotal) if record.subtotal is not None else None
        else:
            record.subtotal = round2(record.total - record.tax_amount)


def reconcile(
    record: DocumentRecord,
    field: Any,
    value: Any,
    tax_rate: float,
    total_edit_rule: str = TAX_PRESERVING
) -> DocumentRecord:
    """Apply one edit with a one-off FieldReconciler."""
    return FieldReconciler(tax_rate, total_edit_rule).reconcile(record, field, value)
