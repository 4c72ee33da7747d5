"""Translate session records into persistence payloads."""

from typing import List, Optional, Sequence

from ..api.schemas import InvoiceBatchRequest, InvoicePayload
from ..config import get_default_currency
from ..models.document_record import DocumentRecord
from ..models.session import Session
from ..pipeline.confidence import document_confidence, low_confidence_fields
from ..profiles import ReviewProfile


def _iso_date(value: Optional[str]) -> Optional[str]:
    """First 10 characters (YYYY-MM-DD) of a date or datetime string."""
    if not value:
        return None
    return value.strip()[:10] or None


def build_invoice_payload(
    record: DocumentRecord,
    default_currency: Optional[str] = None,
    profile: Optional[ReviewProfile] = None
) -> InvoicePayload:
    """Build the payload for one record.

    Defaults: invoice number falls back to the file name, currency to the
    configured fallback, document type to "invoice", status to "pending",
    missing money fields to 0. needs_review is set when any field
    confidence is below the profile's medium threshold (the "low" level).

    Args:
        record: Record to translate
        default_currency: Currency for records without one (default from config)
        profile: Review profile with the confidence thresholds

    Returns:
        InvoicePayload
    """
    currency = record.currency or default_currency or get_default_currency()

    return InvoicePayload(
        supplier_id=record.supplier_id,
        supplier_name=record.supplier_name,
        invoice_number=record.invoice_number or record.file_name,
        invoice_date=_iso_date(record.invoice_date) or "",
        due_date=_iso_date(record.due_date),
        payment_terms=record.payment_terms,
        currency=currency,
        subtotal=float(record.subtotal or 0),
        vat_amount=float(record.tax_amount or 0),
        total=float(record.total or 0),
        doc_name=record.file_name,
        doc_full_path=record.source_path,
        document_type=record.document_type if record.document_type in ("invoice", "receipt", "other") else "invoice",
        status=record.status or "pending",
        ocr_confidence=document_confidence(record),
        ocr_language=record.language,
        ocr_metadata={
            'field_confidence': dict(record.field_confidence),
            'bounding_boxes': {name: box.to_dict() for name, box in record.bounding_boxes.items()},
            'page_count': record.page_count,
        },
        needs_review=bool(low_confidence_fields(record, profile)),
    )


def build_batch_request(
    session: Session,
    customer_id: int,
    indices: Sequence[int],
    default_currency: Optional[str] = None,
    profile: Optional[ReviewProfile] = None
) -> InvoiceBatchRequest:
    """Build a batch request from the records at the given indices, in that order."""
    invoices: List[InvoicePayload] = [
        build_invoice_payload(session.record(i), default_currency, profile) for i in indices
    ]
    return InvoiceBatchRequest(customer_id=customer_id, invoices=invoices)
