"""Unit tests for payload building."""

from unittest.mock import patch

from invoice_review.commit.payload import build_batch_request, build_invoice_payload
from invoice_review.models.document_record import BoundingBox
from invoice_review.models.session import Session
from invoice_review.profiles import ReviewProfile


BOX = [[0.1, 0.1], [0.3, 0.1], [0.3, 0.15], [0.1, 0.15]]


class TestBuildInvoicePayload:
    """Test record to payload translation."""

    def test_full_record(self, make_record):
        record = make_record(
            "inv",
            supplier_name="Acme",
            invoice_number="INV-9",
            invoice_date="2024-03-01T00:00:00Z",
            due_date="2024-03-31",
            currency="USD",
            subtotal=100, tax_amount=18, total=118,
            language="he",
            field_confidence={"total": 0.95, "supplier_name": 0.92},
            bounding_boxes={"total": BoundingBox(polygon=BOX, page_number=2)},
            page_count=2,
            supplier_id=12,
        )

        payload = build_invoice_payload(record)

        assert payload.invoice_number == "INV-9"
        assert payload.invoice_date == "2024-03-01"
        assert payload.due_date == "2024-03-31"
        assert payload.currency == "USD"
        assert (payload.subtotal, payload.vat_amount, payload.total) == (100.0, 18.0, 118.0)
        assert payload.supplier_id == 12
        assert payload.doc_name == "inv.pdf"
        assert payload.doc_full_path == "/uploads/inv.pdf"
        assert payload.ocr_language == "he"
        assert payload.ocr_confidence == 0.935
        assert payload.ocr_metadata == {
            'field_confidence': {"total": 0.95, "supplier_name": 0.92},
            'bounding_boxes': {"total": {'polygon': BOX, 'page_number': 2}},
            'page_count': 2,
        }
        assert payload.needs_review is False

    def test_defaults(self, make_record):
        record = make_record("scan", document_type="uncertain")

        with patch('invoice_review.commit.payload.get_default_currency', return_value="ILS"):
            payload = build_invoice_payload(record)

        assert payload.invoice_number == "scan.pdf"
        assert payload.invoice_date == ""
        assert payload.currency == "ILS"
        assert (payload.subtotal, payload.vat_amount, payload.total) == (0.0, 0.0, 0.0)
        assert payload.document_type == "invoice"
        assert payload.status == "pending"
        assert payload.ocr_confidence is None

    def test_explicit_currency_fallback(self, make_record):
        assert build_invoice_payload(make_record(), "EUR").currency == "EUR"

    def test_low_field_confidence_needs_review(self, make_record):
        record = make_record(confidence=0.9, field_confidence={"total": 0.5})
        payload = build_invoice_payload(record)
        assert payload.needs_review is True
        assert payload.ocr_confidence == 0.9

    def test_needs_review_follows_profile_medium_threshold(self, make_record):
        """Only fields at the low level (below the medium threshold) flag the record."""
        record = make_record(field_confidence={"total": 0.8, "supplier_name": 0.7})
        strict = ReviewProfile(name="strict", confidence={"high": 0.95, "medium": 0.85})

        assert build_invoice_payload(record).needs_review is False
        assert build_invoice_payload(record, profile=strict).needs_review is True

    def test_batch_request_passes_profile(self, make_record):
        session = Session(records=[make_record(field_confidence={"total": 0.8})])
        strict = ReviewProfile(name="strict", confidence={"high": 0.95, "medium": 0.85})
        assert build_batch_request(session, 1, [0], "ILS", strict).invoices[0].needs_review is True

    def test_to_dict_drops_missing_values(self, make_record):
        data = build_invoice_payload(make_record(), "ILS").to_dict()
        assert 'supplier_id' not in data
        assert 'due_date' not in data
        assert data['currency'] == "ILS"


class TestBuildBatchRequest:
    """Test batch request building."""

    def test_order_follows_indices(self, make_record):
        session = Session(records=[make_record(n) for n in "ABC"])
        request = build_batch_request(session, 7, [2, 0], "ILS")
        assert request.customer_id == 7
        assert [p.doc_name for p in request.invoices] == ["C.pdf", "A.pdf"]
        assert request.to_dict()['customer_id'] == 7
