"""DocumentRecord data model representing one extracted document."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..pipeline.money import is_finite_number, round2

logger = logging.getLogger(__name__)

LANGUAGES = ("en", "he")
DOCUMENT_TYPES = ("invoice", "receipt", "other", "uncertain")
STATUSES = ("pending", "approved", "exported", "rejected")
MONEY_FIELDS = ("subtotal", "tax_amount", "total")


@dataclass
class LineItem:
    """Single line item as extracted by the service."""
    description: str = ""
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    line_total: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> LineItem:
        return cls(
            description=data.get('description') or "",
            quantity=data.get('quantity'),
            unit_price=data.get('unit_price'),
            line_total=data.get('line_total'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'line_total': self.line_total,
        }


@dataclass
class BoundingBox:
    """Location of an extracted field on a page.

    Attributes:
        polygon: Four (x, y) points normalized to 0-1 of the page size
        page_number: 1-based page number
    """
    polygon: List[Tuple[float, float]]
    page_number: int = 1

    def __post_init__(self):
        """Validate BoundingBox fields."""
        if self.page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {self.page_number}")

        if len(self.polygon) != 4:
            raise ValueError(f"polygon must have 4 points, got {len(self.polygon)}")

        points = []
        for point in self.polygon:
            if len(point) != 2:
                raise ValueError(f"polygon points must be (x, y) pairs, got {point!r}")
            points.append((float(point[0]), float(point[1])))
        self.polygon = points

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BoundingBox:
        return cls(
            polygon=[tuple(p) for p in data.get('polygon') or []],
            page_number=int(data.get('page_number', 1)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'polygon': [[x, y] for x, y in self.polygon],
            'page_number': self.page_number,
        }


def _money(value: Any) -> Optional[float]:
    """Stored money value: finite numbers only, otherwise absent."""
    if value is None:
        return None
    return float(value) if round2(value) is not None else None


def _ingest_score(value: Any, label: str, file_name: str) -> Optional[float]:
    """Confidence from the service: non-numeric dropped, out of range clamped to 0-1."""
    if value is None:
        return None
    if not is_finite_number(value):
        logger.warning(f"Dropping non-numeric {label} {value!r} for {file_name}")
        return None
    score = float(value)
    if not 0.0 <= score <= 1.0:
        logger.warning(f"Clamping {label} {score} to 0-1 for {file_name}")
        score = min(1.0, max(0.0, score))
    return score


def _ingest_boxes(data: Any, file_name: str) -> Dict[str, BoundingBox]:
    """Bounding boxes from the service; malformed boxes are skipped."""
    if not isinstance(data, dict):
        return {}
    boxes = {}
    for name, box in data.items():
        try:
            boxes[name] = BoundingBox.from_dict(box)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping bounding box {name!r} for {file_name}: {e}")
    return boxes


def _ingest_page_count(value: Any, file_name: str) -> Optional[int]:
    if value is None:
        return None
    if is_finite_number(value) and value >= 1:
        return int(value)
    logger.warning(f"Ignoring page_count {value!r} for {file_name}")
    return None


@dataclass
class DocumentRecord:
    """Represents one document returned by the extraction service.

    Attributes:
        file_name: Original file name
        source_path: Opaque storage locator of the document
        file_url: Resolvable view link or None
        language: "en" or "he" (drives text direction)
        document_type: "invoice", "receipt", "other" or "uncertain"
        supplier_name, invoice_number, invoice_date, due_date, payment_terms:
            Extracted header fields or None
        currency: Currency code or None (fallback applied at commit time)
        subtotal, tax_amount, total: Money fields or None
        status: "pending", "approved", "exported" or "rejected"
        line_items: Extracted line items in document order
        confidence: Overall confidence (0.0-1.0) or None
        field_confidence: Field name -> confidence (0.0-1.0)
        bounding_boxes: Field name -> BoundingBox
        page_count: Number of pages or None
        supplier_id: Server-assigned supplier id, set after a successful commit
    """

    file_name: str
    source_path: str
    file_url: Optional[str] = None
    language: str = "en"
    document_type: str = "uncertain"
    supplier_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    due_date: Optional[str] = None
    payment_terms: Optional[str] = None
    currency: Optional[str] = None
    subtotal: Optional[float] = None
    tax_amount: Optional[float] = None
    total: Optional[float] = None
    status: str = "pending"
    line_items: List[LineItem] = field(default_factory=list)
    confidence: Optional[float] = None
    field_confidence: Dict[str, float] = field(default_factory=dict)
    bounding_boxes: Dict[str, BoundingBox] = field(default_factory=dict)
    page_count: Optional[int] = None
    supplier_id: Optional[int] = None

    def __post_init__(self):
        """Validate DocumentRecord fields."""
        if self.language not in LANGUAGES:
            raise ValueError(f"language must be one of {LANGUAGES}, got '{self.language}'")

        if self.document_type not in DOCUMENT_TYPES:
            raise ValueError(
                f"document_type must be one of {DOCUMENT_TYPES}, got '{self.document_type}'"
            )

        if self.status not in STATUSES:
            raise ValueError(f"status must be one of {STATUSES}, got '{self.status}'")

        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"confidence must be between 0.0 and 1.0, got {self.confidence}"
            )

        for name, score in self.field_confidence.items():
            if not 0.0 <= score <= 1.0:
                raise ValueError(
                    f"field_confidence[{name!r}] must be between 0.0 and 1.0, got {score}"
                )

        if self.page_count is not None and self.page_count < 1:
            raise ValueError(f"page_count must be >= 1, got {self.page_count}")

        for name in MONEY_FIELDS:
            setattr(self, name, _money(getattr(self, name)))

    @property
    def text_direction(self) -> str:
        """Text direction for display: "rtl" for Hebrew documents."""
        return "rtl" if self.language == "he" else "ltr"

    @property
    def display_name(self) -> str:
        """Invoice number when known, else the file name."""
        return self.invoice_number or self.file_name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DocumentRecord:
        """Create from a service result dict (snake_case wire keys).

        Values the edit-time checks would reject are repaired here instead of
        failing the whole page: unknown language, type and status fall back
        to "en", "uncertain" and "pending"; confidences are clamped to 0-1 or
        dropped when not numeric; malformed bounding boxes and line items are
        skipped.
        """
        file_name = data.get('file_name') or ""

        language = str(data.get('language') or 'en').lower()
        if language not in LANGUAGES:
            logger.debug(f"Unknown language {language!r} for {file_name}, using 'en'")
            language = 'en'

        document_type = str(data.get('document_type') or 'uncertain').lower()
        if document_type not in DOCUMENT_TYPES:
            document_type = 'uncertain'

        status = str(data.get('status') or 'pending').lower()
        if status not in STATUSES:
            logger.warning(f"Unknown status {status!r} for {file_name}, using 'pending'")
            status = 'pending'

        raw_scores = data.get('field_confidence')
        field_confidence = {}
        if isinstance(raw_scores, dict):
            for name, value in raw_scores.items():
                score = _ingest_score(value, f"field_confidence[{name!r}]", file_name)
                if score is not None:
                    field_confidence[name] = score

        return cls(
            file_name=file_name,
            source_path=data.get('source_path') or "",
            file_url=data.get('file_url'),
            language=language,
            document_type=document_type,
            supplier_name=data.get('supplier_name'),
            invoice_number=data.get('invoice_number'),
            invoice_date=data.get('invoice_date'),
            due_date=data.get('due_date'),
            payment_terms=data.get('payment_terms'),
            currency=data.get('currency'),
            subtotal=data.get('subtotal'),
            tax_amount=data.get('tax_amount'),
            total=data.get('total'),
            status=status,
            line_items=[
                LineItem.from_dict(item) for item in data.get('line_items') or []
                if isinstance(item, dict)
            ],
            confidence=_ingest_score(data.get('confidence'), "confidence", file_name),
            field_confidence=field_confidence,
            bounding_boxes=_ingest_boxes(data.get('bounding_boxes'), file_name),
            page_count=_ingest_page_count(data.get('page_count'), file_name),
            supplier_id=data.get('supplier_id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire format."""
        return {
            'file_name': self.file_name,
            'source_path': self.source_path,
            'file_url': self.file_url,
            'language': self.language,
            'document_type': self.document_type,
            'supplier_name': self.supplier_name,
            'invoice_number': self.invoice_number,
            'invoice_date': self.invoice_date,
            'due_date': self.due_date,
            'payment_terms': self.payment_terms,
            'currency': self.currency,
            'subtotal': self.subtotal,
            'tax_amount': self.tax_amount,
            'total': self.total,
            'status': self.status,
            'line_items': [item.to_dict() for item in self.line_items],
            'confidence': self.confidence,
            'field_confidence': dict(self.field_confidence),
            'bounding_boxes': {name: box.to_dict() for name, box in self.bounding_boxes.items()},
            'page_count': self.page_count,
            'supplier_id': self.supplier_id,
        }
