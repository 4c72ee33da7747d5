"""Request and response schemas for the invoice service API."""

from dataclasses import dataclass, asdict, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Dict, Any

from ..models.commit_result import CommitRowResult
from ..models.document_record import DocumentRecord


def _sanitize_decimals(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sanitize_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_sanitize_decimals(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


@dataclass
class ExtractionRequest:
    """Request for one extraction page."""
    path: str
    recursive: bool = False
    language_detection: bool = True
    starting_point: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractionPage:
    """One page of extraction results.

    Attributes:
        results: Records covered by this page, in server order
        errors: Per-document error strings
        total_files: Total number of discovered files
        files_handled: Number of files this page covered (failed ones included)
        vat_rate: Tax ratio reported by the service, if any
    """
    results: List[DocumentRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total_files: int = 0
    files_handled: int = 0
    vat_rate: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionPage':
        """Create from dictionary (e.g., from JSON response)."""
        return cls(
            results=[DocumentRecord.from_dict(r) for r in data.get('results') or []],
            errors=[str(e) for e in data.get('errors') or []],
            total_files=int(data.get('total_files') or 0),
            files_handled=int(data.get('files_handled') or 0),
            vat_rate=data.get('vat_rate'),
        )


@dataclass
class UploadResult:
    """Response of a single file upload."""
    success: bool
    filename: str = ""
    path: str = ""
    upload_dir: str = ""
    original_filename: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploadResult':
        return cls(
            success=bool(data.get('success', False)),
            filename=data.get('filename') or "",
            path=data.get('path') or "",
            upload_dir=data.get('upload_dir') or "",
            original_filename=data.get('original_filename') or "",
        )


@dataclass
class InvoicePayload:
    """Invoice as sent to the conflict check and the batch write."""
    invoice_number: str
    invoice_date: str  # YYYY-MM-DD, may be empty when not extracted
    currency: str
    subtotal: float
    vat_amount: float
    total: float
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    due_date: Optional[str] = None
    payment_terms: Optional[str] = None
    expense_account_id: Optional[int] = None
    deductible_pct: Optional[float] = None
    doc_name: Optional[str] = None
    doc_full_path: Optional[str] = None
    document_type: Optional[str] = None
    status: Optional[str] = None
    ocr_confidence: Optional[float] = None
    ocr_language: Optional[str] = None
    ocr_metadata: Optional[Dict[str, Any]] = None
    needs_review: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (None values dropped)."""
        data = {k: v for k, v in asdict(self).items() if v is not None}
        return _sanitize_decimals(data)


@dataclass
class InvoiceBatchRequest:
    """Body of both the conflict check and the batch write."""
    customer_id: int
    invoices: List[InvoicePayload] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'customer_id': self.customer_id,
            'invoices': [inv.to_dict() for inv in self.invoices],
        }


@dataclass
class InvoiceBatchResponse:
    """Response of the batch write."""
    results: List[CommitRowResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InvoiceBatchResponse':
        return cls(results=[CommitRowResult.from_dict(r) for r in data.get('results') or []])
