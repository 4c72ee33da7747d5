"""API models for customers and the saved-invoices report."""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

REPORT_STATUSES = ("pending", "approved", "exported", "rejected")


class Customer(BaseModel):
    """Customer (owner) that committed invoices belong to."""

    id: int
    name: str
    is_active: bool = True


class InvoiceReportFilters(BaseModel):
    """Query parameters for the invoices report."""

    customer_id: int = Field(..., ge=1, description="Customer whose invoices are listed")
    start_date: Optional[date] = Field(None, description="Earliest invoice date (inclusive)")
    end_date: Optional[date] = Field(None, description="Latest invoice date (inclusive)")
    statuses: List[str] = Field(default_factory=list, description="Status filter, empty for all")

    @field_validator("statuses")
    @classmethod
    def _known_statuses(cls, value: List[str]) -> List[str]:
        unknown = [s for s in value if s not in REPORT_STATUSES]
        if unknown:
            raise ValueError(f"unknown status filter(s): {', '.join(unknown)}")
        return value

    def to_params(self) -> Dict[str, Any]:
        """Query string parameters; statuses are sent comma-separated."""
        params: Dict[str, Any] = {"customer_id": self.customer_id}
        if self.start_date:
            params["start_date"] = self.start_date.isoformat()
        if self.end_date:
            params["end_date"] = self.end_date.isoformat()
        if self.statuses:
            params["status"] = ",".join(self.statuses)
        return params


class InvoiceReportRecord(BaseModel):
    """Persisted invoice as listed in the report."""

    id: int
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    supplier_name: Optional[str] = None
    currency: Optional[str] = None
    subtotal: Optional[float] = None
    vat_amount: Optional[float] = None
    total: Optional[float] = None
    status: Optional[str] = None
    doc_name: Optional[str] = None


class ExportInvoicesRequest(InvoiceReportFilters):
    """Body of the server-side Excel export (report filters plus an optional selection)."""

    invoice_ids: Optional[List[int]] = Field(None, description="Explicit selection, None for all matching")

    def to_body(self) -> Dict[str, Any]:
        body = self.to_params()
        if self.invoice_ids:
            body["invoice_ids"] = list(self.invoice_ids)
        return body
