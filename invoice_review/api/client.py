"""HTTP client for the invoice extraction and persistence service."""

import logging
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import urljoin

import requests

from .models import Customer, ExportInvoicesRequest, InvoiceReportFilters, InvoiceReportRecord
from .schemas import (
    ExtractionPage,
    ExtractionRequest,
    InvoiceBatchRequest,
    InvoiceBatchResponse,
    UploadResult,
)
from ..models.conflict_report import ConflictReport

logger = logging.getLogger(__name__)

EXTRACTION_PATHS = {
    'llm': 'process/llm',
    'model': 'process',
}


class ServiceClientError(Exception):
    """Base exception for service client errors."""
    pass


class ServiceConnectionError(ServiceClientError):
    """Raised when the request never completed (timeout, connection failure)."""
    pass


class ServiceAPIError(ServiceClientError):
    """Raised when the service answers with an error status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ServiceClient:
    """Client for the invoice service.

    Every method is a single round-trip. Nothing is retried: a failure is
    raised to the caller, and retrying is left to the user.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        extraction_mode: str = 'llm'
    ):
        """Initialize service client.

        Args:
            endpoint: Base URL of the service (e.g., "http://localhost:8000")
            api_key: Optional API key for authentication
            timeout: Request timeout in seconds
            extraction_mode: "llm" (OCR + language model) or "model" (prebuilt invoice model)
        """
        if extraction_mode not in EXTRACTION_PATHS:
            raise ValueError(
                f"extraction_mode must be one of {sorted(EXTRACTION_PATHS)}, got '{extraction_mode}'"
            )
        self.endpoint = endpoint.rstrip('/') + '/'
        self.api_key = api_key
        self.timeout = timeout
        self.extraction_mode = extraction_mode
        self.session = requests.Session()

        # Content-Type is set per request (json vs multipart)
        headers = {'Accept': 'application/json'}
        if api_key:
            headers['Authorization'] = f'Bearer {api_key}'
        self.session.headers.update(headers)

    @classmethod
    def from_config(cls) -> 'ServiceClient':
        """Create a client from environment/saved configuration."""
        from ..config import get_api_url, get_api_key, get_api_timeout, get_extraction_mode
        return cls(
            get_api_url(),
            api_key=get_api_key(),
            timeout=get_api_timeout(),
            extraction_mode=get_extraction_mode(),
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = urljoin(self.endpoint, path)
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.exceptions.Timeout as e:
            raise ServiceConnectionError(f"Request to {url} timed out after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise ServiceConnectionError(f"Failed to connect to {url}: {e}") from e
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            error_msg = f"API error: {status_code}"
            try:
                error_data = e.response.json()
                error_msg += f" - {error_data.get('detail') or error_data.get('error') or 'Unknown error'}"
            except (ValueError, AttributeError):
                error_msg += f" - {e.response.text[:200] if e.response is not None else ''}"
            raise ServiceAPIError(error_msg, status_code=status_code) from e
        except requests.exceptions.RequestException as e:
            raise ServiceClientError(f"Unexpected error: {e}") from e

    def _json(self, method: str, path: str, **kwargs) -> Any:
        response = self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ServiceAPIError(
                f"Invalid JSON from {path}: {response.text[:200]}",
                status_code=response.status_code
            ) from e

    def upload_file(self, file_path: Path) -> UploadResult:
        """Stage one local file on the service.

        Args:
            file_path: Local file to upload

        Returns:
            UploadResult with the stored path and upload directory

        Raises:
            ServiceAPIError: If the service reports success=False
        """
        file_path = Path(file_path)
        with open(file_path, 'rb') as f:
            data = self._json('POST', 'upload', files={'file': (file_path.name, f)})

        result = UploadResult.from_dict(data)
        if not result.success:
            raise ServiceAPIError(f"Upload failed: {file_path.name}")
        return result

    def extract_page(self, request: ExtractionRequest) -> ExtractionPage:
        """Fetch one page of extraction results.

        Args:
            request: Path and starting point of the page

        Returns:
            ExtractionPage with records, errors and cursor counts
        """
        path = EXTRACTION_PATHS[self.extraction_mode]
        data = self._json('POST', path, json=request.to_dict())
        return ExtractionPage.from_dict(data)

    def check_conflicts(self, request: InvoiceBatchRequest) -> ConflictReport:
        """Ask the service whether writing the candidates would conflict."""
        data = self._json('POST', 'invoices/check-conflicts', json=request.to_dict())
        return ConflictReport.from_dict(data)

    def save_invoices_batch(self, request: InvoiceBatchRequest) -> InvoiceBatchResponse:
        """Write invoices; the service upserts rows it already holds."""
        data = self._json('POST', 'invoices/batch', json=request.to_dict())
        return InvoiceBatchResponse.from_dict(data)

    def fetch_customers(self) -> List[Customer]:
        """List active customers."""
        data = self._json('GET', 'customers')
        return [Customer.model_validate(c) for c in data]

    def fetch_invoices_report(self, filters: InvoiceReportFilters) -> List[InvoiceReportRecord]:
        """List persisted invoices matching the filters."""
        data = self._json('GET', 'invoices/report', params=filters.to_params())
        return [InvoiceReportRecord.model_validate(r) for r in data]

    def export_invoices(self, request: ExportInvoicesRequest) -> bytes:
        """Download the server-side Excel export.

        Returns:
            Raw .xlsx bytes
        """
        response = self._request('POST', 'invoices/export', json=request.to_body())
        return response.content

    def health_check(self) -> bool:
        """Check if the service is available.

        Returns:
            True if service is available, False otherwise
        """
        url = urljoin(self.endpoint, 'healthz')
        try:
            response = self.session.get(url, timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.debug(f"Health check failed: {e}")
            return False

