"""Paged extraction: drives the fetch loop against the extraction service."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from ..api.schemas import ExtractionPage, ExtractionRequest, UploadResult
from ..models.document_record import DocumentRecord
from ..models.session import Session
from ..run_summary import RunSummary
from .batch_cursor import BatchCursor, ExtractionProtocolError
from .money import is_finite_number
from .upload import Selection, UploadProgress, resolve_selection

logger = logging.getLogger(__name__)

OUTCOME_STATES = ("completed", "failed", "cancelled")


class ExtractionCancelled(Exception):
    """Raised inside iter_pages when the cancel token is set before a page request."""
    pass


class CancelToken:
    """Cancellation flag checked before each page request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ExtractionProgress:
    """State after one page was applied.

    Attributes:
        page: The page as returned by the service
        page_number: 1-based page counter
        records_added: Records appended to the session from this page
        starting_point: Cursor position after the page
        total_files: Latched total
        error_count: Page-level errors so far
        message: Progress text for the next page (or completion text)
    """
    page: ExtractionPage
    page_number: int
    records_added: int
    starting_point: int
    total_files: int
    error_count: int
    message: str


@dataclass
class ExtractionOutcome:
    """Terminal result of an extraction run.

    Attributes:
        state: "completed", "failed" or "cancelled"
        records: Records accumulated by this run, in arrival order
        errors: Page-level errors (non-fatal)
        total_files: Latched total (0 if no page arrived)
        requests_made: Extraction requests issued
        files_handled: Files covered before the run stopped
        failure: The transport/protocol error that ended a failed run
        summary: Run summary
    """
    state: str
    records: List[DocumentRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total_files: int = 0
    requests_made: int = 0
    files_handled: int = 0
    failure: Optional[Exception] = None
    summary: Optional[RunSummary] = None

    def __post_init__(self):
        if self.state not in OUTCOME_STATES:
            raise ValueError(f"state must be one of {OUTCOME_STATES}, got '{self.state}'")

    @property
    def pending_files(self) -> int:
        """Discovered files not covered when the run stopped."""
        return max(self.total_files - self.files_handled, 0)


class ExtractionOrchestrator:
    """Drives paged extraction into a session.

    Pages are fetched strictly one after another: the starting point of
    page n+1 depends on files_handled of page n.
    """

    def __init__(
        self,
        session: Session,
        fetch_page: Callable[[ExtractionRequest], ExtractionPage],
        upload_file: Optional[Callable[[Path], UploadResult]] = None,
        cancel_token: Optional[CancelToken] = None,
        max_pages: Optional[int] = None,
        page_size_hint: int = 5,
        progress_callback: Optional[Callable[[str], None]] = None,
        upload_progress_callback: Optional[Callable[[List[UploadProgress]], None]] = None
    ):
        """Initialize orchestrator.

        Args:
            session: Session receiving the records
            fetch_page: Extraction collaborator (e.g. ServiceClient.extract_page)
            upload_file: Upload collaborator for file selections
            cancel_token: Checked before every page request
            max_pages: Page budget (default: total_files + 1)
            page_size_hint: Expected files per page, for progress text
            progress_callback: Receives progress text before each page
            upload_progress_callback: Receives per-file upload states
        """
        self.session = session
        self.fetch_page = fetch_page
        self.upload_file = upload_file
        self.cancel_token = cancel_token
        self.max_pages = max_pages
        self.page_size_hint = page_size_hint
        self.progress_callback = progress_callback
        self.upload_progress_callback = upload_progress_callback
        self.cursor: Optional[BatchCursor] = None
        self.requests_made = 0

    def _notify(self, message: str) -> None:
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message)

    def iter_pages(self, selection: Selection) -> Iterator[ExtractionProgress]:
        """Fetch pages lazily, one per iteration.

        Each call starts a fresh run with a new cursor. Records are appended
        to the session as each page arrives, so they stay in the session if
        a later page fails.

        Raises:
            ExtractionCancelled: If the cancel token is set before a page
            ExtractionProtocolError: If the service stops advancing the cursor
            Exception: Whatever the upload or fetch collaborator raises
        """
        path = resolve_selection(selection, self.upload_file, self.upload_progress_callback)
        cursor = BatchCursor(max_pages=self.max_pages, page_size_hint=self.page_size_hint)
        self.cursor = cursor
        self.requests_made = 0

        while cursor.needs_fetch():
            if self.cancel_token is not None and self.cancel_token.is_cancelled():
                raise ExtractionCancelled(
                    f"Cancelled at {cursor.starting_point} of {cursor.total_files} files"
                )

            self._notify(cursor.progress_message())
            request = ExtractionRequest(
                path=path,
                recursive=False,
                language_detection=True,
                starting_point=cursor.starting_point,
            )
            self.requests_made += 1
            page = self.fetch_page(request)

            added = self.session.append_records(page.results)
            if page.vat_rate is not None and is_finite_number(page.vat_rate) and page.vat_rate >= 0:
                self.session.tax_rate = float(page.vat_rate)

            if page.errors:
                logger.warning(f"Page {cursor.pages_fetched + 1} reported {len(page.errors)} error(s)")

            cursor.advance(page)

            yield ExtractionProgress(
                page=page,
                page_number=cursor.pages_fetched,
                records_added=added,
                starting_point=cursor.starting_point,
                total_files=cursor.total_files,
                error_count=len(cursor.errors),
                message=cursor.progress_message(),
            )

        self._notify(cursor.progress_message())

    def run(self, selection: Selection) -> ExtractionOutcome:
        """Run extraction to a terminal state.

        Returns:
            ExtractionOutcome. A transport or protocol failure gives state
            "failed" with the error in `failure`, kept apart from the
            page-level errors; records fetched before it stay in the session.
        """
        self.cursor = None
        self.requests_made = 0
        summary = RunSummary.create(selection.path or ", ".join(str(f) for f in selection.files))
        first_index = len(self.session)
        state = "completed"
        failure: Optional[Exception] = None

        try:
            for progress in self.iter_pages(selection):
                logger.debug(f"Page {progress.page_number}: {progress.records_added} record(s)")
        except ExtractionCancelled as e:
            logger.info(str(e))
            state = "cancelled"
        except ExtractionProtocolError as e:
            logger.error(f"Extraction protocol error: {e}")
            state = "failed"
            failure = e
        except Exception as e:
            logger.error(f"Extraction failed: {e}")
            state = "failed"
            failure = e

        records = list(self.session.records[first_index:])
        cursor = self.cursor or BatchCursor()
        requests_made = self.requests_made

        summary.total_files = cursor.total_files
        summary.processed_files = min(cursor.starting_point, cursor.total_files)
        summary.record_count = len(records)
        summary.requests_made = requests_made
        summary.errors = list(cursor.errors)
        summary.vat_rate = self.session.tax_rate
        summary.complete(
            {"completed": "COMPLETED", "failed": "FAILED", "cancelled": "CANCELLED"}[state],
            failure=str(failure) if failure is not None else None,
        )

        if cursor.errors:
            logger.warning(f"Processing completed with {len(cursor.errors)} error(s)")

        outcome = ExtractionOutcome(
            state=state,
            records=records,
            errors=list(cursor.errors),
            total_files=cursor.total_files,
            requests_made=requests_made,
            files_handled=min(cursor.starting_point, cursor.total_files),
            failure=failure,
            summary=summary,
        )
        return outcome
