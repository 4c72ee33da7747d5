"""Pagination cursor for one extraction run."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..api.schemas import ExtractionPage


class ExtractionProtocolError(Exception):
    """Raised when the extraction service breaks the paging contract.

    A page that covers no files while files remain, or a run that needs
    more pages than the budget allows, would otherwise loop forever.
    """
    pass


@dataclass
class BatchCursor:
    """Tracks how many of how many discovered files have been retrieved.

    Attributes:
        starting_point: 0-based index into the discovered file set
        total_files: Total reported by the first page (0 = unknown)
        errors: Page-level error strings in arrival order
        pages_fetched: Number of pages applied so far
        max_pages: Page budget; None means total_files + 1 once known
        page_size_hint: Files the service usually covers per page (progress text only)
    """

    starting_point: int = 0
    total_files: int = 0
    errors: List[str] = field(default_factory=list)
    pages_fetched: int = 0
    max_pages: Optional[int] = None
    page_size_hint: int = 5

    @property
    def total_known(self) -> bool:
        """True once the first page has latched the total."""
        return self.pages_fetched > 0

    @property
    def remaining(self) -> int:
        return max(self.total_files - self.starting_point, 0)

    def needs_fetch(self) -> bool:
        """Whether another page must be requested.

        Always True before the first page. A total of 0 after the first
        page means nothing was discovered and the run ends.
        """
        if not self.total_known:
            return True
        return self.starting_point < self.total_files

    def page_budget(self) -> Optional[int]:
        """Maximum number of pages for this run (None until the total is known)."""
        if self.max_pages is not None:
            return self.max_pages
        if not self.total_known:
            return None
        # Each page must cover at least one file, plus the discovery page
        return self.total_files + 1

    def advance(self, page: ExtractionPage) -> None:
        """Apply one page to the cursor.

        The total is latched from the first page only; the server is the
        sole source of truth for it and later pages cannot change it.

        Raises:
            ExtractionProtocolError: If the page covers no files while files
                remain, or the page budget is exhausted
        """
        if not self.total_known:
            self.total_files = max(int(page.total_files), 0)

        self.pages_fetched += 1
        self.errors.extend(page.errors)

        if page.files_handled < 0:
            raise ExtractionProtocolError(
                f"files_handled must be >= 0, got {page.files_handled} "
                f"at starting_point {self.starting_point}"
            )

        if page.files_handled == 0 and self.starting_point < self.total_files:
            raise ExtractionProtocolError(
                f"Page {self.pages_fetched} covered no files at starting_point "
                f"{self.starting_point} of {self.total_files}"
            )

        self.starting_point += page.files_handled

        budget = self.page_budget()
        if budget is not None and self.pages_fetched >= budget and self.needs_fetch():
            raise ExtractionProtocolError(
                f"Page budget of {budget} exhausted at {self.starting_point} of {self.total_files} files"
            )

    def progress_message(self) -> str:
        """User-facing progress text for the next page."""
        if not self.total_known:
            return "Discovering files..."
        if not self.needs_fetch():
            return f"Completed processing {self.total_files} files"
        first = min(self.starting_point + 1, self.total_files)
        last = min(self.starting_point + self.page_size_hint, self.total_files)
        return f"Processing {first} - {last} of {self.total_files} files"
