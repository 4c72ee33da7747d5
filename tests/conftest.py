"""Shared fixtures."""

import pytest

from invoice_review.models.document_record import DocumentRecord


@pytest.fixture
def make_record():
    """Factory for DocumentRecord with sensible defaults."""
    def _make(name="A", **kwargs):
        kwargs.setdefault("file_name", f"{name}.pdf")
        kwargs.setdefault("source_path", f"/uploads/{name}.pdf")
        kwargs.setdefault("document_type", "invoice")
        return DocumentRecord(**kwargs)
    return _make
