"""Unit tests for selection resolution."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from invoice_review.api.client import ServiceAPIError
from invoice_review.api.schemas import UploadResult
from invoice_review.pipeline.upload import Selection, UploadProgress, resolve_selection


class TestSelection:
    """Test Selection validation."""

    def test_path(self):
        selection = Selection.from_path("/data/in")
        assert not selection.is_upload

    def test_files(self):
        selection = Selection.from_files(["a.pdf"])
        assert selection.is_upload
        assert selection.files == [Path("a.pdf")]

    def test_needs_exactly_one_source(self):
        with pytest.raises(ValueError):
            Selection()
        with pytest.raises(ValueError):
            Selection(files=[Path("a.pdf")], path="/data")

    def test_upload_status_validated(self):
        with pytest.raises(ValueError):
            UploadProgress(filename="a.pdf", status="done")


class TestResolveSelection:
    """Test resolving a selection to one extraction path."""

    def test_path_used_as_is(self):
        upload = Mock()
        assert resolve_selection(Selection.from_path("/data/in"), upload) == "/data/in"
        upload.assert_not_called()

    def test_files_uploaded_in_order(self):
        upload = Mock(side_effect=[
            UploadResult(success=True, path="/srv/up/7/a.pdf", upload_dir="/srv/up/7"),
            UploadResult(success=True, path="/srv/up/7/b.pdf"),
        ])
        snapshots = []

        path = resolve_selection(
            Selection.from_files([Path("a.pdf"), Path("b.pdf")]),
            upload,
            lambda states: snapshots.append([s.status for s in states]),
        )

        assert path == "/srv/up/7"
        assert [c.args[0] for c in upload.call_args_list] == [Path("a.pdf"), Path("b.pdf")]
        assert snapshots[0] == ["pending", "pending"]
        assert snapshots[-1] == ["completed", "completed"]

    def test_failed_upload_aborts(self):
        upload = Mock(side_effect=[
            UploadResult(success=True, path="/srv/up/7/a.pdf", upload_dir="/srv/up/7"),
            ServiceAPIError("Upload failed: b.pdf"),
        ])
        snapshots = []

        with pytest.raises(ServiceAPIError):
            resolve_selection(
                Selection.from_files([Path("a.pdf"), Path("b.pdf"), Path("c.pdf")]),
                upload,
                lambda states: snapshots.append([(s.status, s.error) for s in states]),
            )

        assert upload.call_count == 2
        assert snapshots[-1] == [
            ("completed", None), ("error", "Upload failed: b.pdf"), ("pending", None),
        ]

    def test_uploads_in_different_directories(self):
        upload = Mock(side_effect=[
            UploadResult(success=True, upload_dir="/srv/up/1"),
            UploadResult(success=True, upload_dir="/srv/up/2"),
        ])
        with pytest.raises(ValueError, match="2 directories"):
            resolve_selection(Selection.from_files([Path("a.pdf"), Path("b.pdf")]), upload)

    def test_files_need_uploader(self):
        with pytest.raises(ValueError):
            resolve_selection(Selection.from_files([Path("a.pdf")]))
