"""Resolve a user selection (local files or an existing path) to one extraction path."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..api.schemas import UploadResult

logger = logging.getLogger(__name__)

UPLOAD_STATUSES = ("pending", "uploading", "completed", "error")


@dataclass
class UploadProgress:
    """Upload state of one selected file."""
    filename: str
    status: str = "pending"
    error: Optional[str] = None

    def __post_init__(self):
        if self.status not in UPLOAD_STATUSES:
            raise ValueError(f"status must be one of {UPLOAD_STATUSES}, got '{self.status}'")


@dataclass
class Selection:
    """What the user picked: files to stage, or a path the service can already read.

    Exactly one of files/path is set.
    """
    files: List[Path] = field(default_factory=list)
    path: Optional[str] = None

    def __post_init__(self):
        if self.files and self.path:
            raise ValueError("Selection takes files or a path, not both")
        if not self.files and not self.path:
            raise ValueError("No files or path provided")
        self.files = [Path(f) for f in self.files]

    @classmethod
    def from_files(cls, files: Sequence[Path]) -> 'Selection':
        return cls(files=list(files))

    @classmethod
    def from_path(cls, path: str) -> 'Selection':
        return cls(path=path)

    @property
    def is_upload(self) -> bool:
        return bool(self.files)


def resolve_selection(
    selection: Selection,
    upload_file: Optional[Callable[[Path], UploadResult]] = None,
    progress_callback: Optional[Callable[[List[UploadProgress]], None]] = None
) -> str:
    """Resolve a selection to the single path given to every extraction page.

    Files are uploaded one by one, in selection order. The first failed
    upload aborts the whole selection and its error is raised.

    Args:
        selection: Files to stage or an existing path
        upload_file: Upload collaborator (e.g. ServiceClient.upload_file);
            required when the selection has files
        progress_callback: Called with the full progress list after every change

    Returns:
        Canonical path (the upload directory for staged files)

    Raises:
        ValueError: If files are given without an uploader, or the uploads
            landed in different directories
    """
    if not selection.is_upload:
        return selection.path

    if upload_file is None:
        raise ValueError("An upload collaborator is required to stage files")

    progress = [UploadProgress(filename=f.name) for f in selection.files]

    def _report():
        if progress_callback:
            progress_callback(progress)

    _report()

    upload_dirs = []
    for item, file_path in zip(progress, selection.files):
        item.status = "uploading"
        _report()
        try:
            result = upload_file(file_path)
        except Exception as e:
            item.status = "error"
            item.error = str(e) or "Upload failed"
            _report()
            logger.error(f"Upload of {file_path.name} failed: {e}")
            raise
        item.status = "completed"
        _report()
        upload_dirs.append(result.upload_dir or str(Path(result.path).parent))

    distinct = sorted(set(upload_dirs))
    if len(distinct) != 1:
        raise ValueError(f"Uploads landed in {len(distinct)} directories: {', '.join(distinct)}")

    logger.info(f"Staged {len(selection.files)} file(s) in {distinct[0]}")
    return distinct[0]
