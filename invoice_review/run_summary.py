"""Extraction run summary and the pending-files notice."""

import json
import logging
import math
import os
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

RUN_STATUSES = ("RUNNING", "COMPLETED", "FAILED", "CANCELLED")


def _sanitize_for_json(obj: Any) -> Any:
    """Recursively replace NaN/Inf so JSON round-trip works."""
    if isinstance(obj, dict):
        return {k: _sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_sanitize_for_json(v) for v in obj]
    if isinstance(obj, float):
        return None if (math.isnan(obj) or math.isinf(obj)) else obj
    return obj


def _atomic_write_json(path: Path, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


@dataclass
class RunSummary:
    """Summary of one extraction run."""
    run_id: str
    input_path: str
    started_at: str
    finished_at: Optional[str] = None
    status: str = "RUNNING"

    # Statistics
    total_files: int = 0
    processed_files: int = 0
    record_count: int = 0
    requests_made: int = 0

    # Details
    errors: List[str] = field(default_factory=list)  # Page-level errors
    failure: Optional[str] = None  # Transport/protocol error that ended the run
    vat_rate: Optional[float] = None

    @classmethod
    def create(cls, input_path: str) -> 'RunSummary':
        """Create a new run summary."""
        return cls(
            run_id=str(uuid.uuid4()),
            input_path=str(input_path),
            started_at=datetime.now().isoformat()
        )

    def complete(self, status: str = "COMPLETED", failure: Optional[str] = None):
        """Mark run as finished."""
        if status not in RUN_STATUSES:
            raise ValueError(f"status must be one of {RUN_STATUSES}, got '{status}'")
        self.status = status
        self.failure = failure
        self.finished_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return _sanitize_for_json(asdict(self))

    def save(self, path: Path):
        """Save summary to JSON file (atomic write to avoid truncated file on interrupt)."""
        _atomic_write_json(path, self.to_dict())


def save_pending_notice(path: Path, pending_count: int) -> None:
    """Remember how many files were still pending when the run stopped.

    The snapshot is only a notice for the user on the next start; it cannot
    resume the run.
    """
    if pending_count <= 0:
        clear_pending_notice(path)
        return
    _atomic_write_json(path, {
        'pending_count': pending_count,
        'saved_at': datetime.now().isoformat(),
    })


def load_pending_notice(path: Path) -> Optional[Dict[str, Any]]:
    """Load the pending notice, or None if there is none (or it is unreadable)."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable pending notice {path}: {e}")
        return None
    if not isinstance(data, dict) or not data.get('pending_count'):
        return None
    return data


def clear_pending_notice(path: Path) -> None:
    """Remove the pending notice if present."""
    path = Path(path)
    if path.exists():
        path.unlink()
