"""Confidence levels for reviewer attention."""

from typing import Dict, List, Optional

from ..models.document_record import DocumentRecord
from ..profiles import ReviewProfile

# Built-in thresholds (high 0.9, medium 0.7) when no profile is passed
_BUILTIN = ReviewProfile(name="default")


def confidence_level(score: Optional[float], profile: Optional[ReviewProfile] = None) -> str:
    """Classify a confidence score.

    Args:
        score: Confidence 0.0-1.0, or None
        profile: Review profile with the high/medium thresholds

    Returns:
        "high", "medium", "low", or "none" when there is no score
    """
    if score is None:
        return "none"
    profile = profile or _BUILTIN
    if score >= profile.high_confidence:
        return "high"
    if score >= profile.medium_confidence:
        return "medium"
    return "low"


def average_confidence(field_confidence: Optional[Dict[str, float]]) -> Optional[float]:
    """Mean of per-field confidences rounded to 3 decimals, or None if there are none."""
    if not field_confidence:
        return None
    values = [v for v in field_confidence.values() if isinstance(v, (int, float))]
    if not values:
        return None
    return round(sum(values) / len(values), 3)


def document_confidence(record: DocumentRecord) -> Optional[float]:
    """Overall confidence of a record, falling back to the mean of its field confidences."""
    if record.confidence is not None:
        return record.confidence
    return average_confidence(record.field_confidence)


def low_confidence_fields(record: DocumentRecord, profile: Optional[ReviewProfile] = None) -> List[str]:
    """Fields at the "low" level (below the medium threshold), in record order."""
    threshold = (profile or _BUILTIN).medium_confidence
    return [name for name, score in record.field_confidence.items() if score < threshold]
