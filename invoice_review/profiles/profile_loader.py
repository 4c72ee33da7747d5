"""Profile loader for review thresholds and extraction limits."""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class ReviewProfile:
    """Configuration profile for review behavior.

    Attributes:
        name: Profile name (YAML file stem)
        description: Free text
        confidence: Thresholds {"high": 0.9, "medium": 0.7}
        extraction: {"page_size_hint": 5, "max_pages": None}
        preview: {"base_width": 600}
    """
    name: str
    description: str = ""
    confidence: Dict[str, float] = field(default_factory=dict)
    extraction: Dict[str, Any] = field(default_factory=dict)
    preview: Dict[str, Any] = field(default_factory=dict)

    @property
    def high_confidence(self) -> float:
        return float(self.confidence.get('high', 0.9))

    @property
    def medium_confidence(self) -> float:
        return float(self.confidence.get('medium', 0.7))

    @property
    def page_size_hint(self) -> int:
        return int(self.extraction.get('page_size_hint') or 5)

    @property
    def max_pages(self) -> Optional[int]:
        value = self.extraction.get('max_pages')
        return int(value) if value else None

    @property
    def preview_base_width(self) -> float:
        return float(self.preview.get('base_width') or 600)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReviewProfile':
        """Create ReviewProfile from dictionary."""
        profile = cls(
            name=data.get('name', 'default'),
            description=data.get('description', ''),
            confidence=data.get('confidence') or {},
            extraction=data.get('extraction') or {},
            preview=data.get('preview') or {},
        )
        if profile.medium_confidence > profile.high_confidence:
            raise ValueError(
                f"confidence.medium ({profile.medium_confidence}) must not exceed "
                f"confidence.high ({profile.high_confidence})"
            )
        return profile

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'description': self.description,
            'confidence': self.confidence,
            'extraction': self.extraction,
            'preview': self.preview,
        }


def get_profiles_dir() -> Path:
    """Get directory containing profile YAML files.

    Returns:
        Path to configs/profiles under the project root
    """
    # invoice_review/profiles/profile_loader.py -> invoice_review/profiles -> invoice_review -> root
    project_root = Path(__file__).resolve().parent.parent.parent
    return project_root / "configs" / "profiles"


def load_profile(profile_name: str = "default") -> ReviewProfile:
    """Load a review profile.

    Args:
        profile_name: Name of profile to load (without .yaml extension)

    Returns:
        ReviewProfile object

    Raises:
        FileNotFoundError: If profile file doesn't exist
        ValueError: If profile file is invalid
    """
    profile_path = get_profiles_dir() / f"{profile_name}.yaml"

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_name} (expected at {profile_path})")

    try:
        with open(profile_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in profile {profile_name}: {e}") from e

    if not data or not isinstance(data, dict):
        raise ValueError(f"Profile file is empty or malformed: {profile_path}")

    return ReviewProfile.from_dict(data)


def list_available_profiles() -> list[str]:
    """List all available profile names (without .yaml extension)."""
    profiles_dir = get_profiles_dir()

    if not profiles_dir.exists():
        return ["default"]

    profiles = [profile_file.stem for profile_file in profiles_dir.glob("*.yaml")]
    return sorted(profiles) if profiles else ["default"]


def get_default_profile() -> ReviewProfile:
    """Get default profile (always available)."""
    try:
        return load_profile("default")
    except FileNotFoundError:
        return ReviewProfile(
            name="default",
            description="Default configuration",
            confidence={'high': 0.9, 'medium': 0.7},
            extraction={'page_size_hint': 5, 'max_pages': None},
            preview={'base_width': 600},
        )
