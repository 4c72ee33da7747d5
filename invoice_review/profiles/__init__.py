"""Review profiles (confidence thresholds and extraction limits)."""

from .profile_loader import (
    ReviewProfile,
    load_profile,
    list_available_profiles,
    get_default_profile,
    get_profiles_dir,
)

__all__ = [
    'ReviewProfile',
    'load_profile',
    'list_available_profiles',
    'get_default_profile',
    'get_profiles_dir',
]
