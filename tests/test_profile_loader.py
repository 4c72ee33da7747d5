"""Unit tests for profile loader."""

import pytest
import yaml
from unittest.mock import patch

from invoice_review.pipeline.confidence import confidence_level
from invoice_review.profiles import (
    ReviewProfile,
    get_default_profile,
    list_available_profiles,
    load_profile,
)


class TestReviewProfile:
    """Test ReviewProfile dataclass."""

    def test_defaults_when_sections_missing(self):
        profile = ReviewProfile(name="bare")
        assert profile.high_confidence == 0.9
        assert profile.medium_confidence == 0.7
        assert profile.page_size_hint == 5
        assert profile.max_pages is None
        assert profile.preview_base_width == 600

    def test_from_dict(self):
        profile = ReviewProfile.from_dict({
            "name": "test",
            "confidence": {"high": 0.8, "medium": 0.6},
            "extraction": {"page_size_hint": 10, "max_pages": 50},
        })
        assert profile.name == "test"
        assert profile.high_confidence == 0.8
        assert profile.page_size_hint == 10
        assert profile.max_pages == 50

    def test_medium_above_high_rejected(self):
        with pytest.raises(ValueError):
            ReviewProfile.from_dict({"confidence": {"high": 0.6, "medium": 0.8}})

    def test_to_dict_round_trip(self):
        profile = ReviewProfile(name="x", confidence={"high": 0.8, "medium": 0.5})
        assert ReviewProfile.from_dict(profile.to_dict()) == profile


class TestLoadProfile:
    """Test loading YAML profiles."""

    def test_shipped_default_profile(self):
        profile = load_profile("default")
        assert profile.name == "default"
        assert profile.high_confidence == 0.9
        assert profile.max_pages is None

    def test_shipped_profiles_listed(self):
        assert {"default", "strict"} <= set(list_available_profiles())

    def test_missing_profile(self, tmp_path):
        with patch('invoice_review.profiles.profile_loader.get_profiles_dir', return_value=tmp_path):
            with pytest.raises(FileNotFoundError):
                load_profile("nope")

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("confidence: [unclosed", encoding="utf-8")
        with patch('invoice_review.profiles.profile_loader.get_profiles_dir', return_value=tmp_path):
            with pytest.raises(ValueError, match="Invalid YAML"):
                load_profile("broken")

    def test_empty_file(self, tmp_path):
        (tmp_path / "empty.yaml").write_text("", encoding="utf-8")
        with patch('invoice_review.profiles.profile_loader.get_profiles_dir', return_value=tmp_path):
            with pytest.raises(ValueError, match="empty"):
                load_profile("empty")

    def test_custom_profile(self, tmp_path):
        data = {"name": "custom", "confidence": {"high": 0.99, "medium": 0.9}}
        (tmp_path / "custom.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
        with patch('invoice_review.profiles.profile_loader.get_profiles_dir', return_value=tmp_path):
            assert load_profile("custom").medium_confidence == 0.9
            assert list_available_profiles() == ["custom"]

    def test_default_profile_without_files(self, tmp_path):
        with patch('invoice_review.profiles.profile_loader.get_profiles_dir', return_value=tmp_path):
            profile = get_default_profile()
            assert list_available_profiles() == ["default"]
        assert profile.name == "default"
        assert profile.high_confidence == 0.9


class TestProfileThresholds:
    """Test that a loaded profile drives the confidence levels."""

    def test_strict_profile_changes_thresholds(self):
        strict = load_profile("strict")
        assert strict.max_pages == 200
        assert confidence_level(0.9) == "high"
        assert confidence_level(0.9, strict) == "medium"
        assert confidence_level(0.9, load_profile("default")) == "high"

    def test_unknown_profile(self):
        with pytest.raises(FileNotFoundError):
            load_profile("does-not-exist")
