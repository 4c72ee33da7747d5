"""Extraction, reconciliation and review helpers."""

from .money import round2, to_money, is_finite_number

__all__ = ["round2", "to_money", "is_finite_number"]
