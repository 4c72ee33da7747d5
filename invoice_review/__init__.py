"""Invoice review client: paged extraction, field reconciliation and conflict-aware commit."""

__version__ = "0.1.0"
