"""Excel exports."""

from .commit_summary import create_commit_summary
from .excel_export import export_session_to_excel, write_export_bytes

__all__ = ['create_commit_summary', 'export_session_to_excel', 'write_export_bytes']
