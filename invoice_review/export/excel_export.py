"""Excel export of the records under review."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from openpyxl.styles.numbers import FORMAT_NUMBER_00, FORMAT_PERCENTAGE_00

from ..models.document_record import DocumentRecord
from ..models.session import Session
from ..pipeline.confidence import confidence_level, document_confidence, low_confidence_fields
from ..pipeline.reconcile import check_invariant
from ..profiles import ReviewProfile

logger = logging.getLogger(__name__)

SHEET_NAME = "Invoices"
MONEY_COLUMNS = ("Subtotal", "VAT", "Total")
PERCENT_COLUMNS = ("Confidence",)


def _excel_safe_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """Convert timezone-aware datetimes to strings so Excel export does not raise."""
    df = df.copy()
    for col in df.columns:
        if pd.api.types.is_datetime64_any_dtype(df[col]) and getattr(df[col].dtype, "tz", None) is not None:
            df[col] = df[col].dt.strftime("%Y-%m-%d %H:%M:%S")
    return df


def _record_row(
    index: int,
    record: DocumentRecord,
    persisted_id: Any,
    profile: Optional[ReviewProfile]
) -> Dict[str, Any]:
    score = document_confidence(record)
    return {
        "Index": index,
        "File": record.file_name,
        "Supplier": record.supplier_name or "",
        "Invoice Number": record.invoice_number or "",
        "Invoice Date": (record.invoice_date or "")[:10],
        "Due Date": (record.due_date or "")[:10],
        "Currency": record.currency or "",
        "Subtotal": record.subtotal,
        "VAT": record.tax_amount,
        "Total": record.total,
        "Balanced": "YES" if check_invariant(record) else "NO",
        "Type": record.document_type,
        "Status": record.status,
        "Language": record.language,
        "Confidence": score,
        "Confidence Level": confidence_level(score, profile),
        "Low Confidence Fields": ", ".join(low_confidence_fields(record, profile)),
        "Saved As": persisted_id if persisted_id is not None else "",
    }


def export_session_to_excel(
    session: Session,
    output_path: Union[str, Path],
    profile: Optional[ReviewProfile] = None
) -> Path:
    """Export session records to Excel, one row per document.

    Args:
        session: Session to export
        output_path: Path to output .xlsx file
        profile: Review profile for the confidence columns

    Returns:
        Path to created Excel file

    Raises:
        ValueError: If the session has no records
    """
    if session.is_empty:
        raise ValueError("Cannot export an empty session")

    rows: List[Dict[str, Any]] = [
        _record_row(i, record, session.persisted_ids.get(i), profile)
        for i, record in enumerate(session.records)
    ]
    df = _excel_safe_dataframe(pd.DataFrame(rows))

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)
        worksheet = writer.sheets[SHEET_NAME]

        # Column indices by name (robust when columns are added)
        money_idx = [df.columns.get_loc(c) for c in MONEY_COLUMNS]
        percent_idx = [df.columns.get_loc(c) for c in PERCENT_COLUMNS]

        for row in worksheet.iter_rows(min_row=2, max_row=worksheet.max_row):
            for i in money_idx:
                if isinstance(row[i].value, (int, float)):
                    row[i].number_format = FORMAT_NUMBER_00
            for i in percent_idx:
                if isinstance(row[i].value, (int, float)):
                    row[i].number_format = FORMAT_PERCENTAGE_00

    logger.info(f"Exported {len(rows)} record(s) to {output_path}")
    return output_path


def write_export_bytes(content: bytes, output_path: Union[str, Path]) -> Path:
    """Write a server-side export (raw .xlsx bytes) to a file.

    Raises:
        ValueError: If the export is empty
    """
    if not content:
        raise ValueError("Export is empty")
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(content)
    logger.info(f"Saved export ({len(content)} bytes) to {output_path}")
    return output_path
