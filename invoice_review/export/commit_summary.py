"""Commit summary Excel export."""

from pathlib import Path

import pandas as pd

from ..models.commit_result import CommitSummary


def _row_status(row) -> str:
    if row.error:
        return "ERROR"
    if row.conflict:
        return "CONFLICT"
    if row.inserted_id is None:
        return "NOT SAVED"
    return "UPDATED" if row.is_update else "INSERTED"


def create_commit_summary(summary: CommitSummary, output_dir: Path) -> Path:
    """Create commit_summary.xlsx with one row per committed invoice.

    Args:
        summary: Result of a commit
        output_dir: Directory where commit_summary.xlsx should be created

    Returns:
        Path to created Excel file

    Excel columns:
    - Row: Position in the submitted batch
    - Invoice Number: Invoice number as submitted
    - Status: INSERTED/UPDATED/CONFLICT/ERROR/NOT SAVED
    - Invoice ID: Server id (if saved)
    - Supplier ID: Server supplier id (if known)
    - New Supplier: YES if the write created the supplier
    - Error: Error message (if any)

    Conflicts found by the pre-commit check (nothing written) are listed
    with status CONFLICT and the conflict message.
    """
    rows = []

    for row in summary.rows:
        rows.append({
            "Row": row.index,
            "Invoice Number": row.invoice_number,
            "Status": _row_status(row),
            "Invoice ID": row.inserted_id if row.inserted_id is not None else "",
            "Supplier ID": row.supplier_id if row.supplier_id is not None else "",
            "New Supplier": "YES" if row.supplier_created else "",
            "Error": row.error or "",
        })

    if summary.blocked:
        for conflict in summary.conflict_report.conflicts:
            rows.append({
                "Row": "",
                "Invoice Number": conflict.invoice_number,
                "Status": "CONFLICT",
                "Invoice ID": "",
                "Supplier ID": "",
                "New Supplier": "",
                "Error": conflict.message or conflict.type,
            })

    df = pd.DataFrame(rows, columns=[
        "Row", "Invoice Number", "Status", "Invoice ID", "Supplier ID", "New Supplier", "Error"
    ])

    # Problems first, then saved rows
    status_order = {"ERROR": 0, "CONFLICT": 1, "NOT SAVED": 2, "UPDATED": 3, "INSERTED": 4}
    df["_status_order"] = df["Status"].map(status_order)
    df = df.sort_values(["_status_order", "Invoice Number"], kind="stable")
    df = df.drop(columns=["_status_order"])

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    excel_path = output_dir / "commit_summary.xlsx"
    df.to_excel(excel_path, index=False, engine="openpyxl")

    return excel_path
