"""CLI interface for reviewing extracted invoices and committing them."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..api.client import ServiceClient
from ..api.models import ExportInvoicesRequest, InvoiceReportFilters
from ..commit.committer import BatchCommitter
from ..commit.conflict_gate import ConflictGate
from ..config import (
    get_customer_id,
    get_default_currency,
    get_default_output_dir,
    get_default_vat_rate,
    get_pending_notice_path,
    get_session_path,
    get_total_edit_rule,
)
from ..export.commit_summary import create_commit_summary
from ..export.excel_export import export_session_to_excel, write_export_bytes
from ..models.commit_result import CommitSummary
from ..models.session import Session
from ..pipeline.confidence import confidence_level, document_confidence, low_confidence_fields
from ..pipeline.extraction import ExtractionOrchestrator
from ..pipeline.reconcile import FieldReconciler, check_invariant
from ..pipeline.upload import Selection, UploadProgress
from ..profiles import ReviewProfile, get_default_profile, load_profile
from ..run_summary import clear_pending_notice, load_pending_notice, save_pending_notice

logger = logging.getLogger(__name__)


def _money(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:,.2f}"


def _load_session() -> Session:
    return Session.load(get_session_path(), tax_rate=get_default_vat_rate())


def _profile(args: argparse.Namespace) -> ReviewProfile:
    if args.profile == "default":
        return get_default_profile()
    return load_profile(args.profile)


def _print_upload_progress(states: List[UploadProgress]) -> None:
    done = sum(1 for s in states if s.status == "completed")
    current = next((s for s in states if s.status == "uploading"), None)
    if current is not None:
        print(f"Uploading {current.filename} ({done}/{len(states)})")


def _print_commit_summary(summary: CommitSummary) -> None:
    if summary.blocked:
        print("Save blocked: conflicts found, nothing was written")
        for conflict in summary.conflict_report.conflicts:
            print(f"  {conflict.invoice_number}: {conflict.message or conflict.type}")
        return

    print(f"Saved: {summary.saved} (inserted {summary.inserted}, updated {summary.updated})")
    if summary.conflicted:
        print(f"Conflicts: {summary.conflicted}")
    if summary.errored:
        print(f"Errors: {summary.errored}")
        for row in summary.rows:
            if row.error:
                print(f"  {row.invoice_number or row.index}: {row.error}")
    if summary.cleared:
        print("All invoices saved, session cleared")


def _handle_extract(args: argparse.Namespace) -> int:
    profile = _profile(args)
    session = _load_session()
    if not args.append and not session.is_empty:
        unsaved = len(session.unpersisted_indices())
        if unsaved:
            logger.warning(f"Discarding {unsaved} unsaved record(s) from the previous session")
        session = Session(tax_rate=get_default_vat_rate(), customer_id=session.customer_id)

    if args.files:
        selection = Selection.from_files([Path(f) for f in args.files])
    else:
        selection = Selection.from_path(args.path)

    client = ServiceClient.from_config()
    orchestrator = ExtractionOrchestrator(
        session,
        client.extract_page,
        upload_file=client.upload_file,
        max_pages=args.max_pages if args.max_pages is not None else profile.max_pages,
        page_size_hint=profile.page_size_hint,
        upload_progress_callback=_print_upload_progress,
    )
    outcome = orchestrator.run(selection)

    session.save(get_session_path())
    outcome.summary.save(get_default_output_dir() / "run_summary.json")

    notice_path = get_pending_notice_path()
    if outcome.state == "completed":
        clear_pending_notice(notice_path)
    else:
        save_pending_notice(notice_path, outcome.pending_files)

    print(f"\nExtraction {outcome.state}: {len(outcome.records)} record(s) "
          f"from {outcome.files_handled} of {outcome.total_files} file(s), "
          f"{outcome.requests_made} request(s)")
    for error in outcome.errors:
        print(f"  Error: {error}")
    if outcome.failure is not None:
        print(f"Failed: {outcome.failure}", file=sys.stderr)
    if outcome.pending_files:
        print(f"{outcome.pending_files} file(s) were not processed")

    return 0 if outcome.state == "completed" else 1


def _handle_show(args: argparse.Namespace) -> int:
    session = _load_session()
    profile = _profile(args)

    notice = load_pending_notice(get_pending_notice_path())
    if notice:
        print(f"Note: {notice['pending_count']} file(s) were left unprocessed by the last run")

    if session.is_empty:
        print("Session is empty")
        return 0

    print(f"{len(session)} record(s), VAT rate {session.tax_rate:.2%}, customer {session.customer_id or '-'}")
    for i, record in enumerate(session):
        score = document_confidence(record)
        saved = session.persisted_ids.get(i)
        flags = []
        if saved is not None:
            flags.append(f"saved #{saved}")
        if not check_invariant(record):
            flags.append("unbalanced")
        low = low_confidence_fields(record, profile)
        if low:
            flags.append(f"check: {', '.join(low)}")
        print(
            f"[{i}] {record.display_name} | {record.supplier_name or '-'} | "
            f"{_money(record.subtotal)} + {_money(record.tax_amount)} = {_money(record.total)} "
            f"{record.currency or ''} | {confidence_level(score, profile)}"
            + (f" | {'; '.join(flags)}" if flags else "")
        )
    return 0


def _handle_edit(args: argparse.Namespace) -> int:
    session = _load_session()
    reconciler = FieldReconciler(session.tax_rate, get_total_edit_rule())
    record = reconciler.reconcile(session.record(args.index), args.field, args.value)
    session.save(get_session_path())

    print(f"[{args.index}] {record.display_name}: subtotal {_money(record.subtotal)}, "
          f"VAT {_money(record.tax_amount)}, total {_money(record.total)}")
    return 0


def _handle_commit(args: argparse.Namespace) -> int:
    session = _load_session()
    customer_id = args.customer if args.customer is not None else session.customer_id
    if customer_id is None:
        customer_id = get_customer_id()
    session.customer_id = customer_id

    client = ServiceClient.from_config()
    committer = BatchCommitter(
        session,
        ConflictGate(client.check_conflicts),
        client.save_invoices_batch,
        default_currency=get_default_currency(),
        profile=_profile(args),
    )

    try:
        if args.index is not None:
            summary = committer.commit_one(args.index)
        else:
            summary = committer.commit_all()
    finally:
        session.save(get_session_path())

    _print_commit_summary(summary)
    if args.summary_dir:
        print(f"Commit summary: {create_commit_summary(summary, Path(args.summary_dir))}")

    if summary.blocked or summary.errored or summary.conflicted:
        return 1
    return 0


def _handle_customers(args: argparse.Namespace) -> int:
    client = ServiceClient.from_config()
    customers = client.fetch_customers()
    if not customers:
        print("No customers")
    for customer in customers:
        print(f"{customer.id}\t{customer.name}{'' if customer.is_active else ' (inactive)'}")
    return 0


def _report_filters(args: argparse.Namespace) -> dict:
    return {
        'customer_id': args.customer,
        'start_date': args.start_date,
        'end_date': args.end_date,
        'statuses': args.status or [],
    }


def _handle_report(args: argparse.Namespace) -> int:
    client = ServiceClient.from_config()
    filters = InvoiceReportFilters(**_report_filters(args))
    invoices = client.fetch_invoices_report(filters)
    print(f"{len(invoices)} invoice(s)")
    for inv in invoices:
        print(
            f"{inv.id}\t{inv.invoice_number or '-'}\t{inv.invoice_date or '-'}\t"
            f"{inv.supplier_name or '-'}\t{_money(inv.total)} {inv.currency or ''}\t{inv.status or '-'}"
        )
    return 0


def _handle_export(args: argparse.Namespace) -> int:
    if args.server:
        if args.customer is None:
            print("Error: --customer is required with --server", file=sys.stderr)
            return 1
        client = ServiceClient.from_config()
        request = ExportInvoicesRequest(**_report_filters(args), invoice_ids=args.invoice_ids)
        path = write_export_bytes(client.export_invoices(request), args.output)
    else:
        path = export_session_to_excel(_load_session(), args.output, _profile(args))
    print(f"Excel: {path}")
    return 0


def _handle_health(args: argparse.Namespace) -> int:
    client = ServiceClient.from_config()
    if client.health_check():
        print(f"Service OK: {client.endpoint}")
        return 0
    print(f"Service unavailable: {client.endpoint}", file=sys.stderr)
    return 1


def _add_profile_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", default="default", help="Review profile name (default: default)")


def _add_report_filters(parser: argparse.ArgumentParser, customer_required: bool) -> None:
    parser.add_argument("--customer", type=int, required=customer_required, help="Customer id")
    parser.add_argument("--start-date", help="Earliest invoice date (YYYY-MM-DD)")
    parser.add_argument("--end-date", help="Latest invoice date (YYYY-MM-DD)")
    parser.add_argument(
        "--status",
        action="append",
        choices=["pending", "approved", "exported", "rejected"],
        help="Status filter (repeatable)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Invoice Review - extract, correct and save invoices"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose debug output")

    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract documents into the session")
    source = extract.add_mutually_exclusive_group(required=True)
    source.add_argument("--path", help="Folder or file path the service can read")
    source.add_argument("--files", nargs="+", help="Local files to upload first")
    _add_profile_option(extract)
    extract.add_argument("--max-pages", type=int, help="Page budget (default: from profile)")
    extract.add_argument("--append", action="store_true", help="Add to the current session instead of replacing it")
    extract.set_defaults(handler=_handle_extract)

    show = sub.add_parser("show", help="List records in the session")
    _add_profile_option(show)
    show.set_defaults(handler=_handle_show)

    edit = sub.add_parser("edit", help="Edit a field; money fields are reconciled")
    edit.add_argument("index", type=int, help="Record index")
    edit.add_argument("field", help="Field name (e.g. subtotal, tax_amount, total, supplier_name)")
    edit.add_argument("value", help="New value (empty string clears)")
    edit.set_defaults(handler=_handle_edit)

    commit = sub.add_parser("commit", help="Save records after a conflict check")
    commit.add_argument("--index", type=int, help="Save a single record (default: all)")
    commit.add_argument("--customer", type=int, help="Customer id (default: session or config)")
    commit.add_argument("--summary-dir", help="Write commit_summary.xlsx to this directory")
    _add_profile_option(commit)
    commit.set_defaults(handler=_handle_commit)

    customers = sub.add_parser("customers", help="List customers")
    customers.set_defaults(handler=_handle_customers)

    report = sub.add_parser("report", help="List saved invoices")
    _add_report_filters(report, customer_required=True)
    report.set_defaults(handler=_handle_report)

    export = sub.add_parser("export", help="Export to Excel")
    export.add_argument("--output", required=True, help="Output .xlsx path")
    export.add_argument("--server", action="store_true", help="Download the server-side export of saved invoices")
    export.add_argument("--invoice-ids", type=int, nargs="+", help="Saved invoice ids to export (with --server)")
    _add_report_filters(export, customer_required=False)
    _add_profile_option(export)
    export.set_defaults(handler=_handle_export)

    health = sub.add_parser("health", help="Check service availability")
    health.set_defaults(handler=_handle_health)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s" if args.verbose else "%(message)s",
    )

    try:
        exit_code = args.handler(args)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
