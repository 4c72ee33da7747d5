"""Unit tests for field reconciliation."""

import pytest

from invoice_review.pipeline.reconcile import (
    RATE_RECONSTRUCT,
    TAX_PRESERVING,
    EditableField,
    FieldReconciler,
    UnknownFieldError,
    check_invariant,
    reconcile,
)


@pytest.fixture
def reconciler():
    return FieldReconciler(tax_rate=0.18)


class TestMoneyEdits:
    """Test subtotal/tax/total recomputation."""

    def test_subtotal_then_total(self, make_record, reconciler):
        """subtotal 100 -> 18/118, then total 200 with tax set -> subtotal 182."""
        record = make_record(subtotal=100)

        reconciler.reconcile(record, "subtotal", 100)
        assert (record.subtotal, record.tax_amount, record.total) == (100.0, 18.0, 118.0)

        reconciler.reconcile(record, "total", 200)
        assert (record.subtotal, record.tax_amount, record.total) == (182.0, 18.0, 200.0)
        assert check_invariant(record)

    def test_total_without_tax_splits_by_rate(self, make_record, reconciler):
        record = make_record()
        reconciler.reconcile(record, EditableField.TOTAL, "118")
        assert (record.subtotal, record.tax_amount, record.total) == (100.0, 18.0, 118.0)

    def test_total_rate_reconstruct_rule(self, make_record):
        record = make_record(subtotal=100, tax_amount=18, total=118)
        FieldReconciler(0.18, RATE_RECONSTRUCT).reconcile(record, "total", 236)
        assert (record.subtotal, record.tax_amount, record.total) == (200.0, 36.0, 236.0)

    def test_tax_derives_subtotal(self, make_record, reconciler):
        record = make_record()
        reconciler.reconcile(record, "tax_amount", 36)
        assert (record.subtotal, record.tax_amount, record.total) == (200.0, 36.0, 236.0)

    def test_tax_with_zero_rate_keeps_subtotal(self, make_record):
        record = make_record(subtotal=50, tax_amount=0, total=50)
        FieldReconciler(0).reconcile(record, "tax_amount", 5)
        assert (record.subtotal, record.tax_amount, record.total) == (50.0, 5.0, 55.0)

    def test_tax_with_zero_rate_and_no_subtotal(self, make_record):
        record = make_record()
        FieldReconciler(0).reconcile(record, "tax_amount", 5)
        assert record.subtotal is None
        assert record.total is None
        assert record.tax_amount == 5.0

    def test_rounding_keeps_invariant(self, make_record, reconciler):
        record = make_record()
        for value in ("33.33", "0.07", "1,234.56", "999999.99"):
            reconciler.reconcile(record, "subtotal", value)
            assert check_invariant(record)
            reconciler.reconcile(record, "total", value)
            assert check_invariant(record)

    @pytest.mark.parametrize("rule", [TAX_PRESERVING, RATE_RECONSTRUCT])
    @pytest.mark.parametrize("field", ["subtotal", "tax_amount", "total"])
    @pytest.mark.parametrize("value", [87.35, 200, "1,234.57"])
    def test_idempotent(self, make_record, rule, field, value):
        """Re-applying the same edit leaves all three fields unchanged."""
        reconciler = FieldReconciler(0.18, rule)
        record = make_record(subtotal=10, tax_amount=1.8, total=11.8)
        reconciler.reconcile(record, field, value)
        once = (record.subtotal, record.tax_amount, record.total)

        reconciler.reconcile(record, field, value)

        assert (record.subtotal, record.tax_amount, record.total) == once
        assert check_invariant(record)

    def test_blank_clears_field_only(self, make_record, reconciler):
        record = make_record(subtotal=100, tax_amount=18, total=118)
        reconciler.reconcile(record, "total", "")
        assert record.total is None
        assert record.subtotal == 100.0
        assert record.tax_amount == 18.0

    def test_invalid_money_text(self, make_record, reconciler):
        record = make_record(subtotal=100)
        with pytest.raises(ValueError):
            reconciler.reconcile(record, "subtotal", "abc")
        assert record.subtotal == 100.0

    def test_non_finite_input_treated_as_absent(self, make_record, reconciler):
        record = make_record(subtotal=100, tax_amount=18, total=118)
        reconciler.reconcile(record, "subtotal", float("nan"))
        assert record.subtotal is None

    def test_very_large_subtotal(self, make_record, reconciler):
        record = reconciler.reconcile(make_record(), "subtotal", 1e27)
        assert record.subtotal == 1e27
        assert record.tax_amount == pytest.approx(1.8e26)
        assert record.total == pytest.approx(1.18e27)

    def test_only_target_record_changes(self, make_record, reconciler):
        edited, other = make_record("A"), make_record("B", subtotal=5)
        reconciler.reconcile(edited, "subtotal", 10)
        assert other.subtotal == 5.0 and other.tax_amount is None


class TestTextEdits:
    """Test non-money fields."""

    def test_text_stripped(self, make_record, reconciler):
        record = make_record()
        reconciler.reconcile(record, "supplier_name", "  Acme Ltd ")
        assert record.supplier_name == "Acme Ltd"
        reconciler.reconcile(record, "supplier_name", "   ")
        assert record.supplier_name is None

    def test_currency_uppercased(self, make_record, reconciler):
        record = make_record()
        reconciler.reconcile(record, "currency", "usd")
        assert record.currency == "USD"

    def test_choices_validated(self, make_record, reconciler):
        record = make_record()
        reconciler.reconcile(record, "status", "approved")
        assert record.status == "approved"
        with pytest.raises(ValueError):
            reconciler.reconcile(record, "status", "paid")
        with pytest.raises(ValueError):
            reconciler.reconcile(record, "language", "fr")

    def test_unknown_field(self, make_record, reconciler):
        with pytest.raises(UnknownFieldError):
            reconciler.reconcile(make_record(), "file_name", "x.pdf")


class TestReconcilerSetup:
    """Test construction and the module-level helper."""

    @pytest.mark.parametrize("rate", [-0.1, float("nan"), float("inf")])
    def test_invalid_rate(self, rate):
        with pytest.raises(ValueError):
            FieldReconciler(rate)

    def test_invalid_rule(self):
        with pytest.raises(ValueError):
            FieldReconciler(0.18, "whatever")

    def test_module_level_reconcile(self, make_record):
        record = reconcile(make_record(), "subtotal", 10, tax_rate=0.17)
        assert (record.tax_amount, record.total) == (1.7, 11.7)

    def test_invariant_with_missing_fields(self, make_record):
        assert check_invariant(make_record(subtotal=1))
        assert not check_invariant(make_record(subtotal=1, tax_amount=1, total=3))
