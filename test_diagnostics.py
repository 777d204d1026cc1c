"""
Data quality checks over record snapshots
"""

import pytest
from pathlib import Path
import sys

# Add current directory to path
sys.path.insert(0, str(Path(__file__).parent))

from diagnostics import DiagnosticResult, RecordDiagnostics, run_diagnostics, validate_records
from restaurant_records import Employee, Expense, Product, Sale


@pytest.fixture
def clean_records():
    products = [
        Product("P1", "Paella", 14.5, "Principales", (), 35.0, 0.05, 0.3),
        Product("P2", "Café", 1.8, "Bebidas", (), 2.0, 0.001, 0.02),
    ]
    employees = [Employee("E1", "Lucía", "Camarera", 12.5)]
    sales = [
        Sale("V1", "P1", 2, 14.5, "2024-03-05", "E1"),
        Sale("V2", "P2", 1, 1.8, "2024-03-06", "E1"),
    ]
    expenses = [Expense("G1", "Alquiler", 1500.0, "Alquiler", "2024-03-01")]
    return products, employees, sales, expenses


class TestValidateRecords:

    def test_clean_data_is_valid(self, clean_records):
        result = validate_records(*clean_records)
        assert result["valid"] is True
        assert result["errors"] == []
        assert result["warnings"] == []
        assert result["summary"]["sales"] == 2
        assert result["summary"]["categories"] == ["Bebidas", "Principales"]
        assert result["summary"]["date_range"] == "2024-03-05 to 2024-03-06"

    def test_duplicate_product_ids_invalid(self, clean_records):
        products, employees, sales, expenses = clean_records
        products = products + [Product("P1", "Paella 2", 15.0, "Principales")]
        result = validate_records(products, employees, sales, expenses)
        assert result["valid"] is False
        assert any("duplicate product ids" in e for e in result["errors"])

    def test_dangling_references_warned(self, clean_records):
        products, employees, sales, expenses = clean_records
        sales = sales + [Sale("V3", "P404", 1, 5.0, "2024-03-07", "E404")]
        result = validate_records(products, employees, sales, expenses)
        assert result["valid"] is True
        assert any("unknown products" in w for w in result["warnings"])
        assert any("unknown employees" in w for w in result["warnings"])

    def test_bad_dates_warned(self, clean_records):
        products, employees, sales, expenses = clean_records
        sales = sales + [Sale("V3", "P1", 1, 14.5, "yesterday-ish", "E1")]
        expenses = expenses + [Expense("G2", "Luz", 100.0, "Suministros", "31/31/2024")]
        result = validate_records(products, employees, sales, expenses)
        assert any("sales have invalid dates" in w for w in result["warnings"])
        assert any("expenses have invalid dates" in w for w in result["warnings"])

    def test_empty_snapshot(self):
        result = validate_records([], [], [], [])
        assert result["valid"] is True
        assert result["summary"]["products"] == 0
        assert any("No employees" in w for w in result["warnings"])


class TestRecordDiagnostics:

    def test_clean_data_safe_to_proceed(self, clean_records):
        report = run_diagnostics(*clean_records, verbose=False)
        assert report["safe_to_proceed"] is True
        assert report["overall_quality"] == pytest.approx(100.0)
        assert set(report["quality_by_source"]) == {"products", "employees", "sales", "expenses"}

    def test_duplicates_block_proceeding(self, clean_records):
        products, employees, sales, expenses = clean_records
        products = products + [Product("P2", "Café doble", 2.5, "Bebidas", (), 2.0)]
        report = run_diagnostics(products, employees, sales, expenses, verbose=False)
        assert report["safe_to_proceed"] is False
        assert any(f.severity == "critical" for f in report["findings"])

    def test_mostly_dangling_products_is_error(self, clean_records):
        products, employees, _, expenses = clean_records
        sales = [Sale(f"V{i}", "P404", 1, 5.0, "2024-03-05", "E1") for i in range(5)]
        report = RecordDiagnostics(verbose=False).diagnose_all(products, employees, sales, expenses)
        dangling = [f for f in report["findings"] if "unknown products" in f.message]
        assert dangling[0].severity == "error"
        assert dangling[0].details["unknown_ids"] == ["P404"]
        assert report["quality_by_source"]["sales"] < 100

    def test_no_employees_is_warning(self, clean_records):
        products, _, sales, expenses = clean_records
        report = run_diagnostics(products, [], sales, expenses, verbose=False)
        assert any(
            isinstance(f, DiagnosticResult) and f.category == "employees" and f.severity == "warning"
            for f in report["findings"]
        )

    def test_verbose_prints_report(self, clean_records, capsys):
        run_diagnostics(*clean_records, verbose=True)
        out = capsys.readouterr().out
        assert "DIAGNOSTIC SUMMARY" in out
        assert "Safe to Proceed: YES" in out
