"""
Full analysis run, markdown summary and file exports
"""

import json

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add current directory to path
sys.path.insert(0, str(Path(__file__).parent))

import restaurant_report as rr
from record_store import InMemoryRecordStore
from restaurant_records import Employee, Expense, Product, Sale


@pytest.fixture
def store():
    products = [
        Product("P1", "Burger", 10.0, "Mains", (), 30.0, 0.1, 1.0),
        Product("P2", "Coffee", 2.0, "Drinks", (), 2.0, 0.001, 0.0),
    ]
    employees = [Employee("E1", "Carmen", "Cocinera", 15.0, 40.0)]
    sales = [
        Sale("S1", "P1", 2, 10.0, "2024-03-05 13:00", "E1"),
        Sale("S2", "P2", 3, 2.0, "2024-03-06 09:00", "E1"),
    ]
    expenses = [Expense("G1", "Alquiler", 100.0, "Alquiler", "2024-03-01")]
    return InMemoryRecordStore(products, employees, sales, expenses)


@pytest.fixture
def results(store):
    return rr.run_full_analysis(store, today="2024-03-20")


class TestRunFullAnalysis:

    def test_result_keys(self, results):
        for key in ["config", "validation", "dashboard", "sales_by_employee", "time_by_category",
                    "storage_by_product", "expenses_by_category", "sales_by_day", "staff_costs",
                    "top_products_df", "sales_by_employee_df", "time_by_category_df",
                    "storage_by_product_df", "expenses_by_category_df", "sales_by_day_df", "staff_costs_df",
                    "summary_metrics", "summary_block"]:
            assert key in results

    def test_figures_consistent(self, results):
        dashboard = results["dashboard"]
        assert dashboard.total_revenue == pytest.approx(26.0)
        assert results["summary_metrics"]["total_revenue"] == dashboard.total_revenue
        assert results["summary_metrics"]["number_of_sales"] == 2
        assert results["sales_by_employee_df"]["total_revenue"].sum() == pytest.approx(26.0)
        assert len(results["sales_by_day"]) == 2

    def test_staff_costs_included(self, results):
        assert results["staff_costs"][0].weekly_cost == pytest.approx(600.0)
        assert results["summary_metrics"]["monthly_staff_cost"] == pytest.approx(600.0 * 4.33)
        assert "Monthly staff cost: €2,598.00" in results["summary_block"]

    def test_config_override(self, store):
        results = rr.run_full_analysis(store, config={"labor_cost_mode": "per_minute"}, today="2024-03-20")
        burger = [p for p in results["dashboard"].top_products if p.product_id == "P1"][0]
        assert burger.labor_cost == pytest.approx(60.0)

    def test_empty_store(self):
        results = rr.run_full_analysis(InMemoryRecordStore(), today="2024-03-20")
        assert results["summary_metrics"]["total_revenue"] == 0.0
        assert results["top_products_df"].empty
        assert list(results["sales_by_day_df"].columns) == [
            "day", "date", "total_revenue", "total_quantity", "employees"
        ]
        assert "No product data available." in results["summary_block"]


class TestSummaryBlock:

    def test_headline_and_loss_makers(self, results):
        block = results["summary_block"]
        assert block.startswith("# Mi Restaurante")
        assert "Total revenue: €26.00" in block
        assert "## Loss-making products" in block
        assert "- Burger: margin -€10.03" in block

    def test_markdown_tables(self, results):
        block = results["summary_block"]
        assert "| product_name" in block
        assert "Carmen" in block
        assert "Alquiler" in block


class TestExports:

    def test_to_py_json_safe(self, results):
        payload = rr.to_py({"dashboard": results["dashboard"], "ts": pd.Timestamp("2024-03-05")})
        text = json.dumps(payload)
        assert "Burger" in text
        assert payload["ts"] == "2024-03-05 00:00:00"

    def test_excel_export(self, results, tmp_path):
        path = tmp_path / "report.xlsx"
        rr.export_results_to_excel(results, str(path))
        sheets = pd.read_excel(path, sheet_name=None)
        assert "Summary" in sheets
        assert "Top_Products" in sheets
        assert sheets["Staff_Costs"]["monthly_cost"].tolist() == pytest.approx([2598.0])
        assert sheets["Sales_By_Day"]["employees"].tolist() == ["Carmen", "Carmen"]

    def test_save_results(self, results, tmp_path):
        written = rr.save_results(results, str(tmp_path))
        names = {Path(p).name for p in written}
        assert {"top_products.csv", "staff_costs.csv", "summary_metrics.json", "validation_report.json",
                "summary_block.md"} <= names

        with open(tmp_path / "summary_metrics.json", encoding="utf-8") as f:
            metrics = json.load(f)
        assert metrics["total_revenue"] == pytest.approx(26.0)
