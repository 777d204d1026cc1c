"""
Restaurant Report
=================

Runs every analytics query over one store snapshot and packages the
results for output: a results dict, a markdown summary block, an Excel
workbook and JSON-safe summaries.
"""

import json
import os
from dataclasses import asdict, is_dataclass
from typing import Optional

import numpy as np
import pandas as pd

import restaurant_analytics as ra
from diagnostics import validate_records
from restaurant_records import rows_to_frame


ANALYSIS_COLUMNS = ["product_id", "product_name", "revenue", "ingredient_cost", "labor_cost",
                    "storage_cost", "total_cost", "margin", "margin_percentage", "units_sold"]


def run_full_analysis(store,
                      config: Optional[dict] = None,
                      day_range: str = "month",
                      today=None) -> dict:
    """
    Run every engine query against the store and return all result objects.

    Reads one snapshot of the four collections, so every figure in the
    result describes the same data. Does not print.

    Returns:
        A dictionary with keys: config, validation, dashboard, top_products_df,
        sales_by_employee, time_by_category, storage_by_product,
        expenses_by_category, sales_by_day, staff_costs, the matching *_df frames,
        summary_metrics and summary_block
    """
    cfg = ra.resolve_config(config)

    products = store.get_products()
    employees = store.get_employees()
    sales = store.get_sales()
    expenses = store.get_expenses()

    validation = validate_records(products, employees, sales, expenses)

    dashboard = ra.build_dashboard_stats(products, employees, sales, expenses, cfg)
    by_employee = ra.build_sales_by_employee(sales, employees, cfg)
    staff_costs = ra.build_staff_costs(employees, cfg)
    by_category = ra.build_time_by_category(sales, products, cfg)
    by_storage = ra.build_storage_by_product(sales, products, cfg)
    by_expense = ra.build_expenses_by_category(expenses, cfg)
    by_day = ra.build_sales_by_day(sales, employees, day_range=day_range, today=today, config=cfg)

    results = {
        "config": cfg,
        "day_range": day_range,
        "validation": validation,
        "dashboard": dashboard,
        "sales_by_employee": by_employee,
        "staff_costs": staff_costs,
        "time_by_category": by_category,
        "storage_by_product": by_storage,
        "expenses_by_category": by_expense,
        "sales_by_day": by_day,
        "top_products_df": rows_to_frame(dashboard.top_products, ANALYSIS_COLUMNS),
        "sales_by_employee_df": rows_to_frame(
            by_employee, ["employee_id", "employee_name", "total_revenue", "number_of_sales"]),
        "staff_costs_df": rows_to_frame(
            staff_costs, ["employee_id", "employee_name", "role", "hourly_rate", "hours_per_week",
                          "weekly_cost", "monthly_cost"]),
        "time_by_category_df": rows_to_frame(
            by_category, ["category", "total_time", "total_hours", "units_sold"]),
        "storage_by_product_df": rows_to_frame(
            by_storage, ["product_id", "product_name", "total_storage", "units_sold"]),
        "expenses_by_category_df": rows_to_frame(
            by_expense, ["category", "total_amount", "count"]),
        "sales_by_day_df": rows_to_frame(
            by_day, ["day", "date", "total_revenue", "total_quantity", "employees"]),
        "summary_metrics": {
            "total_revenue": dashboard.total_revenue,
            "operating_expenses": dashboard.operating_expenses,
            "cost_of_goods_sold": dashboard.cost_of_goods_sold,
            "total_expenses": dashboard.total_expenses,
            "net_profit": dashboard.net_profit,
            "profit_margin": dashboard.profit_margin,
            "average_order_value": dashboard.average_order_value,
            "number_of_sales": len(sales),
            "number_of_products": len(products),
            "monthly_staff_cost": float(sum(s.monthly_cost for s in staff_costs)),
        },
    }
    results["summary_block"] = build_summary_block(results, cfg)
    return results


# =============================================================================
# MARKDOWN SUMMARY
# =============================================================================

def to_markdown_table(df: pd.DataFrame, cols: list, index: bool = False) -> str:
    if df.empty:
        return pd.DataFrame(columns=cols).to_markdown(index=index)
    return df[cols].to_markdown(index=index)


def format_top_products_table(top_df: pd.DataFrame, config: dict) -> str:
    """Top products by margin, money columns formatted."""
    if top_df.empty:
        return "No product data available."

    table = top_df.copy()
    for col in ["revenue", "total_cost", "margin"]:
        table[col] = table[col].apply(lambda v: ra.format_currency(v, config))
    table["margin_percentage"] = table["margin_percentage"].apply(ra.format_percentage)
    return to_markdown_table(
        table,
        ["product_name", "units_sold", "revenue", "total_cost", "margin", "margin_percentage"],
    )


def format_sales_by_employee_table(df: pd.DataFrame, config: dict) -> str:
    if df.empty:
        return "No sales data available."
    table = df.copy()
    table["total_revenue"] = table["total_revenue"].apply(lambda v: ra.format_currency(v, config))
    return to_markdown_table(table, ["employee_name", "number_of_sales", "total_revenue"])


def format_expenses_table(df: pd.DataFrame, config: dict) -> str:
    if df.empty:
        return "No expense data available."
    table = df.copy()
    table["total_amount"] = table["total_amount"].apply(lambda v: ra.format_currency(v, config))
    return to_markdown_table(table, ["category", "count", "total_amount"])


def build_summary_block(results: dict, config: Optional[dict] = None) -> str:
    """Markdown report of the headline figures and main tables."""
    cfg = config or ra.CONFIG
    dashboard = results["dashboard"]
    lines = [
        f"# {cfg.get('restaurant_name', 'Restaurant')} - Cost & Margin Summary",
        "",
        "## Headline figures",
        "",
        f"- Total revenue: {ra.format_currency(dashboard.total_revenue, cfg)}",
        f"- Total expenses (operating + cost of goods sold): {ra.format_currency(dashboard.total_expenses, cfg)}",
        f"  - Operating expenses: {ra.format_currency(dashboard.operating_expenses, cfg)}",
        f"  - Cost of goods sold: {ra.format_currency(dashboard.cost_of_goods_sold, cfg)}",
        f"- Net profit: {ra.format_currency(dashboard.net_profit, cfg)}",
        f"- Profit margin: {ra.format_percentage(dashboard.profit_margin)}",
        f"- Average order value: {ra.format_currency(dashboard.average_order_value, cfg)}",
        f"- Monthly staff cost: {ra.format_currency(results['summary_metrics']['monthly_staff_cost'], cfg)}",
        "",
        "## Top products by margin",
        "",
        format_top_products_table(results["top_products_df"], cfg),
        "",
        "## Sales by employee",
        "",
        format_sales_by_employee_table(results["sales_by_employee_df"], cfg),
        "",
        "## Expenses by category",
        "",
        format_expenses_table(results["expenses_by_category_df"], cfg),
    ]

    loss_makers = [p for p in dashboard.top_products if p.units_sold > 0 and p.margin < 0]
    if loss_makers:
        lines += ["", "## Loss-making products", ""]
        for p in loss_makers:
            lines.append(
                f"- {p.product_name}: margin {ra.format_currency(p.margin, cfg)} "
                f"({ra.format_percentage(p.margin_percentage)})"
            )

    return "\n".join(lines) + "\n"


# =============================================================================
# EXPORTS
# =============================================================================

def to_py(o):
    """Recursively convert records, numpy and pandas scalars to JSON-safe types."""
    if is_dataclass(o) and not isinstance(o, type):
        return to_py(asdict(o))
    if isinstance(o, dict):
        return {k: to_py(v) for k, v in o.items()}
    if isinstance(o, (list, tuple)):
        return [to_py(v) for v in o]
    if isinstance(o, np.ndarray):
        return to_py(o.tolist())
    if isinstance(o, np.generic):
        return o.item()
    if isinstance(o, pd.Timestamp):
        return str(o)
    return o


def export_results_to_excel(results: dict, path: str) -> None:
    """
    Write the result tables into a multi-sheet Excel file.

    Args:
        results: Dictionary returned by run_full_analysis().
        path: File path where the Excel workbook will be saved.
    """
    with pd.ExcelWriter(path) as writer:
        summary = pd.DataFrame(list(results["summary_metrics"].items()), columns=["metric", "value"])
        summary.to_excel(writer, sheet_name="Summary", index=False)

        def _write_if_df(key: str, sheet_name: str):
            df = results.get(key)
            if isinstance(df, pd.DataFrame) and not df.empty:
                df.to_excel(writer, sheet_name=sheet_name, index=False)

        _write_if_df("top_products_df", "Top_Products")
        _write_if_df("sales_by_employee_df", "Sales_By_Employee")
        _write_if_df("staff_costs_df", "Staff_Costs")
        _write_if_df("time_by_category_df", "Time_By_Category")
        _write_if_df("storage_by_product_df", "Storage_By_Product")
        _write_if_df("expenses_by_category_df", "Expenses_By_Category")

        by_day = results.get("sales_by_day_df")
        if isinstance(by_day, pd.DataFrame) and not by_day.empty:
            by_day = by_day.copy()
            by_day["employees"] = by_day["employees"].apply(", ".join)
            by_day.to_excel(writer, sheet_name="Sales_By_Day", index=False)

        validation = results.get("validation") or {}
        notes = list(validation.get("errors", [])) + list(validation.get("warnings", []))
        if notes:
            pd.DataFrame({"note": notes}).to_excel(writer, sheet_name="Data_Quality", index=False)


def save_results(results: dict, output_dir: str) -> list:
    """Write CSV tables, summary JSON, validation JSON and the markdown block. Returns paths written."""
    os.makedirs(output_dir, exist_ok=True)
    written = []

    csv_map = {
        "top_products_df": "top_products.csv",
        "sales_by_employee_df": "sales_by_employee.csv",
        "staff_costs_df": "staff_costs.csv",
        "time_by_category_df": "time_by_category.csv",
        "storage_by_product_df": "storage_by_product.csv",
        "expenses_by_category_df": "expenses_by_category.csv",
        "sales_by_day_df": "sales_by_day.csv",
    }
    for key, fname in csv_map.items():
        df = results.get(key)
        if isinstance(df, pd.DataFrame):
            path = os.path.join(output_dir, fname)
            df.to_csv(path, index=False)
            written.append(path)

    path = os.path.join(output_dir, "summary_metrics.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_py(results["summary_metrics"]), f, indent=2)
    written.append(path)

    path = os.path.join(output_dir, "validation_report.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_py(results["validation"]), f, indent=2)
    written.append(path)

    path = os.path.join(output_dir, "summary_block.md")
    with open(path, "w", encoding="utf-8") as f:
        f.write(results["summary_block"])
    written.append(path)

    return written
