"""
Record Diagnostics
==================

Data quality checks over a snapshot of restaurant records, run BEFORE
reading the analytics as gospel.

The engine itself never fails on bad data (dangling references become
"Unknown", malformed dates drop out of date buckets, zero divisors give 0).
These checks say how much of the data took one of those fallbacks.

Two entry points:
- validate_records(): quick {"valid", "errors", "warnings", "summary"} dict
- run_diagnostics(): scored findings plus a printed report
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import pandas as pd

from restaurant_analytics import (
    employees_to_frame,
    expenses_to_frame,
    products_to_frame,
    sales_to_frame,
)
from restaurant_records import Employee, Expense, Product, Sale


@dataclass
class DiagnosticResult:
    """Container for diagnostic findings"""
    severity: str  # "info", "warning", "error", "critical"
    category: str  # "products", "employees", "sales", "expenses", "general"
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    recommendation: str = ""


def _duplicate_ids(ids: pd.Series) -> List[str]:
    return sorted(set(ids[ids.duplicated(keep=False)].astype(str)))


# =============================================================================
# QUICK VALIDATION
# =============================================================================

def validate_records(products: Sequence[Product],
                     employees: Sequence[Employee],
                     sales: Sequence[Sale],
                     expenses: Sequence[Expense]) -> dict:
    """
    Validates a record snapshot for issues that distort the analytics.

    Returns:
        {
            "valid": bool,
            "errors": [issues that make figures wrong],
            "warnings": [issues the engine works around],
            "summary": {key counts}
        }
    """
    errors = []
    warnings = []
    summary = {}

    products_df = products_to_frame(products)
    employees_df = employees_to_frame(employees)
    sales_df = sales_to_frame(sales)
    expenses_df = expenses_to_frame(expenses)

    summary["products"] = len(products_df)
    summary["employees"] = len(employees_df)
    summary["sales"] = len(sales_df)
    summary["expenses"] = len(expenses_df)

    # --- PRODUCTS ---
    if not products_df.empty:
        dup_products = _duplicate_ids(products_df["product_id"])
        if dup_products:
            errors.append(f"CRITICAL: duplicate product ids: {dup_products[:5]}")

        zero_prep = int((products_df["preparation_time"] <= 0).sum())
        if zero_prep > 0:
            warnings.append(f"WARNING: {zero_prep} products have zero preparation time")

        zero_price = int((products_df["list_price"] <= 0).sum())
        if zero_price > 0:
            warnings.append(f"WARNING: {zero_price} products have zero or negative price")

        summary["categories"] = sorted(products_df["category"].unique().tolist())

    # --- EMPLOYEES ---
    if employees_df.empty:
        warnings.append("INFO: No employees - labor cost uses the default hourly rate")
    else:
        dup_employees = _duplicate_ids(employees_df["employee_id"].astype(str))
        if dup_employees:
            errors.append(f"CRITICAL: duplicate employee ids: {dup_employees[:5]}")
        summary["avg_hourly_rate"] = round(float(employees_df["hourly_rate"].mean()), 2)

    # --- SALES ---
    if not sales_df.empty:
        dup_sales = _duplicate_ids(sales_df["sale_id"].astype(str))
        if dup_sales:
            errors.append(f"CRITICAL: duplicate sale ids: {dup_sales[:5]}")

        non_positive_qty = int((sales_df["quantity"] <= 0).sum())
        if non_positive_qty > 0:
            warnings.append(f"WARNING: {non_positive_qty} sales with zero or negative quantity")

        known_products = set(products_df["product_id"])
        orphan_products = ~sales_df["product_id"].isin(known_products)
        if orphan_products.any():
            warnings.append(
                f"WARNING: {int(orphan_products.sum())} sales reference unknown products "
                f"(shown as 'Unknown', excluded from category time)"
            )

        known_employees = set(employees_df["employee_id"].astype(str))
        orphan_employees = ~sales_df["employee_id"].isin(known_employees)
        if orphan_employees.any():
            warnings.append(f"WARNING: {int(orphan_employees.sum())} sales reference unknown employees")

        bad_dates = int(sales_df["sale_dt"].isna().sum())
        if bad_dates > 0:
            warnings.append(f"WARNING: {bad_dates} sales have invalid dates (excluded from daily figures)")
        if bad_dates < len(sales_df):
            summary["date_range"] = (
                f"{sales_df['sale_dt'].min():%Y-%m-%d} to {sales_df['sale_dt'].max():%Y-%m-%d}"
            )

    # --- EXPENSES ---
    if not expenses_df.empty:
        negative = int((expenses_df["amount"] < 0).sum())
        if negative > 0:
            warnings.append(f"WARNING: {negative} expenses have negative amounts")
        bad_dates = int(expenses_df["expense_dt"].isna().sum())
        if bad_dates > 0:
            warnings.append(f"WARNING: {bad_dates} expenses have invalid dates")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "summary": summary,
    }


# =============================================================================
# SCORED DIAGNOSTICS
# =============================================================================

class RecordDiagnostics:
    """Scored diagnostic system for restaurant records"""

    def __init__(self, verbose: bool = True):
        self.verbose = verbose
        self.findings: List[DiagnosticResult] = []
        self.quality_scores: Dict[str, float] = {}

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)

    def diagnose_all(self,
                     products: Sequence[Product],
                     employees: Sequence[Employee],
                     sales: Sequence[Sale],
                     expenses: Sequence[Expense]) -> Dict[str, Any]:
        """
        Run complete diagnostic suite

        Returns:
            {
                "overall_quality": float (0-100),
                "findings": List[DiagnosticResult],
                "safe_to_proceed": bool,
                "quality_by_source": Dict[str, float]
            }
        """
        self.findings = []
        self.quality_scores = {}

        self._log("\n" + "=" * 80)
        self._log("🔍 RECORD DIAGNOSTICS - Pre-Flight Check")
        self._log("=" * 80 + "\n")

        products_df = products_to_frame(products)
        employees_df = employees_to_frame(employees)
        sales_df = sales_to_frame(sales)
        expenses_df = expenses_to_frame(expenses)

        self._diagnose_products(products_df)
        self._diagnose_employees(employees_df)
        self._diagnose_sales(sales_df, products_df, employees_df)
        self._diagnose_expenses(expenses_df)
        self._diagnose_relationships(products_df, sales_df)

        overall_quality = self._calculate_overall_quality()

        critical_count = sum(1 for f in self.findings if f.severity == "critical")
        error_count = sum(1 for f in self.findings if f.severity == "error")
        safe_to_proceed = critical_count == 0 and error_count < 3

        if self.verbose:
            self._print_diagnostic_report(overall_quality, safe_to_proceed)

        return {
            "overall_quality": overall_quality,
            "findings": self.findings,
            "safe_to_proceed": safe_to_proceed,
            "quality_by_source": self.quality_scores,
        }

    def _diagnose_products(self, products_df: pd.DataFrame):
        self._log("📋 Analyzing Products...")
        score = 100.0

        if products_df.empty:
            self.findings.append(DiagnosticResult(
                severity="error",
                category="products",
                message="No products defined",
                recommendation="Import or create products before analysing margins",
            ))
            score -= 50
        else:
            dup_ids = _duplicate_ids(products_df["product_id"])
            if dup_ids:
                self.findings.append(DiagnosticResult(
                    severity="critical",
                    category="products",
                    message=f"{len(dup_ids)} duplicate product ids found",
                    details={"duplicate_ids": dup_ids[:5]},
                    recommendation="Remove or renumber duplicate products",
                ))
                score -= 30

            zero_prep = products_df[products_df["preparation_time"] <= 0]
            if not zero_prep.empty:
                self.findings.append(DiagnosticResult(
                    severity="warning",
                    category="products",
                    message=f"{len(zero_prep)} products have zero preparation time",
                    details={"products": zero_prep["product_name"].tolist()[:5]},
                    recommendation="Set preparation time in minutes",
                ))
                score -= min(20, len(zero_prep) * 2)

            no_labor = int((products_df["employee_hours_required"] <= 0).sum())
            if no_labor > 0:
                self.findings.append(DiagnosticResult(
                    severity="info",
                    category="products",
                    message=f"{no_labor} products carry no labor hours (labor cost 0)",
                    recommendation="Set employee hours required per unit",
                ))

        self.quality_scores["products"] = max(0.0, score)
        self._log(f"   Products Quality Score: {self.quality_scores['products']:.1f}/100")

    def _diagnose_employees(self, employees_df: pd.DataFrame):
        self._log("👥 Analyzing Employees...")
        score = 100.0

        if employees_df.empty:
            self.findings.append(DiagnosticResult(
                severity="warning",
                category="employees",
                message="No employees defined - labor cost uses the default hourly rate",
                recommendation="Add employees with their hourly rates",
            ))
            score -= 30
        else:
            zero_rate = int((employees_df["hourly_rate"] <= 0).sum())
            if zero_rate > 0:
                self.findings.append(DiagnosticResult(
                    severity="warning",
                    category="employees",
                    message=f"{zero_rate} employees have zero hourly rate (pulls the average down)",
                    recommendation="Fix hourly rates",
                ))
                score -= min(30, zero_rate * 10)

        self.quality_scores["employees"] = max(0.0, score)
        self._log(f"   Employees Quality Score: {self.quality_scores['employees']:.1f}/100")

    def _diagnose_sales(self, sales_df: pd.DataFrame, products_df: pd.DataFrame, employees_df: pd.DataFrame):
        self._log("📊 Analyzing Sales...")
        score = 100.0

        if sales_df.empty:
            self.findings.append(DiagnosticResult(
                severity="info",
                category="sales",
                message="No sales recorded - every metric will be zero",
            ))
            self.quality_scores["sales"] = score
            self._log(f"   Sales Quality Score: {score:.1f}/100")
            return

        n_sales = len(sales_df)

        bad_dates = int(sales_df["sale_dt"].isna().sum())
        if bad_dates > 0:
            pct_failed = bad_dates / n_sales * 100
            self.findings.append(DiagnosticResult(
                severity="error" if pct_failed > 5 else "warning",
                category="sales",
                message=f"{bad_dates} sales ({pct_failed:.1f}%) have unparseable dates",
                recommendation="Fix date format (expected: YYYY-MM-DD)",
            ))
            score -= min(30, pct_failed * 2)

        orphan_products = ~sales_df["product_id"].isin(set(products_df["product_id"]))
        if orphan_products.any():
            pct_unmatched = orphan_products.sum() / n_sales * 100
            self.findings.append(DiagnosticResult(
                severity="error" if pct_unmatched > 20 else "warning" if pct_unmatched > 5 else "info",
                category="sales",
                message=f"{int(orphan_products.sum())} sales reference unknown products ({pct_unmatched:.1f}%)",
                details={"unknown_ids": sorted(set(sales_df.loc[orphan_products, "product_id"]))[:10]},
                recommendation="Re-import products or fix product ids on sales",
            ))
            score -= min(25, pct_unmatched)

        orphan_employees = ~sales_df["employee_id"].isin(set(employees_df["employee_id"].astype(str)))
        if orphan_employees.any():
            pct_unmatched = orphan_employees.sum() / n_sales * 100
            self.findings.append(DiagnosticResult(
                severity="warning" if pct_unmatched > 5 else "info",
                category="sales",
                message=f"{int(orphan_employees.sum())} sales reference unknown employees ({pct_unmatched:.1f}%)",
                recommendation="Re-import employees or fix employee ids on sales",
            ))
            score -= min(15, pct_unmatched)

        non_positive = int((sales_df["quantity"] <= 0).sum())
        if non_positive > 0:
            self.findings.append(DiagnosticResult(
                severity="error",
                category="sales",
                message=f"{non_positive} sales have zero or negative quantities",
                recommendation="Remove or fix these sale lines",
            ))
            score -= 15

        self.quality_scores["sales"] = max(0.0, score)
        self._log(f"   Sales Quality Score: {self.quality_scores['sales']:.1f}/100")

    def _diagnose_expenses(self, expenses_df: pd.DataFrame):
        self._log("💸 Analyzing Expenses...")
        score = 100.0

        if not expenses_df.empty:
            bad_dates = int(expenses_df["expense_dt"].isna().sum())
            if bad_dates > 0:
                self.findings.append(DiagnosticResult(
                    severity="warning",
                    category="expenses",
                    message=f"{bad_dates} expenses have unparseable dates",
                    recommendation="Fix date format (expected: YYYY-MM-DD)",
                ))
                score -= min(20, bad_dates * 2)

            uncategorised = int((expenses_df["category"].str.strip() == "").sum())
            if uncategorised > 0:
                self.findings.append(DiagnosticResult(
                    severity="info",
                    category="expenses",
                    message=f"{uncategorised} expenses have no category",
                    recommendation="Assign a category so the breakdown is meaningful",
                ))
                score -= 5

        self.quality_scores["expenses"] = max(0.0, score)
        self._log(f"   Expenses Quality Score: {self.quality_scores['expenses']:.1f}/100")

    def _diagnose_relationships(self, products_df: pd.DataFrame, sales_df: pd.DataFrame):
        self._log("🔗 Analyzing Data Relationships...")

        if products_df.empty or sales_df.empty:
            return

        unsold = set(products_df["product_id"]) - set(sales_df["product_id"])
        if len(unsold) > len(products_df) * 0.3:
            self.findings.append(DiagnosticResult(
                severity="info",
                category="general",
                message=f"{len(unsold)} products have zero sales",
                details={"pct_unsold": len(unsold) / len(products_df) * 100},
                recommendation="These products may be new, seasonal, or should be removed",
            ))

    def _calculate_overall_quality(self) -> float:
        """Weighted average of per-source scores (products and sales weigh most)"""
        if not self.quality_scores:
            return 0.0

        weights = {"products": 0.35, "sales": 0.4, "employees": 0.15, "expenses": 0.1}
        total_weight = sum(weights.get(k, 0.1) for k in self.quality_scores)
        weighted_sum = sum(
            score * weights.get(source, 0.1)
            for source, score in self.quality_scores.items()
        )
        return weighted_sum / total_weight

    def _print_diagnostic_report(self, overall_quality: float, safe_to_proceed: bool):
        print("\n" + "=" * 80)
        print("📊 DIAGNOSTIC SUMMARY")
        print("=" * 80 + "\n")

        if overall_quality >= 90:
            quality_label = "EXCELLENT ✅"
        elif overall_quality >= 75:
            quality_label = "GOOD ✓"
        elif overall_quality >= 60:
            quality_label = "ACCEPTABLE ⚠️"
        else:
            quality_label = "POOR ❌"

        print(f"Overall Data Quality: {overall_quality:.1f}/100 ({quality_label})")
        print(f"Safe to Proceed: {'YES ✅' if safe_to_proceed else 'NO ❌'}\n")

        print("Quality by Source:")
        for source, score in self.quality_scores.items():
            print(f"   {source.capitalize()}: {score:.1f}/100")

        by_severity = {
            severity: [f for f in self.findings if f.severity == severity]
            for severity in ("critical", "error", "warning", "info")
        }

        print(f"\nFindings: {len(self.findings)} total")
        markers = {"critical": "🔴 Critical", "error": "🟠 Errors", "warning": "🟡 Warnings", "info": "🔵 Info"}
        for severity, label in markers.items():
            if by_severity[severity]:
                print(f"   {label}: {len(by_severity[severity])}")

        for severity, heading, limit in [
            ("critical", "\n🔴 CRITICAL ISSUES (must fix before trusting figures):", None),
            ("error", "\n🟠 ERRORS (strongly recommended to fix):", 5),
            ("warning", "\n🟡 WARNINGS (recommended to review):", 3),
        ]:
            if by_severity[severity]:
                print(heading)
                for f in by_severity[severity][:limit]:
                    print(f"\n   • {f.message}")
                    if f.recommendation:
                        print(f"     → {f.recommendation}")

        print("\n" + "=" * 80 + "\n")


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def run_diagnostics(products: Sequence[Product],
                    employees: Sequence[Employee],
                    sales: Sequence[Sale],
                    expenses: Sequence[Expense],
                    verbose: bool = True) -> Dict[str, Any]:
    """
    Quick diagnostic check over a record snapshot

    Example:
        diagnostics = run_diagnostics(store.get_products(), store.get_employees(),
                                      store.get_sales(), store.get_expenses())
        if diagnostics["safe_to_proceed"]:
            results = run_full_analysis(store)
    """
    return RecordDiagnostics(verbose=verbose).diagnose_all(products, employees, sales, expenses)
