"""
Restaurant Analytics Engine
===========================

Cost / margin analytics over the four restaurant collections:
Products, Employees, Sales and Expenses.

Everything here is a pure computation over a snapshot of records:
- Cost model (ingredient + labor + storage cost per unit)
- Per-product performance (revenue, cost breakdown, margin)
- Dashboard statistics (revenue, costs, net profit, top products)
- Groupings (by employee, by category, by product storage,
  by expense category, by day of month)
- Staff wage bill (weekly / monthly cost per employee)

Nothing in this module prints, caches or mutates its inputs. Records are
read through an injected store (see `record_store.py`) by `AnalyticsEngine`;
the module-level `build_*` functions take the collections directly.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from restaurant_records import (
    DashboardStats,
    Employee,
    Expense,
    ExpensesByCategory,
    Product,
    ProductCostAnalysis,
    Sale,
    SalesByDay,
    SalesByEmployee,
    StaffCost,
    StorageByProduct,
    TimeByCategory,
)


# =============================================================================
# CONFIG - Master Settings
# =============================================================================

CONFIG = {
    "currency": "€",
    "restaurant_name": "Mi Restaurante",

    # Cost model
    # Fixed per-unit estimate standing in for real ingredient prices
    "ingredient_unit_cost_estimate": 0.5,
    # Used when there are no employees to average
    "default_hourly_rate": 15.0,
    # Monthly storage cost per cubic volume unit, amortised per day
    "storage_cost_per_volume_month": 5.0,
    "days_per_month": 30,
    # Monthly wage bill = weekly wage bill x weeks per month
    "weeks_per_month": 4.33,
    # "per_unit":   employee_hours_required * avg_rate
    # "per_minute": employee_hours_required * avg_rate / preparation_time * 60
    "labor_cost_mode": "per_unit",

    # Rankings
    "top_products_limit": 10,
    "top_storage_limit": 15,
    "week_days": 7,

    # Label for dangling product / employee references
    "unknown_label": "Unknown",

    # CSV directory used by run_client.py
    "data_dir": "data",
}

LABOR_COST_MODES = ("per_unit", "per_minute")
DAY_RANGES = ("week", "month")

SALES_COLUMNS = ["sale_id", "product_id", "quantity", "price", "employee_id",
                 "line_revenue", "sale_dt"]
PRODUCT_COLUMNS = ["product_id", "product_name", "list_price", "category",
                   "preparation_time", "storage_required", "employee_hours_required",
                   "ingredient_count"]
EMPLOYEE_COLUMNS = ["employee_id", "employee_name", "role", "hourly_rate", "hours_per_week"]
EXPENSE_COLUMNS = ["expense_id", "description", "amount", "category", "expense_dt"]


def resolve_config(config: Optional[dict] = None) -> dict:
    """Merge overrides onto CONFIG and check the labor mode."""
    cfg = CONFIG.copy()
    if config:
        cfg.update(config)
    if cfg["labor_cost_mode"] not in LABOR_COST_MODES:
        raise ValueError(
            f"Unknown labor_cost_mode {cfg['labor_cost_mode']!r}. "
            f"Expected one of {LABOR_COST_MODES}"
        )
    return cfg


# =============================================================================
# SHARED HELPERS
# =============================================================================

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning `default` for a zero denominator or a non-finite result."""
    if not denominator:
        return default
    result = numerator / denominator
    if not np.isfinite(result):
        return default
    return float(result)


def lookup_name(mapping: Dict[str, str], key: str, sentinel: str = CONFIG["unknown_label"]) -> str:
    """Name for `key`, or the sentinel for a dangling reference."""
    name = mapping.get(key)
    if name is None or (isinstance(name, float) and np.isnan(name)):
        return sentinel
    return name


def parse_record_date(value) -> pd.Timestamp:
    """
    Parse a record date to a naive Timestamp.

    Returns NaT for missing or malformed values instead of raising.
    Timezone-aware values are converted to UTC and made naive.
    """
    if value is None:
        return pd.NaT
    if isinstance(value, str) and not value.strip():
        return pd.NaT
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def format_currency(value: float, config: Optional[dict] = None) -> str:
    """Format a money amount, e.g. -10.03 -> '-€10.03'."""
    currency = (config or CONFIG).get("currency", CONFIG["currency"])
    sign = "-" if value < 0 else ""
    return f"{sign}{currency}{abs(value):,.2f}"


def format_percentage(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}%"


# =============================================================================
# RECORD FRAMES
# =============================================================================

def _to_numeric(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors="coerce").fillna(0.0).astype(float)


def sales_to_frame(sales: Sequence[Sale]) -> pd.DataFrame:
    """One row per sale with line revenue and a parsed date (NaT when malformed)."""
    if not sales:
        return pd.DataFrame(columns=SALES_COLUMNS)

    df = pd.DataFrame({
        "sale_id": [s.id for s in sales],
        "product_id": [s.product_id for s in sales],
        "quantity": [s.quantity for s in sales],
        "price": [s.price for s in sales],
        "employee_id": [s.employee_id for s in sales],
    })
    df["product_id"] = df["product_id"].fillna("").astype(str)
    df["employee_id"] = df["employee_id"].fillna("").astype(str)
    df["quantity"] = _to_numeric(df["quantity"])
    df["price"] = _to_numeric(df["price"])
    df["line_revenue"] = df["price"] * df["quantity"]
    df["sale_dt"] = pd.to_datetime(
        pd.Series([parse_record_date(s.date) for s in sales], index=df.index, dtype=object),
        errors="coerce",
    )
    return df


def products_to_frame(products: Sequence[Product]) -> pd.DataFrame:
    if not products:
        return pd.DataFrame(columns=PRODUCT_COLUMNS)

    df = pd.DataFrame({
        "product_id": [p.id for p in products],
        "product_name": [p.name for p in products],
        "list_price": [p.price for p in products],
        "category": [p.category for p in products],
        "preparation_time": [p.preparation_time for p in products],
        "storage_required": [p.storage_required for p in products],
        "employee_hours_required": [p.employee_hours_required for p in products],
        "ingredient_count": [len(p.ingredients) for p in products],
    })
    df["product_id"] = df["product_id"].fillna("").astype(str)
    df["category"] = df["category"].fillna("").astype(str)
    for col in ["list_price", "preparation_time", "storage_required", "employee_hours_required"]:
        df[col] = _to_numeric(df[col])
    return df


def employees_to_frame(employees: Sequence[Employee]) -> pd.DataFrame:
    if not employees:
        return pd.DataFrame(columns=EMPLOYEE_COLUMNS)

    df = pd.DataFrame({
        "employee_id": [e.id for e in employees],
        "employee_name": [e.name for e in employees],
        "role": [e.role for e in employees],
        "hourly_rate": [e.hourly_rate for e in employees],
        "hours_per_week": [e.hours_per_week for e in employees],
    })
    df["hourly_rate"] = _to_numeric(df["hourly_rate"])
    df["hours_per_week"] = _to_numeric(df["hours_per_week"])
    return df


def expenses_to_frame(expenses: Sequence[Expense]) -> pd.DataFrame:
    if not expenses:
        return pd.DataFrame(columns=EXPENSE_COLUMNS)

    df = pd.DataFrame({
        "expense_id": [e.id for e in expenses],
        "description": [e.description for e in expenses],
        "amount": [e.amount for e in expenses],
        "category": [e.category for e in expenses],
    })
    df["category"] = df["category"].fillna("").astype(str)
    df["amount"] = _to_numeric(df["amount"])
    df["expense_dt"] = pd.to_datetime(
        pd.Series([parse_record_date(e.date) for e in expenses], index=df.index, dtype=object),
        errors="coerce",
    )
    return df


def _name_map(employees: Sequence[Employee]) -> Dict[str, str]:
    names = {}
    for employee in employees:
        names.setdefault(str(employee.id), employee.name)
    return names


# =============================================================================
# COST MODEL
# =============================================================================

def average_hourly_rate(employees: Sequence[Employee], config: Optional[dict] = None) -> float:
    """Mean hourly rate across employees, or the configured default when there are none."""
    cfg = config or CONFIG
    if not employees:
        return float(cfg["default_hourly_rate"])
    rates = _to_numeric(pd.Series([e.hourly_rate for e in employees], dtype=object))
    return float(rates.mean())


def calculate_cost_breakdown(product: Product,
                             employees: Sequence[Employee],
                             config: Optional[dict] = None) -> Dict[str, float]:
    """
    Per-unit cost components of a product.

    Returns:
        {"ingredient_cost": float, "labor_cost": float, "storage_cost": float}
    """
    cfg = resolve_config(config)

    ingredient_cost = sum(
        float(ing.quantity or 0.0) * cfg["ingredient_unit_cost_estimate"]
        for ing in product.ingredients
    )

    labor_allocation = float(product.employee_hours_required or 0.0) * average_hourly_rate(employees, cfg)
    if cfg["labor_cost_mode"] == "per_minute":
        labor_cost = safe_divide(labor_allocation, float(product.preparation_time or 0.0)) * 60
    else:
        labor_cost = labor_allocation

    storage_cost = safe_divide(
        float(product.storage_required or 0.0) * cfg["storage_cost_per_volume_month"],
        cfg["days_per_month"],
    )

    return {
        "ingredient_cost": float(ingredient_cost),
        "labor_cost": float(labor_cost),
        "storage_cost": float(storage_cost),
    }


def calculate_product_cost(product: Product,
                           employees: Sequence[Employee],
                           config: Optional[dict] = None) -> float:
    """Estimated cost to produce one unit of `product`."""
    breakdown = calculate_cost_breakdown(product, employees, config)
    return breakdown["ingredient_cost"] + breakdown["labor_cost"] + breakdown["storage_cost"]


# =============================================================================
# PER-PRODUCT PERFORMANCE
# =============================================================================

def _product_sales_totals(sales_df: pd.DataFrame) -> pd.DataFrame:
    """units_sold and revenue per product_id."""
    if sales_df.empty:
        return pd.DataFrame(columns=["units_sold", "revenue"])
    return (
        sales_df
        .groupby("product_id", sort=False)
        .agg(units_sold=("quantity", "sum"), revenue=("line_revenue", "sum"))
    )


def _build_analysis(product: Product,
                    units_sold: float,
                    revenue: float,
                    employees: Sequence[Employee],
                    config: dict) -> ProductCostAnalysis:
    unit = calculate_cost_breakdown(product, employees, config)

    # Scale each component, then sum, so the breakdown adds up to total_cost
    ingredient_cost = unit["ingredient_cost"] * units_sold
    labor_cost = unit["labor_cost"] * units_sold
    storage_cost = unit["storage_cost"] * units_sold
    total_cost = ingredient_cost + labor_cost + storage_cost

    margin = revenue - total_cost
    margin_percentage = safe_divide(margin, revenue) * 100

    return ProductCostAnalysis(
        product_id=product.id,
        product_name=product.name,
        revenue=revenue,
        ingredient_cost=ingredient_cost,
        labor_cost=labor_cost,
        storage_cost=storage_cost,
        total_cost=total_cost,
        margin=margin,
        margin_percentage=margin_percentage,
        units_sold=units_sold,
    )


def analyze_product_performance(product_id: str,
                                products: Sequence[Product],
                                sales: Sequence[Sale],
                                employees: Sequence[Employee],
                                config: Optional[dict] = None) -> Optional[ProductCostAnalysis]:
    """
    Revenue, cost breakdown and margin of one product over all its sales.

    Revenue uses the price recorded on each sale, not the current product
    price. Returns None when `product_id` matches no product.
    """
    cfg = resolve_config(config)
    key = str(product_id)
    product = next((p for p in products if str(p.id) == key), None)
    if product is None:
        return None

    # Same coercion as the dashboard: ids as str, bad numbers as 0
    totals = _product_sales_totals(sales_to_frame(sales))
    if key in totals.index:
        units_sold = float(totals.at[key, "units_sold"])
        revenue = float(totals.at[key, "revenue"])
    else:
        units_sold, revenue = 0.0, 0.0

    return _build_analysis(product, units_sold, revenue, employees, cfg)


# =============================================================================
# DASHBOARD STATISTICS
# =============================================================================

def build_dashboard_stats(products: Sequence[Product],
                          employees: Sequence[Employee],
                          sales: Sequence[Sale],
                          expenses: Sequence[Expense],
                          config: Optional[dict] = None) -> DashboardStats:
    """
    Business-wide revenue, cost and profit summary.

    `total_expenses` in the result is logged expenses plus the cost of the
    goods actually sold (unit cost x units sold per product).
    """
    cfg = resolve_config(config)

    sales_df = sales_to_frame(sales)
    expenses_df = expenses_to_frame(expenses)

    total_revenue = float(sales_df["line_revenue"].sum()) if not sales_df.empty else 0.0
    operating_expenses = float(expenses_df["amount"].sum()) if not expenses_df.empty else 0.0

    totals = _product_sales_totals(sales_df)
    analyses = []
    cost_of_goods_sold = 0.0
    for product in products:
        key = str(product.id)
        if key in totals.index:
            units_sold = float(totals.at[key, "units_sold"])
            revenue = float(totals.at[key, "revenue"])
        else:
            units_sold, revenue = 0.0, 0.0
        cost_of_goods_sold += calculate_product_cost(product, employees, cfg) * units_sold
        analyses.append(_build_analysis(product, units_sold, revenue, employees, cfg))

    total_costs = operating_expenses + cost_of_goods_sold
    net_profit = total_revenue - total_costs
    profit_margin = safe_divide(net_profit, total_revenue) * 100

    # sorted() is stable, so equal margins keep product order
    top_products = sorted(analyses, key=lambda a: a.margin, reverse=True)[:cfg["top_products_limit"]]

    return DashboardStats(
        total_revenue=total_revenue,
        total_expenses=total_costs,
        net_profit=net_profit,
        profit_margin=profit_margin,
        average_order_value=safe_divide(total_revenue, len(sales)),
        top_products=top_products,
        operating_expenses=operating_expenses,
        cost_of_goods_sold=cost_of_goods_sold,
    )


# =============================================================================
# GROUPINGS
# =============================================================================

def build_sales_by_employee(sales: Sequence[Sale],
                            employees: Sequence[Employee],
                            config: Optional[dict] = None) -> List[SalesByEmployee]:
    """Revenue and sale count per employee, highest revenue first."""
    cfg = resolve_config(config)
    sales_df = sales_to_frame(sales)
    if sales_df.empty:
        return []

    by_employee = (
        sales_df
        .groupby("employee_id", sort=False)
        .agg(total_revenue=("line_revenue", "sum"), number_of_sales=("sale_id", "size"))
        .reset_index()
        .sort_values("total_revenue", ascending=False, kind="mergesort")
    )

    names = _name_map(employees)
    return [
        SalesByEmployee(
            employee_id=row.employee_id,
            employee_name=lookup_name(names, row.employee_id, cfg["unknown_label"]),
            total_revenue=float(row.total_revenue),
            number_of_sales=int(row.number_of_sales),
        )
        for row in by_employee.itertuples(index=False)
    ]


def build_staff_costs(employees: Sequence[Employee],
                      config: Optional[dict] = None) -> List[StaffCost]:
    """Weekly and monthly wage bill per employee, in employee order."""
    cfg = resolve_config(config)
    employees_df = employees_to_frame(employees)
    if employees_df.empty:
        return []

    employees_df["weekly_cost"] = employees_df["hourly_rate"] * employees_df["hours_per_week"]
    employees_df["monthly_cost"] = employees_df["weekly_cost"] * cfg["weeks_per_month"]

    return [
        StaffCost(
            employee_id=str(row.employee_id),
            employee_name=row.employee_name,
            role=row.role,
            hourly_rate=float(row.hourly_rate),
            hours_per_week=float(row.hours_per_week),
            weekly_cost=float(row.weekly_cost),
            monthly_cost=float(row.monthly_cost),
        )
        for row in employees_df.itertuples(index=False)
    ]


def build_time_by_category(sales: Sequence[Sale],
                           products: Sequence[Product],
                           config: Optional[dict] = None) -> List[TimeByCategory]:
    """
    Preparation time spent per product category, largest first.

    Sales of unknown products are left out: there is no category to
    attribute them to.
    """
    resolve_config(config)
    sales_df = sales_to_frame(sales)
    products_df = products_to_frame(products)
    if sales_df.empty or products_df.empty:
        return []

    lines = sales_df.merge(
        products_df[["product_id", "category", "preparation_time"]].drop_duplicates("product_id"),
        on="product_id",
        how="inner",
    )
    if lines.empty:
        return []
    lines["line_time"] = lines["preparation_time"] * lines["quantity"]

    by_category = (
        lines
        .groupby("category", sort=False)
        .agg(total_time=("line_time", "sum"), units_sold=("quantity", "sum"))
        .reset_index()
        .sort_values("total_time", ascending=False, kind="mergesort")
    )

    return [
        TimeByCategory(
            category=row.category,
            total_time=float(row.total_time),
            total_hours=float(row.total_time) / 60,
            units_sold=float(row.units_sold),
        )
        for row in by_category.itertuples(index=False)
    ]


def build_storage_by_product(sales: Sequence[Sale],
                             products: Sequence[Product],
                             config: Optional[dict] = None) -> List[StorageByProduct]:
    """
    Storage volume consumed by units sold, per product, top N.

    Sales of unknown products still form a row ("Unknown", zero storage).
    """
    cfg = resolve_config(config)
    sales_df = sales_to_frame(sales)
    if sales_df.empty:
        return []

    products_df = products_to_frame(products).drop_duplicates("product_id")
    lines = sales_df.merge(
        products_df[["product_id", "storage_required"]],
        on="product_id",
        how="left",
    )
    lines["storage_required"] = _to_numeric(lines["storage_required"])
    lines["line_storage"] = lines["storage_required"] * lines["quantity"]

    by_product = (
        lines
        .groupby("product_id", sort=False)
        .agg(total_storage=("line_storage", "sum"), units_sold=("quantity", "sum"))
        .reset_index()
        .sort_values("total_storage", ascending=False, kind="mergesort")
        .head(cfg["top_storage_limit"])
    )

    names = dict(zip(products_df["product_id"], products_df["product_name"]))
    return [
        StorageByProduct(
            product_id=row.product_id,
            product_name=lookup_name(names, row.product_id, cfg["unknown_label"]),
            total_storage=float(row.total_storage),
            units_sold=float(row.units_sold),
        )
        for row in by_product.itertuples(index=False)
    ]


def build_expenses_by_category(expenses: Sequence[Expense],
                               config: Optional[dict] = None) -> List[ExpensesByCategory]:
    resolve_config(config)
    expenses_df = expenses_to_frame(expenses)
    if expenses_df.empty:
        return []

    by_category = (
        expenses_df
        .groupby("category", sort=False)
        .agg(total_amount=("amount", "sum"), expense_count=("expense_id", "size"))
        .reset_index()
        .sort_values("total_amount", ascending=False, kind="mergesort")
    )

    return [
        ExpensesByCategory(
            category=row.category,
            total_amount=float(row.total_amount),
            count=int(row.expense_count),
        )
        for row in by_category.itertuples(index=False)
    ]


def _select_day_window(sales_df: pd.DataFrame,
                       day_range: str,
                       today: pd.Timestamp,
                       config: dict) -> pd.DataFrame:
    """
    Sales of the month to chart.

    The current month wins when it has sales; otherwise the latest month
    with any sales. "week" keeps the trailing days of that window, ending
    today for the current month or on the window's last sale day.
    """
    dated = sales_df[sales_df["sale_dt"].notna()]
    if dated.empty:
        return dated

    periods = dated["sale_dt"].dt.to_period("M")
    current = today.to_period("M")
    if (periods == current).any():
        window = dated[periods == current]
        window_end = today
    else:
        window = dated[periods == periods.max()]
        window_end = window["sale_dt"].max().normalize()

    if day_range == "week":
        window_start = window_end - pd.Timedelta(days=config["week_days"] - 1)
        sale_day = window["sale_dt"].dt.normalize()
        window = window[(sale_day >= window_start) & (sale_day <= window_end)]

    return window


def build_sales_by_day(sales: Sequence[Sale],
                       employees: Sequence[Employee],
                       day_range: str = "month",
                       today=None,
                       config: Optional[dict] = None) -> List[SalesByDay]:
    """
    Daily revenue, units and selling staff for the relevant month.

    Args:
        sales: Sale records (malformed dates are ignored)
        employees: Employee records, for names
        day_range: "month" or "week"
        today: Reference date (defaults to now)

    Returns:
        One SalesByDay per day of month with sales, ascending by day.
    """
    cfg = resolve_config(config)
    if day_range not in DAY_RANGES:
        raise ValueError(f"Unknown day range {day_range!r}. Expected one of {DAY_RANGES}")

    sales_df = sales_to_frame(sales)
    if sales_df.empty:
        return []

    reference = parse_record_date(today if today is not None else datetime.now())
    if pd.isna(reference):
        reference = pd.Timestamp(date.today())
    window = _select_day_window(sales_df, day_range, reference.normalize(), cfg)
    if window.empty:
        return []

    names = _name_map(employees)
    window = window.assign(
        day=window["sale_dt"].dt.day,
        employee_name=window["employee_id"].map(lambda key: lookup_name(names, key, cfg["unknown_label"])),
    )

    by_day = (
        window
        .groupby("day")
        .agg(
            first_dt=("sale_dt", "min"),
            total_revenue=("line_revenue", "sum"),
            total_quantity=("quantity", "sum"),
        )
        .sort_index()
    )
    staff_by_day = {
        day: tuple(sorted(set(day_names)))
        for day, day_names in window.groupby("day")["employee_name"]
    }

    return [
        SalesByDay(
            day=int(day),
            date=row.first_dt.strftime("%Y-%m-%d"),
            total_revenue=float(row.total_revenue),
            total_quantity=float(row.total_quantity),
            employees=staff_by_day.get(day, ()),
        )
        for day, row in by_day.iterrows()
    ]


# =============================================================================
# ENGINE FACADE
# =============================================================================

class AnalyticsEngine:
    """
    Query facade over an injected record store.

    The store only needs get_products(), get_employees(), get_sales() and
    get_expenses(). Every call reads a fresh snapshot and recomputes.
    """

    def __init__(self, store, config: Optional[dict] = None):
        self.store = store
        self.config = resolve_config(config)

    def cost_of(self, product: Product) -> float:
        return calculate_product_cost(product, self.store.get_employees(), self.config)

    def analyze(self, product_id: str) -> Optional[ProductCostAnalysis]:
        return analyze_product_performance(
            product_id,
            self.store.get_products(),
            self.store.get_sales(),
            self.store.get_employees(),
            self.config,
        )

    def dashboard_stats(self) -> DashboardStats:
        return build_dashboard_stats(
            self.store.get_products(),
            self.store.get_employees(),
            self.store.get_sales(),
            self.store.get_expenses(),
            self.config,
        )

    def sales_by_employee(self) -> List[SalesByEmployee]:
        return build_sales_by_employee(self.store.get_sales(), self.store.get_employees(), self.config)

    def staff_costs(self) -> List[StaffCost]:
        return build_staff_costs(self.store.get_employees(), self.config)

    def time_by_category(self) -> List[TimeByCategory]:
        return build_time_by_category(self.store.get_sales(), self.store.get_products(), self.config)

    def storage_by_product(self) -> List[StorageByProduct]:
        return build_storage_by_product(self.store.get_sales(), self.store.get_products(), self.config)

    def expenses_by_category(self) -> List[ExpensesByCategory]:
        return build_expenses_by_category(self.store.get_expenses(), self.config)

    def sales_by_day(self, day_range: str = "month", today=None) -> List[SalesByDay]:
        return build_sales_by_day(
            self.store.get_sales(),
            self.store.get_employees(),
            day_range=day_range,
            today=today,
            config=self.config,
        )
