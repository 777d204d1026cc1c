"""
Restaurant Records - Core Data Structures
==========================================

Value records consumed and produced by the analytics engine.

Input records (what the record store hands out):
- Product, Ingredient
- Employee
- Sale
- Expense

Result records (what the engine computes):
- ProductCostAnalysis
- DashboardStats
- SalesByEmployee, StaffCost, TimeByCategory, StorageByProduct,
  ExpensesByCategory, SalesByDay

All records are frozen: the engine only ever reads a snapshot.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, List, Optional, Tuple, Union

import pandas as pd


DateLike = Union[datetime, date, str, None]


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class Ingredient:
    """
    One line of a product's bill of materials.

    Attributes:
        product_id: Reference to the ingredient (itself a stock item)
        quantity: Amount used per unit of the finished product
        unit: Free-form unit label ("g", "ml", "ud", ...)
    """
    product_id: str
    quantity: float
    unit: str = ""


@dataclass(frozen=True)
class Product:
    """
    A sellable menu item.

    Attributes:
        id: Unique identifier
        name: Display name
        price: Current list price (sales carry their own historical price)
        category: Menu category used for time grouping
        ingredients: Ingredient lines (may be empty)
        preparation_time: Minutes to prepare one unit
        storage_required: Cubic volume units needed per unit
        employee_hours_required: Labor hours allocated per unit
    """
    id: str
    name: str
    price: float
    category: str
    ingredients: Tuple[Ingredient, ...] = ()
    preparation_time: float = 0.0
    storage_required: float = 0.0
    employee_hours_required: float = 0.0


@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    role: str
    hourly_rate: float
    hours_per_week: float = 0.0


@dataclass(frozen=True)
class Sale:
    """
    A single sale line.

    `product_id` and `employee_id` are soft references and may dangle.
    `price` is the unit price at the time of sale.
    """
    id: str
    product_id: str
    quantity: float
    price: float
    date: DateLike
    employee_id: str


@dataclass(frozen=True)
class Expense:
    id: str
    description: str
    amount: float
    category: str
    date: DateLike


# =============================================================================
# RESULT RECORDS
# =============================================================================

@dataclass(frozen=True)
class ProductCostAnalysis:
    """
    Cost and margin breakdown for one product over all of its sales.

    Attributes:
        product_id: Product analysed
        product_name: Display name
        revenue: Sum of sale price x quantity
        ingredient_cost: Ingredient cost for all units sold
        labor_cost: Labor cost for all units sold
        storage_cost: Storage cost for all units sold
        total_cost: ingredient_cost + labor_cost + storage_cost
        margin: revenue - total_cost
        margin_percentage: margin / revenue * 100 (0 when revenue is 0)
        units_sold: Sum of quantities sold
    """
    product_id: str
    product_name: str
    revenue: float
    ingredient_cost: float
    labor_cost: float
    storage_cost: float
    total_cost: float
    margin: float
    margin_percentage: float
    units_sold: float


@dataclass(frozen=True)
class DashboardStats:
    """
    Business-wide summary.

    `total_expenses` is operating expenses plus cost of goods sold; the two
    parts are also reported separately.
    """
    total_revenue: float
    total_expenses: float
    net_profit: float
    profit_margin: float
    average_order_value: float
    top_products: List[ProductCostAnalysis] = field(default_factory=list)
    operating_expenses: float = 0.0
    cost_of_goods_sold: float = 0.0


@dataclass(frozen=True)
class SalesByEmployee:
    employee_id: str
    employee_name: str
    total_revenue: float
    number_of_sales: int


@dataclass(frozen=True)
class StaffCost:
    """Wage bill of one employee: hourly_rate x hours_per_week, and per month."""
    employee_id: str
    employee_name: str
    role: str
    hourly_rate: float
    hours_per_week: float
    weekly_cost: float
    monthly_cost: float


@dataclass(frozen=True)
class TimeByCategory:
    category: str
    total_time: float  # minutes
    total_hours: float
    units_sold: float


@dataclass(frozen=True)
class StorageByProduct:
    product_id: str
    product_name: str
    total_storage: float
    units_sold: float


@dataclass(frozen=True)
class ExpensesByCategory:
    category: str
    total_amount: float
    count: int


@dataclass(frozen=True)
class SalesByDay:
    """
    One day-of-month bucket.

    Attributes:
        day: Day of month (1-31)
        date: ISO date of the bucket (YYYY-MM-DD)
        total_revenue: Sum of price x quantity for the day
        total_quantity: Units sold that day
        employees: Distinct names of employees who sold that day, sorted
    """
    day: int
    date: str
    total_revenue: float
    total_quantity: float
    employees: Tuple[str, ...] = ()


# =============================================================================
# CONVERSION HELPERS
# =============================================================================

def rows_to_frame(rows: List[Any], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Convert a list of records to a DataFrame.

    An empty list still yields the expected columns when `columns` is given.
    """
    if not rows:
        return pd.DataFrame(columns=columns or [])
    return pd.DataFrame([asdict(r) for r in rows])
