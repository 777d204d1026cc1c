"""
Record Store - Storage Collaborator for the Analytics Engine
============================================================

Supplies the four collections the engine reads:
- get_products()
- get_employees()
- get_sales()
- get_expenses()

Two stores:
- InMemoryRecordStore: whole-collection snapshots, save/clear, change callbacks
- CsvRecordStore: loads a directory of CSV exports (Spanish or English headers)

Plus CSV import (replace or merge by id) and CSV export.
"""

from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd

from restaurant_records import Employee, Expense, Product, Sale


RECORD_KINDS = ("products", "employees", "sales", "expenses")
RECORD_TYPES = {
    "products": Product,
    "employees": Employee,
    "sales": Sale,
    "expenses": Expense,
}

# Column aliases -> canonical field names
DEFAULT_PRODUCT_COLUMN_MAP = {
    "Id": "id",
    "nombre": "name",
    "precio": "price",
    "categoria": "category",
    "tiempoPreparacion": "preparation_time",
    "preparationTime": "preparation_time",
    "almacenajeRequerido": "storage_required",
    "storageRequired": "storage_required",
    "horasEmpleadoRequeridas": "employee_hours_required",
    "employeeHoursRequired": "employee_hours_required",
}

DEFAULT_EMPLOYEE_COLUMN_MAP = {
    "Id": "id",
    "nombre": "name",
    "rol": "role",
    "tarifaHora": "hourly_rate",
    "hourlyRate": "hourly_rate",
    "horasSemana": "hours_per_week",
    "hoursPerWeek": "hours_per_week",
}

DEFAULT_SALE_COLUMN_MAP = {
    "Id": "id",
    "productoId": "product_id",
    "productId": "product_id",
    "cantidad": "quantity",
    "precio": "price",
    "fecha": "date",
    "empleadoId": "employee_id",
    "employeeId": "employee_id",
}

DEFAULT_EXPENSE_COLUMN_MAP = {
    "Id": "id",
    "descripcion": "description",
    "cantidad": "amount",
    "categoria": "category",
    "fecha": "date",
}

# Fields that must be non-empty for a row to be kept
REQUIRED_FIELDS = {
    "products": ["id", "name"],
    "employees": ["id", "name"],
    "sales": ["id", "product_id", "employee_id"],
    "expenses": ["id", "description"],
}

NUMERIC_FIELDS = {
    "products": ["price", "preparation_time", "storage_required", "employee_hours_required"],
    "employees": ["hourly_rate", "hours_per_week"],
    "sales": ["quantity", "price"],
    "expenses": ["amount"],
}

TEXT_FIELDS = {
    "products": ["id", "name", "category"],
    "employees": ["id", "name", "role"],
    "sales": ["id", "product_id", "employee_id", "date"],
    "expenses": ["id", "description", "category", "date"],
}

COLUMN_MAPS = {
    "products": DEFAULT_PRODUCT_COLUMN_MAP,
    "employees": DEFAULT_EMPLOYEE_COLUMN_MAP,
    "sales": DEFAULT_SALE_COLUMN_MAP,
    "expenses": DEFAULT_EXPENSE_COLUMN_MAP,
}

# File names tried in order for each kind
CSV_FILE_NAMES = {
    "products": ["productos.csv", "products.csv"],
    "employees": ["empleados.csv", "employees.csv"],
    "sales": ["ventas.csv", "sales.csv"],
    "expenses": ["gastos.csv", "expenses.csv"],
}


def _check_kind(kind: str) -> None:
    if kind not in RECORD_KINDS:
        raise ValueError(f"Unknown record kind {kind!r}. Expected one of {RECORD_KINDS}")


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemoryRecordStore:
    """
    Holds whole-collection snapshots.

    Getters return copies of the stored lists, so callers can never mutate
    the store through a snapshot. Every save / clear notifies subscribers
    with the name of the collection that changed ("all" for clear_all).
    """

    def __init__(self,
                 products: Sequence[Product] = (),
                 employees: Sequence[Employee] = (),
                 sales: Sequence[Sale] = (),
                 expenses: Sequence[Expense] = ()):
        self._collections: Dict[str, list] = {
            "products": list(products),
            "employees": list(employees),
            "sales": list(sales),
            "expenses": list(expenses),
        }
        self._listeners: List[Callable[[str], None]] = []

    # --- change notification ---
    def subscribe(self, callback: Callable[[str], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[str], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, kind: str) -> None:
        for callback in list(self._listeners):
            callback(kind)

    # --- generic access ---
    def get(self, kind: str) -> list:
        _check_kind(kind)
        return list(self._collections[kind])

    def save(self, kind: str, records: Sequence) -> None:
        _check_kind(kind)
        self._collections[kind] = list(records)
        self._notify(kind)

    def clear_all(self) -> None:
        for kind in RECORD_KINDS:
            self._collections[kind] = []
        self._notify("all")

    # --- accessors read by the engine ---
    def get_products(self) -> List[Product]:
        return self.get("products")

    def get_employees(self) -> List[Employee]:
        return self.get("employees")

    def get_sales(self) -> List[Sale]:
        return self.get("sales")

    def get_expenses(self) -> List[Expense]:
        return self.get("expenses")

    def save_products(self, products: Sequence[Product]) -> None:
        self.save("products", products)

    def save_employees(self, employees: Sequence[Employee]) -> None:
        self.save("employees", employees)

    def save_sales(self, sales: Sequence[Sale]) -> None:
        self.save("sales", sales)

    def save_expenses(self, expenses: Sequence[Expense]) -> None:
        self.save("expenses", expenses)


# =============================================================================
# CSV LOADING
# =============================================================================

def _read_any_table(path) -> pd.DataFrame:
    """Read CSV/.xlsx with UTF-8-BOM first, latin-1 as fallback."""
    path = str(path)
    if path.lower().endswith(".xls"):
        raise ValueError(f"❌ Legacy .xls workbooks are not supported: {path}. Save it as .xlsx or .csv")
    if path.lower().endswith(".xlsx"):
        return pd.read_excel(path, dtype=str, engine="openpyxl")
    try:
        return pd.read_csv(path, encoding="utf-8-sig", dtype=str, keep_default_na=False)
    except UnicodeDecodeError:
        print(f"⚠️  UTF-8 decode failed, trying latin-1 encoding for {path}")
        return pd.read_csv(path, encoding="latin-1", dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()


def normalize_record_frame(raw_df: pd.DataFrame,
                           kind: str,
                           column_map: Optional[dict] = None) -> pd.DataFrame:
    """
    Rename aliased columns, coerce types and drop rows missing required fields.

    Raises:
        ValueError: when a required column is absent after mapping
    """
    _check_kind(kind)
    mapping = COLUMN_MAPS[kind].copy()
    if column_map:
        mapping.update(column_map)

    df = raw_df.rename(columns={k: v for k, v in mapping.items() if k in raw_df.columns})
    # Alias and canonical header both present: keep the first
    df = df.loc[:, ~df.columns.duplicated()]

    missing = [c for c in REQUIRED_FIELDS[kind] if c not in df.columns]
    if missing:
        raise ValueError(
            f"❌ CRITICAL: {kind} data missing required columns: {missing}\n"
            f"Available columns: {list(raw_df.columns)}"
        )

    df = df.copy()
    for col in TEXT_FIELDS[kind]:
        if col not in df.columns:
            df[col] = ""
        df[col] = df[col].fillna("").astype(str).str.strip()
    for col in NUMERIC_FIELDS[kind]:
        if col not in df.columns:
            df[col] = 0.0
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)

    keep = pd.Series(True, index=df.index)
    for col in REQUIRED_FIELDS[kind]:
        keep &= df[col] != ""
    return df[keep].reset_index(drop=True)


def frame_to_records(df: pd.DataFrame, kind: str) -> list:
    """Build record objects from a normalized frame. Products get no ingredients."""
    _check_kind(kind)
    records = []
    for row in df.to_dict("records"):
        if kind == "products":
            records.append(Product(
                id=row["id"],
                name=row["name"],
                price=float(row["price"]),
                category=row["category"],
                ingredients=(),
                preparation_time=float(row["preparation_time"]),
                storage_required=float(row["storage_required"]),
                employee_hours_required=float(row["employee_hours_required"]),
            ))
        elif kind == "employees":
            records.append(Employee(
                id=row["id"],
                name=row["name"],
                role=row["role"],
                hourly_rate=float(row["hourly_rate"]),
                hours_per_week=float(row["hours_per_week"]),
            ))
        elif kind == "sales":
            records.append(Sale(
                id=row["id"],
                product_id=row["product_id"],
                quantity=float(row["quantity"]),
                price=float(row["price"]),
                date=row["date"] or None,
                employee_id=row["employee_id"],
            ))
        else:
            records.append(Expense(
                id=row["id"],
                description=row["description"],
                amount=float(row["amount"]),
                category=row["category"],
                date=row["date"] or None,
            ))
    return records


def load_records_csv(path, kind: str, column_map: Optional[dict] = None) -> list:
    """Read one CSV/Excel export into records of `kind`."""
    raw_df = _read_any_table(path)
    if raw_df.empty and len(raw_df.columns) == 0:
        return []
    return frame_to_records(normalize_record_frame(raw_df, kind, column_map), kind)


def _find_csv(data_dir: Path, kind: str) -> Optional[Path]:
    for name in CSV_FILE_NAMES[kind]:
        candidate = data_dir / name
        if candidate.exists():
            return candidate
    return None


class CsvRecordStore(InMemoryRecordStore):
    """
    A store loaded from a directory of CSV exports.

    Looks for productos.csv / products.csv, empleados.csv / employees.csv,
    ventas.csv / sales.csv and gastos.csv / expenses.csv. A missing file is
    an empty collection.
    """

    def __init__(self, data_dir, column_maps: Optional[Dict[str, dict]] = None):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.column_maps = column_maps or {}
        self.reload()

    def reload(self) -> None:
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")
        for kind in RECORD_KINDS:
            path = _find_csv(self.data_dir, kind)
            records = load_records_csv(path, kind, self.column_maps.get(kind)) if path else []
            self._collections[kind] = records
        self._notify("all")


# =============================================================================
# IMPORT / EXPORT
# =============================================================================

def import_records(store: InMemoryRecordStore,
                   kind: str,
                   records: Sequence,
                   merge: bool = False) -> dict:
    """
    Replace a collection, or merge into it by id.

    When merging, imported records win; an imported product with no
    ingredients keeps the existing product's ingredients.

    Returns:
        {"success": int, "errors": [str]}
    """
    _check_kind(kind)
    records = list(records)
    if not records:
        return {"success": 0, "errors": [f"No valid {kind} found to import"]}

    if not merge:
        store.save(kind, records)
        return {"success": len(records), "errors": []}

    by_id = {r.id: r for r in store.get(kind)}
    for record in records:
        existing = by_id.get(record.id)
        if kind == "products" and existing is not None and not record.ingredients:
            record = replace(record, ingredients=existing.ingredients)
        by_id[record.id] = record
    store.save(kind, list(by_id.values()))
    return {"success": len(records), "errors": []}


def import_records_csv(store: InMemoryRecordStore,
                       kind: str,
                       path,
                       merge: bool = False,
                       column_map: Optional[dict] = None) -> dict:
    """Load a CSV export and import it; read failures are reported, not raised."""
    try:
        records = load_records_csv(path, kind, column_map)
    except (ValueError, OSError) as e:
        return {"success": 0, "errors": [f"Failed to import {kind}: {e}"]}
    return import_records(store, kind, records, merge=merge)


def records_to_export_frame(records: Sequence, kind: str) -> pd.DataFrame:
    _check_kind(kind)
    columns = [f.name for f in fields(RECORD_TYPES[kind]) if f.name != "ingredients"]
    rows = []
    for record in records:
        row = asdict(record)
        if kind == "products":
            row.pop("ingredients", None)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def export_store_to_csv(store, output_dir) -> Dict[str, Path]:
    """Write the four collections as products.csv, employees.csv, sales.csv, expenses.csv."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    getters = {
        "products": store.get_products,
        "employees": store.get_employees,
        "sales": store.get_sales,
        "expenses": store.get_expenses,
    }
    written = {}
    for kind, getter in getters.items():
        path = output_dir / CSV_FILE_NAMES[kind][1]
        records_to_export_frame(getter(), kind).to_csv(path, index=False)
        written[kind] = path
    return written
