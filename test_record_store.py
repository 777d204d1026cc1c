"""
Record store, CSV loading and import/export tests
"""

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add current directory to path
sys.path.insert(0, str(Path(__file__).parent))

import record_store as rs
from record_store import CsvRecordStore, InMemoryRecordStore
from restaurant_records import Employee, Ingredient, Product, Sale


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def spanish_export(tmp_path):
    """A data directory as exported by the restaurant app (Spanish headers)"""
    pd.DataFrame({
        "id": ["P1", "P2", ""],
        "nombre": ["Paella", "Café", "Sin id"],
        "precio": ["14.5", "1.8", "3"],
        "categoria": ["Principales", "Bebidas", "Bebidas"],
        "tiempoPreparacion": ["35", "2", "1"],
        "almacenajeRequerido": ["0.05", "0.001", "0"],
        "horasEmpleadoRequeridas": ["0.3", "", "0"],
    }).to_csv(tmp_path / "productos.csv", index=False)

    pd.DataFrame({
        "id": ["E1", "E2"],
        "nombre": ["Lucía", "Javier"],
        "rol": ["Camarera", "Cocinero"],
        "tarifaHora": ["12.5", "14"],
        "horasSemana": ["40", "30"],
    }).to_csv(tmp_path / "empleados.csv", index=False)

    pd.DataFrame({
        "id": ["V1", "V2", "V3"],
        "productoId": ["P1", "P2", "P1"],
        "cantidad": ["2", "3", "1"],
        "precio": ["14.5", "1.8", "13"],
        "fecha": ["2024-03-05T13:00:00", "2024-03-05T14:00:00", ""],
        "empleadoId": ["E1", "E2", "E1"],
    }).to_csv(tmp_path / "ventas.csv", index=False)

    pd.DataFrame({
        "id": ["G1"],
        "descripcion": ["Alquiler"],
        "cantidad": ["1500"],
        "categoria": ["Alquiler"],
        "fecha": ["2024-03-01"],
    }).to_csv(tmp_path / "gastos.csv", index=False)

    return tmp_path


@pytest.fixture
def store():
    return InMemoryRecordStore(
        products=[Product("P1", "Paella", 14.5, "Principales", (Ingredient("ARROZ", 0.2, "kg"),), 35.0)],
        employees=[Employee("E1", "Lucía", "Camarera", 12.5)],
    )


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class TestInMemoryStore:

    def test_getters_return_copies(self, store):
        products = store.get_products()
        products.append(Product("P9", "X", 1.0, "Y"))
        assert len(store.get_products()) == 1

    def test_save_notifies_subscribers(self, store):
        events = []
        store.subscribe(events.append)
        store.save_sales([Sale("V1", "P1", 1, 14.5, "2024-03-05", "E1")])
        store.clear_all()
        assert events == ["sales", "all"]
        assert store.get_products() == []

    def test_unsubscribe(self, store):
        events = []
        store.subscribe(events.append)
        store.unsubscribe(events.append)
        store.save_expenses([])
        assert events == []

    def test_unknown_kind_rejected(self, store):
        with pytest.raises(ValueError):
            store.get("bookings")


# =============================================================================
# CSV LOADING
# =============================================================================

class TestCsvLoading:

    def test_spanish_headers_loaded(self, spanish_export):
        csv_store = CsvRecordStore(spanish_export)

        products = csv_store.get_products()
        # Row without id dropped
        assert [p.id for p in products] == ["P1", "P2"]
        assert products[0].name == "Paella"
        assert products[0].price == pytest.approx(14.5)
        assert products[0].preparation_time == pytest.approx(35.0)
        assert products[0].ingredients == ()
        assert products[1].employee_hours_required == 0.0

        employees = csv_store.get_employees()
        assert employees[0].hourly_rate == pytest.approx(12.5)
        assert employees[1].hours_per_week == pytest.approx(30.0)

        sales = csv_store.get_sales()
        assert sales[1].quantity == pytest.approx(3.0)
        assert sales[1].employee_id == "E2"
        assert sales[2].date is None

        expenses = csv_store.get_expenses()
        # "cantidad" is the amount for expenses
        assert expenses[0].amount == pytest.approx(1500.0)

    def test_missing_file_is_empty_collection(self, spanish_export):
        (spanish_export / "gastos.csv").unlink()
        csv_store = CsvRecordStore(spanish_export)
        assert csv_store.get_expenses() == []
        assert len(csv_store.get_sales()) == 3

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CsvRecordStore(tmp_path / "nope")

    def test_missing_required_columns(self, tmp_path):
        path = tmp_path / "productos.csv"
        pd.DataFrame({"precio": [1.0], "categoria": ["Bebidas"]}).to_csv(path, index=False)
        with pytest.raises(ValueError, match="missing required columns"):
            rs.load_records_csv(path, "products")

    def test_latin1_encoding(self, tmp_path):
        path = tmp_path / "empleados.csv"
        path.write_bytes("id,nombre,rol,tarifaHora\nE1,Begoña,Camarera,12\n".encode("latin-1"))
        employees = rs.load_records_csv(path, "employees")
        assert employees[0].name == "Begoña"

    def test_xlsx_workbook(self, tmp_path):
        path = tmp_path / "empleados.xlsx"
        pd.DataFrame({
            "id": ["E1"], "nombre": ["Lucía"], "rol": ["Camarera"], "tarifaHora": [12.5],
        }).to_excel(path, index=False)
        employees = rs.load_records_csv(path, "employees")
        assert employees[0].name == "Lucía"
        assert employees[0].hourly_rate == pytest.approx(12.5)
        assert employees[0].hours_per_week == 0.0

    def test_legacy_xls_rejected(self, tmp_path):
        path = tmp_path / "empleados.xls"
        path.write_bytes(b"")
        with pytest.raises(ValueError, match="xls"):
            rs.load_records_csv(path, "employees")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "ventas.csv"
        path.write_text("")
        assert rs.load_records_csv(path, "sales") == []

    def test_custom_column_map(self, tmp_path):
        path = tmp_path / "products.csv"
        pd.DataFrame({"code": ["X1"], "label": ["Tortilla"], "price": [6]}).to_csv(path, index=False)
        products = rs.load_records_csv(path, "products", {"code": "id", "label": "name"})
        assert products[0].id == "X1"
        assert products[0].name == "Tortilla"


# =============================================================================
# IMPORT / EXPORT
# =============================================================================

class TestImportExport:

    def test_replace_import(self, store):
        result = rs.import_records(store, "products", [Product("P2", "Café", 1.8, "Bebidas")])
        assert result == {"success": 1, "errors": []}
        assert [p.id for p in store.get_products()] == ["P2"]

    def test_merge_keeps_existing_ingredients(self, store):
        imported = [
            Product("P1", "Paella", 15.0, "Principales", (), 40.0),
            Product("P2", "Café", 1.8, "Bebidas"),
        ]
        result = rs.import_records(store, "products", imported, merge=True)
        assert result["success"] == 2

        products = {p.id: p for p in store.get_products()}
        assert products["P1"].price == pytest.approx(15.0)
        assert products["P1"].preparation_time == pytest.approx(40.0)
        assert products["P1"].ingredients == (Ingredient("ARROZ", 0.2, "kg"),)
        assert "P2" in products

    def test_empty_import_reports_error(self, store):
        result = rs.import_records(store, "sales", [])
        assert result["success"] == 0
        assert result["errors"]

    def test_import_csv_failure_reported(self, store, tmp_path):
        path = tmp_path / "empleados.csv"
        pd.DataFrame({"rol": ["Camarera"]}).to_csv(path, index=False)
        result = rs.import_records_csv(store, "employees", path)
        assert result["success"] == 0
        assert "Failed to import employees" in result["errors"][0]
        # Store untouched
        assert len(store.get_employees()) == 1

    def test_import_csv_merge(self, store, spanish_export):
        result = rs.import_records_csv(store, "products", spanish_export / "productos.csv", merge=True)
        assert result["success"] == 2
        paella = [p for p in store.get_products() if p.id == "P1"][0]
        assert paella.ingredients == (Ingredient("ARROZ", 0.2, "kg"),)

    def test_export_then_reload(self, spanish_export, tmp_path):
        original = CsvRecordStore(spanish_export)
        out_dir = tmp_path / "export"
        written = rs.export_store_to_csv(original, out_dir)
        assert written["products"].name == "products.csv"

        reloaded = CsvRecordStore(out_dir)
        assert [p.id for p in reloaded.get_products()] == ["P1", "P2"]
        assert [e.name for e in reloaded.get_employees()] == ["Lucía", "Javier"]
        assert sum(s.quantity for s in reloaded.get_sales()) == pytest.approx(6.0)
        assert reloaded.get_expenses()[0].amount == pytest.approx(1500.0)
