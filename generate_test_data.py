"""
Synthetic Restaurant Dataset Generator
=======================================

Generates realistic restaurant records with configurable:
- Menu size (small/medium/large)
- Sales volume (low/medium/high)
- Data quality (pristine/typical/corrupted)
- Edge cases (dangling product/employee ids, malformed dates)

Use for:
- Automated testing
- Demo runs (example_main.py)
- Stress testing
"""

import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Literal

import numpy as np
import pandas as pd

from record_store import InMemoryRecordStore
from restaurant_records import Employee, Expense, Ingredient, Product, Sale


class RestaurantDataGenerator:
    """Generate synthetic restaurant datasets for testing"""

    CATEGORIES = ["Starters", "Mains", "Desserts", "Sides", "Drinks"]

    ITEM_NAMES = {
        "Starters": [
            "Caesar Salad", "Soup of the Day", "Garlic Bread", "Bruschetta",
            "Chicken Wings", "Calamari", "Croquetas", "Nachos",
            "Patatas Bravas", "Hummus Plate"
        ],
        "Mains": [
            "Beef Burger", "Chicken Burger", "Veggie Burger",
            "Margherita Pizza", "Paella Valenciana", "Fish and Chips",
            "Steak", "Salmon", "Pasta Carbonara", "Chicken Curry",
            "Vegetarian Lasagna", "Roast Chicken"
        ],
        "Desserts": [
            "Chocolate Cake", "Cheesecake", "Ice Cream", "Tiramisu",
            "Apple Pie", "Brownie", "Crema Catalana", "Flan"
        ],
        "Sides": [
            "French Fries", "Onion Rings", "Coleslaw", "Side Salad",
            "Mashed Potatoes", "Roasted Vegetables", "Garlic Mushrooms"
        ],
        "Drinks": [
            "Coca Cola", "Orange Juice", "Coffee", "Tea", "Beer Pint",
            "House Wine (175ml)", "Sparkling Water", "Still Water"
        ]
    }

    PRICE_RANGES = {
        "Starters": (4.0, 9.0),
        "Mains": (10.0, 25.0),
        "Desserts": (4.0, 8.0),
        "Sides": (2.5, 5.0),
        "Drinks": (1.5, 6.0)
    }

    # (min, max) preparation minutes
    PREP_MINUTES = {
        "Starters": (5, 15),
        "Mains": (12, 35),
        "Desserts": (3, 12),
        "Sides": (3, 10),
        "Drinks": (1, 3)
    }

    CATEGORY_WEIGHTS = {
        "Mains": 0.40,
        "Drinks": 0.25,
        "Starters": 0.15,
        "Sides": 0.12,
        "Desserts": 0.08
    }

    STAFF = [
        ("Lucía García", "Camarera", (10.5, 13.0)),
        ("Javier Martín", "Camarero", (10.5, 13.0)),
        ("Carmen López", "Cocinera", (12.0, 15.0)),
        ("Pablo Sánchez", "Cocinero", (12.0, 15.0)),
        ("Marta Ruiz", "Jefa de sala", (14.0, 17.0)),
        ("Diego Torres", "Barman", (11.0, 14.0)),
        ("Elena Navarro", "Chef", (16.0, 20.0)),
        ("Sergio Romero", "Ayudante de cocina", (9.5, 11.5)),
    ]

    EXPENSE_TEMPLATES = [
        ("Alquiler del local", "Alquiler", (1800.0, 2200.0)),
        ("Factura de luz", "Suministros", (250.0, 420.0)),
        ("Factura de agua", "Suministros", (60.0, 110.0)),
        ("Pedido proveedor", "Proveedores", (400.0, 1500.0)),
        ("Mantenimiento cocina", "Mantenimiento", (80.0, 300.0)),
        ("Publicidad redes sociales", "Marketing", (50.0, 200.0)),
    ]

    # Header row of each CSV export
    CSV_COLUMNS = {
        "productos.csv": ["id", "nombre", "precio", "categoria", "tiempoPreparacion",
                          "almacenajeRequerido", "horasEmpleadoRequeridas"],
        "empleados.csv": ["id", "nombre", "rol", "tarifaHora", "horasSemana"],
        "ventas.csv": ["id", "productoId", "cantidad", "precio", "fecha", "empleadoId"],
        "gastos.csv": ["id", "descripcion", "cantidad", "categoria", "fecha"],
    }

    def __init__(self, seed: int = 42):
        """Initialize with random seed for reproducibility"""
        np.random.seed(seed)
        random.seed(seed)

    def generate_products(self, size: Literal["small", "medium", "large"] = "medium") -> List[Product]:
        """
        Generate menu products

        Args:
            size: small (2 per category), medium (6 per category), large (every name)

        Returns:
            Products with ingredients, preparation time, storage and labor hours
        """
        per_category = {"small": 2, "medium": 6, "large": 20}[size]

        products = []
        for cat in self.CATEGORIES:
            names = self.ITEM_NAMES[cat]
            selected = random.sample(names, min(per_category, len(names)))
            for name in selected:
                price_min, price_max = self.PRICE_RANGES[cat]
                prep_min, prep_max = self.PREP_MINUTES[cat]
                prep = random.randint(prep_min, prep_max)
                n_ingredients = 0 if cat == "Drinks" else random.randint(1, 4)
                ingredients = tuple(
                    Ingredient(
                        product_id=f"ING{random.randint(1, 40):03d}",
                        quantity=round(random.uniform(0.1, 1.5), 2),
                        unit=random.choice(["kg", "l", "ud"]),
                    )
                    for _ in range(n_ingredients)
                )
                products.append(Product(
                    id=f"P{len(products) + 1:03d}",
                    name=name,
                    price=round(random.uniform(price_min, price_max), 2),
                    category=cat,
                    ingredients=ingredients,
                    preparation_time=float(prep),
                    storage_required=round(random.uniform(0.001, 0.05), 3),
                    # Only the hands-on share of prep time is billed as labor
                    employee_hours_required=round(prep / 60 * random.uniform(0.3, 0.6), 3),
                ))
        return products

    def generate_employees(self, n_staff: int = 6) -> List[Employee]:
        staff = self.STAFF[:max(0, min(n_staff, len(self.STAFF)))]
        return [
            Employee(
                id=f"E{i + 1:03d}",
                name=name,
                role=role,
                hourly_rate=round(random.uniform(*rate_range), 2),
                hours_per_week=float(random.choice([20, 30, 40])),
            )
            for i, (name, role, rate_range) in enumerate(staff)
        ]

    def generate_sales(self,
                       products: List[Product],
                       employees: List[Employee],
                       volume: Literal["low", "medium", "high"] = "medium",
                       days: int = 60,
                       end_date: datetime = None) -> List[Sale]:
        """
        Generate sale lines

        Args:
            products: Products to sell
            employees: Employees making the sales
            volume: low (~20/day), medium (~60/day), high (~200/day)
            days: Number of days of data, ending at end_date
            end_date: Last day of data (defaults to today)

        Returns:
            Sale records, prices jittered around the product list price
        """
        if not products or not employees:
            return []

        daily_range = {"low": (10, 30), "medium": (40, 80), "high": (150, 250)}[volume]
        end_date = (end_date or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0)
        start_date = end_date - timedelta(days=days - 1)

        weights = np.array([self.CATEGORY_WEIGHTS.get(p.category, 0.1) for p in products])
        weights = weights * np.random.lognormal(0, 0.5, len(products))
        weights = weights / weights.sum()

        staff_weights = np.linspace(1.5, 0.5, len(employees))
        staff_weights = staff_weights / staff_weights.sum()

        sales = []
        for day in range(days):
            n_lines = random.randint(*daily_range)
            picks = np.random.choice(len(products), size=n_lines, p=weights)
            sellers = np.random.choice(len(employees), size=n_lines, p=staff_weights)
            quantities = np.random.choice([1, 2, 3, 4], size=n_lines, p=[0.50, 0.30, 0.15, 0.05])
            for product_idx, seller_idx, qty in zip(picks, sellers, quantities):
                product = products[product_idx]
                hour = random.choice([13, 14, 14, 15, 20, 21, 21, 22])
                ts = start_date + timedelta(days=day, hours=hour, minutes=random.randint(0, 59))
                # Occasional promotions / price changes since the sale
                price = product.price if random.random() > 0.1 else round(product.price * 0.9, 2)
                sales.append(Sale(
                    id=f"V{len(sales) + 1:06d}",
                    product_id=product.id,
                    quantity=float(qty),
                    price=price,
                    date=ts,
                    employee_id=employees[seller_idx].id,
                ))
        return sales

    def generate_expenses(self, months: int = 2, end_date: datetime = None) -> List[Expense]:
        end_date = end_date or datetime.now()
        expenses = []
        for m in range(months):
            month_start = (end_date.replace(day=1) - timedelta(days=31 * m)).replace(day=1)
            for description, category, (low, high) in self.EXPENSE_TEMPLATES:
                expenses.append(Expense(
                    id=f"G{len(expenses) + 1:04d}",
                    description=description,
                    amount=round(random.uniform(low, high), 2),
                    category=category,
                    date=month_start + timedelta(days=random.randint(0, 27)),
                ))
        return expenses

    def corrupt_sales(self, sales: List[Sale], rate: float = 0.03) -> List[Sale]:
        """Swap in dangling product / employee ids and malformed dates on a share of sales"""
        corrupted = []
        for sale in sales:
            roll = random.random()
            if roll < rate:
                sale = Sale(sale.id, "P999", sale.quantity, sale.price, sale.date, sale.employee_id)
            elif roll < rate * 2:
                sale = Sale(sale.id, sale.product_id, sale.quantity, sale.price, sale.date, "E999")
            elif roll < rate * 3:
                sale = Sale(sale.id, sale.product_id, sale.quantity, sale.price, "not-a-date", sale.employee_id)
            corrupted.append(sale)
        return corrupted

    def generate_store(self,
                       menu_size: Literal["small", "medium", "large"] = "medium",
                       sales_volume: Literal["low", "medium", "high"] = "medium",
                       quality: Literal["pristine", "corrupted"] = "pristine",
                       days: int = 60,
                       n_staff: int = 6,
                       end_date: datetime = None) -> InMemoryRecordStore:
        """Generate a complete dataset into an in-memory store"""
        products = self.generate_products(menu_size)
        employees = self.generate_employees(n_staff)
        sales = self.generate_sales(products, employees, sales_volume, days, end_date)
        if quality == "corrupted":
            sales = self.corrupt_sales(sales)
        expenses = self.generate_expenses(max(1, days // 30), end_date)
        return InMemoryRecordStore(products, employees, sales, expenses)

    def write_csv_dataset(self, store, output_dir: str) -> Dict[str, str]:
        """
        Write the store as productos/empleados/ventas/gastos CSVs (Spanish headers).

        Returns:
            Paths of the files written
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        frames = {
            "productos.csv": pd.DataFrame([{
                "id": p.id, "nombre": p.name, "precio": p.price, "categoria": p.category,
                "tiempoPreparacion": p.preparation_time,
                "almacenajeRequerido": p.storage_required,
                "horasEmpleadoRequeridas": p.employee_hours_required,
            } for p in store.get_products()], columns=self.CSV_COLUMNS["productos.csv"]),
            "empleados.csv": pd.DataFrame([{
                "id": e.id, "nombre": e.name, "rol": e.role,
                "tarifaHora": e.hourly_rate, "horasSemana": e.hours_per_week,
            } for e in store.get_employees()], columns=self.CSV_COLUMNS["empleados.csv"]),
            "ventas.csv": pd.DataFrame([{
                "id": s.id, "productoId": s.product_id, "cantidad": s.quantity,
                "precio": s.price, "fecha": "" if s.date is None else str(s.date), "empleadoId": s.employee_id,
            } for s in store.get_sales()], columns=self.CSV_COLUMNS["ventas.csv"]),
            "gastos.csv": pd.DataFrame([{
                "id": g.id, "descripcion": g.description, "cantidad": g.amount,
                "categoria": g.category, "fecha": "" if g.date is None else str(g.date),
            } for g in store.get_expenses()], columns=self.CSV_COLUMNS["gastos.csv"]),
        }

        written = {}
        for fname, df in frames.items():
            path = output_path / fname
            df.to_csv(path, index=False)
            written[fname] = str(path)
        return written


# =============================================================================
# CLI INTERFACE
# =============================================================================

def main():
    """Generate test datasets via command line"""
    import argparse

    parser = argparse.ArgumentParser(description="Generate synthetic restaurant data")
    parser.add_argument("--output", "-o", default="data/synthetic", help="Output directory")
    parser.add_argument("--menu-size", choices=["small", "medium", "large"], default="medium")
    parser.add_argument("--sales-volume", choices=["low", "medium", "high"], default="medium")
    parser.add_argument("--quality", choices=["pristine", "corrupted"], default="pristine")
    parser.add_argument("--days", type=int, default=60, help="Days of sales data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")

    args = parser.parse_args()

    generator = RestaurantDataGenerator(seed=args.seed)

    print("\n🏭 Generating synthetic restaurant data...")
    print(f"   Menu Size: {args.menu_size}")
    print(f"   Sales Volume: {args.sales_volume}")
    print(f"   Quality: {args.quality}")
    print(f"   Days: {args.days}")
    print(f"   Output: {args.output}\n")

    store = generator.generate_store(
        menu_size=args.menu_size,
        sales_volume=args.sales_volume,
        quality=args.quality,
        days=args.days,
    )
    written = generator.write_csv_dataset(store, args.output)

    print("✅ Dataset generated successfully!\n")
    print("📊 Summary:")
    print(f"   products: {len(store.get_products())}")
    print(f"   employees: {len(store.get_employees())}")
    print(f"   sales: {len(store.get_sales())}")
    print(f"   expenses: {len(store.get_expenses())}")

    print("\n📁 Files created:")
    for path in written.values():
        print(f"   • {path}")


if __name__ == "__main__":
    main()
