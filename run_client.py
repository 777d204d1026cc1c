import argparse
import os

import restaurant_analytics as engine
from diagnostics import run_diagnostics
from record_store import CsvRecordStore
from restaurant_report import export_results_to_excel, run_full_analysis, save_results


def configure_client_paths(data_dir=None, output_dir=None):
    """
    Configure client data paths.

    The data directory holds the CSV exports of the restaurant app:
    - productos.csv / products.csv (id, nombre, precio, categoria, tiempoPreparacion, ...)
    - empleados.csv / employees.csv (id, nombre, rol, tarifaHora, horasSemana)
    - ventas.csv / sales.csv (id, productoId, cantidad, precio, fecha, empleadoId)
    - gastos.csv / expenses.csv (id, descripcion, cantidad, categoria, fecha)
    A missing file is read as an empty collection.
    """
    config = engine.CONFIG.copy()
    config["data_dir"] = data_dir or config["data_dir"]
    config["output_dir"] = output_dir or "output_client"

    print("Client configuration loaded.")
    print(f"  Data dir: {config['data_dir']}")
    print(f"  Output dir: {config['output_dir']}")
    print(f"  Labor cost mode: {config['labor_cost_mode']}")
    print()

    return config


def main(argv=None):
    """Run the analytics engine on a directory of client CSV exports and save outputs."""
    parser = argparse.ArgumentParser(description="Restaurant cost & margin report from CSV exports")
    parser.add_argument("--data-dir", "-d", default=None, help="Directory with the CSV exports")
    parser.add_argument("--output", "-o", default=None, help="Output directory")
    parser.add_argument("--range", choices=list(engine.DAY_RANGES), default="month",
                        help="Window for the sales-by-day table")
    parser.add_argument("--labor-mode", choices=list(engine.LABOR_COST_MODES), default=None)
    parser.add_argument("--skip-diagnostics", action="store_true")
    args = parser.parse_args(argv)

    config = configure_client_paths(args.data_dir, args.output)
    if args.labor_mode:
        config["labor_cost_mode"] = args.labor_mode

    if not os.path.isdir(config["data_dir"]):
        raise FileNotFoundError(
            f"Client data directory is missing: {config['data_dir']}.\n"
            "Export the restaurant CSVs there (or pass --data-dir) and retry."
        )

    store = CsvRecordStore(config["data_dir"])
    print(f"Loaded {len(store.get_products())} products, {len(store.get_employees())} employees, "
          f"{len(store.get_sales())} sales, {len(store.get_expenses())} expenses")

    if not args.skip_diagnostics:
        diagnostics = run_diagnostics(
            store.get_products(), store.get_employees(), store.get_sales(), store.get_expenses()
        )
        if not diagnostics["safe_to_proceed"]:
            print("⚠️  Data quality issues found - figures below may be distorted.\n")

    results = run_full_analysis(store, config=config, day_range=args.range)

    print("Client summary metrics:")
    for key, value in results["summary_metrics"].items():
        print(f"  {key}: {value}")
    print()

    output_dir = config["output_dir"]
    written = save_results(results, output_dir)

    excel_path = os.path.join(output_dir, "report_data.xlsx")
    export_results_to_excel(results, excel_path)
    written.append(excel_path)

    print(f"Wrote {len(written)} client outputs (CSVs, summary JSON, validation JSON, "
          f"markdown block, Excel workbook) to ./{output_dir}")
    return results


if __name__ == "__main__":
    main()
