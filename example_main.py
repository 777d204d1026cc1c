import os

import restaurant_analytics as engine
from generate_test_data import RestaurantDataGenerator
from restaurant_report import export_results_to_excel, run_full_analysis, save_results


def main():
    """Run the analytics engine on a synthetic restaurant and save outputs."""

    store = RestaurantDataGenerator(seed=42).generate_store(menu_size="medium", sales_volume="medium")
    analytics = engine.AnalyticsEngine(store, engine.CONFIG)

    results = run_full_analysis(store, config=engine.CONFIG)

    # Print summary
    print("Summary metrics:")
    print(results["summary_metrics"])

    print("\nTop 5 items by margin:")
    print(
        results["top_products_df"][["product_name", "units_sold", "revenue", "total_cost", "margin"]]
        .head(5)
        .to_string(index=False)
    )

    worst = min(results["dashboard"].top_products, key=lambda a: a.margin, default=None)
    if worst is not None:
        analysis = analytics.analyze(worst.product_id)
        print(f"\nLowest margin in the top list: {analysis.product_name} "
              f"({engine.format_currency(analysis.margin)}, {engine.format_percentage(analysis.margin_percentage)})")

    output_dir = "output"
    save_results(results, output_dir)

    excel_path = os.path.join(output_dir, "report_data.xlsx")
    export_results_to_excel(results, excel_path)

    print(f"\nWrote outputs to ./{output_dir}")
    print(f"Saved combined Excel workbook to {excel_path}")


if __name__ == "__main__":
    main()
