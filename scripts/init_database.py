"""
Initialize a MedInvoice database file with reference data and sample invoices.
"""

import argparse
from pathlib import Path

from medinvoice.core.config import PACKAGED_REFERENCE_DATA, load_settings
from medinvoice.invoicing import InvoiceSearch, InvoiceService, seed_database
from medinvoice.storage import DuckDBStore


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Create and seed a MedInvoice DuckDB database"
    )
    parser.add_argument(
        "--env-file", "-e",
        type=Path,
        default=None,
        help="Env file with MEDINVOICE_* settings, read before the environment"
    )
    parser.add_argument(
        "--database", "-d",
        type=Path,
        default=None,
        help="DuckDB file to create or reuse (default: MEDINVOICE_DATABASE_PATH)"
    )
    parser.add_argument(
        "--reference-data", "-r",
        type=Path,
        default=PACKAGED_REFERENCE_DATA,
        help="YAML file with users, projects, debtors, inventory, fees, subsidies and invoices"
    )

    args = parser.parse_args()
    settings = load_settings(str(args.env_file) if args.env_file else None)
    database = args.database or Path(settings.database_path)

    print("🏥 MedInvoice database initialization")
    print("=" * 40)
    print(f"   Database: {database}")
    print(f"   Reference data: {args.reference_data}")

    store = DuckDBStore(database)
    try:
        created = seed_database(store, settings, path=args.reference_data)
        if created == 0:
            print("\n⚠️  Database already initialized, nothing to do")
        total = len(InvoiceService(store, settings).list_invoices(InvoiceSearch()))
        print(f"   Invoices: {total}")
    finally:
        store.close()

    print("\n✅ Done!")


if __name__ == "__main__":
    main()
