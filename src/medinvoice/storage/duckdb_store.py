"""DuckDB storage for MedInvoice."""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

import duckdb

from medinvoice.core.exceptions import StorageError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class DuplicateRecordError(StorageError):
    """Insert collided with an existing primary key."""


class AmountOutOfRangeError(StorageError):
    """A monetary value does not fit its DECIMAL column."""


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


INVOICE_SELECT = """
    SELECT i.uuid, i.reference, p.abbr AS project_abbr, p.name AS project_name, i.project_id,
        i.service_id, s.name AS service_name, i.debtor_uuid, d.text AS debtor_name,
        i.user_id, u.display_name, i.invoice_date AS date, i.description, i.cost, i.created_at
    FROM invoices i
    JOIN projects p ON p.id = i.project_id
    JOIN debtors d ON d.uuid = i.debtor_uuid
    JOIN users u ON u.id = i.user_id
    LEFT JOIN services s ON s.id = i.service_id
"""


class DuckDBStore:
    def __init__(self, db_path: Path | str = "./data/medinvoice.duckdb"):
        self.db_path = str(db_path)
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(self.db_path)
        self._tx_depth = 0
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY, username VARCHAR, display_name VARCHAR, api_key VARCHAR UNIQUE
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id INTEGER PRIMARY KEY, name VARCHAR, abbr VARCHAR
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS services (
                id INTEGER PRIMARY KEY, name VARCHAR
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS debtors (
                uuid VARCHAR PRIMARY KEY, text VARCHAR, group_name VARCHAR
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS inventory (
                uuid VARCHAR PRIMARY KEY, code VARCHAR, text VARCHAR, price DECIMAL(19, 4)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS invoicing_fees (
                id INTEGER PRIMARY KEY, label VARCHAR, description VARCHAR, value DECIMAL(19, 4)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS subsidies (
                id INTEGER PRIMARY KEY, label VARCHAR, description VARCHAR, value DECIMAL(19, 4)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS invoices (
                uuid VARCHAR PRIMARY KEY, project_id INTEGER, reference INTEGER,
                cost DECIMAL(19, 4), debtor_uuid VARCHAR, service_id INTEGER, user_id INTEGER,
                invoice_date TIMESTAMP, description VARCHAR, created_at TIMESTAMP
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS invoice_items (
                uuid VARCHAR PRIMARY KEY, invoice_uuid VARCHAR, item_order INTEGER, inventory_uuid VARCHAR,
                quantity DECIMAL(19, 4), inventory_price DECIMAL(19, 4), transaction_price DECIMAL(19, 4),
                credit DECIMAL(19, 4), debit DECIMAL(19, 4)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS invoice_invoicing_fees (
                invoice_uuid VARCHAR, invoicing_fee_id INTEGER, value DECIMAL(19, 4), amount DECIMAL(19, 4)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS invoice_subsidies (
                invoice_uuid VARCHAR, subsidy_id INTEGER, value DECIMAL(19, 4), amount DECIMAL(19, 4)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS posting_journal (
                uuid VARCHAR PRIMARY KEY, trans_id VARCHAR, record_uuid VARCHAR, role VARCHAR,
                entity_uuid VARCHAR, reference_id VARCHAR, description VARCHAR,
                debit DECIMAL(19, 4), credit DECIMAL(19, 4),
                trans_date TIMESTAMP, user_id INTEGER, created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.execute("CREATE SEQUENCE IF NOT EXISTS transaction_seq START 1")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _fetch_dicts(self, sql: str, params: list[Any] | None = None) -> list[dict[str, Any]]:
        cursor = self.conn.execute(sql, params or [])
        columns = [c[0] for c in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def _fetch_one(self, sql: str, params: list[Any] | None = None) -> dict[str, Any] | None:
        rows = self._fetch_dicts(sql, params)
        return rows[0] if rows else None

    @contextmanager
    def transaction(self) -> Iterator["DuckDBStore"]:
        """Run the block in one transaction; nested blocks join the outer one."""
        if self._tx_depth:
            self._tx_depth += 1
            try:
                yield self
            finally:
                self._tx_depth -= 1
            return

        self.conn.execute("BEGIN TRANSACTION")
        self._tx_depth = 1
        try:
            yield self
        except Exception:
            self._tx_depth = 0
            self.conn.execute("ROLLBACK")
            raise
        self._tx_depth = 0
        self.conn.execute("COMMIT")

    def is_empty(self) -> bool:
        return self.conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0

    # -------------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------------

    def insert_user(self, id: int, username: str, display_name: str, api_key: str) -> None:
        self.conn.execute("INSERT INTO users VALUES (?, ?, ?, ?)", [id, username, display_name, api_key])

    def insert_project(self, id: int, name: str, abbr: str) -> None:
        self.conn.execute("INSERT INTO projects VALUES (?, ?, ?)", [id, name, abbr])

    def insert_service(self, id: int, name: str) -> None:
        self.conn.execute("INSERT INTO services VALUES (?, ?)", [id, name])

    def insert_debtor(self, uuid: str, text: str, group_name: str | None = None) -> None:
        self.conn.execute("INSERT INTO debtors VALUES (?, ?, ?)", [uuid, text, group_name])

    def insert_inventory(self, uuid: str, code: str, text: str, price: Any) -> None:
        self.conn.execute("INSERT INTO inventory VALUES (?, ?, ?, ?)", [uuid, code, text, price])

    def insert_invoicing_fee(self, id: int, label: str, description: str | None, value: Any) -> None:
        self.conn.execute("INSERT INTO invoicing_fees VALUES (?, ?, ?, ?)", [id, label, description, value])

    def insert_subsidy(self, id: int, label: str, description: str | None, value: Any) -> None:
        self.conn.execute("INSERT INTO subsidies VALUES (?, ?, ?, ?)", [id, label, description, value])

    def get_user_by_api_key(self, api_key: str) -> dict | None:
        return self._fetch_one("SELECT id, username, display_name FROM users WHERE api_key = ?", [api_key])

    def get_project(self, project_id: int) -> dict | None:
        return self._fetch_one("SELECT * FROM projects WHERE id = ?", [project_id])

    def get_service(self, service_id: int) -> dict | None:
        return self._fetch_one("SELECT * FROM services WHERE id = ?", [service_id])

    def get_debtor(self, debtor_uuid: str) -> dict | None:
        return self._fetch_one("SELECT * FROM debtors WHERE uuid = ?", [debtor_uuid])

    def get_inventory(self, uuids: list[str]) -> dict[str, dict]:
        if not uuids:
            return {}
        placeholders = ", ".join("?" for _ in uuids)
        rows = self._fetch_dicts(f"SELECT * FROM inventory WHERE uuid IN ({placeholders})", list(uuids))
        return {r["uuid"]: r for r in rows}

    def list_invoicing_fees(self, ids: list[int] | None = None) -> list[dict]:
        if ids is None:
            return self._fetch_dicts("SELECT * FROM invoicing_fees ORDER BY id")
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        return self._fetch_dicts(f"SELECT * FROM invoicing_fees WHERE id IN ({placeholders}) ORDER BY id", list(ids))

    def list_subsidies(self, ids: list[int] | None = None) -> list[dict]:
        if ids is None:
            return self._fetch_dicts("SELECT * FROM subsidies ORDER BY id")
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        return self._fetch_dicts(f"SELECT * FROM subsidies WHERE id IN ({placeholders}) ORDER BY id", list(ids))

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def invoice_exists(self, invoice_uuid: str) -> bool:
        return self.conn.execute("SELECT COUNT(*) FROM invoices WHERE uuid = ?", [invoice_uuid]).fetchone()[0] > 0

    def next_invoice_reference(self, project_id: int) -> int:
        return self.conn.execute(
            "SELECT COALESCE(MAX(reference), 0) + 1 FROM invoices WHERE project_id = ?", [project_id]
        ).fetchone()[0]

    def next_transaction_number(self) -> int:
        return self.conn.execute("SELECT nextval('transaction_seq')").fetchone()[0]

    def insert_invoice(self, invoice: dict, items: list[dict], fees: list[dict], subsidies: list[dict]) -> None:
        try:
            self.conn.execute(
                "INSERT INTO invoices VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    invoice["uuid"], invoice["project_id"], invoice["reference"], invoice["cost"],
                    invoice["debtor_uuid"], invoice["service_id"], invoice["user_id"],
                    invoice["date"], invoice["description"], invoice.get("created_at") or datetime.now(),
                ],
            )
            for i in items:
                self.conn.execute(
                    "INSERT INTO invoice_items VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        i["uuid"], invoice["uuid"], i["item_order"], i["inventory_uuid"], i["quantity"],
                        i["inventory_price"], i["transaction_price"], i["credit"], i["debit"],
                    ],
                )
            for f in fees:
                self.conn.execute(
                    "INSERT INTO invoice_invoicing_fees VALUES (?, ?, ?, ?)",
                    [invoice["uuid"], f["invoicing_fee_id"], f["value"], f["amount"]],
                )
            for s in subsidies:
                self.conn.execute(
                    "INSERT INTO invoice_subsidies VALUES (?, ?, ?, ?)",
                    [invoice["uuid"], s["subsidy_id"], s["value"], s["amount"]],
                )
        except duckdb.ConstraintException as e:
            raise DuplicateRecordError(f"Invoice {invoice['uuid']} already exists") from e
        except (duckdb.ConversionException, duckdb.OutOfRangeException) as e:
            raise AmountOutOfRangeError(f"Invoice {invoice['uuid']} has an amount out of range: {e}") from e

    def search_invoices(self, filters: dict[str, Any], limit: int | None = None) -> list[dict]:
        """
        Search invoices with conjunctive filters.

        Supported keys: debtor_uuid, cost, project_id, service_id, user_id,
        reference, project_abbr, date_from, date_to, description.
        """
        conditions, params = [], []
        exact = {
            "debtor_uuid": "i.debtor_uuid",
            "cost": "i.cost",
            "project_id": "i.project_id",
            "service_id": "i.service_id",
            "user_id": "i.user_id",
            "reference": "i.reference",
            "project_abbr": "p.abbr",
        }
        for key, column in exact.items():
            if filters.get(key) is not None:
                conditions.append(f"{column} = ?")
                params.append(filters[key])
        if filters.get("date_from") is not None:
            conditions.append("CAST(i.invoice_date AS DATE) >= ?")
            params.append(filters["date_from"])
        if filters.get("date_to") is not None:
            conditions.append("CAST(i.invoice_date AS DATE) <= ?")
            params.append(filters["date_to"])
        if filters.get("description"):
            # substring match, % and _ taken literally
            conditions.append("i.description ILIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(filters['description'])}%")

        sql = INVOICE_SELECT
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY i.invoice_date, i.project_id, i.reference"
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        return self._fetch_dicts(sql, params)

    def get_invoice(self, invoice_uuid: str) -> dict | None:
        return self._fetch_one(
            INVOICE_SELECT + " WHERE i.uuid = ?",
            [invoice_uuid],
        )

    def get_invoice_items(self, invoice_uuid: str) -> list[dict]:
        return self._fetch_dicts(
            """
            SELECT it.uuid, it.inventory_uuid, inv.code, inv.text, it.quantity, it.inventory_price,
                it.transaction_price, it.credit, it.debit
            FROM invoice_items it
            JOIN inventory inv ON inv.uuid = it.inventory_uuid
            WHERE it.invoice_uuid = ?
            ORDER BY it.item_order
            """,
            [invoice_uuid],
        )

    def get_invoice_fees(self, invoice_uuid: str) -> list[dict]:
        return self._fetch_dicts(
            """
            SELECT f.invoicing_fee_id, ifee.label, f.value, f.amount
            FROM invoice_invoicing_fees f
            JOIN invoicing_fees ifee ON ifee.id = f.invoicing_fee_id
            WHERE f.invoice_uuid = ?
            ORDER BY f.invoicing_fee_id
            """,
            [invoice_uuid],
        )

    def get_invoice_subsidies(self, invoice_uuid: str) -> list[dict]:
        return self._fetch_dicts(
            """
            SELECT s.subsidy_id, sub.label, s.value, s.amount
            FROM invoice_subsidies s
            JOIN subsidies sub ON sub.id = s.subsidy_id
            WHERE s.invoice_uuid = ?
            """,
            [invoice_uuid],
        )

    def delete_invoice(self, invoice_uuid: str) -> None:
        for table in ("invoice_items", "invoice_invoicing_fees", "invoice_subsidies"):
            self.conn.execute(f"DELETE FROM {table} WHERE invoice_uuid = ?", [invoice_uuid])
        self.conn.execute("DELETE FROM invoices WHERE uuid = ?", [invoice_uuid])

    # -------------------------------------------------------------------------
    # Posting journal
    # -------------------------------------------------------------------------

    def record_journal(self, lines: list, trans_date: datetime, user_id: int) -> int:
        """Insert posting journal lines (invoicing.models.JournalLine)."""
        for l in lines:
            self.conn.execute(
                """
                INSERT INTO posting_journal
                    (uuid, trans_id, record_uuid, role, entity_uuid, reference_id, description, debit, credit, trans_date, user_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    l.uuid, l.trans_id, l.record_uuid, l.role, l.entity_uuid, l.reference_id,
                    l.description, l.debit, l.credit, trans_date, user_id,
                ],
            )
        return len(lines)

    def get_journal(self, record_uuid: str) -> list[dict]:
        return self._fetch_dicts(
            "SELECT * FROM posting_journal WHERE record_uuid = ? ORDER BY debit DESC, role", [record_uuid]
        )

    def delete_journal(self, record_uuid: str) -> int:
        count = self.conn.execute(
            "SELECT COUNT(*) FROM posting_journal WHERE record_uuid = ?", [record_uuid]
        ).fetchone()[0]
        self.conn.execute("DELETE FROM posting_journal WHERE record_uuid = ?", [record_uuid])
        return count

    def close(self) -> None:
        self.conn.close()

