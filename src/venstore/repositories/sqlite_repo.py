from __future__ import annotations

import sqlite3
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterable, Mapping, Optional

from venstore.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from venstore.domain.models import CartItem, Currency, PaymentMethod, Product, ProductCategory, Sale

_PRODUCT_COLUMNS = "id, name, category, price, currency, unit, units_per_case, stock, barcode, cost, profit_margin"
_SALE_COLUMNS = "id, datetime, total_usd, total_bsf, rate_at_sale, payment_method, customer_name, payment_reference"


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_lookup_indexes),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "La migración de la base de datos falló. Se restauró la base de datos original desde la copia automática."
            ) from exc
        finally:
            conn.close()

    def schema_version(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
        version = int(cur.fetchone()[0])
        conn.close()
        return version

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS exchange_rate (
            id INTEGER PRIMARY KEY CHECK(id = 1),
            bsf_per_usd REAL NOT NULL CHECK(bsf_per_usd > 0),
            updated_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            category TEXT NOT NULL,
            price REAL NOT NULL CHECK(price >= 0),
            currency TEXT NOT NULL CHECK(currency IN ('USD','BSF')),
            unit TEXT NOT NULL DEFAULT 'Unidad',
            units_per_case INTEGER NOT NULL DEFAULT 1 CHECK(units_per_case > 0),
            stock REAL NOT NULL DEFAULT 0,
            barcode TEXT,
            cost REAL,
            profit_margin REAL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sales (
            id TEXT PRIMARY KEY,
            datetime TEXT NOT NULL,
            total_usd REAL NOT NULL,
            total_bsf REAL NOT NULL,
            rate_at_sale REAL NOT NULL CHECK(rate_at_sale > 0),
            payment_method TEXT NOT NULL
                CHECK(payment_method IN ('PAGO_MOVIL','PUNTO_VENTA','EFECTIVO_USD','EFECTIVO_BSF','CREDITO')),
            customer_name TEXT,
            payment_reference TEXT,
            CHECK(payment_method <> 'CREDITO' OR length(trim(COALESCE(customer_name, ''))) > 0),
            CHECK(payment_method <> 'PAGO_MOVIL' OR length(trim(COALESCE(payment_reference, ''))) > 0)
        )
        """
        )

        # no foreign key on product_id: sale lines keep the ids of deleted products
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sale_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sale_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            product_id TEXT,
            name TEXT NOT NULL,
            quantity REAL NOT NULL CHECK(quantity > 0),
            price REAL NOT NULL,
            currency TEXT NOT NULL CHECK(currency IN ('USD','BSF')),
            is_manual INTEGER NOT NULL DEFAULT 0 CHECK(is_manual IN (0,1)),
            FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE,
            UNIQUE(sale_id, position)
        )
        """
        )

    def _migration_v2_lookup_indexes(self, cur: sqlite3.Cursor) -> None:
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_datetime ON sales(datetime)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_method ON sales(payment_method)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_products_barcode ON products(barcode)")

    # ---------- Exchange rate ----------
    def get_rate(self) -> Optional[float]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT bsf_per_usd FROM exchange_rate WHERE id = 1")
        row = cur.fetchone()
        conn.close()
        return float(row[0]) if row else None

    def set_rate(self, bsf_per_usd: float, updated_at: str) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO exchange_rate (id, bsf_per_usd, updated_at) VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET bsf_per_usd=excluded.bsf_per_usd, updated_at=excluded.updated_at
        """,
            (float(bsf_per_usd), updated_at),
        )
        conn.commit()
        conn.close()

    # ---------- Products ----------
    @staticmethod
    def _product_from_row(r) -> Product:
        return Product(
            id=str(r[0]),
            name=str(r[1]),
            category=ProductCategory[str(r[2])],
            price=float(r[3]),
            currency=Currency[str(r[4])],
            unit=str(r[5]),
            units_per_case=int(r[6]),
            stock=float(r[7]),
            barcode=(str(r[8]) if r[8] is not None else None),
            cost=(float(r[9]) if r[9] is not None else None),
            profit_margin=(float(r[10]) if r[10] is not None else None),
        )

    def upsert_product(self, product: Product) -> bool:
        """Insert or fully replace a product. Returns True when it was new."""
        conn = self._conn()
        cur = conn.cursor()
        values = (
            product.name,
            product.category.name,
            float(product.price),
            product.currency.name,
            product.unit,
            int(product.units_per_case),
            float(product.stock),
            product.barcode,
            product.cost,
            product.profit_margin,
        )
        cur.execute(
            """
            UPDATE products
            SET name=?, category=?, price=?, currency=?, unit=?, units_per_case=?,
                stock=?, barcode=?, cost=?, profit_margin=?
            WHERE id=?
        """,
            (*values, product.id),
        )
        created = cur.rowcount == 0
        if created:
            cur.execute(
                f"INSERT INTO products ({_PRODUCT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (product.id, *values),
            )
        conn.commit()
        conn.close()
        return created

    def get_product(self, product_id: str) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id=?", (product_id,))
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return self._product_from_row(r)

    def find_product_by_barcode(self, barcode: str) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE barcode=? ORDER BY rowid LIMIT 1",
            (barcode,),
        )
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return self._product_from_row(r)

    def list_products(self) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY rowid")
        rows = cur.fetchall()
        conn.close()
        return [self._product_from_row(r) for r in rows]

    def adjust_product_stock(self, product_id: str, delta: float, *, allow_negative: bool = True) -> Optional[float]:
        """Apply ``delta`` and return the new stock, or None if the product is gone."""
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("SELECT stock FROM products WHERE id=?", (product_id,))
            row = cur.fetchone()
            if not row:
                return None
            new_stock = round(float(row[0]) + float(delta), 2)
            if new_stock < 0 and not allow_negative:
                raise ValidationError(f"El stock no puede quedar por debajo de cero. Disponible: {float(row[0])}")
            cur.execute("UPDATE products SET stock=? WHERE id=?", (new_stock, product_id))
            conn.commit()
            return new_stock
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete_product(self, product_id: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM products WHERE id=?", (product_id,))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    # ---------- Stock movements inside a sale transaction ----------
    def _reserve_all(self, cur: sqlite3.Cursor, reservations: Mapping[str, float]) -> None:
        # check every line first, then apply: either all reservations land or none
        for pid, qty in reservations.items():
            cur.execute("SELECT name, stock FROM products WHERE id=?", (pid,))
            row = cur.fetchone()
            if not row:
                raise NotFoundError(f"Producto no encontrado: {pid}")
            if float(row[1]) < float(qty):
                raise InsufficientStockError(f"Stock insuficiente para {row[0]}. Disponible: {float(row[1])}")
        for pid, qty in reservations.items():
            cur.execute("UPDATE products SET stock = stock - ? WHERE id=?", (float(qty), pid))

    def _restore_all(self, cur: sqlite3.Cursor, restorations: Mapping[str, float]) -> int:
        restored = 0
        for pid, qty in restorations.items():
            # products deleted after the sale are skipped, never recreated
            cur.execute("UPDATE products SET stock = stock + ? WHERE id=?", (float(qty), pid))
            restored += cur.rowcount
        return restored

    # ---------- Sales ----------
    def _insert_items(self, cur: sqlite3.Cursor, sale_id: str, items: Iterable[CartItem]) -> None:
        for position, it in enumerate(items):
            cur.execute(
                """
                INSERT INTO sale_items (sale_id, position, product_id, name, quantity, price, currency, is_manual)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    sale_id,
                    position,
                    it.product_id,
                    it.name,
                    float(it.quantity),
                    float(it.price),
                    it.currency.name,
                    1 if it.is_manual else 0,
                ),
            )

    def _load_items(self, cur: sqlite3.Cursor, sale_id: str) -> tuple[CartItem, ...]:
        cur.execute(
            """
            SELECT product_id, name, quantity, price, currency, is_manual
            FROM sale_items
            WHERE sale_id = ?
            ORDER BY position
        """,
            (sale_id,),
        )
        return tuple(
            CartItem(
                product_id=(str(r[0]) if r[0] is not None else None),
                name=str(r[1]),
                quantity=float(r[2]),
                price=float(r[3]),
                currency=Currency[str(r[4])],
                is_manual=bool(r[5]),
            )
            for r in cur.fetchall()
        )

    def _sale_from_row(self, cur: sqlite3.Cursor, r) -> Sale:
        return Sale(
            id=str(r[0]),
            timestamp=str(r[1]),
            items=self._load_items(cur, str(r[0])),
            total_usd=float(r[2]),
            total_bsf=float(r[3]),
            rate_at_sale=float(r[4]),
            payment_method=PaymentMethod[str(r[5])],
            customer_name=(r[6] if r[6] is not None else None),
            payment_reference=(r[7] if r[7] is not None else None),
        )

    def _select_sales(self, where: str = "", params: tuple = (), order: str = "rowid", limit: int | None = None) -> list[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        sql = f"SELECT {_SALE_COLUMNS} FROM sales {where} ORDER BY {order}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        cur.execute(sql, params)
        rows = cur.fetchall()
        sales = [self._sale_from_row(cur, r) for r in rows]
        conn.close()
        return sales

    def create_sale(self, sale: Sale, reservations: Mapping[str, float]) -> None:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("BEGIN")
            self._reserve_all(cur, reservations)
            cur.execute(
                f"INSERT INTO sales ({_SALE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    sale.id,
                    sale.timestamp,
                    float(sale.total_usd),
                    float(sale.total_bsf),
                    float(sale.rate_at_sale),
                    sale.payment_method.name,
                    sale.customer_name,
                    sale.payment_reference,
                ),
            )
            self._insert_items(cur, sale.id, sale.items)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def replace_sale(
        self,
        sale: Sale,
        restorations: Mapping[str, float] | None = None,
        expected: Optional[Sale] = None,
    ) -> int:
        """Overwrite a sale record and restore stock for removed lines in one transaction.

        ``expected`` is the copy the change was made from. If the stored sale no
        longer matches it, nothing is written.
        """
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE")
            if expected is not None:
                cur.execute(f"SELECT {_SALE_COLUMNS} FROM sales WHERE id=?", (sale.id,))
                row = cur.fetchone()
                if not row:
                    raise NotFoundError("Venta no encontrada.")
                if self._sale_from_row(cur, row) != expected:
                    raise ValidationError("La venta cambió desde que se abrió. Vuelva a abrirla para editarla.")
            cur.execute(
                """
                UPDATE sales
                SET datetime=?, total_usd=?, total_bsf=?, rate_at_sale=?,
                    payment_method=?, customer_name=?, payment_reference=?
                WHERE id=?
            """,
                (
                    sale.timestamp,
                    float(sale.total_usd),
                    float(sale.total_bsf),
                    float(sale.rate_at_sale),
                    sale.payment_method.name,
                    sale.customer_name,
                    sale.payment_reference,
                    sale.id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Venta no encontrada.")
            cur.execute("DELETE FROM sale_items WHERE sale_id=?", (sale.id,))
            self._insert_items(cur, sale.id, sale.items)
            restored = self._restore_all(cur, restorations or {})
            conn.commit()
            return restored
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete_sale(self, sale_id: str, restorations: Mapping[str, float]) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("BEGIN")
            cur.execute("DELETE FROM sales WHERE id=?", (sale_id,))
            if cur.rowcount == 0:
                raise NotFoundError("Venta no encontrada.")
            restored = self._restore_all(cur, restorations)
            conn.commit()
            return restored
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_sale(self, sale_id: str) -> Optional[Sale]:
        rows = self._select_sales("WHERE id = ?", (sale_id,))
        return rows[0] if rows else None

    def list_sales(self) -> list[Sale]:
        return self._select_sales()

    def last_sale(self) -> Optional[Sale]:
        rows = self._select_sales(order="rowid DESC", limit=1)
        return rows[0] if rows else None

    def recent_sales(self, limit: int = 50) -> list[Sale]:
        rows = self._select_sales(order="rowid DESC", limit=limit)
        return list(reversed(rows))

    def list_sales_between(self, start_iso: str, end_iso: str) -> list[Sale]:
        return self._select_sales("WHERE datetime >= ? AND datetime < ?", (start_iso, end_iso))

    def list_sales_by_method(self, method: PaymentMethod) -> list[Sale]:
        return self._select_sales("WHERE payment_method = ?", (method.name,))
