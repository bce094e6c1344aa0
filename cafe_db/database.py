# database layer: sqlite connection, schema, seed data and the query primitives

import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, Sequence

from termcolor import colored

from cafe_db.errors import DatabaseError
from cafe_db.logger import log_error

DEFAULT_DB_PATH = "cafe.db"

# sqlite has no decimal type; REAL column affinity converts the text back to a number
sqlite3.register_adapter(Decimal, str)

SEED_MENU = [
    ("Latte", "Drinks", "3.50", "espresso with steamed milk", ""),
    ("Cappuccino", "Drinks", "3.25", "espresso, milk and foam in equal parts", ""),
    ("Americano", "Drinks", "2.75", "espresso topped with hot water", ""),
    ("Hot Chocolate", "Drinks", "3.00", "", ""),
    ("Bagel", "Bakery", "2.00", "plain bagel, toasted on request", ""),
    ("Croissant", "Bakery", "2.50", "butter croissant", ""),
    ("Blueberry Muffin", "Bakery", "2.75", "", ""),
    ("Club Sandwich", "Food", "7.95", "turkey, bacon, lettuce and tomato", ""),
]


class DatabaseManager:
    """own the sqlite connection and expose update / query primitives"""

    def __init__(self, path: str = DEFAULT_DB_PATH, seed: bool = True):
        self.path = path
        self.conn = sqlite3.connect(path)
        self.conn.row_factory = sqlite3.Row
        # transactions are opened explicitly through transaction()
        self.conn.autocommit = True
        self.conn.execute("--sql\nPRAGMA foreign_keys=ON;")
        self._create_schema()
        if seed:
            self._seed_menu()
            self._seed_default_manager()

    def _create_schema(self):
        """create tables if missing"""
        self.conn.executescript(
            """--sql
            CREATE TABLE IF NOT EXISTS users (
                login TEXT PRIMARY KEY,
                password TEXT NOT NULL,
                phone_num TEXT NOT NULL UNIQUE,
                fav_items TEXT,
                role TEXT NOT NULL DEFAULT 'Customer'
                    CHECK (role IN ('Customer', 'Employee', 'Manager'))
            );
            CREATE TABLE IF NOT EXISTS menu (
                item_name TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                price REAL NOT NULL CHECK (price >= 0),
                description TEXT,
                image_url TEXT
            );
            CREATE TABLE IF NOT EXISTS orders (
                order_id INTEGER PRIMARY KEY AUTOINCREMENT,
                login TEXT NOT NULL,
                paid INTEGER NOT NULL DEFAULT 0,
                received_at TEXT NOT NULL,
                total REAL NOT NULL DEFAULT 0,
                FOREIGN KEY(login) REFERENCES users(login) ON UPDATE CASCADE
            );
            CREATE TABLE IF NOT EXISTS item_status (
                order_id INTEGER NOT NULL,
                item_name TEXT NOT NULL,
                last_updated TEXT NOT NULL,
                status TEXT NOT NULL
                    CHECK (status IN ('Hasn''t Started', 'Started', 'Finished')),
                comments TEXT,
                PRIMARY KEY(order_id, item_name),
                FOREIGN KEY(order_id) REFERENCES orders(order_id) ON DELETE CASCADE,
                FOREIGN KEY(item_name) REFERENCES menu(item_name) ON UPDATE CASCADE
            );
            CREATE INDEX IF NOT EXISTS idx_orders_received ON orders(received_at);
            """
        )

    def _seed_menu(self):
        """seed the default menu once"""
        self.conn.executemany(
            """--sql
            INSERT OR IGNORE INTO menu(item_name, type, price, description, image_url)
            VALUES(?, ?, ?, ?, ?);
            """,
            SEED_MENU
        )

    def _seed_default_manager(self):
        """create a default manager account if missing"""
        self.conn.execute(
            """--sql
            INSERT OR IGNORE INTO users(login, password, phone_num, fav_items, role)
            VALUES (?, ?, ?, NULL, 'Manager');
            """,
            ("admin", "admin", "0000000000")
        )

    # primitives
    def _run(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            log_error(f"statement failed: {' '.join(sql.split())}", e)
            raise DatabaseError(f"database error: {e}") from e

    def execute_update(self, sql: str, params: Sequence[Any] = ()) -> int:
        """run an UPDATE / DELETE / INSERT, return affected row count"""
        return self._run(sql, params).rowcount

    def execute_insert(self, sql: str, params: Sequence[Any] = ()) -> int:
        """run an INSERT, return the sequence-assigned row id"""
        return self._run(sql, params).lastrowid

    def query_rows(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """run a SELECT, return every row in order"""
        return self._run(sql, params).fetchall()

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        """run a SELECT, return the first row or none"""
        return self._run(sql, params).fetchone()

    def query_count(self, sql: str, params: Sequence[Any] = ()) -> int:
        """number of rows a SELECT yields"""
        return len(self.query_rows(sql, params))

    def query_print(self, sql: str, params: Sequence[Any] = ()) -> int:
        """print header + tab separated rows; returns row count"""
        cur = self._run(sql, params)
        rows = cur.fetchall()
        if rows:
            print("\t".join(colored(d[0], attrs=["bold"]) for d in cur.description))
            for row in rows:
                print("\t".join("" if v is None else str(v).strip() for v in row))
        return len(rows)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """group statements so they commit together or not at all"""
        self._run("BEGIN;", ())
        try:
            yield
            self._run("COMMIT;", ())
        except BaseException:
            # a failed COMMIT can leave the transaction open
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK;")
            raise

    def close(self):
        self.conn.close()

