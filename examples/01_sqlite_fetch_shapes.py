"""Fetch-shape tour for QueryWrapper over an in-memory SQLite database."""

from __future__ import annotations

import sqlite3
import sys
from dataclasses import dataclass
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "query_wrapper").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from query_wrapper import FetchMode, ParamType, QueryWrapper, SingleConnectionProvider, SQLiteDialect


@dataclass
class Product:
    id: int
    name: str
    stock: int


def main() -> None:
    # 1) One shared connection keeps the in-memory database alive between calls.
    provider = SingleConnectionProvider(sqlite3.connect(":memory:"), SQLiteDialect())
    qw = QueryWrapper(provider)

    try:
        # 2) Schema and rows. `execute` returns the last inserted id.
        qw.execute(
            'CREATE TABLE "products" ("id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL, "stock" INTEGER);'
        )
        for name, stock in (("pen", 40), ("ink", 0), ("pad", 12)):
            new_id = qw.execute(
                'INSERT INTO "products" ("name", "stock") VALUES (:name, :stock);',
                [("name", name), ("stock", stock, ParamType.INTEGER)],
            )
            print("Inserted", name, "as id", new_id)

        # 3) Whole result sets.
        print("All (assoc):", qw.fetch_all('SELECT * FROM "products" ORDER BY "id";'))
        print(
            "All (numeric):",
            qw.fetch_all('SELECT "name", "stock" FROM "products";', mode=FetchMode.NUMERIC_INDEXED),
        )
        print("Objects:", qw.fetch_objects('SELECT * FROM "products";'))
        print("Models:", qw.fetch_objects('SELECT * FROM "products";', model=Product))

        # 4) Two columns become a mapping.
        print("Stock by name:", qw.fetch_assoc('SELECT "name", "stock" FROM "products";'))

        # 5) Column collection stops at the first falsy value unless asked not to.
        query = 'SELECT "stock" FROM "products" ORDER BY "id";'
        print("Stock column:", qw.fetch_column(query))
        print("Stock column (all):", qw.fetch_column(query, stop_at_falsy=False))

        # 6) Single values and rows. `fetch_one` appends LIMIT 1 itself.
        print("Count:", qw.fetch_one('SELECT COUNT(*) FROM "products"'))
        print(
            "Row 3:",
            qw.fetch_row('SELECT * FROM "products" WHERE "id" = :id;', ("id", 3, ParamType.INTEGER)),
        )
        print("Missing row:", qw.fetch_row('SELECT * FROM "products" WHERE "id" = :id;', {"id": 99}))
    finally:
        provider.close()


if __name__ == "__main__":
    main()
