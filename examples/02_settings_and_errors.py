"""Build a QueryWrapper from environment settings and handle its errors."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "query_wrapper").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from query_wrapper import (
    ConnectionSettings,
    DatabaseExecutionError,
    InvalidFetchMode,
    InvalidParameterType,
    QueryWrapper,
    build_provider,
)


def main() -> None:
    # 1) Driver logs go through the standard logging tree.
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # 2) QUERY_WRAPPER_DRIVER / _DATABASE / _HOST ... select the backend.
    #    With nothing set this is an in-memory SQLite database.
    settings = ConnectionSettings.from_env()
    print("Settings:", settings)
    provider = build_provider(settings)
    qw = QueryWrapper(provider)

    try:
        qw.execute('CREATE TABLE "notes" ("id" INTEGER PRIMARY KEY, "body" TEXT);')
        qw.execute('INSERT INTO "notes" ("body") VALUES (:body);', ("body", "hello"))

        # 3) Argument errors are raised before any connection is used.
        try:
            qw.fetch_all('SELECT * FROM "notes";', mode=42)
        except InvalidFetchMode as exc:
            print("Invalid fetch mode:", exc)

        try:
            qw.execute('INSERT INTO "notes" ("body") VALUES (:body);', ("body", "x", "boolean"))
        except InvalidParameterType as exc:
            print("Invalid parameter type:", exc)

        # 4) Driver failures surface with the driver's message.
        try:
            qw.fetch_all('SELECT * FROM "missing_table";')
        except DatabaseExecutionError as exc:
            print("Database error:", exc, "| driver error:", type(exc.driver_error).__name__)

        print("Notes:", qw.fetch_all('SELECT * FROM "notes";'))
    finally:
        provider.close()


if __name__ == "__main__":
    main()
