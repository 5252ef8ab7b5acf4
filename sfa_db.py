# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "fastmcp",
#     "sqlite-utils",
# ]
# ///

import argparse
import os
import sqlite3
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
import sqlite_utils

import sfa_runtime
from sfa_runtime import InvalidArgument, NavError, NotFound, error_json, normalize_path, to_json

mcp = FastMCP("sfa-db")

# --- Configuration ---

DEFAULT_DB_NAME = "app.db"


class QueryFailed(NavError):
    kind = "query_failed"


def _get_db_path() -> str:
    return os.environ.get("SFA_DB_PATH", str(Path.cwd() / DEFAULT_DB_NAME))


def _get_db(db_path: Optional[str] = None) -> sqlite_utils.Database:
    """Open the database read-only. The file must already exist."""
    path = normalize_path(db_path or _get_db_path())
    if not path.is_file():
        raise NotFound(f"Database not found: {path}")
    conn = sqlite3.connect(f"{path.as_uri()}?mode=ro", uri=True)
    return sqlite_utils.Database(conn)


# --- Core Logic ---


def run_query(sql: str, db_path: Optional[str] = None) -> List[Dict[str, Any]]:
    """Run a SELECT and return rows as column-ordered dicts."""
    if not (sql or "").lstrip().upper().startswith("SELECT"):
        raise InvalidArgument("Only SELECT queries are allowed.")

    db = _get_db(db_path)
    try:
        return list(db.query(sql))
    except (sqlite3.Error, sqlite3.Warning) as e:
        raise QueryFailed(f"Query failed: {e}") from e
    finally:
        db.close()


# --- MCP Tools ---


@mcp.tool()
def query_database(sql: str) -> str:
    """Execute a read-only SQL query against the local SQLite database."""
    try:
        return to_json(run_query(sql))
    except NavError as e:
        return error_json(e, "query_database")


# --- CLI Dispatcher ---


def main():
    parser = argparse.ArgumentParser(description="SFA DB - Read-only Query")
    parser.add_argument("--allowed-paths", help="Comma-separated list of allowed paths (MCP security)")
    parser.add_argument("--db", help="Database file (default: $SFA_DB_PATH or ./app.db)")
    subparsers = parser.add_subparsers(dest="command")

    # query
    query_parser = subparsers.add_parser("query", help="Run SQL query")
    query_parser.add_argument("sql", help="SQL SELECT query")

    args = parser.parse_args()
    sfa_runtime.set_allowed_paths(args.allowed_paths)

    if args.command == "query":
        try:
            print(to_json(run_query(args.sql, args.db)))
        except NavError as e:
            print(to_json(e.to_dict()))
            sys.exit(1)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
