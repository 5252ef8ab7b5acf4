# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "fastmcp",
# ]
# ///

"""
SFA Find - Directory Catalog

Lists files under a root, skipping build/VCS artifact directories and
optionally filtering by extension. Enumeration stops as soon as the cap is
reached.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Iterator, List, Optional

from fastmcp import FastMCP

import sfa_runtime
from sfa_runtime import (
    NavConfig,
    NavError,
    NotFound,
    clamp,
    display_path,
    error_json,
    load_config,
    normalize_path,
    to_json,
)

mcp = FastMCP("sfa-find")

DEFAULT_LIMIT = 200

# --- Core Logic ---


def _normalize_extension(extension: Optional[str]) -> str:
    ext = (extension or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def walk_files(root: Path, extension: Optional[str] = None,
               config: Optional[NavConfig] = None) -> Iterator[Path]:
    """
    Yield files under root lazily. Excluded directories are pruned before
    descent; unreadable directories are skipped by os.walk.

    Siblings are visited in sorted order, but listing order still depends
    on the platform's name comparison, so results are only stable per host.
    """
    config = config or load_config()
    excluded = set(config.excluded_dirs)
    ext = _normalize_extension(extension)

    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in excluded)
        for filename in sorted(files):
            if ext and Path(filename).suffix.lower() != ext:
                continue
            yield Path(current) / filename


def collect_files(root: str, extension: Optional[str] = None, limit: int = DEFAULT_LIMIT,
                  config: Optional[NavConfig] = None) -> List[str]:
    """List up to `limit` files under root, optionally filtered by extension."""
    config = config or load_config()
    root_path = normalize_path(root)
    if not root_path.is_dir():
        raise NotFound(f"Root directory not found: {root}")

    limit = clamp(limit, config.list_bounds, "limit")
    results = []
    for file_path in walk_files(root_path, extension, config):
        results.append(display_path(file_path))
        if len(results) >= limit:
            break
    return results


# --- MCP Tools ---


@mcp.tool()
def list_files(root: str, extension: str = "", limit: int = DEFAULT_LIMIT) -> str:
    """
    List files under a directory.
    Args:
        root: Root directory
        extension: Only include files with this extension (e.g. ".cs"); empty for all
        limit: Max number of paths to return
    """
    try:
        return to_json(collect_files(root, extension, limit))
    except NavError as e:
        return error_json(e, "list_files")


# --- CLI Dispatcher ---


def main():
    parser = argparse.ArgumentParser(description="SFA Find - Directory Catalog")
    parser.add_argument("--allowed-paths", help="Comma-separated list of allowed paths (MCP security)")
    subparsers = parser.add_subparsers(dest="command")

    # list command
    list_parser = subparsers.add_parser("list", help="List files under a root")
    list_parser.add_argument("root", nargs="?", default=".", help="Root directory")
    list_parser.add_argument("--ext", default="", help="Extension filter (e.g. .py)")
    list_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Max results")

    args = parser.parse_args()
    sfa_runtime.set_allowed_paths(args.allowed_paths)

    if args.command == "list":
        try:
            print(to_json(collect_files(args.root, args.ext, args.limit)))
        except NavError as e:
            print(to_json(e.to_dict()))
            sys.exit(1)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
