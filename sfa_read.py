# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "fastmcp",
# ]
# ///

import argparse
import sys
from typing import List, Optional

from fastmcp import FastMCP

import sfa_runtime
from sfa_runtime import (
    NavError,
    NotFound,
    ReadFailed,
    clamp,
    error_json,
    iter_lines,
    normalize_path,
    to_json,
)

mcp = FastMCP("sfa-read")

LINE_BOUNDS = (1, sys.maxsize)

# --- Core Logic ---


def read_line_range(path: str, start_line: Optional[int] = None,
                    end_line: Optional[int] = None) -> List[str]:
    """
    Read lines start_line..end_line (1-based, inclusive), clamped to the file.
    A range entirely outside the file gives an empty list.
    """
    file_path = normalize_path(path)
    if not file_path.is_file():
        raise NotFound(f"File not found: {path}")

    start = clamp(start_line if start_line is not None else 1, LINE_BOUNDS, "start_line")
    end = None
    if end_line is not None:
        end = clamp(end_line, (0, LINE_BOUNDS[1]), "end_line")

    lines = []
    try:
        for line_no, line in enumerate(iter_lines(file_path), 1):
            if end is not None and line_no > end:
                break
            if line_no >= start:
                lines.append(line)
    except OSError as e:
        raise ReadFailed(f"Could not read {path}: {e}") from e
    return lines


# --- MCP Tools ---


@mcp.tool()
def read_file(path: str, start_line: Optional[int] = None, end_line: Optional[int] = None) -> str:
    """
    Read a file, optionally returning only a line range.
    Args:
        path: Path to file
        start_line: Start line (1-indexed, optional)
        end_line: End line (inclusive, optional)
    """
    try:
        return "\n".join(read_line_range(path, start_line, end_line))
    except NavError as e:
        return error_json(e, "read_file")


# --- CLI Dispatcher ---


def main():
    parser = argparse.ArgumentParser(description="SFA Read - Line Range Reader")
    parser.add_argument("--allowed-paths", help="Comma-separated list of allowed paths (MCP security)")
    subparsers = parser.add_subparsers(dest="command")

    # read command
    read_parser = subparsers.add_parser("read", help="Read file content")
    read_parser.add_argument("path", help="File path")
    read_parser.add_argument("--start", type=int, help="Start line")
    read_parser.add_argument("--end", type=int, help="End line")

    args = parser.parse_args()
    sfa_runtime.set_allowed_paths(args.allowed_paths)

    if args.command == "read":
        try:
            print("\n".join(read_line_range(args.path, args.start, args.end)))
        except NavError as e:
            print(to_json(e.to_dict()))
            sys.exit(1)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
