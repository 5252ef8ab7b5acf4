# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "fastmcp",
# ]
# ///

"""
SFA Extract - Block Extractor

Pulls one named construct (method, class, record, interface, struct) out of
a source file without parsing it:

  1. Declaration search: the first line matching one of the declaration
     shapes built from the name (`name(` or `<keyword> name`).
  2. Body search: the first line at or after the declaration, within
     SFA_BODY_WINDOW lines, holding an opening delimiter.
  3. Depth walk: count opening/closing delimiters left to right, top to
     bottom; the block ends on the line where depth returns to zero.

The counter does not know about strings or comments. A brace inside a
literal or a comment shifts the depth, and the reported end line with it.

Names match as substrings: `Range` also finds `AddRange(`, and `Widget`
also finds `class WidgetFactory`. The first matching line wins.
"""

import argparse
import re
import sys
from contextlib import closing
from dataclasses import dataclass
from itertools import islice
from typing import Callable, List, Optional, Tuple

from fastmcp import FastMCP

import sfa_runtime
from sfa_runtime import (
    BodyNotFound,
    InvalidArgument,
    NavConfig,
    NavError,
    NotFound,
    NotFoundInFile,
    ReadFailed,
    clamp,
    display_path,
    error_json,
    iter_lines,
    load_config,
    log,
    normalize_path,
    to_json,
)

mcp = FastMCP("sfa-extract")

DEFAULT_MAX_LINES = 400

Shape = Callable[[str], bool]


@dataclass(frozen=True)
class ExtractedBlock:
    path: str
    name: str
    start_line: int
    end_line: int
    truncated: bool
    text: str

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "truncated": self.truncated,
            "code": self.text,
        }


# --- Core Logic ---


def declaration_shapes(name: str, keywords: Tuple[str, ...]) -> List[Shape]:
    """Ordered predicates recognising a declaration line for name."""
    escaped = re.escape(name)
    patterns = [re.compile(escaped + r"\(")]
    patterns += [re.compile(rf"\b{re.escape(kw)}\s+{escaped}") for kw in keywords]
    return [lambda line, p=p: p.search(line) is not None for p in patterns]


def find_body_start(block: List[str], window: int, open_delim: str) -> Optional[int]:
    """Offset of the first line in block holding open_delim, within window."""
    for offset, line in enumerate(block[:window]):
        if open_delim in line:
            return offset
    return None


def find_block_end(block: List[str], body_start: int, max_lines: int,
                   open_delim: str, close_delim: str) -> Tuple[int, bool]:
    """
    Walk delimiter depth from body_start. Returns (end offset, truncated).

    Closing delimiters seen before the first opening one are ignored. If the
    cap or the end of the file comes first the block is truncated there.
    """
    depth = 0
    opened = False
    for offset in range(body_start, min(len(block), max_lines)):
        for ch in block[offset]:
            if ch == open_delim:
                depth += 1
                opened = True
            elif ch == close_delim and opened:
                depth -= 1
                if depth == 0:
                    return offset, False
    return min(len(block), max_lines) - 1, True


def extract_block(path: str, name: str, max_lines: int = DEFAULT_MAX_LINES,
                  config: Optional[NavConfig] = None) -> ExtractedBlock:
    """
    Extract the block declaring `name` from a file.

    Raises NotFound, InvalidArgument, ReadFailed, NotFoundInFile when no
    line declares the name, or BodyNotFound when the name is there but no
    opening delimiter follows within the window.
    """
    config = config or load_config()
    file_path = normalize_path(path)
    if not file_path.is_file():
        raise NotFound(f"File not found: {path}")
    if not name or not name.strip():
        raise InvalidArgument("Member name was empty.")

    max_lines = clamp(max_lines, config.max_lines_bounds, "max_lines")
    shapes = declaration_shapes(name, config.decl_keywords)

    start_line = 0
    block: List[str] = []
    try:
        with closing(iter_lines(file_path)) as lines:
            for line_no, line in enumerate(lines, 1):
                if any(shape(line) for shape in shapes):
                    start_line = line_no
                    block.append(line)
                    break
            # Only the lines the window and the cap can reach are read.
            if start_line:
                block.extend(islice(lines, max(config.body_window, max_lines) - 1))
    except OSError as e:
        raise ReadFailed(f"Could not read {path}: {e}") from e
    if not start_line:
        raise NotFoundInFile(f"'{name}' not found in {path}")

    body_start = find_body_start(block, config.body_window, config.open_delim)
    if body_start is None:
        raise BodyNotFound(
            f"'{name}' found at line {start_line} in {path}, but no "
            f"'{config.open_delim}' within {config.body_window} lines",
            start_line,
        )

    end, truncated = find_block_end(
        block, body_start, max_lines, config.open_delim, config.close_delim
    )
    if truncated:
        log("INFO", "extract", f"'{name}' in {path} truncated at line {start_line + end}")

    return ExtractedBlock(
        path=display_path(file_path),
        name=name,
        start_line=start_line,
        end_line=start_line + end,
        truncated=truncated,
        text="\n".join(block[: end + 1]),
    )


# --- MCP Tools ---


@mcp.tool()
def extract_member(path: str, name: str, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """
    Extract a single method, class, record, interface or struct by name.
    Args:
        path: Path to source file
        name: Member name (e.g. "ProjectSearch" or "Widget")
        max_lines: Max lines to return (20-2000); longer blocks come back truncated
    """
    try:
        return to_json(extract_block(path, name, max_lines).to_dict())
    except NavError as e:
        return error_json(e, "extract_member")


# --- CLI Dispatcher ---


def main():
    parser = argparse.ArgumentParser(description="SFA Extract - Block Extractor")
    parser.add_argument("--allowed-paths", help="Comma-separated list of allowed paths (MCP security)")
    subparsers = parser.add_subparsers(dest="command")

    # member command
    member_parser = subparsers.add_parser("member", help="Extract a named block")
    member_parser.add_argument("path", help="Source file")
    member_parser.add_argument("name", help="Member name")
    member_parser.add_argument("--max-lines", type=int, default=DEFAULT_MAX_LINES, help="Line cap")

    args = parser.parse_args()
    sfa_runtime.set_allowed_paths(args.allowed_paths)

    if args.command == "member":
        try:
            print(to_json(extract_block(args.path, args.name, args.max_lines).to_dict()))
        except NavError as e:
            print(to_json(e.to_dict()))
            sys.exit(1)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
