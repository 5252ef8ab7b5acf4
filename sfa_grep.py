# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "fastmcp",
# ]
# ///

"""
SFA Grep - Snippet Search

Case-insensitive substring search, one file or a whole tree, returning line
numbers with trimmed, length-capped snippets. Files are streamed line by
line and scanning stops the moment the match cap is hit, so a short result
list is not proof that no further matches exist.
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from fastmcp import FastMCP

import sfa_runtime
from sfa_find import walk_files
from sfa_runtime import (
    ELLIPSIS,
    InvalidArgument,
    NavConfig,
    NavError,
    NotFound,
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

mcp = FastMCP("sfa-grep")

DEFAULT_MAX_MATCHES = 5
DEFAULT_PROJECT_LIMIT = 10
DEFAULT_SNIPPET_CHARS = 160


@dataclass(frozen=True)
class SearchMatch:
    line: int
    snippet: str
    source: Optional[str] = None

    def to_dict(self) -> dict:
        if self.source is None:
            return {"line": self.line, "snippet": self.snippet}
        return {"file": self.source, "line": self.line, "snippet": self.snippet}


# --- Core Logic ---


def make_snippet(line: str, snippet_chars: int) -> str:
    snippet = line.strip()
    if len(snippet) > snippet_chars:
        snippet = snippet[:snippet_chars] + ELLIPSIS
    return snippet


def _check_query(query: str) -> str:
    if not query or not query.strip():
        raise InvalidArgument("Query was empty.")
    return query.lower()


def _scan(file_path: Path, needle: str, snippet_chars: int) -> Iterator[tuple]:
    for line_no, line in enumerate(iter_lines(file_path), 1):
        if needle in line.lower():
            yield line_no, make_snippet(line, snippet_chars)


def search_file(path: str, query: str, max_matches: int = DEFAULT_MAX_MATCHES,
                snippet_chars: int = DEFAULT_SNIPPET_CHARS,
                config: Optional[NavConfig] = None) -> List[SearchMatch]:
    """Find occurrences of query in one file."""
    config = config or load_config()
    file_path = normalize_path(path)
    if not file_path.is_file():
        raise NotFound(f"File not found: {path}")
    needle = _check_query(query)

    max_matches = clamp(max_matches, config.match_bounds, "max_matches")
    snippet_chars = clamp(snippet_chars, config.snippet_bounds, "snippet_chars")

    results = []
    try:
        for line_no, snippet in _scan(file_path, needle, snippet_chars):
            results.append(SearchMatch(line_no, snippet))
            if len(results) >= max_matches:
                break
    except OSError as e:
        raise ReadFailed(f"Could not read {path}: {e}") from e
    return results


def search_project(root: str, query: str, limit: int = DEFAULT_PROJECT_LIMIT,
                   extension: Optional[str] = None,
                   snippet_chars: int = DEFAULT_SNIPPET_CHARS,
                   config: Optional[NavConfig] = None) -> List[SearchMatch]:
    """
    Search every file under root. Files that cannot be read are skipped,
    never fatal.
    """
    config = config or load_config()
    root_path = normalize_path(root)
    if not root_path.is_dir():
        raise NotFound(f"Root directory not found: {root}")
    needle = _check_query(query)

    limit = clamp(limit, config.match_bounds, "limit")
    snippet_chars = clamp(snippet_chars, config.snippet_bounds, "snippet_chars")

    results: List[SearchMatch] = []
    for file_path in walk_files(root_path, extension, config):
        source = display_path(file_path)
        try:
            for line_no, snippet in _scan(file_path, needle, snippet_chars):
                results.append(SearchMatch(line_no, snippet, source))
                if len(results) >= limit:
                    return results
        except OSError as e:
            log("DEBUG", "skip", f"{source}: {e}")
    return results


# --- MCP Tools ---


@mcp.tool()
def find_in_file(path: str, query: str, max_matches: int = DEFAULT_MAX_MATCHES,
                 snippet_chars: int = DEFAULT_SNIPPET_CHARS) -> str:
    """
    Find occurrences of a query in a file and return line numbers with small snippets.
    Args:
        path: Path to file
        query: Search query (case-insensitive)
        max_matches: Max number of matches to return (1-50)
        snippet_chars: Max snippet characters per match (40-400)
    """
    try:
        matches = search_file(path, query, max_matches, snippet_chars)
    except NavError as e:
        return error_json(e, "find_in_file")
    return to_json([m.to_dict() for m in matches])


@mcp.tool()
def project_search(root: str, query: str, limit: int = DEFAULT_PROJECT_LIMIT,
                   extension: str = "", snippet_chars: int = DEFAULT_SNIPPET_CHARS) -> str:
    """
    Search across project files and return file path, line number and a small snippet.
    Use it to locate the right file before reading it.
    Args:
        root: Root directory to search under
        query: Query string (case-insensitive)
        limit: Max number of results (1-50)
        extension: Only search files with this extension (e.g. ".cs"); empty for all
        snippet_chars: Max snippet characters per result (40-400)
    """
    try:
        matches = search_project(root, query, limit, extension, snippet_chars)
    except NavError as e:
        return error_json(e, "project_search")
    return to_json([m.to_dict() for m in matches])


# --- CLI Dispatcher ---


def main():
    parser = argparse.ArgumentParser(description="SFA Grep - Snippet Search")
    parser.add_argument("--allowed-paths", help="Comma-separated list of allowed paths (MCP security)")
    subparsers = parser.add_subparsers(dest="command")

    # file command
    file_parser = subparsers.add_parser("file", help="Search one file")
    file_parser.add_argument("path", help="File path")
    file_parser.add_argument("query", help="Search query (case-insensitive)")
    file_parser.add_argument("--max", type=int, default=DEFAULT_MAX_MATCHES, help="Max matches")
    file_parser.add_argument("--chars", type=int, default=DEFAULT_SNIPPET_CHARS, help="Snippet length")

    # project command
    project_parser = subparsers.add_parser("project", help="Search a directory tree")
    project_parser.add_argument("query", help="Search query (case-insensitive)")
    project_parser.add_argument("--path", default=".", help="Root path")
    project_parser.add_argument("--ext", default="", help="Extension filter (e.g. .cs)")
    project_parser.add_argument("--limit", type=int, default=DEFAULT_PROJECT_LIMIT, help="Max results")
    project_parser.add_argument("--chars", type=int, default=DEFAULT_SNIPPET_CHARS, help="Snippet length")

    args = parser.parse_args()
    sfa_runtime.set_allowed_paths(args.allowed_paths)

    try:
        if args.command == "file":
            matches = search_file(args.path, args.query, args.max, args.chars)
        elif args.command == "project":
            matches = search_project(args.path, args.query, args.limit, args.ext, args.chars)
        else:
            mcp.run()
            return
    except NavError as e:
        print(to_json(e.to_dict()))
        sys.exit(1)

    output = to_json([m.to_dict() for m in matches])
    # Use UTF-8 encoding for Windows console to handle Unicode
    sys.stdout.buffer.write(output.encode("utf-8"))
    sys.stdout.buffer.write(b"\n")
    sys.stdout.flush()


if __name__ == "__main__":
    main()
