# /// script
# requires-python = ">=3.11"
# dependencies = []
# ///

"""
SFA Runtime - Standard Runtime Helpers shared by the navigation agents.

Path sandboxing, configuration, argument clamping, the line source, the
error taxonomy and stderr logging. Imported by sfa_find, sfa_grep, sfa_read,
sfa_extract and sfa_db; nothing here touches stdout.
"""

import json
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

# --- Global Security ---
ALLOWED_PATHS: List[Path] = []

# --- Configuration ---

DEFAULT_EXCLUDED_DIRS = ("bin", "obj", ".git")
DEFAULT_DECL_KEYWORDS = ("class", "record", "interface", "struct")

LIST_BOUNDS = (1, 1000)
MATCH_BOUNDS = (1, 50)
SNIPPET_BOUNDS = (40, 400)
MAX_LINES_BOUNDS = (20, 2000)
BODY_WINDOW = 50

ELLIPSIS = "..."


@dataclass(frozen=True)
class NavConfig:
    """Bounds and policy for one call. Built fresh by load_config()."""

    list_bounds: Tuple[int, int] = LIST_BOUNDS
    match_bounds: Tuple[int, int] = MATCH_BOUNDS
    snippet_bounds: Tuple[int, int] = SNIPPET_BOUNDS
    max_lines_bounds: Tuple[int, int] = MAX_LINES_BOUNDS
    body_window: int = BODY_WINDOW
    excluded_dirs: Tuple[str, ...] = DEFAULT_EXCLUDED_DIRS
    decl_keywords: Tuple[str, ...] = DEFAULT_DECL_KEYWORDS
    open_delim: str = "{"
    close_delim: str = "}"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log("WARN", "config", f"Ignoring non-integer {name}={raw!r}")
        return default


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.environ.get(name, "")
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def load_config() -> NavConfig:
    """Read SFA_* overrides from the environment on top of the defaults."""
    list_max = max(LIST_BOUNDS[0], _env_int("SFA_LIST_MAX", LIST_BOUNDS[1]))
    excluded = DEFAULT_EXCLUDED_DIRS + tuple(
        d for d in _env_list("SFA_EXCLUDE_DIRS") if d not in DEFAULT_EXCLUDED_DIRS
    )
    return NavConfig(
        list_bounds=(LIST_BOUNDS[0], list_max),
        body_window=max(1, _env_int("SFA_BODY_WINDOW", BODY_WINDOW)),
        excluded_dirs=excluded,
        decl_keywords=_env_list("SFA_DECL_KEYWORDS") or DEFAULT_DECL_KEYWORDS,
    )


# --- Logging ---

_LEVELS = {"TRACE": 5, "DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def log(level: str, event: str, msg: str) -> None:
    """Write one diagnostic line to stderr if level passes SFA_LOG_LEVEL."""
    threshold = _LEVELS.get(os.environ.get("SFA_LOG_LEVEL", "WARN").upper(), 30)
    if _LEVELS.get(level, 20) < threshold:
        return
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    print(f"{ts} {level:<5} [{event}] {msg}", file=sys.stderr)


# --- Errors ---


class NavError(Exception):
    """Base for every user-facing failure of a navigation call."""

    kind = "error"

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind}


class NotFound(NavError, FileNotFoundError):
    kind = "not_found"


class InvalidArgument(NavError, ValueError):
    kind = "invalid_argument"


class NotFoundInFile(NavError, LookupError):
    kind = "not_found_in_file"


class BodyNotFound(NavError, LookupError):
    """The declaration line exists but no opening delimiter follows it."""

    kind = "body_not_found"

    def __init__(self, message: str, line: int):
        super().__init__(message)
        self.line = line

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["line"] = self.line
        return result


class AccessDenied(NavError, PermissionError):
    kind = "access_denied"


class ReadFailed(NavError):
    """The file exists but reading it failed part way."""

    kind = "read_failed"


# --- Standard Runtime Helpers ---


def normalize_path(path_str: str) -> Path:
    if not path_str:
        return Path.cwd()
    if (
        sys.platform == "win32"
        and path_str.startswith("/")
        and len(path_str) > 2
        and path_str[2] == "/"
    ):
        drive = path_str[1]
        rest = path_str[2:]
        path_str = f"{drive}:{rest}"

    path = Path(path_str).resolve()

    # Security Check
    if ALLOWED_PATHS:
        is_allowed = False
        for allowed in ALLOWED_PATHS:
            try:
                path.relative_to(allowed)
                is_allowed = True
                break
            except ValueError:
                continue

        if not is_allowed:
            raise AccessDenied(f"Access denied: Path '{path}' is not in allowed paths.")

    return path


def set_allowed_paths(paths: Optional[str]) -> None:
    """Apply a comma-separated --allowed-paths value."""
    if not paths:
        return
    for p in paths.split(","):
        if p.strip():
            ALLOWED_PATHS.append(Path(p.strip()).resolve())


def clamp(value: Any, bounds: Tuple[int, int], name: str = "value") -> int:
    """
    Move value into [low, high]. Never rejects: non-integers fall back to the
    lower bound, out-of-range values (infinities included) snap to the
    nearest bound.
    """
    low, high = bounds
    try:
        number = int(value)
    except (TypeError, ValueError):
        log("DEBUG", "clamp", f"{name}={value!r} is not a number, using {low}")
        return low
    except OverflowError:
        clamped = high if value > 0 else low
        log("DEBUG", "clamp", f"{name}={value!r} clamped to {clamped}")
        return clamped
    clamped = min(max(number, low), high)
    if clamped != number:
        log("DEBUG", "clamp", f"{name}={number} clamped to {clamped}")
    return clamped


def iter_lines(path: Path) -> Iterator[str]:
    """Stream a text file line by line without trailing newlines."""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            yield line.rstrip("\n")


def display_path(path: Path) -> str:
    return str(path).replace("\\", "/")


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def error_json(error: NavError, tool: str) -> str:
    log("WARN", tool, str(error))
    return to_json(error.to_dict())
