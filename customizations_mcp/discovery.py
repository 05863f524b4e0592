"""
customizations_mcp.discovery

Project discovery: walk a set of search roots looking for `.claude`
configuration directories and summarize each one.

Discovery is best-effort. Directories that cannot be listed or stat'ed are
treated as empty; the walk never raises for an individual path.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

CONFIG_DIR_NAME = ".claude"
SETTINGS_FILE_NAME = "settings.json"
HOME_PROJECT_LABEL = "Home (~/.claude)"
DEFAULT_MAX_DEPTH = 5
FIXED_SEARCH_ROOT = Path("/data/dev")
HOME_SEARCH_SUBDIRS = ("projects", "workspace", "code")
SKIPPED_DIR_NAMES = frozenset(
    {"node_modules", ".git", "dist", "build", ".next", "target", "vendor"}
)

# subdirectory -> (counts key, counted entry kind)
COUNTED_SUBDIRS = (
    ("skills", "skills", "dir"),
    ("commands", "commands", "md"),
    ("agents", "agents", "md"),
    ("output-styles", "output_styles", "md"),
)

logger = logging.getLogger("ClaudeCustomizations.discovery")


def default_search_roots(home: Path) -> list[Path]:
    """
    function_purpose: Default roots scanned on every discovery call.

    Home itself, the fixed /data/dev workspace, and the conventional
    projects/workspace/code folders under home.
    """
    roots = [home, FIXED_SEARCH_ROOT]
    roots.extend(home / name for name in HOME_SEARCH_SUBDIRS)
    return roots


def parse_search_paths(raw: str | None) -> list[str]:
    """Split a comma-separated list of extra search paths, dropping blanks."""
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


def _is_skipped(name: str) -> bool:
    if name == CONFIG_DIR_NAME:
        return False
    return name.startswith(".") or name in SKIPPED_DIR_NAMES


def find_config_dirs(
    search_path: Path, max_depth: int = DEFAULT_MAX_DEPTH, depth: int = 0
) -> list[Path]:
    """
    function_purpose: Recursively collect `.claude` directories under search_path.

    - Stops descending once depth reaches max_depth.
    - Hidden entries (other than `.claude`) and SKIPPED_DIR_NAMES are ignored.
    - A `.claude` directory is recorded and not descended into.
    - Symlinks are not followed.
    - Unreadable directories contribute nothing.
    """
    found: list[Path] = []
    if depth >= max_depth:
        return found

    try:
        with os.scandir(search_path) as it:
            entries = list(it)
    except OSError as exc:
        logger.debug("Skipping unreadable directory %s: %s", search_path, exc)
        return found

    for entry in entries:
        if _is_skipped(entry.name):
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if not is_dir:
            continue

        full_path = Path(search_path) / entry.name
        if entry.name == CONFIG_DIR_NAME:
            found.append(full_path)
        else:
            found.extend(find_config_dirs(full_path, max_depth, depth + 1))

    return found


def _count_entries(directory: Path, kind: str) -> int:
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError:
        return 0

    count = 0
    for entry in entries:
        try:
            if kind == "dir":
                if entry.is_dir(follow_symlinks=False) and not entry.name.startswith("."):
                    count += 1
            elif entry.is_file(follow_symlinks=False) and entry.name.endswith(".md"):
                count += 1
        except OSError:
            continue
    return count


def count_customizations(claude_path: Path) -> dict[str, int]:
    """
    function_purpose: Count skills, commands, agents and output styles in a `.claude` directory.

    Skills are non-hidden subdirectories of `skills/`; the other kinds are `.md`
    files. A missing subdirectory counts as 0.
    """
    return {
        key: _count_entries(claude_path / subdir, kind)
        for subdir, key, kind in COUNTED_SUBDIRS
    }


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _has_settings(claude_path: Path) -> bool:
    try:
        return (claude_path / SETTINGS_FILE_NAME).exists()
    except OSError:
        return False


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return time.time()


def _format_timestamp(ts: float) -> str:
    return (
        datetime.fromtimestamp(ts, timezone.utc)
        .isoformat(timespec="seconds")
        .replace("+00:00", "Z")
    )


def _project_info(claude_path: Path, home: Path) -> tuple[float, dict[str, Any]]:
    project_path = claude_path.parent
    if project_path == home:
        name = HOME_PROJECT_LABEL
    else:
        name = project_path.name

    mtime = _mtime(claude_path)
    record = {
        "name": name,
        "path": str(project_path),
        "claude_path": str(claude_path),
        "last_modified": _format_timestamp(mtime),
        "has_settings": _has_settings(claude_path),
        "customization_counts": count_customizations(claude_path),
    }
    return mtime, record


def project_info(claude_path: Path, home: Path) -> dict[str, Any]:
    """Summarize one `.claude` directory. Never raises."""
    return _project_info(Path(claude_path), Path(home))[1]


def _unique(paths: Iterable[Path]) -> list[Path]:
    seen: set[str] = set()
    result: list[Path] = []
    for p in paths:
        key = str(p)
        if key in seen:
            continue
        seen.add(key)
        result.append(p)
    return result


def discover_projects(
    search_paths: Iterable[str | Path] = (),
    home: Path | None = None,
    default_roots: Iterable[str | Path] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[dict[str, Any]]:
    """
    function_purpose: Discover every `.claude` directory reachable from the search roots.

    Args:
    - search_paths: extra roots, scanned after the defaults
    - home: home directory used for the default roots and the home label
            (defaults to Path.home())
    - default_roots: overrides default_search_roots(home); pass [] to scan only search_paths
    - max_depth: maximum descent below each root

    Returns project records sorted by last modification time, most recent first.
    """
    home = Path(home) if home is not None else Path.home()
    if default_roots is None:
        default_roots = default_search_roots(home)

    roots = _unique(
        [Path(p) for p in default_roots] + [Path(p).expanduser() for p in search_paths]
    )

    claude_dirs: list[Path] = []
    for root in roots:
        if not _is_dir(root):
            logger.debug("Search root not accessible: %s", root)
            continue
        claude_dirs.extend(find_config_dirs(root, max_depth))

    claude_dirs = _unique(claude_dirs)
    infos = [_project_info(d, home) for d in claude_dirs]
    infos.sort(key=lambda item: item[0], reverse=True)

    logger.info(
        "Discovered %d project(s) across %d search root(s)", len(infos), len(roots)
    )
    return [record for _, record in infos]


def get_project_by_path(
    claude_path: str | Path, home: Path | None = None
) -> dict[str, Any] | None:
    """Summarize a single `.claude` directory, or None when it does not exist."""
    path = Path(claude_path).expanduser()
    if not os.path.exists(path):
        return None
    return project_info(path, Path(home) if home is not None else Path.home())
