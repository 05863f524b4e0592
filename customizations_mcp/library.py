"""
customizations_mcp.library

Read and manage customizations (skills, commands, agents, output styles) in the
bundled library and in the local `.claude` directory.

Layout:
- skills are directories containing SKILL.md
- commands, agents and output styles are single <name>.md files
- archived local customizations live under <kind dir>/.archived/

Readers are total (a missing or unreadable asset reads as None); the mutating
operations raise CustomizationError subclasses for bad input and let
filesystem errors propagate. Every mutation is recorded in the operations log.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from customizations_mcp.config import (
    KIND_LAYOUT,
    archived_names,
    expand_home,
    load_config,
    local_dir,
    resolve_library_dir,
    resolve_ops_log_file,
)
from customizations_mcp.frontmatter import METADATA_PARSERS, parse_frontmatter

KINDS = tuple(KIND_LAYOUT)
SKILL_FILE_NAME = "SKILL.md"
ARCHIVE_DIR_NAME = ".archived"
SETTINGS_FILE_NAME = "settings.json"
ORG_PREFIX_RE = re.compile(r"^[a-z0-9]+-")

logger = logging.getLogger("ClaudeCustomizations.library")


class CustomizationError(ValueError):
    """Base error for customization management operations."""


class NotFoundError(CustomizationError):
    pass


class AlreadyExistsError(CustomizationError):
    pass


class InvalidNameError(CustomizationError):
    pass


class InvalidActionError(CustomizationError):
    pass


class UnknownKindError(CustomizationError):
    pass


def _log_operation(op: str, payload: dict[str, Any]) -> None:
    """
    function_purpose: Append a single JSON line describing a mutating operation.

    Failure to write the log is reported as a warning and never breaks the operation.
    """
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    record = {"ts": ts, "op": op}
    record.update(payload)

    ops_log = resolve_ops_log_file()
    try:
        ops_log.parent.mkdir(parents=True, exist_ok=True)
        with open(ops_log, "a", encoding="utf-8") as f:
            _ = f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError:
        logger.warning("Failed to write operation log entry", exc_info=True)


def _check_kind(kind: str) -> str:
    if kind not in KIND_LAYOUT:
        raise UnknownKindError(
            f"unknown customization kind '{kind}' (expected one of: {', '.join(KINDS)})"
        )
    return kind


def _check_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name or ".." in name:
        raise InvalidNameError(f"invalid customization name '{name}'")
    return name


def _entry_path(base_dir: Path, kind: str, name: str) -> Path:
    if kind == "skill":
        return base_dir / name
    return base_dir / f"{name}.md"


def _name_from_path(kind: str, path: Path) -> str:
    if kind == "skill":
        return path.name
    name = path.name
    return name[: -len(".md")] if name.endswith(".md") else name


# --- Source classification ---
def is_personal_path(path: str | Path) -> bool:
    """
    function_purpose: Detect a personal customization from its path.

    Personal when the file name ends with '.personal.md' or the containing
    directory path contains '/personal' or '\\personal'.
    """
    text = str(path)
    basename = Path(text).name
    dirname = str(Path(text).parent)
    if basename.endswith(".personal.md"):
        return True
    return "/personal" in dirname or "\\personal" in dirname


def customization_source(name: str, path: str | Path | None = None) -> str:
    """Classify as 'personal', 'org' (prefixed names such as '321-review') or 'base'."""
    if is_personal_path(path if path is not None else name):
        return "personal"
    if ORG_PREFIX_RE.match(name):
        return "org"
    return "base"


# --- Readers ---
def read_customization(kind: str, path: str | Path, is_local: bool = False) -> dict[str, Any] | None:
    """
    function_purpose: Read one customization into a record; None when it cannot be read.

    For skills, path is the skill directory and SKILL.md inside it is read.
    Source is classified from the entry name, not from where the `.claude`
    directory happens to live.
    """
    _check_kind(kind)
    path = Path(path)
    source_file = path / SKILL_FILE_NAME if kind == "skill" else path

    try:
        content = source_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Could not read %s %s: %s", kind, source_file, exc)
        return None

    meta = METADATA_PARSERS[kind](content)
    name = _name_from_path(kind, path)
    record: dict[str, Any] = {
        "type": kind,
        "name": name,
        "description": meta["description"],
        "path": str(path),
        "content": content,
        "is_local": is_local,
        "is_archived": False,
        "is_personal": is_personal_path(path.name),
        "is_template": not is_local,
        "source": customization_source(name, path.name),
    }

    if kind == "command":
        record["allowed_tools"] = meta["allowed_tools"]
        record["argument_hint"] = meta["argument_hint"]
        record["model"] = meta["model"]
    elif kind == "agent":
        _, body = parse_frontmatter(content)
        record["tools"] = meta["tools"]
        record["model"] = meta["model"]
        record["prompt"] = body.strip()
    elif kind == "output-style":
        _, body = parse_frontmatter(content)
        record["instructions"] = body.strip()
    return record


def _iter_entry_paths(kind: str, directory: Path, skip_hidden: bool) -> list[Path]:
    paths: list[Path] = []
    for entry in sorted(directory.iterdir()):
        if kind == "skill":
            if not entry.is_dir():
                continue
            if skip_hidden and entry.name.startswith("."):
                continue
        elif not (entry.is_file() and entry.name.endswith(".md")):
            continue
        paths.append(entry)
    return paths


def _read_dir(
    kind: str, directory: Path, is_local: bool, skip_hidden: bool
) -> list[dict[str, Any]]:
    try:
        paths = _iter_entry_paths(kind, directory, skip_hidden)
    except OSError as exc:
        logger.error("Failed to list %s in %s: %s", kind, directory, exc)
        return []

    records = []
    for p in paths:
        record = read_customization(kind, p, is_local)
        if record is not None:
            records.append(record)
    return records


def list_library(kind: str, library_dir: Path | None = None) -> list[dict[str, Any]]:
    """List customizations of one kind from the bundled library."""
    _check_kind(kind)
    library_dir = library_dir or resolve_library_dir()
    _, _, subdir = KIND_LAYOUT[kind]
    return _read_dir(kind, library_dir / subdir, is_local=False, skip_hidden=False)


def list_local(
    kind: str,
    config: dict[str, Any] | None = None,
    include_archived: bool = False,
) -> list[dict[str, Any]]:
    """
    function_purpose: List customizations of one kind from the local configuration directory.

    Entries named in the config's archived list are flagged is_archived. With
    include_archived, entries moved into the .archived/ directory are listed too.
    """
    _check_kind(kind)
    config = config or load_config()
    directory = local_dir(config, kind)
    archived = set(archived_names(config, kind))

    records = _read_dir(kind, directory, is_local=True, skip_hidden=True)
    for record in records:
        record["is_archived"] = record["name"] in archived

    archive_dir = directory / ARCHIVE_DIR_NAME
    if include_archived and archive_dir.is_dir():
        for record in _read_dir(kind, archive_dir, is_local=True, skip_hidden=True):
            record["is_archived"] = True
            records.append(record)
    return records


def get_customization(
    kind: str,
    name: str,
    is_local: bool = False,
    config: dict[str, Any] | None = None,
    library_dir: Path | None = None,
) -> dict[str, Any] | None:
    """Look up one customization by name, locally or in the bundled library."""
    _check_kind(kind)
    _check_name(name)
    if is_local:
        base_dir = local_dir(config or load_config(), kind)
    else:
        _, _, subdir = KIND_LAYOUT[kind]
        base_dir = (library_dir or resolve_library_dir()) / subdir
    return read_customization(kind, _entry_path(base_dir, kind, name), is_local)


# --- Mutations ---
def install_customization(
    kind: str,
    name: str,
    config: dict[str, Any] | None = None,
    library_dir: Path | None = None,
    overwrite: bool = False,
) -> dict[str, Any]:
    """
    function_purpose: Copy a bundled customization into the local configuration directory.

    Will not replace an existing local copy unless overwrite=True.
    Returns {installed, name, path, message}.
    """
    _check_kind(kind)
    _check_name(name)
    config = config or load_config()
    _, _, subdir = KIND_LAYOUT[kind]
    source = _entry_path((library_dir or resolve_library_dir()) / subdir, kind, name)
    target_dir = local_dir(config, kind)
    target = _entry_path(target_dir, kind, name)

    if not source.exists():
        raise NotFoundError(f"{kind} '{name}' not found in library")
    if target.exists():
        if not overwrite:
            raise AlreadyExistsError(
                f"{kind} '{name}' is already installed (set overwrite=True to replace)"
            )
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()

    target_dir.mkdir(parents=True, exist_ok=True)
    if kind == "skill":
        shutil.copytree(source, target)
    else:
        shutil.copy2(source, target)

    _log_operation(
        "install", {"kind": kind, "name": name, "path": str(target), "overwrite": overwrite}
    )
    return {
        "installed": True,
        "name": name,
        "path": str(target),
        "message": f"{kind} installed",
    }


def archive_customization(
    kind: str, name: str, config: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Move a local customization into the kind's .archived/ directory."""
    _check_kind(kind)
    _check_name(name)
    base_dir = local_dir(config or load_config(), kind)
    source = _entry_path(base_dir, kind, name)
    target = _entry_path(base_dir / ARCHIVE_DIR_NAME, kind, name)

    if not source.exists():
        raise NotFoundError(f"{kind} '{name}' not found")
    if target.exists():
        raise AlreadyExistsError(f"{kind} '{name}' is already archived")

    target.parent.mkdir(parents=True, exist_ok=True)
    source.rename(target)
    _log_operation("archive", {"kind": kind, "name": name, "path": str(target)})
    return {"success": True, "path": str(target), "message": f"{kind} archived"}


def unarchive_customization(
    kind: str, name: str, config: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Move an archived customization back into the local directory."""
    _check_kind(kind)
    _check_name(name)
    base_dir = local_dir(config or load_config(), kind)
    source = _entry_path(base_dir / ARCHIVE_DIR_NAME, kind, name)
    target = _entry_path(base_dir, kind, name)

    if not source.exists():
        raise NotFoundError(f"archived {kind} '{name}' not found")
    if target.exists():
        raise AlreadyExistsError(f"{kind} '{name}' already exists")

    source.rename(target)
    _log_operation("unarchive", {"kind": kind, "name": name, "path": str(target)})
    return {"success": True, "path": str(target), "message": f"{kind} restored"}


def set_archived_action(
    kind: str, name: str, action: str, config: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Dispatch 'archive' or 'unarchive'."""
    if action == "archive":
        return archive_customization(kind, name, config)
    if action == "unarchive":
        return unarchive_customization(kind, name, config)
    raise InvalidActionError(f"invalid action '{action}' (expected archive or unarchive)")


def delete_customization(
    kind: str, name: str, config: dict[str, Any] | None = None
) -> dict[str, Any]:
    """
    function_purpose: Permanently remove a local customization.

    Skills are removed as whole directories; other kinds as single files.
    """
    _check_kind(kind)
    _check_name(name)
    target = _entry_path(local_dir(config or load_config(), kind), kind, name)

    if not target.exists():
        raise NotFoundError(f"{kind} '{name}' not found")

    if target.is_dir():
        shutil.rmtree(target)
    else:
        target.unlink()
    _log_operation("delete", {"kind": kind, "name": name, "path": str(target)})
    return {"success": True, "path": str(target), "message": f"{kind} deleted"}


# --- Settings ---
def settings_path(
    is_local: bool = False,
    config: dict[str, Any] | None = None,
    project_dir: Path | None = None,
) -> Path:
    """
    function_purpose: Locate the settings.json to read or write.

    Local settings sit next to the local skills directory; project settings live
    in <project_dir>/.claude/ (project_dir defaults to the working directory).
    """
    if is_local:
        config = config or load_config()
        skills_dir = Path(expand_home(config["local_skills_path"]))
        return skills_dir.parent / SETTINGS_FILE_NAME
    return (project_dir or Path.cwd()) / ".claude" / SETTINGS_FILE_NAME


def read_settings(
    is_local: bool = False,
    config: dict[str, Any] | None = None,
    project_dir: Path | None = None,
) -> dict[str, Any] | None:
    """Read settings.json; None when missing or not valid JSON."""
    path = settings_path(is_local, config, project_dir)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.warning("Failed to read settings %s: %s", path, exc)
        return None


def write_settings(
    settings: dict[str, Any],
    is_local: bool = False,
    config: dict[str, Any] | None = None,
    project_dir: Path | None = None,
) -> Path:
    """Write settings.json as indented JSON."""
    path = settings_path(is_local, config, project_dir)
    path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
    _log_operation("write_settings", {"path": str(path)})
    return path
