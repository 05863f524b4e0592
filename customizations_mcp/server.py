"""
customizations_mcp.server

FastMCP server exposing Claude Code customizations (skills, commands, agents,
output styles) and project discovery as MCP tools.

Server-level documentation:
- Purpose: Browse the bundled customization library and the local `.claude`
  directory, install/archive/delete customizations, and find projects that
  carry their own `.claude` directory.
- Why use it:
  * List library and locally installed customizations with their metadata
  * Fetch full customization documents (front-matter + markdown body)
  * Install library customizations locally; archive, restore or delete local ones
  * Discover `.claude` directories across the filesystem and switch between them
  * Read and write settings.json
- Transport: STDIO by default; streamable HTTP with --transport http
- Logging: Console + rotating file logs; mutations also go to a JSON-lines operations log
- Startup: Optional background git sync of the library (config auto_sync + git_repo_url)

Environment (optional):
- LIBRARY_DIR: override path to the bundled library (default: <repo_root>/library)
- CUSTOMIZATIONS_CONFIG_FILE: override config file (default: ~/.config/customizations-mcp/config.json)
- LOG_FILE: override log file path (default: <repo_root>/logs/customizations_mcp_server.log)
- OPS_LOG_FILE: override operations log path (default: <repo_root>/logs/customizations_mcp_operations.log)

Usage:
- As a script:
  python -m customizations_mcp.server        # starts stdio server
  python -m customizations_mcp.server --help # CLI for inspection without starting server

Package: customizations_mcp
Entry point: python -m customizations_mcp.server
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Any

from fastmcp import FastMCP

from customizations_mcp.config import (
    load_config,
    resolve_config_file,
    resolve_library_dir,
    resolve_log_file,
    save_config,
    select_project,
)
from customizations_mcp.discovery import (
    DEFAULT_MAX_DEPTH,
    discover_projects,
    parse_search_paths,
)
from customizations_mcp.library import (
    KINDS,
    delete_customization,
    get_customization,
    install_customization,
    list_library,
    list_local,
    read_settings,
    set_archived_action,
    write_settings,
)
from customizations_mcp.sync import start_background_sync

SERVER_NAME = "ClaudeCustomizations"
SUMMARY_KEYS = ("type", "name", "description", "path", "source", "is_archived", "is_personal")


# --- Logging setup ---
def configure_logging() -> logging.Logger:
    """
    function_purpose: Configure application-wide logging to both console and rotating file.

    - Creates the log directory if needed.
    - Module loggers are children of this logger and share its handlers.
    - Safe to call more than once; handlers are only attached the first time.
    """
    logger = logging.getLogger(SERVER_NAME)
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    log_file = resolve_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"
    )

    # Console handler (stderr; stdout carries the stdio transport)
    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # Rotating file handler (5 files, 5MB each)
    fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    fh.setLevel(logging.INFO)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger.info("Logging initialized. File: %s", str(log_file))
    return logger


def _summary(record: dict[str, Any]) -> dict[str, Any]:
    return {k: record.get(k) for k in SUMMARY_KEYS}


def _markdown_listing(title: str, records: list[dict[str, Any]]) -> str:
    if not records:
        return f"# {title}\n\nNo customizations found.\n"

    lines = [f"# {title}\n\n"]
    for record in records:
        lines.append(f"## {record['name']}\n")
        lines.append(f"{record['description']}\n\n")
        lines.append(f"**Source:** {record.get('source')}  \n")
        if record.get("is_archived"):
            lines.append("**Archived:** yes  \n")
        lines.append(f"**Path:** `{record['path']}`  \n")
        lines.append("\n")
    return "".join(lines)


def _markdown_projects(projects: list[dict[str, Any]]) -> str:
    if not projects:
        return "# Projects\n\nNo `.claude` directories found.\n"

    lines = ["# Projects\n\n"]
    lines.append(f"Found {len(projects)} project(s):\n\n")
    lines.append("| Name | Path | Modified | Settings | Skills | Commands | Agents | Output styles |\n")
    lines.append("|------|------|----------|----------|--------|----------|--------|---------------|\n")
    for p in projects:
        counts = p["customization_counts"]
        lines.append(
            f"| {p['name']} | `{p['path']}` | {p['last_modified']} | "
            f"{'yes' if p['has_settings'] else 'no'} | {counts['skills']} | "
            f"{counts['commands']} | {counts['agents']} | {counts['output_styles']} |\n"
        )
    return "".join(lines)


def _markdown_detail(record: dict[str, Any]) -> str:
    lines = [f"# {record['name']}\n"]
    lines.append(f"**Type:** {record['type']}\n")
    lines.append(f"**Description:** {record['description']}\n")
    lines.append(f"**Source:** {record['source']}\n")
    if record.get("model"):
        lines.append(f"**Model:** {record['model']}\n")
    if record.get("tools"):
        lines.append(f"**Tools:** {', '.join(record['tools'])}\n")
    if record.get("allowed_tools"):
        lines.append(f"**Allowed Tools:** {record['allowed_tools']}\n")
    if record.get("argument_hint"):
        lines.append(f"**Argument Hint:** {record['argument_hint']}\n")
    lines.append(f"**Path:** {record['path']}\n")
    lines.append("\n---\n")
    lines.append(record.get("content", ""))
    return "".join(lines)


mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "ClaudeCustomizations MCP Server\n"
        "\n"
        "Purpose:\n"
        "- Browse and manage Claude Code customizations: skills (directories with SKILL.md),\n"
        "  commands, agents and output styles (single markdown files with '---' front-matter).\n"
        "- Customizations come from a bundled library and from the local `.claude` directory.\n"
        "\n"
        "Kinds: 'skill', 'command', 'agent', 'output-style'.\n"
        "\n"
        "Exposed tools:\n"
        "- customization_server_info(): server name, library_dir, config_file, transport\n"
        "- customization_list_library(kind, markdown_output?): bundled customizations of a kind\n"
        "- customization_list_local(kind, include_archived?, markdown_output?): installed customizations\n"
        "- customization_get_detail(kind, name, is_local?, markdown_output?): full document and metadata\n"
        "- customization_install(kind, name, overwrite?): copy a library customization into the local directory\n"
        "- customization_archive(kind, name, action): 'archive' moves into .archived/, 'unarchive' restores\n"
        "- customization_delete(kind, name): permanently remove a local customization\n"
        "- project_discover(paths?, max_depth?, markdown_output?): find `.claude` directories, newest first\n"
        "- project_select(claude_path): make a discovered `.claude` directory the local target\n"
        "- config_get() / config_save(config): read or replace the persisted configuration\n"
        "- settings_read(is_local?) / settings_write(settings, is_local?): settings.json access\n"
        "\n"
        "Notes:\n"
        "- Discovery skips hidden directories (except .claude), node_modules, .git, dist, build,\n"
        "  .next, target and vendor, and descends at most max_depth levels (default 5).\n"
        "- Unreadable paths are skipped silently; discovery never fails for a single path.\n"
        "- Every install/archive/unarchive/delete/settings write is recorded in the operations log.\n"
    ),
)


@mcp.tool
def customization_server_info() -> dict[str, Any]:
    """
    function_purpose: Return server-level information.

    Returns:
    - name: str          Server name
    - library_dir: str   Absolute path of the bundled library
    - config_file: str   Path of the persisted configuration
    - kinds: list[str]   Supported customization kinds
    - transport: str     Default transport
    """
    return {
        "name": SERVER_NAME,
        "library_dir": str(resolve_library_dir()),
        "config_file": str(resolve_config_file()),
        "kinds": list(KINDS),
        "transport": "stdio",
    }


@mcp.tool
def customization_list_library(
    kind: str, markdown_output: bool = False
) -> list[dict[str, Any]] | str:
    """
    function_purpose: List customizations of one kind from the bundled library.

    Args:
    - kind: str               'skill', 'command', 'agent' or 'output-style'
    - markdown_output: bool   If True, return a formatted markdown string (default: False)

    Returns summaries with type, name, description, path, source, is_archived, is_personal.
    """
    records = [_summary(r) for r in list_library(kind)]
    if not markdown_output:
        return records
    return _markdown_listing(f"Library: {kind}", records)


@mcp.tool
def customization_list_local(
    kind: str, include_archived: bool = False, markdown_output: bool = False
) -> list[dict[str, Any]] | str:
    """
    function_purpose: List customizations of one kind installed in the local `.claude` directory.

    Args:
    - kind: str                'skill', 'command', 'agent' or 'output-style'
    - include_archived: bool   Also list entries moved into .archived/ (default: False)
    - markdown_output: bool    If True, return a formatted markdown string (default: False)
    """
    records = [_summary(r) for r in list_local(kind, include_archived=include_archived)]
    if not markdown_output:
        return records
    return _markdown_listing(f"Installed: {kind}", records)


@mcp.tool
def customization_get_detail(
    kind: str, name: str, is_local: bool = False, markdown_output: bool = False
) -> dict[str, Any] | str:
    """
    function_purpose: Get the full record for one customization (metadata + raw content).

    Args:
    - kind: str               Customization kind
    - name: str               Skill directory name, or file name without '.md'
    - is_local: bool          Read from the local directory instead of the library
    - markdown_output: bool   If True, return a formatted markdown string (default: False)
    """
    record = get_customization(kind, name, is_local=is_local)
    if record is None:
        where = "local directory" if is_local else "library"
        raise ValueError(f"{kind} '{name}' not found in {where}")
    if not markdown_output:
        return record
    return _markdown_detail(record)


@mcp.tool
def customization_install(kind: str, name: str, overwrite: bool = False) -> dict[str, Any]:
    """
    function_purpose: Install a library customization into the local `.claude` directory.

    Will not replace an existing local copy unless overwrite=True.
    """
    return install_customization(kind, name, overwrite=overwrite)


@mcp.tool
def customization_archive(kind: str, name: str, action: str = "archive") -> dict[str, Any]:
    """
    function_purpose: Archive or restore a local customization.

    Args:
    - action: str   'archive' moves the entry into .archived/; 'unarchive' moves it back
    """
    return set_archived_action(kind, name, action)


@mcp.tool
def customization_delete(kind: str, name: str) -> dict[str, Any]:
    """
    function_purpose: Permanently delete a local customization (skills as whole directories).
    """
    return delete_customization(kind, name)


@mcp.tool
def project_discover(
    paths: str = "", max_depth: int = DEFAULT_MAX_DEPTH, markdown_output: bool = False
) -> list[dict[str, Any]] | str:
    """
    function_purpose: Discover projects with a `.claude` directory, most recently modified first.

    Args:
    - paths: str              Extra comma-separated search roots, scanned after the defaults
                              (home, /data/dev, ~/projects, ~/workspace, ~/code)
    - max_depth: int          Maximum directory depth below each root (default: 5)
    - markdown_output: bool   If True, return a formatted markdown table (default: False)

    Returns records with name, path, claude_path, last_modified, has_settings, customization_counts.
    """
    projects = discover_projects(parse_search_paths(paths), max_depth=max_depth)
    if not markdown_output:
        return projects
    return _markdown_projects(projects)


@mcp.tool
def project_select(claude_path: str) -> dict[str, Any]:
    """
    function_purpose: Point the local configuration at a project's `.claude` directory.

    All local customization paths are recomputed from claude_path and saved.
    """
    config = select_project(claude_path)
    return {"success": True, "message": "Project selected", "config": config}


@mcp.tool
def config_get() -> dict[str, Any]:
    """Return the current configuration with defaults applied."""
    return load_config()


@mcp.tool
def config_save(config: dict[str, Any]) -> dict[str, Any]:
    """Replace the persisted configuration."""
    path = save_config(config)
    return {"success": True, "path": str(path)}


@mcp.tool
def settings_read(is_local: bool = False) -> dict[str, Any]:
    """
    function_purpose: Read settings.json.

    Args:
    - is_local: bool   Read the settings next to the local customization directories instead of
                       <cwd>/.claude/settings.json
    """
    settings = read_settings(is_local)
    if settings is None:
        raise ValueError("Settings file not found")
    return settings


@mcp.tool
def settings_write(settings: dict[str, Any], is_local: bool = False) -> dict[str, Any]:
    """Write settings.json (see settings_read for the location)."""
    path = write_settings(settings, is_local)
    return {"success": True, "path": str(path), "message": "Settings updated"}


# --- Entry points ---
def run(transport: str = "stdio", host: str = "127.0.0.1", port: int = 8000) -> None:
    """
    function_purpose: Entry point to start the MCP server.

    - Configures logging
    - Starts background library sync when enabled
    - Runs the FastMCP server on the chosen transport
    """
    logger = configure_logging()
    library_dir = resolve_library_dir()
    logger.info("Server starting with library_dir=%s transport=%s", library_dir, transport)
    start_background_sync(library_dir, load_config(), logger)
    if transport == "http":
        mcp.run(transport="http", host=host, port=port)
    else:
        mcp.run()


def cli_main(argv: list[str] | None = None) -> None:
    """
    function_purpose: CLI for inspecting customizations and projects without starting the server.

    Usage:
      python -m customizations_mcp.server --list skill
      python -m customizations_mcp.server --local command [--include-archived]
      python -m customizations_mcp.server --detail agent NAME [--is-local]
      python -m customizations_mcp.server --projects [PATHS] [--max-depth N]
      python -m customizations_mcp.server --serve [--transport http --port 8000]
    """
    import argparse
    import json

    logger = configure_logging()

    parser = argparse.ArgumentParser(
        prog="customizations_mcp.server",
        description="Inspect Claude Code customizations and projects or start the MCP server.",
    )
    parser.add_argument(
        "--list", metavar="KIND", choices=KINDS, help="List library customizations of KIND"
    )
    parser.add_argument(
        "--local", metavar="KIND", choices=KINDS, help="List locally installed customizations of KIND"
    )
    parser.add_argument(
        "--include-archived",
        action="store_true",
        help="With --local, include archived customizations",
    )
    parser.add_argument(
        "--detail",
        nargs=2,
        metavar=("KIND", "NAME"),
        help="Show the full record for one customization",
    )
    parser.add_argument(
        "--is-local", action="store_true", help="With --detail, read from the local directory"
    )
    parser.add_argument(
        "--projects",
        nargs="?",
        const="",
        metavar="PATHS",
        help="Discover projects; optional comma-separated extra search roots",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Maximum search depth for --projects",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start MCP server (default when no flags used)",
    )
    parser.add_argument("--transport", choices=("stdio", "http"), default="stdio")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    if args.list:
        logger.info("Listing library: %s", args.list)
        print(json.dumps(list_library(args.list), indent=2, ensure_ascii=False))
        return

    if args.local:
        logger.info("Listing local: %s", args.local)
        records = list_local(args.local, include_archived=args.include_archived)
        print(json.dumps(records, indent=2, ensure_ascii=False))
        return

    if args.detail:
        kind, name = args.detail
        if kind not in KINDS:
            parser.error(f"KIND must be one of: {', '.join(KINDS)}")
        logger.info("Detail for %s: %s", kind, name)
        record = get_customization(kind, name, is_local=args.is_local)
        print(json.dumps(record, indent=2, ensure_ascii=False))
        return

    if args.projects is not None:
        logger.info("Discovering projects (max_depth=%d)", args.max_depth)
        projects = discover_projects(
            parse_search_paths(args.projects), max_depth=args.max_depth
        )
        print(json.dumps(projects, indent=2, ensure_ascii=False))
        return

    # Default: start server
    run(args.transport, args.host, args.port)


if __name__ == "__main__":
    cli_main()
