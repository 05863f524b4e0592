"""
customizations_mcp.config

Paths, environment overrides and the persisted dashboard configuration.

Environment (optional):
- LIBRARY_DIR: bundled customization library (default: <repo_root>/library)
- CUSTOMIZATIONS_CONFIG_FILE: config file (default: ~/.config/customizations-mcp/config.json)
- LOG_FILE: rotating server log (default: <repo_root>/logs/customizations_mcp_server.log)
- OPS_LOG_FILE: operations audit log (default: <repo_root>/logs/customizations_mcp_operations.log)
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

# --- Paths & constants ---
REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_LIBRARY_DIR = REPO_ROOT / "library"
DEFAULT_LOG_DIR = REPO_ROOT / "logs"
DEFAULT_LOG_FILE = DEFAULT_LOG_DIR / "customizations_mcp_server.log"
DEFAULT_OPS_LOG_FILE = DEFAULT_LOG_DIR / "customizations_mcp_operations.log"
CONFIG_DIR_NAME = "customizations-mcp"
CONFIG_FILE_NAME = "config.json"

# kind -> (config path key, config archived-list key, subdirectory name)
KIND_LAYOUT = {
    "skill": ("local_skills_path", "archived_skills", "skills"),
    "command": ("local_commands_path", "archived_commands", "commands"),
    "agent": ("local_agents_path", "archived_agents", "agents"),
    "output-style": ("local_output_styles_path", "archived_output_styles", "output-styles"),
}

logger = logging.getLogger("ClaudeCustomizations.config")


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value).expanduser().resolve() if value else default


def resolve_library_dir() -> Path:
    """
    function_purpose: Resolve the bundled library root from LIBRARY_DIR or the default location.

    The library holds skills/, commands/, agents/ and output-styles/ subdirectories.
    """
    return _env_path("LIBRARY_DIR", DEFAULT_LIBRARY_DIR)


def resolve_config_file() -> Path:
    return _env_path(
        "CUSTOMIZATIONS_CONFIG_FILE",
        Path.home() / ".config" / CONFIG_DIR_NAME / CONFIG_FILE_NAME,
    )


def resolve_log_file() -> Path:
    return _env_path("LOG_FILE", DEFAULT_LOG_FILE)


def resolve_ops_log_file() -> Path:
    return _env_path("OPS_LOG_FILE", DEFAULT_OPS_LOG_FILE)


def expand_home(path: str, home: Path | None = None) -> str:
    """Replace a leading '~' with the home directory."""
    if not path.startswith("~"):
        return path
    home = home if home is not None else Path.home()
    return str(home) + path[1:]


def _paths_for_base(base_path: str, home: Path | None = None) -> dict[str, str]:
    base = Path(expand_home(base_path, home))
    return {
        path_key: str(base / subdir) for path_key, _, subdir in KIND_LAYOUT.values()
    }


def default_config(home: Path | None = None) -> dict[str, Any]:
    """
    function_purpose: Build the configuration used when no config file exists.

    Local paths point at <home>/.claude; nothing is archived and auto sync is off.
    """
    home = home if home is not None else Path.home()
    base = str(home / ".claude")
    config: dict[str, Any] = {"claude_base_path": base}
    config.update(_paths_for_base(base, home))
    config.update(
        {
            "git_repo_url": "",
            "archived_skills": [],
            "archived_commands": [],
            "archived_agents": [],
            "archived_output_styles": [],
            "auto_sync": False,
            "theme": "dark",
        }
    )
    return config


def _is_valid_value(value: Any, default: Any) -> bool:
    # archived_* lists hold names; every other key keeps the type of its default
    if isinstance(default, list):
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, type(default))


def invalid_config_keys(config: dict[str, Any]) -> list[str]:
    """Known keys whose values do not have the type of their default."""
    defaults = default_config()
    return sorted(
        key
        for key, value in config.items()
        if key in defaults
        and value is not None
        and not _is_valid_value(value, defaults[key])
    )


def load_config(
    config_file: Path | None = None, home: Path | None = None
) -> dict[str, Any]:
    """
    function_purpose: Load the persisted configuration, filling missing keys with defaults.

    A missing file yields the defaults. An unreadable or malformed file is logged
    and also yields the defaults. A known key holding a value of the wrong type
    is logged and keeps its default. Local paths missing from the file are
    derived from claude_base_path.
    """
    config_file = config_file or resolve_config_file()
    config = default_config(home)

    try:
        raw = json.loads(config_file.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return config
    except (OSError, ValueError) as exc:
        logger.warning("Failed to read config %s (%s); using defaults", config_file, exc)
        return config

    if not isinstance(raw, dict):
        logger.warning("Config %s is not a JSON object; using defaults", config_file)
        return config

    invalid = invalid_config_keys(raw)
    if invalid:
        logger.warning(
            "Config %s has mistyped values for %s; using defaults for them",
            config_file,
            ", ".join(invalid),
        )
        raw = {k: v for k, v in raw.items() if k not in invalid}

    if raw.get("claude_base_path"):
        config["claude_base_path"] = raw["claude_base_path"]
        config.update(_paths_for_base(raw["claude_base_path"], home))

    for key, value in raw.items():
        if key in config and value not in (None, ""):
            config[key] = value
    return config


def save_config(config: dict[str, Any], config_file: Path | None = None) -> Path:
    """
    Write the configuration as indented JSON, creating the parent directory.

    Raises ValueError when a known key holds a value of the wrong type.
    """
    if not isinstance(config, dict):
        raise ValueError("config must be a JSON object")
    invalid = invalid_config_keys(config)
    if invalid:
        raise ValueError(f"invalid config values for: {', '.join(invalid)}")

    config_file = config_file or resolve_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    logger.info("Saved config to %s", config_file)
    return config_file


def select_project(
    claude_path: str, config_file: Path | None = None, home: Path | None = None
) -> dict[str, Any]:
    """
    function_purpose: Point the configuration at a project's `.claude` directory.

    Recomputes every local customization path from the new base and persists the
    result. Returns the updated configuration.
    """
    if not claude_path:
        raise ValueError("claude_path is required")

    config = load_config(config_file, home)
    config["claude_base_path"] = claude_path
    config.update(_paths_for_base(claude_path, home))
    save_config(config, config_file)
    return config


def local_dir(config: dict[str, Any], kind: str, home: Path | None = None) -> Path:
    """Local directory holding customizations of the given kind."""
    path_key, _, _ = KIND_LAYOUT[kind]
    return Path(expand_home(config[path_key], home))


def archived_names(config: dict[str, Any], kind: str) -> list[str]:
    _, archived_key, _ = KIND_LAYOUT[kind]
    return list(config.get(archived_key) or [])
