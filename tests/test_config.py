from __future__ import annotations

import json
from pathlib import Path

import pytest

from customizations_mcp.config import (
    default_config,
    expand_home,
    load_config,
    resolve_library_dir,
    save_config,
    select_project,
)


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.json", home=tmp_path)
    assert config == default_config(tmp_path)
    assert config["claude_base_path"] == str(tmp_path / ".claude")
    assert config["local_output_styles_path"] == str(tmp_path / ".claude" / "output-styles")
    assert config["auto_sync"] is False


def test_partial_file_is_filled_from_base_path(tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps({"claude_base_path": "~/work/.claude", "archived_skills": ["old"]})
    )

    config = load_config(config_file, home=tmp_path)
    assert config["local_skills_path"] == str(tmp_path / "work" / ".claude" / "skills")
    assert config["archived_skills"] == ["old"]
    assert config["archived_commands"] == []
    assert config["theme"] == "dark"


def test_explicit_local_path_wins(tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"local_agents_path": "/elsewhere/agents"}))

    config = load_config(config_file, home=tmp_path)
    assert config["local_agents_path"] == "/elsewhere/agents"
    assert config["local_skills_path"] == str(tmp_path / ".claude" / "skills")


def test_malformed_file_falls_back_to_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json")
    assert load_config(config_file, home=tmp_path) == default_config(tmp_path)

    config_file.write_text("[1, 2]")
    assert load_config(config_file, home=tmp_path) == default_config(tmp_path)


def test_save_and_reload(tmp_path: Path) -> None:
    config_file = tmp_path / "nested" / "config.json"
    config = default_config(tmp_path)
    config["theme"] = "light"
    save_config(config, config_file)

    assert config_file.exists()
    assert load_config(config_file, home=tmp_path)["theme"] == "light"


def test_select_project_recomputes_paths(tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    updated = select_project("/srv/app/.claude", config_file, home=tmp_path)

    assert updated["claude_base_path"] == "/srv/app/.claude"
    assert updated["local_commands_path"] == "/srv/app/.claude/commands"
    assert json.loads(config_file.read_text())["local_skills_path"] == "/srv/app/.claude/skills"


def test_select_project_requires_path(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        select_project("", tmp_path / "config.json")


def test_expand_home(tmp_path: Path) -> None:
    assert expand_home("~/x", tmp_path) == f"{tmp_path}/x"
    assert expand_home("/abs/~x", tmp_path) == "/abs/~x"


def test_library_dir_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIBRARY_DIR", str(tmp_path))
    assert resolve_library_dir() == tmp_path.resolve()


def test_mistyped_values_keep_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps(
            {
                "claude_base_path": ["x"],
                "local_agents_path": 3,
                "archived_skills": "old",
                "auto_sync": "yes",
                "theme": "light",
            }
        )
    )

    config = load_config(config_file, home=tmp_path)
    defaults = default_config(tmp_path)
    assert config["claude_base_path"] == defaults["claude_base_path"]
    assert config["local_agents_path"] == defaults["local_agents_path"]
    assert config["archived_skills"] == []
    assert config["auto_sync"] is False
    assert config["theme"] == "light"


def test_save_rejects_mistyped_values(tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    with pytest.raises(ValueError, match="claude_base_path"):
        save_config({"claude_base_path": ["x"]}, config_file)
    with pytest.raises(ValueError, match="archived_commands"):
        save_config({"archived_commands": [1, 2]}, config_file)
    assert not config_file.exists()
