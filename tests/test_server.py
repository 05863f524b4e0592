from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from customizations_mcp.server import (
    SERVER_NAME,
    _markdown_detail,
    _markdown_listing,
    _markdown_projects,
    cli_main,
    configure_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> Any:
    yield
    logger = logging.getLogger(SERVER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def library_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "library"
    skill = root / "skills" / "code-review"
    skill.mkdir(parents=True)
    (skill / "SKILL.md").write_text(
        "---\nname: code-review\ndescription: Review code\n---\nBody\n", encoding="utf-8"
    )
    monkeypatch.setenv("LIBRARY_DIR", str(root))
    return root


def _run_cli(capsys: pytest.CaptureFixture[str], *argv: str) -> Any:
    cli_main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_configure_logging_is_idempotent(isolated_env: Path) -> None:
    logger = configure_logging()
    count = len(logger.handlers)
    assert configure_logging() is logger
    assert len(logger.handlers) == count == 2
    assert (isolated_env / "server.log").exists()


def test_cli_list_library(library_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    records = _run_cli(capsys, "--list", "skill")
    assert [r["name"] for r in records] == ["code-review"]
    assert records[0]["description"] == "Review code"


def test_cli_detail(library_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    record = _run_cli(capsys, "--detail", "skill", "code-review")
    assert record["content"].startswith("---")


def test_cli_projects(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    (tmp_path / "scan" / "app" / ".claude" / "commands").mkdir(parents=True)
    (tmp_path / "scan" / "app" / ".claude" / "commands" / "a.md").write_text("x")

    projects = _run_cli(capsys, "--projects", str(tmp_path / "scan"))
    claude_paths = [p["claude_path"] for p in projects]
    target = str(tmp_path / "scan" / "app" / ".claude")
    assert target in claude_paths
    project = projects[claude_paths.index(target)]
    assert project["customization_counts"]["commands"] == 1


def test_cli_rejects_unknown_kind(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        cli_main(["--list", "plugin"])


def test_markdown_listing() -> None:
    assert "No customizations found" in _markdown_listing("Library: skill", [])
    text = _markdown_listing(
        "Library: skill",
        [
            {
                "name": "code-review",
                "description": "Review code",
                "path": "/lib/skills/code-review",
                "source": "org",
                "is_archived": True,
            }
        ],
    )
    assert "## code-review" in text
    assert "**Archived:** yes" in text


def test_markdown_projects_table() -> None:
    text = _markdown_projects(
        [
            {
                "name": "app",
                "path": "/w/app",
                "last_modified": "2026-01-01T00:00:00Z",
                "has_settings": True,
                "customization_counts": {
                    "skills": 1,
                    "commands": 2,
                    "agents": 0,
                    "output_styles": 3,
                },
            }
        ]
    )
    assert "Found 1 project(s)" in text
    assert "| app | `/w/app` | 2026-01-01T00:00:00Z | yes | 1 | 2 | 0 | 3 |" in text


def test_markdown_detail_includes_agent_fields() -> None:
    text = _markdown_detail(
        {
            "type": "agent",
            "name": "runner",
            "description": "Runs tests",
            "source": "base",
            "path": "/lib/agents/runner.md",
            "tools": ["Bash", "Read"],
            "model": "haiku",
            "content": "---\nname: runner\n---\nprompt",
        }
    )
    assert "**Tools:** Bash, Read" in text
    assert text.endswith("prompt")
