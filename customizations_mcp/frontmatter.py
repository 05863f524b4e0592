"""
customizations_mcp.frontmatter

Front-matter parsing for customization markdown files (SKILL.md, commands,
agents, output styles).

The header format is deliberately small: a leading '---' line, single-line
'key: value' entries, and a closing '---' line. Values are kept as plain
strings; there is no YAML, quoting or multi-line support.
"""

from __future__ import annotations

from typing import Any

DELIMITER = "---"
DEFAULT_NAME = "Unknown"
DEFAULT_DESCRIPTION = "No description available"


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == DELIMITER


def parse_frontmatter(text: str) -> tuple[dict[str, str], str]:
    """
    function_purpose: Split a markdown document into its header mapping and body.

    Returns a (metadata, body) tuple. Never raises: a document without a complete
    header block yields ({}, text) with text returned unchanged.
    """
    lines = text.split("\n")
    if not lines or not _is_delimiter(lines[0]):
        return {}, text

    end = None
    for idx in range(1, len(lines)):
        if _is_delimiter(lines[idx]):
            end = idx
            break
    if end is None:
        return {}, text

    metadata: dict[str, str] = {}
    for line in lines[1:end]:
        colon = line.find(":")
        if colon > 0:
            metadata[line[:colon].strip()] = line[colon + 1 :].strip()

    body = "\n".join(lines[end + 1 :]).strip()
    return metadata, body


def _base_metadata(metadata: dict[str, str]) -> dict[str, Any]:
    return {
        "name": metadata.get("name") or DEFAULT_NAME,
        "description": metadata.get("description") or DEFAULT_DESCRIPTION,
    }


def split_list(value: str | None) -> list[str] | None:
    """Split a comma-separated header value; None when the value is absent or empty."""
    if not value:
        return None
    return [item.strip() for item in value.split(",")]


def skill_metadata(text: str) -> dict[str, Any]:
    metadata, _ = parse_frontmatter(text)
    return _base_metadata(metadata)


def command_metadata(text: str) -> dict[str, Any]:
    """
    function_purpose: Project command header fields.

    'allowed-tools' is kept as the raw string the command declares.
    """
    metadata, _ = parse_frontmatter(text)
    result = _base_metadata(metadata)
    result["allowed_tools"] = metadata.get("allowed-tools")
    result["argument_hint"] = metadata.get("argument-hint")
    result["model"] = metadata.get("model")
    return result


def agent_metadata(text: str) -> dict[str, Any]:
    metadata, _ = parse_frontmatter(text)
    result = _base_metadata(metadata)
    result["tools"] = split_list(metadata.get("tools"))
    result["model"] = metadata.get("model")
    return result


def output_style_metadata(text: str) -> dict[str, Any]:
    metadata, _ = parse_frontmatter(text)
    return _base_metadata(metadata)


METADATA_PARSERS = {
    "skill": skill_metadata,
    "command": command_metadata,
    "agent": agent_metadata,
    "output-style": output_style_metadata,
}
