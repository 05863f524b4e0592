"""
customizations_mcp: FastMCP server package for browsing and managing Claude Code customizations.

This package discovers `.claude` configuration directories, parses the front-matter of
skills, commands, agents and output styles, and serves them to MCP-aware clients.
"""

__version__: str = "0.1.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
