"""
Package entry point for launching the customizations_mcp server module.

This allows running:
  - python -m customizations_mcp            -> invokes customizations_mcp.server CLI
  - python -m customizations_mcp.server     -> also available directly via the server module
"""

from customizations_mcp.server import cli_main


def main() -> None:
    cli_main()


if __name__ == "__main__":
    main()
