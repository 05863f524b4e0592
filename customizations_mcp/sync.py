"""
customizations_mcp.sync

Optional background git sync of the bundled customization library.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import Any


def _is_git_repo(path: Path) -> bool:
    return (path / ".git").is_dir()


def _git_run(args: list[str], cwd: Path, logger: logging.Logger) -> bool:
    """
    function_purpose: Run a git command and log its outcome.

    Returns True when git exited with status 0. Never raises.
    """
    try:
        res = subprocess.run(
            ["git"] + args,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.error("Git command failed: git %s (%s)", " ".join(args), exc)
        return False
    logger.info("git %s\n%s", " ".join(args), res.stdout.strip())
    return res.returncode == 0


def sync_library(library_dir: Path, git_url: str, logger: logging.Logger) -> bool:
    """
    function_purpose: Clone or update the library checkout.

    - library_dir is a git repo: fetch + pull --ff-only.
    - otherwise, with a git_url: shallow clone into library_dir.
    - otherwise: skip.
    """
    if _is_git_repo(library_dir):
        logger.info("Library directory is a git repo; pulling latest.")
        if not _git_run(["fetch", "origin"], cwd=library_dir, logger=logger):
            return False
        return _git_run(["pull", "--ff-only"], cwd=library_dir, logger=logger)

    if not git_url:
        logger.info("No git_repo_url configured; using local library directory.")
        return False

    if library_dir.exists() and any(library_dir.iterdir()):
        logger.warning(
            "Library directory %s exists, is not empty and is not a git repo; skipping clone.",
            library_dir,
        )
        return False

    library_dir.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Cloning library '%s' into '%s'.", git_url, library_dir)
    return _git_run(
        ["clone", "--depth=1", git_url, library_dir.name],
        cwd=library_dir.parent,
        logger=logger,
    )


def start_background_sync(
    library_dir: Path, config: dict[str, Any], logger: logging.Logger
) -> threading.Thread | None:
    """
    function_purpose: Launch a daemon thread syncing the library when auto_sync is enabled.

    Keeps server startup fast while syncing in the background.
    """
    if not config.get("auto_sync"):
        logger.info("Auto sync disabled; not syncing library.")
        return None

    t = threading.Thread(
        target=sync_library,
        name="LibrarySyncThread",
        args=(library_dir, config.get("git_repo_url") or "", logger),
        daemon=True,
    )
    t.start()
    logger.info("Background library sync started.")
    return t
