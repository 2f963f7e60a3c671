"""Workspace acquisition: clone a repository and list its source files."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

LANGUAGE_EXTENSIONS = {
    "javascript": ".js",
    "typescript": ".ts",
    "python": ".py",
}
EXCLUDED_DIRS = frozenset({".git", "node_modules"})


def prepare_workspace(path: Path) -> Path:
    """Remove any previous workspace at ``path`` and create it empty."""
    path = Path(path)
    if path.exists():
        logger.info("Cleaning old workspace at %s", path)
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def clone_repo(repo_url: str, path: Path) -> bool:
    """Clone ``repo_url`` into ``path``. Returns False if git fails."""
    logger.info("Cloning %s", repo_url)
    try:
        subprocess.run(
            ["git", "clone", repo_url, str(path)],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        logger.error("Error cloning %s: %s", repo_url, e.stderr.strip())
        return False
    except OSError as e:
        logger.error("Error cloning %s: %s", repo_url, e)
        return False
    logger.info("Cloned %s", repo_url)
    return True


def list_candidate_files(root: Path, extension: str = ".js") -> list[str]:
    """Recursively list files ending in ``extension`` under ``root``.

    Returns sorted POSIX-style paths relative to ``root``. Version control
    and dependency directories are not descended into.
    """
    root = Path(root)
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in EXCLUDED_DIRS]
        for filename in filenames:
            if filename.endswith(extension):
                rel = Path(dirpath, filename).relative_to(root)
                found.append(rel.as_posix())
    return sorted(found)
