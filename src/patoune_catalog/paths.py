import os
from typing import Optional

from .logging import get_logger

log = get_logger("catalog-paths")

ROOT_MARKERS = ("pyproject.toml", "README.md", ".env")


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def find_project_root(start_dir: Optional[str] = None) -> str:
    """Find the project root by walking upward from start_dir.

    A directory counts as the root when it holds `.git/` or one of
    ROOT_MARKERS. Falls back to absolute(start_dir) if nothing matches.
    """
    start = os.path.abspath(start_dir or os.getcwd() or ".")
    d = start
    while True:
        if os.path.isdir(os.path.join(d, ".git")):
            return d
        if any(os.path.isfile(os.path.join(d, marker)) for marker in ROOT_MARKERS):
            return d
        parent = os.path.dirname(d)
        if parent == d:
            log.debug(f"No project marker above {start}; using it as root")
            return start
        d = parent


def var_dir(root_dir: str) -> str:
    """Return the absolute var directory under the project root."""
    return os.path.join(os.path.abspath(root_dir), "var")
