"""
Storage path resolution for GMS.

This module handles the strategy for locating the GMS database and snapshot:
1. Check the GMS_DB_PATH / GMS_SNAPSHOT_PATH environment variables
2. Walk up from cwd to find repo root (look for .git directory)
3. Use .gms/ relative to repo root
4. Fall back to user home directory if no repo found

Constraints and Failure Modes:
- Environment overrides must be absolute paths
- Repo root discovery stops at filesystem root
- The .gms directory is created automatically if missing
- Failure to create the directory raises PermissionError
"""

from pathlib import Path
from typing import Optional

from .config import load_settings

STATE_DIR_NAME = ".gms"
DB_FILE_NAME = "gms.db"
SNAPSHOT_FILE_NAME = "goals.snapshot.jsonl"


def find_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find the repository root by walking up from start_path looking for .git.

    Args:
        start_path: Directory to start searching from (defaults to cwd)

    Returns:
        Path to the repository root directory (parent of .git), or None if not found
    """
    current = (start_path or Path.cwd()).resolve()

    while True:
        git_dir = current / ".git"
        if git_dir.exists() and git_dir.is_dir():
            return current

        parent = current.parent
        if parent == current:
            return None

        current = parent


def _resolve(override: Optional[Path], file_name: str) -> Path:
    if override is not None:
        _ensure_dir_exists(override.parent)
        return override

    repo_root = find_repo_root()
    base_dir = (repo_root or Path.home()) / STATE_DIR_NAME
    _ensure_dir_exists(base_dir)
    return base_dir / file_name


def get_db_path() -> Path:
    """
    Get the database path using the following priority:

    1. GMS_DB_PATH environment variable (if set, must be absolute)
    2. .gms/gms.db in repository root (if in a git repo)
    3. ~/.gms/gms.db (fallback for non-repo usage)

    Raises:
        ValueError: If GMS_DB_PATH is set but not an absolute path
        PermissionError: If the parent directory cannot be created
    """
    return _resolve(load_settings().db_path, DB_FILE_NAME)


def get_snapshot_path() -> Path:
    """
    Get the JSONL snapshot path, with the same priority as get_db_path()
    but driven by GMS_SNAPSHOT_PATH.
    """
    return _resolve(load_settings().snapshot_path, SNAPSHOT_FILE_NAME)


def _ensure_dir_exists(dir_path: Path) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Raises:
        PermissionError: If directory cannot be created due to permissions
    """
    if not dir_path.exists():
        try:
            dir_path.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionError(f"Cannot create directory {dir_path}: {e}") from e
