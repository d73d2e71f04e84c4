"""
Locating the Tailwind CSS language server and checking its version.
"""

from __future__ import annotations

import os
import re
import shutil
import warnings
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from tailwind_sorter.exceptions import VersionTooOldWarning, WorkerNotFoundError
from tailwind_sorter.logger import setup_logger

logger = setup_logger(__name__)

SERVER_EXECUTABLE = "tailwindcss-language-server"
INSTALL_HINT = "npm install -g @tailwindcss/language-server"

_VERSION_RE = re.compile(r"(\d+(?:\.\d+)*)")


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _node_modules_candidates(start_dir: Path) -> List[Path]:
    candidates = []
    for directory in (start_dir, *start_dir.parents):
        candidates.append(directory / "node_modules" / ".bin" / SERVER_EXECUTABLE)
    return candidates


def find_server_command(
    configured: Optional[Sequence[str]] = None, start_dir: Optional[str] = None
) -> List[str]:
    """
    Return the command that launches the language server (without --stdio).

    An explicitly configured command wins. Otherwise a local
    node_modules/.bin install is preferred over one on PATH.
    """
    if configured:
        return list(configured)

    base = Path(start_dir or os.getcwd()).resolve()
    for candidate in _node_modules_candidates(base):
        if _is_executable(candidate):
            logger.debug(f"Using local language server at {candidate}")
            return [str(candidate)]

    on_path = shutil.which(SERVER_EXECUTABLE)
    if on_path:
        logger.debug(f"Using language server from PATH at {on_path}")
        return [on_path]

    raise WorkerNotFoundError(
        f"Tailwind CSS language server not found. Please install it with: {INSTALL_HINT}"
    )


def parse_version(raw: Any) -> Optional[Tuple[int, ...]]:
    if not isinstance(raw, str):
        return None
    match = _VERSION_RE.search(raw)
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def _pad(version: Tuple[int, ...], size: int) -> Tuple[int, ...]:
    return version + (0,) * (size - len(version))


def check_server_version(initialize_result: Any, minimum: str) -> Optional[str]:
    """
    Warn when the server reports a version older than ``minimum``.

    Returns the reported version string, or None if the server sent none.
    An old server is never fatal.
    """
    server_info = (
        initialize_result.get("serverInfo")
        if isinstance(initialize_result, dict)
        else None
    )
    raw_version = server_info.get("version") if isinstance(server_info, dict) else None
    version = parse_version(raw_version)
    required = parse_version(minimum)
    if version is None or required is None:
        return raw_version if isinstance(raw_version, str) else None

    size = max(len(version), len(required))
    if _pad(version, size) < _pad(required, size):
        message = (
            f"Tailwind CSS language server {raw_version} is older than the "
            f"supported minimum {minimum}; sorting may not work"
        )
        logger.warning(message)
        warnings.warn(message, VersionTooOldWarning, stacklevel=2)
    return raw_version
