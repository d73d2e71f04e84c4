"""
Discovery of the Tailwind project the client should present to the server.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from tailwind_sorter.logger import setup_logger

logger = setup_logger(__name__)

CONFIG_FILE_PATTERNS: Sequence[str] = (
    # Project root
    "tailwind.config.js",
    "tailwind.config.cjs",
    "tailwind.config.mjs",
    "tailwind.config.ts",
    # config/ directory (Rails and friends)
    "config/tailwind.config.js",
    "config/tailwind.config.cjs",
    "config/tailwind.config.mjs",
    "config/tailwind.config.ts",
)

STYLESHEET_PATTERNS: Sequence[str] = (
    "styles.css",
    "app/assets/stylesheets/application.tailwind.css",  # Rails default
    "src/styles.css",
    "assets/css/styles.css",
)


@dataclass(frozen=True)
class ProjectContext:
    """Where the project lives and which files configure Tailwind for it."""

    root_path: Optional[Path] = None
    config_path: Optional[Path] = None
    stylesheet_path: Optional[Path] = None

    @property
    def found(self) -> bool:
        return self.config_path is not None


class ProjectLocator:
    """Finds the nearest Tailwind config by walking up from a directory."""

    def __init__(
        self,
        config_patterns: Sequence[str] = CONFIG_FILE_PATTERNS,
        stylesheet_patterns: Sequence[str] = STYLESHEET_PATTERNS,
    ) -> None:
        self.config_patterns = tuple(config_patterns)
        self.stylesheet_patterns = tuple(stylesheet_patterns)

    @staticmethod
    def _first_existing(root: Path, patterns: Sequence[str]) -> Optional[Path]:
        for pattern in patterns:
            candidate = root / pattern
            if candidate.is_file():
                return candidate
        return None

    def locate(self, start_dir: Union[str, os.PathLike, None] = None) -> ProjectContext:
        current = Path(start_dir or os.getcwd()).resolve()

        # The filesystem root itself is never considered a project root.
        while current.parent != current:
            config_path = self._first_existing(current, self.config_patterns)
            if config_path is not None:
                logger.debug(
                    f"Found config at {config_path}, using project root: {current}"
                )
                stylesheet_path = self._first_existing(
                    current, self.stylesheet_patterns
                )
                if stylesheet_path is None:
                    logger.debug(f"No CSS file found in {current}")
                return ProjectContext(
                    root_path=current,
                    config_path=config_path,
                    stylesheet_path=stylesheet_path,
                )
            current = current.parent

        logger.debug("No project root found, will use a staged default config")
        return ProjectContext()
