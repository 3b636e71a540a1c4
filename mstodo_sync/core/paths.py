"""
Centralized path management for mstodo-sync.

Resolves the per-user working directory and the well-known files kept
inside it (configuration, delta cache, access token).
"""

import os
import sys
from pathlib import Path
from typing import Optional
import logging


class PathManager:
    """Manages mstodo-sync file paths."""

    # Directory names
    APP_DIR_NAME = "mstodo-sync"
    HOME_ENV_VAR = "MSTODO_SYNC_HOME"

    # File names
    CONFIG_FILE = "config.json"
    DELTA_CACHE_FILE = "tasks_delta.json"
    TOKEN_FILE = "token.json"

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize path manager."""
        self.logger = logger or logging.getLogger(__name__)
        self._working_dir: Optional[Path] = None

    def _default_user_dir(self) -> Path:
        """Platform-appropriate per-user data directory."""
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / self.APP_DIR_NAME
        if sys.platform.startswith("win"):
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / self.APP_DIR_NAME
            return Path.home() / "AppData" / "Roaming" / self.APP_DIR_NAME
        return Path.home() / ".config" / self.APP_DIR_NAME

    @property
    def working_dir(self) -> Path:
        """
        Get the working directory for mstodo-sync data.

        Priority order:
        1. MSTODO_SYNC_HOME environment variable (explicit override)
        2. Platform user data directory
        """
        if self._working_dir is not None:
            return self._working_dir

        env_override = os.environ.get(self.HOME_ENV_VAR)
        if env_override:
            env_path = Path(env_override).expanduser().resolve()
            self.logger.debug(f"Using {self.HOME_ENV_VAR} override: {env_path}")
            self._working_dir = env_path
        else:
            self._working_dir = self._default_user_dir()

        return self._working_dir

    def ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in (self.working_dir, self.data_dir):
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Ensured directory exists: {directory}")

    @property
    def data_dir(self) -> Path:
        """Directory holding the delta cache."""
        return self.working_dir / "data"

    @property
    def config_path(self) -> Path:
        return self.working_dir / self.CONFIG_FILE

    @property
    def delta_cache_path(self) -> Path:
        return self.data_dir / self.DELTA_CACHE_FILE

    @property
    def token_path(self) -> Path:
        return self.working_dir / self.TOKEN_FILE


def get_path_manager() -> PathManager:
    """Return a path manager bound to the current environment."""
    return PathManager()
