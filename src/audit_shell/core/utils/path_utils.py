# src/audit_shell/core/utils/path_utils.py
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_shell_package_root() -> Path:
        """Returns the directory of the audit_shell package (holds settings.json)."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_handlers_dir() -> Path:
        return PathUtils.get_shell_package_root() / "core" / "handlers"

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_shell_package_root() / "settings.json"

    # --- User specific paths ---

    @staticmethod
    def get_user_config_dir() -> Path:
        """
        Returns the path to the user's config directory.
        (e.g., ~/.listener_audit/)
        """
        return Path.home() / ".listener_audit"

    @staticmethod
    def get_reports_dir(configured: Optional[str] = None) -> Path:
        """
        Resolves the report directory. Relative paths are taken from the
        user config directory, absolute paths are used as-is.
        """
        if not configured:
            return PathUtils.get_user_config_dir() / "reports"
        path = Path(configured).expanduser()
        if path.is_absolute():
            return path
        return PathUtils.get_user_config_dir() / path
