# src/audit_shell/core/context/shell_context.py
import logging
from typing import Any, Dict, Optional

from audit_shell.core.managers.config_manager import config_manager

logger = logging.getLogger(__name__)


class ShellContext:
    """
    Holds session variables and the state shared between command handlers:
    the configuration and the summary of the last audit run.
    """

    def __init__(self):
        self._vars: Dict[str, str] = {}
        self.config = config_manager
        self.last_summary: Optional[Dict[str, Any]] = None

    def set(self, key: str, value: str) -> None:
        """Sets a context variable."""
        self._vars[key] = value

    def get(self, key: str) -> Optional[str]:
        """Retrieves a context variable. Returns None if key does not exist."""
        return self._vars.get(key)

    def __repr__(self) -> str:
        runs = "yes" if self.last_summary else "no"
        return f"<ShellContext last_run={runs} vars_count={len(self._vars)}>"
