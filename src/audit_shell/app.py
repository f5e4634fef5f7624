# src/audit_shell/app.py
from __future__ import annotations

import logging
import sys

from audit_shell.core.command_registry import CommandRegistry, register_all_commands
from audit_shell.core.context.shell_context import ShellContext
from audit_shell.core.managers.config_manager import config_manager
from audit_shell.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def _configure_logging_from_config() -> None:
    configure_logger(
        config_manager.get_nested("debug.level", "WARNING"),
        module_specific_levels=config_manager.get_nested("debug.modules"),
        silenced_loggers=config_manager.get_nested("debug.silenced"),
    )


def run_command(argv: list[str], ctx: ShellContext | None = None) -> int:
    """Dispatches one command line to its registered handler and returns the exit code."""
    register_all_commands()
    ctx = ctx or ShellContext()

    if not argv:
        argv = ["help"]

    name, args = argv[0], list(argv[1:])
    handler = CommandRegistry.get(name)
    if handler is None:
        print(f"Unknown command: '{name}'. Type 'help' for a list of commands.")
        return 1

    logger.debug("Executing command '%s' with args %s", name, args)
    try:
        return handler(args, ctx)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except Exception as e:
        logger.error("Command '%s' failed: %s", name, e, exc_info=True)
        print(f"❌ Command '{name}' failed: {e}")
        return 1


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the listener-audit command line."""
    _configure_logging_from_config()
    return run_command(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
