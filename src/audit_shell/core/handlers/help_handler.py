# src/audit_shell/core/handlers/help_handler.py
from audit_shell.core.context.shell_context import ShellContext
from audit_shell.core.utils.helptext import get_help_text

help_help_text = """
  help                Show this help text.
""".strip("\n")


def handle_help(_args, _ctx: ShellContext, _stdin=None) -> int:
    print(get_help_text())
    return 0
