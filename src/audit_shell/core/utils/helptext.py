# src/audit_shell/core/utils/helptext.py
from audit_shell.core.command_registry import COMMAND_HELP_TEXTS

HEADER_HELP_TEXT = """
listener-audit - Help

Runs page audits against captured artifact bundles (one JSON file per page).

Usage: listener-audit <command> [args]

---
COMMANDS
---
""".strip("\n")


def get_help_text() -> str:
    """Builds the help text from the static header and every discovered command."""
    sections = [HEADER_HELP_TEXT]
    for name in sorted(COMMAND_HELP_TEXTS):
        sections.append(COMMAND_HELP_TEXTS[name])
    return "\n\n".join(sections)
