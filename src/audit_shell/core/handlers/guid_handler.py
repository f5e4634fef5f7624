# src/audit_shell/core/handlers/guid_handler.py
import argparse
from typing import List, Optional

from audit_shell.core.context.shell_context import ShellContext
from auditor.utils.guid import GUID

guid_help_text = """
  guid [--uuid] [--count N]  Allocate identifiers for tagging trace events:
                      sequential integers by default, random UUID4 strings with --uuid.
""".strip("\n")


def handle_guid(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    """Prints freshly allocated identifiers, one per line."""
    parser = argparse.ArgumentParser(prog="guid")
    parser.add_argument("--uuid", action="store_true", help="Random version 4 UUIDs instead of integers.")
    parser.add_argument("--count", type=int, default=1, help="How many identifiers to allocate.")

    try:
        parsed_args = parser.parse_args(args)
    except SystemExit:
        return 1

    if parsed_args.count < 1:
        print("❌ --count must be at least 1.")
        return 1

    for _ in range(parsed_args.count):
        print(GUID.allocate_uuid4() if parsed_args.uuid else GUID.allocate_simple())

    if not parsed_args.uuid:
        ctx.set("guid.last", str(GUID.get_last_simple_guid()))
    return 0
