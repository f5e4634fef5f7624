# src/audit_shell/core/handlers/audit_handler.py
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm.auto import tqdm

from audit_shell.core.context.shell_context import ShellContext
from audit_shell.core.utils.path_utils import PathUtils
from auditor.audits.registry import AuditRegistry
from auditor.controllers.audit_controller import AuditController
from auditor.managers.report_manager import ReportManager

logger = logging.getLogger(__name__)

audit_help_text = """
  audit run <bundle.json|dir>... [--audit ID] [--workers N] [--export PATH] [--save] [--json]
                      Run audits on artifact bundles. Directories are expanded to
                      their *.json files. --export writes .xlsx, .csv or .json.
                      Exit code 2 when a page fails an audit, 1 on errors.
  audit list          List the registered audits.
  audit meta <ID>     Show the metadata of one audit as JSON.
""".strip("\n")


def handle_audit(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    """Handler for audit commands."""
    parser = argparse.ArgumentParser(prog="audit")
    subparsers = parser.add_subparsers(dest="subcommand", help="Audit subcommands")

    run_parser = subparsers.add_parser("run", help="Run audits on artifact bundles")
    run_parser.add_argument("sources", nargs="+", help="Artifact bundle files or directories.")
    run_parser.add_argument("--audit", action="append", default=None, help="Audit id to run (repeatable).")
    run_parser.add_argument("--workers", type=int, default=None, help="Worker processes.")
    run_parser.add_argument("--export", type=str, default=None, help="Save flat results to .xlsx/.csv/.json.")
    run_parser.add_argument("--save", action="store_true", help="Store the run as a JSON report.")
    run_parser.add_argument("--json", action="store_true", help="Print raw results as JSON.")

    subparsers.add_parser("list", help="List registered audits")

    meta_parser = subparsers.add_parser("meta", help="Show audit metadata")
    meta_parser.add_argument("name", help="Audit id")

    if not args:
        parser.print_help()
        return 0

    try:
        parsed_args = parser.parse_args(args)
    except SystemExit:
        return 1

    if parsed_args.subcommand == "run":
        return _handle_run(parsed_args, ctx)
    if parsed_args.subcommand == "list":
        return _handle_list()
    if parsed_args.subcommand == "meta":
        return _handle_meta(parsed_args.name)

    parser.print_help()
    return 1


def _expand_sources(sources: List[str]) -> List[Path]:
    paths: List[Path] = []
    for source in sources:
        path = Path(source)
        if path.is_dir():
            paths.extend(sorted(path.glob("*.json")))
        else:
            paths.append(path)
    return paths


def _handle_list() -> int:
    audits = AuditRegistry.get_all()
    if not audits:
        print("No audits registered.")
        return 1

    print("\n📋 Registered audits:")
    print("-" * 60)
    for audit in audits:
        meta = audit.meta()
        print(f"  {meta.name:<36} [{meta.category}]")
        print(f"      {meta.description}")
        print(f"      requires: {', '.join(meta.required_artifacts)}")
    print("-" * 60)
    return 0


def _handle_meta(name: str) -> int:
    audit = AuditRegistry.get(name)
    if audit is None:
        print(f"❌ Unknown audit '{name}'. Available: {', '.join(AuditRegistry.get_names())}")
        return 1
    print(json.dumps(audit.meta().to_dict(), indent=2))
    return 0


def _print_outcome(outcome: Dict[str, Any]) -> None:
    label = outcome["page"] or outcome["source"]
    if outcome["error"]:
        print(f"⚠️  {label}: {outcome['error']}")
        return

    for entry in outcome["audits"]:
        if "error" in entry:
            print(f"⚠️  {label} [{entry['audit']}]: {entry['error']}")
            continue

        result = entry["result"]
        raw_value = result.get("rawValue")
        if raw_value is True:
            print(f"✅ {label} [{entry['audit']}]")
        elif raw_value is False:
            violations = AuditController.get_violations(result)
            print(f"❌ {label} [{entry['audit']}]: {len(violations)} violation(s)")
            for v in violations:
                print(f"     {v.get('label')}  {v.get('code')}")
        else:
            print(f"⏭️  {label} [{entry['audit']}]: {result.get('debugString') or 'did not run'}")


def _handle_run(parsed_args: argparse.Namespace, ctx: ShellContext) -> int:
    sources = _expand_sources(parsed_args.sources)
    if not sources:
        print("❌ No artifact bundles found.")
        return 1

    audit_names = parsed_args.audit or ctx.config.get_nested("audit.enabled") or None
    workers = parsed_args.workers or ctx.config.get_nested("audit.workers", 1)

    try:
        controller = AuditController(audit_names=audit_names, workers=workers)
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    with tqdm(total=len(sources), desc="Auditing", unit="page", disable=None) as bar:
        def progress(done: int, _total: int) -> None:
            bar.update(done - bar.n)

        summary = controller.run_audit(sources, progress_callback=progress)

    ctx.last_summary = summary

    if parsed_args.json:
        print(json.dumps({"summary": summary, "results": controller.get_results()}, indent=2))
    else:
        for outcome in controller.get_results():
            _print_outcome(outcome)
        print(
            f"\n📊 {summary['total_bundles']} bundle(s): {summary['passed']} passed, {summary['failed']} failed, "
            f"{summary['not_run']} not run, {summary['errors']} error(s), "
            f"{summary['total_violations']} violation(s)"
        )

    if parsed_args.export:
        try:
            path = controller.export(Path(parsed_args.export))
            print(f"💾 Results exported to {path}")
        except (ValueError, OSError) as e:
            print(f"❌ Export failed: {e}")
            return 1

    if parsed_args.save or ctx.config.get_nested("reports.save", False):
        reports_dir = PathUtils.get_reports_dir(ctx.config.get_nested("reports.dir"))
        report_path = ReportManager(reports_dir).save_report(
            "scan_result", {"summary": summary, "results": controller.get_results()}
        )
        if report_path is None:
            print("❌ Could not save the run report.")
            return 1
        print(f"💾 Report saved to {report_path}")

    if summary["errors"]:
        return 1
    if summary["failed"]:
        return 2
    return 0
