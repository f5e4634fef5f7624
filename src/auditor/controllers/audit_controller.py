import json
import logging
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from auditor.artifacts import URL_ARTIFACT, ArtifactShapeError, load_artifacts
from auditor.audits.core import missing_artifacts
from auditor.audits.registry import AuditRegistry
from auditor.model import NOT_RUN

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Source", "Page", "Audit", "Status", "Label", "Code", "Script"]


def _page_url(artifacts: Dict[str, Any]) -> Optional[str]:
    url_artifact = artifacts.get(URL_ARTIFACT)
    if isinstance(url_artifact, dict):
        return url_artifact.get("finalUrl")
    return None


def _status(result: Dict[str, Any]) -> str:
    raw_value = result.get("rawValue")
    if raw_value is True:
        return "PASS"
    if raw_value is False:
        return "FAIL"
    if raw_value == NOT_RUN:
        return "NOT_RUN"
    return "UNKNOWN"


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def _worker_audit_bundle(source: str, audit_names: Tuple[str, ...]) -> Dict[str, Any]:
    """
    Worker function to audit a single artifact bundle, possibly in a separate process.
    Returns plain dicts so the outcome crosses process boundaries cheaply.
    """
    try:
        artifacts = load_artifacts(source)
    except Exception as e:
        logger.error(f"Could not load artifact bundle {source}: {e}")
        return {"source": source, "page": None, "error": str(e), "audits": []}

    outcome: Dict[str, Any] = {"source": source, "page": _page_url(artifacts), "error": None, "audits": []}

    for name in audit_names:
        audit = AuditRegistry.get(name)
        if audit is None:
            outcome["audits"].append({"audit": name, "error": f"Unknown audit '{name}'"})
            continue

        missing = missing_artifacts(audit.meta(), artifacts)
        if missing:
            logger.info(f"{source}: {name} is missing artifacts {missing}")

        try:
            result = audit.run(artifacts)
        except ArtifactShapeError as e:
            logger.error(f"{source}: {name} received malformed artifacts: {e}")
            outcome["audits"].append({"audit": name, "error": str(e)})
            continue
        except Exception as e:
            logger.error(f"{source}: {name} failed: {e}", exc_info=True)
            outcome["audits"].append({"audit": name, "error": f"{type(e).__name__}: {e}"})
            continue

        outcome["audits"].append({"audit": name, "result": result.to_dict()})

    return outcome


class AuditController:
    """
    Orchestrates an audit run over a batch of artifact bundles: parallel
    execution, aggregation of results and tabular export.
    """

    def __init__(self, audit_names: Optional[Sequence[str]] = None, workers: int = 1):
        known = AuditRegistry.get_names()
        selected = list(audit_names) if audit_names else known

        unknown = [name for name in selected if name not in known]
        if unknown:
            raise ValueError(f"Unknown audit(s): {', '.join(unknown)}. Available: {', '.join(known)}")

        self.audit_names: Tuple[str, ...] = tuple(selected)
        self.workers = max(1, int(workers))

        # Results Buffers
        self.results: List[Dict[str, Any]] = []
        self.export_rows: List[Dict[str, Any]] = []

    def run_audit(
            self,
            sources: Iterable[Path],
            progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> Dict[str, Any]:
        """Runs every selected audit on each bundle and returns a summary. Results keep input order."""
        tasks = [str(source) for source in sources]
        total = len(tasks)

        # Reset Buffers
        self.results = []
        self.export_rows = []

        func = partial(_worker_audit_bundle, audit_names=self.audit_names)

        if self.workers > 1 and total > 1:
            with ProcessPoolExecutor(max_workers=self.workers) as executor:
                self._collect(executor.map(func, tasks), total, progress_callback)
        else:
            self._collect(map(func, tasks), total, progress_callback)

        summary = self._summarize(total)
        logger.info(
            f"Audit run finished: {summary['total_bundles']} bundle(s), {summary['passed']} passed, "
            f"{summary['failed']} failed, {summary['not_run']} not run, {summary['errors']} error(s)"
        )
        return summary

    def _collect(self, outcomes: Iterable[Dict[str, Any]], total: int, progress_callback) -> None:
        for i, outcome in enumerate(outcomes):
            if progress_callback:
                progress_callback(i + 1, total)
            self.results.append(outcome)
            self.export_rows.extend(self._rows_for(outcome))

    def _summarize(self, total: int) -> Dict[str, Any]:
        summary = {
            "total_bundles": total,
            "passed": 0,
            "failed": 0,
            "not_run": 0,
            "errors": 0,
            "total_violations": 0,
        }
        for outcome in self.results:
            if outcome["error"]:
                summary["errors"] += 1
                continue
            for entry in outcome["audits"]:
                if "error" in entry:
                    summary["errors"] += 1
                    continue
                status = _status(entry["result"])
                if status == "PASS":
                    summary["passed"] += 1
                elif status == "FAIL":
                    summary["failed"] += 1
                    summary["total_violations"] += len(self.get_violations(entry["result"]))
                else:
                    summary["not_run"] += 1
        return summary

    @staticmethod
    def get_violations(result: Dict[str, Any]) -> List[Dict[str, Any]]:
        extended_info = result.get("extendedInfo")
        if not isinstance(extended_info, dict) or not isinstance(extended_info.get("value"), list):
            return []
        return extended_info["value"]

    def _rows_for(self, outcome: Dict[str, Any]) -> List[Dict[str, Any]]:
        base = {"Source": outcome["source"], "Page": outcome["page"]}

        if outcome["error"]:
            return [{**base, "Audit": None, "Status": "ERROR", "Label": outcome["error"], "Code": None, "Script": None}]

        rows = []
        for entry in outcome["audits"]:
            if "error" in entry:
                rows.append({**base, "Audit": entry["audit"], "Status": "ERROR",
                             "Label": entry["error"], "Code": None, "Script": None})
                continue

            result = entry["result"]
            status = _status(result)
            violations = self.get_violations(result)
            if status == "FAIL" and violations:
                for v in violations:
                    rows.append({**base, "Audit": entry["audit"], "Status": status,
                                 "Label": v.get("label"), "Code": v.get("code"), "Script": v.get("url")})
            else:
                rows.append({**base, "Audit": entry["audit"], "Status": status,
                             "Label": _as_text(result.get("debugString")), "Code": None, "Script": None})
        return rows

    # --- Result Getters ---
    def get_results(self) -> List[Dict[str, Any]]:
        return self.results

    def get_results_for_export(self) -> List[Dict[str, Any]]:
        return self.export_rows

    def export(self, path: Path) -> Path:
        """Writes the flat result rows to .xlsx, .csv or .json, chosen by file suffix."""
        path = Path(path)
        df = pd.DataFrame(self.export_rows, columns=EXPORT_COLUMNS)
        suffix = path.suffix.lower()

        if suffix not in (".xlsx", ".csv", ".json"):
            raise ValueError(f"Unsupported export format '{suffix}'. Use .xlsx, .csv or .json")

        path.parent.mkdir(parents=True, exist_ok=True)
        if suffix == ".xlsx":
            df.to_excel(path, index=False)
        elif suffix == ".csv":
            df.to_csv(path, index=False)
        else:
            df.to_json(path, orient="records", indent=2)

        logger.info(f"Exported {len(df)} row(s) to {path}")
        return path
