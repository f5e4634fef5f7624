# tests/engine/test_audit_controller.py
import json

import pandas as pd
import pytest

from auditor.audits.rules.passive_event_listeners import AUDIT
from auditor.controllers.audit_controller import EXPORT_COLUMNS, AuditController, _worker_audit_bundle

VIOLATING = {
    "type": "touchstart",
    "url": "http://example.com/a.js",
    "passive": False,
    "handler": {"description": "function(e){}"},
    "line": 10,
    "col": 5,
    "objectId": "window",
}


def write_bundle(directory, name, listeners, final_url="http://example.com/"):
    path = directory / name
    bundle = {"URL": {"finalUrl": final_url}}
    if listeners is not None:
        bundle["PageLevelEventListeners"] = listeners
    path.write_text(json.dumps(bundle), encoding="utf-8")
    return path


@pytest.fixture
def bundles(tmp_path):
    """One failing, one passing, one not-run and one unreadable bundle."""
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    return [
        write_bundle(tmp_path, "fail.json", [VIOLATING, dict(VIOLATING, type="wheel", line=20)]),
        write_bundle(tmp_path, "pass.json", [dict(VIOLATING, passive=True)]),
        write_bundle(tmp_path, "not_run.json", None),
        broken,
    ]


def test_run_audit_summary(bundles):
    controller = AuditController()
    summary = controller.run_audit(bundles)

    assert summary == {
        "total_bundles": 4,
        "passed": 1,
        "failed": 1,
        "not_run": 1,
        "errors": 1,
        "total_violations": 2,
    }


def test_results_keep_input_order(bundles):
    controller = AuditController()
    controller.run_audit(bundles)

    sources = [outcome["source"] for outcome in controller.get_results()]
    assert sources == [str(p) for p in bundles]

    first = controller.get_results()[0]
    assert first["page"] == "http://example.com/"
    assert first["audits"][0]["audit"] == "uses-passive-event-listeners"
    assert first["audits"][0]["result"]["rawValue"] is False


def test_progress_callback_is_called_per_bundle(bundles):
    calls = []
    AuditController().run_audit(bundles, progress_callback=lambda done, total: calls.append((done, total)))

    assert calls == [(1, 4), (2, 4), (3, 4), (4, 4)]


def test_export_rows(bundles):
    controller = AuditController()
    controller.run_audit(bundles)
    rows = controller.get_results_for_export()

    assert [row["Status"] for row in rows] == ["FAIL", "FAIL", "PASS", "NOT_RUN", "ERROR"]
    assert rows[0]["Code"] == "window.addEventListener('touchstart', function(e){})"
    assert rows[1]["Label"] == "line: 20, col: 5"
    assert rows[3]["Label"] == "PageLevelEventListeners gatherer did not run"
    assert all(set(row) == set(EXPORT_COLUMNS) for row in rows)


def test_malformed_artifact_is_counted_as_error(tmp_path):
    path = write_bundle(tmp_path, "odd.json", {"listeners": "?"})
    controller = AuditController()
    summary = controller.run_audit([path])

    assert summary["errors"] == 1
    assert "error" in controller.get_results()[0]["audits"][0]


@pytest.mark.parametrize("suffix", [".csv", ".json", ".xlsx"])
def test_export_formats(bundles, tmp_path, suffix):
    controller = AuditController()
    controller.run_audit(bundles)
    path = controller.export(tmp_path / "out" / f"results{suffix}")

    assert path.exists()
    if suffix == ".csv":
        df = pd.read_csv(path)
        assert list(df.columns) == EXPORT_COLUMNS
        assert len(df) == 5
    elif suffix == ".json":
        assert len(json.loads(path.read_text(encoding="utf-8"))) == 5


def test_export_rejects_unknown_format(bundles, tmp_path):
    controller = AuditController()
    controller.run_audit(bundles)

    with pytest.raises(ValueError):
        controller.export(tmp_path / "results.txt")


def test_unknown_audit_is_rejected():
    with pytest.raises(ValueError, match="no-such-audit"):
        AuditController(audit_names=["no-such-audit"])


def test_parallel_run_matches_serial_run(bundles):
    serial = AuditController(workers=1)
    parallel = AuditController(workers=2)

    assert serial.run_audit(bundles) == parallel.run_audit(bundles)
    assert serial.get_results() == parallel.get_results()


def test_crashing_audit_does_not_abort_the_batch(tmp_path, monkeypatch):
    crashing = write_bundle(tmp_path, "crash.json", [VIOLATING], final_url="http://crash.example/")
    passing = write_bundle(tmp_path, "pass.json", [dict(VIOLATING, passive=True)])
    failing = write_bundle(tmp_path, "fail.json", [VIOLATING])

    original_run = AUDIT.run

    def run(artifacts):
        if artifacts["URL"]["finalUrl"] == "http://crash.example/":
            raise RuntimeError("listener table exploded")
        return original_run(artifacts)

    monkeypatch.setattr(AUDIT, "run", run)

    controller = AuditController()
    summary = controller.run_audit([crashing, passing, failing])

    assert summary["errors"] == 1
    assert summary["passed"] == 1
    assert summary["failed"] == 1
    entry = controller.get_results()[0]["audits"][0]
    assert entry == {"audit": "uses-passive-event-listeners", "error": "RuntimeError: listener table exploded"}
    assert controller.get_results_for_export()[0]["Status"] == "ERROR"


def test_worker_logs_a_crashing_audit(tmp_path, monkeypatch, caplog):
    path = write_bundle(tmp_path, "crash.json", [VIOLATING])

    def run(artifacts):
        raise KeyError("handler")

    monkeypatch.setattr(AUDIT, "run", run)

    outcome = _worker_audit_bundle(str(path), ("uses-passive-event-listeners",))

    assert outcome["error"] is None
    assert outcome["audits"][0]["error"] == "KeyError: 'handler'"
    assert any(record.levelname == "ERROR" for record in caplog.records)


def test_gatherer_failure_with_odd_payload_is_not_run(tmp_path):
    payload = {"rawValue": -1, "debugString": {"code": "X"}, "extendedInfo": {"value": {"stack": "at x"}}}
    path = write_bundle(tmp_path, "odd_failure.json", payload)

    controller = AuditController()
    summary = controller.run_audit([path])

    assert summary["not_run"] == 1
    assert summary["errors"] == 0
    assert controller.get_results()[0]["audits"][0]["result"] == payload
    assert controller.get_results_for_export()[0]["Label"] == '{"code": "X"}'
