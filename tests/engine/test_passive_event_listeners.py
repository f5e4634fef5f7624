# tests/engine/test_passive_event_listeners.py
import pytest

from auditor.audits.rules.passive_event_listeners import (
    AUDIT,
    AUDIT_NAME,
    SCROLL_BLOCKING_EVENTS,
    calls_prevent_default,
    classify,
    validate,
)
from auditor.artifacts import ArtifactShapeError
from auditor.model import Formatter, ListenerRecord

PAGE_URL = "http://example.com/index.html"


def make_listener(**overrides):
    """A same-host, non-passive touchstart listener without preventDefault (a violation)."""
    listener = {
        "type": "touchstart",
        "url": "http://example.com/a.js",
        "passive": False,
        "handler": {"description": "function(e){}"},
        "line": 10,
        "col": 5,
        "objectId": "window",
    }
    listener.update(overrides)
    return listener


def make_artifacts(listeners, final_url=PAGE_URL):
    return {"URL": {"finalUrl": final_url}, "PageLevelEventListeners": listeners}


# --- Gatherer states ---

@pytest.mark.parametrize("listeners", [None, -1])
def test_gatherer_did_not_run(listeners):
    """A missing artifact or the bare -1 sentinel yields a -1 result with a debug string."""
    result = AUDIT.run(make_artifacts(listeners))

    assert result.raw_value == -1
    assert result.not_run
    assert result.debug_string == "PageLevelEventListeners gatherer did not run"
    assert result.extended_info is None


def test_gatherer_did_not_run_without_url_artifact():
    """The sentinel check comes before the URL artifact is read."""
    result = AUDIT.run({})
    assert result.raw_value == -1
    assert result.debug_string


def test_gatherer_failure_is_passed_through():
    payload = {"rawValue": -1, "debugString": "Unable to read listeners: Target closed"}
    result = AUDIT.run(make_artifacts(payload))

    assert result.to_dict() == payload


def test_gatherer_failure_keeps_unknown_fields():
    payload = {"rawValue": -1, "debugString": "boom", "gatherer": "PageLevelEventListeners"}
    result = AUDIT.run(make_artifacts(payload))

    assert result.to_dict() == payload


@pytest.mark.parametrize("payload", [
    {"rawValue": -1, "debugString": {"code": "PROTOCOL_TIMEOUT", "message": "Target closed"}},
    {"rawValue": -1, "debugString": "crashed", "extendedInfo": {"formatter": "null", "value": {"stack": "at x"}}},
    {"rawValue": -1, "debugString": "crashed",
     "extendedInfo": {"formatter": "urllist", "value": [], "trace": ["gather", "listeners"]}},
    {"rawValue": -1, "debugString": None, "errorCode": 7},
], ids=["non-string-debug", "non-list-value", "extra-extended-info-key", "null-debug"])
def test_gatherer_failure_payload_is_returned_unchanged(payload):
    """Whatever the gatherer reported is handed back as-is, even when it has an unusual shape."""
    result = AUDIT.run(make_artifacts(payload))

    assert result.not_run
    assert result.to_dict() == payload


# --- Scenarios ---

def test_same_host_non_passive_listener_is_a_violation():
    result = AUDIT.run(make_artifacts([make_listener()]))

    assert result.raw_value is False
    assert result.extended_info.formatter == Formatter.URLLIST
    assert len(result.violations) == 1

    violation = result.violations[0]
    assert violation.code == "window.addEventListener('touchstart', function(e){})"
    assert violation.label == "line: 10, col: 5"


def test_passive_listener_is_compliant():
    result = AUDIT.run(make_artifacts([make_listener(passive=True)]))

    assert result.raw_value is True
    assert result.violations == ()


def test_listener_calling_prevent_default_is_exempt():
    listener = make_listener(handler={"description": "function(e){e.preventDefault()}"})
    result = AUDIT.run(make_artifacts([listener]))

    assert result.raw_value is True


def test_cross_origin_listener_is_excluded():
    result = AUDIT.run(make_artifacts([make_listener(url="http://other.com/a.js")]))

    assert result.raw_value is True


def test_non_scroll_blocking_event_is_excluded():
    result = AUDIT.run(make_artifacts([make_listener(type="click")]))

    assert result.raw_value is True


# --- Edge cases ---

def test_subdomain_is_not_the_same_host():
    result = AUDIT.run(make_artifacts([make_listener(url="http://cdn.example.com/a.js")]))
    assert result.raw_value is True


def test_port_is_part_of_the_host():
    listeners = [make_listener(url="http://example.com:8080/a.js")]

    assert AUDIT.run(make_artifacts(listeners)).raw_value is True
    assert AUDIT.run(make_artifacts(listeners, final_url="http://example.com:8080/")).raw_value is False


def test_scheme_does_not_matter_for_host_equality():
    result = AUDIT.run(make_artifacts([make_listener(url="https://example.com/a.js")]))
    assert result.raw_value is False


def test_missing_passive_flag_counts_as_non_passive():
    listener = make_listener()
    del listener["passive"]

    result = AUDIT.run(make_artifacts([listener]))
    assert result.raw_value is False


@pytest.mark.parametrize("event_type", SCROLL_BLOCKING_EVENTS)
def test_every_scroll_blocking_event_is_checked(event_type):
    result = AUDIT.run(make_artifacts([make_listener(type=event_type)]))
    assert result.raw_value is False


@pytest.mark.parametrize("description, expected", [
    ("function(e){e.preventDefault()}", True),
    ("function(e){ e.preventDefault(  ); }", True),
    ("function(e){\n  event.preventDefault(\n)\n}", True),
    ("function(e){ /* e.preventDefault() */ }", True),
    ("function(e){ e.preventDefault(true) }", False),
    ("function(e){ preventDefault() }", False),
    ("function(e){ const pd = e.preventDefault; pd(); }", False),
    ("", False),
])
def test_calls_prevent_default(description, expected):
    assert calls_prevent_default(description) is expected


def test_violations_keep_input_order_and_count():
    listeners = [
        make_listener(type="wheel", line=1),
        make_listener(type="click", line=2),
        make_listener(type="touchmove", line=3, objectId="document"),
        make_listener(type="touchstart", line=4, passive=True),
        make_listener(type="mousewheel", line=5, objectId="document.body"),
    ]
    result = AUDIT.run(make_artifacts(listeners))

    assert result.raw_value is False
    assert [v.line for v in result.violations] == [1, 3, 5]
    assert result.violations[1].code == "document.addEventListener('touchmove', function(e){})"


def test_empty_listener_list_passes():
    result = AUDIT.run(make_artifacts([]))

    assert result.raw_value is True
    assert result.to_dict()["extendedInfo"] == {"formatter": "urllist", "value": []}


def test_violation_keeps_original_record_fields():
    listener = make_listener(nodeName="BODY")
    result = AUDIT.run(make_artifacts([listener]))

    entry = result.to_dict()["extendedInfo"]["value"][0]
    for key, value in listener.items():
        assert entry[key] == value
    assert entry["nodeName"] == "BODY"
    assert entry["label"] == "line: 10, col: 5"


def test_running_twice_gives_identical_output():
    artifacts = make_artifacts([make_listener(), make_listener(passive=True)])

    first = AUDIT.run(artifacts).to_dict()
    second = AUDIT.run(artifacts).to_dict()

    assert first == second
    assert artifacts["PageLevelEventListeners"][0] == make_listener()


# --- Validator / classifier seams ---

def test_validate_hands_records_and_host_downstream():
    outcome = validate(make_artifacts([make_listener()], final_url="https://Example.com/path?q=1"))

    records, page_host = outcome
    assert page_host == "example.com"
    assert isinstance(records[0], ListenerRecord)


def test_classify_is_total_over_valid_records():
    records = [ListenerRecord.model_validate(make_listener())]
    assert classify(records, "example.com").raw_value is False
    assert classify(records, "elsewhere.org").raw_value is True


def test_malformed_listener_artifact_raises():
    with pytest.raises(ArtifactShapeError):
        AUDIT.run(make_artifacts({"listeners": []}))


def test_missing_url_artifact_with_listeners_raises():
    with pytest.raises(ArtifactShapeError):
        AUDIT.run({"PageLevelEventListeners": [make_listener()]})


# --- Metadata ---

def test_meta_describes_the_audit():
    meta = AUDIT.meta()

    assert meta.name == AUDIT_NAME == "uses-passive-event-listeners"
    assert meta.category == "JavaScript"
    assert meta.required_artifacts == ("URL", "PageLevelEventListeners")
    assert "wheel,mousewheel,touchstart,touchmove" in meta.help_text
    assert meta.to_dict()["requiredArtifacts"] == ["URL", "PageLevelEventListeners"]
