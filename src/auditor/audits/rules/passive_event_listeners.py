# src/auditor/audits/rules/passive_event_listeners.py
"""
Checks that document-level listeners (window, document, document.body) for
scroll-blocking events are registered as passive unless they call
preventDefault().
"""
import logging
import re
from typing import Sequence, Tuple, Union

from auditor.artifacts import (
    LISTENERS_ARTIFACT,
    URL_ARTIFACT,
    Artifacts,
    GathererFailed,
    ListenersReady,
    NotRun,
    read_listener_artifact,
    read_page_context,
)
from auditor.model import (
    NOT_RUN,
    AuditMeta,
    AuditResult,
    ExtendedInfo,
    Formatter,
    ListenerRecord,
    ViolationEntry,
)
from auditor.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

AUDIT_NAME = "uses-passive-event-listeners"

SCROLL_BLOCKING_EVENTS: Tuple[str, ...] = ("wheel", "mousewheel", "touchstart", "touchmove")

# Lexical heuristic only. Misses aliased calls (const pd = e.preventDefault; pd())
# and matches calls that only appear inside comments or string literals.
PREVENT_DEFAULT_PATTERN = re.compile(r"\.preventDefault\(\s*\)")

NOT_RUN_DEBUG_STRING = f"{LISTENERS_ARTIFACT} gatherer did not run"

META = AuditMeta(
    category="JavaScript",
    name=AUDIT_NAME,
    description="Site uses passive event listeners to improve scrolling performance",
    help_text=(
        '<a href="https://www.chromestatus.com/features/5745543795965952" target="_blank">'
        "Passive event listeners</a> enable better scrolling performance. "
        "If you don't call <code>preventDefault()</code> in your "
        f"<code>{','.join(SCROLL_BLOCKING_EVENTS)}</code> event listeners, make them passive: "
        "<code>addEventListener('touchstart', ..., {passive: true})</code>."
    ),
    required_artifacts=(URL_ARTIFACT, LISTENERS_ARTIFACT),
)


def calls_prevent_default(description: str) -> bool:
    """True when the handler source text contains a `.preventDefault()` call."""
    return PREVENT_DEFAULT_PATTERN.search(description or "") is not None


def is_violation(record: ListenerRecord, page_host: str) -> bool:
    """
    A record violates the rule when it was registered by a same-host script,
    listens to a scroll-blocking event, is not passive and never calls
    preventDefault().
    """
    if not UrlUtils.is_same_host(record.url, page_host):
        return False
    if record.type not in SCROLL_BLOCKING_EVENTS:
        return False
    if record.passive:
        return False
    return not calls_prevent_default(record.handler.description)


def validate(artifacts: Artifacts) -> Union[Tuple[Tuple[ListenerRecord, ...], str], AuditResult]:
    """
    Checks the required artifacts.

    Returns either an AuditResult that ends the evaluation (gatherer did not
    run, or failed and its payload is passed through), or the listener
    records together with the page host.
    """
    artifact = read_listener_artifact(artifacts.get(LISTENERS_ARTIFACT))

    if isinstance(artifact, NotRun):
        return AuditResult(raw_value=NOT_RUN, debug_string=NOT_RUN_DEBUG_STRING)
    if isinstance(artifact, GathererFailed):
        return AuditResult.passthrough(artifact.payload)
    if isinstance(artifact, ListenersReady):
        page_host = read_page_context(artifacts).page_host
        return artifact.records, page_host

    raise TypeError(f"Unhandled listener artifact variant: {type(artifact).__name__}")


def classify(records: Sequence[ListenerRecord], page_host: str) -> AuditResult:
    """Collects every violating record, in input order, into a URL-list result."""
    violations = []
    for record in records:
        if is_violation(record, page_host):
            violations.append(ViolationEntry.from_record(record))
        else:
            logger.debug(f"Compliant listener: {record.object_id} {record.type} ({record.url})")

    return AuditResult(
        raw_value=len(violations) == 0,
        extended_info=ExtendedInfo(formatter=Formatter.URLLIST, value=tuple(violations)),
    )


class PassiveEventListenersAudit:
    """Audit for passive scroll-blocking listeners on document-level targets."""

    def meta(self) -> AuditMeta:
        return META

    def run(self, artifacts: Artifacts) -> AuditResult:
        outcome = validate(artifacts)
        if isinstance(outcome, AuditResult):
            logger.debug(f"{AUDIT_NAME} did not run: {outcome.debug_string}")
            return outcome

        records, page_host = outcome
        result = classify(records, page_host)
        logger.debug(f"{AUDIT_NAME}: {len(result.violations)} violation(s) on host '{page_host}'")
        return result


AUDIT = PassiveEventListenersAudit()
