# src/auditor/audits/core.py
from typing import List, Protocol, runtime_checkable

from auditor.artifacts import Artifacts
from auditor.model import AuditMeta, AuditResult


@runtime_checkable
class Audit(Protocol):
    """
    Capability contract every audit implements.

    An audit is a stateless evaluator: `meta()` describes it to the
    orchestrator, `run()` turns an artifact bundle into an AuditResult.
    """

    def meta(self) -> AuditMeta:
        ...

    def run(self, artifacts: Artifacts) -> AuditResult:
        ...


def missing_artifacts(meta: AuditMeta, artifacts: Artifacts) -> List[str]:
    """Returns the required artifact names that are absent from the bundle."""
    return [name for name in meta.required_artifacts if artifacts.get(name) is None]
