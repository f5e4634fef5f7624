# src/auditor/artifacts.py
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Union

from pydantic import ValidationError

from auditor.model import NOT_RUN, ListenerRecord, PageContext

logger = logging.getLogger(__name__)

LISTENERS_ARTIFACT = "PageLevelEventListeners"
URL_ARTIFACT = "URL"

Artifacts = Mapping[str, Any]


class ArtifactShapeError(ValueError):
    """Raised when an artifact has a shape no gatherer is allowed to produce."""


@dataclass(frozen=True)
class NotRun:
    """The gatherer never ran: the artifact is missing or the bare -1 sentinel."""


@dataclass(frozen=True)
class GathererFailed:
    """The gatherer ran but reported its own failure; payload is kept verbatim."""
    payload: Mapping[str, Any]


@dataclass(frozen=True)
class ListenersReady:
    """A valid, ordered sequence of listener records."""
    records: Tuple[ListenerRecord, ...]


ListenerArtifact = Union[NotRun, GathererFailed, ListenersReady]


def _is_sentinel(value: Any) -> bool:
    # bool is an int subclass; True/False must never read as a sentinel.
    return isinstance(value, int) and not isinstance(value, bool) and value == NOT_RUN


def read_listener_artifact(value: Any) -> ListenerArtifact:
    """
    Maps the raw PageLevelEventListeners artifact onto its tagged form.

    Raises:
        ArtifactShapeError: if the value is neither a sentinel, a failure
            payload, nor a list of listener records.
    """
    if value is None or _is_sentinel(value):
        return NotRun()

    if isinstance(value, Mapping):
        if _is_sentinel(value.get("rawValue")):
            return GathererFailed(payload=value)
        raise ArtifactShapeError(
            f"{LISTENERS_ARTIFACT} is a mapping without a rawValue sentinel: keys={sorted(value)}"
        )

    if isinstance(value, (list, tuple)):
        records = []
        for index, entry in enumerate(value):
            if not isinstance(entry, Mapping):
                raise ArtifactShapeError(
                    f"{LISTENERS_ARTIFACT}[{index}] is {type(entry).__name__}, expected an object"
                )
            try:
                records.append(ListenerRecord.model_validate(entry))
            except ValidationError as e:
                raise ArtifactShapeError(f"{LISTENERS_ARTIFACT}[{index}] is malformed: {e}") from e
        return ListenersReady(records=tuple(records))

    raise ArtifactShapeError(f"{LISTENERS_ARTIFACT} has unsupported type {type(value).__name__}")


def read_page_context(artifacts: Artifacts) -> PageContext:
    """Reads the URL artifact. Raises ArtifactShapeError when finalUrl is missing."""
    raw = artifacts.get(URL_ARTIFACT)
    if not isinstance(raw, Mapping) or not isinstance(raw.get("finalUrl"), str):
        raise ArtifactShapeError(f"{URL_ARTIFACT} artifact must be an object with a string finalUrl")
    return PageContext.model_validate(raw)


def load_artifacts(path: Union[str, Path]) -> Dict[str, Any]:
    """Loads one artifact bundle (a JSON object keyed by artifact name) from disk."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ArtifactShapeError(f"Artifact bundle {path} must be a JSON object, got {type(data).__name__}")

    logger.debug(f"Loaded artifact bundle {path} with artifacts: {sorted(data)}")
    return data
