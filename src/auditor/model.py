from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PrivateAttr

from auditor.utils.url_utils import UrlUtils

# Out-of-band marker: "this value is not a real result; gathering did not complete."
NOT_RUN = -1


class Formatter:
    """Formatter tags understood by the report layer."""
    URLLIST = "urllist"


class ListenerHandler(BaseModel):
    """String rendering of a listener's handler function."""
    model_config = ConfigDict(frozen=True, extra="allow")

    description: str = ""


class ListenerRecord(BaseModel):
    """
    One observed event-listener registration, as reported by the
    PageLevelEventListeners gatherer.

    Field names follow the gatherer's camelCase contract through aliases.
    Unknown gatherer fields are kept so they survive into violation entries.
    """
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    type: str
    url: str = ""
    line: NonNegativeInt = 0
    col: NonNegativeInt = 0
    object_id: str = Field(alias="objectId")
    handler: ListenerHandler = Field(default_factory=ListenerHandler)
    passive: Optional[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ViolationEntry(ListenerRecord):
    """
    A ListenerRecord that breaks the passive listener rule, with a location
    label and the reconstructed call site.
    """
    label: str
    code: str

    @classmethod
    def from_record(cls, record: ListenerRecord) -> "ViolationEntry":
        payload: Dict[str, Any] = {
            "label": f"line: {record.line}, col: {record.col}",
            "code": f"{record.object_id}.addEventListener('{record.type}', {record.handler.description})",
        }
        # Record fields win over the synthesized keys on collision.
        payload.update(record.to_dict())
        return cls.model_validate(payload)


class PageContext(BaseModel):
    """The URL artifact: the fully resolved page URL after redirects."""
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    final_url: str = Field(alias="finalUrl")

    @property
    def page_host(self) -> str:
        return UrlUtils.get_host(self.final_url)


class ExtendedInfo(BaseModel):
    """Structured diagnostic payload handed to the report formatter."""
    model_config = ConfigDict(frozen=True)

    formatter: str = Formatter.URLLIST
    value: Tuple[ViolationEntry, ...] = ()


class AuditResult(BaseModel):
    """
    Outcome of a single audit.

    raw_value is True/False for pass/fail, or NOT_RUN (-1) when the audit
    could not run. A gatherer's own failure payload is carried unvalidated
    (see `passthrough`) and serialized back exactly as it came in.
    """
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    raw_value: Union[bool, int] = Field(alias="rawValue")
    debug_string: Optional[str] = Field(default=None, alias="debugString")
    extended_info: Optional[ExtendedInfo] = Field(default=None, alias="extendedInfo")

    _payload: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    @classmethod
    def passthrough(cls, payload: Mapping[str, Any]) -> "AuditResult":
        """Wraps a gatherer failure payload without validating or reshaping it."""
        debug_string = payload.get("debugString")
        result = cls.model_construct(
            raw_value=payload.get("rawValue", NOT_RUN),
            debug_string=debug_string if isinstance(debug_string, str) else None,
        )
        result._payload = dict(payload)
        return result

    @property
    def not_run(self) -> bool:
        return not isinstance(self.raw_value, bool) and self.raw_value == NOT_RUN

    @property
    def violations(self) -> Tuple[ViolationEntry, ...]:
        return self.extended_info.value if self.extended_info else ()

    def to_dict(self) -> Dict[str, Any]:
        """Serializes to the output contract (camelCase keys, unset optionals omitted)."""
        if self._payload is not None:
            return dict(self._payload)
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AuditMeta(BaseModel):
    """Static descriptor an orchestrator reads to decide whether/when to run an audit."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: str
    name: str
    description: str
    help_text: str = Field(alias="helpText")
    required_artifacts: Tuple[str, ...] = Field(alias="requiredArtifacts")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
