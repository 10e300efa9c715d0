"""Response decoding for the remote appliance REST API.

The appliance wraps every payload in a ``results`` member that is an
object for single-object reads and an array for listings, and sometimes
either shape for the same endpoint depending on firmware. :class:`Results`
makes the shape explicit so callers never assume one.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_ATTRIBUTE = "ssl-certificate"


class ResultsKind(str, Enum):
    """Shape of the ``results`` member of a response body."""

    OBJECT = "object"
    ARRAY = "array"
    ABSENT = "absent"
    OTHER = "other"


@dataclass(frozen=True)
class Results:
    """Tagged union over the ``results`` member.

    Parameters
    ----------
    kind:
        Which shape was received.
    value:
        The raw member (dict, list, or None).
    """

    kind: ResultsKind
    value: Any = None

    @classmethod
    def decode(cls, body: Any) -> "Results":
        """Classify ``body["results"]``."""
        if not isinstance(body, dict) or "results" not in body:
            return cls(ResultsKind.ABSENT)
        value = body["results"]
        if isinstance(value, dict):
            return cls(ResultsKind.OBJECT, value)
        if isinstance(value, list):
            return cls(ResultsKind.ARRAY, value)
        return cls(ResultsKind.OTHER, value)

    def objects(self) -> list[dict[str, Any]]:
        """Return every object carried, whatever the shape."""
        if self.kind is ResultsKind.OBJECT:
            return [self.value]
        if self.kind is ResultsKind.ARRAY:
            return [item for item in self.value if isinstance(item, dict)]
        return []

    def first(self) -> dict[str, Any] | None:
        """Return the single object of a read, or None if there is none."""
        objects = self.objects()
        return objects[0] if objects else None


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        # Object keys are numeric for some tables (e.g. firewall policy ids).
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            return str(value)
        return value if isinstance(value, str) else None


class CertificateEntry(_Lenient):
    """One entry of a certificate object read."""

    name: Optional[str] = None
    certificate: Optional[str] = None


class UsageEntry(_Lenient):
    """One entry of ``results.currently_using`` from the usage endpoint."""

    path: Optional[str] = None
    name: Optional[str] = None
    mkey: Optional[str] = None
    attribute: Optional[str] = None
    table_type: Optional[str] = None

    def is_complete(self) -> bool:
        """True when path, location name and object key are all present."""
        return all(v and v.strip() for v in (self.path, self.name, self.mkey))

    @property
    def effective_attribute(self) -> str:
        return self.attribute if self.attribute and self.attribute.strip() else DEFAULT_ATTRIBUTE

    @property
    def multi_valued(self) -> bool:
        return (self.table_type or "").strip().lower() == "table"
