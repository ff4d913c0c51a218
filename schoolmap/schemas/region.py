from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from shapely.geometry.base import BaseGeometry


class RegionPolygon(BaseModel):
    """A boundary polygon (e.g. a Local Authority District) with its attributes.

    ``properties`` keeps the full attribute table entry from the source file so
    callers can filter on keys other than the identifier and name.  It is a
    read-only view.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identifier: str
    name: str
    area: float
    geometry: BaseGeometry
    properties: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("properties", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    def attribute(self, field: str) -> Any:
        """Return *field* from the named attributes or the raw property table."""
        if field in ("identifier", "name", "area"):
            return getattr(self, field)
        return self.properties.get(field)
