from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from atm_diags.field.identifier import FieldIdentifier
from atm_diags.field.layout import FieldLayout
from atm_diags.units import Unit


class RequestType(str, Enum):
    REQUIRED = "Required"
    COMPUTED = "Computed"


Required = RequestType.REQUIRED
Computed = RequestType.COMPUTED


class FieldRequest(BaseModel):
    """A declared need for (Required) or production of (Computed) a field.

    ``layout`` and ``unit`` may be left open, in which case the request matches
    any field with the requested name on the requested grid. A fully specified
    request only matches an identical identifier.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: RequestType
    name: str
    grid_name: str
    layout: FieldLayout | None = None
    unit: Unit | None = None

    @classmethod
    def from_identifier(cls, kind: RequestType, fid: FieldIdentifier) -> FieldRequest:
        return cls(
            kind=kind, name=fid.name, grid_name=fid.grid_name, layout=fid.layout, unit=fid.unit
        )

    @property
    def is_complete(self) -> bool:
        return self.layout is not None and self.unit is not None

    @property
    def fid(self) -> FieldIdentifier | None:
        if self.layout is None or self.unit is None:
            return None
        return FieldIdentifier(
            name=self.name, layout=self.layout, unit=self.unit, grid_name=self.grid_name
        )

    def matches(self, fid: FieldIdentifier) -> bool:
        if self.name != fid.name or self.grid_name != fid.grid_name:
            return False
        if self.layout is not None and self.layout != fid.layout:
            return False
        return self.unit is None or self.unit == fid.unit

    def describe(self) -> str:
        layout = self.layout.to_string() if self.layout is not None else "<any>"
        unit = str(self.unit) if self.unit is not None else "any"
        return f"{self.kind.value} {self.name}{layout}[{unit}] on {self.grid_name}"
