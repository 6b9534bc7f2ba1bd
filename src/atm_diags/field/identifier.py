from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from atm_diags.field.layout import FieldLayout
from atm_diags.units import Unit


class FieldIdentifier(BaseModel):
    """Name, layout, unit and grid of a field; the key for every lookup."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    layout: FieldLayout
    unit: Unit
    grid_name: str

    def get_id_string(self) -> str:
        return f"{self.name}{self.layout.to_string()}[{self.unit}] on {self.grid_name}"

    def __str__(self) -> str:
        return self.get_id_string()
