from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from atm_diags.field.layout import FieldTag
from atm_diags.grids import Grid
from atm_diags.units import parse_unit

BINARY_OP_NAMES: tuple[str, ...] = (
    "plus",
    "minus",
    "times",
    "over",
    "times_rho_h2o",
    "over_rho_h2o",
    "times_gravit",
    "over_gravit",
)
FIELD_OPERAND_OPS = frozenset({"plus", "minus", "times", "over"})


class DiagnosticCfg(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: str


class BinaryOpsCfg(DiagnosticCfg):
    kind: Literal["binary_ops"] = "binary_ops"
    field_1: str = Field(description="Name of the first operand field.")
    field_2: str = Field(
        default="",
        description="Name of the second operand field; empty selects the constant operand.",
    )
    binary_op: str = Field(description=f"One of: {', '.join(BINARY_OP_NAMES)}.")
    grid_name: str = Field(description="Grid on which both operands live.")

    @field_validator("field_1", "grid_name")
    @classmethod
    def _validate_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("BinaryOpsCfg.field_1 and grid_name must be non-empty.")
        return value

    @field_validator("binary_op")
    @classmethod
    def _validate_binary_op(cls, value: str) -> str:
        if value not in BINARY_OP_NAMES:
            raise ValueError(
                f"Invalid binary operator: '{value}'. "
                f"Valid operators are: {', '.join(BINARY_OP_NAMES)}."
            )
        return value

    @model_validator(mode="after")
    def _validate_second_operand(self) -> BinaryOpsCfg:
        if self.binary_op in FIELD_OPERAND_OPS and not self.field_2:
            raise ValueError(
                f"Binary operator '{self.binary_op}' needs a second field; set field_2."
            )
        return self


class FieldInitCfg(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    grid_name: str
    tags: list[FieldTag] = Field(default_factory=lambda: [FieldTag.COL, FieldTag.LEV])
    units: str = "1"
    value: float = 0.0
    dtype: Literal["float32", "float64"] = "float64"

    @field_validator("units")
    @classmethod
    def _validate_units(cls, value: str) -> str:
        parse_unit(value)
        return value


class RuntimeCfg(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime = datetime(2000, 1, 1)
    dt_seconds: float = 1800.0
    n_steps: int = 1

    @field_validator("dt_seconds")
    @classmethod
    def _validate_dt(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("RuntimeCfg.dt_seconds must be > 0.")
        return value

    @field_validator("n_steps")
    @classmethod
    def _validate_n_steps(cls, value: int) -> int:
        if value < 0:
            raise ValueError("RuntimeCfg.n_steps must be >= 0.")
        return value


class RunConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    runtime: RuntimeCfg = Field(default_factory=RuntimeCfg)
    grids: list[Grid]
    inputs: list[FieldInitCfg] = Field(default_factory=list)
    # Validated per kind by the diagnostic registry so errors surface as
    # ConfigurationError with the diagnostic's own message.
    diagnostics: list[dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_field_grids(self) -> RunConfig:
        names = {g.name for g in self.grids}
        for f in self.inputs:
            if f.grid_name not in names:
                raise ValueError(
                    f"Field '{f.name}' is placed on unknown grid '{f.grid_name}'. "
                    f"Known grids: {', '.join(sorted(names))}."
                )
        return self
