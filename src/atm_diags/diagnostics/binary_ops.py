from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from atm_diags.diagnostics.base import AtmosphereDiagnostic
from atm_diags.errors import CompatibilityError, ConfigurationError, UnitMismatchError
from atm_diags.field import Field, FieldIdentifier, Required
from atm_diags.grids import GridsManager
from atm_diags.models.config import BINARY_OP_NAMES, BinaryOpsCfg
from atm_diags.physics.constants import get_constants
from atm_diags.units import Unit, kg, m, s

logger = logging.getLogger(__name__)

INVALID_OP_CODE = -1

PLUS, MINUS, TIMES, OVER, TIMES_RHO_H2O, OVER_RHO_H2O, TIMES_GRAVIT, OVER_GRAVIT = range(8)

_RHO_UNIT = kg / m**3
_GRAVIT_UNIT = m / s**2


def get_binary_operator_code(op: str) -> int:
    """Stable code in ``0..7`` for a valid operator name, ``-1`` otherwise."""
    try:
        return BINARY_OP_NAMES.index(op)
    except ValueError:
        return INVALID_OP_CODE


def apply_binary_op_units(a: Unit, b: Unit, op_code: int) -> Unit:
    if op_code in (PLUS, MINUS):
        if a != b:
            raise UnitMismatchError(
                f"Addition/subtraction requires identical units, got [{a}] and [{b}]."
            )
        return a
    if op_code == TIMES:
        return a * b
    if op_code == OVER:
        return a / b
    if op_code == TIMES_RHO_H2O:
        return a * _RHO_UNIT
    if op_code == OVER_RHO_H2O:
        return a / _RHO_UNIT
    if op_code == TIMES_GRAVIT:
        return a * _GRAVIT_UNIT
    if op_code == OVER_GRAVIT:
        return a / _GRAVIT_UNIT
    raise ValueError(f"Invalid binary operator code: {op_code}.")


def apply_binary_op(out: Field, other: Field, op_code: int) -> None:
    """Apply the operator in place on ``out`` using ``other`` or a physical constant."""
    pc = get_constants()
    if op_code == PLUS:
        out.update(other, 1.0, 1.0)
    elif op_code == MINUS:
        out.update(other, -1.0, 1.0)
    elif op_code == TIMES:
        out.scale(other)
    elif op_code == OVER:
        out.scale_inv(other)
    elif op_code == TIMES_RHO_H2O:
        out.scale(pc.RHO_H2O.value)
    elif op_code == OVER_RHO_H2O:
        out.scale_inv(pc.RHO_H2O.value)
    elif op_code == TIMES_GRAVIT:
        out.scale(pc.gravit.value)
    elif op_code == OVER_GRAVIT:
        out.scale_inv(pc.gravit.value)
    else:
        raise ValueError(f"Invalid binary operator code: {op_code}.")


class BinaryOpsDiag(AtmosphereDiagnostic[BinaryOpsCfg]):
    """``field_1 <op> field_2``, or ``field_1 <op> constant`` when field_2 is empty."""

    def __init__(self, cfg: BinaryOpsCfg | Mapping[str, Any]):
        if not isinstance(cfg, BinaryOpsCfg):
            try:
                cfg = BinaryOpsCfg.model_validate(dict(cfg))
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Invalid BinaryOpsDiag parameters:\n{exc}"
                ) from exc
        super().__init__(cfg)
        self.op_code = get_binary_operator_code(cfg.binary_op)

    def name(self) -> str:
        return "BinaryOpsDiag"

    @property
    def field_1(self) -> str:
        return self.cfg.field_1

    @property
    def field_2(self) -> str:
        return self.cfg.field_2

    def _declare_grids_impl(self, grids: GridsManager) -> None:
        gname = self.cfg.grid_name
        if not grids.has_grid(gname):
            raise ConfigurationError(
                f"BinaryOpsDiag grid_name '{gname}' is not provided by the grids manager. "
                f"Available grids: {', '.join(grids.grid_names()) or '<none>'}."
            )
        self.add_field(Required, self.field_1, None, None, gname)
        if self.field_2:
            self.add_field(Required, self.field_2, None, None, gname)

    def _inputs(self) -> tuple[Field, Field]:
        gname = self.cfg.grid_name
        f1 = self.get_field_in(self.field_1, gname)
        f2 = self.get_field_in(self.field_2, gname) if self.field_2 else f1
        return f1, f2

    def _initialize_impl(self) -> None:
        f1, f2 = self._inputs()
        id1 = f1.identifier
        id2 = f2.identifier

        if id1.layout != id2.layout:
            raise CompatibilityError(
                "BinaryOpsDiag requires both input fields to have the same layout.\n"
                f" - field 1 name: {id1.name}\n"
                f" - field 1 layout: {id1.layout.to_string()}\n"
                f" - field 2 name: {id2.name}\n"
                f" - field 2 layout: {id2.layout.to_string()}"
            )
        if f1.data_type != f2.data_type:
            raise CompatibilityError(
                "BinaryOpsDiag requires both input fields to have the same data type.\n"
                f" - field 1 name: {id1.name}\n"
                f" - field 1 data type: {f1.data_type.name}\n"
                f" - field 2 name: {id2.name}\n"
                f" - field 2 data type: {f2.data_type.name}"
            )
        if id1.grid_name != id2.grid_name:
            raise CompatibilityError(
                "BinaryOpsDiag requires both input fields to be on the same grid.\n"
                f" - field 1 name: {id1.name}\n"
                f" - field 1 grid name: {id1.grid_name}\n"
                f" - field 2 name: {id2.name}\n"
                f" - field 2 grid name: {id2.grid_name}"
            )

        try:
            diag_unit = apply_binary_op_units(id1.unit, id2.unit, self.op_code)
        except UnitMismatchError as exc:
            raise UnitMismatchError(
                f"BinaryOpsDiag '{self.cfg.binary_op}' on {id1.name} and {id2.name}: {exc}"
            ) from exc

        op = self.cfg.binary_op
        diag_name = f"{self.field_1}_{op}"
        if self.field_2:
            diag_name = f"{diag_name}_{self.field_2}"
        fid = FieldIdentifier(
            name=diag_name, layout=id1.layout.clone(), unit=diag_unit, grid_name=id1.grid_name
        )
        self._diagnostic_output = Field(fid, dtype=f1.data_type).allocate_view()
        logger.debug("%s: output %s", self.name(), fid.get_id_string())

    def _compute_impl(self) -> None:
        f1, f2 = self._inputs()
        out = self.get_diagnostic()
        out.deep_copy(f1)
        apply_binary_op(out, f2, self.op_code)
