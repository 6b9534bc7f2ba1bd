from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Any

from atm_diags.diagnostics.base import AtmosphereDiagnostic
from atm_diags.diagnostics.registry import build_diagnostic
from atm_diags.errors import BindingError, LifecycleError
from atm_diags.field import Field, FieldIdentifier, FieldRequest
from atm_diags.grids import GridsManager
from atm_diags.models.config import FieldInitCfg, RunConfig
from atm_diags.units import parse_unit

logger = logging.getLogger(__name__)


class FieldRepository:
    """Simulation fields keyed by (name, grid), used to resolve diagnostic requests."""

    def __init__(self) -> None:
        self._fields: dict[tuple[str, str], Field] = {}

    def add_field(self, field: Field) -> None:
        key = (field.name, field.identifier.grid_name)
        existing = self._fields.get(key)
        if existing is not None and existing != field:
            raise ValueError(
                f"A different field named {field.name!r} already exists on grid {key[1]!r}: "
                f"{existing.identifier.get_id_string()}."
            )
        self._fields[key] = field

    def has_field(self, name: str, grid_name: str) -> bool:
        return (name, grid_name) in self._fields

    def get_field(self, name: str, grid_name: str) -> Field:
        try:
            return self._fields[(name, grid_name)]
        except KeyError:
            raise BindingError(f"No field named {name!r} on grid {grid_name!r}.") from None

    def resolve(self, request: FieldRequest) -> Field:
        field = self.get_field(request.name, request.grid_name)
        if not request.matches(field.identifier):
            raise BindingError(
                "Available field does not satisfy the request.\n"
                f"    request: {request.describe()}\n"
                f"    field id: {field.identifier.get_id_string()}"
            )
        return field

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)


class DiagnosticRegistry:
    """Owns diagnostic instances and hands out stable integer handles."""

    def __init__(self) -> None:
        self._diags: list[AtmosphereDiagnostic[Any]] = []

    def add(self, diag: AtmosphereDiagnostic[Any]) -> int:
        self._diags.append(diag)
        return len(self._diags) - 1

    def get(self, handle: int) -> AtmosphereDiagnostic[Any]:
        if not 0 <= handle < len(self._diags):
            raise KeyError(f"No diagnostic registered under handle {handle}.")
        return self._diags[handle]

    def __iter__(self) -> Iterator[AtmosphereDiagnostic[Any]]:
        return iter(self._diags)

    def __len__(self) -> int:
        return len(self._diags)


class DiagnosticsDriver:
    """Declares, wires, initializes and runs diagnostics in registration order.

    Outputs are published to the field repository as each diagnostic is
    initialized, so a diagnostic may consume the output of one registered
    before it.
    """

    def __init__(self, grids: GridsManager, fields: FieldRepository | None = None):
        self.grids = grids
        self.fields = fields if fields is not None else FieldRepository()
        self.registry = DiagnosticRegistry()
        self._initialized = False

    def add_diagnostic(self, diag: AtmosphereDiagnostic[Any]) -> int:
        if self._initialized:
            raise LifecycleError("Diagnostics cannot be added after the driver is initialized.")
        return self.registry.add(diag)

    def initialize(self) -> None:
        if self._initialized:
            raise LifecycleError("DiagnosticsDriver.initialize() called twice.")
        for diag in self.registry:
            diag.declare_grids(self.grids)
            for req in diag.get_required_field_requests():
                diag.set_required_field(self.fields.resolve(req))
            diag.initialize()
            for f in diag.get_fields_out():
                self.fields.add_field(f)
        self._initialized = True
        logger.info(
            "Initialized %d diagnostic(s) producing: %s",
            len(self.registry),
            ", ".join(f.name for f in self.outputs) or "<nothing>",
        )

    def run(self, timestamp: datetime | None = None) -> None:
        if not self._initialized:
            raise LifecycleError("DiagnosticsDriver.run() called before initialize().")
        for diag in self.registry:
            diag.compute(timestamp)

    def finalize(self) -> None:
        for diag in self.registry:
            diag.finalize()

    @property
    def outputs(self) -> list[Field]:
        return [f for diag in self.registry for f in diag.get_fields_out()]


def make_input_field(cfg: FieldInitCfg, grids: GridsManager) -> Field:
    layout = grids.get_grid(cfg.grid_name).layout_for(cfg.tags)
    fid = FieldIdentifier(
        name=cfg.name, layout=layout, unit=parse_unit(cfg.units), grid_name=cfg.grid_name
    )
    field = Field(fid, dtype=cfg.dtype).allocate_view()
    field.deep_copy(cfg.value)
    return field


def build_driver(cfg: RunConfig) -> DiagnosticsDriver:
    grids = GridsManager(cfg.grids)
    driver = DiagnosticsDriver(grids)
    for field_cfg in cfg.inputs:
        field = make_input_field(field_cfg, grids)
        field.tracking.update_time_stamp(cfg.runtime.start)
        driver.fields.add_field(field)
    for params in cfg.diagnostics:
        driver.add_diagnostic(build_diagnostic(params))
    return driver


def run_diagnostics(cfg: RunConfig) -> DiagnosticsDriver:
    """Initialize every configured diagnostic and advance ``n_steps`` steps."""
    driver = build_driver(cfg)
    driver.initialize()
    inputs = [driver.fields.get_field(f.name, f.grid_name) for f in cfg.inputs]
    dt = timedelta(seconds=cfg.runtime.dt_seconds)
    try:
        for step in range(1, cfg.runtime.n_steps + 1):
            ts = cfg.runtime.start + step * dt
            for f in inputs:
                f.tracking.update_time_stamp(ts)
            driver.run(ts)
            logger.debug("Completed step %d at %s", step, ts.isoformat())
    finally:
        driver.finalize()
    return driver
