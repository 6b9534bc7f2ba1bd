from __future__ import annotations

import logging
import warnings
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from atm_diags.diagnostics.ledger import FieldRequestLedger
from atm_diags.errors import BindingError, LifecycleError
from atm_diags.field import Field, FieldIdentifier, FieldLayout, FieldRequest, RequestType
from atm_diags.grids import GridsManager
from atm_diags.models.config import DiagnosticCfg
from atm_diags.units import Unit

logger = logging.getLogger(__name__)

CfgT = TypeVar("CfgT", bound=DiagnosticCfg)


class DiagnosticState(str, Enum):
    CONSTRUCTED = "constructed"
    DECLARED = "declared"
    INITIALIZED = "initialized"
    READY = "ready"
    FINALIZED = "finalized"


class AtmosphereDiagnostic(ABC, Generic[CfgT]):
    """Lifecycle shared by all diagnostics: declare, initialize, compute, finalize.

    Subclasses implement the ``*_impl`` hooks and ``name``. The base class
    enforces call order and owns the request ledger. A diagnostic that produces
    its output during ``initialize`` stores it in ``_diagnostic_output``; the
    base class then records it as a Computed request and binds it.
    """

    def __init__(self, cfg: CfgT):
        self.cfg = cfg
        self.state = DiagnosticState.CONSTRUCTED
        self.ledger = FieldRequestLedger(owner=self.name())
        self._diagnostic_output: Field | None = None

    @abstractmethod
    def name(self) -> str:
        """Stable identifier of the diagnostic kind."""

    # -- lifecycle ----------------------------------------------------------

    def declare_grids(self, grids: GridsManager) -> None:
        self._require_state("declare_grids", DiagnosticState.CONSTRUCTED)
        self._declare_grids_impl(grids)
        self.state = DiagnosticState.DECLARED
        logger.debug(
            "%s: declared %d required and %d computed field(s)",
            self.name(),
            len(self.ledger.get_required_field_requests()),
            len(self.ledger.get_computed_field_requests()),
        )

    def initialize(self) -> None:
        self._require_state("initialize", DiagnosticState.DECLARED)
        unbound = self.ledger.unbound_required_requests()
        if unbound:
            listing = "\n".join(f"    - {req.describe()}" for req in unbound)
            raise BindingError(
                f"{self.name()} cannot initialize: required fields were never bound.\n{listing}"
            )
        self._initialize_impl()
        output = self._diagnostic_output
        if output is not None:
            fid = output.identifier
            if not self.ledger.has_computed_field(fid):
                self.ledger.add_field(
                    RequestType.COMPUTED, fid.name, fid.layout, fid.unit, fid.grid_name
                )
            self.ledger.set_computed_field(output)
        self.state = DiagnosticState.INITIALIZED
        logger.debug("%s: initialized", self.name())

    def compute(self, timestamp: datetime | None = None) -> None:
        self._require_state("compute", DiagnosticState.INITIALIZED, DiagnosticState.READY)
        self._compute_impl()
        ts = timestamp if timestamp is not None else self._latest_input_time_stamp()
        if ts is None:
            warnings.warn(
                f"{self.name()}: computed before any input carries a time stamp; "
                "outputs are left unstamped.",
                stacklevel=2,
            )
        for f in self.ledger.get_fields_out():
            if ts is None:
                f.tracking.updates += 1
            else:
                f.tracking.update_time_stamp(ts)
        self.state = DiagnosticState.READY

    def finalize(self) -> None:
        if self.state is DiagnosticState.FINALIZED:
            logger.debug("%s: finalize called again; nothing to do", self.name())
            return
        self._require_state("finalize", DiagnosticState.INITIALIZED, DiagnosticState.READY)
        self._finalize_impl()
        self.state = DiagnosticState.FINALIZED
        logger.debug("%s: finalized", self.name())

    @abstractmethod
    def _declare_grids_impl(self, grids: GridsManager) -> None: ...

    @abstractmethod
    def _initialize_impl(self) -> None: ...

    @abstractmethod
    def _compute_impl(self) -> None: ...

    def _finalize_impl(self) -> None:
        return None

    # -- request ledger -----------------------------------------------------

    def add_field(
        self,
        kind: RequestType,
        name: str,
        layout: FieldLayout | None,
        unit: Unit | None,
        grid_name: str,
    ) -> FieldRequest:
        """Declare a field request; ``layout``/``unit`` of ``None`` match any value."""
        if self.state is not DiagnosticState.CONSTRUCTED:
            raise LifecycleError(
                f"{self.name()}: field requests can only be added while declaring grids "
                f"(current state: {self.state.value})."
            )
        return self.ledger.add_field(kind, name, layout, unit, grid_name)

    def has_required_field(self, fid: FieldIdentifier) -> bool:
        return self.ledger.has_required_field(fid)

    def has_computed_field(self, fid: FieldIdentifier) -> bool:
        return self.ledger.has_computed_field(fid)

    def set_required_field(self, field: Field) -> None:
        if self.state is DiagnosticState.FINALIZED:
            raise LifecycleError(f"{self.name()}: cannot bind fields after finalize.")
        self.ledger.set_required_field(field)

    def set_computed_field(self, field: Field) -> None:
        if self.state is DiagnosticState.FINALIZED:
            raise LifecycleError(f"{self.name()}: cannot bind fields after finalize.")
        self.ledger.set_computed_field(field)

    def get_required_field_requests(self) -> Sequence[FieldRequest]:
        return self.ledger.get_required_field_requests()

    def get_computed_field_requests(self) -> Sequence[FieldRequest]:
        return self.ledger.get_computed_field_requests()

    def get_fields_in(self) -> Sequence[Field]:
        return self.ledger.get_fields_in()

    def get_fields_out(self) -> Sequence[Field]:
        return self.ledger.get_fields_out()

    def get_field_in(self, name: str, grid_name: str | None = None) -> Field:
        return self.ledger.get_field_in(name, grid_name)

    def get_field_out(self, name: str, grid_name: str | None = None) -> Field:
        return self.ledger.get_field_out(name, grid_name)

    def get_diagnostic(self) -> Field:
        if self._diagnostic_output is None:
            raise LifecycleError(f"{self.name()}: output field exists only after initialize.")
        return self._diagnostic_output

    # -- helpers ------------------------------------------------------------

    def _require_state(self, call: str, *allowed: DiagnosticState) -> None:
        if self.state not in allowed:
            expected = " or ".join(s.value for s in allowed)
            raise LifecycleError(
                f"{self.name()}.{call}() called in state '{self.state.value}'; "
                f"expected {expected}."
            )

    def _latest_input_time_stamp(self) -> datetime | None:
        stamps = [
            f.tracking.time_stamp
            for f in self.ledger.get_fields_in()
            if f.tracking.time_stamp is not None
        ]
        return max(stamps) if stamps else None
