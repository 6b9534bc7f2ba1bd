from datetime import datetime

import numpy as np
import pytest

from atm_diags.diagnostics import AtmosphereDiagnostic, DiagnosticState
from atm_diags.errors import BindingError, LifecycleError
from atm_diags.field import Computed, Field, FieldIdentifier, Required
from atm_diags.grids import Grid, GridsManager
from atm_diags.models import DiagnosticCfg
from atm_diags.units import K

GRIDS = GridsManager([Grid(name="grid", ncols=4, nlevs=3)])
LAYOUT = GRIDS.get_grid("grid").get_3d_scalar_layout()


class DoublingDiag(AtmosphereDiagnostic[DiagnosticCfg]):
    """Declares both its input and its output up front."""

    def __init__(self) -> None:
        super().__init__(DiagnosticCfg(kind="doubling"))
        self.finalize_calls = 0

    def name(self) -> str:
        return "DoublingDiag"

    def _declare_grids_impl(self, grids: GridsManager) -> None:
        layout = grids.get_grid("grid").get_3d_scalar_layout()
        self.add_field(Required, "T_mid", layout, K, "grid")
        self.add_field(Computed, "T_mid_x2", layout, K, "grid")

    def _initialize_impl(self) -> None:
        pass

    def _compute_impl(self) -> None:
        out = self.get_field_out("T_mid_x2")
        out.deep_copy(self.get_field_in("T_mid"))
        out.scale(2.0)

    def _finalize_impl(self) -> None:
        self.finalize_calls += 1


def _field(name: str, value: float) -> Field:
    field = Field(FieldIdentifier(name=name, layout=LAYOUT, unit=K, grid_name="grid"))
    field.allocate_view()
    field.deep_copy(value)
    return field


def _wired() -> tuple[DoublingDiag, Field, Field]:
    diag = DoublingDiag()
    diag.declare_grids(GRIDS)
    t_mid = _field("T_mid", 3.0)
    out = _field("T_mid_x2", 0.0)
    diag.set_required_field(t_mid)
    diag.set_computed_field(out)
    return diag, t_mid, out


@pytest.mark.unit
def test_full_lifecycle_walks_through_every_state() -> None:
    diag, _, out = _wired()
    assert diag.state is DiagnosticState.DECLARED

    diag.initialize()
    assert diag.state is DiagnosticState.INITIALIZED

    diag.compute(datetime(2000, 1, 1, 0, 30))
    diag.compute(datetime(2000, 1, 1, 1, 0))
    assert diag.state is DiagnosticState.READY
    assert np.all(out.data == 6.0)
    assert out.tracking.time_stamp == datetime(2000, 1, 1, 1, 0)
    assert out.tracking.updates == 2

    diag.finalize()
    diag.finalize()
    assert diag.state is DiagnosticState.FINALIZED
    assert diag.finalize_calls == 1


@pytest.mark.unit
def test_compute_defaults_to_latest_input_time_stamp() -> None:
    diag, t_mid, out = _wired()
    diag.initialize()
    t_mid.tracking.update_time_stamp(datetime(2001, 6, 1))

    diag.compute()

    assert out.tracking.time_stamp == datetime(2001, 6, 1)


@pytest.mark.unit
def test_compute_without_time_stamps_warns_and_leaves_output_unstamped() -> None:
    diag, _, out = _wired()
    diag.initialize()

    with pytest.warns(UserWarning, match="before any input carries a time stamp"):
        diag.compute()

    assert out.tracking.time_stamp is None
    assert out.tracking.updates == 1
    assert np.all(out.data == 6.0)


@pytest.mark.unit
def test_compute_never_mutates_inputs() -> None:
    diag, t_mid, _ = _wired()
    diag.initialize()
    diag.compute()

    assert np.all(t_mid.data == 3.0)


@pytest.mark.unit
def test_declare_grids_may_only_run_once() -> None:
    diag = DoublingDiag()
    diag.declare_grids(GRIDS)

    with pytest.raises(LifecycleError, match="declare_grids"):
        diag.declare_grids(GRIDS)


@pytest.mark.unit
def test_initialize_before_declare_is_rejected() -> None:
    with pytest.raises(LifecycleError, match=r"initialize\(\) called in state 'constructed'"):
        DoublingDiag().initialize()


@pytest.mark.unit
def test_compute_before_initialize_is_rejected() -> None:
    diag, _, _ = _wired()
    with pytest.raises(LifecycleError, match="compute"):
        diag.compute()


@pytest.mark.unit
def test_initialize_fails_when_required_inputs_are_unbound() -> None:
    diag = DoublingDiag()
    diag.declare_grids(GRIDS)

    with pytest.raises(BindingError, match="required fields were never bound"):
        diag.initialize()


@pytest.mark.unit
def test_requests_are_frozen_after_declaration() -> None:
    diag, _, _ = _wired()
    with pytest.raises(LifecycleError, match="only be added while declaring"):
        diag.add_field(Required, "qv", LAYOUT, K, "grid")


@pytest.mark.unit
def test_no_calls_after_finalize() -> None:
    diag, t_mid, _ = _wired()
    diag.initialize()
    diag.finalize()

    with pytest.raises(LifecycleError):
        diag.compute()
    with pytest.raises(LifecycleError):
        diag.set_required_field(t_mid)
