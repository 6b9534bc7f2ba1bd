from datetime import datetime, timedelta

import numpy as np
import pytest

from atm_diags import driver as driver_module
from atm_diags.diagnostics import BinaryOpsDiag, DiagnosticState
from atm_diags.driver import DiagnosticsDriver, FieldRepository, build_driver, run_diagnostics
from atm_diags.errors import BindingError, CompatibilityError, ConfigurationError, LifecycleError
from atm_diags.field import Field, FieldIdentifier, FieldLayout, FieldTag
from atm_diags.grids import Grid, GridsManager
from atm_diags.models import RunConfig
from atm_diags.units import K, Pa, kg, m, nondimensional, s


def _config(**overrides: object) -> RunConfig:
    payload: dict[str, object] = {
        "runtime": {"start": "2000-01-01T00:00:00", "dt_seconds": 600.0, "n_steps": 2},
        "grids": [{"name": "physics", "ncols": 2, "nlevs": 3}],
        "inputs": [
            {"name": "qc", "grid_name": "physics", "units": "kg/kg", "value": 0.5},
            {"name": "dp", "grid_name": "physics", "units": "Pa", "value": 4.0},
        ],
        "diagnostics": [
            {"field_1": "qc", "field_2": "dp", "binary_op": "times", "grid_name": "physics"},
            {"field_1": "qc_times_dp", "binary_op": "over_gravit", "grid_name": "physics"},
        ],
    }
    payload.update(overrides)
    return RunConfig.model_validate(payload)


@pytest.mark.integration
def test_chained_diagnostics_consume_upstream_outputs() -> None:
    driver = run_diagnostics(_config())
    first, second = driver.outputs

    assert first.name == "qc_times_dp"
    assert first.identifier.unit == Pa
    assert np.all(first.data == 2.0)
    assert second.name == "qc_times_dp_over_gravit"
    assert second.identifier.unit == kg / m**2
    np.testing.assert_allclose(second.data, 2.0 / 9.80616)
    assert second.identifier.layout.tags == (FieldTag.COL, FieldTag.LEV)


@pytest.mark.integration
def test_outputs_carry_the_last_step_time_stamp() -> None:
    driver = run_diagnostics(_config())

    expected = datetime(2000, 1, 1) + 2 * timedelta(seconds=600.0)
    for f in driver.outputs:
        assert f.tracking.time_stamp == expected
        assert f.tracking.updates == 2
    for diag in driver.registry:
        assert diag.state is DiagnosticState.FINALIZED


@pytest.mark.integration
def test_registry_hands_out_stable_handles() -> None:
    driver = build_driver(_config())

    first = driver.registry.get(0)
    second = driver.registry.get(1)
    assert isinstance(first, BinaryOpsDiag)
    assert first.field_1 == "qc"
    assert second.field_1 == "qc_times_dp"
    with pytest.raises(KeyError):
        driver.registry.get(2)


@pytest.mark.integration
def test_missing_upstream_field_aborts_initialization() -> None:
    cfg = _config(
        diagnostics=[{"field_1": "qv", "binary_op": "times_rho_h2o", "grid_name": "physics"}]
    )
    driver = build_driver(cfg)

    with pytest.raises(BindingError, match="No field named 'qv'"):
        driver.initialize()


@pytest.mark.integration
def test_unit_incompatible_diagnostic_aborts_initialization() -> None:
    cfg = _config(
        diagnostics=[
            {"field_1": "qc", "field_2": "dp", "binary_op": "plus", "grid_name": "physics"}
        ]
    )
    with pytest.raises(CompatibilityError):
        run_diagnostics(cfg)


@pytest.mark.integration
def test_invalid_diagnostic_config_fails_before_any_resolution() -> None:
    cfg = _config(
        diagnostics=[{"field_1": "qc", "binary_op": "foo", "grid_name": "physics"}]
    )
    with pytest.raises(ConfigurationError, match="foo"):
        build_driver(cfg)
    with pytest.raises(ConfigurationError, match="Unknown diagnostic kind 'vertical_integral'"):
        build_driver(_config(diagnostics=[{"kind": "vertical_integral"}]))


@pytest.mark.integration
def test_driver_rejects_out_of_order_calls() -> None:
    driver = build_driver(_config())

    with pytest.raises(LifecycleError, match="before initialize"):
        driver.run()
    driver.initialize()
    with pytest.raises(LifecycleError, match="called twice"):
        driver.initialize()
    with pytest.raises(LifecycleError, match="after the driver is initialized"):
        driver.add_diagnostic(
            BinaryOpsDiag({"field_1": "qc", "binary_op": "times_gravit", "grid_name": "physics"})
        )


@pytest.mark.integration
def test_manual_wiring_with_field_repository() -> None:
    grids = GridsManager([Grid(name="g", ncols=2, nlevs=2)])
    layout = FieldLayout(tags=(FieldTag.COL,), dims=(2,))
    repo = FieldRepository()
    for name, value in [("A", 1.0), ("B", 1.0)]:
        f = Field(FieldIdentifier(name=name, layout=layout, unit=K, grid_name="g"))
        f.allocate_view().deep_copy(value)
        repo.add_field(f)
    driver = DiagnosticsDriver(grids, repo)
    handle = driver.add_diagnostic(
        BinaryOpsDiag({"field_1": "A", "field_2": "B", "binary_op": "plus", "grid_name": "g"})
    )

    driver.initialize()
    driver.run()

    out = driver.registry.get(handle).get_diagnostic()
    assert repo.get_field("A_plus_B", "g") is out
    assert out.identifier.unit == K
    assert np.all(out.data == 2.0)


@pytest.mark.integration
def test_repository_rejects_conflicting_fields() -> None:
    layout = FieldLayout(tags=(FieldTag.COL,), dims=(2,))
    repo = FieldRepository()
    repo.add_field(Field(FieldIdentifier(name="A", layout=layout, unit=K, grid_name="g")))

    with pytest.raises(ValueError, match="already exists"):
        repo.add_field(
            Field(FieldIdentifier(name="A", layout=layout, unit=nondimensional, grid_name="g"))
        )


@pytest.mark.integration
def test_run_config_rejects_fields_on_unknown_grids() -> None:
    with pytest.raises(ValueError, match="unknown grid 'dyn'"):
        _config(inputs=[{"name": "T", "grid_name": "dyn", "units": "K"}])


@pytest.mark.integration
def test_input_units_are_parsed_from_strings() -> None:
    driver = build_driver(
        _config(inputs=[{"name": "w", "grid_name": "physics", "units": "m/s", "value": 1.0}])
    )

    assert driver.fields.get_field("w", "physics").identifier.unit == m / s


@pytest.mark.integration
def test_failing_step_still_finalizes_every_diagnostic(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    built: list[DiagnosticsDriver] = []
    real_build_driver = driver_module.build_driver

    def _recording_build_driver(cfg: RunConfig) -> DiagnosticsDriver:
        built.append(real_build_driver(cfg))
        return built[-1]

    def _failing_compute(self: BinaryOpsDiag) -> None:
        raise RuntimeError("kernel failure")

    monkeypatch.setattr(driver_module, "build_driver", _recording_build_driver)
    monkeypatch.setattr(BinaryOpsDiag, "_compute_impl", _failing_compute)

    with pytest.raises(RuntimeError, match="kernel failure"):
        run_diagnostics(_config())

    (driver,) = built
    assert [diag.state for diag in driver.registry] == [DiagnosticState.FINALIZED] * 2
