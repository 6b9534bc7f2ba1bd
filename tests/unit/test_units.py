import pytest

from atm_diags.units import (
    J,
    K,
    N,
    Pa,
    Unit,
    kg,
    m,
    mol,
    nondimensional,
    parse_unit,
    s,
    unit_divide,
    unit_multiply,
    unit_pow,
    units_equal,
)


@pytest.mark.unit
def test_derived_si_units_reduce_to_base_dimensions() -> None:
    assert N == kg * m / s**2
    assert Pa == kg / (m * s**2)
    assert J == N * m
    assert J / (kg * K) == m**2 / (s**2 * K)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("a", "b"),
    [(kg, m), (K, s**2), (Pa, mol), (J / kg, nondimensional), (m**3, 1 / kg)],
)
def test_multiply_and_divide_are_exact_inverses(a: Unit, b: Unit) -> None:
    assert unit_multiply(a, b) == unit_multiply(b, a)
    assert unit_divide(unit_multiply(a, b), b) == a
    assert unit_multiply(unit_divide(a, b), b) == a


@pytest.mark.unit
def test_pow_scales_exponents_and_zero_power_is_nondimensional() -> None:
    assert unit_pow(m, 3) == m * m * m
    assert unit_pow(s, -2) == 1 / (s * s)
    assert unit_pow(Pa, 0) == nondimensional
    assert unit_pow(kg / m**3, -1) == m**3 / kg


@pytest.mark.unit
def test_equality_is_structural_and_exact() -> None:
    assert units_equal(kg / m**3, Unit((1, -3, 0, 0, 0, 0, 0)))
    assert not units_equal(K, kg)
    assert nondimensional.is_nondimensional
    assert not (m / m * K).is_nondimensional


@pytest.mark.unit
def test_invalid_unit_propagates_and_never_equals_a_valid_unit() -> None:
    bad = Unit.invalid()

    assert (bad * kg).valid is False
    assert (kg / bad).valid is False
    assert (bad**2).valid is False
    assert bad != nondimensional
    assert str(bad) == "INVALID"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("K", K),
        ("kg/m^3", kg / m**3),
        ("m/s^2", m / s**2),
        ("J/kg/K", J / (kg * K)),
        ("m s**-2", m / s**2),
        ("kg*m^2/s^2", J),
        ("1/s", 1 / s),
        ("kg/kg", nondimensional),
        ("1", nondimensional),
        ("", nondimensional),
    ],
)
def test_parse_unit(text: str, expected: Unit) -> None:
    assert parse_unit(text) == expected


@pytest.mark.unit
def test_parse_unit_rejects_unknown_symbols() -> None:
    with pytest.raises(ValueError, match="Unknown unit symbol 'furlong'"):
        parse_unit("furlong/s")


@pytest.mark.unit
def test_unit_string_rendering() -> None:
    assert str(kg / m**3) == "kg/m^3"
    assert str(m / s**2) == "m/s^2"
    assert str(Pa) == "kg/(m s^2)"
    assert str(1 / s) == "1/s"
    assert str(nondimensional) == "1"
