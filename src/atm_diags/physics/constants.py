from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

import numpy as np

from atm_diags.units import J, K, Pa, Unit, kg, m, mol, nondimensional, s

logger = logging.getLogger(__name__)

# Same sentinel as the model's ``invalid<Real>()``: largest finite double.
INVALID_VALUE = float(np.finfo(np.float64).max)


def is_invalid(value: float | PhysicalConstant) -> bool:
    if isinstance(value, PhysicalConstant):
        return not value.unit.valid or value.value == INVALID_VALUE
    return value == INVALID_VALUE


@dataclass(frozen=True, slots=True)
class PhysicalConstant:
    """Numeric value paired with its unit.

    ``float(c)`` and ``c.value`` give the raw number for numeric call sites.
    Arithmetic between constants combines values and units together, so a
    derived constant always carries the dimensionally consistent unit. Plain
    numbers are treated as nondimensional operands.
    """

    value: float
    unit: Unit

    def __float__(self) -> float:
        return float(self.value)

    def __mul__(self, other: PhysicalConstant | float) -> PhysicalConstant:
        o = _as_constant(other)
        return PhysicalConstant(self.value * o.value, self.unit * o.unit)

    def __rmul__(self, other: float) -> PhysicalConstant:
        return _as_constant(other) * self

    def __truediv__(self, other: PhysicalConstant | float) -> PhysicalConstant:
        o = _as_constant(other)
        return PhysicalConstant(self.value / o.value, self.unit / o.unit)

    def __rtruediv__(self, other: float) -> PhysicalConstant:
        return _as_constant(other) / self

    def __add__(self, other: PhysicalConstant | float) -> PhysicalConstant:
        o = _as_constant(other)
        _require_same_unit(self, o, "+")
        return PhysicalConstant(self.value + o.value, self.unit)

    def __radd__(self, other: float) -> PhysicalConstant:
        return _as_constant(other) + self

    def __sub__(self, other: PhysicalConstant | float) -> PhysicalConstant:
        o = _as_constant(other)
        _require_same_unit(self, o, "-")
        return PhysicalConstant(self.value - o.value, self.unit)

    def __rsub__(self, other: float) -> PhysicalConstant:
        return _as_constant(other) - self

    def __neg__(self) -> PhysicalConstant:
        return PhysicalConstant(-self.value, self.unit)

    def __pow__(self, n: int) -> PhysicalConstant:
        return PhysicalConstant(self.value**n, self.unit**n)

    def __str__(self) -> str:
        return f"{self.value!r} {self.unit}"


INVALID_CONSTANT = PhysicalConstant(INVALID_VALUE, Unit.invalid())


def _as_constant(value: PhysicalConstant | float) -> PhysicalConstant:
    if isinstance(value, PhysicalConstant):
        return value
    return PhysicalConstant(float(value), nondimensional)


def _require_same_unit(a: PhysicalConstant, b: PhysicalConstant, op: str) -> None:
    if a.unit != b.unit:
        raise ValueError(
            f"Cannot apply '{op}' to constants with different units: [{a.unit}] and [{b.unit}]."
        )


# ---------------------------------------------------------------------------
# Table definition. Primitives are literal (value, unit) pairs; derived
# entries list the constants they depend on and a function combining them.

Derivation = tuple[tuple[str, ...], Callable[..., PhysicalConstant]]

_DENSITY = kg / m**3
_SPECIFIC_GAS = J / (kg * K)

PRIMITIVES: dict[str, tuple[float, Unit]] = {
    "Cpair": (1004.64, _SPECIFIC_GAS),
    "Rair": (287.042, _SPECIFIC_GAS),
    "RH2O": (461.505, _SPECIFIC_GAS),
    "RHO_H2O": (1000.0, _DENSITY),
    "RhoIce": (917.0, _DENSITY),
    # Molecular weights in kg/kmol; the unit records the mass/amount dimension.
    "MWH2O": (18.016, kg / mol),
    "MWdry": (28.966, kg / mol),
    "o2mmr": (0.23143, nondimensional),
    "gravit": (9.80616, m / s**2),
    "LatVap": (2501000.0, J / kg),
    "LatIce": (333700.0, J / kg),
    "CpLiq": (4188.0, _SPECIFIC_GAS),
    "Tmelt": (273.15, K),
    "Pi": (3.14159265358979323, nondimensional),
    "RHO_RIMEMIN": (50.0, _DENSITY),
    "RHO_RIMEMAX": (900.0, _DENSITY),
    "THIRD": (1.0 / 3.0, nondimensional),
    "SXTH": (1.0 / 6.0, nondimensional),
    "BIMM": (2.0, nondimensional),
    "QSMALL": (1.0e-14, nondimensional),
    "QTENDSMALL": (1.0e-20, nondimensional),
    "BSMALL": (1.0e-15, nondimensional),
    "NSMALL": (1.0e-16, nondimensional),
    "ZERO": (0.0, nondimensional),
    "ONE": (1.0, nondimensional),
    "P0": (100000.0, Pa),
    "macheps": (float(np.finfo(np.float64).eps), nondimensional),
    "dt_left_tol": (1.0e-4, s),
    "bcn": (2.0, nondimensional),
    "dropmass": (5.2e-7, kg),
    "NCCNST": (200.0e6, 1 / m**3),
    "incloud_limit": (5.1e-3, nondimensional),
    "precip_limit": (1.0e-2, nondimensional),
    "Karman": (0.4, nondimensional),
    # Per kmol, consistent with the kg/kmol molecular weights above.
    "Avogad": (6.02214e26, 1 / mol),
    "Boltz": (1.38065e-23, J / K),
    "f1r": (0.78, nondimensional),
    "f2r": (0.32, nondimensional),
    "nmltratio": (1.0, nondimensional),
    "basetemp": (300.0, K),
    "r_earth": (6.376e6, m),
    "stebol": (5.670374419e-8, kg / (s**3 * K**4)),
    "omega": (7.292e-5, 1 / s),
    "orocnst": (1.0, nondimensional),
    "z0fac": (0.075, nondimensional),
    "earth_ellipsoid1": (111132.92, m),
    "earth_ellipsoid2": (559.82, m),
    "earth_ellipsoid3": (1.175, m),
}


def _alias(name: str) -> Derivation:
    return (name,), lambda c: c


def _lit(value: float, unit: Unit) -> PhysicalConstant:
    return PhysicalConstant(value, unit)


DERIVED: dict[str, Derivation] = {
    "RV": _alias("RH2O"),
    "RD": _alias("Rair"),
    "CP": _alias("Cpair"),
    "RHOW": _alias("RHO_H2O"),
    "INV_RHOW": _alias("INV_RHO_H2O"),
    "T_zerodegc": _alias("Tmelt"),
    "MWWV": _alias("MWH2O"),
    "INV_RHO_H2O": (("RHO_H2O",), lambda rho: 1.0 / rho),
    "INV_RHO_RIMEMAX": (("RHO_RIMEMAX",), lambda rho: 1.0 / rho),
    "INV_CP": (("CP",), lambda cp: 1.0 / cp),
    "ep_2": (("MWH2O", "MWdry"), lambda h2o, dry: h2o / dry),
    "T_homogfrz": (("Tmelt",), lambda t: t - _lit(40.0, K)),
    "T_rainfrz": (("Tmelt",), lambda t: t - _lit(4.0, K)),
    "PIOV3": (("Pi", "THIRD"), lambda pi, third: pi * third),
    "PIOV6": (("Pi", "SXTH"), lambda pi, sxth: pi * sxth),
    "CONS1": (("PIOV6", "RHOW"), lambda piov6, rhow: piov6 * rhow),
    "CONS2": (("PIOV3", "RHOW"), lambda piov3, rhow: 4.0 * piov3 * rhow),
    # 1/(CONS2 * (25e-6 m)^3); the radius cubed is folded into the literal.
    "CONS3": (("CONS2",), lambda cons2: 1.0 / (cons2 * _lit(1.562500000000000e-14, m**3))),
    "CONS5": (("PIOV6", "BIMM"), lambda piov6, bimm: piov6 * bimm),
    "CONS6": (
        ("PIOV6", "RHOW", "BIMM"),
        lambda piov6, rhow, bimm: piov6 * piov6 * rhow * bimm,
    ),
    "CONS7": (("PIOV3", "RHOW"), lambda piov3, rhow: 4.0 * piov3 * rhow * 1.0e-18),
    "RHOSUR": (("P0", "RD", "Tmelt"), lambda p0, rd, tmelt: p0 / (rd * tmelt)),
    "rhosui": (("RD",), lambda rd: _lit(60000.0, Pa) / (rd * _lit(253.15, K))),
    "RHO_1000MB": (("P0", "RD", "Tmelt"), lambda p0, rd, tmelt: p0 / (rd * tmelt)),
    "RHO_600MB": (("RD",), lambda rd: _lit(60000.0, Pa) / (rd * _lit(253.15, K))),
    "Rgas": (("Avogad", "Boltz"), lambda avogad, boltz: avogad * boltz),
    "RWV": (("Rgas", "MWWV"), lambda rgas, mwwv: rgas / mwwv),
    "ZVIR": (("RWV", "Rair"), lambda rwv, rair: rwv / rair - 1.0),
}

VTABLE_DIM0 = 300
VTABLE_DIM1 = 10
MU_R_TABLE_DIM = 150
# Warm-rain scheme: 1 Seifert-Beheng 2001, 2 Beheng 1994, 3 Khairoutdinov-Kogan 2000.
IPARAM = 3

GAS_MOL_WEIGHTS: dict[str, float] = {
    "co2": 44.0095,
    "o3": 47.9982,
    "n2o": 44.0128,
    "co": 28.0101,
    "ch4": 16.04246,
    "o2": 31.998,
    "n2": 28.0134,
    "cfc11": 136.0,
    "cfc12": 120.0,
}


class Constants(Mapping[str, PhysicalConstant]):
    """Immutable registry of named physical constants.

    Entries are reachable both as attributes (``constants.gravit``) and by key
    (``constants["gravit"]``). ``get`` returns ``INVALID_CONSTANT`` for unknown
    names instead of ``None`` so callers can test it with ``is_invalid``.
    """

    def __init__(self, table: Mapping[str, PhysicalConstant]):
        object.__setattr__(self, "_table", MappingProxyType(dict(table)))

    def __getitem__(self, name: str) -> PhysicalConstant:
        return self._table[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __getattr__(self, name: str) -> PhysicalConstant:
        try:
            return self.__dict__["_table"][name]
        except KeyError:
            raise AttributeError(f"No physical constant named {name!r}.") from None

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Constants registry is read-only.")

    def get(  # type: ignore[override]
        self, name: str, default: PhysicalConstant = INVALID_CONSTANT
    ) -> PhysicalConstant:
        return self._table.get(name, default)

    def get_gas_mol_weight(self, gas_name: str) -> float:
        """Molecular weight in g/mol, or ``INVALID_VALUE`` for an unknown gas."""
        key = gas_name.strip().lower()
        if key == "h2o":
            return float(self._table["MWH2O"])
        return GAS_MOL_WEIGHTS.get(key, INVALID_VALUE)


def build_constants(
    primitives: Mapping[str, tuple[float, Unit]] = PRIMITIVES,
    derived: Mapping[str, Derivation] = DERIVED,
) -> Constants:
    """Build the registry: primitives first, then derived entries in dependency order.

    Declaration order does not matter. Unknown dependencies and circular
    derivations raise ``ValueError``.
    """
    overlap = set(primitives) & set(derived)
    if overlap:
        raise ValueError(f"Constants defined both as primitive and derived: {sorted(overlap)}.")

    table: dict[str, PhysicalConstant] = {
        name: PhysicalConstant(float(value), unit) for name, (value, unit) in primitives.items()
    }
    resolving: list[str] = []

    def resolve(name: str) -> PhysicalConstant:
        if name in table:
            return table[name]
        if name not in derived:
            requester = resolving[-1] if resolving else "<root>"
            raise ValueError(f"Constant {requester!r} depends on unknown constant {name!r}.")
        if name in resolving:
            cycle = " -> ".join([*resolving[resolving.index(name) :], name])
            raise ValueError(f"Circular constant derivation: {cycle}.")
        resolving.append(name)
        deps, fn = derived[name]
        result = fn(*(resolve(dep) for dep in deps))
        resolving.pop()
        table[name] = result
        return result

    for name in derived:
        resolve(name)

    logger.debug(
        "Built constants registry with %d primitive and %d derived entries.",
        len(primitives),
        len(derived),
    )
    return Constants(table)


@lru_cache(maxsize=1)
def get_constants() -> Constants:
    return build_constants()


def __getattr__(name: str) -> PhysicalConstant:
    # Module-level access, e.g. ``from atm_diags.physics import constants as PC; PC.gravit``.
    table = get_constants()
    if name in table:
        return table[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
