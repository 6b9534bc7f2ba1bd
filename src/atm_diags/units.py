from __future__ import annotations

import re
from dataclasses import dataclass

BASE_DIMENSIONS = ("mass", "length", "time", "temperature", "amount", "current", "luminosity")
_BASE_SYMBOLS = ("kg", "m", "s", "K", "mol", "A", "cd")

_Exponents = tuple[int, int, int, int, int, int, int]


@dataclass(frozen=True, slots=True)
class Unit:
    """Physical unit as integer exponents over the SI base dimensions.

    Equality is exact and structural. The invalid unit compares unequal to every
    valid unit and propagates through all algebra without raising.
    """

    exponents: _Exponents = (0, 0, 0, 0, 0, 0, 0)
    valid: bool = True

    def __post_init__(self) -> None:
        if len(self.exponents) != len(BASE_DIMENSIONS):
            raise ValueError(
                f"Unit exponents must have {len(BASE_DIMENSIONS)} entries, "
                f"got {len(self.exponents)}."
            )

    @classmethod
    def nondimensional(cls) -> Unit:
        return cls()

    @classmethod
    def invalid(cls) -> Unit:
        return cls(valid=False)

    @property
    def is_nondimensional(self) -> bool:
        return self.valid and not any(self.exponents)

    def __mul__(self, other: Unit) -> Unit:
        return unit_multiply(self, other)

    def __truediv__(self, other: Unit) -> Unit:
        return unit_divide(self, other)

    def __rtruediv__(self, other: int) -> Unit:
        if other != 1:
            return NotImplemented
        return unit_pow(self, -1)

    def __pow__(self, n: int) -> Unit:
        return unit_pow(self, n)

    def __str__(self) -> str:
        if not self.valid:
            return "INVALID"
        num: list[str] = []
        den: list[str] = []
        for symbol, exp in zip(_BASE_SYMBOLS, self.exponents):
            if exp > 0:
                num.append(symbol if exp == 1 else f"{symbol}^{exp}")
            elif exp < 0:
                den.append(symbol if exp == -1 else f"{symbol}^{-exp}")
        numerator = " ".join(num) if num else "1"
        if not den:
            return numerator
        denominator = den[0] if len(den) == 1 else "(" + " ".join(den) + ")"
        return f"{numerator}/{denominator}"


def unit_multiply(a: Unit, b: Unit) -> Unit:
    if not (a.valid and b.valid):
        return Unit.invalid()
    return Unit(tuple(x + y for x, y in zip(a.exponents, b.exponents)))  # type: ignore[arg-type]


def unit_divide(a: Unit, b: Unit) -> Unit:
    if not (a.valid and b.valid):
        return Unit.invalid()
    return Unit(tuple(x - y for x, y in zip(a.exponents, b.exponents)))  # type: ignore[arg-type]


def unit_pow(a: Unit, n: int) -> Unit:
    if not a.valid:
        return Unit.invalid()
    return Unit(tuple(x * int(n) for x in a.exponents))  # type: ignore[arg-type]


def units_equal(a: Unit, b: Unit) -> bool:
    return a == b


def _base(index: int) -> Unit:
    exps = [0] * len(BASE_DIMENSIONS)
    exps[index] = 1
    return Unit(tuple(exps))  # type: ignore[arg-type]


nondimensional = Unit.nondimensional()
kg = _base(0)
m = _base(1)
s = _base(2)
K = _base(3)
mol = _base(4)
A = _base(5)
cd = _base(6)

N = kg * m / s**2
Pa = N / m**2
J = N * m
W = J / s
Hz = 1 / s

UNIT_SYMBOLS: dict[str, Unit] = {
    "kg": kg,
    "m": m,
    "s": s,
    "K": K,
    "mol": mol,
    "A": A,
    "cd": cd,
    "N": N,
    "Pa": Pa,
    "J": J,
    "W": W,
    "Hz": Hz,
}

_TOKEN = re.compile(r"\s*([*/])?\s*([A-Za-z]+|1)\s*(?:(?:\^|\*\*)\s*(-?\d+))?")


def parse_unit(text: str) -> Unit:
    """Parse strings like ``"kg/m^3"``, ``"J/kg/K"`` or ``"m s**-2"``.

    Factors are combined left to right; whitespace between factors means
    multiplication. ``"1"`` and the empty string are nondimensional.
    """
    source = text.strip()
    if source in ("", "1", "-", "nondim"):
        return nondimensional

    result = nondimensional
    pos = 0
    first = True
    while pos < len(source):
        match = _TOKEN.match(source, pos)
        if match is None or match.end() == pos:
            raise ValueError(f"Cannot parse unit string {text!r} near position {pos}.")
        op, symbol, exponent = match.groups()
        if first and op is not None and op != "/":
            raise ValueError(f"Unit string {text!r} cannot start with {op!r}.")
        if symbol == "1":
            factor = nondimensional
        elif symbol in UNIT_SYMBOLS:
            factor = UNIT_SYMBOLS[symbol]
        else:
            raise ValueError(
                f"Unknown unit symbol {symbol!r} in {text!r}. "
                f"Known symbols: {', '.join(UNIT_SYMBOLS)}."
            )
        if exponent is not None:
            factor = factor ** int(exponent)
        result = result / factor if op == "/" else result * factor
        pos = match.end()
        first = False
    return result
