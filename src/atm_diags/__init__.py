"""Unit-aware derived diagnostics for atmospheric simulation fields."""

from atm_diags.diagnostics import AtmosphereDiagnostic, BinaryOpsDiag
from atm_diags.driver import DiagnosticsDriver, FieldRepository, run_diagnostics
from atm_diags.errors import (
    BindingError,
    CompatibilityError,
    ConfigurationError,
    DiagnosticError,
    LifecycleError,
    UnitMismatchError,
)

__version__ = "0.1.0"

__all__ = [
    "AtmosphereDiagnostic",
    "BinaryOpsDiag",
    "BindingError",
    "CompatibilityError",
    "ConfigurationError",
    "DiagnosticError",
    "DiagnosticsDriver",
    "FieldRepository",
    "LifecycleError",
    "UnitMismatchError",
    "run_diagnostics",
]
