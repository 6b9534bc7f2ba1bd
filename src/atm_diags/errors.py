from __future__ import annotations


class DiagnosticError(ValueError):
    """Base class for configuration and wiring defects in diagnostics."""


class ConfigurationError(DiagnosticError):
    """Invalid or missing diagnostic parameters, detected at construction."""


class CompatibilityError(DiagnosticError):
    """Input fields that cannot be combined (layout, datatype, grid or unit)."""


class UnitMismatchError(CompatibilityError):
    pass


class BindingError(DiagnosticError):
    """A field handed to a diagnostic does not match what it declared."""


class LifecycleError(DiagnosticError):
    """A lifecycle call arrived in the wrong state."""
