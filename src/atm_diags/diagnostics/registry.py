from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from atm_diags.diagnostics.base import AtmosphereDiagnostic
from atm_diags.diagnostics.binary_ops import BinaryOpsDiag
from atm_diags.errors import ConfigurationError
from atm_diags.models.config import DiagnosticCfg

DIAGNOSTIC_BACKENDS: dict[str, type[AtmosphereDiagnostic[Any]]] = {
    "binary_ops": BinaryOpsDiag,
}


def build_diagnostic(params: DiagnosticCfg | Mapping[str, Any]) -> AtmosphereDiagnostic[Any]:
    kind = params.kind if isinstance(params, DiagnosticCfg) else params.get("kind", "binary_ops")
    try:
        backend = DIAGNOSTIC_BACKENDS[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown diagnostic kind '{kind}'. "
            f"Available kinds: {', '.join(sorted(DIAGNOSTIC_BACKENDS))}."
        ) from None
    return backend(params)  # type: ignore[arg-type]
