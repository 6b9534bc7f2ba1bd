from atm_diags.models.config import (
    BINARY_OP_NAMES,
    BinaryOpsCfg,
    DiagnosticCfg,
    FieldInitCfg,
    RunConfig,
    RuntimeCfg,
)

__all__ = [
    "BINARY_OP_NAMES",
    "BinaryOpsCfg",
    "DiagnosticCfg",
    "FieldInitCfg",
    "RunConfig",
    "RuntimeCfg",
]
