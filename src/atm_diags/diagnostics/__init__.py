from atm_diags.diagnostics.base import AtmosphereDiagnostic, DiagnosticState
from atm_diags.diagnostics.binary_ops import (
    INVALID_OP_CODE,
    BinaryOpsDiag,
    apply_binary_op,
    apply_binary_op_units,
    get_binary_operator_code,
)
from atm_diags.diagnostics.ledger import FieldRequestLedger

__all__ = [
    "INVALID_OP_CODE",
    "AtmosphereDiagnostic",
    "BinaryOpsDiag",
    "DiagnosticState",
    "FieldRequestLedger",
    "apply_binary_op",
    "apply_binary_op_units",
    "get_binary_operator_code",
]
