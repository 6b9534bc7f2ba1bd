from atm_diags.physics.constants import (
    INVALID_CONSTANT,
    INVALID_VALUE,
    Constants,
    PhysicalConstant,
    build_constants,
    get_constants,
    is_invalid,
)

__all__ = [
    "INVALID_CONSTANT",
    "INVALID_VALUE",
    "Constants",
    "PhysicalConstant",
    "build_constants",
    "get_constants",
    "is_invalid",
]
