from atm_diags.field.field import Field, FieldTracking
from atm_diags.field.identifier import FieldIdentifier
from atm_diags.field.layout import FieldLayout, FieldTag
from atm_diags.field.request import Computed, FieldRequest, Required, RequestType

__all__ = [
    "Computed",
    "Field",
    "FieldIdentifier",
    "FieldLayout",
    "FieldRequest",
    "FieldTag",
    "FieldTracking",
    "RequestType",
    "Required",
]
