from __future__ import annotations

import logging
from collections.abc import Sequence

from atm_diags.errors import BindingError
from atm_diags.field import Field, FieldIdentifier, FieldLayout, FieldRequest, RequestType
from atm_diags.units import Unit

logger = logging.getLogger(__name__)


class FieldRequestLedger:
    """Declared field requests of one diagnostic and the fields bound to them."""

    def __init__(self, owner: str):
        self.owner = owner
        self._required: list[FieldRequest] = []
        self._computed: list[FieldRequest] = []
        self._fields_in: list[Field] = []
        self._fields_out: list[Field] = []

    def add_field(
        self,
        kind: RequestType,
        name: str,
        layout: FieldLayout | None,
        unit: Unit | None,
        grid_name: str,
    ) -> FieldRequest:
        req = FieldRequest(
            kind=RequestType(kind), name=name, grid_name=grid_name, layout=layout, unit=unit
        )
        self._requests(req.kind).append(req)
        logger.debug("%s: declared %s", self.owner, req.describe())
        return req

    def has_required_field(self, fid: FieldIdentifier) -> bool:
        return any(req.matches(fid) for req in self._required)

    def has_computed_field(self, fid: FieldIdentifier) -> bool:
        return any(req.matches(fid) for req in self._computed)

    def set_required_field(self, field: Field) -> None:
        self._bind(RequestType.REQUIRED, field, self._fields_in)

    def set_computed_field(self, field: Field) -> None:
        self._bind(RequestType.COMPUTED, field, self._fields_out)

    def get_required_field_requests(self) -> Sequence[FieldRequest]:
        return tuple(self._required)

    def get_computed_field_requests(self) -> Sequence[FieldRequest]:
        return tuple(self._computed)

    def get_fields_in(self) -> Sequence[Field]:
        return tuple(self._fields_in)

    def get_fields_out(self) -> Sequence[Field]:
        return tuple(self._fields_out)

    def get_field_in(self, name: str, grid_name: str | None = None) -> Field:
        return self._lookup(self._fields_in, "input", name, grid_name)

    def get_field_out(self, name: str, grid_name: str | None = None) -> Field:
        return self._lookup(self._fields_out, "output", name, grid_name)

    def unbound_required_requests(self) -> list[FieldRequest]:
        return [
            req
            for req in self._required
            if not any(req.matches(f.identifier) for f in self._fields_in)
        ]

    def _requests(self, kind: RequestType) -> list[FieldRequest]:
        if kind is RequestType.REQUIRED:
            return self._required
        return self._computed

    def _bind(self, kind: RequestType, field: Field, bound: list[Field]) -> None:
        fid = field.identifier
        if not any(req.matches(fid) for req in self._requests(kind)):
            verb = "required" if kind is RequestType.REQUIRED else "computed"
            raise BindingError(
                f"Field is not {verb} by this diagnostic.\n"
                f"    field id: {fid.get_id_string()}\n"
                f"    diagnostic: {self.owner}\n"
                "Field resolution upstream handed over a field that was never requested."
            )
        for idx, existing in enumerate(bound):
            if existing.identifier == fid:
                if existing != field:
                    bound[idx] = field
                    logger.debug(
                        "%s: rebound %s field %s", self.owner, kind.value, fid.get_id_string()
                    )
                return
        bound.append(field)
        logger.debug("%s: bound %s field %s", self.owner, kind.value, fid.get_id_string())

    def _lookup(
        self, fields: list[Field], what: str, name: str, grid_name: str | None
    ) -> Field:
        for f in fields:
            if f.name == name and (grid_name is None or f.identifier.grid_name == grid_name):
                return f
        where = "" if grid_name is None else f" on grid {grid_name!r}"
        raise BindingError(f"No {what} field named {name!r}{where} is bound to {self.owner}.")
