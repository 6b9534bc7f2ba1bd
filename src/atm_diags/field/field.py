from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import numpy as np
from numpy.typing import DTypeLike

from atm_diags.field.identifier import FieldIdentifier


@dataclass(slots=True)
class FieldTracking:
    time_stamp: datetime | None = None
    updates: int = 0

    def update_time_stamp(self, ts: datetime) -> None:
        self.time_stamp = ts
        self.updates += 1


class Field:
    """Identifier, tracking metadata and a numpy buffer shaped by the layout.

    Copies of a ``Field`` handle share the buffer; two handles compare equal when
    they carry the same identifier and view the same buffer.
    """

    def __init__(self, identifier: FieldIdentifier, *, dtype: DTypeLike = np.float64):
        self._identifier = identifier
        self._dtype = np.dtype(dtype)
        self._data: np.ndarray | None = None
        self.tracking = FieldTracking()

    @property
    def identifier(self) -> FieldIdentifier:
        return self._identifier

    @property
    def name(self) -> str:
        return self._identifier.name

    @property
    def data_type(self) -> np.dtype:
        return self._dtype

    @property
    def is_allocated(self) -> bool:
        return self._data is not None

    @property
    def data(self) -> np.ndarray:
        if self._data is None:
            raise RuntimeError(f"Field {self.name!r} has no allocated storage.")
        return self._data

    def allocate_view(self) -> Field:
        if self._data is None:
            self._data = np.zeros(self._identifier.layout.shape, dtype=self._dtype)
        return self

    def clone(self, name: str | None = None) -> Field:
        fid = self._identifier
        if name is not None:
            fid = fid.model_copy(update={"name": name})
        out = Field(fid, dtype=self._dtype)
        out.allocate_view()
        if self._data is not None:
            np.copyto(out._data, self._data)
        out.tracking.time_stamp = self.tracking.time_stamp
        return out

    def deep_copy(self, src: Field | float) -> None:
        if isinstance(src, Field):
            self._require_same_layout(src, "deep_copy")
            np.copyto(self.data, src.data, casting="same_kind")
        else:
            self.data[...] = src

    def update(self, x: Field | float, alpha: float, beta: float) -> None:
        """In place ``y = beta * y + alpha * x``."""
        other = self._operand(x, "update")
        y = self.data
        if beta != 1:
            np.multiply(y, beta, out=y, casting="unsafe")
        np.add(y, np.multiply(other, alpha), out=y, casting="unsafe")

    def scale(self, x: Field | float) -> None:
        y = self.data
        np.multiply(y, self._operand(x, "scale"), out=y, casting="unsafe")

    def scale_inv(self, x: Field | float) -> None:
        y = self.data
        np.divide(y, self._operand(x, "scale_inv"), out=y, casting="unsafe")

    def _operand(self, x: Field | float, op: str) -> np.ndarray | float:
        if isinstance(x, Field):
            self._require_same_layout(x, op)
            return x.data
        return float(x)

    def _require_same_layout(self, other: Field, op: str) -> None:
        mine = self._identifier.layout
        theirs = other.identifier.layout
        if mine != theirs:
            raise ValueError(
                f"Field.{op} requires identical layouts: {self.name} has {mine.to_string()}, "
                f"{other.name} has {theirs.to_string()}."
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return NotImplemented
        return self._identifier == other._identifier and self._data is other._data

    def __hash__(self) -> int:
        return hash(self._identifier)

    def __repr__(self) -> str:
        return f"Field({self._identifier.get_id_string()}, dtype={self._dtype.name})"
