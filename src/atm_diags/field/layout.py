from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class FieldTag(str, Enum):
    """Dimension tags used to describe field layouts."""

    COL = "COL"
    LEV = "LEV"
    ILEV = "ILEV"
    CMP = "CMP"
    TL = "TL"
    SWBND = "SWBND"
    LWBND = "LWBND"


class FieldLayout(BaseModel):
    """Ordered (tag, extent) pairs. Equality requires identical tags and extents."""

    model_config = ConfigDict(frozen=True)

    tags: tuple[FieldTag, ...]
    dims: tuple[int, ...]

    @field_validator("dims")
    @classmethod
    def _validate_dims(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if any(d < 0 for d in value):
            raise ValueError(f"FieldLayout extents must be >= 0, got {list(value)}.")
        return value

    @model_validator(mode="after")
    def _validate_rank(self) -> FieldLayout:
        if len(self.tags) != len(self.dims):
            raise ValueError(
                f"FieldLayout needs one extent per tag: got {len(self.tags)} tags "
                f"and {len(self.dims)} extents."
            )
        return self

    @classmethod
    def from_pairs(cls, tags: list[FieldTag | str], dims: list[int]) -> FieldLayout:
        return cls(tags=tuple(FieldTag(t) for t in tags), dims=tuple(dims))

    @property
    def rank(self) -> int:
        return len(self.dims)

    @property
    def shape(self) -> tuple[int, ...]:
        return self.dims

    @property
    def size(self) -> int:
        total = 1
        for d in self.dims:
            total *= d
        return total

    def clone(self) -> FieldLayout:
        return self.model_copy()

    def to_string(self) -> str:
        tags = ",".join(t.value for t in self.tags)
        dims = ",".join(str(d) for d in self.dims)
        return f"<{tags}>({dims})"

    def __str__(self) -> str:
        return self.to_string()
