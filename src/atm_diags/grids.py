from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from atm_diags.field.layout import FieldLayout, FieldTag


class Grid(BaseModel):
    """A named column/level discretization that hands out standard layouts."""

    model_config = ConfigDict(frozen=True)

    name: str
    ncols: int = Field(ge=1)
    nlevs: int = Field(ge=1)

    def get_3d_scalar_layout(self, mid_points: bool = True) -> FieldLayout:
        lev = FieldTag.LEV if mid_points else FieldTag.ILEV
        nlev = self.nlevs if mid_points else self.nlevs + 1
        return FieldLayout(tags=(FieldTag.COL, lev), dims=(self.ncols, nlev))

    def layout_for(self, tags: Iterable[FieldTag | str]) -> FieldLayout:
        """Build a layout for ``tags`` using this grid's extents."""
        extents = {
            FieldTag.COL: self.ncols,
            FieldTag.LEV: self.nlevs,
            FieldTag.ILEV: self.nlevs + 1,
        }
        resolved = tuple(FieldTag(t) for t in tags)
        missing = [t.value for t in resolved if t not in extents]
        if missing:
            raise ValueError(
                f"Grid {self.name!r} cannot size dimension tag(s) {missing}; "
                "only COL, LEV and ILEV have grid-defined extents."
            )
        return FieldLayout(tags=resolved, dims=tuple(extents[t] for t in resolved))


class GridsManager:
    """Provider of named grids, handed to diagnostics when they declare requests."""

    def __init__(self, grids: Iterable[Grid] = ()):
        self._grids: dict[str, Grid] = {}
        for grid in grids:
            self.add_grid(grid)

    def add_grid(self, grid: Grid) -> None:
        if grid.name in self._grids:
            raise ValueError(f"Grid {grid.name!r} is already registered.")
        self._grids[grid.name] = grid

    def get_grid(self, name: str) -> Grid:
        try:
            return self._grids[name]
        except KeyError:
            known = ", ".join(sorted(self._grids)) or "<none>"
            raise KeyError(f"Unknown grid {name!r}. Known grids: {known}.") from None

    def has_grid(self, name: str) -> bool:
        return name in self._grids

    def grid_names(self) -> list[str]:
        return list(self._grids)
