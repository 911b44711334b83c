"""Tabulated entropy manifold on a regular (rho, e) grid (table backend).

Every output column (entropy and its five partials) is stored on the same
grid and interpolated bilinearly. Queries outside the grid are clamped to the
nearest edge and reported through ``SurrogateResult.extrapolated`` instead of
failing, so the caller decides whether an extrapolated state is usable.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Sequence, Tuple

import numpy as np

from ddfluid.common.exceptions import BackendEvaluationError, MissingSurrogateData

from ..state import SurrogateResult
from .registry import Surrogate, register

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = ("s", "dsde_rho", "dsdrho_e", "d2sde2", "d2sdedrho", "d2sdrho2")


def _bracket(axis: np.ndarray, x: float) -> Tuple[int, float, bool]:
    """Return lower node index, interpolation weight and whether x was clamped."""
    clamped = bool(x < axis[0] or x > axis[-1])
    x = min(max(x, axis[0]), axis[-1])
    i = int(np.searchsorted(axis, x, side="right")) - 1
    i = min(max(i, 0), len(axis) - 2)
    w = (x - axis[i]) / (axis[i + 1] - axis[i])
    return i, w, clamped


class EntropyLookUpTable:
    def __init__(self, density: Sequence[float], energy: Sequence[float], columns: Mapping[str, Any]):
        self.density = np.asarray(density, dtype=float)
        self.energy = np.asarray(energy, dtype=float)
        for name, axis in (("density", self.density), ("energy", self.energy)):
            if axis.ndim != 1 or axis.size < 2:
                raise ValueError(f"{name} axis needs at least two nodes")
            if np.any(np.diff(axis) <= 0):
                raise ValueError(f"{name} axis must be strictly increasing")

        shape = (self.density.size, self.energy.size)
        self.columns: Dict[str, np.ndarray] = {}
        for name in OUTPUT_COLUMNS:
            if name not in columns:
                raise MissingSurrogateData(f"Look-up table is missing output column '{name}'")
            data = np.asarray(columns[name], dtype=float)
            if data.shape != shape:
                raise ValueError(f"Column '{name}' has shape {data.shape}, expected {shape} (density x energy)")
            self.columns[name] = data

    @classmethod
    def from_surrogate(cls, surrogate: Surrogate, density: Sequence[float], energy: Sequence[float]) -> "EntropyLookUpTable":
        """Sample another surrogate on the given grid."""
        rho_axis = np.asarray(density, dtype=float)
        e_axis = np.asarray(energy, dtype=float)
        columns = {name: np.empty((rho_axis.size, e_axis.size)) for name in OUTPUT_COLUMNS}
        for i, rho in enumerate(rho_axis):
            for j, e in enumerate(e_axis):
                values = surrogate.evaluate(float(rho), float(e)).as_tuple()
                for name, value in zip(OUTPUT_COLUMNS, values):
                    columns[name][i, j] = value
        return cls(rho_axis, e_axis, columns)

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"density": self.density.tolist(), "energy": self.energy.tolist()}
        params.update({name: data.tolist() for name, data in self.columns.items()})
        return params

    def evaluate(self, rho: float, e: float) -> SurrogateResult:
        if not (np.isfinite(rho) and np.isfinite(e)):
            raise BackendEvaluationError(f"Non-finite table query rho={rho}, e={e}")
        i, wr, clamped_rho = _bracket(self.density, rho)
        j, we, clamped_e = _bracket(self.energy, e)
        extrapolated = clamped_rho or clamped_e
        if extrapolated:
            logger.debug("Table query (rho=%g, e=%g) outside grid; clamped to edge", rho, e)

        out = []
        for name in OUTPUT_COLUMNS:
            c = self.columns[name]
            out.append(
                (1.0 - wr) * (1.0 - we) * c[i, j]
                + wr * (1.0 - we) * c[i + 1, j]
                + (1.0 - wr) * we * c[i, j + 1]
                + wr * we * c[i + 1, j + 1]
            )
        return SurrogateResult(*(float(v) for v in out), extrapolated=extrapolated)


@register("lut")
def _factory(params: Dict[str, Any]) -> EntropyLookUpTable:
    for k in ("density", "energy"):
        if k not in params:
            raise MissingSurrogateData(f"Missing '{k}' axis in lut params")
    return EntropyLookUpTable(params["density"], params["energy"], params)
