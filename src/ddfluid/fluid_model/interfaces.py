"""Data-driven fluid facade that couples an entropic surrogate with the Newton inversions.

``DataDrivenFluid`` holds exactly one :class:`FluidState` that is replaced as a
whole on every evaluation. An instance is not thread-safe: callers that
evaluate in parallel (one mesh partition per worker, for example) must keep
one instance per worker and never share an instance across threads.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from ddfluid.common.exceptions import MissingSurrogateData, StateNotEvaluated

from .impl.loader import build_surrogate
from .impl.registry import Surrogate
from .newton import (
    DensityTemperature,
    EnthalpyEntropy,
    PressureDensity,
    PressureEntropy,
    PressureTemperature,
    SolveResult,
    SolverConfig,
    Tolerances,
    damped_newton,
)
from .state import FluidState, derive_state
from .utils.units import assert_units_agree, declared_units

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitialGuess:
    """Seed (rho, e) for every Newton inversion."""

    rho: float
    e: float

    def __post_init__(self):
        if self.rho <= 0 or self.e <= 0:
            raise ValueError(f"Initial guess must be positive, got rho={self.rho}, e={self.e}")


class DataDrivenFluid:
    def __init__(
        self,
        surrogate: Surrogate,
        initial_guess: InitialGuess,
        relaxation: float,
        tolerances: Optional[Tolerances] = None,
        max_iter: int = 1000,
        warm_start: bool = False,
    ):
        self.surrogate = surrogate
        self.initial_guess = initial_guess
        self.config = SolverConfig(
            relaxation=relaxation,
            max_iter=max_iter,
            tolerances=tolerances if tolerances is not None else Tolerances(),
        )
        self.warm_start = warm_start
        self._state: Optional[FluidState] = None
        self._last_result: Optional[SolveResult] = None
        self._last_converged: Optional[FluidState] = None

    # --- canonical evaluation ---

    def _evaluate(self, rho: float, e: float) -> FluidState:
        state = derive_state(rho, e, self.surrogate.evaluate(rho, e))
        if state.extrapolated:
            logger.debug("Surrogate extrapolated at rho=%g, e=%g", rho, e)
        self._state = state
        return state

    def set_state_rhoe(self, rho: float, e: float) -> None:
        """Direct evaluation at (rho, e); every inversion is built on this."""
        self._evaluate(rho, e)

    # --- inversions ---

    def _seed(self):
        if self.warm_start and self._last_converged is not None:
            return (self._last_converged.rho, self._last_converged.e)
        return (self.initial_guess.rho, self.initial_guess.e)

    def _solve(self, target) -> SolveResult:
        # warn from the caller of set_state_*, two frames above _solve
        result = damped_newton(self._evaluate, target, self._seed(), self.config, stacklevel=4)
        self._state = result.state
        self._last_result = result
        if result.converged:
            self._last_converged = result.state
        return result

    def set_state_pt(self, p: float, T: float) -> SolveResult:
        return self._solve(PressureTemperature(p, T))

    def set_state_prho(self, p: float, rho: float) -> SolveResult:
        return self._solve(PressureDensity(p, rho))

    def set_energy_prho(self, p: float, rho: float) -> float:
        """Static energy that reproduces pressure ``p`` at density ``rho``."""
        return self.set_state_prho(p, rho).state.e

    def set_state_rhot(self, rho: float, T: float) -> SolveResult:
        return self._solve(DensityTemperature(rho, T))

    def set_state_hs(self, h: float, s: float) -> SolveResult:
        return self._solve(EnthalpyEntropy(h, s))

    def set_state_ps(self, p: float, s: float) -> SolveResult:
        return self._solve(PressureEntropy(p, s))

    # --- accessors ---

    @property
    def state(self) -> FluidState:
        if self._state is None:
            raise StateNotEvaluated("No thermodynamic state evaluated yet; call a set_state_* method first")
        return self._state

    @property
    def last_result(self) -> Optional[SolveResult]:
        return self._last_result

    @property
    def density(self) -> float:
        return self.state.rho

    @property
    def energy(self) -> float:
        return self.state.e

    @property
    def entropy(self) -> float:
        return self.state.s

    @property
    def temperature(self) -> float:
        return self.state.T

    @property
    def pressure(self) -> float:
        return self.state.p

    @property
    def enthalpy(self) -> float:
        return self.state.h

    @property
    def cp(self) -> float:
        return self.state.cp

    @property
    def cv(self) -> float:
        return self.state.cv

    @property
    def gamma(self) -> float:
        return self.state.gamma

    @property
    def gamma_minus_one(self) -> float:
        return self.state.gamma_minus_one

    @property
    def gas_constant(self) -> float:
        return self.state.gas_constant

    @property
    def sound_speed2(self) -> float:
        return self.state.c2

    @property
    def sound_speed(self) -> float:
        return self.state.sound_speed

    @property
    def dTde_rho(self) -> float:
        return self.state.dTde_rho

    @property
    def dTdrho_e(self) -> float:
        return self.state.dTdrho_e

    @property
    def dpde_rho(self) -> float:
        return self.state.dpde_rho

    @property
    def dpdrho_e(self) -> float:
        return self.state.dpdrho_e


def _coerce_path(path: Union[str, Path]) -> Path:
    return path if isinstance(path, Path) else Path(path)


def _surrogate_block(raw: Mapping[str, Any], base_dir: Path) -> Mapping[str, Any]:
    block = raw["surrogate"]
    if isinstance(block, str):
        path = base_dir / block
        if not path.is_file():
            raise MissingSurrogateData(f"Surrogate file {path} referenced by fluid config does not exist")
        return json.loads(path.read_text(encoding="utf-8"))
    return block


def build_data_driven_fluid(json_path: Union[str, Path]) -> DataDrivenFluid:
    path = _coerce_path(json_path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    for k in ("surrogate", "density_init", "energy_init", "relaxation"):
        if k not in raw:
            raise MissingSurrogateData(f"Missing '{k}' in fluid config {path}")

    block = _surrogate_block(raw, path.parent)
    assert_units_agree(declared_units(raw), declared_units(block))
    surrogate = build_surrogate(block)

    tolerances = Tolerances(**raw["tolerances"]) if "tolerances" in raw else None
    return DataDrivenFluid(
        surrogate=surrogate,
        initial_guess=InitialGuess(rho=float(raw["density_init"]), e=float(raw["energy_init"])),
        relaxation=float(raw["relaxation"]),
        tolerances=tolerances,
        max_iter=int(raw.get("max_iter", 1000)),
        warm_start=bool(raw.get("warm_start", False)),
    )
