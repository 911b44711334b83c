"""Damped Newton-Raphson inversion of the entropic state.

Callers pose queries in (p, T), (p, rho), (rho, T), (h, s) or (p, s); the
surrogate only accepts (rho, e). Each target pair is a small strategy object
that supplies the residual, the tolerances and the analytic Jacobian from a
:class:`~ddfluid.fluid_model.state.FluidState`; :func:`damped_newton` owns the
shared iteration.

A target either solves for both canonical variables (``fixed_rho is None``) or
keeps density fixed and solves a scalar equation in energy.
"""

from __future__ import annotations

import logging
import sys
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Tuple

from ddfluid.common.exceptions import NonConvergenceWarning, SingularStateError

from .state import FluidState

logger = logging.getLogger(__name__)

_EPS = sys.float_info.epsilon

Vector = Tuple[float, ...]
Matrix = Tuple[Tuple[float, ...], ...]


@dataclass(frozen=True)
class Tolerances:
    """Absolute residual bounds, one per physical quantity."""

    pressure: float = 10.0
    temperature: float = 1.0
    enthalpy: float = 10.0
    entropy: float = 1.0

    def __post_init__(self):
        for name in ("pressure", "temperature", "enthalpy", "entropy"):
            if getattr(self, name) <= 0:
                raise ValueError(f"Tolerance for {name} must be >0")


@dataclass(frozen=True)
class SolverConfig:
    relaxation: float = 1.0
    max_iter: int = 1000
    tolerances: Tolerances = field(default_factory=Tolerances)

    def __post_init__(self):
        if not (0.0 < self.relaxation <= 1.0):
            raise ValueError(f"Relaxation factor must lie in (0, 1], got {self.relaxation}")
        if self.max_iter < 1:
            raise ValueError("max_iter must be >=1")


class SolveStatus(Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"


@dataclass(frozen=True)
class SolveResult:
    status: SolveStatus
    iterations: int
    residual: Vector
    state: FluidState

    @property
    def converged(self) -> bool:
        return self.status is SolveStatus.CONVERGED


class PressureTemperature:
    name = "p-T"
    fixed_rho = None

    def __init__(self, p: float, T: float):
        self.p = p
        self.T = T

    def residual(self, st: FluidState) -> Vector:
        return (st.p - self.p, st.T - self.T)

    def tolerances(self, tol: Tolerances) -> Vector:
        return (tol.pressure, tol.temperature)

    def jacobian(self, st: FluidState) -> Matrix:
        return ((st.dpdrho_e, st.dpde_rho), (st.dTdrho_e, st.dTde_rho))


class PressureDensity:
    name = "p-rho"

    def __init__(self, p: float, rho: float):
        self.p = p
        self.fixed_rho = rho

    def residual(self, st: FluidState) -> Vector:
        return (st.p - self.p,)

    def tolerances(self, tol: Tolerances) -> Vector:
        return (tol.pressure,)

    def jacobian(self, st: FluidState) -> Matrix:
        return ((st.dpde_rho,),)


class DensityTemperature:
    name = "rho-T"

    def __init__(self, rho: float, T: float):
        self.fixed_rho = rho
        self.T = T

    def residual(self, st: FluidState) -> Vector:
        return (st.T - self.T,)

    def tolerances(self, tol: Tolerances) -> Vector:
        return (tol.temperature,)

    def jacobian(self, st: FluidState) -> Matrix:
        return ((st.dTde_rho,),)


class EnthalpyEntropy:
    name = "h-s"
    fixed_rho = None

    def __init__(self, h: float, s: float):
        self.h = h
        self.s = s

    def residual(self, st: FluidState) -> Vector:
        return (st.h - self.h, st.s - self.s)

    def tolerances(self, tol: Tolerances) -> Vector:
        return (tol.enthalpy, tol.entropy)

    def jacobian(self, st: FluidState) -> Matrix:
        return ((st.dhdrho_e, st.dhde_rho), (st.dsdrho_e, st.dsde_rho))


class PressureEntropy:
    name = "p-s"
    fixed_rho = None

    def __init__(self, p: float, s: float):
        self.p = p
        self.s = s

    def residual(self, st: FluidState) -> Vector:
        return (st.p - self.p, st.s - self.s)

    def tolerances(self, tol: Tolerances) -> Vector:
        return (tol.pressure, tol.entropy)

    def jacobian(self, st: FluidState) -> Matrix:
        return ((st.dpdrho_e, st.dpde_rho), (st.dsdrho_e, st.dsde_rho))


def _within(residual: Vector, bounds: Vector) -> bool:
    return all(abs(r) < b for r, b in zip(residual, bounds))


def _solve_step(jac: Matrix, residual: Vector) -> Vector:
    """Solve J * step = residual for the 1x1 or 2x2 Newton system."""
    if len(residual) == 1:
        d = jac[0][0]
        if abs(d) <= _EPS:
            raise SingularStateError(f"Newton derivative {d!r} is numerically zero")
        return (residual[0] / d,)

    (a, b), (c, d) = jac
    det = a * d - b * c
    if abs(det) <= _EPS:
        raise SingularStateError(f"Newton Jacobian determinant {det!r} is numerically zero")
    r0, r1 = residual
    return ((d * r0 - b * r1) / det, (-c * r0 + a * r1) / det)


def damped_newton(
    evaluate: Callable[[float, float], FluidState],
    target,
    seed: Tuple[float, float],
    config: SolverConfig,
    stacklevel: int = 2,
) -> SolveResult:
    """Drive ``target.residual`` to within tolerance by updating (rho, e).

    The returned state is always the one evaluated at the final guess, whether
    or not the tolerances were met. ``stacklevel`` points the
    :class:`NonConvergenceWarning` at the frame that posed the query.
    """

    rho, e = seed
    if target.fixed_rho is not None:
        rho = target.fixed_rho
    bounds = target.tolerances(config.tolerances)
    omega = config.relaxation

    for iteration in range(config.max_iter):
        state = evaluate(rho, e)
        residual = target.residual(state)
        if _within(residual, bounds):
            logger.debug("%s inversion converged in %d iterations", target.name, iteration)
            return SolveResult(SolveStatus.CONVERGED, iteration, residual, state)

        step = _solve_step(target.jacobian(state), residual)
        if target.fixed_rho is None:
            rho -= omega * step[0]
            e -= omega * step[1]
        else:
            e -= omega * step[0]

    state = evaluate(rho, e)
    residual = target.residual(state)
    if _within(residual, bounds):
        return SolveResult(SolveStatus.CONVERGED, config.max_iter, residual, state)

    logger.warning(
        "%s inversion stopped after %d iterations at rho=%g, e=%g with residual %s",
        target.name,
        config.max_iter,
        rho,
        e,
        residual,
    )
    warnings.warn(
        f"{target.name} inversion did not converge within {config.max_iter} iterations (residual {residual})",
        NonConvergenceWarning,
        stacklevel=stacklevel,
    )
    return SolveResult(SolveStatus.MAX_ITERATIONS, config.max_iter, residual, state)
