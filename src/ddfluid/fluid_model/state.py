r"""Thermodynamic state derived from an entropic surrogate.

The surrogate expresses specific entropy in the canonical variables
:math:`(\rho, e)`. With the fundamental relation
:math:`\mathrm{d}s = \mathrm{d}e/T - p/(\rho^2 T)\,\mathrm{d}\rho` every state
quantity follows from :math:`s` and its first and second partials:

* :math:`T = 1/(\partial s/\partial e)_\rho`
* :math:`p = -\rho^2 T (\partial s/\partial \rho)_e`
* :math:`(\partial T/\partial e)_\rho = -(\partial s/\partial e)_\rho^{-2}\,\partial^2 s/\partial e^2`
* :math:`(\partial p/\partial e)_\rho`, :math:`(\partial p/\partial \rho)_e`, :math:`c^2`, :math:`c_v`, :math:`c_p`

:math:`(\partial T/\partial \rho)_e` is taken as zero. This is a modelling
assumption of the canonical form used by the Newton Jacobians, not a general
thermodynamic identity; the mixed entropy derivative is not folded into the
temperature or pressure sensitivities.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass

from ddfluid.common.exceptions import BackendEvaluationError, SingularStateError, UnstableStateError

_EPS = sys.float_info.epsilon


@dataclass(frozen=True)
class SurrogateResult:
    """Entropy and its partials at one (rho, e) query."""

    s: float
    dsde_rho: float
    dsdrho_e: float
    d2sde2: float
    d2sdedrho: float
    d2sdrho2: float
    extrapolated: bool = False

    def as_tuple(self):
        return (self.s, self.dsde_rho, self.dsdrho_e, self.d2sde2, self.d2sdedrho, self.d2sdrho2)


@dataclass(frozen=True)
class FluidState:
    """Complete thermodynamic state at one (rho, e) pair.

    Instances are only built by :func:`derive_state`, so every field refers to
    the same canonical pair.
    """

    rho: float
    e: float
    s: float
    T: float
    p: float
    cp: float
    cv: float
    gamma: float
    gas_constant: float
    c2: float
    dTde_rho: float
    dTdrho_e: float
    dpde_rho: float
    dpdrho_e: float
    dsde_rho: float
    dsdrho_e: float
    extrapolated: bool = False

    @property
    def h(self) -> float:
        return self.e + self.p / self.rho

    @property
    def gamma_minus_one(self) -> float:
        return self.gamma - 1.0

    @property
    def sound_speed(self) -> float:
        if self.c2 < 0.0:
            raise UnstableStateError(f"Negative squared speed of sound c2={self.c2}; state is mechanically unstable")
        return math.sqrt(self.c2)

    @property
    def dhde_rho(self) -> float:
        return 1.0 + self.dpde_rho / self.rho

    @property
    def dhdrho_e(self) -> float:
        return -self.p / (self.rho * self.rho) + self.dpdrho_e / self.rho


def _check_divisor(value: float, what: str) -> float:
    if abs(value) <= _EPS:
        raise SingularStateError(f"{what} = {value!r} is numerically zero")
    return value


def derive_state(rho: float, e: float, result: SurrogateResult) -> FluidState:
    """Apply the fundamental relation to a surrogate evaluation at (rho, e)."""

    values = result.as_tuple()
    if not all(math.isfinite(v) for v in values):
        raise BackendEvaluationError(f"Surrogate returned non-finite output at rho={rho}, e={e}: {values}")

    _check_divisor(rho, "density")
    dsde = _check_divisor(result.dsde_rho, "ds/de|rho")
    dsdrho = result.dsdrho_e
    inv_dsde = 1.0 / dsde

    T = inv_dsde
    p = -rho * rho * T * dsdrho

    blue_term = dsdrho * (2.0 - rho * inv_dsde * result.d2sdedrho) + rho * result.d2sdrho2
    green_term = -inv_dsde * result.d2sde2 * dsdrho + result.d2sdedrho
    c2 = -rho * inv_dsde * (blue_term - rho * green_term * (dsdrho * inv_dsde))

    dTde_rho = -inv_dsde * inv_dsde * result.d2sde2
    dTdrho_e = 0.0
    dpde_rho = -rho * rho * dTde_rho * dsdrho
    dpdrho_e = -2.0 * rho * T * dsdrho - rho * rho * T * result.d2sdrho2

    cv = 1.0 / _check_divisor(dTde_rho, "dT/de|rho")
    cp = cv * (1.0 + dpde_rho / rho)

    return FluidState(
        rho=rho,
        e=e,
        s=result.s,
        T=T,
        p=p,
        cp=cp,
        cv=cv,
        gamma=cp / cv,
        gas_constant=cp - cv,
        c2=c2,
        dTde_rho=dTde_rho,
        dTdrho_e=dTdrho_e,
        dpde_rho=dpde_rho,
        dpdrho_e=dpdrho_e,
        dsde_rho=dsde,
        dsdrho_e=dsdrho,
        extrapolated=result.extrapolated,
    )
