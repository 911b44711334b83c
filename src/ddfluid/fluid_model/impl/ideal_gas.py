r"""Analytic ideal-gas entropy surface.

:math:`s(\rho, e) = c_v \ln e - R \ln \rho + s_\mathrm{ref}` reproduces
:math:`p = \rho R T` and :math:`e = c_v T`, which makes it the reference
surface for checking derivation and inversion against closed-form results.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import log
from typing import Any, Dict

from ddfluid.common.exceptions import BackendEvaluationError, MissingSurrogateData

from ..state import SurrogateResult
from .registry import register


@dataclass(frozen=True)
class IdealGasEntropy:
    cv: float
    R: float
    s_ref: float = 0.0

    def __post_init__(self):
        if self.cv <= 0 or self.R <= 0:
            raise ValueError("cv and R must be >0 for the ideal-gas entropy surface")

    def evaluate(self, rho: float, e: float) -> SurrogateResult:
        if rho <= 0:
            raise BackendEvaluationError(f"Density must be >0 for ideal-gas entropy, got {rho}")
        if e <= 0:
            raise BackendEvaluationError(f"Internal energy must be >0 for ideal-gas entropy, got {e}")
        return SurrogateResult(
            s=self.cv * log(e) - self.R * log(rho) + self.s_ref,
            dsde_rho=self.cv / e,
            dsdrho_e=-self.R / rho,
            d2sde2=-self.cv / (e * e),
            d2sdedrho=0.0,
            d2sdrho2=self.R / (rho * rho),
        )

    def temperature(self, e: float) -> float:
        return e / self.cv

    def energy(self, T: float) -> float:
        return self.cv * T

    def density(self, p: float, T: float) -> float:
        return p / (self.R * T)


@register("ideal_gas")
def _factory(params: Dict[str, Any]) -> IdealGasEntropy:
    for k in ("cv", "R"):
        if k not in params:
            raise MissingSurrogateData(f"Missing '{k}' in ideal_gas params")
    return IdealGasEntropy(cv=float(params["cv"]), R=float(params["R"]), s_ref=float(params.get("s_ref", 0.0)))
