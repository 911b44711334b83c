"""Convenience exports for the data-driven fluid model."""

from .interfaces import DataDrivenFluid, InitialGuess, build_data_driven_fluid
from .impl.loader import build_surrogate, load_surrogate_from_json
from .newton import SolveResult, SolveStatus, SolverConfig, Tolerances
from .state import FluidState, SurrogateResult, derive_state

__all__ = [
    "DataDrivenFluid",
    "FluidState",
    "InitialGuess",
    "SolveResult",
    "SolveStatus",
    "SolverConfig",
    "SurrogateResult",
    "Tolerances",
    "build_data_driven_fluid",
    "build_surrogate",
    "derive_state",
    "load_surrogate_from_json",
]
