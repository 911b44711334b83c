from typing import Any, Callable, Dict, Protocol

from ..state import SurrogateResult


class Surrogate(Protocol):
    """Unified interface: rho, e -> entropy and its partials up to second order."""

    def evaluate(self, rho: float, e: float) -> SurrogateResult: ...


REGISTRY: Dict[str, Callable[[Dict[str, Any]], Surrogate]] = {}  # name -> factory(params: dict) -> Surrogate


def register(name: str):
    def deco(fn):
        REGISTRY[name] = fn
        return fn
    return deco


def build(name: str, params: dict) -> Surrogate:
    if name not in REGISTRY:
        raise KeyError(f"Surrogate '{name}' not registered")
    return REGISTRY[name](params)
