r"""Entropic multi-layer perceptron (emulator backend).

The network maps min-max normalised :math:`(\rho, e)` to a normalised entropy
value. Hidden layers share one activation function; the output layer is linear.
First and second input derivatives are propagated through the layers together
with the activations (forward mode), so the returned gradient and Hessian are
exact for the network rather than finite-difference estimates.

Weights follow the ``(n_in, n_out)`` layout, i.e. ``z = a @ W + b``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Sequence, Tuple

import numpy as np

from ddfluid.common.exceptions import BackendEvaluationError, MissingSurrogateData

from ..state import SurrogateResult
from .registry import register

ActivationTriple = Tuple[np.ndarray, np.ndarray, np.ndarray]


def _linear(z: np.ndarray) -> ActivationTriple:
    return z, np.ones_like(z), np.zeros_like(z)


def _tanh(z: np.ndarray) -> ActivationTriple:
    t = np.tanh(z)
    d1 = 1.0 - t * t
    return t, d1, -2.0 * t * d1


def _sigmoid(z: np.ndarray) -> ActivationTriple:
    g = 1.0 / (1.0 + np.exp(-z))
    d1 = g * (1.0 - g)
    return g, d1, d1 * (1.0 - 2.0 * g)


def _exponential(z: np.ndarray) -> ActivationTriple:
    ez = np.exp(z)
    return ez, ez, ez


def _swish(z: np.ndarray) -> ActivationTriple:
    g = 1.0 / (1.0 + np.exp(-z))
    gg = g * (1.0 - g)
    return z * g, g + z * gg, gg * (2.0 + z * (1.0 - 2.0 * g))


ACTIVATIONS: Dict[str, Callable[[np.ndarray], ActivationTriple]] = {
    "linear": _linear,
    "tanh": _tanh,
    "sigmoid": _sigmoid,
    "exponential": _exponential,
    "swish": _swish,
}


class EntropicMLP:
    """Dense network s(rho, e) with analytic input gradient and Hessian."""

    def __init__(
        self,
        weights: Sequence[Sequence[Sequence[float]]],
        biases: Sequence[Sequence[float]],
        activation: str,
        input_min: Sequence[float],
        input_max: Sequence[float],
        s_scale: float = 1.0,
        s_offset: float = 0.0,
    ):
        if activation not in ACTIVATIONS:
            raise ValueError(f"Unknown activation '{activation}'; available: {sorted(ACTIVATIONS)}")
        if len(weights) == 0 or len(weights) != len(biases):
            raise ValueError("weights and biases must be non-empty and have one entry per layer")

        self.weights: List[np.ndarray] = [np.asarray(w, dtype=float) for w in weights]
        self.biases: List[np.ndarray] = [np.asarray(b, dtype=float) for b in biases]
        n_in = 2
        for idx, (W, b) in enumerate(zip(self.weights, self.biases)):
            if W.ndim != 2 or W.shape[0] != n_in or b.shape != (W.shape[1],):
                raise ValueError(f"Layer {idx}: weight shape {W.shape} / bias shape {b.shape} inconsistent with {n_in} inputs")
            n_in = W.shape[1]
        if n_in != 1:
            raise ValueError(f"Output layer must have a single neuron (entropy), got {n_in}")

        self.activation = activation
        self._act = ACTIVATIONS[activation]
        self.input_min = np.asarray(input_min, dtype=float)
        self.input_max = np.asarray(input_max, dtype=float)
        self.input_scale = self.input_max - self.input_min
        if self.input_min.shape != (2,) or self.input_max.shape != (2,):
            raise ValueError("input_min/input_max must hold [rho, e]")
        if np.any(self.input_scale <= 0):
            raise ValueError("input_max must exceed input_min for both inputs")
        self.s_scale = float(s_scale)
        self.s_offset = float(s_offset)

    def _propagate(self, x_norm: np.ndarray) -> Tuple[float, np.ndarray, np.ndarray]:
        a = x_norm
        J = np.eye(2)
        H = np.zeros((2, 2, 2))
        last = len(self.weights) - 1
        for idx, (W, b) in enumerate(zip(self.weights, self.biases)):
            z = a @ W + b
            Jz = W.T @ J
            Hz = np.einsum("io,ijk->ojk", W, H)
            if idx == last:
                a, J, H = z, Jz, Hz
            else:
                sig, d1, d2 = self._act(z)
                a = sig
                J = d1[:, None] * Jz
                H = d2[:, None, None] * Jz[:, :, None] * Jz[:, None, :] + d1[:, None, None] * Hz
        return float(a[0]), J[0], H[0]

    def evaluate(self, rho: float, e: float) -> SurrogateResult:
        x = np.array([rho, e], dtype=float)
        if not np.all(np.isfinite(x)):
            raise BackendEvaluationError(f"Non-finite MLP input rho={rho}, e={e}")
        extrapolated = bool(np.any(x < self.input_min) or np.any(x > self.input_max))

        y, grad, hess = self._propagate((x - self.input_min) / self.input_scale)
        rho_scale, e_scale = self.input_scale
        return SurrogateResult(
            s=self.s_scale * y + self.s_offset,
            dsde_rho=self.s_scale * grad[1] / e_scale,
            dsdrho_e=self.s_scale * grad[0] / rho_scale,
            d2sde2=self.s_scale * hess[1, 1] / (e_scale * e_scale),
            d2sdedrho=self.s_scale * hess[0, 1] / (rho_scale * e_scale),
            d2sdrho2=self.s_scale * hess[0, 0] / (rho_scale * rho_scale),
            extrapolated=extrapolated,
        )


@register("mlp")
def _factory(params: Dict[str, Any]) -> EntropicMLP:
    required = ["weights", "biases", "activation", "input_min", "input_max"]
    for k in required:
        if k not in params:
            raise MissingSurrogateData(f"Missing '{k}' in mlp params")
    return EntropicMLP(
        weights=params["weights"],
        biases=params["biases"],
        activation=params["activation"],
        input_min=params["input_min"],
        input_max=params["input_max"],
        s_scale=float(params.get("s_scale", 1.0)),
        s_offset=float(params.get("s_offset", 0.0)),
    )
