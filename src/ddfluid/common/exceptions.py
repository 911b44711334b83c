"""Common exception types for the data-driven fluid model."""


class MissingSurrogateData(RuntimeError):
    """Raised when a fluid/surrogate configuration lacks data the backend requires."""


class BackendEvaluationError(RuntimeError):
    """Raised when a surrogate is queried outside its domain or returns non-finite output."""


class SingularStateError(RuntimeError):
    """Raised when a divisor or Newton Jacobian determinant is numerically zero."""


class UnstableStateError(RuntimeError):
    """Raised when a derived state has a negative squared speed of sound."""


class StateNotEvaluated(RuntimeError):
    """Raised when a state accessor is read before any state was evaluated."""


class NonConvergenceWarning(RuntimeWarning):
    """Issued when a Newton inversion stops at its iteration cap outside tolerance."""
