from typing import Any, Dict, Mapping

# Canonical-variable units used when a JSON file declares a "units" block.
SI_UNITS = {"rho": "kg/m3", "e": "J/kg", "s": "J/kg/K"}


def assert_unit(actual: str, expected: str, what: str):
    if actual != expected:
        raise ValueError(f"Unit mismatch for {what}: got '{actual}', expected '{expected}'")


def declared_units(data: Mapping[str, Any]) -> Dict[str, str]:
    units = data.get("units", {})
    if not isinstance(units, Mapping):
        raise ValueError(f"'units' must be a mapping, got {type(units).__name__}")
    return {str(k): str(v) for k, v in units.items()}


def assert_units_agree(fluid_units: Mapping[str, str], surrogate_units: Mapping[str, str]):
    """Both sides may leave a quantity undeclared; declared pairs must match."""
    for quantity, unit in fluid_units.items():
        if quantity in surrogate_units:
            assert_unit(surrogate_units[quantity], unit, quantity)
