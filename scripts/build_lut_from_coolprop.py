#!/usr/bin/env python
"""Sample a single-phase entropy look-up table on a (rho, e) grid from CoolProp."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys
from typing import Dict, List

import numpy as np

try:
    import CoolProp.CoolProp as CP
except ImportError as exc:  # pragma: no cover - requires optional dependency
    raise SystemExit(
        "CoolProp is required to sample the entropy table. Install it with 'pip install CoolProp'."
    ) from exc

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ddfluid.fluid_model.impl.lookup_table import OUTPUT_COLUMNS
from ddfluid.fluid_model.utils.units import SI_UNITS

ACCEPTED_PHASES = (CP.iphase_gas, CP.iphase_supercritical_gas, CP.iphase_supercritical)


def sample_node(fluid: CP.AbstractState, rho: float, e: float) -> List[float]:
    fluid.update(CP.DmassUmass_INPUTS, rho, e)
    if fluid.phase() not in ACCEPTED_PHASES:
        raise ValueError(f"Node rho={rho}, e={e} is not single-phase gas/supercritical")
    return [
        fluid.smass(),
        fluid.first_partial_deriv(CP.iSmass, CP.iUmass, CP.iDmass),
        fluid.first_partial_deriv(CP.iSmass, CP.iDmass, CP.iUmass),
        fluid.second_partial_deriv(CP.iSmass, CP.iUmass, CP.iDmass, CP.iUmass, CP.iDmass),
        fluid.second_partial_deriv(CP.iSmass, CP.iUmass, CP.iDmass, CP.iDmass, CP.iUmass),
        fluid.second_partial_deriv(CP.iSmass, CP.iDmass, CP.iUmass, CP.iDmass, CP.iUmass),
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--fluid", default="CO2", help="CoolProp fluid name")
    parser.add_argument("--backend", default="HEOS", help="CoolProp backend")
    parser.add_argument("--rho", nargs=2, type=float, default=(1.0, 200.0), metavar=("MIN", "MAX"))
    parser.add_argument("--e", nargs=2, type=float, default=(3.0e5, 6.0e5), metavar=("MIN", "MAX"))
    parser.add_argument("--n-rho", type=int, default=60)
    parser.add_argument("--n-e", type=int, default=60)
    parser.add_argument(
        "--output",
        default=Path("data/fluids/surrogates/lut_co2.json"),
        type=Path,
        help="Target JSON file",
    )
    args = parser.parse_args()

    fluid = CP.AbstractState(args.backend, args.fluid)
    rho_axis = np.linspace(args.rho[0], args.rho[1], args.n_rho)
    e_axis = np.linspace(args.e[0], args.e[1], args.n_e)
    columns: Dict[str, np.ndarray] = {name: np.empty((rho_axis.size, e_axis.size)) for name in OUTPUT_COLUMNS}
    for i, rho in enumerate(rho_axis):
        for j, e in enumerate(e_axis):
            for name, value in zip(OUTPUT_COLUMNS, sample_node(fluid, float(rho), float(e))):
                columns[name][i, j] = value

    params = {"density": rho_axis.tolist(), "energy": e_axis.tolist()}
    params.update({name: data.tolist() for name, data in columns.items()})
    payload = {
        "model": "lut",
        "units": SI_UNITS,
        "metadata": {
            "fluid": args.fluid,
            "source": f"CoolProp {CP.get_global_param_string('version')} ({args.backend})",
        },
        "params": params,
    }
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(payload) + "\n", encoding="utf-8")
    print(f"Wrote {args.output}")


if __name__ == "__main__":
    main()
