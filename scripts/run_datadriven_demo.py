"""Evaluate one query per variable pair with a data-driven fluid configuration."""

from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import logging
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ddfluid.fluid_model import build_data_driven_fluid


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", default=ROOT / "data/fluids/ideal_air_demo.json", type=Path, help="Fluid JSON file")
    parser.add_argument("--p", type=float, default=101325.0, help="Target pressure")
    parser.add_argument("--T", type=float, default=300.0, help="Target temperature")
    parser.add_argument("--summary", action="store_true", help="Print the final state as formatted JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log Newton iterations")
    return parser.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    fluid = build_data_driven_fluid(args.config)

    result = fluid.set_state_pt(args.p, args.T)
    print(f"p-T:   rho={fluid.density:.6g}, e={fluid.energy:.6g} ({result.status.value}, {result.iterations} it)")
    rho, e, h, s = fluid.density, fluid.energy, fluid.enthalpy, fluid.entropy

    queries = [
        ("p-rho", lambda: fluid.set_state_prho(args.p, rho)),
        ("rho-T", lambda: fluid.set_state_rhot(rho, args.T)),
        ("h-s", lambda: fluid.set_state_hs(h, s)),
        ("p-s", lambda: fluid.set_state_ps(args.p, s)),
    ]
    for name, query in queries:
        result = query()
        print(
            f"{name + ':':6s} rho={fluid.density:.6g}, e={fluid.energy:.6g} "
            f"(drho={fluid.density - rho:+.3g}, de={fluid.energy - e:+.3g}; {result.status.value}, {result.iterations} it)"
        )

    print(f"c={fluid.sound_speed:.6g}, cp={fluid.cp:.6g}, cv={fluid.cv:.6g}, gamma={fluid.gamma:.6g}")
    if args.summary:
        print(json.dumps(asdict(fluid.state), indent=2))


if __name__ == "__main__":
    main()
