import json
from pathlib import Path

import pytest

from ddfluid.common.exceptions import (
    BackendEvaluationError,
    MissingSurrogateData,
    NonConvergenceWarning,
    StateNotEvaluated,
)
from ddfluid.fluid_model import (
    DataDrivenFluid,
    InitialGuess,
    SolveStatus,
    Tolerances,
    build_data_driven_fluid,
)
from ddfluid.fluid_model.impl.ideal_gas import IdealGasEntropy

ROOT = Path(__file__).resolve().parents[1]
CV = 0.7
R = 0.3
TIGHT = Tolerances(pressure=1e-9, temperature=1e-9, enthalpy=1e-9, entropy=1e-10)


def build_fluid(rho0=1.0, e0=10.0, relaxation=1.0, tolerances=TIGHT, **kwargs):
    return DataDrivenFluid(
        IdealGasEntropy(cv=CV, R=R),
        InitialGuess(rho=rho0, e=e0),
        relaxation=relaxation,
        tolerances=tolerances,
        **kwargs,
    )


@pytest.mark.parametrize("rho", [0.1, 0.5, 1.0, 5.0, 10.0])
@pytest.mark.parametrize("e", [1.0, 2.5, 5.0, 10.0])
def test_pressure_temperature_round_trip(rho, e):
    fluid = build_fluid(max_iter=100)
    fluid.set_state_rhoe(rho, e)
    p, T = fluid.pressure, fluid.temperature

    result = fluid.set_state_pt(p, T)
    assert result.converged
    assert fluid.density == pytest.approx(rho, rel=1e-8)
    assert fluid.energy == pytest.approx(e, rel=1e-8)


def test_reference_scenario_converges_with_default_tolerances():
    fluid = build_fluid(rho0=1.0, e0=250.0, tolerances=None)
    result = fluid.set_state_pt(101325.0, 300.0)
    assert result.status is SolveStatus.CONVERGED
    assert result.iterations < 1000
    # p = rho R T, e = cv T
    assert fluid.density == pytest.approx(101325.0 / (R * 300.0), rel=1e-6)
    assert fluid.energy == pytest.approx(CV * 300.0, rel=1e-6)
    assert abs(fluid.pressure - 101325.0) < 10.0
    assert abs(fluid.temperature - 300.0) < 1.0


def test_set_state_rhoe_is_idempotent():
    fluid = build_fluid()
    fluid.set_state_rhoe(1.7, 3.3)
    first = fluid.state
    fluid.set_state_rhoe(1.7, 3.3)
    assert fluid.state == first
    assert fluid.state is not first


def test_each_query_pair_recovers_the_state():
    ref = build_fluid()
    ref.set_state_rhoe(2.0, 5.0)
    p, T, h, s = ref.pressure, ref.temperature, ref.enthalpy, ref.entropy

    fluid = build_fluid(rho0=1.5, e0=6.0, max_iter=100)
    assert fluid.set_state_prho(p, 2.0).converged
    assert fluid.energy == pytest.approx(5.0, rel=1e-9)
    assert fluid.set_state_rhot(2.0, T).converged
    assert fluid.energy == pytest.approx(5.0, rel=1e-9)

    fluid = build_fluid(rho0=1.5, e0=4.0, max_iter=100)
    assert fluid.set_state_hs(h, s).converged
    assert (fluid.density, fluid.energy) == (pytest.approx(2.0, rel=1e-8), pytest.approx(5.0, rel=1e-8))
    assert fluid.set_state_ps(p, s).converged
    assert (fluid.density, fluid.energy) == (pytest.approx(2.0, rel=1e-8), pytest.approx(5.0, rel=1e-8))


def test_set_energy_prho_returns_energy():
    fluid = build_fluid()
    e = fluid.set_energy_prho(p=R * 4.0 / CV * 3.0, rho=3.0)
    assert e == pytest.approx(4.0, rel=1e-9)
    assert fluid.energy == e
    assert fluid.density == 3.0


def test_accessors_expose_every_state_field():
    fluid = build_fluid()
    fluid.set_state_rhoe(2.0, 5.0)
    st = fluid.state
    assert fluid.density == st.rho
    assert fluid.energy == st.e
    assert fluid.entropy == st.s
    assert fluid.temperature == st.T
    assert fluid.pressure == st.p
    assert fluid.enthalpy == st.h
    assert fluid.cp == st.cp
    assert fluid.cv == st.cv
    assert fluid.gamma == st.gamma
    assert fluid.gamma_minus_one == st.gamma_minus_one
    assert fluid.gas_constant == st.gas_constant
    assert fluid.sound_speed2 == st.c2
    assert fluid.sound_speed == st.sound_speed
    assert fluid.dTde_rho == st.dTde_rho
    assert fluid.dTdrho_e == st.dTdrho_e
    assert fluid.dpde_rho == st.dpde_rho
    assert fluid.dpdrho_e == st.dpdrho_e
    assert fluid.last_result is None


def test_reading_before_evaluation_raises():
    fluid = build_fluid()
    with pytest.raises(StateNotEvaluated):
        fluid.pressure


def test_negative_temperature_is_a_typed_failure():
    fluid = build_fluid()
    with pytest.raises(BackendEvaluationError):
        fluid.set_state_rhot(1.0, -5.0)


def test_non_convergence_is_reported_and_state_kept():
    fluid = build_fluid(relaxation=0.1, max_iter=3)
    with pytest.warns(NonConvergenceWarning):
        result = fluid.set_state_pt(R * 7.0 / CV * 2.0, 7.0 / CV)
    assert result.status is SolveStatus.MAX_ITERATIONS
    assert fluid.last_result is result
    assert fluid.state == result.state


def test_non_convergence_warning_points_at_the_query():
    fluid = build_fluid(relaxation=0.1, max_iter=3)
    with pytest.warns(NonConvergenceWarning) as record:
        fluid.set_state_rhot(2.0, 10.0)
    assert len(record) == 1
    assert record[0].filename == __file__


def test_warm_start_seeds_from_last_converged_state():
    cold = build_fluid(max_iter=100)
    warm = build_fluid(max_iter=100, warm_start=True)
    p, T = 2.0 * R * 5.0 / CV, 5.0 / CV

    assert cold.set_state_pt(p, T).iterations > 0
    assert cold.set_state_pt(p, T).iterations > 0
    assert warm.set_state_pt(p, T).iterations > 0
    assert warm.set_state_pt(p, T).iterations == 0


@pytest.mark.parametrize("relaxation", [0.0, 1.5])
def test_relaxation_is_validated(relaxation):
    with pytest.raises(ValueError):
        build_fluid(relaxation=relaxation)


def test_initial_guess_must_be_positive():
    with pytest.raises(ValueError):
        InitialGuess(rho=0.0, e=1.0)


def test_demo_config_builds_air_stand_in():
    fluid = build_data_driven_fluid(ROOT / "data/fluids/ideal_air_demo.json")
    result = fluid.set_state_pt(101325.0, 300.0)
    assert result.converged
    assert fluid.density == pytest.approx(101325.0 / (287.05 * 300.0), rel=1e-6)
    assert fluid.energy == pytest.approx(717.5 * 300.0, rel=1e-6)
    assert fluid.sound_speed == pytest.approx((1004.55 / 717.5 * 287.05 * 300.0) ** 0.5, rel=1e-9)


def write_config(tmp_path, **overrides):
    config = {
        "surrogate": {"model": "ideal_gas", "params": {"cv": CV, "R": R}},
        "density_init": 1.0,
        "energy_init": 10.0,
        "relaxation": 0.8,
    }
    config.update(overrides)
    path = tmp_path / "fluid.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


def test_inline_surrogate_config(tmp_path):
    path = write_config(tmp_path, tolerances={"pressure": 1e-6, "temperature": 1e-6}, warm_start=True, max_iter=200)
    fluid = build_data_driven_fluid(path)
    assert fluid.config.relaxation == 0.8
    assert fluid.config.max_iter == 200
    assert fluid.config.tolerances.pressure == 1e-6
    assert fluid.config.tolerances.entropy == 1.0
    assert fluid.warm_start is True
    assert fluid.initial_guess == InitialGuess(1.0, 10.0)


def test_missing_config_key_raises(tmp_path):
    path = write_config(tmp_path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    del raw["relaxation"]
    path.write_text(json.dumps(raw), encoding="utf-8")
    with pytest.raises(MissingSurrogateData):
        build_data_driven_fluid(path)


def test_missing_surrogate_file_raises(tmp_path):
    with pytest.raises(MissingSurrogateData):
        build_data_driven_fluid(write_config(tmp_path, surrogate="nowhere.json"))


def test_unknown_surrogate_model_raises(tmp_path):
    with pytest.raises(KeyError):
        build_data_driven_fluid(write_config(tmp_path, surrogate={"model": "spline", "params": {}}))


def test_unit_mismatch_raises(tmp_path):
    surrogate = {"model": "ideal_gas", "units": {"e": "kJ/kg"}, "params": {"cv": CV, "R": R}}
    path = write_config(tmp_path, surrogate=surrogate, units={"e": "J/kg"})
    with pytest.raises(ValueError):
        build_data_driven_fluid(path)
