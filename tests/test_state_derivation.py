import math

import pytest

from ddfluid.common.exceptions import BackendEvaluationError, SingularStateError, UnstableStateError
from ddfluid.fluid_model.impl.ideal_gas import IdealGasEntropy
from ddfluid.fluid_model.state import SurrogateResult, derive_state

CV = 0.7
R = 0.3


def build_ideal_gas():
    return IdealGasEntropy(cv=CV, R=R)


def test_ideal_gas_state_matches_closed_form():
    gas = build_ideal_gas()
    rho, e = 2.0, 5.0
    st = derive_state(rho, e, gas.evaluate(rho, e))

    T = e / CV
    assert st.T == pytest.approx(T, rel=1e-14)
    assert st.p == pytest.approx(rho * R * T, rel=1e-14)
    assert st.cv == pytest.approx(CV, rel=1e-14)
    assert st.cp == pytest.approx(CV + R, rel=1e-14)
    assert st.gamma == pytest.approx((CV + R) / CV, rel=1e-14)
    assert st.gamma_minus_one == pytest.approx(R / CV, rel=1e-13)
    assert st.c2 == pytest.approx(st.gamma * R * T, rel=1e-13)
    assert st.sound_speed == pytest.approx(math.sqrt(st.gamma * R * T), rel=1e-13)
    assert st.h == pytest.approx(e + R * T, rel=1e-14)


def test_ideal_gas_partials_match_closed_form():
    gas = build_ideal_gas()
    rho, e = 0.4, 3.0
    st = derive_state(rho, e, gas.evaluate(rho, e))

    assert st.dTde_rho == pytest.approx(1.0 / CV, rel=1e-14)
    assert st.dTdrho_e == 0.0
    assert st.dpde_rho == pytest.approx(rho * R / CV, rel=1e-14)
    assert st.dpdrho_e == pytest.approx(R * e / CV, rel=1e-14)
    assert st.dhde_rho == pytest.approx(1.0 + R / CV, rel=1e-14)
    assert st.dhdrho_e == pytest.approx(0.0, abs=1e-14)
    assert st.dsde_rho == pytest.approx(CV / e, rel=1e-14)
    assert st.dsdrho_e == pytest.approx(-R / rho, rel=1e-14)


@pytest.mark.parametrize("rho", [0.1, 0.7, 3.0, 10.0])
@pytest.mark.parametrize("e", [1.0, 4.2, 10.0])
def test_heat_capacity_difference_is_gas_constant(rho, e):
    st = derive_state(rho, e, build_ideal_gas().evaluate(rho, e))
    assert st.cp - st.cv == pytest.approx(st.gas_constant, rel=1e-12, abs=1e-15)
    assert st.gas_constant == pytest.approx(R, rel=1e-12)


def test_state_reports_the_evaluated_pair():
    st = derive_state(1.3, 2.9, build_ideal_gas().evaluate(1.3, 2.9))
    assert (st.rho, st.e) == (1.3, 2.9)
    assert st.extrapolated is False


@pytest.mark.parametrize("dsde", [0.0, 1e-17, -1e-300])
def test_vanishing_energy_derivative_is_singular(dsde):
    result = SurrogateResult(s=1.0, dsde_rho=dsde, dsdrho_e=-0.3, d2sde2=-0.1, d2sdedrho=0.0, d2sdrho2=0.3)
    with pytest.raises(SingularStateError):
        derive_state(1.0, 1.0, result)


def test_vanishing_entropy_curvature_is_singular():
    # d2s/de2 = 0 makes dT/de|rho vanish, so cv = 1/(dT/de) is undefined
    result = SurrogateResult(s=1.0, dsde_rho=0.5, dsdrho_e=-0.3, d2sde2=0.0, d2sdedrho=0.0, d2sdrho2=0.3)
    with pytest.raises(SingularStateError):
        derive_state(1.0, 1.0, result)


def test_non_finite_surrogate_output_is_rejected():
    result = SurrogateResult(s=float("nan"), dsde_rho=0.5, dsdrho_e=-0.3, d2sde2=-0.1, d2sdedrho=0.0, d2sdrho2=0.3)
    with pytest.raises(BackendEvaluationError):
        derive_state(1.0, 1.0, result)


def test_extrapolation_flag_propagates():
    result = SurrogateResult(
        s=1.0, dsde_rho=0.5, dsdrho_e=-0.3, d2sde2=-0.1, d2sdedrho=0.0, d2sdrho2=0.3, extrapolated=True
    )
    assert derive_state(1.0, 1.0, result).extrapolated is True


def test_ideal_gas_rejects_non_physical_inputs():
    gas = build_ideal_gas()
    with pytest.raises(BackendEvaluationError):
        gas.evaluate(-1.0, 2.0)
    with pytest.raises(BackendEvaluationError):
        gas.evaluate(1.0, 0.0)


def test_negative_sound_speed_squared_is_a_typed_failure():
    # strong positive d2s/drho2 drives c2 below zero
    result = SurrogateResult(s=1.0, dsde_rho=0.5, dsdrho_e=-0.3, d2sde2=-0.1, d2sdedrho=0.0, d2sdrho2=1.0)
    st = derive_state(1.0, 1.0, result)
    assert st.c2 < 0.0
    with pytest.raises(UnstableStateError):
        st.sound_speed
